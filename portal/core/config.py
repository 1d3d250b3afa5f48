import os
import logging
from pydantic import BaseModel, Field
from typing import List, Optional
from dotenv import load_dotenv

load_dotenv()


def _csv_env(name: str, default: str) -> List[str]:
    return [v.strip() for v in os.getenv(name, default).split(",") if v.strip()]


class MailSettings(BaseModel):
    mailjet_api_key: Optional[str] = Field(default=os.getenv("MJ_APIKEY_PUBLIC"))
    mailjet_api_secret: Optional[str] = Field(default=os.getenv("MJ_APIKEY_PRIVATE"))
    mailjet_url: str = os.getenv("MAILJET_SEND_URL", "https://api.mailjet.com/v3.1/send")
    from_email: str = os.getenv("MAIL_FROM_EMAIL", "induction-portal@example.com")
    from_name: str = os.getenv("MAIL_FROM_NAME", "Staff Induction Portal")
    default_reply_to: str = os.getenv("DEFAULT_REPLY_TO", "inductions@example.com")
    default_cc: List[str] = Field(default_factory=lambda: _csv_env("DEFAULT_CC", "manager@example.com"))
    admin_email: str = os.getenv("ADMIN_EMAIL", "inductions@example.com")
    logo_url: str = os.getenv("EMAIL_LOGO_URL", "https://example.com/images/induction-portal.jpg")
    organisation_name: str = os.getenv("ORGANISATION_NAME", "Events Management")
    timeout_seconds: int = int(os.getenv("MAIL_TIMEOUT_SECONDS", "30"))


class StorageSettings(BaseModel):
    endpoint: str = os.getenv("MINIO_ENDPOINT", "localhost:9000")
    access_key: str = os.getenv("MINIO_ROOT_USER", "minioadmin")
    secret_key: str = os.getenv("MINIO_ROOT_PASSWORD", "minioadmin")
    secure: bool = os.getenv("MINIO_SECURE", "false").lower() == "true"
    bucket_name: str = os.getenv("MINIO_BUCKET_NAME", "induction-files")
    signed_url_expiry_minutes: int = int(os.getenv("SIGNED_URL_EXPIRY_MINUTES", "60"))


class Config(BaseModel):
    app_name: str = "Staff Induction Portal"
    environment: str = os.getenv("APP_ENV", "development")
    api_prefix: str = "/api"
    version: str = "1.0.0"
    request_id_header: str = "X-Request-ID"
    log_level: str = os.getenv("LOG_LEVEL", "INFO").upper()

    # Database
    database_url: str = os.getenv("DATABASE_URL", "sqlite:///./induction_portal.db")

    # Auth
    secret_key: str = os.getenv("SECRET_KEY", "dev-only-insecure-key-DO-NOT-USE-IN-PROD")
    access_token_expire_minutes: int = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", str(60 * 24)))

    # Scheduled jobs are triggered externally and authenticated by this key
    cron_api_key: Optional[str] = Field(default=os.getenv("CRON_API_KEY"))

    # Frontend links embedded in emails
    portal_url: str = os.getenv("PORTAL_URL", "http://localhost:3000").rstrip("/")
    default_department_email_domain: str = os.getenv("DEFAULT_DEPARTMENT_EMAIL_DOMAIN", "example.com")

    mail: MailSettings = MailSettings()
    storage: StorageSettings = StorageSettings()
    max_upload_bytes: int = int(os.getenv("MAX_UPLOAD_BYTES", str(10 * 1024 * 1024)))

    cors_origins: List[str] = Field(
        default_factory=lambda: _csv_env(
            "CORS_ORIGINS",
            "http://localhost:3000,http://localhost:3001,"
            "http://127.0.0.1:3000,http://127.0.0.1:3001",
        )
    )
    rate_limit_public: str = os.getenv("RATE_LIMIT_PUBLIC", "10/minute")


settings = Config()

# --- Startup Validation for Production ---
_logger = logging.getLogger(__name__)
if settings.environment not in ("development", "testing"):
    if "dev-only" in settings.secret_key:
        raise RuntimeError(
            "FATAL: SECRET_KEY must be set for non-development environments. "
            "Set it as an environment variable."
        )
    if not settings.cron_api_key:
        _logger.warning("CRON_API_KEY is not set; scheduled job endpoints will reject every call.")
else:
    if "dev-only" in settings.secret_key:
        _logger.warning("Using insecure default SECRET_KEY - only acceptable in development.")
