import io
import logging
import re
import time
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from minio import Minio
from minio.error import S3Error

from portal.core.config import settings
from portal.core.exceptions import StorageError

logger = logging.getLogger(__name__)


@dataclass
class StoredFile:
    object_name: str
    file_name: str
    content_type: str
    size_bytes: int
    url: str


def build_object_name(file_name: str, prefix: Optional[str] = None) -> str:
    """Timestamp-prefixed, path-safe object key, optionally under a folder prefix."""
    safe_name = re.sub(r"[^A-Za-z0-9._-]", "_", file_name or "upload")
    name = f"{int(time.time() * 1000)}_{safe_name}"
    return f"{prefix.strip('/')}/{name}" if prefix else name


class MinioFileStorage:
    """
    S3-compatible object storage for uploaded files (qualification documents,
    induction media). The client and bucket are created lazily on first use.
    """

    def __init__(self, storage_settings=None):
        self.settings = storage_settings or settings.storage
        self._client: Optional[Minio] = None

    def _get_client(self) -> Minio:
        if self._client is None:
            logger.debug(
                "Creating new Minio client instance",
                extra={"endpoint": self.settings.endpoint, "secure": self.settings.secure},
            )
            client = Minio(
                self.settings.endpoint,
                access_key=self.settings.access_key,
                secret_key=self.settings.secret_key,
                secure=self.settings.secure,
            )
            try:
                if not client.bucket_exists(self.settings.bucket_name):
                    logger.info("Minio bucket does not exist, creating now", extra={"bucket_name": self.settings.bucket_name})
                    client.make_bucket(self.settings.bucket_name)
            except S3Error as e:
                logger.error(
                    f"Error checking or creating Minio bucket: {e}",
                    extra={"bucket_name": self.settings.bucket_name, "error_code": e.code},
                )
                raise StorageError("File storage is unavailable") from e
            self._client = client
        return self._client

    def object_url(self, object_name: str) -> str:
        scheme = "https" if self.settings.secure else "http"
        return f"{scheme}://{self.settings.endpoint}/{self.settings.bucket_name}/{object_name}"

    def upload(self, data: bytes, file_name: str, content_type: str, prefix: Optional[str] = None) -> StoredFile:
        client = self._get_client()
        object_name = build_object_name(file_name, prefix)
        try:
            client.put_object(
                self.settings.bucket_name,
                object_name,
                io.BytesIO(data),
                len(data),
                content_type=content_type or "application/octet-stream",
            )
        except S3Error as e:
            logger.error(f"Error uploading file to Minio: {e}", extra={"object_name": object_name, "error_code": e.code})
            raise StorageError("Failed to upload file") from e

        logger.info("File uploaded", extra={"object_name": object_name, "size_bytes": len(data)})
        return StoredFile(
            object_name=object_name,
            file_name=file_name,
            content_type=content_type,
            size_bytes=len(data),
            url=self.object_url(object_name),
        )

    def signed_url(self, object_name: str, expires_minutes: Optional[int] = None) -> str:
        client = self._get_client()
        expires = timedelta(minutes=expires_minutes or self.settings.signed_url_expiry_minutes)
        try:
            return client.presigned_get_object(self.settings.bucket_name, object_name, expires=expires)
        except S3Error as e:
            logger.error(f"Error signing Minio URL: {e}", extra={"object_name": object_name, "error_code": e.code})
            raise StorageError("Failed to create signed URL") from e

    def delete(self, object_name: str) -> None:
        client = self._get_client()
        try:
            client.remove_object(self.settings.bucket_name, object_name)
        except S3Error as e:
            logger.error(f"Error deleting file from Minio: {e}", extra={"object_name": object_name, "error_code": e.code})
            raise StorageError("Failed to delete file") from e
        logger.info("File deleted", extra={"object_name": object_name})


_storage = MinioFileStorage()


def get_storage() -> MinioFileStorage:
    """FastAPI dependency; tests swap in an in-memory store."""
    return _storage
