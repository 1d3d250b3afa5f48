"""
JSON logging for the portal.

Every record carries the service name, the environment and, inside a request,
the ``X-Request-ID`` correlation id set by ``CorrelationIdMiddleware``.
"""
import logging
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pythonjsonlogger import jsonlogger

from portal.core.config import settings

LOG_FORMAT = "%(timestamp) %(level) %(name) %(message)"

# Chatty third-party loggers; their INFO output drowns the request log
QUIET_LOGGERS = ("uvicorn.access", "sqlalchemy.engine", "urllib3", "multipart")

request_id_var: ContextVar[str] = ContextVar("request_id", default="")


class PortalJsonFormatter(jsonlogger.JsonFormatter):
    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)

        # Format fields arrive as None when the record does not define them
        if not log_record.get("timestamp"):
            log_record["timestamp"] = datetime.fromtimestamp(record.created, timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = settings.app_name
        log_record["environment"] = settings.environment

        request_id = request_id_var.get()
        if request_id:
            log_record["request_id"] = request_id


def setup_logging(level: Optional[str] = None) -> None:
    root = logging.getLogger()
    root.setLevel(level or settings.log_level)
    # The app module can be imported more than once under pytest
    if any(isinstance(handler.formatter, PortalJsonFormatter) for handler in root.handlers):
        return

    handler = logging.StreamHandler()
    handler.setFormatter(PortalJsonFormatter(LOG_FORMAT))
    root.addHandler(handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
