"""
Structured logging configuration using python-json-logger.

Every record carries the service identity and, while a request is being
served, its correlation ID. Credentials never reach the output: values of
password and token fields are masked before formatting.
"""

import logging
import re
import sys
from contextvars import ContextVar
from typing import Any, Optional

from pythonjsonlogger import jsonlogger

from planify.core.config import settings

CORRELATION_HEADER = "X-Correlation-ID"

_correlation_id: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)

# key=value / "key": "value" pairs whose value must never be logged
_SECRET_PATTERN = re.compile(
    r"(?i)(\"?(?:password|current_?password|new_?password|token|refresh_?token|authorization)\"?\s*[:=]\s*)"
    r"(\"[^\"]*\"|'[^']*'|bearer\s+\S+|\S+)"
)
_JWT_PATTERN = re.compile(r"\beyJ[\w-]+\.[\w-]+\.[\w-]+")


def bind_correlation_id(correlation_id: str) -> None:
    _correlation_id.set(correlation_id)


def get_correlation_id() -> Optional[str]:
    return _correlation_id.get()


def clear_correlation_id() -> None:
    _correlation_id.set(None)


def redact(message: str) -> str:
    """Mask password and token values inside a log message."""
    message = _SECRET_PATTERN.sub(r"\1[REDACTED]", message)
    return _JWT_PATTERN.sub("[REDACTED]", message)


class ContextFilter(logging.Filter):
    """Attach the correlation ID and mask secrets on every record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = get_correlation_id() or "-"
        if record.args:
            try:
                message = record.getMessage()
            except (TypeError, ValueError):
                # Leave it for the handler, which reports bad format args itself
                return True
            record.msg = message
            record.args = None
        if isinstance(record.msg, str):
            record.msg = redact(record.msg)
        return True


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """JSON formatter that adds the service identity and request context."""

    def add_fields(
        self,
        log_record: dict[str, Any],
        record: logging.LogRecord,
        message_dict: dict[str, Any],
    ) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["service"] = settings.PROJECT_NAME
        log_record["version"] = settings.VERSION
        log_record["environment"] = settings.ENVIRONMENT
        log_record["level"] = record.levelname
        correlation_id = getattr(record, "correlation_id", None)
        if correlation_id and correlation_id != "-":
            log_record["correlation_id"] = correlation_id


def setup_logging() -> None:
    """
    Configure application-wide logging.

    JSON lines in production, a readable single-line format when ``DEBUG``
    is on. Calling it again keeps the handler that is already installed.
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG if settings.DEBUG else logging.INFO)
    if any(isinstance(f, ContextFilter) for h in root_logger.handlers for f in h.filters):
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(ContextFilter())

    if settings.DEBUG:
        formatter: logging.Formatter = logging.Formatter(
            "%(asctime)s [%(correlation_id)s] %(name)s %(levelname)s: %(message)s",
            datefmt="%H:%M:%S",
        )
    else:
        formatter = CustomJsonFormatter("%(asctime)s %(level)s %(name)s %(message)s")

    handler.setFormatter(formatter)
    root_logger.addHandler(handler)

    # passlib warns about bcrypt's missing __about__ on every import
    logging.getLogger("passlib").setLevel(logging.ERROR)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
