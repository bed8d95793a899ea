"""Logging configuration for the booking service.

Every record emitted under the ``booking_core`` logger carries the id of the
HTTP request that produced it (``request_id``), so a booking, its conflict
check and the notifications it triggers can be correlated in the logs.
"""

import json
import logging
import sys
from contextvars import ContextVar
from typing import Any, Dict, Optional

from booking_core.config import Settings, get_settings

request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)

_ROOT_LOGGER = "booking_core"
_NO_REQUEST = "N/A"

_logger: Optional[logging.Logger] = None

# attributes every LogRecord has; anything else was passed through ``extra=``
_RECORD_ATTRS = frozenset(logging.LogRecord("", 0, "", 0, "", None, None).__dict__) | {
    "message",
    "asctime",
    "taskName",
    "extra_fields",
    "request_id",
}


class RequestIdFilter(logging.Filter):
    """Stamps the current request id on each record."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not getattr(record, "request_id", None):
            record.request_id = request_id_var.get() or _NO_REQUEST
        return True


class JSONFormatter(logging.Formatter):
    """One JSON document per record, for log shipping in production."""

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        request_id = getattr(record, "request_id", None) or request_id_var.get()
        if request_id and request_id != _NO_REQUEST:
            payload["request_id"] = request_id
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        payload.update(getattr(record, "extra_fields", None) or {})
        payload.update(
            {key: value for key, value in record.__dict__.items() if key not in _RECORD_ATTRS}
        )
        return json.dumps(payload, default=str)


class StandardFormatter(logging.Formatter):
    """Single-line human-readable format for development."""

    def __init__(self) -> None:
        super().__init__(
            fmt="%(asctime)s %(levelname)-7s %(name)s [%(request_id)s] %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    def format(self, record: logging.LogRecord) -> str:
        if not getattr(record, "request_id", None):
            record.request_id = request_id_var.get() or _NO_REQUEST
        return super().format(record)


def setup_logging(settings: Optional[Settings] = None) -> logging.Logger:
    """Configure the ``booking_core`` logger once per process and return it."""
    global _logger
    if _logger is not None:
        return _logger

    settings = settings or get_settings()
    level = getattr(logging, settings.log_level)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.addFilter(RequestIdFilter())
    handler.setFormatter(JSONFormatter() if settings.is_production else StandardFormatter())

    logger = logging.getLogger(_ROOT_LOGGER)
    logger.setLevel(level)
    logger.handlers.clear()
    logger.addHandler(handler)
    logger.propagate = False

    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(
        logging.INFO if settings.database.echo else logging.WARNING
    )

    _logger = logger
    logger.info(
        f"Logging configured: level={settings.log_level} environment={settings.environment.value} "
        f"format={'json' if settings.is_production else 'text'}"
    )
    return logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Return ``booking_core`` or one of its children."""
    return logging.getLogger(f"{_ROOT_LOGGER}.{name}" if name else _ROOT_LOGGER)


def set_request_id(request_id: str) -> None:
    request_id_var.set(request_id)


def get_request_id() -> Optional[str]:
    return request_id_var.get()


def log_request(method: str, path: str, status_code: int, duration_ms: float, **kwargs: Any) -> None:
    """Access-log line for one HTTP request."""
    fields = {
        "method": method,
        "path": path,
        "status_code": status_code,
        "duration_ms": round(duration_ms, 2),
        **kwargs,
    }
    level = logging.WARNING if status_code >= 500 else logging.INFO
    get_logger("http").log(
        level,
        f"{method} {path} -> {status_code} ({duration_ms:.2f}ms)",
        extra={"extra_fields": fields},
    )


def log_error(error: Exception, context: Optional[Dict[str, Any]] = None, **kwargs: Any) -> None:
    """Log ``error`` with its traceback and request context."""
    fields = {
        "error_type": type(error).__name__,
        "error_message": str(error),
        "context": context or {},
        **kwargs,
    }
    get_logger("error").error(
        f"{type(error).__name__}: {error}",
        exc_info=(type(error), error, error.__traceback__),
        extra={"extra_fields": fields},
    )
