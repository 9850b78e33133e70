"""
Structured JSON logging for the Medical Records API.

Every line is one JSON object carrying the request id and, once the bearer
token has been resolved, the id of the acting principal. Credentials never
reach the log stream: extra fields with sensitive names are masked.

Log Structure (JSON):
{
    "timestamp": "2024-01-15T10:30:00.123Z",
    "level": "WARNING",
    "logger": "services.emergency_service",
    "message": "Emergency access granted",
    "request_id": "1f3a9c2e",
    "principal_id": "6b0d...",
    "extra": {"patient_id": "PAT123456", "audit_id": "..."}
}

Usage:
    from core.logging_config import setup_logging

    setup_logging()                      # once, from the lifespan
    logger.info("Patient created", extra={"patient_id": "PAT123456"})
"""

import json
import logging
import os
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Optional

# =============================================================================
# REQUEST CONTEXT
# =============================================================================

request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)
principal_id_var: ContextVar[Optional[str]] = ContextVar("principal_id", default=None)


def bind_request(request_id: str) -> None:
    """Start a request context; the principal is bound later by the auth dependency."""
    request_id_var.set(request_id)
    principal_id_var.set(None)


def bind_principal(principal_id: Optional[str]) -> None:
    principal_id_var.set(principal_id)


def clear_request_context() -> None:
    request_id_var.set(None)
    principal_id_var.set(None)


# =============================================================================
# JSON FORMATTER
# =============================================================================

# LogRecord attributes that are not user-supplied extras.
_RECORD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime", "taskName"}

SENSITIVE_KEYS = frozenset({
    "password",
    "current_password",
    "new_password",
    "password_hash",
    "access_token",
    "token",
    "authorization",
    "secret",
})

MASK = "***"


def redact(value: Any) -> Any:
    """Mask sensitive keys in (possibly nested) dicts."""
    if isinstance(value, dict):
        return {
            k: MASK if str(k).lower() in SENSITIVE_KEYS else redact(v)
            for k, v in value.items()
        }
    if isinstance(value, (list, tuple)):
        return [redact(v) for v in value]
    return value


class JSONFormatter(logging.Formatter):
    """One JSON object per line, UTC millisecond timestamps, redacted extras."""

    def format(self, record: logging.LogRecord) -> str:
        created = datetime.fromtimestamp(record.created, tz=timezone.utc)
        entry: Dict[str, Any] = {
            "timestamp": created.strftime("%Y-%m-%dT%H:%M:%S.") + f"{created.microsecond // 1000:03d}Z",
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        request_id = request_id_var.get()
        if request_id:
            entry["request_id"] = request_id
        principal_id = principal_id_var.get()
        if principal_id:
            entry["principal_id"] = principal_id

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        extra = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _RECORD_ATTRS and not key.startswith("_")
        }
        if extra:
            entry["extra"] = redact(extra)

        return json.dumps(entry, default=str, ensure_ascii=False)


# =============================================================================
# SETUP
# =============================================================================

APP_LOGGERS = ("core", "api", "services", "repositories")


def setup_logging(
    level: str = "INFO",
    json_format: bool = True,
    include_uvicorn: bool = True
) -> None:
    """
    Route all application logging through a single stdout handler.

    Args:
        level: DEBUG, INFO, WARNING, ERROR or CRITICAL.
        json_format: JSON lines when True, a plain text layout otherwise.
        include_uvicorn: Send uvicorn's loggers through the same handler.

    Environment Variables:
        LOG_LEVEL: Overrides ``level``.
        LOG_FORMAT: "json" or "text"; overrides ``json_format``.
    """
    level = os.environ.get("LOG_LEVEL", level).upper()
    json_format = os.environ.get("LOG_FORMAT", "json" if json_format else "text").lower() == "json"

    handler = logging.StreamHandler(sys.stdout)
    if json_format:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(
            "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S"
        ))

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers = [handler]

    names = list(APP_LOGGERS)
    if include_uvicorn:
        names += ["uvicorn", "uvicorn.error", "uvicorn.access"]
    for name in names:
        named = logging.getLogger(name)
        named.handlers = []
        named.propagate = True
        if name in APP_LOGGERS:
            named.setLevel(level)

    logging.getLogger(__name__).info(
        "Logging configured",
        extra={"level": level, "format": "json" if json_format else "text"}
    )
