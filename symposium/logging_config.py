"""
Logging for the symposium service.

Every record carries two correlation fields:
- request_id: set by RequestIdMiddleware for the whole request
- actor_id: the authenticated caller, bound by the auth dependency

Workflow code passes ids and statuses through ``extra=`` as they are (UUIDs,
status enums); the JSON formatter renders them, so call sites never stringify.

Usage:
    from symposium.logging_config import get_logger
    logger = get_logger(__name__)
    logger.info("Submission created", extra={"submission_id": submission.id})
"""

import json
import logging
import sys
import uuid
from contextvars import ContextVar
from datetime import date, datetime
from enum import Enum
from typing import Any, Optional

request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)
actor_id_var: ContextVar[Optional[str]] = ContextVar("actor_id", default=None)

_CORRELATION_FIELDS = ("request_id", "actor_id")

# LogRecord's own attributes; everything else on a record came in through extra=
_RECORD_ATTRIBUTES = frozenset(
    logging.LogRecord("", 0, "", 0, "", (), None).__dict__
) | {"message", "asctime", *_CORRELATION_FIELDS}

# Chatty third-party loggers: HTTP access lines, SQL echo, S3 transport
_QUIET_LOGGERS = ("uvicorn.access", "sqlalchemy.engine", "aiosqlite", "botocore", "boto3", "s3transfer")


def get_request_id() -> Optional[str]:
    return request_id_var.get()


def bind_actor(user_id: Optional[uuid.UUID]) -> None:
    """Attach the authenticated user to every record logged for the rest of the request."""
    actor_id_var.set(str(user_id) if user_id else None)


def _jsonable(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, (list, tuple, set, frozenset)):
        return [_jsonable(v) for v in value]
    if isinstance(value, dict):
        return {str(k): _jsonable(v) for k, v in value.items()}
    return value


class CorrelationFilter(logging.Filter):
    """Stamp request_id and actor_id ('-' when unset); an explicit extra= value wins."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not getattr(record, "request_id", None):
            record.request_id = request_id_var.get() or "-"  # type: ignore[attr-defined]
        if not getattr(record, "actor_id", None):
            record.actor_id = actor_id_var.get() or "-"  # type: ignore[attr-defined]
        return True


class JsonFormatter(logging.Formatter):
    """One JSON object per line for log aggregators."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created).astimezone().isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for name in _CORRELATION_FIELDS:
            value = getattr(record, name, None)
            if value and value != "-":
                entry[name] = value

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key in _RECORD_ATTRIBUTES or value is None:
                continue
            value = _jsonable(value)
            try:
                json.dumps(value)
            except (TypeError, ValueError):
                value = str(value)
            entry[key] = value

        return json.dumps(entry)


def configure_logging(
    *,
    log_level: str = "INFO",
    environment: str = "development",
    debug: bool = False,
) -> None:
    """
    Configure application-wide logging.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        environment: 'production' logs JSON lines, anything else a readable line
        debug: If True, use DEBUG level regardless of log_level
    """
    level = logging.DEBUG if debug else getattr(logging, log_level.upper(), logging.INFO)

    root = logging.getLogger()
    root.setLevel(level)
    for h in root.handlers[:]:
        root.removeHandler(h)

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.addFilter(CorrelationFilter())
    if environment == "production":
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(
            logging.Formatter(
                "%(asctime)s %(levelname)-5s [%(name)s] req=%(request_id)s actor=%(actor_id)s %(message)s",
                datefmt="%H:%M:%S",
            )
        )
    root.addHandler(handler)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
