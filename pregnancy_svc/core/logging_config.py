"""
One-line JSON logs with request and user ids attached.

The middleware sets the request id and ``core.auth`` sets the user id once
the caller is identified, so every line written while serving a request can
be traced back to the patient. Example::

    {"timestamp": "2024-01-15T10:30:00.000Z", "level": "INFO",
     "logger": "services.assessment_service", "message": "Assessment stored",
     "request_id": "1a2b3c4d", "user_id": "patient-1",
     "extra": {"record_id": "..."}}
"""

import json
import logging
import os
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Optional

request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)
user_id_var: ContextVar[Optional[str]] = ContextVar("user_id", default=None)

APP_LOGGERS = ("core", "api", "services", "repositories")
SERVER_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access")
TEXT_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"

# Present on every LogRecord; anything else was passed through extra=.
_RECORD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "taskName"}


def set_request_id(request_id: str) -> None:
    request_id_var.set(request_id)


def set_user_id(user_id: Optional[str]) -> None:
    user_id_var.set(user_id)


def clear_request_id() -> None:
    """End of request: drop both ids."""
    request_id_var.set(None)
    user_id_var.set(None)


class JSONFormatter(logging.Formatter):

    def format(self, record: logging.LogRecord) -> str:
        now = datetime.now(timezone.utc)
        entry: Dict[str, Any] = {
            "timestamp": now.strftime("%Y-%m-%dT%H:%M:%S.") + f"{now.microsecond // 1000:03d}Z",
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key, var in (("request_id", request_id_var), ("user_id", user_id_var)):
            value = var.get()
            if value:
                entry[key] = value

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        extra = {
            k: v for k, v in vars(record).items()
            if k not in _RECORD_ATTRS and not k.startswith("_")
        }
        if extra:
            entry["extra"] = extra

        # Arabic messages stay readable.
        return json.dumps(entry, default=str, ensure_ascii=False)


def setup_logging(level: str = "INFO", json_format: bool = True) -> None:
    """
    Route all logging to stdout. Called from the app lifespan.

    ``LOG_LEVEL`` and ``LOG_FORMAT`` (``json`` or ``text``) in the
    environment take precedence over the arguments.
    """
    level = os.environ.get("LOG_LEVEL", level).upper()
    json_format = os.environ.get("LOG_FORMAT", "json" if json_format else "text").lower() == "json"

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        JSONFormatter() if json_format
        else logging.Formatter(TEXT_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
    )

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers = [handler]

    for name in APP_LOGGERS + SERVER_LOGGERS:
        logger = logging.getLogger(name)
        logger.handlers = []
        logger.propagate = True
        if name in APP_LOGGERS:
            logger.setLevel(level)

    # google-generativeai logs every call at INFO
    logging.getLogger("google").setLevel(logging.WARNING)

    logging.getLogger(__name__).info(
        "Logging configured",
        extra={"level": level, "format": "json" if json_format else "text"},
    )
