"""Logging helpers for procthread.

The library only creates ``procthread.*`` loggers; it never configures
handlers on import. :func:`configure_logging` is used by the runner so that
diagnostics written by a child process to stderr are structured.
"""

from __future__ import annotations

import logging
import sys
from datetime import datetime, timezone
from logging.config import dictConfig
from typing import Any, TextIO

import msgspec

from .model import ThreadConfig

_RESERVED_LOG_KEYS = {
    "args",
    "asctime",
    "created",
    "exc_info",
    "exc_text",
    "filename",
    "funcName",
    "levelname",
    "levelno",
    "lineno",
    "module",
    "msecs",
    "message",
    "msg",
    "name",
    "pathname",
    "process",
    "processName",
    "relativeCreated",
    "stack_info",
    "taskName",
    "thread",
    "threadName",
}


def _serialise_value(value: Any) -> Any:
    """Serialise values for JSON logs with strict type handling."""
    if isinstance(value, (str, int, float, bool)) or value is None:
        return value
    if isinstance(value, bytes):
        # Child output may be arbitrary binary; never decode it blindly.
        return f"[{' '.join(f'{b:02X}' for b in value)}]"
    return str(value)


class StructuredLogFormatter(logging.Formatter):
    """Emit JSON per log line while trimming the shared prefix."""

    PREFIX = "procthread."

    def format(self, record: logging.LogRecord) -> str:
        logger_name = record.name
        if logger_name.startswith(self.PREFIX):
            logger_name = logger_name[len(self.PREFIX) :]

        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": logger_name,
            "message": record.getMessage(),
        }

        extras = {
            key: _serialise_value(value)
            for key, value in record.__dict__.items()
            if key not in _RESERVED_LOG_KEYS and not key.startswith("_")
        }
        if extras:
            payload["extra"] = extras

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        return msgspec.json.encode(payload).decode("utf-8")


def configure_logging(config: ThreadConfig, *, debug: bool = False, stream: TextIO | None = None) -> None:
    """Configure root logging to write structured lines to ``stream`` (stderr by default)."""

    level_name = "DEBUG" if (debug or config.debug_logging) else "INFO"

    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "structured": {
                    "()": "procthread.config.logging.StructuredLogFormatter",
                }
            },
            "handlers": {
                "procthread": {
                    "class": "logging.StreamHandler",
                    "stream": stream if stream is not None else sys.stderr,
                    "level": level_name,
                    "formatter": "structured",
                }
            },
            "root": {
                "level": level_name,
                "handlers": ["procthread"],
            },
        }
    )

    logging.getLogger("procthread").debug("Logging configured at level %s", level_name)
