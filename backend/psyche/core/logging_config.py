"""
Logging configuration for the engine.

The engine only emits records through module loggers; hosts decide where
they go. setup_logging() is a ready-made configuration: human-readable lines
in development and one JSON object per line in production, both tagged with
the assessment session that produced them.

Usage:
    setup_logging()

    with session_logging(selector.session_id):
        selector.process_response(item, value, response_time_ms)
"""
import json
import logging
import logging.config
import sys
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Generator, Optional

from psyche.core.config import settings

# Session whose turn is being processed; None outside a turn
session_id_context: ContextVar[Optional[str]] = ContextVar("session_id", default=None)

# Record attributes copied into JSON entries when passed via extra={...}
STRUCTURED_FIELDS = ("item_id", "trait", "response_count", "flag")

HUMAN_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - [%(session_id)s] %(message)s"
NO_SESSION = "-"


@contextmanager
def session_logging(session_id: Optional[str]) -> Generator[None, None, None]:
    """Tag every record emitted inside the block with session_id."""
    token = session_id_context.set(session_id)
    try:
        yield
    finally:
        session_id_context.reset(token)


class SessionContextFilter(logging.Filter):
    """Copies the current session ID onto each record as record.session_id."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.session_id = session_id_context.get() or NO_SESSION
        return True


class JSONFormatter(logging.Formatter):
    """One JSON object per record, for log aggregation."""

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.fromtimestamp(record.created, tz=timezone.utc)
        entry: Dict[str, Any] = {
            "timestamp": timestamp.isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        session_id = getattr(record, "session_id", None) or session_id_context.get()
        if session_id and session_id != NO_SESSION:
            entry["session_id"] = session_id

        for attr in STRUCTURED_FIELDS:
            if hasattr(record, attr):
                entry[attr] = getattr(record, attr)

        if record.levelno >= logging.ERROR:
            entry["source"] = f"{record.pathname}:{record.lineno}"
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


def build_logging_config(
    level: Optional[str] = None, json_output: Optional[bool] = None
) -> Dict[str, Any]:
    """
    Build the dictConfig mapping used by setup_logging().

    Args:
        level: Log level name. Defaults to settings.LOG_LEVEL.
        json_output: Emit JSON lines. Defaults to True in production.

    Returns:
        A logging.config.dictConfig-compatible dictionary.
    """
    log_level = getattr(logging, (level or settings.LOG_LEVEL).upper(), logging.INFO)
    if json_output is None:
        json_output = settings.ENV == "production"

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {
            "session": {"()": SessionContextFilter},
        },
        "formatters": {
            "default": {"format": HUMAN_FORMAT, "datefmt": "%Y-%m-%d %H:%M:%S"},
            "json": {"()": JSONFormatter},
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": log_level,
                "formatter": "json" if json_output else "default",
                "filters": ["session"],
                "stream": sys.stdout,
            },
        },
        "root": {"level": log_level, "handlers": ["console"]},
        "loggers": {
            "psyche": {
                "level": log_level,
                "handlers": ["console"],
                "propagate": False,
            },
            # Per-answer component detail is only useful when debugging
            "psyche.core.intelligence": {
                "level": logging.DEBUG if settings.DEBUG else logging.WARNING,
                "handlers": ["console"],
                "propagate": False,
            },
        },
    }


def setup_logging(level: Optional[str] = None, json_output: Optional[bool] = None) -> None:
    """Install build_logging_config() as the process logging configuration."""
    logging.config.dictConfig(build_logging_config(level, json_output))
