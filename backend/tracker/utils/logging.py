# backend/tracker/utils/logging.py
"""
Logging setup for the Portfolio Tracker.

One stdout handler on the root logger, configured once at startup:
    - level from LOG_LEVEL (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    - LOG_FORMAT=text for humans, LOG_FORMAT=json for log aggregation
    - every record carries the request correlation id and user id
    - chatty HTTP client loggers are held at WARNING

What gets logged where:
    DEBUG   - per-symbol quote parsing, cache lookups
    INFO    - transactions recorded, refresh results, portfolio CRUD
    WARNING - partial failures (missing quotes, FX fallback, failed upserts)
    ERROR   - fatal refresh failures, balance updates that did not apply

Usage:
    import logging
    logger = logging.getLogger(__name__)
    logger.info("Refresh complete", extra={"prices_updated": 4})
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

from tracker.config import settings
from tracker.utils.context import get_correlation_id, get_user_id

TEXT_FORMAT = "%(asctime)s | %(levelname)-8s | %(correlation_id)s | user=%(user_id)s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

MISSING_CORRELATION_ID = "-"
MISSING_USER_ID = "-"

QUIET_LOGGERS = (
    "httpx",
    "httpcore",
    "urllib3",
    "asyncio",
)

# Attributes every LogRecord has; anything else came in through extra=
_RESERVED_RECORD_ATTRS = frozenset({
    "name", "msg", "args", "created", "filename", "funcName",
    "levelname", "levelno", "lineno", "module", "msecs",
    "pathname", "process", "processName", "relativeCreated",
    "stack_info", "exc_info", "exc_text", "thread", "threadName",
    "taskName", "message", "correlation_id", "user_id",
})

_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "WARN": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


class CorrelationIdFilter(logging.Filter):
    """Stamp correlation_id and user_id from the request context onto each record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = get_correlation_id() or MISSING_CORRELATION_ID
        user_id = get_user_id()
        record.user_id = user_id if user_id is not None else MISSING_USER_ID
        return True


class JsonFormatter(logging.Formatter):
    """
    One JSON object per line.

    {"timestamp": "...", "level": "INFO", "logger": "tracker.services.refresh_service",
     "correlation_id": "...", "user_id": 1, "message": "...", "extra": {...}}
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "correlation_id": getattr(record, "correlation_id", MISSING_CORRELATION_ID),
            "user_id": getattr(record, "user_id", MISSING_USER_ID),
            "message": record.getMessage(),
        }

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        extra = {
            key: value for key, value in record.__dict__.items()
            if key not in _RESERVED_RECORD_ATTRS
        }
        if extra:
            # Decimal and datetime values are common in extra=; default=str keeps them readable
            entry["extra"] = extra

        return json.dumps(entry, default=str)


def parse_log_level(level: str) -> int:
    """
    Map a level name to its logging constant (case-insensitive).

    Raises:
        ValueError: For an unknown level name
    """
    normalized = level.strip().upper()
    try:
        return _LEVELS[normalized]
    except KeyError:
        raise ValueError(
            f"Invalid log level: '{level}'. Valid levels are: {', '.join(_LEVELS)}"
        ) from None


def setup_logging(level: str | None = None, log_format: str | None = None) -> None:
    """
    Install the tracker's handler on the root logger.

    Safe to call more than once; previous root handlers are replaced.

    Args:
        level: Overrides settings.log_level
        log_format: "text" or "json"; overrides settings.log_format
    """
    level_name = level or settings.log_level
    format_name = (log_format or settings.log_format).lower()

    if format_name == "json":
        formatter: logging.Formatter = JsonFormatter()
    else:
        formatter = logging.Formatter(fmt=TEXT_FORMAT, datefmt=DATE_FORMAT)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)
    handler.addFilter(CorrelationIdFilter())

    root = logging.getLogger()
    root.setLevel(parse_log_level(level_name))
    root.handlers.clear()
    root.addHandler(handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger(__name__).info(
        f"Logging configured: level={level_name}, format={format_name}"
    )
