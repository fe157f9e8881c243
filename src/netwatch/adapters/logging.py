"""Structured JSON logging for netwatch.

Modules log through ``logging.getLogger(__name__)`` and attach fields with
``extra={...}``. JsonLogFormatter renders each record, including those
fields, as one JSON object per line.
"""

import json
import logging
import sys
import traceback
from datetime import datetime, timezone
from typing import Any, TextIO

ROOT_LOGGER = "netwatch"

# Standard LogRecord attributes that should not be treated as extra fields
_STANDARD_LOGRECORD_ATTRS = frozenset(
    {
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
        "message",
        "module",
        "msecs",
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
)


class JsonLogFormatter(logging.Formatter):
    """Formatter emitting one JSON object per record.

    Example:
        ```python
        from netwatch.adapters.logging import configure_logging

        logger = configure_logging("DEBUG")
        logger.info("Live source failed", extra={"interface": "eth0"})
        ```
    """

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc)
            .isoformat(timespec="milliseconds")
            .replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "funcName": record.funcName or "",
            "lineno": record.lineno,
        }

        # Add any extra attributes passed via logging call
        for key, value in record.__dict__.items():
            if key not in _STANDARD_LOGRECORD_ATTRS and key not in payload:
                payload[key] = value

        if record.exc_info:
            exc_type, exc_value, exc_tb = record.exc_info
            if exc_type is not None:
                payload["exc_type"] = exc_type.__name__
            if exc_value is not None:
                payload["exc_message"] = str(exc_value)
            if exc_tb is not None:
                payload["exc_traceback"] = "".join(
                    traceback.format_exception(exc_type, exc_value, exc_tb)
                )

        return json.dumps(payload, default=str)


def configure_logging(
    level: int | str = "INFO",
    stream: TextIO | None = None,
    logger_name: str = ROOT_LOGGER,
) -> logging.Logger:
    """Install a JSON handler on the netwatch logger.

    Calling again updates the level instead of adding a second handler.

    Args:
        level: Level name or number.
        stream: Output stream (defaults to sys.stderr).
        logger_name: Logger to configure.

    Returns:
        The configured logger.
    """
    logger = logging.getLogger(logger_name)
    logger.setLevel(level if isinstance(level, int) else level.upper())

    for handler in logger.handlers:
        if isinstance(handler.formatter, JsonLogFormatter):
            if stream is not None and isinstance(handler, logging.StreamHandler):
                handler.setStream(stream)
            return logger

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(JsonLogFormatter())
    logger.addHandler(handler)
    logger.propagate = False
    return logger
