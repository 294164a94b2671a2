"""Logging setup and structured event helpers."""

from __future__ import annotations

import json
import logging
import sys
import time
from typing import Any, Optional

# Standard LogRecord attributes, excluded from structured output
_STDLIB_FIELDS = {
    "name", "msg", "args", "levelname", "levelno", "pathname", "filename",
    "module", "exc_info", "exc_text", "stack_info", "lineno", "funcName",
    "created", "msecs", "relativeCreated", "thread", "threadName",
    "processName", "process", "message", "taskName",
}

_NOISY_LOGGERS = ("boto3", "botocore", "urllib3", "s3transfer")

TEXT_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


class JsonFormatter(logging.Formatter):
    """One JSON object per line, merging fields passed via ``extra``."""

    def format(self, record: logging.LogRecord) -> str:
        record.message = record.getMessage()

        log_obj: dict[str, Any] = {
            "timestamp": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime(record.created)),
            "level": record.levelname,
            "logger": record.name,
            "message": record.message,
        }

        for key, value in record.__dict__.items():
            if key not in _STDLIB_FIELDS and not key.startswith("_"):
                log_obj[key] = value

        if record.exc_info:
            log_obj["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_obj, default=str)


def setup_logging(level: str = "INFO", verbose: bool = False, json_format: bool = False) -> None:
    """Configure the root logger.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR)
        verbose: Keep AWS SDK loggers at the same level instead of WARNING
        json_format: Emit one JSON object per line instead of text
    """
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    for handler in list(root.handlers):
        root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    if json_format:
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter(TEXT_FORMAT))
    root.addHandler(handler)

    sdk_level = root.level if verbose else logging.WARNING
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(sdk_level)


def log_event(
    logger: logging.Logger,
    event: str,
    level: int = logging.INFO,
    message: Optional[str] = None,
    **fields: Any,
) -> None:
    """Emit a structured event.

    Fields travel in ``extra`` so the JSON formatter writes them as keys; the
    text formatter shows the message only.

    Args:
        logger: Logger to emit on
        event: Event name (e.g., "teardown.task")
        level: Log level
        message: Human-readable message (defaults to the event name)
        **fields: Event fields
    """
    logger.log(level, message or event, extra={"event": event, **fields})
