"""
Logging setup for the engine.

All engine modules log through named children of the ``blockykids``
logger (``blockykids.sandbox``, ``blockykids.replay``, ...). Call
configure_logging() once at process start; library use without it
stays silent apart from Python's last-resort handler.

Usage:
    from blockykids.logging_utils import configure_logging, get_logger

    configure_logging(level="DEBUG", json_lines=True)
    logger = get_logger("sandbox")
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

from . import __version__

ROOT_LOGGER = "blockykids"


class JSONFormatter(logging.Formatter):
    """Formats log records as JSON lines."""

    def __init__(self, service_name: str = "blockykids"):
        super().__init__()
        self.service_name = service_name

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(
                record.created, tz=timezone.utc
            ).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "service.name": self.service_name,
            "service.version": __version__,
        }

        # Structured fields passed via extra={"structured": {...}}
        if hasattr(record, "structured"):
            entry.update(record.structured)

        if record.exc_info and record.exc_info[0] is not None:
            entry["exception.type"] = record.exc_info[0].__name__
            entry["exception.message"] = str(record.exc_info[1])

        return json.dumps(entry, default=str)


def configure_logging(
    level: str = "INFO",
    json_lines: bool = False,
    stream: Any = None,
) -> logging.Logger:
    """
    Configure the blockykids logger.

    Args:
        level: DEBUG, INFO, WARNING, ERROR
        json_lines: Emit JSON lines instead of plain text
        stream: Output stream (default: sys.stderr)

    Returns:
        The configured root logger for blockykids
    """
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    # Avoid duplicate handlers on reconfigure
    logger.handlers.clear()

    handler = logging.StreamHandler(stream or sys.stderr)
    if json_lines:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)-7s %(name)s: %(message)s")
        )
    logger.addHandler(handler)
    logger.propagate = False
    return logger


def get_logger(name: str = "") -> logging.Logger:
    """Get a child logger under the blockykids namespace."""
    if name:
        return logging.getLogger(f"{ROOT_LOGGER}.{name}")
    return logging.getLogger(ROOT_LOGGER)
