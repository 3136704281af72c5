"""
navprefetch/logging_config.py
Structured logging setup.

Logs are JSON formatted so prefetch activity can be aggregated alongside
the host application's own logs.
"""

from __future__ import annotations

import json
import logging
from logging import LogRecord
from pathlib import Path
from typing import Any

PACKAGE_LOGGER = "navprefetch"

CONTEXT_FIELDS = ("session_id", "user_role", "current_route")


class StructuredFormatter(logging.Formatter):
    """Format logs as JSON lines."""

    def format(self, record: LogRecord) -> str:
        """Convert log record to JSON."""
        log_data: dict[str, Any] = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        # Navigation context attached via ``extra=``
        for field_name in CONTEXT_FIELDS:
            if hasattr(record, field_name):
                log_data[field_name] = getattr(record, field_name)

        return json.dumps(log_data, default=str)


def setup_logging(level: str = "INFO", log_file: Path | None = None) -> logging.Logger:
    """
    Initialize structured logging for the navprefetch package.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional file receiving every level; console gets ``level``

    Returns:
        The configured package logger
    """
    package_logger = logging.getLogger(PACKAGE_LOGGER)
    package_logger.setLevel(logging.DEBUG if log_file else level.upper())
    package_logger.handlers.clear()

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level.upper())
    console_handler.setFormatter(StructuredFormatter())
    package_logger.addHandler(console_handler)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(StructuredFormatter())
        package_logger.addHandler(file_handler)

    package_logger.propagate = False
    return package_logger
