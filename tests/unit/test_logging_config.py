"""
Unit tests for structured logging setup.
"""

from __future__ import annotations

import json
import logging
import sys
from collections.abc import Iterator
from pathlib import Path

import pytest

from navprefetch.logging_config import (
    PACKAGE_LOGGER,
    StructuredFormatter,
    setup_logging,
)


@pytest.fixture(autouse=True)
def restore_package_logger() -> Iterator[None]:
    """Undo setup_logging so later tests still reach caplog."""
    package_logger = logging.getLogger(PACKAGE_LOGGER)
    level = package_logger.level
    yield
    for handler in package_logger.handlers:
        handler.close()
    package_logger.handlers.clear()
    package_logger.setLevel(level)
    package_logger.propagate = True


class TestStructuredFormatter:
    def test_formats_record_as_json(self) -> None:
        record = logging.LogRecord(
            name="navprefetch.core",
            level=logging.WARNING,
            pathname=__file__,
            lineno=10,
            msg="cache at %s%%",
            args=(95,),
            exc_info=None,
        )
        record.current_route = "/dashboard"

        data = json.loads(StructuredFormatter().format(record))

        assert data["level"] == "WARNING"
        assert data["logger"] == "navprefetch.core"
        assert data["message"] == "cache at 95%"
        assert data["current_route"] == "/dashboard"
        assert "session_id" not in data

    def test_includes_exception(self) -> None:
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            record = logging.LogRecord(
                "navprefetch", logging.ERROR, __file__, 1, "failed", None, sys.exc_info()
            )

        data = json.loads(StructuredFormatter().format(record))

        assert "RuntimeError: boom" in data["exception"]


class TestSetupLogging:
    def test_console_handler_installed(self) -> None:
        package_logger = setup_logging("WARNING")

        assert package_logger.name == PACKAGE_LOGGER
        assert package_logger.level == logging.WARNING
        assert len(package_logger.handlers) == 1
        assert isinstance(package_logger.handlers[0].formatter, StructuredFormatter)
        assert package_logger.propagate is False

    def test_file_handler_writes_json_lines(self, tmp_path: Path) -> None:
        log_file = tmp_path / "logs" / "navprefetch.log"
        package_logger = setup_logging("ERROR", log_file=log_file)

        logging.getLogger("navprefetch.prefetch").debug("hover scheduled")
        for handler in package_logger.handlers:
            handler.flush()

        lines = log_file.read_text(encoding="utf-8").splitlines()
        assert json.loads(lines[-1])["message"] == "hover scheduled"

    def test_repeated_setup_does_not_duplicate_handlers(self) -> None:
        setup_logging()
        package_logger = setup_logging()

        assert len(package_logger.handlers) == 1
