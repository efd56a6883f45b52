"""
Tests for websift.utils.logging.
"""

import json
import logging
from pathlib import Path

import pytest
import structlog

from websift.utils.logging import (
    LogContext,
    _add_log_level,
    _add_timestamp,
    configure_logging,
    get_logger,
)

pytestmark = pytest.mark.unit


class TestProcessors:
    """Tests for the custom structlog processors."""

    def test_add_timestamp_processor(self) -> None:
        """_add_timestamp adds a Z-suffixed UTC timestamp."""
        result = _add_timestamp(None, "info", {"event": "test"})
        assert result["timestamp"].endswith("Z")

    def test_add_log_level_processor(self) -> None:
        """_add_log_level upper-cases the method name."""
        result = _add_log_level(None, "warning", {"event": "test"})
        assert result["level"] == "WARNING"


class TestConfigureLogging:
    """Tests for configure_logging()."""

    def test_json_lines_written_to_file(self, tmp_path: Path) -> None:
        """
        Given: JSON logging configured with a log file
        When: An event with fields is logged
        Then: The file holds one JSON object carrying the event and its fields
        """
        log_file = tmp_path / "websift.log"
        configure_logging(log_level="INFO", log_file=log_file, json_format=True)
        try:
            get_logger("websift.test").info("Search completed", engine="bing", result_count=3)
            for handler in logging.getLogger().handlers:
                handler.flush()

            line = log_file.read_text(encoding="utf-8").strip().splitlines()[-1]
            payload = json.loads(line)
            assert payload["event"] == "Search completed"
            assert payload["engine"] == "bing"
            assert payload["result_count"] == 3
            assert payload["level"] == "INFO"
        finally:
            for handler in logging.getLogger().handlers:
                handler.close()
            logging.getLogger().handlers.clear()
            structlog.reset_defaults()

    def test_level_filters_debug(self, tmp_path: Path) -> None:
        """Events below the configured level are dropped."""
        log_file = tmp_path / "websift.log"
        configure_logging(log_level="WARNING", log_file=log_file)
        try:
            get_logger("websift.test").debug("Noise")
            for handler in logging.getLogger().handlers:
                handler.flush()

            assert log_file.read_text(encoding="utf-8") == ""
        finally:
            for handler in logging.getLogger().handlers:
                handler.close()
            logging.getLogger().handlers.clear()
            structlog.reset_defaults()


class TestContextBinding:
    """Tests for bound context helpers."""

    def test_log_context_binds_and_unbinds(self) -> None:
        """
        Given: A LogContext with two keys
        When: The block is entered and exited
        Then: The keys are bound inside and gone afterwards
        """
        structlog.contextvars.clear_contextvars()

        with LogContext(query="rust async", engine="brave"):
            ctx = structlog.contextvars.get_contextvars()
            assert ctx.get("query") == "rust async"
            assert ctx.get("engine") == "brave"

        ctx = structlog.contextvars.get_contextvars()
        assert "query" not in ctx
        assert "engine" not in ctx

    def test_log_context_keeps_outer_keys(self) -> None:
        """
        Given: A key bound outside a LogContext
        When: The LogContext block exits
        Then: Only the block's own keys are unbound
        """
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id="r1")

        with LogContext(query="cats"):
            assert structlog.contextvars.get_contextvars() == {"request_id": "r1", "query": "cats"}

        assert structlog.contextvars.get_contextvars() == {"request_id": "r1"}

        structlog.contextvars.clear_contextvars()
