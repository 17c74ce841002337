"""Tests for the logging setup module."""

import io
import logging

from docstruct.utils.logger import get_logger, log_timing, setup_logging


class TestSetupLogging:
    """Tests for the setup_logging function."""

    def test_setup_creates_handler(self) -> None:
        root = logging.getLogger()
        root.handlers.clear()

        setup_logging("DEBUG")
        assert len(root.handlers) >= 1
        assert root.level == logging.DEBUG

        root.handlers.clear()

    def test_setup_idempotent(self) -> None:
        root = logging.getLogger()
        root.handlers.clear()

        setup_logging("INFO")
        count = len(root.handlers)
        setup_logging("INFO")
        assert len(root.handlers) == count

        root.handlers.clear()

    def test_setup_invalid_level_defaults_to_info(self) -> None:
        root = logging.getLogger()
        root.handlers.clear()

        setup_logging("NONEXISTENT")
        assert root.level == logging.INFO

        root.handlers.clear()

    def test_custom_stream(self) -> None:
        root = logging.getLogger()
        root.handlers.clear()
        stream = io.StringIO()

        setup_logging("INFO", stream=stream)
        get_logger("docstruct.test").info("hello %s", "world")
        assert "docstruct.test - INFO - hello world" in stream.getvalue()

        root.handlers.clear()


class TestGetLogger:
    """Tests for the get_logger function."""

    def test_returns_named_logger(self) -> None:
        logger = get_logger("test.module")
        assert logger.name == "test.module"
        assert isinstance(logger, logging.Logger)

    def test_same_name_returns_same_logger(self) -> None:
        assert get_logger("test.same") is get_logger("test.same")


class TestLogTiming:
    """Tests for the log_timing context manager."""

    def test_logs_elapsed_time(self, caplog) -> None:
        logger = get_logger("test.timing")
        with caplog.at_level(logging.DEBUG, logger="test.timing"):
            with log_timing(logger, "Stage"):
                pass
        assert any(
            r.getMessage().startswith("Stage took ") for r in caplog.records
        )
