"""Tests for the cmdpipe.logging module."""

from __future__ import annotations

import io
import logging

import pytest
from rich.console import Console
from rich.logging import RichHandler

from cmdpipe.logging import get_logger, init_logging


class TestGetLogger:
    """Tests for get_logger."""

    def test_prefixes_namespace(self) -> None:
        """Names are placed under cmdpipe."""
        assert get_logger("pipeline").name == "cmdpipe.pipeline"

    def test_keeps_existing_prefix(self) -> None:
        """Already namespaced names are unchanged."""
        assert get_logger("cmdpipe.cli.app").name == "cmdpipe.cli.app"

    def test_root(self) -> None:
        """No name returns the package logger."""
        assert get_logger().name == "cmdpipe"
        assert get_logger("cmdpipe").name == "cmdpipe"


class TestInitLogging:
    """Tests for init_logging."""

    def test_installs_rich_handler(self) -> None:
        """A single Rich handler is attached at the requested level."""
        logger = init_logging("info")
        rich_handlers = [h for h in logger.handlers if isinstance(h, RichHandler)]
        assert len(rich_handlers) == 1
        assert logger.level == logging.INFO
        assert logger.propagate is False

    def test_repeated_calls_replace_handler(self) -> None:
        """Calling twice does not duplicate output."""
        init_logging("INFO")
        logger = init_logging("DEBUG")
        assert len([h for h in logger.handlers if isinstance(h, RichHandler)]) == 1
        assert logger.level == logging.DEBUG

    def test_writes_to_console(self) -> None:
        """Records from child loggers reach the console."""
        buffer = io.StringIO()
        init_logging("INFO", console=Console(file=buffer, width=200))
        logging.getLogger("cmdpipe.pipeline.runner").info("Step '%s' started", "build")
        assert "Step 'build' started" in buffer.getvalue()

    def test_numeric_level(self) -> None:
        """Numeric levels are accepted."""
        assert init_logging(logging.ERROR).level == logging.ERROR

    def test_invalid_level(self) -> None:
        """Unknown level names are rejected."""
        with pytest.raises(ValueError, match="Invalid log level"):
            init_logging("LOUD")
