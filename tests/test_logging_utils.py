"""Tests for logging setup."""

import logging
from pathlib import Path

import pytest

from dagpad.logging_utils import LOGGER_NAME, setup_logging


@pytest.fixture
def clean_logger():
    """Restore the package logger after each test."""
    logger = logging.getLogger(LOGGER_NAME)
    handlers = list(logger.handlers)
    level = logger.level
    propagate = logger.propagate
    yield logger
    for handler in logger.handlers:
        if handler not in handlers:
            handler.close()
    logger.handlers = handlers
    logger.setLevel(level)
    logger.propagate = propagate


class TestSetupLogging:
    """Tests for setup_logging."""

    def test_file_handler(self, clean_logger: logging.Logger, tmp_path: Path) -> None:
        """Test that records from submodules reach the log file."""
        log_file = tmp_path / "dagpad.log"
        logger = setup_logging(log_file=log_file, level=logging.DEBUG)
        assert logger is clean_logger
        logging.getLogger("dagpad.scm.parser").debug("parsed %d", 3)
        for handler in logger.handlers:
            handler.flush()
        assert "parsed 3" in log_file.read_text()
        assert not logger.propagate

    def test_no_duplicate_handlers(self, clean_logger: logging.Logger, tmp_path: Path) -> None:
        """Test that repeated setup does not add handlers twice."""
        log_file = tmp_path / "dagpad.log"
        setup_logging(log_file=log_file, to_stdout=True)
        count = len(clean_logger.handlers)
        setup_logging(log_file=log_file, to_stdout=True)
        assert len(clean_logger.handlers) == count
