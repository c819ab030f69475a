"""Tests for logging setup"""

import logging
import os
from logging.handlers import RotatingFileHandler

import pytest

from utils.logger import TACTICS_LOGGER, setup_logging


@pytest.fixture
def clean_root_logger():
    """Restore root logger handlers and levels after each test"""
    root = logging.getLogger()
    tactics = logging.getLogger(TACTICS_LOGGER)
    saved_handlers = list(root.handlers)
    saved_level = root.level
    saved_tactics_level = tactics.level
    yield root
    for handler in list(root.handlers):
        if handler not in saved_handlers:
            root.removeHandler(handler)
            handler.close()
    root.setLevel(saved_level)
    tactics.setLevel(saved_tactics_level)


def _file_handlers(root):
    return [h for h in root.handlers if isinstance(h, RotatingFileHandler)]


def test_log_file_is_created(tmp_path, clean_root_logger):
    log_file = tmp_path / "bot.log"
    path = setup_logging(str(log_file), level=logging.INFO, log_to_console=False)

    logging.getLogger("client.test").info("hello")
    for handler in _file_handlers(clean_root_logger):
        handler.flush()

    assert path == str(log_file)
    assert "[INFO] client.test: hello" in log_file.read_text()


def test_directory_gets_timestamped_file(tmp_path, clean_root_logger):
    path = setup_logging(str(tmp_path), log_to_console=False)
    assert os.path.dirname(path) == str(tmp_path)
    assert os.path.basename(path).startswith("gridship_")
    assert path.endswith(".log")


def test_missing_parent_directory_is_created(tmp_path, clean_root_logger):
    log_file = tmp_path / "nested" / "bot.log"
    assert setup_logging(str(log_file), log_to_console=False) == str(log_file)
    assert log_file.parent.is_dir()


def test_setup_reports_levels(tmp_path, clean_root_logger):
    log_file = tmp_path / "bot.log"
    setup_logging(str(log_file), level=logging.INFO, tactics_level=logging.DEBUG, log_to_console=False)
    for handler in _file_handlers(clean_root_logger):
        handler.flush()

    assert f"Logging to {log_file} at INFO, tactics at DEBUG" in log_file.read_text()


def test_repeated_setup_does_not_duplicate_handlers(tmp_path, clean_root_logger):
    log_file = str(tmp_path / "bot.log")
    setup_logging(log_file, log_to_console=False)
    setup_logging(log_file, log_to_console=False)

    assert len([h for h in _file_handlers(clean_root_logger) if h.baseFilename.endswith("bot.log")]) == 1


def test_tactics_level_is_separate(tmp_path, clean_root_logger):
    setup_logging(str(tmp_path / "bot.log"), level=logging.INFO, tactics_level=logging.DEBUG,
                  log_to_console=False)

    assert clean_root_logger.level == logging.INFO
    assert logging.getLogger(TACTICS_LOGGER).level == logging.DEBUG
    assert logging.getLogger("tactics.decision_engine").isEnabledFor(logging.DEBUG)
    assert not logging.getLogger("client.state_machine").isEnabledFor(logging.DEBUG)
