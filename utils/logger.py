import logging
import os
from datetime import datetime
from logging.handlers import RotatingFileHandler
from typing import Optional

DEFAULT_LOG_DIR = "logs"
DEFAULT_LOG_LEVEL = logging.INFO
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Decision engine loggers live under this name
TACTICS_LOGGER = "tactics"

logger = logging.getLogger("gridship")


def _resolve_log_file(target: Optional[str]) -> str:
    """Map a file, a directory or nothing to the log file to write.

    Directories get one file per run, named after the start time.
    """
    if target and not os.path.isdir(target):
        return target
    started = datetime.now().strftime("%Y%m%d_%H%M%S")
    return os.path.join(target or DEFAULT_LOG_DIR, f"gridship_{started}.log")


def _is_console_handler(handler: logging.Handler) -> bool:
    # File handlers subclass StreamHandler too.
    return isinstance(handler, logging.StreamHandler) and not isinstance(handler, logging.FileHandler)


def setup_logging(
    log_file: Optional[str] = None,
    level: int = DEFAULT_LOG_LEVEL,
    tactics_level: Optional[int] = None,
    log_to_console: bool = True,
) -> str:
    """
    Install the console and rotating file handlers on the root logger.

    Calling it again with the same file does not add duplicate handlers.

    Args:
        log_file (str): File path, directory, or None for logs/gridship_<time>.log
        level (int): Root log level
        tactics_level (int): Level of the decision engine loggers, defaults to `level`
        log_to_console (bool): Also log to stderr

    Returns:
        str: Path of the log file
    """
    root_logger = logging.getLogger()

    log_file = _resolve_log_file(log_file)
    os.makedirs(os.path.dirname(log_file) or ".", exist_ok=True)

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    if log_to_console and not any(_is_console_handler(h) for h in root_logger.handlers):
        stream_handler = logging.StreamHandler()
        stream_handler.setFormatter(formatter)
        root_logger.addHandler(stream_handler)

    normalized_target = os.path.abspath(log_file)
    has_file = any(
        isinstance(handler, RotatingFileHandler) and os.path.abspath(handler.baseFilename) == normalized_target
        for handler in root_logger.handlers
    )
    if not has_file:
        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=10 * 1024 * 1024,
            backupCount=10,
            encoding="utf-8",
        )
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    if tactics_level is None:
        tactics_level = level
    root_logger.setLevel(level)
    logging.getLogger(TACTICS_LOGGER).setLevel(tactics_level)

    logger.info(
        f"Logging to {log_file} at {logging.getLevelName(level)}, "
        f"tactics at {logging.getLevelName(tactics_level)}"
    )
    return log_file
