"""
Logging for the intent engine.

Every module logs through a child of the "IntentEngine" logger. As a library
the package only attaches a NullHandler; an application (or the replay CLI)
calls setup_logging() to get console output and, optionally, a rotating log
file under ./logs or the directory named by $INTENT_ENGINE_LOG_DIR.
"""

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional, Union

from .config import LOG_BACKUP_COUNT, LOG_DIR_ENV_VAR, LOG_DIRNAME, LOG_FILENAME, LOG_MAX_BYTES

BASE_LOGGER_NAME = "IntentEngine"

CONSOLE_FORMAT = "%(asctime)s.%(msecs)03d | %(levelname)-8s | %(name)s | %(message)s"
FILE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s.%(funcName)s:%(lineno)d | %(message)s"

logging.getLogger(BASE_LOGGER_NAME).addHandler(logging.NullHandler())


def resolve_log_directory(log_dir: Union[str, Path, None] = None) -> Path:
    """
    Pick the directory for log files and make sure it exists.

    An explicit log_dir wins, then $INTENT_ENGINE_LOG_DIR, then ./logs.
    """
    if log_dir is None:
        log_dir = os.environ.get(LOG_DIR_ENV_VAR) or LOG_DIRNAME

    path = Path(log_dir).expanduser()
    path.mkdir(parents=True, exist_ok=True)
    return path


def setup_logging(
    debug: bool = False,
    log_to_file: bool = True,
    log_dir: Union[str, Path, None] = None,
    log_filename: Optional[str] = None
) -> logging.Logger:
    """
    Install console and file handlers on the engine logger.

    Calling it again replaces the handlers from the previous call, so the
    CLI can be invoked repeatedly in one process.

    Args:
        debug: Log per-frame DEBUG detail when True.
        log_to_file: Also write a rotating log file.
        log_dir: Directory for the log file (see resolve_log_directory).
        log_filename: Override the default log filename.

    Returns:
        The configured "IntentEngine" logger.
    """
    logger = logging.getLogger(BASE_LOGGER_NAME)
    level = logging.DEBUG if debug else logging.INFO
    logger.setLevel(level)

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    # stdout is reserved for the CLI's summary output
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT, datefmt="%H:%M:%S"))
    logger.addHandler(console_handler)

    if log_to_file:
        log_path = resolve_log_directory(log_dir) / (log_filename or LOG_FILENAME)
        file_handler = RotatingFileHandler(
            log_path,
            maxBytes=LOG_MAX_BYTES,
            backupCount=LOG_BACKUP_COUNT,
            encoding="utf-8"
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
        logger.addHandler(file_handler)
        logger.debug(f"Logging to file: {log_path}")

    return logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Return the engine logger, or its child `IntentEngine.<name>`."""
    base_logger = logging.getLogger(BASE_LOGGER_NAME)
    if name:
        return base_logger.getChild(name)
    return base_logger
