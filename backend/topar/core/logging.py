"""
Logging setup shared by every module
"""

import logging
import os
from logging.handlers import RotatingFileHandler

from ..config import Settings

ROOT_LOGGER_NAME = "topar"


def setup_logging(settings: Settings) -> logging.Logger:
    """
    Configure the package logger from settings.

    Console and rotating file handlers are attached according to the
    log_to_console / log_to_file flags. Calling this again replaces the
    handlers instead of stacking them.
    """
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(getattr(logging, settings.log_level.upper(), logging.INFO))
    logger.propagate = False

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(settings.log_format)

    if settings.log_to_console:
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    if settings.log_to_file:
        log_dir = os.path.dirname(settings.log_file_path)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        file_handler = RotatingFileHandler(
            settings.log_file_path,
            maxBytes=settings.log_max_size_mb * 1024 * 1024,
            backupCount=settings.log_backup_count,
        )
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    if not logger.handlers:
        logger.addHandler(logging.NullHandler())

    # SQL echo is only wanted in full verbosity
    sql_level = logging.INFO if settings.log_verbosity == "full" else logging.WARNING
    logging.getLogger("sqlalchemy.engine").setLevel(sql_level)

    return logger


def get_logger(name: str) -> logging.Logger:
    """Return a logger under the package namespace"""
    if name.startswith(ROOT_LOGGER_NAME):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")
