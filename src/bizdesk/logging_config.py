# BizDesk - Finance, Warehouse & Inventory reporting for small businesses
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Logging setup for BizDesk.

Modules log through ``logging.getLogger(__name__)`` so every record lives
under the ``bizdesk`` logger hierarchy. Applications embedding the package
call ``configure_logging()`` once (typically with the values of the
``[logging]`` configuration section); library code never configures
handlers itself.
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from .config import LoggingConfig

LOGGER_NAME = "bizdesk"
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def configure_logging(
    level: str = "INFO",
    log_file: Optional[Path] = None,
) -> logging.Logger:
    """
    Configure the ``bizdesk`` logger.

    A console handler is always installed; a rotating file handler
    (10 MB per file, 30 backups) is added when ``log_file`` is given.
    Calling this function again replaces the handlers instead of stacking
    new ones.

    Raises
    ------
    ValueError
        If ``level`` is not a known logging level name.
    """
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        raise ValueError(f"Unknown logging level: {level!r}")

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(numeric_level)

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=10 * 1024 * 1024,
            backupCount=30,
            encoding="utf-8",
        )
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger


def configure_logging_from_config(config: LoggingConfig) -> logging.Logger:
    """Apply the ``[logging]`` section of the application configuration."""
    return configure_logging(level=config.level, log_file=config.file)
