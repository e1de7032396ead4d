"""
Configure logging for the relay.

This module provides a consistent logging configuration across the entire
application, ensuring log messages are formatted correctly and directed
to the appropriate outputs (console, file, etc.).
"""

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from relay.config.constants import LOGGER_NAME

# Log levels
DEFAULT_LOG_LEVEL = "INFO"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Log file configuration
LOG_DIR = Path("logs")
LOG_FILE = LOG_DIR / "telnyx_hume_relay.log"
MAX_LOG_SIZE = 10 * 1024 * 1024  # 10 MB
BACKUP_COUNT = 5


def configure_logging(level: Optional[str] = None):
    """
    Configure the relay logger with console and file handlers.

    Args:
        level: Optional level name overriding the LOG_LEVEL environment variable

    Returns:
        logging.Logger: The configured logger instance
    """
    logger = logging.getLogger(LOGGER_NAME)
    # Resolved per call, .env is loaded after this module is imported
    level_name = (level or os.getenv("LOG_LEVEL") or DEFAULT_LOG_LEVEL).upper()
    logger.setLevel(getattr(logging, level_name, logging.INFO))

    # Remove existing handlers if any
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    formatter = logging.Formatter(LOG_FORMAT)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    try:
        LOG_DIR.mkdir(exist_ok=True)
        file_handler = RotatingFileHandler(
            LOG_FILE,
            maxBytes=MAX_LOG_SIZE,
            backupCount=BACKUP_COUNT
        )
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)
    except OSError as e:
        logger.warning(f"Could not set up file logging: {e}")

    # Prevent log propagation to root logger
    logger.propagate = False

    logger.info("Logging configured")
    return logger
