"""
=============================================================================
LOGGER - Shared logging setup
=============================================================================

Usage:
    from backend.lib.logger import get_logger
    logger = get_logger(__name__)
    logger.info("Tariff catalog loaded")

Console output always; a file handler is added when LOG_FILE is set.
=============================================================================
"""

import logging
import os

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def get_logger(name: str = "eleca") -> logging.Logger:
    """
    Return a logger with console (and optional file) handlers attached.

    Args:
        name: Logger name, normally the module's __name__

    Environment Variables Used:
    - LOG_LEVEL: DEBUG / INFO / WARNING / ERROR (default: INFO)
    - LOG_FILE: Path of a log file to append to (optional)
    """
    logger = logging.getLogger(name)
    logger.setLevel(os.getenv("LOG_LEVEL", "INFO").upper())

    # Avoid duplicate handlers when a module is imported twice
    if not logger.handlers:
        formatter = logging.Formatter(LOG_FORMAT, DATE_FORMAT)

        console_handler = logging.StreamHandler()
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

        log_file = os.getenv("LOG_FILE")
        if log_file:
            file_handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)

    return logger
