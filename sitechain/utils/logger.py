"""Logging configuration for the scheduling engine."""
import logging
from typing import Optional

from sitechain.config import settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: Optional[str] = None, name: str = "sitechain") -> logging.Logger:
    """
    Configure the package logger with a console handler.

    Args:
        level: Log level name; defaults to the SITECHAIN_LOG_LEVEL setting
        name: Logger name (the package logger by default)

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)
    logger.setLevel((level or settings.LOG_LEVEL).upper())

    # Calling twice must not duplicate output
    if not any(getattr(h, "_sitechain", False) for h in logger.handlers):
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        console_handler._sitechain = True
        logger.addHandler(console_handler)

    return logger
