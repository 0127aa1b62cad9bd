"""
Logging setup for scripts.

Library modules only call logging.getLogger(__name__); entry points call
setup_logger() once to attach handlers.
"""
import logging
import os
from typing import Optional

from leadprospector.config import get_settings

_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def setup_logger(name: str = "leadprospector", level: Optional[str] = None) -> logging.Logger:
    """
    Configure the package logger.

    Args:
        name:  Logger name (the package root by default).
        level: Overrides settings.log_level when given.

    Returns:
        Configured logger instance.
    """
    settings = get_settings()

    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, (level or settings.log_level).upper()))

    # Calling twice must not duplicate output
    if logger.handlers:
        return logger

    formatter = logging.Formatter(_FORMAT)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.WARNING)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if settings.log_file:
        os.makedirs(os.path.dirname(settings.log_file) or ".", exist_ok=True)
        file_handler = logging.FileHandler(settings.log_file)
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger
