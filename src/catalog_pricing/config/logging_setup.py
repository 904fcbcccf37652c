"""
Console logging for the catalog services.

Loggers are plain stdlib loggers with a coloredlogs formatter attached once.
"""
import logging
from typing import Optional

import coloredlogs

from .settings import get_settings


LOG_FORMAT = "[%(asctime)s] [%(name)s] [%(levelname)s] %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

LEVEL_STYLES = {
    'debug': {'color': 'white'},
    'info': {'color': 'green'},
    'warning': {'color': 'yellow', 'bright': True},
    'error': {'color': 'red', 'bold': True},
    'critical': {'color': 'black', 'bold': True, 'background': 'red'},
}


def get_logger(name: str, level: Optional[str] = None) -> logging.Logger:
    """
    Get a console logger for a module.

    Args:
        name: Logger name, usually __name__
        level: Log level name; defaults to Settings.log_level
    """
    logger = logging.getLogger(name)

    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(coloredlogs.ColoredFormatter(
            fmt=LOG_FORMAT,
            datefmt=DATE_FORMAT,
            level_styles=LEVEL_STYLES,
        ))
        logger.addHandler(handler)
        logger.setLevel(getattr(logging, level or get_settings().log_level, logging.INFO))
        logger.propagate = False

    return logger
