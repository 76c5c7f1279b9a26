"""Project-specific logging helpers."""

import logging
from typing import Union

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%H:%M:%S"


def create_logger(
    name: str, level: Union[int, str] = logging.INFO, propagate: bool = False
) -> logging.Logger:
    """
    Create a logger with a single concise stream handler.

    Calling this twice for the same name does not add a second handler.

    Args:
        name: Logger name (non-empty)
        level: Logging level, as an int or a name such as "DEBUG"
        propagate: Whether records also reach the parent loggers

    Returns:
        The configured logger
    """
    if not name:
        raise ValueError("Logger name must be non-empty.")

    if isinstance(level, str):
        level = level.upper()

    logger = logging.getLogger(name)
    logger.setLevel(level)
    logger.propagate = propagate
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT))
        logger.addHandler(handler)
    return logger
