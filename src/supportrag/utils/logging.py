"""
Logging utilities.

Modules log through ``logging.getLogger(__name__)``; everything lands under
the ``supportrag`` logger, which is the only one configured here.
"""

import logging
import sys

ROOT_LOGGER = "supportrag"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def _resolve_level(level: int | str) -> int:
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(level.upper())
    if not isinstance(resolved, int):
        raise ValueError(f"Unknown log level: {level}")
    return resolved


def get_logger(name: str = ROOT_LOGGER) -> logging.Logger:
    """
    Get a logger, attaching a stderr handler to the package logger once.

    Args:
        name: Logger name (usually __name__)

    Returns:
        Logger whose records reach the package handler
    """
    root = logging.getLogger(ROOT_LOGGER)

    if not root.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)
        root.setLevel(logging.INFO)

    return logging.getLogger(name)


def set_log_level(level: int | str) -> None:
    """
    Set the level of every supportrag logger.

    Args:
        level: Level number or name (DEBUG, INFO, WARNING, ERROR, CRITICAL)

    Raises:
        ValueError: If the level name is unknown
    """
    get_logger().setLevel(_resolve_level(level))
