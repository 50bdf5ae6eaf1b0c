"""Centralized logging configuration for the imaging component."""

import os
import sys
import logging
from typing import Optional

DEFAULT_LOGGER_NAME = "globetrotter-imaging"

STRUCTURED_FORMAT = (
    "%(asctime)s | %(name)s | %(levelname)-8s | "
    "%(filename)s:%(lineno)d | %(funcName)s() | %(message)s"
)
SIMPLE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logger(
    name: str = DEFAULT_LOGGER_NAME,
    level: Optional[str] = None,
    format_type: str = "structured",
) -> logging.Logger:
    """
    Setup a logger configured from arguments or environment variables.

    Args:
        name: Logger name (defaults to "globetrotter-imaging")
        level: Log level override (defaults to env var or INFO)
        format_type: Logging format ("structured" or "simple")

    Returns:
        Configured logger instance

    Environment Variables:
        LOG_LEVEL: Set logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        LOG_FORMAT: Set format type ("structured" or "simple")
    """
    logger = logging.getLogger(name)

    if level:
        log_level = getattr(logging, level.upper(), logging.INFO)
    else:
        env_level = os.getenv("LOG_LEVEL", "INFO").upper()
        log_level = getattr(logging, env_level, logging.INFO)

    logger.setLevel(log_level)

    # One handler per logger, even when called repeatedly
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)

        env_format = os.getenv("LOG_FORMAT", format_type).lower()
        if env_format == "structured":
            formatter = logging.Formatter(STRUCTURED_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
        else:
            formatter = logging.Formatter(SIMPLE_FORMAT)

        handler.setFormatter(formatter)
        logger.addHandler(handler)

    logger.propagate = False
    return logger


def get_logger(component: Optional[str] = None) -> logging.Logger:
    """
    Get a logger for a component of the imaging package.

    Component loggers are children of the package logger, so
    ``get_logger("metadata")`` returns ``globetrotter-imaging.metadata``.
    """
    if component:
        return setup_logger(f"{DEFAULT_LOGGER_NAME}.{component}")
    return setup_logger(DEFAULT_LOGGER_NAME)


def set_debug_logging() -> None:
    """Switch the package loggers and the root logger to DEBUG."""
    logging.getLogger().setLevel(logging.DEBUG)
    for name, existing in logging.Logger.manager.loggerDict.items():
        if name.startswith(DEFAULT_LOGGER_NAME) and isinstance(existing, logging.Logger):
            existing.setLevel(logging.DEBUG)
