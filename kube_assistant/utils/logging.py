"""Loguru sink configuration for the CLI."""

from __future__ import annotations

import sys

from loguru import logger

LOG_FORMAT = "<green>{time:HH:mm:ss}</green> <level>{level: <8}</level> <cyan>{name}</cyan> {message}"


def setup_logging(debug: bool = False) -> None:
    """Send DEBUG and above to stderr when debugging, WARNING and above otherwise."""
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if debug else "WARNING", format=LOG_FORMAT)
