"""Logging setup.

stdout carries the protocol stream, so log records only ever go to stderr
and, optionally, a file.
"""

from __future__ import annotations

import sys

from loguru import logger

LOG_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level} | {message}"
FILE_LOG_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level} | {name}:{function}:{line} | {message}"


def setup_logging(log_level: str = "INFO", log_file: str | None = None) -> None:
    """Configure loguru sinks for the server process."""
    logger.remove()
    logger.add(sys.stderr, level=log_level, format=LOG_FORMAT)

    if log_file:
        logger.add(
            log_file,
            level=log_level,
            format=FILE_LOG_FORMAT,
            rotation="10 MB",
            retention=5,
        )
        logger.debug(f"Logging to {log_file}")
