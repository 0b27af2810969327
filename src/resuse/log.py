"""Logging configuration for resuse."""

import logging
import sys
from pathlib import Path

CONSOLE_FORMAT = "[%(levelname)s] %(message)s"
FILE_FORMAT = "%(asctime)s [%(levelname)s] %(name)s - %(message)s"


def setup_logger(
    name: str = "resuse",
    level: int = logging.WARNING,
    log_file: Path | None = None,
) -> logging.Logger:
    """
    Configure and return a logger with consistent formatting.

    Calling this again replaces the handlers installed by a previous call.

    Args:
        name: Logger name. Defaults to the package logger.
        level: Console logging level.
        log_file: Optional file that receives DEBUG and above.

    Returns:
        The configured logger.
    """
    logger = logging.getLogger(name)
    logger.setLevel(min(level, logging.DEBUG) if log_file else level)

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter(fmt=CONSOLE_FORMAT))
    logger.addHandler(console_handler)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(fmt=FILE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
        logger.addHandler(file_handler)

    logger.propagate = False
    return logger
