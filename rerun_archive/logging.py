"""
logging.py

Responsibility: the `rerun_archive` logger tree and its handlers.

Builders log written artifacts at INFO and every external command at DEBUG;
the CLI logs the fatal error at ERROR. Log output goes to stderr so stdout
only ever carries artifact paths.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import TextIO

LOGGER_NAME = "rerun_archive"
CONSOLE_FORMAT = "[rerun-archive] %(levelname)s %(message)s"
FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def get_logger(name: str | None = None) -> logging.Logger:
    return logging.getLogger(f"{LOGGER_NAME}.{name}" if name else LOGGER_NAME)


def _attach(logger: logging.Logger, handler: logging.Handler, level: int, fmt: str) -> None:
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt))
    logger.addHandler(handler)


def configure_logging(
    *,
    verbose: bool = False,
    log_file: Path | None = None,
    stream: TextIO | None = None,
) -> logging.Logger:
    """
    Reset the package logger to a console handler on `stream` (stderr by
    default) plus an optional file. `verbose` shows toolchain command lines.

    The file always records DEBUG so a failed build can be replayed from it.
    """
    level = logging.DEBUG if verbose else logging.INFO
    logger = logging.getLogger(LOGGER_NAME)
    logger.propagate = False
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    _attach(logger, logging.StreamHandler(stream or sys.stderr), level, CONSOLE_FORMAT)
    if log_file is not None:
        _attach(logger, logging.FileHandler(log_file, encoding="utf-8"), logging.DEBUG, FILE_FORMAT)
        level = logging.DEBUG
    logger.setLevel(level)
    return logger


__all__ = ["configure_logging", "get_logger"]
