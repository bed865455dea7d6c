"""Handler setup for the ``dae2obj`` package logger."""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import TextIO

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_DATE_FORMAT = "%H:%M:%S"


def setup_logging(
    level: int = logging.INFO,
    log_file: str | Path | None = None,
    stream: TextIO | None = None,
) -> logging.Logger:
    """Route ``dae2obj.*`` records to the console and optionally a file.

    Calling it again replaces the handlers from the previous call.

    Args:
        level: Level for the logger and every handler
        log_file: Also write records here, truncating the file
        stream: Console stream, stderr by default since OBJ text may go to stdout

    Returns:
        The configured package logger
    """
    logger = logging.getLogger("dae2obj")
    logger.setLevel(level)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
    handlers: list[logging.Handler] = [logging.StreamHandler(stream or sys.stderr)]
    if log_file is not None:
        handlers.append(logging.FileHandler(log_file, mode="w", encoding="utf-8"))
    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    logger.debug(f"Logging at {logging.getLevelName(level)}")
    return logger
