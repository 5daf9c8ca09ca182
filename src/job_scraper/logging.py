"""Logging setup for the job scraper.

Every module logs through the single ``job-scraper`` logger exported
here.  Records go to stderr by default; the CLI can raise or lower the
console threshold with :func:`set_console_level`, and long-running
servers can mirror everything into a timestamped file with
:func:`configure_file_logging`.
"""

from __future__ import annotations

import logging
import sys
from datetime import datetime
from pathlib import Path

LOGGER_NAME = "job-scraper"
DEFAULT_LOG_DIR = "data/logs"

_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
_LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"

logger = logging.getLogger(LOGGER_NAME)
logger.setLevel(logging.INFO)

console_handler = logging.StreamHandler(sys.stderr)
console_handler.setLevel(logging.INFO)
console_handler.setFormatter(logging.Formatter(_LOG_FORMAT, datefmt=_LOG_DATEFMT))
logger.addHandler(console_handler)


def _lower_logger_threshold(level: int) -> None:
    # The logger gates records before any handler sees them
    if level < logger.level:
        logger.setLevel(level)


def set_console_level(level: int) -> None:
    """Change the stderr threshold, e.g. ``logging.DEBUG`` for ``--verbose``."""
    console_handler.setLevel(level)
    _lower_logger_threshold(level)


def configure_file_logging(
    log_dir: str = DEFAULT_LOG_DIR,
    *,
    level: int = logging.INFO,
) -> logging.FileHandler:
    """Mirror log records into ``<log_dir>/job-scraper_<timestamp>.log``.

    The directory is created if needed.  The handler is returned so that
    callers can detach it with ``logger.removeHandler``.
    """
    log_path = Path(log_dir)
    log_path.mkdir(parents=True, exist_ok=True)

    stamp = datetime.now().strftime("%Y-%m-%dT%H-%M-%S")
    file_handler = logging.FileHandler(
        str(log_path / f"{LOGGER_NAME}_{stamp}.log"), encoding="utf-8"
    )
    file_handler.setLevel(level)
    file_handler.setFormatter(logging.Formatter(_LOG_FORMAT, datefmt=_LOG_DATEFMT))

    _lower_logger_threshold(level)
    logger.addHandler(file_handler)
    return file_handler


__all__ = ["LOGGER_NAME", "configure_file_logging", "logger", "set_console_level"]
