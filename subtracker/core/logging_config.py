"""Logging setup: one UTC line format, a rotating file and the console."""
from __future__ import annotations

import logging
import logging.handlers
import time
from pathlib import Path

from subtracker.core.config import settings

LOG_FORMAT = "%(asctime)sZ | %(levelname)s | %(name)s | %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"
LOG_FILE_NAME = "subtracker.log"
LOG_FILE_MAX_BYTES = 10 * 1024 * 1024
LOG_FILE_BACKUPS = 5

# Loggers that should follow LOG_LEVEL instead of their library defaults.
FOLLOWING_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access", "subtracker.cancellation")


class UTCFormatter(logging.Formatter):
    converter = time.gmtime


def _handlers(log_dir: Path) -> list[logging.Handler]:
    formatter = UTCFormatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

    log_dir.mkdir(parents=True, exist_ok=True)
    file_handler = logging.handlers.RotatingFileHandler(
        log_dir / LOG_FILE_NAME,
        maxBytes=LOG_FILE_MAX_BYTES,
        backupCount=LOG_FILE_BACKUPS,
        encoding="utf-8",
    )
    console_handler = logging.StreamHandler()

    for handler in (file_handler, console_handler):
        handler.setFormatter(formatter)
    return [file_handler, console_handler]


def setup_logging() -> None:
    """Replace the root handlers and align server and cancellation loggers to LOG_LEVEL."""
    level = logging.getLevelName(settings.LOG_LEVEL.upper())
    if not isinstance(level, int):
        level = logging.INFO

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers = _handlers(Path(settings.LOG_DIR))

    for name in FOLLOWING_LOGGERS:
        logging.getLogger(name).setLevel(level)


__all__ = ["setup_logging"]
