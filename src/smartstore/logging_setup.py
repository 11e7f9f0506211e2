"""Logging configuration for the smartstore package."""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from smartstore.config.models import LoggingSettings

LOG_FILENAME = "smartstore.log"
_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(settings: LoggingSettings, log_dir: Optional[Path] = None) -> logging.Logger:
    """Set the package log level and attach a rotating file handler.

    Calling this again for the same directory does not add a second handler.

    Args:
        settings: Logging settings from the configuration.
        log_dir: Directory receiving ``smartstore.log``; no file handler when ``None``.

    Returns:
        logging.Logger: The package logger.
    """
    logger = logging.getLogger("smartstore")
    level = logging.getLevelName(settings.level.upper())
    logger.setLevel(level if isinstance(level, int) else logging.WARNING)

    if log_dir is None:
        return logger

    log_path = (log_dir / LOG_FILENAME).resolve()
    for handler in logger.handlers:
        if isinstance(handler, RotatingFileHandler) and Path(handler.baseFilename) == log_path:
            return logger

    log_dir.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(
        log_path,
        maxBytes=settings.max_size_mb * 1024 * 1024,
        backupCount=settings.backup_count,
        encoding="utf-8",
    )
    handler.setFormatter(logging.Formatter(_FORMAT))
    logger.addHandler(handler)
    return logger


__all__ = ["LOG_FILENAME", "configure_logging"]
