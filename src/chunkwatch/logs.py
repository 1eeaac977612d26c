"""Logging configuration for the chunkwatch CLI."""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

from chunkwatch.config.models import LoggingSettings

ROOT_LOGGER_NAME = "chunkwatch"
_FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(
    settings: LoggingSettings,
    *,
    console: Console | None = None,
    level_override: str | None = None,
) -> logging.Logger:
    """Attach console and optional rotating-file handlers to the package logger.

    Calling this again replaces handlers installed by an earlier call.

    Args:
        settings: Logging section of the loaded configuration.
        console: Rich console used for terminal output.
        level_override: Level name taking precedence over ``settings.level``.

    Returns:
        logging.Logger: The configured ``chunkwatch`` logger.
    """
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    level_name = (level_override or settings.level).upper()
    logger.setLevel(getattr(logging, level_name, logging.INFO))

    for handler in list(logger.handlers):
        if getattr(handler, "_chunkwatch", False):
            logger.removeHandler(handler)
            handler.close()

    console_handler = RichHandler(console=console, show_path=False, markup=False)
    console_handler.setFormatter(logging.Formatter("%(message)s"))
    _install(logger, console_handler)

    if settings.file:
        log_path = Path(settings.file).expanduser()
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_path,
            maxBytes=max(1, settings.max_size_mb) * 1024 * 1024,
            backupCount=max(0, settings.backup_count),
            encoding="utf-8",
        )
        file_handler.setFormatter(logging.Formatter(_FILE_FORMAT))
        _install(logger, file_handler)

    return logger


def _install(logger: logging.Logger, handler: logging.Handler) -> None:
    handler._chunkwatch = True  # type: ignore[attr-defined]
    logger.addHandler(handler)


__all__ = ["configure_logging", "ROOT_LOGGER_NAME"]
