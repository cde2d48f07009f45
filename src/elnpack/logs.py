"""Process-wide logging setup."""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

from elnpack.config.models import LoggingSettings

_HANDLER_MARKER = "_elnpack_handler"
_FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(settings: LoggingSettings, log_path: Path | None = None) -> logging.Logger:
    """Attach console and optional rotating file handlers to the ``elnpack`` logger.

    Handlers installed by a previous call are replaced, so repeated calls do not
    duplicate output.

    Args:
        settings: Logging configuration section.
        log_path: Explicit log file; overrides ``settings.file`` when provided.

    Returns:
        logging.Logger: The configured package logger.
    """
    logger = logging.getLogger("elnpack")
    for handler in list(logger.handlers):
        if getattr(handler, _HANDLER_MARKER, False):
            logger.removeHandler(handler)
            handler.close()

    level = logging.getLevelName(settings.level.upper())
    if not isinstance(level, int):
        level = logging.WARNING
    logger.setLevel(level)

    console_handler = RichHandler(
        console=Console(stderr=True),
        show_path=False,
        rich_tracebacks=False,
    )
    setattr(console_handler, _HANDLER_MARKER, True)
    logger.addHandler(console_handler)

    target = log_path or (Path(settings.file).expanduser() if settings.file else None)
    if target is not None:
        target.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            target,
            maxBytes=settings.max_size_mb * 1024 * 1024,
            backupCount=settings.backup_count,
            encoding="utf-8",
        )
        file_handler.setFormatter(logging.Formatter(_FILE_FORMAT))
        setattr(file_handler, _HANDLER_MARKER, True)
        logger.addHandler(file_handler)

    return logger


__all__ = ["configure_logging"]
