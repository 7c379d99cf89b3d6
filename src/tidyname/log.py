"""Logging setup for the tidyname command line."""

from __future__ import annotations

import logging
import logging.handlers
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

from tidyname.config.models import LoggingSettings

PACKAGE_LOGGER = "tidyname"
_FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _parse_level(level: str) -> int:
    value = logging.getLevelName(level.strip().upper())
    return value if isinstance(value, int) else logging.WARNING


def configure_logging(
    settings: LoggingSettings,
    *,
    verbose: bool = False,
    console: Optional[Console] = None,
) -> logging.Logger:
    """Attach handlers to the package logger according to ``settings``.

    Handlers installed by a previous call are replaced, so the CLI can call
    this once per invocation.

    Args:
        settings: Logging section of the loaded configuration.
        verbose: Force DEBUG regardless of the configured level.
        console: Console the rich handler writes to; defaults to stderr.

    Returns:
        logging.Logger: The configured ``tidyname`` logger.
    """

    logger = logging.getLogger(PACKAGE_LOGGER)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    level = logging.DEBUG if verbose else _parse_level(settings.level)
    logger.setLevel(level)
    logger.propagate = False

    rich_handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        rich_tracebacks=False,
    )
    rich_handler.setLevel(level)
    logger.addHandler(rich_handler)

    if settings.file:
        path = Path(settings.file).expanduser()
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            path,
            maxBytes=settings.max_size_mb * 1024 * 1024,
            backupCount=settings.backup_count,
            encoding="utf-8",
        )
        file_handler.setFormatter(logging.Formatter(_FILE_FORMAT))
        file_handler.setLevel(level)
        logger.addHandler(file_handler)

    return logger


__all__ = ["configure_logging", "PACKAGE_LOGGER"]
