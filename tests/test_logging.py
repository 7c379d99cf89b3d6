"""Tests for logging configuration."""

import logging
import logging.handlers
from pathlib import Path

from rich.logging import RichHandler

from tidyname.config.models import LoggingSettings
from tidyname.log import configure_logging


def _file_handlers(logger: logging.Logger) -> list[logging.Handler]:
    return [h for h in logger.handlers if isinstance(h, logging.handlers.RotatingFileHandler)]


def test_configure_logging_uses_configured_level() -> None:
    logger = configure_logging(LoggingSettings(level="info"))

    assert logger.name == "tidyname"
    assert logger.level == logging.INFO
    assert logger.propagate is False
    assert [type(handler) for handler in logger.handlers] == [RichHandler]


def test_verbose_forces_debug_and_unknown_levels_default_to_warning() -> None:
    assert configure_logging(LoggingSettings(level="info"), verbose=True).level == logging.DEBUG
    assert configure_logging(LoggingSettings(level="chatty")).level == logging.WARNING


def test_file_handler_rotates_and_is_replaced(tmp_path: Path) -> None:
    log_file = tmp_path / "logs" / "tidyname.log"
    settings = LoggingSettings(file=str(log_file), max_size_mb=2, backup_count=3)

    configure_logging(settings)
    logger = configure_logging(settings)

    handlers = _file_handlers(logger)
    assert len(handlers) == 1
    handler = handlers[0]
    assert isinstance(handler, logging.handlers.RotatingFileHandler)
    assert handler.maxBytes == 2 * 1024 * 1024
    assert handler.backupCount == 3

    logging.getLogger("tidyname.organization.planner").warning("planner message")
    handler.flush()
    assert "planner message" in log_file.read_text(encoding="utf-8")

    configure_logging(LoggingSettings())
