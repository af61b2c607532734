from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

import pytest

from loadorder.config import ConfigError, LoggingConfig
from loadorder.logging import ConsoleFormatter, configure_logging


def test_console_only_without_log_dir() -> None:
    configure_logging(LoggingConfig(level="warning"))

    root = logging.getLogger()
    assert root.level == logging.WARNING
    assert not any(isinstance(handler, RotatingFileHandler) for handler in root.handlers)


def test_file_handlers_written_to_log_dir(tmp_path: Path) -> None:
    log_dir = tmp_path / "logs"
    configure_logging(LoggingConfig(level="debug", log_dir=log_dir, debug_file=True))

    logging.getLogger("loadorder.test").debug("debug detail")
    logging.getLogger("loadorder.test").info("resolved things")
    for handler in logging.getLogger().handlers:
        handler.flush()

    assert "resolved things" in (log_dir / "loadorder.log").read_text()
    debug_text = (log_dir / "debug.log").read_text()
    assert "debug detail" in debug_text
    assert "debug detail" not in (log_dir / "loadorder.log").read_text()


@pytest.mark.parametrize("level", ["chatty", "warn"])
def test_unknown_level_raises(level: str) -> None:
    with pytest.raises(ConfigError, match="Unknown log level"):
        configure_logging(LoggingConfig(level=level))


def test_console_formatter_symbols() -> None:
    record = logging.LogRecord("x", logging.WARNING, __file__, 1, "careful", None, None)

    assert ConsoleFormatter(use_color=False).format(record) == "! careful"
    assert ConsoleFormatter(use_color=True).format(record).endswith("\x1b[0m careful")
