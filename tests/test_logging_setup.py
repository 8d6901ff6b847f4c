from __future__ import annotations

import logging
from pathlib import Path

import pytest

from segmentwatch.config.models import LoggingSettings
from segmentwatch.utils.logging import configure_logging


def test_configure_logging_writes_to_file(tmp_path: Path) -> None:
    log_file = tmp_path / "logs" / "collector.log"
    configure_logging(LoggingSettings(level="INFO", format="%(levelname)s %(message)s", file=log_file))

    logging.getLogger("segmentwatch.test").info("tick written")
    for handler in logging.getLogger().handlers:
        handler.flush()

    assert "INFO tick written" in log_file.read_text(encoding="utf-8")
    assert logging.getLogger("urllib3").level == logging.WARNING

    configure_logging(LoggingSettings(level="INFO", format="%(message)s"), level_override="debug")
    assert logging.getLogger().level == logging.DEBUG
    assert logging.getLogger("urllib3").level == logging.DEBUG


def test_unknown_level_is_rejected() -> None:
    with pytest.raises(ValueError):
        configure_logging(LoggingSettings(level="CHATTY", format="%(message)s"))
