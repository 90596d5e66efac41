"""Tests for logging setup."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from lidcam.config.settings import LoggingConfig
from lidcam.utils.logging import ROOT_LOGGER, setup_logging


@pytest.fixture(autouse=True)
def restore_logger():
    logger = logging.getLogger(ROOT_LOGGER)
    handlers, level = list(logger.handlers), logger.level
    yield
    for handler in list(logger.handlers):
        if handler not in handlers:
            logger.removeHandler(handler)
            handler.close()
    logger.setLevel(level)


def managed(logger: logging.Logger) -> list[logging.Handler]:
    return [h for h in logger.handlers if getattr(h, "_lidcam_managed", False)]


class TestSetupLogging:
    def test_defaults(self) -> None:
        logger = setup_logging()
        assert logger.name == ROOT_LOGGER
        assert logger.level == logging.INFO
        assert len(managed(logger)) == 1

    def test_repeated_calls_do_not_stack_handlers(self) -> None:
        setup_logging(LoggingConfig(level="DEBUG"))
        logger = setup_logging(LoggingConfig(level="WARNING"))
        assert len(managed(logger)) == 1
        assert logger.level == logging.WARNING

    def test_unknown_level_falls_back_to_info(self) -> None:
        assert setup_logging(LoggingConfig(level="chatty")).level == logging.INFO

    def test_file_handler(self, tmp_path: Path) -> None:
        log_file = tmp_path / "lidcam.log"
        logger = setup_logging(LoggingConfig(file=str(log_file)))
        logging.getLogger("lidcam.monitor").warning("lid sensor unavailable")
        for handler in managed(logger):
            handler.flush()
        assert len(managed(logger)) == 2
        assert "lid sensor unavailable" in log_file.read_text()
