"""Tests de incidenthook.logger: nivel, handler único y loggers ruidosos."""

from __future__ import annotations

import logging

import pytest

from incidenthook.logger import LOG_FORMAT, NOISY_LOGGERS, resolve_level, setup_logging


@pytest.fixture
def root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    noisy = {name: logging.getLogger(name).level for name in NOISY_LOGGERS}
    yield root
    for h in list(root.handlers):
        root.removeHandler(h)
    for h in handlers:
        root.addHandler(h)
    root.setLevel(level)
    for name, lvl in noisy.items():
        logging.getLogger(name).setLevel(lvl)


class TestResolveLevel:
    @pytest.mark.parametrize(
        "value, expected",
        [
            ("debug", logging.DEBUG),
            (" WARNING ", logging.WARNING),
            (logging.ERROR, logging.ERROR),
            ("verbose", logging.INFO),
            (None, logging.INFO),
            ("", logging.INFO),
        ],
    )
    def test_values(self, value, expected):
        assert resolve_level(value) == expected


class TestSetupLogging:
    def test_single_handler_after_repeated_setup(self, root_logger):
        setup_logging("INFO")
        assert setup_logging("DEBUG") == logging.DEBUG
        assert len(root_logger.handlers) == 1
        assert root_logger.level == logging.DEBUG
        assert root_logger.handlers[0].formatter._fmt == LOG_FORMAT

    def test_noisy_loggers_capped_at_warning(self, root_logger):
        setup_logging("DEBUG")
        for name in NOISY_LOGGERS:
            assert logging.getLogger(name).level == logging.WARNING

    def test_noisy_loggers_follow_stricter_level(self, root_logger):
        setup_logging("ERROR")
        assert logging.getLogger("sqlalchemy.engine").level == logging.ERROR
