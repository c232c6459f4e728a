"""Tests for logging setup"""
import logging

import pytest

from storefront.config.settings import Settings
from storefront.utils import my_logging
from storefront.utils.my_logging import CLIENT_LOGGERS, NOISY_LOGGERS, setup_logging


@pytest.fixture
def restore_loggers():
    root = logging.getLogger()
    saved_root = (root.level, list(root.handlers))
    saved = {
        name: (logging.getLogger(name).level, logging.getLogger(name).propagate)
        for name in NOISY_LOGGERS + CLIENT_LOGGERS
    }
    yield
    for name, (level, propagate) in saved.items():
        logger = logging.getLogger(name)
        logger.setLevel(level)
        logger.propagate = propagate
    root.setLevel(saved_root[0])
    root.handlers[:] = saved_root[1]


def _use_settings(monkeypatch, **values):
    settings = Settings(_env_file=None, DATABASE_URL="sqlite://", **values)
    monkeypatch.setattr(my_logging, "get_settings", lambda: settings)


class TestSetupLogging:

    def test_client_loggers_capped_outside_debug(self, monkeypatch, restore_loggers):
        _use_settings(monkeypatch, DEBUG=False)

        setup_logging()

        for name in CLIENT_LOGGERS:
            assert logging.getLogger(name).level == logging.WARNING

    def test_debug_leaves_client_loggers_alone(self, monkeypatch, restore_loggers):
        _use_settings(monkeypatch, DEBUG=True)
        logging.getLogger("openai").setLevel(logging.NOTSET)

        setup_logging()

        assert logging.getLogger("openai").level == logging.NOTSET

    def test_quiet_mode_silences_libraries(self, monkeypatch, restore_loggers):
        _use_settings(monkeypatch)

        setup_logging(verbose=False)

        for name in ("sqlalchemy.engine", "kombu", "httpx"):
            logger = logging.getLogger(name)
            assert logger.level == logging.ERROR
            assert logger.propagate is False
