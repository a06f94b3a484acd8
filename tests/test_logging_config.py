import logging

import pytest

from prefkeeper.logging_config import configure_logging


@pytest.fixture()
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield root
    for h in list(root.handlers):
        root.removeHandler(h)
    for h in handlers:
        root.addHandler(h)
    root.setLevel(level)


def test_env_level_is_respected(monkeypatch, restore_root_logger):
    monkeypatch.setenv("PREFKEEPER_LOG_LEVEL", "debug")
    configure_logging()
    assert restore_root_logger.level == logging.DEBUG


def test_repeated_configuration_keeps_one_handler(restore_root_logger):
    configure_logging(logging.WARNING)
    configure_logging(logging.WARNING)
    assert len(restore_root_logger.handlers) == 1
    assert restore_root_logger.level == logging.WARNING
