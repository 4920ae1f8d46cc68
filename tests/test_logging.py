import logging

import pytest

import band_sync.logging as band_logging
from band_sync.config import LoggingSettings


@pytest.fixture
def fresh_logging(monkeypatch):
    monkeypatch.setattr(band_logging, "_INITIALIZED", False)
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    chatty = {name: logging.getLogger(name).level for name in band_logging.CHATTY_LOGGERS}
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)
    for name, previous in chatty.items():
        logging.getLogger(name).setLevel(previous)


def test_writes_to_configured_file(tmp_path, fresh_logging):
    log_file = tmp_path / "logs" / "sync.log"

    assert band_logging.configure_logging(LoggingSettings(level="INFO", file=log_file)) == log_file
    logging.getLogger("band_sync.services.sync").info("Sync completed (3 events, 1 availability)")

    assert "Sync completed (3 events, 1 availability)" in log_file.read_text()
    assert logging.getLogger("httpx").level == logging.WARNING


def test_only_first_call_configures(tmp_path, fresh_logging):
    settings = LoggingSettings(file=tmp_path / "band_sync.log")
    band_logging.configure_logging(settings)
    count = len(logging.getLogger().handlers)

    assert band_logging.configure_logging(settings) is None
    assert len(logging.getLogger().handlers) == count


def test_debug_keeps_http_loggers(tmp_path, fresh_logging):
    logging.getLogger("httpx").setLevel(logging.NOTSET)
    band_logging.configure_logging(LoggingSettings(level="DEBUG", file=tmp_path / "band_sync.log"))
    assert logging.getLogger().level == logging.DEBUG
    assert logging.getLogger("httpx").level == logging.NOTSET
