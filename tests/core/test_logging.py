"""
Tests for the logging setup and the Logger façade.
"""

import logging
import time

import pytest

from chatstream.core.logging import logger, setup_logging, UnicodeFormatter
from chatstream.core.logging.config import LOGGER_NAME


@pytest.fixture
def restore_logging():
    """Reinstall the default handlers once the environment is restored."""
    yield
    package_logger = logging.getLogger(LOGGER_NAME)
    for handler in package_logger.handlers:
        handler.close()
    setup_logging()


class TestSetupLogging:

    def test_name_and_level(self, restore_logging, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "debug")
        monkeypatch.delenv("LOG_DIR", raising=False)

        configured = setup_logging()

        assert configured.name == "chatstream"
        assert configured.level == logging.DEBUG
        assert len(configured.handlers) == 1
        assert isinstance(configured.handlers[0].formatter, UnicodeFormatter)

    def test_unknown_level_falls_back_to_info(self, restore_logging, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "chatty")
        monkeypatch.delenv("LOG_DIR", raising=False)

        assert setup_logging().level == logging.INFO

    def test_repeated_setup_does_not_duplicate_handlers(self, restore_logging, monkeypatch):
        monkeypatch.delenv("LOG_DIR", raising=False)
        setup_logging()

        assert len(setup_logging().handlers) == 1

    def test_log_dir_enables_files(self, restore_logging, monkeypatch, tmp_path):
        log_dir = tmp_path / "logs"
        monkeypatch.setenv("LOG_LEVEL", "DEBUG")
        monkeypatch.setenv("LOG_DIR", str(log_dir))

        configured = setup_logging()

        assert (log_dir / "app.log").exists()
        assert (log_dir / "debug.log").exists()
        assert len(configured.handlers) == 3

    def test_log_dir_without_debug(self, restore_logging, monkeypatch, tmp_path):
        monkeypatch.setenv("LOG_LEVEL", "INFO")
        monkeypatch.setenv("LOG_DIR", str(tmp_path))

        setup_logging()

        assert (tmp_path / "app.log").exists()
        assert not (tmp_path / "debug.log").exists()


class TestUnicodeFormatter:

    def make_record(self, message):
        return logging.LogRecord(LOGGER_NAME, logging.INFO, __file__, 1, message, None, None)

    def test_json_payload_is_decoded(self):
        formatter = UnicodeFormatter("%(message)s")
        record = self.make_record('{"text": "\\u041f\\u0440\\u0438"}')

        assert formatter.format(record) == '{"text": "При"}'

    def test_plain_escape_is_decoded(self):
        formatter = UnicodeFormatter("%(message)s")
        assert formatter.format(self.make_record("caf\\u00e9")) == "café"

    def test_text_without_escapes_untouched(self):
        formatter = UnicodeFormatter("%(message)s")
        assert formatter.format(self.make_record("data: 42")) == "data: 42"


class TestLogger:

    def test_kwargs_become_extra(self, caplog):
        with caplog.at_level(logging.INFO, logger=LOGGER_NAME):
            logger.info("Stream completed", stream_id="s-1", content_length=5)

        record = caplog.records[-1]
        assert record.getMessage() == "Stream completed"
        assert record.stream_id == "s-1"
        assert record.content_length == 5

    def test_debug_data_skipped_below_debug(self, caplog):
        with caplog.at_level(logging.INFO, logger=LOGGER_NAME):
            logger.debug_data("Chunk", {"size": 3}, stream_id="s-1")

        assert caplog.records == []

    def test_debug_data_at_debug(self, caplog):
        with caplog.at_level(logging.DEBUG, logger=LOGGER_NAME):
            logger.debug_data("Chunk", {"text": "Привет"}, stream_id="s-1", component="decoder")

        record = caplog.records[-1]
        assert "component=decoder" in record.getMessage()
        assert "Привет" in record.getMessage()

    def test_performance(self, caplog):
        with caplog.at_level(logging.INFO, logger=LOGGER_NAME):
            logger.performance("decode", time.time(), stream_id="s-1")

        record = caplog.records[-1]
        assert record.getMessage().startswith("Performance: decode")
        assert record.duration_ms >= 0

    def test_stream_context_logs_and_reraises(self, caplog):
        with caplog.at_level(logging.INFO, logger=LOGGER_NAME):
            with pytest.raises(ValueError):
                with logger.stream_context("process", stream_id="s-1"):
                    raise ValueError("bad chunk")

        messages = [record.getMessage() for record in caplog.records]
        assert messages[0] == "Stream: process"
        assert messages[1] == "process failed: bad chunk"
        assert messages[2].startswith("Completed: process")
        assert caplog.records[1].levelno == logging.ERROR
        assert all(record.stream_id == "s-1" for record in caplog.records)
