"""Tests for fuzzscope.core.logging: formatters and setup."""

from __future__ import annotations

import json
import logging
import sys

import pytest

from fuzzscope.core.config import Settings
from fuzzscope.core.errors import ReportWriteError
from fuzzscope.core.logging import DevFormatter, JSONFormatter, setup_logging


def _record(msg: str = "hello %s", args: tuple = ("world",), **extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="fuzzscope.test",
        level=logging.INFO,
        pathname=__file__,
        lineno=10,
        msg=msg,
        args=args,
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield root
    root.handlers[:] = handlers
    root.setLevel(level)


class TestJSONFormatter:
    def test_basic_fields(self):
        entry = json.loads(JSONFormatter().format(_record()))
        assert entry["level"] == "INFO"
        assert entry["logger"] == "fuzzscope.test"
        assert entry["message"] == "hello world"
        assert entry["line"] == 10

    def test_context_fields(self):
        entry = json.loads(
            JSONFormatter().format(_record(report_path="/tmp/report", contract="Counter", unrelated=1))
        )
        assert entry["report_path"] == "/tmp/report"
        assert entry["contract"] == "Counter"
        assert "unrelated" not in entry

    def test_exception_info(self):
        try:
            raise ValueError("boom")
        except ValueError:
            record = _record()
            record.exc_info = sys.exc_info()
        entry = json.loads(JSONFormatter().format(record))
        assert entry["exception"]["type"] == "ValueError"
        assert entry["exception"]["message"] == "boom"
        assert "code" not in entry["exception"]

    def test_error_code_included(self):
        try:
            raise ReportWriteError("disk full")
        except ReportWriteError:
            record = _record()
            record.exc_info = sys.exc_info()
        entry = json.loads(JSONFormatter().format(record))
        assert entry["exception"]["code"] == "FILE_IO_FAILED"


class TestDevFormatter:
    def test_contains_level_and_message(self):
        out = DevFormatter().format(_record())
        assert "INFO" in out
        assert "fuzzscope.test: hello world" in out

    def test_context_suffix(self):
        out = DevFormatter().format(_record(report_path="out", duration_ms=12))
        assert out.endswith("hello world (report_path=out, duration_ms=12)")

    def test_no_context_no_suffix(self):
        assert DevFormatter().format(_record()).endswith("hello world")


class TestSetupLogging:
    def test_development_uses_dev_formatter(self, restore_root_logger):
        setup_logging(Settings(app_env="development", log_level="debug"))
        assert restore_root_logger.level == logging.DEBUG
        assert len(restore_root_logger.handlers) == 1
        assert isinstance(restore_root_logger.handlers[0].formatter, DevFormatter)

    def test_production_uses_json_formatter(self, restore_root_logger):
        setup_logging(Settings(app_env="production", log_level="WARNING"))
        assert restore_root_logger.level == logging.WARNING
        assert isinstance(restore_root_logger.handlers[0].formatter, JSONFormatter)

    def test_unknown_level_falls_back_to_info(self, restore_root_logger):
        setup_logging(Settings(app_env="staging", log_level="chatty"))
        assert restore_root_logger.level == logging.INFO

    def test_reads_environment(self, restore_root_logger, monkeypatch):
        monkeypatch.setenv("FUZZSCOPE_APP_ENV", "production")
        monkeypatch.setenv("FUZZSCOPE_LOG_LEVEL", "ERROR")
        setup_logging()
        assert restore_root_logger.level == logging.ERROR
        assert isinstance(restore_root_logger.handlers[0].formatter, JSONFormatter)

    def test_repeated_setup_keeps_one_handler(self, restore_root_logger):
        setup_logging(Settings())
        setup_logging(Settings())
        assert len(restore_root_logger.handlers) == 1
