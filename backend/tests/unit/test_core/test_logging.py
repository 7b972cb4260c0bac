"""
日志系统单元测试
"""
import json
import logging

import pytest

from ideaboard.core import logging as app_logging
from ideaboard.core.config import Settings
from ideaboard.core.constants import LoggingConstants, ServerConstants
from ideaboard.core.logging import SensitiveDataFilter, StructuredFormatter, StructuredLogger


class _Collector(logging.Handler):
    def __init__(self):
        super().__init__()
        self.records = []

    def emit(self, record):
        self.records.append(record)


def _record(msg, args=None, **attrs) -> logging.LogRecord:
    record = logging.LogRecord("ideaboard.test", logging.INFO, __file__, 1, msg, args, None)
    for key, value in attrs.items():
        setattr(record, key, value)
    return record


@pytest.mark.unit
class TestSensitiveDataFilter:
    """敏感信息脱敏测试"""

    def test_masks_message_and_args(self):
        record = _record("api_key=abc123 used for %s", ("token: secret-value",))

        assert SensitiveDataFilter().filter(record) is True
        assert "abc123" not in record.getMessage()
        assert "secret-value" not in record.getMessage()
        assert "***masked***" in record.getMessage()

    def test_plain_message_untouched(self):
        record = _record("board created")

        SensitiveDataFilter().filter(record)

        assert record.getMessage() == "board created"


@pytest.mark.unit
class TestStructuredLogging:
    """结构化日志测试"""

    def test_formatter_outputs_json(self):
        record = _record("白板事件", extra_data={"board_event": "board_created"}, board_id="b1")

        entry = json.loads(StructuredFormatter().format(record))

        assert entry["message"] == "白板事件"
        assert entry["board_event"] == "board_created"
        assert entry["board_id"] == "b1"

    def test_board_event_written_to_events_logger(self):
        structured = StructuredLogger("test")
        collector = _Collector()
        structured.logger.addHandler(collector)
        structured.logger.setLevel(logging.INFO)
        try:
            structured.log_board_event("files_ingested", "b1", created=2, failed=None)
        finally:
            structured.logger.removeHandler(collector)

        record = collector.records[0]
        assert structured.logger.name == f"{LoggingConstants.EVENT_LOGGER}.test"
        assert record.extra_data == {
            "event_type": "board_event",
            "board_event": "files_ingested",
            "board_id": "b1",
            "created": 2,
        }

    def test_failed_assistant_call_logged_as_warning(self):
        structured = StructuredLogger("test")
        collector = _Collector()
        structured.logger.addHandler(collector)
        structured.logger.setLevel(logging.INFO)
        try:
            structured.log_assistant_call("gemini", "gemini-test", 0.25, success=False)
        finally:
            structured.logger.removeHandler(collector)

        record = collector.records[0]
        assert record.levelno == logging.WARNING
        assert record.extra_data["duration_ms"] == 250.0
        assert record.extra_data["success"] is False


@pytest.mark.unit
class TestLoggingConfig:
    """日志配置测试"""

    def test_handlers_and_event_logger(self, tmp_path, monkeypatch):
        monkeypatch.setattr(app_logging, "get_settings", lambda: Settings(LOG_DIR=str(tmp_path / "logs")))

        config = app_logging.get_logging_config()

        assert (tmp_path / "logs").is_dir()
        assert config["handlers"]["event_file"]["formatter"] == "structured"
        assert config["handlers"]["event_file"]["filename"].endswith(LoggingConstants.EVENT_LOG_FILE)
        assert config["loggers"][LoggingConstants.EVENT_LOGGER]["handlers"] == ["event_file"]
        assert config["handlers"]["console"]["formatter"] == "default"

    def test_production_console_is_structured(self, tmp_path, monkeypatch):
        settings = Settings(LOG_DIR=str(tmp_path), ENVIRONMENT=ServerConstants.PRODUCTION)
        monkeypatch.setattr(app_logging, "get_settings", lambda: settings)

        config = app_logging.get_logging_config()

        assert config["handlers"]["console"]["formatter"] == "structured"
        assert config["loggers"]["uvicorn.access"]["level"] == "WARNING"
