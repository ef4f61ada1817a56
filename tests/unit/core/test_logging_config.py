"""
Unit Tests for logging configuration
"""
import json
import logging

import pytest
from codeheal.core.logging_config import (
    CodeHealLogger,
    ContextualFormatter,
    JSONFormatter,
    generate_session_id,
    get_fingerprint,
    get_session_id,
    logger,
    set_fingerprint,
    set_session_id,
    set_target_file,
)


def make_record(message: str = "hello", **extra) -> logging.LogRecord:
    record = logging.LogRecord("codeheal", logging.INFO, __file__, 10, message, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestContextVars:

    def test_set_and_get(self):
        set_session_id("abc123")
        set_fingerprint("f" * 32)

        assert get_session_id() == "abc123"
        assert get_fingerprint() == "f" * 32

    def test_generate_session_id(self):
        session_id = generate_session_id()

        assert len(session_id) == 8
        assert session_id != generate_session_id()


class TestFormatters:

    def test_json_formatter_includes_context_and_extras(self):
        """Test JSON output carries context vars and extra fields"""
        set_session_id("sess-1")
        set_target_file("src/App.tsx")

        data = json.loads(JSONFormatter().format(make_record(strategy="ai-quick")))

        assert data["message"] == "hello"
        assert data["level"] == "INFO"
        assert data["session_id"] == "sess-1"
        assert data["target_file"] == "src/App.tsx"
        assert data["strategy"] == "ai-quick"

    def test_json_formatter_without_context(self):
        data = json.loads(JSONFormatter().format(make_record()))

        assert "session_id" not in data
        assert "fingerprint" not in data

    def test_contextual_formatter(self):
        """Test fingerprint is shortened to 8 characters"""
        set_session_id("sess-1")
        set_fingerprint("0123456789abcdef")
        formatter = ContextualFormatter("[%(session_id)s] [%(fingerprint)s] %(message)s")

        assert formatter.format(make_record()) == "[sess-1] [01234567] hello"

    def test_contextual_formatter_placeholders(self):
        formatter = ContextualFormatter("%(session_id)s %(target_file)s %(message)s")
        assert formatter.format(make_record()) == "- - hello"


class TestCodeHealLogger:

    def test_logger_class(self):
        assert isinstance(logger, CodeHealLogger)

    def test_strategy_fail_logs_warning(self, caplog):
        with caplog.at_level(logging.DEBUG, logger="codeheal"):
            logger.log_strategy_event("ai-quick", "fail", "AI fix invalid")

        record = caplog.records[-1]
        assert record.levelno == logging.WARNING
        assert record.strategy == "ai-quick"
        assert record.strategy_status == "fail"
        assert "FAIL - AI fix invalid" in record.getMessage()

    def test_strategy_start_logs_info(self, caplog):
        with caplog.at_level(logging.DEBUG, logger="codeheal"):
            logger.log_strategy_event("local-simple", "start", "Attempting Quick fix")

        assert caplog.records[-1].levelno == logging.INFO

    def test_ai_event(self, caplog):
        with caplog.at_level(logging.DEBUG, logger="codeheal"):
            logger.log_ai_event("ai-full", "request", size=1200, request_id="req-1")

        record = caplog.records[-1]
        assert record.ai_event == "request"
        assert record.payload_size == 1200
        assert "(1200 chars)" in record.getMessage()

    @pytest.mark.parametrize("duration,level", [
        (10.0, logging.DEBUG),
        (5000.0, logging.WARNING),
    ])
    def test_performance_threshold(self, caplog, duration, level):
        with caplog.at_level(logging.DEBUG, logger="codeheal"):
            logger.log_performance("remediation", duration, threshold_ms=1000)

        record = caplog.records[-1]
        assert record.levelno == level
        assert record.exceeded_threshold == (duration > 1000)

    def test_error_with_context(self, caplog):
        with caplog.at_level(logging.DEBUG, logger="codeheal"):
            try:
                raise RuntimeError("strategy blew up")
            except RuntimeError as e:
                logger.log_error_with_context(e, "strategy ai-quick", strategy="ai-quick")

        record = caplog.records[-1]
        assert record.levelno == logging.ERROR
        assert record.error_type == "RuntimeError"
        assert record.exc_info is not None
