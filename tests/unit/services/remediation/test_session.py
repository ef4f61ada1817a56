"""
Unit Tests for RemediationSession
"""
from unittest.mock import MagicMock

import pytest
from codeheal.core.logging_config import get_fingerprint, get_session_id, get_target_file
from codeheal.services.remediation.analyzer import error_analyzer
from codeheal.services.remediation.session import RemediationSession


@pytest.fixture
def mock_logger() -> MagicMock:
    return MagicMock()


@pytest.fixture
def session(mock_logger) -> RemediationSession:
    return RemediationSession("fp-1", "src/App.tsx", "useState is not defined", logger=mock_logger)


class TestLifecycle:
    """Test start/end bind and clear the logging context"""

    def test_start_binds_context(self, session):
        session_id = session.start()

        assert session_id == session.session_id
        assert get_session_id() == session_id
        assert get_fingerprint() == "fp-1"
        assert get_target_file() == "src/App.tsx"
        assert session.entries[0].title == "Session started"
        assert session.entries[0].message == "Fixing: useState is not defined"

    def test_end_clears_context(self, session, mock_logger):
        session.start()
        session.end(success=True, summary="Added import")

        assert get_session_id() == ""
        assert get_fingerprint() == ""
        assert session.entries[-1].title == "Session complete"
        assert session.entries[-1].level == "success"
        mock_logger.log_performance.assert_called_once()

    def test_failed_end(self, session):
        session.start()
        session.end(success=False, summary="All strategies exhausted")

        assert session.entries[-1].title == "Session failed"
        assert session.entries[-1].level == "error"

    def test_long_message_preview(self, mock_logger):
        session = RemediationSession("fp", "src/App.tsx", "x" * 150, logger=mock_logger)
        session.start()

        assert session.entries[0].message == "Fixing: " + "x" * 100 + "..."

    def test_duration_before_start(self, session):
        assert session.duration_ms == 0.0


class TestEntries:

    def test_log_strategy(self, session, mock_logger):
        entry = session.log_strategy("local-simple", "fail", "Local fix failed")

        assert entry.title == "Strategy: local-simple"
        assert entry.message == "FAIL - Local fix failed"
        assert entry.level == "warn"
        mock_logger.log_strategy_event.assert_called_once_with("local-simple", "fail", "Local fix failed")

    @pytest.mark.parametrize("status,level", [
        ("start", "info"),
        ("success", "success"),
        ("fail", "warn"),
    ])
    def test_strategy_levels(self, session, status, level):
        assert session.log_strategy("ai-quick", status, "msg").level == level

    def test_log_routes_level(self, session, mock_logger):
        session.log("warn", "validation", "syntax validation failed", "Invalid syntax")

        mock_logger.warning.assert_called_once()
        assert mock_logger.warning.call_args.kwargs["extra"]["session_category"] == "validation"

    def test_log_analysis(self, session):
        entry = session.log_analysis(error_analyzer.analyze("useState is not defined"))

        assert entry.category == "analyze"
        assert "Category: import" in entry.message
        assert entry.details["type"] == "undefined-variable"

    def test_local_fix(self, session):
        assert session.log_local_fix("missing-import", True, "Added import").title == "Local fix: missing-import"
        assert session.log_local_fix("bracket-balance", False, "No fix").title == "Tried: bracket-balance"

    def test_code_truncated(self, session):
        entry = session.log_local_fix("x", True, "d", code_snippet="a" * 600)

        assert entry.truncated is True
        assert entry.code == "a" * 500 + "\n... [truncated]"

    def test_validation_and_apply(self, session):
        assert session.log_validation("syntax", False, "Unbalanced").level == "warn"

        entry = session.log_apply(["src/App.tsx", "src/Home.tsx"], "Fixed imports")
        assert entry.details["file_count"] == 2

    def test_max_entries(self, mock_logger):
        session = RemediationSession("fp", "src/App.tsx", logger=mock_logger, max_entries=3)
        for i in range(5):
            session.log("info", "timing", f"event {i}", "")

        assert [e.title for e in session.entries] == ["event 2", "event 3", "event 4"]


class TestAIEvents:
    """Test AI request/response logging"""

    def test_request_response_pair(self, session, mock_logger):
        request_id = session.log_ai_request("ai-quick", "Fix this", "system", "mock-model", ["src/Card.tsx"])
        entry = session.log_ai_response(request_id, True, "x" * 40, 1500)

        assert request_id.startswith("req-")
        assert session.ai_requests[0].context_files == ["src/Card.tsx"]
        assert session.ai_responses[0].request_id == request_id
        assert session.ai_responses[0].token_estimate == 10
        assert entry.message == "1.50s | ~10 tokens"
        assert mock_logger.log_ai_event.call_args.args == ("ai-quick", "response")

    def test_failed_response(self, session, mock_logger):
        request_id = session.log_ai_request("ai-full", "Fix this")
        entry = session.log_ai_response(request_id, False, "Timeout", 2000)

        assert entry.level == "error"
        assert entry.message == "Timeout"
        assert session.ai_responses[0].error == "Timeout"
        assert session.ai_responses[0].token_estimate is None
        assert mock_logger.log_ai_event.call_args.args == ("ai-full", "failure")

    def test_long_prompt_truncated(self, session):
        session.log_ai_request("ai-full", "p" * 400)
        entry = session.entries[-1]

        assert entry.truncated is True
        assert entry.code.endswith("... [truncated]")

    def test_unknown_request(self, session, mock_logger):
        session.log_ai_response("req-missing", True, "ok", 10)
        assert mock_logger.log_ai_event.call_args.args[0] == "unknown"


class TestListeners:

    def test_subscribe_and_unsubscribe(self, session):
        received = []
        unsubscribe = session.subscribe(received.append)

        session.log("info", "timing", "one", "")
        unsubscribe()
        session.log("info", "timing", "two", "")

        assert [e.title for e in received] == ["one"]

    def test_listener_failure_is_contained(self, session, mock_logger):
        def broken(entry):
            raise RuntimeError("panel closed")

        received = []
        session.subscribe(broken)
        session.subscribe(received.append)

        session.log("info", "timing", "event", "")

        assert len(received) == 1
        mock_logger.warning.assert_called_once()

    def test_unsubscribe_twice(self, session):
        unsubscribe = session.subscribe(lambda entry: None)
        unsubscribe()
        unsubscribe()
