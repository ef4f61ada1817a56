"""
Remediation Session - structured event log for one fix() call

Every pipeline event (analysis, strategy transitions, local fixes, AI
requests and responses, validation, apply) goes through the codeheal logger
with `extra` fields and is also kept as a bounded in-memory entry list that
listeners (UI panels, the CLI) can subscribe to.
"""

import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from codeheal.core.logging_config import (
    CodeHealLogger,
    generate_session_id,
    logger as default_logger,
    set_fingerprint,
    set_session_id,
    set_target_file,
)
from codeheal.services.remediation.models import ParsedError


MAX_ENTRIES = 500
CODE_PREVIEW_CHARS = 500
PROMPT_PREVIEW_CHARS = 300

# Levels used by session entries; "success" is logged as INFO
_LOG_LEVELS = {
    "debug": "debug",
    "info": "info",
    "success": "info",
    "warn": "warning",
    "error": "error",
}


@dataclass
class SessionEntry:
    """One event in the session log"""
    id: str
    timestamp: float
    level: str                       # debug, info, success, warn, error
    category: str                    # analyze, local-fix, ai-request, ai-response, strategy, validation, apply, timing
    title: str
    message: str
    details: Dict[str, Any] = field(default_factory=dict)
    duration_ms: Optional[float] = None
    code: Optional[str] = None
    truncated: bool = False


@dataclass
class AIRequestLog:
    id: str
    timestamp: float
    strategy: str
    prompt: str
    system_instruction: str
    model: str
    target_file: str
    context_files: List[str] = field(default_factory=list)


@dataclass
class AIResponseLog:
    id: str
    request_id: str
    timestamp: float
    success: bool
    duration_ms: float
    response: Optional[str] = None
    error: Optional[str] = None
    token_estimate: Optional[int] = None


SessionListener = Callable[[SessionEntry], Any]


class RemediationSession:
    """
    Logging sink for one remediation run.

    Usage:
        session = RemediationSession(fingerprint, "src/App.tsx", error_message)
        session.start()
        session.log_strategy("local-simple", "start", "Attempting Quick fix")
        ...
        session.end(success=True, summary="Added import: useState from 'react'")
    """

    def __init__(
        self,
        fingerprint: str,
        target_file: str,
        error_message: str = "",
        logger: Optional[CodeHealLogger] = None,
        max_entries: int = MAX_ENTRIES
    ):
        self.fingerprint = fingerprint
        self.target_file = target_file
        self.error_message = error_message
        self.logger = logger or default_logger
        self.max_entries = max_entries

        self.session_id = generate_session_id()
        self.started_at: Optional[float] = None
        self.ended_at: Optional[float] = None

        self._entries: List[SessionEntry] = []
        self._ai_requests: List[AIRequestLog] = []
        self._ai_responses: List[AIResponseLog] = []
        self._listeners: List[SessionListener] = []

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def start(self) -> str:
        self.started_at = time.time()
        set_session_id(self.session_id)
        set_fingerprint(self.fingerprint)
        set_target_file(self.target_file)

        preview = self.error_message[:100] + ("..." if len(self.error_message) > 100 else "")
        self.log("info", "analyze", "Session started", f"Fixing: {preview}", {
            "session_id": self.session_id,
            "target_file": self.target_file,
            "error_length": len(self.error_message),
        })
        return self.session_id

    def end(self, success: bool, summary: str) -> None:
        self.ended_at = time.time()
        duration_ms = self.duration_ms
        self.log(
            "success" if success else "error",
            "timing",
            "Session complete" if success else "Session failed",
            summary,
            {
                "session_id": self.session_id,
                "total_entries": len(self._entries),
                "ai_requests": len(self._ai_requests),
            },
            duration_ms=duration_ms,
        )
        self.logger.log_performance("remediation", duration_ms, threshold_ms=30000,
                                    success=success)

        set_session_id("")
        set_fingerprint("")
        set_target_file("")

    @property
    def ended(self) -> bool:
        return self.ended_at is not None

    @property
    def duration_ms(self) -> float:
        if self.started_at is None:
            return 0.0
        end = self.ended_at or time.time()
        return (end - self.started_at) * 1000

    # =========================================================================
    # Logging
    # =========================================================================

    def log(
        self,
        level: str,
        category: str,
        title: str,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        duration_ms: Optional[float] = None,
        code: Optional[str] = None
    ) -> SessionEntry:
        entry = SessionEntry(
            id=f"{self.session_id}-{uuid.uuid4().hex[:6]}",
            timestamp=time.time(),
            level=level,
            category=category,
            title=title,
            message=message,
            details=details or {},
            duration_ms=duration_ms,
            code=_truncate(code, CODE_PREVIEW_CHARS) if code else None,
            truncated=bool(code) and len(code) > CODE_PREVIEW_CHARS,
        )

        log_method = getattr(self.logger, _LOG_LEVELS.get(level, "info"))
        log_method(
            f"[{category}] {title}: {message}",
            extra={
                "event_type": "autofix_session",
                "session_category": category,
                "session_level": level,
                **{f"detail_{k}": v for k, v in entry.details.items()},
            }
        )

        self._append(entry)
        return entry

    def log_analysis(self, parsed: ParsedError) -> SessionEntry:
        return self.log(
            "info",
            "analyze",
            "Error analysis",
            f"Type: {parsed.type} | Category: {parsed.category.value} | "
            f"Confidence: {parsed.confidence * 100:.0f}%",
            {
                "type": parsed.type,
                "category": parsed.category.value,
                "confidence": parsed.confidence,
                "is_auto_fixable": parsed.is_auto_fixable,
                "suggested_fix": parsed.suggested_fix,
            },
        )

    def log_strategy(self, strategy: str, status: str, message: str) -> SessionEntry:
        """status: start | success | fail"""
        self.logger.log_strategy_event(strategy, status, message)
        level = {"success": "success", "fail": "warn"}.get(status, "info")
        entry = SessionEntry(
            id=f"{self.session_id}-{uuid.uuid4().hex[:6]}",
            timestamp=time.time(),
            level=level,
            category="strategy",
            title=f"Strategy: {strategy}",
            message=f"{status.upper()} - {message}",
            details={"strategy": strategy, "status": status},
        )
        self._append(entry)
        return entry

    def log_local_fix(self, fix_type: str, success: bool, description: str,
                      code_snippet: Optional[str] = None) -> SessionEntry:
        return self.log(
            "success" if success else "debug",
            "local-fix",
            f"Local fix: {fix_type}" if success else f"Tried: {fix_type}",
            description,
            {"fix_type": fix_type, "success": success},
            code=code_snippet,
        )

    def log_ai_request(
        self,
        strategy: str,
        prompt: str,
        system_instruction: str = "",
        model: str = "",
        context_files: Optional[List[str]] = None
    ) -> str:
        """Record an outgoing AI request; returns its request id"""
        request_id = f"req-{uuid.uuid4().hex[:8]}"
        self._ai_requests.append(AIRequestLog(
            id=request_id,
            timestamp=time.time(),
            strategy=strategy,
            prompt=prompt,
            system_instruction=system_instruction,
            model=model,
            target_file=self.target_file,
            context_files=list(context_files or []),
        ))

        self.logger.log_ai_event(strategy, "request", size=len(prompt),
                                 request_id=request_id, model=model)
        entry = SessionEntry(
            id=f"{self.session_id}-{uuid.uuid4().hex[:6]}",
            timestamp=time.time(),
            level="info",
            category="ai-request",
            title=f"AI request: {strategy}",
            message=f"Model: {model or '-'} | Target: {self.target_file}",
            details={
                "request_id": request_id,
                "prompt_length": len(prompt),
                "system_instruction_length": len(system_instruction),
                "context_files": list(context_files or []),
            },
            code=_truncate(prompt, PROMPT_PREVIEW_CHARS),
            truncated=len(prompt) > PROMPT_PREVIEW_CHARS,
        )
        self._append(entry)
        return request_id

    def log_ai_response(self, request_id: str, success: bool, response_or_error: str,
                        duration_ms: float) -> SessionEntry:
        token_estimate = round(len(response_or_error) / 4) if success else None
        self._ai_responses.append(AIResponseLog(
            id=f"resp-{uuid.uuid4().hex[:8]}",
            request_id=request_id,
            timestamp=time.time(),
            success=success,
            duration_ms=duration_ms,
            response=response_or_error if success else None,
            error=None if success else response_or_error,
            token_estimate=token_estimate,
        ))

        strategy = self._strategy_for(request_id)
        self.logger.log_ai_event(strategy, "response" if success else "failure",
                                 size=len(response_or_error) if success else 0,
                                 duration_ms=duration_ms, request_id=request_id)
        entry = SessionEntry(
            id=f"{self.session_id}-{uuid.uuid4().hex[:6]}",
            timestamp=time.time(),
            level="success" if success else "error",
            category="ai-response",
            title="AI response received" if success else "AI request failed",
            message=(
                f"{duration_ms / 1000:.2f}s | ~{token_estimate} tokens" if success else response_or_error
            ),
            details={
                "request_id": request_id,
                "response_length": len(response_or_error) if success else 0,
                "token_estimate": token_estimate,
            },
            duration_ms=duration_ms,
            code=_truncate(response_or_error, CODE_PREVIEW_CHARS) if success else None,
            truncated=success and len(response_or_error) > CODE_PREVIEW_CHARS,
        )
        self._append(entry)
        return entry

    def log_validation(self, kind: str, passed: bool, details: str) -> SessionEntry:
        """kind: syntax | verify | compare"""
        return self.log(
            "success" if passed else "warn",
            "validation",
            f"{kind} validation {'passed' if passed else 'failed'}",
            details,
            {"type": kind, "passed": passed},
        )

    def log_apply(self, files: List[str], description: str) -> SessionEntry:
        return self.log("success", "apply", "Applying fix", description,
                        {"files": list(files), "file_count": len(files)})

    # =========================================================================
    # Accessors & listeners
    # =========================================================================

    @property
    def entries(self) -> List[SessionEntry]:
        return list(self._entries)

    @property
    def ai_requests(self) -> List[AIRequestLog]:
        return list(self._ai_requests)

    @property
    def ai_responses(self) -> List[AIResponseLog]:
        return list(self._ai_responses)

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """Register a listener; returns an unsubscribe callable"""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _append(self, entry: SessionEntry) -> None:
        self._entries.append(entry)
        if len(self._entries) > self.max_entries:
            del self._entries[:len(self._entries) - self.max_entries]
        self._notify(entry)

    def _notify(self, entry: SessionEntry) -> None:
        for listener in list(self._listeners):
            try:
                listener(entry)
            except Exception as e:
                self.logger.warning(f"[RemediationSession] Listener failed: {e}")

    def _strategy_for(self, request_id: str) -> str:
        for request in reversed(self._ai_requests):
            if request.id == request_id:
                return request.strategy
        return "unknown"


def _truncate(text: str, limit: int) -> str:
    if len(text) <= limit:
        return text
    return text[:limit] + "\n... [truncated]"


SessionFactory = Callable[[str, str, str], RemediationSession]
