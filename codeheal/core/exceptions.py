"""
Custom Exceptions for CodeHeal
==============================

Use these instead of generic Exception to:
1. Make errors more specific and debuggable
2. Let the remediation engine tell caller mistakes apart from strategy failures
3. Provide meaningful error messages to callers

Usage:
    from codeheal.core.exceptions import RemediationConfigError

    if source_tree is None:
        raise RemediationConfigError("No source tree supplied")

    try:
        await runner.run(ctx)
    except StrategyTimeoutError as e:
        logger.warning(f"Strategy timed out: {e}")
"""

from typing import Optional, Any, Dict


class CodeHealError(Exception):
    """Base exception for all CodeHeal errors"""

    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details
        }


# ============================================
# Remediation Errors
# ============================================

class RemediationConfigError(CodeHealError):
    """Caller supplied an unusable remediation request"""

    def __init__(self, message: str = "Invalid remediation request"):
        super().__init__(message, code="INVALID_REQUEST")


class StrategyTimeoutError(CodeHealError):
    """A strategy did not finish within its time budget"""

    def __init__(self, strategy: str, timeout_ms: int):
        super().__init__(
            f"Strategy {strategy} exceeded {timeout_ms}ms",
            code="STRATEGY_TIMEOUT",
            details={"strategy": strategy, "timeout_ms": timeout_ms}
        )
        self.strategy = strategy
        self.timeout_ms = timeout_ms


class RemediationAbortedError(CodeHealError):
    """Remediation was cancelled by the caller"""

    def __init__(self, message: str = "Remediation aborted"):
        super().__init__(message, code="ABORTED")


# ============================================
# AI Client Errors
# ============================================

class AIClientError(CodeHealError):
    """AI provider call failed"""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="AI_CLIENT_ERROR", details=details)


class AIProviderNotConfiguredError(AIClientError):
    """No API key / provider available"""

    def __init__(self, provider: str = "anthropic"):
        super().__init__(
            f"AI provider '{provider}' is not configured",
            details={"provider": provider}
        )
        self.code = "AI_NOT_CONFIGURED"
