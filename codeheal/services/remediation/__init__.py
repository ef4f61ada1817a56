"""
Remediation - automated error fixing for generated React/TypeScript projects

Escalating strategy pipeline:
- Local fixes (FREE, instant, pattern-based)
- AI fixes (quick -> full context -> iterative -> regenerate)

Features:
- Error analysis (NO AI, <1ms)
- Circuit breaker on hopeless errors
- Per-strategy and total time budgets
- Efficacy analytics
"""

from typing import Dict, Optional

from codeheal.services.remediation.models import (
    ErrorCategory,
    FixResult,
    FixStrategy,
    ParsedError,
    RemediationRequest,
    RemediationState,
)
from codeheal.services.remediation.analyzer import ErrorAnalyzer, error_analyzer
from codeheal.services.remediation.local_fixes import LocalFixLibrary, local_fix_library, try_local_fix
from codeheal.services.remediation.prompts import PromptBuilder, PromptKind, build_prompt_for_strategy
from codeheal.services.remediation.ledger import AttemptLedger, attempt_ledger, fingerprint
from codeheal.services.remediation.analytics import FixAnalytics, fix_analytics
from codeheal.services.remediation.engine import RemediationEngine, detect_target_file


_engine: Optional[RemediationEngine] = None


def get_engine() -> RemediationEngine:
    """
    Default engine sharing the process-wide ledger and analytics.

    Uses the Anthropic client when ANTHROPIC_API_KEY is configured,
    otherwise runs local strategies only.
    """
    global _engine
    if _engine is None:
        from codeheal.core.config import settings
        from codeheal.utils.claude_client import ClaudeClient

        ai_client = ClaudeClient() if settings.ANTHROPIC_API_KEY else None
        _engine = RemediationEngine(ai_client=ai_client)
    return _engine


async def fix_error(error_message: str, source_tree: Dict[str, str], **kwargs) -> FixResult:
    """
    Fix an error with the default engine.

    Usage:
        result = await fix_error("useState is not defined", {"src/App.tsx": code})
    """
    request = RemediationRequest(error_message=error_message, source_tree=source_tree, **kwargs)
    return await get_engine().fix(request)


__all__ = [
    'ErrorCategory',
    'FixResult',
    'FixStrategy',
    'ParsedError',
    'RemediationRequest',
    'RemediationState',
    'ErrorAnalyzer',
    'error_analyzer',
    'LocalFixLibrary',
    'local_fix_library',
    'try_local_fix',
    'PromptBuilder',
    'PromptKind',
    'build_prompt_for_strategy',
    'AttemptLedger',
    'attempt_ledger',
    'fingerprint',
    'FixAnalytics',
    'fix_analytics',
    'RemediationEngine',
    'detect_target_file',
    'get_engine',
    'fix_error',
]
