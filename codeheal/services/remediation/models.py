"""
Remediation data model

Plain dataclasses and string enums shared by the analyzer, the local fixers,
the strategy runners and the engine.
"""

import time
from enum import Enum
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple


# Sentinel key used by single-file fixers for "the file being fixed"
CURRENT_FILE = "current"


class ErrorCategory(str, Enum):
    """Error categories - determine which strategies are eligible"""
    IMPORT = "import"
    SYNTAX = "syntax"
    RUNTIME_DEREF = "runtime-deref"
    UNDEFINED_REF = "undefined-ref"
    MISSING_EXPORT = "missing-export"
    NETWORK = "network"
    TRANSIENT = "transient"
    OTHER = "other"


class FixStrategy(str, Enum):
    """Fix strategies in escalation order (cheapest first)"""
    LOCAL_SIMPLE = "local-simple"
    LOCAL_MULTIFILE = "local-multifile"
    LOCAL_PROACTIVE = "local-proactive"
    AI_QUICK = "ai-quick"
    AI_FULL = "ai-full"
    AI_ITERATIVE = "ai-iterative"
    AI_REGENERATE = "ai-regenerate"


class CostClass(str, Enum):
    """Cost class of a strategy"""
    FREE = "free"
    AI = "ai"


class RemediationState(str, Enum):
    """Terminal state of a single fix() call"""
    FIXED = "fixed"
    SKIPPED = "skipped"
    IGNORABLE = "ignorable"
    EXHAUSTED = "exhausted"
    ABORTED = "aborted"


# Categories that never reach an AI strategy
NON_AI_CATEGORIES = frozenset({ErrorCategory.NETWORK, ErrorCategory.TRANSIENT})


@dataclass(frozen=True)
class ParsedError:
    """Structured, immutable view of a raw error"""
    raw_message: str
    stack: str
    type: str
    category: ErrorCategory
    confidence: float
    is_auto_fixable: bool
    is_ignorable: bool
    suggested_fix: Optional[str] = None

    # Extracted details
    identifier: Optional[str] = None
    import_path: Optional[str] = None
    module: Optional[str] = None
    correct_export: Optional[str] = None
    file: Optional[str] = None
    line: Optional[int] = None
    column: Optional[int] = None
    related_files: Tuple[str, ...] = ()


@dataclass
class LocalFixResult:
    """Result of a deterministic fixer"""
    success: bool
    fixed_files: Dict[str, str] = field(default_factory=dict)
    description: str = ""
    fix_type: str = ""

    @classmethod
    def no_fix(cls, description: str = "No local fix available") -> "LocalFixResult":
        return cls(success=False, description=description)


@dataclass
class FixResult:
    """Terminal result of a remediation run"""
    success: bool
    fixed_files: Dict[str, str]
    description: str
    strategy: Optional[FixStrategy]
    attempts: int
    time_ms: int
    error: Optional[str] = None
    state: RemediationState = RemediationState.EXHAUSTED
    category: Optional[ErrorCategory] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "fixed_files": dict(self.fixed_files),
            "description": self.description,
            "strategy": self.strategy.value if self.strategy else None,
            "attempts": self.attempts,
            "time_ms": self.time_ms,
            "error": self.error,
            "state": self.state.value,
            "category": self.category.value if self.category else None,
        }


@dataclass(frozen=True)
class AttemptRecord:
    """One remediation attempt for a fingerprint"""
    fingerprint: str
    strategy: Optional[FixStrategy]
    success: bool
    timestamp: float = field(default_factory=time.time)


@dataclass(frozen=True)
class AnalyticsRecord:
    """Efficacy record: category x strategy x outcome x duration"""
    fingerprint: str
    category: ErrorCategory
    strategy: Optional[FixStrategy]
    success: bool
    duration_ms: int
    timestamp: float = field(default_factory=time.time)


ProgressCallback = Callable[[str, int], Any]
StrategyCallback = Callable[[FixStrategy], Any]


@dataclass
class RemediationRequest:
    """Input of RemediationEngine.fix()"""
    error_message: str
    source_tree: Optional[Dict[str, str]]
    error_stack: str = ""
    target_file: Optional[str] = None
    prior_log_tail: List[str] = field(default_factory=list)
    tech_stack_context: str = ""
    on_progress: Optional[ProgressCallback] = None
    on_strategy_change: Optional[StrategyCallback] = None
    max_attempts: Optional[int] = None
    timeout_ms: Optional[int] = None
    skip_strategies: List[FixStrategy] = field(default_factory=list)
