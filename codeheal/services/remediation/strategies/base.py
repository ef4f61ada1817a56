"""
Strategy plumbing shared by the local and AI runners

A strategy is described by a StrategyDescriptor (name, runner, cost class,
timeout, progress label). The engine iterates the descriptor table in order
and awaits each runner against its own timeout.
"""

from dataclasses import dataclass, field
from typing import Callable, Dict, FrozenSet, List, Optional, Protocol

from codeheal.services.remediation.models import (
    NON_AI_CATEGORIES,
    CostClass,
    ErrorCategory,
    FixStrategy,
    ParsedError,
)
from codeheal.services.remediation.session import RemediationSession


Validator = Callable[[str], bool]


@dataclass
class StrategyContext:
    """Per-call inputs handed to every runner (read-only by convention)"""
    error_message: str
    error_stack: str
    parsed: ParsedError
    target_file: str
    code: str                          # Pre-fix content of the target file
    tree: Dict[str, str]
    validator: Validator
    session: RemediationSession
    prior_log_tail: List[str] = field(default_factory=list)
    tech_stack_context: str = ""
    # Seconds left before the overall deadline
    time_left: Callable[[], float] = lambda: float("inf")
    report_progress: Callable[[str, int], None] = lambda stage, pct: None


@dataclass
class StrategyOutcome:
    """What a runner hands back to the engine"""
    success: bool
    fixed_files: Dict[str, str] = field(default_factory=dict)
    description: str = ""
    error: Optional[str] = None

    @classmethod
    def fixed(cls, fixed_files: Dict[str, str], description: str) -> "StrategyOutcome":
        return cls(success=True, fixed_files=dict(fixed_files), description=description)

    @classmethod
    def failed(cls, error: str) -> "StrategyOutcome":
        return cls(success=False, description=error, error=error)


class StrategyRunner(Protocol):
    async def run(self, ctx: StrategyContext) -> StrategyOutcome:
        ...


@dataclass(frozen=True)
class StrategyDescriptor:
    """One row of the strategy table"""
    name: FixStrategy
    runner: StrategyRunner
    cost_class: CostClass
    timeout_ms: int
    label: str
    progress: int
    # Restrict to these categories (None = every category)
    only_for: Optional[FrozenSet[ErrorCategory]] = None

    def eligible(self, category: ErrorCategory) -> bool:
        if self.cost_class == CostClass.AI and category in NON_AI_CATEGORIES:
            return False
        if self.only_for is not None and category not in self.only_for:
            return False
        return True
