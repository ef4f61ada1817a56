"""
Remediation Engine - single entry point for error remediation

Escalates through strategies from cheapest to most expensive:
- local-simple     FREE  fixer chain on the target file
- local-multifile  FREE  bare-specifier rewrite across files (import errors)
- local-proactive  FREE  reserved slot
- ai-quick         AI    target file only
- ai-full          AI    target + related files + log tail
- ai-iterative     AI    several rounds with failure feedback
- ai-regenerate    AI    rewrite the component from scratch

Features:
- Circuit breaker on repeatedly failing errors (AttemptLedger)
- Per-strategy and total time budgets
- Every candidate re-validated before it is returned
- Efficacy records (FixAnalytics)
"""

import asyncio
import re
import time
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set

from codeheal.core.config import Settings, settings as default_settings
from codeheal.core.exceptions import RemediationAbortedError, RemediationConfigError, StrategyTimeoutError
from codeheal.core.logging_config import logger
from codeheal.services.remediation.analytics import FixAnalytics, fix_analytics
from codeheal.services.remediation.analyzer import ErrorAnalyzer, error_analyzer, normalize_project_path
from codeheal.services.remediation.ledger import AttemptLedger, attempt_ledger, fingerprint
from codeheal.services.remediation.local_fixes import LocalFixLibrary
from codeheal.services.remediation.models import (
    CostClass,
    ErrorCategory,
    FixResult,
    FixStrategy,
    ParsedError,
    RemediationRequest,
    RemediationState,
)
from codeheal.services.remediation.prompts import PromptBuilder, prompt_builder as default_prompt_builder
from codeheal.services.remediation.scanner import is_syntactically_valid
from codeheal.services.remediation.session import RemediationSession, SessionFactory
from codeheal.services.remediation.strategies import (
    AIClient,
    AIFullStrategy,
    AIIterativeStrategy,
    AIQuickStrategy,
    AIRegenerateStrategy,
    LocalMultiFileStrategy,
    LocalProactiveStrategy,
    LocalSimpleStrategy,
    StrategyContext,
    StrategyDescriptor,
    StrategyOutcome,
)
from codeheal.services.remediation.strategies.base import Validator


_PATH_TOKEN_RE = re.compile(r"(?:at\s+)?([^:\s()'\"`]+\.(?:tsx?|jsx?|mjs|cjs))")
_BARE_SRC_RE = re.compile(r"[\"']?(src/[\w./-]+)[\"']?", re.I)


def detect_target_file(error_text: str, tree: Dict[str, str], default: Optional[str] = None) -> str:
    """
    Infer which file the error is about.

    1. A source path in the error/stack that exists in the tree
    2. A file whose content contains the bare "src/..." specifier
    3. The default target file
    """
    for token in _PATH_TOKEN_RE.findall(error_text or ""):
        clean = token.split("?")[0]
        for candidate in (clean, clean.lstrip("/"), normalize_project_path(clean)):
            if candidate in tree:
                return candidate

    bare = _BARE_SRC_RE.search(error_text or "")
    if bare:
        for path, content in tree.items():
            if content and bare.group(1) in content:
                return path

    return default or default_settings.AUTOFIX_DEFAULT_TARGET_FILE


@dataclass(eq=False)
class _Invocation:
    """Mutable state of one in-flight fix() call"""
    aborted: bool = False
    task: Optional["asyncio.Future"] = None


@dataclass
class _Run:
    """Bookkeeping for the strategy loop"""
    fingerprint: str
    category: ErrorCategory
    started: float
    attempts: int = 0
    last_strategy: Optional[FixStrategy] = None
    tried: List[FixStrategy] = field(default_factory=list)

    @property
    def elapsed_ms(self) -> int:
        return int((time.monotonic() - self.started) * 1000)


class RemediationEngine:
    """
    Multi-strategy error remediation.

    Usage:
        engine = RemediationEngine(ai_client=ClaudeClient())
        result = await engine.fix(RemediationRequest(
            error_message="useState is not defined",
            source_tree={"src/App.tsx": code},
        ))

        if result.success:
            for path, content in result.fixed_files.items():
                ...
    """

    def __init__(
        self,
        ai_client: Optional[AIClient] = None,
        validator: Optional[Validator] = None,
        ledger: Optional[AttemptLedger] = None,
        analytics: Optional[FixAnalytics] = None,
        analyzer: Optional[ErrorAnalyzer] = None,
        local_fixes: Optional[LocalFixLibrary] = None,
        prompt_builder: Optional[PromptBuilder] = None,
        session_factory: Optional[SessionFactory] = None,
        settings: Optional[Settings] = None,
        strategies: Optional[List[StrategyDescriptor]] = None
    ):
        """
        Args:
            ai_client: Object with `async generate(prompt, system_instruction, response_format)`;
                None disables the ai-* strategies (they fail fast)
            validator: Syntax predicate applied to every candidate
            ledger: Attempt history / circuit breaker (process-wide default)
            analytics: Efficacy record sink (process-wide default)
            session_factory: Builds the per-call RemediationSession
            strategies: Custom descriptor table (default: the seven built-ins)
        """
        self.settings = settings or default_settings
        self.ai_client = ai_client
        self.validator: Validator = validator or is_syntactically_valid
        self.ledger = ledger or attempt_ledger
        self.analytics = analytics or fix_analytics
        self.analyzer = analyzer or error_analyzer
        self.local_fixes = local_fixes or LocalFixLibrary(
            validator=self.validator,
            similarity_threshold=self.settings.AUTOFIX_SIMILARITY_THRESHOLD,
        )
        self.prompt_builder = prompt_builder or default_prompt_builder
        self.session_factory: SessionFactory = session_factory or (
            lambda fp, target, message: RemediationSession(fp, target, message)
        )
        self.strategies = strategies if strategies is not None else self._default_strategies()

        self._active: Set[_Invocation] = set()

    def _default_strategies(self) -> List[StrategyDescriptor]:
        s = self.settings
        local_timeout = s.AUTOFIX_LOCAL_FIX_TIMEOUT_MS
        table = [
            (FixStrategy.LOCAL_SIMPLE, LocalSimpleStrategy(self.local_fixes), CostClass.FREE,
             local_timeout, "Quick fix", None),
            (FixStrategy.LOCAL_MULTIFILE, LocalMultiFileStrategy(self.local_fixes), CostClass.FREE,
             local_timeout, "Multi-file fix", frozenset({ErrorCategory.IMPORT})),
            (FixStrategy.LOCAL_PROACTIVE, LocalProactiveStrategy(), CostClass.FREE,
             local_timeout, "Code analysis", None),
            (FixStrategy.AI_QUICK, AIQuickStrategy(self.ai_client, self.prompt_builder), CostClass.AI,
             s.AUTOFIX_AI_QUICK_TIMEOUT_MS, "Quick AI", None),
            (FixStrategy.AI_FULL, AIFullStrategy(self.ai_client, self.prompt_builder), CostClass.AI,
             s.AUTOFIX_AI_FULL_TIMEOUT_MS, "AI analysis", None),
            (FixStrategy.AI_ITERATIVE,
             AIIterativeStrategy(self.ai_client, self.prompt_builder,
                                 max_rounds=s.AUTOFIX_MAX_ITERATIVE_ROUNDS,
                                 round_timeout_ms=s.AUTOFIX_AI_FULL_TIMEOUT_MS),
             CostClass.AI, s.AUTOFIX_AI_ITERATIVE_TIMEOUT_MS, "Deep AI", None),
            (FixStrategy.AI_REGENERATE, AIRegenerateStrategy(self.ai_client, self.prompt_builder), CostClass.AI,
             s.AUTOFIX_AI_ITERATIVE_TIMEOUT_MS, "Regenerating", None),
        ]
        return [
            StrategyDescriptor(
                name=name,
                runner=runner,
                cost_class=cost_class,
                timeout_ms=timeout_ms,
                label=label,
                progress=round(index / len(table) * 100),
                only_for=only_for,
            )
            for index, (name, runner, cost_class, timeout_ms, label, only_for) in enumerate(table)
        ]

    # =========================================================================
    # Public API
    # =========================================================================

    async def fix(self, request: RemediationRequest) -> FixResult:
        """
        Run the remediation pipeline once.

        Raises:
            RemediationConfigError: no source tree to infer the target file from
        """
        tree = request.source_tree
        if tree is None:
            raise RemediationConfigError("No source tree supplied")
        if not tree and not request.target_file:
            raise RemediationConfigError("Empty source tree and no target file")

        error_fingerprint = fingerprint(request.error_message)
        target_file = request.target_file or detect_target_file(
            f"{request.error_message}\n{request.error_stack}",
            tree,
            self.settings.AUTOFIX_DEFAULT_TARGET_FILE,
        )

        invocation = _Invocation()
        self._active.add(invocation)
        try:
            async with self.ledger.exclusive(error_fingerprint):
                session = self.session_factory(error_fingerprint, target_file, request.error_message)
                session.start()
                try:
                    return await self._fix(request, tree, error_fingerprint, target_file, session, invocation)
                finally:
                    if not session.ended:
                        session.end(False, "Remediation interrupted")
        finally:
            self._active.discard(invocation)

    def abort(self) -> None:
        """Cancel every in-flight fix() call on this engine (stops waiting only)"""
        for invocation in list(self._active):
            invocation.aborted = True
            if invocation.task is not None and not invocation.task.done():
                invocation.task.cancel()

    # =========================================================================
    # Pipeline
    # =========================================================================

    async def _fix(
        self,
        request: RemediationRequest,
        tree: Dict[str, str],
        error_fingerprint: str,
        target_file: str,
        session: RemediationSession,
        invocation: _Invocation
    ) -> FixResult:
        started = time.monotonic()

        # ANALYZING
        decision = self.ledger.should_skip(error_fingerprint)
        if decision.skip:
            session.log("info", "analyze", "Skipping error", decision.reason or "Previously failed")
            session.end(False, f"Skipped: {decision.reason}")
            return FixResult(
                success=False,
                fixed_files={},
                description=f"Skipped: {decision.reason}",
                strategy=None,
                attempts=0,
                time_ms=int((time.monotonic() - started) * 1000),
                error=decision.reason,
                state=RemediationState.SKIPPED,
            )

        parsed = self.analyzer.analyze(request.error_message, request.error_stack, tree)
        session.log_analysis(parsed)

        if parsed.is_ignorable:
            session.log("info", "analyze", "Ignorable error", "This error type is transient/ignorable")
            session.end(False, "Ignorable error")
            return FixResult(
                success=False,
                fixed_files={},
                description="Ignorable error",
                strategy=None,
                attempts=0,
                time_ms=int((time.monotonic() - started) * 1000),
                state=RemediationState.IGNORABLE,
                category=parsed.category,
            )

        # STRATEGY_LOOP
        skip = set(FixStrategy(s) for s in request.skip_strategies)
        plan = [d for d in self.strategies if d.eligible(parsed.category) and d.name not in skip]
        session.log("info", "strategy", "Strategy plan",
                    f"Will try: {' -> '.join(d.name.value for d in plan)}",
                    {"strategies": [d.name.value for d in plan], "category": parsed.category.value})

        run = _Run(fingerprint=error_fingerprint, category=parsed.category, started=started)
        timeout_ms = request.timeout_ms or self.settings.AUTOFIX_TOTAL_TIMEOUT_MS
        max_attempts = request.max_attempts or self.settings.AUTOFIX_MAX_ATTEMPTS
        ctx = self._build_context(request, tree, parsed, target_file, session, run, timeout_ms)
        abort_error: Optional[RemediationAbortedError] = None

        for descriptor in plan:
            if invocation.aborted:
                break
            if run.elapsed_ms > timeout_ms:
                session.log("warn", "timing", "Timeout", f"Exceeded {timeout_ms}ms timeout")
                break
            if run.attempts >= max_attempts:
                session.log("warn", "strategy", "Attempt limit", f"Reached {max_attempts} attempts")
                break

            run.attempts += 1
            run.last_strategy = descriptor.name
            run.tried.append(descriptor.name)
            self._notify_strategy(request, descriptor.name)
            self._notify_progress(request, descriptor.label, descriptor.progress)
            session.log_strategy(descriptor.name.value, "start", f"Attempting {descriptor.label}")

            try:
                outcome = await self._run_strategy(descriptor, ctx, invocation)
            except StrategyTimeoutError as e:
                logger.warning(f"[RemediationEngine] {e.message}", extra=e.details)
                session.log_strategy(descriptor.name.value, "fail", f"Timed out after {e.timeout_ms}ms")
                continue
            except RemediationAbortedError as e:
                abort_error = e
                break
            except Exception as e:
                logger.log_error_with_context(e, f"strategy {descriptor.name.value}",
                                              strategy=descriptor.name.value)
                session.log("error", "strategy", f"{descriptor.name.value} exception", str(e))
                continue

            if outcome.success and outcome.fixed_files:
                invalid = [path for path, code in outcome.fixed_files.items() if not self.validator(code)]
                if invalid:
                    session.log_validation("syntax", False, f"Rejected invalid output for {', '.join(invalid)}")
                    session.log_strategy(descriptor.name.value, "fail", "Candidate failed validation")
                    continue
                return self._succeed(run, descriptor.name, outcome, session)

            session.log_strategy(descriptor.name.value, "fail", outcome.error or "No fix found")

        if invocation.aborted:
            abort_error = abort_error or RemediationAbortedError()
            session.end(False, "Aborted")
            return FixResult(
                success=False,
                fixed_files={},
                description="Aborted",
                strategy=run.last_strategy,
                attempts=run.attempts,
                time_ms=run.elapsed_ms,
                error=abort_error.message,
                state=RemediationState.ABORTED,
                category=parsed.category,
            )

        return self._exhaust(run, plan, session)

    def _build_context(
        self,
        request: RemediationRequest,
        tree: Dict[str, str],
        parsed: ParsedError,
        target_file: str,
        session: RemediationSession,
        run: _Run,
        timeout_ms: int
    ) -> StrategyContext:
        code = tree.get(target_file) or tree.get(self.settings.AUTOFIX_DEFAULT_TARGET_FILE) or ""
        return StrategyContext(
            error_message=request.error_message,
            error_stack=request.error_stack,
            parsed=parsed,
            target_file=target_file,
            code=code,
            tree=tree,
            validator=self.validator,
            session=session,
            prior_log_tail=list(request.prior_log_tail),
            tech_stack_context=request.tech_stack_context,
            time_left=lambda: (timeout_ms - run.elapsed_ms) / 1000,
            report_progress=lambda stage, pct: self._notify_progress(request, stage, pct),
        )

    async def _run_strategy(
        self,
        descriptor: StrategyDescriptor,
        ctx: StrategyContext,
        invocation: _Invocation
    ) -> StrategyOutcome:
        task = asyncio.ensure_future(descriptor.runner.run(ctx))
        invocation.task = task
        try:
            return await asyncio.wait_for(task, timeout=descriptor.timeout_ms / 1000)
        except asyncio.TimeoutError:
            raise StrategyTimeoutError(descriptor.name.value, descriptor.timeout_ms) from None
        except asyncio.CancelledError:
            if invocation.aborted:
                raise RemediationAbortedError() from None
            raise
        finally:
            invocation.task = None

    def _succeed(
        self,
        run: _Run,
        strategy: FixStrategy,
        outcome: StrategyOutcome,
        session: RemediationSession
    ) -> FixResult:
        time_ms = run.elapsed_ms
        self.ledger.record_attempt(run.fingerprint, strategy, True)
        self.analytics.record(run.fingerprint, run.category, strategy, True, time_ms)

        session.log_strategy(strategy.value, "success", outcome.description)
        session.log_apply(list(outcome.fixed_files), outcome.description)
        session.end(True, f"Fixed with {strategy.value} in {time_ms / 1000:.2f}s")

        return FixResult(
            success=True,
            fixed_files=dict(outcome.fixed_files),
            description=outcome.description,
            strategy=strategy,
            attempts=run.attempts,
            time_ms=time_ms,
            state=RemediationState.FIXED,
            category=run.category,
        )

    def _exhaust(self, run: _Run, plan: List[StrategyDescriptor], session: RemediationSession) -> FixResult:
        time_ms = run.elapsed_ms
        self.ledger.record_attempt(run.fingerprint, None, False)
        self.analytics.record(run.fingerprint, run.category, run.last_strategy, False, time_ms)

        session.end(False, f"All {len(plan)} strategies exhausted")

        return FixResult(
            success=False,
            fixed_files={},
            description="All strategies exhausted",
            strategy=run.last_strategy,
            attempts=run.attempts,
            time_ms=time_ms,
            error="All strategies exhausted",
            state=RemediationState.EXHAUSTED,
            category=run.category,
        )

    # =========================================================================
    # Callbacks
    # =========================================================================

    @staticmethod
    def _notify_progress(request: RemediationRequest, stage: str, progress: int) -> None:
        if request.on_progress is None:
            return
        try:
            request.on_progress(stage, progress)
        except Exception as e:
            logger.warning(f"[RemediationEngine] Progress callback failed: {e}")

    @staticmethod
    def _notify_strategy(request: RemediationRequest, strategy: FixStrategy) -> None:
        if request.on_strategy_change is None:
            return
        try:
            request.on_strategy_change(strategy)
        except Exception as e:
            logger.warning(f"[RemediationEngine] Strategy callback failed: {e}")
