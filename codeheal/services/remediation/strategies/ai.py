"""
AI Fix Strategies

Escalating AI rewrites of the target file:
- ai-quick:      target file only
- ai-full:       target + related files + recent console errors
- ai-iterative:  up to N rounds, each told why the previous ones failed
- ai-regenerate: rewrite the component from scratch

Output is accepted only when it is non-empty, passes the validator and
differs from the pre-fix source. Requests are shielded: a timeout or abort
ends the wait, it does not recall a request already sent.
"""

import asyncio
import time
from typing import Any, Dict, Optional, Protocol

from codeheal.core.config import settings
from codeheal.core.logging_config import logger
from codeheal.services.remediation.context import (
    clean_generated_code,
    extract_component_name,
    get_related_files,
)
from codeheal.services.remediation.prompts import (
    PromptBuilder,
    PromptBundle,
    PromptContext,
    PromptKind,
    prompt_builder,
)
from codeheal.services.remediation.strategies.base import StrategyContext, StrategyOutcome


class AIClient(Protocol):
    async def generate(
        self,
        prompt: str,
        system_instruction: Optional[str] = None,
        response_format: str = "text"
    ) -> Any:
        ...


def extract_text(response: Any) -> str:
    """Text payload of a client response; anything else counts as empty"""
    if response is None:
        return ""
    if isinstance(response, str):
        return response
    if isinstance(response, dict):
        text = response.get("text", response.get("content"))
        return text if isinstance(text, str) else ""
    text = getattr(response, "text", None)
    return text if isinstance(text, str) else ""


def _consume_exception(task: "asyncio.Task") -> None:
    # Abandoned requests must not warn about unretrieved exceptions
    if not task.cancelled():
        task.exception()


class AIStrategy:
    """
    Base class for the ai-* runners.

    Subclasses set `name`, `kind`, `label`, `progress` and may override
    `_prompt_context` / `_accept`.
    """

    name = "ai"
    kind = PromptKind.QUICK
    label = "AI fix..."
    progress = 30
    success_description = "AI fix"
    with_related_files = False
    with_logs = False

    def __init__(self, client: Optional[AIClient] = None, builder: Optional[PromptBuilder] = None):
        self.client = client
        self.builder = builder or prompt_builder

    @property
    def model_name(self) -> str:
        return getattr(self.client, "model", "") or ""

    async def run(self, ctx: StrategyContext) -> StrategyOutcome:
        ctx.report_progress(self.label, self.progress)

        if not ctx.code:
            return StrategyOutcome.failed("No code found")
        if self.client is None:
            return StrategyOutcome.failed("No AI provider configured")

        related = self._related_files(ctx)
        bundle = self.builder.build_prompt_for_strategy(self.kind, self._prompt_context(ctx, related))
        request_id = ctx.session.log_ai_request(
            self.name,
            bundle.prompt,
            bundle.system_instruction,
            self.model_name,
            context_files=list(related),
        )

        text = await self._request(ctx, bundle, request_id)
        fixed_code = clean_generated_code(text)

        if fixed_code and ctx.validator(fixed_code) and self._accept(fixed_code, ctx):
            ctx.session.log_validation("syntax", True, "AI response is valid code")
            return StrategyOutcome.fixed({ctx.target_file: fixed_code}, self._describe(ctx))

        ctx.session.log_validation(
            "syntax", False, "Code unchanged or invalid" if fixed_code else "Empty response"
        )
        return StrategyOutcome.failed("AI fix invalid")

    # =========================================================================
    # Hooks
    # =========================================================================

    def _related_files(self, ctx: StrategyContext) -> Dict[str, str]:
        if not self.with_related_files:
            return {}
        return get_related_files(ctx.parsed, ctx.code, ctx.tree, ctx.target_file)

    def _prompt_context(self, ctx: StrategyContext, related: Dict[str, str]) -> PromptContext:
        return PromptContext(
            error_message=ctx.error_message,
            error_stack=ctx.error_stack,
            target_file=ctx.target_file,
            target_file_content=ctx.code,
            parsed_error=ctx.parsed,
            related_files=related,
            logs=list(ctx.prior_log_tail) if self.with_logs else [],
            tech_stack_context=ctx.tech_stack_context,
        )

    def _accept(self, fixed_code: str, ctx: StrategyContext) -> bool:
        return fixed_code != ctx.code.strip()

    def _describe(self, ctx: StrategyContext) -> str:
        return self.success_description

    # =========================================================================
    # Transport
    # =========================================================================

    async def _request(
        self,
        ctx: StrategyContext,
        bundle: PromptBundle,
        request_id: str,
        timeout_s: Optional[float] = None
    ) -> str:
        """
        Send one request and return its text.

        Raises asyncio.TimeoutError when `timeout_s` elapses; client errors
        are logged on the session and re-raised for the engine to contain.
        """
        task = asyncio.ensure_future(self.client.generate(
            prompt=bundle.prompt,
            system_instruction=bundle.system_instruction,
            response_format="text",
        ))
        task.add_done_callback(_consume_exception)

        start_time = time.time()
        try:
            if timeout_s is None:
                response = await asyncio.shield(task)
            else:
                response = await asyncio.wait_for(asyncio.shield(task), timeout=timeout_s)
        except asyncio.TimeoutError:
            ctx.session.log_ai_response(request_id, False, "Request timed out",
                                        (time.time() - start_time) * 1000)
            raise
        except asyncio.CancelledError:
            ctx.session.log_ai_response(request_id, False, "Request abandoned",
                                        (time.time() - start_time) * 1000)
            raise
        except Exception as e:
            ctx.session.log_ai_response(request_id, False, str(e), (time.time() - start_time) * 1000)
            raise

        text = extract_text(response)
        ctx.session.log_ai_response(request_id, True, text, (time.time() - start_time) * 1000)
        return text


class AIQuickStrategy(AIStrategy):
    name = "ai-quick"
    kind = PromptKind.QUICK
    label = "Quick AI fix..."
    progress = 30
    success_description = "Quick AI fix"


class AIFullStrategy(AIStrategy):
    name = "ai-full"
    kind = PromptKind.FULL
    label = "Full AI analysis..."
    progress = 50
    success_description = "AI fix with full context"
    with_related_files = True
    with_logs = True


class AIIterativeStrategy(AIStrategy):
    """
    Up to `max_rounds` requests, each with its own timeout. Every failed
    round adds its reason (timeout, empty response, invalid syntax,
    unchanged, client error) to the next prompt.
    """

    name = "ai-iterative"
    kind = PromptKind.ITERATIVE
    label = "Iterative AI..."
    progress = 70
    with_related_files = True
    with_logs = True

    def __init__(
        self,
        client: Optional[AIClient] = None,
        builder: Optional[PromptBuilder] = None,
        max_rounds: Optional[int] = None,
        round_timeout_ms: Optional[int] = None
    ):
        super().__init__(client, builder)
        self.max_rounds = settings.AUTOFIX_MAX_ITERATIVE_ROUNDS if max_rounds is None else max_rounds
        self.round_timeout_ms = (
            settings.AUTOFIX_AI_FULL_TIMEOUT_MS if round_timeout_ms is None else round_timeout_ms
        )

    async def run(self, ctx: StrategyContext) -> StrategyOutcome:
        ctx.report_progress(self.label, self.progress)

        if not ctx.code:
            return StrategyOutcome.failed("No code found")
        if self.client is None:
            return StrategyOutcome.failed("No AI provider configured")

        related = self._related_files(ctx)
        previous_attempts = []

        for round_index in range(self.max_rounds):
            if ctx.time_left() <= 0:
                break

            ctx.report_progress(f"AI attempt {round_index + 1}/{self.max_rounds}...",
                                self.progress + round_index * 10)
            ctx.session.log(
                "info", "strategy", f"Iterative round {round_index + 1}",
                f"Previous issues: {', '.join(previous_attempts)}" if previous_attempts else "First attempt",
                {"round": round_index + 1, "previous_attempts": list(previous_attempts)},
            )

            prompt_ctx = self._prompt_context(ctx, related)
            prompt_ctx.previous_attempts = list(previous_attempts)
            bundle = self.builder.build_prompt_for_strategy(self.kind, prompt_ctx)
            request_id = ctx.session.log_ai_request(
                f"{self.name}-{round_index + 1}",
                bundle.prompt,
                bundle.system_instruction,
                self.model_name,
                context_files=list(related),
            )

            try:
                text = await self._request(ctx, bundle, request_id, self.round_timeout_ms / 1000)
            except asyncio.TimeoutError:
                previous_attempts.append("Timeout")
                continue
            except Exception as e:
                logger.warning(f"[AIIterative] Round {round_index + 1} failed: {e}")
                previous_attempts.append(str(e) or type(e).__name__)
                continue

            fixed_code = clean_generated_code(text)
            if not fixed_code:
                previous_attempts.append("Empty response")
                continue
            if not ctx.validator(fixed_code):
                ctx.session.log_validation("syntax", False, "Generated code has syntax errors")
                previous_attempts.append("Invalid syntax")
                continue
            if fixed_code == ctx.code.strip():
                previous_attempts.append("No changes made")
                continue

            ctx.session.log_validation("syntax", True, "Valid code after iteration")
            return StrategyOutcome.fixed(
                {ctx.target_file: fixed_code},
                f"Fixed after {round_index + 1} iterations",
            )

        return StrategyOutcome.failed(f"Failed after {len(previous_attempts)} rounds")


class AIRegenerateStrategy(AIStrategy):
    name = "ai-regenerate"
    kind = PromptKind.REGENERATE
    label = "Regenerating..."
    progress = 90
    with_related_files = True

    async def run(self, ctx: StrategyContext) -> StrategyOutcome:
        component_name = extract_component_name(ctx.code)
        ctx.session.log(
            "info", "strategy", "Regeneration mode",
            f"Regenerating {component_name or 'component'} from scratch",
            {"component_name": component_name},
        )
        return await super().run(ctx)

    def _describe(self, ctx: StrategyContext) -> str:
        return f"Regenerated {extract_component_name(ctx.code) or 'component'}"
