"""
Local Fix Strategies

FREE - No AI - deterministic fixers from LocalFixLibrary.
Runs the (CPU-bound) fixer chain in the default executor so the engine's
per-strategy timeout bounds the wait.
"""

import asyncio
from typing import Dict, Optional

from codeheal.core.logging_config import logger
from codeheal.services.remediation.local_fixes import LocalFixLibrary, local_fix_library
from codeheal.services.remediation.models import CURRENT_FILE, LocalFixResult
from codeheal.services.remediation.strategies.base import StrategyContext, StrategyOutcome


class LocalSimpleStrategy:
    """
    local-simple: fixer chain over the target file.

    Accepts results that only touch the target file (the "current" key or
    the target path itself); wider multi-file rewrites are left to
    local-multifile.
    """

    def __init__(self, library: Optional[LocalFixLibrary] = None):
        self.library = library or local_fix_library

    async def run(self, ctx: StrategyContext) -> StrategyOutcome:
        ctx.report_progress("Trying local fix...", 10)

        if not ctx.code:
            ctx.session.log_local_fix("simple", False, "No code found for target file")
            return StrategyOutcome.failed("No code found")

        loop = asyncio.get_event_loop()
        result: LocalFixResult = await loop.run_in_executor(
            None, self.library.try_local_fix, ctx.parsed, ctx.code, ctx.tree
        )

        if not result.success:
            ctx.session.log_local_fix("simple", False, "No matching pattern found")
            return StrategyOutcome.failed("Local fix failed")

        fixed_code = _target_content(result.fixed_files, ctx.target_file)
        if fixed_code is None:
            logger.debug(f"[LocalSimple] {result.fix_type} touched other files, leaving to multi-file")
            ctx.session.log_local_fix(result.fix_type, False, "Fix spans other files")
            return StrategyOutcome.failed("Local fix failed")

        if not ctx.validator(fixed_code):
            ctx.session.log_local_fix(result.fix_type, False, "Fix generated invalid code")
            ctx.session.log_validation("syntax", False, "Fixed code has syntax errors")
            return StrategyOutcome.failed("Local fix failed")

        ctx.session.log_local_fix(result.fix_type, True, result.description)
        ctx.session.log_validation("syntax", True, "Fixed code passes syntax check")
        return StrategyOutcome.fixed({ctx.target_file: fixed_code}, result.description)


class LocalMultiFileStrategy:
    """local-multifile: rewrite a bare specifier in every importing file"""

    def __init__(self, library: Optional[LocalFixLibrary] = None):
        self.library = library or local_fix_library

    async def run(self, ctx: StrategyContext) -> StrategyOutcome:
        ctx.report_progress("Scanning files...", 15)

        loop = asyncio.get_event_loop()
        result: LocalFixResult = await loop.run_in_executor(
            None, self.library.try_fix_bare_specifier_multi_file, ctx.parsed, ctx.tree
        )

        if not result.success or not result.fixed_files:
            ctx.session.log_local_fix("multi-file", False, "No importing files to rewrite")
            return StrategyOutcome.failed("Multi-file fix failed")

        for path, code in result.fixed_files.items():
            if not ctx.validator(code):
                ctx.session.log_validation("syntax", False, f"{path} fails syntax check")
                return StrategyOutcome.failed("Invalid fix generated")

        ctx.session.log_local_fix(result.fix_type, True, result.description)
        ctx.session.log_validation("syntax", True, f"{len(result.fixed_files)} file(s) pass syntax check")
        return StrategyOutcome.fixed(result.fixed_files, result.description)


class LocalProactiveStrategy:
    """local-proactive: reserved slot, proactive checks run inside the fixer chain"""

    async def run(self, ctx: StrategyContext) -> StrategyOutcome:
        ctx.report_progress("Analyzing code...", 20)
        return StrategyOutcome.failed("No proactive fixes found")


def _target_content(fixed_files: Dict[str, str], target_file: str) -> Optional[str]:
    """Content for the target file when the fix touches nothing else"""
    if not fixed_files or not set(fixed_files) <= {CURRENT_FILE, target_file}:
        return None
    return fixed_files.get(CURRENT_FILE, fixed_files.get(target_file))
