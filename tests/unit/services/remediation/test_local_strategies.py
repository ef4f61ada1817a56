"""
Unit Tests for the local fix strategies
"""
from unittest.mock import MagicMock

import pytest
from codeheal.services.remediation.analyzer import error_analyzer
from codeheal.services.remediation.models import CostClass, ErrorCategory, FixStrategy
from codeheal.services.remediation.scanner import is_syntactically_valid
from codeheal.services.remediation.session import RemediationSession
from codeheal.services.remediation.strategies import (
    LocalMultiFileStrategy,
    LocalProactiveStrategy,
    LocalSimpleStrategy,
    StrategyContext,
    StrategyDescriptor,
)


def make_ctx(message, code, tree=None, target_file="src/App.tsx", validator=is_syntactically_valid, progress=None):
    tree = {target_file: code} if tree is None else tree
    return StrategyContext(
        error_message=message,
        error_stack="",
        parsed=error_analyzer.analyze(message, tree=tree),
        target_file=target_file,
        code=code,
        tree=tree,
        validator=validator,
        session=RemediationSession("fp", target_file, message, logger=MagicMock()),
        report_progress=(lambda stage, pct: progress.append((stage, pct))) if progress is not None else (
            lambda stage, pct: None
        ),
    )


class TestLocalSimpleStrategy:
    """Test the single-file fixer chain runner"""

    @pytest.mark.asyncio
    async def test_fixes_missing_import(self, app_missing_import):
        progress = []
        ctx = make_ctx("ReferenceError: useState is not defined", app_missing_import, progress=progress)

        outcome = await LocalSimpleStrategy().run(ctx)

        assert outcome.success is True
        assert list(outcome.fixed_files) == ["src/App.tsx"]
        assert outcome.fixed_files["src/App.tsx"].startswith("import { useState } from 'react';\n")
        assert outcome.description == "Added import: useState from 'react'"
        assert progress == [("Trying local fix...", 10)]

    @pytest.mark.asyncio
    async def test_no_code(self):
        outcome = await LocalSimpleStrategy().run(make_ctx("useState is not defined", "", tree={}))

        assert outcome.success is False
        assert outcome.error == "No code found"

    @pytest.mark.asyncio
    async def test_no_matching_fixer(self):
        outcome = await LocalSimpleStrategy().run(make_ctx("Something weird happened", "const a = 1;\n"))
        assert outcome.error == "Local fix failed"

    @pytest.mark.asyncio
    async def test_multi_file_result_left_to_multifile(self, bare_specifier_message, bare_specifier_tree):
        """Test results touching files other than the target are declined"""
        ctx = make_ctx(bare_specifier_message, bare_specifier_tree["src/App.tsx"], tree=bare_specifier_tree)

        outcome = await LocalSimpleStrategy().run(ctx)

        assert outcome.success is False
        assert outcome.error == "Local fix failed"

    @pytest.mark.asyncio
    async def test_invalid_fix_rejected(self, app_missing_import):
        ctx = make_ctx("useState is not defined", app_missing_import, validator=lambda code: False)

        outcome = await LocalSimpleStrategy().run(ctx)

        assert outcome.error == "Local fix failed"
        assert any(e.category == "validation" for e in ctx.session.entries)


class TestLocalMultiFileStrategy:

    @pytest.mark.asyncio
    async def test_rewrites_every_importer(self, bare_specifier_message, bare_specifier_tree):
        ctx = make_ctx(bare_specifier_message, bare_specifier_tree["src/App.tsx"], tree=bare_specifier_tree)

        outcome = await LocalMultiFileStrategy().run(ctx)

        assert outcome.success is True
        assert set(outcome.fixed_files) == {"src/App.tsx", "src/pages/Home.tsx"}
        assert 'from "./components/Button"' in outcome.fixed_files["src/App.tsx"]
        assert "from '../components/Button'" in outcome.fixed_files["src/pages/Home.tsx"]

    @pytest.mark.asyncio
    async def test_not_a_bare_specifier(self, app_missing_import):
        outcome = await LocalMultiFileStrategy().run(make_ctx("useState is not defined", app_missing_import))
        assert outcome.error == "Multi-file fix failed"

    @pytest.mark.asyncio
    async def test_validator_rejects(self, bare_specifier_message, bare_specifier_tree):
        ctx = make_ctx(
            bare_specifier_message,
            bare_specifier_tree["src/App.tsx"],
            tree=bare_specifier_tree,
            validator=lambda code: False,
        )

        outcome = await LocalMultiFileStrategy().run(ctx)

        assert outcome.error == "Invalid fix generated"


class TestLocalProactiveStrategy:

    @pytest.mark.asyncio
    async def test_reports_nothing_found(self, app_missing_import):
        outcome = await LocalProactiveStrategy().run(make_ctx("useState is not defined", app_missing_import))

        assert outcome.success is False
        assert outcome.error == "No proactive fixes found"


class TestStrategyDescriptor:
    """Test category eligibility"""

    def _descriptor(self, cost_class, only_for=None):
        return StrategyDescriptor(
            name=FixStrategy.LOCAL_SIMPLE,
            runner=LocalProactiveStrategy(),
            cost_class=cost_class,
            timeout_ms=1000,
            label="Test",
            progress=0,
            only_for=only_for,
        )

    @pytest.mark.parametrize("category,expected", [
        (ErrorCategory.IMPORT, True),
        (ErrorCategory.NETWORK, False),
        (ErrorCategory.TRANSIENT, False),
    ])
    def test_ai_excludes_network_and_transient(self, category, expected):
        assert self._descriptor(CostClass.AI).eligible(category) is expected

    def test_free_runs_everywhere(self):
        assert self._descriptor(CostClass.FREE).eligible(ErrorCategory.NETWORK) is True

    def test_only_for(self):
        descriptor = self._descriptor(CostClass.FREE, only_for=frozenset({ErrorCategory.IMPORT}))

        assert descriptor.eligible(ErrorCategory.IMPORT) is True
        assert descriptor.eligible(ErrorCategory.SYNTAX) is False
