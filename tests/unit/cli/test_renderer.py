"""
Unit Tests for ResultRenderer
"""
import pytest
from rich.console import Console
from codeheal.cli.renderer import ResultRenderer, compute_diff
from codeheal.services.remediation.models import ErrorCategory, FixResult, FixStrategy, RemediationState
from codeheal.services.remediation.session import SessionEntry


@pytest.fixture
def console() -> Console:
    return Console(record=True, width=120, force_terminal=False)


def make_entry(level="info", title="Strategy: local-simple", message="START - Attempting Quick fix"):
    return SessionEntry(id="s-1", timestamp=0.0, level=level, category="strategy", title=title, message=message)


class TestComputeDiff:

    def test_stats(self):
        lines, stats = compute_diff("a\nb\nc\n", "a\nB\nc\n")

        assert stats.additions == 1
        assert stats.deletions == 1
        assert lines[0].startswith("[cyan]@@")

    def test_no_changes(self):
        lines, stats = compute_diff("same\n", "same\n")

        assert lines == []
        assert stats.additions == 0

    def test_markup_escaped(self):
        lines, _ = compute_diff("", "[bold]x[/bold]\n")
        assert any("\\[bold]" in line for line in lines)


class TestResultRenderer:

    def test_show_result(self, console):
        result = FixResult(
            success=True,
            fixed_files={"src/App.tsx": "x"},
            description="Added import: useState from 'react'",
            strategy=FixStrategy.LOCAL_SIMPLE,
            attempts=1,
            time_ms=12,
            state=RemediationState.FIXED,
            category=ErrorCategory.IMPORT,
        )
        ResultRenderer(console).show_result(result)
        output = console.export_text()

        assert "fixed" in output
        assert "local-simple" in output
        assert "src/App.tsx" in output
        assert "0.01s" in output

    def test_show_diff(self, console):
        ResultRenderer(console).show_diff("a\n", "import x;\na\n", "src/App.tsx")
        output = console.export_text()

        assert "Changes to src/App.tsx (+1 -0)" in output
        assert "+ import x;" in output

    def test_show_diff_without_changes(self, console):
        ResultRenderer(console).show_diff("a\n", "a\n", "src/App.tsx")
        assert "No changes in src/App.tsx" in console.export_text()

    def test_show_entry(self, console):
        ResultRenderer(console).show_entry(make_entry())
        assert "[strategy] Strategy: local-simple  START - Attempting Quick fix" in console.export_text()

    def test_debug_entries_need_verbose(self, console):
        ResultRenderer(console).show_entry(make_entry(level="debug", title="Tried: prop-typo", message=""))
        assert console.export_text() == ""

        ResultRenderer(console, verbose=True).show_entry(make_entry(level="debug", title="Tried: prop-typo", message=""))
        assert "Tried: prop-typo" in console.export_text()
