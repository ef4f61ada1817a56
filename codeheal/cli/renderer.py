"""
CodeHeal CLI Renderer

Rich output for a remediation run:
- live session entries (strategy transitions, AI requests, validation)
- result summary table
- unified diff per fixed file

╭─ Changes to src/App.tsx (+1 -0) ─────────────────╮
│ @@ -1,3 +1,4 @@                                  │
│    1 │ + import { useState } from 'react';       │
│    2 │   export default function App() {         │
╰──────────────────────────────────────────────────╯
"""

import difflib
from dataclasses import dataclass
from typing import Dict, List

from rich.box import ROUNDED
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from codeheal.services.remediation.models import FixResult, RemediationState
from codeheal.services.remediation.session import SessionEntry


LEVEL_STYLES = {
    "debug": "dim",
    "info": "blue",
    "success": "green",
    "warn": "yellow",
    "error": "red",
}

STATE_STYLES = {
    RemediationState.FIXED: "bold green",
    RemediationState.SKIPPED: "yellow",
    RemediationState.IGNORABLE: "cyan",
    RemediationState.EXHAUSTED: "bold red",
    RemediationState.ABORTED: "magenta",
}


@dataclass
class DiffStats:
    additions: int = 0
    deletions: int = 0


class ResultRenderer:
    """
    Usage:
        renderer = ResultRenderer(console, verbose=True)
        session.subscribe(renderer.show_entry)
        ...
        renderer.show_result(result)
        renderer.show_diffs(tree, result.fixed_files)
    """

    def __init__(self, console: Console, verbose: bool = False):
        self.console = console
        self.verbose = verbose

    def show_entry(self, entry: SessionEntry) -> None:
        """Print one session entry; debug entries only in verbose mode"""
        if entry.level == "debug" and not self.verbose:
            return
        style = LEVEL_STYLES.get(entry.level, "white")
        line = Text()
        line.append(f"[{entry.category}] ", style="dim")
        line.append(entry.title, style=style)
        if entry.message:
            line.append(f"  {entry.message}")
        self.console.print(line)

    def show_result(self, result: FixResult) -> None:
        table = Table(show_header=False, box=ROUNDED, padding=(0, 1))
        table.add_column("Field", style="bold")
        table.add_column("Value")

        table.add_row("State", Text(result.state.value, style=STATE_STYLES.get(result.state, "white")))
        table.add_row("Description", result.description)
        table.add_row("Strategy", result.strategy.value if result.strategy else "-")
        table.add_row("Category", result.category.value if result.category else "-")
        table.add_row("Attempts", str(result.attempts))
        table.add_row("Time", f"{result.time_ms / 1000:.2f}s")
        if result.fixed_files:
            table.add_row("Files", "\n".join(sorted(result.fixed_files)))

        self.console.print(table)

    def show_diffs(self, tree: Dict[str, str], fixed_files: Dict[str, str], context: int = 3) -> None:
        for path in sorted(fixed_files):
            self.show_diff(tree.get(path, ""), fixed_files[path], path, context)

    def show_diff(self, old_content: str, new_content: str, path: str, context: int = 3) -> None:
        lines, stats = compute_diff(old_content, new_content, context)
        if not lines:
            self.console.print(f"[dim]No changes in {path}[/dim]")
            return

        stats_text = f"[green]+{stats.additions}[/green] [red]-{stats.deletions}[/red]"
        panel = Panel(
            Text.from_markup("\n".join(lines)),
            title=f"Changes to [cyan]{path}[/cyan] ({stats_text})",
            border_style="yellow",
            box=ROUNDED,
            padding=(0, 1),
        )
        self.console.print(panel)


def compute_diff(old_content: str, new_content: str, context: int = 3):
    """Rich-markup lines of a unified diff plus +/- counts"""
    stats = DiffStats()
    lines: List[str] = []
    old_num = new_num = 0

    diff = difflib.unified_diff(
        old_content.splitlines(),
        new_content.splitlines(),
        lineterm="",
        n=context,
    )
    for line in diff:
        if line.startswith("---") or line.startswith("+++"):
            continue
        if line.startswith("@@"):
            lines.append(f"[cyan]{escape(line)}[/cyan]")
            # @@ -start,count +start,count @@
            parts = line.split()
            try:
                old_num = int(parts[1].split(",")[0][1:])
                new_num = int(parts[2].split(",")[0][1:])
            except (ValueError, IndexError):
                pass
        elif line.startswith("+"):
            lines.append(f"[green]{new_num:4} │ + {escape(line[1:])}[/green]")
            stats.additions += 1
            new_num += 1
        elif line.startswith("-"):
            lines.append(f"[red]{old_num:4} │ - {escape(line[1:])}[/red]")
            stats.deletions += 1
            old_num += 1
        else:
            lines.append(f"[dim]{new_num:4} │   {escape(line[1:])}[/dim]")
            old_num += 1
            new_num += 1

    return lines, stats
