#!/usr/bin/env python3
"""
CodeHeal CLI - Main Entry Point

Usage:
    codeheal --error "useState is not defined"            # Fix an error in ./src
    codeheal -d my-app --error-file error.txt --apply     # Write the fix to disk
    codeheal --error "..." --no-ai                        # Local fixers only
    codeheal --error "..." --output-format json           # Machine-readable result

Exit code is 0 when a fix was found, 1 otherwise, 2 on usage errors.
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Dict, List, Optional

import aiofiles
from rich.console import Console

from codeheal import __version__
from codeheal.core.config import settings
from codeheal.core.exceptions import CodeHealError
from codeheal.core.logging_config import logger
from codeheal.cli.renderer import ResultRenderer
from codeheal.services.remediation.engine import RemediationEngine
from codeheal.services.remediation.models import FixResult, FixStrategy, RemediationRequest
from codeheal.services.remediation.session import RemediationSession


# Directories never loaded into the source tree
SKIP_DIRS = {"node_modules", ".git", "dist", "build", ".next", ".turbo", "coverage", ".cache"}
MAX_FILE_BYTES = 512 * 1024

AI_STRATEGIES = [s for s in FixStrategy if s.value.startswith("ai-")]


def create_parser() -> argparse.ArgumentParser:
    """Create argument parser for CLI"""
    parser = argparse.ArgumentParser(
        prog="codeheal",
        description="CodeHeal - automated error remediation for React/TypeScript projects",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  codeheal --error "useState is not defined"
  codeheal --error-file error.log --stack-file stack.txt --file src/App.tsx
  codeheal --error "Unexpected token" --skip ai-regenerate --apply

Strategies (cheapest first):
  local-simple, local-multifile, local-proactive,
  ai-quick, ai-full, ai-iterative, ai-regenerate
        """
    )

    # Error input
    error_group = parser.add_mutually_exclusive_group(required=True)
    error_group.add_argument("-e", "--error", help="Error message text")
    error_group.add_argument("--error-file", help="Read the error message from a file ('-' for stdin)")

    parser.add_argument("--stack-file", help="Read the stack trace from a file")

    parser.add_argument(
        "-d", "--directory",
        type=str,
        default=".",
        help="Project directory (default: current directory)"
    )

    parser.add_argument("-f", "--file", dest="target_file", help="File to fix (default: inferred from the error)")

    parser.add_argument(
        "--no-ai",
        action="store_true",
        help="Only run the local (free) strategies"
    )

    parser.add_argument(
        "--skip",
        action="append",
        default=[],
        choices=[s.value for s in FixStrategy],
        metavar="STRATEGY",
        help="Skip a strategy (repeatable)"
    )

    parser.add_argument(
        "--timeout",
        type=int,
        help=f"Total time budget in ms (default: {settings.AUTOFIX_TOTAL_TIMEOUT_MS})"
    )

    parser.add_argument(
        "--max-attempts",
        type=int,
        help=f"Maximum strategies to try (default: {settings.AUTOFIX_MAX_ATTEMPTS})"
    )

    parser.add_argument(
        "--tech-stack",
        type=str,
        default="",
        help="Extra tech stack context appended to the AI system prompt"
    )

    parser.add_argument(
        "--apply",
        action="store_true",
        help="Write fixed files back to the project"
    )

    parser.add_argument(
        "--output-format",
        choices=["text", "json"],
        default="text",
        help="Output format (default: text)"
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose output"
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}"
    )

    return parser


# =============================================================================
# File IO
# =============================================================================

async def load_source_tree(root: Path, extensions: Optional[List[str]] = None) -> Dict[str, str]:
    """Read every source file under root into {posix relative path: content}"""
    extensions = extensions or settings.source_extensions
    tree: Dict[str, str] = {}

    for path in sorted(root.rglob("*")):
        relative = path.relative_to(root)
        if any(part in SKIP_DIRS for part in relative.parts):
            continue
        if not path.is_file() or path.suffix not in extensions:
            continue
        if path.stat().st_size > MAX_FILE_BYTES:
            logger.debug(f"[CLI] Skipping large file {relative}")
            continue
        try:
            async with aiofiles.open(path, "r", encoding="utf-8") as f:
                tree[relative.as_posix()] = await f.read()
        except UnicodeDecodeError:
            logger.debug(f"[CLI] Skipping non-UTF-8 file {relative}")

    return tree


async def apply_fixes(root: Path, fixed_files: Dict[str, str]) -> List[str]:
    """Write fixed files under root; returns the written paths"""
    written = []
    for relative, content in fixed_files.items():
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        async with aiofiles.open(path, "w", encoding="utf-8") as f:
            await f.write(content)
        written.append(relative)
    return written


async def read_text_input(source: str) -> str:
    if source == "-":
        return sys.stdin.read()
    async with aiofiles.open(source, "r", encoding="utf-8") as f:
        return await f.read()


# =============================================================================
# Run
# =============================================================================

def build_engine(args: argparse.Namespace, renderer: Optional[ResultRenderer]) -> RemediationEngine:
    ai_client = None
    if not args.no_ai and settings.ANTHROPIC_API_KEY:
        from codeheal.utils.claude_client import ClaudeClient
        ai_client = ClaudeClient()

    def session_factory(fp: str, target: str, message: str) -> RemediationSession:
        session = RemediationSession(fp, target, message)
        if renderer is not None:
            session.subscribe(renderer.show_entry)
        return session

    return RemediationEngine(ai_client=ai_client, session_factory=session_factory)


async def run(args: argparse.Namespace, console: Console) -> int:
    root = Path(args.directory).resolve()
    if not root.is_dir():
        console.print(f"[red]Not a directory: {root}[/red]")
        return 2

    error_message = args.error if args.error is not None else await read_text_input(args.error_file)
    error_stack = await read_text_input(args.stack_file) if args.stack_file else ""

    tree = await load_source_tree(root)
    if not tree:
        console.print(f"[red]No source files found under {root}[/red]")
        return 2

    renderer = ResultRenderer(console, verbose=args.verbose) if args.output_format == "text" else None
    engine = build_engine(args, renderer)

    skip = [FixStrategy(s) for s in args.skip]
    if args.no_ai:
        skip.extend(AI_STRATEGIES)

    request = RemediationRequest(
        error_message=error_message.strip(),
        source_tree=tree,
        error_stack=error_stack,
        target_file=args.target_file,
        tech_stack_context=args.tech_stack,
        max_attempts=args.max_attempts,
        timeout_ms=args.timeout,
        skip_strategies=skip,
    )

    result: FixResult = await engine.fix(request)

    written: List[str] = []
    if result.success and args.apply:
        written = await apply_fixes(root, result.fixed_files)

    if renderer is None:
        payload = result.to_dict()
        payload["applied"] = written
        print(json.dumps(payload, indent=2))
    else:
        renderer.show_result(result)
        if result.success:
            renderer.show_diffs(tree, result.fixed_files)
            if written:
                console.print(f"[green]Applied fix to {len(written)} file(s)[/green]")
            else:
                console.print("[dim]Dry run - use --apply to write the fix[/dim]")

    return 0 if result.success else 1


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point"""
    parser = create_parser()
    args = parser.parse_args(argv)
    console = Console(stderr=args.output_format == "json")

    try:
        return asyncio.run(run(args, console))
    except CodeHealError as e:
        console.print(f"[red]{e.message}[/red]")
        return 2
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted[/yellow]")
        return 130


if __name__ == "__main__":
    sys.exit(main())
