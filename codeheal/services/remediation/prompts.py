"""
Remediation Prompts

Context-aware prompts for the AI strategies. Pure string building: the same
context always yields the same prompt, and every kind produces a usable
prompt even without related files, logs or analysis.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

from codeheal.core.config import settings
from codeheal.services.remediation.context import extract_component_name
from codeheal.services.remediation.models import ParsedError


# =============================================================================
# System Instruction
# =============================================================================

AUTOFIX_SYSTEM_INSTRUCTION = """You are an expert React/TypeScript debugger. Your job is to fix runtime errors in React applications.

## Your Capabilities
- You understand React, TypeScript, Tailwind CSS, and modern JavaScript
- You can identify the root cause of errors from stack traces and error messages
- You fix code while preserving the original intent and style
- You NEVER introduce new bugs while fixing existing ones

## Response Rules
1. Return ONLY the complete fixed code - no explanations, no markdown
2. Keep ALL imports, even unused ones
3. Preserve component structure and naming
4. Fix the specific error without refactoring unrelated code
5. If you're unsure, add defensive checks (optional chaining, null checks)

## Common Error Patterns You Know
- Import errors: Wrong package names, missing exports, bare specifiers
- Syntax errors: Missing arrows (=>), unclosed brackets, malformed JSX
- Runtime errors: Cannot read property of undefined/null
- Type errors: Wrong prop types, missing required props
- Hook errors: Conditional hooks, hooks outside components"""


STACK_PREVIEW_CHARS = 1000
LOG_LINE_CHARS = 200
REGENERATE_JSX_CHARS = 2000
REGENERATE_RELATED_FILES = 2
REGENERATE_RELATED_CHARS = 1000


class PromptKind(str, Enum):
    """Prompt shapes, one per AI strategy"""
    QUICK = "quick"
    FULL = "full"
    ITERATIVE = "iterative"
    REGENERATE = "regenerate"


@dataclass
class PromptContext:
    """Everything a prompt may draw on"""
    error_message: str
    target_file: str
    target_file_content: str
    error_stack: str = ""
    parsed_error: Optional[ParsedError] = None
    related_files: Dict[str, str] = field(default_factory=dict)
    logs: List[str] = field(default_factory=list)
    previous_attempts: List[str] = field(default_factory=list)
    tech_stack_context: str = ""


@dataclass(frozen=True)
class PromptBundle:
    system_instruction: str
    prompt: str


# =============================================================================
# Code inspection helpers
# =============================================================================

_IMPORT_LINE_RE = re.compile(r"^import\s+.+$", re.M)
_JSX_RETURN_RE = re.compile(r"return\s*\(\s*([\s\S]*?)\s*\);?\s*(?:}|$)")
_PROPS_RE = re.compile(r"(?:interface|type)\s+\w*Props\s*=?\s*\{([^}]+)\}")


def extract_imports(code: str) -> List[str]:
    return _IMPORT_LINE_RE.findall(code or "")


def extract_jsx(code: str) -> Optional[str]:
    match = _JSX_RETURN_RE.search(code or "")
    return match.group(1) if match else None


def extract_props(code: str) -> Optional[str]:
    match = _PROPS_RE.search(code or "")
    return match.group(1).strip() if match else None


# =============================================================================
# Builder
# =============================================================================

class PromptBuilder:
    """
    Builds (system instruction, prompt) pairs for the AI strategies.

    Usage:
        bundle = prompt_builder.build_prompt_for_strategy(PromptKind.FULL, ctx)
        await client.generate(prompt=bundle.prompt,
                              system_instruction=bundle.system_instruction)
    """

    def __init__(
        self,
        system_instruction: str = AUTOFIX_SYSTEM_INSTRUCTION,
        max_related_files: Optional[int] = None,
        max_related_chars: Optional[int] = None,
        max_log_lines: Optional[int] = None
    ):
        self.system_instruction = system_instruction
        self.max_related_files = (
            settings.AUTOFIX_MAX_CONTEXT_FILES if max_related_files is None else max_related_files
        )
        self.max_related_chars = (
            settings.AUTOFIX_MAX_CONTEXT_FILE_CHARS if max_related_chars is None else max_related_chars
        )
        self.max_log_lines = settings.AUTOFIX_MAX_LOG_TAIL if max_log_lines is None else max_log_lines

    def build_prompt_for_strategy(self, kind, ctx: PromptContext) -> PromptBundle:
        kind = PromptKind(kind)
        system_instruction = self.system_instruction
        if ctx.tech_stack_context:
            system_instruction += f"\n\n{ctx.tech_stack_context}"

        builders = {
            PromptKind.QUICK: self.build_quick_fix_prompt,
            PromptKind.FULL: self.build_full_context_prompt,
            PromptKind.ITERATIVE: self.build_iterative_prompt,
            PromptKind.REGENERATE: self.build_regeneration_prompt,
        }
        return PromptBundle(system_instruction=system_instruction, prompt=builders[kind](ctx))

    def build_quick_fix_prompt(self, ctx: PromptContext) -> str:
        """Target file only"""
        prompt = f"Fix this error in {ctx.target_file}:\n\n"
        prompt += f"ERROR: {ctx.error_message}\n"

        parsed = ctx.parsed_error
        if parsed:
            if parsed.suggested_fix:
                prompt += f"HINT: {parsed.suggested_fix}\n"
            if parsed.line:
                location = f"{parsed.line}:{parsed.column}" if parsed.column else f"{parsed.line}"
                prompt += f"LOCATION: Line {location}\n"

        prompt += f"\nCODE:\n```tsx\n{ctx.target_file_content}\n```\n\n"
        prompt += "Return ONLY the complete fixed file. No explanations."
        return prompt

    def build_full_context_prompt(self, ctx: PromptContext) -> str:
        """Target file plus stack, analysis, related files and recent log lines"""
        prompt = "# Error Fix Request\n\n"
        prompt += f"## Error\n```\n{ctx.error_message}\n```\n\n"

        if ctx.error_stack:
            prompt += f"## Stack Trace\n```\n{ctx.error_stack[:STACK_PREVIEW_CHARS]}\n```\n\n"

        prompt += self._analysis_section(ctx.parsed_error)

        prompt += f"## File to Fix: {ctx.target_file}\n"
        prompt += f"```tsx\n{ctx.target_file_content}\n```\n\n"

        prompt += self._related_section(
            "Related Files (for context only)",
            ctx.related_files,
            self.max_related_files,
            self.max_related_chars,
        )
        prompt += self._logs_section(ctx.logs)

        prompt += "## Instructions\n"
        prompt += f"1. Fix the error in {ctx.target_file}\n"
        prompt += "2. Return ONLY the complete fixed file\n"
        prompt += "3. Keep all imports and component structure\n"
        prompt += "4. Do not explain, just return the code\n"
        return prompt

    def build_iterative_prompt(self, ctx: PromptContext) -> str:
        """Full context plus the numbered reasons earlier rounds failed"""
        prompt = "# Error Fix - Retry\n\n"
        prompt += "The previous fix attempt(s) did not resolve the error.\n\n"
        prompt += f"## Error (still occurring)\n```\n{ctx.error_message}\n```\n\n"

        if ctx.previous_attempts:
            prompt += "## What Didn't Work\n"
            for i, attempt in enumerate(ctx.previous_attempts, 1):
                prompt += f"{i}. {attempt}\n"
            prompt += "\n"
            prompt += "Try a DIFFERENT approach. Think about:\n"
            prompt += "- Is the error in a different place than assumed?\n"
            prompt += "- Are there multiple issues compounding?\n"
            prompt += "- Is there a type mismatch or missing import?\n\n"

        prompt += self._analysis_section(ctx.parsed_error)

        prompt += f"## Current Code ({ctx.target_file})\n"
        prompt += f"```tsx\n{ctx.target_file_content}\n```\n\n"

        prompt += self._related_section(
            "Related Files (for context only)",
            ctx.related_files,
            self.max_related_files,
            self.max_related_chars,
        )
        prompt += self._logs_section(ctx.logs)

        prompt += "Return the COMPLETE fixed file. Different approach this time."
        return prompt

    def build_regeneration_prompt(self, ctx: PromptContext) -> str:
        """Rewrite-from-scratch framing for badly broken components"""
        code = ctx.target_file_content
        component_name = extract_component_name(code)
        imports = extract_imports(code)
        jsx = extract_jsx(code)
        props = extract_props(code)

        prompt = "# Component Regeneration Request\n\n"
        prompt += f'The component "{component_name or "Component"}" has errors that require regeneration.\n\n'
        prompt += f"## Error\n```\n{ctx.error_message}\n```\n\n"

        prompt += "## Component Info\n"
        prompt += f"- File: {ctx.target_file}\n"
        prompt += f"- Name: {component_name or 'Unknown'}\n"
        if props:
            prompt += f"- Props: {props}\n"
        prompt += "\n"

        prompt += "## Original Imports\n"
        prompt += "```tsx\n" + "\n".join(imports) + "\n```\n\n"

        if jsx:
            prompt += "## Original JSX Structure (preserve this)\n"
            prompt += f"```tsx\n{jsx[:REGENERATE_JSX_CHARS]}\n```\n\n"

        prompt += self._related_section(
            "Related Components (reference for types/props)",
            ctx.related_files,
            min(REGENERATE_RELATED_FILES, self.max_related_files),
            REGENERATE_RELATED_CHARS,
        )

        if ctx.tech_stack_context:
            prompt += f"## Tech Stack\n{ctx.tech_stack_context}\n\n"

        prompt += "## Instructions\n"
        prompt += "1. Regenerate the component from scratch\n"
        prompt += "2. Keep the same visual structure and functionality\n"
        prompt += "3. Fix all errors while preserving intent\n"
        prompt += "4. Use proper TypeScript types\n"
        prompt += "5. Return ONLY the complete component file\n"
        return prompt

    # =========================================================================
    # Sections
    # =========================================================================

    @staticmethod
    def _analysis_section(parsed: Optional[ParsedError]) -> str:
        if not parsed:
            return ""
        section = "## Analysis\n"
        section += f"- Type: {parsed.type}\n"
        section += f"- Category: {parsed.category.value}\n"
        if parsed.identifier:
            section += f"- Identifier: {parsed.identifier}\n"
        if parsed.import_path:
            section += f"- Import: {parsed.import_path}\n"
        if parsed.suggested_fix:
            section += f"- Suggested: {parsed.suggested_fix}\n"
        return section + "\n"

    @staticmethod
    def _related_section(title: str, related: Dict[str, str], max_files: int, max_chars: int) -> str:
        if not related or max_files <= 0:
            return ""
        section = f"## {title}\n"
        for path, content in list(related.items())[:max_files]:
            truncated = content[:max_chars]
            if len(content) > max_chars:
                truncated += "\n// ... truncated"
            section += f"\n### {path}\n```tsx\n{truncated}\n```\n"
        return section + "\n"

    def _logs_section(self, logs: List[str]) -> str:
        tail = [line for line in logs if line][-self.max_log_lines:] if self.max_log_lines > 0 else []
        if not tail:
            return ""
        section = "## Recent Console Errors\n"
        for line in tail:
            section += f"- {line[:LOG_LINE_CHARS]}\n"
        return section + "\n"


# Singleton instance
prompt_builder = PromptBuilder()


def build_prompt_for_strategy(kind, ctx: PromptContext) -> PromptBundle:
    """Convenience wrapper over the shared PromptBuilder"""
    return prompt_builder.build_prompt_for_strategy(kind, ctx)
