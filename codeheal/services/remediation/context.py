"""
Error context helpers for the AI strategies

- get_related_files: statically discovered files worth showing the model
- clean_generated_code: strip markdown artifacts from a model response
- extract_component_name: name of the exported component in a file
"""

import posixpath
import re
from typing import Dict, List, Optional, Union

from codeheal.core.config import settings
from codeheal.services.remediation.analyzer import normalize_project_path
from codeheal.services.remediation.models import ParsedError


_IMPORT_SOURCE_RE = re.compile(
    r"""(?:import|export)\s[^'"]*?from\s*['"]([^'"]+)['"]|import\s*\(\s*['"]([^'"]+)['"]\s*\)"""
)
_MESSAGE_PATH_RE = re.compile(r"((?:[\w@.-]+/)*[\w@.-]+\.(?:tsx?|jsx?|mjs|cjs|css|json))")

_FENCE_OPEN_RE = re.compile(
    r"^```(?:javascript|typescript|tsx|jsx|ts|js|react|html|css|json|sql|markdown|md"
    r"|plaintext|text|sh|bash|shell)?[ \t]*\n?",
    re.I,
)
_FENCE_CLOSE_RE = re.compile(r"\n?```[ \t]*\Z")
_LEADING_LANGUAGE_RE = re.compile(r"^(?:javascript|typescript|tsx|jsx|ts|js|react)[ \t]*\n", re.I)

_COMPONENT_NAME_RE = re.compile(r"export\s+(?:default\s+)?(?:function|const)\s+(\w+)")

_RESOLVE_SUFFIXES = ("", ".tsx", ".ts", ".jsx", ".js", "/index.tsx", "/index.ts", "/index.jsx", "/index.js")


def resolve_import(importer: str, specifier: str, tree: Dict[str, str]) -> Optional[str]:
    """
    Resolve an import specifier to a path present in the tree.

    Handles relative specifiers, src/-rooted specifiers and the "@/" alias;
    package imports resolve to None.
    """
    if specifier.startswith("."):
        base = posixpath.normpath(posixpath.join(posixpath.dirname(importer), specifier))
    elif specifier.startswith("@/"):
        base = "src/" + specifier[2:]
    elif specifier.startswith("src/") or specifier.startswith("/src/"):
        base = specifier.lstrip("/")
    else:
        return None

    for suffix in _RESOLVE_SUFFIXES:
        candidate = base + suffix
        if candidate in tree:
            return candidate
    return None


def get_related_files(
    error: Union[str, ParsedError],
    code: str,
    tree: Optional[Dict[str, str]],
    target_file: Optional[str] = None,
    limit: Optional[int] = None
) -> Dict[str, str]:
    """
    Collect files that help the model understand the error.

    Order: files named in the error, files the analyzer linked to it, then
    local modules imported by the failing file. The target file itself is
    never included.

    Returns:
        Dict of path -> content, at most `limit` entries
    """
    if not tree:
        return {}

    limit = settings.AUTOFIX_MAX_CONTEXT_FILES if limit is None else limit
    candidates: List[str] = []

    message = error if isinstance(error, str) else f"{error.raw_message}\n{error.stack}"
    for token in _MESSAGE_PATH_RE.findall(message or ""):
        path = normalize_project_path(token)
        if path in tree:
            candidates.append(path)

    if isinstance(error, ParsedError):
        if error.file:
            candidates.append(error.file)
        candidates.extend(error.related_files)

    importer = target_file or settings.AUTOFIX_DEFAULT_TARGET_FILE
    for match in _IMPORT_SOURCE_RE.finditer(code or ""):
        specifier = match.group(1) or match.group(2)
        resolved = resolve_import(importer, specifier, tree)
        if resolved:
            candidates.append(resolved)

    related: Dict[str, str] = {}
    for path in candidates:
        if len(related) >= limit:
            break
        if path == target_file or path in related:
            continue
        content = tree.get(path)
        if content:
            related[path] = content

    return related


def clean_generated_code(code: Optional[str]) -> str:
    """
    Remove the markdown fence wrapping a model response.

    Only the opening and closing fence lines go; backticks inside the code
    (markdown in template literals) are left alone.
    """
    if not code:
        return ""

    cleaned = _FENCE_OPEN_RE.sub("", code.strip())
    cleaned = _FENCE_CLOSE_RE.sub("", cleaned)
    cleaned = _LEADING_LANGUAGE_RE.sub("", cleaned)
    return cleaned.strip()


def extract_component_name(code: str) -> Optional[str]:
    match = _COMPONENT_NAME_RE.search(code or "")
    return match.group(1) if match else None
