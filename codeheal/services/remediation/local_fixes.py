"""
Local Fixes - deterministic, text-level fixers

FREE - No AI - Pattern-based fixes
Each fixer is a pure function (message, code) -> LocalFixResult and returns
"no fix" whenever it is not certain. The library runs them as a fixed
priority OR-chain: the first fixer that succeeds wins, fixes are never
combined.

Single-file fixers put their output under the "current" key; the multi-file
bare-specifier resolver keys its output by real project paths.
"""

import re
import textwrap
from typing import Callable, Dict, List, Optional, Tuple, Union

from codeheal.core.config import settings
from codeheal.core.logging_config import logger
from codeheal.services.remediation.models import CURRENT_FILE, LocalFixResult, ParsedError
from codeheal.services.remediation.patterns import (
    COMMON_IMPORTS,
    EXPORT_CORRECTIONS,
    ICON_LIBRARY,
    KNOWN_LUCIDE_ICONS,
    LUCIDE_FALLBACK_ICON,
    PROP_TYPOS,
    SELF_CLOSING_TAGS,
    ImportInfo,
)
from codeheal.services.remediation.scanner import (
    MATCHING_CLOSER,
    SourceScanner,
    is_syntactically_valid,
    text_scanner,
)


Validator = Callable[[str], bool]

SOURCE_FILE_RE = re.compile(r"\.(?:tsx?|jsx?|mjs|cjs)$")
_SCRIPT_EXT_RE = re.compile(r"\.(?:tsx?|jsx?)$")

_BARE_SPECIFIER_PATTERNS = [
    re.compile(r"[\"']?(src/[\w./-]+)[\"']?\s*was a bare specifier", re.I),
    re.compile(r"[\"']?(src/[\w./-]+)[\"']?\s*was not remapped", re.I),
    re.compile(r"specifier\s*[\"'](src/[\w./-]+)[\"']", re.I),
    re.compile(r"cannot find module\s*[\"'](src/[\w./-]+)[\"']", re.I),
    re.compile(r"failed to resolve\s*(?:import\s*)?[\"'](src/[\w./-]+)[\"']", re.I),
]

_UNDEFINED_PATTERNS = [
    re.compile(r"ReferenceError:\s*[\"']?(\w+)[\"']?\s+is not defined", re.I),
    re.compile(r"[\"']?(\w+)[\"']?\s+is not defined", re.I),
    re.compile(r"cannot find name\s+[\"']?(\w+)[\"']?", re.I),
]

_PROP_TYPO_PATTERNS = [
    re.compile(r"invalid dom property [`\"'](\w+)[`\"']", re.I),
    re.compile(r"react does not recognize the [`\"'](\w+)[`\"'] prop", re.I),
    re.compile(r"unknown (?:dom )?prop(?:erty)? [`\"'](\w+)[`\"']", re.I),
]

_DEREF_PATTERNS = [
    re.compile(r"cannot read propert(?:y|ies) (?:of (?:undefined|null) \(reading )?[\"'](\w+)[\"']", re.I),
    re.compile(r"cannot read [\"'](\w+)[\"'] of (?:undefined|null)", re.I),
    re.compile(r"(?:undefined|null) is not an object \(evaluating [\"']?[\w.]*\.(\w+)[\"']?\)", re.I),
]

_MISSING_EXPORT_RE = re.compile(
    r"(?:module\s+[\"']([^\"']+)[\"']\s+)?does(?:n't| not) provide an export named[:\s]+[\"']?(\w+)[\"']?",
    re.I,
)

# import / re-export statements (run against masked code: string contents are blank)
_IMPORT_STATEMENT_RE = re.compile(
    r"^[ \t]*(?:import\b[\s\S]*?[\"'][^\"'\n]*[\"']|export\s+(?:type\s+)?(?:\*|\{)[\s\S]*?from\s*[\"'][^\"'\n]*[\"']);?",
    re.M,
)

_ARROW_KEYWORDS = frozenset({
    "function", "async", "await", "new", "return", "typeof", "void",
    "delete", "yield", "class", "this", "super", "true", "false", "null",
})

# Assignment operator right after an access: .x = / .x += / .x ??= ...
_ASSIGNMENT_RE = re.compile(r"\s*(?:\*\*|\?\?|&&|\|\||<<|>>>?|[-+*/%&|^])?=(?![=>])")


# =============================================================================
# Helpers
# =============================================================================

def _no_fix(description: str = "No local fix available") -> LocalFixResult:
    return LocalFixResult.no_fix(description)


def _fixed(code: str, description: str, fix_type: str) -> LocalFixResult:
    return LocalFixResult(
        success=True,
        fixed_files={CURRENT_FILE: code},
        description=description,
        fix_type=fix_type,
    )


def _message_of(error: Union[str, ParsedError]) -> str:
    if isinstance(error, ParsedError):
        return error.raw_message
    return error or ""


def _first_group(patterns, text: str) -> Optional[str]:
    for pattern in patterns:
        match = pattern.search(text)
        if match:
            return match.group(1)
    return None


def _import_spans(masked: str) -> List[Tuple[int, int]]:
    return [(m.start(), m.end()) for m in _IMPORT_STATEMENT_RE.finditer(masked)]


def _inside(spans: List[Tuple[int, int]], pos: int) -> bool:
    return any(start <= pos < end for start, end in spans)


def replace_identifier(
    code: str,
    old: str,
    new: str,
    scanner: SourceScanner = text_scanner,
    skip_imports: bool = True
) -> str:
    """
    Replace whole-identifier occurrences of `old` in code positions.

    Skips string/comment contents, property accesses (`obj.old`) and,
    by default, import statements.
    """
    masked = scanner.mask_literals(code)
    spans = _import_spans(masked) if skip_imports else []
    pattern = re.compile(r"(?<![\w$.])" + re.escape(old) + r"(?![\w$])")

    pieces: List[str] = []
    last = 0
    for match in pattern.finditer(masked):
        if spans and _inside(spans, match.start()):
            continue
        pieces.append(code[last:match.start()])
        pieces.append(new)
        last = match.end()
    pieces.append(code[last:])
    return "".join(pieces)


# =============================================================================
# 1. Bare specifiers
# =============================================================================

def extract_bare_specifier(message: str) -> Optional[str]:
    """Pull an unresolved `src/...` specifier out of an error message"""
    return _first_group(_BARE_SPECIFIER_PATTERNS, message or "")


def calculate_relative_import_path(from_file: str, bare_specifier: str) -> str:
    """
    Relative import path from `from_file` to a `src/`-rooted specifier.

    `src` segments are ignored on both sides, the target extension is
    stripped, and the longest common directory prefix is shared.

        calculate_relative_import_path("src/pages/Home.tsx", "src/components/Button.tsx")
        -> "../components/Button"
    """
    from_parts = from_file.replace("\\", "/").split("/")[:-1]
    from_dir = [p for p in from_parts if p and p not in (".", "src")]

    to_path = re.sub(r"^(?:\./)?src/", "", bare_specifier.replace("\\", "/"))
    to_parts = [p for p in _SCRIPT_EXT_RE.sub("", to_path).split("/") if p]
    to_dir, to_file = to_parts[:-1], to_parts[-1]

    common = 0
    for a, b in zip(from_dir, to_dir):
        if a != b:
            break
        common += 1

    up_count = len(from_dir) - common
    down_path = "/".join(to_dir[common:] + [to_file])

    if up_count == 0:
        return f"./{down_path}"
    return "../" * up_count + down_path


def _specifier_import_re(specifier: str) -> "re.Pattern":
    return re.compile(
        r"((?:import|export)\s+(?:[\w,{}\s*$]+?)\s+from\s*)([\"'])" + re.escape(specifier) + r"\2"
    )


def try_fix_bare_specifier_multi_file(
    error: Union[str, ParsedError],
    tree: Optional[Dict[str, str]],
    validator: Optional[Validator] = None
) -> LocalFixResult:
    """
    Rewrite every import of an unresolved bare specifier across the tree.

    Each importer gets its own relative path; only the matching import
    statements change. Every rewritten file must pass the validator or the
    whole pass is rejected.
    """
    message = _message_of(error)
    specifier = extract_bare_specifier(message)
    if not specifier or not tree:
        return _no_fix()

    validator = validator or is_syntactically_valid
    variants = [specifier]
    without_ext = _SCRIPT_EXT_RE.sub("", specifier)
    if without_ext != specifier:
        variants.append(without_ext)

    changes: Dict[str, str] = {}
    for path, content in tree.items():
        if not content or not SOURCE_FILE_RE.search(path):
            continue

        new_content = content
        for variant in variants:
            regex = _specifier_import_re(variant)
            if regex.search(new_content):
                relative = calculate_relative_import_path(path, specifier)
                new_content = regex.sub(lambda m: f"{m.group(1)}{m.group(2)}{relative}{m.group(2)}", new_content)

        if new_content != content:
            changes[path] = new_content

    if not changes:
        return _no_fix()

    invalid = [path for path, content in changes.items() if not validator(content)]
    if invalid:
        logger.debug(f"[LocalFixes] Bare specifier rewrite rejected, invalid: {invalid}")
        return _no_fix("Rewritten files failed validation")

    return LocalFixResult(
        success=True,
        fixed_files=changes,
        description=f'Fixed bare specifier "{specifier}" in {len(changes)} file(s)',
        fix_type="bare-specifier",
    )


def fix_bare_specifier(message: str, code: str) -> LocalFixResult:
    """Single-file fallback: rewrite `src/...` to `./...` in the current file"""
    specifier = extract_bare_specifier(message)
    if not specifier:
        return _no_fix()

    relative = _SCRIPT_EXT_RE.sub("", re.sub(r"^src/", "./", specifier))
    without_ext = _SCRIPT_EXT_RE.sub("", specifier)

    for variant in dict.fromkeys([specifier, without_ext]):
        regex = _specifier_import_re(variant)
        new_code = regex.sub(lambda m: f"{m.group(1)}{m.group(2)}{relative}{m.group(2)}", code)
        if new_code != code:
            return _fixed(new_code, f'Fixed import: "{specifier}" -> "{relative}"', "bare-specifier")

    return _no_fix()


# =============================================================================
# 2. Missing imports
# =============================================================================

def is_already_imported(code: str, identifier: str) -> bool:
    name = re.escape(identifier)
    return any(pattern.search(code) for pattern in (
        re.compile(r"import\s*(?:type\s+)?(?:\w+\s*,\s*)?\{[^}]*\b" + name + r"\b[^}]*\}\s*from"),
        re.compile(r"import\s+" + name + r"\s*(?:,|from\b)"),
        re.compile(r"import\s*\*\s*as\s+" + name + r"\s+from"),
    ))


def _last_import_end(code: str) -> Optional[int]:
    """Offset just past the last import statement (end of its line)"""
    masked = text_scanner.mask_literals(code)
    last = None
    for match in re.finditer(r"^[ \t]*import\b[\s\S]*?[\"'][^\"'\n]*[\"'];?[ \t]*$", masked, re.M):
        last = match.end()
    return last


def _merge_named(entries: str, identifier: str) -> str:
    items = [item.strip() for item in entries.split(",") if item.strip()]
    items.append(identifier)
    return "{ " + ", ".join(items) + " }"


def add_import(code: str, identifier: str, info: ImportInfo) -> str:
    """
    Add an import for identifier, merging into an existing import from the
    same module where possible, otherwise inserting after the last import.
    """
    module = re.escape(info.module)

    if info.is_type:
        existing = re.search(r"import\s+type\s*\{([^}]*)\}(\s*from\s*)([\"'])" + module + r"\3", code)
        if existing:
            replacement = f"import type {_merge_named(existing.group(1), identifier)}{existing.group(2)}{existing.group(3)}{info.module}{existing.group(3)}"
            return code[:existing.start()] + replacement + code[existing.end():]
        statement = f"import type {{ {identifier} }} from '{info.module}';"

    elif info.is_default:
        # import { a } from 'm'  ->  import X, { a } from 'm'
        existing = re.search(r"import\s*(\{[^}]*\}\s*from\s*([\"'])" + module + r"\2)", code)
        if existing:
            return code[:existing.start()] + f"import {identifier}, {existing.group(1)}" + code[existing.end():]
        statement = f"import {identifier} from '{info.module}';"

    else:
        # import D, { a } from 'm' / import { a } from 'm'
        existing = re.search(
            r"import\s*(?!type\b)(\w+\s*,\s*)?\{([^}]*)\}(\s*from\s*)([\"'])" + module + r"\4", code
        )
        if existing:
            default_part = existing.group(1) or ""
            replacement = (
                f"import {default_part}{_merge_named(existing.group(2), identifier)}"
                f"{existing.group(3)}{existing.group(4)}{info.module}{existing.group(4)}"
            )
            return code[:existing.start()] + replacement + code[existing.end():]

        # import D from 'm'  ->  import D, { a } from 'm'
        default_only = re.search(r"import\s+(\w+)(\s+from\s*)([\"'])" + module + r"\3", code)
        if default_only and default_only.group(1) != "type":
            replacement = (
                f"import {default_only.group(1)}, {{ {identifier} }}"
                f"{default_only.group(2)}{default_only.group(3)}{info.module}{default_only.group(3)}"
            )
            return code[:default_only.start()] + replacement + code[default_only.end():]
        statement = f"import {{ {identifier} }} from '{info.module}';"

    position = _last_import_end(code)
    if position is not None:
        return code[:position] + "\n" + statement + code[position:]
    return f"{statement}\n{code}"


def fix_missing_import(message: str, code: str) -> LocalFixResult:
    identifier = _first_group(_UNDEFINED_PATTERNS, message)
    if not identifier:
        return _no_fix()

    info = COMMON_IMPORTS.get(identifier)
    if not info or is_already_imported(code, identifier):
        return _no_fix()

    new_code = add_import(code, identifier, info)
    if new_code == code:
        return _no_fix()
    return _fixed(new_code, f"Added import: {identifier} from '{info.module}'", "missing-import")


# =============================================================================
# 3. Prop typos
# =============================================================================

def fix_prop_typo(message: str, code: str) -> LocalFixResult:
    wrong = _first_group(_PROP_TYPO_PATTERNS, message)
    if not wrong:
        return _no_fix()

    correct = PROP_TYPOS.get(wrong.lower())
    if not correct or correct == wrong:
        return _no_fix()

    # JSX attribute position only: preceded by whitespace, followed by =
    regex = re.compile(r"(?<=\s)" + re.escape(wrong) + r"(\s*=)(?![=>])")
    new_code = regex.sub(lambda m: f"{correct}{m.group(1)}", code)
    if new_code == code:
        return _no_fix()
    return _fixed(new_code, f"Fixed prop: {wrong} -> {correct}", "typo")


# =============================================================================
# 4. Bracket balance
# =============================================================================

def fix_bracket_balance(
    message: str,
    code: str,
    scanner: SourceScanner = text_scanner
) -> LocalFixResult:
    """
    Append exactly the missing closers.

    When every closer matched (only openers are left) the closers follow the
    nesting order; otherwise the per-kind tally is used. Parens go inline,
    braces and brackets on their own lines.
    """
    report = scanner.scan(code)
    if report.unterminated:
        return _no_fix("Unterminated literal - not a bracket problem")

    if report.mismatches == 0:
        closers = [MATCHING_CLOSER[opener] for opener in reversed(report.unclosed)]
    else:
        closers = (
            [")"] * report.deficit("(")
            + ["}"] * report.deficit("{")
            + ["]"] * report.deficit("[")
        )
    if not closers:
        return _no_fix()

    body = code.rstrip()
    masked_body = scanner.mask_literals(code).rstrip()
    # Last line ends in a comment: never append inline into it
    suffix = "\n" if len(masked_body) < len(body) else ""
    for closer in closers:
        suffix += closer if closer == ")" else f"\n{closer}"
    new_code = body + suffix + ("\n" if code.endswith("\n") else "")

    if not scanner.scan(new_code).is_balanced:
        return _no_fix("Appending closers does not balance the file")

    counts = {c: closers.count(c) for c in dict.fromkeys(closers)}
    added = ", ".join(f"{n} closing {c}" for c, n in counts.items())
    return _fixed(new_code, f"Added: {added}", "syntax")


# =============================================================================
# 5. Optional chaining
# =============================================================================

def fix_optional_chaining(
    message: str,
    code: str,
    scanner: SourceScanner = text_scanner
) -> LocalFixResult:
    prop = _first_group(_DEREF_PATTERNS, message)
    if not prop:
        return _no_fix()

    masked = scanner.mask_literals(code)
    spans = _import_spans(masked)
    access = re.compile(r"([\w$)\]])(\s*)\.(\s*)" + re.escape(prop) + r"(?![\w$])")

    insert_at: List[int] = []
    for match in access.finditer(masked):
        dot = match.start() + len(match.group(1)) + len(match.group(2))
        if _inside(spans, dot):
            continue
        if re.search(r"(?<![\w$.])this\s*$", masked[:dot]):
            continue
        if _ASSIGNMENT_RE.match(masked, match.end()):
            continue
        insert_at.append(dot)

    if not insert_at:
        return _no_fix()

    new_code = code
    for position in reversed(insert_at):
        new_code = new_code[:position] + "?" + new_code[position:]

    return _fixed(
        new_code,
        f"Added optional chaining for '{prop}' ({len(insert_at)} access(es))",
        "runtime",
    )


# =============================================================================
# 6. Fuzzy undefined variables
# =============================================================================

def similarity(s1: str, s2: str) -> float:
    """
    Composite name similarity in [0, 1].

    character-set overlap x 0.5 + length ratio x 0.3 + common prefix x 0.2;
    case-insensitive equality scores 0.95.
    """
    if s1 == s2:
        return 1.0
    if not s1 or not s2:
        return 0.0

    s1_lower = s1.lower()
    s2_lower = s2.lower()
    if s1_lower == s2_lower:
        return 0.95

    chars1 = set(s1_lower)
    chars2 = set(s2_lower)
    char_similarity = len(chars1 & chars2) / len(chars1 | chars2)

    longest = max(len(s1), len(s2))
    length_similarity = 1 - abs(len(s1) - len(s2)) / longest

    prefix = 0
    for a, b in zip(s1_lower, s2_lower):
        if a != b:
            break
        prefix += 1
    prefix_bonus = (prefix / longest) * 0.2

    return char_similarity * 0.5 + length_similarity * 0.3 + prefix_bonus


def _binding_names(pattern_body: str) -> List[str]:
    """Names bound by the inside of a [..] / {..} destructuring pattern"""
    names = []
    for item in pattern_body.split(","):
        item = item.strip()
        if not item:
            continue
        item = item.lstrip(".")
        if ":" in item:
            item = item.split(":", 1)[1]
        item = item.split("=", 1)[0].strip()
        match = re.match(r"[A-Za-z_$][\w$]*", item)
        if match:
            names.append(match.group(0))
    return names


def extract_defined_variables(code: str) -> List[str]:
    """const/let/var names, function names and destructured bindings"""
    names: List[str] = []
    names += re.findall(r"\b(?:const|let|var)\s+([A-Za-z_$][\w$]*)", code)
    names += re.findall(r"\bfunction\s*\*?\s*([A-Za-z_$][\w$]*)", code)
    for match in re.finditer(r"\b(?:const|let|var)\s*(\[([^\]]*)\]|\{([^}]*)\})", code):
        names += _binding_names(match.group(2) if match.group(2) is not None else match.group(3))
    return list(dict.fromkeys(names))


def fix_undefined_variable(
    message: str,
    code: str,
    threshold: Optional[float] = None,
    scanner: SourceScanner = text_scanner
) -> LocalFixResult:
    undefined = _first_group(_UNDEFINED_PATTERNS, message)
    if not undefined or undefined in COMMON_IMPORTS:
        return _no_fix()

    if threshold is None:
        threshold = settings.AUTOFIX_SIMILARITY_THRESHOLD

    best_match = None
    best_score = 0.0
    for candidate in extract_defined_variables(code):
        if candidate == undefined:
            continue
        score = similarity(undefined, candidate)
        if score > threshold and score > best_score:
            best_score = score
            best_match = candidate

    if not best_match:
        return _no_fix()

    new_code = replace_identifier(code, undefined, best_match, scanner)
    if new_code == code:
        return _no_fix()
    return _fixed(new_code, f"Fixed typo: {undefined} -> {best_match} ({best_score:.2f})", "typo")


# =============================================================================
# 7. Missing / renamed exports
# =============================================================================

def _named_import_re(module: str) -> "re.Pattern":
    return re.compile(r"(import\s+(?:\w+\s*,\s*)?\{)([^}]*)(\}\s*from\s*[\"']" + re.escape(module) + r"[\"'])")


def _find_import_source(code: str, name: str) -> Optional[str]:
    for match in re.finditer(r"import\s+(?:type\s+)?(?:\w+\s*,\s*)?\{([^}]*)\}\s*from\s*[\"']([^\"']+)[\"']", code):
        if re.search(r"(?<![\w$])" + re.escape(name) + r"(?![\w$])", match.group(1)):
            return match.group(2)
    return None


def _rewrite_import_entries(entries: str, wrong: str, replacement: str) -> Tuple[str, bool]:
    """
    Swap `wrong` for `replacement` inside a named-import list.

    Returns (new entries, aliased) - aliased is True when the import was
    `wrong as Alias`, in which case code usages keep the alias.
    """
    items = [item.strip() for item in entries.split(",") if item.strip()]
    names = [re.split(r"\s+as\s+", item)[0].strip() for item in items]
    aliased = False
    result = []

    for item, name in zip(items, names):
        if name != wrong:
            result.append(item)
            continue
        parts = re.split(r"\s+as\s+", item)
        if len(parts) == 2:
            aliased = True
            result.append(f"{replacement} as {parts[1].strip()}")
        elif replacement not in names:
            result.append(replacement)
        # else: replacement already imported, drop the wrong name

    if "\n" in entries:
        indent = re.search(r"\n([ \t]*)\S", entries)
        pad = indent.group(1) if indent else "  "
        return "\n" + ",\n".join(pad + item for item in result) + ",\n", aliased
    return " " + ", ".join(result) + " ", aliased


def _swap_export(code: str, module: str, wrong: str, replacement: str, scanner: SourceScanner) -> str:
    regex = _named_import_re(module)
    match = regex.search(code)
    if not match:
        return code

    entries, aliased = _rewrite_import_entries(match.group(2), wrong, replacement)
    new_code = code[:match.start()] + match.group(1) + entries + match.group(3) + code[match.end():]
    if not aliased:
        new_code = replace_identifier(new_code, wrong, replacement, scanner)
    return new_code


def fix_missing_export(
    message: str,
    code: str,
    scanner: SourceScanner = text_scanner
) -> LocalFixResult:
    match = _MISSING_EXPORT_RE.search(message)
    if not match:
        return _no_fix()

    module_path = match.group(1) or ""
    wrong = match.group(2)
    source = _find_import_source(code, wrong)

    # Icon library: anything outside the allow-list becomes the fallback icon
    if ICON_LIBRARY in module_path or source == ICON_LIBRARY:
        if wrong not in KNOWN_LUCIDE_ICONS:
            new_code = _swap_export(code, ICON_LIBRARY, wrong, LUCIDE_FALLBACK_ICON, scanner)
            if new_code != code:
                return _fixed(
                    new_code,
                    f'Replaced non-existent icon "{wrong}" with "{LUCIDE_FALLBACK_ICON}"',
                    "missing-export",
                )
        return _no_fix()

    library = None
    for candidate in EXPORT_CORRECTIONS:
        if candidate in module_path or candidate == source:
            library = candidate
            break

    correct = EXPORT_CORRECTIONS.get(library or "", {}).get(wrong)
    if not correct:
        return _no_fix()

    new_code = _swap_export(code, source or library, wrong, correct, scanner)
    if new_code == code:
        return _no_fix()
    return _fixed(new_code, f'Fixed export: "{wrong}" -> "{correct}"', "missing-export")


# =============================================================================
# 8. Missing arrow tokens
# =============================================================================

_ARROW_FIXES = [
    # const f = (x: T): R {  ->  const f = (x: T): R => {
    ("typed-signature", re.compile(r"(\w+\s*=\s*\([^()]*\)\s*:\s*[\w.]+(?:<[\w\s,.]*>)?(?:\[\])?)(\s*)(\{)")),
    # .map(item {  ->  .map(item => {
    ("single-param", re.compile(r"(\.\w+\s*\(\s*)(\w+)(\s*)(\{)")),
    # .reduce((acc, x) {  ->  .reduce((acc, x) => {
    ("multi-param", re.compile(r"(\.\w+\s*\(\s*\([^()]*\))(\s*)(\{)")),
    # .map({ id } {  ->  .map(({ id }) => {
    ("destructured", re.compile(r"(\.\w+\s*\(\s*)(\{[^{}]+\})(\s*)(\{)")),
]


def fix_missing_arrow(
    message: str,
    code: str,
    scanner: SourceScanner = text_scanner
) -> LocalFixResult:
    lowered = message.lower()
    if not any(hint in lowered for hint in ("unexpected token", "expected", "did not expect")):
        return _no_fix()

    new_code = code
    repaired: List[str] = []

    for shape, regex in _ARROW_FIXES:
        masked = scanner.mask_literals(new_code)
        edits: List[Tuple[int, int, str]] = []
        for match in regex.finditer(masked):
            if shape == "single-param" and match.group(2) in _ARROW_KEYWORDS:
                continue
            if shape == "typed-signature":
                head = new_code[match.start(1):match.end(1)]
                edits.append((match.start(), match.end(), f"{head} => {{"))
            elif shape == "single-param":
                before = new_code[match.start(1):match.end(1)]
                param = match.group(2)
                edits.append((match.start(), match.end(), f"{before}{param} => {{"))
            elif shape == "multi-param":
                params = new_code[match.start(1):match.end(1)]
                edits.append((match.start(), match.end(), f"{params} => {{"))
            else:
                before = new_code[match.start(1):match.end(1)]
                destructure = new_code[match.start(2):match.end(2)]
                edits.append((match.start(), match.end(), f"{before}({destructure}) => {{"))

        for start, end, text in reversed(edits):
            new_code = new_code[:start] + text + new_code[end:]
        if edits:
            repaired.append(shape)

    if not repaired or new_code == code:
        return _no_fix()
    return _fixed(new_code, f"Fixed missing arrow (=>): {', '.join(repaired)}", "syntax")


# =============================================================================
# 9. Void elements
# =============================================================================

def fix_void_element(message: str, code: str) -> LocalFixResult:
    lowered = message.lower()
    if not ("void element" in lowered or "self-clos" in lowered or "closing tag" in lowered):
        return _no_fix()

    mentioned = [tag for tag in sorted(SELF_CLOSING_TAGS) if re.search(r"(?<![\w-])<?" + tag + r"\b", lowered)]
    if not mentioned:
        # "closing tag for <div>" is not about void elements
        if "void element" not in lowered and "self-clos" not in lowered:
            return _no_fix()
        mentioned = sorted(SELF_CLOSING_TAGS)

    new_code = code
    fixed_tags = []
    for tag in mentioned:
        # <img ...></img>  ->  <img ... />
        paired = re.compile(r"<" + tag + r"(\s[^<>]*?)?\s*(?<!/)>\s*</" + tag + r"\s*>")
        candidate = paired.sub(lambda m: f"<{tag}{(m.group(1) or '').rstrip()} />", new_code)

        # <br>  (never closed)  ->  <br />
        if f"</{tag}" not in candidate:
            unclosed = re.compile(r"<" + tag + r"(\s[^<>]*?)?\s*(?<!/)>")
            candidate = unclosed.sub(lambda m: f"<{tag}{(m.group(1) or '').rstrip()} />", candidate)

        if candidate != new_code:
            fixed_tags.append(tag)
            new_code = candidate

    if not fixed_tags:
        return _no_fix()
    return _fixed(new_code, "Fixed self-closing " + ", ".join(f"<{t} />" for t in fixed_tags), "jsx")


# =============================================================================
# 10. Adjacent JSX roots
# =============================================================================

_JSX_TAG_RE = re.compile(r"<(/?)([A-Za-z][\w.:-]*)?((?:[^<>{}]|\{[^{}]*\})*)>")


def count_jsx_roots(jsx: str) -> int:
    """Number of top-level elements in a JSX snippet (heuristic)"""
    depth = 0
    roots = 0
    for match in _JSX_TAG_RE.finditer(jsx):
        closing, _, attrs = match.group(1), match.group(2), match.group(3)
        if closing:
            depth = max(0, depth - 1)
            continue
        if depth == 0:
            roots += 1
        if not attrs.rstrip().endswith("/"):
            depth += 1
    return roots


def _matching_paren(masked: str, open_index: int) -> Optional[int]:
    depth = 0
    for index in range(open_index, len(masked)):
        ch = masked[index]
        if ch in "([{":
            depth += 1
        elif ch in ")]}":
            depth -= 1
            if depth == 0:
                return index if ch == ")" else None
    return None


def fix_adjacent_jsx(
    message: str,
    code: str,
    scanner: SourceScanner = text_scanner
) -> LocalFixResult:
    lowered = message.lower()
    if "adjacent jsx elements" not in lowered and "must be wrapped in an enclosing tag" not in lowered:
        return _no_fix()

    masked = scanner.mask_literals(code)
    for match in re.finditer(r"return\s*\(", masked):
        open_index = match.end() - 1
        close_index = _matching_paren(masked, open_index)
        if close_index is None:
            continue

        inner = code[open_index + 1:close_index]
        stripped = inner.strip()
        if not stripped.startswith("<") or stripped.startswith(("<>", "<Fragment", "<React.Fragment")):
            continue
        if count_jsx_roots(stripped) < 2:
            continue

        line_start = code.rfind("\n", 0, match.start()) + 1
        indent = re.match(r"[ \t]*", code[line_start:]).group(0)
        body = textwrap.dedent(inner.strip("\n")).rstrip()
        body = "\n".join(f"{indent}    {line}" if line.strip() else "" for line in body.splitlines())
        wrapped = f"(\n{indent}  <>\n{body}\n{indent}  </>\n{indent})"

        new_code = code[:open_index] + wrapped + code[close_index + 1:]
        return _fixed(new_code, "Wrapped adjacent JSX elements in a Fragment", "jsx")

    return _no_fix()


# =============================================================================
# Library
# =============================================================================

class LocalFixLibrary:
    """
    Fixed-priority OR-chain over the deterministic fixers.

    Usage:
        library = LocalFixLibrary()
        result = library.try_local_fix("useState is not defined", code)
        if result.success:
            new_code = result.fixed_files["current"]
    """

    def __init__(
        self,
        scanner: Optional[SourceScanner] = None,
        validator: Optional[Validator] = None,
        similarity_threshold: Optional[float] = None
    ):
        self.scanner = scanner or text_scanner
        self.validator = validator or (lambda code: is_syntactically_valid(code, self.scanner))
        self.similarity_threshold = (
            settings.AUTOFIX_SIMILARITY_THRESHOLD
            if similarity_threshold is None else similarity_threshold
        )

        self._chain: List[Tuple[str, Callable[[str, str, Optional[Dict[str, str]]], LocalFixResult]]] = [
            ("bare-specifier", self._bare_specifier),
            ("missing-import", lambda m, c, t: fix_missing_import(m, c)),
            ("prop-typo", lambda m, c, t: fix_prop_typo(m, c)),
            ("bracket-balance", lambda m, c, t: fix_bracket_balance(m, c, self.scanner)),
            ("optional-chaining", lambda m, c, t: fix_optional_chaining(m, c, self.scanner)),
            ("undefined-variable", lambda m, c, t: fix_undefined_variable(
                m, c, self.similarity_threshold, self.scanner)),
            ("missing-export", lambda m, c, t: fix_missing_export(m, c, self.scanner)),
            ("missing-arrow", lambda m, c, t: fix_missing_arrow(m, c, self.scanner)),
            ("void-element", lambda m, c, t: fix_void_element(m, c)),
            ("adjacent-jsx", lambda m, c, t: fix_adjacent_jsx(m, c, self.scanner)),
        ]

    @property
    def fixer_names(self) -> List[str]:
        """Fixer priority order"""
        return [name for name, _ in self._chain]

    def try_local_fix(
        self,
        error: Union[str, ParsedError],
        code: str,
        tree: Optional[Dict[str, str]] = None
    ) -> LocalFixResult:
        """
        Try every fixer in priority order; first success wins.

        Args:
            error: Raw error message or ParsedError
            code: Content of the file being fixed
            tree: Optional source tree for the multi-file resolver
        """
        message = _message_of(error)
        if not message or (not code and not tree):
            return _no_fix()

        for name, fixer in self._chain:
            # Without file content only the multi-file resolver can help
            if not code and name != "bare-specifier":
                continue
            result = fixer(message, code or "", tree)
            if result.success:
                logger.debug(f"[LocalFixes] {name}: {result.description}")
                return result

        return _no_fix()

    def try_fix_bare_specifier_multi_file(
        self,
        error: Union[str, ParsedError],
        tree: Optional[Dict[str, str]]
    ) -> LocalFixResult:
        return try_fix_bare_specifier_multi_file(error, tree, self.validator)

    def _bare_specifier(self, message: str, code: str, tree: Optional[Dict[str, str]]) -> LocalFixResult:
        lowered = message.lower()
        if "bare specifier" not in lowered and "was not remapped" not in lowered:
            return _no_fix()
        if tree:
            result = try_fix_bare_specifier_multi_file(message, tree, self.validator)
            if result.success:
                return result
        if code:
            return fix_bare_specifier(message, code)
        return _no_fix()


# Singleton instance
local_fix_library = LocalFixLibrary()


def try_local_fix(
    error: Union[str, ParsedError],
    code: str,
    tree: Optional[Dict[str, str]] = None
) -> LocalFixResult:
    """Convenience wrapper over the shared LocalFixLibrary"""
    return local_fix_library.try_local_fix(error, code, tree)
