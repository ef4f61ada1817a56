"""
Error Analyzer - Fast rule-based error analysis

NO AI - Pure regex patterns - < 1ms analysis
Turns raw error text (message + optional stack) into an immutable ParsedError
used to pick eligible strategies and to feed the fixers and prompts.
"""

import re
from typing import Dict, List, Optional, Tuple

from codeheal.services.remediation.models import ErrorCategory, ParsedError
from codeheal.services.remediation.patterns import (
    COMMON_IMPORTS,
    EXPORT_CORRECTIONS,
    ICON_LIBRARY,
    KNOWN_LUCIDE_ICONS,
    LUCIDE_FALLBACK_ICON,
)


SOURCE_EXTENSIONS = r"(?:tsx?|jsx?|mjs|cjs)"

# path:line[:col], optionally behind a dev-server URL and a ?t= cache buster
_LOCATION_RE = re.compile(
    r"(?:https?://[^/\s)]+)?/?((?:[\w@.-]+/)*[\w@.-]+\." + SOURCE_EXTENSIONS + r")"
    r"(?:\?[^:\s)]*)?:(\d+)(?::(\d+))?"
)
_BARE_PATH_RE = re.compile(r"\b(src/[\w@./-]+\." + SOURCE_EXTENSIONS + r")\b")


class ErrorAnalyzer:
    """
    Rule-based error analyzer.

    Patterns are ordered by specificity - first match wins.
    Each entry: (regex, type, category, confidence, auto_fixable,
    suggestion template, ParsedError fields filled from the groups).
    """

    # =========================================================================
    # Ignorable: transient noise (never worth a fix)
    # =========================================================================

    TRANSIENT_PATTERNS = [
        (r"Loading (?:CSS )?chunk [\w-]+ failed", "chunk-load", 0.95),
        (r"ChunkLoadError", "chunk-load", 0.95),
        (r"ResizeObserver loop", "resize-observer", 0.95),
        (r"^\s*Script error\.?\s*$", "script-error", 0.9),
        (r"Failed to fetch dynamically imported module", "dynamic-import", 0.95),
        (r"error loading dynamically imported module", "dynamic-import", 0.95),
        (r"AbortError|operation was aborted", "aborted", 0.9),
        (r"Request (?:was )?cancell?ed", "aborted", 0.9),
    ]

    # =========================================================================
    # Ignorable: connectivity
    # =========================================================================

    NETWORK_PATTERNS = [
        (r"Failed to fetch", "network-error", 0.9),
        (r"Network ?Error|Network request failed", "network-error", 0.9),
        (r"Cross-Origin Request Blocked|blocked by CORS policy", "network-error", 0.9),
        (r"ERR_CONNECTION_\w+|ERR_NETWORK\w*|ERR_INTERNET_DISCONNECTED", "network-error", 0.9),
        (r"ECONNREFUSED|ECONNRESET|ETIMEDOUT", "network-error", 0.9),
        (r"Request timed? ?out|timeout of \d+ms exceeded", "network-error", 0.85),
    ]

    # =========================================================================
    # Actionable patterns
    # =========================================================================

    ACTIONABLE_PATTERNS = [
        # Bare specifiers (import map could not resolve a src/ path)
        (r"[\"']?(src/[\w./-]+)[\"']?\s*was a bare specifier", "bare-specifier",
         ErrorCategory.IMPORT, 0.95, True,
         'Rewrite "{0}" as a relative import path', ("import_path",)),
        (r"specifier\s*[\"']?(src/[\w./-]+)[\"']?\s*was not remapped", "bare-specifier",
         ErrorCategory.IMPORT, 0.95, True,
         'Rewrite "{0}" as a relative import path', ("import_path",)),
        (r"[\"']?(src/[\w./-]+)[\"']?\s*was not remapped", "bare-specifier",
         ErrorCategory.IMPORT, 0.95, True,
         'Rewrite "{0}" as a relative import path', ("import_path",)),

        # Missing / renamed exports
        (r"(?:module\s+[\"']([^\"']+)[\"']\s+)?does(?:n't| not) provide an export named[:\s]+[\"']?(\w+)[\"']?",
         "missing-export", ErrorCategory.MISSING_EXPORT, 0.85, False,
         "Replace {1} with an export the module provides", ("module", "identifier")),
        (r"[\"'](\w+)[\"'] is not exported (?:by|from) [\"']([^\"']+)[\"']",
         "missing-export", ErrorCategory.MISSING_EXPORT, 0.85, False,
         "Remove or rename the import of {0}", ("identifier", "module")),
        (r"Module [\"']([^\"']+)[\"'] has no exported member [\"'](\w+)[\"']",
         "missing-export", ErrorCategory.MISSING_EXPORT, 0.85, False,
         "Remove or rename the import of {1}", ("module", "identifier")),

        # Unresolvable modules
        (r"Cannot find module\s*[\"']([^\"']+)[\"']", "module-not-found",
         ErrorCategory.IMPORT, 0.85, True,
         'Fix the import path "{0}" or create the module', ("import_path",)),
        (r"Failed to resolve (?:import\s*)?[\"']([^\"']+)[\"']", "module-not-found",
         ErrorCategory.IMPORT, 0.85, True,
         'Fix the import path "{0}" or install the package', ("import_path",)),
        (r"Module not found:.*?[\"']([^\"']+)[\"']", "module-not-found",
         ErrorCategory.IMPORT, 0.8, True,
         'Fix the import path "{0}"', ("import_path",)),

        # Undefined identifiers (promoted to IMPORT for well-known symbols)
        (r"ReferenceError:\s*[\"']?(\w+)[\"']?\s+is not defined", "undefined-variable",
         ErrorCategory.UNDEFINED_REF, 0.95, True,
         "Import or declare {0}", ("identifier",)),
        (r"[\"']?(\w+)[\"']?\s+is not defined", "undefined-variable",
         ErrorCategory.UNDEFINED_REF, 0.92, True,
         "Import or declare {0}", ("identifier",)),
        (r"Cannot find name\s+[\"']?(\w+)[\"']?", "undefined-variable",
         ErrorCategory.UNDEFINED_REF, 0.92, True,
         "Import or declare {0}", ("identifier",)),

        # Null / undefined dereference
        (r"Cannot read propert(?:y|ies) (?:of (?:undefined|null) \(reading )?[\"'](\w+)[\"']",
         "runtime-error", ErrorCategory.RUNTIME_DEREF, 0.85, True,
         "Add a null check or optional chaining before .{0}", ("identifier",)),
        (r"Cannot read [\"'](\w+)[\"'] of (?:undefined|null)",
         "runtime-error", ErrorCategory.RUNTIME_DEREF, 0.85, True,
         "Add a null check or optional chaining before .{0}", ("identifier",)),
        (r"(?:undefined|null) is not an object \(evaluating [\"']?[\w.]*\.(\w+)[\"']?\)",
         "runtime-error", ErrorCategory.RUNTIME_DEREF, 0.8, True,
         "Add a null check or optional chaining before .{0}", ("identifier",)),
        (r"Cannot read propert(?:y|ies) of (?:undefined|null)",
         "runtime-error", ErrorCategory.RUNTIME_DEREF, 0.6, False,
         "Add a null check before the property access", ()),

        # JSX structure
        (r"Adjacent JSX elements must be wrapped", "jsx-error",
         ErrorCategory.SYNTAX, 0.9, True,
         "Wrap adjacent elements in a fragment <>...</>", ()),
        (r"JSX element [\"']?(\w+)[\"']? has no corresponding closing tag", "jsx-error",
         ErrorCategory.SYNTAX, 0.85, False,
         "Add the missing closing tag for <{0}>", ("identifier",)),
        (r"Expected corresponding JSX closing tag for <?(\w+)>?", "jsx-error",
         ErrorCategory.SYNTAX, 0.85, False,
         "Add the missing closing tag for <{0}>", ("identifier",)),
        (r"\b(\w+) is a void element tag", "jsx-error",
         ErrorCategory.SYNTAX, 0.9, True,
         "Make <{0} /> self-closing", ("identifier",)),

        # Syntax
        (r"Unterminated (string|template) literal", "syntax-error",
         ErrorCategory.SYNTAX, 0.85, False,
         "Close the unterminated {0} literal", ()),
        (r"Unexpected token\s*[\"'`]?([^\"'`\s]+)[\"'`]?", "syntax-error",
         ErrorCategory.SYNTAX, 0.8, True,
         "Check brackets and arrow functions near {0}", ("identifier",)),
        (r"SyntaxError:\s*(.+)", "syntax-error",
         ErrorCategory.SYNTAX, 0.75, True,
         "Fix the syntax error: {0}", ()),
        (r"Expected [\"'`]?([^\"'`\s]+)[\"'`]? but found", "syntax-error",
         ErrorCategory.SYNTAX, 0.75, True,
         "Insert the expected {0}", ()),
        (r"Missing semicolon", "syntax-error",
         ErrorCategory.SYNTAX, 0.7, False,
         "Add the missing semicolon", ()),

        # React props
        (r"Invalid DOM property [`\"'](\w+)[`\"']", "prop-typo",
         ErrorCategory.OTHER, 0.9, True,
         "Use the camelCase React prop instead of {0}", ("identifier",)),
        (r"React does not recognize the [`\"'](\w+)[`\"'] prop", "prop-typo",
         ErrorCategory.OTHER, 0.85, True,
         "Use the camelCase React prop instead of {0}", ("identifier",)),
        (r"Unknown (?:DOM )?prop(?:erty)? [`\"'](\w+)[`\"']", "prop-typo",
         ErrorCategory.OTHER, 0.8, True,
         "Use the camelCase React prop instead of {0}", ("identifier",)),

        # React hooks / rendering
        (r"React Hook [\"'](\w+)[\"'] is called conditionally", "hook-error",
         ErrorCategory.OTHER, 0.85, False,
         "Call {0} at the top level of the component", ("identifier",)),
        (r"Invalid hook call", "hook-error",
         ErrorCategory.OTHER, 0.85, False,
         "Only call hooks inside function components", ()),
        (r"Rendered (?:more|fewer) hooks than", "hook-error",
         ErrorCategory.OTHER, 0.8, False,
         "Call hooks unconditionally and in the same order", ()),
        (r"Maximum update depth exceeded", "render-loop",
         ErrorCategory.OTHER, 0.8, False,
         "Stop updating state on every render", ()),
        (r"Objects are not valid as a React child", "render-error",
         ErrorCategory.OTHER, 0.8, False,
         "Render a string or element instead of an object", ()),

        # Types
        (r"Type [\"']([^\"']+)[\"'] is not assignable to type [\"']([^\"']+)[\"']", "type-error",
         ErrorCategory.OTHER, 0.8, False,
         "Type mismatch: convert {0} to {1}", ()),
        (r"Property [\"'](\w+)[\"'] does not exist on type", "property-error",
         ErrorCategory.OTHER, 0.8, False,
         "Declare {0} on the type or fix the property name", ("identifier",)),

        # Generic runtime
        (r"([\w.]+) is not a function", "runtime-error",
         ErrorCategory.OTHER, 0.7, False,
         "Make sure {0} is a function before calling it", ("identifier",)),
    ]

    def __init__(self):
        self._compile_patterns()

    def _compile_patterns(self):
        """Pre-compile regex patterns for speed"""
        self._ignorable = [
            (re.compile(p, re.I | re.M), t, ErrorCategory.TRANSIENT, w)
            for p, t, w in self.TRANSIENT_PATTERNS
        ] + [
            (re.compile(p, re.I | re.M), t, ErrorCategory.NETWORK, w)
            for p, t, w in self.NETWORK_PATTERNS
        ]
        self._actionable = [
            (re.compile(p, re.I | re.M), t, c, w, fixable, suggestion, fields)
            for p, t, c, w, fixable, suggestion, fields in self.ACTIONABLE_PATTERNS
        ]

    def analyze(
        self,
        message: str,
        stack: str = "",
        tree: Optional[Dict[str, str]] = None
    ) -> ParsedError:
        """
        Analyze an error.

        Args:
            message: Raw error message
            stack: Optional stack trace
            tree: Optional source tree (path -> content) for related-file lookup

        Returns:
            ParsedError (fresh, immutable)
        """
        message = message or ""
        stack = stack or ""
        file, line, column = self._extract_location(message, stack)

        for haystack in self._haystacks(message, stack):
            ignorable = self._match_ignorable(haystack)
            if ignorable:
                error_type, category, confidence = ignorable
                return ParsedError(
                    raw_message=message,
                    stack=stack,
                    type=error_type,
                    category=category,
                    confidence=confidence,
                    is_auto_fixable=False,
                    is_ignorable=True,
                    suggested_fix="No action needed - transient or connectivity error",
                    file=file,
                    line=line,
                    column=column,
                )

            for pattern, error_type, category, weight, fixable, suggestion, fields in self._actionable:
                match = pattern.search(haystack)
                if match:
                    return self._build(
                        message, stack, match, error_type, category, weight,
                        fixable, suggestion, fields, file, line, column, tree
                    )

        return ParsedError(
            raw_message=message,
            stack=stack,
            type="unknown",
            category=ErrorCategory.OTHER,
            confidence=0.3,
            is_auto_fixable=False,
            is_ignorable=False,
            file=file,
            line=line,
            column=column,
        )

    def classify(self, message: str) -> ErrorCategory:
        """Category only (message text, no stack)"""
        return self.analyze(message).category

    def is_ignorable(self, message: str) -> bool:
        """True for transient noise and connectivity errors"""
        return self._match_ignorable(message or "") is not None

    def get_summary(self, parsed: ParsedError) -> str:
        """One-line human readable summary"""
        first_line = (parsed.raw_message.strip().splitlines() or [""])[0][:200]

        if parsed.type == "bare-specifier":
            summary = f'Import "{parsed.import_path}" must use a relative path'
        elif parsed.type == "module-not-found":
            summary = f'Cannot resolve module "{parsed.import_path}"'
        elif parsed.type == "undefined-variable":
            summary = f'"{parsed.identifier}" is not defined'
        elif parsed.type == "missing-export":
            summary = f'"{parsed.module or "module"}" has no export "{parsed.identifier}"'
            if parsed.correct_export:
                summary += f' (use "{parsed.correct_export}")'
        elif parsed.type == "type-error":
            summary = f"Type mismatch: {first_line}"
        elif parsed.type == "runtime-error" and parsed.category == ErrorCategory.RUNTIME_DEREF and parsed.identifier:
            summary = f'Cannot read "{parsed.identifier}" of null/undefined'
        elif parsed.is_ignorable:
            summary = f"Ignorable {parsed.category.value} error: {first_line}"
        else:
            summary = first_line

        if parsed.file:
            summary += f" in {parsed.file}"
            if parsed.line:
                summary += f" at line {parsed.line}"
        return summary

    # =========================================================================
    # Internals
    # =========================================================================

    @staticmethod
    def _haystacks(message: str, stack: str) -> List[str]:
        if stack:
            return [message, f"{message}\n{stack}"]
        return [message]

    def _match_ignorable(self, text: str) -> Optional[Tuple[str, ErrorCategory, float]]:
        for pattern, error_type, category, weight in self._ignorable:
            if pattern.search(text):
                return error_type, category, weight
        return None

    def _build(
        self,
        message: str,
        stack: str,
        match: "re.Match",
        error_type: str,
        category: ErrorCategory,
        weight: float,
        fixable: bool,
        suggestion: Optional[str],
        fields: Tuple[str, ...],
        file: Optional[str],
        line: Optional[int],
        column: Optional[int],
        tree: Optional[Dict[str, str]],
    ) -> ParsedError:
        """Create the ParsedError for an actionable match"""
        groups = [g or "" for g in match.groups()]
        details: Dict[str, Optional[str]] = {
            name: (groups[i] or None) for i, name in enumerate(fields) if i < len(groups)
        }

        identifier = details.get("identifier")
        module = details.get("module")
        correct_export = None

        if error_type == "undefined-variable" and identifier in COMMON_IMPORTS:
            category = ErrorCategory.IMPORT

        if error_type == "missing-export" and identifier:
            correct_export = self._correct_export(module or "", identifier)
            fixable = correct_export is not None
            if fixable:
                weight = max(weight, 0.95)

        confidence = min(1.0, weight + (0.05 if file else 0.0))

        suggested_fix = None
        if suggestion:
            try:
                suggested_fix = suggestion.format(*groups)
            except IndexError:
                suggested_fix = suggestion

        related = self._find_related_files(details.get("import_path"), identifier, file, tree)

        return ParsedError(
            raw_message=message,
            stack=stack,
            type=error_type,
            category=category,
            confidence=round(confidence, 3),
            is_auto_fixable=fixable,
            is_ignorable=False,
            suggested_fix=suggested_fix,
            identifier=identifier,
            import_path=details.get("import_path"),
            module=module,
            correct_export=correct_export,
            file=file,
            line=line,
            column=column,
            related_files=tuple(related),
        )

    @staticmethod
    def _correct_export(module: str, identifier: str) -> Optional[str]:
        """Known rename for a library export, or the icon fallback"""
        # Vite serves deps as /node_modules/.vite/deps/<library>.js?v=hash
        for library, renames in EXPORT_CORRECTIONS.items():
            if library in module and identifier in renames:
                return renames[identifier]
        if ICON_LIBRARY in module and identifier not in KNOWN_LUCIDE_ICONS:
            return LUCIDE_FALLBACK_ICON
        return None

    def _extract_location(
        self,
        message: str,
        stack: str
    ) -> Tuple[Optional[str], Optional[int], Optional[int]]:
        """Extract file:line:col from message first, then stack"""
        for text in (message, stack):
            if not text:
                continue
            match = _LOCATION_RE.search(text)
            if match:
                column = int(match.group(3)) if match.group(3) else None
                return normalize_project_path(match.group(1)), int(match.group(2)), column

        for text in (message, stack):
            if not text:
                continue
            match = _BARE_PATH_RE.search(text)
            if match:
                return normalize_project_path(match.group(1)), None, None

        return None, None, None

    @staticmethod
    def _find_related_files(
        import_path: Optional[str],
        identifier: Optional[str],
        error_file: Optional[str],
        tree: Optional[Dict[str, str]]
    ) -> List[str]:
        """Files importing the failing path, files declaring the identifier"""
        if not tree:
            return []

        related: List[str] = []
        import_re = None
        if import_path:
            stem = re.sub(r"\.(tsx?|jsx?)$", "", import_path)
            import_re = re.compile(r"[\"']" + re.escape(stem) + r"(?:\.(?:tsx?|jsx?))?[\"']")
        declare_re = None
        if identifier:
            declare_re = re.compile(
                r"(?:function\*?|const|let|var|class|interface|type|enum)\s+" + re.escape(identifier) + r"\b"
            )

        for path, content in tree.items():
            if not content or path == error_file:
                continue
            if import_re and import_re.search(content):
                related.append(path)
            elif declare_re and declare_re.search(content):
                related.append(path)

        return related


def normalize_project_path(path: str) -> str:
    """
    Normalize a path token from an error into a src/-rooted project path.

    /@fs/home/me/app/src/App.tsx -> src/App.tsx
    components/Header.tsx        -> src/components/Header.tsx
    """
    path = path.replace("\\", "/").split("?")[0]
    index = path.find("/src/")
    if index != -1:
        return path[index + 1:]
    path = path.lstrip("/")
    while path.startswith("./"):
        path = path[2:]
    if path.startswith("src/"):
        return path
    return f"src/{path}"


# Singleton instance
error_analyzer = ErrorAnalyzer()
