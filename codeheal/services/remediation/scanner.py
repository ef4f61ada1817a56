"""
Text Scanner - string/comment-aware bracket scanning

NO AST - single pass over raw source text.
Tracks single/double-quoted strings, template literals (with nested ${...}
expressions), line and block comments. Anything parser-like the fixers or the
default validator need goes through the SourceScanner protocol so an AST
backed implementation can be swapped in later.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Protocol, Tuple


OPENERS = "([{"
CLOSERS = ")]}"
PAIRS = {")": "(", "]": "[", "}": "{"}
MATCHING_CLOSER = {"(": ")", "[": "]", "{": "}"}

# Scanner states
_CODE = "code"
_SINGLE = "'"
_DOUBLE = '"'
_TEMPLATE = "`"
_LINE_COMMENT = "line_comment"
_BLOCK_COMMENT = "block_comment"


@dataclass
class ScanReport:
    """Outcome of a single scan"""
    # Openers still open at EOF, outermost first
    unclosed: List[str] = field(default_factory=list)
    # Closers with no matching opener on top of the stack
    mismatches: int = 0
    # Raw opener/closer tallies outside literals and comments
    counts: Dict[str, int] = field(default_factory=lambda: {c: 0 for c in OPENERS + CLOSERS})
    # "string", "template" or "comment" when the file ends inside one
    unterminated: Optional[str] = None

    @property
    def is_balanced(self) -> bool:
        return not self.unclosed and self.mismatches == 0 and self.unterminated is None

    def deficit(self, opener: str) -> int:
        """Number of closers missing for one bracket kind (never negative)"""
        return max(0, self.counts[opener] - self.counts[MATCHING_CLOSER[opener]])


class SourceScanner(Protocol):
    """Parser abstraction used by the fixers and the default validator"""

    def scan(self, code: str) -> ScanReport:
        ...

    def mask_literals(self, code: str) -> str:
        ...


class TextScanner:
    """
    Raw-text scanner for JS/TS/JSX sources.

    A quote directly preceded by a word character is treated as literal text
    (JSX copy such as ``Don't``), not as the start of a string.
    """

    def scan(self, code: str) -> ScanReport:
        report, _ = self._walk(code)
        return report

    def mask_literals(self, code: str) -> str:
        """Return code with string, template and comment contents blanked out (same length)"""
        _, masked = self._walk(code)
        return masked

    def _walk(self, code: str) -> Tuple[ScanReport, str]:
        report = ScanReport()
        stack: List[str] = []
        # Bracket-stack depth at which each open ${ started
        template_resume: List[int] = []
        masked: List[str] = []

        state = _CODE
        i = 0
        n = len(code)

        while i < n:
            ch = code[i]
            nxt = code[i + 1] if i + 1 < n else ""

            if state == _CODE:
                if ch == "/" and nxt == "/":
                    state = _LINE_COMMENT
                    masked.append("  ")
                    i += 2
                    continue
                if ch == "/" and nxt == "*":
                    state = _BLOCK_COMMENT
                    masked.append("  ")
                    i += 2
                    continue
                if ch in ("'", '"'):
                    prev = code[i - 1] if i > 0 else ""
                    if not (prev.isalnum() or prev == "_"):
                        state = ch
                    masked.append(ch)
                    i += 1
                    continue
                if ch == "`":
                    state = _TEMPLATE
                    masked.append(ch)
                    i += 1
                    continue

                if ch in OPENERS:
                    report.counts[ch] += 1
                    stack.append(ch)
                elif ch in CLOSERS:
                    if ch == "}" and template_resume and template_resume[-1] == len(stack):
                        # End of a ${...} expression, back inside the template
                        template_resume.pop()
                        state = _TEMPLATE
                        masked.append(ch)
                        i += 1
                        continue
                    report.counts[ch] += 1
                    if stack and stack[-1] == PAIRS[ch]:
                        stack.pop()
                    else:
                        report.mismatches += 1
                masked.append(ch)
                i += 1
                continue

            if state == _LINE_COMMENT:
                if ch == "\n":
                    state = _CODE
                    masked.append(ch)
                else:
                    masked.append(" ")
                i += 1
                continue

            if state == _BLOCK_COMMENT:
                if ch == "*" and nxt == "/":
                    state = _CODE
                    masked.append("  ")
                    i += 2
                    continue
                masked.append("\n" if ch == "\n" else " ")
                i += 1
                continue

            if state in (_SINGLE, _DOUBLE):
                if ch == "\\" and i + 1 < n:
                    masked.append("  ")
                    i += 2
                    continue
                if ch == state:
                    state = _CODE
                    masked.append(ch)
                elif ch == "\n":
                    # Plain strings cannot span lines
                    report.unterminated = "string"
                    state = _CODE
                    masked.append(ch)
                else:
                    masked.append(" ")
                i += 1
                continue

            # Template literal
            if ch == "\\" and i + 1 < n:
                masked.append("  ")
                i += 2
                continue
            if ch == "`":
                state = _CODE
                masked.append(ch)
                i += 1
                continue
            if ch == "$" and nxt == "{":
                template_resume.append(len(stack))
                state = _CODE
                masked.append("${")
                i += 2
                continue
            masked.append("\n" if ch == "\n" else " ")
            i += 1

        if state in (_SINGLE, _DOUBLE):
            report.unterminated = "string"
        elif state == _TEMPLATE or template_resume:
            report.unterminated = "template"
        elif state == _BLOCK_COMMENT:
            report.unterminated = "comment"

        report.unclosed = stack
        return report, "".join(masked)


# Shared default instance
text_scanner = TextScanner()


def is_syntactically_valid(code: str, scanner: Optional[SourceScanner] = None) -> bool:
    """
    Default validator: non-empty, brackets balanced and properly nested,
    no unterminated string/template/comment.
    """
    if not code or not code.strip():
        return False
    report = (scanner or text_scanner).scan(code)
    return report.is_balanced
