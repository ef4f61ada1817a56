"""
Unit Tests for TextScanner and the default syntax validator
"""
import pytest
from codeheal.services.remediation.scanner import TextScanner, is_syntactically_valid


@pytest.fixture
def scanner() -> TextScanner:
    return TextScanner()


class TestScan:
    """Test bracket scanning"""

    def test_balanced(self, scanner):
        report = scanner.scan("function f(a) { return [a, { b: 1 }]; }")

        assert report.is_balanced
        assert report.unclosed == []
        assert report.mismatches == 0

    def test_literals_and_comments_ignored(self, scanner):
        """Test brackets inside strings, templates and comments do not count"""
        code = (
            "const s = '(';\n"
            'const d = "[";\n'
            "// {\n"
            "/* [ */\n"
            "const t = `${a}(`;\n"
        )

        assert scanner.scan(code).is_balanced

    def test_template_expression_with_object(self, scanner):
        assert scanner.scan("const t = `a ${ {x: 1}.x } b`;").is_balanced

    def test_jsx_apostrophe(self, scanner):
        """Test an apostrophe inside a word is JSX text, not a string"""
        report = scanner.scan("const p = <p>Don't stop</p>;")

        assert report.unterminated is None
        assert report.is_balanced

    def test_unclosed_order(self, scanner):
        report = scanner.scan("function f() {\n  const a = [1, 2\n")
        assert report.unclosed == ["{", "["]

    def test_mismatched_closer(self, scanner):
        report = scanner.scan("foo())")

        assert report.mismatches == 1
        assert not report.is_balanced

    def test_deficit(self, scanner):
        report = scanner.scan("{{}")

        assert report.deficit("{") == 1
        assert report.deficit("(") == 0

    @pytest.mark.parametrize("code,kind", [
        ("const s = 'abc", "string"),
        ("const s = 'abc\nconst t = 1;", "string"),
        ("const t = `abc", "template"),
        ("/* never closed", "comment"),
    ])
    def test_unterminated(self, scanner, code, kind):
        report = scanner.scan(code)

        assert report.unterminated == kind
        assert not report.is_balanced


class TestMaskLiterals:

    def test_same_length_and_blanked(self, scanner):
        code = "a = 'xy' // c"
        masked = scanner.mask_literals(code)

        assert masked == "a = '  '     "
        assert len(masked) == len(code)

    def test_newlines_kept(self, scanner):
        code = "/* a\nb */\nx"
        masked = scanner.mask_literals(code)

        assert masked.count("\n") == 2
        assert masked.endswith("x")


class TestValidator:

    @pytest.mark.parametrize("code,valid", [
        ("export const a = 1;\n", True),
        ("", False),
        ("   \n", False),
        ("function f() {", False),
        ("const s = 'open", False),
    ])
    def test_is_syntactically_valid(self, code, valid):
        assert is_syntactically_valid(code) is valid
