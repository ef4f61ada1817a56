"""
Unit Tests for ErrorAnalyzer

Rule-based analysis of raw error text into ParsedError.
"""
import dataclasses

import pytest
from codeheal.services.remediation.analyzer import ErrorAnalyzer, error_analyzer, normalize_project_path
from codeheal.services.remediation.models import ErrorCategory, ParsedError


@pytest.fixture
def analyzer() -> ErrorAnalyzer:
    return ErrorAnalyzer()


class TestImportErrors:
    """Test import-related analysis"""

    def test_bare_specifier(self, analyzer, bare_specifier_message):
        """Test bare specifier extraction"""
        parsed = analyzer.analyze(bare_specifier_message)

        assert parsed.type == "bare-specifier"
        assert parsed.category == ErrorCategory.IMPORT
        assert parsed.import_path == "src/components/Button"
        assert parsed.is_auto_fixable is True
        assert parsed.confidence == 0.95

    def test_well_known_identifier_is_import(self, analyzer):
        """Test undefined React hooks are promoted to IMPORT"""
        parsed = analyzer.analyze("Uncaught ReferenceError: useState is not defined")

        assert parsed.type == "undefined-variable"
        assert parsed.category == ErrorCategory.IMPORT
        assert parsed.identifier == "useState"
        assert parsed.suggested_fix == "Import or declare useState"

    def test_cannot_find_module(self, analyzer):
        parsed = analyzer.analyze("Error: Cannot find module './utils/format'")

        assert parsed.type == "module-not-found"
        assert parsed.category == ErrorCategory.IMPORT
        assert parsed.import_path == "./utils/format"

    def test_related_files_for_bare_specifier(self, analyzer, bare_specifier_message, bare_specifier_tree):
        """Test files importing the failing path are linked"""
        parsed = analyzer.analyze(bare_specifier_message, tree=bare_specifier_tree)

        assert parsed.related_files == ("src/App.tsx", "src/pages/Home.tsx")


class TestOtherCategories:

    def test_unknown_identifier(self, analyzer):
        parsed = analyzer.analyze("ReferenceError: fetchUsr is not defined")

        assert parsed.category == ErrorCategory.UNDEFINED_REF
        assert parsed.identifier == "fetchUsr"

    def test_null_dereference(self, analyzer):
        parsed = analyzer.analyze("TypeError: Cannot read properties of undefined (reading 'map')")

        assert parsed.category == ErrorCategory.RUNTIME_DEREF
        assert parsed.identifier == "map"
        assert parsed.is_auto_fixable is True

    def test_missing_export_with_known_rename(self, analyzer):
        """Test renamed router exports get the replacement"""
        parsed = analyzer.analyze(
            "SyntaxError: The requested module '/node_modules/.vite/deps/react-router-dom.js?v=1' "
            "does not provide an export named 'Switch'"
        )

        assert parsed.type == "missing-export"
        assert parsed.category == ErrorCategory.MISSING_EXPORT
        assert parsed.identifier == "Switch"
        assert parsed.correct_export == "Routes"
        assert parsed.is_auto_fixable is True

    def test_missing_icon_falls_back(self, analyzer):
        parsed = analyzer.analyze(
            "The requested module '/node_modules/.vite/deps/lucide-react.js' "
            "does not provide an export named 'FancyIcon'"
        )

        assert parsed.correct_export == "CircleHelp"

    def test_syntax_error(self, analyzer):
        parsed = analyzer.analyze("SyntaxError: Unexpected token '{'")

        assert parsed.category == ErrorCategory.SYNTAX
        assert parsed.type == "syntax-error"

    def test_unknown_error(self, analyzer):
        parsed = analyzer.analyze("Something weird happened")

        assert parsed.type == "unknown"
        assert parsed.category == ErrorCategory.OTHER
        assert parsed.is_auto_fixable is False
        assert parsed.is_ignorable is False
        assert parsed.confidence == 0.3


class TestIgnorable:
    """Test transient and connectivity errors are ignorable"""

    @pytest.mark.parametrize("message,category", [
        ("TypeError: Failed to fetch", ErrorCategory.NETWORK),
        ("AxiosError: Network Error", ErrorCategory.NETWORK),
        ("GET http://localhost:8000/api net::ERR_CONNECTION_REFUSED", ErrorCategory.NETWORK),
        ("ResizeObserver loop limit exceeded", ErrorCategory.TRANSIENT),
        ("ChunkLoadError: Loading chunk 5 failed.", ErrorCategory.TRANSIENT),
        ("TypeError: Failed to fetch dynamically imported module: /src/pages/Home.tsx", ErrorCategory.TRANSIENT),
    ])
    def test_ignorable(self, analyzer, message, category):
        parsed = analyzer.analyze(message)

        assert parsed.is_ignorable is True
        assert parsed.is_auto_fixable is False
        assert parsed.category == category
        assert analyzer.is_ignorable(message) is True

    def test_actionable_is_not_ignorable(self, analyzer):
        assert analyzer.is_ignorable("useState is not defined") is False


class TestLocation:
    """Test file/line/column extraction"""

    def test_location_in_message(self, analyzer):
        parsed = analyzer.analyze("ReferenceError: foo is not defined at src/App.tsx:12:5")

        assert parsed.file == "src/App.tsx"
        assert parsed.line == 12
        assert parsed.column == 5

    def test_dev_server_url(self, analyzer):
        """Test origin and cache buster are stripped"""
        parsed = analyzer.analyze(
            "TypeError: x is not a function at http://localhost:5173/src/components/Header.tsx?t=1712:4:2"
        )

        assert parsed.file == "src/components/Header.tsx"
        assert parsed.line == 4
        assert parsed.column == 2

    def test_location_from_stack(self, analyzer):
        parsed = analyzer.analyze("Something broke", stack="    at App (src/App.tsx:3:1)")

        assert parsed.file == "src/App.tsx"
        assert parsed.line == 3

    def test_location_raises_confidence(self, analyzer):
        without = analyzer.analyze("ReferenceError: foo is not defined")
        with_file = analyzer.analyze("ReferenceError: foo is not defined at src/App.tsx:1:1")

        assert with_file.confidence == pytest.approx(without.confidence + 0.05)

    def test_no_location(self, analyzer):
        parsed = analyzer.analyze("Something weird happened")

        assert parsed.file is None
        assert parsed.line is None


class TestParsedError:

    def test_is_immutable(self, analyzer):
        parsed = analyzer.analyze("useState is not defined")

        with pytest.raises(dataclasses.FrozenInstanceError):
            parsed.category = ErrorCategory.OTHER

    def test_fresh_value_per_call(self, analyzer):
        first = analyzer.analyze("useState is not defined")
        second = analyzer.analyze("useState is not defined")

        assert first == second
        assert first is not second

    def test_classify(self):
        assert error_analyzer.classify("Cannot find name 'foo'") == ErrorCategory.UNDEFINED_REF

    def test_summary(self, analyzer):
        parsed = analyzer.analyze("useState is not defined at src/App.tsx:4:3")
        assert analyzer.get_summary(parsed) == '"useState" is not defined in src/App.tsx at line 4'

    def test_empty_message(self, analyzer):
        parsed = analyzer.analyze("")

        assert isinstance(parsed, ParsedError)
        assert parsed.category == ErrorCategory.OTHER


class TestNormalizeProjectPath:

    @pytest.mark.parametrize("raw,expected", [
        ("/@fs/home/me/app/src/App.tsx", "src/App.tsx"),
        ("components/Header.tsx", "src/components/Header.tsx"),
        ("./src/main.tsx", "src/main.tsx"),
        ("/src/App.tsx?t=123", "src/App.tsx"),
        ("src\\pages\\Home.tsx", "src/pages/Home.tsx"),
    ])
    def test_normalize(self, raw, expected):
        assert normalize_project_path(raw) == expected
