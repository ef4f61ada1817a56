"""
Unit Tests for error context helpers
"""
import pytest
from codeheal.services.remediation.analyzer import error_analyzer
from codeheal.services.remediation.context import (
    clean_generated_code,
    extract_component_name,
    get_related_files,
    resolve_import,
)


@pytest.fixture
def project_tree() -> dict:
    return {
        "src/App.tsx": (
            "import Header from './components/Header';\n"
            "import { Button } from '@/components/Button';\n"
            "import { format } from './utils/format';\n"
            "import React from 'react';\n"
        ),
        "src/components/Header.tsx": "export default function Header() { return null; }\n",
        "src/components/Button.tsx": "export function Button() { return null; }\n",
        "src/utils/format.ts": "export const format = (v) => String(v);\n",
        "src/hooks/index.ts": "export * from './useAuth';\n",
    }


class TestResolveImport:

    def test_relative(self, project_tree):
        assert resolve_import("src/pages/Home.tsx", "../components/Header", project_tree) == (
            "src/components/Header.tsx"
        )

    def test_alias(self, project_tree):
        assert resolve_import("src/App.tsx", "@/utils/format", project_tree) == "src/utils/format.ts"

    def test_src_rooted(self, project_tree):
        assert resolve_import("src/App.tsx", "src/components/Button", project_tree) == (
            "src/components/Button.tsx"
        )

    def test_directory_index(self, project_tree):
        assert resolve_import("src/App.tsx", "./hooks", project_tree) == "src/hooks/index.ts"

    def test_package_import(self, project_tree):
        assert resolve_import("src/App.tsx", "react", project_tree) is None

    def test_missing_file(self, project_tree):
        assert resolve_import("src/App.tsx", "./nope", project_tree) is None


class TestGetRelatedFiles:
    """Test related file discovery for AI prompts"""

    def test_imports_of_failing_file(self, project_tree):
        related = get_related_files(
            "TypeError: x is not a function", project_tree["src/App.tsx"], project_tree, "src/App.tsx"
        )

        assert list(related) == ["src/components/Header.tsx", "src/components/Button.tsx", "src/utils/format.ts"]
        assert related["src/utils/format.ts"] == project_tree["src/utils/format.ts"]

    def test_files_named_in_error_first(self, project_tree):
        related = get_related_files(
            "TypeError: format is not a function at src/utils/format.ts:1:30",
            project_tree["src/App.tsx"],
            project_tree,
            "src/App.tsx",
            limit=2,
        )

        assert list(related) == ["src/utils/format.ts", "src/components/Header.tsx"]

    def test_target_never_included(self, project_tree):
        related = get_related_files(
            "Error in src/App.tsx:3:1", project_tree["src/App.tsx"], project_tree, "src/App.tsx"
        )
        assert "src/App.tsx" not in related

    def test_parsed_error_related_files(self, bare_specifier_message, bare_specifier_tree):
        parsed = error_analyzer.analyze(bare_specifier_message, tree=bare_specifier_tree)
        related = get_related_files(parsed, bare_specifier_tree["src/App.tsx"], bare_specifier_tree, "src/App.tsx")

        assert "src/pages/Home.tsx" in related

    def test_limit(self, project_tree):
        related = get_related_files("", project_tree["src/App.tsx"], project_tree, "src/App.tsx", limit=1)
        assert len(related) == 1

    def test_no_tree(self):
        assert get_related_files("error", "code", None) == {}


class TestCleanGeneratedCode:

    @pytest.mark.parametrize("raw,expected", [
        ("```tsx\nconst a = 1;\n```", "const a = 1;"),
        ("```\nconst a = 1;\n```\n", "const a = 1;"),
        ("typescript\nconst a = 1;", "const a = 1;"),
        ("  const a = 1;  \n", "const a = 1;"),
        ("", ""),
        (None, ""),
    ])
    def test_clean(self, raw, expected):
        assert clean_generated_code(raw) == expected

    def test_backticks_inside_code_kept(self):
        code = "const help = `\n```bash\nnpm install\n```\n`;"
        raw = f"```tsx\n{code}\n```"

        assert clean_generated_code(raw) == code


class TestExtractComponentName:

    @pytest.mark.parametrize("code,expected", [
        ("export default function App() {}", "App"),
        ("export const Card = () => null;", "Card"),
        ("export function Header() {}", "Header"),
        ("const x = 1;", None),
    ])
    def test_component_name(self, code, expected):
        assert extract_component_name(code) == expected
