"""
Unit Tests for the CodeHeal CLI
"""
import json

import pytest
from codeheal.cli.main import AI_STRATEGIES, apply_fixes, create_parser, load_source_tree, main


@pytest.fixture
def project(tmp_path, app_missing_import):
    (tmp_path / "src").mkdir()
    (tmp_path / "src" / "App.tsx").write_text(app_missing_import, encoding="utf-8")
    (tmp_path / "src" / "styles.css").write_text("body {}", encoding="utf-8")
    (tmp_path / "node_modules" / "react").mkdir(parents=True)
    (tmp_path / "node_modules" / "react" / "index.js").write_text("module.exports = {};", encoding="utf-8")
    return tmp_path


class TestParser:

    def test_error_required(self):
        with pytest.raises(SystemExit):
            create_parser().parse_args([])

    def test_defaults(self):
        args = create_parser().parse_args(["--error", "boom"])

        assert args.error == "boom"
        assert args.directory == "."
        assert args.target_file is None
        assert args.skip == []
        assert args.output_format == "text"
        assert args.apply is False

    def test_options(self):
        args = create_parser().parse_args([
            "-e", "boom", "-f", "src/Home.tsx", "--skip", "ai-full", "--skip", "ai-regenerate",
            "--timeout", "5000", "--no-ai",
        ])

        assert args.target_file == "src/Home.tsx"
        assert args.skip == ["ai-full", "ai-regenerate"]
        assert args.timeout == 5000
        assert args.no_ai is True

    def test_unknown_strategy(self):
        with pytest.raises(SystemExit):
            create_parser().parse_args(["-e", "boom", "--skip", "ai-magic"])

    def test_error_sources_exclusive(self):
        with pytest.raises(SystemExit):
            create_parser().parse_args(["-e", "boom", "--error-file", "err.txt"])

    def test_ai_strategies(self):
        assert [s.value for s in AI_STRATEGIES] == ["ai-quick", "ai-full", "ai-iterative", "ai-regenerate"]


class TestFileIO:

    @pytest.mark.asyncio
    async def test_load_source_tree(self, project, app_missing_import):
        tree = await load_source_tree(project)
        assert tree == {"src/App.tsx": app_missing_import}

    @pytest.mark.asyncio
    async def test_apply_fixes(self, tmp_path):
        written = await apply_fixes(tmp_path, {"src/lib/api.ts": "export const api = {};\n"})

        assert written == ["src/lib/api.ts"]
        assert (tmp_path / "src" / "lib" / "api.ts").read_text(encoding="utf-8") == "export const api = {};\n"


class TestMain:
    """Test full CLI runs with local strategies only"""

    def test_json_output(self, project, capsys):
        exit_code = main([
            "-d", str(project), "--error", "ReferenceError: useState is not defined",
            "--no-ai", "--output-format", "json",
        ])

        payload = json.loads(capsys.readouterr().out)
        assert exit_code == 0
        assert payload["success"] is True
        assert payload["strategy"] == "local-simple"
        assert payload["state"] == "fixed"
        assert payload["applied"] == []

    def test_apply_writes_fix(self, project):
        exit_code = main([
            "-d", str(project), "--error", "useState is not defined", "--no-ai", "--apply",
        ])

        content = (project / "src" / "App.tsx").read_text(encoding="utf-8")
        assert exit_code == 0
        assert content.startswith("import { useState } from 'react';")

    def test_error_file(self, project, tmp_path_factory, capsys):
        error_file = tmp_path_factory.mktemp("input") / "error.txt"
        error_file.write_text("useState is not defined\n", encoding="utf-8")

        exit_code = main(["-d", str(project), "--error-file", str(error_file), "--no-ai", "--output-format", "json"])

        assert exit_code == 0
        assert json.loads(capsys.readouterr().out)["success"] is True

    def test_unfixable_error(self, project, capsys):
        exit_code = main(["-d", str(project), "--error", "Something weird happened", "--no-ai",
                          "--output-format", "json"])

        payload = json.loads(capsys.readouterr().out)
        assert exit_code == 1
        assert payload["state"] == "exhausted"
        assert payload["strategy"] == "local-proactive"

    def test_missing_directory(self, tmp_path):
        assert main(["-d", str(tmp_path / "nope"), "--error", "boom"]) == 2

    def test_no_source_files(self, tmp_path):
        assert main(["-d", str(tmp_path), "--error", "boom"]) == 2
