"""Tests for the csparse CLI, config, and error rendering."""

from __future__ import annotations

import json

import pytest
from click.testing import CliRunner

from csparse.cli import main
from csparse.config import CsparseConfig, config_for, find_config, load_config
from csparse.errors import Diagnostic, DiagnosticLabel, DiagnosticRenderer, Severity
from csparse.source import SourceText, Span


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def tmp_project(tmp_path):
    """Create a small project with a config and two source files."""
    (tmp_path / "csparse.toml").write_text("[output]\ncolor = false\n")
    src = tmp_path / "src"
    src.mkdir()
    (src / "Foo.cs").write_text("class Foo : Bar { public int x; }\n")
    (src / "Main.cs").write_text("if (a) { b = 1 + 2; }\n")
    return tmp_path


# --- CLI tests ---


class TestCLI:
    def test_help(self, runner):
        result = runner.invoke(main, ["--help"])
        assert result.exit_code == 0
        assert "lex" in result.output
        assert "parse" in result.output
        assert "check" in result.output
        assert "lsp" in result.output

    def test_version(self, runner):
        result = runner.invoke(main, ["--version"])
        assert result.exit_code == 0
        assert "0.1.0" in result.output


class TestLexCommand:
    def test_tokens(self, runner, tmp_project):
        result = runner.invoke(main, ["lex", str(tmp_project / "src" / "Foo.cs")])
        assert result.exit_code == 0
        lines = result.output.splitlines()
        assert lines[0].split() == ["0", "KEYWORD", "class"]
        assert lines[1].split() == ["6", "IDENTIFIER", "Foo"]

    def test_lex_error(self, runner, tmp_project):
        bad = tmp_project / "bad.cs"
        bad.write_text("int x = `1`;\n")
        result = runner.invoke(main, ["lex", str(bad)])
        assert result.exit_code == 1
        assert "error[E100]" in result.output
        assert "Unexpected token at position 8" in result.output

    def test_missing_file(self, runner, tmp_path):
        result = runner.invoke(main, ["lex", str(tmp_path / "nope.cs")])
        assert result.exit_code == 2


class TestParseCommand:
    def test_tree(self, runner, tmp_project):
        result = runner.invoke(main, ["parse", str(tmp_project / "src" / "Foo.cs")])
        assert result.exit_code == 0
        assert "Program" in result.output
        assert "ClassDeclaration" in result.output
        assert "name: Foo" in result.output
        assert "ClassMember" in result.output

    def test_json(self, runner, tmp_project):
        result = runner.invoke(
            main, ["parse", str(tmp_project / "src" / "Foo.cs"), "--format", "json"],
        )
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["type"] == "Program"
        (cls,) = data["body"]
        assert cls["type"] == "ClassDeclaration"
        assert cls["name"] == "Foo"
        assert cls["base_types"][0]["name"] == "Bar"

    def test_json_from_config(self, runner, tmp_path):
        (tmp_path / "csparse.toml").write_text('[output]\nformat = "json"\n')
        src = tmp_path / "a.cs"
        src.write_text("x = 1;")
        result = runner.invoke(main, ["parse", str(src)])
        assert result.exit_code == 0
        assert json.loads(result.output)["body"][0]["type"] == "AssignmentExpression"

    def test_diagnostics_exit_nonzero(self, runner, tmp_project):
        bad = tmp_project / "bad.cs"
        bad.write_text("class ;\n")
        result = runner.invoke(main, ["parse", str(bad)])
        assert result.exit_code == 1
        assert "error[E200]" in result.output
        assert "Expected class name identifier" in result.output

    def test_plugin_option(self, runner, tmp_project):
        src = tmp_project / "ret.cs"
        src.write_text("return null;")
        args = ["parse", str(src), "-p", "csparse.plugins.extras:plugin"]
        result = runner.invoke(main, args)
        assert result.exit_code == 0
        assert "ReturnStatement" in result.output
        assert "KeywordLiteral" in result.output

    def test_plugin_from_config(self, runner, tmp_path):
        (tmp_path / "csparse.toml").write_text(
            '[parser]\nplugins = ["csparse.plugins.extras:plugin"]\n'
        )
        src = tmp_path / "ret.cs"
        src.write_text("return x;")
        result = runner.invoke(main, ["parse", str(src)])
        assert result.exit_code == 0
        assert "ReturnStatement" in result.output

    def test_bad_plugin(self, runner, tmp_project):
        src = tmp_project / "src" / "Foo.cs"
        result = runner.invoke(main, ["parse", str(src), "-p", "csparse_missing:plugin"])
        assert result.exit_code == 1
        assert "cannot import plugin module" in result.output


class TestCheckCommand:
    def test_check_project(self, runner, tmp_project):
        result = runner.invoke(main, ["check", str(tmp_project)])
        assert result.exit_code == 0
        assert "checked 2 file(s): no errors" in result.output

    def test_check_reports_each_file(self, runner, tmp_project):
        (tmp_project / "src" / "Bad.cs").write_text("namespace { }\n")
        result = runner.invoke(main, ["check", str(tmp_project)])
        assert result.exit_code == 1
        assert "Bad.cs:1:11" in result.output
        assert "no errors" not in result.output

    def test_check_lex_error(self, runner, tmp_project):
        (tmp_project / "src" / "Bad.cs").write_text("#if DEBUG\n")
        result = runner.invoke(main, ["check", str(tmp_project)])
        assert result.exit_code == 1
        assert "error[E100]" in result.output

    def test_check_empty_dir(self, runner, tmp_path):
        result = runner.invoke(main, ["check", str(tmp_path)])
        assert result.exit_code == 0
        assert "no .cs files found" in result.output

    def test_check_single_file(self, runner, tmp_project):
        result = runner.invoke(main, ["check", str(tmp_project / "src" / "Main.cs")])
        assert result.exit_code == 0
        assert "checked 1 file(s)" in result.output


# --- Config tests ---


class TestConfig:
    def test_find_config(self, tmp_project):
        nested = tmp_project / "src"
        assert find_config(nested) == (tmp_project / "csparse.toml").resolve()

    def test_find_config_from_file(self, tmp_project):
        assert find_config(tmp_project / "src" / "Foo.cs") == (tmp_project / "csparse.toml").resolve()

    def test_load_config(self, tmp_path):
        path = tmp_path / "csparse.toml"
        path.write_text(
            '[parser]\nplugins = ["a.b:plugin"]\n'
            '[output]\ncolor = false\nformat = "json"\n'
        )
        config = load_config(path)
        assert config.parser.plugins == ["a.b:plugin"]
        assert config.output.color is False
        assert config.output.format == "json"

    def test_defaults(self, tmp_path):
        path = tmp_path / "csparse.toml"
        path.write_text("")
        config = load_config(path)
        assert config.parser.plugins == []
        assert config.output.color is True
        assert config.output.format == "tree"

    def test_bad_format(self, tmp_path):
        path = tmp_path / "csparse.toml"
        path.write_text('[output]\nformat = "yaml"\n')
        with pytest.raises(ValueError, match="output.format"):
            load_config(path)

    def test_config_for_without_file(self, tmp_path, monkeypatch):
        monkeypatch.setattr("csparse.config.find_config", _not_found)
        assert config_for(tmp_path) == CsparseConfig()


def _not_found(start_path=None):
    raise FileNotFoundError("no config")


# --- Error rendering tests ---


class TestDiagnosticRenderer:
    def _diag(self, message="Expected class name identifier at 6, got SYMBOL: ;"):
        return Diagnostic(
            severity=Severity.ERROR,
            code="E200",
            message=message,
            labels=[DiagnosticLabel(span=Span("a.cs", 1, 7, 1, 7), message="")],
            offset=6,
        )

    def test_render_plain(self):
        renderer = DiagnosticRenderer(color=False)
        renderer.add_source(SourceText("class ;", "a.cs"))
        out = renderer.render(self._diag())
        lines = out.splitlines()
        assert lines[0] == "error[E200]: Expected class name identifier at 6, got SYMBOL: ;"
        assert lines[1] == "  --> a.cs:1:7"
        assert lines[3] == "     1 | class ;"
        assert lines[4] == "     |       ^"

    def test_render_with_color(self):
        renderer = DiagnosticRenderer(color=True)
        renderer.add_source(SourceText("class ;", "a.cs"))
        out = renderer.render(self._diag())
        assert "\033[" in out
        assert "E200" in out

    def test_render_without_source(self):
        renderer = DiagnosticRenderer(color=False)
        diag = Diagnostic(
            severity=Severity.ERROR,
            code="E200",
            message="x",
            labels=[DiagnosticLabel(span=Span("<missing>.cs", 3, 1, 3, 1), message="")],
        )
        out = renderer.render(diag)
        assert "  --> <missing>.cs:3:1" in out
        assert "| ^" in out

    def test_render_notes(self):
        renderer = DiagnosticRenderer(color=False)
        diag = Diagnostic(Severity.WARNING, "W001", "careful", notes=["look here"])
        out = renderer.render(diag)
        assert out.startswith("warning[W001]: careful")
        assert "= note: look here" in out

    def test_str_is_message(self):
        assert str(self._diag("boom")) == "boom"
