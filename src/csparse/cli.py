"""csparse command line."""

from __future__ import annotations

import json
from pathlib import Path

import click

from csparse import __version__
from csparse.ast_nodes import Node, to_dict
from csparse.config import CsparseConfig, config_for
from csparse.errors import CompileError, DiagnosticRenderer, PluginLoadError
from csparse.frontend import CSharpFrontend, ParseResult
from csparse.plugin import load_plugin
from csparse.source import SourceText
from csparse.tokens import Token

_plugin_option = click.option(
    "-p", "--plugin", "plugins", multiple=True, metavar="MODULE:ATTR",
    help="Load a plugin factory in addition to those in csparse.toml.",
)


def _frontend(config: CsparseConfig, extra: tuple[str, ...]) -> CSharpFrontend:
    try:
        factories = [load_plugin(ref) for ref in [*config.parser.plugins, *extra]]
    except PluginLoadError as e:
        click.echo(f"error: {e}", err=True)
        raise SystemExit(1)
    return CSharpFrontend(factories)


def _parse_file(
    frontend: CSharpFrontend, path: Path, renderer: DiagnosticRenderer,
) -> ParseResult | None:
    """Parse one file, rendering diagnostics. Returns None on a lex error."""
    source = path.read_text()
    filename = str(path)
    renderer.add_source(SourceText(source, filename))
    try:
        result = frontend.parse(source, filename)
    except CompileError as e:
        for diag in e.diagnostics:
            click.echo(renderer.render(diag), err=True)
        return None
    for diag in result.diagnostics:
        click.echo(renderer.render(diag), err=True)
    return result


@click.group()
@click.version_option(__version__, prog_name="csparse")
def main() -> None:
    """Lexer and parser for a C#-like language."""


@main.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@_plugin_option
def lex(file: str, plugins: tuple[str, ...]) -> None:
    """Print the tokens of a source file."""
    config = config_for(Path(file))
    frontend = _frontend(config, plugins)
    source = Path(file).read_text()
    try:
        result = frontend.lex(source, file)
    except CompileError as e:
        renderer = DiagnosticRenderer(color=config.output.color)
        renderer.add_source(SourceText(source, file))
        for diag in e.diagnostics:
            click.echo(renderer.render(diag), err=True)
        raise SystemExit(1)
    for tok in result.tokens:
        click.echo(f"{tok.offset:>6} {tok.kind!s:<16} {tok.text}")


@main.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--format", "fmt", type=click.Choice(["tree", "json"]), default=None,
    help="Output format; defaults to output.format from csparse.toml.",
)
@_plugin_option
def parse(file: str, fmt: str | None, plugins: tuple[str, ...]) -> None:
    """Print the AST of a source file."""
    config = config_for(Path(file))
    frontend = _frontend(config, plugins)
    renderer = DiagnosticRenderer(color=config.output.color)

    result = _parse_file(frontend, Path(file), renderer)
    if result is None:
        raise SystemExit(1)

    if (fmt or config.output.format) == "json":
        click.echo(json.dumps(to_dict(result.ast), indent=2))
    else:
        _dump_ast(result.ast, 0)

    if not result.ok:
        raise SystemExit(1)


@main.command()
@click.argument("path", default=".", type=click.Path(exists=True))
@_plugin_option
def check(path: str, plugins: tuple[str, ...]) -> None:
    """Parse every .cs file under PATH and report diagnostics."""
    target = Path(path)
    config = config_for(target)
    frontend = _frontend(config, plugins)
    renderer = DiagnosticRenderer(color=config.output.color)

    cs_files = sorted(target.rglob("*.cs")) if target.is_dir() else [target]
    if not cs_files:
        click.echo("warning: no .cs files found", err=True)
        return

    had_errors = False
    for cs_file in cs_files:
        result = _parse_file(frontend, cs_file, renderer)
        if result is None or not result.ok:
            had_errors = True

    if had_errors:
        raise SystemExit(1)
    click.echo(f"checked {len(cs_files)} file(s): no errors")


@main.command()
def lsp() -> None:
    """Start the csparse language server."""
    from csparse.lsp import main as lsp_main

    lsp_main()


def _dump_ast(node: object, depth: int) -> None:
    """Print a readable AST dump."""
    indent = "  " * depth

    if isinstance(node, Token):
        click.echo(f"{indent}{node.kind!s} {node.text!r}")
        return

    if isinstance(node, Node) and hasattr(node, "__dataclass_fields__"):
        fields = node.__dataclass_fields__  # type: ignore[attr-defined]
        click.echo(f"{indent}{node.type}")
        for field_name in fields:
            if field_name == "offset":
                continue
            value = getattr(node, field_name)
            if isinstance(value, list):
                if value and not all(isinstance(v, str) for v in value):
                    click.echo(f"{indent}  {field_name}:")
                    for item in value:
                        _dump_ast(item, depth + 2)
                else:
                    click.echo(f"{indent}  {field_name}: {value!r}")
            elif isinstance(value, (Node, Token)):
                click.echo(f"{indent}  {field_name}:")
                _dump_ast(value, depth + 2)
            elif value is not None:
                click.echo(f"{indent}  {field_name}: {value!s}")
    else:
        click.echo(f"{indent}{node!r}")
