"""csparse language server: pygls-based LSP for .cs files.

Provides parse diagnostics and document symbols via stdio transport.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from lsprotocol import types as lsp
from pygls.lsp.server import LanguageServer

from csparse import __version__
from csparse.ast_nodes import (
    ClassDeclaration,
    ClassMember,
    NamespaceDeclaration,
    Node,
    Program,
)
from csparse.config import config_for
from csparse.errors import CompileError, Diagnostic, PluginLoadError, Severity
from csparse.frontend import CSharpFrontend
from csparse.plugin import load_plugin
from csparse.source import SourceText, Span

_SEVERITY_MAP = {
    Severity.ERROR: lsp.DiagnosticSeverity.Error,
    Severity.WARNING: lsp.DiagnosticSeverity.Warning,
    Severity.NOTE: lsp.DiagnosticSeverity.Information,
}


def span_to_range(span: Span) -> lsp.Range:
    """Convert a 1-indexed Span to a 0-indexed LSP Range."""
    return lsp.Range(
        start=lsp.Position(line=span.start_line - 1, character=span.start_col - 1),
        end=lsp.Position(line=span.end_line - 1, character=span.end_col),
    )


# ── Per-document state ────────────────────────────────────────────


@dataclass
class DocumentState:
    """Cached analysis results for a single open document."""

    source: str = ""
    program: Program | None = None
    diagnostics: list[lsp.Diagnostic] = field(default_factory=list)


server = LanguageServer(
    "csparse-lsp", __version__,
    text_document_sync_kind=lsp.TextDocumentSyncKind.Full,
)
_state: dict[str, DocumentState] = {}
_frontend: CSharpFrontend | None = None
_plugin_error: str | None = None


def _get_frontend() -> CSharpFrontend:
    """The frontend for csparse.toml plugins; plugin-free if one fails to load."""
    global _frontend, _plugin_error
    if _frontend is None:
        config = config_for()
        try:
            _frontend = CSharpFrontend([load_plugin(ref) for ref in config.parser.plugins])
        except PluginLoadError as e:
            _plugin_error = str(e)
            _frontend = CSharpFrontend()
    return _frontend


def _lsp_diag(d: Diagnostic) -> lsp.Diagnostic:
    span_range = lsp.Range(start=lsp.Position(0, 0), end=lsp.Position(0, 0))
    if d.labels:
        span_range = span_to_range(d.labels[0].span)
    return lsp.Diagnostic(
        range=span_range,
        severity=_SEVERITY_MAP.get(d.severity, lsp.DiagnosticSeverity.Error),
        source="csparse",
        code=d.code,
        message=d.message,
    )


def _analyze(uri: str, source: str, frontend: CSharpFrontend | None = None) -> DocumentState:
    """Lex and parse, cache the results, return the state."""
    ds = DocumentState(source=source)
    if frontend is None:
        frontend = _get_frontend()
        if _plugin_error is not None:
            ds.diagnostics.append(lsp.Diagnostic(
                range=lsp.Range(start=lsp.Position(0, 0), end=lsp.Position(0, 0)),
                severity=lsp.DiagnosticSeverity.Warning, source="csparse",
                message=f"[config] {_plugin_error}",
            ))
    try:
        result = frontend.parse(source, uri)
    except CompileError as e:
        ds.diagnostics.extend(_lsp_diag(d) for d in e.diagnostics)
    else:
        ds.program = result.ast
        ds.diagnostics.extend(_lsp_diag(d) for d in result.diagnostics)
    _state[uri] = ds
    return ds


def _symbol(node: Node, text: SourceText) -> lsp.DocumentSymbol | None:
    """Convert a declaration to an LSP DocumentSymbol."""
    if isinstance(node, NamespaceDeclaration):
        name, kind, offset = node.name.dotted_name, lsp.SymbolKind.Namespace, node.offset
        members = node.body
    elif isinstance(node, ClassDeclaration):
        name, kind, offset = node.name, lsp.SymbolKind.Class, node.offset
        members = node.body
    elif isinstance(node, ClassMember):
        kind = lsp.SymbolKind.Method if node.kind == "method" else lsp.SymbolKind.Field
        name, offset = node.name, node.offset
        members = []
    else:
        return None

    children = [c for c in (_symbol(m, text) for m in members) if c is not None]
    rng = span_to_range(text.span(max(offset, 0), len(name)))
    return lsp.DocumentSymbol(
        name=name,
        kind=kind,
        range=rng,
        selection_range=rng,
        children=children or None,
    )


def document_symbols(ds: DocumentState, uri: str) -> list[lsp.DocumentSymbol]:
    if ds.program is None:
        return []
    text = SourceText(ds.source, uri)
    return [s for s in (_symbol(n, text) for n in ds.program.body) if s is not None]


# ── LSP Feature Handlers ─────────────────────────────────────────


@server.feature(lsp.TEXT_DOCUMENT_DID_OPEN)
def did_open(params: lsp.DidOpenTextDocumentParams) -> None:
    uri = params.text_document.uri
    ds = _analyze(uri, params.text_document.text)
    server.text_document_publish_diagnostics(lsp.PublishDiagnosticsParams(
        uri=uri,
        diagnostics=ds.diagnostics,
    ))


@server.feature(lsp.TEXT_DOCUMENT_DID_CHANGE)
def did_change(params: lsp.DidChangeTextDocumentParams) -> None:
    uri = params.text_document.uri
    # Full sync: take last content change
    source = params.content_changes[-1].text if params.content_changes else ""
    ds = _analyze(uri, source)
    server.text_document_publish_diagnostics(lsp.PublishDiagnosticsParams(
        uri=uri,
        diagnostics=ds.diagnostics,
    ))


@server.feature(lsp.TEXT_DOCUMENT_DID_CLOSE)
def did_close(params: lsp.DidCloseTextDocumentParams) -> None:
    _state.pop(params.text_document.uri, None)


@server.feature(lsp.TEXT_DOCUMENT_DOCUMENT_SYMBOL)
def document_symbol(params: lsp.DocumentSymbolParams) -> list[lsp.DocumentSymbol]:
    uri = params.text_document.uri
    ds = _state.get(uri)
    if ds is None:
        return []
    return document_symbols(ds, uri)


def main() -> None:
    """Start the csparse language server on stdio."""
    server.start_io()
