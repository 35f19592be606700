"""One-shot lex/parse calls wired through a plugin registry."""

from __future__ import annotations

from dataclasses import dataclass, field

from csparse.ast_nodes import Program
from csparse.errors import Diagnostic
from csparse.lexer import Lexer
from csparse.parser import Parser
from csparse.plugin import Plugin, PluginFactory, PluginRegistry
from csparse.tokens import Kind, Token


@dataclass
class LexResult:
    tokens: list[Token]
    diagnostics: list[Diagnostic] = field(default_factory=list)


@dataclass
class ParseResult:
    ast: Program
    diagnostics: list[Diagnostic] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.diagnostics

    @property
    def messages(self) -> list[str]:
        return [d.message for d in self.diagnostics]


class CSharpFrontend:
    """Owns the plugin registry and builds a fresh lexer/parser per call."""

    def __init__(self, plugins: list[PluginFactory] | None = None) -> None:
        self.registry = PluginRegistry(self)
        for factory in plugins or []:
            self.register_plugin(factory)

    @property
    def plugins(self) -> tuple[Plugin, ...]:
        return self.registry.plugins

    def register_plugin(self, factory: PluginFactory) -> Plugin:
        return self.registry.instantiate(factory)

    def lexer(self, source: str, filename: str = "<stdin>") -> Lexer:
        lexer = Lexer(source, filename)
        self.registry.apply_to_lexer(lexer)
        return lexer

    def parser(
        self,
        tokens: list[Token],
        source: str = "",
        filename: str = "<stdin>",
        token_kinds: dict[str, Kind] | None = None,
    ) -> Parser:
        parser = Parser(tokens, source, filename, token_kinds)
        self.registry.apply_to_parser(parser, parser.token_kinds)
        return parser

    def lex(self, source: str, filename: str = "<stdin>") -> LexResult:
        """Tokenize ``source``. Raises ``LexError`` when no rule matches."""
        lexer = self.lexer(source, filename)
        return LexResult(lexer.tokenize())

    def parse(self, source: str, filename: str = "<stdin>") -> ParseResult:
        """Lex and parse ``source``; the tree is returned even with diagnostics."""
        lexer = self.lexer(source, filename)
        tokens = lexer.tokenize()
        parser = self.parser(tokens, source, filename, lexer.token_kinds)
        program = parser.parse_program()
        return ParseResult(program, parser.diagnostics)
