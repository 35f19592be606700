"""Keyword literals and ``return`` statements.

Enable with ``plugins = ["csparse.plugins.extras:plugin"]`` in
csparse.toml, or ``csparse parse -p csparse.plugins.extras:plugin``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from csparse.ast_nodes import Node
from csparse.plugin import Extension, Plugin
from csparse.tokens import Kind

if TYPE_CHECKING:
    from csparse.lexer import Lexer
    from csparse.parser import Parser

NULL = "NULL"

_KEYWORD_LITERALS = frozenset({"true", "false", "this", "base"})


@dataclass(frozen=True)
class KeywordLiteral(Node):
    value: str


@dataclass(frozen=True)
class ReturnStatement(Node):
    argument: Node | None


def _lex(lexer: Lexer) -> None:
    # Appended after IDENTIFIER it would never win, so it goes in front.
    lexer.add_rule(NULL, r"null\b", before="IDENTIFIER")
    lexer.token_kinds["null"] = NULL


def _parse(parser: Parser, kinds: dict[str, Kind]) -> None:
    keyword = kinds["keyword"]
    null = kinds.get("null", NULL)

    def keyword_literal(p: Parser) -> KeywordLiteral | None:
        tok = p.current()
        if p.expect(null) or (tok.kind == keyword and tok.text in _KEYWORD_LITERALS):
            p.advance()
            return KeywordLiteral(tok.text)
        return None

    def return_statement(p: Parser) -> ReturnStatement | None:
        if not p.expect(keyword, "return"):
            return None
        p.advance()
        if p.at_end() or p.expect(value=";") or p.expect(value="}"):
            return ReturnStatement(None)
        return ReturnStatement(p.parse_expression())

    parser.register_routine("keyword_literal", keyword_literal)
    parser.register_routine("return_statement", return_statement)
    parser.expression_extensions.append(keyword_literal)
    parser.expression_extensions.append(return_statement)


def plugin(frontend: Any) -> Plugin:
    return Plugin({
        "keyword_literals": Extension(lex=_lex, parse=_parse),
    })
