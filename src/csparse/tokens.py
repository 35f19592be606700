"""Token kinds, token representation and the built-in token rules."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Union


class TokenKind(str, Enum):
    # Discarded
    WHITESPACE = "WHITESPACE"
    COMMENT_SINGLE = "COMMENT_SINGLE"
    COMMENT_MULTI = "COMMENT_MULTI"

    INTERPOLATED_STR = "INTERPOLATED_STR"
    KEYWORD = "KEYWORD"
    IDENTIFIER = "IDENTIFIER"
    NUMBER = "NUMBER"
    STRING = "STRING"
    CHAR = "CHAR"
    SYMBOL = "SYMBOL"

    # End-of-input marker, never emitted by the lexer
    EOF = "EOF"

    def __str__(self) -> str:
        return self.value


# Plugins register their own kinds as plain strings.
Kind = Union[TokenKind, str]


@dataclass(frozen=True)
class Token:
    kind: Kind
    text: str
    offset: int

    @property
    def end(self) -> int:
        return self.offset + len(self.text)


@dataclass(frozen=True)
class TokenRule:
    kind: Kind
    pattern: re.Pattern[str]
    discard: bool = False


KEYWORDS: frozenset[str] = frozenset({
    "class", "public", "private", "protected", "internal", "virtual",
    "readonly", "sealed", "abstract", "override", "static", "async",
    "void", "float", "double", "int", "long", "char", "string", "bool",
    "object", "var",
    "if", "else", "for", "while", "return", "new",
    "using", "namespace",
    "true", "false", "this", "base",
})

MODIFIERS: frozenset[str] = frozenset({
    "public", "private", "protected", "internal", "static", "abstract",
    "override", "virtual", "readonly", "sealed", "async",
})

# Short aliases handed to plugin parse hooks.
TOKEN_KINDS: dict[str, Kind] = {
    "str": TokenKind.STRING,
    "num": TokenKind.NUMBER,
    "id": TokenKind.IDENTIFIER,
    "keyword": TokenKind.KEYWORD,
    "sym": TokenKind.SYMBOL,
    "chr": TokenKind.CHAR,
    "templatestr": TokenKind.INTERPOLATED_STR,
}

_KEYWORD_PATTERN = "(?:" + "|".join(sorted(KEYWORDS, key=len, reverse=True)) + r")\b"

# Order is priority: first match wins, not longest.
DEFAULT_RULES: tuple[TokenRule, ...] = (
    TokenRule(TokenKind.WHITESPACE, re.compile(r"\s+"), discard=True),
    TokenRule(TokenKind.COMMENT_SINGLE, re.compile(r"//[^\n]*"), discard=True),
    TokenRule(TokenKind.COMMENT_MULTI, re.compile(r"/\*[\s\S]*?\*/"), discard=True),
    # Must precede STRING.
    TokenRule(TokenKind.INTERPOLATED_STR, re.compile(r'\$"(?:\\.|\{[^}]*\}|[^"\\])*"')),
    # Must precede IDENTIFIER.
    TokenRule(TokenKind.KEYWORD, re.compile(_KEYWORD_PATTERN)),
    TokenRule(TokenKind.IDENTIFIER, re.compile(r"[a-zA-Z_][a-zA-Z0-9_]*")),
    TokenRule(TokenKind.NUMBER, re.compile(r"\d+(?:\.\d+)?")),
    TokenRule(TokenKind.STRING, re.compile(r'"(?:\\.|[^"\\])*"')),
    TokenRule(TokenKind.CHAR, re.compile(r"'(?:\\.|[^'\\])'")),
    TokenRule(
        TokenKind.SYMBOL,
        re.compile(r"\+\+|--|==|!=|<=|>=|&&|\|\||[{}()\[\].,;:+\-*/%&|^!<>=~?]"),
    ),
)
