"""csparse: a lexer and parser for a C#-like language, extensible by plugins."""

from __future__ import annotations

from csparse.frontend import CSharpFrontend, LexResult, ParseResult

__version__ = "0.1.0"

__all__ = ["CSharpFrontend", "LexResult", "ParseResult", "lex", "parse"]


def lex(source: str, filename: str = "<stdin>") -> LexResult:
    """Tokenize with the built-in rules only."""
    return CSharpFrontend().lex(source, filename)


def parse(source: str, filename: str = "<stdin>") -> ParseResult:
    """Parse with the built-in grammar only."""
    return CSharpFrontend().parse(source, filename)
