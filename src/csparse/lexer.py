"""Rule-ordered lexer for C#-like source.

Each step tries the token rules in list order at the current offset; the
first rule that matches wins. Discarded kinds (whitespace, comments) move
the cursor without emitting a token.
"""

from __future__ import annotations

import re
from typing import NoReturn

from csparse.errors import Diagnostic, DiagnosticLabel, LexError, Severity
from csparse.source import SourceText
from csparse.tokens import DEFAULT_RULES, TOKEN_KINDS, Kind, Token, TokenRule


class Lexer:
    """Tokenizes C#-like source code."""

    def __init__(self, source: str, filename: str = "<stdin>") -> None:
        self.source = source
        self.filename = filename
        self.pos = 0
        self.rules: list[TokenRule] = list(DEFAULT_RULES)
        self.token_kinds: dict[str, Kind] = dict(TOKEN_KINDS)
        self.tokens: list[Token] = []

    def add_rule(
        self,
        kind: Kind,
        pattern: str | re.Pattern[str],
        *,
        discard: bool = False,
        before: Kind | None = None,
    ) -> TokenRule:
        """Install a token rule on this lexer.

        Rules are appended, so they lose to every built-in rule that also
        matches. Pass ``before`` to insert ahead of the first rule of that
        kind instead.
        """
        if isinstance(pattern, str):
            pattern = re.compile(pattern)
        rule = TokenRule(kind, pattern, discard)
        if before is None:
            self.rules.append(rule)
            return rule
        for i, existing in enumerate(self.rules):
            if existing.kind == before:
                self.rules.insert(i, rule)
                return rule
        raise ValueError(f"no token rule of kind {before!s} to insert before")

    def tokenize(self) -> list[Token]:
        """Tokenize the entire source and return the token list."""
        while self.pos < len(self.source):
            rule, text = self._match()
            if rule is None:
                self._fail()
            if not rule.discard:
                self.tokens.append(Token(rule.kind, text, self.pos))
            self.pos += len(text)
        return self.tokens

    def _match(self) -> tuple[TokenRule | None, str]:
        for rule in self.rules:
            m = rule.pattern.match(self.source, self.pos)
            # An empty match would never advance the cursor.
            if m is not None and m.end() > self.pos:
                return rule, m.group(0)
        return None, ""

    def _fail(self) -> NoReturn:
        ch = self.source[self.pos]
        span = SourceText(self.source, self.filename).span(self.pos)
        diagnostic = Diagnostic(
            severity=Severity.ERROR,
            code="E100",
            message=f"Unexpected token at position {self.pos}: {ch!r}",
            labels=[DiagnosticLabel(span=span, message="no token rule matches here")],
            offset=self.pos,
        )
        raise LexError(ch, self.pos, diagnostic)
