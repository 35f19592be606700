"""Parser for the C#-like grammar.

Transforms a token list into an AST using precedence climbing for
expressions and recursive descent for statements and declarations.

Errors never unwind the parse. A failing routine records a diagnostic and
returns ``None`` for its own construct; the enclosing loop skips it and
keeps going. Every loop that calls a sub-parser forces a one-token advance
when the sub-parser made no progress, and steps over the token a failed
sub-parse already reported unless that token closes the enclosing body.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, Optional

from csparse.ast_nodes import (
    AccessExpression,
    AssignmentExpression,
    BinaryExpression,
    BlockStatement,
    BracketAccess,
    CallExpression,
    ClassDeclaration,
    ClassMember,
    DotAccess,
    ElseStatement,
    IfStatement,
    Literal,
    Member,
    NamespaceDeclaration,
    Node,
    Program,
    TemplateLiteralExpression,
    TypeExpression,
    UnaryExpression,
    UsingExpression,
    WhileStatement,
)
from csparse.errors import Diagnostic, DiagnosticLabel, Severity
from csparse.source import SourceText
from csparse.tokens import MODIFIERS, TOKEN_KINDS, Kind, Token, TokenKind

# ── Precedence table ─────────────────────────────────────────────

BINARY_PRECEDENCE: dict[str, int] = {
    "||": 1,
    "&&": 2,
    "=": 3, "==": 3, "!=": 3,
    "<": 4, "<=": 4, ">": 4, ">=": 4,
    "+": 5, "-": 5,
    "*": 6, "/": 6, "%": 6,
}

UNARY_OPERATORS = frozenset({"-", "+", "!", "~", "++", "--"})
UNARY_PRECEDENCE = 7

_LITERAL_KINDS = frozenset({TokenKind.NUMBER, TokenKind.STRING, TokenKind.CHAR})
_TEMPLATE_HOLE = re.compile(r"\{[^}]*\}")

# An expression extension gets the parser and returns a node, or a falsy
# value when it does not recognise the current token.
ExpressionExtension = Callable[["Parser"], Optional[Node]]


@dataclass(frozen=True)
class Expectation:
    """Outcome of matching the current token against a kind and/or text."""

    ok: bool
    token: Token
    kind: Kind | None = None
    value: str | None = None

    def __bool__(self) -> bool:
        return self.ok

    def format(self, template: str) -> str:
        """Fill the %POS, %TYPE and %VAL placeholders from the actual token."""
        return (
            template
            .replace("%POS", str(self.token.offset))
            .replace("%TYPE", str(self.token.kind))
            .replace("%VAL", self.token.text or "NULL")
        )


class Parser:
    """Parses a list of tokens into a ``Program``."""

    def __init__(
        self,
        tokens: list[Token],
        source: str = "",
        filename: str = "<stdin>",
        token_kinds: dict[str, Kind] | None = None,
    ) -> None:
        self.tokens = tokens
        self.pos = 0
        self.diagnostics: list[Diagnostic] = []
        self.expression_extensions: list[ExpressionExtension] = []
        self.routines: dict[str, Callable[..., Node | None]] = {}
        self.token_kinds: dict[str, Kind] = dict(
            TOKEN_KINDS if token_kinds is None else token_kinds
        )
        self.source = SourceText(source, filename)
        end = tokens[-1].end if tokens else len(source)
        self._eof = Token(TokenKind.EOF, "", end)

    # ── Token access ─────────────────────────────────────────────

    def current(self) -> Token:
        """The token at the cursor, or the EOF marker past the end."""
        if self.pos < len(self.tokens):
            return self.tokens[self.pos]
        return self._eof

    def peek(self, offset: int = 1) -> Token:
        idx = self.pos + offset
        if 0 <= idx < len(self.tokens):
            return self.tokens[idx]
        return self._eof

    def at_end(self) -> bool:
        return self.pos >= len(self.tokens)

    def advance(self, n: int = 1) -> Token:
        self.pos += n
        return self.current()

    def consume(self) -> Token:
        tok = self.current()
        self.pos += 1
        return tok

    def expect(self, kind: Kind | None = None, value: str | None = None) -> Expectation:
        """Match the current token without consuming it or recording anything."""
        tok = self.current()
        if kind is not None and value is not None:
            ok = tok.kind == kind and tok.text == value
        elif kind is not None:
            ok = tok.kind == kind
        elif value is not None:
            ok = tok.text == value
        else:
            ok = False
        return Expectation(ok, tok, kind, value)

    def require(
        self,
        kind: Kind | None,
        value: str | None,
        message: str,
        *,
        code: str = "E200",
    ) -> Expectation:
        """Like ``expect``, but a failed match is recorded as a diagnostic."""
        result = self.expect(kind, value)
        if not result:
            self.report(result.format(message), result.token, code=code)
        return result

    def report(self, message: str, token: Token | None = None, *, code: str = "E200") -> None:
        tok = token or self.current()
        span = self.source.span(tok.offset, len(tok.text))
        self.diagnostics.append(
            Diagnostic(
                severity=Severity.ERROR,
                code=code,
                message=message,
                labels=[DiagnosticLabel(span=span, message="")],
                offset=tok.offset,
            )
        )

    def register_routine(self, name: str, routine: Callable[..., Node | None]) -> None:
        """Attach a named parse routine, reachable as ``parser.routines[name]``."""
        self.routines[name] = routine

    def _at(self, text: str) -> bool:
        tok = self.current()
        return tok.kind == TokenKind.SYMBOL and tok.text == text

    def _at_keyword(self, text: str) -> bool:
        tok = self.current()
        return tok.kind == TokenKind.KEYWORD and tok.text == text

    # ── Statements ───────────────────────────────────────────────

    def parse_program(self) -> Program:
        """Parse the whole token list from the cursor to the end."""
        return Program(self._parse_sequence(None))

    def parse_block(self, terminator: str = "}") -> BlockStatement:
        """Parse statements up to, not including, ``terminator``."""
        return BlockStatement(self._parse_sequence(terminator))

    def _parse_sequence(self, terminator: str | None) -> list[Node]:
        body: list[Node] = []
        while not self.at_end():
            if terminator is not None and self._at(terminator):
                break
            start, reported = self.pos, len(self.diagnostics)
            node = self.parse_expression()
            if node is not None:
                body.append(node)
            if self._at(";"):
                self.advance()
            self._recover(start, reported, *([terminator] if terminator else []))
        return body

    def _recover(self, start: int, reported: int, *stops: str) -> None:
        """Step past the token a sub-parse stalled on or already reported.

        A token in ``stops`` closes the enclosing body and is left for the
        caller unless no progress was made at all.
        """
        if self.pos == start:
            self.advance()
            return
        if len(self.diagnostics) == reported or self.at_end():
            return
        if self.diagnostics[-1].offset != self.current().offset:
            return
        if any(self._at(stop) for stop in stops):
            return
        self.advance()

    def _parse_braced_block(self) -> BlockStatement | None:
        if not self.require(
            TokenKind.SYMBOL, "{", 'Expected "{" to start statement body at %POS, got %TYPE: %VAL'
        ):
            return None
        self.advance()
        block = self.parse_block("}")
        if self.require(
            TokenKind.SYMBOL, "}", 'Expected "}" to close statement body at %POS, got %TYPE: %VAL'
        ):
            self.advance()
        return block

    def _parse_condition(self, keyword: str) -> Node | None:
        if not self.require(
            TokenKind.SYMBOL, "(", f'Expected "(" after "{keyword}" at %POS, got %TYPE: %VAL.'
        ):
            return None
        self.advance()
        condition = self.parse_expression()
        if condition is None:
            return None
        if not self.require(
            TokenKind.SYMBOL, ")", f'Expected ")" after {keyword} condition at %POS, got %TYPE: %VAL.'
        ):
            return None
        self.advance()
        return condition

    def parse_if(self) -> IfStatement | None:
        """``if (c) {..}`` with any number of ``else if`` and one optional ``else``.

        The branches are read in a loop and folded from the back.
        """
        if not self.require(
            TokenKind.KEYWORD, "if", 'Expected "if" keyword at %POS, got %TYPE: %VAL.'
        ):
            return None
        self.advance()

        branches: list[tuple[Node, BlockStatement]] = []
        alternate: IfStatement | ElseStatement | None = None
        keyword = "if"
        while True:
            condition = self._parse_condition(keyword)
            if condition is None:
                break
            consequent = self._parse_braced_block()
            if consequent is None:
                break
            branches.append((condition, consequent))
            if not self._at_keyword("else"):
                break
            self.advance()
            if not self._at_keyword("if"):
                body = self._parse_braced_block()
                if body is not None:
                    alternate = ElseStatement(body)
                break
            self.advance()
            keyword = "else if"

        if not branches:
            return None
        for condition, consequent in reversed(branches):
            alternate = IfStatement(condition, consequent, alternate)
        return alternate

    def parse_while(self) -> WhileStatement | None:
        if not self.require(
            TokenKind.KEYWORD, "while", 'Expected "while" keyword at %POS, got %TYPE: %VAL.'
        ):
            return None
        self.advance()
        condition = self._parse_condition("while")
        if condition is None:
            return None
        consequent = self._parse_braced_block()
        if consequent is None:
            return None
        return WhileStatement(condition, consequent)

    # ── Declarations ─────────────────────────────────────────────

    def parse_class(self, modifiers: list[str] | None = None) -> ClassDeclaration | None:
        """``class Name [<T, U>] [: Base, IFace] { members }``."""
        start = self.current()
        if not self.require(
            TokenKind.KEYWORD, "class", 'Expected "class" keyword at %POS, got %TYPE: %VAL'
        ):
            return None
        self.advance()

        if not self.require(
            TokenKind.IDENTIFIER, None, "Expected class name identifier at %POS, got %TYPE: %VAL"
        ):
            return None
        name = self.consume().text

        generics: list[str] = []
        if self._at("<"):
            self.advance()
            while not self.at_end() and not self._at(">"):
                if not self.require(
                    TokenKind.IDENTIFIER, None,
                    "Expected identifier in generic parameter list at %POS, got %TYPE: %VAL",
                ):
                    return None
                generics.append(self.consume().text)
                if not self._at(","):
                    break
                self.advance()
            if not self.require(
                TokenKind.SYMBOL, ">",
                'Expected ">" to close generic parameter list at %POS, got %TYPE: %VAL',
            ):
                return None
            self.advance()

        base_types: list[TypeExpression] = []
        if self._at(":"):
            self.advance()
            while True:
                base = self.parse_type()
                if base is None:
                    self.report(
                        self.expect().format("Expected base type at %POS, got %TYPE: %VAL"),
                        code="E202",
                    )
                    break
                base_types.append(base)
                if not self._at(","):
                    break
                self.advance()

        if not self.require(
            TokenKind.SYMBOL, "{", 'Expected "{" to start class body at %POS, got %TYPE: %VAL'
        ):
            return None
        self.advance()

        body = self._parse_members()

        if self.require(
            TokenKind.SYMBOL, "}", 'Expected "}" to close class body at %POS, got %TYPE: %VAL'
        ):
            self.advance()

        return ClassDeclaration(
            name, generics, base_types, body, list(modifiers or []), start.offset,
        )

    def _parse_members(self, *, allow_using: bool = False) -> list[Member]:
        """Members up to a closing ``}``; the brace itself is left in place."""
        members: list[Member] = []
        while not self.at_end() and not self._at("}"):
            start, reported = self.pos, len(self.diagnostics)
            member: Member | None
            if allow_using and self._at_keyword("using"):
                member = self.parse_using()
            else:
                member = self.parse_member()
            if member is not None:
                members.append(member)
            self._recover(start, reported, "}")
        return members

    def parse_member(self) -> ClassMember | ClassDeclaration | None:
        """A field, a method or a nested class, after any modifier keywords."""
        start = self.current()
        modifiers: list[str] = []
        while self.current().kind == TokenKind.KEYWORD and self.current().text in MODIFIERS:
            modifiers.append(self.consume().text)

        if self._at_keyword("class"):
            return self.parse_class(modifiers)

        return_type = self.parse_type()
        if return_type is None:
            self.report(
                f"Expected a valid return type for class/namespace member at {self.current().offset}",
                code="E202",
            )
            return None

        if not self.require(
            TokenKind.IDENTIFIER, None,
            "Expected identifier for class/namespace member name at %POS got %TYPE: %VAL",
        ):
            return None
        name = self.consume().text

        if self._at("("):
            parameters = self.parse_args()
            if self._at("{"):
                body = self._parse_method_body()
            elif self._at(";"):
                self.advance()
                body = None
            else:
                self.report(
                    f"Expected '{{' or ';' after method declaration at {self.current().offset}",
                    code="E202",
                )
                return None
            return ClassMember(
                modifiers, return_type, name, "method", parameters, body, start.offset,
            )

        if self._at(";"):
            self.advance()
            return ClassMember(modifiers, return_type, name, "field", offset=start.offset)

        tok = self.current()
        self.report(
            f'Unexpected token after class/namespace member name at {tok.offset}: '
            f'{tok.kind} "{tok.text}"',
            code="E202",
        )
        return None

    def _parse_method_body(self) -> BlockStatement:
        """Statements between balanced braces; consumes both braces."""
        self.advance()  # {
        body: list[Node] = []
        depth = 1
        while not self.at_end():
            if self._at("{"):
                depth += 1
            elif self._at("}"):
                depth -= 1
                if depth == 0:
                    break
            start, reported = self.pos, len(self.diagnostics)
            node = self.parse_expression()
            if node is not None:
                body.append(node)
            if self._at(";"):
                self.advance()
            self._recover(start, reported, "{", "}")
        if self._at("}"):
            self.advance()
        else:
            self.report(f"Expected '}}' to close method body at {self.current().offset}")
        return BlockStatement(body)

    def parse_namespace(self) -> NamespaceDeclaration | None:
        """``namespace A.B;`` (file-scoped) or ``namespace A.B { members }``."""
        start = self.current()
        if not self.require(
            TokenKind.KEYWORD, "namespace", 'Expected "namespace" keyword at %POS, got %TYPE: %VAL'
        ):
            return None
        self.advance()

        name = self.parse_identifier(postfix=False)
        if name is None:
            self.report(
                self.expect().format("Expected namespace name at %POS, got %TYPE: %VAL")
            )
            return None

        if self._at(";"):
            self.advance()
            return NamespaceDeclaration(name, [], start.offset)

        if not self.require(
            TokenKind.SYMBOL, "{", 'Expected "{" to start namespace body at %POS, got %TYPE: %VAL'
        ):
            return None
        self.advance()

        body = self._parse_members(allow_using=True)

        if self.require(
            TokenKind.SYMBOL, "}", 'Expected "}" to close namespace body at %POS, got %TYPE: %VAL'
        ):
            self.advance()
        return NamespaceDeclaration(name, body, start.offset)

    def parse_using(self) -> UsingExpression | None:
        """``using [static] [Alias =] A.B.C;``"""
        if not self.require(
            TokenKind.KEYWORD, "using", 'Expected "using" keyword at %POS, got %TYPE: %VAL.'
        ):
            return None
        self.advance()

        static = False
        if self._at_keyword("static"):
            static = True
            self.advance()

        alias: str | None = None
        if self.current().kind == TokenKind.IDENTIFIER and self.peek().text == "=":
            alias = self.consume().text
            self.advance()  # =

        target = self.parse_identifier(postfix=False)
        if target is None:
            self.report(
                f"Expected namespace or type target in using directive at {self.current().offset}"
            )
            return None

        if self.require(
            TokenKind.SYMBOL, ";", 'Expected ";" after using directive at %POS, got %TYPE: %VAL.'
        ):
            self.advance()
        return UsingExpression(alias, static, target)

    # ── Types ────────────────────────────────────────────────────

    def parse_type(self) -> TypeExpression | None:
        """A keyword or (dotted) identifier type, with an optional ``<...>`` group."""
        tok = self.current()
        if tok.kind == TokenKind.KEYWORD:
            self.advance()
            simple, name = True, tok.text
        elif tok.kind == TokenKind.IDENTIFIER:
            access = self.parse_identifier(postfix=False)
            simple, name = False, access.dotted_name
        else:
            return None

        generics: list[TypeExpression] = []
        if self._at("<"):
            self.advance()
            generics = self.parse_type_list()
            if self.require(
                TokenKind.SYMBOL, ">", "Expected > to close type list at %POS got %TYPE: %VAL"
            ):
                self.advance()
        return TypeExpression(simple, name, generics)

    def parse_type_list(self) -> list[TypeExpression]:
        types: list[TypeExpression] = []
        while not self.at_end():
            node = self.parse_type()
            if node is None:
                self.report(
                    self.expect().format(
                        "Expected a type inside type list at %POS, got %TYPE: %VAL"
                    )
                )
                break
            types.append(node)
            if not self._at(","):
                break
            self.advance()
        return types

    # ── Access chains and arguments ──────────────────────────────

    def parse_identifier(self, *, postfix: bool = True) -> AccessExpression | None:
        """An identifier folded with ``.name``, ``[expr]`` and ``(args)`` postfixes.

        With ``postfix=False`` only member access is folded, which is what
        names in types, ``using`` and ``namespace`` need.
        """
        target = self.current()
        if target.kind != TokenKind.IDENTIFIER:
            return None
        self.advance()

        body: list[DotAccess | BracketAccess | CallExpression] = []
        while True:
            if self._at("."):
                self.advance()
                if not self.require(
                    TokenKind.IDENTIFIER, None,
                    "Expected identifier after dot in access expression at %POS got %TYPE: %VAL.",
                ):
                    break
                body.append(DotAccess(self.consume()))
            elif postfix and self._at("["):
                self.advance()
                index = self.parse_expression()
                if index is None:
                    break
                body.append(BracketAccess(index))
                if not self.require(
                    TokenKind.SYMBOL, "]",
                    "Expected closing bracket in access expression at %POS, got %TYPE: %VAL.",
                ):
                    break
                self.advance()
            elif postfix and self._at("("):
                body.append(CallExpression(self.parse_args()))
            else:
                break
        return AccessExpression(target, body)

    def parse_args(self) -> list[Node]:
        """A parenthesized, comma-separated expression list."""
        args: list[Node] = []
        if not self.require(
            TokenKind.SYMBOL, "(",
            "Expected opening parenthesis for argument list at %POS, got %TYPE: %VAL.",
        ):
            return args
        self.advance()

        while not self.at_end() and not self._at(")"):
            expr = self.parse_expression()
            if expr is None:
                break
            args.append(expr)
            if not self._at(","):
                break
            self.advance()

        if self.require(
            TokenKind.SYMBOL, ")",
            "Expected closing parenthesis for argument list at %POS, got %TYPE: %VAL.",
        ):
            self.advance()
        return args

    def parse_template_literal(self) -> TemplateLiteralExpression | None:
        """``$"a {b} c"``; the ``{...}`` holes are kept as raw text."""
        if not self.expect(TokenKind.INTERPOLATED_STR):
            return None
        literal = self.consume().text
        return TemplateLiteralExpression(literal, _TEMPLATE_HOLE.findall(literal))

    # ── Expressions ──────────────────────────────────────────────

    def parse_expression(self, min_precedence: int = 0) -> Node | None:
        """Precedence climbing over ``BINARY_PRECEDENCE``; left-associative."""
        tok = self.current()
        left: Node | None
        if tok.kind == TokenKind.SYMBOL and tok.text in UNARY_OPERATORS:
            self.advance()
            argument = self.parse_expression(UNARY_PRECEDENCE)
            if argument is None:
                return None
            left = UnaryExpression(tok.text, argument, True)
        else:
            left = self._parse_primary()
            if left is None:
                return None

        while True:
            op = self.current()
            if op.kind != TokenKind.SYMBOL:
                break
            precedence = BINARY_PRECEDENCE.get(op.text)
            if precedence is None or precedence < min_precedence:
                break
            self.advance()
            right = self.parse_expression(precedence + 1)
            if right is None:
                # The operand was reported; keep what was built.
                return left
            left = BinaryExpression(op.text, left, right)

        return left

    def _parse_primary(self) -> Node | None:
        tok = self.current()

        if tok.kind in _LITERAL_KINDS:
            self.advance()
            return Literal(tok.kind, tok.text)

        if tok.kind == TokenKind.IDENTIFIER:
            return self._parse_identifier_expression()

        if self._at("("):
            self.advance()
            expr = self.parse_expression()
            if expr is None:
                return None
            if not self.require(
                TokenKind.SYMBOL, ")", "Expected closing parenthesis at %POS, found %TYPE: %VAL"
            ):
                return None
            self.advance()
            return expr

        if self._at_keyword("class"):
            return self.parse_class()
        if self._at_keyword("using"):
            return self.parse_using()
        if self._at_keyword("namespace"):
            return self.parse_namespace()
        if tok.kind == TokenKind.INTERPOLATED_STR:
            return self.parse_template_literal()
        if self._at_keyword("if"):
            return self.parse_if()
        if self._at_keyword("while"):
            return self.parse_while()

        if tok.kind == TokenKind.EOF:
            self.report(f"Unexpected end of input at {tok.offset}", tok, code="E203")
            return None

        start = self.pos
        for extension in self.expression_extensions:
            node = extension(self)
            if node:
                return node
            self.pos = start

        self.report(f'Unexpected token at {tok.offset}: {tok.kind} "{tok.text}"', tok, code="E201")
        return None

    def _parse_identifier_expression(self) -> Node | None:
        left: Node | None = self.parse_identifier()
        if left is None:
            return None
        while self._at("++") or self._at("--"):
            left = UnaryExpression(self.consume().text, left, False)
        if self._at("="):
            self.advance()
            right = self.parse_expression()
            if right is None:
                return None
            left = AssignmentExpression("=", left, right)
        return left
