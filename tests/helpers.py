"""Shared test helpers for the csparse test suite."""

from __future__ import annotations

from csparse.ast_nodes import Node
from csparse.lexer import Lexer
from csparse.parser import Parser


def make_parser(source: str) -> Parser:
    tokens = Lexer(source, "<test>").tokenize()
    return Parser(tokens, source, "<test>")


def parse(source: str):
    """Parse source, asserting no diagnostics. Returns the Program."""
    parser = make_parser(source)
    program = parser.parse_program()
    assert not parser.diagnostics, [d.message for d in parser.diagnostics]
    return program


def parse_one(source: str) -> Node:
    """Parse source and return its single top-level node."""
    program = parse(source)
    assert len(program.body) == 1, program.body
    return program.body[0]


def parse_fails(source: str) -> tuple:
    """Parse source, asserting at least one diagnostic. Returns (program, diagnostics)."""
    parser = make_parser(source)
    program = parser.parse_program()
    assert parser.diagnostics, f"expected diagnostics for {source!r}"
    return program, parser.diagnostics
