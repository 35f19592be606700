"""AST node definitions for the C#-like grammar.

Every node exposes a ``type`` tag equal to its class name, except
``Literal``, whose tag is the token kind it was built from.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields, is_dataclass
from enum import Enum
from typing import Any, Union

from csparse.tokens import Kind, Token


class Node:
    """Base class for all syntax tree nodes."""

    __slots__ = ()

    @property
    def type(self) -> str:
        return self.__class__.__name__


# ── Types ────────────────────────────────────────────────────────


@dataclass(frozen=True)
class TypeExpression(Node):
    simple: bool  # True when the name is a reserved keyword such as ``int``
    name: str
    generics: list[TypeExpression] = field(default_factory=list)


# ── Expressions ──────────────────────────────────────────────────


@dataclass(frozen=True)
class Literal(Node):
    kind: Kind
    value: str

    @property
    def type(self) -> str:
        return str(self.kind)


@dataclass(frozen=True)
class DotAccess(Node):
    property: Token


@dataclass(frozen=True)
class BracketAccess(Node):
    expression: Node


@dataclass(frozen=True)
class CallExpression(Node):
    arguments: list[Node]


Access = Union[DotAccess, BracketAccess, CallExpression]


@dataclass(frozen=True)
class AccessExpression(Node):
    target: Token
    body: list[Access] = field(default_factory=list)

    @property
    def dotted_name(self) -> str:
        """``a.b.c`` for a chain made only of member accesses."""
        parts = [self.target.text]
        parts.extend(p.property.text for p in self.body if isinstance(p, DotAccess))
        return ".".join(parts)


@dataclass(frozen=True)
class AssignmentExpression(Node):
    operator: str
    left: Node
    right: Node


@dataclass(frozen=True)
class BinaryExpression(Node):
    operator: str
    left: Node
    right: Node


@dataclass(frozen=True)
class UnaryExpression(Node):
    operator: str
    argument: Node
    prefix: bool


@dataclass(frozen=True)
class TemplateLiteralExpression(Node):
    template: str
    replacees: list[str]


@dataclass(frozen=True)
class UsingExpression(Node):
    alias: str | None
    static: bool
    target: AccessExpression


Expression = Union[
    Literal, AccessExpression, AssignmentExpression, BinaryExpression,
    UnaryExpression, TemplateLiteralExpression, UsingExpression,
]


# ── Statements ───────────────────────────────────────────────────


@dataclass(frozen=True)
class BlockStatement(Node):
    body: list[Node]


@dataclass(frozen=True)
class ElseStatement(Node):
    body: BlockStatement


@dataclass(frozen=True)
class IfStatement(Node):
    condition: Node
    consequent: BlockStatement
    alternate: IfStatement | ElseStatement | None = None


@dataclass(frozen=True)
class WhileStatement(Node):
    condition: Node
    consequent: BlockStatement


Statement = Union[BlockStatement, IfStatement, ElseStatement, WhileStatement]


# ── Declarations ─────────────────────────────────────────────────


@dataclass(frozen=True)
class ClassMember(Node):
    modifiers: list[str]
    return_type: TypeExpression
    name: str
    kind: str  # "field" or "method"
    parameters: list[Node] = field(default_factory=list)
    body: BlockStatement | None = None
    offset: int = -1


@dataclass(frozen=True)
class ClassDeclaration(Node):
    name: str
    generics: list[str] = field(default_factory=list)
    base_types: list[TypeExpression] = field(default_factory=list)
    body: list[Member] = field(default_factory=list)
    modifiers: list[str] = field(default_factory=list)
    offset: int = -1


@dataclass(frozen=True)
class NamespaceDeclaration(Node):
    name: AccessExpression
    body: list[Member] = field(default_factory=list)
    offset: int = -1


Member = Union[ClassMember, ClassDeclaration, UsingExpression]
Declaration = Union[ClassDeclaration, NamespaceDeclaration, UsingExpression]


@dataclass(frozen=True)
class Program(Node):
    body: list[Node]


# ── Serialization ────────────────────────────────────────────────


def to_dict(value: Any) -> Any:
    """Convert a node (or token, or list of either) to plain JSON data."""
    if isinstance(value, Token):
        return {"type": str(value.kind), "value": value.text, "position": value.offset}
    if isinstance(value, Node) and is_dataclass(value):
        data: dict[str, Any] = {"type": value.type}
        for f in fields(value):
            if f.name == "kind" and isinstance(value, Literal):
                continue
            data[f.name] = to_dict(getattr(value, f.name))
        return data
    if isinstance(value, list):
        return [to_dict(item) for item in value]
    if isinstance(value, Enum):
        return str(value)
    return value
