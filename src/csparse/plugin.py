"""Plugin registry: extends the token rules and the expression grammar.

A plugin is a factory called once with the owning frontend. It returns a
``Plugin`` whose named extensions may carry a ``lex`` hook, run on every
new lexer, and a ``parse`` hook, run on every new parser::

    def plugin(frontend):
        def lex(lexer):
            lexer.add_rule("ATTRIBUTE", r"@[A-Za-z_]\\w*")
            lexer.token_kinds["attr"] = "ATTRIBUTE"

        def parse(parser, kinds):
            def attribute(p):
                if not p.expect(kinds["attr"]):
                    return None
                return Attribute(p.consume().text)
            parser.register_routine("attribute", attribute)
            parser.expression_extensions.append(attribute)

        return Plugin({"attributes": Extension(lex=lex, parse=parse)})

Hooks must not keep per-session state: the same plugin is applied to
every lexer and parser the frontend creates.
"""

from __future__ import annotations

import importlib
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, Optional

from csparse.errors import PluginLoadError

if TYPE_CHECKING:
    from csparse.lexer import Lexer
    from csparse.parser import Parser
    from csparse.tokens import Kind

LexHook = Callable[["Lexer"], None]
ParseHook = Callable[["Parser", "dict[str, Kind]"], None]


@dataclass(frozen=True)
class Extension:
    lex: Optional[LexHook] = None
    parse: Optional[ParseHook] = None


@dataclass(frozen=True)
class Plugin:
    extensions: Mapping[str, Extension] = field(default_factory=dict)


PluginFactory = Callable[[Any], "Plugin | Mapping[str, Any]"]


def _coerce(value: Plugin | Mapping[str, Any]) -> Plugin:
    """Accept a ``Plugin`` or the plain ``{"extensions": {name: {...}}}`` form."""
    if isinstance(value, Plugin):
        return value
    if isinstance(value, Mapping):
        extensions: dict[str, Extension] = {}
        for name, ext in value.get("extensions", {}).items():
            if isinstance(ext, Extension):
                extensions[name] = ext
            else:
                extensions[name] = Extension(lex=ext.get("lex"), parse=ext.get("parse"))
        return Plugin(extensions)
    raise TypeError(f"plugin factory returned {type(value).__name__}, expected Plugin")


class PluginRegistry:
    """Ordered, append-only list of instantiated plugins."""

    def __init__(self, target: Any) -> None:
        self.target = target
        self._plugins: list[Plugin] = []

    @property
    def plugins(self) -> tuple[Plugin, ...]:
        return tuple(self._plugins)

    def instantiate(self, factory: PluginFactory) -> Plugin:
        plugin = _coerce(factory(self.target))
        self._plugins.append(plugin)
        return plugin

    def apply_to_lexer(self, lexer: Lexer) -> None:
        for plugin in self._plugins:
            for ext in plugin.extensions.values():
                if ext.lex is not None:
                    ext.lex(lexer)

    def apply_to_parser(self, parser: Parser, token_kinds: dict[str, Kind]) -> None:
        for plugin in self._plugins:
            for ext in plugin.extensions.values():
                if ext.parse is not None:
                    ext.parse(parser, token_kinds)


def load_plugin(reference: str) -> PluginFactory:
    """Resolve a ``"package.module:attribute"`` reference to a plugin factory."""
    module_name, _, attr = reference.partition(":")
    attr = attr or "plugin"
    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise PluginLoadError(f"cannot import plugin module {module_name!r}: {e}") from e
    try:
        factory = getattr(module, attr)
    except AttributeError:
        raise PluginLoadError(f"plugin module {module_name!r} has no attribute {attr!r}") from None
    if not callable(factory):
        raise PluginLoadError(f"plugin {reference!r} is not callable")
    return factory
