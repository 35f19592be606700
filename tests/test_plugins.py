"""Tests for the plugin registry, the frontend and the bundled plugin."""

from __future__ import annotations

from dataclasses import dataclass

import pytest

import csparse
from csparse.ast_nodes import (
    AccessExpression,
    AssignmentExpression,
    BinaryExpression,
    Literal,
    Node,
)
from csparse.errors import LexError, PluginLoadError
from csparse.frontend import CSharpFrontend
from csparse.lexer import Lexer
from csparse.plugin import Extension, Plugin, load_plugin
from csparse.plugins.extras import KeywordLiteral, ReturnStatement
from csparse.plugins.extras import plugin as extras
from csparse.tokens import TOKEN_KINDS, TokenKind


@dataclass(frozen=True)
class Attribute(Node):
    name: str


def attributes(frontend):
    """Adds ``@Name`` attribute tokens and parses them as ``Attribute`` nodes."""

    def lex(lexer):
        lexer.add_rule("ATTRIBUTE", r"@[A-Za-z_]\w*")
        lexer.token_kinds["attr"] = "ATTRIBUTE"

    def parse(parser, kinds):
        def parse_attribute(p):
            if not p.expect(kinds["attr"]):
                return None
            return Attribute(p.consume().text[1:])

        parser.register_routine("attribute", parse_attribute)
        parser.expression_extensions.append(parse_attribute)

    return Plugin({"attributes": Extension(lex=lex, parse=parse)})


class TestPluginIsolation:
    def test_plugin_syntax_parses(self):
        result = CSharpFrontend([attributes]).parse("@Obsolete")
        assert result.ok
        assert result.ast.body == [Attribute("Obsolete")]

    def test_plugin_node_in_expression(self):
        result = CSharpFrontend([attributes]).parse("@a + 1")
        assert result.ast.body[0] == BinaryExpression(
            "+", Attribute("a"), Literal(TokenKind.NUMBER, "1"),
        )

    def test_without_plugin_is_a_lex_error(self):
        with pytest.raises(LexError) as exc:
            CSharpFrontend().parse("@Obsolete")
        assert exc.value.offset == 0

    def test_core_grammar_unaffected(self):
        source = "class Foo<T> : Bar { public int x; } if (a) { b = 1 + 2 * 3; }"
        plain = CSharpFrontend().parse(source)
        extended = CSharpFrontend([attributes]).parse(source)
        assert plain.ast == extended.ast
        assert plain.diagnostics == extended.diagnostics == []

    def test_no_global_mutation(self):
        frontend = CSharpFrontend([attributes])
        frontend.parse("@x")
        assert "attr" not in TOKEN_KINDS
        assert "attr" not in Lexer("").token_kinds
        assert all(rule.kind != "ATTRIBUTE" for rule in Lexer("").rules)

    def test_applied_to_every_instance(self):
        frontend = CSharpFrontend([attributes])
        first = frontend.lexer("@a")
        second = frontend.lexer("@b")
        assert first.rules is not second.rules
        assert first.tokenize()[0].kind == "ATTRIBUTE"
        assert second.tokenize()[0].kind == "ATTRIBUTE"

    def test_routine_registered(self):
        frontend = CSharpFrontend([attributes])
        lexer = frontend.lexer("@a")
        parser = frontend.parser(lexer.tokenize(), token_kinds=lexer.token_kinds)
        assert parser.routines["attribute"](parser) == Attribute("a")


class TestExtensionDispatch:
    def test_first_match_wins(self):
        calls: list[str] = []

        def factory(frontend):
            def parse(parser, kinds):
                def first(p):
                    calls.append("first")
                    p.advance()
                    return Attribute("first")

                def second(p):
                    calls.append("second")
                    return Attribute("second")

                parser.expression_extensions.extend([first, second])

            return Plugin({"pair": Extension(parse=parse)})

        result = CSharpFrontend([factory]).parse("]")
        assert result.ast.body == [Attribute("first")]
        assert calls == ["first"]

    def test_miss_falls_through(self):
        def factory(frontend):
            def parse(parser, kinds):
                parser.expression_extensions.append(lambda p: None)
                parser.expression_extensions.append(lambda p: False)
                parser.expression_extensions.append(
                    lambda p: Attribute(p.consume().text)
                )

            return Plugin({"chain": Extension(parse=parse)})

        result = CSharpFrontend([factory]).parse("]")
        assert result.ast.body == [Attribute("]")]
        assert result.ok

    def test_core_forms_take_priority(self):
        def factory(frontend):
            def parse(parser, kinds):
                parser.expression_extensions.append(lambda p: Attribute("never"))

            return Plugin({"greedy": Extension(parse=parse)})

        result = CSharpFrontend([factory]).parse("x")
        assert isinstance(result.ast.body[0], AccessExpression)

    def test_registration_order(self):
        def make(tag):
            def factory(frontend):
                def parse(parser, kinds):
                    def tagged(p):
                        p.advance()
                        return Attribute(tag)
                    parser.expression_extensions.append(tagged)
                return Plugin({tag: Extension(parse=parse)})
            return factory

        result = CSharpFrontend([make("a"), make("b")]).parse("]")
        assert result.ast.body == [Attribute("a")]


class TestRegistry:
    def test_factory_receives_frontend(self):
        seen = []

        def factory(frontend):
            seen.append(frontend)
            return Plugin()

        frontend = CSharpFrontend()
        frontend.register_plugin(factory)
        assert seen == [frontend]
        assert len(frontend.plugins) == 1

    def test_plugins_is_read_only_view(self):
        frontend = CSharpFrontend([attributes])
        assert isinstance(frontend.plugins, tuple)

    def test_mapping_form(self):
        def factory(frontend):
            return {"extensions": {"attrs": {"lex": attributes(frontend).extensions["attributes"].lex}}}

        tokens = CSharpFrontend([factory]).lex("@x").tokens
        assert [t.kind for t in tokens] == ["ATTRIBUTE"]

    def test_bad_factory_result(self):
        with pytest.raises(TypeError):
            CSharpFrontend([lambda frontend: 42])

    def test_load_plugin(self):
        assert load_plugin("csparse.plugins.extras:plugin") is extras

    def test_load_plugin_default_attribute(self):
        assert load_plugin("csparse.plugins.extras") is extras

    def test_load_missing_module(self):
        with pytest.raises(PluginLoadError, match="cannot import"):
            load_plugin("csparse_no_such_module:plugin")

    def test_load_missing_attribute(self):
        with pytest.raises(PluginLoadError, match="no attribute"):
            load_plugin("csparse.plugins.extras:nothing")


class TestFrontend:
    def test_lex(self):
        result = csparse.lex("int x;")
        assert [t.text for t in result.tokens] == ["int", "x", ";"]
        assert result.diagnostics == []

    def test_parse_ok(self):
        result = csparse.parse("x = 1;")
        assert result.ok
        assert result.messages == []
        assert isinstance(result.ast.body[0], AssignmentExpression)

    def test_parse_keeps_tree_with_diagnostics(self):
        result = csparse.parse("a; class ; b;")
        assert not result.ok
        assert result.messages == ["Expected class name identifier at 9, got SYMBOL: ;"]
        assert [n.target.text for n in result.ast.body] == ["a", "b"]

    def test_filename_in_spans(self):
        result = CSharpFrontend().parse("class ;", "a.cs")
        span = result.diagnostics[0].labels[0].span
        assert (span.file, span.start_line, span.start_col) == ("a.cs", 1, 7)


class TestExtrasPlugin:
    def parse(self, source):
        return CSharpFrontend([extras]).parse(source)

    def test_return(self):
        result = self.parse("return x;")
        assert result.ok
        (stmt,) = result.ast.body
        assert isinstance(stmt, ReturnStatement)
        assert stmt.argument.target.text == "x"

    def test_bare_return(self):
        assert self.parse("return;").ast.body == [ReturnStatement(None)]

    def test_null_token_kind(self):
        tokens = CSharpFrontend([extras]).lex("x = null;").tokens
        assert tokens[2].kind == "NULL"

    def test_null_prefix_stays_identifier(self):
        tokens = CSharpFrontend([extras]).lex("nullable").tokens
        assert tokens[0].kind == TokenKind.IDENTIFIER

    def test_keyword_literals(self):
        result = self.parse("x = null; y = true && false;")
        assert result.ok
        first, second = result.ast.body
        assert first.right == KeywordLiteral("null")
        assert second.right == BinaryExpression(
            "&&", KeywordLiteral("true"), KeywordLiteral("false"),
        )

    def test_return_in_method(self):
        result = self.parse("class A { int F() { return 1; } }")
        assert result.ok
        body = result.ast.body[0].body[0].body
        assert body.body == [ReturnStatement(Literal(TokenKind.NUMBER, "1"))]

    def test_without_extras(self):
        result = CSharpFrontend().parse("return x;")
        assert result.diagnostics[0].code == "E201"
