#!/usr/bin/env python3
"""
Tests for rendering expression trees as Elm source.
"""

import pytest

from elmgen import build as elm
from elmgen.backends.elm import indent, render, render_float, render_string
from elmgen.shared.nodes import Apply, Char, ValueRef
from tests.test_utils import assert_round_trip, body_of

JSON_DECODE = ("Json", "Decode")


class TestLiterals:
    @pytest.mark.parametrize("node, expected", [
        (elm.int_(42), "42"),
        (elm.int_(-3), "-3"),
        (elm.float_(1.5), "1.5"),
        (elm.float_(2.0), "2.0"),
        (elm.bool_(True), "True"),
        (elm.bool_(False), "False"),
        (elm.unit(), "()"),
        (elm.char("a"), "'a'"),
        (elm.char("'"), "'\\''"),
    ])
    def test_literal(self, node, expected):
        assert body_of(node) == expected

    def test_string_escapes(self):
        assert body_of(elm.string('say "hi"\n\tnow\\')) == '"say \\"hi\\"\\n\\tnow\\\\"'

    def test_control_character(self):
        assert render_string("\x01") == '"\\u{0001}"'

    def test_float_exponent(self):
        assert render_float(1e-05) == "1.0e-5"
        assert render_float(1.5e300) == "1.5e300"

    def test_char_value_is_checked(self):
        with pytest.raises(ValueError):
            Char("ab")


class TestContainers:
    def test_short_list(self):
        assert body_of(elm.list_([elm.int_(1), elm.int_(2), elm.int_(3)])) == "[ 1, 2, 3 ]"

    def test_empty_containers(self):
        assert body_of(elm.list_([])) == "[]"
        assert body_of(elm.record([])) == "{}"

    def test_tuple(self):
        assert body_of(elm.tuple_(elm.int_(1), elm.string("a"))) == '( 1, "a" )'

    def test_record(self):
        expr = elm.record([("name", elm.string("Ada")), ("age", elm.int_(36))])
        assert body_of(expr) == '{ name = "Ada", age = 36 }'

    def test_long_list_uses_leading_commas(self):
        expr = elm.list_([elm.string(f"item number {i}") for i in range(6)])
        assert body_of(expr) == "\n".join(
            [f'[ "item number 0"'] + [f', "item number {i}"' for i in range(1, 6)] + ["]"]
        )

    def test_multiline_element_is_indented(self):
        inner = elm.if_(elm.value("c"), elm.int_(1), elm.int_(2))
        expr = elm.list_([inner, elm.int_(3)])
        assert body_of(expr) == "\n".join([
            "[ if c then",
            "      1",
            "",
            "  else",
            "      2",
            ", 3",
            "]",
        ])

    def test_long_record_field_values(self):
        expr = elm.record([
            ("title", elm.string("A rather long title for this record")),
            ("subtitle", elm.string("and an even longer subtitle that overflows")),
        ])
        assert body_of(expr) == "\n".join([
            '{ title = "A rather long title for this record"',
            ', subtitle = "and an even longer subtitle that overflows"',
            "}",
        ])


class TestRecordUpdate:
    def test_update_variable(self):
        expr = elm.update("model", [("count", elm.int_(1)), ("name", elm.string("x"))])
        assert body_of(expr) == '{ model | count = 1, name = "x" }'

    def test_update_of_expression_binds_it_first(self):
        expr = elm.update(elm.apply("Page.init", elm.unit()), [("count", elm.int_(1))])
        assert body_of(expr) == "\n".join([
            "let",
            "    record =",
            "        Page.init ()",
            "in",
            "{ record | count = 1 }",
        ])

    def test_binding_avoids_names_in_the_tree(self):
        expr = elm.fn(["record"], elm.update(
            elm.apply(elm.value("f"), elm.value("record")),
            [("x", elm.get("y", elm.value("record")))],
        ))
        assert body_of(expr) == "\n".join([
            "\\record ->",
            "    let",
            "        record1 =",
            "            f record",
            "    in",
            "    { record1 | x = record.y }",
        ])

    def test_nested_updates_do_not_shadow(self):
        inner = elm.update(elm.apply(elm.value("f"), elm.int_(1)), [("a", elm.int_(1))])
        expr = elm.update(inner, [("b", elm.int_(2))])
        assert body_of(expr) == "\n".join([
            "let",
            "    record =",
            "        let",
            "            record1 =",
            "                f 1",
            "        in",
            "        { record1 | a = 1 }",
            "in",
            "{ record | b = 2 }",
        ])

    def test_bound_names_round_trip(self, parser):
        expr = elm.fn(["record"], elm.update(elm.apply(elm.value("f"), elm.value("record")), [("x", elm.int_(1))]))
        assert_round_trip(parser, expr)

    def test_long_update(self):
        expr = elm.update("model", [
            ("description", elm.string("something long enough to wrap")),
            ("status", elm.string("another fairly long value")),
        ])
        assert body_of(expr) == "\n".join([
            "{ model",
            '    | description = "something long enough to wrap"',
            '    , status = "another fairly long value"',
            "}",
        ])


class TestApplication:
    def test_simple(self):
        assert body_of(elm.apply("String.fromInt", elm.int_(3))) == "String.fromInt 3"

    def test_nested_arguments_are_parenthesized(self):
        expr = elm.apply("String.fromInt", elm.apply("List.length", elm.value("xs")))
        assert body_of(expr) == "String.fromInt (List.length xs)"

    def test_negative_argument(self):
        assert body_of(elm.apply("abs", elm.int_(-3))) == "abs (-3)"

    def test_nested_callee_is_flattened(self):
        expr = Apply(Apply(ValueRef((), "f"), [ValueRef((), "a")]), [ValueRef((), "b")])
        assert body_of(expr) == "f a b"

    def test_block_argument(self):
        expr = elm.apply("List.map", elm.fn(["x"], elm.value("x")), elm.value("xs"))
        assert body_of(expr) == "List.map (\\x -> x) xs"

    def test_lambda_callee(self):
        assert body_of(elm.apply(elm.fn(["x"], elm.value("x")), elm.int_(1))) == "(\\x -> x) 1"

    def test_field_access(self):
        assert body_of(elm.get("name", elm.value("person"))) == "person.name"
        assert body_of(elm.get("name", elm.apply("first", elm.value("people")))) == "(first people).name"


class TestNames:
    def test_alias(self):
        expr = elm.value("Json.Decode.string")
        assert body_of(expr, aliases={JSON_DECODE: "D"}) == "D.string"
        assert body_of(expr) == "Json.Decode.string"

    def test_basics_are_bare(self):
        assert body_of(elm.value("Basics.not")) == "not"

    def test_exposed_prelude_constructors_are_bare(self):
        assert body_of(elm.value("Maybe.Just")) == "Just"
        assert body_of(elm.value("Maybe.withDefault")) == "Maybe.withDefault"


class TestOperators:
    def _a(self):
        return elm.value("a"), elm.value("b"), elm.value("c")

    def test_precedence(self):
        a, b, c = self._a()
        assert body_of(elm.op("+", a, elm.op("*", b, c))) == "a + b * c"
        assert body_of(elm.op("*", elm.op("+", a, b), c)) == "(a + b) * c"

    def test_left_associative(self):
        a, b, c = self._a()
        assert body_of(elm.op("-", elm.op("-", a, b), c)) == "a - b - c"
        assert body_of(elm.op("-", a, elm.op("-", b, c))) == "a - (b - c)"

    def test_right_associative(self):
        a, b, c = self._a()
        assert body_of(elm.op("++", a, elm.op("++", b, c))) == "a ++ b ++ c"
        assert body_of(elm.op("++", elm.op("++", a, b), c)) == "(a ++ b) ++ c"

    def test_non_associative(self):
        a, b, c = self._a()
        assert body_of(elm.op("==", elm.op("==", a, b), c)) == "(a == b) == c"

    def test_pipeline(self):
        expr = elm.pipe(elm.value("xs"), elm.apply("List.map", elm.value("f")), elm.value("List.sum"))
        assert body_of(expr) == "xs |> List.map f |> List.sum"

    def test_negative_operand(self):
        assert body_of(elm.op("-", elm.value("a"), elm.int_(-1))) == "a - (-1)"

    def test_block_operand(self):
        expr = elm.op("|>", elm.value("xs"), elm.fn(["x"], elm.value("x")))
        assert body_of(expr) == "xs |> (\\x -> x)"

    def test_long_chain_breaks_before_operators(self):
        expr = elm.pipe(
            elm.value("items"),
            elm.apply("List.filter", elm.value("isVisibleInTheCurrentViewport")),
            elm.apply("List.map", elm.value("renderTheItemWithAllOfItsDetails")),
        )
        assert body_of(expr) == "\n".join([
            "items",
            "    |> List.filter isVisibleInTheCurrentViewport",
            "    |> List.map renderTheItemWithAllOfItsDetails",
        ])


class TestBlocks:
    def test_lambda(self):
        assert body_of(elm.fn(["x", "y"], elm.value("x"))) == "\\x y -> x"

    def test_let(self):
        expr = elm.let([("x", elm.int_(1)), ("y", elm.int_(2))], elm.op("+", elm.value("x"), elm.value("y")))
        assert body_of(expr) == "\n".join([
            "let",
            "    x =",
            "        1",
            "",
            "    y =",
            "        2",
            "in",
            "x + y",
        ])

    def test_let_function_binding(self):
        expr = elm.let([("double", elm.fn(["n"], elm.op("*", elm.value("n"), elm.int_(2))))],
                       elm.apply("double", elm.int_(4)))
        assert body_of(expr) == "\n".join([
            "let",
            "    double n =",
            "        n * 2",
            "in",
            "double 4",
        ])

    def test_case(self):
        expr = elm.case(elm.value("m"), [
            (elm.ctor("Just", elm.var("x")), elm.value("x")),
            (elm.ctor("Nothing"), elm.int_(0)),
        ])
        assert body_of(expr) == "\n".join([
            "case m of",
            "    Just x ->",
            "        x",
            "",
            "    Nothing ->",
            "        0",
        ])

    def test_pattern_parentheses(self):
        expr = elm.case(elm.value("m"), [
            (elm.ctor("Just", elm.ctor("Just", elm.var("x"))), elm.value("x")),
            (elm.ctor("Just", elm.literal(-1)), elm.int_(0)),
            (elm.wildcard(), elm.int_(1)),
        ])
        lines = body_of(expr).split("\n")
        assert "    Just (Just x) ->" in lines
        assert "    Just (-1) ->" in lines
        assert "    _ ->" in lines

    def test_if(self):
        expr = elm.if_(elm.value("c"), elm.int_(1), elm.int_(2))
        assert body_of(expr) == "if c then\n    1\n\nelse\n    2"

    def test_else_if_chain(self):
        expr = elm.if_(elm.value("a"), elm.int_(1), elm.if_(elm.value("b"), elm.int_(2), elm.int_(3)))
        assert body_of(expr) == "\n".join([
            "if a then",
            "    1",
            "",
            "else if b then",
            "    2",
            "",
            "else",
            "    3",
        ])

    def test_rendering_is_context_free(self):
        inner = elm.let([("x", elm.int_(1))], elm.value("x"))
        outer = elm.fn(["m"], inner)
        assert body_of(outer) == "\\m ->\n" + indent(body_of(inner))


class TestRenderResult:
    def test_signature_and_imports(self):
        result = render(elm.apply("String.fromInt", elm.int_(1)))
        assert result.body == "String.fromInt 1"
        assert result.signature == "String"
        assert result.imports == ()

    def test_imports_of_qualified_references(self):
        result = render(elm.value("Json.Decode.string"))
        assert [i.render() for i in result.imports] == ["import Json.Decode"]

    def test_untyped_reference_gives_placeholder(self):
        result = render(elm.apply("Json.Encode.int", elm.int_(1)))
        assert result.signature == "unknown"
        assert [i.render() for i in result.imports] == ["import Json.Encode"]

    def test_failed_inference_gives_placeholder(self):
        result = render(elm.list_([elm.int_(1), elm.string("x")]))
        assert result.signature == "unknown"
        assert result.body == '[ 1, "x" ]'

    def test_deterministic(self):
        expr = elm.fn(["p"], elm.update("p", [("n", elm.op("+", elm.get("n", elm.value("p")), elm.int_(1)))]))
        assert render(expr) == render(expr)
