#!/usr/bin/env python3
"""
Tests for S-expression dumps of trees and types.
"""

from elmgen import build as elm
from elmgen.passes.type_inference import with_annotations
from elmgen.shared.serialization import serialize_expression, serialize_type
from elmgen.shared.types import FunctionType, NamedType, RecordType, TypeVar, INT, STRING
from tests.test_utils import infer_details


class TestExpressions:
    def test_application(self):
        expr = elm.apply("List.map", elm.value("f"), elm.value("xs"))
        assert serialize_expression(expr) == '(apply (ref "List.map") (ref "f") (ref "xs"))'

    def test_compact(self):
        expr = elm.op("+", elm.int_(1), elm.int_(2))
        assert serialize_expression(expr, pretty=False) == "(+ (literal 1) (literal 2))"

    def test_char_and_string(self):
        expr = elm.tuple_(elm.char("c"), elm.string('a "b"'))
        assert serialize_expression(expr) == '(tuple (literal (char "c")) (literal "a \\"b\\""))'

    def test_long_forms_break(self):
        expr = elm.record([(f"field{i}", elm.string("a fairly long value")) for i in range(5)])
        text = serialize_expression(expr)
        lines = text.split("\n")
        assert lines[0] == "(record"
        assert lines[1] == '  (field0 (literal "a fairly long value"))'
        assert lines[-1] == ")"

    def test_case(self):
        expr = elm.case(elm.value("m"), [
            (elm.ctor("Maybe.Just", elm.var("x")), elm.value("x")),
            (elm.wildcard(), elm.int_(0)),
        ])
        assert serialize_expression(expr, pretty=False) == (
            '(case (ref "m") (branch (pctor "Maybe.Just" (pvar x)) (ref "x")) (branch (_) (literal 0)))'
        )

    def test_structurally_equal_trees_match(self):
        def make():
            return elm.let([("x", elm.int_(1))], elm.get("a", elm.record([("a", elm.value("x"))])))
        assert serialize_expression(make()) == serialize_expression(make())

    def test_annotations(self):
        expr = elm.apply("String.fromInt", elm.int_(1))
        annotated = with_annotations(expr, infer_details(expr))
        text = serialize_expression(annotated, include_annotations=True, pretty=False)
        assert text.startswith('(apply (ref "String.fromInt" :type (fn (Int) String))')
        assert text.endswith("(literal 1 :type Int) :type String)")

    def test_locations(self, parser):
        tree = parser.parse_expression("f x", source_file="A.elm")
        text = serialize_expression(tree, include_location=True, pretty=False)
        assert ':loc "A.elm:1:1"' in text
        assert ':loc "A.elm:1:3"' in text

    def test_declarations(self):
        module = elm.module("Main", [
            elm.custom_type("Box", [("Box", [TypeVar("a")])], params=["a"]),
            elm.declaration("one", elm.int_(1), signature=INT),
        ])
        assert serialize_expression(module, pretty=False) == (
            '(module "Main" (type Box (a) (Box (var "a"))) (def one :sig Int (literal 1)))'
        )


class TestTypes:
    def test_function(self):
        assert serialize_type(FunctionType((INT,), STRING)) == "(fn (Int) String)"

    def test_named(self):
        t = NamedType(("Json", "Decode"), "Decoder", (INT,))
        assert serialize_type(t) == '(named "Json.Decode.Decoder" Int)'

    def test_record_with_row(self):
        t = RecordType((("name", STRING),), TypeVar("r"))
        assert serialize_type(t) == '(record :row (var "r") (name String))'
