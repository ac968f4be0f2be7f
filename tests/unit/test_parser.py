#!/usr/bin/env python3
"""
Tests for parsing rendered Elm back into trees, and for the round trip
render -> parse -> render.
"""

import pytest

from elmgen import build as elm
from elmgen.frontend.parser import ParseError
from elmgen.shared.nodes import (
    Apply, CaseOf, Char, CustomTypeDeclaration, AliasDeclaration, FieldAccess, Lambda, LetIn, Literal,
    Operator, RecordUpdate, ValueDeclaration, ValueRef,
)
from elmgen.shared.types import FunctionType, NamedType, RecordType, TypeVar, INT, STRING
from tests.test_utils import assert_round_trip

JSON_DECODE = ("Json", "Decode")


class TestExpressions:
    def test_application(self, parser):
        tree = parser.parse_expression("List.map f xs")
        assert isinstance(tree, Apply)
        assert tree.fn.qualified_name == "List.map"
        assert [a.name for a in tree.args] == ["f", "xs"]

    def test_precedence(self, parser):
        tree = parser.parse_expression("1 + 2 * 3")
        assert isinstance(tree, Operator) and tree.symbol == "+"
        assert isinstance(tree.right, Operator) and tree.right.symbol == "*"

    def test_left_associative_pipeline(self, parser):
        tree = parser.parse_expression("xs |> f |> g")
        assert tree.right.name == "g"
        assert isinstance(tree.left, Operator)

    def test_right_associative_append(self, parser):
        tree = parser.parse_expression("a ++ b ++ c")
        assert tree.left.name == "a"
        assert isinstance(tree.right, Operator)

    def test_import_alias_is_expanded(self, parser):
        tree = parser.parse_expression("D.string", aliases={JSON_DECODE: "D"})
        assert isinstance(tree, ValueRef)
        assert tree.import_from == JSON_DECODE

    @pytest.mark.parametrize("source, value", [
        ("42", 42),
        ("-3", -3),
        ("1.5", 1.5),
        ("1.0e-5", 1e-05),
        ("True", True),
        ('"a\\"b"', 'a"b'),
        ('"\\u{0041}"', "A"),
        ("'\\n'", Char("\n")),
    ])
    def test_literals(self, parser, source, value):
        tree = parser.parse_expression(source)
        assert isinstance(tree, Literal)
        assert tree.value == value
        assert type(tree.value) is type(value)

    def test_field_access(self, parser):
        tree = parser.parse_expression("(first people).name")
        assert isinstance(tree, FieldAccess)
        assert tree.field == "name"
        assert isinstance(tree.record, Apply)

    def test_record_update(self, parser):
        tree = parser.parse_expression("{ model | count = 1 }")
        assert isinstance(tree, RecordUpdate)
        assert tree.base.name == "model"
        assert [name for name, _ in tree.fields] == ["count"]

    def test_lambda(self, parser):
        tree = parser.parse_expression("\\x _ -> x")
        assert isinstance(tree, Lambda)
        assert [p.name for p in tree.params] == ["x", "_"]

    def test_let(self, parser):
        tree = parser.parse_expression("let\n    double n =\n        n * 2\nin\ndouble 4")
        assert isinstance(tree, LetIn)
        assert isinstance(tree.bindings[0].value, Lambda)

    def test_case(self, parser):
        tree = parser.parse_expression("case m of\n    Just x ->\n        x\n\n    Nothing ->\n        0")
        assert isinstance(tree, CaseOf)
        assert [b.pattern.tag for b in tree.branches] == ["Just", "Nothing"]

    def test_locations(self, parser):
        tree = parser.parse_expression("f\n    1", source_file="Gen.elm")
        assert tree.location.file == "Gen.elm"
        assert tree.args[0].location.line == 2
        assert tree.args[0].location.column == 5


class TestParseErrors:
    def test_unexpected_token(self, parser):
        with pytest.raises(ParseError) as info:
            parser.parse_expression("(1", source_file="Bad.elm")
        assert info.value.source_file == "Bad.elm"

    def test_unexpected_character(self, parser):
        with pytest.raises(ParseError) as info:
            parser.parse_expression("1 # 2")
        assert "unexpected character" in info.value.message
        assert info.value.location.column == 3

    def test_bad_escape(self, parser):
        with pytest.raises(ParseError):
            parser.parse_expression('"\\q"')

    def test_invariant_violation(self, parser):
        with pytest.raises(ParseError) as info:
            parser.parse_expression("{ a = 1, a = 2 }")
        assert "duplicate" in info.value.message

    def test_bad_indentation(self, parser):
        with pytest.raises(ParseError):
            parser.parse_expression("case m of\n    Just x ->\n        x\n  Nothing ->\n        0")


MODULE_SOURCE = '''module Main exposing (Msg(..), Model, update)

import Json.Decode as D exposing (Decoder)


type Msg
    = Increment
    | SetName String


type alias Model =
    { count : Int, name : String }


{-| Apply one message.
-}
update : Msg -> Model -> Model
update msg model =
    case msg of
        Increment ->
            { model | count = model.count + 1 }

        SetName name ->
            { model | name = name }


names : D.Decoder (List String)
names =
    D.list D.string
'''


class TestModules:
    def test_structure(self, parser):
        module = parser.parse_module(MODULE_SOURCE)
        assert module.name == ("Main",)
        assert not module.expose_all
        assert [d.name for d in module.declarations] == ["Msg", "Model", "update", "names"]
        msg, model, update, names = module.declarations
        assert isinstance(msg, CustomTypeDeclaration)
        assert msg.exposed and msg.expose_constructors
        assert [v.tag for v in msg.variants] == ["Increment", "SetName"]
        assert isinstance(model, AliasDeclaration)
        assert model.aliased == RecordType((("count", INT), ("name", STRING)))
        assert isinstance(update, ValueDeclaration)
        assert update.doc == "Apply one message."
        assert update.signature == FunctionType((NamedType((), "Msg"), NamedType((), "Model")), NamedType((), "Model"))
        assert not names.exposed

    def test_imports_and_aliases(self, parser):
        module = parser.parse_module(MODULE_SOURCE)
        assert module.aliases == {JSON_DECODE: "D"}
        assert [i.render() for i in module.imports] == ["import Json.Decode as D exposing (Decoder)"]
        names = module.declarations[-1]
        assert names.signature == NamedType(JSON_DECODE, "Decoder", (NamedType(("List",), "List", (STRING,)),))
        assert names.expression.fn.import_from == JSON_DECODE

    def test_expose_all(self, parser):
        module = parser.parse_module("module Main exposing (..)\n\n\nmain =\n    1\n")
        assert module.expose_all

    def test_type_variables(self, parser):
        module = parser.parse_module("module Main exposing (..)\n\n\nsame : a -> a\nsame x =\n    x\n")
        assert module.declarations[0].signature == FunctionType((TypeVar("a"),), TypeVar("a"))

    def test_error_location(self, parser):
        with pytest.raises(ParseError) as info:
            parser.parse_module("module Main exposing (..)\n\n\nmain =\n    )\n", "Main.elm")
        assert info.value.location.line == 5


class TestRoundTrip:
    @pytest.mark.parametrize("expr", [
        elm.list_([elm.int_(1), elm.float_(2.5), elm.int_(-3)]),
        elm.tuple_(elm.string('q"uote\n'), elm.char("'"), elm.unit()),
        elm.record([("name", elm.string("Ada")), ("tags", elm.list_([]))]),
        elm.list_([elm.string(f"item number {i}") for i in range(8)]),
        elm.update("model", [("description", elm.string("something long enough to wrap")),
                             ("status", elm.string("another fairly long value"))]),
        elm.update(elm.apply("Page.init", elm.unit()), [("count", elm.int_(1))]),
        elm.apply("List.map", elm.fn(["x"], elm.op("*", elm.value("x"), elm.int_(2))), elm.value("xs")),
        elm.apply("abs", elm.int_(-3)),
        elm.op("*", elm.op("+", elm.value("a"), elm.value("b")), elm.value("c")),
        elm.op("++", elm.op("++", elm.value("a"), elm.value("b")), elm.value("c")),
        elm.op("-", elm.value("a"), elm.op("-", elm.value("b"), elm.value("c"))),
        elm.pipe(elm.value("items"),
                 elm.apply("List.filter", elm.value("isVisibleInTheCurrentViewport")),
                 elm.apply("List.map", elm.value("renderTheItemWithAllOfItsDetails"))),
        elm.get("name", elm.apply("first", elm.value("people"))),
        elm.let([("x", elm.int_(1)), ("f", elm.fn(["a", "_"], elm.value("a")))],
                elm.apply("f", elm.value("x"), elm.unit())),
        elm.case(elm.value("m"), [
            (elm.ctor("Just", elm.ctor("Just", elm.var("x"))), elm.value("x")),
            (elm.ctor("Just", elm.literal(-1)), elm.int_(0)),
            (elm.ctor("Just", elm.literal("s")), elm.int_(2)),
            (elm.wildcard(), elm.int_(1)),
        ]),
        elm.if_(elm.value("a"), elm.int_(1), elm.if_(elm.value("b"), elm.int_(2), elm.int_(3))),
        elm.list_([elm.if_(elm.value("c"), elm.int_(1), elm.int_(2)), elm.int_(3)]),
        elm.list_([
            elm.case(elm.value("m"), [(elm.ctor("Nothing"), elm.int_(0)), (elm.wildcard(), elm.int_(1))]),
            elm.int_(3),
        ]),
        elm.fn(["m"], elm.let([("y", elm.case(elm.value("m"), [(elm.var("z"), elm.value("z"))]))],
                              elm.value("y"))),
        elm.let([("inner", elm.let([("deep", elm.int_(1))], elm.value("deep")))], elm.value("inner")),
        elm.apply("Json.Decode.map2", elm.value("Pair"), elm.value("Json.Decode.int"), elm.value("Json.Decode.string")),
    ])
    def test_round_trip(self, parser, expr):
        assert_round_trip(parser, expr)

    def test_round_trip_with_alias(self, parser):
        expr = elm.apply("Json.Decode.list", elm.value("Json.Decode.string"))
        text = assert_round_trip(parser, expr, aliases={JSON_DECODE: "D"})
        assert text == "D.list D.string"
