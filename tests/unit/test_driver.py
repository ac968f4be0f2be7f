#!/usr/bin/env python3
"""
Tests for the codegen driver: whole modules, counter threading between
declarations, imports and re-formatting of source files.
"""

from elmgen import build as elm
from elmgen.compiler.driver import CodegenDriver
from elmgen.shared.errors import CannotUnify
from elmgen.shared.types import FunctionType, NamedType, RecordType, TypeVar, INT, STRING, UNIT, list_type
from elmgen.utils.io_utils import read_source_file
from tests.test_utils import strip_ansi

MSG = NamedType((), "Msg")
MODEL = NamedType((), "Model")


def decoder(t):
    return NamedType(("Json", "Decode"), "Decoder", (t,))


def counter_module():
    update_body = elm.fn(["msg", "model"], elm.case(elm.value("msg"), [
        (elm.ctor("Increment"),
         elm.update("model", [("count", elm.op("+", elm.get("count", elm.value("model")), elm.int_(1)))])),
        (elm.ctor("SetName", elm.var("name")), elm.update("model", [("name", elm.value("name"))])),
    ]))
    return elm.module("Main", [
        elm.custom_type("Msg", ["Increment", ("SetName", [STRING])]),
        elm.alias("Model", RecordType((("count", INT), ("name", STRING)))),
        elm.declaration("init", elm.record([("count", elm.int_(0)), ("name", elm.string(""))]), signature=MODEL),
        elm.declaration("update", update_body, signature=FunctionType((MSG, MODEL), MODEL), doc="Apply one message."),
        elm.declaration("decodeName", elm.value("Json.Decode.string", annotation=decoder(STRING))),
    ])


COUNTER_TEXT = '''module Main exposing (Msg(..), Model, init, update, decodeName)

import Json.Decode


type Msg
    = Increment
    | SetName String


type alias Model =
    { count : Int, name : String }


init : Model
init =
    { count = 0, name = "" }


{-| Apply one message.
-}
update : Msg -> Model -> Model
update msg model =
    case msg of
        Increment ->
            { model | count = model.count + 1 }

        SetName name ->
            { model | name = name }


decodeName : Json.Decode.Decoder String
decodeName =
    Json.Decode.string
'''


class TestRenderFile:
    def test_whole_module(self, driver):
        assert driver.render_file(counter_module()) == COUNTER_TEXT

    def test_name_and_declarations(self, driver):
        text = driver.render_file("Page.Home", [elm.declaration("title", elm.string("Home"))])
        assert text == 'module Page.Home exposing (title)\n\n\ntitle : String\ntitle =\n    "Home"\n'

    def test_hidden_declarations(self, driver):
        decls = [
            elm.declaration("main", elm.apply("helper", elm.int_(1))),
            elm.declaration("helper", elm.fn(["n"], elm.value("n")), exposed=False),
        ]
        assert driver.render_file("Main", decls).startswith("module Main exposing (main)\n")

    def test_aliases_shorten_names(self, driver):
        decls = [elm.declaration("names", elm.apply("Json.Decode.list", elm.value("Json.Decode.string")))]
        text = driver.render_file("Main", decls, aliases={("Json", "Decode"): "D"})
        assert "import Json.Decode as D\n" in text
        assert "    D.list D.string\n" in text

    def test_signature_types_are_imported(self, driver):
        decls = [elm.declaration("value", elm.value("Somewhere.value", annotation=NamedType(("Time",), "Posix")))]
        text = driver.render_file("Main", decls)
        assert "import Somewhere\nimport Time\n" in text
        assert "value : Time.Posix\n" in text

    def test_untyped_reference_omits_signature(self, driver):
        decls = [elm.declaration("enc", elm.apply("Json.Encode.int", elm.int_(1)))]
        text = driver.render_file("Main", decls)
        assert "enc :" not in text
        assert text.endswith("\n\n\nenc =\n    Json.Encode.int 1\n")

    def test_dependents_of_untyped_declarations_omit_signature(self, driver):
        decls = [
            elm.declaration("enc", elm.apply("Json.Encode.int", elm.int_(1))),
            elm.declaration("encoded", elm.value("enc")),
            elm.declaration("title", elm.string("x")),
        ]
        text = driver.render_file("Main", decls)
        assert "enc :" not in text
        assert "encoded :" not in text
        assert "title : String\n" in text

    def test_update_binding_avoids_top_level_names(self, driver):
        decls = [
            elm.declaration("record", elm.record([("x", elm.int_(1))])),
            elm.declaration("reset", elm.update(elm.apply("Page.init", elm.unit()), [("x", elm.int_(2))])),
        ]
        text = driver.render_file("Main", decls)
        assert "        record1 =\n            Page.init ()\n" in text
        assert "{ record1 | x = 2 }" in text


class TestCheckFile:
    def test_later_declarations_see_earlier_types(self, driver):
        decls = [
            elm.declaration("double", elm.fn(["n"], elm.op("*", elm.value("n"), elm.int_(2)))),
            elm.declaration("four", elm.apply("double", elm.int_(2))),
        ]
        results = driver.check_file(decls)
        assert [r.name for r in results] == ["double", "four"]
        assert all(r.ok for r in results)

    def test_signatures_are_visible_before_definition(self, driver):
        decls = [
            elm.declaration("label", elm.apply("String.fromInt", elm.apply("answer", elm.unit()))),
            elm.declaration("answer", elm.fn(["_"], elm.int_(42)), signature=FunctionType((UNIT,), INT)),
        ]
        results = driver.check_file(decls)
        assert results[0].ok

    def test_custom_type_constructors_are_registered(self, driver):
        module = counter_module()
        results = driver.check_file(module)
        assert [r.name for r in results] == ["init", "update", "decodeName"]
        assert all(r.ok for r in results), [e.message() for r in results for e in r.details.errors]

    def test_errors_are_per_declaration(self, driver):
        decls = [
            elm.declaration("bad", elm.string("x"), signature=INT),
            elm.declaration("good", elm.int_(1)),
        ]
        bad, good = driver.check_file(decls)
        assert bad.details.errors == (CannotUnify(INT, STRING),)
        assert good.ok

    def test_counter_is_threaded(self, driver):
        decls = [elm.declaration("f", elm.fn(["x"], elm.value("x")))]
        first = driver.check_file(decls)[0].details.type
        shifted = driver.check_file(decls, start_index=100)[0].details.type
        assert first.param_types[0].identity < 100 <= shifted.param_types[0].identity

    def test_caller_facts(self):
        driver = CodegenDriver(facts={"Json.Decode.int": decoder(INT)})
        text = driver.render_declaration(elm.declaration("ints", elm.value("Json.Decode.int")))
        assert text == "ints : Json.Decode.Decoder Int\nints =\n    Json.Decode.int"


class TestFormatSource:
    def test_formatted_source_is_unchanged(self, driver):
        result = driver.format_source(COUNTER_TEXT)
        assert result.success
        assert not result.has_errors()
        assert result.inference_ok
        assert result.text == COUNTER_TEXT

    def test_layout_is_normalized(self, driver):
        source = "module Main exposing (main)\nmain = [1,2,\n  3]\n"
        result = driver.format_source(source)
        assert result.text == "module Main exposing (main)\n\n\nmain : List Int\nmain =\n    [ 1, 2, 3 ]\n"

    def test_explicit_imports_are_kept(self):
        driver = CodegenDriver(facts={
            "Json.Decode.string": decoder(STRING),
            "Json.Decode.list": FunctionType((decoder(TypeVar("a")),), decoder(list_type(TypeVar("a")))),
        })
        source = "module Main exposing (..)\nimport Json.Decode as D exposing (Decoder)\nnames = D.list D.string\n"
        result = driver.format_source(source)
        assert result.text == "\n".join([
            "module Main exposing (..)",
            "",
            "import Json.Decode as D exposing (Decoder)",
            "",
            "",
            "names : D.Decoder (List String)",
            "names =",
            "    D.list D.string",
            "",
        ])

    def test_inference_errors_are_reported(self, driver, no_color):
        source = 'module Main exposing (main)\n\n\nmain : Int\nmain =\n    "hello"\n'
        result = driver.format_source(source, "Main.elm")
        assert result.success
        assert not result.inference_ok
        assert result.text == source
        report = strip_ansi(result.reporter.format_all_errors())
        assert "error[E0308]: mismatched types" in report
        assert "--> Main.elm:5:1" in report
        assert "= note: in the definition of `main`" in report

    def test_parse_error(self, driver):
        result = driver.format_source("module Main exposing (..)\nmain = (\n", "Bad.elm")
        assert not result.success
        assert result.text is None
        assert result.reporter.errors[0].code == "E0001"


class TestTreeDumps:
    def test_render_file_writes_typed_tree(self, tmp_path):
        driver = CodegenDriver(dump_dir=tmp_path)
        driver.render_file("Page.Home", [elm.declaration("title", elm.string("Home"))])
        text = read_source_file(tmp_path / "Page.Home.sexpr")
        assert text == '(module "Page.Home" (def title (literal "Home" :type String)))\n'

    def test_format_source_dump_has_locations(self, tmp_path):
        driver = CodegenDriver(dump_dir=tmp_path / "trees")
        driver.format_source("module Main exposing (main)\nmain = 1\n", "Main.elm")
        text = read_source_file(tmp_path / "trees" / "Main.sexpr")
        assert "(def main" in text
        assert ':type Int :loc "Main.elm:2:' in text

    def test_environment_variable(self, tmp_path, monkeypatch):
        monkeypatch.setenv("ELMGEN_DUMP_TREES", str(tmp_path))
        assert CodegenDriver().dump_dir == tmp_path

    def test_no_dump_by_default(self, monkeypatch):
        monkeypatch.delenv("ELMGEN_DUMP_TREES", raising=False)
        assert CodegenDriver().dump_dir is None
