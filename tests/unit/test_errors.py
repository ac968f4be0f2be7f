#!/usr/bin/env python3
"""
Tests for inference error values and rustc-style diagnostics.
"""

import pytest

from elmgen.shared.errors import (
    ArityMismatch, CannotUnify, ConstructionError, ElmgenError, ElmgenImplementationError, Error,
    ErrorReporter, UnboundRecordField, UnificationError, UnknownConstructor,
)
from elmgen.shared.source_location import SourceLocation
from elmgen.shared.types import RecordType, TypeVar, INT, STRING
from tests.test_utils import strip_ansi


class TestInferenceErrors:
    def test_messages(self):
        assert CannotUnify(INT, STRING).message() == "cannot unify `Int` with `String`"
        assert ArityMismatch(1, 2).message() == "expected 1 argument, found 2"
        assert ArityMismatch(2, 1).message() == "expected 2 arguments, found 1"
        assert UnknownConstructor("Bogus").message() == "cannot find constructor `Bogus`"
        assert UnboundRecordField("total").message() == "record has no field `total`"

    def test_record_in_message(self):
        error = UnboundRecordField("total", RecordType((("count", INT),)))
        assert error.message() == "`{ count : Int }` has no field `total`"

    def test_location_does_not_affect_equality(self):
        located = CannotUnify(INT, STRING).with_location(SourceLocation("A.elm", 1, 1))
        assert located == CannotUnify(INT, STRING)
        assert located.location.file == "A.elm"

    def test_existing_location_is_kept(self):
        first = SourceLocation("A.elm", 1, 1)
        error = ArityMismatch(1, 2).with_location(first).with_location(SourceLocation("A.elm", 9, 9))
        assert error.location == first

    def test_free_variables_are_named(self):
        assert CannotUnify(TypeVar(3), INT).message() == "cannot unify `a` with `Int`"

    def test_to_error(self):
        diagnostic = UnknownConstructor("Bogus").to_error()
        assert diagnostic.code == "E0531"
        assert diagnostic.message == "unknown constructor"
        assert diagnostic.label == "cannot find constructor `Bogus`"

    def test_unification_error_carries_value(self):
        error = CannotUnify(INT, STRING)
        raised = UnificationError(error)
        assert raised.error is error
        assert str(raised) == error.message()


class TestExceptions:
    def test_elmgen_error_with_location(self):
        error = ElmgenError("bad", SourceLocation("A.elm", 2, 3))
        assert str(error) == "bad (A.elm:2:3)"

    def test_construction_error(self):
        with pytest.raises(ValueError):
            raise ConstructionError("duplicate record field 'a'")

    def test_implementation_error(self):
        assert str(ElmgenImplementationError("broken")) == "[E9999] broken"


SOURCE = 'module Main exposing (..)\n\n\nmain : Int\nmain =\n    "hello"\n'


class TestDiagnostics:
    def test_plain_format(self):
        reporter = ErrorReporter({"Main.elm": SOURCE})
        error = Error("mismatched types", SourceLocation("Main.elm", 6, 5, 6, 12), code="E0308",
                      label="cannot unify `Int` with `String`", note="in the definition of `main`")
        assert reporter.format_error(error, color=False) == "\n".join([
            "error[E0308]: mismatched types",
            " --> Main.elm:6:5",
            "  |",
            '6 |     "hello"',
            "  |     ^^^^^^^ cannot unify `Int` with `String`",
            "  |",
            "  = note: in the definition of `main`",
        ])

    def test_guessed_span(self):
        reporter = ErrorReporter({"Main.elm": SOURCE})
        error = Error("oops", SourceLocation("Main.elm", 4, 8))
        lines = reporter.format_error(error, color=False).split("\n")
        assert lines[-1] == "  |        ^^^"

    def test_generated_code_without_location(self):
        reporter = ErrorReporter()
        reporter.report_inference_error(ArityMismatch(1, 2), note="in the definition of `f`")
        text = reporter.format_all_errors(color=False)
        assert text == "\n".join([
            "error[E0061]: wrong number of arguments",
            " --> <generated code>",
            "  = expected 1 argument, found 2",
            "  |",
            "  = note: in the definition of `f`",
            "",
            "error: found 1 error",
        ])

    def test_summary_plural(self):
        reporter = ErrorReporter()
        reporter.report(Error("a", None))
        reporter.report(Error("b", None))
        assert reporter.has_errors()
        assert reporter.format_all_errors(color=False).endswith("error: found 2 errors")

    def test_color(self):
        reporter = ErrorReporter()
        reporter.report(Error("mismatched types", None, code="E0308"))
        colored = reporter.format_all_errors(color=True)
        assert "\x1b[" in colored
        assert strip_ansi(colored) == reporter.format_all_errors(color=False)

    def test_no_color_environment(self, no_color):
        reporter = ErrorReporter()
        reporter.report(Error("mismatched types", None))
        assert "\x1b[" not in reporter.format_all_errors()
