"""
Error Reporting

Three families of failure:

- InferenceError: reported, never raised to the caller. Inference collects
  them in ``InferenceDetails.errors``.
- ConstructionError: a tree-building invariant was violated (duplicate
  record field, duplicate case pattern, ...). Raised immediately.
- ElmgenImplementationError: a bug inside elmgen itself.

Diagnostics are rendered rustc-style by ``ErrorReporter``.
"""

import os
import sys
from dataclasses import dataclass, field, replace
from typing import Optional, List, Dict, TYPE_CHECKING

from .source_location import SourceLocation
from ..utils.config import COLOR_ENV_VAR, NO_COLOR_ENV_VAR

if TYPE_CHECKING:
    from .types import Type


# ---------------------------------------------------------------------------
# ANSI color helpers (disabled when NO_COLOR is set)
# ---------------------------------------------------------------------------

def _use_color() -> bool:
    if os.environ.get(NO_COLOR_ENV_VAR):
        return False
    explicit = os.environ.get(COLOR_ENV_VAR, "").lower()
    if explicit in ("0", "false", "no", "never"):
        return False
    return sys.stderr.isatty() or explicit in ("1", "true", "yes", "always")

_BOLD   = "\033[1m"
_RED    = "\033[31m"
_BLUE   = "\033[34m"
_CYAN   = "\033[36m"
_RESET  = "\033[0m"

def _style(text: str, *codes: str, color: bool = True) -> str:
    if not color:
        return text
    prefix = "".join(codes)
    return f"{prefix}{text}{_RESET}" if prefix else text


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------

class ElmgenError(Exception):
    """Base exception for all elmgen errors"""
    def __init__(self, message: str, location: Optional[SourceLocation] = None):
        super().__init__(message)
        self.message = message
        self.location = location

    def __str__(self):
        if self.location:
            return f"{self.message} ({self.location})"
        return self.message


class ConstructionError(ElmgenError, ValueError):
    """
    A tree violates a construction invariant.

    Raised at build time, never deferred to inference:
    - duplicate field names in a record, record type or record update
    - duplicate case patterns or let-binding names
    - tuples outside Elm's 2..3 element range, non-finite floats
    """


class ElmgenImplementationError(Exception):
    """
    Error in elmgen itself (violated internal invariant), not in the tree
    the caller built.
    """
    def __init__(self, message: str, error_code: str = "E9999"):
        super().__init__(message)
        self.message = message
        self.error_code = error_code

    def __str__(self):
        return f"[{self.error_code}] {self.message}"


# ---------------------------------------------------------------------------
# Inference errors (values, not exceptions)
# ---------------------------------------------------------------------------

def _show(t: 'Type') -> str:
    from ..backends.type_printer import TypePrinter
    return TypePrinter().print(t)


class InferenceError:
    """Base class of the structured inference errors."""
    code = "E0000"
    title = "type error"
    location: Optional[SourceLocation] = None

    def message(self) -> str:
        raise NotImplementedError

    def with_location(self, location: Optional[SourceLocation]) -> 'InferenceError':
        if location is None or self.location is not None:
            return self
        return replace(self, location=location)

    def to_error(self) -> 'Error':
        return Error(message=self.title, location=self.location, code=self.code, label=self.message())

    def __str__(self) -> str:
        return self.message()


@dataclass(frozen=True)
class CannotUnify(InferenceError):
    """Two types that must be equal are not."""
    left: 'Type'
    right: 'Type'
    location: Optional[SourceLocation] = field(default=None, compare=False)
    code = "E0308"
    title = "mismatched types"

    def message(self) -> str:
        return f"cannot unify `{_show(self.left)}` with `{_show(self.right)}`"


@dataclass(frozen=True)
class UnboundRecordField(InferenceError):
    """A record update or field access names a field the record does not have."""
    name: str
    record: Optional['Type'] = None
    location: Optional[SourceLocation] = field(default=None, compare=False)
    code = "E0609"
    title = "no such record field"

    def message(self) -> str:
        if self.record is None:
            return f"record has no field `{self.name}`"
        return f"`{_show(self.record)}` has no field `{self.name}`"


@dataclass(frozen=True)
class ArityMismatch(InferenceError):
    """A function, type constructor or pattern got the wrong number of arguments."""
    expected: int
    found: int
    location: Optional[SourceLocation] = field(default=None, compare=False)
    code = "E0061"
    title = "wrong number of arguments"

    def message(self) -> str:
        plural = "s" if self.expected != 1 else ""
        return f"expected {self.expected} argument{plural}, found {self.found}"


@dataclass(frozen=True)
class UnknownConstructor(InferenceError):
    """A pattern or reference names a constructor nobody declared."""
    name: str
    location: Optional[SourceLocation] = field(default=None, compare=False)
    code = "E0531"
    title = "unknown constructor"

    def message(self) -> str:
        return f"cannot find constructor `{self.name}`"


class UnificationError(Exception):
    """Raised inside unification; carries the structured error."""
    def __init__(self, error: InferenceError):
        super().__init__(error.message())
        self.error = error


# ---------------------------------------------------------------------------
# Diagnostics
# ---------------------------------------------------------------------------

@dataclass
class Error:
    """One diagnostic."""
    message: str
    location: Optional[SourceLocation]
    code: Optional[str] = None
    help: Optional[str] = None
    note: Optional[str] = None
    label: Optional[str] = None


def _format_diagnostic(
    error: Error,
    source_files: Dict[str, str],
    color: bool = False,
) -> str:
    """
    Render a single diagnostic.

    Example output (plain, no color)::

        error[E0308]: mismatched types
         --> Main.elm:5:9
          |
        5 |     x = "hello" + 1
          |         ^^^^^^^ cannot unify `String` with `number`
    """
    out: List[str] = []

    code_str = f"[{error.code}]" if error.code else ""
    out.append(
        _style(f"error{code_str}", _BOLD, _RED, color=color)
        + _style(f": {error.message}", _BOLD, color=color)
    )

    loc = error.location
    source = source_files.get(loc.file) if loc is not None else None
    if loc is None or source is None:
        where = f"{loc.file}:{loc.line}:{loc.column}" if loc is not None else "<generated code>"
        out.append(_style(" --> ", _BOLD, _BLUE, color=color) + where)
        if error.label:
            out.append(_style("  = ", _BOLD, _CYAN, color=color) + error.label)
        _append_annotations(out, error, 1, color)
        return "\n".join(out)

    src_lines = source.split("\n")
    gw = max(len(str(loc.line)), 1)
    out.append(_style(" " * gw + "--> ", _BOLD, _BLUE, color=color) + f"{loc.file}:{loc.line}:{loc.column}")
    out.append(_style(" " * (gw + 1) + "|", _BOLD, _BLUE, color=color))

    idx = loc.line - 1
    code_line = src_lines[idx] if 0 <= idx < len(src_lines) else ""
    out.append(_style(str(loc.line).rjust(gw) + " | ", _BOLD, _BLUE, color=color) + code_line)

    col_start = max(loc.column, 1) - 1
    if loc.end_line == loc.line and loc.end_column > loc.column:
        span_len = loc.end_column - loc.column
    else:
        span_len = _guess_span(code_line, col_start)
    carets = " " * col_start + "^" * max(1, span_len)
    label_suffix = f" {error.label}" if error.label else ""
    out.append(
        _style(" " * (gw + 1) + "| ", _BOLD, _BLUE, color=color)
        + _style(carets + label_suffix, _BOLD, _RED, color=color)
    )

    _append_annotations(out, error, gw, color)
    return "\n".join(out)


def _guess_span(code_line: str, col_start: int) -> int:
    """Guess token length when end_column is unavailable."""
    if col_start >= len(code_line):
        return 1
    length = 0
    for ch in code_line[col_start:]:
        if ch in (" ", "\t", ",", ")", "]", "}"):
            break
        length += 1
    return max(1, length)


def _append_annotations(out: List[str], error: Error, gw: int, color: bool) -> None:
    if not (error.help or error.note):
        return
    pad = " " * (gw + 1)
    out.append(_style(pad + "|", _BOLD, _BLUE, color=color))
    if error.help:
        out.append(_style(f"{pad}= ", _BOLD, _CYAN, color=color) + _style("help: ", _BOLD, color=color) + error.help)
    if error.note:
        out.append(_style(f"{pad}= ", _BOLD, _CYAN, color=color) + _style("note: ", _BOLD, color=color) + error.note)


class ErrorReporter:
    """Collects diagnostics and formats them against the known sources."""

    def __init__(self, source_files: Optional[Dict[str, str]] = None):
        self.source_files = source_files or {}
        self.errors: List[Error] = []

    def report(self, error: Error) -> None:
        self.errors.append(error)

    def report_inference_error(self, error: InferenceError, note: Optional[str] = None) -> None:
        diagnostic = error.to_error()
        diagnostic.note = note
        self.errors.append(diagnostic)

    def format_error(self, error: Error, color: Optional[bool] = None) -> str:
        use_color = color if color is not None else _use_color()
        return _format_diagnostic(error, self.source_files, color=use_color)

    def format_all_errors(self, color: Optional[bool] = None) -> str:
        use_color = color if color is not None else _use_color()
        parts = [self.format_error(e, color=use_color) for e in self.errors]
        count = len(self.errors)
        summary = f"found {count} error{'s' if count != 1 else ''}"
        parts.append(_style("error", _BOLD, _RED, color=use_color) + _style(f": {summary}", _BOLD, color=use_color))
        return "\n\n".join(parts)

    def has_errors(self) -> bool:
        return len(self.errors) > 0
