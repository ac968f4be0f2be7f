"""
Elm Source Renderer

Turns expression trees and declarations into elm-format style source text.

Rendering of a subtree does not depend on where it is placed: a multi-line
child is rendered once and indented by its parent. The one exception is the
name a record update binds its base to, which must differ from every
variable name in the tree and from the module's top-level names. Text
parsed back and rendered again is byte-identical.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Set, Tuple

from ..passes.imports import collect_imports
from ..passes.type_inference import InferenceDetails, infer
from ..shared.ast_visitor import ASTVisitor
from ..shared.nodes import (
    ASTNode, Expression, Char, Literal, ListLit, TupleLit, UnitLit, RecordLit, RecordUpdate, Lambda,
    Apply, ValueRef, LetIn, LetBinding, CaseOf, Operator, IfThenElse, FieldAccess,
    ConstructorPattern, VarPattern, WildcardPattern, LiteralPattern, ValueDeclaration,
    CustomTypeDeclaration, AliasDeclaration, Declaration, ImportStatement,
)
from ..shared.operators import Associativity, lookup_operator
from ..shared.prelude import ConstructorRegistry
from ..shared.types import Type, RecordType
from ..utils.config import (
    INDENT_WIDTH, MAX_LINE_WIDTH, UPDATE_BASE_NAME, BOOLEAN_TRUE_LITERAL, BOOLEAN_FALSE_LITERAL,
    STRING_QUOTE_CHAR, CHAR_QUOTE_CHAR, BLANK_LINES_BETWEEN_DECLARATIONS, BLANK_LINES_AFTER_IMPORTS,
)
from .type_printer import TypePrinter, qualify

logger = logging.getLogger("elmgen.backends.elm")

ModulePath = Tuple[str, ...]

_ESCAPES = {"\n": "\\n", "\t": "\\t", "\r": "\\r", "\\": "\\\\"}

_BLOCKS = (Lambda, LetIn, CaseOf, IfThenElse)


# ----------------------------------------------------------------------
# Text helpers
# ----------------------------------------------------------------------

def indent(text: str, width: int = INDENT_WIDTH) -> str:
    """Indent every non-empty line of ``text``."""
    pad = " " * width
    return "\n".join(pad + line if line else line for line in text.split("\n"))


def fits(text: str) -> bool:
    return "\n" not in text and len(text) <= MAX_LINE_WIDTH


def parenthesize(text: str) -> str:
    if "\n" in text:
        return f"({text}\n)"
    return f"({text})"


def _escape(text: str, quote: str) -> str:
    out = []
    for ch in text:
        if ch in _ESCAPES:
            out.append(_ESCAPES[ch])
        elif ch == quote:
            out.append("\\" + quote)
        elif ord(ch) < 0x20 or ord(ch) == 0x7F:
            out.append(f"\\u{{{ord(ch):04X}}}")
        else:
            out.append(ch)
    return "".join(out)


def render_string(text: str) -> str:
    return STRING_QUOTE_CHAR + _escape(text, STRING_QUOTE_CHAR) + STRING_QUOTE_CHAR


def render_char(char: Char) -> str:
    return CHAR_QUOTE_CHAR + _escape(char.value, CHAR_QUOTE_CHAR) + CHAR_QUOTE_CHAR


def render_float(value: float) -> str:
    """Elm floats always carry a fractional part: ``1.0``, ``1.0e-5``."""
    text = repr(value)
    if "e" in text:
        mantissa, exponent = text.split("e")
        if "." not in mantissa:
            mantissa += ".0"
        return f"{mantissa}e{int(exponent)}"
    if "." not in text:
        text += ".0"
    return text


def render_literal_value(value) -> str:
    if isinstance(value, bool):
        return BOOLEAN_TRUE_LITERAL if value else BOOLEAN_FALSE_LITERAL
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        return render_float(value)
    if isinstance(value, Char):
        return render_char(value)
    return render_string(value)


def _is_negative(node: ASTNode) -> bool:
    value = getattr(node, "value", None)
    return (isinstance(node, (Literal, LiteralPattern)) and not isinstance(value, bool)
            and isinstance(value, (int, float)) and render_literal_value(value).startswith("-"))


def leading_comma(opening: str, items: Sequence[str], closing: str) -> str:
    """
    elm-format's vertical container layout::

        [ first
        , second
        ]
    """
    lines = []
    for i, item in enumerate(items):
        prefix = opening if i == 0 else ","
        first, _, rest = item.partition("\n")
        lines.append(f"{prefix} {first}")
        if rest:
            lines.append(indent(rest, 2))
    lines.append(closing)
    return "\n".join(lines)


def _field(name: str, value: str, separator: str = "=") -> str:
    # Continuation lines are relative to the text after the leading "{ " or ", "
    if "\n" in value:
        return f"{name} {separator}\n{indent(value, INDENT_WIDTH - 2)}"
    return f"{name} {separator} {value}"


def extension_layout(base: str, fields: Sequence[str]) -> str:
    """
    Vertical layout of a record update or extensible record type::

        { model
            | count = 1
            , name = "x"
        }
    """
    lines = [f"{{ {base}"]
    for i, text in enumerate(fields):
        prefix = "|" if i == 0 else ","
        first, _, rest = text.partition("\n")
        lines.append(indent(f"{prefix} {first}"))
        if rest:
            lines.append(indent(rest, INDENT_WIDTH + 2))
    lines.append("}")
    return "\n".join(lines)


# ----------------------------------------------------------------------
# Names
# ----------------------------------------------------------------------

class _VariableNames(ASTVisitor[None]):
    def __init__(self):
        self.names: Set[str] = set()

    def visit_literal(self, node: Literal) -> None:
        pass

    def visit_value_ref(self, node: ValueRef) -> None:
        if not node.import_from and not node.is_constructor:
            self.names.add(node.name)

    def visit_lambda(self, node: Lambda) -> None:
        self.names.update(p.name for p in node.params)
        node.body.accept(self)

    def visit_let_in(self, node: LetIn) -> None:
        self.names.update(b.name for b in node.bindings)
        super().visit_let_in(node)

    def visit_var_pattern(self, node: VarPattern) -> None:
        self.names.add(node.name)


def variable_names(node: ASTNode) -> Set[str]:
    """Unqualified names referenced or bound anywhere in ``node``."""
    collector = _VariableNames()
    node.accept(collector)
    return collector.names


# ----------------------------------------------------------------------
# Expressions
# ----------------------------------------------------------------------

class ElmRenderer(ASTVisitor[str]):
    """
    Renders expressions and patterns.

    Usage:
        ElmRenderer().render(tree)
        ElmRenderer(aliases={("Json", "Decode"): "Decode"}).render(tree)
    """

    def __init__(self, aliases: Optional[Dict[ModulePath, str]] = None, reserved: Iterable[str] = ()):
        self.aliases = aliases or {}
        self._taken: Set[str] = set(reserved)

    def reserve(self, node: ASTNode) -> None:
        """Keep every variable name written in ``node`` away from generated bindings."""
        self._taken.update(variable_names(node))

    def render(self, node: ASTNode) -> str:
        self.reserve(node)
        return node.accept(self)

    def _fresh_name(self, base: str) -> str:
        candidate, n = base, 0
        while candidate in self._taken:
            n += 1
            candidate = f"{base}{n}"
        self._taken.add(candidate)
        return candidate

    # Operand helpers

    def _atom(self, node: Expression) -> str:
        """Render ``node`` where only an atom is allowed (argument, field access base)."""
        text = node.accept(self)
        if isinstance(node, (Apply, Operator) + _BLOCKS) or _is_negative(node):
            return parenthesize(text)
        return text

    def _callee(self, node: Expression) -> Tuple[str, List[str]]:
        # Nested applications flatten: (f a) b renders as f a b
        if isinstance(node, Apply):
            head, args = self._callee(node.fn)
            return head, args + [self._atom(a) for a in node.args]
        text = node.accept(self)
        if isinstance(node, (Operator,) + _BLOCKS) or _is_negative(node):
            text = parenthesize(text)
        return text, []

    # Leaves

    def visit_literal(self, node: Literal) -> str:
        return render_literal_value(node.value)

    def visit_unit(self, node: UnitLit) -> str:
        return "()"

    def visit_value_ref(self, node: ValueRef) -> str:
        return qualify(node.import_from, node.name, self.aliases)

    # Containers

    def _container(self, opening: str, items: List[str], closing: str, empty: str) -> str:
        if not items:
            return empty
        one_line = f"{opening} {', '.join(items)} {closing}"
        if fits(one_line):
            return one_line
        return leading_comma(opening, items, closing)

    def visit_list(self, node: ListLit) -> str:
        return self._container("[", [e.accept(self) for e in node.elements], "]", "[]")

    def visit_tuple(self, node: TupleLit) -> str:
        return self._container("(", [e.accept(self) for e in node.elements], ")", "()")

    def visit_record(self, node: RecordLit) -> str:
        fields = [_field(name, value.accept(self)) for name, value in node.fields]
        return self._container("{", fields, "}", "{}")

    def visit_record_update(self, node: RecordUpdate) -> str:
        base = node.base
        if isinstance(base, ValueRef) and not base.import_from and not base.is_constructor:
            return self._update(base.name, node)
        # Only a plain variable may stand before `|`; Elm rejects shadowing
        name = self._fresh_name(UPDATE_BASE_NAME)
        binding = LetBinding(name, base)
        body = self._update(name, node)
        return self._let([self.binding(binding)], body)

    def _update(self, base_name: str, node: RecordUpdate) -> str:
        fields = [_field(name, value.accept(self)) for name, value in node.fields]
        one_line = f"{{ {base_name} | {', '.join(fields)} }}"
        if fits(one_line):
            return one_line
        return extension_layout(base_name, fields)

    # Functions

    def visit_lambda(self, node: Lambda) -> str:
        params = " ".join(p.name for p in node.params)
        body = node.body.accept(self)
        one_line = f"\\{params} -> {body}"
        if fits(one_line):
            return one_line
        return f"\\{params} ->\n{indent(body)}"

    def visit_apply(self, node: Apply) -> str:
        head, args = self._callee(node)
        one_line = " ".join([head] + args)
        if fits(one_line):
            return one_line
        return head + "\n" + indent("\n".join(args))

    # Blocks

    def binding(self, binding: LetBinding) -> str:
        value = binding.value
        head = binding.name
        if isinstance(value, Lambda):
            head = " ".join([head] + [p.name for p in value.params])
            value = value.body
        return f"{head} =\n{indent(value.accept(self))}"

    def _let(self, bindings: List[str], body: str) -> str:
        blocks = "\n\n".join(bindings)
        return f"let\n{indent(blocks)}\nin\n{body}"

    def visit_let_in(self, node: LetIn) -> str:
        return self._let([self.binding(b) for b in node.bindings], node.body.accept(self))

    def visit_case_of(self, node: CaseOf) -> str:
        subject = node.subject.accept(self)
        if "\n" in subject:
            head = f"case\n{indent(subject)}\nof"
        else:
            head = f"case {subject} of"
        branches = []
        for branch in node.branches:
            pattern = branch.pattern.accept(self)
            branches.append(f"{pattern} ->\n{indent(branch.body.accept(self))}")
        return head + "\n" + indent("\n\n".join(branches))

    def visit_if_then_else(self, node: IfThenElse) -> str:
        condition = node.condition.accept(self)
        if "\n" in condition:
            head = f"if\n{indent(condition)}\nthen"
        else:
            head = f"if {condition} then"
        text = f"{head}\n{indent(node.then_branch.accept(self))}\n\nelse"
        if isinstance(node.else_branch, IfThenElse):
            return f"{text} {node.else_branch.accept(self)}"
        return f"{text}\n{indent(node.else_branch.accept(self))}"

    def visit_field_access(self, node: FieldAccess) -> str:
        return f"{self._atom(node.record)}.{node.field}"

    # Operators

    def _operand(self, child: Expression, parent: Operator, side: str) -> str:
        text = child.accept(self)
        if isinstance(child, _BLOCKS) or _is_negative(child):
            return parenthesize(text)
        if isinstance(child, Operator) and not self._binds_without_parens(child, parent, side):
            return parenthesize(text)
        return text

    @staticmethod
    def _binds_without_parens(child: Operator, parent: Operator, side: str) -> bool:
        inner = lookup_operator(child.symbol)
        outer = lookup_operator(parent.symbol)
        if inner.precedence != outer.precedence:
            return inner.precedence > outer.precedence
        wanted = Associativity.LEFT if side == "left" else Associativity.RIGHT
        return inner.associativity == wanted and outer.associativity == wanted

    def _chain(self, node: Operator) -> Tuple[str, List[Tuple[str, str]]]:
        """Flatten a run of same-precedence operators into (first, [(op, operand)])."""
        precedence = lookup_operator(node.symbol).precedence

        def joins(child: Expression, side: str) -> bool:
            return (isinstance(child, Operator) and self._binds_without_parens(child, node, side)
                    and lookup_operator(child.symbol).precedence == precedence)

        if joins(node.left, "left"):
            first, rest = self._chain(node.left)
        else:
            first, rest = self._operand(node.left, node, "left"), []
        if joins(node.right, "right"):
            right_first, right_rest = self._chain(node.right)
            rest = rest + [(node.symbol, right_first)] + right_rest
        else:
            rest = rest + [(node.symbol, self._operand(node.right, node, "right"))]
        return first, rest

    def visit_operator(self, node: Operator) -> str:
        first, rest = self._chain(node)
        one_line = " ".join([first] + [f"{op} {operand}" for op, operand in rest])
        if fits(one_line):
            return one_line
        lines = [first]
        for op, operand in rest:
            head, _, tail = operand.partition("\n")
            lines.append(indent(f"{op} {head}"))
            if tail:
                lines.append(indent(tail))
        return "\n".join(lines)

    # Patterns

    def visit_constructor_pattern(self, node: ConstructorPattern) -> str:
        head = qualify(node.module, node.tag, self.aliases)
        args = []
        for arg in node.args:
            text = arg.accept(self)
            if (isinstance(arg, ConstructorPattern) and arg.args) or _is_negative(arg):
                text = f"({text})"
            args.append(text)
        return " ".join([head] + args)

    def visit_var_pattern(self, node: VarPattern) -> str:
        return node.name

    def visit_wildcard_pattern(self, node: WildcardPattern) -> str:
        return "_"

    def visit_literal_pattern(self, node: LiteralPattern) -> str:
        return render_literal_value(node.value)


# ----------------------------------------------------------------------
# Declarations
# ----------------------------------------------------------------------

def render_doc(doc: str) -> str:
    return f"{{-| {doc}\n-}}"


def render_signature(name: str, signature: Type, aliases: Optional[Dict[ModulePath, str]] = None) -> str:
    printer = TypePrinter(aliases)
    one_line = f"{name} : {printer.print(signature)}"
    if fits(one_line):
        return one_line
    segments = printer.segments(signature)
    lines = [f"{name} :", indent(segments[0])]
    lines.extend(indent(f"-> {s}") for s in segments[1:])
    return "\n".join(lines)


def signature_type(decl: ValueDeclaration, details: Optional[InferenceDetails]) -> Optional[Type]:
    """
    Explicit signature, else the inferred type when inference succeeded and
    every reference had a type.
    """
    if decl.signature is not None:
        return decl.signature
    if details is not None:
        return details.annotation
    return None


def render_value_declaration(decl: ValueDeclaration, details: Optional[InferenceDetails] = None,
                             aliases: Optional[Dict[ModulePath, str]] = None,
                             reserved: Iterable[str] = ()) -> str:
    """``reserved`` holds the other top-level names of the module."""
    renderer = ElmRenderer(aliases, reserved=[decl.name, *reserved])
    renderer.reserve(decl.expression)
    parts = []
    if decl.doc:
        parts.append(render_doc(decl.doc))
    sig = signature_type(decl, details)
    if sig is not None:
        parts.append(render_signature(decl.name, sig, aliases))
    parts.append(renderer.binding(LetBinding(decl.name, decl.expression)))
    return "\n".join(parts)


def render_custom_type(decl: CustomTypeDeclaration, aliases: Optional[Dict[ModulePath, str]] = None) -> str:
    printer = TypePrinter(aliases, names={})
    head = " ".join(["type", decl.name] + list(decl.params))
    lines = [render_doc(decl.doc)] if decl.doc else []
    lines.append(head)
    for i, variant in enumerate(decl.variants):
        prefix = "=" if i == 0 else "|"
        args = [printer.argument(a) for a in variant.args]
        lines.append(indent(" ".join([prefix, variant.tag] + args)))
    return "\n".join(lines)


def render_alias(decl: AliasDeclaration, aliases: Optional[Dict[ModulePath, str]] = None) -> str:
    printer = TypePrinter(aliases, names={})
    head = " ".join(["type", "alias", decl.name] + list(decl.params)) + " ="
    aliased = printer.print(decl.aliased)
    if not fits(aliased) and isinstance(decl.aliased, RecordType) and decl.aliased.fields:
        fields = [_field(name, printer.print(t), ":") for name, t in decl.aliased.fields]
        if decl.aliased.row is not None:
            aliased = extension_layout(printer.print(decl.aliased.row), fields)
        else:
            aliased = leading_comma("{", fields, "}")
    lines = [render_doc(decl.doc)] if decl.doc else []
    lines.append(head)
    lines.append(indent(aliased))
    return "\n".join(lines)


def render_declaration(decl: Declaration, details: Optional[InferenceDetails] = None,
                       aliases: Optional[Dict[ModulePath, str]] = None, reserved: Iterable[str] = ()) -> str:
    if isinstance(decl, ValueDeclaration):
        return render_value_declaration(decl, details, aliases, reserved)
    if isinstance(decl, CustomTypeDeclaration):
        return render_custom_type(decl, aliases)
    return render_alias(decl, aliases)


def exposing_entry(decl: Declaration) -> str:
    if isinstance(decl, CustomTypeDeclaration) and decl.expose_constructors:
        return f"{decl.name}(..)"
    return decl.name


def render_file_text(module_name: str, exposing: Sequence[str], imports: Sequence[ImportStatement],
                     declarations: Sequence[str]) -> str:
    """
    Assemble a module: header, one import block, declarations separated by
    blank lines, trailing newline.
    """
    header = f"module {module_name} exposing ({', '.join(exposing) if exposing else '..'})"
    gap = "\n" * (BLANK_LINES_BETWEEN_DECLARATIONS + 1)
    parts = [header]
    if imports:
        parts.append("\n\n" + "\n".join(i.render() for i in imports))
    body = gap.join(declarations)
    if body:
        parts.append("\n" * (BLANK_LINES_AFTER_IMPORTS + 1) + body)
    return "".join(parts) + "\n"


# ----------------------------------------------------------------------
# Public API
# ----------------------------------------------------------------------

@dataclass(frozen=True)
class RenderedExpression:
    """Rendered body, its type signature and the imports it needs."""
    body: str
    signature: str
    imports: Tuple[ImportStatement, ...] = field(default=())


def render(node: Expression, details: Optional[InferenceDetails] = None,
           aliases: Optional[Dict[ModulePath, str]] = None, facts: Optional[Mapping[str, Type]] = None,
           constructors: Optional[ConstructorRegistry] = None) -> RenderedExpression:
    """
    Render an expression with its signature and needed imports. Inference is
    run when ``details`` is not given. A failed inference, or a reference
    with no known type, gives the placeholder signature.
    """
    if details is None:
        _, details = infer(0, node, facts, constructors)
    body = ElmRenderer(aliases).render(node)
    signature_t = details.annotation
    signature = TypePrinter(aliases).print(signature_t)
    imports = collect_imports(node, aliases, extra_types=[signature_t])
    logger.debug(f"rendered {type(node).__name__}: {len(body)} chars, signature {signature}")
    return RenderedExpression(body, signature, tuple(imports))
