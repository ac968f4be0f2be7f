"""
Construction API

Short helpers for assembling expression trees and declarations by hand::

    from elmgen import build as elm

    greet = elm.declaration(
        "greet",
        elm.fn(["name"], elm.op("++", elm.string("Hello, "), elm.value("name"))),
    )

Qualified references take a dotted path: ``elm.value("Json.Decode.string")``.
Every helper validates eagerly and raises ConstructionError.
"""

from typing import Iterable, Optional, Sequence, Tuple, Union

from .shared.errors import ConstructionError
from .shared.nodes import (
    Expression, Char, Literal, ListLit, TupleLit, UnitLit, RecordLit, RecordUpdate, Param, Lambda, Apply,
    ValueRef, LetIn, LetBinding, CaseOf, Branch, Operator, IfThenElse, FieldAccess, Pattern,
    ConstructorPattern, VarPattern, WildcardPattern, LiteralPattern, ValueDeclaration, Variant,
    CustomTypeDeclaration, AliasDeclaration, Declaration, Module,
)
from .shared.types import Type

FieldSpec = Tuple[str, Expression]


def _split(path: str) -> Tuple[Tuple[str, ...], str]:
    parts = path.split(".")
    if not all(parts):
        raise ConstructionError(f"malformed qualified name '{path}'")
    return tuple(parts[:-1]), parts[-1]


# Literals

def string(value: str) -> Literal:
    return Literal(value)


def int_(value: int) -> Literal:
    if isinstance(value, bool):
        raise ConstructionError("use bool_() for boolean literals")
    return Literal(int(value))


def float_(value: float) -> Literal:
    return Literal(float(value))


def bool_(value: bool) -> Literal:
    return Literal(bool(value))


def char(value: str) -> Literal:
    return Literal(Char(value))


def unit() -> UnitLit:
    return UnitLit()


# Containers

def list_(elements: Iterable[Expression]) -> ListLit:
    return ListLit(elements)


def tuple_(*elements: Expression) -> TupleLit:
    return TupleLit(elements)


def record(fields: Iterable[FieldSpec]) -> RecordLit:
    return RecordLit(fields)


def update(base: Union[Expression, str], fields: Iterable[FieldSpec]) -> RecordUpdate:
    """``{ base | field = value }``; a string base is a local variable."""
    if isinstance(base, str):
        base = value(base)
    return RecordUpdate(base, fields)


def get(field: str, record_: Expression) -> FieldAccess:
    return FieldAccess(record_, field)


# References and functions

def value(path: str, annotation: Optional[Type] = None) -> ValueRef:
    module, name = _split(path)
    return ValueRef(module, name, annotation)


def fn(params: Sequence[Union[str, Param, Tuple[str, Optional[Type]]]], body: Expression) -> Lambda:
    converted = []
    for p in params:
        if isinstance(p, tuple):
            p = Param(p[0], p[1])
        converted.append(p)
    return Lambda(converted, body)


def apply(callee: Union[Expression, str], *args: Expression) -> Apply:
    if isinstance(callee, str):
        callee = value(callee)
    return Apply(callee, args)


def op(symbol: str, left: Expression, right: Expression) -> Operator:
    return Operator(symbol, left, right)


def pipe(first: Expression, *functions: Expression) -> Expression:
    """``first |> f |> g``"""
    result = first
    for f in functions:
        result = Operator("|>", result, f)
    return result


# Blocks

def let(bindings: Iterable[Tuple[str, Expression]], body: Expression) -> LetIn:
    return LetIn([LetBinding(name, v) for name, v in bindings], body)


def if_(condition: Expression, then_branch: Expression, else_branch: Expression) -> IfThenElse:
    return IfThenElse(condition, then_branch, else_branch)


def case(subject: Expression, branches: Iterable[Tuple[Pattern, Expression]],
         subject_type: Optional[Type] = None) -> CaseOf:
    return CaseOf(subject, [Branch(p, body) for p, body in branches], subject_type)


# Patterns

def ctor(path: str, *args: Pattern) -> ConstructorPattern:
    module, tag = _split(path)
    return ConstructorPattern(tag, args, module)


def var(name: str, type_: Optional[Type] = None) -> VarPattern:
    return VarPattern(name, type_)


def wildcard() -> WildcardPattern:
    return WildcardPattern()


def literal(value_: Union[str, int, Char]) -> LiteralPattern:
    return LiteralPattern(value_)


# Declarations

def declaration(name: str, expression: Expression, signature: Optional[Type] = None,
                doc: Optional[str] = None, exposed: bool = True) -> ValueDeclaration:
    return ValueDeclaration(name, expression, signature, doc, exposed)


def custom_type(name: str, variants: Iterable[Union[str, Tuple[str, Sequence[Type]]]],
                params: Iterable[str] = (), doc: Optional[str] = None, exposed: bool = True,
                expose_constructors: bool = True) -> CustomTypeDeclaration:
    converted = [Variant(v) if isinstance(v, str) else Variant(v[0], v[1]) for v in variants]
    return CustomTypeDeclaration(name, params, converted, doc, exposed, expose_constructors)


def alias(name: str, aliased: Type, params: Iterable[str] = (), doc: Optional[str] = None,
          exposed: bool = True) -> AliasDeclaration:
    return AliasDeclaration(name, params, aliased, doc, exposed)


def module(name: str, declarations: Iterable[Declaration], aliases=None) -> Module:
    return Module(tuple(name.split(".")), declarations, aliases)
