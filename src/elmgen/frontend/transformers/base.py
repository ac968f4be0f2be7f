"""
Elm Tree Transformer
Converts the lark parse tree into elmgen expression trees and modules
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple, Union

from lark import Transformer, v_args
from lark.lexer import Token
from typing_extensions import TypeAlias

from ...shared.nodes import (
    Expression, Literal, ListLit, TupleLit, UnitLit, RecordLit, RecordUpdate, Lambda, Apply, ValueRef,
    LetIn, LetBinding, CaseOf, Branch, IfThenElse, FieldAccess, Pattern, ConstructorPattern, VarPattern,
    WildcardPattern, LiteralPattern, ValueDeclaration, Variant, CustomTypeDeclaration, AliasDeclaration,
    ImportStatement, Module, Declaration,
)
from ...shared.source_location import SourceLocation
from ...shared.types import Type, FunctionType, RecordType, TupleType, TypeVar, UNIT
from ...utils.config import BOOLEAN_TRUE_LITERAL, BOOLEAN_FALSE_LITERAL
from .expressions import OperatorChainParser
from .literals import LiteralParser
from .names import NameResolver, ModulePath

LarkMeta: TypeAlias = Any
Field: TypeAlias = Tuple[str, Expression]

logger: logging.Logger = logging.getLogger("elmgen.frontend.transformers")

EXPOSE_ALL = ".."


@dataclass
class DocComment:
    text: str


@dataclass
class Signature:
    name: str
    type: Type


@dataclass
class Header:
    name: ModulePath
    exposing: List[str]


@v_args(inline=True, meta=True)
class ElmTransformer(Transformer):
    """
    Parse tree to expression tree.

    ``aliases`` (module path -> alias) come from the file's import lines and
    are collected before transforming, so qualified names can be expanded.
    """

    def __init__(self, source_file: str = "", aliases: Optional[Dict[ModulePath, str]] = None) -> None:
        super().__init__()
        self.current_file = source_file
        self.aliases: Dict[ModulePath, str] = dict(aliases or {})
        self.names = NameResolver(self.aliases)

    def _location(self, meta: LarkMeta) -> Optional[SourceLocation]:
        if meta is None or getattr(meta, "empty", True):
            return None
        return SourceLocation(self.current_file, meta.line, meta.column, meta.end_line, meta.end_column)

    # =========================================================================
    # MODULE STRUCTURE
    # =========================================================================

    def module(self, meta: LarkMeta, header: Header, *items) -> Module:
        imports: List[ImportStatement] = []
        declarations: List[Declaration] = []
        signatures: Dict[str, Type] = {}
        doc: Optional[str] = None

        for item in items:
            if isinstance(item, ImportStatement):
                imports.append(item)
            elif isinstance(item, DocComment):
                doc = item.text
            elif isinstance(item, Signature):
                signatures[item.name] = item.type
            else:
                if isinstance(item, ValueDeclaration):
                    item = item.replace(signature=signatures.pop(item.name, None))
                declarations.append(item.replace(doc=doc))
                doc = None

        expose_all = EXPOSE_ALL in header.exposing
        if not expose_all:
            exposed = set(header.exposing)
            declarations = [self._apply_exposing(d, exposed) for d in declarations]
        logger.debug(f"module {'.'.join(header.name)}: {len(declarations)} declaration(s), {len(imports)} import(s)")
        return Module(header.name, declarations, aliases=self.aliases, imports=imports,
                      expose_all=expose_all, location=self._location(meta))

    @staticmethod
    def _apply_exposing(decl: Declaration, exposed: set) -> Declaration:
        if isinstance(decl, CustomTypeDeclaration):
            with_constructors = f"{decl.name}(..)" in exposed
            return decl.replace(exposed=with_constructors or decl.name in exposed,
                                expose_constructors=with_constructors)
        return decl.replace(exposed=decl.name in exposed)

    def header(self, meta: LarkMeta, name: Token, exposing: List[str]) -> Header:
        return Header(tuple(str(name).split(".")), exposing)

    def expose_all(self, meta: LarkMeta) -> List[str]:
        return [EXPOSE_ALL]

    def exposing_list(self, meta: LarkMeta, *items: str) -> List[str]:
        return list(items)

    def expose_value(self, meta: LarkMeta, name: Token) -> str:
        return str(name)

    def expose_type(self, meta: LarkMeta, name: Token) -> str:
        return str(name)

    def expose_type_all(self, meta: LarkMeta, name: Token) -> str:
        return f"{name}(..)"

    def import_stmt(self, meta: LarkMeta, module: Token, *rest: Union[Token, List[str]]) -> ImportStatement:
        alias = None
        exposing: List[str] = []
        for part in rest:
            if isinstance(part, Token):
                alias = str(part)
            else:
                exposing = part
        return ImportStatement(tuple(str(module).split(".")), alias, exposing)

    def doc_comment(self, meta: LarkMeta, token: Token) -> DocComment:
        return DocComment(str(token)[3:-2].strip())

    def signature(self, meta: LarkMeta, name: Token, type_: Type) -> Signature:
        return Signature(str(name), type_)

    def value_def(self, meta: LarkMeta, name: Token, *rest) -> ValueDeclaration:
        params, body = rest[:-1], rest[-1]
        if params:
            body = Lambda([str(p) for p in params], body, location=self._location(meta))
        return ValueDeclaration(str(name), body, location=self._location(meta))

    def custom_type(self, meta: LarkMeta, name: Token, *rest) -> CustomTypeDeclaration:
        params = [str(p) for p in rest if isinstance(p, Token)]
        variants = [v for v in rest if isinstance(v, Variant)]
        return CustomTypeDeclaration(str(name), params, variants, location=self._location(meta))

    def variant(self, meta: LarkMeta, tag: Token, *args: Type) -> Variant:
        return Variant(str(tag), args)

    def type_alias(self, meta: LarkMeta, name: Token, *rest) -> AliasDeclaration:
        params, aliased = rest[:-1], rest[-1]
        return AliasDeclaration(str(name), [str(p) for p in params], aliased, location=self._location(meta))

    # =========================================================================
    # TYPES
    # =========================================================================

    def function_type(self, meta: LarkMeta, param: Type, result: Type) -> Type:
        # `a -> b -> c` is kept as one function of two parameters
        if isinstance(result, FunctionType):
            return FunctionType((param,) + result.param_types, result.return_type)
        return FunctionType((param,), result)

    def type_apply(self, meta: LarkMeta, name: Token, *args: Type) -> Type:
        return self.names.type_named(str(name), args)

    def type_name(self, meta: LarkMeta, name: Token) -> Type:
        return self.names.type_named(str(name))

    def type_variable(self, meta: LarkMeta, name: Token) -> Type:
        return TypeVar(str(name))

    def unit_type(self, meta: LarkMeta) -> Type:
        return UNIT

    def tuple_type(self, meta: LarkMeta, *elements: Type) -> Type:
        return TupleType(elements)

    def record_type(self, meta: LarkMeta, *fields: Tuple[str, Type]) -> Type:
        return RecordType(fields)

    def extensible_record_type(self, meta: LarkMeta, row: Token, *fields: Tuple[str, Type]) -> Type:
        return RecordType(fields, TypeVar(str(row)))

    def field_type(self, meta: LarkMeta, name: Token, type_: Type) -> Tuple[str, Type]:
        return str(name), type_

    # =========================================================================
    # EXPRESSIONS
    # =========================================================================

    def expression(self, meta: LarkMeta, expr: Expression) -> Expression:
        return expr

    def op_chain(self, meta: LarkMeta, *items) -> Expression:
        operands = list(items[0::2])
        symbols = [str(s) for s in items[1::2]]
        return OperatorChainParser.build(operands, symbols, self._location(meta))

    def application(self, meta: LarkMeta, fn: Expression, *args: Expression) -> Expression:
        return Apply(fn, args, location=self._location(meta))

    def field_access(self, meta: LarkMeta, record: Expression, accessor: Token) -> Expression:
        return FieldAccess(record, str(accessor)[1:], location=self._location(meta))

    def number(self, meta: LarkMeta, token: Token) -> Expression:
        return Literal(LiteralParser.number(str(token)), location=self._location(meta))

    def string(self, meta: LarkMeta, token: Token) -> Expression:
        return Literal(LiteralParser.string(str(token)), location=self._location(meta))

    def char(self, meta: LarkMeta, token: Token) -> Expression:
        return Literal(LiteralParser.char(str(token)), location=self._location(meta))

    def var(self, meta: LarkMeta, token: Token) -> Expression:
        module, name = self.names.split(str(token))
        return ValueRef(module, name, location=self._location(meta))

    def constructor(self, meta: LarkMeta, token: Token) -> Expression:
        text = str(token)
        if text == BOOLEAN_TRUE_LITERAL:
            return Literal(True, location=self._location(meta))
        if text == BOOLEAN_FALSE_LITERAL:
            return Literal(False, location=self._location(meta))
        module, name = self.names.split(text)
        return ValueRef(module, name, location=self._location(meta))

    def unit(self, meta: LarkMeta) -> Expression:
        return UnitLit(location=self._location(meta))

    def tuple_literal(self, meta: LarkMeta, *elements: Expression) -> Expression:
        return TupleLit(elements, location=self._location(meta))

    def list_literal(self, meta: LarkMeta, *elements: Expression) -> Expression:
        return ListLit(elements, location=self._location(meta))

    def record_literal(self, meta: LarkMeta, *fields: Field) -> Expression:
        return RecordLit(fields, location=self._location(meta))

    def record_update(self, meta: LarkMeta, base: Token, *fields: Field) -> Expression:
        return RecordUpdate(ValueRef((), str(base)), fields, location=self._location(meta))

    def field(self, meta: LarkMeta, name: Token, value: Expression) -> Field:
        return str(name), value

    def lambda_expr(self, meta: LarkMeta, *items) -> Expression:
        params, body = items[:-1], items[-1]
        return Lambda([str(p) for p in params], body, location=self._location(meta))

    def let_binding(self, meta: LarkMeta, name: Token, *rest) -> LetBinding:
        params, value = rest[:-1], rest[-1]
        if params:
            value = Lambda([str(p) for p in params], value, location=self._location(meta))
        return LetBinding(str(name), value, self._location(meta))

    def let_in(self, meta: LarkMeta, *items) -> Expression:
        bindings, body = items[:-1], items[-1]
        return LetIn(bindings, body, location=self._location(meta))

    def case_of(self, meta: LarkMeta, subject: Expression, *branches: Branch) -> Expression:
        return CaseOf(subject, branches, location=self._location(meta))

    def branch(self, meta: LarkMeta, pattern: Pattern, body: Expression) -> Branch:
        return Branch(pattern, body)

    def if_then_else(self, meta: LarkMeta, condition: Expression, then_branch: Expression,
                     else_branch: Expression) -> Expression:
        return IfThenElse(condition, then_branch, else_branch, location=self._location(meta))

    # =========================================================================
    # PATTERNS
    # =========================================================================

    def ctor_pattern(self, meta: LarkMeta, tag: Token, *args: Pattern) -> Pattern:
        module, name = self.names.split(str(tag))
        return ConstructorPattern(name, args, module, location=self._location(meta))

    def var_pattern(self, meta: LarkMeta, name: Token) -> Pattern:
        return VarPattern(str(name), location=self._location(meta))

    def wildcard_pattern(self, meta: LarkMeta, token: Token) -> Pattern:
        return WildcardPattern(location=self._location(meta))

    def number_pattern(self, meta: LarkMeta, token: Token) -> Pattern:
        return LiteralPattern(LiteralParser.number(str(token)), location=self._location(meta))

    def string_pattern(self, meta: LarkMeta, token: Token) -> Pattern:
        return LiteralPattern(LiteralParser.string(str(token)), location=self._location(meta))

    def char_pattern(self, meta: LarkMeta, token: Token) -> Pattern:
        return LiteralPattern(LiteralParser.char(str(token)), location=self._location(meta))
