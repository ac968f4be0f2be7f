"""
Shared components: types, expression tree, diagnostics, prelude.
"""

from .source_location import SourceLocation
from .errors import (
    Error, ErrorReporter, ElmgenError, ConstructionError, ElmgenImplementationError,
    InferenceError, CannotUnify, UnboundRecordField, ArityMismatch, UnknownConstructor, UnificationError,
)
from .types import (
    Type, TypeKind, UnitType, PrimitiveType, NamedType, FunctionType, RecordType, TupleType, TypeVar,
    TypeVisitor, UNIT, STRING, INT, FLOAT, BOOL, CHAR, list_type, maybe_type, result_type,
)
from .nodes import (
    ASTNode, Expression, NodeType, Char, Literal, ListLit, TupleLit, UnitLit, RecordLit, RecordUpdate,
    Param, Lambda, Apply, ValueRef, LetIn, LetBinding, CaseOf, Branch, Operator, IfThenElse, FieldAccess,
    Pattern, ConstructorPattern, VarPattern, WildcardPattern, LiteralPattern,
    Declaration, ValueDeclaration, Variant, CustomTypeDeclaration, AliasDeclaration,
    ImportStatement, Module,
)
from .ast_visitor import ASTVisitor, ScopedASTVisitor
