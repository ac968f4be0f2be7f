"""
Elm Expression Tree

Immutable nodes built by the construction API (``elmgen.build``) or by the
parser, consumed by inference, the import tracker and the renderer.

Visitor Pattern Support:
- Every node has an accept() method for polymorphic dispatch
- Nodes compare and hash by identity; inference keys its side tables on them

Construction invariants are checked eagerly and raise ConstructionError.
"""

from __future__ import annotations

import math
from enum import Enum
from typing import Tuple, Optional, Union, Iterable, Dict, TYPE_CHECKING, TypeVar

from .errors import ConstructionError
from .operators import is_known_operator
from .source_location import SourceLocation
from .types import Type

if TYPE_CHECKING:
    from .ast_visitor import ASTVisitor

T = TypeVar('T')

ModulePath = Tuple[str, ...]


class NodeType(Enum):
    """Node kinds"""
    LITERAL = "literal"
    LIST = "list"
    TUPLE = "tuple"
    UNIT = "unit"
    RECORD = "record"
    RECORD_UPDATE = "record_update"
    LAMBDA = "lambda"
    APPLY = "apply"
    VALUE_REF = "value_ref"
    LET_IN = "let_in"
    CASE_OF = "case_of"
    OPERATOR = "operator"
    IF_THEN_ELSE = "if_then_else"
    FIELD_ACCESS = "field_access"
    CONSTRUCTOR_PATTERN = "constructor_pattern"
    VAR_PATTERN = "var_pattern"
    WILDCARD_PATTERN = "wildcard_pattern"
    LITERAL_PATTERN = "literal_pattern"
    VALUE_DECLARATION = "value_declaration"
    CUSTOM_TYPE_DECLARATION = "custom_type_declaration"
    ALIAS_DECLARATION = "alias_declaration"
    MODULE = "module"


class Char:
    """A single Elm ``Char`` value (Python has no distinct char type)."""
    __slots__ = ('value',)

    def __init__(self, value: str):
        if not isinstance(value, str) or len(value) != 1:
            raise ConstructionError(f"Char literal must be exactly one character, got {value!r}")
        object.__setattr__(self, 'value', value)

    def __setattr__(self, name, value):
        raise AttributeError("Char is immutable")

    def __eq__(self, other):
        return isinstance(other, Char) and other.value == self.value

    def __hash__(self):
        return hash(('Char', self.value))

    def __repr__(self) -> str:
        return f"Char({self.value!r})"


LiteralValue = Union[str, int, float, bool, Char]


def _check_literal_value(value) -> None:
    if isinstance(value, (bool, int, str, Char)):
        return
    if isinstance(value, float):
        if not math.isfinite(value):
            raise ConstructionError(f"Elm has no literal for non-finite float {value!r}")
        return
    raise ConstructionError(f"unsupported literal value {value!r} ({type(value).__name__})")


def _check_unique(names: Iterable[str], what: str) -> None:
    seen = set()
    for name in names:
        if name in seen:
            raise ConstructionError(f"duplicate {what} '{name}'")
        seen.add(name)


class ASTNode:
    """
    Base class for all nodes.

    Nodes are immutable once constructed: attributes are written through
    object.__setattr__ in __init__ and plain assignment raises.
    """
    __slots__ = ('node_type', 'location')

    def __init__(self, node_type: NodeType, location: Optional[SourceLocation] = None):
        object.__setattr__(self, 'node_type', node_type)
        object.__setattr__(self, 'location', location)

    def __setattr__(self, name, value):
        raise AttributeError(f"{self.__class__.__name__} is immutable")

    def _set(self, **fields) -> None:
        for name, value in fields.items():
            object.__setattr__(self, name, value)

    def replace(self, **changes):
        """Shallow copy with some attributes replaced (no re-validation)."""
        clone = object.__new__(type(self))
        for cls in type(self).__mro__:
            for slot in getattr(cls, "__slots__", ()):
                if hasattr(self, slot):
                    object.__setattr__(clone, slot, getattr(self, slot))
        clone._set(**changes)
        return clone

    def accept(self, visitor: 'ASTVisitor[T]') -> 'T':
        raise NotImplementedError(f"accept() not implemented for {self.__class__.__name__}")


class Expression(ASTNode):
    """
    Base class for expressions.

    ``annotation`` is the caller-known type of the node (None means infer
    it). ``location`` is only set for parsed trees.
    """
    __slots__ = ('annotation',)

    def __init__(self, node_type: NodeType, annotation: Optional[Type] = None,
                 location: Optional[SourceLocation] = None):
        super().__init__(node_type, location)
        object.__setattr__(self, 'annotation', annotation)

    def with_annotation(self, annotation: Optional[Type]) -> 'Expression':
        return self.replace(annotation=annotation)


# ---------------------------------------------------------------------------
# Expressions
# ---------------------------------------------------------------------------

class Literal(Expression):
    """String, Int, Float, Bool or Char literal"""
    __slots__ = ('value',)

    def __init__(self, value: LiteralValue, annotation: Optional[Type] = None,
                 location: Optional[SourceLocation] = None):
        super().__init__(NodeType.LITERAL, annotation, location)
        _check_literal_value(value)
        self._set(value=value)

    def accept(self, visitor: 'ASTVisitor[T]') -> 'T':
        return visitor.visit_literal(self)

    def __repr__(self) -> str:
        return f"Literal({self.value!r})"


class ListLit(Expression):
    __slots__ = ('elements',)

    def __init__(self, elements: Iterable[Expression], annotation: Optional[Type] = None,
                 location: Optional[SourceLocation] = None):
        super().__init__(NodeType.LIST, annotation, location)
        self._set(elements=tuple(elements))

    def accept(self, visitor: 'ASTVisitor[T]') -> 'T':
        return visitor.visit_list(self)


class TupleLit(Expression):
    """Tuple of two or three elements (Elm has no larger tuples)."""
    __slots__ = ('elements',)

    def __init__(self, elements: Iterable[Expression], annotation: Optional[Type] = None,
                 location: Optional[SourceLocation] = None):
        super().__init__(NodeType.TUPLE, annotation, location)
        elements = tuple(elements)
        if not 2 <= len(elements) <= 3:
            raise ConstructionError(f"Elm tuples have 2 or 3 elements, got {len(elements)}")
        self._set(elements=elements)

    def accept(self, visitor: 'ASTVisitor[T]') -> 'T':
        return visitor.visit_tuple(self)


class UnitLit(Expression):
    __slots__ = ()

    def __init__(self, annotation: Optional[Type] = None, location: Optional[SourceLocation] = None):
        super().__init__(NodeType.UNIT, annotation, location)

    def accept(self, visitor: 'ASTVisitor[T]') -> 'T':
        return visitor.visit_unit(self)


class RecordLit(Expression):
    """Record literal; field order is kept for rendering."""
    __slots__ = ('fields',)

    def __init__(self, fields: Iterable[Tuple[str, Expression]], annotation: Optional[Type] = None,
                 location: Optional[SourceLocation] = None):
        super().__init__(NodeType.RECORD, annotation, location)
        fields = tuple((name, value) for name, value in fields)
        _check_unique((name for name, _ in fields), "record field")
        self._set(fields=fields)

    def accept(self, visitor: 'ASTVisitor[T]') -> 'T':
        return visitor.visit_record(self)


class RecordUpdate(Expression):
    """``{ base | field = value }``; ``fields`` lists only the overridden fields."""
    __slots__ = ('base', 'fields')

    def __init__(self, base: Expression, fields: Iterable[Tuple[str, Expression]],
                 annotation: Optional[Type] = None, location: Optional[SourceLocation] = None):
        super().__init__(NodeType.RECORD_UPDATE, annotation, location)
        fields = tuple((name, value) for name, value in fields)
        if not fields:
            raise ConstructionError("record update needs at least one field")
        _check_unique((name for name, _ in fields), "record update field")
        self._set(base=base, fields=fields)

    def accept(self, visitor: 'ASTVisitor[T]') -> 'T':
        return visitor.visit_record_update(self)


class Param:
    """Lambda parameter with an optional declared type."""
    __slots__ = ('name', 'type')

    def __init__(self, name: str, type: Optional[Type] = None):
        object.__setattr__(self, 'name', name)
        object.__setattr__(self, 'type', type)

    def __setattr__(self, name, value):
        raise AttributeError("Param is immutable")

    def __repr__(self) -> str:
        return f"Param({self.name!r})"


class Lambda(Expression):
    __slots__ = ('params', 'body')

    def __init__(self, params: Iterable[Union[Param, str]], body: Expression,
                 annotation: Optional[Type] = None, location: Optional[SourceLocation] = None):
        super().__init__(NodeType.LAMBDA, annotation, location)
        params = tuple(p if isinstance(p, Param) else Param(p) for p in params)
        if not params:
            raise ConstructionError("lambda needs at least one parameter")
        _check_unique((p.name for p in params if p.name != "_"), "lambda parameter")
        self._set(params=params, body=body)

    def accept(self, visitor: 'ASTVisitor[T]') -> 'T':
        return visitor.visit_lambda(self)


class Apply(Expression):
    """Function application; ``args`` keep construction order."""
    __slots__ = ('fn', 'args')

    def __init__(self, fn: Expression, args: Iterable[Expression], annotation: Optional[Type] = None,
                 location: Optional[SourceLocation] = None):
        super().__init__(NodeType.APPLY, annotation, location)
        args = tuple(args)
        if not args:
            raise ConstructionError("application needs at least one argument")
        self._set(fn=fn, args=args)

    def accept(self, visitor: 'ASTVisitor[T]') -> 'T':
        return visitor.visit_apply(self)


class ValueRef(Expression):
    """
    Reference to a value or constructor, optionally qualified by module.

    ``import_from`` is the module path (``("Json", "Decode")``), empty for
    an unqualified reference. ``annotation`` is the known type of the value;
    its generic variables are instantiated afresh at every use.
    """
    __slots__ = ('import_from', 'name')

    def __init__(self, import_from: Iterable[str], name: str, annotation: Optional[Type] = None,
                 location: Optional[SourceLocation] = None):
        super().__init__(NodeType.VALUE_REF, annotation, location)
        if not name:
            raise ConstructionError("value reference needs a name")
        self._set(import_from=tuple(import_from), name=name)

    @property
    def qualified_name(self) -> str:
        return ".".join(self.import_from + (self.name,))

    @property
    def is_constructor(self) -> bool:
        return self.name[:1].isupper()

    def accept(self, visitor: 'ASTVisitor[T]') -> 'T':
        return visitor.visit_value_ref(self)

    def __repr__(self) -> str:
        return f"ValueRef({self.qualified_name})"


class LetBinding:
    __slots__ = ('name', 'value', 'location')

    def __init__(self, name: str, value: Expression, location: Optional[SourceLocation] = None):
        object.__setattr__(self, 'name', name)
        object.__setattr__(self, 'value', value)
        object.__setattr__(self, 'location', location)

    def __setattr__(self, name, value):
        raise AttributeError("LetBinding is immutable")


class LetIn(Expression):
    __slots__ = ('bindings', 'body')

    def __init__(self, bindings: Iterable[LetBinding], body: Expression, annotation: Optional[Type] = None,
                 location: Optional[SourceLocation] = None):
        super().__init__(NodeType.LET_IN, annotation, location)
        bindings = tuple(bindings)
        if not bindings:
            raise ConstructionError("let needs at least one binding")
        _check_unique((b.name for b in bindings), "let binding")
        self._set(bindings=bindings, body=body)

    def accept(self, visitor: 'ASTVisitor[T]') -> 'T':
        return visitor.visit_let_in(self)


# ---------------------------------------------------------------------------
# Patterns
# ---------------------------------------------------------------------------

class Pattern(ASTNode):
    """Base class for case patterns"""
    __slots__ = ()

    def key(self) -> tuple:
        """Structural key; two patterns with equal keys match the same values."""
        raise NotImplementedError


_CATCH_ALL_KEY = ("catch-all",)


class ConstructorPattern(Pattern):
    """``Just x``, ``Maybe.Nothing``, ``Ok _``"""
    __slots__ = ('tag', 'args', 'module')

    def __init__(self, tag: str, args: Iterable[Pattern] = (), module: Iterable[str] = (),
                 location: Optional[SourceLocation] = None):
        super().__init__(NodeType.CONSTRUCTOR_PATTERN, location)
        self._set(tag=tag, args=tuple(args), module=tuple(module))

    def key(self) -> tuple:
        return ("ctor", self.tag, tuple(a.key() for a in self.args))

    def accept(self, visitor: 'ASTVisitor[T]') -> 'T':
        return visitor.visit_constructor_pattern(self)


class VarPattern(Pattern):
    __slots__ = ('name', 'type')

    def __init__(self, name: str, type: Optional[Type] = None, location: Optional[SourceLocation] = None):
        super().__init__(NodeType.VAR_PATTERN, location)
        self._set(name=name, type=type)

    def key(self) -> tuple:
        return _CATCH_ALL_KEY

    def accept(self, visitor: 'ASTVisitor[T]') -> 'T':
        return visitor.visit_var_pattern(self)


class WildcardPattern(Pattern):
    __slots__ = ()

    def __init__(self, location: Optional[SourceLocation] = None):
        super().__init__(NodeType.WILDCARD_PATTERN, location)

    def key(self) -> tuple:
        return _CATCH_ALL_KEY

    def accept(self, visitor: 'ASTVisitor[T]') -> 'T':
        return visitor.visit_wildcard_pattern(self)


class LiteralPattern(Pattern):
    """String, Int or Char pattern (Elm cannot match on Float)."""
    __slots__ = ('value',)

    def __init__(self, value: Union[str, int, Char], location: Optional[SourceLocation] = None):
        super().__init__(NodeType.LITERAL_PATTERN, location)
        if isinstance(value, bool) or not isinstance(value, (str, int, Char)):
            raise ConstructionError(f"cannot pattern match on literal {value!r}")
        self._set(value=value)

    def key(self) -> tuple:
        return ("literal", type(self.value).__name__, self.value)

    def accept(self, visitor: 'ASTVisitor[T]') -> 'T':
        return visitor.visit_literal_pattern(self)


class Branch:
    __slots__ = ('pattern', 'body')

    def __init__(self, pattern: Pattern, body: Expression):
        object.__setattr__(self, 'pattern', pattern)
        object.__setattr__(self, 'body', body)

    def __setattr__(self, name, value):
        raise AttributeError("Branch is immutable")


class CaseOf(Expression):
    """
    Pattern match. ``subject_type`` is the caller-known type of the
    subject; None lets inference derive it from the patterns.
    """
    __slots__ = ('subject', 'subject_type', 'branches')

    def __init__(self, subject: Expression, branches: Iterable[Branch], subject_type: Optional[Type] = None,
                 annotation: Optional[Type] = None, location: Optional[SourceLocation] = None):
        super().__init__(NodeType.CASE_OF, annotation, location)
        branches = tuple(branches)
        if not branches:
            raise ConstructionError("case expression needs at least one branch")
        seen = set()
        for branch in branches:
            k = branch.pattern.key()
            if k in seen:
                raise ConstructionError("duplicate case pattern")
            seen.add(k)
        self._set(subject=subject, subject_type=subject_type, branches=branches)

    def accept(self, visitor: 'ASTVisitor[T]') -> 'T':
        return visitor.visit_case_of(self)


class Operator(Expression):
    """Binary operator application, ``left symbol right``."""
    __slots__ = ('symbol', 'left', 'right')

    def __init__(self, symbol: str, left: Expression, right: Expression, annotation: Optional[Type] = None,
                 location: Optional[SourceLocation] = None):
        super().__init__(NodeType.OPERATOR, annotation, location)
        if not is_known_operator(symbol):
            raise ConstructionError(f"unknown operator '{symbol}'")
        self._set(symbol=symbol, left=left, right=right)

    def accept(self, visitor: 'ASTVisitor[T]') -> 'T':
        return visitor.visit_operator(self)


class IfThenElse(Expression):
    __slots__ = ('condition', 'then_branch', 'else_branch')

    def __init__(self, condition: Expression, then_branch: Expression, else_branch: Expression,
                 annotation: Optional[Type] = None, location: Optional[SourceLocation] = None):
        super().__init__(NodeType.IF_THEN_ELSE, annotation, location)
        self._set(condition=condition, then_branch=then_branch, else_branch=else_branch)

    def accept(self, visitor: 'ASTVisitor[T]') -> 'T':
        return visitor.visit_if_then_else(self)


class FieldAccess(Expression):
    """``record.field``"""
    __slots__ = ('record', 'field')

    def __init__(self, record: Expression, field: str, annotation: Optional[Type] = None,
                 location: Optional[SourceLocation] = None):
        super().__init__(NodeType.FIELD_ACCESS, annotation, location)
        self._set(record=record, field=field)

    def accept(self, visitor: 'ASTVisitor[T]') -> 'T':
        return visitor.visit_field_access(self)


# ---------------------------------------------------------------------------
# Declarations
# ---------------------------------------------------------------------------

class Declaration(ASTNode):
    __slots__ = ('name', 'doc', 'exposed')

    def __init__(self, node_type: NodeType, name: str, doc: Optional[str], exposed: bool,
                 location: Optional[SourceLocation] = None):
        super().__init__(node_type, location)
        self._set(name=name, doc=doc, exposed=exposed)


class ValueDeclaration(Declaration):
    """Top-level ``name : signature`` / ``name = expression``."""
    __slots__ = ('expression', 'signature')

    def __init__(self, name: str, expression: Expression, signature: Optional[Type] = None,
                 doc: Optional[str] = None, exposed: bool = True, location: Optional[SourceLocation] = None):
        super().__init__(NodeType.VALUE_DECLARATION, name, doc, exposed, location)
        if not name[:1].islower():
            raise ConstructionError(f"value names start with a lowercase letter: '{name}'")
        self._set(expression=expression, signature=signature)

    def accept(self, visitor: 'ASTVisitor[T]') -> 'T':
        return visitor.visit_value_declaration(self)


class Variant:
    __slots__ = ('tag', 'args')

    def __init__(self, tag: str, args: Iterable[Type] = ()):
        object.__setattr__(self, 'tag', tag)
        object.__setattr__(self, 'args', tuple(args))

    def __setattr__(self, name, value):
        raise AttributeError("Variant is immutable")


class CustomTypeDeclaration(Declaration):
    """``type Msg = Increment | SetName String``"""
    __slots__ = ('params', 'variants', 'expose_constructors')

    def __init__(self, name: str, params: Iterable[str], variants: Iterable[Variant], doc: Optional[str] = None,
                 exposed: bool = True, expose_constructors: bool = True,
                 location: Optional[SourceLocation] = None):
        super().__init__(NodeType.CUSTOM_TYPE_DECLARATION, name, doc, exposed, location)
        params = tuple(params)
        variants = tuple(variants)
        if not variants:
            raise ConstructionError(f"custom type '{name}' needs at least one variant")
        _check_unique(params, "type parameter")
        _check_unique((v.tag for v in variants), "variant")
        self._set(params=params, variants=variants, expose_constructors=expose_constructors)

    def accept(self, visitor: 'ASTVisitor[T]') -> 'T':
        return visitor.visit_custom_type_declaration(self)


class AliasDeclaration(Declaration):
    """``type alias Model = { ... }``"""
    __slots__ = ('params', 'aliased')

    def __init__(self, name: str, params: Iterable[str], aliased: Type, doc: Optional[str] = None,
                 exposed: bool = True, location: Optional[SourceLocation] = None):
        super().__init__(NodeType.ALIAS_DECLARATION, name, doc, exposed, location)
        params = tuple(params)
        _check_unique(params, "type parameter")
        self._set(params=params, aliased=aliased)

    def accept(self, visitor: 'ASTVisitor[T]') -> 'T':
        return visitor.visit_alias_declaration(self)


class ImportStatement:
    """``import Json.Decode as Decode exposing (Decoder)``"""
    __slots__ = ('module', 'alias', 'exposing')

    def __init__(self, module: Iterable[str], alias: Optional[str] = None, exposing: Iterable[str] = ()):
        object.__setattr__(self, 'module', tuple(module))
        object.__setattr__(self, 'alias', alias)
        object.__setattr__(self, 'exposing', tuple(exposing))

    def __setattr__(self, name, value):
        raise AttributeError("ImportStatement is immutable")

    @property
    def module_name(self) -> str:
        return ".".join(self.module)

    def render(self) -> str:
        text = f"import {self.module_name}"
        if self.alias:
            text += f" as {self.alias}"
        if self.exposing:
            text += f" exposing ({', '.join(self.exposing)})"
        return text

    def __eq__(self, other):
        return (isinstance(other, ImportStatement) and self.module == other.module
                and self.alias == other.alias and self.exposing == other.exposing)

    def __hash__(self):
        return hash((self.module, self.alias, self.exposing))

    def __repr__(self) -> str:
        return f"ImportStatement({self.render()!r})"


class Module(ASTNode):
    """
    A whole Elm file.

    ``aliases`` maps module paths to the short names used in the file
    (``("Json", "Decode") -> "Decode"``); ``imports`` are explicit imports
    kept verbatim (for parsed files).
    """
    __slots__ = ('name', 'declarations', 'aliases', 'imports', 'expose_all')

    def __init__(self, name: Iterable[str], declarations: Iterable[Declaration],
                 aliases: Optional[Dict[ModulePath, str]] = None, imports: Iterable[ImportStatement] = (),
                 expose_all: bool = False, location: Optional[SourceLocation] = None):
        super().__init__(NodeType.MODULE, location)
        declarations = tuple(declarations)
        _check_unique((d.name for d in declarations if isinstance(d, ValueDeclaration)), "declaration")
        self._set(name=tuple(name), declarations=declarations, aliases=dict(aliases or {}),
                  imports=tuple(imports), expose_all=expose_all)

    @property
    def module_name(self) -> str:
        return ".".join(self.name)

    def accept(self, visitor: 'ASTVisitor[T]') -> 'T':
        return visitor.visit_module(self)


def catch_all(pattern: Pattern) -> bool:
    return pattern.key() == _CATCH_ALL_KEY
