"""
Type System

The universe of Elm types used by inference and rendering.

Convention: types are immutable values. Type variables are identified by
``identity``; an ``int`` identity is allocated by inference from the threaded
counter, a ``str`` identity is a generic written by the caller (``a``,
``comparable``) and is instantiated to fresh int variables before it takes
part in unification.
"""

from dataclasses import dataclass, field
from typing import Tuple, Optional, Generic, TypeVar as PyTypeVar, Union, List, Dict, Iterable
from abc import ABC, abstractmethod
from enum import Enum

from .errors import ConstructionError


class TypeKind(Enum):
    """Type kind tag used for visitor dispatch."""
    UNIT = "unit"
    PRIMITIVE = "primitive"  # String, Int, Float, Bool, Char
    NAMED = "named"  # List a, Maybe Int, Json.Decode.Value
    FUNCTION = "function"
    RECORD = "record"
    TUPLE = "tuple"
    VAR = "var"


T = PyTypeVar('T')

VarIdentity = Union[int, str]

# Constrained type variable families, longest prefix first
CONSTRAINT_PREFIXES: Tuple[str, ...] = ("compappend", "comparable", "appendable", "number")


def constraint_of_name(name: str) -> Optional[str]:
    """Elm constrains a type variable by its name prefix (``number2`` is a number)."""
    for prefix in CONSTRAINT_PREFIXES:
        if name.startswith(prefix):
            return prefix
    return None


@dataclass(frozen=True)
class Type:
    """
    Base of all types.

    Immutable (frozen dataclass) and hashable so types can be used as dict
    keys and shared freely between trees.
    """
    kind: TypeKind

    def accept(self, visitor: 'TypeVisitor[T]') -> T:
        """Dispatch to the visitor method for this kind."""
        _type_visitor_dispatch = {
            TypeKind.UNIT: lambda: visitor.visit_unit_type(self),  # type: ignore
            TypeKind.PRIMITIVE: lambda: visitor.visit_primitive_type(self),  # type: ignore
            TypeKind.NAMED: lambda: visitor.visit_named_type(self),  # type: ignore
            TypeKind.FUNCTION: lambda: visitor.visit_function_type(self),  # type: ignore
            TypeKind.RECORD: lambda: visitor.visit_record_type(self),  # type: ignore
            TypeKind.TUPLE: lambda: visitor.visit_tuple_type(self),  # type: ignore
            TypeKind.VAR: lambda: visitor.visit_type_var(self),  # type: ignore
        }
        return _type_visitor_dispatch[self.kind]()


@dataclass(frozen=True)
class UnitType(Type):
    """The unit type ``()``."""

    def __init__(self):
        super().__init__(kind=TypeKind.UNIT)

    def __str__(self) -> str:
        return "()"


@dataclass(frozen=True)
class PrimitiveType(Type):
    """Primitive type (String, Int, Float, Bool, Char)."""
    name: str

    def __init__(self, name: str):
        super().__init__(kind=TypeKind.PRIMITIVE)
        object.__setattr__(self, 'name', name)

    def __str__(self) -> str:
        return self.name

    def __repr__(self) -> str:
        return self.name

    def __eq__(self, other):
        if not isinstance(other, PrimitiveType):
            return False
        return self.name == other.name

    def __hash__(self):
        return hash(('PrimitiveType', self.name))


@dataclass(frozen=True)
class NamedType(Type):
    """
    Named (possibly applied) type: ``List a``, ``Json.Decode.Value``.

    ``module`` is the defining module path; ``()`` means a local type of the
    module being generated.
    """
    module: Tuple[str, ...]
    name: str
    args: Tuple[Type, ...]

    def __init__(self, module: Iterable[str], name: str, args: Iterable[Type] = ()):
        super().__init__(kind=TypeKind.NAMED)
        object.__setattr__(self, 'module', tuple(module))
        object.__setattr__(self, 'name', name)
        object.__setattr__(self, 'args', tuple(args))

    @property
    def qualified_name(self) -> str:
        return ".".join(self.module + (self.name,))

    def __str__(self) -> str:
        if not self.args:
            return self.qualified_name
        return f"({self.qualified_name} {' '.join(str(a) for a in self.args)})"


@dataclass(frozen=True)
class FunctionType(Type):
    """
    Function type ``a -> b -> c`` with all parameters kept together.

    Elm functions are curried; ``FunctionType((a, b), c)`` and
    ``FunctionType((a,), FunctionType((b,), c))`` denote the same function.
    """
    param_types: Tuple[Type, ...]
    return_type: Type

    def __init__(self, param_types: Iterable[Type], return_type: Type):
        super().__init__(kind=TypeKind.FUNCTION)
        object.__setattr__(self, 'param_types', tuple(param_types))
        object.__setattr__(self, 'return_type', return_type)
        if not self.param_types:
            raise ConstructionError("function type needs at least one parameter")

    def __str__(self) -> str:
        params = " -> ".join(str(t) for t in self.param_types)
        return f"({params} -> {self.return_type})"


@dataclass(frozen=True)
class RecordType(Type):
    """
    Record type with ordered fields.

    ``row`` makes the record extensible: ``{ r | name : String }`` is any
    record with at least a ``name`` field.
    """
    fields: Tuple[Tuple[str, Type], ...]
    row: Optional['TypeVar'] = None

    def __init__(self, fields: Iterable[Tuple[str, Type]], row: Optional['TypeVar'] = None):
        super().__init__(kind=TypeKind.RECORD)
        fields = tuple((name, t) for name, t in fields)
        seen = set()
        for name, _ in fields:
            if name in seen:
                raise ConstructionError(f"duplicate field '{name}' in record type")
            seen.add(name)
        object.__setattr__(self, 'fields', fields)
        object.__setattr__(self, 'row', row)

    @property
    def field_names(self) -> Tuple[str, ...]:
        return tuple(name for name, _ in self.fields)

    def field_map(self) -> Dict[str, Type]:
        return dict(self.fields)

    def __str__(self) -> str:
        body = ", ".join(f"{name} : {t}" for name, t in self.fields)
        if self.row is not None:
            return f"{{ {self.row} | {body} }}"
        return f"{{ {body} }}" if body else "{}"


@dataclass(frozen=True)
class TupleType(Type):
    """Tuple type"""
    element_types: Tuple[Type, ...]

    def __init__(self, element_types: Iterable[Type]):
        super().__init__(kind=TypeKind.TUPLE)
        object.__setattr__(self, 'element_types', tuple(element_types))

    def __str__(self) -> str:
        return "( " + ", ".join(str(t) for t in self.element_types) + " )"


@dataclass(frozen=True)
class TypeVar(Type):
    """
    Type variable.

    Equality and hashing use ``identity`` only; ``constraint`` and ``hint``
    travel with the variable for unification and for naming it when rendered.
    """
    identity: VarIdentity
    constraint: Optional[str] = field(default=None, compare=False)
    hint: Optional[str] = field(default=None, compare=False)

    def __init__(self, identity: VarIdentity, constraint: Optional[str] = None, hint: Optional[str] = None):
        super().__init__(kind=TypeKind.VAR)
        if isinstance(identity, str) and constraint is None:
            constraint = constraint_of_name(identity)
        object.__setattr__(self, 'identity', identity)
        object.__setattr__(self, 'constraint', constraint)
        object.__setattr__(self, 'hint', hint)

    @property
    def is_generic(self) -> bool:
        """True for a caller-written variable that must be instantiated."""
        return isinstance(self.identity, str)

    def __eq__(self, other):
        if not isinstance(other, TypeVar):
            return False
        return self.identity == other.identity

    def __hash__(self):
        return hash(('TypeVar', self.identity))

    def __str__(self) -> str:
        if isinstance(self.identity, str):
            return self.identity
        return f"'t{self.identity}"

    def __repr__(self) -> str:
        return f"TypeVar({self.identity!r})"


class TypeVisitor(ABC, Generic[T]):
    """Visitor over the type universe (one method per kind)."""

    @abstractmethod
    def visit_unit_type(self, t: UnitType) -> T:
        pass

    @abstractmethod
    def visit_primitive_type(self, t: PrimitiveType) -> T:
        pass

    @abstractmethod
    def visit_named_type(self, t: NamedType) -> T:
        pass

    @abstractmethod
    def visit_function_type(self, t: FunctionType) -> T:
        pass

    @abstractmethod
    def visit_record_type(self, t: RecordType) -> T:
        pass

    @abstractmethod
    def visit_tuple_type(self, t: TupleType) -> T:
        pass

    @abstractmethod
    def visit_type_var(self, t: TypeVar) -> T:
        pass


class TypeTransformer(TypeVisitor[Type]):
    """
    Rebuilds a type bottom-up. Subclasses override ``visit_type_var`` (and
    anything else they need); the structural cases are handled here.
    """

    def visit_unit_type(self, t: UnitType) -> Type:
        return t

    def visit_primitive_type(self, t: PrimitiveType) -> Type:
        return t

    def visit_named_type(self, t: NamedType) -> Type:
        return NamedType(t.module, t.name, tuple(a.accept(self) for a in t.args))

    def visit_function_type(self, t: FunctionType) -> Type:
        return FunctionType(tuple(p.accept(self) for p in t.param_types), t.return_type.accept(self))

    def visit_record_type(self, t: RecordType) -> Type:
        fields = tuple((name, ft.accept(self)) for name, ft in t.fields)
        if t.row is None:
            return RecordType(fields)
        row = t.row.accept(self)
        if isinstance(row, TypeVar):
            return RecordType(fields, row)
        if isinstance(row, RecordType):
            # Row resolved to a record: flatten into one record
            return RecordType(row.fields + fields, row.row)
        return RecordType(fields, t.row)

    def visit_tuple_type(self, t: TupleType) -> Type:
        return TupleType(tuple(e.accept(self) for e in t.element_types))

    def visit_type_var(self, t: TypeVar) -> Type:
        return t


class _Substitution(TypeTransformer):
    def __init__(self, mapping: Dict[VarIdentity, Type]):
        self.mapping = mapping

    def visit_type_var(self, t: TypeVar) -> Type:
        return self.mapping.get(t.identity, t)


def substitute(t: Type, mapping: Dict[VarIdentity, Type]) -> Type:
    """Replace type variables by identity."""
    if not mapping:
        return t
    return t.accept(_Substitution(mapping))


def type_vars(t: Type) -> List[TypeVar]:
    """Type variables of ``t`` in left-to-right order of first appearance."""
    found: List[TypeVar] = []
    seen = set()

    def walk(node: Type) -> None:
        if isinstance(node, TypeVar):
            if node.identity not in seen:
                seen.add(node.identity)
                found.append(node)
        elif isinstance(node, NamedType):
            for a in node.args:
                walk(a)
        elif isinstance(node, FunctionType):
            for p in node.param_types:
                walk(p)
            walk(node.return_type)
        elif isinstance(node, RecordType):
            if node.row is not None:
                walk(node.row)
            for _, ft in node.fields:
                walk(ft)
        elif isinstance(node, TupleType):
            for e in node.element_types:
                walk(e)

    walk(t)
    return found


def uncurry(t: FunctionType) -> FunctionType:
    """Flatten ``a -> (b -> c)`` into ``a -> b -> c``."""
    params = list(t.param_types)
    ret = t.return_type
    while isinstance(ret, FunctionType):
        params.extend(ret.param_types)
        ret = ret.return_type
    return FunctionType(params, ret)


# Core modules
BASICS = ("Basics",)
LIST_MODULE = ("List",)
MAYBE_MODULE = ("Maybe",)
RESULT_MODULE = ("Result",)

# Primitive type constants
UNIT = UnitType()
STRING = PrimitiveType("String")
INT = PrimitiveType("Int")
FLOAT = PrimitiveType("Float")
BOOL = PrimitiveType("Bool")
CHAR = PrimitiveType("Char")

PRIMITIVE_NAMES = frozenset({"String", "Int", "Float", "Bool", "Char"})


def list_type(element: Type) -> NamedType:
    return NamedType(LIST_MODULE, "List", (element,))


def maybe_type(inner: Type) -> NamedType:
    return NamedType(MAYBE_MODULE, "Maybe", (inner,))


def result_type(error: Type, value: Type) -> NamedType:
    return NamedType(RESULT_MODULE, "Result", (error, value))


def is_list_type(t: Type) -> bool:
    return isinstance(t, NamedType) and t.name == "List" and t.module in (LIST_MODULE, ()) and len(t.args) == 1


def _letter_names(alphabet: str):
    suffix = 0
    while True:
        for letter in alphabet:
            yield letter if suffix == 0 else f"{letter}{suffix}"
        suffix += 1


def name_type_vars(types: Iterable[Type], alphabet: str = "abcdefghijklmnopqrstuvwxyz") -> Dict[VarIdentity, str]:
    """
    Human-friendly names for every type variable in ``types``.

    Generic (str) variables keep their own names. Inference variables use
    their hint when it is free and agrees with their constraint, then the
    constraint name (``number``, ``number1``, ...), then ``a``, ``b``, ...
    in order of first appearance. Names are distinct across variables.
    """
    ordered: List[TypeVar] = []
    seen = set()
    for t in types:
        for v in type_vars(t):
            if v.identity not in seen:
                seen.add(v.identity)
                ordered.append(v)

    names: Dict[VarIdentity, str] = {}
    taken = set()
    for v in ordered:
        if v.is_generic:
            names[v.identity] = v.identity
            taken.add(v.identity)

    pending: List[TypeVar] = []
    for v in ordered:
        if v.is_generic:
            continue
        hint = v.hint
        if hint and hint not in taken and hint[:1].islower() and constraint_of_name(hint) == v.constraint:
            names[v.identity] = hint
            taken.add(hint)
        else:
            pending.append(v)

    letters = _letter_names(alphabet)
    for v in pending:
        if v.constraint is not None:
            candidate, n = v.constraint, 0
            while candidate in taken:
                n += 1
                candidate = f"{v.constraint}{n}"
        else:
            candidate = next(letters)
            while candidate in taken or constraint_of_name(candidate) is not None:
                candidate = next(letters)
        names[v.identity] = candidate
        taken.add(candidate)
    return names


def generalize_names(t: Type, names: Dict[VarIdentity, str]) -> Type:
    """Replace inference variables by generic variables named by ``names``."""
    mapping: Dict[VarIdentity, Type] = {}
    for v in type_vars(t):
        if not v.is_generic and v.identity in names:
            mapping[v.identity] = TypeVar(names[v.identity], v.constraint)
    return substitute(t, mapping)
