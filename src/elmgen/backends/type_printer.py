"""
Type Printer

Renders types in Elm surface syntax, naming inference variables with
human-friendly names (hint, constraint name, then ``a``, ``b``, ...).
"""

from typing import Dict, List, Optional, Tuple

from ..shared.types import (
    Type, TypeVisitor, UnitType, PrimitiveType, NamedType, FunctionType, RecordType, TupleType,
    TypeVar, VarIdentity, name_type_vars,
)
from ..utils.config import (
    DEFAULT_EXPOSED_TYPES, DEFAULT_EXPOSED_VALUES, DEFAULT_IMPORTS, BASICS_MODULE,
    PLACEHOLDER_TYPE_NAME, TYPE_VARIABLE_ALPHABET, MODULE_SEPARATOR,
)

ModulePath = Tuple[str, ...]


def qualify(module: ModulePath, name: str, aliases: Optional[Dict[ModulePath, str]] = None,
            is_type: bool = False) -> str:
    """
    How ``module.name`` is written in generated code: bare for local names
    and for names the implicit imports expose, through the module alias when
    there is one, else fully qualified.
    """
    if not module:
        return name
    if module in DEFAULT_IMPORTS:
        exposed = DEFAULT_EXPOSED_TYPES if is_type else DEFAULT_EXPOSED_VALUES
        if name in exposed.get(module, ()):
            return name
        if not is_type and module == BASICS_MODULE:
            return name
    if aliases and module in aliases:
        return f"{aliases[module]}{MODULE_SEPARATOR}{name}"
    return MODULE_SEPARATOR.join(module + (name,))


class TypePrinter(TypeVisitor[str]):
    """
    Usage:
        TypePrinter().print(FunctionType((INT,), STRING))  # "Int -> String"

    Variable names are fixed per ``print`` call unless a ``names`` map is
    passed in, which keeps naming consistent across several types.
    """

    def __init__(self, aliases: Optional[Dict[ModulePath, str]] = None,
                 names: Optional[Dict[VarIdentity, str]] = None):
        self.aliases = aliases or {}
        self._fixed_names = names
        self.names: Dict[VarIdentity, str] = names or {}

    def print(self, t: Optional[Type]) -> str:
        if t is None:
            return PLACEHOLDER_TYPE_NAME
        if self._fixed_names is None:
            self.names = name_type_vars([t], TYPE_VARIABLE_ALPHABET)
        return t.accept(self)

    def segments(self, t: Optional[Type]) -> List[str]:
        """
        Top-level pieces of a function type (each parameter, then the return
        type) for signatures split over several lines. A non-function type
        is one segment.
        """
        if t is None:
            return [PLACEHOLDER_TYPE_NAME]
        if self._fixed_names is None:
            self.names = name_type_vars([t], TYPE_VARIABLE_ALPHABET)
        if not isinstance(t, FunctionType):
            return [t.accept(self)]
        pieces = [self._param(p) for p in t.param_types]
        ret = t.return_type
        while isinstance(ret, FunctionType):
            pieces.extend(self._param(p) for p in ret.param_types)
            ret = ret.return_type
        pieces.append(ret.accept(self))
        return pieces

    def _param(self, t: Type) -> str:
        text = t.accept(self)
        return f"({text})" if isinstance(t, FunctionType) else text

    def argument(self, t: Type) -> str:
        text = t.accept(self)
        if isinstance(t, FunctionType) or (isinstance(t, NamedType) and t.args):
            return f"({text})"
        return text

    def visit_unit_type(self, t: UnitType) -> str:
        return "()"

    def visit_primitive_type(self, t: PrimitiveType) -> str:
        return t.name

    def visit_named_type(self, t: NamedType) -> str:
        head = qualify(t.module, t.name, self.aliases, is_type=True)
        if not t.args:
            return head
        return " ".join([head] + [self.argument(a) for a in t.args])

    def visit_function_type(self, t: FunctionType) -> str:
        params = " -> ".join(self._param(p) for p in t.param_types)
        return f"{params} -> {t.return_type.accept(self)}"

    def visit_record_type(self, t: RecordType) -> str:
        body = ", ".join(f"{name} : {ft.accept(self)}" for name, ft in t.fields)
        if t.row is not None:
            row = t.row.accept(self)
            return f"{{ {row} | {body} }}" if body else row
        return f"{{ {body} }}" if body else "{}"

    def visit_tuple_type(self, t: TupleType) -> str:
        return "( " + ", ".join(e.accept(self) for e in t.element_types) + " )"

    def visit_type_var(self, t: TypeVar) -> str:
        if t.identity in self.names:
            return self.names[t.identity]
        if t.is_generic:
            return t.identity
        return PLACEHOLDER_TYPE_NAME
