"""
Prelude: built-in constructors and typing facts for elm/core.

CORE_FACTS maps fully qualified value names to their types (with generic
variables written by name). Callers merge their own facts (usually produced
from package docs) over these.
"""

from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from .types import (
    Type, NamedType, FunctionType, TypeVar, TupleType, BOOL, INT, FLOAT, STRING, CHAR,
    BASICS, MAYBE_MODULE, RESULT_MODULE, list_type, maybe_type, result_type,
)

ModulePath = Tuple[str, ...]


@dataclass(frozen=True)
class ConstructorInfo:
    """
    One constructor of a custom type.

    ``result`` is the constructed type with its parameters as generic
    variables; ``arg_types`` refer to the same variables.
    """
    module: ModulePath
    type_name: str
    tag: str
    arg_types: Tuple[Type, ...]
    result: Type

    @property
    def arity(self) -> int:
        return len(self.arg_types)

    @property
    def constructor_type(self) -> Type:
        if not self.arg_types:
            return self.result
        return FunctionType(self.arg_types, self.result)


class ConstructorRegistry:
    """
    Constructors known to inference, looked up by tag and optionally module.

    Registries are immutable: ``with_custom_type`` returns an extended copy.
    """

    def __init__(self, constructors: Iterable[ConstructorInfo] = ()):
        self._by_tag: Dict[str, List[ConstructorInfo]] = {}
        for info in constructors:
            self._by_tag.setdefault(info.tag, []).append(info)

    def lookup(self, tag: str, module: ModulePath = ()) -> Optional[ConstructorInfo]:
        """
        Find a constructor. A qualified lookup must match the module; an
        unqualified one prefers local constructors over prelude ones.
        """
        candidates = self._by_tag.get(tag, [])
        if module:
            for info in candidates:
                if info.module == module:
                    return info
            return None
        for info in candidates:
            if info.module == ():
                return info
        return candidates[0] if candidates else None

    def all(self) -> List[ConstructorInfo]:
        return [info for infos in self._by_tag.values() for info in infos]

    def with_constructors(self, constructors: Iterable[ConstructorInfo]) -> 'ConstructorRegistry':
        return ConstructorRegistry(self.all() + list(constructors))

    def with_custom_type(self, decl, module: ModulePath = ()) -> 'ConstructorRegistry':
        """Register the constructors of a CustomTypeDeclaration."""
        return self.with_constructors(constructors_of(decl, module))

    def __contains__(self, tag: str) -> bool:
        return tag in self._by_tag


def constructors_of(decl, module: ModulePath = ()) -> List[ConstructorInfo]:
    result = NamedType(module, decl.name, tuple(TypeVar(p) for p in decl.params))
    return [ConstructorInfo(module, decl.name, v.tag, v.args, result) for v in decl.variants]


_a = TypeVar("a")
_b = TypeVar("b")
_c = TypeVar("c")
_x = TypeVar("x")
_error = TypeVar("error")
_value = TypeVar("value")
_number = TypeVar("number")
_comparable = TypeVar("comparable")

ORDER = NamedType(BASICS, "Order")

PRELUDE_CONSTRUCTORS = ConstructorRegistry((
    ConstructorInfo(BASICS, "Bool", "True", (), BOOL),
    ConstructorInfo(BASICS, "Bool", "False", (), BOOL),
    ConstructorInfo(BASICS, "Order", "LT", (), ORDER),
    ConstructorInfo(BASICS, "Order", "EQ", (), ORDER),
    ConstructorInfo(BASICS, "Order", "GT", (), ORDER),
    ConstructorInfo(MAYBE_MODULE, "Maybe", "Just", (_a,), maybe_type(_a)),
    ConstructorInfo(MAYBE_MODULE, "Maybe", "Nothing", (), maybe_type(_a)),
    ConstructorInfo(RESULT_MODULE, "Result", "Ok", (_value,), result_type(_error, _value)),
    ConstructorInfo(RESULT_MODULE, "Result", "Err", (_error,), result_type(_error, _value)),
))


def _fn(*types: Type) -> FunctionType:
    return FunctionType(types[:-1], types[-1])


_list_a = list_type(_a)
_list_b = list_type(_b)

CORE_FACTS: Dict[str, Type] = {
    # Basics
    "Basics.identity": _fn(_a, _a),
    "Basics.always": _fn(_a, _b, _a),
    "Basics.not": _fn(BOOL, BOOL),
    "Basics.negate": _fn(_number, _number),
    "Basics.abs": _fn(_number, _number),
    "Basics.toFloat": _fn(INT, FLOAT),
    "Basics.round": _fn(FLOAT, INT),
    "Basics.floor": _fn(FLOAT, INT),
    "Basics.ceiling": _fn(FLOAT, INT),
    "Basics.truncate": _fn(FLOAT, INT),
    "Basics.sqrt": _fn(FLOAT, FLOAT),
    "Basics.modBy": _fn(INT, INT, INT),
    "Basics.remainderBy": _fn(INT, INT, INT),
    "Basics.max": _fn(_comparable, _comparable, _comparable),
    "Basics.min": _fn(_comparable, _comparable, _comparable),
    "Basics.compare": _fn(_comparable, _comparable, ORDER),
    "Basics.clamp": _fn(_number, _number, _number, _number),
    "Basics.xor": _fn(BOOL, BOOL, BOOL),
    "Basics.never": _fn(NamedType(BASICS, "Never"), _a),
    # String
    "String.fromInt": _fn(INT, STRING),
    "String.fromFloat": _fn(FLOAT, STRING),
    "String.fromChar": _fn(CHAR, STRING),
    "String.toInt": _fn(STRING, maybe_type(INT)),
    "String.toFloat": _fn(STRING, maybe_type(FLOAT)),
    "String.length": _fn(STRING, INT),
    "String.isEmpty": _fn(STRING, BOOL),
    "String.concat": _fn(list_type(STRING), STRING),
    "String.join": _fn(STRING, list_type(STRING), STRING),
    "String.split": _fn(STRING, STRING, list_type(STRING)),
    "String.toUpper": _fn(STRING, STRING),
    "String.toLower": _fn(STRING, STRING),
    "String.trim": _fn(STRING, STRING),
    "String.append": _fn(STRING, STRING, STRING),
    "String.contains": _fn(STRING, STRING, BOOL),
    "String.repeat": _fn(INT, STRING, STRING),
    # List
    "List.singleton": _fn(_a, _list_a),
    "List.repeat": _fn(INT, _a, _list_a),
    "List.range": _fn(INT, INT, list_type(INT)),
    "List.map": _fn(_fn(_a, _b), _list_a, _list_b),
    "List.indexedMap": _fn(_fn(INT, _a, _b), _list_a, _list_b),
    "List.filter": _fn(_fn(_a, BOOL), _list_a, _list_a),
    "List.filterMap": _fn(_fn(_a, maybe_type(_b)), _list_a, _list_b),
    "List.foldl": _fn(_fn(_a, _b, _b), _b, _list_a, _b),
    "List.foldr": _fn(_fn(_a, _b, _b), _b, _list_a, _b),
    "List.length": _fn(_list_a, INT),
    "List.reverse": _fn(_list_a, _list_a),
    "List.member": _fn(_a, _list_a, BOOL),
    "List.isEmpty": _fn(_list_a, BOOL),
    "List.head": _fn(_list_a, maybe_type(_a)),
    "List.tail": _fn(_list_a, maybe_type(_list_a)),
    "List.append": _fn(_list_a, _list_a, _list_a),
    "List.concat": _fn(list_type(_list_a), _list_a),
    "List.concatMap": _fn(_fn(_a, _list_b), _list_a, _list_b),
    "List.sum": _fn(list_type(_number), _number),
    "List.product": _fn(list_type(_number), _number),
    "List.maximum": _fn(list_type(_comparable), maybe_type(_comparable)),
    "List.minimum": _fn(list_type(_comparable), maybe_type(_comparable)),
    "List.sort": _fn(list_type(_comparable), list_type(_comparable)),
    "List.all": _fn(_fn(_a, BOOL), _list_a, BOOL),
    "List.any": _fn(_fn(_a, BOOL), _list_a, BOOL),
    "List.take": _fn(INT, _list_a, _list_a),
    "List.drop": _fn(INT, _list_a, _list_a),
    # Maybe
    "Maybe.withDefault": _fn(_a, maybe_type(_a), _a),
    "Maybe.map": _fn(_fn(_a, _b), maybe_type(_a), maybe_type(_b)),
    "Maybe.andThen": _fn(_fn(_a, maybe_type(_b)), maybe_type(_a), maybe_type(_b)),
    # Result
    "Result.map": _fn(_fn(_a, _value), result_type(_x, _a), result_type(_x, _value)),
    "Result.mapError": _fn(_fn(_x, _error), result_type(_x, _a), result_type(_error, _a)),
    "Result.andThen": _fn(_fn(_a, result_type(_x, _b)), result_type(_x, _a), result_type(_x, _b)),
    "Result.withDefault": _fn(_a, result_type(_x, _a), _a),
    "Result.toMaybe": _fn(result_type(_x, _a), maybe_type(_a)),
    # Tuple
    "Tuple.pair": _fn(_a, _b, TupleType((_a, _b))),
    "Tuple.first": _fn(TupleType((_a, _b)), _a),
    "Tuple.second": _fn(TupleType((_a, _b)), _b),
    "Tuple.mapFirst": _fn(_fn(_a, _x), TupleType((_a, _b)), TupleType((_x, _b))),
    "Tuple.mapSecond": _fn(_fn(_b, _c), TupleType((_a, _b)), TupleType((_a, _c))),
    # Debug
    "Debug.toString": _fn(_a, STRING),
    "Debug.log": _fn(STRING, _a, _a),
    "Debug.todo": _fn(STRING, _a),
}


def merged_facts(facts: Optional[Mapping[str, Type]] = None) -> Dict[str, Type]:
    """Prelude facts overlaid with the caller's."""
    merged = dict(CORE_FACTS)
    if facts:
        merged.update(facts)
    return merged
