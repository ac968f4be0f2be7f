"""
Elm binary operator table: precedence, associativity and type signature.

Precedence and associativity follow the ``infix`` declarations of elm/core
(``Basics`` and ``List``).
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional

from .types import (
    Type, FunctionType, TypeVar, BOOL, INT, FLOAT, list_type,
)


class Associativity(Enum):
    LEFT = "left"
    RIGHT = "right"
    NON = "non"


@dataclass(frozen=True)
class OperatorInfo:
    symbol: str
    precedence: int
    associativity: Associativity
    signature: Type  # generic variables are instantiated per use
    function: str  # the named function the operator stands for


def _fn(*types: Type) -> FunctionType:
    return FunctionType(types[:-1], types[-1])


_a = TypeVar("a")
_b = TypeVar("b")
_c = TypeVar("c")
_number = TypeVar("number")
_comparable = TypeVar("comparable")
_appendable = TypeVar("appendable")

L, R, N = Associativity.LEFT, Associativity.RIGHT, Associativity.NON

OPERATORS: Dict[str, OperatorInfo] = {
    op.symbol: op for op in (
        OperatorInfo("|>", 0, L, _fn(_a, _fn(_a, _b), _b), "Basics.apR"),
        OperatorInfo("<|", 0, R, _fn(_fn(_a, _b), _a, _b), "Basics.apL"),
        OperatorInfo("||", 2, R, _fn(BOOL, BOOL, BOOL), "Basics.or"),
        OperatorInfo("&&", 3, R, _fn(BOOL, BOOL, BOOL), "Basics.and"),
        OperatorInfo("==", 4, N, _fn(_a, _a, BOOL), "Basics.eq"),
        OperatorInfo("/=", 4, N, _fn(_a, _a, BOOL), "Basics.neq"),
        OperatorInfo("<", 4, N, _fn(_comparable, _comparable, BOOL), "Basics.lt"),
        OperatorInfo(">", 4, N, _fn(_comparable, _comparable, BOOL), "Basics.gt"),
        OperatorInfo("<=", 4, N, _fn(_comparable, _comparable, BOOL), "Basics.le"),
        OperatorInfo(">=", 4, N, _fn(_comparable, _comparable, BOOL), "Basics.ge"),
        OperatorInfo("++", 5, R, _fn(_appendable, _appendable, _appendable), "Basics.append"),
        OperatorInfo("::", 5, R, _fn(_a, list_type(_a), list_type(_a)), "List.cons"),
        OperatorInfo("+", 6, L, _fn(_number, _number, _number), "Basics.add"),
        OperatorInfo("-", 6, L, _fn(_number, _number, _number), "Basics.sub"),
        OperatorInfo("*", 7, L, _fn(_number, _number, _number), "Basics.mul"),
        OperatorInfo("/", 7, L, _fn(FLOAT, FLOAT, FLOAT), "Basics.fdiv"),
        OperatorInfo("//", 7, L, _fn(INT, INT, INT), "Basics.idiv"),
        OperatorInfo("^", 8, R, _fn(_number, _number, _number), "Basics.pow"),
        OperatorInfo("<<", 9, L, _fn(_fn(_b, _c), _fn(_a, _b), _fn(_a, _c)), "Basics.composeL"),
        OperatorInfo(">>", 9, R, _fn(_fn(_a, _b), _fn(_b, _c), _fn(_a, _c)), "Basics.composeR"),
    )
}


def is_known_operator(symbol: str) -> bool:
    return symbol in OPERATORS


def lookup_operator(symbol: str) -> Optional[OperatorInfo]:
    return OPERATORS.get(symbol)
