"""
Unification

TypeStore is the mutable state of one inference call: a union-find over
type-variable identities, the concrete type each equivalence class is bound
to, and the merged constraint of each class. It also owns the identity
counter, so fresh variables never collide with those of earlier calls.

``unify`` is transactional: on failure the store is restored to the state it
had before the call and UnificationError is raised with the structured
InferenceError.
"""

import logging
from typing import Dict, List, Mapping, Optional, Tuple

from ..shared.errors import (
    ArityMismatch, CannotUnify, ElmgenImplementationError, UnificationError,
)
from ..shared.types import (
    Type, UnitType, PrimitiveType, NamedType, FunctionType, RecordType, TupleType, TypeVar,
    TypeTransformer, VarIdentity, INT, FLOAT, CHAR, STRING, substitute, type_vars, is_list_type,
)

logger = logging.getLogger("elmgen.passes.unification")

AliasKey = Tuple[Tuple[str, ...], str]
AliasDefinition = Tuple[Tuple[str, ...], Type]  # (parameter names, aliased type)

# Result of merging two constraints; a missing pair is incompatible
_CONSTRAINT_MERGE: Dict[frozenset, str] = {
    frozenset({"number"}): "number",
    frozenset({"comparable"}): "comparable",
    frozenset({"appendable"}): "appendable",
    frozenset({"compappend"}): "compappend",
    frozenset({"number", "comparable"}): "number",
    frozenset({"comparable", "appendable"}): "compappend",
    frozenset({"compappend", "comparable"}): "compappend",
    frozenset({"compappend", "appendable"}): "compappend",
}


def merge_constraints(a: Optional[str], b: Optional[str]) -> Optional[str]:
    """Merge two variable constraints; raises KeyError when incompatible."""
    if a is None:
        return b
    if b is None:
        return a
    return _CONSTRAINT_MERGE[frozenset({a, b})]


def _identity_order(identity: VarIdentity) -> tuple:
    # Generic (str) variables outrank inference variables; older ints outrank younger
    if isinstance(identity, str):
        return (0, 0, identity)
    return (1, identity, "")


class _Resolver(TypeTransformer):
    def __init__(self, store: 'TypeStore'):
        self.store = store
        self.active: set = set()

    def visit_type_var(self, t: TypeVar) -> Type:
        root = self.store.find(t.identity)
        bound = self.store._binding.get(root)
        if bound is None:
            return self.store._var_for(root)
        if root in self.active:
            # Cyclic bindings are rejected by the occurs check
            raise ElmgenImplementationError(f"cyclic type binding for {root!r}")
        self.active.add(root)
        try:
            return bound.accept(self)
        finally:
            self.active.discard(root)


class TypeStore:
    """
    Union-find type store.

    Usage:
        store = TypeStore(next_index=start_index)
        a = store.fresh()
        store.unify(a, INT)
        store.resolve(a)  # Int
    """

    def __init__(self, next_index: int = 0, type_aliases: Optional[Mapping[AliasKey, AliasDefinition]] = None):
        self.next_index = next_index
        self.type_aliases: Dict[AliasKey, AliasDefinition] = dict(type_aliases or {})
        self._parent: Dict[VarIdentity, VarIdentity] = {}
        self._binding: Dict[VarIdentity, Type] = {}
        self._constraint: Dict[VarIdentity, Optional[str]] = {}
        self._hint: Dict[VarIdentity, Optional[str]] = {}

    # ------------------------------------------------------------------
    # Variables
    # ------------------------------------------------------------------

    def fresh(self, constraint: Optional[str] = None, hint: Optional[str] = None) -> TypeVar:
        identity = self.next_index
        self.next_index += 1
        self._parent[identity] = identity
        self._constraint[identity] = constraint
        self._hint[identity] = hint
        return TypeVar(identity, constraint, hint)

    def _register(self, var: TypeVar) -> None:
        if var.identity not in self._parent:
            self._parent[var.identity] = var.identity
            self._constraint[var.identity] = var.constraint
            self._hint[var.identity] = var.hint

    def find(self, identity: VarIdentity) -> VarIdentity:
        root = identity
        while self._parent.get(root, root) != root:
            root = self._parent[root]
        # Path compression
        while identity != root:
            parent = self._parent[identity]
            self._parent[identity] = root
            identity = parent
        return root

    def _var_for(self, root: VarIdentity) -> TypeVar:
        return TypeVar(root, self._constraint.get(root), self._hint.get(root))

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    def shallow(self, t: Type) -> Type:
        """Follow variable links until a concrete type or an unbound variable."""
        while isinstance(t, TypeVar):
            self._register(t)
            root = self.find(t.identity)
            bound = self._binding.get(root)
            if bound is None:
                return self._var_for(root)
            t = bound
        return t

    def resolve(self, t: Type) -> Type:
        """Fully substitute bound variables (deep)."""
        for v in _vars_in(t):
            self._register(v)
        return t.accept(_Resolver(self))

    def expand_alias(self, t: NamedType) -> Optional[Type]:
        definition = self.type_aliases.get((t.module, t.name))
        if definition is None:
            return None
        params, aliased = definition
        if len(params) != len(t.args):
            raise UnificationError(ArityMismatch(len(params), len(t.args)))
        return substitute(aliased, dict(zip(params, t.args)))

    # ------------------------------------------------------------------
    # Snapshots
    # ------------------------------------------------------------------

    def snapshot(self) -> tuple:
        return (dict(self._parent), dict(self._binding), dict(self._constraint), dict(self._hint))

    def restore(self, snapshot: tuple) -> None:
        # next_index is not restored: identities are never reused
        parent, binding, constraint, hint = snapshot
        self._parent, self._binding = dict(parent), dict(binding)
        self._constraint, self._hint = dict(constraint), dict(hint)

    # ------------------------------------------------------------------
    # Unification
    # ------------------------------------------------------------------

    def unify(self, a: Type, b: Type) -> Type:
        """
        Make ``a`` and ``b`` equal. Returns the unified, resolved type or
        raises UnificationError, leaving the store unchanged.
        """
        state = self.snapshot()
        try:
            self._unify(a, b)
        except UnificationError as e:
            self.restore(state)
            logger.debug(f"unify failed: {a} ~ {b}: {e.error.message()}")
            raise
        return self.resolve(a)

    def _unify(self, a: Type, b: Type) -> None:
        a = self.shallow(a)
        b = self.shallow(b)

        if isinstance(a, TypeVar) and isinstance(b, TypeVar):
            self._union(a, b)
            return
        if isinstance(a, TypeVar):
            self._bind(a, b)
            return
        if isinstance(b, TypeVar):
            self._bind(b, a)
            return

        if isinstance(a, NamedType) and isinstance(b, NamedType):
            self._unify_named(a, b)
            return
        if isinstance(a, NamedType) and (a.module, a.name) in self.type_aliases:
            self._unify(self.expand_alias(a), b)
            return
        if isinstance(b, NamedType) and (b.module, b.name) in self.type_aliases:
            self._unify(a, self.expand_alias(b))
            return

        if isinstance(a, UnitType) and isinstance(b, UnitType):
            return
        if isinstance(a, PrimitiveType) and isinstance(b, PrimitiveType):
            if a.name != b.name:
                raise UnificationError(CannotUnify(self.resolve(a), self.resolve(b)))
            return
        if isinstance(a, FunctionType) and isinstance(b, FunctionType):
            self._unify_functions(a, b)
            return
        if isinstance(a, RecordType) and isinstance(b, RecordType):
            self._unify_records(a, b)
            return
        if isinstance(a, TupleType) and isinstance(b, TupleType):
            if len(a.element_types) != len(b.element_types):
                raise UnificationError(CannotUnify(self.resolve(a), self.resolve(b)))
            for x, y in zip(a.element_types, b.element_types):
                self._unify(x, y)
            return
        raise UnificationError(CannotUnify(self.resolve(a), self.resolve(b)))

    def _union(self, a: TypeVar, b: TypeVar) -> None:
        ra, rb = self.find(a.identity), self.find(b.identity)
        if ra == rb:
            return
        try:
            constraint = merge_constraints(self._constraint.get(ra), self._constraint.get(rb))
        except KeyError:
            raise UnificationError(CannotUnify(self._var_for(ra), self._var_for(rb)))
        keep, drop = (ra, rb) if _identity_order(ra) <= _identity_order(rb) else (rb, ra)
        self._parent[drop] = keep
        self._constraint[keep] = constraint
        if self._hint.get(keep) is None:
            self._hint[keep] = self._hint.get(drop)
        logger.debug(f"union {drop!r} -> {keep!r} ({constraint})")

    def _bind(self, var: TypeVar, t: Type) -> None:
        root = self.find(var.identity)
        if self._occurs(root, t):
            raise UnificationError(CannotUnify(self._var_for(root), self.resolve(t)))
        constraint = self._constraint.get(root)
        if constraint is not None:
            self._check_constraint(constraint, t, self._var_for(root))
        self._binding[root] = t
        logger.debug(f"bind {root!r} := {t}")

    def _occurs(self, root: VarIdentity, t: Type) -> bool:
        for v in _vars_in(self.resolve(t)):
            if self.find(v.identity) == root:
                return True
        return False

    def _check_constraint(self, constraint: str, t: Type, var: TypeVar) -> None:
        """Raise CannotUnify unless ``t`` satisfies ``constraint``."""
        t = self.shallow(t)
        if isinstance(t, TypeVar):
            # The constraint moves onto the other variable
            rt = self.find(t.identity)
            try:
                self._constraint[rt] = merge_constraints(self._constraint.get(rt), constraint)
            except KeyError:
                raise UnificationError(CannotUnify(var, self._var_for(rt)))
            return
        if isinstance(t, NamedType) and (t.module, t.name) in self.type_aliases:
            self._check_constraint(constraint, self.expand_alias(t), var)
            return

        failure = UnificationError(CannotUnify(var, self.resolve(t)))
        if constraint == "number":
            if t not in (INT, FLOAT):
                raise failure
        elif constraint == "comparable":
            if t in (INT, FLOAT, CHAR, STRING):
                return
            if is_list_type(t):
                self._check_constraint("comparable", t.args[0], var)
            elif isinstance(t, TupleType):
                for element in t.element_types:
                    self._check_constraint("comparable", element, var)
            else:
                raise failure
        elif constraint == "appendable":
            if t != STRING and not is_list_type(t):
                raise failure
        elif constraint == "compappend":
            if t == STRING:
                return
            if is_list_type(t):
                self._check_constraint("comparable", t.args[0], var)
            else:
                raise failure
        else:
            raise ElmgenImplementationError(f"unknown type variable constraint '{constraint}'")

    def _unify_named(self, a: NamedType, b: NamedType) -> None:
        if (a.module, a.name) != (b.module, b.name):
            expanded_a = self.expand_alias(a)
            expanded_b = self.expand_alias(b)
            if expanded_a is not None or expanded_b is not None:
                self._unify(expanded_a or a, expanded_b or b)
                return
            raise UnificationError(CannotUnify(self.resolve(a), self.resolve(b)))
        if len(a.args) != len(b.args):
            raise UnificationError(ArityMismatch(len(a.args), len(b.args)))
        for x, y in zip(a.args, b.args):
            self._unify(x, y)

    def _unify_functions(self, a: FunctionType, b: FunctionType) -> None:
        n, m = len(a.param_types), len(b.param_types)
        if n == m:
            for x, y in zip(a.param_types, b.param_types):
                self._unify(x, y)
            self._unify(a.return_type, b.return_type)
            return
        shorter, longer = (a, b) if n < m else (b, a)
        k = len(shorter.param_types)
        ret = self.shallow(shorter.return_type)
        curryable = isinstance(ret, FunctionType) or (isinstance(ret, TypeVar) and ret.constraint is None)
        if not curryable:
            raise UnificationError(ArityMismatch(len(a.param_types), len(b.param_types)))
        split = FunctionType(longer.param_types[:k], FunctionType(longer.param_types[k:], longer.return_type))
        if shorter is a:
            self._unify_functions(a, split)
        else:
            self._unify_functions(split, b)

    def _unify_records(self, a: RecordType, b: RecordType) -> None:
        fields_a, row_a = self.record_parts(a)
        fields_b, row_b = self.record_parts(b)

        for name, ft in fields_a.items():
            if name in fields_b:
                self._unify(ft, fields_b[name])

        only_a = [(name, t) for name, t in fields_a.items() if name not in fields_b]
        only_b = [(name, t) for name, t in fields_b.items() if name not in fields_a]

        if row_a is None and row_b is None:
            if only_a or only_b:
                raise UnificationError(CannotUnify(self.resolve(a), self.resolve(b)))
            return
        if row_a is None:
            if only_b:
                raise UnificationError(CannotUnify(self.resolve(a), self.resolve(b)))
            self._unify(row_b, RecordType(only_a))
            return
        if row_b is None:
            if only_a:
                raise UnificationError(CannotUnify(self.resolve(a), self.resolve(b)))
            self._unify(row_a, RecordType(only_b))
            return
        if self.find(row_a.identity) == self.find(row_b.identity):
            if only_a or only_b:
                raise UnificationError(CannotUnify(self.resolve(a), self.resolve(b)))
            return
        rest = self.fresh()
        self._unify(row_a, RecordType(only_b, rest))
        self._unify(row_b, RecordType(only_a, rest))

    def record_parts(self, t: RecordType) -> Tuple[Dict[str, Type], Optional[TypeVar]]:
        """Fields of a record with its row chain flattened, and the open row (if any)."""
        fields: Dict[str, Type] = {}
        current: Type = t
        while True:
            for name, ft in current.fields:
                fields.setdefault(name, ft)
            if current.row is None:
                return fields, None
            row = self.shallow(current.row)
            if isinstance(row, RecordType):
                current = row
                continue
            if isinstance(row, TypeVar):
                return fields, row
            raise UnificationError(CannotUnify(row, RecordType(())))


def _vars_in(t: Type) -> List[TypeVar]:
    return type_vars(t)


def instantiate_generics(store: TypeStore, t: Type, mapping: Optional[Dict[str, TypeVar]] = None) -> Type:
    """
    Replace generic (str) variables by fresh inference variables.

    ``mapping`` is shared across calls when the same name must denote the
    same variable; it is filled in as new names are met.
    """
    if mapping is None:
        mapping = {}
    substitution: Dict[VarIdentity, Type] = {}
    for v in _vars_in(t):
        if v.is_generic:
            if v.identity not in mapping:
                mapping[v.identity] = store.fresh(v.constraint, hint=v.identity)
            substitution[v.identity] = mapping[v.identity]
    return substitute(t, substitution)
