"""
Type Inference Pass

Hindley-Milner inference over an expression tree.

The identity counter is threaded explicitly: ``infer(start_index, expr)``
returns ``(next_index, details)`` and a later call continues from
``next_index``. Inference never mutates the tree; the type of every
expression node is recorded in a NodeAnnotations side map keyed by node
identity. Errors do not stop inference: each node that fails to unify
records an InferenceError and inference carries on, so one pass reports
independent problems.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterator, List, Mapping, Optional, Tuple
from typing_extensions import TypeAlias

from ..shared.ast_visitor import ScopedASTVisitor, ASTVisitor
from ..shared.errors import (
    InferenceError, ArityMismatch, UnboundRecordField, UnknownConstructor, CannotUnify,
    UnificationError,
)
from ..shared.nodes import (
    ASTNode, Expression, Char, Literal, ListLit, TupleLit, UnitLit, RecordLit, RecordUpdate, Lambda,
    Param, Apply, ValueRef, LetIn, LetBinding, CaseOf, Branch, Operator, IfThenElse, FieldAccess,
    ConstructorPattern, VarPattern, WildcardPattern, LiteralPattern, ValueDeclaration,
)
from ..shared.operators import lookup_operator
from ..shared.prelude import ConstructorRegistry, PRELUDE_CONSTRUCTORS, merged_facts
from ..shared.source_location import SourceLocation
from ..shared.types import (
    Type, FunctionType, RecordType, TupleType, TypeVar, VarIdentity, UNIT, STRING, INT, FLOAT, BOOL,
    CHAR, list_type, substitute, type_vars, uncurry, constraint_of_name, name_type_vars,
    generalize_names,
)
from .unification import TypeStore, AliasKey, AliasDefinition, instantiate_generics

logger = logging.getLogger("elmgen.passes.type_inference")

TypeAliases: TypeAlias = Mapping[AliasKey, AliasDefinition]


class NodeAnnotations:
    """
    Side map from expression node to inferred type.

    Keyed by node identity (trees are immutable and may share subtrees, so
    annotations cannot live on the nodes themselves).
    """

    def __init__(self):
        self._entries: Dict[int, Tuple[ASTNode, Type]] = {}

    def set(self, node: ASTNode, t: Type) -> None:
        self._entries[id(node)] = (node, t)

    def get(self, node: ASTNode) -> Optional[Type]:
        entry = self._entries.get(id(node))
        return entry[1] if entry is not None else None

    def items(self) -> Iterator[Tuple[ASTNode, Type]]:
        return iter(self._entries.values())

    def types(self) -> List[Type]:
        return [t for _, t in self._entries.values()]

    def resolved(self, store: TypeStore) -> 'NodeAnnotations':
        result = NodeAnnotations()
        for node, t in self._entries.values():
            result.set(node, store.resolve(t))
        return result

    def __contains__(self, node: ASTNode) -> bool:
        return id(node) in self._entries

    def __len__(self) -> int:
        return len(self._entries)


@dataclass(frozen=True)
class InferenceDetails:
    """
    Result of one inference call.

    ``type`` is always the best-effort resolved type of the root, even when
    errors were reported. ``unresolved`` lists the references that had no
    type (no scope entry, annotation, fact or constructor); they were typed
    with placeholder variables that unify with anything.
    """
    type: Optional[Type]
    errors: Tuple[InferenceError, ...] = ()
    unresolved: Tuple[str, ...] = ()
    annotations: NodeAnnotations = field(default_factory=NodeAnnotations, compare=False)

    @property
    def ok(self) -> bool:
        return not self.errors

    @property
    def annotation(self) -> Optional[Type]:
        """
        The inferred type when inference succeeded and every reference had a
        type, else None.
        """
        if not self.ok or self.unresolved:
            return None
        return self.type


@dataclass(frozen=True)
class Scheme:
    """Type scheme: ``quantified`` variables are instantiated afresh at each use."""
    quantified: FrozenSet[VarIdentity]
    type: Type


def _mono(t: Type) -> Scheme:
    return Scheme(frozenset(), t)


def literal_type(value) -> Type:
    # bool before int: bool is an int subclass
    if isinstance(value, bool):
        return BOOL
    if isinstance(value, int):
        return INT
    if isinstance(value, float):
        return FLOAT
    if isinstance(value, Char):
        return CHAR
    return STRING


class TypeInferenceEngine(ScopedASTVisitor[Type, Scheme]):
    """
    Infers the type of every expression node.

    Generic variables written by the caller (str identities) are handled in
    two ways: the annotation of a ValueRef and operator signatures are
    instantiated afresh at each use; generics in any other annotation share
    one inference-wide variable per name, so ``a`` means the same type
    everywhere in the tree.
    """

    def __init__(self, store: TypeStore, facts: Optional[Mapping[str, Type]] = None,
                 constructors: Optional[ConstructorRegistry] = None):
        super().__init__()
        self.store = store
        self.facts = merged_facts(facts)
        self.constructors = constructors if constructors is not None else PRELUDE_CONSTRUCTORS
        self.errors: List[InferenceError] = []
        self.annotations = NodeAnnotations()
        self._named_vars: Dict[str, TypeVar] = {}
        self.unresolved: List[str] = []

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def infer(self, node: Expression) -> Type:
        t = node.accept(self)
        if node.annotation is not None and not isinstance(node, ValueRef):
            t = self._unify_at(node.location, self._instantiate_named(node.annotation), t)
        self.annotations.set(node, t)
        return t

    def _report(self, error: InferenceError, location: Optional[SourceLocation]) -> None:
        error = error.with_location(location)
        logger.debug(f"inference error: {error.message()}")
        self.errors.append(error)

    def _unify_at(self, location: Optional[SourceLocation], expected: Type, actual: Type) -> Type:
        """Unify, reporting (not raising) a failure. Returns the unified type."""
        try:
            return self.store.unify(expected, actual)
        except UnificationError as e:
            self._report(e.error, location)
            return expected

    def _instantiate_named(self, t: Type) -> Type:
        return instantiate_generics(self.store, t, self._named_vars)

    def _instantiate_fresh(self, t: Type) -> Type:
        return instantiate_generics(self.store, t)

    def _instantiate_scheme(self, scheme: Scheme) -> Type:
        t = self.store.resolve(scheme.type)
        if not scheme.quantified:
            return t
        mapping: Dict[VarIdentity, Type] = {}
        for v in type_vars(t):
            if v.identity in scheme.quantified:
                mapping[v.identity] = self.store.fresh(v.constraint, v.hint)
        return substitute(t, mapping)

    def _generalize(self, t: Type) -> Scheme:
        resolved = self.store.resolve(t)
        env_vars = set()
        for scheme in self._all_bindings():
            for v in type_vars(self.store.resolve(scheme.type)):
                if v.identity not in scheme.quantified:
                    env_vars.add(v.identity)
        quantified = frozenset(v.identity for v in type_vars(resolved) if v.identity not in env_vars)
        return Scheme(quantified, resolved)

    def _lookup_fact(self, node: ValueRef) -> Optional[Type]:
        fact = self.facts.get(node.qualified_name)
        if fact is None and not node.import_from:
            fact = self.facts.get(f"Basics.{node.name}")
        return fact

    def _record_parts(self, t: Type, location: Optional[SourceLocation]):
        try:
            return self.store.record_parts(t)
        except UnificationError as e:
            self._report(e.error, location)
            return None

    def finish(self, t: Type) -> InferenceDetails:
        return InferenceDetails(self.store.resolve(t), tuple(self.errors), tuple(self.unresolved),
                                self.annotations.resolved(self.store))

    # ------------------------------------------------------------------
    # Expressions
    # ------------------------------------------------------------------

    def visit_literal(self, node: Literal) -> Type:
        return literal_type(node.value)

    def visit_unit(self, node: UnitLit) -> Type:
        return UNIT

    def visit_list(self, node: ListLit) -> Type:
        element = self.store.fresh()
        for e in node.elements:
            element = self._unify_at(e.location, element, self.infer(e))
        return list_type(element)

    def visit_tuple(self, node: TupleLit) -> Type:
        return TupleType(tuple(self.infer(e) for e in node.elements))

    def visit_record(self, node: RecordLit) -> Type:
        return RecordType(tuple((name, self.infer(value)) for name, value in node.fields))

    def visit_record_update(self, node: RecordUpdate) -> Type:
        base_t = self.infer(node.base)
        values = [(name, self.infer(value), value) for name, value in node.fields]
        resolved = self.store.shallow(base_t)

        if isinstance(resolved, RecordType):
            parts = self._record_parts(resolved, node.location)
            if parts is None:
                return base_t
            fields, row = parts
            extra = []
            for name, value_t, value in values:
                if name in fields:
                    self._unify_at(value.location, fields[name], value_t)
                elif row is None:
                    self._report(UnboundRecordField(name, self.store.resolve(base_t)), node.location)
                else:
                    extra.append((name, value_t))
            if extra:
                self._unify_at(node.location, base_t, RecordType(extra, self.store.fresh()))
            return base_t

        target = RecordType(tuple((name, value_t) for name, value_t, _ in values), self.store.fresh())
        self._unify_at(node.location, base_t, target)
        return base_t

    def visit_lambda(self, node: Lambda) -> Type:
        with self._scope():
            params = []
            for p in node.params:
                pt = self._instantiate_named(p.type) if p.type is not None else self.store.fresh()
                if p.name != "_":
                    self._set_var(p.name, _mono(pt))
                params.append(pt)
            body = self.infer(node.body)
        return FunctionType(params, body)

    def visit_apply(self, node: Apply) -> Type:
        fn_t = self.infer(node.fn)
        arg_ts = [self.infer(a) for a in node.args]
        callee = self.store.resolve(fn_t)

        if not isinstance(callee, FunctionType):
            # Variable and alias callees unify; anything else is CannotUnify
            ret = self.store.fresh()
            self._unify_at(node.location, fn_t, FunctionType(arg_ts, ret))
            return ret

        flat = uncurry(callee)
        n, k = len(flat.param_types), len(arg_ts)
        for arg, param_t, arg_t in zip(node.args, flat.param_types, arg_ts):
            self._unify_at(arg.location, param_t, arg_t)
        if k < n:
            return FunctionType(flat.param_types[k:], flat.return_type)
        if k == n:
            return flat.return_type

        # Over-application: the return type must itself accept the remaining arguments
        ret = self.store.shallow(flat.return_type)
        if isinstance(ret, TypeVar) and ret.constraint is None:
            result = self.store.fresh()
            self._unify_at(node.location, ret, FunctionType(arg_ts[n:], result))
            return result
        self._report(ArityMismatch(n, k), node.location)
        return self.store.fresh()

    def visit_value_ref(self, node: ValueRef) -> Type:
        if not node.import_from:
            scheme = self._get_var(node.name)
            if scheme is not None:
                return self._instantiate_scheme(scheme)
        if node.annotation is not None:
            return self._instantiate_fresh(node.annotation)
        fact = self._lookup_fact(node)
        if fact is not None:
            return self._instantiate_fresh(fact)
        if node.is_constructor:
            info = self.constructors.lookup(node.name, node.import_from)
            if info is not None:
                return self._instantiate_fresh(info.constructor_type)
            if not node.import_from:
                self._report(UnknownConstructor(node.name), node.location)
        # No type known: a placeholder that unifies with anything
        if node.qualified_name not in self.unresolved:
            self.unresolved.append(node.qualified_name)
        logger.debug(f"no type for {node.qualified_name}, using a placeholder variable")
        return self.store.fresh()

    def visit_let_in(self, node: LetIn) -> Type:
        with self._scope():
            for binding in node.bindings:
                self._infer_binding(binding)
            return self.infer(node.body)

    def _infer_binding(self, binding: LetBinding) -> None:
        recursive = isinstance(binding.value, Lambda)
        placeholder = None
        if recursive:
            placeholder = self.store.fresh()
            self._set_var(binding.name, _mono(placeholder))
        t = self.infer(binding.value)
        if placeholder is not None:
            t = self._unify_at(binding.location, placeholder, t)
            del self._scope_stack[-1][binding.name]
        scheme = self._generalize(t)
        self._set_var(binding.name, scheme)
        logger.debug(f"let {binding.name} : {scheme.type} (quantified {sorted(map(str, scheme.quantified))})")

    def visit_case_of(self, node: CaseOf) -> Type:
        subject_t = self.infer(node.subject)
        if node.subject_type is not None:
            subject_t = self._unify_at(node.subject.location, self._instantiate_named(node.subject_type), subject_t)
        result: Optional[Type] = None
        for branch in node.branches:
            result = self._infer_branch(branch, subject_t, result)
        return result

    def _infer_branch(self, branch: Branch, subject_t: Type, result: Optional[Type]) -> Type:
        with self._scope():
            pattern_t = branch.pattern.accept(self)
            self._unify_at(branch.pattern.location, subject_t, pattern_t)
            body_t = self.infer(branch.body)
        if result is None:
            return body_t
        return self._unify_at(branch.body.location, result, body_t)

    def visit_operator(self, node: Operator) -> Type:
        info = lookup_operator(node.symbol)
        signature = self._instantiate_fresh(info.signature)
        left_t = self.infer(node.left)
        right_t = self.infer(node.right)
        self._unify_at(node.left.location or node.location, signature.param_types[0], left_t)
        self._unify_at(node.right.location or node.location, signature.param_types[1], right_t)
        return signature.return_type

    def visit_if_then_else(self, node: IfThenElse) -> Type:
        self._unify_at(node.condition.location, BOOL, self.infer(node.condition))
        then_t = self.infer(node.then_branch)
        else_t = self.infer(node.else_branch)
        return self._unify_at(node.else_branch.location, then_t, else_t)

    def visit_field_access(self, node: FieldAccess) -> Type:
        record_t = self.infer(node.record)
        resolved = self.store.shallow(record_t)
        if isinstance(resolved, RecordType):
            parts = self._record_parts(resolved, node.location)
            if parts is None:
                return self.store.fresh()
            fields, row = parts
            if node.field in fields:
                return fields[node.field]
            if row is None:
                self._report(UnboundRecordField(node.field, self.store.resolve(record_t)), node.location)
                return self.store.fresh()
        field_t = self.store.fresh()
        self._unify_at(node.location, RecordType(((node.field, field_t),), self.store.fresh()), record_t)
        return field_t

    # ------------------------------------------------------------------
    # Patterns (bind variables into the current scope)
    # ------------------------------------------------------------------

    def visit_constructor_pattern(self, node: ConstructorPattern) -> Type:
        arg_ts = [p.accept(self) for p in node.args]
        info = self.constructors.lookup(node.tag, node.module)
        if info is None:
            if not node.module:
                self._report(UnknownConstructor(node.tag), node.location)
            return self.store.fresh()
        mapping: Dict[str, TypeVar] = {}
        result = instantiate_generics(self.store, info.result, mapping)
        if info.arity != len(node.args):
            self._report(ArityMismatch(info.arity, len(node.args)), node.location)
            return result
        for p, arg_t, expected in zip(node.args, arg_ts, info.arg_types):
            self._unify_at(p.location, instantiate_generics(self.store, expected, mapping), arg_t)
        return result

    def visit_var_pattern(self, node: VarPattern) -> Type:
        t = self._instantiate_named(node.type) if node.type is not None else self.store.fresh()
        self._set_var(node.name, _mono(t))
        return t

    def visit_wildcard_pattern(self, node: WildcardPattern) -> Type:
        return self.store.fresh()

    def visit_literal_pattern(self, node: LiteralPattern) -> Type:
        return literal_type(node.value)


# ----------------------------------------------------------------------
# Public API
# ----------------------------------------------------------------------

def infer(start_index: int, expr: Expression, facts: Optional[Mapping[str, Type]] = None,
          constructors: Optional[ConstructorRegistry] = None,
          type_aliases: Optional[TypeAliases] = None) -> Tuple[int, InferenceDetails]:
    """
    Infer the type of ``expr``.

    Returns ``(next_index, details)``; ``next_index`` is greater than or
    equal to ``start_index`` and every variable allocated by this call has an
    identity in between.
    """
    store = TypeStore(start_index, type_aliases)
    engine = TypeInferenceEngine(store, facts, constructors)
    t = engine.infer(expr)
    details = engine.finish(t)
    logger.debug(f"inferred {details.type} with {len(details.errors)} error(s)")
    return store.next_index, details


def infer_declaration(start_index: int, decl: ValueDeclaration, facts: Optional[Mapping[str, Type]] = None,
                      constructors: Optional[ConstructorRegistry] = None,
                      type_aliases: Optional[TypeAliases] = None) -> Tuple[int, InferenceDetails]:
    """
    Infer a top-level declaration, checking it against its signature.

    Signature variables are rigid: a body that forces ``a`` to a concrete
    type, merges two signature variables, or adds a constraint the
    signature does not state is reported as CannotUnify.
    """
    store = TypeStore(start_index, type_aliases)
    engine = TypeInferenceEngine(store, facts, constructors)
    location = decl.location

    sig_vars: Dict[str, TypeVar] = {}
    sig_t: Optional[Type] = None
    if decl.signature is not None:
        sig_t = instantiate_generics(store, decl.signature, sig_vars)
        generics = frozenset(v.identity for v in type_vars(decl.signature) if v.is_generic)
        engine._set_var(decl.name, Scheme(generics, decl.signature))
    else:
        engine._set_var(decl.name, _mono(store.fresh()))

    t = engine.infer(decl.expression)
    if sig_t is None:
        t = engine._unify_at(location, engine._get_var(decl.name).type, t)
    else:
        t = engine._unify_at(location, sig_t, t)
        _check_rigid(engine, sig_vars, location)

    details = engine.finish(t)
    logger.debug(f"{decl.name} : {details.type} ({len(details.errors)} error(s))")
    return store.next_index, details


def _check_rigid(engine: TypeInferenceEngine, sig_vars: Dict[str, TypeVar],
                 location: Optional[SourceLocation]) -> None:
    seen: Dict[VarIdentity, str] = {}
    for name, var in sig_vars.items():
        resolved = engine.store.resolve(var)
        if not isinstance(resolved, TypeVar):
            engine._report(CannotUnify(TypeVar(name), resolved), location)
        elif resolved.identity in seen:
            engine._report(CannotUnify(TypeVar(seen[resolved.identity]), TypeVar(name)), location)
        elif resolved.constraint != constraint_of_name(name):
            engine._report(CannotUnify(TypeVar(name), resolved), location)
        else:
            seen[resolved.identity] = name


# ----------------------------------------------------------------------
# Re-annotation
# ----------------------------------------------------------------------

class _Annotator(ASTVisitor[Expression]):
    """Rebuilds a tree with every expression annotated with its generalized type."""

    def __init__(self, details: InferenceDetails):
        self.annotations = details.annotations
        self.names = name_type_vars(details.annotations.types())

    def _annotate(self, original: Expression, rebuilt: Expression) -> Expression:
        t = self.annotations.get(original)
        if t is None:
            return rebuilt
        return rebuilt.with_annotation(generalize_names(t, self.names))

    def visit_literal(self, node: Literal) -> Expression:
        return self._annotate(node, node)

    def visit_unit(self, node: UnitLit) -> Expression:
        return self._annotate(node, node)

    def visit_value_ref(self, node: ValueRef) -> Expression:
        return self._annotate(node, node)

    def visit_list(self, node: ListLit) -> Expression:
        return self._annotate(node, node.replace(elements=tuple(e.accept(self) for e in node.elements)))

    def visit_tuple(self, node: TupleLit) -> Expression:
        return self._annotate(node, node.replace(elements=tuple(e.accept(self) for e in node.elements)))

    def visit_record(self, node: RecordLit) -> Expression:
        fields = tuple((name, value.accept(self)) for name, value in node.fields)
        return self._annotate(node, node.replace(fields=fields))

    def visit_record_update(self, node: RecordUpdate) -> Expression:
        fields = tuple((name, value.accept(self)) for name, value in node.fields)
        return self._annotate(node, node.replace(base=node.base.accept(self), fields=fields))

    def visit_lambda(self, node: Lambda) -> Expression:
        params = tuple(Param(p.name) for p in node.params)
        return self._annotate(node, node.replace(params=params, body=node.body.accept(self)))

    def visit_apply(self, node: Apply) -> Expression:
        args = tuple(a.accept(self) for a in node.args)
        return self._annotate(node, node.replace(fn=node.fn.accept(self), args=args))

    def visit_let_in(self, node: LetIn) -> Expression:
        bindings = tuple(LetBinding(b.name, b.value.accept(self), b.location) for b in node.bindings)
        return self._annotate(node, node.replace(bindings=bindings, body=node.body.accept(self)))

    def visit_case_of(self, node: CaseOf) -> Expression:
        branches = tuple(Branch(_strip_pattern(b.pattern), b.body.accept(self)) for b in node.branches)
        rebuilt = node.replace(subject=node.subject.accept(self), subject_type=None, branches=branches)
        return self._annotate(node, rebuilt)

    def visit_operator(self, node: Operator) -> Expression:
        return self._annotate(node, node.replace(left=node.left.accept(self), right=node.right.accept(self)))

    def visit_if_then_else(self, node: IfThenElse) -> Expression:
        rebuilt = node.replace(condition=node.condition.accept(self), then_branch=node.then_branch.accept(self),
                               else_branch=node.else_branch.accept(self))
        return self._annotate(node, rebuilt)

    def visit_field_access(self, node: FieldAccess) -> Expression:
        return self._annotate(node, node.replace(record=node.record.accept(self)))


def _strip_pattern(pattern):
    # Pattern variable types are carried by the annotations of the nodes that use them
    if isinstance(pattern, VarPattern) and pattern.type is not None:
        return pattern.replace(type=None)
    if isinstance(pattern, ConstructorPattern) and pattern.args:
        return pattern.replace(args=tuple(_strip_pattern(a) for a in pattern.args))
    return pattern


def with_annotations(expr: Expression, details: InferenceDetails) -> Expression:
    """
    New tree in which every expression node carries its generalized inferred
    type as annotation. Inferring the result again gives the same type (up
    to variable naming) and no errors.
    """
    return expr.accept(_Annotator(details))
