"""
AST Visitor Pattern and Scope Management

This module provides:
1. ASTVisitor (abstract visitor with default traversal)
2. ScopedASTVisitor (visitor + lexical scope stack)

Leaf nodes (literals, value references, leaf patterns) have no default and
must be implemented by every visitor; nodes with children are traversed by
default so a visitor only overrides what it cares about.
"""

from typing import TypeVar, Generic, Dict, List, Optional, TYPE_CHECKING
from abc import ABC, abstractmethod
from contextlib import contextmanager

if TYPE_CHECKING:
    from .nodes import (
        Literal, ListLit, TupleLit, UnitLit, RecordLit, RecordUpdate, Lambda, Apply, ValueRef,
        LetIn, CaseOf, Operator, IfThenElse, FieldAccess, ConstructorPattern, VarPattern,
        WildcardPattern, LiteralPattern, ValueDeclaration, CustomTypeDeclaration,
        AliasDeclaration, Module,
    )

T = TypeVar('T')
V = TypeVar('V')


class ASTVisitor(ABC, Generic[T]):
    """
    Base visitor with default traversal for all nodes.

    Usage:
        class Counter(ASTVisitor[None]):
            def visit_literal(self, node):
                self.count += 1
            def visit_value_ref(self, node):
                pass
            ...
    """

    # Leaf nodes - no default implementation
    @abstractmethod
    def visit_literal(self, node: 'Literal') -> T:
        raise NotImplementedError(f"{self.__class__.__name__} must implement visit_literal()")

    @abstractmethod
    def visit_value_ref(self, node: 'ValueRef') -> T:
        raise NotImplementedError(f"{self.__class__.__name__} must implement visit_value_ref()")

    def visit_unit(self, node: 'UnitLit') -> T:
        pass

    # Expressions with children
    def visit_list(self, node: 'ListLit') -> T:
        for elem in node.elements:
            elem.accept(self)

    def visit_tuple(self, node: 'TupleLit') -> T:
        for elem in node.elements:
            elem.accept(self)

    def visit_record(self, node: 'RecordLit') -> T:
        for _, value in node.fields:
            value.accept(self)

    def visit_record_update(self, node: 'RecordUpdate') -> T:
        node.base.accept(self)
        for _, value in node.fields:
            value.accept(self)

    def visit_lambda(self, node: 'Lambda') -> T:
        node.body.accept(self)

    def visit_apply(self, node: 'Apply') -> T:
        node.fn.accept(self)
        for arg in node.args:
            arg.accept(self)

    def visit_let_in(self, node: 'LetIn') -> T:
        for binding in node.bindings:
            binding.value.accept(self)
        node.body.accept(self)

    def visit_case_of(self, node: 'CaseOf') -> T:
        node.subject.accept(self)
        for branch in node.branches:
            branch.pattern.accept(self)
            branch.body.accept(self)

    def visit_operator(self, node: 'Operator') -> T:
        node.left.accept(self)
        node.right.accept(self)

    def visit_if_then_else(self, node: 'IfThenElse') -> T:
        node.condition.accept(self)
        node.then_branch.accept(self)
        node.else_branch.accept(self)

    def visit_field_access(self, node: 'FieldAccess') -> T:
        node.record.accept(self)

    # Patterns
    def visit_constructor_pattern(self, node: 'ConstructorPattern') -> T:
        for arg in node.args:
            arg.accept(self)

    def visit_var_pattern(self, node: 'VarPattern') -> T:
        pass

    def visit_wildcard_pattern(self, node: 'WildcardPattern') -> T:
        pass

    def visit_literal_pattern(self, node: 'LiteralPattern') -> T:
        pass

    # Declarations
    def visit_value_declaration(self, node: 'ValueDeclaration') -> T:
        node.expression.accept(self)

    def visit_custom_type_declaration(self, node: 'CustomTypeDeclaration') -> T:
        """Type-level only, no expression children"""
        pass

    def visit_alias_declaration(self, node: 'AliasDeclaration') -> T:
        pass

    def visit_module(self, node: 'Module') -> T:
        for decl in node.declarations:
            decl.accept(self)


class ScopedASTVisitor(ASTVisitor[T], Generic[T, V]):
    """
    Visitor with a lexical scope stack (name -> V).

    Usage:
        with self._scope():
            self._set_var("x", value)
            node.body.accept(self)
        # scope exited, "x" gone
    """

    def __init__(self):
        # Index 0 is the outermost scope
        self._scope_stack: List[Dict[str, V]] = [{}]

    @contextmanager
    def _scope(self):
        """Enter a scope for the duration of the with-block."""
        self._scope_stack.append({})
        try:
            yield
        finally:
            self._scope_stack.pop()

    def _set_var(self, var_name: str, value: V) -> None:
        """Bind in the innermost scope (shadows outer bindings)."""
        self._scope_stack[-1][var_name] = value

    def _get_var(self, var_name: str) -> Optional[V]:
        """Innermost binding of var_name, or None."""
        for scope in reversed(self._scope_stack):
            if var_name in scope:
                return scope[var_name]
        return None

    def _all_bindings(self) -> List[V]:
        return [value for scope in self._scope_stack for value in scope.values()]

    def _scope_depth(self) -> int:
        return len(self._scope_stack)
