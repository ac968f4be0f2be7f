"""
Import Tracker

Collects the ``import`` lines a rendered tree needs: every module referenced
by a qualified value, constructor pattern or type, minus Elm's implicit
imports. Result is deduplicated by module and sorted by dotted name.
"""

import logging
from typing import Dict, Iterable, List, Optional, Set, Tuple

from ..shared.ast_visitor import ASTVisitor
from ..shared.nodes import (
    ASTNode, ImportStatement, Literal, ValueRef, ConstructorPattern, ValueDeclaration,
    CustomTypeDeclaration, AliasDeclaration,
)
from ..shared.types import Type, NamedType, FunctionType, RecordType, TupleType
from ..utils.config import DEFAULT_IMPORTS

logger = logging.getLogger("elmgen.passes.imports")

ModulePath = Tuple[str, ...]


def type_modules(t: Optional[Type]) -> Set[ModulePath]:
    """Modules named by the NamedTypes inside ``t``."""
    found: Set[ModulePath] = set()

    def walk(node: Type) -> None:
        if isinstance(node, NamedType):
            if node.module:
                found.add(node.module)
            for a in node.args:
                walk(a)
        elif isinstance(node, FunctionType):
            for p in node.param_types:
                walk(p)
            walk(node.return_type)
        elif isinstance(node, RecordType):
            for _, ft in node.fields:
                walk(ft)
        elif isinstance(node, TupleType):
            for e in node.element_types:
                walk(e)

    if t is not None:
        walk(t)
    return found


class ImportCollector(ASTVisitor[None]):
    """Walks a tree and records every module it references."""

    def __init__(self):
        self.modules: Set[ModulePath] = set()

    def _add(self, module: ModulePath) -> None:
        if module:
            self.modules.add(module)

    def _add_type(self, t: Optional[Type]) -> None:
        self.modules.update(type_modules(t))

    def visit_literal(self, node: Literal) -> None:
        pass

    def visit_value_ref(self, node: ValueRef) -> None:
        self._add(node.import_from)

    def visit_constructor_pattern(self, node: ConstructorPattern) -> None:
        self._add(node.module)
        for arg in node.args:
            arg.accept(self)

    def visit_value_declaration(self, node: ValueDeclaration) -> None:
        self._add_type(node.signature)
        node.expression.accept(self)

    def visit_custom_type_declaration(self, node: CustomTypeDeclaration) -> None:
        for variant in node.variants:
            for arg in variant.args:
                self._add_type(arg)

    def visit_alias_declaration(self, node: AliasDeclaration) -> None:
        self._add_type(node.aliased)


def imports_for(modules: Iterable[ModulePath],
                aliases: Optional[Dict[ModulePath, str]] = None) -> List[ImportStatement]:
    """Import statements for ``modules``, skipping the implicit ones."""
    aliases = aliases or {}
    needed = sorted({m for m in modules if m and m not in DEFAULT_IMPORTS}, key=".".join)
    return [ImportStatement(m, aliases.get(m)) for m in needed]


def collect_imports(node: ASTNode, aliases: Optional[Dict[ModulePath, str]] = None,
                    extra_types: Iterable[Optional[Type]] = ()) -> List[ImportStatement]:
    """
    Imports needed by ``node`` (an expression, declaration or module).

    ``extra_types`` are types rendered alongside the tree, such as an
    inferred signature, whose modules must be imported too.
    """
    collector = ImportCollector()
    node.accept(collector)
    for t in extra_types:
        collector._add_type(t)
    imports = imports_for(collector.modules, aliases)
    logger.debug(f"collected {len(imports)} import(s): {[i.module_name for i in imports]}")
    return imports
