"""
Tree Serialization to S-Expressions
===================================

Dumps expression trees and types in a canonical S-expression format for
debugging and test snapshots. Two structurally equal trees always serialize
to the same text, so snapshots compare trees without relying on node
identity.

Uses structured sexpr (nested lists + sexpdata.Symbol), then pretty-prints
for readable output.
"""

from typing import Any

import sexpdata

from .nodes import (
    ASTNode, Char, Literal, ListLit, TupleLit, UnitLit, RecordLit, RecordUpdate, Lambda, Apply,
    ValueRef, LetIn, CaseOf, Operator, IfThenElse, FieldAccess, ConstructorPattern, VarPattern,
    WildcardPattern, LiteralPattern, ValueDeclaration, CustomTypeDeclaration, AliasDeclaration,
    Module,
)
from .types import (
    Type, UnitType, PrimitiveType, NamedType, FunctionType, RecordType, TupleType, TypeVar,
)


def _pretty_dumps(sexpr: Any, indent: int = 0, indent_str: str = "  ", max_line: int = 100) -> str:
    """
    Pretty-print structured sexpr. Keeps short forms on one line; breaks only when needed.
    """
    if sexpr is None:
        return "()"
    if isinstance(sexpr, bool):
        return "true" if sexpr else "false"
    if isinstance(sexpr, (int, float)):
        return repr(sexpr)
    # Check Symbol before str
    if isinstance(sexpr, sexpdata.Symbol):
        return sexpr.value()
    if isinstance(sexpr, str):
        escaped = sexpr.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n")
        return f'"{escaped}"'
    if isinstance(sexpr, list):
        if not sexpr:
            return "()"
        parts = [_pretty_dumps(e, indent + 1, indent_str, max_line) for e in sexpr]
        one_line = "(" + " ".join(parts) + ")"
        if len(one_line) + len(indent_str) * indent <= max_line and "\n" not in one_line:
            return one_line
        prefix = indent_str * indent
        next_prefix = indent_str * (indent + 1)
        # Head stays on the opening line
        rest = "\n".join(next_prefix + p for p in parts[1:])
        inner = parts[0] + ("\n" + rest if rest else "")
        return f"({inner}\n{prefix})"
    return str(sexpr)


def serialize_expression(node: ASTNode, include_location: bool = False,
                         include_annotations: bool = False, pretty: bool = True) -> str:
    """
    Serialize a node (expression, pattern, declaration or module) to an
    S-expression string.

    Args:
        node: node to serialize
        include_location: append ``:loc "file:line:col"`` to parsed nodes
        include_annotations: append ``:type`` for annotated expressions
        pretty: pretty-print (default True); False gives one compact line
    """
    serializer = TreeSerializer(include_location=include_location,
                                include_annotations=include_annotations)
    sexpr = serializer.serialize_to_sexpr(node)
    if pretty:
        return _pretty_dumps(sexpr)
    return sexpdata.dumps(sexpr)


def serialize_type(t: Type) -> str:
    return sexpdata.dumps(TreeSerializer().serialize_type(t))


class TreeSerializer:
    """Expression tree to structured S-expression serializer."""

    def __init__(self, include_location: bool = False, include_annotations: bool = False):
        self.include_location = include_location
        self.include_annotations = include_annotations

    def _sym(self, s: str) -> sexpdata.Symbol:
        return sexpdata.Symbol(s)

    def serialize_to_sexpr(self, node: Any) -> Any:
        if node is None:
            return [self._sym("nil")]
        method = getattr(self, f"_serialize_{type(node).__name__}", None)
        if method is None:
            return [self._sym(type(node).__name__), self._sym("...")]
        core = method(node)
        return self._add_metadata(node, core)

    def _add_metadata(self, node: Any, core: list) -> list:
        result = list(core)
        if self.include_annotations and getattr(node, 'annotation', None) is not None:
            result.extend([self._sym(":type"), self.serialize_type(node.annotation)])
        if self.include_location and getattr(node, 'location', None) is not None:
            result.extend([self._sym(":loc"), str(node.location)])
        return result

    # Types

    def serialize_type(self, t: Type) -> Any:
        if isinstance(t, UnitType):
            return self._sym("unit")
        if isinstance(t, PrimitiveType):
            return self._sym(t.name)
        if isinstance(t, NamedType):
            return [self._sym("named"), t.qualified_name] + [self.serialize_type(a) for a in t.args]
        if isinstance(t, FunctionType):
            params = [self.serialize_type(p) for p in t.param_types]
            return [self._sym("fn"), params, self.serialize_type(t.return_type)]
        if isinstance(t, RecordType):
            fields = [[self._sym(name), self.serialize_type(ft)] for name, ft in t.fields]
            head = [self._sym("record")]
            if t.row is not None:
                head += [self._sym(":row"), self.serialize_type(t.row)]
            return head + fields
        if isinstance(t, TupleType):
            return [self._sym("tuple")] + [self.serialize_type(e) for e in t.element_types]
        if isinstance(t, TypeVar):
            return [self._sym("var"), t.identity]
        return self._sym("unknown")

    # Expressions

    def _literal_value(self, value: Any) -> Any:
        if isinstance(value, Char):
            return [self._sym("char"), value.value]
        return value

    def _serialize_Literal(self, node: Literal) -> list:
        return [self._sym("literal"), self._literal_value(node.value)]

    def _serialize_ListLit(self, node: ListLit) -> list:
        return [self._sym("list")] + [self.serialize_to_sexpr(e) for e in node.elements]

    def _serialize_TupleLit(self, node: TupleLit) -> list:
        return [self._sym("tuple")] + [self.serialize_to_sexpr(e) for e in node.elements]

    def _serialize_UnitLit(self, node: UnitLit) -> list:
        return [self._sym("unit")]

    def _serialize_RecordLit(self, node: RecordLit) -> list:
        return [self._sym("record")] + [[self._sym(name), self.serialize_to_sexpr(v)] for name, v in node.fields]

    def _serialize_RecordUpdate(self, node: RecordUpdate) -> list:
        fields = [[self._sym(name), self.serialize_to_sexpr(v)] for name, v in node.fields]
        return [self._sym("update"), self.serialize_to_sexpr(node.base)] + fields

    def _serialize_Lambda(self, node: Lambda) -> list:
        params = []
        for p in node.params:
            if p.type is None:
                params.append(self._sym(p.name))
            else:
                params.append([self._sym(p.name), self.serialize_type(p.type)])
        return [self._sym("lambda"), params, self.serialize_to_sexpr(node.body)]

    def _serialize_Apply(self, node: Apply) -> list:
        return [self._sym("apply"), self.serialize_to_sexpr(node.fn)] + [self.serialize_to_sexpr(a) for a in node.args]

    def _serialize_ValueRef(self, node: ValueRef) -> list:
        return [self._sym("ref"), node.qualified_name]

    def _serialize_LetIn(self, node: LetIn) -> list:
        bindings = [[self._sym(b.name), self.serialize_to_sexpr(b.value)] for b in node.bindings]
        return [self._sym("let"), bindings, self.serialize_to_sexpr(node.body)]

    def _serialize_CaseOf(self, node: CaseOf) -> list:
        result = [self._sym("case"), self.serialize_to_sexpr(node.subject)]
        if node.subject_type is not None:
            result += [self._sym(":subject-type"), self.serialize_type(node.subject_type)]
        for branch in node.branches:
            result.append([self._sym("branch"), self.serialize_to_sexpr(branch.pattern),
                           self.serialize_to_sexpr(branch.body)])
        return result

    def _serialize_Operator(self, node: Operator) -> list:
        return [self._sym(node.symbol), self.serialize_to_sexpr(node.left), self.serialize_to_sexpr(node.right)]

    def _serialize_IfThenElse(self, node: IfThenElse) -> list:
        return [self._sym("if"), self.serialize_to_sexpr(node.condition),
                self.serialize_to_sexpr(node.then_branch), self.serialize_to_sexpr(node.else_branch)]

    def _serialize_FieldAccess(self, node: FieldAccess) -> list:
        return [self._sym("access"), self.serialize_to_sexpr(node.record), self._sym(node.field)]

    # Patterns

    def _serialize_ConstructorPattern(self, node: ConstructorPattern) -> list:
        tag = ".".join(node.module + (node.tag,))
        return [self._sym("pctor"), tag] + [self.serialize_to_sexpr(a) for a in node.args]

    def _serialize_VarPattern(self, node: VarPattern) -> list:
        return [self._sym("pvar"), self._sym(node.name)]

    def _serialize_WildcardPattern(self, node: WildcardPattern) -> list:
        return [self._sym("_")]

    def _serialize_LiteralPattern(self, node: LiteralPattern) -> list:
        return [self._sym("plit"), self._literal_value(node.value)]

    # Declarations

    def _serialize_ValueDeclaration(self, node: ValueDeclaration) -> list:
        result = [self._sym("def"), self._sym(node.name)]
        if node.signature is not None:
            result += [self._sym(":sig"), self.serialize_type(node.signature)]
        return result + [self.serialize_to_sexpr(node.expression)]

    def _serialize_CustomTypeDeclaration(self, node: CustomTypeDeclaration) -> list:
        variants = [[self._sym(v.tag)] + [self.serialize_type(a) for a in v.args] for v in node.variants]
        return [self._sym("type"), self._sym(node.name), [self._sym(p) for p in node.params]] + variants

    def _serialize_AliasDeclaration(self, node: AliasDeclaration) -> list:
        return [self._sym("alias"), self._sym(node.name), [self._sym(p) for p in node.params],
                self.serialize_type(node.aliased)]

    def _serialize_Module(self, node: Module) -> list:
        return [self._sym("module"), node.module_name] + [self.serialize_to_sexpr(d) for d in node.declarations]
