"""
Parser

Parses Elm source (the subset elmgen renders) back into expression trees
and modules. Used to check that rendered output round-trips and by the CLI.
"""

import logging
from pathlib import Path
from typing import Dict, Optional, Tuple

from lark import Lark, Tree
from lark.exceptions import UnexpectedInput, VisitError, LarkError

from ..shared.errors import ElmgenError
from ..shared.nodes import Expression, Module
from ..shared.source_location import SourceLocation
from .layout import LayoutPostLexer
from .transformers.base import ElmTransformer

logger = logging.getLogger("elmgen.frontend.parser")

ModulePath = Tuple[str, ...]


class ParseError(ElmgenError):
    """Parse error with source location"""

    def __init__(self, message: str, source_file: str, location: Optional[SourceLocation] = None):
        super().__init__(message, location)
        self.source_file = source_file


def _load(start: str, module_mode: bool) -> Lark:
    grammar_path = Path(__file__).parent / "grammar.lark"
    return Lark.open(
        str(grammar_path),
        start=start,
        parser='lalr',
        lexer='basic',
        postlex=LayoutPostLexer(module_mode=module_mode),
        propagate_positions=True,
        maybe_placeholders=False,
    )


def _import_aliases(tree: Tree) -> Dict[ModulePath, str]:
    """``import X as Y`` lines, read before transforming so names can be expanded."""
    aliases: Dict[ModulePath, str] = {}
    for stmt in tree.find_data("import_stmt"):
        tokens = [c for c in stmt.children if not isinstance(c, Tree)]
        if len(tokens) >= 2:
            aliases[tuple(str(tokens[0]).split("."))] = str(tokens[1])
    return aliases


class Parser:
    """
    Usage:
        parser = Parser()
        module = parser.parse_module(source, "src/Main.elm")
        expr = parser.parse_expression("List.map f xs")
    """

    def __init__(self):
        self.module_parser = _load("module", module_mode=True)
        self.expression_parser = _load("expression", module_mode=False)

    def parse_module(self, source: str, source_file: str = "Main.elm") -> Module:
        tree = self._parse(self.module_parser, source, source_file)
        aliases = _import_aliases(tree)
        return self._transform(tree, ElmTransformer(source_file, aliases), source_file)

    def parse_expression(self, source: str, source_file: str = "<expression>",
                         aliases: Optional[Dict[ModulePath, str]] = None) -> Expression:
        tree = self._parse(self.expression_parser, source, source_file)
        return self._transform(tree, ElmTransformer(source_file, aliases), source_file)

    def _parse(self, lark: Lark, source: str, source_file: str) -> Tree:
        try:
            return lark.parse(source)
        except UnexpectedInput as e:
            location = SourceLocation(source_file, e.line, e.column)
            raise ParseError(f"Parse error: {_describe(e)}", source_file, location) from e
        except LarkError as e:
            raise ParseError(f"Parse error: {e}", source_file) from e

    def _transform(self, tree: Tree, transformer: ElmTransformer, source_file: str):
        try:
            result = transformer.transform(tree)
        except VisitError as e:
            if not isinstance(e.orig_exc, (ElmgenError, ValueError)):
                raise
            location = None
            meta = getattr(e.obj, "meta", None)
            if meta is not None and not meta.empty:
                location = SourceLocation(source_file, meta.line, meta.column, meta.end_line, meta.end_column)
            raise ParseError(f"Parse error: {e.orig_exc}", source_file, location) from e.orig_exc
        logger.debug(f"parsed {source_file}")
        return result


def _describe(error: UnexpectedInput) -> str:
    token = getattr(error, "token", None)
    if token is not None:
        if token.type.startswith("_V"):
            return "unexpected indentation"
        return f"unexpected '{token}'"
    char = getattr(error, "char", None)
    if char is not None:
        return f"unexpected character '{char}'"
    return str(error).splitlines()[0]
