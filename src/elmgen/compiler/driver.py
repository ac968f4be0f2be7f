"""
Codegen Driver

Orchestrates a whole module: registers custom types and aliases, infers
every value declaration in order, and renders the file with one import
block.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from ..backends.elm import render_declaration, render_file_text, exposing_entry, signature_type
from ..frontend.parser import Parser, ParseError
from ..passes.imports import collect_imports
from ..passes.type_inference import InferenceDetails, TypeAliases, infer_declaration, with_annotations
from ..shared.errors import ErrorReporter, Error
from ..shared.nodes import (
    Declaration, ValueDeclaration, CustomTypeDeclaration, AliasDeclaration, ImportStatement, Module,
)
from ..shared.prelude import ConstructorRegistry, PRELUDE_CONSTRUCTORS
from ..shared.serialization import serialize_expression
from ..shared.types import Type, generalize_names, name_type_vars
from ..utils.config import DEFAULT_MODULE_NAME, TYPE_VARIABLE_ALPHABET, DUMP_TREES_ENV_VAR, TREE_DUMP_EXTENSION
from ..utils.io_utils import write_source_file

logger = logging.getLogger("elmgen.compiler.driver")

ModulePath = Tuple[str, ...]


@dataclass(frozen=True)
class DeclarationResult:
    """Inference outcome for one value declaration."""
    name: str
    details: InferenceDetails

    @property
    def ok(self) -> bool:
        return self.details.ok


class CodegenResult:
    """Result of formatting a source file"""

    def __init__(
        self,
        text: Optional[str] = None,
        module: Optional[Module] = None,
        declarations: Sequence[DeclarationResult] = (),
        reporter: Optional[ErrorReporter] = None,
        success: bool = False,
    ):
        self.text = text
        self.module = module
        self.declarations = list(declarations)
        self.reporter = reporter or ErrorReporter()
        self.success = success

    def has_errors(self) -> bool:
        return self.reporter.has_errors()

    @property
    def inference_ok(self) -> bool:
        return all(d.ok for d in self.declarations)


class _ModuleContext:
    """Constructors, aliases and facts visible to the declarations of one module."""

    def __init__(self, declarations: Iterable[Declaration], facts: Mapping[str, Type],
                 constructors: ConstructorRegistry, type_aliases: TypeAliases):
        self.constructors = constructors
        self.type_aliases = dict(type_aliases)
        self.facts: Dict[str, Type] = dict(facts)
        for decl in declarations:
            if isinstance(decl, CustomTypeDeclaration):
                self.constructors = self.constructors.with_custom_type(decl)
            elif isinstance(decl, AliasDeclaration):
                self.type_aliases[((), decl.name)] = (decl.params, decl.aliased)
            elif isinstance(decl, ValueDeclaration) and decl.signature is not None:
                # Signatures make later declarations visible to earlier ones
                self.facts[decl.name] = decl.signature


class CodegenDriver:
    """
    Usage:
        driver = CodegenDriver(facts={"Json.Decode.string": ...})
        text = driver.render_file(["Main"], declarations)
        result = driver.format_source(source, "src/Main.elm")

    With ``dump_dir`` set (or ELMGEN_DUMP_TREES in the environment), every
    rendered module is also written there as an S-expression with inferred
    types and source locations.
    """

    def __init__(self, facts: Optional[Mapping[str, Type]] = None,
                 constructors: Optional[ConstructorRegistry] = None,
                 type_aliases: Optional[TypeAliases] = None,
                 dump_dir: Optional[Union[Path, str]] = None):
        self.facts: Dict[str, Type] = dict(facts or {})
        self.constructors = constructors if constructors is not None else PRELUDE_CONSTRUCTORS
        self.type_aliases: TypeAliases = dict(type_aliases or {})
        self._parser: Optional[Parser] = None
        if dump_dir is None:
            dump_dir = os.environ.get(DUMP_TREES_ENV_VAR) or None
        self.dump_dir: Optional[Path] = Path(dump_dir) if dump_dir is not None else None

    @property
    def parser(self) -> Parser:
        if self._parser is None:
            self._parser = Parser()
        return self._parser

    def _context(self, declarations: Iterable[Declaration]) -> _ModuleContext:
        return _ModuleContext(declarations, self.facts, self.constructors, self.type_aliases)

    # ------------------------------------------------------------------
    # Checking
    # ------------------------------------------------------------------

    def check_file(self, module: Union[Module, Sequence[Declaration]],
                   start_index: int = 0) -> List[DeclarationResult]:
        """Infer every value declaration in order, threading the variable counter."""
        declarations = module.declarations if isinstance(module, Module) else tuple(module)
        context = self._context(declarations)
        results: List[DeclarationResult] = []
        next_index = start_index
        for decl in declarations:
            if not isinstance(decl, ValueDeclaration):
                continue
            next_index, details = infer_declaration(
                next_index, decl, context.facts, context.constructors, context.type_aliases)
            results.append(DeclarationResult(decl.name, details))
            inferred = signature_type(decl, details)
            if inferred is not None:
                context.facts[decl.name] = generalize_names(
                    inferred, name_type_vars([inferred], TYPE_VARIABLE_ALPHABET))
        logger.debug(f"checked {len(results)} declaration(s), next index {next_index}")
        return results

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def render_declaration(self, decl: Declaration, aliases: Optional[Dict[ModulePath, str]] = None,
                           details: Optional[InferenceDetails] = None) -> str:
        """Render one declaration; a value declaration is inferred first when no details are given."""
        if isinstance(decl, ValueDeclaration) and details is None and decl.signature is None:
            _, details = infer_declaration(0, decl, self.facts, self.constructors, self.type_aliases)
        return render_declaration(decl, details, aliases)

    def render_file(self, module: Union[Module, Sequence[str], str],
                    declarations: Optional[Sequence[Declaration]] = None,
                    aliases: Optional[Dict[ModulePath, str]] = None) -> str:
        """
        Render a complete module.

        ``module`` is either a Module (its own declarations, aliases and
        explicit imports are used) or a module name with ``declarations``.
        """
        if isinstance(module, Module):
            name = module.name
            declarations = module.declarations
            aliases = dict(module.aliases) if aliases is None else aliases
            explicit = module.imports
            expose_all = module.expose_all
        else:
            name = tuple(module.split(".")) if isinstance(module, str) else tuple(module)
            declarations = tuple(declarations or ())
            explicit = ()
            expose_all = False
        name = name or (DEFAULT_MODULE_NAME,)
        aliases = aliases or {}

        results = {r.name: r.details for r in self.check_file(declarations)}
        top_level = [d.name for d in declarations if isinstance(d, ValueDeclaration)]
        rendered: List[str] = []
        extra_types: List[Type] = []
        for decl in declarations:
            details = results.get(decl.name) if isinstance(decl, ValueDeclaration) else None
            rendered.append(render_declaration(decl, details, aliases, top_level))
            if isinstance(decl, ValueDeclaration):
                sig = signature_type(decl, details)
                if sig is not None:
                    extra_types.append(sig)

        imports = merge_imports(explicit, self._collect(declarations, aliases, extra_types))
        exposing = [] if expose_all else [exposing_entry(d) for d in declarations if d.exposed]
        text = render_file_text(".".join(name), exposing, imports, rendered)
        if self.dump_dir is not None:
            tree = module if isinstance(module, Module) else Module(name, declarations)
            self.dump_tree(tree, results, self.dump_dir)
        logger.debug(f"rendered module {'.'.join(name)}: {len(declarations)} declaration(s), {len(imports)} import(s)")
        return text

    @staticmethod
    def _collect(declarations: Sequence[Declaration], aliases: Dict[ModulePath, str],
                 extra_types: Sequence[Type]) -> List[ImportStatement]:
        module = Module((DEFAULT_MODULE_NAME,), declarations)
        return collect_imports(module, aliases, extra_types)

    def dump_tree(self, module: Module, details: Mapping[str, InferenceDetails],
                  dump_dir: Union[Path, str]) -> Path:
        """Write ``module`` to ``<dump_dir>/<Module.Name>.sexpr`` with every expression annotated."""
        declarations = []
        for decl in module.declarations:
            if isinstance(decl, ValueDeclaration) and decl.name in details:
                decl = decl.replace(expression=with_annotations(decl.expression, details[decl.name]))
            declarations.append(decl)
        annotated = module.replace(declarations=tuple(declarations))
        text = serialize_expression(annotated, include_location=True, include_annotations=True)

        dump_dir = Path(dump_dir)
        dump_dir.mkdir(parents=True, exist_ok=True)
        path = dump_dir / f"{module.module_name or DEFAULT_MODULE_NAME}{TREE_DUMP_EXTENSION}"
        write_source_file(path, text + "\n")
        logger.debug(f"dumped {module.module_name} to {path}")
        return path

    # ------------------------------------------------------------------
    # Source files
    # ------------------------------------------------------------------

    def format_source(self, source: str, source_file: str = "Main.elm") -> CodegenResult:
        """
        Parse, check and re-render a source file. Inference errors are
        reported but do not stop rendering.
        """
        reporter = ErrorReporter({source_file: source})
        try:
            module = self.parser.parse_module(source, source_file)
        except ParseError as e:
            reporter.report(Error(e.message, e.location, code="E0001"))
            return CodegenResult(reporter=reporter, success=False)

        results = self.check_file(module)
        for result in results:
            for error in result.details.errors:
                reporter.report_inference_error(error, note=f"in the definition of `{result.name}`")
        text = self.render_file(module)
        return CodegenResult(text, module, results, reporter, success=True)


def merge_imports(explicit: Iterable[ImportStatement],
                  collected: Iterable[ImportStatement]) -> List[ImportStatement]:
    """One import per module, explicit imports winning, sorted by module name."""
    by_module: Dict[ModulePath, ImportStatement] = {}
    for stmt in collected:
        by_module[stmt.module] = stmt
    for stmt in explicit:
        by_module[stmt.module] = stmt
    return [by_module[m] for m in sorted(by_module, key=lambda m: ".".join(m))]
