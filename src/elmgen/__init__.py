"""
elmgen: build Elm syntax trees in Python, type check them, and render
elm-format styled source with the imports it needs.
"""

from .passes.type_inference import infer, infer_declaration, with_annotations, InferenceDetails, NodeAnnotations
from .passes.imports import collect_imports
from .backends.elm import render, RenderedExpression
from .compiler.driver import CodegenDriver, CodegenResult
from .frontend.parser import Parser, ParseError

__version__ = "0.1.0"

__all__ = [
    "infer",
    "infer_declaration",
    "with_annotations",
    "InferenceDetails",
    "NodeAnnotations",
    "collect_imports",
    "render",
    "RenderedExpression",
    "CodegenDriver",
    "CodegenResult",
    "Parser",
    "ParseError",
]
