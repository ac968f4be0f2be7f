"""
Elm Tree Transformers
=====================

Parse tree to expression tree conversion, split by concern.
"""

from .base import ElmTransformer
from .literals import LiteralParser
from .expressions import OperatorChainParser
from .names import NameResolver

__all__ = [
    'ElmTransformer',
    'LiteralParser',
    'OperatorChainParser',
    'NameResolver',
]
