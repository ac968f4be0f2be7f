"""
Frontend: Elm source to expression trees
"""

from .parser import Parser, ParseError

__all__ = ['Parser', 'ParseError']
