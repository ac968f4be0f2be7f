"""
Layout Post-Lexer

Elm delimits ``let`` bindings, ``case`` branches and top-level items by
indentation. LayoutPostLexer sits between the lark lexer and the LALR parser
and turns indentation into the virtual tokens the grammar expects:

- ``_VOPEN`` before the first token after ``let`` / ``of``; that token's
  column becomes the block column
- ``_VSEP`` before a token starting a line at the block column
- ``_VCLOSE`` when a line starts left of the block column, before ``in``
  (for a ``let`` not yet closed), before a closing bracket or comma that ends
  the enclosing bracket, and at end of input
"""

import logging
from dataclasses import dataclass
from typing import Iterator, List, Optional

from lark.lark import PostLex
from lark.lexer import Token

logger = logging.getLogger("elmgen.frontend.layout")

_OPENERS = {"_LET": "let", "_OF": "of"}
_OPEN_BRACKETS = {"_LPAR", "_LSQB", "_LBRACE"}
_CLOSE_BRACKETS = {"_RPAR", "_RSQB", "_RBRACE"}

TOP = "top"
LET = "let"


@dataclass
class _Block:
    column: int
    kind: str
    depth: int  # bracket depth when the block was opened


class LayoutPostLexer(PostLex):
    """
    Usage:
        Lark.open(grammar, parser='lalr', lexer='basic', postlex=LayoutPostLexer(module_mode=True))

    In module mode the file is one permanent block at column 1.
    """

    always_accept = ()

    def __init__(self, module_mode: bool = False):
        self.module_mode = module_mode

    def process(self, stream: Iterator[Token]) -> Iterator[Token]:
        blocks: List[_Block] = [_Block(1, TOP, 0)] if self.module_mode else []
        depth = 0
        awaiting_in = 0
        pending_open: Optional[str] = None
        last_line: Optional[int] = None
        last: Optional[Token] = None

        def close(borrow: Token) -> Token:
            block = blocks.pop()
            logger.debug(f"close {block.kind} block at column {block.column}")
            return Token.new_borrow_pos("_VCLOSE", "", borrow)

        for token in stream:
            if pending_open is not None:
                blocks.append(_Block(token.column, pending_open, depth))
                pending_open = None
                yield Token.new_borrow_pos("_VOPEN", "", token)
            elif last_line is not None and token.line > last_line:
                while blocks and blocks[-1].kind != TOP and token.column < blocks[-1].column:
                    if blocks[-1].kind == LET:
                        awaiting_in += 1
                    yield close(token)
                if blocks and token.column == blocks[-1].column:
                    yield Token.new_borrow_pos("_VSEP", "", token)

            if token.type == "_IN":
                if awaiting_in:
                    awaiting_in -= 1
                else:
                    # `in` on the same line as the bindings closes the innermost let
                    while blocks and blocks[-1].kind != TOP:
                        kind = blocks[-1].kind
                        yield close(token)
                        if kind == LET:
                            break
            elif token.type in _CLOSE_BRACKETS or token.type == "_COMMA":
                while depth > 0 and blocks and blocks[-1].kind != TOP and blocks[-1].depth >= depth:
                    yield close(token)
                if token.type in _CLOSE_BRACKETS:
                    depth -= 1
            elif token.type in _OPEN_BRACKETS:
                depth += 1

            if token.type in _OPENERS:
                pending_open = _OPENERS[token.type]

            yield token
            last_line = token.end_line if token.end_line is not None else token.line
            last = token

        if last is not None:
            while blocks and blocks[-1].kind != TOP:
                yield close(last)
