"""
Literal Parser
Decodes number, string and char tokens into Python values
"""

import re
from typing import Union

from ...shared.errors import ConstructionError
from ...shared.nodes import Char
from ...utils.config import STRING_QUOTE_CHAR, CHAR_QUOTE_CHAR

_SIMPLE_ESCAPES = {"n": "\n", "t": "\t", "r": "\r", '"': '"', "'": "'", "\\": "\\"}
_UNICODE_ESCAPE = re.compile(r"\\u\{([0-9A-Fa-f]+)\}")


class LiteralParser:
    """Token text to literal value"""

    @staticmethod
    def number(text: str) -> Union[int, float]:
        if any(c in text for c in ".eE"):
            return float(text)
        return int(text)

    @staticmethod
    def string(text: str) -> str:
        if not (text.startswith(STRING_QUOTE_CHAR) and text.endswith(STRING_QUOTE_CHAR)):
            raise ConstructionError(f"malformed string literal {text!r}")
        return LiteralParser.decode_escapes(text[1:-1])

    @staticmethod
    def char(text: str) -> Char:
        if not (text.startswith(CHAR_QUOTE_CHAR) and text.endswith(CHAR_QUOTE_CHAR)):
            raise ConstructionError(f"malformed char literal {text!r}")
        return Char(LiteralParser.decode_escapes(text[1:-1]))

    @staticmethod
    def decode_escapes(body: str) -> str:
        out = []
        i = 0
        while i < len(body):
            ch = body[i]
            if ch != "\\":
                out.append(ch)
                i += 1
                continue
            match = _UNICODE_ESCAPE.match(body, i)
            if match:
                out.append(chr(int(match.group(1), 16)))
                i = match.end()
                continue
            escape = body[i + 1:i + 2]
            if escape not in _SIMPLE_ESCAPES:
                raise ConstructionError(f"unknown escape sequence '\\{escape}'")
            out.append(_SIMPLE_ESCAPES[escape])
            i += 2
        return "".join(out)
