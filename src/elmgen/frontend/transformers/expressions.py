"""
Operator Chain Parser
Resolves a flat ``a + b * c`` chain into Operator nodes by precedence and
associativity
"""

from typing import List, Optional, Sequence

from ...shared.nodes import Expression, Operator
from ...shared.operators import Associativity, lookup_operator
from ...shared.source_location import SourceLocation


class OperatorChainParser:
    """Shunting-yard over the operands and operator symbols of one chain"""

    @staticmethod
    def build(operands: Sequence[Expression], symbols: Sequence[str],
              location: Optional[SourceLocation] = None) -> Expression:
        output: List[Expression] = [operands[0]]
        pending: List[str] = []

        def reduce() -> None:
            right = output.pop()
            left = output.pop()
            output.append(Operator(pending.pop(), left, right, location=location))

        for symbol, operand in zip(symbols, operands[1:]):
            info = lookup_operator(symbol)
            while pending:
                top = lookup_operator(pending[-1])
                if top.precedence > info.precedence or (
                        top.precedence == info.precedence and info.associativity != Associativity.RIGHT):
                    reduce()
                else:
                    break
            pending.append(symbol)
            output.append(operand)

        while pending:
            reduce()
        return output[0]
