"""
Source Location (Span)

Only trees produced by the parser carry locations; trees built through the
construction API have none.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class SourceLocation:
    """
    Source location of a parsed node.

    - File, line, column (1-based), optional end line/column
    - Immutable (frozen) for hashability
    """
    file: str
    line: int
    column: int
    end_line: int = 0
    end_column: int = 0

    def __str__(self) -> str:
        """Format as file:line:column"""
        return f"{self.file}:{self.line}:{self.column}"
