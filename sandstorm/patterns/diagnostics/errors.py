"""
Diagnostic errors for route expressions.
"""

from dataclasses import dataclass
from typing import Optional, List
from ..compiler.ast_nodes import Span


@dataclass
class PatternDiagnostic:
    """Base class for all pattern diagnostics."""
    message: str
    span: Optional[Span] = None
    source: Optional[str] = None
    suggestions: List[str] = None

    def __post_init__(self):
        if self.suggestions is None:
            self.suggestions = []

    def format(self) -> str:
        """Format diagnostic for display, with a caret under the offending span."""
        parts = [f"{self.__class__.__name__}: {self.message}"]

        if self.source is not None and self.span is not None:
            parts.append(f"  | {self.source}")
            width = max(self.span.end - self.span.start, 1)
            parts.append("  | " + " " * self.span.start + "^" * width)
        elif self.span is not None:
            parts.append(f"  --> {self.span}")

        if self.suggestions:
            parts.append("\nSuggestions:")
            for i, suggestion in enumerate(self.suggestions, 1):
                parts.append(f"  {i}) {suggestion}")

        return "\n".join(parts)

    def __str__(self) -> str:
        return self.message


class PatternSyntaxError(PatternDiagnostic, Exception):
    """Syntax error in a route expression."""
    pass
