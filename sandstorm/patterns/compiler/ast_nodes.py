"""
AST node definitions for route expressions.

These nodes represent the parsed structure of a route expression.
"""

from dataclasses import dataclass, field
from typing import Any, Optional, List, Dict
from enum import Enum


class SegmentKind(str, Enum):
    """Kind of expression part."""
    STATIC = "static"
    PLACEHOLDER = "placeholder"


@dataclass
class Span:
    """Source span for diagnostics."""
    start: int
    end: int

    @property
    def column(self) -> int:
        return self.start + 1

    def __repr__(self) -> str:
        return f"col {self.column} (pos {self.start}-{self.end})"


@dataclass(frozen=True)
class Bound:
    """Length bound of a placeholder: ``minimum`` to ``maximum`` characters."""
    minimum: int
    maximum: Optional[int]

    def quantifier(self) -> str:
        """Regex quantifier for this bound."""
        if self.maximum is None:
            return f"{{{self.minimum},}}"
        if self.maximum == self.minimum:
            return f"{{{self.minimum}}}"
        return f"{{{self.minimum},{self.maximum}}}"

    def __str__(self) -> str:
        if self.maximum is None:
            return f"{self.minimum}-"
        if self.maximum == self.minimum:
            return str(self.minimum)
        return f"{self.minimum}-{self.maximum}"


@dataclass
class BaseSegment:
    """Base class for expression parts."""
    kind: SegmentKind = field(default=SegmentKind.STATIC, init=False)
    span: Optional[Span] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind.value}


@dataclass
class StaticSegment(BaseSegment):
    """Literal text, matched verbatim."""
    value: str = ""

    def __post_init__(self):
        self.kind = SegmentKind.STATIC

    def to_dict(self) -> Dict[str, Any]:
        return {
            **super().to_dict(),
            "value": self.value,
        }


@dataclass
class PlaceholderSegment(BaseSegment):
    """Typed placeholder such as ``{number(1-11):id}``."""
    name: str = ""
    param_kind: str = "string"
    bound: Optional[Bound] = None
    typed: bool = False

    def __post_init__(self):
        self.kind = SegmentKind.PLACEHOLDER

    def to_dict(self) -> Dict[str, Any]:
        return {
            **super().to_dict(),
            "name": self.name,
            "type": self.param_kind,
            "bound": str(self.bound) if self.bound else None,
            "typed": self.typed,
        }


@dataclass
class PatternAST:
    """Root node of a parsed route expression."""
    raw: str
    segments: List[BaseSegment] = field(default_factory=list)

    def placeholders(self) -> List[PlaceholderSegment]:
        """Placeholders in declaration order."""
        return [s for s in self.segments if isinstance(s, PlaceholderSegment)]

    def get_param_names(self) -> List[str]:
        return [p.name for p in self.placeholders()]

    def get_static_prefix(self) -> str:
        """Literal text before the first placeholder."""
        prefix = []
        for segment in self.segments:
            if not isinstance(segment, StaticSegment):
                break
            prefix.append(segment.value)
        return "".join(prefix)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "raw": self.raw,
            "segments": [s.to_dict() for s in self.segments],
        }


@dataclass(frozen=True)
class AnnotationRoute:
    """A route declared in annotation form: ``expression -> target``."""
    expression: str
    target: str
