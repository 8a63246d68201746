"""
Parser for route expressions.

Scans the expression once, left to right, producing literal and placeholder
parts with span tracking for diagnostics.
"""

import re
from typing import List, Optional

from .ast_nodes import (
    PatternAST,
    StaticSegment,
    PlaceholderSegment,
    Bound,
    Span,
    AnnotationRoute,
    BaseSegment,
)
from ..diagnostics.errors import PatternSyntaxError
from ..grammar import KIND_PATTERNS, DEFAULT_KIND, ANNOTATION_TAG, ANNOTATION_SEPARATOR


_BOUND_RE = re.compile(r"^\s*([0-9]+)\s*(?:(-)\s*([0-9]*)\s*)?$")
_KIND_RE = re.compile(r"^\s*([A-Za-z_]+)\s*(?:\(([^)]*)\))?\s*$")
_ANNOTATION_RE = re.compile(re.escape(ANNOTATION_TAG) + r"\s+(.+)")


class PatternParser:
    """Parser for a single route expression."""

    def __init__(self, source: str):
        self.raw = source
        self.source = source.strip().strip("/")
        self.pos = 0

    def error(self, message: str, start: Optional[int] = None, end: Optional[int] = None) -> PatternSyntaxError:
        """Create syntax error at a position in the normalized expression."""
        start = self.pos if start is None else start
        end = start + 1 if end is None else end
        return PatternSyntaxError(
            message=message,
            span=Span(start, end),
            source=self.source,
        )

    def peek(self) -> Optional[str]:
        return self.source[self.pos] if self.pos < len(self.source) else None

    def advance(self) -> Optional[str]:
        if self.pos >= len(self.source):
            return None
        ch = self.source[self.pos]
        self.pos += 1
        return ch

    def parse(self) -> PatternAST:
        """Parse the expression into an AST."""
        segments: List[BaseSegment] = []

        while self.pos < len(self.source):
            ch = self.peek()
            if ch == "{":
                segments.append(self.parse_placeholder())
            elif ch == "}":
                raise self.error("Unmatched '}'")
            else:
                segments.append(self.parse_static())

        return PatternAST(raw=self.raw, segments=segments)

    def parse_static(self) -> StaticSegment:
        """Read literal text until the next brace."""
        start = self.pos
        while self.peek() is not None and self.peek() not in "{}":
            self.advance()
        return StaticSegment(value=self.source[start:self.pos], span=Span(start, self.pos))

    def parse_placeholder(self) -> PlaceholderSegment:
        """Parse ``{name}`` or ``{kind(bound):name}``."""
        start = self.pos
        self.advance()  # skip "{"

        close = self.source.find("}", self.pos)
        if close == -1:
            raise self.error("Unterminated placeholder", start, len(self.source))

        inner = self.source[self.pos:close]
        if "{" in inner:
            raise self.error("Nested '{' in placeholder", self.pos + inner.index("{"))
        self.pos = close + 1
        span = Span(start, self.pos)

        if ":" in inner:
            kind_spec, name = inner.rsplit(":", 1)
            kind, bound = self._parse_kind(kind_spec, start)
            typed = True
        else:
            name, kind, bound, typed = inner, DEFAULT_KIND, None, False

        name = name.strip()
        if not name:
            raise self.error("Placeholder name is empty", start, self.pos)
        if "/" in name:
            raise self.error(f"Placeholder name '{name}' contains '/'", start, self.pos)

        return PlaceholderSegment(
            name=name,
            param_kind=kind,
            bound=bound,
            typed=typed,
            span=span,
        )

    def _parse_kind(self, spec: str, start: int):
        match = _KIND_RE.match(spec)
        if not match:
            raise self.error(f"Invalid placeholder type '{spec}'", start, self.pos)

        kind, bound_text = match.group(1), match.group(2)
        if kind not in KIND_PATTERNS:
            err = self.error(f"Unknown placeholder type '{kind}'", start, self.pos)
            err.suggestions.append("Use one of: " + ", ".join(sorted(KIND_PATTERNS)))
            raise err

        if bound_text is None:
            return kind, None
        return kind, self._parse_bound(bound_text, start)

    def _parse_bound(self, text: str, start: int) -> Bound:
        match = _BOUND_RE.match(text)
        if not match:
            err = self.error(f"Invalid bound '{text}'", start, self.pos)
            err.suggestions.append("Write the bound as 'n', 'n-m' or 'n-'")
            raise err

        minimum = int(match.group(1))
        if match.group(2) is None:
            maximum = minimum
        elif match.group(3):
            maximum = int(match.group(3))
        else:
            maximum = None

        if minimum < 1 or (maximum is not None and maximum < minimum):
            raise self.error(f"Empty bound range '{text}'", start, self.pos)
        return Bound(minimum=minimum, maximum=maximum)


def parse_pattern(source: str) -> PatternAST:
    """
    Parse a route expression.

    Args:
        source: Expression such as ``user/{number(1-11):id}/profile``

    Returns:
        Parsed AST

    Raises:
        PatternSyntaxError: Malformed placeholder, type or bound
    """
    return PatternParser(source).parse()


def parse_annotation(text: str) -> Optional[AnnotationRoute]:
    """
    Extract the route from an annotation line.

    Accepts ``@router user/{id} -> show`` (the tag is optional). Returns
    ``None`` when the text declares no route, i.e. has no ``->``.
    """
    if not text:
        return None

    match = _ANNOTATION_RE.search(text)
    line = match.group(1) if match else text
    line = line.strip()

    if ANNOTATION_SEPARATOR not in line:
        return None

    expression, target = (part.strip() for part in line.split(ANNOTATION_SEPARATOR, 1))
    return AnnotationRoute(expression=expression, target=target)
