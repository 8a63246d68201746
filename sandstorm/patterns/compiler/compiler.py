"""
Compiler that transforms an AST into an anchored matching rule.
"""

import re
import json
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Callable, Pattern, Tuple

from .ast_nodes import PatternAST, StaticSegment, PlaceholderSegment, Bound
from ..grammar import KIND_PATTERNS


@dataclass(frozen=True)
class CompiledParam:
    """Compiled placeholder metadata."""
    index: int
    name: str
    kind: str
    bound: Optional[Bound]
    pattern: str
    castor: Callable[[str], Any]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "index": self.index,
            "name": self.name,
            "type": self.kind,
            "bound": str(self.bound) if self.bound else None,
            "pattern": self.pattern,
        }


@dataclass(frozen=True)
class CompiledRule:
    """
    Anchored matching rule plus the ordered placeholder list.

    ``regex`` is the anchored source text (``^...$``), usable outside
    Python as well, e.g. in a rewrite rule. Rules compiled from the same
    expression compare equal.
    """
    raw: str
    regex: str
    params: Tuple[CompiledParam, ...]
    static_prefix: str

    @property
    def compiled_re(self) -> Pattern:
        return _compile_regex(self.regex)

    @property
    def param_names(self) -> List[str]:
        return [p.name for p in self.params]

    def __len__(self) -> int:
        return len(self.params)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to JSON-serializable dict."""
        return {
            "raw": self.raw,
            "regex": self.regex,
            "static_prefix": self.static_prefix,
            "params": [p.to_dict() for p in self.params],
        }

    def to_json(self, indent: Optional[int] = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)


_REGEX_CACHE: Dict[str, Pattern] = {}


def _compile_regex(source: str) -> Pattern:
    compiled = _REGEX_CACHE.get(source)
    if compiled is None:
        compiled = re.compile(source)
        _REGEX_CACHE[source] = compiled
    return compiled


class PatternCompiler:
    """Compiles route expression ASTs into anchored rules."""

    def __init__(self, kinds: Optional[Dict[str, Tuple[str, Callable[[str], Any]]]] = None):
        self.kinds = dict(kinds or KIND_PATTERNS)

    def compile(self, ast: PatternAST) -> CompiledRule:
        """Compile AST into an anchored rule. Deterministic and side-effect free."""
        parts = ["^"]
        params = []

        for segment in ast.segments:
            if isinstance(segment, StaticSegment):
                parts.append(re.escape(segment.value))
            elif isinstance(segment, PlaceholderSegment):
                param = self._compile_param(segment, len(params))
                params.append(param)
                parts.append(f"({param.pattern})")

        parts.append("$")

        return CompiledRule(
            raw=ast.raw,
            regex="".join(parts),
            params=tuple(params),
            static_prefix=ast.get_static_prefix(),
        )

    def _compile_param(self, segment: PlaceholderSegment, index: int) -> CompiledParam:
        char_class, castor = self.kinds[segment.param_kind]
        quantifier = segment.bound.quantifier() if segment.bound else "+"

        return CompiledParam(
            index=index,
            name=segment.name,
            kind=segment.param_kind,
            bound=segment.bound,
            pattern=char_class + quantifier,
            castor=castor,
        )
