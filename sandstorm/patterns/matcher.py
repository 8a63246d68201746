"""
Matching of request paths against compiled rules.

A rule of N placeholders yields exactly N values on a match and an empty
list otherwise. "No route" (``rule is None``) behaves like "no match".
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from .compiler.compiler import CompiledRule
from ..faults import RouteNotFoundError


@dataclass
class MatchResult:
    """Result of matching a path against a rule."""
    rule: CompiledRule
    values: List[Any]

    @property
    def params(self) -> Dict[str, Any]:
        """Values keyed by placeholder name. Later duplicates win."""
        return {p.name: v for p, v in zip(self.rule.params, self.values)}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "pattern": self.rule.raw,
            "values": self.values,
        }


def normalize_path(path: str) -> str:
    """Path component of a request URI, without surrounding slashes."""
    if not path:
        return ""
    return path.split("?", 1)[0].split("#", 1)[0].strip("/")


def match(rule: Optional[CompiledRule], path: str, *, cast: bool = False) -> Optional[MatchResult]:
    """
    Match a request path against a rule.

    Args:
        rule: Compiled rule, or None when the action declares no route
        path: Request path or URI (query string is ignored)
        cast: Convert values with the placeholder kind's castor

    Returns:
        MatchResult, or None on no match / no route
    """
    if rule is None:
        return None

    found = rule.compiled_re.match(normalize_path(path))
    if found is None:
        return None

    values: List[Any] = list(found.groups())
    if cast:
        values = [p.castor(v) for p, v in zip(rule.params, values)]
    return MatchResult(rule=rule, values=values)


def extract(rule: Optional[CompiledRule], path: str, *, cast: bool = False) -> List[Any]:
    """Ordered parameter values, or ``[]`` when nothing matched."""
    result = match(rule, path, cast=cast)
    return result.values if result else []


def match_or_raise(rule: Optional[CompiledRule], path: str, *, cast: bool = False) -> MatchResult:
    """
    Like ``match`` but raises on a miss.

    Raises:
        RouteNotFoundError: No route, or the path does not match
    """
    result = match(rule, path, cast=cast)
    if result is None:
        raise RouteNotFoundError(path, rule.raw if rule else None)
    return result
