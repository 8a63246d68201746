"""
Route expressions - parser, compiler and matcher.

An action declares a path template with typed placeholders::

    user/{number(1-11):id}/profile
    blog/{string:slug}
    files/{name}

The compiler turns it into an anchored rule; the matcher extracts the
placeholder values, in declaration order, from a request path.
"""

from .compiler.parser import PatternParser, parse_pattern, parse_annotation
from .compiler.ast_nodes import (
    PatternAST,
    StaticSegment,
    PlaceholderSegment,
    Bound,
    Span,
    AnnotationRoute,
)
from .compiler.compiler import PatternCompiler, CompiledRule, CompiledParam
from .diagnostics.errors import PatternSyntaxError, PatternDiagnostic
from .matcher import MatchResult, match, extract, match_or_raise, normalize_path
from .cache import PatternCache, compile_pattern, get_global_cache

__all__ = [
    # Parser
    "PatternParser",
    "parse_pattern",
    "parse_annotation",
    # AST
    "PatternAST",
    "StaticSegment",
    "PlaceholderSegment",
    "Bound",
    "Span",
    "AnnotationRoute",
    # Compiler
    "PatternCompiler",
    "CompiledRule",
    "CompiledParam",
    # Diagnostics
    "PatternSyntaxError",
    "PatternDiagnostic",
    # Matcher
    "MatchResult",
    "match",
    "extract",
    "match_or_raise",
    "normalize_path",
    # Caching
    "PatternCache",
    "compile_pattern",
    "get_global_cache",
]
