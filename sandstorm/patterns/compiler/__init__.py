"""
Route expression compiler: parser, AST and rule compiler.
"""

from .parser import PatternParser, parse_pattern, parse_annotation
from .compiler import PatternCompiler, CompiledRule, CompiledParam

__all__ = [
    "PatternParser",
    "parse_pattern",
    "parse_annotation",
    "PatternCompiler",
    "CompiledRule",
    "CompiledParam",
]
