"""
Route expression diagnostics.
"""

from .errors import PatternDiagnostic, PatternSyntaxError

__all__ = ["PatternDiagnostic", "PatternSyntaxError"]
