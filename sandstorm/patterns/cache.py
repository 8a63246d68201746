"""
Caching layer for compiled rules.

Route expressions are immutable once declared, so a compiled rule can be
kept for the process lifetime. The cache is bounded (LRU) and thread-safe.
"""

import threading
import time
import hashlib
import logging
from dataclasses import dataclass
from typing import Optional, Dict, Any
from collections import OrderedDict

from .compiler.compiler import CompiledRule, PatternCompiler
from .compiler.parser import parse_pattern


logger = logging.getLogger("sandstorm.patterns")


@dataclass
class CacheStats:
    """Cache statistics for monitoring."""
    hits: int = 0
    misses: int = 0
    evictions: int = 0
    errors: int = 0
    total_compile_time: float = 0.0

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses
        return self.hits / total if total > 0 else 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "hits": self.hits,
            "misses": self.misses,
            "evictions": self.evictions,
            "errors": self.errors,
            "total_compile_time": self.total_compile_time,
            "hit_rate": self.hit_rate,
        }


class PatternCache:
    """Thread-safe LRU cache for compiled rules."""

    def __init__(self, max_size: int = 1000, compiler: Optional[PatternCompiler] = None):
        """
        Initialize pattern cache.

        Args:
            max_size: Maximum number of rules to cache
            compiler: Compiler used on a miss
        """
        self.max_size = max_size
        self.compiler = compiler or PatternCompiler()

        self._cache: "OrderedDict[str, CompiledRule]" = OrderedDict()
        self._lock = threading.RLock()
        self._stats = CacheStats()

    def _fingerprint(self, expression: str) -> str:
        return hashlib.sha256(expression.encode()).hexdigest()[:16]

    def get(self, expression: str) -> Optional[CompiledRule]:
        """Cached rule for an expression, or None."""
        key = self._fingerprint(expression)

        with self._lock:
            rule = self._cache.get(key)
            if rule is None:
                self._stats.misses += 1
                return None

            self._cache.move_to_end(key)
            self._stats.hits += 1
            return rule

    def put(self, expression: str, rule: CompiledRule):
        """Store a compiled rule, evicting the least recently used entry at capacity."""
        key = self._fingerprint(expression)

        with self._lock:
            if len(self._cache) >= self.max_size and key not in self._cache:
                self._cache.popitem(last=False)
                self._stats.evictions += 1

            self._cache[key] = rule
            self._cache.move_to_end(key)

    def compile(self, expression: str) -> CompiledRule:
        """
        Compile an expression, using the cache.

        Raises:
            PatternSyntaxError: Invalid expression
        """
        cached = self.get(expression)
        if cached is not None:
            return cached

        start_time = time.perf_counter()
        try:
            rule = self.compiler.compile(parse_pattern(expression))
        except Exception:
            with self._lock:
                self._stats.errors += 1
            raise

        elapsed = time.perf_counter() - start_time
        self.put(expression, rule)
        with self._lock:
            self._stats.total_compile_time += elapsed
        logger.debug("Compiled route expression %r -> %s", expression, rule.regex)
        return rule

    def invalidate(self, expression: Optional[str] = None):
        """Drop one expression, or everything when ``expression`` is None."""
        with self._lock:
            if expression is None:
                self._cache.clear()
            else:
                self._cache.pop(self._fingerprint(expression), None)

    def get_stats(self) -> CacheStats:
        with self._lock:
            return CacheStats(**{
                k: v for k, v in self._stats.to_dict().items() if k != "hit_rate"
            })

    def __len__(self) -> int:
        with self._lock:
            return len(self._cache)

    def __contains__(self, expression: str) -> bool:
        with self._lock:
            return self._fingerprint(expression) in self._cache


_global_cache: Optional[PatternCache] = None


def get_global_cache() -> PatternCache:
    """Get or create the process-wide cache."""
    global _global_cache
    if _global_cache is None:
        _global_cache = PatternCache()
    return _global_cache


def compile_pattern(expression: str, use_cache: bool = True) -> CompiledRule:
    """
    Compile a route expression.

    Args:
        expression: Route expression
        use_cache: Whether to use the process-wide cache
    """
    if use_cache:
        return get_global_cache().compile(expression)
    return PatternCompiler().compile(parse_pattern(expression))
