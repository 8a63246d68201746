"""
Minification collaborator contract.

A directive whose group is ``minify`` is handed to the configured
minifier as a whole. The minifier writes headers and body to the output
buffer itself; class resolution and route compilation are skipped.
"""

from typing import Protocol, TYPE_CHECKING, runtime_checkable

if TYPE_CHECKING:
    from .dispatcher import DispatchContext


@runtime_checkable
class Minifier(Protocol):
    """Callable that answers a minify request."""

    def __call__(self, ctx: "DispatchContext") -> None: ...
