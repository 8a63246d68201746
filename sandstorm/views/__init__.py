"""
Views - queued templates rendered when a controller is finalized.
"""

from .state import ViewState
from .renderer import ViewRenderer, STARTER_PAGE

__all__ = ["ViewState", "ViewRenderer", "STARTER_PAGE"]
