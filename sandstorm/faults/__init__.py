"""
SandstormFaults - Structured error handling.

Fatal conditions during dispatch are raised as ``SystemFault`` subclasses
and caught once, at the entry point. Recoverable routing misses are
``RoutingFault`` subclasses and never abort a request.
"""

from .core import (
    Fault,
    FaultDomain,
    Severity,
)

from .domains import (
    SystemFault,
    ResolutionError,
    HandlerMissingError,
    RouteDefinitionError,
    WidgetMissingError,
    ResourceMissingError,
    ViewMissingError,
    ConfigMissingError,
    RoutingFault,
    RouteNotFoundError,
)

__all__ = [
    "Fault",
    "FaultDomain",
    "Severity",
    "SystemFault",
    "ResolutionError",
    "HandlerMissingError",
    "RouteDefinitionError",
    "WidgetMissingError",
    "ResourceMissingError",
    "ViewMissingError",
    "ConfigMissingError",
    "RoutingFault",
    "RouteNotFoundError",
]
