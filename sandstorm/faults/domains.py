"""
SandstormFaults - Domain-specific fault types.

Fatal dispatch faults all derive from ``SystemFault`` so the entry point
can catch a single class. Routing misses derive from ``RoutingFault`` and
are absorbed by the dispatcher.
"""

from typing import Any, Optional
from .core import Fault, FaultDomain, Severity


# ============================================================================
# SYSTEM Faults (fatal, abort the request)
# ============================================================================

class SystemFault(Fault):
    """Base class for faults that abort a dispatch."""

    def __init__(
        self,
        code: str,
        message: str,
        *,
        domain: FaultDomain = FaultDomain.SYSTEM,
        severity: Severity = Severity.FATAL,
        metadata: Optional[dict[str, Any]] = None,
    ):
        super().__init__(
            code=code,
            message=message,
            domain=domain,
            severity=severity,
            public=False,
            metadata=metadata,
        )


class ResolutionError(SystemFault):
    """A symbolic name could not be mapped to a loadable definition."""

    def __init__(self, name: str, path: Optional[str] = None, reason: str = ""):
        if reason:
            message = reason
        elif path:
            message = f"Could not find '{name}' in file {path}"
        else:
            message = f"Could not resolve '{name}'"
        super().__init__(
            code="RESOLUTION_FAILED",
            message=message,
            domain=FaultDomain.RESOLVE,
            metadata={"name": name, "path": path},
        )
        self.name = name
        self.path = path


class HandlerMissingError(SystemFault):
    """Neither the requested action nor the fallback action exists."""

    def __init__(self, action: str, handler: str, fallback: str = "index"):
        super().__init__(
            code="HANDLER_MISSING",
            message=(
                f"Could not find method with the name '{action}' "
                f"or {fallback} in {handler}"
            ),
            domain=FaultDomain.DISPATCH,
            metadata={"action": action, "handler": handler, "fallback": fallback},
        )
        self.action = action
        self.handler = handler


class RouteDefinitionError(SystemFault):
    """An action declares a route expression that does not compile."""

    def __init__(self, expression: str, handler: str, action: str, reason: str):
        super().__init__(
            code="ROUTE_INVALID",
            message=f"Invalid route '{expression}' on {handler}.{action}: {reason}",
            domain=FaultDomain.ROUTING,
            metadata={"expression": expression, "handler": handler, "action": action},
        )
        self.expression = expression
        self.handler = handler
        self.action = action


class WidgetMissingError(SystemFault):
    """A widget method does not exist on the resolved widget class."""

    def __init__(self, widget: str, method: str):
        super().__init__(
            code="WIDGET_MISSING",
            message=f"Could not find method '{method}' in widget {widget}",
            domain=FaultDomain.DISPATCH,
            metadata={"widget": widget, "method": method},
        )
        self.widget = widget
        self.method = method


class ResourceMissingError(SystemFault):
    """A configured static resource (404/500 page) is absent on disk."""

    def __init__(self, resource: str, path: Optional[str]):
        super().__init__(
            code="RESOURCE_MISSING",
            message=f"Could not load {resource} because the file is missing: {path}",
            domain=FaultDomain.IO,
            metadata={"resource": resource, "path": path},
        )
        self.resource = resource
        self.path = path


class ViewMissingError(SystemFault):
    """A queued view template does not exist."""

    def __init__(self, view: str):
        super().__init__(
            code="VIEW_MISSING",
            message=f"Could not load this view: {view}",
            domain=FaultDomain.VIEW,
            severity=Severity.ERROR,
            metadata={"view": view},
        )
        self.view = view


class ConfigMissingError(SystemFault):
    """Required configuration is missing."""

    def __init__(self, key: str):
        super().__init__(
            code="CONFIG_MISSING",
            message=f"Could not retrieve value {key}",
            domain=FaultDomain.CONFIG,
            metadata={"key": key},
        )
        self.key = key


# ============================================================================
# ROUTING Faults (recoverable)
# ============================================================================

class RoutingFault(Fault):
    """Base class for routing faults."""

    def __init__(
        self,
        code: str,
        message: str,
        *,
        severity: Severity = Severity.WARN,
        metadata: Optional[dict[str, Any]] = None,
    ):
        super().__init__(
            code=code,
            message=message,
            domain=FaultDomain.ROUTING,
            severity=severity,
            public=True,
            metadata=metadata,
        )


class RouteNotFoundError(RoutingFault):
    """The request path does not match the compiled rule."""

    def __init__(self, path: str, expression: Optional[str] = None):
        detail = f" against '{expression}'" if expression else ""
        super().__init__(
            code="ROUTE_NOT_FOUND",
            message=f"No route matches '{path}'{detail}",
            metadata={"path": path, "expression": expression},
        )
        self.path = path
        self.expression = expression
