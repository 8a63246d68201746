"""
Sandstorm - route-pattern dispatch for class-based site controllers

- Patterns: typed route expressions compiled to anchored rules
- Resolver: on-demand loading of definitions by symbolic name
- Dispatcher: directive-driven, single-pass request execution
- Rules: persisted rewrite rules generated in dev-mode
- Faults: structured error handling with fault domains
"""

__version__ = "0.3.0"

# ============================================================================
# Core
# ============================================================================

from .config import ConfigError, ConfigLoader, Settings, load_settings
from .request import RequestContext, RouteDirective
from .output import OutputBuffer
from .resolver import ClassResolver, HandlerRegistry, HandlerRegistration
from .dispatcher import DispatchContext, Dispatcher
from .rules import RewriteRule, RouteGenerator, RuleFile
from .app import Application, Response
from .minify import Minifier

# ============================================================================
# Controllers and views
# ============================================================================

from .controller import Controller, ControllerFactory, Halt, route
from .views import ViewRenderer, ViewState

# ============================================================================
# Patterns
# ============================================================================

from .patterns import (
    CompiledRule,
    PatternCache,
    PatternSyntaxError,
    compile_pattern,
    extract,
    match,
    parse_pattern,
)

# ============================================================================
# Faults
# ============================================================================

from .faults import (
    Fault,
    SystemFault,
    ResolutionError,
    HandlerMissingError,
    RouteDefinitionError,
    ResourceMissingError,
    ViewMissingError,
    RouteNotFoundError,
)

__all__ = [
    "__version__",
    "ConfigError",
    "ConfigLoader",
    "Settings",
    "load_settings",
    "RequestContext",
    "RouteDirective",
    "OutputBuffer",
    "ClassResolver",
    "HandlerRegistry",
    "HandlerRegistration",
    "DispatchContext",
    "Dispatcher",
    "RewriteRule",
    "RouteGenerator",
    "RuleFile",
    "Application",
    "Response",
    "Minifier",
    "Controller",
    "ControllerFactory",
    "Halt",
    "route",
    "ViewRenderer",
    "ViewState",
    "CompiledRule",
    "PatternCache",
    "PatternSyntaxError",
    "compile_pattern",
    "extract",
    "match",
    "parse_pattern",
    "Fault",
    "SystemFault",
    "ResolutionError",
    "HandlerMissingError",
    "RouteDefinitionError",
    "ResourceMissingError",
    "ViewMissingError",
    "RouteNotFoundError",
]
