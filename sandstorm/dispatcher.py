"""
Dispatcher - executes one request to completion.

States run strictly in order, without backtracking:

1. Read directive      ``group|handler|action`` with per-field defaults
2. Minify              ``group == "minify"`` is handed to the minifier; stop
3. Load target file    ``<site_root>/<group>``; dev-mode generates/scaffolds it
4. Not found           an empty group renders the configured 404 page; stop
5. Resolve handler     ``<handler>Controller`` in the loaded file
6. Bind parameters     compile the chosen action's route, match the path
7. Invoke              requested action, else ``index``, else fatal
8. Finalize            ``controller.finalize()`` exactly once

Flushing the buffer is left to the entry point, which does it once.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, List, Optional

from .config import Settings
from .controller.base import Controller, Halt
from .controller.decorators import get_action_record
from .controller.factory import ControllerFactory
from .faults import (
    HandlerMissingError,
    ResolutionError,
    ResourceMissingError,
    RouteDefinitionError,
    SystemFault,
)
from .minify import Minifier
from .output import OutputBuffer
from .patterns import CompiledRule, PatternCache, PatternSyntaxError, extract
from .request import RequestContext, RouteDirective
from .resolver import ClassResolver
from .rules import RouteGenerator
from .views import ViewRenderer, ViewState


logger = logging.getLogger("sandstorm.dispatch")


@dataclass
class DispatchContext:
    """
    Request-scoped container owned by the dispatcher.

    Handlers reach everything they need for one request through it; nothing
    request-related lives in module or class state.
    """
    request: RequestContext
    directive: RouteDirective
    settings: Settings
    output: OutputBuffer
    renderer: ViewRenderer
    resolver: ClassResolver
    views: ViewState = field(default_factory=ViewState)
    target: Optional[Path] = None
    controller: Any = None
    action: Optional[str] = None
    rule: Optional[CompiledRule] = None
    params: List[Any] = field(default_factory=list)
    finalized: bool = False
    state: str = "directive"


class Dispatcher:
    """
    Runs the dispatch states for one request at a time.

    The dispatcher itself holds no request state and can be shared by
    concurrent requests; the resolver registry and pattern cache it uses
    are thread-safe.

    Example:
        dispatcher = Dispatcher(settings, ClassResolver(settings))
        ctx = dispatcher.dispatch(RequestContext(directive="blog/blog.py|blog|show",
                                                 path="blog/my-post"))
        body = ctx.output.flush()
    """

    def __init__(
        self,
        settings: Settings,
        resolver: ClassResolver,
        minifier: Optional[Minifier] = None,
        generator: Optional[RouteGenerator] = None,
        cache: Optional[PatternCache] = None,
        factory: Optional[ControllerFactory] = None,
        renderer: Optional[ViewRenderer] = None,
    ):
        self.settings = settings
        self.resolver = resolver
        self.minifier = minifier
        self.cache = cache or PatternCache()
        self.generator = generator or RouteGenerator(settings, resolver, self.cache)
        self.factory = factory or ControllerFactory()
        self.renderer = renderer or ViewRenderer(settings.site_root, dev_mode=settings.dev_mode)

    def dispatch(self, request: RequestContext, output: Optional[OutputBuffer] = None) -> DispatchContext:
        """
        Execute one request.

        Returns:
            The dispatch context, whose output buffer holds the response

        Raises:
            SystemFault: Any fatal condition; remaining states are skipped
        """
        settings = self.settings
        directive = RouteDirective.parse(
            request.directive,
            default_handler=settings.default_handler,
            default_action=settings.default_action,
        )
        ctx = DispatchContext(
            request=request,
            directive=directive,
            settings=settings,
            output=output if output is not None else OutputBuffer(),
            renderer=self.renderer,
            resolver=self.resolver,
        )
        logger.debug("Dispatching %s for path %r", directive, request.path)

        if directive.group == settings.minify_group:
            self._minify(ctx)
            return ctx

        ctx.state = "load"
        ctx.target = self.target_path(directive.group)
        if settings.dev_mode and directive.group and not ctx.target.exists():
            self._generate(ctx)

        if not directive.group:
            self._not_found(ctx)
            return ctx

        controller_class = self._resolve_handler(ctx)

        ctx.state = "bind"
        ctx.controller = self.factory.create(controller_class, ctx)
        ctx.action = self._select_action(ctx)
        ctx.params = self._bind_params(ctx)

        try:
            self._invoke(ctx)
        except SystemFault as fault:
            self._finalize_after(ctx, fault)
            raise
        finally:
            self._finalize(ctx)
        return ctx

    # ------------------------------------------------------------------
    # States
    # ------------------------------------------------------------------

    def _minify(self, ctx: DispatchContext) -> None:
        ctx.state = "minify"
        if self.minifier is None:
            raise SystemFault("MINIFIER_MISSING", "No minifier is configured for minify requests")

        logger.debug("Minify request %s", ctx.directive)
        self.minifier(ctx)

    def target_path(self, group: str) -> Path:
        """Site file for a handler group, confined to the site root."""
        return self.generator.target_path(group)

    def _generate(self, ctx: DispatchContext) -> None:
        directive = ctx.directive
        logger.debug("Target %s is missing, running the route generator", ctx.target)
        self.generator.apply_rules()
        if not ctx.target.exists():
            self.generator.scaffold(directive.group, directive.handler, directive.action)

    def _not_found(self, ctx: DispatchContext) -> None:
        ctx.state = "not_found"
        page = self.settings.resource("page_404")
        if page is None or not page.is_file():
            raise ResourceMissingError("404 page", str(page) if page else None)

        logger.debug("No route for %r, rendering %s", ctx.request.path, page)
        self._set_page_headers(ctx)
        ctx.output.set_status(404)
        ctx.views.add_path(page)
        ctx.renderer.render(ctx.views, ctx.output)

    def _resolve_handler(self, ctx: DispatchContext) -> type:
        ctx.state = "resolve"
        module = self.resolver.load_file(ctx.target)
        self._set_page_headers(ctx)

        class_name = ctx.directive.handler + self.settings.controller_suffix
        controller_class = self.resolver.find_class(module, class_name)
        if controller_class is None:
            controller_class = self.resolver.registry.get_object(class_name)
        if not isinstance(controller_class, type):
            raise ResolutionError(class_name, str(ctx.target))

        self.resolver.registry.record(class_name, str(ctx.target), "handler", controller_class)
        logger.debug("Handler %s resolved from %s", controller_class.__name__, ctx.target)
        return controller_class

    @staticmethod
    def _set_page_headers(ctx: DispatchContext) -> None:
        ctx.output.set_header("Vary", "Accept-Encoding")
        ctx.output.set_header("Content-Type", "text/html; charset=utf-8")

    def _select_action(self, ctx: DispatchContext) -> str:
        requested = ctx.directive.action
        if self.has_action(ctx.controller, requested):
            return requested

        fallback = self.settings.default_action
        if self.has_action(ctx.controller, fallback):
            logger.debug("Action %r missing on %s, falling back to %r",
                         requested, ctx.directive.handler, fallback)
            return fallback

        raise HandlerMissingError(requested, ctx.directive.handler, fallback)

    @staticmethod
    def has_action(controller: Any, name: str) -> bool:
        """Public callables of the handler, excluding the Controller base API."""
        if not name or name.startswith("_"):
            return False
        if isinstance(controller, Controller) and hasattr(Controller, name):
            return False
        return callable(getattr(controller, name, None))

    def _bind_params(self, ctx: DispatchContext) -> List[Any]:
        record = get_action_record(ctx.controller, ctx.action)
        if record is None or record.expression is None:
            return []

        try:
            ctx.rule = self.cache.compile(record.expression)
        except PatternSyntaxError as e:
            raise RouteDefinitionError(
                record.expression, type(ctx.controller).__name__, ctx.action, e.message,
            ) from e

        params = extract(ctx.rule, ctx.request.path)
        if not params and len(ctx.rule):
            logger.debug("Path %r does not match %s", ctx.request.path, ctx.rule.raw)
        return params

    def _invoke(self, ctx: DispatchContext) -> None:
        ctx.state = "invoke"
        method = getattr(ctx.controller, ctx.action)
        logger.debug("Invoking %s.%s%r", type(ctx.controller).__name__, ctx.action, tuple(ctx.params))

        try:
            result = method(*ctx.params)
        except Halt:
            logger.debug("Action %s halted", ctx.action)
            return

        if isinstance(result, (str, bytes)):
            ctx.output.write(result)

    def _finalize(self, ctx: DispatchContext) -> None:
        if ctx.finalized:
            return
        ctx.finalized = True
        ctx.state = "finalize"

        finalize = getattr(ctx.controller, "finalize", None)
        if callable(finalize):
            finalize()

    def _finalize_after(self, ctx: DispatchContext, fault: SystemFault) -> None:
        """Finalize after a failed action; the action's fault stays the one raised."""
        try:
            self._finalize(ctx)
        except SystemFault as e:
            logger.error("Finalize of %s failed after %s: %s",
                         type(ctx.controller).__name__, fault.code, e)
