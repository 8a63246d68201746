"""
Application - topmost entry point.

Owns the process-lifetime state (handler registry, resolver, pattern
cache) and runs one dispatch per request. Fatal faults stop the request
here; the buffered output is flushed exactly once either way.
"""

import html
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from .config import ConfigLoader, Settings, load_settings
from .dispatcher import Dispatcher, DispatchContext
from .faults import ResourceMissingError, SystemFault
from .minify import Minifier
from .output import OutputBuffer
from .patterns import PatternCache
from .request import RequestContext
from .resolver import ClassResolver, HandlerRegistry
from .rules import RouteGenerator
from .views import ViewRenderer, ViewState


logger = logging.getLogger("sandstorm.app")


@dataclass
class Response:
    """Flushed result of one request."""
    status: int = 200
    headers: List[Tuple[str, str]] = field(default_factory=list)
    body: bytes = b""
    fault: Optional[SystemFault] = None

    def header(self, name: str) -> Optional[str]:
        for key, value in self.headers:
            if key.lower() == name.lower():
                return value
        return None

    @property
    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")


class Application:
    """
    Sandstorm application.

    Example:
        app = Application.from_config(["sandstorm.yaml"])
        response = app.handle(RequestContext(directive="blog/blog.py|blog|show",
                                             path="/blog/my-post"))
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        *,
        config: Optional[ConfigLoader] = None,
        minifier: Optional[Minifier] = None,
        registry: Optional[HandlerRegistry] = None,
    ):
        if settings is None:
            settings = config.settings() if config is not None else Settings()

        self.config = config
        self.settings = settings
        self.registry = registry or HandlerRegistry()
        self.resolver = ClassResolver(settings, self.registry)
        self.cache = PatternCache()
        self.renderer = ViewRenderer(settings.site_root, dev_mode=settings.dev_mode)
        self.generator = RouteGenerator(settings, self.resolver, self.cache)
        self.dispatcher = Dispatcher(
            settings,
            self.resolver,
            minifier=minifier,
            generator=self.generator,
            cache=self.cache,
            renderer=self.renderer,
        )

    @classmethod
    def from_config(
        cls,
        paths: Optional[list] = None,
        env_file: Optional[str] = None,
        overrides: Optional[Dict[str, Any]] = None,
        **kwargs: Any,
    ) -> "Application":
        loader, settings = load_settings(paths, env_file=env_file, overrides=overrides)
        return cls(settings, config=loader, **kwargs)

    def route_request(self, request: RequestContext) -> RequestContext:
        """
        Fill in a missing directive from the rule file.

        In dev-mode rules are generated first when none matches the path.
        """
        if request.directive is not None or self.generator.rule_file is None:
            return request

        if self.settings.dev_mode:
            directive = self.generator.ensure(request.path)
        else:
            directive = self.generator.rule_file.lookup(request.path)

        if directive is not None:
            logger.debug("Rule file routes %r to %s", request.path, directive)
            request.directive = directive
        return request

    def dispatch(self, request: RequestContext, output: OutputBuffer) -> DispatchContext:
        return self.dispatcher.dispatch(self.route_request(request), output)

    def handle(self, request: RequestContext) -> Response:
        """Run one request and flush its output."""
        output = OutputBuffer()
        fault = None

        try:
            self.dispatch(request, output)
        except SystemFault as e:
            fault = e
            self._fail(e, output)

        body = output.flush()
        return Response(status=output.status, headers=output.headers, body=body, fault=fault)

    def _fail(self, fault: SystemFault, output: OutputBuffer) -> None:
        logger.error("Request failed: %s", fault, exc_info=self.settings.debug)
        output.set_status(500)

        # a missing error page is final
        page = None if isinstance(fault, ResourceMissingError) else self.settings.resource("page_500")
        if page is not None:
            try:
                if not page.is_file():
                    raise ResourceMissingError("500 page", str(page))
                state = ViewState()
                state.add_path(page)
                if self.settings.debug:
                    state.set("fault", fault.to_dict())
                self.renderer.render(state, output)
            except SystemFault as e:
                logger.error("Error page failed: %s", e)

        if self.settings.debug:
            output.write(f"\n<pre>{html.escape(str(fault))}</pre>\n")
