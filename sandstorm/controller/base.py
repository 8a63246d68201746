"""
Controller Base Class

Handlers answer requests through actions: plain methods called with the
values extracted from the request path. Views queued during the action
are rendered when the dispatcher finalizes the controller.
"""

from pathlib import Path
from typing import Any, Optional, TYPE_CHECKING

from ..faults import ResolutionError, SystemFault, WidgetMissingError
from ..patterns import normalize_path

if TYPE_CHECKING:
    from ..dispatcher import DispatchContext


class Halt(Exception):
    """
    Early exit from an action.

    Not an error: the dispatcher still finalizes the controller and
    flushes the output.
    """


class Controller:
    """
    Base Controller class.

    Example:
        class BlogController(Controller):

            def index(self):
                self.load("blog/list.html")

            @route("blog/{string:slug}")
            def show(self, slug):
                self.set_data("slug", slug)
                self.load("blog/post.html")
    """

    def __init__(self, ctx: Optional["DispatchContext"] = None):
        self.ctx = ctx

    def bind(self, ctx: "DispatchContext") -> None:
        """Attach the dispatch context."""
        self.ctx = ctx

    def _context(self) -> "DispatchContext":
        if self.ctx is None:
            raise SystemFault("CONTROLLER_UNBOUND", f"{type(self).__name__} is not bound to a request")
        return self.ctx

    # Views

    def load(self, page: str) -> "Controller":
        """
        Queue a view, relative to the site root.

        In dev-mode a missing ``.html``/``.htm`` view is created with a
        starter page.
        """
        ctx = self._context()
        if ctx.settings.dev_mode:
            ctx.renderer.scaffold(page)
        ctx.views.add_path(ctx.renderer.resolve(page))
        return self

    def set_data(self, *pairs: Any, **values: Any) -> "Controller":
        """
        Set view data from alternating key/value arguments or keywords.

        Example:
            self.set_data("title", "Home", "user", user)
            self.set_data(title="Home")
        """
        if len(pairs) % 2 != 0:
            raise SystemFault("ODD_ARGUMENTS", "Odd number of arguments. Expecting key-value pairs.")

        views = self._context().views
        for i in range(0, len(pairs), 2):
            views.set(pairs[i], pairs[i + 1])
        for name, value in values.items():
            views.set(name, value)
        return self

    def embed(self, page: str) -> str:
        """Render a page with the current view data and return the text."""
        ctx = self._context()
        return ctx.renderer.embed(page, ctx.views.data)

    # Output

    def echo(self, *parts: Any) -> None:
        output = self._context().output
        for part in parts:
            output.write(part)

    def json(self, data: Any) -> None:
        self._context().output.write_json(data)

    def status(self, code: int) -> None:
        self._context().output.set_status(code)

    def header(self, name: str, value: str) -> None:
        self._context().output.set_header(name, value)

    def redirect(self, url: str, status: int = 301) -> None:
        """Send a redirect and stop the action."""
        output = self._context().output
        if output.headers_sent:
            return
        output.set_status(status)
        output.set_header("Location", url)
        raise Halt(url)

    def part_url(self, index: int) -> str:
        """Segment ``index`` of the request path, or '' when absent."""
        parts = normalize_path(self._context().request.path).split("/")
        return parts[index] if 0 <= index < len(parts) else ""

    # Widgets

    def widget(self, name: str, method: str, *args: Any, **kwargs: Any) -> Any:
        """
        Call ``method`` of the widget ``name`` and return its result.

        The widget class ``<name>widget`` is loaded from
        ``<widget_root>/<name>.widget.py`` and recorded in the handler
        registry under the kind ``widget``.

        Example:
            html = self.widget("menu", "render", "main")

        Raises:
            ResolutionError: The widget file or class is missing
            WidgetMissingError: The widget has no such method
        """
        ctx = self._context()
        settings = ctx.settings
        path = Path(settings.widget_root) / f"{name}.widget{settings.extension}"
        if not path.is_file():
            raise ResolutionError(name, str(path), reason=f"Could not load this widget: {path}")

        module = ctx.resolver.load_file(path, kind="widget")
        class_name = name + "widget"
        widget_class = ctx.resolver.find_class(module, class_name)
        if widget_class is None:
            raise ResolutionError(class_name, str(path))

        ctx.resolver.registry.record(class_name, str(path), "widget", widget_class)

        instance = widget_class()
        func = getattr(instance, method, None)
        if method.startswith("_") or not callable(func):
            raise WidgetMissingError(class_name, method)
        return func(*args, **kwargs)

    # Lifecycle

    def finalize(self) -> None:
        """Render queued views into the output buffer. Called once by the dispatcher."""
        ctx = self._context()
        ctx.renderer.render(ctx.views, ctx.output)
