"""
Tests for the Dispatcher.

Covers every dispatch state:
- Directive defaults and the 404 path
- Minify short-circuit
- Handler resolution and parameter binding
- Action invocation and the index fallback
- Finalization exactly once
- Dev-mode scaffolding
"""

import pytest

from sandstorm.controller import Controller
from sandstorm.dispatcher import Dispatcher
from sandstorm.faults import (
    HandlerMissingError,
    ResolutionError,
    ResourceMissingError,
    RouteDefinitionError,
    SystemFault,
    ViewMissingError,
)
from sandstorm.output import OutputBuffer
from sandstorm.patterns import PatternSyntaxError
from sandstorm.request import RequestContext

from conftest import BAD_CONTROLLER, OUTSIDE_CONTROLLER, write


def run(dispatcher, directive, path="/"):
    return dispatcher.dispatch(RequestContext(directive=directive, path=path))


class RecordingMinifier:

    def __init__(self):
        self.calls = []

    def __call__(self, ctx):
        self.calls.append(ctx.directive)
        ctx.output.set_header("Content-Type", "text/css")
        ctx.output.write("body{}")


@pytest.fixture
def dispatcher(settings, resolver):
    return Dispatcher(settings, resolver)


class TestParameterBinding:

    def test_numeric_profile(self, dispatcher):
        ctx = run(dispatcher, "user/user.py|user|profile", "/user/42/profile")

        assert ctx.params == ["42"]
        assert ctx.rule.regex == r"^user/([0-9]{1,11})/profile$"
        assert ctx.output.getvalue() == b"profile 42"

    def test_blog_slug(self, dispatcher):
        ctx = run(dispatcher, "blog/blog.py|blog|show", "/blog/my-post")
        assert ctx.output.getvalue() == b"post: my-post"

    def test_malformed_route_is_fatal(self, dispatcher, site):
        write(site, "bad.py", BAD_CONTROLLER)

        with pytest.raises(RouteDefinitionError) as exc_info:
            run(dispatcher, "bad.py|bad|index", "/bad/1")

        fault = exc_info.value
        assert fault.code == "ROUTE_INVALID"
        assert fault.expression == "bad/{int:id}"
        assert isinstance(fault.__cause__, PatternSyntaxError)

    def test_no_match_binds_nothing(self, dispatcher):
        ctx = run(dispatcher, "blog/blog.py|blog|show", "/blog/")

        assert ctx.params == []
        assert ctx.output.getvalue() == b"post: None"

    def test_bound_is_enforced_when_binding(self, dispatcher):
        ctx = run(dispatcher, "user/user.py|user|profile", "/user/123456789012/profile")

        assert ctx.params == []
        assert ctx.output.getvalue() == b"profile None"

    def test_action_without_route_gets_no_params(self, dispatcher):
        ctx = run(dispatcher, "blog/blog.py|blog|index", "/blog/my-post")

        assert ctx.rule is None
        assert ctx.output.getvalue() == b"blog index"

    def test_annotation_route(self, dispatcher):
        ctx = run(dispatcher, "blog/blog.py|blog|archive", "/archive/2024")

        assert ctx.params == ["2024"]
        assert ctx.output.getvalue() == b"archive 2024"

    def test_rules_are_cached(self, dispatcher):
        run(dispatcher, "user/user.py|user|profile", "/user/1/profile")
        run(dispatcher, "user/user.py|user|profile", "/user/2/profile")

        stats = dispatcher.cache.get_stats()
        assert stats.misses == 1
        assert stats.hits == 1


class TestActionSelection:

    def test_missing_action_falls_back_to_index(self, dispatcher):
        ctx = run(dispatcher, "blog/blog.py|blog|missing", "/blog/my-post")

        assert ctx.action == "index"
        assert ctx.output.getvalue() == b"blog index"

    def test_no_action_and_no_index_is_fatal(self, dispatcher):
        with pytest.raises(HandlerMissingError) as exc_info:
            run(dispatcher, "bare/blog.py|blog|show")

        message = str(exc_info.value)
        assert "show" in message
        assert "blog" in message

    def test_controller_api_is_not_an_action(self, dispatcher):
        ctx = run(dispatcher, "blog/blog.py|blog|redirect")
        assert ctx.action == "index"

    def test_private_names_are_not_actions(self, dispatcher):
        ctx = run(dispatcher, "blog/blog.py|blog|__init__")
        assert ctx.action == "index"

    def test_string_return_value_is_written(self, dispatcher):
        ctx = run(dispatcher, "blog/blog.py|blog|draft")
        assert ctx.output.getvalue() == b"draft text"

    def test_halt_is_not_an_error(self, dispatcher):
        ctx = run(dispatcher, "blog/blog.py|blog|old")

        assert ctx.output.status == 301
        assert ctx.output.get_header("Location") == "/blog"
        assert b"unreachable" not in ctx.output.getvalue()


class TestHandlerResolution:

    def test_site_headers_are_set(self, dispatcher):
        ctx = run(dispatcher, "blog/blog.py|blog|index")

        assert ctx.output.get_header("Vary") == "Accept-Encoding"
        assert ctx.output.get_header("Content-Type") == "text/html; charset=utf-8"

    def test_class_lookup_ignores_case(self, dispatcher):
        ctx = run(dispatcher, "blog/blog.py|BLOG|index")
        assert type(ctx.controller).__name__ == "BlogController"

    def test_group_without_extension(self, dispatcher):
        ctx = run(dispatcher, "blog/blog|blog|index")
        assert ctx.target.name == "blog.py"

    def test_missing_handler_class_is_fatal(self, dispatcher):
        with pytest.raises(ResolutionError):
            run(dispatcher, "blog/blog.py|nope|index")

    def test_missing_file_is_fatal(self, dispatcher):
        with pytest.raises(ResolutionError):
            run(dispatcher, "nowhere.py|x|index")

    def test_group_outside_site_root_is_rejected(self, dispatcher, tmp_path):
        write(tmp_path, "outside.py", OUTSIDE_CONTROLLER)

        with pytest.raises(ResolutionError):
            run(dispatcher, "../outside.py|x|index")
        assert dispatcher.resolver.load_count == 0

    def test_absolute_group_is_rejected(self, dispatcher, tmp_path):
        write(tmp_path, "outside.py", OUTSIDE_CONTROLLER)

        with pytest.raises(ResolutionError):
            run(dispatcher, f"{tmp_path / 'outside.py'}|x|index")

    def test_registered_handler_class(self, dispatcher, site):
        class ExtraController(Controller):
            def index(self):
                self.echo("extra")

        dispatcher.resolver.register("ExtraController", ExtraController)
        ctx = run(dispatcher, "blog/blog.py|Extra|index")

        assert ctx.output.getvalue() == b"extra"

    def test_handler_is_recorded(self, dispatcher, site):
        run(dispatcher, "blog/blog.py|blog|index")

        entry = dispatcher.resolver.registry.get("blogController")
        assert entry.kind == "handler"
        assert entry.path == str(site / "blog" / "blog.py")

    def test_file_loaded_once_across_requests(self, dispatcher):
        run(dispatcher, "blog/blog.py|blog|index")
        run(dispatcher, "blog/blog.py|blog|show", "/blog/x")

        assert dispatcher.resolver.load_count == 1


class TestNotFound:

    def test_empty_directive_renders_404(self, dispatcher):
        ctx = run(dispatcher, "||", "/anything")

        assert ctx.directive.as_tuple() == ("", "default", "index")
        assert ctx.output.status == 404
        assert ctx.output.getvalue() == b"Not found"

    def test_missing_directive_renders_404(self, dispatcher):
        ctx = run(dispatcher, None)
        assert ctx.output.getvalue() == b"Not found"

    def test_empty_group_never_reaches_a_controller(self, dispatcher):
        ctx = run(dispatcher, "|blog|show", "/blog/my-post")

        assert ctx.controller is None
        assert ctx.output.status == 404
        assert dispatcher.resolver.load_count == 0

    def test_404_sets_page_headers(self, dispatcher):
        ctx = run(dispatcher, "||")

        assert ctx.output.get_header("Vary") == "Accept-Encoding"
        assert ctx.output.get_header("Content-Type") == "text/html; charset=utf-8"

    def test_unconfigured_404_page_is_fatal(self, settings, resolver):
        dispatcher = Dispatcher(settings.with_overrides(page_404=None), resolver)

        with pytest.raises(ResourceMissingError):
            run(dispatcher, "||")

    def test_missing_404_file_is_fatal(self, settings, resolver, site):
        (site / "404.html").unlink()

        with pytest.raises(ResourceMissingError) as exc_info:
            run(Dispatcher(settings, resolver), "||")
        assert exc_info.value.path == str(site / "404.html")


class TestMinify:

    def test_minify_short_circuits(self, settings, resolver):
        minifier = RecordingMinifier()
        dispatcher = Dispatcher(settings, resolver, minifier=minifier)

        ctx = run(dispatcher, "minify|css|all")

        assert [d.as_tuple() for d in minifier.calls] == [("minify", "css", "all")]
        assert ctx.output.getvalue() == b"body{}"
        assert ctx.controller is None
        assert resolver.load_count == 0
        assert len(resolver.registry) == 0
        assert len(dispatcher.cache) == 0

    def test_minify_wins_over_other_segments(self, settings, resolver):
        minifier = RecordingMinifier()
        dispatcher = Dispatcher(settings, resolver, minifier=minifier)

        run(dispatcher, "minify|blog|show", "/blog/my-post")

        assert len(minifier.calls) == 1
        assert resolver.load_count == 0

    def test_minify_without_minifier(self, dispatcher):
        with pytest.raises(SystemFault) as exc_info:
            run(dispatcher, "minify||")
        assert exc_info.value.code == "MINIFIER_MISSING"


class TestFinalize:

    def counter_class(self, dispatcher):
        ctx = run(dispatcher, "counter.py|counter|index")
        return type(ctx.controller)

    def test_finalized_once_on_return(self, dispatcher):
        counter = self.counter_class(dispatcher)
        counter.finalized = 0

        ctx = run(dispatcher, "counter.py|counter|index")

        assert counter.finalized == 1
        assert ctx.finalized

    def test_finalized_once_on_halt(self, dispatcher):
        counter = self.counter_class(dispatcher)
        counter.finalized = 0

        run(dispatcher, "counter.py|counter|leave")

        assert counter.finalized == 1

    def test_finalized_once_on_error(self, dispatcher):
        counter = self.counter_class(dispatcher)
        counter.finalized = 0

        with pytest.raises(ValueError):
            run(dispatcher, "counter.py|counter|explode")

        assert counter.finalized == 1

    def test_views_render_after_action(self, dispatcher):
        ctx = run(dispatcher, "home.py||")
        assert ctx.output.getvalue() == b"<h1>Home</h1>"

    def test_missing_view_is_fatal(self, dispatcher):
        with pytest.raises(ViewMissingError):
            run(dispatcher, "home.py||broken")

    def test_action_fault_survives_failing_finalize(self, dispatcher, caplog):
        with caplog.at_level("ERROR", logger="sandstorm.dispatch"):
            with pytest.raises(SystemFault) as exc_info:
                run(dispatcher, "home.py||abort")

        assert exc_info.value.code == "ACTION_FAILED"
        assert "Could not load this view" in caplog.text

    def test_dispatch_does_not_flush(self, dispatcher):
        output = OutputBuffer()
        dispatcher.dispatch(RequestContext(directive="blog/blog.py|blog|index"), output)

        assert output.flush_count == 0
        assert not output.headers_sent


class TestDevMode:

    def test_missing_file_is_scaffolded(self, settings, resolver, site):
        dev = settings.with_overrides(dev_mode=True)
        dispatcher = Dispatcher(dev, resolver)

        ctx = run(dispatcher, "fresh/fresh.py|fresh|index")

        assert (site / "fresh" / "fresh.py").is_file()
        assert ctx.output.getvalue() == b"FreshController.index"

    def test_scaffold_outside_site_root_is_rejected(self, settings, resolver, tmp_path):
        dispatcher = Dispatcher(settings.with_overrides(dev_mode=True), resolver)

        with pytest.raises(ResolutionError):
            run(dispatcher, "../escaped.py|escaped|index")
        assert not (tmp_path / "escaped.py").exists()

    def test_rules_generated_for_missing_file(self, settings, resolver, tmp_path):
        dev = settings.with_overrides(dev_mode=True)
        dispatcher = Dispatcher(dev, resolver)

        run(dispatcher, "fresh/fresh.py|fresh|index")

        text = (tmp_path / "rules.conf").read_text()
        assert "user/user.py|user|profile" in text

    def test_production_does_not_scaffold(self, dispatcher, site):
        with pytest.raises(ResolutionError):
            run(dispatcher, "fresh/fresh.py|fresh|index")
        assert not (site / "fresh" / "fresh.py").exists()
