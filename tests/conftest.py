"""
Shared test fixtures for the Sandstorm test suite.

The ``site`` fixture lays out a small site under ``tmp_path``:

    site/
      blog/blog.py      BlogController  (index, show, draft, archive)
      user/user.py      UserController  (profile)
      bare/blog.py      BlogController  (archive only, no index)
      counter.py        CounterController (counts finalize calls)
      home.py           DefaultController (renders home.html)
      home.html, blog/post.html, 404.html, 500.html
"""

import textwrap
from pathlib import Path

import pytest

from sandstorm.config import Settings
from sandstorm.resolver import ClassResolver


BLOG_CONTROLLER = '''
from sandstorm import Controller, route


class BlogController(Controller):

    def index(self, *args):
        self.echo("blog index", *(f" {a}" for a in args))

    @route("blog/{string:slug}")
    def show(self, slug=None):
        self.echo(f"post: {slug}")

    def draft(self):
        return "draft text"

    @route("@router archive/{number(4):year} -> index")
    def archive(self, year):
        self.echo(f"archive {year}")

    def old(self):
        self.redirect("/blog")
        self.echo("unreachable")
'''

USER_CONTROLLER = '''
from sandstorm import Controller, route


class UserController(Controller):

    @route("user/{number(1-11):id}/profile")
    def profile(self, id=None):
        self.echo(f"profile {id}")
'''

BARE_CONTROLLER = '''
from sandstorm import Controller


class BlogController(Controller):

    def archive(self):
        self.echo("bare archive")
'''

COUNTER_CONTROLLER = '''
from sandstorm import Controller


class CounterController(Controller):
    finalized = 0

    def index(self):
        self.echo("counted")

    def leave(self):
        self.redirect("/elsewhere")

    def explode(self):
        raise ValueError("boom")

    def finalize(self):
        type(self).finalized += 1
        super().finalize()
'''

HOME_CONTROLLER = '''
from sandstorm import Controller
from sandstorm.faults import SystemFault


class DefaultController(Controller):

    def index(self):
        self.set_data("title", "Home")
        self.load("home.html")

    def broken(self):
        self.load("missing.html")

    def abort(self):
        self.load("missing.html")
        raise SystemFault("ACTION_FAILED", "abort requested")
'''

# Written by individual tests only
BAD_CONTROLLER = '''
from sandstorm import Controller, route


class BadController(Controller):

    @route("bad/{int:id}")
    def index(self, id=None):
        self.echo("unreachable")
'''

OUTSIDE_CONTROLLER = '''
from sandstorm import Controller


class XController(Controller):

    def index(self):
        self.echo("outside executed")
'''

SITE_FILES = {
    "blog/blog.py": BLOG_CONTROLLER,
    "user/user.py": USER_CONTROLLER,
    "bare/blog.py": BARE_CONTROLLER,
    "counter.py": COUNTER_CONTROLLER,
    "home.py": HOME_CONTROLLER,
    "home.html": "<h1>{{ title }}</h1>",
    "blog/post.html": "<article>{{ slug }}</article>",
    "404.html": "Not found",
    "500.html": "Server error",
}


def write(root: Path, relpath: str, text: str) -> Path:
    """Write a dedented file below ``root``, creating folders."""
    path = root / relpath
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(textwrap.dedent(text).lstrip(), encoding="utf-8")
    return path


@pytest.fixture
def site(tmp_path):
    """Site root populated with the sample controllers and views."""
    root = tmp_path / "site"
    for relpath, text in SITE_FILES.items():
        write(root, relpath, text)
    return root


@pytest.fixture
def settings(tmp_path, site):
    return Settings(
        site_root=site,
        app_root=tmp_path,
        library_root=tmp_path / "lib",
        system_root=tmp_path / "sys",
        widget_root=tmp_path / "widgets",
        page_404="404.html",
        page_500="500.html",
        rule_file=str(tmp_path / "rules.conf"),
    )


@pytest.fixture
def resolver(settings):
    return ClassResolver(settings)
