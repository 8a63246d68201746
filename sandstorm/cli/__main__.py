"""Sandstorm CLI - Main Entry Point.

Commands:
    dispatch - Run one request and print the response body
    routes   - Generate or list persisted rewrite rules
    registry - Run one request and show the handler registry
    serve    - Serve the site over ASGI with uvicorn
"""

import logging
import sys
from pathlib import Path
from typing import Optional, Tuple

import click

from .. import __version__
from ..app import Application
from ..config import ConfigError
from ..request import RequestContext
from . import __cli_name__
from .output import error, info, kv, success, table, warning


def _build_app(ctx: click.Context) -> Application:
    """Application from the group options, created once per invocation."""
    app = ctx.obj.get("app")
    if app is not None:
        return app

    overrides = {}
    if ctx.obj["site"]:
        overrides["site_root"] = ctx.obj["site"]
    if ctx.obj["dev"]:
        overrides["dev_mode"] = True
    if ctx.obj["debug"]:
        overrides["debug"] = True

    try:
        app = Application.from_config(
            list(ctx.obj["config"]) or None,
            env_file=ctx.obj["env_file"],
            overrides=overrides,
        )
    except ConfigError as e:
        error(f"Configuration error: {e}")
        sys.exit(2)

    ctx.obj["app"] = app
    return app


@click.group()
@click.version_option(version=__version__, prog_name=__cli_name__)
@click.option('--config', '-c', multiple=True, type=click.Path(), help='Config file (YAML or JSON), repeatable')
@click.option('--env-file', type=click.Path(), default=None, help='.env file')
@click.option('--site', type=click.Path(), default=None, help='Site root directory')
@click.option('--dev', is_flag=True, help='Enable dev-mode')
@click.option('--debug', is_flag=True, help='Show fault details in responses')
@click.option('--verbose', '-v', is_flag=True, help='Verbose output')
@click.pass_context
def cli(ctx, config: Tuple[str, ...], env_file: Optional[str], site: Optional[str],
        dev: bool, debug: bool, verbose: bool):
    """Route-pattern dispatch for Sandstorm sites.

    \b
    Quick start:
      sandstorm --site site dispatch /blog/my-post -d "blog/blog.py|blog|show"
      sandstorm --dev routes build
      sandstorm serve
    """
    ctx.ensure_object(dict)
    ctx.obj.update(config=config, env_file=env_file, site=site, dev=dev, debug=debug)

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


# ============================================================================
# Dispatch
# ============================================================================

@cli.command('dispatch')
@click.argument('path')
@click.option('--directive', '-d', default=None, help='Directive group|handler|action')
@click.option('--headers', 'show_headers', is_flag=True, help='Print status and headers to stderr')
@click.pass_context
def dispatch(ctx, path: str, directive: Optional[str], show_headers: bool):
    """
    Run one request and print the response body.

    Without --directive the rule file decides.

    Examples:
      sandstorm dispatch /user/42/profile -d "user/user.py|user|profile"
      sandstorm dispatch /blog/my-post
    """
    app = _build_app(ctx)
    response = app.handle(RequestContext(directive=directive, path=path))

    if show_headers:
        click.echo(f"Status: {response.status}", err=True)
        for name, value in response.headers:
            click.echo(f"{name}: {value}", err=True)

    click.echo(response.text, nl=False)
    if response.fault is not None:
        error(f"{response.fault}")
        sys.exit(1)


@cli.command('registry')
@click.argument('path')
@click.option('--directive', '-d', default=None, help='Directive group|handler|action')
@click.pass_context
def registry(ctx, path: str, directive: Optional[str]):
    """
    Run one request and show the handler registry it produced.

    Examples:
      sandstorm registry /blog/my-post -d "blog/blog.py|blog|show"
    """
    app = _build_app(ctx)
    response = app.handle(RequestContext(directive=directive, path=path))
    kv("Status", str(response.status))

    entries = app.registry.snapshot().values()
    if not entries:
        warning("Registry is empty")
        return

    table(
        ["Name", "Kind", "Path"],
        [[e.name, e.kind, e.path] for e in entries],
    )


# ============================================================================
# Routes
# ============================================================================

@cli.group('routes')
def routes():
    """Persisted rewrite rules."""


@routes.command('build')
@click.pass_context
def routes_build(ctx):
    """
    Compile every routed action under the site root into the rule file.

    Examples:
      sandstorm -c sandstorm.yaml routes build
    """
    app = _build_app(ctx)
    if app.generator.rule_file is None:
        error("No rule file configured (rule_file)")
        sys.exit(2)

    added = app.generator.apply_rules()
    success(f"Added {len(added)} rule(s) to {app.generator.rule_file.path}")
    for rule in added:
        click.echo(f"  {rule.to_line()}")


@routes.command('list')
@click.pass_context
def routes_list(ctx):
    """List the rules in the rule file."""
    app = _build_app(ctx)
    if app.generator.rule_file is None:
        error("No rule file configured (rule_file)")
        sys.exit(2)

    rules = app.generator.rule_file.load()
    if not rules:
        info("No rules")
        return
    table(["Pattern", "Directive"], [[r.regex, r.directive] for r in rules])


# ============================================================================
# Serve
# ============================================================================

@cli.command('serve')
@click.option('--host', default='127.0.0.1', help='Bind host')
@click.option('--port', type=int, default=8000, help='Bind port')
@click.pass_context
def serve(ctx, host: str, port: int):
    """
    Serve the site with uvicorn.

    Examples:
      sandstorm --site site serve --port 8080
    """
    import uvicorn

    from ..asgi import ASGIAdapter

    app = _build_app(ctx)
    kv("Site", str(Path(app.settings.site_root).resolve()))
    kv("Listening", f"http://{host}:{port}")
    uvicorn.run(ASGIAdapter(app), host=host, port=port)


def main():
    """Entry point for `sandstorm` command."""
    cli(obj={})


if __name__ == '__main__':
    main()
