"""
Request context and route directive.

The routing decision for a request arrives as one pipe-delimited string,
``group|handler|action``, normally installed by a rewrite rule as the
``CONTROLLER`` request header.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional
from urllib.parse import parse_qsl


DIRECTIVE_SEPARATOR = "|"

# CGI-style keys, checked in order
DIRECTIVE_ENVIRON_KEYS = ("REDIRECT_HTTP_CONTROLLER", "HTTP_CONTROLLER")

# ASGI header names, checked in order
DIRECTIVE_HEADERS = ("x-controller", "controller")


@dataclass(frozen=True)
class RouteDirective:
    """
    The three-part routing decision: (group, handler, action).

    All three fields are always present. Missing or empty fields take the
    defaults ``("", "default", "index")``.
    """
    group: str = ""
    handler: str = "default"
    action: str = "index"

    @classmethod
    def parse(
        cls,
        raw: Optional[str],
        default_handler: str = "default",
        default_action: str = "index",
    ) -> "RouteDirective":
        """
        Parse ``group|handler|action``.

        Example:
            RouteDirective.parse("blog/blog.py|blog|show")
            RouteDirective.parse("||")  # -> ("", "default", "index")
        """
        parts = (raw or "").split(DIRECTIVE_SEPARATOR)
        parts += [""] * (3 - len(parts))

        group, handler, action = (p.strip() for p in parts[:3])
        return cls(
            group=group,
            handler=handler or default_handler,
            action=action or default_action,
        )

    def __str__(self) -> str:
        return DIRECTIVE_SEPARATOR.join((self.group, self.handler, self.action))

    def as_tuple(self):
        return (self.group, self.handler, self.action)


@dataclass
class RequestContext:
    """
    Per-request input to the dispatcher.

    Attributes:
        directive: Raw directive string, or None when absent
        path: Request path (or full URI; the query string is ignored)
        method: HTTP method
        headers: Lower-cased request headers
        query: Query parameters
    """
    directive: Optional[str] = None
    path: str = "/"
    method: str = "GET"
    headers: Dict[str, str] = field(default_factory=dict)
    query: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_environ(cls, environ: Mapping[str, Any]) -> "RequestContext":
        """Build from a CGI/WSGI-style environ."""
        directive = None
        for key in DIRECTIVE_ENVIRON_KEYS:
            if key in environ:
                directive = environ[key]
                break

        path = environ.get("REQUEST_URI") or environ.get("PATH_INFO") or "/"
        headers = {
            key[5:].replace("_", "-").lower(): str(value)
            for key, value in environ.items()
            if key.startswith("HTTP_")
        }
        return cls(
            directive=directive,
            path=path,
            method=environ.get("REQUEST_METHOD", "GET"),
            headers=headers,
            query=_parse_query(environ.get("QUERY_STRING", "")),
        )

    @classmethod
    def from_scope(cls, scope: Mapping[str, Any]) -> "RequestContext":
        """Build from an ASGI HTTP scope."""
        headers = {
            name.decode("latin-1").lower(): value.decode("latin-1")
            for name, value in scope.get("headers", [])
        }
        directive = None
        for name in DIRECTIVE_HEADERS:
            if name in headers:
                directive = headers[name]
                break

        return cls(
            directive=directive,
            path=scope.get("path", "/"),
            method=scope.get("method", "GET"),
            headers=headers,
            query=_parse_query(scope.get("query_string", b"").decode("latin-1")),
        )

    def header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        return self.headers.get(name.lower(), default)


def _parse_query(query_string: str) -> Dict[str, str]:
    return dict(parse_qsl(query_string, keep_blank_values=True))
