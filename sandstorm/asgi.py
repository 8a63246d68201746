"""
ASGI adapter - serves an Application over HTTP (e.g. under uvicorn).

Dispatch is synchronous, so each request runs in the default executor.
Responses are gzip-compressed when the client accepts it.
"""

import asyncio
import gzip
import logging
from typing import Callable, List, Optional, Tuple

from .app import Application, Response
from .request import RequestContext


logger = logging.getLogger("sandstorm.asgi")

MIN_GZIP_SIZE = 256


class ASGIAdapter:
    """
    ASGI application wrapping a Sandstorm ``Application``.

    The directive comes from the ``x-controller``/``controller`` request
    header, as installed by a rewrite rule, or from the rule file.
    """

    def __init__(self, app: Application):
        self.app = app

    async def __call__(self, scope: dict, receive: Callable, send: Callable):
        scope_type = scope["type"]
        if scope_type == "http":
            await self.handle_http(scope, receive, send)
        elif scope_type == "lifespan":
            await self.handle_lifespan(scope, receive, send)

    async def handle_http(self, scope: dict, receive: Callable, send: Callable):
        request = RequestContext.from_scope(scope)

        loop = asyncio.get_running_loop()
        response = await loop.run_in_executor(None, self.app.handle, request)

        headers, body = self.encode(response, request.header("accept-encoding", ""))
        await send({
            "type": "http.response.start",
            "status": response.status,
            "headers": headers,
        })
        await send({"type": "http.response.body", "body": body})

    def encode(self, response: Response, accept_encoding: Optional[str]) -> Tuple[List[Tuple[bytes, bytes]], bytes]:
        body = response.body
        headers = [(k.lower(), v) for k, v in response.headers]

        if "gzip" in (accept_encoding or "") and len(body) >= MIN_GZIP_SIZE:
            body = gzip.compress(body)
            headers.append(("content-encoding", "gzip"))

        headers = [(k, v) for k, v in headers if k != "content-length"]
        headers.append(("content-length", str(len(body))))
        return [(k.encode("latin-1"), v.encode("latin-1")) for k, v in headers], body

    async def handle_lifespan(self, scope: dict, receive: Callable, send: Callable):
        """Handle ASGI lifespan events."""
        while True:
            message = await receive()

            if message["type"] == "lifespan.startup":
                logger.debug("Serving site %s", self.app.settings.site_root)
                await send({"type": "lifespan.startup.complete"})
            elif message["type"] == "lifespan.shutdown":
                await send({"type": "lifespan.shutdown.complete"})
                break


def create_asgi_app(config_paths: Optional[list] = None, env_file: Optional[str] = None) -> ASGIAdapter:
    """Build an ASGI app from configuration files."""
    return ASGIAdapter(Application.from_config(config_paths, env_file=env_file))
