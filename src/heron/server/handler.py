"""ASGI handler — translates ASGI scope/messages to heron types.

The only component besides the sender that touches raw ASGI. Converts the
scope to an immutable Request, dispatches through the route table, and
sends whatever the handler returned back through ASGI send().
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from heron._internal.asgi import Receive, Scope, Send
from heron.errors import HTTPError
from heron.http.request import Request
from heron.http.response import AnyResponse, ContentStream, Redirect, Response
from heron.server.sender import send_redirect, send_response
from heron.server.streaming import handle_content_stream
from heron.server.terminal_errors import log_error

if TYPE_CHECKING:
    from heron.gateway.streamer import ContentStreamer
    from heron.routing.router import Router

logger = logging.getLogger("heron.server")


async def handle_request(
    scope: Scope,
    receive: Receive,
    send: Send,
    *,
    router: Router,
    streamer: ContentStreamer,
) -> None:
    """Process a single HTTP request through the full pipeline."""
    if scope["type"] != "http":
        return

    request = Request.from_asgi(scope)

    response: AnyResponse
    try:
        match = router.match(request.method, request.path)
        response = await match.route.handler(request.with_path_params(match.path_params))
    except HTTPError as exc:
        response = http_error_response(exc)
    except Exception as exc:
        log_error(exc, request)
        response = Response(status=500)

    if isinstance(response, ContentStream):
        await handle_content_stream(response, request, send, receive, streamer=streamer)
    elif isinstance(response, Redirect):
        logger.debug("Redirecting %s to %s", request.url, response.url)
        await send_redirect(response, send)
    else:
        await send_response(response, send)


def http_error_response(exc: HTTPError) -> Response:
    """Plain-text response for an ``HTTPError``."""
    return Response(body=exc.detail, status=exc.status, headers=exc.headers)
