"""Content-stream dispatch — the request boundary for streamed bodies.

Runs two concurrent tasks:

- **Producer**: the content streamer pulling chunks into a ``ResponseSink``.
- **Disconnect monitor**: awaits ``http.disconnect`` from the client and
  lets the producer be cancelled, which closes the chunk stream and
  releases the upstream connection.

Failures never propagate past this boundary. Before the headers are sent
the client gets a clean 500 with no body. After that the status is
already committed, so the response is left unterminated and the server
drops the connection.
"""

from __future__ import annotations

import asyncio
import contextlib
from typing import TYPE_CHECKING

from heron._internal.asgi import Receive, Send
from heron.server.sender import ResponseSink
from heron.server.terminal_errors import log_error

if TYPE_CHECKING:
    from heron.gateway.streamer import ContentStreamer
    from heron.http.request import Request
    from heron.http.response import ContentStream


async def handle_content_stream(
    response: ContentStream,
    request: Request,
    send: Send,
    receive: Receive,
    *,
    streamer: ContentStreamer,
) -> ResponseSink:
    """Stream *response* to the client, absorbing every failure."""
    sink = ResponseSink(send)

    async def monitor_disconnect() -> None:
        while True:
            message = await receive()
            if message.get("type") == "http.disconnect":
                return

    producer_task = asyncio.create_task(streamer.stream(response.path, sink))
    monitor_task = asyncio.create_task(monitor_disconnect())

    try:
        await asyncio.wait({producer_task, monitor_task}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        for task in (producer_task, monitor_task):
            if not task.done():
                task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await task

    if producer_task.cancelled():
        # Client went away; the streamer's cleanup already closed the source.
        return sink

    exc = producer_task.exception()
    if exc is None:
        return sink

    if not sink.headers_sent:
        log_error(exc, request)
        await sink.fail()
    else:
        log_error(exc, request, status=None)
    return sink
