"""ASGI response sending — translates heron response types to ASGI messages.

``send_response`` and ``send_redirect`` emit complete responses.
``ResponseSink`` is the incremental path used by the content streamer: it
commits status and headers exactly once, then relays body chunks.
"""

from heron._internal.asgi import Send
from heron.http.response import Redirect, Response


def _body_allowed(status: int) -> bool:
    """Whether an HTTP status code permits a response body."""
    # RFC: 1xx, 204, and 304 responses do not include a message body.
    return not (100 <= status < 200 or status in {204, 304})


def _encode_headers(headers: tuple[tuple[str, str], ...]) -> list[tuple[bytes, bytes]]:
    return [(name.lower().encode("latin-1"), value.encode("latin-1")) for name, value in headers]


async def send_response(response: Response, send: Send) -> None:
    """Translate a heron Response into ASGI send() calls."""
    body = response.body_bytes if _body_allowed(response.status) else b""

    raw_headers = _encode_headers(response.headers)
    if body:
        raw_headers.insert(0, (b"content-type", response.content_type.encode("latin-1")))
    raw_headers.append((b"content-length", str(len(body)).encode("latin-1")))

    await send(
        {
            "type": "http.response.start",
            "status": response.status,
            "headers": raw_headers,
        }
    )
    await send({"type": "http.response.body", "body": body})


async def send_redirect(redirect: Redirect, send: Send) -> None:
    """Send a redirect with a ``Location`` header and no body."""
    raw_headers = [
        (b"location", redirect.url.encode("latin-1")),
        *_encode_headers(redirect.headers),
        (b"content-length", b"0"),
    ]
    await send(
        {
            "type": "http.response.start",
            "status": redirect.status,
            "headers": raw_headers,
        }
    )
    await send({"type": "http.response.body", "body": b""})


class ResponseSink:
    """Per-request response state for incremental (streamed) bodies.

    ``start()`` commits status and headers and may run once; ``write()``
    refuses to run before it. Chunked transfer encoding is left to the
    server, since no content length is declared.
    """

    __slots__ = ("_send", "bytes_written", "finished", "headers_sent", "status")

    def __init__(self, send: Send) -> None:
        self._send = send
        self.headers_sent = False
        self.finished = False
        self.status: int | None = None
        self.bytes_written = 0

    async def start(self, status: int, headers: tuple[tuple[str, str], ...]) -> None:
        if self.headers_sent:
            msg = "Response headers were already sent."
            raise RuntimeError(msg)
        self.headers_sent = True
        self.status = status
        await self._send(
            {
                "type": "http.response.start",
                "status": status,
                "headers": _encode_headers(headers),
            }
        )

    async def write(self, chunk: bytes) -> None:
        if not self.headers_sent:
            msg = "Cannot write a body chunk before the response has started."
            raise RuntimeError(msg)
        if self.finished:
            msg = "Cannot write after the response has ended."
            raise RuntimeError(msg)
        if not chunk:
            return
        await self._send({"type": "http.response.body", "body": chunk, "more_body": True})
        self.bytes_written += len(chunk)

    async def end(self) -> None:
        if self.finished:
            return
        self.finished = True
        await self._send({"type": "http.response.body", "body": b"", "more_body": False})

    async def fail(self) -> None:
        """Answer 500 with an empty body. Only valid before headers are sent."""
        await self.start(500, (("content-length", "0"),))
        await self.end()
