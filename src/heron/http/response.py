"""Values a route handler can return.

``Response`` and ``Redirect`` are complete up front. ``ContentStream`` is a
sentinel: the handler only names what to stream, and the ASGI handler
hands it to the content streamer, which decides the headers once the
first chunk arrives.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TypeAlias

IMMUTABLE_CACHE_CONTROL = "public, max-age=31536000, immutable"


@dataclass(frozen=True, slots=True)
class Response:
    """A complete response with a plain-text body by default.

    Used for the index page, error details and bare status answers.
    """

    body: str | bytes = ""
    status: int = 200
    content_type: str = "text/plain; charset=utf-8"
    headers: tuple[tuple[str, str], ...] = ()

    @property
    def body_bytes(self) -> bytes:
        if isinstance(self.body, str):
            return self.body.encode("utf-8")
        return self.body


@dataclass(frozen=True, slots=True)
class Redirect:
    """A redirect response."""

    url: str
    status: int = 302
    headers: tuple[tuple[str, str], ...] = ()


@dataclass(frozen=True, slots=True)
class ContentStream:
    """Stream the content at a content-addressed path (``/ipfs/<cid>/...``).

    Status and headers are committed by the streamer on the first chunk,
    so there is nothing here to transform.
    """

    path: str


# Any value a route handler may return
AnyResponse: TypeAlias = Response | Redirect | ContentStream
