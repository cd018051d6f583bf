"""Content streaming with deferred headers.

The type of a resource is unknown until its first bytes arrive, so the
streamer holds back status and headers until the first chunk, decides
``Content-Type`` from that chunk and the relative path, commits the
headers, and only then writes. Every later chunk is written as-is.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from typing import TYPE_CHECKING, Protocol

from heron.errors import MalformedPathError
from heron.gateway.content_type import resolve_content_type
from heron.gateway.paths import Namespace, parse_path
from heron.http.response import IMMUTABLE_CACHE_CONTROL

if TYPE_CHECKING:
    from heron.server.sender import ResponseSink

logger = logging.getLogger("heron.gateway")


class ContentSource(Protocol):
    """The retrieval capability the streamer needs: fetch by content path."""

    def fetch(self, path: str) -> AsyncIterator[bytes]: ...


class ContentStreamer:
    """Pump a retrieved ChunkStream into a ``ResponseSink``."""

    __slots__ = ("_source", "cache_control")

    def __init__(
        self,
        source: ContentSource,
        *,
        cache_control: str = IMMUTABLE_CACHE_CONTROL,
    ) -> None:
        self._source = source
        self.cache_control = cache_control

    async def stream(self, path: str, sink: ResponseSink) -> None:
        """Stream the content at *path* into *sink*.

        Raises ``MalformedPathError`` for a path that is not
        content-addressed, and lets retrieval errors propagate; the
        caller decides what the client sees based on
        ``sink.headers_sent``. The chunk stream is closed on every exit,
        including cancellation.
        """
        route = parse_path(path)
        if route.namespace is not Namespace.CONTENT:
            raise MalformedPathError(path, "expected a content-addressed path")

        chunks = self._source.fetch(route.path)
        try:
            async for chunk in chunks:
                if not sink.headers_sent:
                    await self._start(sink, chunk, route.relative_path)
                await sink.write(chunk)

            if not sink.headers_sent:
                # Empty resource: nothing to sniff, but the client still needs headers.
                await self._start(sink, b"", route.relative_path)
            await sink.end()
            logger.debug("Streamed %d bytes for %s", sink.bytes_written, path)
        finally:
            aclose = getattr(chunks, "aclose", None)
            if aclose is not None:
                await aclose()

    async def _start(self, sink: ResponseSink, first_chunk: bytes, relative_path: str) -> None:
        content_type = resolve_content_type(first_chunk, relative_path)
        await sink.start(
            200,
            (
                ("Content-Type", content_type),
                ("Cache-Control", self.cache_control),
            ),
        )
