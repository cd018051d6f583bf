"""Tests for heron.gateway.streamer — deferred headers, then chunks."""

import pytest

from heron.errors import MalformedPathError, RetrievalError
from heron.gateway.streamer import ContentStreamer
from heron.http.response import IMMUTABLE_CACHE_CONTROL
from heron.server.sender import ResponseSink

from .conftest import CID, FakeNode

PNG = (
    b"\x89PNG\r\n\x1a\n"
    b"\x00\x00\x00\rIHDR\x00\x00\x00\x10\x00\x00\x00\x10\x08\x06\x00\x00\x00"
)


class Recorder:
    def __init__(self) -> None:
        self.messages: list[dict] = []

    async def __call__(self, message: dict) -> None:
        self.messages.append(message)

    @property
    def types(self) -> list[str]:
        return [m["type"] for m in self.messages]

    @property
    def headers(self) -> dict[bytes, bytes]:
        return dict(self.messages[0]["headers"])


class TestStream:
    async def test_headers_precede_body(self) -> None:
        node = FakeNode({f"/ipfs/{CID}/logo.png": [PNG, b"rest"]})
        send = Recorder()

        await ContentStreamer(node).stream(f"/ipfs/{CID}/logo.png", ResponseSink(send))

        assert send.types == [
            "http.response.start",
            "http.response.body",
            "http.response.body",
            "http.response.body",
        ]
        assert send.messages[0]["status"] == 200
        assert send.headers[b"content-type"] == b"image/png"
        assert send.headers[b"cache-control"] == IMMUTABLE_CACHE_CONTROL.encode()
        assert [m["body"] for m in send.messages[1:]] == [PNG, b"rest", b""]

    async def test_only_first_chunk_decides_type(self) -> None:
        html = b"<!DOCTYPE html><html></html>"
        node = FakeNode({f"/ipfs/{CID}": [b"plain words", html]})
        send = Recorder()

        await ContentStreamer(node).stream(f"/ipfs/{CID}", ResponseSink(send))

        assert send.headers[b"content-type"] == b"text/plain"

    async def test_extension_wins_over_bytes(self) -> None:
        node = FakeNode({f"/ipfs/{CID}/site.css": [b"<html>not really</html>"]})
        send = Recorder()

        await ContentStreamer(node).stream(f"/ipfs/{CID}/site.css", ResponseSink(send))

        assert send.headers[b"content-type"].startswith(b"text/css")

    async def test_empty_stream_still_sends_headers(self) -> None:
        node = FakeNode({f"/ipfs/{CID}": []})
        send = Recorder()
        sink = ResponseSink(send)

        await ContentStreamer(node).stream(f"/ipfs/{CID}", sink)

        assert send.types == ["http.response.start", "http.response.body"]
        assert send.headers[b"content-type"] == b"application/octet-stream"
        assert sink.finished

    async def test_fetches_address_path_and_closes_source(self) -> None:
        node = FakeNode({f"/ipfs/{CID}/a/b.txt": [b"x"]})

        await ContentStreamer(node).stream(f"/ipfs/{CID}//a/b.txt", ResponseSink(Recorder()))

        assert node.fetched == [f"/ipfs/{CID}/a/b.txt"]
        assert node.closed == [f"/ipfs/{CID}/a/b.txt"]

    async def test_rejects_name_paths(self) -> None:
        node = FakeNode()
        send = Recorder()

        with pytest.raises(MalformedPathError):
            await ContentStreamer(node).stream("/ipns/example.com", ResponseSink(send))
        assert node.fetched == []
        assert send.messages == []

    async def test_failure_before_first_chunk_sends_nothing(self) -> None:
        node = FakeNode({f"/ipfs/{CID}": [b"x"]})
        node.fail_before.add(f"/ipfs/{CID}")
        send = Recorder()
        sink = ResponseSink(send)

        with pytest.raises(RetrievalError):
            await ContentStreamer(node).stream(f"/ipfs/{CID}", sink)
        assert not sink.headers_sent
        assert send.messages == []

    async def test_failure_mid_stream_leaves_response_open(self) -> None:
        node = FakeNode({f"/ipfs/{CID}": [b"one", b"two"]})
        node.fail_after[f"/ipfs/{CID}"] = 1
        send = Recorder()
        sink = ResponseSink(send)

        with pytest.raises(RetrievalError):
            await ContentStreamer(node).stream(f"/ipfs/{CID}", sink)
        assert sink.headers_sent
        assert not sink.finished
        assert node.closed == [f"/ipfs/{CID}"]
