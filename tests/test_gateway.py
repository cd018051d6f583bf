"""End-to-end tests for the gateway app through the ASGI test client."""

import time

from heron.app import INDEX_TEXT, Gateway
from heron.gateway.names import NAMES_PREFIX
from heron.http.response import IMMUTABLE_CACHE_CONTROL
from heron.testing import TestClient

from .conftest import CID, FakeNode, FakeResolver

HTML = b"<!DOCTYPE html><html><body>hi</body></html>"


class TestIndex:
    async def test_index_text(self, gateway: Gateway) -> None:
        async with TestClient(gateway) as client:
            response = await client.get("/")

        assert response.status == 200
        assert response.text == INDEX_TEXT
        assert response.content_type == "text/plain; charset=utf-8"


class TestContentRoute:
    async def test_streams_with_sniffed_headers(self, gateway: Gateway, node: FakeNode) -> None:
        node.content[f"/ipfs/{CID}"] = [HTML, b"<p>more</p>"]

        async with TestClient(gateway) as client:
            response = await client.get(f"/ipfs/{CID}")

        assert response.status == 200
        assert response.content_type == "text/html"
        assert response.header("cache-control") == IMMUTABLE_CACHE_CONTROL
        assert response.body == HTML + b"<p>more</p>"
        assert response.complete
        assert response.messages[0]["type"] == "http.response.start"

    async def test_extension_decides_type(self, gateway: Gateway, node: FakeNode) -> None:
        node.content[f"/ipfs/{CID}/app.js"] = [b"console.log(1)"]

        async with TestClient(gateway) as client:
            response = await client.get(f"/ipfs/{CID}/app.js")

        assert response.content_type == "text/javascript"

    async def test_query_string_is_not_part_of_content_path(
        self, gateway: Gateway, node: FakeNode
    ) -> None:
        node.content[f"/ipfs/{CID}"] = [b"x"]

        async with TestClient(gateway) as client:
            response = await client.get(f"/ipfs/{CID}?filename=x.bin")

        assert response.status == 200
        assert node.fetched == [f"/ipfs/{CID}"]

    async def test_failure_before_first_chunk_is_bare_500(
        self, gateway: Gateway, node: FakeNode
    ) -> None:
        node.content[f"/ipfs/{CID}"] = [b"x"]
        node.fail_before.add(f"/ipfs/{CID}")

        async with TestClient(gateway) as client:
            response = await client.get(f"/ipfs/{CID}")

        assert response.status == 500
        assert response.body == b""
        assert response.complete

    async def test_failure_after_first_chunk_truncates(
        self, gateway: Gateway, node: FakeNode
    ) -> None:
        node.content[f"/ipfs/{CID}"] = [b"one", b"two", b"three"]
        node.fail_after[f"/ipfs/{CID}"] = 1

        async with TestClient(gateway) as client:
            response = await client.get(f"/ipfs/{CID}")

        # Status was committed with the first chunk and cannot change.
        assert response.status == 200
        assert response.chunks == [b"one"]
        assert not response.complete

    async def test_unknown_content_is_500(self, gateway: Gateway) -> None:
        async with TestClient(gateway) as client:
            response = await client.get(f"/ipfs/{CID}/missing.txt")

        assert response.status == 500
        assert response.body == b""

    async def test_missing_address_is_500(self, gateway: Gateway, node: FakeNode) -> None:
        async with TestClient(gateway) as client:
            response = await client.get("/ipfs/")

        assert response.status == 500
        assert node.fetched == []

    async def test_client_disconnect_closes_source(
        self, gateway: Gateway, node: FakeNode
    ) -> None:
        node.content[f"/ipfs/{CID}"] = [b"chunk"] * 100

        async with TestClient(gateway) as client:
            response = await client.get(f"/ipfs/{CID}", disconnect_after=1)

        assert response.status == 200
        assert not response.complete
        assert node.closed == [f"/ipfs/{CID}"]
        assert node.pulled < 100

    async def test_post_is_not_allowed(self, gateway: Gateway) -> None:
        async with TestClient(gateway) as client:
            response = await client.request("POST", f"/ipfs/{CID}")

        assert response.status == 405
        assert response.header("allow") == "GET"


class TestNameRoute:
    async def test_resolves_then_streams(
        self, gateway: Gateway, node: FakeNode, resolver: FakeResolver
    ) -> None:
        resolver.records["example.com"] = f"/ipfs/{CID}"
        node.content[f"/ipfs/{CID}/index.html"] = [HTML]

        async with TestClient(gateway) as client:
            response = await client.get("/ipns/example.com/index.html")

        assert response.status == 200
        assert response.content_type == "text/html"
        assert response.body == HTML
        assert node.fetched == [f"/ipfs/{CID}/index.html"]

    async def test_second_request_uses_cache(
        self, gateway: Gateway, node: FakeNode, resolver: FakeResolver
    ) -> None:
        resolver.records["example.com"] = f"/ipfs/{CID}"
        node.content[f"/ipfs/{CID}/a.txt"] = [b"a"]
        node.content[f"/ipfs/{CID}/b.txt"] = [b"b"]

        async with TestClient(gateway) as client:
            first = await client.get("/ipns/example.com/a.txt")
            second = await client.get("/ipns/example.com/b.txt")

        assert (first.body, second.body) == (b"a", b"b")
        assert resolver.calls == ["example.com"]

    async def test_resolution_failure_is_500(
        self, gateway: Gateway, node: FakeNode, resolver: FakeResolver
    ) -> None:
        async with TestClient(gateway) as client:
            response = await client.get("/ipns/unknown.example/")

        assert response.status == 500
        assert response.body == b""
        assert resolver.calls == ["unknown.example"]
        assert node.fetched == []

    async def test_nested_name_request_redirects_under_referrer(
        self, gateway: Gateway, resolver: FakeResolver
    ) -> None:
        async with TestClient(gateway) as client:
            response = await client.get(
                "/ipns/other.example/page",
                headers={"Referer": "http://localhost:8080/ipns/example.com/"},
            )

        assert response.status == 302
        assert response.location == "http://localhost:8080/ipns/example.com/other.example/page"
        assert resolver.calls == []

    async def test_request_under_referrer_is_not_redirected(
        self, gateway: Gateway, node: FakeNode, resolver: FakeResolver
    ) -> None:
        resolver.records["example.com"] = f"/ipfs/{CID}"
        node.content[f"/ipfs/{CID}/style.css"] = [b"body{}"]

        async with TestClient(gateway) as client:
            response = await client.get(
                "/ipns/example.com/style.css",
                headers={"Referer": "http://localhost:8080/ipns/example.com/"},
            )

        assert response.status == 200
        assert response.body == b"body{}"

    async def test_content_referrer_does_not_redirect(
        self, gateway: Gateway, node: FakeNode, resolver: FakeResolver
    ) -> None:
        resolver.records["example.com"] = f"/ipfs/{CID}"
        node.content[f"/ipfs/{CID}"] = [b"x"]

        async with TestClient(gateway) as client:
            response = await client.get(
                "/ipns/example.com",
                headers={"Referer": f"http://localhost:8080/ipfs/{CID}/"},
            )

        assert response.status == 200

    async def test_persisted_resolution_is_loaded_at_startup(
        self, gateway: Gateway, node: FakeNode, resolver: FakeResolver
    ) -> None:
        await node.datastore.put(
            NAMES_PREFIX + "example.com",
            {"path": f"/ipfs/{CID}", "stored_at": time.time()},
        )
        node.content[f"/ipfs/{CID}"] = [b"x"]

        async with TestClient(gateway) as client:
            response = await client.get("/ipns/example.com")

        assert response.status == 200
        assert resolver.calls == []


class TestRelativeFallback:
    async def test_rebuilds_prefix_from_referrer(self, gateway: Gateway) -> None:
        async with TestClient(gateway) as client:
            response = await client.get(
                "/foo", headers={"Referer": "http://localhost:8080/ipns/example.com/"}
            )

        assert response.status == 302
        assert response.location == "/ipns/example.com/foo"

    async def test_collapses_slashes(self, gateway: Gateway) -> None:
        async with TestClient(gateway) as client:
            response = await client.get(
                "/assets//app.css",
                headers={"Referer": f"http://localhost:8080/ipfs/{CID}/"},
            )

        assert response.location == f"/ipfs/{CID}/assets/app.css"

    async def test_root_referrer_does_not_redirect_to_itself(self, gateway: Gateway) -> None:
        async with TestClient(gateway) as client:
            response = await client.get("/foo", headers={"Referer": "http://localhost:8080/"})

        assert response.status == 404
        assert response.location is None

    async def test_without_referrer_is_404(self, gateway: Gateway) -> None:
        async with TestClient(gateway) as client:
            response = await client.get("/foo")

        assert response.status == 404
        assert response.text == "Not Found: /foo"


class TestGarbageCollection:
    async def test_gc_returns_200(self, gateway: Gateway, node: FakeNode) -> None:
        async with TestClient(gateway) as client:
            response = await client.get("/api/v0/repo/gc")

        assert response.status == 200
        assert response.body == b""
        assert node.gc_calls == 1


class TestLifespan:
    async def test_startup_and_shutdown(
        self, gateway: Gateway, node: FakeNode, resolver: FakeResolver
    ) -> None:
        incoming = [{"type": "lifespan.startup"}, {"type": "lifespan.shutdown"}]
        sent: list[dict] = []

        async def receive() -> dict:
            return incoming.pop(0)

        async def send(message: dict) -> None:
            sent.append(message)

        await gateway({"type": "lifespan"}, receive, send)

        assert [m["type"] for m in sent] == [
            "lifespan.startup.complete",
            "lifespan.shutdown.complete",
        ]
        assert node.started
        assert node.stopped
        assert resolver.closed

    async def test_startup_failure_is_reported(self, resolver: FakeResolver) -> None:
        class BrokenNode(FakeNode):
            async def start(self) -> None:
                raise OSError("blockstore unavailable")

        gateway = Gateway(node=BrokenNode(), resolver=resolver)
        sent: list[dict] = []

        async def receive() -> dict:
            return {"type": "lifespan.startup"}

        async def send(message: dict) -> None:
            sent.append(message)

        await gateway({"type": "lifespan"}, receive, send)

        assert sent == [{"type": "lifespan.startup.failed", "message": "blockstore unavailable"}]
