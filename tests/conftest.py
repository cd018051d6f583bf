"""Shared fakes for gateway tests.

``FakeNode`` serves canned chunk lists per path and can fail on demand;
``FakeResolver`` answers from a dict and counts calls.
"""

import asyncio
from collections.abc import AsyncIterator

import pytest

from heron.app import Gateway
from heron.config import GatewayConfig
from heron.errors import ResolutionFailedError, RetrievalError
from heron.node.datastore import MemoryDatastore

CID = "bafybeigdyrzt5sfp7udm7hu76uh7y26nf3efuylqabf3oclgtqy55fbzdi"


class FakeNode:
    """In-memory retrieval node.

    ``fail_before`` makes a path fail before its first chunk;
    ``fail_after[path] = n`` makes it fail after yielding *n* chunks.
    """

    def __init__(self, content: dict[str, list[bytes]] | None = None) -> None:
        self.content = dict(content or {})
        self.datastore = MemoryDatastore()
        self.fail_before: set[str] = set()
        self.fail_after: dict[str, int] = {}
        self.fetched: list[str] = []
        self.pulled = 0
        self.closed: list[str] = []
        self.gc_calls = 0
        self.started = False
        self.stopped = False

    async def start(self) -> None:
        self.started = True

    async def stop(self) -> None:
        self.stopped = True

    async def gc(self) -> int:
        self.gc_calls += 1
        return 0

    async def fetch(self, path: str) -> AsyncIterator[bytes]:
        self.fetched.append(path)
        try:
            if path in self.fail_before:
                raise RetrievalError(path, "injected failure")
            if path not in self.content:
                raise RetrievalError(path, "not found")
            for index, chunk in enumerate(self.content[path]):
                if self.fail_after.get(path) == index:
                    raise RetrievalError(path, "injected mid-stream failure")
                await asyncio.sleep(0)
                self.pulled += 1
                yield chunk
        finally:
            self.closed.append(path)


class FakeResolver:
    def __init__(self, records: dict[str, str] | None = None) -> None:
        self.records = dict(records or {})
        self.calls: list[str] = []
        self.closed = False

    async def resolve(self, name: str) -> str:
        self.calls.append(name)
        if name not in self.records:
            raise ResolutionFailedError(name, "no record")
        return self.records[name]

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
def node() -> FakeNode:
    return FakeNode()


@pytest.fixture
def resolver() -> FakeResolver:
    return FakeResolver()


@pytest.fixture
def gateway(node: FakeNode, resolver: FakeResolver) -> Gateway:
    return Gateway(GatewayConfig(), node=node, resolver=resolver)
