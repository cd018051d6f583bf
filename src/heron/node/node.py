"""The retrieval node: brokers in front of a local store.

``Node.fetch`` serves a content path from the blockstore when it has it,
otherwise streams it from the first broker that can start, storing the
bytes once the stream completes. ``Node.gc`` drops everything stored.

No timeouts are applied to broker streams: a hung upstream stalls the
request that is waiting on it and nothing else.
"""

from __future__ import annotations

import logging
import sqlite3
import time
from collections.abc import AsyncIterator

import httpx

from heron.config import GatewayConfig
from heron.errors import RetrievalError
from heron.node.blockstore import Blockstore, FileBlockstore, MemoryBlockstore, block_key
from heron.node.brokers import BlockBroker, BrokerUnavailable, GatewayBroker, PeerBroker
from heron.node.datastore import Datastore, MemoryDatastore, SqliteDatastore

logger = logging.getLogger("heron.node")

# Datastore key prefix for stored-content records
BLOCKS_PREFIX = "/blocks/"

# Resources larger than this stream through without being stored
DEFAULT_MAX_STORED_SIZE = 64 * 1024 * 1024


class Node:
    """Content retrieval over a set of brokers with a local store."""

    __slots__ = (
        "_client",
        "blockstore",
        "brokers",
        "datastore",
        "max_stored_size",
    )

    def __init__(
        self,
        brokers: tuple[BlockBroker, ...],
        *,
        blockstore: Blockstore | None = None,
        datastore: Datastore | None = None,
        client: httpx.AsyncClient | None = None,
        max_stored_size: int = DEFAULT_MAX_STORED_SIZE,
    ) -> None:
        self.brokers = brokers
        self.blockstore: Blockstore = blockstore or MemoryBlockstore()
        self.datastore: Datastore = datastore or MemoryDatastore()
        self.max_stored_size = max_stored_size
        # Shared by the brokers; closed on stop()
        self._client = client

    async def start(self) -> None:
        await self.blockstore.open()
        await self.datastore.open()
        logger.info(
            "Node started with brokers: %s",
            ", ".join(b.name for b in self.brokers) or "none",
        )

    async def stop(self) -> None:
        if self._client is not None:
            await self._client.aclose()
        await self.datastore.close()
        logger.info("Node stopped")

    async def fetch(self, path: str) -> AsyncIterator[bytes]:
        """Yield the bytes stored at content path *path* (``/ipfs/<cid>/...``).

        Raises ``RetrievalError`` if no broker can serve the path or a
        stream breaks after it started.
        """
        if not path.startswith("/ipfs/"):
            raise RetrievalError(path, "only content-addressed paths can be fetched")

        key = block_key(path)
        if await self.blockstore.has(key):
            logger.debug("Serving %s from the blockstore", path)
            async for chunk in self.blockstore.get(key):
                yield chunk
            return

        for broker in self.brokers:
            buffer: bytearray | None = bytearray()
            started = False
            try:
                async for chunk in broker.stream(path):
                    started = True
                    if buffer is not None:
                        buffer.extend(chunk)
                        if len(buffer) > self.max_stored_size:
                            buffer = None
                    yield chunk
            except BrokerUnavailable as exc:
                if started:
                    raise RetrievalError(path, str(exc)) from exc
                logger.debug("Broker %s cannot serve %s: %s", broker.name, path, exc)
                continue

            if buffer is not None:
                await self._remember(path, key, bytes(buffer))
            return

        raise RetrievalError(path, "no broker could serve the path")

    async def gc(self) -> int:
        """Remove all stored content. Returns the number of entries removed."""
        removed = 0
        keys = [key async for key in self.blockstore.keys()]
        for key in keys:
            await self.blockstore.delete(key)
            await self.datastore.delete(BLOCKS_PREFIX + key)
            removed += 1
        logger.info("Garbage collection removed %d entries", removed)
        return removed

    async def _remember(self, path: str, key: str, data: bytes) -> None:
        """Store fully retrieved content. Storage errors are logged, never raised."""
        try:
            await self.blockstore.put(key, data)
            await self.datastore.put(
                BLOCKS_PREFIX + key,
                {"path": path, "size": len(data), "stored_at": time.time()},
            )
        except (OSError, sqlite3.Error) as exc:
            logger.warning("Could not store %s: %s", path, exc)


def create_node(config: GatewayConfig) -> Node:
    """Build a node from configuration: brokers, stores, and a shared client."""
    client = httpx.AsyncClient(timeout=None, follow_redirects=True)

    brokers: list[BlockBroker] = []
    if config.peer_broker_enabled:
        brokers.append(PeerBroker(config.kubo_api_url, client))
    if config.gateway_broker_enabled:
        brokers.append(GatewayBroker(config.trustless_gateways, client))

    blockstore: Blockstore = (
        FileBlockstore(config.blockstore_path)
        if config.blockstore_path is not None
        else MemoryBlockstore()
    )
    datastore: Datastore = (
        SqliteDatastore(config.datastore_path)
        if config.datastore_path is not None
        else MemoryDatastore()
    )
    return Node(tuple(brokers), blockstore=blockstore, datastore=datastore, client=client)
