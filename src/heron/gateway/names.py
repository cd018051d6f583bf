"""Name resolution: an external resolver behind a bounded, expiring cache.

``/ipns/<name>`` requests resolve ``<name>`` to a ``/ipfs/<cid>`` path
through a delegated routing endpoint. The endpoint is slow and rate
limited, so results are kept in a least-recently-used cache whose entries
go stale after a fixed TTL.

Concurrency model: one event loop. Cache mutation happens between
suspension points, so no lock is taken. Concurrent misses for the same
name are not coalesced; each may call out.
"""

from __future__ import annotations

import logging
import time
from collections import OrderedDict
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol
from urllib.parse import quote

import httpx

from heron.errors import ResolutionFailedError

if TYPE_CHECKING:
    from heron.node.datastore import Datastore

logger = logging.getLogger("heron.gateway")

DEFAULT_MAX_ENTRIES = 10_000
DEFAULT_TTL = 60 * 60 * 24

# Datastore key prefix for persisted resolutions
NAMES_PREFIX = "/names/"


class NameResolver(Protocol):
    """Anything that turns a name into a content-addressed path."""

    async def resolve(self, name: str) -> str: ...


class DelegatedRoutingResolver:
    """Resolve names through a delegated routing HTTP API.

    Issues ``GET {base_url}/api/v0/name/resolve/{name}?r=false`` and reads
    the ``Path`` field of the JSON reply.
    """

    __slots__ = ("_base_url", "_client", "_owns_client")

    def __init__(
        self,
        base_url: str,
        *,
        client: httpx.AsyncClient | None = None,
        timeout: float | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def resolve(self, name: str) -> str:
        url = f"{self._base_url}/api/v0/name/resolve/{quote(name, safe='')}"
        try:
            response = await self._client.get(url, params={"r": "false"})
        except httpx.HTTPError as exc:
            raise ResolutionFailedError(name, f"{type(exc).__name__}: {exc}") from exc

        if response.status_code != 200:
            raise ResolutionFailedError(name, f"resolver answered {response.status_code}")

        try:
            payload = response.json()
        except ValueError as exc:
            raise ResolutionFailedError(name, "resolver returned invalid JSON") from exc

        path = payload.get("Path") if isinstance(payload, dict) else None
        if not isinstance(path, str) or not path.startswith("/ipfs/"):
            raise ResolutionFailedError(name, f"resolver returned no content path: {payload!r}")
        return path.rstrip("/")

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()


@dataclass(frozen=True, slots=True)
class CacheEntry:
    """A resolved path and the time it was stored."""

    resolved_path: str
    stored_at: float


class NameResolutionCache:
    """Bounded LRU cache of name → resolved path with a fixed TTL.

    Entries older than ``ttl`` are treated as absent and dropped when a
    lookup finds them. Failures from the resolver propagate and are never
    cached.

    Usage::

        names = NameResolutionCache(DelegatedRoutingResolver(url))
        path = await names.resolve("example.com")  # "/ipfs/bafy..."
    """

    __slots__ = ("_clock", "_datastore", "_entries", "_resolver", "max_entries", "ttl")

    def __init__(
        self,
        resolver: NameResolver,
        *,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        ttl: float = DEFAULT_TTL,
        clock: Callable[[], float] = time.time,
        datastore: Datastore | None = None,
    ) -> None:
        if max_entries <= 0:
            msg = f"max_entries must be positive, got {max_entries}"
            raise ValueError(msg)
        self._resolver = resolver
        self._clock = clock
        self._datastore = datastore
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()
        self.max_entries = max_entries
        self.ttl = ttl

    async def resolve(self, name: str) -> str:
        """Return the resolved path for *name*, calling out only on a miss."""
        cached = self.get(name)
        if cached is not None:
            return cached

        logger.debug("Resolving %s", name)
        resolved = await self._resolver.resolve(name)
        entry = self._store(name, resolved, self._clock())
        if self._datastore is not None:
            await self._datastore.put(
                NAMES_PREFIX + name,
                {"path": entry.resolved_path, "stored_at": entry.stored_at},
            )
        logger.info("Resolved %s -> %s", name, resolved)
        return resolved

    def get(self, name: str) -> str | None:
        """Return a fresh cached path and mark it recently used, else None."""
        entry = self._entries.get(name)
        if entry is None:
            return None
        if self._expired(entry):
            del self._entries[name]
            return None
        self._entries.move_to_end(name)
        return entry.resolved_path

    def put(self, name: str, resolved_path: str, stored_at: float | None = None) -> None:
        """Insert or overwrite an entry, evicting the LRU entry past capacity."""
        self._store(name, resolved_path, self._clock() if stored_at is None else stored_at)

    def clear(self) -> None:
        self._entries.clear()

    async def load(self) -> int:
        """Warm the cache from persisted resolutions that are still fresh.

        Returns the number of entries loaded.
        """
        if self._datastore is None:
            return 0
        records = sorted(
            [
                (key.removeprefix(NAMES_PREFIX), value)
                async for key, value in self._datastore.query(NAMES_PREFIX)
            ],
            key=lambda item: item[1].get("stored_at", 0.0),
        )
        loaded = 0
        for name, value in records:
            entry = CacheEntry(value["path"], float(value["stored_at"]))
            if self._expired(entry):
                continue
            self._store(name, entry.resolved_path, entry.stored_at)
            loaded += 1
        if loaded:
            logger.info("Loaded %d cached name resolutions", loaded)
        return loaded

    def _store(self, name: str, resolved_path: str, stored_at: float) -> CacheEntry:
        entry = CacheEntry(resolved_path, stored_at)
        self._entries[name] = entry
        self._entries.move_to_end(name)
        while len(self._entries) > self.max_entries:
            evicted, _ = self._entries.popitem(last=False)
            logger.debug("Evicted %s from name cache", evicted)
        return entry

    def _expired(self, entry: CacheEntry) -> bool:
        return entry.stored_at + self.ttl < self._clock()

    def __contains__(self, name: object) -> bool:
        entry = self._entries.get(name) if isinstance(name, str) else None
        return entry is not None and not self._expired(entry)

    def __len__(self) -> int:
        return len(self._entries)
