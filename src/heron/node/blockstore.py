"""Content stores for retrieved resources.

Each stored resource is one opaque byte string keyed by the SHA-256 of
its content path. ``FileBlockstore`` writes one file per key through
``anyio.Path`` so reads and writes never block the event loop.
"""

import hashlib
import uuid
from collections.abc import AsyncIterator
from pathlib import Path
from typing import Protocol

import anyio

# Size of the chunks stored content is replayed in
READ_CHUNK_SIZE = 64 * 1024


def block_key(path: str) -> str:
    """Stable storage key for a content path."""
    return hashlib.sha256(path.encode("utf-8")).hexdigest()


class Blockstore(Protocol):
    async def open(self) -> None: ...

    async def has(self, key: str) -> bool: ...

    def get(self, key: str) -> AsyncIterator[bytes]: ...

    async def put(self, key: str, data: bytes) -> None: ...

    async def delete(self, key: str) -> None: ...

    def keys(self) -> AsyncIterator[str]: ...


class MemoryBlockstore:
    """Blockstore kept in a dict. Lost on restart."""

    __slots__ = ("_blocks",)

    def __init__(self) -> None:
        self._blocks: dict[str, bytes] = {}

    async def open(self) -> None:
        pass

    async def has(self, key: str) -> bool:
        return key in self._blocks

    async def get(self, key: str) -> AsyncIterator[bytes]:
        data = self._blocks[key]
        for start in range(0, len(data), READ_CHUNK_SIZE):
            yield data[start : start + READ_CHUNK_SIZE]

    async def put(self, key: str, data: bytes) -> None:
        self._blocks[key] = data

    async def delete(self, key: str) -> None:
        self._blocks.pop(key, None)

    async def keys(self) -> AsyncIterator[str]:
        for key in list(self._blocks):
            yield key


class FileBlockstore:
    """Blockstore backed by a directory, sharded on the first two hex digits."""

    __slots__ = ("_root",)

    def __init__(self, root: str | Path) -> None:
        self._root = anyio.Path(root)

    async def open(self) -> None:
        await self._root.mkdir(parents=True, exist_ok=True)

    def _file(self, key: str) -> anyio.Path:
        return self._root / key[:2] / key

    async def has(self, key: str) -> bool:
        return await self._file(key).is_file()

    async def get(self, key: str) -> AsyncIterator[bytes]:
        async with await anyio.open_file(self._file(key), "rb") as f:
            while chunk := await f.read(READ_CHUNK_SIZE):
                yield chunk

    async def put(self, key: str, data: bytes) -> None:
        target = self._file(key)
        await target.parent.mkdir(parents=True, exist_ok=True)
        # Unique per writer, so concurrent puts of one key never share a temp file
        partial = target.with_name(f"{key}.{uuid.uuid4().hex}.partial")
        try:
            await partial.write_bytes(data)
            await partial.replace(target)
        except OSError:
            await partial.unlink(missing_ok=True)
            raise

    async def delete(self, key: str) -> None:
        await self._file(key).unlink(missing_ok=True)

    async def keys(self) -> AsyncIterator[str]:
        if not await self._root.is_dir():
            return
        async for shard in self._root.iterdir():
            if not await shard.is_dir():
                continue
            async for entry in shard.iterdir():
                if not entry.name.endswith(".partial"):
                    yield entry.name
