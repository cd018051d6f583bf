"""Key/value metadata stores for the node.

Holds small JSON records: what content the blockstore has
(``/blocks/<key>``) and persisted name resolutions (``/names/<name>``).

``SqliteDatastore`` uses stdlib sqlite3 and runs every blocking call in a
worker thread via ``anyio.to_thread`` so the event loop never waits on
disk.
"""

import json
import sqlite3
from collections.abc import AsyncIterator, Callable
from pathlib import Path
from typing import Any, Protocol

import anyio


def _run_sync(func: Callable[..., Any], *args: Any) -> Any:
    """Run blocking call in anyio worker thread."""
    return anyio.to_thread.run_sync(func, *args)  # type: ignore[union-attr]


class Datastore(Protocol):
    async def open(self) -> None: ...

    async def close(self) -> None: ...

    async def get(self, key: str) -> dict[str, Any] | None: ...

    async def put(self, key: str, value: dict[str, Any]) -> None: ...

    async def delete(self, key: str) -> None: ...

    def query(self, prefix: str) -> AsyncIterator[tuple[str, dict[str, Any]]]: ...


class MemoryDatastore:
    """Datastore kept in a dict. Lost on restart."""

    __slots__ = ("_data",)

    def __init__(self) -> None:
        self._data: dict[str, dict[str, Any]] = {}

    async def open(self) -> None:
        pass

    async def close(self) -> None:
        pass

    async def get(self, key: str) -> dict[str, Any] | None:
        value = self._data.get(key)
        return dict(value) if value is not None else None

    async def put(self, key: str, value: dict[str, Any]) -> None:
        self._data[key] = dict(value)

    async def delete(self, key: str) -> None:
        self._data.pop(key, None)

    async def query(self, prefix: str) -> AsyncIterator[tuple[str, dict[str, Any]]]:
        for key in sorted(k for k in self._data if k.startswith(prefix)):
            yield key, dict(self._data[key])


class SqliteDatastore:
    """Datastore persisted to a single SQLite file.

    *path* may be a directory (the database is created inside it as
    ``datastore.sqlite``) or a file path.
    """

    __slots__ = ("_conn", "_path")

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._conn: sqlite3.Connection | None = None

    @property
    def database_file(self) -> Path:
        if self._path.suffix:
            return self._path
        return self._path / "datastore.sqlite"

    async def open(self) -> None:
        if self._conn is not None:
            return

        def connect() -> sqlite3.Connection:
            self.database_file.parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(self.database_file, check_same_thread=False)
            conn.execute("PRAGMA journal_mode=WAL")
            conn.execute(
                "CREATE TABLE IF NOT EXISTS records (key TEXT PRIMARY KEY, value TEXT NOT NULL)"
            )
            conn.commit()
            return conn

        self._conn = await _run_sync(connect)

    async def close(self) -> None:
        if self._conn is None:
            return
        conn, self._conn = self._conn, None
        await _run_sync(conn.close)

    async def get(self, key: str) -> dict[str, Any] | None:
        conn = self._connection()
        row = await _run_sync(
            lambda: conn.execute("SELECT value FROM records WHERE key = ?", (key,)).fetchone()
        )
        return json.loads(row[0]) if row else None

    async def put(self, key: str, value: dict[str, Any]) -> None:
        conn = self._connection()
        payload = json.dumps(value)

        def write() -> None:
            conn.execute(
                "INSERT INTO records (key, value) VALUES (?, ?) "
                "ON CONFLICT(key) DO UPDATE SET value = excluded.value",
                (key, payload),
            )
            conn.commit()

        await _run_sync(write)

    async def delete(self, key: str) -> None:
        conn = self._connection()

        def remove() -> None:
            conn.execute("DELETE FROM records WHERE key = ?", (key,))
            conn.commit()

        await _run_sync(remove)

    async def query(self, prefix: str) -> AsyncIterator[tuple[str, dict[str, Any]]]:
        conn = self._connection()
        # substr() comparison avoids LIKE wildcard escaping for '_' and '%'
        rows = await _run_sync(
            lambda: conn.execute(
                "SELECT key, value FROM records WHERE substr(key, 1, ?) = ? ORDER BY key",
                (len(prefix), prefix),
            ).fetchall()
        )
        for key, value in rows:
            yield key, json.loads(value)

    def _connection(self) -> sqlite3.Connection:
        if self._conn is None:
            msg = "SqliteDatastore is not open; call open() first."
            raise RuntimeError(msg)
        return self._conn
