"""Case-insensitive, read-only view over raw ASGI header pairs.

Decodes lazily: header values stay as bytes until a handler asks for one.
"""

from collections.abc import Iterable, Iterator, Mapping


class Headers(Mapping[str, str]):
    """Read-only, case-insensitive request headers.

    ``__getitem__`` returns the first value for a name; ``get_list`` returns
    all of them in arrival order.
    """

    __slots__ = ("_index",)

    def __init__(self, raw: Iterable[tuple[bytes, bytes]] = ()) -> None:
        self._index: dict[str, list[bytes]] = {}
        for name, value in raw:
            self._index.setdefault(name.decode("latin-1").lower(), []).append(value)

    def __getitem__(self, key: str) -> str:
        values = self._index.get(key.lower())
        if not values:
            raise KeyError(key)
        return values[0].decode("latin-1")

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and key.lower() in self._index

    def __iter__(self) -> Iterator[str]:
        return iter(self._index)

    def __len__(self) -> int:
        return len(self._index)

    def __repr__(self) -> str:
        return f"Headers({dict(self.items())!r})"

    def get_list(self, key: str) -> list[str]:
        """Return every value sent for *key*."""
        return [value.decode("latin-1") for value in self._index.get(key.lower(), ())]
