"""Gateway path parsing.

Splits ``/ipfs/<cid>/rest/of/path`` and ``/ipns/<name>/rest`` into a
namespace, an address, and the relative path below the address.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import StrEnum

from heron.errors import MalformedPathError

_SLASHES = re.compile(r"/{2,}")


class Namespace(StrEnum):
    """Addressing scheme named by the first path segment."""

    CONTENT = "ipfs"
    NAME = "ipns"


@dataclass(frozen=True, slots=True)
class RoutePath:
    """A parsed gateway path.

    ``relative_path`` is either empty or starts with exactly one ``/``, so
    ``resolved + relative_path`` always concatenates cleanly.
    """

    namespace: Namespace
    address: str
    relative_path: str = ""

    @property
    def path(self) -> str:
        """The canonical path this value was parsed from."""
        return f"/{self.namespace}/{self.address}{self.relative_path}"


def parse_path(path: str) -> RoutePath:
    """Parse a raw gateway path into a ``RoutePath``.

    Examples::

        "/ipfs/bafy"               -> RoutePath(CONTENT, "bafy", "")
        "/ipfs/bafy/a//b.png"      -> RoutePath(CONTENT, "bafy", "/a/b.png")
        "/ipns/example.com/"       -> RoutePath(NAME, "example.com", "/")

    Raises ``MalformedPathError`` when the path is not rooted, the
    namespace is neither ``ipfs`` nor ``ipns``, or the address is empty.
    """
    if not path.startswith("/"):
        raise MalformedPathError(path, "path must start with '/'")

    namespace, sep, rest = path[1:].partition("/")
    try:
        parsed_namespace = Namespace(namespace)
    except ValueError:
        raise MalformedPathError(path, f"unknown namespace {namespace!r}") from None

    if not sep:
        raise MalformedPathError(path, "missing address")

    address, sep, relative = rest.partition("/")
    if not address:
        raise MalformedPathError(path, "missing address")

    relative_path = _SLASHES.sub("/", f"/{relative}") if sep else ""
    return RoutePath(namespace=parsed_namespace, address=address, relative_path=relative_path)
