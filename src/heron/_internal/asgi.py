"""ASGI type aliases used by the handler, sender, and test client."""

from collections.abc import Awaitable, Callable, MutableMapping
from typing import Any, TypeAlias

# Raw ASGI 3.0 types
Scope: TypeAlias = MutableMapping[str, Any]
Message: TypeAlias = MutableMapping[str, Any]
Receive: TypeAlias = Callable[[], Awaitable[Message]]
Send: TypeAlias = Callable[[Message], Awaitable[None]]
