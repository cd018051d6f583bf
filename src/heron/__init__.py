"""Heron — an async HTTP gateway for content-addressed networks.

Serves ``/ipfs/<cid>/...`` and ``/ipns/<name>/...`` paths by streaming
content from a retrieval node, with deferred content-type sniffing and a
bounded, expiring name-resolution cache.

Basic usage::

    from heron import Gateway, GatewayConfig

    gateway = Gateway(GatewayConfig.from_env())
    gateway.run()

Or from the command line::

    heron run --port 8080
"""

__version__ = "0.1.0"
__all__ = [
    "ConfigurationError",
    "Gateway",
    "GatewayConfig",
    "HTTPError",
    "HeronError",
    "MalformedPathError",
    "NotFound",
    "RedirectTargetUnavailableError",
    "ResolutionFailedError",
    "RetrievalError",
]


def __getattr__(name: str) -> object:
    """Lazy imports for public API.

    Keeps ``import heron`` fast and free of httpx/anyio until needed.
    """
    if name == "Gateway":
        from heron.app import Gateway

        return Gateway

    if name == "GatewayConfig":
        from heron.config import GatewayConfig

        return GatewayConfig

    if name in __all__:
        from heron import errors as _errors

        return getattr(_errors, name)

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)
