"""Serve a gateway with pounce.

Runs a single worker: the name cache lives in process memory and is
shared by every request on that worker's event loop.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from heron.app import Gateway


def run_server(gateway: Gateway, host: str, port: int, *, log_level: str = "info") -> None:
    """Start a pounce server with the live Gateway object.

    Pounce's ``run()`` takes an import string, but we hold a configured
    ASGI callable, so ``pounce.Server`` is used directly.
    """
    from pounce.config import ServerConfig
    from pounce.server import Server

    config = ServerConfig(
        host=host,
        port=port,
        workers=1,
        log_level=log_level,
    )
    server = Server(config, gateway)
    server.run()
