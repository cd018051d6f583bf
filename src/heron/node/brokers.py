"""Block brokers — the sources a node pulls content from.

Both brokers stream over ``httpx``:

- ``PeerBroker`` asks a local network daemon to ``cat`` the path through
  its RPC API; the daemon performs peer discovery and block exchange.
- ``GatewayBroker`` walks a list of upstream HTTP gateways and streams the
  first one that answers 200.

A broker raises ``BrokerUnavailable`` when it cannot start a stream.
Once bytes have flowed, any failure surfaces as ``RetrievalError``.
"""

import logging
from collections.abc import AsyncIterator
from typing import Protocol
from urllib.parse import quote

import httpx

from heron.errors import RetrievalError

logger = logging.getLogger("heron.node")


class BrokerUnavailable(Exception):  # noqa: N818
    """A broker could not start streaming a path."""


class BlockBroker(Protocol):
    name: str

    def stream(self, path: str) -> AsyncIterator[bytes]: ...


async def _relay(response: httpx.Response, path: str, source: str) -> AsyncIterator[bytes]:
    try:
        async for chunk in response.aiter_bytes():
            if chunk:
                yield chunk
    except httpx.HTTPError as exc:
        raise RetrievalError(path, f"{source} failed mid-stream: {exc}") from exc


class PeerBroker:
    """Fetch through a local daemon's ``/api/v0/cat`` endpoint."""

    name = "peer"

    __slots__ = ("_api_url", "_client")

    def __init__(self, api_url: str, client: httpx.AsyncClient) -> None:
        self._api_url = api_url.rstrip("/")
        self._client = client

    async def stream(self, path: str) -> AsyncIterator[bytes]:
        request = self._client.build_request(
            "POST", f"{self._api_url}/api/v0/cat", params={"arg": path}
        )
        try:
            response = await self._client.send(request, stream=True)
        except httpx.HTTPError as exc:
            raise BrokerUnavailable(f"peer daemon unreachable: {exc}") from exc

        try:
            if response.status_code != 200:
                raise BrokerUnavailable(f"peer daemon answered {response.status_code}")
            async for chunk in _relay(response, path, "peer daemon"):
                yield chunk
        finally:
            await response.aclose()


class GatewayBroker:
    """Fetch from the first upstream gateway that serves the path."""

    name = "gateway"

    __slots__ = ("_client", "gateways")

    def __init__(self, gateways: tuple[str, ...], client: httpx.AsyncClient) -> None:
        self.gateways = tuple(g.rstrip("/") for g in gateways)
        self._client = client

    async def stream(self, path: str) -> AsyncIterator[bytes]:
        for gateway in self.gateways:
            request = self._client.build_request("GET", f"{gateway}{quote(path)}")
            try:
                response = await self._client.send(request, stream=True)
            except httpx.HTTPError as exc:
                logger.debug("Gateway %s unreachable for %s: %s", gateway, path, exc)
                continue

            try:
                if response.status_code != 200:
                    logger.debug(
                        "Gateway %s answered %d for %s", gateway, response.status_code, path
                    )
                    continue
                async for chunk in _relay(response, path, gateway):
                    yield chunk
                return
            finally:
                await response.aclose()

        raise BrokerUnavailable(f"no gateway served {path}")
