"""The heron gateway application.

Wires the node, the name cache, and the content streamer behind a static
route table and exposes the whole thing as an ASGI 3.0 callable.
"""

from __future__ import annotations

import logging
from typing import Protocol

from heron._internal.asgi import Receive, Scope, Send
from heron.config import GatewayConfig
from heron.errors import MalformedPathError, RedirectTargetUnavailableError
from heron.gateway.names import DelegatedRoutingResolver, NameResolutionCache, NameResolver
from heron.gateway.paths import Namespace, parse_path
from heron.gateway.redirect import name_redirect_target, relative_redirect_target
from heron.gateway.streamer import ContentSource, ContentStreamer
from heron.http.request import Request
from heron.http.response import ContentStream, Redirect, Response
from heron.node.datastore import Datastore
from heron.routing.router import Router
from heron.server.handler import handle_request

logger = logging.getLogger("heron.server")

INDEX_TEXT = "Heron gateway, to fetch a page, call `/ipns/<path>` or `/ipfs/<cid>`"


class ContentNode(ContentSource, Protocol):
    """What the gateway needs from a retrieval node."""

    datastore: Datastore

    async def start(self) -> None: ...

    async def stop(self) -> None: ...

    async def gc(self) -> int: ...


class Gateway:
    """The gateway ASGI application.

    Usage::

        gateway = Gateway(GatewayConfig.from_env())
        gateway.run()

    Collaborators can be injected for tests or embedding::

        gateway = Gateway(node=my_node, resolver=my_resolver)
    """

    __slots__ = ("_resolver", "_router", "_started", "config", "names", "node", "streamer")

    def __init__(
        self,
        config: GatewayConfig | None = None,
        *,
        node: ContentNode | None = None,
        resolver: NameResolver | None = None,
        names: NameResolutionCache | None = None,
    ) -> None:
        self.config: GatewayConfig = config or GatewayConfig()
        if node is None:
            from heron.node.node import create_node

            node = create_node(self.config)
        self.node: ContentNode = node
        self._resolver: NameResolver = resolver or DelegatedRoutingResolver(
            self.config.delegated_routing_url
        )
        self.names: NameResolutionCache = names or NameResolutionCache(
            self._resolver,
            max_entries=self.config.name_cache_max_entries,
            ttl=self.config.name_cache_ttl,
            datastore=self.node.datastore,
        )
        self.streamer = ContentStreamer(self.node)
        self._router = self._build_router()
        self._started = False

    # -- Route table --

    def _build_router(self) -> Router:
        """Static table, matched in order. The relative fallback stays last."""
        router = Router()
        router.add("/ipfs/{path:path}", self.fetch_content, name="content")
        router.add("/ipns/{path:path}", self.fetch_name, name="name")
        router.add("/api/v0/repo/gc", self.collect_garbage, name="gc")
        router.add("/", self.index, name="index")
        router.add("/{path:path}", self.redirect_relative, name="fallback")
        router.compile()
        return router

    @property
    def router(self) -> Router:
        return self._router

    # -- Handlers --

    async def index(self, request: Request) -> Response:
        return Response(INDEX_TEXT)

    async def fetch_content(self, request: Request) -> ContentStream:
        """``/ipfs/<cid>/...`` — stream it. Parsing happens in the streamer."""
        return ContentStream(request.path)

    async def fetch_name(self, request: Request) -> ContentStream | Redirect:
        """``/ipns/<name>/...`` — fix up lost prefixes, resolve, then stream."""
        route = parse_path(request.path)
        if route.namespace is not Namespace.NAME:
            raise MalformedPathError(request.path, "expected a name-addressed path")

        redirect = self._nested_name_redirect(request, route.address, route.relative_path)
        if redirect is not None:
            return redirect

        resolved = await self.names.resolve(route.address)
        return ContentStream(f"{resolved}{route.relative_path}")

    def _nested_name_redirect(
        self, request: Request, address: str, relative_path: str
    ) -> Redirect | None:
        referrer = request.referrer
        referrer_path = request.referrer_path
        if referrer is None or referrer_path is None:
            return None
        if request.url.startswith(referrer_path):
            return None
        try:
            referrer_route = parse_path(referrer_path)
        except MalformedPathError:
            return None
        if referrer_route.namespace is not Namespace.NAME:
            return None

        target = name_redirect_target(referrer, address, relative_path)
        logger.debug("Nesting %s under referrer %s", request.url, referrer)
        return Redirect(target)

    async def collect_garbage(self, request: Request) -> Response:
        """Run garbage collection on the node; 200 once it completes."""
        await self.node.gc()
        return Response(status=200)

    async def redirect_relative(self, request: Request) -> Redirect:
        """Fallback: rebuild a relative asset URL from the referrer's path."""
        referrer_path = request.referrer_path
        if not referrer_path:
            raise RedirectTargetUnavailableError(request.path)
        target = relative_redirect_target(referrer_path, request.path)
        if target == request.path:
            # A root referrer would send the client back here
            raise RedirectTargetUnavailableError(request.path)
        return Redirect(target)

    # -- Lifecycle --

    async def startup(self) -> None:
        if self._started:
            return
        await self.node.start()
        await self.names.load()
        self._started = True
        logger.info("Gateway ready")

    async def shutdown(self) -> None:
        if not self._started:
            return
        self._started = False
        await self.node.stop()
        aclose = getattr(self._resolver, "aclose", None)
        if aclose is not None:
            await aclose()
        logger.info("Gateway stopped")

    def run(self, host: str | None = None, port: int | None = None) -> None:
        """Validate the configuration and serve until interrupted.

        ``debug`` forces debug-level server logging.
        """
        from heron.server.serve import run_server

        self.config.validate()
        run_server(
            self,
            host or self.config.host,
            port or self.config.port,
            log_level="debug" if self.config.debug else self.config.log_level,
        )

    # -- ASGI interface --

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """ASGI 3.0 entry point."""
        if scope["type"] == "lifespan":
            await self._handle_lifespan(receive, send)
            return

        await handle_request(
            scope,
            receive,
            send,
            router=self._router,
            streamer=self.streamer,
        )

    async def _handle_lifespan(self, receive: Receive, send: Send) -> None:
        """Run the ASGI lifespan protocol: start the node, warm the cache."""
        while True:
            message = await receive()
            msg_type = message["type"]

            if msg_type == "lifespan.startup":
                try:
                    await self.startup()
                except Exception as exc:
                    logger.exception("Gateway startup failed")
                    await send({"type": "lifespan.startup.failed", "message": str(exc)})
                    return
                await send({"type": "lifespan.startup.complete"})

            elif msg_type == "lifespan.shutdown":
                await self.shutdown()
                await send({"type": "lifespan.shutdown.complete"})
                return
