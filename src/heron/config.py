"""Gateway configuration.

GatewayConfig is a frozen dataclass: immutable after creation, IDE-autocompletable,
no string-key dict lookups. ``from_env()`` reads the environment-style
options a container deployment sets.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, replace
from pathlib import Path
from urllib.parse import urlsplit

from heron.errors import ConfigurationError

DEFAULT_TRUSTLESS_GATEWAYS: tuple[str, ...] = (
    "https://ipfs.io",
    "https://dweb.link",
    "https://w3s.link",
)


@dataclass(frozen=True, slots=True)
class GatewayConfig:
    """Gateway configuration. Immutable after creation.

    All fields have sensible defaults. Override what you need::

        config = GatewayConfig(port=3000, use_libp2p=False)
    """

    # Server
    host: str = "0.0.0.0"
    port: int = 8080
    debug: bool = False  # serve with debug-level logging regardless of log_level
    log_level: str = "info"

    # Block brokers
    use_bitswap: bool = True
    use_trustless_gateways: bool = True
    trustless_gateways: tuple[str, ...] = DEFAULT_TRUSTLESS_GATEWAYS

    # Peer networking. False runs headless (resolution and gateways only)
    use_libp2p: bool = True
    kubo_api_url: str = "http://127.0.0.1:5001"

    # Storage. None keeps blocks / metadata in memory
    blockstore_path: str | Path | None = None
    datastore_path: str | Path | None = None

    # Name resolution
    delegated_routing_url: str = "https://node3.delegate.ipfs.io"
    name_cache_max_entries: int = 10_000
    name_cache_ttl: float = 60 * 60 * 24

    @property
    def peer_broker_enabled(self) -> bool:
        """Block exchange needs the peer-networking subsystem."""
        return self.use_bitswap and self.use_libp2p

    @property
    def gateway_broker_enabled(self) -> bool:
        return self.use_trustless_gateways and bool(self.trustless_gateways)

    def with_overrides(self, **changes: object) -> GatewayConfig:
        """Return a copy with the non-None *changes* applied."""
        return replace(self, **{k: v for k, v in changes.items() if v is not None})

    def validate(self) -> None:
        """Raise ``ConfigurationError`` if the configuration cannot serve requests."""
        if not 0 < self.port < 65536:
            msg = f"port must be between 1 and 65535, got {self.port}"
            raise ConfigurationError(msg)
        if self.name_cache_max_entries <= 0:
            msg = f"name_cache_max_entries must be positive, got {self.name_cache_max_entries}"
            raise ConfigurationError(msg)
        if self.name_cache_ttl <= 0:
            msg = f"name_cache_ttl must be positive, got {self.name_cache_ttl}"
            raise ConfigurationError(msg)
        if not (self.peer_broker_enabled or self.gateway_broker_enabled):
            msg = (
                "No block broker enabled. Enable USE_BITSWAP (with USE_LIBP2P) "
                "or USE_TRUSTLESS_GATEWAYS."
            )
            raise ConfigurationError(msg)
        for url in (*self.trustless_gateways, self.kubo_api_url, self.delegated_routing_url):
            parts = urlsplit(url)
            if parts.scheme not in ("http", "https") or not parts.netloc:
                msg = f"Expected an http(s) URL, got {url!r}"
                raise ConfigurationError(msg)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> GatewayConfig:
        """Build a config from environment variables.

        Boolean switches are on unless set to the literal ``"false"``.
        Unset variables keep the dataclass defaults.
        """
        env = os.environ if environ is None else environ
        defaults = cls()

        gateways = env.get("TRUSTLESS_GATEWAYS")
        return cls(
            host=env.get("HOST", defaults.host),
            port=_int(env, "PORT", defaults.port),
            debug=env.get("DEBUG", "false").lower() in ("1", "true", "yes"),
            log_level=env.get("LOG_LEVEL", defaults.log_level).lower(),
            use_bitswap=_switch(env, "USE_BITSWAP"),
            use_trustless_gateways=_switch(env, "USE_TRUSTLESS_GATEWAYS"),
            trustless_gateways=(
                tuple(g.strip().rstrip("/") for g in gateways.split(",") if g.strip())
                if gateways is not None
                else defaults.trustless_gateways
            ),
            use_libp2p=_switch(env, "USE_LIBP2P"),
            kubo_api_url=env.get("KUBO_API_URL", defaults.kubo_api_url).rstrip("/"),
            blockstore_path=env.get("FILE_BLOCKSTORE_PATH") or None,
            datastore_path=env.get("FILE_DATASTORE_PATH") or None,
            delegated_routing_url=env.get(
                "DELEGATED_ROUTING_URL", defaults.delegated_routing_url
            ).rstrip("/"),
            name_cache_max_entries=_int(
                env, "NAME_CACHE_MAX_ENTRIES", defaults.name_cache_max_entries
            ),
            name_cache_ttl=_float(env, "NAME_CACHE_TTL", defaults.name_cache_ttl),
        )


def _switch(env: Mapping[str, str], key: str) -> bool:
    return env.get(key) != "false"


def _int(env: Mapping[str, str], key: str, default: int) -> int:
    raw = env.get(key)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        msg = f"{key} must be an integer, got {raw!r}"
        raise ConfigurationError(msg) from None


def _float(env: Mapping[str, str], key: str, default: float) -> float:
    raw = env.get(key)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError:
        msg = f"{key} must be a number, got {raw!r}"
        raise ConfigurationError(msg) from None
