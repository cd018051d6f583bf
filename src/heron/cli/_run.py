"""``heron run`` and ``heron config`` — build the config, then serve or print it."""

import argparse
import sys
from dataclasses import asdict

from heron.config import GatewayConfig
from heron.errors import ConfigurationError


def load_config(args: argparse.Namespace | None = None) -> GatewayConfig:
    """Environment configuration with CLI flags layered on top.

    Exits with status 1 on invalid configuration.
    """
    try:
        config = GatewayConfig.from_env()
        if args is not None:
            config = config.with_overrides(
                host=args.host,
                port=args.port,
                log_level=args.log_level,
            )
        config.validate()
    except ConfigurationError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc
    return config


def run_gateway(args: argparse.Namespace) -> None:
    """Start the gateway under pounce."""
    from heron.app import Gateway

    config = load_config(args)
    print(f"Gateway listening on http://{config.host}:{config.port}", file=sys.stderr)
    Gateway(config).run()


def print_config() -> None:
    config = load_config()
    for key, value in asdict(config).items():
        print(f"{key} = {value!r}")
