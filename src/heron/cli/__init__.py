"""Heron CLI.

Entry point registered as ``heron`` in ``pyproject.toml``::

    [project.scripts]
    heron = "heron.cli:main"
"""

import argparse
import sys


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for the ``heron`` command."""
    parser = argparse.ArgumentParser(
        prog="heron",
        description="Heron — an HTTP gateway for content-addressed networks.",
    )
    subparsers = parser.add_subparsers(dest="command")

    # -- heron run --------------------------------------------------------
    run_parser = subparsers.add_parser(
        "run",
        help="Start the gateway (configured from the environment)",
    )
    run_parser.add_argument("--host", default=None, help="Bind host address (HOST)")
    run_parser.add_argument("--port", type=int, default=None, help="Bind port number (PORT)")
    run_parser.add_argument(
        "--log-level",
        default=None,
        choices=["debug", "info", "warning", "error", "critical"],
        help="Log level (LOG_LEVEL)",
    )

    # -- heron config -----------------------------------------------------
    subparsers.add_parser("config", help="Print the effective configuration and exit")

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    if args.command == "run":
        from heron.cli._run import run_gateway

        run_gateway(args)
    elif args.command == "config":
        from heron.cli._run import print_config

        print_config()
