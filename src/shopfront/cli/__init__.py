"""Shopfront CLI: serve, migrate, inspect routes, create an administrator.

Entry point registered as ``shopfront`` in ``pyproject.toml``::

    [project.scripts]
    shopfront = "shopfront.cli:main"

Configuration comes from ``SHOPFRONT_*`` environment variables.
"""

import argparse
import logging
import sys

from shopfront.config import AppConfig


def _configure_logging(config: AppConfig) -> None:
    logging.basicConfig(
        level=config.log_level.upper(),
        format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
    )


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for the ``shopfront`` command."""
    parser = argparse.ArgumentParser(
        prog="shopfront",
        description="Shopfront: a server-rendered storefront.",
    )
    subparsers = parser.add_subparsers(dest="command")

    # -- shopfront run ----------------------------------------------------
    run_parser = subparsers.add_parser("run", help="Start the server")
    run_parser.add_argument("--host", default=None, help="Bind host address")
    run_parser.add_argument("--port", type=int, default=None, help="Bind port number")
    run_parser.add_argument("--debug", action="store_true", help="Debug pages and auto-reload")

    # -- shopfront migrate ------------------------------------------------
    subparsers.add_parser("migrate", help="Apply pending database migrations")

    # -- shopfront routes -------------------------------------------------
    subparsers.add_parser("routes", help="List registered routes")

    # -- shopfront create-admin -------------------------------------------
    admin_parser = subparsers.add_parser("create-admin", help="Create an administrator account")
    admin_parser.add_argument("--email", required=True)
    admin_parser.add_argument("--password", required=True)
    admin_parser.add_argument("--username", default=None)
    admin_parser.add_argument("--first-name", default="Store")
    admin_parser.add_argument("--last-name", default="Admin")

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    overrides = {"debug": True} if getattr(args, "debug", False) else {}
    config = AppConfig.from_env(**overrides)
    _configure_logging(config)

    if args.command == "run":
        from shopfront.cli._run import run_server

        run_server(config, args)
    elif args.command == "migrate":
        from shopfront.cli._db import run_migrate

        run_migrate(config)
    elif args.command == "routes":
        from shopfront.cli._routes import run_routes

        run_routes(config)
    elif args.command == "create-admin":
        from shopfront.cli._db import run_create_admin

        run_create_admin(config, args)
