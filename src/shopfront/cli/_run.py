"""``shopfront run``: serve the application with pounce."""

import argparse

from shopfront.app import create_app
from shopfront.config import AppConfig


def run_server(config: AppConfig, args: argparse.Namespace) -> None:
    app = create_app(config)
    app.run(host=args.host, port=args.port)
