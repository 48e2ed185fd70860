"""``shopfront migrate`` and ``shopfront create-admin``."""

import argparse
import sys

import anyio

from shopfront.config import AppConfig
from shopfront.constants import ROLE_ADMIN
from shopfront.data import Database, MigrationError, migrate
from shopfront.errors import ValidationFailed
from shopfront.models import UserModel


def run_migrate(config: AppConfig) -> None:
    async def _main() -> None:
        async with Database(config.database_url, echo=config.echo_sql) as db:
            result = await migrate(db)
        print(result.summary)

    try:
        anyio.run(_main)
    except MigrationError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc


async def create_admin(db: Database, args: argparse.Namespace) -> int:
    """Register a verified administrator; return the new user id."""
    users = UserModel(db)
    account = await users.register(
        {
            "first_name": args.first_name,
            "last_name": args.last_name,
            "email": args.email,
            "password": args.password,
        },
        role=ROLE_ADMIN,
        email_verified=True,
    )
    if args.username:
        if await users.username_exists(args.username):
            raise ValidationFailed({"username": ["Username is already taken"]})
        await db.update("users", {"username": args.username}, "id = ?", account.user_id)
    return account.user_id


def run_create_admin(config: AppConfig, args: argparse.Namespace) -> None:
    async def _main() -> int:
        async with Database(config.database_url, echo=config.echo_sql) as db:
            await migrate(db)
            return await create_admin(db, args)

    try:
        user_id = anyio.run(_main)
    except ValidationFailed as exc:
        for message in exc.messages:
            print(f"Error: {message}", file=sys.stderr)
        raise SystemExit(1) from exc
    print(f"Created administrator #{user_id} <{args.email}>")
