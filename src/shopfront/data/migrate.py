"""Forward-only SQL migration runner.

Migrations are numbered ``.sql`` files in a directory::

    migrations/
        001_initial_schema.sql
        002_add_view_count.sql

Applied versions are tracked in a ``_shopfront_migrations`` table. Each
file runs inside its own transaction together with its tracking row; a
failing file is rolled back and stops the run.

Usage::

    db = Database("sqlite:///shop.db")
    await db.connect()
    result = await migrate(db)          # bundled schema
    print(result.summary)
"""

import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path

from shopfront.data.database import Database
from shopfront.data.errors import MigrationError, QueryError

logger = logging.getLogger("shopfront.data")

MIGRATIONS_DIR = Path(__file__).resolve().parent.parent / "migrations"

_TRACKING_TABLE = "_shopfront_migrations"

_CREATE_TRACKING_SQL = f"""
CREATE TABLE IF NOT EXISTS {_TRACKING_TABLE} (
    version    INTEGER PRIMARY KEY,
    name       TEXT    NOT NULL,
    applied_at TEXT    NOT NULL
)
"""


@dataclass(frozen=True, slots=True)
class Migration:
    """A single migration file."""

    version: int
    name: str
    sql: str


@dataclass(frozen=True, slots=True)
class MigrationResult:
    """Result of running migrations."""

    applied: list[str]
    already_applied: int
    total_available: int

    @property
    def summary(self) -> str:
        if not self.applied:
            return f"Already up to date ({self.already_applied} migrations applied)"
        return f"Applied {len(self.applied)} migration(s): {', '.join(self.applied)}"


def discover_migrations(directory: str | Path) -> list[Migration]:
    """Read ``NNN_description.sql`` files from *directory*, sorted by version."""
    path = Path(directory)
    if not path.is_dir():
        msg = f"Migration directory does not exist: {path}"
        raise MigrationError(msg)

    migrations: list[Migration] = []
    for sql_file in sorted(path.glob("*.sql")):
        name = sql_file.stem
        version_part, sep, _ = name.partition("_")
        if not sep:
            msg = f"Invalid migration filename: {sql_file.name} (expected NNN_description.sql)"
            raise MigrationError(msg)
        try:
            version = int(version_part)
        except ValueError:
            msg = (
                f"Invalid migration version in {sql_file.name}: "
                f"{version_part!r} is not an integer"
            )
            raise MigrationError(msg) from None

        sql = sql_file.read_text(encoding="utf-8").strip()
        if not sql:
            msg = f"Empty migration file: {sql_file.name}"
            raise MigrationError(msg)
        migrations.append(Migration(version=version, name=name, sql=sql))

    versions = [m.version for m in migrations]
    if len(versions) != len(set(versions)):
        msg = "Duplicate migration version numbers found"
        raise MigrationError(msg)

    return sorted(migrations, key=lambda m: m.version)


async def _applied_versions(db: Database) -> set[int]:
    rows = await db.fetch_all(f"SELECT version FROM {_TRACKING_TABLE}")
    return {int(row["version"]) for row in rows}


async def _apply(db: Database, migration: Migration) -> None:
    # executescript ignores the driver's transaction handling, so the
    # transaction is opened in SQL and closed explicitly.
    try:
        await db.execute_script(f"BEGIN;\n{migration.sql}\n;")
        await db.query(
            f"INSERT INTO {_TRACKING_TABLE} (version, name, applied_at) VALUES (?, ?, ?)",
            migration.version,
            migration.name,
            datetime.now(UTC).isoformat(),
        )
        await db.query("COMMIT")
    except QueryError:
        try:
            await db.query("ROLLBACK")
        except QueryError:
            logger.debug("No open transaction to roll back for %s", migration.name)
        raise


async def migrate(db: Database, directory: str | Path = MIGRATIONS_DIR) -> MigrationResult:
    """Apply pending migrations from *directory* in version order.

    Raises:
        MigrationError: If the directory is invalid or a migration fails.
    """
    migrations = discover_migrations(directory)
    await db.query(_CREATE_TRACKING_SQL)
    applied_versions = await _applied_versions(db)

    applied_names: list[str] = []
    for migration in migrations:
        if migration.version in applied_versions:
            continue
        try:
            await _apply(db, migration)
        except QueryError as exc:
            msg = f"Migration {migration.name} failed: {exc}"
            raise MigrationError(msg) from exc
        logger.info("Applied migration %s", migration.name)
        applied_names.append(migration.name)

    return MigrationResult(
        applied=applied_names,
        already_applied=len(applied_versions),
        total_available=len(migrations),
    )
