"""Async Data Gateway over SQLite.

Runs stdlib ``sqlite3`` in worker threads via ``anyio``. Query in,
dicts (or frozen dataclasses) out. Every externally supplied value
travels as a bound parameter; table and column names passed to the
write helpers are checked against a strict identifier pattern.

Connection URL format::

    sqlite:///path/to/shop.db    # SQLite file
    sqlite:///:memory:           # In-memory SQLite

Usage::

    db = Database("sqlite:///shop.db")
    await db.connect()

    user = await db.fetch("SELECT * FROM users WHERE email = ?", email)
    rows = await db.fetch_all("SELECT * FROM products WHERE status = ?", "active")
    total = await db.fetch_val("SELECT COUNT(*) FROM products")

    new_id = await db.insert("categories", {"name": "Tools", "slug": "tools"})
    await db.update("products", {"price": 9.5}, "id = ?", new_id)
    await db.delete("products", "id = ?", new_id)

    async with db.transaction():
        order_id = await db.insert("orders", {...})
        await db.insert("order_items", {"order_id": order_id, ...})

The connection handle is created once at startup and injected wherever
it is needed. Statements on it are serialized by an ``anyio.Lock``; a
transaction holds that lock from ``begin_transaction`` until
``commit``/``rollback`` so other tasks cannot interleave statements.
"""

from __future__ import annotations

import re
import sqlite3
import sys
import threading
import time
from collections.abc import AsyncIterator, Mapping, Sequence
from contextlib import asynccontextmanager
from contextvars import ContextVar
from dataclasses import dataclass
from functools import partial
from typing import Any

import anyio

from shopfront.data._mapping import map_row, map_rows
from shopfront.data.errors import DataError, QueryError

# Connection owned by the current task's transaction, if any.
_current_conn: ContextVar[sqlite3.Connection | None] = ContextVar(
    "shopfront_db_conn", default=None
)

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def _check_identifier(name: str) -> str:
    if not _IDENTIFIER.match(name):
        msg = f"Invalid SQL identifier: {name!r}"
        raise DataError(msg)
    return name


@dataclass(frozen=True, slots=True)
class _Outcome:
    """What one executed statement left behind, read inside its worker thread."""

    columns: tuple[str, ...]
    rows: list[tuple[Any, ...]]
    rowcount: int
    lastrowid: int | None

    def dicts(self) -> list[dict[str, Any]]:
        return [dict(zip(self.columns, row, strict=True)) for row in self.rows]


def _execute(conn: sqlite3.Connection, sql: str, params: tuple[Any, ...],
             first_only: bool) -> _Outcome:
    # Statement and fetch share one thread hop; no cursor reaches the loop.
    cursor = conn.execute(sql, params)
    if cursor.description is None:
        columns: tuple[str, ...] = ()
        rows: list[tuple[Any, ...]] = []
    else:
        columns = tuple(desc[0] for desc in cursor.description)
        rows = cursor.fetchmany(1) if first_only else cursor.fetchall()
    return _Outcome(columns, rows, max(cursor.rowcount, 0), cursor.lastrowid)


def _open(path: str) -> sqlite3.Connection:
    conn = sqlite3.connect(path, autocommit=True, check_same_thread=False)
    conn.execute("PRAGMA foreign_keys=ON")
    if path != ":memory:":
        conn.execute("PRAGMA journal_mode=WAL")
    return conn


@dataclass(frozen=True, slots=True)
class DatabaseConfig:
    """Database connection configuration."""

    url: str
    echo: bool = False


class Database:
    """Parameterized query wrapper around one SQLite connection."""

    __slots__ = ("_async_lock", "_config", "_conn", "_initialized", "_lock", "_path")

    def __init__(self, url: str, /, *, echo: bool = False) -> None:
        self._config = DatabaseConfig(url=url, echo=echo)
        self._path = _parse_sqlite_path(url)
        self._lock = threading.Lock()
        self._async_lock: anyio.Lock | None = None  # created on first use, inside a loop
        self._conn: sqlite3.Connection | None = None
        self._initialized = False

    def __repr__(self) -> str:
        return f"Database({self._config.url!r})"

    @property
    def url(self) -> str:
        return self._config.url

    @property
    def in_transaction(self) -> bool:
        """True while the current task holds an open transaction."""
        return _current_conn.get() is not None

    # -- Connection management --

    def _statement_lock(self) -> anyio.Lock:
        if self._async_lock is None:
            self._async_lock = anyio.Lock()
        return self._async_lock

    @asynccontextmanager
    async def _connection(self) -> AsyncIterator[sqlite3.Connection]:
        """Yield the connection, reusing the task's transaction if one is open."""
        if not self._initialized:
            await self.connect()

        conn = _current_conn.get()
        if conn is not None:
            yield conn
            return

        async with self._statement_lock():
            assert self._conn is not None
            yield self._conn

    # -- Transactions --

    async def begin_transaction(self) -> None:
        """Start an explicit transaction for the current task.

        Statements issued by this task until ``commit()`` or
        ``rollback()`` run on the transaction.

        Raises:
            DataError: If this task already has a transaction open.
        """
        if not self._initialized:
            await self.connect()
        if self.in_transaction:
            msg = "A transaction is already active"
            raise DataError(msg)

        lock = self._statement_lock()
        await lock.acquire()
        try:
            assert self._conn is not None
            self._conn.autocommit = False
        except BaseException:
            lock.release()
            raise
        _current_conn.set(self._conn)

    async def commit(self) -> None:
        """Commit the current task's transaction."""
        conn = self._require_transaction()
        try:
            await anyio.to_thread.run_sync(conn.commit)
        except sqlite3.Error as exc:
            await anyio.to_thread.run_sync(conn.rollback)
            raise QueryError(str(exc)) from exc
        finally:
            self._end_transaction(conn)

    async def rollback(self) -> None:
        """Discard the current task's transaction."""
        conn = self._require_transaction()
        try:
            await anyio.to_thread.run_sync(conn.rollback)
        finally:
            self._end_transaction(conn)

    def _require_transaction(self) -> sqlite3.Connection:
        conn = _current_conn.get()
        if conn is None:
            msg = "No active transaction"
            raise DataError(msg)
        return conn

    def _end_transaction(self, conn: sqlite3.Connection) -> None:
        conn.autocommit = True
        _current_conn.set(None)
        self._statement_lock().release()

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        """Run a block atomically: commit on clean exit, roll back on error.

        A nested ``transaction()`` joins the outer one.
        """
        if self.in_transaction:
            yield
            return

        await self.begin_transaction()
        try:
            yield
        except BaseException:
            await self.rollback()
            raise
        await self.commit()

    # -- Echo --

    def _log_query(self, sql: str, params: Sequence[Any], elapsed: float) -> None:
        if not self._config.echo:
            return
        ms = elapsed * 1000
        param_str = f"  params={tuple(params)!r}" if params else ""
        print(f"[shopfront.data] {ms:6.1f}ms  {' '.join(sql.split())}{param_str}", file=sys.stderr)

    # -- Query API --

    async def _run(self, sql: str, params: Sequence[Any], *,
                   first_only: bool = False) -> _Outcome:
        """Execute one statement in a worker thread.

        Binding errors (an integer past SQLite's 64-bit range, say) surface
        as ``QueryError`` alongside the engine's own errors.
        """
        t0 = time.perf_counter()
        work = partial(_execute, sql=sql, params=tuple(params), first_only=first_only)
        async with self._connection() as conn:
            try:
                return await anyio.to_thread.run_sync(work, conn)
            except (sqlite3.Error, OverflowError) as exc:
                raise QueryError(str(exc)) from exc
            finally:
                self._log_query(sql, params, time.perf_counter() - t0)

    async def query(self, sql: str, /, *params: Any) -> int:
        """Execute a statement and return the number of rows affected."""
        return (await self._run(sql, params)).rowcount

    async def fetch(self, sql: str, /, *params: Any) -> dict[str, Any] | None:
        """Return the first row as a dict, or ``None``."""
        rows = (await self._run(sql, params, first_only=True)).dicts()
        return rows[0] if rows else None

    async def fetch_all(self, sql: str, /, *params: Any) -> list[dict[str, Any]]:
        """Return every row as a dict."""
        return (await self._run(sql, params)).dicts()

    async def fetch_val(self, sql: str, /, *params: Any) -> Any:
        """Return the first column of the first row (``COUNT``, ``SUM`` ...)."""
        row = await self.fetch(sql, *params)
        if row is None:
            return None
        return next(iter(row.values()))

    async def fetch_as[T](self, cls: type[T], sql: str, /, *params: Any) -> T | None:
        """``fetch`` mapped onto a dataclass."""
        row = await self.fetch(sql, *params)
        return map_row(cls, row) if row is not None else None

    async def fetch_all_as[T](self, cls: type[T], sql: str, /, *params: Any) -> list[T]:
        """``fetch_all`` mapped onto a dataclass."""
        return map_rows(cls, await self.fetch_all(sql, *params))

    # -- Write helpers --

    async def insert(self, table: str, data: Mapping[str, Any]) -> int:
        """Insert one row and return its id."""
        if not data:
            msg = f"insert into {table!r} needs at least one column"
            raise DataError(msg)
        columns = [_check_identifier(c) for c in data]
        placeholders = ", ".join("?" for _ in columns)
        sql = (
            f"INSERT INTO {_check_identifier(table)} ({', '.join(columns)}) "
            f"VALUES ({placeholders})"
        )
        outcome = await self._run(sql, tuple(data.values()))
        assert outcome.lastrowid is not None
        return outcome.lastrowid

    async def update(self, table: str, data: Mapping[str, Any], where: str, /,
                     *params: Any) -> int:
        """Update rows matching *where* and return the affected count.

        *where* is SQL written by the caller with ``?`` placeholders; its
        values go in *params*.
        """
        if not data:
            msg = f"update of {table!r} needs at least one column"
            raise DataError(msg)
        assignments = ", ".join(f"{_check_identifier(c)} = ?" for c in data)
        sql = f"UPDATE {_check_identifier(table)} SET {assignments} WHERE {where}"
        return (await self._run(sql, (*data.values(), *params))).rowcount

    async def delete(self, table: str, where: str, /, *params: Any) -> int:
        """Delete rows matching *where* and return the affected count."""
        sql = f"DELETE FROM {_check_identifier(table)} WHERE {where}"
        return (await self._run(sql, params)).rowcount

    async def execute_script(self, sql: str, /) -> None:
        """Run several statements at once (schema files, migrations)."""
        t0 = time.perf_counter()
        async with self._connection() as conn:
            try:
                await anyio.to_thread.run_sync(conn.executescript, sql)
            except sqlite3.Error as exc:
                raise QueryError(str(exc)) from exc
            finally:
                self._log_query(sql, (), time.perf_counter() - t0)

    async def table_exists(self, name: str) -> bool:
        count = await self.fetch_val(
            "SELECT COUNT(*) FROM sqlite_master WHERE type = 'table' AND name = ?", name
        )
        return bool(count)

    # -- Lifecycle --

    async def connect(self) -> None:
        """Open the connection. Safe to call more than once."""
        if self._initialized:
            return
        conn = await anyio.to_thread.run_sync(_open, self._path)
        with self._lock:
            if self._initialized:
                duplicate = conn
            else:
                self._conn = conn
                self._initialized = True
                duplicate = None
        if duplicate is not None:
            await anyio.to_thread.run_sync(duplicate.close)

    async def disconnect(self) -> None:
        """Close the connection."""
        with self._lock:
            if not self._initialized:
                return
            conn, self._conn = self._conn, None
            self._initialized = False
        if conn is not None:
            await anyio.to_thread.run_sync(conn.close)

    async def __aenter__(self) -> Database:
        await self.connect()
        return self

    async def __aexit__(self, *_: Any) -> None:
        await self.disconnect()


def _parse_sqlite_path(url: str) -> str:
    """Extract the file path from a ``sqlite://`` URL."""
    for prefix in ("sqlite:///", "sqlite://"):
        if url.startswith(prefix):
            path = url[len(prefix) :]
            if path:
                return path
    msg = f"Unsupported database URL: {url!r}. Expected sqlite:///path/to/db"
    raise DataError(msg)
