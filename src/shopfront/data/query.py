"""Immutable SELECT builder for the Data Gateway.

Accumulates clauses through chaining methods and compiles to a SQL
string plus a parameter tuple. Each method returns a new frozen
``Query``; the original is never mutated.

Usage::

    from shopfront.data import Query

    page = await (
        Query(Product, "products p LEFT JOIN categories c ON c.id = p.category_id")
        .select("p.*, c.name AS category_name")
        .where("p.status = ?", "active")
        .where_if(search, "(p.name LIKE ? OR p.description LIKE ?)", like, like)
        .order_by("p.created_at DESC")
        .take(20)
        .skip(40)
        .fetch(db)
    )

Clause text and the FROM expression are written by the entity layer;
request values only ever travel in the parameter tuple. ``.sql`` and
``.params`` show exactly what will run.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import TYPE_CHECKING

from shopfront.constants import MAX_ROW_ID

if TYPE_CHECKING:
    from shopfront.data.database import Database


@dataclass(frozen=True, slots=True)
class Query[T]:
    """Immutable SELECT query builder."""

    _cls: type[T]
    _table: str
    _wheres: tuple[tuple[str, tuple[object, ...]], ...] = ()
    _order: str | None = None
    _limit: int | None = None
    _offset: int | None = None
    _columns: str = "*"

    # -- Building --

    def where(self, clause: str, /, *params: object) -> Query[T]:
        """Add a WHERE clause. Multiple calls are ANDed."""
        return replace(self, _wheres=(*self._wheres, (clause, params)))

    def where_if(self, condition: object, clause: str, /, *params: object) -> Query[T]:
        """Add a WHERE clause only if *condition* is truthy.

        Optional listing filters chain without ``if`` blocks::

            Query(Product, "products")
                .where_if(category_id, "category_id = ?", category_id)
                .where_if(min_price is not None, "price >= ?", min_price)
        """
        if not condition:
            return self
        return self.where(clause, *params)

    def order_by(self, clause: str) -> Query[T]:
        """Set ORDER BY. Replaces any previous ordering."""
        return replace(self, _order=clause)

    def take(self, n: int) -> Query[T]:
        """Set LIMIT."""
        return replace(self, _limit=int(n))

    def skip(self, n: int) -> Query[T]:
        """Set OFFSET, capped at the largest value SQLite accepts."""
        return replace(self, _offset=min(int(n), MAX_ROW_ID))

    def select(self, columns: str) -> Query[T]:
        """Set which columns to SELECT. Default is ``*``."""
        return replace(self, _columns=columns)

    # -- Compilation --

    def _where_sql(self) -> str:
        if not self._wheres:
            return ""
        return " WHERE " + " AND ".join(w[0] for w in self._wheres)

    @property
    def sql(self) -> str:
        """The exact SQL that will run."""
        sql = f"SELECT {self._columns} FROM {self._table}{self._where_sql()}"
        if self._order:
            sql += f" ORDER BY {self._order}"
        if self._limit is not None:
            sql += f" LIMIT {self._limit}"
            if self._offset is not None:
                sql += f" OFFSET {self._offset}"
        return sql

    @property
    def params(self) -> tuple[object, ...]:
        """The bound parameters, in order."""
        result: list[object] = []
        for _, p in self._wheres:
            result.extend(p)
        return tuple(result)

    # -- Execution --

    async def fetch(self, db: Database) -> list[T]:
        """Execute and return all matching rows as typed dataclasses."""
        return await db.fetch_all_as(self._cls, self.sql, *self.params)

    async def fetch_one(self, db: Database) -> T | None:
        """Execute and return the first matching row, or ``None``."""
        return await db.fetch_as(self._cls, self.sql, *self.params)

    async def count(self, db: Database) -> int:
        """COUNT(*) with the same WHERE clauses, ignoring order and paging."""
        sql = f"SELECT COUNT(*) FROM {self._table}{self._where_sql()}"
        return int(await db.fetch_val(sql, *self.params) or 0)

    async def exists(self, db: Database) -> bool:
        sql = f"SELECT 1 FROM {self._table}{self._where_sql()} LIMIT 1"
        return await db.fetch_val(sql, *self.params) is not None
