"""Data Gateway: async parameterized SQL over SQLite.

SQL in, dicts or frozen dataclasses out. Not an ORM.
"""

from shopfront.data._mapping import map_row, map_rows
from shopfront.data.database import Database
from shopfront.data.errors import DataError, MigrationError, QueryError
from shopfront.data.migrate import MigrationResult, migrate
from shopfront.data.query import Query

__all__ = [
    "DataError",
    "Database",
    "MigrationError",
    "MigrationResult",
    "Query",
    "QueryError",
    "map_row",
    "map_rows",
    "migrate",
]
