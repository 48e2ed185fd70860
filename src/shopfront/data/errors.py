"""Data layer error hierarchy."""

from shopfront.errors import ShopfrontError


class DataError(ShopfrontError):
    """Base for all shopfront.data errors."""


class QueryError(DataError):
    """Raised when a SQL statement fails."""


class MigrationError(DataError):
    """Raised when a migration file is invalid or fails to apply."""
