"""Shopfront exception hierarchy.

Shared across the router, dispatch pipeline, controllers, and domain
entities so every module raises and catches the same types.
"""

from dataclasses import dataclass


class ShopfrontError(Exception):
    """Base for all shopfront-specific errors."""


class ConfigurationError(ShopfrontError):
    """Raised when the application is wired incorrectly.

    Unknown middleware names are caught at route registration. Missing
    views and layouts surface here at render time and become a 500.
    """


@dataclass(frozen=True, slots=True)
class HTTPError(ShopfrontError):
    """An error that maps directly to an HTTP status code.

    Raised by guards, controllers, or the form parser. The dispatch
    pipeline catches these and renders the matching error page.
    """

    status: int
    detail: str = ""
    headers: tuple[tuple[str, str], ...] = ()

    def __str__(self) -> str:
        if self.detail:
            return f"{self.status}: {self.detail}"
        return str(self.status)


class NotFound(HTTPError):  # noqa: N818
    """404: no route matched, or the addressed record does not exist."""

    def __init__(self, detail: str = "Not Found") -> None:
        super().__init__(status=404, detail=detail)


class Forbidden(HTTPError):  # noqa: N818
    """403: authenticated, but not allowed to do this."""

    def __init__(self, detail: str = "Access denied") -> None:
        super().__init__(status=403, detail=detail)


class ValidationFailed(ShopfrontError):  # noqa: N818
    """Raised by the entity layer when input fails validation before a write.

    Attributes:
        errors: Field name mapped to the list of messages for that field.
    """

    def __init__(self, errors: dict[str, list[str]]) -> None:
        self.errors = errors
        fields = ", ".join(sorted(errors))
        super().__init__(f"Validation failed for: {fields}")

    @property
    def messages(self) -> list[str]:
        """All messages flattened in field order."""
        return [msg for msgs in self.errors.values() for msg in msgs]

    @property
    def first(self) -> str:
        """The first message, for single-line flash display."""
        messages = self.messages
        return messages[0] if messages else "Please fix the validation errors"
