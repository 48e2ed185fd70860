"""Built-in validation rules for shopfront forms.

Each rule is a callable with the signature::

    def rule(value: str) -> str | None:
        '''Return error message, or None if valid.'''

Parameterized rules are factory functions that return a rule::

    def max_length(n: int) -> Callable[[str], str | None]:
        def check(value: str) -> str | None:
            if len(value) > n:
                return f"Must be at most {n} characters"
            return None
        return check

``confirmed(field)`` is the one cross-field rule: it compares the value
against another field of the same submission.
"""

import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass

# Type alias for a single-field rule
type Rule = Callable[[str], str | None]


# ---------------------------------------------------------------------------
# Presence
# ---------------------------------------------------------------------------


def required(value: str) -> str | None:
    """Field must be present and non-empty."""
    if not value or not value.strip():
        return "This field is required"
    return None


# ---------------------------------------------------------------------------
# Length
# ---------------------------------------------------------------------------


def max_length(n: int) -> Rule:
    """String must be at most *n* characters."""

    def check(value: str) -> str | None:
        if len(value) > n:
            return f"Must be at most {n} characters"
        return None

    return check


def min_length(n: int) -> Rule:
    """String must be at least *n* characters."""

    def check(value: str) -> str | None:
        if len(value) < n:
            return f"Must be at least {n} characters"
        return None

    return check


# ---------------------------------------------------------------------------
# Format
# ---------------------------------------------------------------------------

# Structure only, not deliverability
EMAIL_RE = re.compile(r"^[a-zA-Z0-9._%+\-]+@[a-zA-Z0-9.\-]+\.[a-zA-Z]{2,}$")


def email(value: str) -> str | None:
    """Value must be a valid email address (basic format check)."""
    if not EMAIL_RE.match(value):
        return "Must be a valid email address"
    return None


URL_RE = re.compile(r"^https?://[^\s/$.?#].\S*$", re.IGNORECASE)


def url(value: str) -> str | None:
    """Value must be a valid URL (http/https)."""
    if not URL_RE.match(value):
        return "Must be a valid URL"
    return None


def matches(pattern: str, message: str | None = None) -> Rule:
    """Value must match the given regex pattern."""
    compiled = re.compile(pattern)

    def check(value: str) -> str | None:
        if not compiled.match(value):
            return message or f"Must match pattern: {pattern}"
        return None

    return check


# ---------------------------------------------------------------------------
# Choice
# ---------------------------------------------------------------------------


def one_of(*choices: str) -> Rule:
    """Value must be one of the given choices."""
    allowed = frozenset(choices)

    def check(value: str) -> str | None:
        if value not in allowed:
            options = ", ".join(sorted(allowed))
            return f"Must be one of: {options}"
        return None

    return check


# ---------------------------------------------------------------------------
# Type coercion
# ---------------------------------------------------------------------------


def integer(value: str) -> str | None:
    """Value must be a valid integer."""
    try:
        int(value)
    except (ValueError, TypeError):
        return "Must be a whole number"
    return None


def number(value: str) -> str | None:
    """Value must be a valid number (int or float)."""
    try:
        float(value)
    except (ValueError, TypeError):
        return "Must be a number"
    return None


def at_least(minimum: float) -> Rule:
    """Numeric value must be >= *minimum*. Non-numbers are left to ``number``."""

    def check(value: str) -> str | None:
        try:
            if float(value) < minimum:
                return f"Must be at least {minimum:g}"
        except (ValueError, TypeError):
            return None
        return None

    return check


# ---------------------------------------------------------------------------
# Cross-field
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Confirmed:
    """Value must equal the value of another field (password confirmation)."""

    field: str
    message: str = "Passwords do not match"

    def check(self, value: str, data: Mapping[str, str]) -> str | None:
        if value != (data.get(self.field) or "").strip():
            return self.message
        return None


def confirmed(field: str, message: str = "Passwords do not match") -> Confirmed:
    """Value must match *field* in the same submission."""
    return Confirmed(field, message)
