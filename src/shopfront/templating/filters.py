"""Storefront template filters and globals.

Registered on every shopfront kida Environment. Timestamps arrive as
the ``YYYY-MM-DD HH:MM:SS`` text SQLite stores.
"""

import html
import time as time_module
from datetime import UTC, datetime
from typing import Any
from urllib.parse import quote, urlencode

from kida.template import Markup

_TIMESTAMP_FORMATS = ("%Y-%m-%d %H:%M:%S", "%Y-%m-%d")


def money(value: Any, symbol: str = "$") -> str:
    """Format a price with thousands separators and two decimals.

    Example:
        {{ product.price | money }}  → "$1,299.00"
    """
    try:
        amount = float(value or 0)
    except (TypeError, ValueError):
        return ""
    sign = "-" if amount < 0 else ""
    return f"{sign}{symbol}{abs(amount):,.2f}"


def _parse(value: Any) -> datetime | None:
    if isinstance(value, datetime):
        return value
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value, UTC)
    if not value:
        return None
    for fmt in _TIMESTAMP_FORMATS:
        try:
            return datetime.strptime(str(value), fmt)
        except ValueError:
            continue
    return None


def date(value: Any, fmt: str = "%b %d, %Y") -> str:
    """Format a stored timestamp.

    Example:
        {{ order.created_at | date }}  → "Mar 04, 2026"
    """
    parsed = _parse(value)
    if parsed is None:
        return str(value or "")
    return parsed.strftime(fmt)


def timeago(value: Any) -> str:
    """Relative time for a unix timestamp or a stored timestamp string."""
    parsed = _parse(value)
    if parsed is None:
        return ""
    if parsed.tzinfo is None:
        # Stored timestamps are UTC
        parsed = parsed.replace(tzinfo=UTC)
    delta = int(time_module.time() - parsed.timestamp())
    if delta < 60:
        return "just now"
    if delta < 3600:
        m = delta // 60
        return f"{m} minute{'s' if m != 1 else ''} ago"
    if delta < 86400:
        h = delta // 3600
        return f"{h} hour{'s' if h != 1 else ''} ago"
    d = delta // 86400
    return f"{d} day{'s' if d != 1 else ''} ago"


def truncate_words(value: Any, count: int = 20, suffix: str = "...") -> str:
    words = str(value or "").split()
    if len(words) <= count:
        return " ".join(words)
    return " ".join(words[:count]) + suffix


def pluralize(count: int, singular: str, plural: str | None = None) -> str:
    """Pluralize a word based on count.

    Example:
        {{ page.total | pluralize("product") }}  → "5 products"
    """
    if plural is None:
        plural = singular + "s"
    word = singular if count == 1 else plural
    return f"{count} {word}"


def qs(base: str, **params: Any) -> str:
    """Append query-string parameters to a URL path, skipping falsy values.

    Example:
        {{ "/products" | qs(page=page.page + 1, search=search) }}
    """
    filtered = {k: v for k, v in params.items() if v}
    if not filtered:
        return base
    encoded = urlencode({k: str(v) for k, v in filtered.items()}, quote_via=quote)
    sep = "&" if "?" in base else "?"
    return f"{base}{sep}{encoded}"


def field_errors(errors: Any, field_name: str) -> list[str]:
    """Messages for one field of a ``{field: [messages]}`` dict."""
    if isinstance(errors, dict):
        val = errors.get(field_name, [])
        return list(val) if val else []
    return []


def attr(value: Any, name: str) -> str | Markup:
    """Output an HTML attribute when *value* is truthy, else nothing.

    Example:
        <input type="checkbox" name="featured"{{ product.featured | attr("checked") }}>
    """
    if not value:
        return ""
    return Markup(f' {name}="{html.escape(str(value))}"')


def stars(rating: Any, out_of: int = 5) -> str:
    """Text star rating, e.g. ``★★★★☆``."""
    try:
        filled = max(0, min(out_of, round(float(rating or 0))))
    except (TypeError, ValueError):
        filled = 0
    return "★" * filled + "☆" * (out_of - filled)


BUILTIN_FILTERS: dict[str, Any] = {
    "attr": attr,
    "date": date,
    "field_errors": field_errors,
    "money": money,
    "pluralize": pluralize,
    "qs": qs,
    "stars": stars,
    "timeago": timeago,
    "truncate_words": truncate_words,
}
