"""Pagination result shared by the listing queries."""

import math
from collections.abc import Sequence
from dataclasses import dataclass

from shopfront.constants import MAX_PAGE


@dataclass(frozen=True, slots=True)
class Page[T]:
    """One page of a listing plus the numbers the pager needs.

    ``page`` is 1-based. ``pages`` is at least 1 so templates can render
    "Page 1 of 1" for an empty listing.
    """

    items: Sequence[T]
    total: int
    page: int
    limit: int

    @property
    def pages(self) -> int:
        if self.limit <= 0:
            return 1
        return max(1, math.ceil(self.total / self.limit))

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    @property
    def has_prev(self) -> bool:
        return self.page > 1

    @property
    def has_next(self) -> bool:
        return self.page < self.pages

    def __len__(self) -> int:
        return len(self.items)

    def __iter__(self):
        return iter(self.items)


def clamp_page(raw: int | None) -> int:
    """Page numbers below 1 (or missing) become 1; huge ones stop at ``MAX_PAGE``."""
    if raw is None or raw < 1:
        return 1
    return min(raw, MAX_PAGE)


def clamp_limit(raw: int | None, default: int, maximum: int) -> int:
    if raw is None or raw < 1:
        return default
    return min(raw, maximum)
