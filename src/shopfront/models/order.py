"""Order entity: read-side queries for the customer account pages.

Checkout and payment live outside this package; orders arrive in the
``orders``/``order_items`` tables already placed.
"""

from __future__ import annotations

from dataclasses import dataclass

from shopfront.data import Database, Query
from shopfront.models.pagination import Page

# Orders that never turned into revenue
_NOT_SPENT = ("cancelled", "refunded")


@dataclass(frozen=True, slots=True)
class Order:
    id: int
    order_number: str
    status: str
    total_amount: float
    user_id: int | None = None
    currency: str = "USD"
    subtotal: float = 0.0
    tax_amount: float = 0.0
    shipping_amount: float = 0.0
    discount_amount: float = 0.0
    payment_status: str = "pending"
    payment_method: str | None = None
    notes: str | None = None
    shipped_at: str | None = None
    delivered_at: str | None = None
    created_at: str = ""
    item_count: int = 0


@dataclass(frozen=True, slots=True)
class OrderItem:
    id: int
    order_id: int
    product_name: str
    quantity: int
    price: float
    total: float
    product_id: int | None = None
    product_sku: str | None = None
    image: str | None = None


class OrderModel:
    """Orders scoped to their owner."""

    __slots__ = ("db",)

    def __init__(self, db: Database) -> None:
        self.db = db

    def _for_user(self, user_id: int, status: str | None) -> Query[Order]:
        return (
            Query(Order, "orders o")
            .select(
                "o.*, (SELECT COALESCE(SUM(quantity), 0) FROM order_items i "
                "WHERE i.order_id = o.id) AS item_count"
            )
            .where("o.user_id = ?", user_id)
            .where_if(status, "o.status = ?", status)
        )

    async def for_user(
        self, user_id: int, page: int = 1, limit: int = 10, status: str | None = None
    ) -> Page[Order]:
        """A page of the user's orders, newest first, optionally one status only."""
        query = self._for_user(user_id, status)
        total = await query.count(self.db)
        items = await (
            query.order_by("o.created_at DESC, o.id DESC").take(limit).skip((page - 1) * limit)
        ).fetch(self.db)
        return Page(items=items, total=total, page=page, limit=limit)

    async def recent_for_user(self, user_id: int, limit: int = 5) -> list[Order]:
        return await self._for_user(user_id, None).order_by("o.created_at DESC, o.id DESC").take(
            limit
        ).fetch(self.db)

    async def count_for_user(self, user_id: int, status: str | None = None) -> int:
        return await self._for_user(user_id, status).count(self.db)

    async def get_for_user(self, user_id: int, order_id: int) -> Order | None:
        """The order, only if *user_id* owns it."""
        return await self._for_user(user_id, None).where("o.id = ?", order_id).fetch_one(self.db)

    async def items(self, order_id: int) -> list[OrderItem]:
        return await self.db.fetch_all_as(
            OrderItem,
            "SELECT i.*, p.image FROM order_items i "
            "LEFT JOIN products p ON p.id = i.product_id "
            "WHERE i.order_id = ? ORDER BY i.id",
            order_id,
        )

    async def total_spent(self, user_id: int) -> float:
        value = await self.db.fetch_val(
            "SELECT COALESCE(SUM(total_amount), 0) FROM orders "
            "WHERE user_id = ? AND status NOT IN (?, ?)",
            user_id,
            *_NOT_SPENT,
        )
        return float(value or 0)
