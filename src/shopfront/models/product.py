"""Product entity: catalog listings, search, categories, reviews, admin CRUD.

Listing filters compose through ``Query``; sort keys are looked up in a
whitelist so no request value ever reaches ORDER BY text.
"""

from __future__ import annotations

import logging
import secrets
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from shopfront.constants import (
    LOW_STOCK_THRESHOLD,
    PRODUCT_ACTIVE,
    PRODUCT_DESCRIPTION_MIN_LENGTH,
    PRODUCT_NAME_MAX_LENGTH,
    PRODUCT_NAME_MIN_LENGTH,
    PRODUCT_STATUSES,
)
from shopfront.data import Database, Query
from shopfront.errors import ValidationFailed
from shopfront.models._util import like_pattern, now_text, slugify
from shopfront.models.pagination import Page
from shopfront.validation import (
    at_least,
    integer,
    max_length,
    min_length,
    number,
    one_of,
    required,
    validate,
)

logger = logging.getLogger("shopfront.data")

_FROM = "products p LEFT JOIN categories c ON c.id = p.category_id"
_COLUMNS = "p.*, c.name AS category_name"

SORTS: dict[str, str] = {
    "newest": "p.created_at DESC, p.id DESC",
    "price_asc": "p.price ASC",
    "price_desc": "p.price DESC",
    "name_asc": "p.name ASC",
    "name_desc": "p.name DESC",
    "popular": "p.view_count DESC, p.id DESC",
}
DEFAULT_SORT = "newest"

_PRODUCT_RULES = {
    "name": [required, min_length(PRODUCT_NAME_MIN_LENGTH), max_length(PRODUCT_NAME_MAX_LENGTH)],
    "description": [required, min_length(PRODUCT_DESCRIPTION_MIN_LENGTH)],
    "price": [required, number, at_least(0)],
    "category_id": [required, integer],
    "sku": [max_length(100)],
    "stock_quantity": [integer, at_least(0)],
    "status": [one_of(*PRODUCT_STATUSES)],
}


@dataclass(frozen=True, slots=True)
class Product:
    id: int
    name: str
    sku: str
    price: float
    slug: str = ""
    description: str | None = None
    short_description: str | None = None
    compare_price: float | None = None
    cost_price: float | None = None
    category_id: int | None = None
    category_name: str | None = None
    brand: str | None = None
    image: str | None = None
    stock_quantity: int = 0
    featured: bool = False
    status: str = PRODUCT_ACTIVE
    view_count: int = 0
    created_at: str = ""
    updated_at: str = ""

    @property
    def in_stock(self) -> bool:
        return self.stock_quantity > 0

    @property
    def on_sale(self) -> bool:
        return self.compare_price is not None and self.compare_price > self.price

    def to_dict(self) -> dict[str, Any]:
        """JSON-safe view used by the AJAX search endpoint."""
        return {
            "id": self.id,
            "name": self.name,
            "slug": self.slug,
            "sku": self.sku,
            "price": self.price,
            "compare_price": self.compare_price,
            "image": self.image,
            "category_id": self.category_id,
            "category_name": self.category_name,
            "stock_quantity": self.stock_quantity,
            "short_description": self.short_description,
        }


@dataclass(frozen=True, slots=True)
class Category:
    id: int
    name: str
    slug: str
    description: str | None = None
    parent_id: int | None = None
    image: str | None = None
    sort_order: int = 0
    status: str = "active"
    product_count: int = 0


@dataclass(frozen=True, slots=True)
class Review:
    id: int
    product_id: int
    rating: int
    user_id: int | None = None
    name: str | None = None
    title: str | None = None
    review: str | None = None
    status: str = "pending"
    created_at: str = ""
    reviewer_name: str | None = None


def _to_float(value: str | None) -> float | None:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except ValueError:
        return None


class ProductModel:
    """Catalog queries and product administration."""

    __slots__ = ("db",)

    def __init__(self, db: Database) -> None:
        self.db = db

    def _listing(self) -> Query[Product]:
        return Query(Product, _FROM).select(_COLUMNS)

    def _active(self) -> Query[Product]:
        return self._listing().where("p.status = ?", PRODUCT_ACTIVE)

    # -- Single product --

    async def get_by_id(self, product_id: int) -> Product | None:
        return await self._listing().where("p.id = ?", product_id).fetch_one(self.db)

    async def get_active(self, product_id: int) -> Product | None:
        """A product the storefront may show (status active)."""
        return await self._active().where("p.id = ?", product_id).fetch_one(self.db)

    async def sku_exists(self, sku: str, exclude_id: int | None = None) -> bool:
        query = Query(Product, "products").where("sku = ?", sku)
        if exclude_id is not None:
            query = query.where("id != ?", exclude_id)
        return await query.exists(self.db)

    # -- Listings --

    async def get_all(
        self,
        page: int = 1,
        limit: int = 20,
        *,
        category_id: int | None = None,
        search: str | None = None,
        status: str | None = None,
        min_price: float | None = None,
        max_price: float | None = None,
        sort: str | None = None,
    ) -> Page[Product]:
        """Filtered, sorted, paginated listing.

        Unknown *sort* keys fall back to newest first. *status* ``None``
        means every status (admin listing).
        """
        like = like_pattern(search.strip()) if search and search.strip() else None
        query = (
            self._listing()
            .where_if(category_id, "p.category_id = ?", category_id)
            .where_if(
                like,
                "(p.name LIKE ? ESCAPE '\\' OR p.description LIKE ? ESCAPE '\\' "
                "OR p.sku LIKE ? ESCAPE '\\')",
                like,
                like,
                like,
            )
            .where_if(status, "p.status = ?", status)
            .where_if(min_price is not None, "p.price >= ?", min_price)
            .where_if(max_price is not None, "p.price <= ?", max_price)
        )
        total = await query.count(self.db)
        order = SORTS.get(sort or DEFAULT_SORT, SORTS[DEFAULT_SORT])
        items = await query.order_by(order).take(limit).skip((page - 1) * limit).fetch(self.db)
        return Page(items=items, total=total, page=page, limit=limit)

    async def search(
        self,
        term: str = "",
        *,
        category_id: int | None = None,
        min_price: float | None = None,
        max_price: float | None = None,
        limit: int = 10,
    ) -> list[Product]:
        """Active products matching *term* on name, description or SKU, by name."""
        like = like_pattern(term.strip()) if term.strip() else None
        query = (
            self._active()
            .where_if(
                like,
                "(p.name LIKE ? ESCAPE '\\' OR p.description LIKE ? ESCAPE '\\' "
                "OR p.sku LIKE ? ESCAPE '\\')",
                like,
                like,
                like,
            )
            .where_if(category_id, "p.category_id = ?", category_id)
            .where_if(min_price is not None, "p.price >= ?", min_price)
            .where_if(max_price is not None, "p.price <= ?", max_price)
        )
        return await query.order_by("p.name ASC").take(limit).fetch(self.db)

    async def get_by_category(
        self, category_id: int, page: int = 1, limit: int = 20, sort: str | None = None
    ) -> Page[Product]:
        return await self.get_all(
            page, limit, category_id=category_id, status=PRODUCT_ACTIVE, sort=sort
        )

    async def featured(self, limit: int = 8) -> list[Product]:
        return await (
            self._active().where("p.featured = 1").order_by(SORTS["newest"]).take(limit)
        ).fetch(self.db)

    async def latest(self, limit: int = 8) -> list[Product]:
        return await self._active().order_by(SORTS["newest"]).take(limit).fetch(self.db)

    async def top_selling(self, limit: int = 6) -> list[Product]:
        """Active products by units sold on orders that were not cancelled."""
        return await self.db.fetch_all_as(
            Product,
            f"SELECT {_COLUMNS}, COALESCE(SUM(i.quantity), 0) AS units_sold "
            f"FROM {_FROM} "
            "JOIN order_items i ON i.product_id = p.id "
            "JOIN orders o ON o.id = i.order_id AND o.status NOT IN ('cancelled', 'refunded') "
            "WHERE p.status = ? "
            "GROUP BY p.id ORDER BY units_sold DESC, p.id LIMIT ?",
            PRODUCT_ACTIVE,
            limit,
        )

    async def related(self, product: Product, limit: int = 4) -> list[Product]:
        """Other active products in the same category."""
        if product.category_id is None:
            return []
        return await (
            self._active()
            .where("p.category_id = ?", product.category_id)
            .where("p.id != ?", product.id)
            .order_by(SORTS["popular"])
            .take(limit)
        ).fetch(self.db)

    async def low_stock(self, threshold: int = LOW_STOCK_THRESHOLD) -> list[Product]:
        query = self._active().where("p.stock_quantity <= ?", threshold)
        return await query.order_by("p.stock_quantity ASC").fetch(self.db)

    # -- Detail page extras --

    async def reviews(self, product_id: int) -> list[Review]:
        """Approved reviews, newest first."""
        return await self.db.fetch_all_as(
            Review,
            "SELECT r.*, COALESCE(u.first_name || ' ' || u.last_name, r.name) AS reviewer_name "
            "FROM product_reviews r LEFT JOIN users u ON u.id = r.user_id "
            "WHERE r.product_id = ? AND r.status = 'approved' "
            "ORDER BY r.created_at DESC, r.id DESC",
            product_id,
        )

    async def rating_summary(self, product_id: int) -> tuple[float, int]:
        """``(average_rating, review_count)`` over approved reviews."""
        row = await self.db.fetch(
            "SELECT COALESCE(AVG(rating), 0) AS average, COUNT(*) AS total "
            "FROM product_reviews WHERE product_id = ? AND status = 'approved'",
            product_id,
        )
        assert row is not None
        return round(float(row["average"]), 1), int(row["total"])

    async def increment_view_count(self, product_id: int) -> None:
        await self.db.query(
            "UPDATE products SET view_count = view_count + 1 WHERE id = ?", product_id
        )

    # -- Categories --

    async def categories(self, limit: int | None = None) -> list[Category]:
        """Active categories in display order, with active product counts."""
        query = (
            Query(Category, "categories c")
            .select(
                "c.*, (SELECT COUNT(*) FROM products p WHERE p.category_id = c.id "
                "AND p.status = 'active') AS product_count"
            )
            .where("c.status = 'active'")
            .order_by("c.sort_order, c.name")
        )
        if limit is not None:
            query = query.take(limit)
        return await query.fetch(self.db)

    async def get_category(self, category_id: int) -> Category | None:
        return await self.db.fetch_as(
            Category, "SELECT * FROM categories WHERE id = ? AND status = 'active'", category_id
        )

    async def create_category(self, name: str, *, description: str | None = None,
                              parent_id: int | None = None, sort_order: int = 0) -> int:
        if not name.strip():
            raise ValidationFailed({"name": ["Category name is required"]})
        now = now_text()
        return await self.db.insert(
            "categories",
            {
                "name": name.strip(),
                "slug": await self._unique_slug("categories", name),
                "description": description,
                "parent_id": parent_id,
                "sort_order": sort_order,
                "created_at": now,
                "updated_at": now,
            },
        )

    # -- Administration --

    async def _unique_slug(self, table: str, name: str, exclude_id: int | None = None) -> str:
        base = slugify(name)
        candidate = base
        while True:
            if exclude_id is None:
                taken = await self.db.fetch_val(
                    f"SELECT COUNT(*) FROM {table} WHERE slug = ?", candidate
                )
            else:
                taken = await self.db.fetch_val(
                    f"SELECT COUNT(*) FROM {table} WHERE slug = ? AND id != ?",
                    candidate,
                    exclude_id,
                )
            if not taken:
                return candidate
            candidate = f"{base}-{secrets.token_hex(3)}"

    @staticmethod
    def generate_sku() -> str:
        return f"PRD-{secrets.token_hex(6).upper()}"

    async def _clean(
        self, data: Mapping[str, str], product_id: int | None = None
    ) -> dict[str, Any]:
        """Validate admin form input and convert it to column values.

        Raises:
            ValidationFailed: Field messages for anything invalid,
                including a duplicate SKU or an unknown category.
        """
        values = {key: (data.get(key) or "").strip() for key in _PRODUCT_RULES}
        values["stock_quantity"] = values["stock_quantity"] or "0"
        values["status"] = values["status"] or PRODUCT_ACTIVE
        result = validate(values, _PRODUCT_RULES)
        errors = dict(result.errors)

        sku = result.data.get("sku") or ""
        if sku and await self.sku_exists(sku, exclude_id=product_id):
            errors["sku"] = ["SKU is already in use"]
        if "category_id" in result.data:
            category = await self.db.fetch_val(
                "SELECT COUNT(*) FROM categories WHERE id = ?", int(result.data["category_id"])
            )
            if not category:
                errors["category_id"] = ["Valid category is required"]
        if errors:
            raise ValidationFailed(errors)

        clean = result.data
        return {
            "name": clean["name"],
            "description": clean["description"],
            "short_description": (data.get("short_description") or "").strip() or None,
            "price": float(clean["price"]),
            "compare_price": _to_float(data.get("compare_price")),
            "cost_price": _to_float(data.get("cost_price")),
            "category_id": int(clean["category_id"]),
            "brand": (data.get("brand") or "").strip() or None,
            "sku": sku or self.generate_sku(),
            "stock_quantity": int(clean["stock_quantity"]),
            "status": clean["status"],
            "featured": int(bool(data.get("featured"))),
        }

    async def create(self, data: Mapping[str, str], image: str | None = None) -> int:
        """Validate and insert a product; return its id."""
        values = await self._clean(data)
        now = now_text()
        values.update(
            slug=await self._unique_slug("products", values["name"]),
            image=image,
            created_at=now,
            updated_at=now,
        )
        product_id = await self.db.insert("products", values)
        logger.info("Created product %d (%s)", product_id, values["sku"])
        return product_id

    async def update(
        self, product_id: int, data: Mapping[str, str], image: str | None = None
    ) -> bool:
        """Validate and update a product. A new *image* replaces the stored one."""
        values = await self._clean(data, product_id=product_id)
        values.update(
            slug=await self._unique_slug("products", values["name"], exclude_id=product_id),
            updated_at=now_text(),
        )
        if image is not None:
            values["image"] = image
        return await self.db.update("products", values, "id = ?", product_id) > 0

    async def delete(self, product_id: int) -> Product | None:
        """Delete a product and return what was removed, so its image can go too."""
        async with self.db.transaction():
            product = await self.get_by_id(product_id)
            if product is None:
                return None
            await self.db.delete("wishlists", "product_id = ?", product_id)
            await self.db.delete("cart_items", "product_id = ?", product_id)
            await self.db.delete("products", "id = ?", product_id)
        logger.info("Deleted product %d (%s)", product_id, product.sku)
        return product

    async def update_stock(self, product_id: int, quantity: int) -> bool:
        if quantity < 0:
            message = "Stock quantity must be a non-negative number"
            raise ValidationFailed({"stock_quantity": [message]})
        changed = await self.db.update(
            "products",
            {"stock_quantity": quantity, "updated_at": now_text()},
            "id = ?",
            product_id,
        )
        return changed > 0
