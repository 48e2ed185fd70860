"""Catalog pages, AJAX search, and product administration."""

import dataclasses
import logging

from shopfront.constants import (
    PRODUCT_ACTIVE,
    PRODUCT_STATUSES,
    RELATED_PRODUCTS_LIMIT,
    SEARCH_DEFAULT_LIMIT,
)
from shopfront.controllers.base import AnyResponse, Controller, parse_id
from shopfront.data import DataError
from shopfront.errors import ValidationFailed
from shopfront.http.forms import FormData
from shopfront.http.response import Response
from shopfront.models import Product, clamp_limit
from shopfront.models.product import DEFAULT_SORT, SORTS

logger = logging.getLogger("shopfront.server")

SORT_LABELS: dict[str, str] = {
    "newest": "Newest",
    "price_asc": "Price: Low to High",
    "price_desc": "Price: High to Low",
    "name_asc": "Name: A to Z",
    "name_desc": "Name: Z to A",
    "popular": "Most Popular",
}


class ProductController(Controller):
    __slots__ = ()

    # -- Storefront --

    async def index(self) -> Response:
        query = self.ctx.query
        page = self.page_param()
        category_id = self.id_param("category")
        search = (query.get("search") or "").strip()
        sort = query.get("sort") or DEFAULT_SORT
        if sort not in SORTS:
            sort = DEFAULT_SORT

        listing = await self.products.get_all(
            page,
            self.config.products_per_page,
            category_id=category_id,
            search=search or None,
            status=PRODUCT_ACTIVE,
            sort=sort,
        )
        return self.render(
            "products/index",
            {
                "page_title": "Products",
                "products": listing,
                "categories": await self.products.categories(),
                "current_category": category_id,
                "search": search,
                "sort": sort,
                "sort_options": SORT_LABELS,
            },
        )

    async def show(self, product_id: str) -> AnyResponse:
        pid = parse_id(product_id)
        product = await self.products.get_active(pid) if pid is not None else None
        if product is None:
            return await self.not_found("Product not found")

        await self.products.increment_view_count(product.id)
        average, review_count = await self.products.rating_summary(product.id)
        user_id = self.session.user_id
        return self.render(
            "products/show",
            {
                "page_title": product.name,
                "meta_description": product.short_description or "",
                "product": product,
                "related_products": await self.products.related(product, RELATED_PRODUCTS_LIMIT),
                "reviews": await self.products.reviews(product.id),
                "average_rating": average,
                "review_count": review_count,
                "in_wishlist": (
                    user_id is not None and await self.users.in_wishlist(user_id, product.id)
                ),
            },
        )

    async def search(self) -> AnyResponse:
        """JSON search for the AJAX search box; plain requests go to the listing."""
        if not self.is_ajax():
            return self.redirect("/products")

        query = self.ctx.query
        try:
            results = await self.products.search(
                (query.get("q") or "").strip(),
                category_id=self.id_param("category"),
                min_price=query.get_float("min_price"),
                max_price=query.get_float("max_price"),
                limit=clamp_limit(query.get_int("limit"), SEARCH_DEFAULT_LIMIT,
                                  self.config.max_items_per_page),
            )
        except DataError:
            logger.exception("Product search failed")
            return self.json_response({"success": False, "message": "Search failed"}, 500)

        return self.json_response(
            {"success": True, "data": [p.to_dict() for p in results], "total": len(results)}
        )

    async def category(self, category_id: str) -> AnyResponse:
        cid = parse_id(category_id)
        category = await self.products.get_category(cid) if cid is not None else None
        if category is None:
            return await self.not_found("Category not found")

        sort = self.ctx.query.get("sort") or DEFAULT_SORT
        if sort not in SORTS:
            sort = DEFAULT_SORT
        listing = await self.products.get_by_category(
            category.id, self.page_param(), self.config.products_per_page, sort=sort
        )
        return self.render(
            "products/category",
            {
                "page_title": category.name,
                "meta_description": category.description or "",
                "category": category,
                "products": listing,
                "sort": sort,
                "sort_options": SORT_LABELS,
            },
        )

    # -- Administration --

    async def admin_index(self) -> Response:
        query = self.ctx.query
        search = (query.get("search") or "").strip()
        status = query.get("status") or ""
        if status not in PRODUCT_STATUSES:
            status = ""
        listing = await self.products.get_all(
            self.page_param(),
            self.config.products_per_page,
            search=search or None,
            status=status or None,
        )
        return self.render(
            "admin/products/index",
            {
                "page_title": "Manage Products",
                "products": listing,
                "search": search,
                "status": status,
                "statuses": sorted(PRODUCT_STATUSES),
            },
            layout="admin",
        )

    async def _form_page(self, view: str, title: str, product: Product | None) -> Response:
        old, errors = self.recall_form()
        # A failed submission redisplays what was typed, not the stored row
        if old:
            values = old
        elif product is not None:
            values = {k: "" if v is None else v for k, v in dataclasses.asdict(product).items()}
        else:
            values = {}
        return self.render(
            view,
            {
                "page_title": title,
                "product": product,
                "categories": await self.products.categories(),
                "statuses": sorted(PRODUCT_STATUSES),
                "values": values,
                "errors": errors,
            },
            layout="admin",
        )

    async def _store_image(self, form: FormData) -> str | None:
        upload = form.files.get("image")
        if upload is None:
            return None
        return await self.services.uploads.save_image(upload)

    async def admin_create(self) -> AnyResponse:
        if self.ctx.method != "POST":
            return await self._form_page("admin/products/create", "Add Product", None)

        form = await self.form()
        data = form.to_dict()
        back = "/admin/products/create"
        try:
            image = await self._store_image(form)
        except ValidationFailed as exc:
            return self.back_to_form(back, exc.first, old=data, errors=exc.errors)
        try:
            product_id = await self.products.create(data, image)
        except ValidationFailed as exc:
            await self.services.uploads.delete(image)
            return self.back_to_form(back, "Please fix the validation errors", old=data,
                                     errors=exc.errors)

        await self.log_activity("product_created", f"Created product #{product_id}")
        self.flash("success", "Product created successfully")
        return self.redirect("/admin/products")

    async def admin_edit(self, product_id: str) -> AnyResponse:
        pid = parse_id(product_id)
        product = await self.products.get_by_id(pid) if pid is not None else None
        if product is None:
            return await self.not_found("Product not found")
        if self.ctx.method != "POST":
            return await self._form_page("admin/products/edit", f"Edit {product.name}", product)

        form = await self.form()
        data = form.to_dict()
        back = f"/admin/products/{product.id}/edit"
        try:
            image = await self._store_image(form)
        except ValidationFailed as exc:
            return self.back_to_form(back, exc.first, old=data, errors=exc.errors)
        try:
            updated = await self.products.update(product.id, data, image)
        except ValidationFailed as exc:
            await self.services.uploads.delete(image)
            return self.back_to_form(back, "Please fix the validation errors", old=data,
                                     errors=exc.errors)

        if not updated:
            await self.services.uploads.delete(image)
            self.flash("error", "Error updating product")
            return self.redirect(back)
        if image is not None and product.image and product.image != image:
            await self.services.uploads.delete(product.image)

        await self.log_activity("product_updated", f"Updated product #{product.id}")
        self.flash("success", "Product updated successfully")
        return self.redirect("/admin/products")

    async def admin_delete(self, product_id: str) -> AnyResponse:
        pid = parse_id(product_id)
        removed = await self.products.delete(pid) if pid is not None else None
        if removed is None:
            if self.is_ajax():
                return self.json_response(
                    {"success": False, "message": "Error deleting product"}, 404
                )
            self.flash("error", "Error deleting product")
            return self.redirect("/admin/products")

        await self.services.uploads.delete(removed.image)
        await self.log_activity("product_deleted", f"Deleted product #{removed.id}")
        if self.is_ajax():
            return self.json_response({"success": True, "message": "Product deleted successfully"})
        self.flash("success", "Product deleted successfully")
        return self.redirect("/admin/products")
