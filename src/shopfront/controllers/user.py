"""Customer account pages: dashboard, profile, orders, wishlist, addresses, password."""

import logging

from shopfront.constants import (
    DASHBOARD_RECENT_LIMIT,
    ORDER_STATUSES,
    WISHLIST_PAGE_SIZE,
)
from shopfront.controllers.base import AnyResponse, Controller, parse_id
from shopfront.errors import ValidationFailed
from shopfront.http.response import Response
from shopfront.models import Page
from shopfront.security import emit_security_event
from shopfront.validation import Validator

logger = logging.getLogger("shopfront.auth")


class UserController(Controller):
    """Every action runs behind the ``auth`` guard, so ``user_id`` is set."""

    __slots__ = ()

    @property
    def user_id(self) -> int:
        uid = self.session.user_id
        assert uid is not None, "UserController routes must carry the auth guard"
        return uid

    async def dashboard(self) -> AnyResponse:
        user = await self.users.get_by_id(self.user_id)
        if user is None:
            # Account removed while the session was alive
            self.session.destroy()
            return self.redirect("/login")
        return self.render(
            "user/dashboard",
            {
                "page_title": "My Dashboard",
                "user": user,
                "recent_orders": await self.orders.recent_for_user(user.id, DASHBOARD_RECENT_LIMIT),
                "wishlist_items": await self.users.wishlist_items(user.id, DASHBOARD_RECENT_LIMIT),
                "stats": {
                    "total_orders": await self.orders.count_for_user(user.id),
                    "wishlist_count": await self.users.wishlist_count(user.id),
                    "total_spent": await self.orders.total_spent(user.id),
                },
            },
        )

    # -- Profile --

    async def profile(self) -> AnyResponse:
        if self.ctx.method == "POST":
            return await self._update_profile()
        user = await self.users.get_by_id(self.user_id)
        if user is None:
            return await self.not_found("User not found")
        old, errors = self.recall_form()
        return self.render(
            "user/profile",
            {
                "page_title": "My Profile",
                "user": user,
                "old": old,
                "errors": errors,
                "activity": await self.users.recent_activity(user.id, 5),
            },
        )

    async def _update_profile(self) -> AnyResponse:
        form = await self.form()
        data = form.to_dict()
        if not data.get("first_name") or not data.get("last_name") or not data.get("email"):
            return self.back_to_form(
                "/profile", "First name, last name, and email are required", old=data
            )
        try:
            await self.users.update_profile(self.user_id, data)
        except ValidationFailed as exc:
            return self.back_to_form("/profile", exc.first, old=data, errors=exc.errors)

        user = await self.users.get_by_id(self.user_id)
        if user is not None:
            # Keep the navbar identity in step with the stored profile
            self.session.set("user_name", user.full_name)
            self.session.set("user_email", user.email)
        await self.log_activity("profile_updated", "Profile details changed")
        self.flash("success", "Profile updated successfully")
        return self.redirect("/profile")

    # -- Orders --

    async def orders_list(self) -> Response:
        status = self.ctx.query.get("status") or ""
        if status not in ORDER_STATUSES:
            status = ""
        listing = await self.orders.for_user(
            self.user_id, self.page_param(), self.config.items_per_page, status or None
        )
        return self.render(
            "user/orders",
            {
                "page_title": "My Orders",
                "orders": listing,
                "status": status,
                "statuses": ORDER_STATUSES,
            },
        )

    async def order_details(self, order_id: str) -> AnyResponse:
        oid = parse_id(order_id)
        order = await self.orders.get_for_user(self.user_id, oid) if oid is not None else None
        if order is None:
            return await self.not_found("Order not found")
        return self.render(
            "user/order-details",
            {
                "page_title": f"Order {order.order_number}",
                "order": order,
                "items": await self.orders.items(order.id),
            },
        )

    # -- Wishlist --

    async def wishlist(self) -> Response:
        page = self.page_param()
        total = await self.users.wishlist_count(self.user_id)
        items = await self.users.wishlist_items(self.user_id, WISHLIST_PAGE_SIZE, page)
        return self.render(
            "user/wishlist",
            {
                "page_title": "My Wishlist",
                "items": Page(items=items, total=total, page=page, limit=WISHLIST_PAGE_SIZE),
            },
        )

    async def _wishlist_product(self) -> int | Response:
        """The posted product id, or the JSON error to send back."""
        if self.ctx.method != "POST" or not self.is_ajax():
            return self.json_response({"success": False, "message": "Invalid request"}, 400)
        form = await self.form()
        product_id = parse_id(form.get("product_id") or "")
        if product_id is None:
            return self.json_response({"success": False, "message": "Product ID is required"}, 400)
        return product_id

    async def add_to_wishlist(self) -> Response:
        product_id = await self._wishlist_product()
        if isinstance(product_id, Response):
            return product_id
        if not await self.users.add_to_wishlist(self.user_id, product_id):
            return self.json_response(
                {"success": False, "message": "Error adding to wishlist"}, 500
            )
        return self.json_response(
            {
                "success": True,
                "message": "Added to wishlist",
                "count": await self.users.wishlist_count(self.user_id),
            }
        )

    async def remove_from_wishlist(self) -> Response:
        product_id = await self._wishlist_product()
        if isinstance(product_id, Response):
            return product_id
        if not await self.users.remove_from_wishlist(self.user_id, product_id):
            return self.json_response(
                {"success": False, "message": "Error removing from wishlist"}, 500
            )
        return self.json_response(
            {
                "success": True,
                "message": "Removed from wishlist",
                "count": await self.users.wishlist_count(self.user_id),
            }
        )

    # -- Password --

    async def change_password(self) -> AnyResponse:
        if self.ctx.method != "POST":
            return self.render("user/change-password", {"page_title": "Change Password"})

        form = await self.form()
        current = form.get("current_password") or ""
        new = form.get("new_password") or ""
        confirmation = form.get("confirm_password") or ""
        back = "/change-password"

        if not current or not new or not confirmation:
            return self.back_to_form(back, "All fields are required")
        if new != confirmation:
            return self.back_to_form(back, "New passwords do not match")
        check = Validator()
        if not check.validate_password(new):
            return self.back_to_form(back, check.get_errors()[0])
        if not await self.users.change_password(self.user_id, current, new):
            emit_security_event("password_change_failed", request=self.request,
                                user_id=self.user_id)
            return self.back_to_form(back, "Current password is incorrect")

        await self.log_activity("password_changed", "Password changed")
        emit_security_event("password_changed", request=self.request, user_id=self.user_id)
        logger.info("User %d changed their password", self.user_id)
        self.flash("success", "Password changed successfully")
        return self.redirect("/profile")

    # -- Addresses --

    async def addresses(self) -> Response:
        return self.render(
            "user/addresses",
            {"page_title": "My Addresses", "addresses": await self.users.addresses(self.user_id)},
        )

    async def add_address(self) -> AnyResponse:
        if self.ctx.method != "POST":
            old, errors = self.recall_form()
            return self.render(
                "user/add-address",
                {"page_title": "Add Address", "old": old, "errors": errors},
            )

        form = await self.form()
        data = form.to_dict()
        try:
            await self.users.add_address(self.user_id, data)
        except ValidationFailed as exc:
            return self.back_to_form("/addresses/add", exc.first, old=data, errors=exc.errors)

        await self.log_activity("address_added", "Address added")
        self.flash("success", "Address added successfully")
        return self.redirect("/addresses")

    async def delete_address(self, address_id: str) -> AnyResponse:
        aid = parse_id(address_id)
        removed = aid is not None and await self.users.delete_address(self.user_id, aid)
        if self.is_ajax():
            if not removed:
                return self.json_response({"success": False, "message": "Address not found"}, 404)
            return self.json_response({"success": True, "message": "Address deleted"})
        if removed:
            self.flash("success", "Address deleted")
        else:
            self.flash("error", "Address not found")
        return self.redirect("/addresses")
