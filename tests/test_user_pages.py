"""Account pages behind the auth guard."""

import pytest

from shopfront.models import UserModel
from shopfront.testing import assert_json, assert_page_contains, assert_redirects_to

MEMBER_PAGES = [
    "/dashboard",
    "/profile",
    "/orders",
    "/orders/1",
    "/wishlist",
    "/change-password",
    "/addresses",
    "/addresses/add",
]

HOME_ADDRESS = {
    "title": "Home",
    "first_name": "Ada",
    "last_name": "Lovelace",
    "address_line_1": "1 Main Street",
    "city": "London",
    "state": "Greater London",
    "postal_code": "SW1A 1AA",
    "country": "GB",
}


async def place_order(app, user_id: int, number: str, total: float, status: str = "pending") -> int:
    return await app.db.insert(
        "orders",
        {
            "order_number": number,
            "user_id": user_id,
            "status": status,
            "subtotal": total,
            "total_amount": total,
        },
    )


class TestAuthGuard:
    @pytest.mark.parametrize("path", MEMBER_PAGES)
    async def test_anonymous_is_sent_to_login(self, client, path: str) -> None:
        assert_redirects_to(await client.get(path), "/login")

    async def test_ajax_wishlist_requires_login(self, client) -> None:
        response = await client.post("/wishlist/add", form={"product_id": "1"}, ajax=True)
        assert_redirects_to(response, "/login")


class TestDashboard:
    async def test_dashboard_stats(self, client, app, member) -> None:
        await place_order(app, member, "ORD-1001", 42.5, status="delivered")
        response = await client.get("/dashboard")
        assert_page_contains(response, "Welcome back, Ada")
        assert "ORD-1001" in response.text
        assert "$42.50" in response.text

    async def test_account_removed_mid_session(self, client, app, member) -> None:
        await UserModel(app.db).delete(member)
        assert_redirects_to(await client.get("/dashboard"), "/login")


class TestProfile:
    async def test_profile_page(self, client, member) -> None:
        response = await client.get("/profile")
        assert_page_contains(response, "ada@example.com")

    async def test_update_profile(self, client, member) -> None:
        token = await client.csrf_token("/profile")
        response = await client.post(
            "/profile",
            form={
                "first_name": "Augusta",
                "last_name": "King",
                "email": "augusta@example.com",
                "phone": "",
                "_csrf_token": token,
            },
        )
        assert_redirects_to(response, "/profile")
        page = await client.get("/profile")
        assert_page_contains(page, "Profile updated successfully")
        assert "augusta@example.com" in page.text
        assert "Augusta King" in page.text

    async def test_missing_fields(self, client, member) -> None:
        token = await client.csrf_token("/profile")
        response = await client.post(
            "/profile", form={"first_name": "", "last_name": "", "email": "", "_csrf_token": token}
        )
        assert_redirects_to(response, "/profile")
        assert_page_contains(
            await client.get("/profile"), "First name, last name, and email are required"
        )

    async def test_email_belongs_to_someone_else(self, client, make_user, member) -> None:
        await make_user("grace@example.com", first_name="Grace")
        token = await client.csrf_token("/profile")
        await client.post(
            "/profile",
            form={
                "first_name": "Ada",
                "last_name": "Lovelace",
                "email": "grace@example.com",
                "_csrf_token": token,
            },
        )
        assert_page_contains(await client.get("/profile"), "Email is already taken by another user")

    async def test_post_requires_csrf(self, client, member) -> None:
        response = await client.post("/profile", form={"first_name": "X"})
        assert response.status == 403


class TestOrders:
    async def test_orders_list_and_filter(self, client, app, member) -> None:
        await place_order(app, member, "ORD-1", 10.0)
        await place_order(app, member, "ORD-2", 20.0, status="shipped")
        page = await client.get("/orders")
        assert_page_contains(page, "ORD-1")
        assert "ORD-2" in page.text
        shipped = await client.get("/orders?status=shipped")
        assert "ORD-2" in shipped.text
        assert "ORD-1<" not in shipped.text

    async def test_order_details(self, client, app, member, catalog) -> None:
        order_id = await place_order(app, member, "ORD-7", 19.99)
        await app.db.insert(
            "order_items",
            {
                "order_id": order_id,
                "product_id": catalog["hammer"],
                "product_name": "Claw Hammer",
                "product_sku": "HAM-001",
                "quantity": 1,
                "price": 19.99,
                "total": 19.99,
            },
        )
        response = await client.get(f"/orders/{order_id}")
        assert_page_contains(response, "Order ORD-7")
        assert "Claw Hammer" in response.text

    async def test_other_users_order_is_not_found(self, client, app, make_user, member) -> None:
        other = await make_user("grace@example.com", first_name="Grace")
        order_id = await place_order(app, other, "ORD-9", 5.0)
        response = await client.get(f"/orders/{order_id}")
        assert_page_contains(response, "Order not found", status=404)


class TestWishlist:
    async def test_add_and_remove(self, client, member, catalog) -> None:
        token = await client.csrf_token("/dashboard")
        headers = {"X-CSRF-Token": token}
        pid = str(catalog["hammer"])

        body = assert_json(
            await client.post("/wishlist/add", form={"product_id": pid}, headers=headers, ajax=True)
        )
        assert body == {"success": True, "message": "Added to wishlist", "count": 1}
        assert_page_contains(await client.get("/wishlist"), "Claw Hammer")

        body = assert_json(
            await client.post(
                "/wishlist/remove", form={"product_id": pid}, headers=headers, ajax=True
            )
        )
        assert body["count"] == 0

    async def test_non_ajax_is_rejected(self, client, member, catalog) -> None:
        token = await client.csrf_token("/dashboard")
        response = await client.post(
            "/wishlist/add", form={"product_id": str(catalog["hammer"]), "_csrf_token": token}
        )
        body = assert_json(response, status=400)
        assert body["message"] == "Invalid request"

    async def test_missing_product_id(self, client, member) -> None:
        token = await client.csrf_token("/dashboard")
        response = await client.post(
            "/wishlist/add", form={}, headers={"X-CSRF-Token": token}, ajax=True
        )
        assert assert_json(response, status=400)["message"] == "Product ID is required"

    async def test_unknown_product(self, client, member) -> None:
        token = await client.csrf_token("/dashboard")
        response = await client.post(
            "/wishlist/add",
            form={"product_id": "9999"},
            headers={"X-CSRF-Token": token},
            ajax=True,
        )
        assert assert_json(response, status=500)["success"] is False


class TestChangePassword:
    async def submit(self, client, current: str, new: str, confirm: str):
        token = await client.csrf_token("/change-password")
        return await client.post(
            "/change-password",
            form={
                "current_password": current,
                "new_password": new,
                "confirm_password": confirm,
                "_csrf_token": token,
            },
        )

    async def test_change_password(self, client, member, login) -> None:
        response = await self.submit(client, "Secret123!", "Newpass1!", "Newpass1!")
        assert_redirects_to(response, "/profile")
        await client.get("/logout")
        assert_redirects_to(await login(password="Newpass1!"), "/dashboard")

    @pytest.mark.parametrize(
        ("current", "new", "confirm", "message"),
        [
            ("", "Newpass1!", "Newpass1!", "All fields are required"),
            ("Secret123!", "Newpass1!", "Newpass2!", "New passwords do not match"),
            ("Secret123!", "weakpass", "weakpass", "Password must contain at least one uppercase"),
            ("Wrong123!", "Newpass1!", "Newpass1!", "Current password is incorrect"),
        ],
    )
    async def test_rejections(self, client, member, current, new, confirm, message) -> None:
        response = await self.submit(client, current, new, confirm)
        assert_redirects_to(response, "/change-password")
        assert_page_contains(await client.get("/change-password"), message)


class TestAddresses:
    async def add(self, client, **extra: str):
        token = await client.csrf_token("/addresses/add")
        return await client.post(
            "/addresses/add", form={**HOME_ADDRESS, **extra, "_csrf_token": token}
        )

    async def test_add_and_list(self, client, member) -> None:
        assert_redirects_to(await self.add(client), "/addresses")
        page = await client.get("/addresses")
        assert_page_contains(page, "Address added successfully")
        assert "1 Main Street" in page.text

    async def test_missing_fields_keep_input(self, client, member) -> None:
        response = await self.add(client, city="")
        assert_redirects_to(response, "/addresses/add")
        page = await client.get("/addresses/add")
        assert_page_contains(page, "All required fields must be filled")
        assert 'value="1 Main Street"' in page.text

    async def test_delete_by_form(self, client, app, member) -> None:
        await self.add(client)
        [address] = await UserModel(app.db).addresses(member)
        token = await client.csrf_token("/addresses")
        response = await client.post(
            f"/addresses/{address.id}/delete", form={"_csrf_token": token}
        )
        assert_redirects_to(response, "/addresses")
        assert await UserModel(app.db).addresses(member) == []

    async def test_delete_by_ajax(self, client, app, member) -> None:
        await self.add(client)
        [address] = await UserModel(app.db).addresses(member)
        token = await client.csrf_token("/addresses")
        headers = {"X-CSRF-Token": token}
        response = await client.delete(f"/addresses/{address.id}", headers=headers, ajax=True)
        assert assert_json(response)["success"] is True
        response = await client.delete(f"/addresses/{address.id}", headers=headers, ajax=True)
        assert assert_json(response, status=404)["message"] == "Address not found"

    async def test_cannot_delete_someone_elses(self, client, app, make_user, member) -> None:
        other = await make_user("grace@example.com", first_name="Grace")
        address_id = await UserModel(app.db).add_address(other, HOME_ADDRESS)
        token = await client.csrf_token("/addresses")
        await client.post(f"/addresses/{address_id}/delete", form={"_csrf_token": token})
        assert len(await UserModel(app.db).addresses(other)) == 1
