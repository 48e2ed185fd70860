"""Storefront pages: home, listing, category, product detail, AJAX search."""

from shopfront.testing import assert_json, assert_page_contains, assert_redirects_to


class TestHome:
    async def test_empty_store(self, client) -> None:
        response = await client.get("/")
        assert_page_contains(response, "Welcome to")

    async def test_featured_and_categories(self, client, catalog) -> None:
        response = await client.get("/")
        assert_page_contains(response, "Claw Hammer")
        assert "Tools" in response.text
        assert "Leaf Rake" not in response.text


class TestListing:
    async def test_active_products_only(self, client, catalog) -> None:
        response = await client.get("/products")
        assert_page_contains(response, "Claw Hammer")
        assert "Hand Saw" in response.text
        assert "Leaf Rake" not in response.text

    async def test_category_filter(self, client, catalog) -> None:
        response = await client.get(f"/products?category={catalog['garden']}")
        assert_page_contains(response, "Products")
        assert "Claw Hammer" not in response.text

    async def test_search_filter(self, client, catalog) -> None:
        response = await client.get("/products?search=saw")
        assert_page_contains(response, "Hand Saw")
        assert "Claw Hammer" not in response.text

    async def test_unknown_sort_falls_back(self, client, catalog) -> None:
        response = await client.get("/products?sort=%27%3B--&page=-4")
        assert_page_contains(response, "Claw Hammer")

    async def test_sort_by_price(self, client, catalog) -> None:
        response = await client.get("/products?sort=price_asc")
        assert response.text.index("Claw Hammer") < response.text.index("Hand Saw")
        response = await client.get("/products?sort=price_desc")
        assert response.text.index("Hand Saw") < response.text.index("Claw Hammer")


class TestCategory:
    async def test_category_page(self, client, catalog) -> None:
        response = await client.get(f"/category/{catalog['tools']}")
        assert_page_contains(response, "Tools")
        assert "Claw Hammer" in response.text

    async def test_unknown_category(self, client) -> None:
        response = await client.get("/category/999")
        assert_page_contains(response, "Category not found", status=404)

    async def test_non_numeric_id_does_not_match(self, client) -> None:
        response = await client.get("/category/tools")
        assert response.status == 404


class TestProductDetail:
    async def test_product_page(self, client, catalog) -> None:
        response = await client.get(f"/product/{catalog['hammer']}")
        assert_page_contains(response, "Claw Hammer")
        assert "$19.99" in response.text
        assert "In stock" in response.text
        assert "HAM-001" in response.text
        assert "Hand Saw" in response.text

    async def test_out_of_stock(self, client, catalog) -> None:
        response = await client.get(f"/product/{catalog['saw']}")
        assert_page_contains(response, "Out of stock")

    async def test_draft_is_hidden(self, client, catalog) -> None:
        response = await client.get(f"/product/{catalog['rake']}")
        assert_page_contains(response, "Product not found", status=404)

    async def test_view_count_increments(self, client, app, catalog) -> None:
        await client.get(f"/product/{catalog['hammer']}")
        await client.get(f"/product/{catalog['hammer']}")
        count = await app.db.fetch_val(
            "SELECT view_count FROM products WHERE id = ?", catalog["hammer"]
        )
        assert count == 2

    async def test_wishlist_button_for_members(self, client, member, catalog) -> None:
        response = await client.get(f"/product/{catalog['hammer']}")
        assert_page_contains(response, "Add to wishlist")

    async def test_anonymous_gets_login_prompt(self, client, catalog) -> None:
        response = await client.get(f"/product/{catalog['hammer']}")
        assert_page_contains(response, "to save this product to your wishlist")


class TestSearchEndpoint:
    async def test_plain_request_redirects(self, client) -> None:
        assert_redirects_to(await client.get("/products/search?q=saw"), "/products")

    async def test_json_results(self, client, catalog) -> None:
        body = assert_json(await client.get("/products/search?q=saw", ajax=True))
        assert body["success"] is True
        assert body["total"] == 1
        assert body["data"][0]["sku"] == "SAW-001"
        assert body["data"][0]["category_name"] == "Tools"

    async def test_price_filters(self, client, catalog) -> None:
        body = assert_json(await client.get("/products/search?min_price=20", ajax=True))
        assert [item["name"] for item in body["data"]] == ["Hand Saw"]

    async def test_limit_is_clamped(self, client, catalog) -> None:
        body = assert_json(await client.get("/products/search?limit=1", ajax=True))
        assert body["total"] == 1

    async def test_drafts_never_appear(self, client, catalog) -> None:
        body = assert_json(await client.get("/products/search?q=rake", ajax=True))
        assert body == {"success": True, "data": [], "total": 0}
