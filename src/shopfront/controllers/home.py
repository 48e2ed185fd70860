"""Storefront landing page."""

from shopfront.constants import (
    HOME_CATEGORY_LIMIT,
    HOME_FEATURED_LIMIT,
    HOME_LATEST_LIMIT,
    HOME_TOP_SELLING_LIMIT,
)
from shopfront.controllers.base import Controller
from shopfront.http.response import Response


class HomeController(Controller):
    __slots__ = ()

    async def index(self) -> Response:
        products = self.products
        return self.render(
            "home/index",
            {
                "page_title": f"Welcome to {self.config.app_name}",
                "meta_description": "Discover quality products at great prices.",
                "featured_products": await products.featured(HOME_FEATURED_LIMIT),
                "latest_products": await products.latest(HOME_LATEST_LIMIT),
                "categories": await products.categories(HOME_CATEGORY_LIMIT),
                "top_selling": await products.top_selling(HOME_TOP_SELLING_LIMIT),
            },
        )
