"""Domain entities: thin facades over the Data Gateway.

Each model takes the injected ``Database`` handle, returns frozen
dataclasses, and validates input before any write.
"""

from shopfront.models.order import Order, OrderItem, OrderModel
from shopfront.models.pagination import Page, clamp_limit, clamp_page
from shopfront.models.product import Category, Product, ProductModel, Review
from shopfront.models.user import (
    Activity,
    Address,
    NewAccount,
    User,
    UserModel,
    WishlistItem,
)

__all__ = [
    "Activity",
    "Address",
    "Category",
    "NewAccount",
    "Order",
    "OrderItem",
    "OrderModel",
    "Page",
    "Product",
    "ProductModel",
    "Review",
    "User",
    "UserModel",
    "WishlistItem",
    "clamp_limit",
    "clamp_page",
]
