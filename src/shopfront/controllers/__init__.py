"""Controllers: per-request orchestration of entities and views."""

from shopfront.controllers.auth import AuthController
from shopfront.controllers.base import NO_LAYOUT, Controller, parse_id
from shopfront.controllers.error import ErrorController
from shopfront.controllers.home import HomeController
from shopfront.controllers.product import ProductController
from shopfront.controllers.user import UserController

__all__ = [
    "NO_LAYOUT",
    "AuthController",
    "Controller",
    "ErrorController",
    "HomeController",
    "ProductController",
    "UserController",
    "parse_id",
]
