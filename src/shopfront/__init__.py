"""Shopfront: a server-rendered storefront on ASGI.

Routes map to controller actions; guards (auth, admin, csrf, throttle)
run before each action in declared order.

Basic usage::

    from shopfront import create_app

    app = create_app()   # reads SHOPFRONT_* variables
    app.run()

Testing::

    from shopfront.testing import TestClient

    async with TestClient(app) as client:
        response = await client.get("/")
"""

__version__ = "0.1.0"
__all__ = [
    "App",
    "AppConfig",
    "ConfigurationError",
    "Controller",
    "Forbidden",
    "HTTPError",
    "NotFound",
    "Redirect",
    "Response",
    "ShopfrontError",
    "ValidationFailed",
    "create_app",
]


def __getattr__(name: str) -> object:
    """Lazy imports for the public API.

    Keeps ``import shopfront`` fast; the app pulls in kida and the
    session machinery only when first touched.
    """
    if name in ("App", "create_app"):
        from shopfront import app

        return getattr(app, name)

    if name == "AppConfig":
        from shopfront.config import AppConfig

        return AppConfig

    if name == "Controller":
        from shopfront.controllers.base import Controller

        return Controller

    if name in ("Response", "Redirect"):
        from shopfront.http import response

        return getattr(response, name)

    if name in (
        "ConfigurationError",
        "Forbidden",
        "HTTPError",
        "NotFound",
        "ShopfrontError",
        "ValidationFailed",
    ):
        from shopfront import errors

        return getattr(errors, name)

    msg = f"module 'shopfront' has no attribute {name!r}"
    raise AttributeError(msg)
