"""Shared fixtures: a migrated SQLite-backed app per test, plus seed helpers."""

import pytest

from shopfront.app import App
from shopfront.config import AppConfig
from shopfront.constants import ROLE_ADMIN, ROLE_USER
from shopfront.models import ProductModel, UserModel
from shopfront.testing import TestClient

PASSWORD = "Secret123!"


@pytest.fixture
def config(tmp_path) -> AppConfig:
    return AppConfig(
        secret_key="test-secret",
        database_url=f"sqlite:///{tmp_path / 'shop.db'}",
        upload_dir=tmp_path / "uploads",
    )


@pytest.fixture
def app(config) -> App:
    return App(config)


@pytest.fixture
async def client(app):
    async with TestClient(app) as client:
        yield client


@pytest.fixture
def make_user(app):
    """Create a verified, active account and return its id."""

    async def _make(
        email: str = "ada@example.com",
        *,
        password: str = PASSWORD,
        role: str = ROLE_USER,
        verified: bool = True,
        first_name: str = "Ada",
        last_name: str = "Lovelace",
    ) -> int:
        account = await UserModel(app.db).register(
            {
                "first_name": first_name,
                "last_name": last_name,
                "email": email,
                "password": password,
            },
            role=role,
            email_verified=verified,
        )
        return account.user_id

    return _make


@pytest.fixture
def login(client):
    """Sign *email* in through the real login form; returns the response."""

    async def _login(email: str = "ada@example.com", password: str = PASSWORD):
        token = await client.csrf_token("/login")
        return await client.post(
            "/login", form={"email": email, "password": password, "_csrf_token": token}
        )

    return _login


@pytest.fixture
async def member(client, make_user, login) -> int:
    """A signed-in regular user."""
    user_id = await make_user()
    await login()
    return user_id


@pytest.fixture
async def admin(client, make_user, login) -> int:
    """A signed-in administrator."""
    user_id = await make_user("root@example.com", role=ROLE_ADMIN, first_name="Grace")
    await login("root@example.com")
    return user_id


@pytest.fixture
async def catalog(client, app) -> dict[str, int]:
    """Two categories and three products (two active, one draft)."""
    products = ProductModel(app.db)
    tools = await products.create_category("Tools", description="Hand tools")
    garden = await products.create_category("Garden")
    hammer = await products.create(
        {
            "name": "Claw Hammer",
            "description": "A sturdy steel claw hammer.",
            "price": "19.99",
            "category_id": str(tools),
            "sku": "HAM-001",
            "stock_quantity": "12",
            "featured": "1",
        }
    )
    saw = await products.create(
        {
            "name": "Hand Saw",
            "description": "Fine-tooth saw for clean cuts.",
            "price": "34.50",
            "category_id": str(tools),
            "sku": "SAW-001",
            "stock_quantity": "0",
        }
    )
    rake = await products.create(
        {
            "name": "Leaf Rake",
            "description": "Wide rake for autumn leaves.",
            "price": "15.00",
            "category_id": str(garden),
            "sku": "RAK-001",
            "status": "draft",
        }
    )
    return {"tools": tools, "garden": garden, "hammer": hammer, "saw": saw, "rake": rake}
