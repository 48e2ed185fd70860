"""Error boundary: unexpected exceptions become 500 pages."""

import dataclasses

import pytest

from shopfront.app import App
from shopfront.controllers import HomeController
from shopfront.errors import Forbidden, NotFound
from shopfront.testing import TestClient, assert_page_contains


async def explode(self):
    raise RuntimeError("catalog exploded")


async def forbid(self):
    raise Forbidden("Members only")


async def vanish(self):
    raise NotFound("gone")


class TestInternalErrors:
    async def test_production_page_hides_details(self, config, monkeypatch, caplog) -> None:
        monkeypatch.setattr(HomeController, "index", explode)
        async with TestClient(App(config)) as client:
            response = await client.get("/")
        assert_page_contains(response, "Server Error", status=500)
        assert "catalog exploded" not in response.text
        assert "catalog exploded" in caplog.text

    async def test_debug_page_shows_traceback(self, config, monkeypatch) -> None:
        monkeypatch.setattr(HomeController, "index", explode)
        debug = dataclasses.replace(config, debug=True)
        async with TestClient(App(debug)) as client:
            response = await client.get("/")
        assert_page_contains(response, "RuntimeError", status=500)
        assert "catalog exploded" in response.text
        assert "Traceback" in response.text


class TestHTTPErrors:
    async def test_raised_forbidden(self, config, monkeypatch) -> None:
        monkeypatch.setattr(HomeController, "index", forbid)
        async with TestClient(App(config)) as client:
            response = await client.get("/")
        assert_page_contains(response, "Members only", status=403)

    async def test_raised_not_found(self, config, monkeypatch) -> None:
        monkeypatch.setattr(HomeController, "index", vanish)
        async with TestClient(App(config)) as client:
            response = await client.get("/")
        assert_page_contains(response, "Page Not Found", status=404)


class TestConfigurationErrors:
    def test_secret_required_outside_debug(self, tmp_path) -> None:
        from shopfront.config import AppConfig
        from shopfront.errors import ConfigurationError

        app = App(AppConfig(database_url=f"sqlite:///{tmp_path / 'x.db'}"))
        with pytest.raises(ConfigurationError, match="secret_key is required"):
            app.router  # noqa: B018

    def test_debug_generates_secret(self, tmp_path) -> None:
        from shopfront.config import AppConfig

        app = App(AppConfig(debug=True, database_url=f"sqlite:///{tmp_path / 'x.db'}"))
        assert len(app.router.routes) > 0
