"""Async test client for shopfront applications.

Uses the same Request and Response types as production. Requests go
through the ASGI interface directly, with no HTTP involved. A cookie
jar carries the session cookie from one request to the next.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any
from urllib.parse import urlencode

from shopfront.http.request import parse_cookies
from shopfront.http.response import Response

if TYPE_CHECKING:
    from shopfront.app import App

_CSRF_FIELD = re.compile(r'name="_csrf_token"\s+value="([^"]+)"')


class TestClient:
    __test__ = False  # Tell pytest this is not a test class
    """Async test client for shopfront applications.

    Usage::

        async with TestClient(app) as client:
            response = await client.get("/")
            assert response.status == 200

            token = await client.csrf_token("/login")
            response = await client.post(
                "/login", form={"email": "a@b.co", "password": "x", "_csrf_token": token}
            )
    """

    __slots__ = ("app", "cookies")

    def __init__(self, app: App) -> None:
        self.app = app
        self.cookies: dict[str, str] = {}

    async def __aenter__(self) -> TestClient:
        # Mirrors the lifespan startup: connect and migrate
        await self.app.startup()
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.app.shutdown()

    # -- Verbs --

    async def get(
        self,
        path: str,
        *,
        headers: dict[str, str] | None = None,
        ajax: bool = False,
    ) -> Response:
        """Send a GET request."""
        return await self.request("GET", path, headers=headers, ajax=ajax)

    async def post(
        self,
        path: str,
        *,
        headers: dict[str, str] | None = None,
        body: bytes | None = None,
        form: Mapping[str, Any] | None = None,
        ajax: bool = False,
    ) -> Response:
        """Send a POST request. *form* is sent URL-encoded."""
        return await self.request("POST", path, headers=headers, body=body, form=form, ajax=ajax)

    async def delete(
        self,
        path: str,
        *,
        headers: dict[str, str] | None = None,
        ajax: bool = False,
    ) -> Response:
        """Send a DELETE request."""
        return await self.request("DELETE", path, headers=headers, ajax=ajax)

    async def csrf_token(self, path: str = "/login") -> str:
        """GET *path* and return the CSRF token rendered into its form."""
        response = await self.get(path)
        found = _CSRF_FIELD.search(response.text)
        if found is None:
            msg = f"No CSRF field in {path} (status {response.status})"
            raise AssertionError(msg)
        return found.group(1)

    # -- Core --

    async def request(
        self,
        method: str,
        path: str,
        *,
        headers: dict[str, str] | None = None,
        body: bytes | None = None,
        form: Mapping[str, Any] | None = None,
        ajax: bool = False,
    ) -> Response:
        """Send an arbitrary request through the ASGI app."""
        if "?" in path:
            path_part, query_string = path.split("?", 1)
        else:
            path_part = path
            query_string = ""

        merged: dict[str, str] = {}
        request_body = body or b""
        if form is not None:
            request_body = urlencode(form, doseq=True).encode("utf-8")
            merged["content-type"] = "application/x-www-form-urlencoded"
        if ajax:
            merged["x-requested-with"] = "XMLHttpRequest"
        if self.cookies:
            merged["cookie"] = "; ".join(f"{k}={v}" for k, v in self.cookies.items())
        merged.update({k.lower(): v for k, v in (headers or {}).items()})

        raw_headers = [
            (name.encode("latin-1"), value.encode("latin-1")) for name, value in merged.items()
        ]
        scope: dict[str, Any] = {
            "type": "http",
            "asgi": {"version": "3.0"},
            "http_version": "1.1",
            "method": method.upper(),
            "path": path_part,
            "raw_path": path_part.encode("latin-1"),
            "query_string": query_string.encode("latin-1"),
            "root_path": "",
            "headers": raw_headers,
            "server": ("testserver", 80),
            "client": ("127.0.0.1", 0),
        }

        body_sent = False

        async def receive() -> dict[str, Any]:
            nonlocal body_sent
            if not body_sent:
                body_sent = True
                return {"type": "http.request", "body": request_body, "more_body": False}
            return {"type": "http.disconnect"}

        response_status = 200
        response_headers: list[tuple[bytes, bytes]] = []
        response_body_parts: list[bytes] = []

        async def send(message: dict[str, Any]) -> None:
            nonlocal response_status, response_headers
            if message["type"] == "http.response.start":
                response_status = message["status"]
                response_headers = list(message.get("headers", []))
            elif message["type"] == "http.response.body":
                response_body_parts.append(message.get("body", b""))

        await self.app(scope, receive, send)

        content_type = "text/html; charset=utf-8"
        extra_headers: list[tuple[str, str]] = []
        for name_b, value_b in response_headers:
            name_str = name_b.decode("latin-1")
            value_str = value_b.decode("latin-1")
            if name_str == "content-type":
                content_type = value_str
            elif name_str == "set-cookie":
                self._store_cookie(value_str)
                extra_headers.append((name_str, value_str))
            elif name_str != "content-length":
                extra_headers.append((name_str, value_str))

        return Response(
            body=b"".join(response_body_parts),
            status=response_status,
            content_type=content_type,
            headers=tuple(extra_headers),
        )

    def _store_cookie(self, header: str) -> None:
        first, _, attributes = header.partition(";")
        for name, value in parse_cookies(first).items():
            if "max-age=0" in attributes.lower().replace(" ", ""):
                self.cookies.pop(name, None)
            else:
                self.cookies[name] = value
