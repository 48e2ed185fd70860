"""Request and response primitives."""

import json

import pytest

from shopfront.http.forms import parse_form_data
from shopfront.http.request import Headers, QueryParams, Request, parse_cookies
from shopfront.http.response import Redirect, Response, SetCookie


def make_request(
    path: str = "/",
    *,
    query: bytes = b"",
    headers: list[tuple[bytes, bytes]] | None = None,
    body: bytes = b"",
    client: tuple[str, int] | None = ("10.0.0.5", 5555),
    trust_forwarded: bool = False,
) -> Request:
    async def receive():
        return {"type": "http.request", "body": body, "more_body": False}

    scope = {
        "type": "http",
        "method": "post",
        "path": path,
        "query_string": query,
        "headers": headers or [],
        "client": client,
    }
    return Request.from_asgi(scope, receive, trust_forwarded=trust_forwarded)


class TestQueryParams:
    def test_first_value_wins(self) -> None:
        params = QueryParams(b"tag=a&tag=b&q=")
        assert params["tag"] == "a"
        assert dict(params) == {"tag": "a", "q": ""}
        assert params.get("missing", "x") == "x"

    def test_blank_reads_as_absent(self) -> None:
        params = QueryParams(b"q=&min_price=")
        assert "q" in params
        assert params["q"] == ""
        assert params.get("q") is None
        assert params.get("q", "all") == "all"
        assert params.get_float("min_price") is None

    def test_numbers(self) -> None:
        params = QueryParams(b"page=3&min=9.5&bad=abc&empty=")
        assert params.get_int("page") == 3
        assert params.get_int("bad", 1) == 1
        assert params.get_float("min") == 9.5
        assert params.get_float("empty", 0.0) == 0.0
        assert params.get_int("nope") is None

    @pytest.mark.parametrize("raw", [b"max_price=nan", b"max_price=inf", b"max_price=-Infinity"])
    def test_non_finite_prices_are_ignored(self, raw: bytes) -> None:
        assert QueryParams(raw).get_float("max_price") is None

    def test_raw_and_decoding(self) -> None:
        params = QueryParams(b"search=block+plane&cat=%2Ftools")
        assert params["search"] == "block plane"
        assert params["cat"] == "/tools"
        assert params.raw == "search=block+plane&cat=%2Ftools"


class TestHeaders:
    def test_case_insensitive(self) -> None:
        headers = Headers([(b"Content-Type", b"text/plain")])
        assert headers["content-type"] == "text/plain"
        assert headers["Content-Type"] == "text/plain"
        assert "CONTENT-TYPE" in headers
        assert headers.get("absent") is None

    def test_repeated_fields_fold(self) -> None:
        headers = Headers([
            (b"X-Forwarded-For", b"203.0.113.9"),
            (b"x-forwarded-for", b"10.0.0.1"),
            (b"cookie", b"a=1"),
            (b"Cookie", b"b=2"),
        ])
        assert headers["x-forwarded-for"] == "203.0.113.9, 10.0.0.1"
        assert headers["cookie"] == "a=1; b=2"
        assert len(headers) == 2


class TestCookies:
    def test_parse(self) -> None:
        assert parse_cookies("a=1; b = 2 ;a=3; junk") == {"a": "1", "b": "2"}
        assert parse_cookies('sid="abc"') == {"sid": "abc"}
        assert parse_cookies("") == {}

    def test_set_cookie_header(self) -> None:
        cookie = SetCookie("sid", "abc", max_age=60)
        assert cookie.to_header_value() == "sid=abc; Max-Age=60; Path=/; HttpOnly; SameSite=Lax"

    def test_secure_cookie_header(self) -> None:
        cookie = SetCookie("sid", "abc", secure=True, httponly=False, samesite="Strict")
        assert cookie.to_header_value() == "sid=abc; Path=/; Secure; SameSite=Strict"

    def test_expiring_cookie_keeps_zero_max_age(self) -> None:
        cookie = SetCookie("sid", "", max_age=0, domain="shop.example")
        assert cookie.to_header_value() == (
            "sid=; Max-Age=0; Path=/; Domain=shop.example; HttpOnly; SameSite=Lax"
        )


class TestForms:
    async def test_urlencoded(self) -> None:
        form = await parse_form_data(
            b"email=a%40b.co&tags=x&tags=y&note=", "application/x-www-form-urlencoded"
        )
        assert form["email"] == "a@b.co"
        assert form.get_list("tags") == ["x", "y"]
        assert form.get("note") is None
        assert form.to_dict() == {"email": "a@b.co", "tags": "x", "note": ""}

    async def test_multipart(self) -> None:
        body = (
            b"--XyZ\r\n"
            b'Content-Disposition: form-data; name="name"\r\n\r\n'
            b"Block Plane\r\n"
            b"--XyZ\r\n"
            b'Content-Disposition: form-data; name="image"; filename="p.png"\r\n'
            b"Content-Type: image/png\r\n\r\n"
            b"\x89PNG\r\n\x1a\nDATA\r\n"
            b"--XyZ--\r\n"
        )
        form = await parse_form_data(body, "multipart/form-data; boundary=XyZ")
        assert form["name"] == "Block Plane"
        image = form.files["image"]
        assert image.filename == "p.png"
        assert image.content_type == "image/png"
        assert await image.read() == b"\x89PNG\r\n\x1a\nDATA"
        assert image.size == 12

    async def test_unsupported_type(self) -> None:
        with pytest.raises(ValueError, match="Unsupported form content type"):
            await parse_form_data(b"{}", "application/json")


class TestRequest:
    def test_metadata(self) -> None:
        request = make_request(
            "/orders",
            query=b"status=pending",
            headers=[(b"cookie", b"sid=abc"), (b"x-requested-with", b"XMLHttpRequest")],
        )
        assert request.method == "POST"
        assert request.url == "/orders?status=pending"
        assert request.cookies == {"sid": "abc"}
        assert request.is_ajax is True
        assert request.client_ip == "10.0.0.5"

    def test_forwarded_for_is_ignored_by_default(self) -> None:
        request = make_request(headers=[(b"x-forwarded-for", b"203.0.113.9")])
        assert request.client_ip == "10.0.0.5"

    def test_forwarded_client_ip_when_trusted(self) -> None:
        forwarded = [(b"x-forwarded-for", b"203.0.113.9, 10.0.0.1")]
        request = make_request(headers=forwarded, trust_forwarded=True)
        assert request.client_ip == "203.0.113.9"
        assert make_request(trust_forwarded=True).client_ip == "10.0.0.5"
        assert make_request(client=None).client_ip == "unknown"

    def test_url_without_query(self) -> None:
        request = make_request("/products")
        assert request.url == "/products"
        assert request.is_ajax is False

    async def test_body_is_cached(self) -> None:
        request = make_request(
            body=b"a=1",
            headers=[(b"content-type", b"application/x-www-form-urlencoded")],
        )
        assert await request.body() == b"a=1"
        assert await request.body() == b"a=1"
        form = await request.form()
        assert form["a"] == "1"

    async def test_form_without_form_content_type_is_empty(self) -> None:
        request = make_request(body=b'{"a": 1}', headers=[(b"content-type", b"application/json")])
        assert len(await request.form()) == 0
        assert await request.json() == {"a": 1}


class TestResponse:
    def test_json(self) -> None:
        response = Response.json({"success": True}, status=201)
        assert response.status == 201
        assert response.content_type == "application/json"
        assert json.loads(response.text) == {"success": True}

    def test_transformations_are_immutable(self) -> None:
        base = Response("hello")
        changed = base.with_status(404).with_header("X-Test", "1").with_cookie("a", "b")
        assert base.status == 200
        assert base.headers == ()
        assert changed.status == 404
        assert changed.header("x-test") == "1"
        assert changed.cookies[0].name == "a"

    def test_body_conversions(self) -> None:
        assert Response("é").body_bytes == "é".encode()
        assert Response(b"ok").text == "ok"

    def test_redirect(self) -> None:
        response = Redirect("/login").to_response()
        assert response.status == 302
        assert response.header("Location") == "/login"
        assert Redirect("/x", status=303).to_response().status == 303
