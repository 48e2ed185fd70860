"""Immutable HTTP request.

Frozen metadata with async, cached body access.
"""

from __future__ import annotations

import math
from collections.abc import AsyncGenerator, Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any
from urllib.parse import parse_qsl

from shopfront._internal.asgi import Receive, Scope

if TYPE_CHECKING:
    from shopfront.http.forms import FormData


class Headers(Mapping[str, str]):
    """Request headers keyed by lowercased name.

    A header sent more than once is folded into one field: values join
    with ``, `` (``Cookie`` joins with ``; ``), so a lookup always sees
    every hop of ``X-Forwarded-For`` and every cookie.
    """

    __slots__ = ("_fields",)

    def __init__(self, raw: Iterable[tuple[bytes, bytes]] = ()) -> None:
        fields: dict[str, str] = {}
        for name_b, value_b in raw:
            name = name_b.decode("latin-1").lower()
            value = value_b.decode("latin-1")
            if name in fields:
                joiner = "; " if name == "cookie" else ", "
                fields[name] = f"{fields[name]}{joiner}{value}"
            else:
                fields[name] = value
        self._fields = fields

    def __getitem__(self, name: str) -> str:
        return self._fields[name.lower()]

    def __iter__(self) -> Iterator[str]:
        return iter(self._fields)

    def __len__(self) -> int:
        return len(self._fields)


class QueryParams(Mapping[str, str]):
    """Decoded query string; the first occurrence of a name wins.

    ``params["q"]`` gives the value as sent, blank included. ``get`` and
    the numeric readers treat a blank value as absent, the way the
    catalogue filters want ``?min_price=`` to mean "no minimum".
    """

    __slots__ = ("_values", "raw")

    def __init__(self, query_string: bytes = b"") -> None:
        self.raw = query_string.decode("latin-1")
        values: dict[str, str] = {}
        for name, value in parse_qsl(self.raw, keep_blank_values=True):
            values.setdefault(name, value)
        self._values = values

    def __getitem__(self, name: str) -> str:
        return self._values[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def get(self, name: str, default: str | None = None) -> str | None:  # type: ignore[override]
        return self._values.get(name) or default

    def get_int(self, name: str, default: int | None = None) -> int | None:
        """Integer value of *name*, or *default* when absent or not a number."""
        value = self.get(name)
        try:
            return int(value) if value is not None else default
        except ValueError:
            return default

    def get_float(self, name: str, default: float | None = None) -> float | None:
        """Finite float value of *name*; ``nan`` and ``inf`` count as absent."""
        value = self.get(name)
        try:
            number = float(value) if value is not None else None
        except ValueError:
            return default
        return number if number is not None and math.isfinite(number) else default


def parse_cookies(header: str) -> dict[str, str]:
    """Split a ``Cookie`` header; the first value sent for a name wins."""
    jar: dict[str, str] = {}
    for pair in header.split(";"):
        name, eq, value = pair.partition("=")
        if eq and name.strip():
            jar.setdefault(name.strip(), value.strip().strip('"'))
    return jar


@dataclass(frozen=True, slots=True)
class Request:
    """An immutable HTTP request.

    Metadata is frozen at creation. The body is read once through
    ``body()`` and cached, so a guard that inspects the form (CSRF) and
    the controller action that processes it see the same data.
    """

    method: str
    path: str
    headers: Headers
    query: QueryParams
    http_version: str
    client: tuple[str, int] | None
    cookies: Mapping[str, str]

    # ASGI receive callable for body streaming
    _receive: Receive

    # dict contents are mutable even though the field reference is frozen
    _cache: dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    # Whether X-Forwarded-For names the client (set from AppConfig)
    trust_forwarded: bool = False

    @property
    def content_type(self) -> str | None:
        """The Content-Type header value."""
        return self.headers.get("content-type")

    @property
    def is_ajax(self) -> bool:
        """True for ``X-Requested-With: XMLHttpRequest`` requests."""
        return (self.headers.get("x-requested-with") or "").lower() == "xmlhttprequest"

    @property
    def client_ip(self) -> str:
        """Client address.

        The first hop of ``X-Forwarded-For`` counts only when
        ``trust_forwarded`` is set; without a proxy in front the header
        is whatever the client chose to send.
        """
        forwarded = self.headers.get("x-forwarded-for") if self.trust_forwarded else None
        if forwarded:
            first = forwarded.split(",")[0].strip()
            if first:
                return first
        if self.client:
            return self.client[0]
        return "unknown"

    @property
    def url(self) -> str:
        """Path plus query string, as the client sent it."""
        qs = self.query.raw
        if qs:
            return f"{self.path}?{qs}"
        return self.path

    async def body(self) -> bytes:
        """Read the full request body (cached after the first call)."""
        if "_body" in self._cache:
            return self._cache["_body"]
        chunks = [chunk async for chunk in self.stream()]
        result = b"".join(chunks)
        self._cache["_body"] = result
        return result

    async def stream(self) -> AsyncGenerator[bytes]:
        """Stream the request body in chunks."""
        while True:
            message = await self._receive()
            body = message.get("body", b"")
            if body:
                yield body
            if not message.get("more_body", False):
                break

    async def json(self) -> Any:
        """Parse the body as JSON."""
        import json as json_module

        raw = await self.body()
        return json_module.loads(raw)

    async def form(self) -> FormData:
        """Parse the body as form data (URL-encoded or multipart).

        Requests without a form content type yield an empty ``FormData``
        rather than an error, so GET-only actions can call this freely.
        """
        if "_form" in self._cache:
            return self._cache["_form"]

        from shopfront.http.forms import FormData, parse_form_data

        ct = self.content_type or ""
        if "form" in ct.lower():
            result = await parse_form_data(await self.body(), ct)
        else:
            result = FormData()
        self._cache["_form"] = result
        return result

    @classmethod
    def from_asgi(cls, scope: Scope, receive: Receive, *,
                  trust_forwarded: bool = False) -> Request:
        """Create a Request from an ASGI scope and receive callable."""
        headers = Headers(scope.get("headers", ()))
        client = scope.get("client")
        return cls(
            method=scope["method"].upper(),
            path=scope["path"],
            headers=headers,
            query=QueryParams(scope.get("query_string", b"")),
            http_version=scope.get("http_version", "1.1"),
            client=tuple(client) if client else None,
            cookies=parse_cookies(headers.get("cookie", "")),
            _receive=receive,
            trust_forwarded=trust_forwarded,
        )
