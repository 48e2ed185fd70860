"""HTTP response values.

``Response`` is built through immutable ``.with_*()`` transformations.
``Redirect`` is a separate value so a controller action's return type
says whether it renders or sends the client elsewhere.
"""

from __future__ import annotations

import json as json_module
from collections.abc import Mapping
from dataclasses import dataclass, replace
from typing import Any

@dataclass(frozen=True, slots=True)
class SetCookie:
    """One ``Set-Cookie`` directive. ``None`` and empty attributes are left out."""

    name: str
    value: str
    max_age: int | None = None
    path: str = "/"
    domain: str | None = None
    secure: bool = False
    httponly: bool = True
    samesite: str = "Lax"

    def to_header_value(self) -> str:
        pairs = (("Max-Age", self.max_age), ("Path", self.path), ("Domain", self.domain))
        flags = (("Secure", self.secure), ("HttpOnly", self.httponly))
        parts = [f"{self.name}={self.value}"]
        parts.extend(f"{key}={value}" for key, value in pairs if value not in (None, ""))
        parts.extend(flag for flag, on in flags if on)
        if self.samesite:
            parts.append(f"SameSite={self.samesite}")
        return "; ".join(parts)


@dataclass(frozen=True, slots=True)
class Response:
    """An HTTP response built through immutable transformations.

    Construct with a body, then chain ``.with_*()`` calls to set status,
    headers, and cookies. Each call returns a new ``Response``.
    """

    body: str | bytes = ""
    status: int = 200
    content_type: str = "text/html; charset=utf-8"
    headers: tuple[tuple[str, str], ...] = ()
    cookies: tuple[SetCookie, ...] = ()

    @classmethod
    def json(cls, data: Any, status: int = 200) -> Response:
        """Serialize *data* as a JSON response."""
        body = json_module.dumps(data, default=str)
        return cls(body=body, status=status, content_type="application/json")

    def with_status(self, status: int) -> Response:
        """Return a new Response with a different status code."""
        return replace(self, status=status)

    def with_header(self, name: str, value: str) -> Response:
        """Return a new Response with an additional header."""
        return replace(self, headers=(*self.headers, (name, value)))

    def with_headers(self, headers: Mapping[str, str]) -> Response:
        """Return a new Response with additional headers."""
        return replace(self, headers=(*self.headers, *headers.items()))

    def with_cookie(
        self,
        name: str,
        value: str,
        *,
        max_age: int | None = None,
        path: str = "/",
        domain: str | None = None,
        secure: bool = False,
        httponly: bool = True,
        samesite: str = "Lax",
    ) -> Response:
        """Return a new Response with an additional Set-Cookie."""
        cookie = SetCookie(
            name=name,
            value=value,
            max_age=max_age,
            path=path,
            domain=domain,
            secure=secure,
            httponly=httponly,
            samesite=samesite,
        )
        return replace(self, cookies=(*self.cookies, cookie))

    def header(self, name: str) -> str | None:
        """First value of a response header, case-insensitive."""
        wanted = name.lower()
        for key, value in self.headers:
            if key.lower() == wanted:
                return value
        return None

    @property
    def body_bytes(self) -> bytes:
        """Body as bytes."""
        if isinstance(self.body, str):
            return self.body.encode("utf-8")
        return self.body

    @property
    def text(self) -> str:
        """Body as string."""
        if isinstance(self.body, bytes):
            return self.body.decode("utf-8")
        return self.body


@dataclass(frozen=True, slots=True)
class Redirect:
    """Send the client to another URL (302 by default)."""

    url: str
    status: int = 302
    headers: tuple[tuple[str, str], ...] = ()

    def to_response(self) -> Response:
        """Materialize as a body-less Response with a ``Location`` header."""
        return Response(
            body="",
            status=self.status,
            headers=(("Location", self.url), *self.headers),
        )


type AnyResponse = Response | Redirect
