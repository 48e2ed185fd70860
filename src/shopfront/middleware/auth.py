"""Identity guards: ``auth`` and ``admin``.

Both read identity from the request's ``Session``. Neither raises: a
denial is returned as a value and becomes the response.

Usage::

    router = Router(guards={
        "auth": AuthGuard(login_url="/login"),
        "admin": AdminGuard(login_url="/login"),
    })
    router.get("/dashboard", UserController, UserController.dashboard, ["auth"])
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING

from shopfront.http.response import Redirect, Response
from shopfront.middleware.protocol import CONTINUE, Outcome

if TYPE_CHECKING:
    from shopfront.context import RequestContext

type Denial = Callable[[RequestContext, int, str], Awaitable[Response]]

LOGIN_REQUIRED_MESSAGE = "Please log in to access this page"


async def plain_denial(ctx: RequestContext, status: int, message: str) -> Response:
    """Fallback denial: a bare status page with the message as the body."""
    return Response(body=message, status=status, content_type="text/plain; charset=utf-8")


def remember_intended_url(ctx: RequestContext) -> None:
    """Store where a GET request was heading so login can send the user back."""
    if ctx.method == "GET":
        ctx.session.set("intended_url", ctx.request.url)


class AuthGuard:
    """Deny anonymous requests with a redirect to the login page."""

    __slots__ = ("_login_url",)

    def __init__(self, login_url: str = "/login") -> None:
        self._login_url = login_url

    async def __call__(self, ctx: RequestContext) -> Outcome:
        if ctx.session.is_authenticated:
            return CONTINUE
        remember_intended_url(ctx)
        ctx.session.add_flash("info", LOGIN_REQUIRED_MESSAGE)
        return Redirect(self._login_url)


class AdminGuard:
    """Require the admin role.

    Anonymous requests are sent to the login page; signed-in users with
    another role get a 403 access-denied page.
    """

    __slots__ = ("_deny", "_login_url")

    def __init__(self, login_url: str = "/login", deny: Denial | None = None) -> None:
        self._login_url = login_url
        self._deny: Denial = deny or plain_denial

    async def __call__(self, ctx: RequestContext) -> Outcome:
        if not ctx.session.is_authenticated:
            remember_intended_url(ctx)
            return Redirect(self._login_url)
        if ctx.session.is_admin:
            return CONTINUE
        return await self._deny(ctx, 403, "You do not have permission to access this page.")
