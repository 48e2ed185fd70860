"""Guard protocol and the result values guards and controllers return.

A guard inspects the request context and either lets dispatch continue
or produces the response itself (a redirect to the login page, a 403, a
429). Controllers use the same ``Continue`` value for their inline
``require_auth()`` / ``require_admin()`` checks.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Final, Protocol, final

from shopfront.http.response import Redirect, Response

if TYPE_CHECKING:
    from shopfront.context import RequestContext


@final
class Continue:
    """Proceed with dispatch. Use the ``CONTINUE`` singleton."""

    __slots__ = ()

    def __repr__(self) -> str:
        return "CONTINUE"

    def __bool__(self) -> bool:
        return True


CONTINUE: Final = Continue()

type Outcome = Continue | Response | Redirect


class Guard(Protocol):
    """A named route middleware.

    Returns ``CONTINUE`` to allow, or a ``Response``/``Redirect`` to
    deny. The first denial stops the chain and becomes the response.
    """

    async def __call__(self, ctx: RequestContext) -> Outcome: ...
