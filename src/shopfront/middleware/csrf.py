"""CSRF guard: session-backed token check on state-changing requests.

The token lives in the session (``Session.csrf_token()``) and is rendered
into every form as a hidden ``_csrf_token`` field. AJAX callers send it
in the ``X-CSRF-Token`` header instead.

Templates::

    <form method="post">
        <input type="hidden" name="_csrf_token" value="{{ csrf_token() }}">
        ...
    </form>
"""

from __future__ import annotations

import secrets
from dataclasses import dataclass
from typing import TYPE_CHECKING

from shopfront.middleware.auth import Denial, plain_denial
from shopfront.middleware.protocol import CONTINUE, Outcome

if TYPE_CHECKING:
    from shopfront.context import RequestContext

# Methods that mutate state and need CSRF protection
UNSAFE_METHODS: frozenset[str] = frozenset({"POST", "PUT", "PATCH", "DELETE"})


@dataclass(frozen=True, slots=True)
class CSRFConfig:
    """CSRF guard configuration.

    Attributes:
        field_name: Form field name for the token.
        header_name: HTTP header name for AJAX requests.
        exempt_paths: Paths that skip validation.
    """

    field_name: str = "_csrf_token"
    header_name: str = "X-CSRF-Token"
    exempt_paths: frozenset[str] = frozenset()


class CSRFGuard:
    """Reject unsafe requests whose token is missing or does not match."""

    __slots__ = ("_config", "_deny")

    def __init__(self, config: CSRFConfig | None = None, deny: Denial | None = None) -> None:
        self._config = config or CSRFConfig()
        self._deny: Denial = deny or plain_denial

    async def __call__(self, ctx: RequestContext) -> Outcome:
        cfg = self._config
        if ctx.method not in UNSAFE_METHODS or ctx.path in cfg.exempt_paths:
            return CONTINUE

        # Header first (AJAX), then the form body
        submitted = ctx.request.headers.get(cfg.header_name)
        if submitted is None:
            form = await ctx.form()
            submitted = form.get(cfg.field_name)

        if not submitted:
            return await self._deny(ctx, 403, "CSRF token missing")

        expected = ctx.session.csrf_token()
        if not secrets.compare_digest(submitted, expected):
            return await self._deny(ctx, 403, "CSRF token invalid")
        return CONTINUE
