"""Top-level error boundary.

Maps ``HTTPError`` to the matching error page and anything else to a
500. The 500 path never raises: if the error page itself cannot be
rendered, a plain-text response is returned instead.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from shopfront.errors import HTTPError
from shopfront.http.response import Response

if TYPE_CHECKING:
    from shopfront.context import RequestContext, Services
    from shopfront.http.request import Request

logger = logging.getLogger("shopfront.server")

_PLAIN = "text/plain; charset=utf-8"


def plain_error(status: int, detail: str) -> Response:
    return Response(body=detail, status=status, content_type=_PLAIN)


async def handle_http_error(
    exc: HTTPError,
    ctx: RequestContext | None,
    services: Services,
) -> Response:
    """Render the error page for an intentional HTTP error."""
    from shopfront.controllers.error import ErrorController

    if ctx is None:
        logger.debug("%d before dispatch: %s", exc.status, exc.detail)
        response = plain_error(exc.status, exc.detail or f"Error {exc.status}")
    else:
        logger.debug("%d %s %s: %s", exc.status, ctx.method, ctx.request.path, exc.detail)
        errors = ErrorController(ctx, services)
        if exc.status == 404:
            response = await errors.not_found()
        elif exc.status == 403:
            response = await errors.forbidden(exc.detail or None)
        else:
            response = plain_error(exc.status, exc.detail or f"Error {exc.status}")

    for name, value in exc.headers:
        response = response.with_header(name, value)
    return response


async def handle_internal_error(
    exc: Exception,
    request: Request,
    ctx: RequestContext | None,
    services: Services,
) -> Response:
    """Log *exc* with its traceback and build the 500 response."""
    logger.exception("500 %s %s", request.method, request.path)

    if services.config.debug:
        from shopfront.server.debug_page import render_debug_page

        return Response(body=render_debug_page(exc, request), status=500)

    if ctx is not None:
        from shopfront.controllers.error import ErrorController

        try:
            return await ErrorController(ctx, services).server_error()
        except Exception:
            logger.exception("Error page failed to render")

    return plain_error(500, "Internal Server Error")
