"""ASGI handler: translates ASGI scope/messages to shopfront types.

The only component that touches raw HTTP requests directly. Builds the
typed Request, loads the session, matches the route, runs its guards
in order, invokes the controller action, and sends the response back
through ASGI ``send()`` with the session cookie attached.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from shopfront._internal.asgi import Receive, Scope, Send
from shopfront.context import RequestContext
from shopfront.errors import HTTPError
from shopfront.http.request import Request
from shopfront.http.response import AnyResponse, Redirect, Response
from shopfront.middleware.protocol import Continue
from shopfront.routing.router import normalize_path
from shopfront.server.errors import handle_http_error, handle_internal_error
from shopfront.server.sender import send_response

if TYPE_CHECKING:
    from shopfront.context import Services
    from shopfront.middleware.sessions import SessionManager
    from shopfront.routing.route import RouteMatch
    from shopfront.routing.router import Router

logger = logging.getLogger("shopfront.server")


async def handle_request(
    scope: Scope,
    receive: Receive,
    send: Send,
    *,
    router: Router,
    sessions: SessionManager,
    services: Services,
) -> None:
    """Process a single HTTP request through the full pipeline."""
    if scope["type"] != "http":
        return

    request = Request.from_asgi(
        scope, receive, trust_forwarded=services.config.trust_forwarded_for
    )
    ctx: RequestContext | None = None
    head = request.method == "HEAD"

    try:
        session = sessions.load(request)
        path = normalize_path(request.path, services.config.base_path)
        # HEAD is served by the GET route with the body dropped
        method = "GET" if head else request.method
        match = router.match(method, path)
        ctx = RequestContext(
            request=request,
            session=session,
            path=path,
            path_params=dict(match.path_params) if match is not None else {},
        )
        if match is None:
            response = await _not_found(ctx, services)
        else:
            response = await dispatch(match, ctx, services)
    except HTTPError as exc:
        response = await handle_http_error(exc, ctx, services)
    except Exception as exc:
        response = await handle_internal_error(exc, request, ctx, services)

    if ctx is not None:
        response = sessions.save(ctx.session, response)
    await send_response(response, send, head=head)


async def _not_found(ctx: RequestContext, services: Services) -> Response:
    """No route matched: render the 404 page without running any guard."""
    from shopfront.controllers.error import ErrorController

    logger.debug("404 %s %s", ctx.method, ctx.request.path)
    return await ErrorController(ctx, services).not_found()


async def dispatch(match: RouteMatch, ctx: RequestContext, services: Services) -> Response:
    """Run the matched route's guards, then its controller action.

    The first guard that does not return ``CONTINUE`` ends dispatch
    and its response is sent; the controller is never constructed.
    """
    route = match.route
    for guard in route.guards:
        outcome = await guard(ctx)
        if not isinstance(outcome, Continue):
            return _finalize(outcome)

    controller = route.controller(ctx, services)
    result = await route.action(controller, *match.args)
    return _finalize(result)


def _finalize(result: AnyResponse) -> Response:
    if isinstance(result, Redirect):
        return result.to_response()
    if isinstance(result, Response):
        return result
    msg = f"Controller action returned {type(result).__name__}, expected Response or Redirect"
    raise TypeError(msg)
