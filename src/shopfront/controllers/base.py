"""Base controller: the helpers every concrete controller builds on.

A fresh controller is constructed per dispatch with the request context
and the process-wide services. Actions return a value (``Response`` or
``Redirect``) rather than halting, so nothing runs after a response has
been produced::

    class AccountController(Controller):
        async def settings(self) -> AnyResponse:
            if (guard := self.require_auth()) is not CONTINUE:
                return guard
            return self.render("user/settings", {"page_title": "Settings"})

``require_auth()`` and ``require_admin()`` return ``CONTINUE``
to proceed, or the denial response the action must return as-is.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, ClassVar

from kida.environment.exceptions import TemplateNotFoundError
from kida.template import Markup

from shopfront.constants import MAX_ROW_ID
from shopfront.errors import ConfigurationError
from shopfront.http.response import AnyResponse, Redirect, Response
from shopfront.middleware.auth import LOGIN_REQUIRED_MESSAGE, remember_intended_url
from shopfront.middleware.protocol import CONTINUE, Outcome
from shopfront.models import OrderModel, ProductModel, UserModel, clamp_page

if TYPE_CHECKING:
    from shopfront.config import AppConfig
    from shopfront.context import RequestContext, Services
    from shopfront.data import Database
    from shopfront.http.forms import FormData
    from shopfront.http.request import Request
    from shopfront.middleware.sessions import Session

logger = logging.getLogger("shopfront.server")

NO_LAYOUT = "none"

_OLD_INPUT_KEY = "_old_input"
_FORM_ERRORS_KEY = "_form_errors"


def parse_id(raw: str) -> int | None:
    """Path parameters arrive as strings; ids are positive integers."""
    if not (raw.isascii() and raw.isdigit()):
        return None
    value = int(raw)
    return value if 0 < value <= MAX_ROW_ID else None


class Controller:
    """Shared request/response helpers for concrete controllers."""

    __slots__ = ("ctx", "services")

    #: Layout wrapped around views unless ``render(layout=...)`` overrides it
    layout: ClassVar[str] = "default"

    def __init__(self, ctx: RequestContext, services: Services) -> None:
        self.ctx = ctx
        self.services = services

    # -- Shortcuts --

    @property
    def request(self) -> Request:
        return self.ctx.request

    @property
    def session(self) -> Session:
        return self.ctx.session

    @property
    def config(self) -> AppConfig:
        return self.services.config

    @property
    def db(self) -> Database:
        return self.services.db

    @property
    def users(self) -> UserModel:
        return UserModel(self.services.db)

    @property
    def products(self) -> ProductModel:
        return ProductModel(self.services.db)

    @property
    def orders(self) -> OrderModel:
        return OrderModel(self.services.db)

    def is_ajax(self) -> bool:
        return self.request.is_ajax

    async def form(self) -> FormData:
        return await self.ctx.form()

    def page_param(self) -> int:
        """The ``?page=`` query value, clamped to 1 or more."""
        return clamp_page(self.ctx.query.get_int("page"))

    def id_param(self, name: str) -> int | None:
        """A positive id from the query string, or ``None``."""
        return parse_id(self.ctx.query.get(name) or "")

    # -- Rendering --

    def _shared(self) -> dict[str, Any]:
        """Variables every view and layout can rely on."""
        session = self.session
        return {
            "current_user": session.current_user(),
            "is_authenticated": session.is_authenticated,
            "is_admin": session.is_admin,
            # Templates call it; the token is created on first use
            "csrf_token": session.csrf_token,
            "current_path": self.ctx.path,
        }

    def _render_file(self, name: str, context: dict[str, Any]) -> str:
        try:
            template = self.services.templates.get_template(name)
        except TemplateNotFoundError as exc:
            msg = f"Missing template {name!r}"
            raise ConfigurationError(msg) from exc
        return template.render(context)

    def render(
        self,
        view: str,
        data: dict[str, Any] | None = None,
        layout: str | None = None,
        status: int = 200,
    ) -> Response:
        """Render ``templates/<view>.html`` inside ``templates/layouts/<layout>.html``.

        *data* is merged over the shared variables. The layout receives
        the rendered view as ``content`` and consumes the flash queue.
        ``layout="none"`` returns the bare view and leaves flashes queued.

        Raises:
            ConfigurationError: If the view or layout template is missing.
        """
        data = data or {}
        context = {**self._shared(), **data}
        html = self._render_file(f"{view}.html", context)

        layout_name = layout or self.layout
        if layout_name == NO_LAYOUT:
            return Response(html, status=status)

        page = self._render_file(
            f"layouts/{layout_name}.html",
            {
                **self._shared(),
                "page_title": data.get("page_title", self.config.app_name),
                "meta_description": data.get("meta_description", ""),
                "content": Markup(html),
                "flash_messages": self.session.consume_flashes(),
            },
        )
        return Response(page, status=status)

    def json_response(self, data: Any, status: int = 200) -> Response:
        return Response.json(data, status=status)

    def redirect(self, url: str, status: int = 302) -> Redirect:
        """Redirect to *url*; absolute paths get the mount prefix."""
        if url.startswith("/") and not url.startswith("//"):
            url = f"{self.config.base_path.rstrip('/')}{url}"
        return Redirect(url, status=status)

    def absolute_url(self, path: str) -> str:
        """Full link for out-of-band delivery (verification and reset links)."""
        cfg = self.config
        host = self.request.headers.get("host") or f"{cfg.host}:{cfg.port}"
        scheme = "https" if cfg.secure_cookies else "http"
        return f"{scheme}://{host}{cfg.base_path.rstrip('/')}{path}"

    def flash(self, kind: str, message: str) -> None:
        self.session.add_flash(kind, message)

    def back_to_form(self, url: str, message: str, *, old: Mapping[str, str] | None = None,
                     errors: Mapping[str, list[str]] | None = None) -> Redirect:
        """Flash *message* and redirect to *url*, keeping input for the next render.

        Password fields are never kept.
        """
        self.flash("error", message)
        if old is not None:
            self.session.set(
                _OLD_INPUT_KEY,
                {k: v for k, v in old.items() if "password" not in k and not k.startswith("_")},
            )
        if errors:
            self.session.set(_FORM_ERRORS_KEY, {k: list(v) for k, v in errors.items()})
        return self.redirect(url)

    def recall_form(self) -> tuple[dict[str, str], dict[str, list[str]]]:
        """Input and field errors left by ``back_to_form``, cleared on read."""
        old = self.session.pop(_OLD_INPUT_KEY) if _OLD_INPUT_KEY in self.session else {}
        errors = self.session.pop(_FORM_ERRORS_KEY) if _FORM_ERRORS_KEY in self.session else {}
        return old, errors

    # -- Guards --

    def require_auth(self) -> Outcome:
        """``CONTINUE`` for a signed-in user, else a redirect to the login page."""
        if self.session.is_authenticated:
            return CONTINUE
        remember_intended_url(self.ctx)
        self.flash("info", LOGIN_REQUIRED_MESSAGE)
        return self.redirect("/login")

    async def require_admin(self) -> Outcome:
        """``require_auth()`` plus the admin role; other roles get a 403 page."""
        outcome = self.require_auth()
        if outcome is not CONTINUE:
            return outcome
        if self.session.is_admin:
            return CONTINUE
        return await self.forbidden("You do not have permission to access this page.")

    # -- Error pages --

    def _errors(self):
        from shopfront.controllers.error import ErrorController

        return ErrorController(self.ctx, self.services)

    async def not_found(self, message: str | None = None) -> Response:
        return await self._errors().not_found(message)

    async def forbidden(self, message: str | None = None) -> Response:
        return await self._errors().forbidden(message)

    async def server_error(self, message: str | None = None) -> Response:
        return await self._errors().server_error(message)

    # -- Activity --

    async def log_activity(self, action: str, description: str = "",
                           user_id: int | None = None) -> None:
        uid = user_id if user_id is not None else self.session.user_id
        if uid is None:
            return
        await self.users.log_activity(
            uid,
            action,
            description,
            ip_address=self.request.client_ip,
            user_agent=self.request.headers.get("user-agent"),
        )


__all__ = ["NO_LAYOUT", "AnyResponse", "Controller", "parse_id"]
