"""The shopfront ASGI application.

``App`` wires the configured collaborators together once, at freeze
time: the kida environment, the Data Gateway handle, the session
manager, the guard registry, and the route table. After that it is
read-only and serves requests.

Usage::

    from shopfront import create_app

    app = create_app()          # reads SHOPFRONT_* variables
    app.run()                   # or hand ``app`` to any ASGI server
"""

from __future__ import annotations

import logging
import secrets
import threading
from typing import TYPE_CHECKING

from shopfront._internal.asgi import Receive, Scope, Send
from shopfront.config import AppConfig
from shopfront.context import RequestContext, Services
from shopfront.data import Database, migrate
from shopfront.errors import ConfigurationError
from shopfront.http.response import Response
from shopfront.middleware import (
    AdminGuard,
    AuthGuard,
    CSRFGuard,
    MemorySessionStore,
    SessionConfig,
    SessionManager,
    SessionStore,
    ThrottleGuard,
)
from shopfront.routing import Router
from shopfront.security import LoginLockout
from shopfront.server.handler import handle_request
from shopfront.templating import create_environment
from shopfront.uploads import UploadStore

if TYPE_CHECKING:
    from kida import Environment

    from shopfront.middleware.protocol import Guard

logger = logging.getLogger("shopfront.server")


class App:
    """The shopfront application.

    Frozen on the first ASGI call (or ``run()``): the router, services,
    and guards are built exactly once.

    Thread safety:
        The freeze transition uses a lock with a double check, so
        concurrent first requests compile the app only once.
    """

    __slots__ = (
        "_db",
        "_freeze_lock",
        "_frozen",
        "_lockout",
        "_router",
        "_services",
        "_session_store",
        "_sessions",
        "_templates",
        "_throttle",
        "config",
    )

    def __init__(
        self,
        config: AppConfig | None = None,
        *,
        db: Database | None = None,
        session_store: SessionStore | None = None,
        lockout: LoginLockout | None = None,
        throttle: ThrottleGuard | None = None,
        templates: Environment | None = None,
    ) -> None:
        self.config: AppConfig = config or AppConfig()
        self._db: Database = db or Database(self.config.database_url, echo=self.config.echo_sql)
        self._session_store = session_store
        self._lockout = lockout or LoginLockout()
        self._throttle = throttle or ThrottleGuard()
        self._templates = templates
        self._frozen = False
        self._freeze_lock = threading.Lock()

        # Compiled state, set by _freeze()
        self._router: Router | None = None
        self._services: Services | None = None
        self._sessions: SessionManager | None = None

    # -- Compiled state --

    @property
    def db(self) -> Database:
        return self._db

    @property
    def router(self) -> Router:
        self._ensure_frozen()
        assert self._router is not None
        return self._router

    @property
    def services(self) -> Services:
        self._ensure_frozen()
        assert self._services is not None
        return self._services

    @property
    def sessions(self) -> SessionManager:
        self._ensure_frozen()
        assert self._sessions is not None
        return self._sessions

    # -- Lifecycle --

    async def startup(self) -> None:
        """Connect the Data Gateway and bring the schema up to date."""
        self._ensure_frozen()
        await self._db.connect()
        if self.config.auto_migrate:
            result = await migrate(self._db)
            logger.info("Migrations: %s", result.summary)

    async def shutdown(self) -> None:
        await self._db.disconnect()

    # -- Server --

    def run(self, host: str | None = None, port: int | None = None) -> None:
        """Serve with pounce. Reload is on when ``debug`` is set."""
        from shopfront.server.dev import run_server

        self._ensure_frozen()
        run_server(
            self,
            host or self.config.host,
            port or self.config.port,
            reload=self.config.debug,
        )

    # -- ASGI interface --

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """ASGI 3.0 entry point."""
        if scope["type"] == "lifespan":
            await self._handle_lifespan(receive, send)
            return

        self._ensure_frozen()
        assert self._router is not None
        assert self._sessions is not None
        assert self._services is not None

        await handle_request(
            scope,
            receive,
            send,
            router=self._router,
            sessions=self._sessions,
            services=self._services,
        )

    async def _handle_lifespan(self, receive: Receive, send: Send) -> None:
        while True:
            message = await receive()
            msg_type = message["type"]

            if msg_type == "lifespan.startup":
                try:
                    await self.startup()
                except Exception as exc:
                    logger.exception("Startup failed")
                    await send({"type": "lifespan.startup.failed", "message": str(exc)})
                    return
                await send({"type": "lifespan.startup.complete"})

            elif msg_type == "lifespan.shutdown":
                await self.shutdown()
                await send({"type": "lifespan.shutdown.complete"})
                return

    # -- Internal --

    def _ensure_frozen(self) -> None:
        if self._frozen:
            return
        with self._freeze_lock:
            if self._frozen:
                return
            self._freeze()

    def _secret_key(self) -> str:
        if self.config.secret_key:
            return self.config.secret_key
        if self.config.debug:
            logger.warning(
                "No SHOPFRONT_SECRET_KEY set; using a random key (sessions reset on restart)"
            )
            return secrets.token_hex(32)
        msg = "secret_key is required outside debug mode (set SHOPFRONT_SECRET_KEY)"
        raise ConfigurationError(msg)

    def _freeze(self) -> None:
        from shopfront.routes import register_routes

        cfg = self.config
        services = Services(
            config=cfg,
            db=self._db,
            templates=self._templates or create_environment(cfg),
            lockout=self._lockout,
            uploads=UploadStore(cfg),
        )
        self._sessions = SessionManager(
            SessionConfig(
                secret_key=self._secret_key(),
                cookie_name=cfg.session_cookie,
                lifetime=cfg.session_lifetime,
                path=cfg.base_path or "/",
                secure=cfg.secure_cookies,
            ),
            self._session_store or MemorySessionStore(cfg.session_lifetime),
        )

        async def deny(ctx: RequestContext, status: int, message: str) -> Response:
            from shopfront.controllers.error import ErrorController

            if status == 403:
                return await ErrorController(ctx, services).forbidden(message)
            return Response(body=message, status=status, content_type="text/plain; charset=utf-8")

        login_url = f"{cfg.base_path.rstrip('/')}/login"
        guards: dict[str, Guard] = {
            "auth": AuthGuard(login_url),
            "admin": AdminGuard(login_url, deny=deny),
            "csrf": CSRFGuard(deny=deny),
            "throttle": self._throttle,
        }
        self._router = register_routes(Router(guards))
        self._services = services
        self._frozen = True
        logger.debug("App frozen with %d routes", len(self._router.routes))


def create_app(config: AppConfig | None = None, **kwargs: object) -> App:
    """Build the application from *config*, or from ``SHOPFRONT_*`` variables."""
    return App(config or AppConfig.from_env(), **kwargs)  # type: ignore[arg-type]
