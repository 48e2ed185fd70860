"""Serve the application with pounce.

Pounce's ``run()`` takes an import string (e.g. ``"myapp:app"``), but
shopfront hands over a live ``App`` object, so ``pounce.Server`` is used
directly with the ASGI callable.
"""


def run_server(
    app: object,
    host: str,
    port: int,
    *,
    reload: bool = False,
    workers: int = 1,
    app_path: str | None = None,
) -> None:
    """Start a pounce server for *app*.

    Args:
        app: ASGI callable (shopfront App instance).
        host: Bind host address.
        port: Bind port number.
        reload: Restart on file changes (development).
        workers: Worker count; reload mode always uses one.
        app_path: Optional ``"module:attribute"`` import string so that
            pounce reimports the app on each reload cycle.
    """
    from pounce.config import ServerConfig
    from pounce.server import Server

    config = ServerConfig(
        host=host,
        port=port,
        workers=1 if reload else workers,
        reload=reload,
        reload_include=(".html", ".sql") if reload else (),
    )
    server = Server(config, app, app_path=app_path)
    server.run()
