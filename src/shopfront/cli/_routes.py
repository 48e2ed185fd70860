"""``shopfront routes``: list registered routes in match order."""

from dataclasses import replace

from shopfront.app import create_app
from shopfront.config import AppConfig
from shopfront.routing import Route


def format_routes(routes: tuple[Route, ...]) -> list[str]:
    """Table rows (header first) of METHOD, PATH, HANDLER, MIDDLEWARE."""
    rows = [
        (r.method, r.pattern, r.handler_name, ", ".join(r.middleware) or "-") for r in routes
    ]
    header = ("METHOD", "PATH", "HANDLER", "MIDDLEWARE")
    widths = [max(len(row[i]) for row in (header, *rows)) for i in range(3)]
    fmt = f"{{:<{widths[0]}}}  {{:<{widths[1]}}}  {{:<{widths[2]}}}  {{}}"
    return [fmt.format(*header), *(fmt.format(*row) for row in rows)]


def run_routes(config: AppConfig) -> None:
    # Listing needs no session secret; a placeholder keeps freeze happy
    app = create_app(replace(config, secret_key=config.secret_key or "routes-listing"))
    for line in format_routes(app.router.routes):
        print(line)
