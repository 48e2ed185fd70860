"""Error pages: 404, 403 and the generic 500."""

from shopfront.controllers.base import Controller
from shopfront.http.response import Response


class ErrorController(Controller):
    __slots__ = ()

    layout = "error"

    async def not_found(self, message: str | None = None) -> Response:
        return self.render(
            "errors/404",
            {
                "page_title": "Page Not Found",
                "message": message or "The page you are looking for could not be found.",
            },
            status=404,
        )

    async def forbidden(self, message: str | None = None) -> Response:
        return self.render(
            "errors/403",
            {"page_title": "Access Forbidden", "message": message or "Access Forbidden"},
            status=403,
        )

    async def server_error(self, message: str | None = None) -> Response:
        return self.render(
            "errors/500",
            {"page_title": "Server Error", "message": message or "Internal Server Error"},
            status=500,
        )
