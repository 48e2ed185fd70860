"""Per-request context and process-wide services.

``RequestContext`` is created at dispatch start and discarded once the
response is sent. ``Services`` is built once at bootstrap and handed to
every controller instance, replacing hidden globals with explicit
handles.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from kida import Environment

    from shopfront.config import AppConfig
    from shopfront.data.database import Database
    from shopfront.http.forms import FormData
    from shopfront.http.request import QueryParams, Request
    from shopfront.middleware.sessions import Session
    from shopfront.security.lockout import LoginLockout
    from shopfront.uploads import UploadStore


@dataclass(frozen=True, slots=True)
class RequestContext:
    """Everything a guard or controller knows about the current request."""

    request: Request
    session: Session
    path: str
    path_params: dict[str, str] = field(default_factory=dict)

    @property
    def method(self) -> str:
        return self.request.method

    @property
    def query(self) -> QueryParams:
        return self.request.query

    async def form(self) -> FormData:
        """Body parameters (cached on the request)."""
        return await self.request.form()


@dataclass(frozen=True, slots=True)
class Services:
    """Process-lifetime collaborators shared by all controllers."""

    config: AppConfig
    db: Database
    templates: Environment
    lockout: LoginLockout
    uploads: UploadStore
