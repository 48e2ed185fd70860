"""Server-side sessions keyed by a signed, opaque cookie id.

The cookie carries only a random session id signed with ``itsdangerous``;
the payload (identity, flash queue, CSRF token) stays on the server in a
``SessionStore``. Each request gets an explicit ``Session`` object on its
``RequestContext`` instead of a global session map.

Usage::

    manager = SessionManager(SessionConfig(secret_key="..."))
    session = manager.load(request)
    session.set("user_id", 42)
    session.add_flash("success", "Welcome back!")
    response = manager.save(session, response)
"""

from __future__ import annotations

import secrets
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Protocol

from itsdangerous import BadData, URLSafeTimedSerializer

from shopfront.constants import FLASH_KINDS, ROLE_ADMIN
from shopfront.errors import ConfigurationError
from shopfront.http.request import Request
from shopfront.http.response import Response

_FLASH_KEY = "flash_messages"
_CSRF_KEY = "_csrf_token"


# -- Configuration --


@dataclass(frozen=True, slots=True)
class SessionConfig:
    """Session configuration.

    ``secret_key`` is required; it signs the session id in the cookie.
    """

    secret_key: str
    cookie_name: str = "shopfront_session"
    lifetime: int = 7200
    path: str = "/"
    domain: str | None = None
    secure: bool = False
    httponly: bool = True
    samesite: str = "Lax"
    csrf_token_length: int = 32


# -- Session object --


@dataclass(frozen=True, slots=True)
class FlashMessage:
    """A one-shot notification shown on the next full-page render."""

    type: str
    message: str


class Session:
    """One client's server-side state for the duration of a request.

    Read and written through explicit methods; ``SessionManager.save``
    persists it after dispatch.
    """

    __slots__ = ("_csrf_length", "_data", "_destroyed_ids", "_modified", "_new", "id")

    def __init__(self, session_id: str, data: dict[str, Any] | None = None,
                 *, csrf_length: int = 32, new: bool = False) -> None:
        self.id = session_id
        self._data: dict[str, Any] = data if data is not None else {}
        self._destroyed_ids: list[str] = []
        self._modified = False
        self._new = new
        self._csrf_length = csrf_length

    def __repr__(self) -> str:
        return f"Session({self.id[:8]}..., keys={sorted(self._data)})"

    # -- Key/value access --

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value
        self._modified = True

    def pop(self, key: str, default: Any = None) -> Any:
        self._modified = True
        return self._data.pop(key, default)

    def __contains__(self, key: object) -> bool:
        return key in self._data

    def data(self) -> dict[str, Any]:
        """A shallow copy of the stored payload."""
        return dict(self._data)

    @property
    def modified(self) -> bool:
        return self._modified

    @property
    def is_new(self) -> bool:
        """True when no stored session backed this request."""
        return self._new

    @property
    def retired_ids(self) -> tuple[str, ...]:
        """Ids this session was known by before ``regenerate``/``destroy``."""
        return tuple(self._destroyed_ids)

    # -- Lifecycle --

    def regenerate(self) -> None:
        """Issue a new id and keep the data. Called at login against fixation."""
        self._destroyed_ids.append(self.id)
        self.id = new_session_id()
        self._modified = True

    def destroy(self) -> None:
        """Drop all data and issue a new id. Called at logout."""
        self._data.clear()
        self.regenerate()

    # -- Flash messages --

    def add_flash(self, kind: str, message: str) -> None:
        """Queue a flash message; *kind* is success, error, warning, or info."""
        if kind not in FLASH_KINDS:
            msg = f"Unknown flash kind {kind!r}; expected one of {sorted(FLASH_KINDS)}"
            raise ValueError(msg)
        queue = list(self._data.get(_FLASH_KEY, []))
        queue.append({"type": kind, "message": message})
        self.set(_FLASH_KEY, queue)

    def peek_flashes(self) -> list[FlashMessage]:
        return [FlashMessage(**item) for item in self._data.get(_FLASH_KEY, [])]

    def consume_flashes(self) -> list[FlashMessage]:
        """Return and clear the whole flash queue."""
        items = self.peek_flashes()
        if _FLASH_KEY in self._data:
            self.pop(_FLASH_KEY)
        return items

    # -- CSRF --

    def csrf_token(self) -> str:
        """The session's CSRF token, created on first use."""
        token = self._data.get(_CSRF_KEY)
        if not token:
            token = secrets.token_hex(self._csrf_length)
            self.set(_CSRF_KEY, token)
        return token

    # -- Identity --

    @property
    def user_id(self) -> int | None:
        value = self._data.get("user_id")
        return int(value) if value is not None else None

    @property
    def role(self) -> str | None:
        return self._data.get("user_role")

    @property
    def is_authenticated(self) -> bool:
        return bool(self._data.get("logged_in")) and self._data.get("user_id") is not None

    @property
    def is_admin(self) -> bool:
        return self.is_authenticated and self.role == ROLE_ADMIN

    def login(self, user_id: int, *, name: str, email: str, role: str) -> None:
        """Record an authenticated identity and rotate the session id."""
        self.regenerate()
        self.set("user_id", user_id)
        self.set("user_name", name)
        self.set("user_email", email)
        self.set("user_role", role)
        self.set("logged_in", True)
        self.set("login_time", int(time.time()))

    def current_user(self) -> dict[str, Any] | None:
        """Identity summary for templates, or ``None`` when anonymous."""
        if not self.is_authenticated:
            return None
        return {
            "id": self.user_id,
            "name": self._data.get("user_name", ""),
            "email": self._data.get("user_email", ""),
            "role": self.role,
        }


def new_session_id() -> str:
    return secrets.token_urlsafe(32)


# -- Storage --


class SessionStore(Protocol):
    """Server-side session storage keyed by session id."""

    def load(self, session_id: str) -> dict[str, Any] | None: ...

    def save(self, session_id: str, data: dict[str, Any]) -> None: ...

    def delete(self, session_id: str) -> None: ...


class MemorySessionStore:
    """In-process session storage with idle expiry.

    Suitable for a single-process deployment and for tests. Reads and
    writes are serialized by a lock; two requests on the same session
    still race read-then-write, last writer wins. Every
    ``purge_interval`` writes also sweep out expired entries, so
    sessions that are never loaded again do not accumulate.
    """

    __slots__ = ("_clock", "_entries", "_lifetime", "_lock", "_purge_interval", "_writes")

    def __init__(
        self,
        lifetime: int = 7200,
        *,
        purge_interval: int = 256,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._lifetime = lifetime
        self._purge_interval = max(1, purge_interval)
        self._clock = clock
        self._lock = threading.Lock()
        self._writes = 0
        self._entries: dict[str, tuple[float, dict[str, Any]]] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def load(self, session_id: str) -> dict[str, Any] | None:
        now = self._clock()
        with self._lock:
            entry = self._entries.get(session_id)
            if entry is None:
                return None
            touched, data = entry
            if now - touched > self._lifetime:
                del self._entries[session_id]
                return None
            return dict(data)

    def save(self, session_id: str, data: dict[str, Any]) -> None:
        with self._lock:
            self._entries[session_id] = (self._clock(), dict(data))
            self._writes += 1
            sweep = self._writes % self._purge_interval == 0
        if sweep:
            self.purge_expired()

    def delete(self, session_id: str) -> None:
        with self._lock:
            self._entries.pop(session_id, None)

    def purge_expired(self) -> int:
        """Drop expired entries and return how many were removed."""
        now = self._clock()
        with self._lock:
            stale = [sid for sid, (t, _) in self._entries.items() if now - t > self._lifetime]
            for sid in stale:
                del self._entries[sid]
        return len(stale)


# -- Manager --


class SessionManager:
    """Loads a Session from the request cookie and persists it afterwards."""

    __slots__ = ("_config", "_serializer", "_store")

    def __init__(self, config: SessionConfig, store: SessionStore | None = None) -> None:
        if not config.secret_key:
            msg = "SessionConfig.secret_key must not be empty."
            raise ConfigurationError(msg)
        self._config = config
        self._serializer = URLSafeTimedSerializer(config.secret_key, salt="shopfront.session")
        self._store: SessionStore = store or MemorySessionStore(config.lifetime)

    @property
    def config(self) -> SessionConfig:
        return self._config

    @property
    def store(self) -> SessionStore:
        return self._store

    def load(self, request: Request) -> Session:
        """Return the request's session, or a fresh one.

        A missing, tampered, or expired cookie silently starts a new
        session.
        """
        cookie_value = request.cookies.get(self._config.cookie_name)
        session_id = self._unsign(cookie_value) if cookie_value else None
        if session_id is not None:
            data = self._store.load(session_id)
            if data is not None:
                return Session(session_id, data, csrf_length=self._config.csrf_token_length)
        return Session(new_session_id(), csrf_length=self._config.csrf_token_length, new=True)

    def save(self, session: Session, response: Response) -> Response:
        """Persist the session and refresh the cookie on *response*.

        A fresh session that the request never wrote to is dropped: no
        store entry and no cookie.
        """
        if session.is_new and not session.modified:
            return response
        for retired in session.retired_ids:
            self._store.delete(retired)
        self._store.save(session.id, session.data())
        cfg = self._config
        return response.with_cookie(
            cfg.cookie_name,
            self._serializer.dumps(session.id),
            max_age=cfg.lifetime,
            path=cfg.path,
            domain=cfg.domain,
            secure=cfg.secure,
            httponly=cfg.httponly,
            samesite=cfg.samesite,
        )

    def _unsign(self, value: str) -> str | None:
        try:
            session_id = self._serializer.loads(value, max_age=self._config.lifetime)
        except BadData:
            return None
        return session_id if isinstance(session_id, str) else None
