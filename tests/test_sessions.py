"""Tests for server-side sessions: Session, MemorySessionStore, SessionManager."""

import pytest

from shopfront.errors import ConfigurationError
from shopfront.http.request import Request
from shopfront.http.response import Response
from shopfront.middleware.sessions import (
    MemorySessionStore,
    Session,
    SessionConfig,
    SessionManager,
)


def request_with_cookie(cookie: str | None) -> Request:
    headers = [(b"cookie", cookie.encode("latin-1"))] if cookie else []
    scope = {"type": "http", "method": "GET", "path": "/", "headers": headers, "query_string": b""}

    async def receive():
        return {"type": "http.request", "body": b"", "more_body": False}

    return Request.from_asgi(scope, receive)


class FakeClock:
    def __init__(self) -> None:
        self.now = 100.0

    def __call__(self) -> float:
        return self.now


def cookie_from(response: Response, name: str = "shopfront_session") -> str:
    cookie = response.cookies[-1]
    assert cookie.name == name
    return f"{cookie.name}={cookie.value}"


class TestSession:
    def test_get_set_pop(self) -> None:
        session = Session("abc")
        assert session.get("missing", 1) == 1
        session.set("cart", [1, 2])
        assert "cart" in session
        assert session.modified
        assert session.pop("cart") == [1, 2]
        assert "cart" not in session

    def test_anonymous_by_default(self) -> None:
        session = Session("abc")
        assert not session.is_authenticated
        assert not session.is_admin
        assert session.user_id is None
        assert session.current_user() is None

    def test_login_rotates_id_and_records_identity(self) -> None:
        session = Session("before")
        session.login(7, name="Ada Lovelace", email="ada@example.com", role="admin")
        assert session.id != "before"
        assert session.retired_ids == ("before",)
        assert session.is_authenticated
        assert session.is_admin
        assert session.current_user() == {
            "id": 7,
            "name": "Ada Lovelace",
            "email": "ada@example.com",
            "role": "admin",
        }

    def test_destroy_clears_everything(self) -> None:
        session = Session("abc")
        session.login(7, name="Ada", email="ada@example.com", role="user")
        session.destroy()
        assert not session.is_authenticated
        assert session.data() == {}

    def test_flashes_are_consumed_once(self) -> None:
        session = Session("abc")
        session.add_flash("success", "Saved")
        session.add_flash("error", "But also this")
        assert [f.message for f in session.peek_flashes()] == ["Saved", "But also this"]
        flashes = session.consume_flashes()
        assert [(f.type, f.message) for f in flashes] == [
            ("success", "Saved"),
            ("error", "But also this"),
        ]
        assert session.consume_flashes() == []

    def test_unknown_flash_kind_rejected(self) -> None:
        with pytest.raises(ValueError, match="Unknown flash kind"):
            Session("abc").add_flash("shout", "LOUD")

    def test_csrf_token_is_stable(self) -> None:
        session = Session("abc", csrf_length=16)
        token = session.csrf_token()
        assert len(token) == 32
        assert session.csrf_token() == token


class TestMemorySessionStore:
    def test_round_trip_copies(self) -> None:
        store = MemorySessionStore()
        data = {"user_id": 1}
        store.save("sid", data)
        data["user_id"] = 2
        assert store.load("sid") == {"user_id": 1}

    def test_expired_entries_vanish(self) -> None:
        store = MemorySessionStore(lifetime=-1)
        store.save("sid", {"a": 1})
        assert store.load("sid") is None
        assert len(store) == 0

    def test_purge_expired(self) -> None:
        store = MemorySessionStore(lifetime=-1)
        store.save("one", {})
        store.save("two", {})
        assert store.purge_expired() == 2

    def test_delete(self) -> None:
        store = MemorySessionStore()
        store.save("sid", {})
        store.delete("sid")
        store.delete("sid")
        assert store.load("sid") is None

    def test_writes_sweep_abandoned_sessions(self) -> None:
        clock = FakeClock()
        store = MemorySessionStore(lifetime=60, purge_interval=4, clock=clock)
        store.save("abandoned", {"a": 1})
        clock.now += 61
        for sid in ("one", "two", "three"):
            store.save(sid, {})
        assert len(store) == 3
        assert store.load("one") == {}


class TestSessionManager:
    def test_untouched_fresh_session_is_not_stored(self) -> None:
        store = MemorySessionStore()
        manager = SessionManager(SessionConfig(secret_key="k"), store)
        for _ in range(50):
            session = manager.load(request_with_cookie(None))
            assert session.is_new
            response = manager.save(session, Response("ok"))
            assert response.cookies == ()
        assert len(store) == 0

    def test_loaded_session_is_refreshed_even_when_unchanged(self) -> None:
        manager = SessionManager(SessionConfig(secret_key="k"))
        session = manager.load(request_with_cookie(None))
        session.set("user_id", 5)
        pair = cookie_from(manager.save(session, Response("ok")))

        again = manager.load(request_with_cookie(pair))
        assert not again.is_new
        assert manager.save(again, Response("ok")).cookies != ()

    def test_requires_secret(self) -> None:
        with pytest.raises(ConfigurationError):
            SessionManager(SessionConfig(secret_key=""))

    def test_new_session_without_cookie(self) -> None:
        manager = SessionManager(SessionConfig(secret_key="k"))
        session = manager.load(request_with_cookie(None))
        assert session.data() == {}

    def test_saved_session_loads_back(self) -> None:
        manager = SessionManager(SessionConfig(secret_key="k"))
        session = manager.load(request_with_cookie(None))
        session.set("user_id", 5)
        response = manager.save(session, Response("ok"))

        header = response.cookies[-1].to_header_value()
        assert "HttpOnly" in header
        assert "SameSite=Lax" in header

        again = manager.load(request_with_cookie(cookie_from(response)))
        assert again.id == session.id
        assert again.get("user_id") == 5

    def test_tampered_cookie_starts_fresh(self) -> None:
        manager = SessionManager(SessionConfig(secret_key="k"))
        session = manager.load(request_with_cookie(None))
        session.set("user_id", 5)
        pair = cookie_from(manager.save(session, Response("ok")))

        forged = manager.load(request_with_cookie(pair + "x"))
        assert forged.get("user_id") is None
        assert forged.id != session.id

    def test_other_secret_rejected(self) -> None:
        store = MemorySessionStore()
        manager = SessionManager(SessionConfig(secret_key="k"), store)
        session = manager.load(request_with_cookie(None))
        session.set("user_id", 5)
        pair = cookie_from(manager.save(session, Response("ok")))

        other = SessionManager(SessionConfig(secret_key="different"), store)
        assert other.load(request_with_cookie(pair)).get("user_id") is None

    def test_regenerated_ids_are_dropped_from_store(self) -> None:
        store = MemorySessionStore()
        manager = SessionManager(SessionConfig(secret_key="k"), store)
        session = manager.load(request_with_cookie(None))
        manager.save(session, Response("ok"))
        old_id = session.id

        session.login(1, name="Ada", email="ada@example.com", role="user")
        manager.save(session, Response("ok"))

        assert store.load(old_id) is None
        assert store.load(session.id) is not None
