"""Throttle guard: in-memory fixed-window rate limiting per client.

Intended for authentication endpoints (login, registration, password
reset). Requests are counted per client address and route path; a
client that exceeds the window allowance is blocked for a while and
receives ``429 Too Many Requests`` with ``Retry-After``.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING

from shopfront.http.response import Response
from shopfront.middleware.protocol import CONTINUE, Outcome

if TYPE_CHECKING:
    from shopfront.context import RequestContext


@dataclass(frozen=True, slots=True)
class ThrottleConfig:
    """Rate limit policy."""

    requests: int = 10
    window_seconds: int = 60
    block_seconds: int = 300
    methods: frozenset[str] = frozenset({"POST"})


class ThrottleGuard:
    """Fixed-window limiter keyed by client address and path.

    Every ``purge_interval`` checks, entries whose window has closed and
    whose block has lapsed are dropped.
    """

    __slots__ = ("_checks", "_clock", "_config", "_lock", "_purge_interval", "_state")

    def __init__(self, config: ThrottleConfig | None = None,
                 clock: Callable[[], float] = time.monotonic, *,
                 purge_interval: int = 256) -> None:
        self._config = config or ThrottleConfig()
        self._clock = clock
        self._lock = threading.Lock()
        self._purge_interval = purge_interval
        self._checks = 0
        # key -> (count, window_start, blocked_until)
        self._state: dict[str, tuple[int, float, float]] = {}

    def __len__(self) -> int:
        return len(self._state)

    def reset(self) -> None:
        with self._lock:
            self._state.clear()

    def purge_expired(self) -> int:
        """Drop idle entries; returns how many went."""
        now = self._clock()
        with self._lock:
            return self._purge(now)

    def _purge(self, now: float) -> int:
        window = self._config.window_seconds
        stale = [
            key for key, (_, window_start, blocked_until) in self._state.items()
            if blocked_until <= now and now - window_start >= window
        ]
        for key in stale:
            del self._state[key]
        return len(stale)

    def check(self, key: str) -> tuple[bool, int]:
        """Count one hit for *key*. Returns ``(allowed, retry_after_seconds)``."""
        cfg = self._config
        now = self._clock()
        with self._lock:
            self._checks += 1
            if self._checks % self._purge_interval == 0:
                self._purge(now)

            count, window_start, blocked_until = self._state.get(key, (0, now, 0.0))
            if blocked_until > now:
                return False, max(1, int(blocked_until - now))

            if now - window_start >= cfg.window_seconds:
                count = 0
                window_start = now

            count += 1
            if count > cfg.requests:
                self._state[key] = (count, window_start, now + cfg.block_seconds)
                return False, cfg.block_seconds

            self._state[key] = (count, window_start, 0.0)
            return True, 0

    async def __call__(self, ctx: RequestContext) -> Outcome:
        if ctx.method not in self._config.methods:
            return CONTINUE
        allowed, retry_after = self.check(f"{ctx.request.client_ip}:{ctx.path}")
        if allowed:
            return CONTINUE
        return Response(
            body="Too Many Requests",
            status=429,
            content_type="text/plain; charset=utf-8",
            headers=(("Retry-After", str(retry_after)),),
        )
