"""Login lockout.

Tracks repeated authentication failures per key (the submitted email
address) and locks the key once the policy's failure count is reached
inside the window. The auth controller consults it before checking a
password and records each outcome afterward.
"""

import threading
import time
from collections.abc import Callable
from dataclasses import dataclass

from shopfront.constants import LOGIN_LOCKOUT_SECONDS, LOGIN_MAX_ATTEMPTS


@dataclass(frozen=True, slots=True)
class LockoutConfig:
    """Lockout policy configuration."""

    max_failures: int = LOGIN_MAX_ATTEMPTS
    window_seconds: int = LOGIN_LOCKOUT_SECONDS
    base_lock_seconds: int = LOGIN_LOCKOUT_SECONDS
    backoff_multiplier: float = 1.0
    max_lock_seconds: int = 3600


class LoginLockout:
    """Track login failures and compute lockout windows."""

    __slots__ = ("_clock", "_config", "_lock", "_state")

    def __init__(
        self,
        config: LockoutConfig | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._config = config or LockoutConfig()
        self._clock = clock
        self._lock = threading.Lock()
        # key -> (failures, first_failure_at, locked_until)
        self._state: dict[str, tuple[int, float, float]] = {}

    @staticmethod
    def key_for(email: str) -> str:
        return email.strip().lower()

    def is_locked(self, key: str) -> tuple[bool, int]:
        """Return lock status and retry-after seconds."""
        now = self._clock()
        with self._lock:
            _failures, _first, locked_until = self._state.get(key, (0, now, 0.0))
            if locked_until <= now:
                return False, 0
            return True, max(1, int(locked_until - now))

    def record_success(self, key: str) -> None:
        """Clear failure state after successful authentication."""
        with self._lock:
            self._state.pop(key, None)

    def record_failure(self, key: str) -> tuple[bool, int]:
        """Record a failed attempt.

        Returns ``(is_locked, retry_after_seconds)``.
        """
        cfg = self._config
        now = self._clock()
        with self._lock:
            failures, first_failure_at, locked_until = self._state.get(key, (0, now, 0.0))

            if locked_until > now:
                return True, max(1, int(locked_until - now))

            if now - first_failure_at > cfg.window_seconds:
                failures = 0
                first_failure_at = now

            failures += 1
            if failures >= cfg.max_failures:
                steps = max(0, failures - cfg.max_failures)
                lock_seconds = int(cfg.base_lock_seconds * cfg.backoff_multiplier**steps)
                lock_seconds = min(cfg.max_lock_seconds, max(1, lock_seconds))
                self._state[key] = (failures, first_failure_at, now + lock_seconds)
                return True, lock_seconds

            self._state[key] = (failures, first_failure_at, 0.0)
            return False, 0
