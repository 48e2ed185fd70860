from shopfront.security import LockoutConfig, LoginLockout


class FakeClock:
    def __init__(self) -> None:
        self.now = 5000.0

    def __call__(self) -> float:
        return self.now


def fail_times(lockout: LoginLockout, key: str, count: int) -> tuple[bool, int]:
    outcome = (False, 0)
    for _ in range(count):
        outcome = lockout.record_failure(key)
    return outcome


class TestLoginLockout:
    def test_locks_after_max_failures(self) -> None:
        lockout = LoginLockout(clock=FakeClock())
        assert fail_times(lockout, "ada@example.com", 4) == (False, 0)
        assert lockout.record_failure("ada@example.com") == (True, 900)
        assert lockout.is_locked("ada@example.com") == (True, 900)

    def test_retry_after_counts_down(self) -> None:
        clock = FakeClock()
        lockout = LoginLockout(clock=clock)
        fail_times(lockout, "k", 5)
        clock.now += 600
        assert lockout.is_locked("k") == (True, 300)
        clock.now += 300
        assert lockout.is_locked("k") == (False, 0)

    def test_failures_while_locked_do_not_extend(self) -> None:
        clock = FakeClock()
        lockout = LoginLockout(clock=clock)
        fail_times(lockout, "k", 5)
        clock.now += 100
        assert lockout.record_failure("k") == (True, 800)

    def test_success_clears_failures(self) -> None:
        lockout = LoginLockout(clock=FakeClock())
        fail_times(lockout, "k", 4)
        lockout.record_success("k")
        assert fail_times(lockout, "k", 4) == (False, 0)

    def test_window_expiry_resets_count(self) -> None:
        clock = FakeClock()
        lockout = LoginLockout(clock=clock)
        fail_times(lockout, "k", 4)
        clock.now += 901
        assert lockout.record_failure("k") == (False, 0)

    def test_keys_are_independent(self) -> None:
        lockout = LoginLockout(clock=FakeClock())
        fail_times(lockout, "a", 5)
        assert lockout.is_locked("b") == (False, 0)

    def test_key_normalizes_email(self) -> None:
        assert LoginLockout.key_for("  Ada@Example.COM ") == "ada@example.com"

    def test_backoff_is_capped(self) -> None:
        clock = FakeClock()
        policy = LockoutConfig(
            max_failures=2,
            window_seconds=10_000,
            base_lock_seconds=60,
            backoff_multiplier=4.0,
            max_lock_seconds=500,
        )
        lockout = LoginLockout(policy, clock=clock)
        assert fail_times(lockout, "k", 2) == (True, 60)
        clock.now += 61
        assert lockout.record_failure("k") == (True, 240)
        clock.now += 241
        assert lockout.record_failure("k") == (True, 500)
