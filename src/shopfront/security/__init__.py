"""Security utilities: password hashing, login lockout, tokens, audit events.

Usage::

    from shopfront.security import hash_password, verify_password

    hashed = hash_password("my-password")
    ok = verify_password("my-password", hashed)
"""

from shopfront.security.audit import (
    SecurityEvent,
    emit_security_event,
    log_sink,
    set_security_event_sink,
)
from shopfront.security.lockout import LockoutConfig, LoginLockout
from shopfront.security.passwords import hash_password, needs_rehash, verify_password
from shopfront.security.tokens import generate_token, tokens_match

__all__ = [
    "LockoutConfig",
    "LoginLockout",
    "SecurityEvent",
    "emit_security_event",
    "generate_token",
    "hash_password",
    "log_sink",
    "needs_rehash",
    "set_security_event_sink",
    "tokens_match",
    "verify_password",
]
