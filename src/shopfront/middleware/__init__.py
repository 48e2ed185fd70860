"""Route middleware (guards) and session handling.

Guards are registered by name with the router and run in the order a
route lists them. Each returns ``CONTINUE`` or a response that ends
dispatch.
"""

from shopfront.middleware.auth import AdminGuard, AuthGuard
from shopfront.middleware.csrf import CSRFConfig, CSRFGuard
from shopfront.middleware.protocol import CONTINUE, Continue, Guard, Outcome
from shopfront.middleware.sessions import (
    MemorySessionStore,
    Session,
    SessionConfig,
    SessionManager,
    SessionStore,
)
from shopfront.middleware.throttle import ThrottleConfig, ThrottleGuard

__all__ = [
    "CONTINUE",
    "AdminGuard",
    "AuthGuard",
    "CSRFConfig",
    "CSRFGuard",
    "Continue",
    "Guard",
    "MemorySessionStore",
    "Outcome",
    "Session",
    "SessionConfig",
    "SessionManager",
    "SessionStore",
    "ThrottleConfig",
    "ThrottleGuard",
]
