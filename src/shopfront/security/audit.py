"""Security audit events.

Authentication and authorization outcomes (login success and failure,
lockouts, access denials, password changes) are emitted as structured
events. By default each event is logged on ``shopfront.security``;
applications can register a sink to forward them elsewhere.
"""

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from time import time
from typing import Any

logger = logging.getLogger("shopfront.security")


@dataclass(frozen=True, slots=True)
class SecurityEvent:
    """A structured security event."""

    name: str
    timestamp: float = field(default_factory=time)
    path: str | None = None
    method: str | None = None
    user_id: int | None = None
    client_ip: str | None = None
    details: dict[str, Any] = field(default_factory=dict)


type SecurityEventSink = Callable[[SecurityEvent], None]


def log_sink(event: SecurityEvent) -> None:
    """Default sink: one INFO line per event."""
    logger.info(
        "security event=%s user=%s ip=%s path=%s details=%s",
        event.name,
        event.user_id,
        event.client_ip,
        event.path,
        event.details,
    )


_sink_lock = threading.Lock()
_sink: SecurityEventSink | None = log_sink


def set_security_event_sink(sink: SecurityEventSink | None) -> None:
    """Set a process-wide sink for security events.

    Pass ``None`` to disable event delivery.
    """
    global _sink
    with _sink_lock:
        _sink = sink


def emit_security_event(
    name: str,
    *,
    request: Any | None = None,
    user_id: int | None = None,
    details: dict[str, Any] | None = None,
) -> None:
    """Emit a best-effort security event to the configured sink."""
    with _sink_lock:
        sink = _sink
    if sink is None:
        return

    event = SecurityEvent(
        name=name,
        path=getattr(request, "path", None),
        method=getattr(request, "method", None),
        user_id=user_id,
        client_ip=getattr(request, "client_ip", None),
        details=details or {},
    )
    sink(event)
