"""Routing: an ordered route table with first-match-wins dispatch.

Routes are registered at bootstrap; each ``{name}`` placeholder becomes a
capture group that matches one path segment. Patterns are compiled at
registration so matching never compiles on the request path.
"""

from shopfront.routing.route import Route, RouteMatch
from shopfront.routing.router import Router, compile_pattern, normalize_path

__all__ = [
    "Route",
    "RouteMatch",
    "Router",
    "compile_pattern",
    "normalize_path",
]
