"""Ordered route table with regex matching.

Matching scans routes in registration order and stops at the first route
whose method and compiled pattern both match. Overlapping patterns are
allowed; the earlier registration wins::

    router.get("/product/new", ProductController, ProductController.create)
    router.get("/product/{id}", ProductController, ProductController.show)

Trailing slashes are significant, and a path that matches with the wrong
method is treated as no match at all.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING, Any

from shopfront.errors import ConfigurationError
from shopfront.routing.route import Route, RouteMatch

if TYPE_CHECKING:
    from shopfront.middleware.protocol import Guard

_PLACEHOLDER = re.compile(r"\{([A-Za-z_][A-Za-z0-9_]*)\}")

ANY_METHODS: tuple[str, ...] = ("GET", "POST", "PUT", "PATCH", "DELETE")


def compile_pattern(pattern: str) -> tuple[re.Pattern[str], tuple[str, ...]]:
    """Compile a ``{name}`` pattern into an anchored regex.

    Literal text is escaped; each placeholder matches a run of
    non-``/`` characters. Returns the regex and the parameter names in
    declaration order.

    Raises:
        ConfigurationError: If a placeholder name repeats or a brace is
            left unbalanced.
    """
    parts: list[str] = []
    names: list[str] = []
    pos = 0
    for m in _PLACEHOLDER.finditer(pattern):
        parts.append(re.escape(pattern[pos : m.start()]))
        name = m.group(1)
        if name in names:
            msg = f"Duplicate path parameter {name!r} in route {pattern!r}"
            raise ConfigurationError(msg)
        names.append(name)
        parts.append(f"(?P<{name}>[^/]+)")
        pos = m.end()
    leftover = _PLACEHOLDER.sub("", pattern)
    if "{" in leftover or "}" in leftover:
        msg = f"Malformed placeholder in route {pattern!r}"
        raise ConfigurationError(msg)
    parts.append(re.escape(pattern[pos:]))
    return re.compile("^" + "".join(parts) + "$"), tuple(names)


def normalize_path(raw: str, base_path: str = "") -> str:
    """Strip the query string and mount prefix; default to ``/``.

    ``/shop/products?page=2`` with base path ``/shop`` becomes
    ``/products``. A path outside the mount prefix is returned as-is.
    """
    path = raw.split("?", 1)[0]
    base = base_path.rstrip("/")
    if base and (path == base or path.startswith(f"{base}/")):
        path = path[len(base) :]
    return path or "/"


class Router:
    """The route table.

    Mutable while routes are registered at bootstrap; read-only once
    requests are served. Middleware names are resolved against the
    ``guards`` registry when a route is added, so a typo fails at
    startup instead of on the first request.
    """

    __slots__ = ("_guards", "_routes")

    def __init__(self, guards: Mapping[str, Guard] | None = None) -> None:
        self._guards: dict[str, Guard] = dict(guards or {})
        self._routes: list[Route] = []

    @property
    def routes(self) -> tuple[Route, ...]:
        """Registered routes in registration order."""
        return tuple(self._routes)

    @property
    def guard_names(self) -> frozenset[str]:
        return frozenset(self._guards)

    def add(
        self,
        method: str,
        pattern: str,
        controller: type,
        action: Callable[..., Any],
        middleware: tuple[str, ...] | list[str] = (),
    ) -> Route:
        """Register a route and return it.

        Raises:
            ConfigurationError: If a middleware name has no registered
                guard, or the pattern is malformed.
        """
        if not pattern.startswith("/"):
            msg = f"Route pattern must start with '/': {pattern!r}"
            raise ConfigurationError(msg)

        names = tuple(middleware)
        guards: list[Guard] = []
        for name in names:
            guard = self._guards.get(name)
            if guard is None:
                known = ", ".join(sorted(self._guards)) or "none"
                msg = f"Unknown middleware {name!r} on {method} {pattern} (registered: {known})"
                raise ConfigurationError(msg)
            guards.append(guard)

        regex, param_names = compile_pattern(pattern)
        route = Route(
            method=method.upper(),
            pattern=pattern,
            controller=controller,
            action=action,
            middleware=names,
            guards=tuple(guards),
            regex=regex,
            param_names=param_names,
        )
        self._routes.append(route)
        return route

    def get(self, pattern: str, controller: type, action: Callable[..., Any],
            middleware: tuple[str, ...] | list[str] = ()) -> Route:
        return self.add("GET", pattern, controller, action, middleware)

    def post(self, pattern: str, controller: type, action: Callable[..., Any],
             middleware: tuple[str, ...] | list[str] = ()) -> Route:
        return self.add("POST", pattern, controller, action, middleware)

    def put(self, pattern: str, controller: type, action: Callable[..., Any],
            middleware: tuple[str, ...] | list[str] = ()) -> Route:
        return self.add("PUT", pattern, controller, action, middleware)

    def delete(self, pattern: str, controller: type, action: Callable[..., Any],
               middleware: tuple[str, ...] | list[str] = ()) -> Route:
        return self.add("DELETE", pattern, controller, action, middleware)

    def any(self, pattern: str, controller: type, action: Callable[..., Any],
            middleware: tuple[str, ...] | list[str] = ()) -> list[Route]:
        """Register the same target for every common method."""
        return [self.add(m, pattern, controller, action, middleware) for m in ANY_METHODS]

    def match(self, method: str, path: str) -> RouteMatch | None:
        """Return the first route matching *method* and *path*, or ``None``.

        *path* must already be normalized (see ``normalize_path``).
        """
        method = method.upper()
        for route in self._routes:
            if route.method != method:
                continue
            m = route.regex.match(path)
            if m is not None:
                return RouteMatch(route=route, path_params=m.groupdict())
        return None
