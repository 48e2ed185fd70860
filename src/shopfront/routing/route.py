"""Route and RouteMatch frozen dataclasses."""

from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from shopfront.middleware.protocol import Guard


@dataclass(frozen=True, slots=True)
class Route:
    """A registered route. Immutable for the process lifetime.

    ``action`` is the controller's function object (e.g.
    ``ProductController.show``), invoked on a fresh controller instance
    with the path parameters as positional arguments.
    """

    method: str
    pattern: str
    controller: type
    action: Callable[..., Any]
    middleware: tuple[str, ...]
    guards: tuple[Guard, ...]
    regex: re.Pattern[str]
    param_names: tuple[str, ...]

    @property
    def handler_name(self) -> str:
        """``Controller.action`` label for listings and logs."""
        return f"{self.controller.__name__}.{self.action.__name__}"


@dataclass(frozen=True, slots=True)
class RouteMatch:
    """Result of a successful route match."""

    route: Route
    path_params: dict[str, str]

    @property
    def args(self) -> tuple[str, ...]:
        """Parameter values in the order they appear in the pattern."""
        return tuple(self.path_params[name] for name in self.route.param_names)
