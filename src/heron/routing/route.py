"""Route and RouteMatch frozen dataclasses."""

import re
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True, slots=True)
class Route:
    """A compiled route: pattern, its anchored regex, and the handler."""

    path: str
    handler: Callable[..., Any]
    methods: frozenset[str]
    regex: re.Pattern[str]
    name: str | None = None


@dataclass(frozen=True, slots=True)
class RouteMatch:
    """Result of a successful route match."""

    route: Route
    path_params: dict[str, str]
