"""Ordered router: a static table of ``(pattern, handler)`` pairs.

Patterns are tried in the order they were added and the first match wins,
so a catch-all fallback registered last only sees requests nothing else
claimed.
"""

import re
from collections.abc import Callable, Iterable
from typing import Any

from heron.errors import MethodNotAllowed, NotFound
from heron.routing.params import CONVERTERS
from heron.routing.route import Route, RouteMatch

_PARAM = re.compile(r"\{(?P<name>[A-Za-z_][A-Za-z0-9_]*)(?::(?P<type>[a-z]+))?\}")


def compile_pattern(pattern: str) -> re.Pattern[str]:
    """Compile a route pattern into an anchored regex.

    Examples::

        "/api/v0/repo/gc"   -> ^/api/v0/repo/gc$
        "/users/{id}"       -> ^/users/(?P<id>[^/]+)$
        "/ipfs/{path:path}" -> ^/ipfs/(?P<path>.*)$

    Raises ``ValueError`` for an unknown converter.
    """
    parts: list[str] = []
    position = 0
    for param in _PARAM.finditer(pattern):
        parts.append(re.escape(pattern[position : param.start()]))
        converter = param.group("type") or "str"
        if converter not in CONVERTERS:
            msg = f"Unknown converter {converter!r} in route {pattern!r}"
            raise ValueError(msg)
        parts.append(f"(?P<{param.group('name')}>{CONVERTERS[converter]})")
        position = param.end()
    parts.append(re.escape(pattern[position:]))
    return re.compile(f"^{''.join(parts)}$")


class Router:
    """Static route table matched in declaration order.

    Usage::

        router = Router()
        router.add("/ipfs/{path:path}", fetch_content)
        router.add("/{path:path}", redirect_relative)
        router.compile()
        match = router.match("GET", "/ipfs/bafy.../index.html")
    """

    __slots__ = ("_compiled", "_routes")

    def __init__(self) -> None:
        self._routes: list[Route] = []
        self._compiled = False

    def add(
        self,
        path: str,
        handler: Callable[..., Any],
        *,
        methods: Iterable[str] = ("GET",),
        name: str | None = None,
    ) -> Route:
        """Append a route. Must be called before compile()."""
        if self._compiled:
            msg = "Cannot add routes after compilation."
            raise RuntimeError(msg)
        route = Route(
            path=path,
            handler=handler,
            methods=frozenset(m.upper() for m in methods),
            regex=compile_pattern(path),
            name=name,
        )
        self._routes.append(route)
        return route

    @property
    def routes(self) -> tuple[Route, ...]:
        """Registered routes in match order."""
        return tuple(self._routes)

    def compile(self) -> None:
        """Freeze the table. No more routes can be added."""
        self._compiled = True

    def match(self, method: str, path: str) -> RouteMatch:
        """Return the first route whose pattern and method match.

        Raises ``MethodNotAllowed`` if only patterns for other methods
        matched, and ``NotFound`` if no pattern matched at all.
        """
        allowed: set[str] = set()
        for route in self._routes:
            found = route.regex.match(path)
            if found is None:
                continue
            if method in route.methods:
                return RouteMatch(route=route, path_params=found.groupdict())
            allowed.update(route.methods)

        if allowed:
            raise MethodNotAllowed(frozenset(allowed))
        raise NotFound(f"No route matches {method} {path!r}")
