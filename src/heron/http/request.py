"""Immutable HTTP request.

Gateway requests are GETs without a body, so the request is pure frozen
metadata built once from the ASGI scope.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any
from urllib.parse import urlsplit

from heron.http.headers import Headers


@dataclass(frozen=True, slots=True)
class Request:
    """An immutable HTTP request.

    ``path`` is the decoded URL path as the server delivered it (trailing
    slashes preserved). ``url`` adds the query string back on.
    """

    method: str
    path: str
    headers: Headers
    query_string: bytes = b""
    path_params: dict[str, str] = field(default_factory=dict)
    http_version: str = "1.1"
    client: tuple[str, int] | None = None

    @property
    def url(self) -> str:
        """Path plus query string, as the client sent it."""
        if self.query_string:
            return f"{self.path}?{self.query_string.decode('latin-1')}"
        return self.path

    @property
    def referrer(self) -> str | None:
        """The ``Referer`` header, or None when absent or blank."""
        value = self.headers.get("referer")
        return value or None

    @property
    def referrer_path(self) -> str | None:
        """Path component of the referring page's URL."""
        if self.referrer is None:
            return None
        return urlsplit(self.referrer).path or None

    def with_path_params(self, params: dict[str, str]) -> Request:
        return replace(self, path_params=params)

    @classmethod
    def from_asgi(cls, scope: dict[str, Any]) -> Request:
        """Create a Request from an ASGI HTTP scope."""
        client = scope.get("client")
        return cls(
            method=scope["method"],
            path=scope["path"],
            headers=Headers(scope.get("headers", ())),
            query_string=scope.get("query_string", b""),
            http_version=scope.get("http_version", "1.1"),
            client=tuple(client) if client else None,
        )
