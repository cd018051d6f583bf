"""Heron exception hierarchy.

Shared across the router, gateway, node, and ASGI handler so every module
raises and catches the same types.
"""

from dataclasses import dataclass


class HeronError(Exception):
    """Base for all heron-specific errors."""


class ConfigurationError(HeronError):
    """Raised when gateway configuration is invalid.

    Typically raised by ``GatewayConfig.validate()`` before the server binds.
    """


class GatewayError(HeronError):
    """Base for failures inside the request-resolution pipeline.

    None of these carry an HTTP status: the handler maps all of them to a
    bare 500 and logs the detail locally.
    """


class MalformedPathError(GatewayError, ValueError):
    """A path is not a well-formed ``/ipfs/<cid>`` or ``/ipns/<name>`` path."""

    def __init__(self, path: str, reason: str = "") -> None:
        self.path = path
        self.reason = reason
        message = f"Malformed path {path!r}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class ResolutionFailedError(GatewayError):
    """The external name-resolution service was unreachable or did not resolve."""

    def __init__(self, name: str, detail: str = "") -> None:
        self.name = name
        self.detail = detail
        message = f"Could not resolve {name!r}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class RetrievalError(GatewayError):
    """The retrieval engine failed to produce content for a path."""

    def __init__(self, path: str, detail: str = "") -> None:
        self.path = path
        self.detail = detail
        message = f"Could not retrieve {path!r}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


@dataclass(frozen=True, slots=True)
class HTTPError(HeronError):
    """An error that maps directly to an HTTP status code.

    Raised by the router or handlers. The ASGI handler catches these and
    answers with the status and a short plain-text detail.
    """

    status: int
    detail: str = ""
    headers: tuple[tuple[str, str], ...] = ()

    def __str__(self) -> str:
        if self.detail:
            return f"{self.status}: {self.detail}"
        return str(self.status)


class NotFound(HTTPError):  # noqa: N818 — conventional name in web frameworks
    """404 — no route matched the request path."""

    def __init__(self, detail: str = "Not Found") -> None:
        super().__init__(status=404, detail=detail)


class RedirectTargetUnavailableError(NotFound):
    """A relative fallback request arrived without a usable referrer.

    Subclasses ``NotFound`` so the request ends in the default 404 rather
    than a server error.
    """

    def __init__(self, path: str) -> None:
        super().__init__(detail=f"Not Found: {path}")


class MethodNotAllowed(HTTPError):  # noqa: N818 — conventional name in web frameworks
    """405 — route exists but not for this HTTP method.

    Includes an ``Allow`` header listing the valid methods.
    """

    def __init__(self, allowed: frozenset[str], detail: str = "") -> None:
        allow_value = ", ".join(sorted(allowed))
        default_detail = f"Method not allowed. Allowed methods: {allow_value}"
        super().__init__(
            status=405,
            detail=detail or default_detail,
            headers=(("Allow", allow_value),),
        )
