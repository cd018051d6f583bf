"""Referrer-based redirects for relative links.

A page served from ``/ipns/example.com/`` that links to ``/style.css``
makes the browser request ``/style.css``, dropping the gateway prefix.
The referring page still carries it, so the prefix can be rebuilt.
"""

import re

_SLASH_RUNS = re.compile(r"/{2,}")
# Runs of slashes not preceded by a colon, so "https://" survives
_URL_SLASH_RUNS = re.compile(r"([^:]/)/+")


def relative_redirect_target(referrer_path: str, request_path: str) -> str:
    """Join a referring page's path and a bare request path.

    >>> relative_redirect_target("/ipns/example.com/", "/foo")
    '/ipns/example.com/foo'
    """
    return _SLASH_RUNS.sub("/", f"{referrer_path}{request_path}")


def name_redirect_target(referrer: str, address: str, relative_path: str) -> str:
    """Nest a name-addressed request under the referring page's URL.

    Used when a page under ``/ipns/<name>/`` requests another
    ``/ipns/...`` path that lost its prefix.
    """
    return _URL_SLASH_RUNS.sub(r"\1", f"{referrer}/{address}/{relative_path}")
