"""Terminal error formatting for failed gateway requests.

Clients only ever see a bare 500; the full story goes to the
``heron.server`` logger. Verbosity is controlled by the
``HERON_TRACEBACK`` environment variable:

- ``compact`` (default): error summary plus heron's own frames
- ``full``: the complete Python traceback
- ``minimal``: one line with the raising location
"""

from __future__ import annotations

import logging
import os
import traceback as _traceback
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from heron.http.request import Request

logger = logging.getLogger("heron.server")

# Frames from these packages are noise in a compact trace
_LIBRARY_MARKERS = ("site-packages", "/httpx/", "/httpcore/", "/anyio/", "/asyncio/")


def _is_app_frame(filename: str) -> bool:
    """True if the frame is from heron or the application, not a library."""
    if filename.startswith("<"):
        return False
    return not any(marker in filename for marker in _LIBRARY_MARKERS)


def format_compact_traceback(exc: BaseException) -> str:
    """Error summary followed by at most five application frames.

    Falls back to the last three frames when none are application frames.
    """
    frames = _traceback.extract_tb(exc.__traceback__) if exc.__traceback__ else []
    display_frames = [f for f in frames if _is_app_frame(f.filename)] or frames[-3:]

    parts = [f"{type(exc).__name__}: {exc}"]
    if exc.__cause__ is not None:
        parts.append(f"  Caused by {type(exc.__cause__).__name__}: {exc.__cause__}")
    if display_frames:
        parts.append("  Trace:")
        for frame in display_frames[-5:]:
            parts.append(f"    {frame.filename}:{frame.lineno} in {frame.name}")
            if frame.line:
                parts.append(f"      {frame.line.strip()}")
    return "\n".join(parts)


def format_minimal_error(exc: BaseException) -> str:
    """One-line error summary."""
    frames = _traceback.extract_tb(exc.__traceback__) if exc.__traceback__ else []
    last = frames[-1] if frames else None
    location = f" at {last.filename}:{last.lineno}" if last else ""
    return f"{type(exc).__name__}{location}: {exc}"


def log_error(
    exc: BaseException,
    request: Request | None = None,
    *,
    status: int | None = 500,
) -> None:
    """Log a request failure at the verbosity set by ``HERON_TRACEBACK``.

    Pass ``status=None`` when the response was already committed and the
    failure could not change it.
    """
    label = str(status) if status is not None else "Aborted"
    prefix = f"{label} {request.method} {request.url}" if request is not None else label

    style = os.environ.get("HERON_TRACEBACK", "compact").lower()
    if style == "full":
        logger.error(prefix, exc_info=exc)
    elif style == "minimal":
        logger.error("%s — %s", prefix, format_minimal_error(exc))
    else:
        logger.error("%s\n%s", prefix, format_compact_traceback(exc))
