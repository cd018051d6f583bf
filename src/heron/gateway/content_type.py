"""Content-Type resolution from a path and the first chunk of a resource.

Order of precedence:

1. The file extension of the path, looked up in a private ``MimeTypes``
   table so web types don't depend on the host's ``/etc/mime.types``.
   Extensions that name a transfer encoding (``.gz``, ``.br``, ...) are
   skipped, since the stored bytes are the encoded form.
2. libmagic detection (``python-magic``) on a bounded prefix of the chunk.
3. ``DEFAULT_MIME_TYPE``.

Only the chunk passed in is ever inspected, so callers can decide the
header before the rest of the resource has been fetched.
"""

import mimetypes

import magic

DEFAULT_MIME_TYPE = "application/octet-stream"

# Bytes of the first chunk handed to libmagic
SNIFF_LIMIT = 2048

# Types the platform tables often get wrong or lack entirely
_WEB_TYPES: dict[str, str] = {
    ".js": "text/javascript",
    ".mjs": "text/javascript",
    ".wasm": "application/wasm",
    ".webp": "image/webp",
    ".avif": "image/avif",
    ".woff": "font/woff",
    ".woff2": "font/woff2",
    ".webmanifest": "application/manifest+json",
    ".md": "text/markdown",
    ".car": "application/vnd.ipld.car",
}

_MIME_TABLE = mimetypes.MimeTypes()
for _ext, _type in _WEB_TYPES.items():
    _MIME_TABLE.add_type(_type, _ext)

# libmagic answers that carry no information about the content
_UNDETECTED = frozenset({"application/octet-stream", "application/x-empty", "inode/x-empty"})


def resolve_content_type(first_chunk: bytes, path: str) -> str:
    """Return the MIME type for a resource at *path* starting with *first_chunk*."""
    return (
        mime_from_path(path)
        or sniff_content_type(first_chunk)
        or DEFAULT_MIME_TYPE
    )


def mime_from_path(path: str) -> str | None:
    """Infer a type from the final segment's extension, or None.

    ``bundle.tar.gz`` gives None: the bytes are gzip, not tar.
    """
    name = path.rsplit("/", 1)[-1]
    if "." not in name:
        return None
    mime, encoding = _MIME_TABLE.guess_type(name, strict=False)
    if encoding is not None:
        return None
    return mime


def sniff_content_type(chunk: bytes) -> str | None:
    """Detect a type from the chunk's leading bytes, or None."""
    if not chunk:
        return None
    mime = magic.from_buffer(chunk[:SNIFF_LIMIT], mime=True)
    if not mime or mime in _UNDETECTED:
        return None
    return mime
