"""Gateway request resolution: paths, content types, names, streaming, redirects."""

from heron.gateway.content_type import DEFAULT_MIME_TYPE, resolve_content_type
from heron.gateway.names import DelegatedRoutingResolver, NameResolutionCache
from heron.gateway.paths import Namespace, RoutePath, parse_path
from heron.gateway.streamer import ContentStreamer

__all__ = [
    "DEFAULT_MIME_TYPE",
    "ContentStreamer",
    "DelegatedRoutingResolver",
    "NameResolutionCache",
    "Namespace",
    "RoutePath",
    "parse_path",
    "resolve_content_type",
]
