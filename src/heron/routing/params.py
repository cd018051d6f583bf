"""Path parameter converters for route patterns like ``{path:path}``."""

# Regex fragment for each supported converter
CONVERTERS: dict[str, str] = {
    "str": r"[^/]+",
    "path": r".*",
}
