"""
=============================================================================
MIME TYPE DETECTION
=============================================================================

Maps file extensions to Content-Type values for the Swagger UI asset tree.

=============================================================================
WHY IT MATTERS FOR THE UI BUNDLE
=============================================================================

The UI is a handful of HTML, CSS and JavaScript files plus source maps and
icons. Browsers are strict about some of these:

    ┌──────────────────────┬──────────────────────────────────────────────┐
    │ Served as            │ What the browser does                        │
    ├──────────────────────┼──────────────────────────────────────────────┤
    │ .js  as text/plain   │ Refuses to execute it (with nosniff)        │
    │ .css as text/plain   │ Ignores the stylesheet                      │
    │ .html as octet-stream│ Offers a download instead of rendering      │
    └──────────────────────┴──────────────────────────────────────────────┘

Detection is by extension only. The bytes are never sniffed, because the
asset tree is opaque to this service.

=============================================================================
"""

from pathlib import PurePosixPath
from typing import Optional


MIME_TYPES = {
    # Documents and code
    ".html": "text/html",
    ".htm": "text/html",
    ".css": "text/css",
    ".js": "text/javascript",
    ".mjs": "text/javascript",
    ".map": "application/json",   # source maps shipped next to minified JS
    ".json": "application/json",
    ".yaml": "text/yaml",
    ".yml": "text/yaml",
    ".txt": "text/plain",
    ".md": "text/markdown",
    ".xml": "application/xml",

    # Images
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".gif": "image/gif",
    ".svg": "image/svg+xml",
    ".ico": "image/x-icon",
    ".webp": "image/webp",

    # Fonts
    ".woff": "font/woff",
    ".woff2": "font/woff2",
    ".ttf": "font/ttf",
    ".otf": "font/otf",
}

DEFAULT_MIME_TYPE = "application/octet-stream"

# application/* types that are really text and want a charset parameter
_TEXTUAL_APPLICATION_TYPES = {
    "application/json",
    "application/xml",
    "application/javascript",
    "image/svg+xml",
}


def get_mime_type(path: str, default: Optional[str] = None) -> str:
    """
    Get the bare MIME type for a relative asset path.

    Examples:
        >>> get_mime_type("swagger-ui.css")
        'text/css'
        >>> get_mime_type("favicon-32x32.png")
        'image/png'
        >>> get_mime_type("LICENSE")
        'application/octet-stream'
    """
    extension = PurePosixPath(path).suffix.lower()
    return MIME_TYPES.get(extension, default or DEFAULT_MIME_TYPE)


def is_text_type(mime_type: str) -> bool:
    """Check whether a MIME type is text and should carry a charset."""
    return mime_type.startswith("text/") or mime_type in _TEXTUAL_APPLICATION_TYPES


def get_content_type(path: str, charset: str = "utf-8") -> str:
    """
    Get the full Content-Type header value for an asset path.

    Text types get a charset parameter, binary types do not:

        >>> get_content_type("index.html")
        'text/html; charset=utf-8'
        >>> get_content_type("favicon-16x16.png")
        'image/png'
    """
    mime_type = get_mime_type(path)
    if is_text_type(mime_type):
        return f"{mime_type}; charset={charset}"
    return mime_type
