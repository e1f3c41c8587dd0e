"""
=============================================================================
STATIC ASSET HANDLER
=============================================================================

Serves the Swagger UI bundle from an in-memory StaticAssetTree.

=============================================================================
HOW A REQUEST IS RESOLVED
=============================================================================

The router strips the "/swagger/" prefix and leaves the remainder in
request.path_params["path"]. This handler only ever sees that remainder:

    ┌──────────────────────────┬────────────┬───────────────────────────┐
    │ Request                  │ Remainder  │ Outcome                   │
    ├──────────────────────────┼────────────┼───────────────────────────┤
    │ /swagger/                │ ""         │ 200 index.html            │
    │ /swagger/index.css       │ index.css  │ 200 text/css              │
    │ /swagger/css             │ css        │ 301 → /swagger/css/       │
    │ /swagger/css/            │ css/       │ 200 css/index.html, or 404│
    │ /swagger/nope.js         │ nope.js    │ 404 File not found        │
    │ /swagger/index.html      │ index.html │ 301 → /swagger/           │
    │ /swagger/index.css/      │ index.css/ │ 301 → /swagger/index.css  │
    │ /swagger/../doc.json     │ ../doc.json│ 400 Invalid URL path      │
    └──────────────────────────┴────────────┴───────────────────────────┘

Directory listing is never offered: a directory without index.html is a
404. The 404s here come from the file server itself, so their body names
the missing file rather than the endpoint.

Each file has one canonical URL. An index file is reached through its
directory, and a file never has a trailing slash; the other spellings
redirect there. A ".." segment is refused outright.

=============================================================================
CACHING
=============================================================================

Each file has an ETag (SHA-1 of its bytes, computed once when the tree is
built). A request whose If-None-Match names the current ETag gets a bodiless
304 Not Modified.

    GET /swagger/index.css
    ◄── 200, ETag: "9c1e...", Cache-Control: public, max-age=3600

    GET /swagger/index.css
    If-None-Match: "9c1e..."
    ◄── 304 Not Modified

=============================================================================
"""

import logging
import posixpath

from ..assets import StaticAssetTree
from ..http.request import HTTPRequest
from ..http.response import (
    HTTPResponse, ResponseBuilder, HTTPStatus, not_found, plain_error, redirect,
)


logger = logging.getLogger(__name__)


class StaticAssetHandler:
    """
    File-server adapter over a StaticAssetTree.

    Usage:
        static = StaticAssetHandler(bundle.ui, cache_max_age=86400)
        router.add_route("/swagger/", static.handle, kind=MatchKind.PREFIX)

    The handler does not look at the request method. Whatever the router
    sends here is served.
    """

    def __init__(
        self,
        tree: StaticAssetTree,
        index_file: str = "index.html",
        cache_max_age: int = 3600,
    ):
        """
        Args:
            tree: The assets to serve.
            index_file: File served for directory requests.
            cache_max_age: Cache-Control max-age, in seconds.
        """
        self.tree = tree
        self.index_file = index_file
        self.cache_max_age = cache_max_age

    def handle(self, request: HTTPRequest) -> HTTPResponse:
        """Serve the asset named by ``request.path_params["path"]``."""
        relative_path = request.path_params.get("path", "")

        if ".." in relative_path.split("/"):
            logger.debug(f"Refusing UI path with ..: {request.path}")
            return plain_error(HTTPStatus.BAD_REQUEST, "Invalid URL path")

        if posixpath.basename(relative_path) == self.index_file:
            directory = request.path[:-len(self.index_file)]
            return redirect(directory, permanent=True, method=request.method)

        if relative_path.endswith("/") and relative_path.rstrip("/") in self.tree:
            return redirect(request.path.rstrip("/"), permanent=True, method=request.method)

        if relative_path == "" or relative_path.endswith("/"):
            return self._serve_directory(relative_path, request)

        if relative_path in self.tree:
            return self._serve_file(relative_path, request)

        if self.tree.is_dir(relative_path):
            # Relative links inside the directory's index need the slash
            return redirect(request.path + "/", permanent=True, method=request.method)

        logger.debug(f"UI asset not found: {relative_path}")
        return not_found(f"File not found: {relative_path}")

    def _serve_directory(self, relative_path: str, request: HTTPRequest) -> HTTPResponse:
        index_path = posixpath.join(relative_path, self.index_file)
        if self.tree.is_dir(relative_path) and index_path in self.tree:
            return self._serve_file(index_path, request)

        logger.debug(f"No index for UI directory: {relative_path or '/'}")
        return not_found(f"File not found: {relative_path or '/'}")

    def _serve_file(self, relative_path: str, request: HTTPRequest) -> HTTPResponse:
        """
        Serve one file with its caching headers, or a 304 if the client's
        copy is current.
        """
        etag = self.tree.etag(relative_path)

        if etag and self._etag_matches(request.get_header("If-None-Match"), etag):
            return (ResponseBuilder()
                .status(HTTPStatus.NOT_MODIFIED)
                .header("ETag", etag)
                .cache(self.cache_max_age)
                .build())

        return (ResponseBuilder()
            .status(HTTPStatus.OK)
            .asset(self.tree.get(relative_path), relative_path)
            .header("ETag", etag)
            .cache(self.cache_max_age)
            .build())

    @staticmethod
    def _etag_matches(if_none_match: str, etag: str) -> bool:
        """Check an If-None-Match header (list of tags, or "*") against ``etag``."""
        if not if_none_match:
            return False
        candidates = [tag.strip() for tag in if_none_match.split(",")]
        # weak comparison, RFC 7232 section 3.2
        return "*" in candidates or etag in [c.removeprefix("W/") for c in candidates]
