"""
=============================================================================
HACKAPI - Hackathon Boilerplate API
=============================================================================

A small HTTP service that serves its own API documentation:

    GET /swagger/doc.json   the OpenAPI (Swagger 2.0) document
    ANY /swagger            301 → /swagger/
    ANY /swagger/...        the Swagger UI
    GET /hello              Hello, World!

Everything else is a 404.

=============================================================================
PACKAGE LAYOUT
=============================================================================

    hackapi/
    ├── assets.py        spec document + UI tree, loaded once
    ├── app.py           route table, create_app()
    ├── handlers/        spec, static UI, hello
    ├── http/            request, response, router, status codes
    ├── middleware/      pipeline + access log
    ├── core/            sockets, connections, thread pool
    ├── server.py        HTTPServer
    ├── config.py        ServerConfig
    ├── static/          shipped swagger.json and UI
    └── __main__.py      CLI

=============================================================================
QUICK START
=============================================================================

    $ python -m hackapi --port 8000
    $ curl http://localhost:8000/hello
    Hello, World!

Or from code:

    from hackapi import create_app, ServerConfig
    create_app(ServerConfig(port=8000)).run()

=============================================================================
"""

__version__ = "1.0.0"
__author__ = "hackapi contributors"

from .app import build_router, create_app
from .assets import AssetBundle, SpecDocument, StaticAssetTree, load_assets
from .config import ServerConfig
from .server import HTTPServer

__all__ = [
    "build_router",
    "create_app",
    "load_assets",
    "AssetBundle",
    "SpecDocument",
    "StaticAssetTree",
    "HTTPServer",
    "ServerConfig",
    "__version__",
]
