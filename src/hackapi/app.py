"""
=============================================================================
APPLICATION WIRING
=============================================================================

Builds the service's routing table from an AssetBundle and hosts it.

    ┌──────────────────────────────────────────────────────────────────────┐
    │  #  method  path                 match    handler                    │
    │  1  GET     /swagger/doc.json    exact    SpecHandler                │
    │  2  *       /swagger             exact    301 → /swagger/            │
    │  3  *       /swagger/            prefix   StaticAssetHandler         │
    │  4  GET     /hello               exact    hello_world                │
    │     anything else                         404 Endpoint not found     │
    └──────────────────────────────────────────────────────────────────────┘

The order above is the behaviour. Route 1 has to sit above route 3 or the
file server would answer for the document.

    bundle = load_assets()
    router = build_router(bundle)
    response = router.handle(request)

=============================================================================
"""

import logging
from typing import Iterable, Optional

from .assets import AssetBundle, load_assets
from .config import ServerConfig
from .handlers import SpecHandler, StaticAssetHandler, hello_world
from .http import HTTPRequest, HTTPResponse, MatchKind, Router, redirect
from .http.router import RequestObserver
from .middleware import LoggingMiddleware
from .server import HTTPServer


logger = logging.getLogger(__name__)


SPEC_PATH = "/swagger/doc.json"
SWAGGER_ROOT = "/swagger"
SWAGGER_PREFIX = "/swagger/"
HELLO_PATH = "/hello"


def redirect_to_ui(request: HTTPRequest) -> HTTPResponse:
    """/swagger → /swagger/, whatever the method."""
    return redirect(SWAGGER_PREFIX, permanent=True, method=request.method)


def build_router(
    assets: AssetBundle,
    cache_max_age: int = 3600,
    observers: Optional[Iterable[RequestObserver]] = None,
) -> Router:
    """
    Build the routing table over ``assets``.

    Args:
        assets: The spec document and UI tree to serve.
        cache_max_age: Cache-Control max-age for UI assets.
        observers: Request observers; None keeps the router's default
                   request logging.
    """
    router = Router(observers=observers)

    spec = SpecHandler(assets.spec)
    static = StaticAssetHandler(assets.ui, cache_max_age=cache_max_age)

    router.add_route(SPEC_PATH, spec.handle, method="GET", name="swagger_doc")
    router.add_route(SWAGGER_ROOT, redirect_to_ui, name="swagger_redirect")
    router.add_route(SWAGGER_PREFIX, static.handle, kind=MatchKind.PREFIX, name="swagger_ui")
    router.add_route(HELLO_PATH, hello_world, method="GET", name="hello")

    return router


def create_app(config: Optional[ServerConfig] = None, assets: Optional[AssetBundle] = None) -> HTTPServer:
    """
    Assemble the server: config, assets, routes and access logging.

    Raises:
        ValueError: Invalid config, or the Swagger UI directory is missing.
    """
    config = config or ServerConfig()
    config.validate()

    if assets is None:
        assets = load_assets(config.spec_path, config.swagger_ui_dir)

    router = build_router(assets, cache_max_age=config.cache_max_age)
    server = HTTPServer(config, router)
    server.use(LoggingMiddleware(log_format=config.log_format))
    logger.debug(f"Application created with {len(router.routes())} routes")
    return server
