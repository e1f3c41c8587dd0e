"""
=============================================================================
REQUEST ROUTER
=============================================================================

An ordered routing table: the first route whose predicate accepts the
request handles it. Anything left over falls through to a 404.

=============================================================================
ROUTING FLOW
=============================================================================

    Incoming request (method, path)
            │
            ▼
    ┌───────────────────────────────────────────────────────────────────┐
    │ observers(request)          "Request received method=.. path=.." │
    ├───────────────────────────────────────────────────────────────────┤
    │  #  kind    method  path                 handler                  │
    │  1  EXACT   GET     /swagger/doc.json    spec document            │
    │  2  EXACT   *       /swagger             301 → /swagger/          │
    │  3  PREFIX  *       /swagger/            static file server       │
    │  4  EXACT   GET     /hello               Hello, World!            │
    ├───────────────────────────────────────────────────────────────────┤
    │  no match → 404 "Endpoint not found: <path>"                      │
    └───────────────────────────────────────────────────────────────────┘

=============================================================================
MATCH KINDS
=============================================================================

1. EXACT: the path must be equal, byte for byte.

   /swagger matches /swagger only. /swagger/ does NOT match it, and
   nothing is normalised: trailing slashes are significant.

2. PREFIX: the path must start with the route path.

   /swagger/ matches /swagger/, /swagger/index.html, /swagger/css/a.css
   The remainder after the prefix is put in request.path_params["path"]:
       /swagger/css/a.css → {"path": "css/a.css"}
       /swagger/          → {"path": ""}

=============================================================================
ORDER IS THE CONTRACT
=============================================================================

Routes are tried in registration order and the first match wins. Specific
routes must be registered before the general ones that overlap them:
/swagger/doc.json sits above the /swagger/ prefix, so a GET for the
document never reaches the file server. A POST for the same path does
reach it, because route 1 only accepts GET.

A route whose path matches but whose method does not is simply skipped.
There is no 405 Method Not Allowed: a request no route accepts is a 404,
whatever the reason.

=============================================================================
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional, Dict, List, Iterable
import logging

from .request import HTTPRequest
from .response import HTTPResponse, not_found


logger = logging.getLogger(__name__)


Handler = Callable[[HTTPRequest], HTTPResponse]
RequestObserver = Callable[[HTTPRequest], None]


class MatchKind(Enum):
    """How a route compares its path with the request path."""
    EXACT = "exact"     # path == route.path
    PREFIX = "prefix"   # path.startswith(route.path)


@dataclass(frozen=True)
class Route:
    """
    One entry in the routing table.

        Route(
            path="/swagger/",          # exact path or prefix
            handler=static.handle,     # request → response
            method=None,               # None accepts any method
            kind=MatchKind.PREFIX,
            name="swagger_ui",         # for listings and tests
        )
    """

    path: str
    handler: Handler
    method: Optional[str] = None
    kind: MatchKind = MatchKind.EXACT
    name: Optional[str] = None

    def matches(self, method: str, path: str) -> bool:
        """Check whether this route accepts ``method`` on ``path``."""
        if self.method and self.method != method.upper():
            return False
        if self.kind is MatchKind.PREFIX:
            return path.startswith(self.path)
        return path == self.path

    def params_for(self, path: str) -> Dict[str, str]:
        """Path parameters for a matched path (the remainder for prefixes)."""
        if self.kind is MatchKind.PREFIX:
            return {"path": path[len(self.path):]}
        return {}


@dataclass
class RouteMatch:
    """A matched route plus the parameters extracted from the path."""
    route: Route
    params: Dict[str, str] = field(default_factory=dict)


def log_request_received(request: HTTPRequest) -> None:
    """Default observer: one INFO line per dispatch, before routing."""
    logger.info(f"Request received method={request.method} path={request.path}")


def endpoint_not_found(request: HTTPRequest) -> HTTPResponse:
    """Fallback for requests no route accepts."""
    logger.warning(f"Endpoint not found method={request.method} path={request.path}")
    return not_found(f"Endpoint not found: {request.path}")


class Router:
    """
    Ordered, first-match-wins HTTP router.

    ==========================================================================
    USAGE
    ==========================================================================

        router = Router()

        @router.get("/hello")
        def hello(request):
            return ok("Hello, World!")

        @router.prefix("/swagger/")
        def ui(request):
            return static.handle(request)

        response = router.handle(request)

    ==========================================================================
    OBSERVERS
    ==========================================================================

    Observers are called with every request before any route is tried.
    They cannot change the outcome. By default the router logs each
    request; pass ``observers=[]`` to silence it, or your own callables to
    collect requests in tests.

    ==========================================================================
    """

    def __init__(
        self,
        observers: Optional[Iterable[RequestObserver]] = None,
        fallback: Handler = endpoint_not_found,
    ):
        """
        Args:
            observers: Callables notified of each request before routing.
                       Defaults to [log_request_received].
            fallback: Handler for requests no route accepts.
        """
        if observers is None:
            observers = [log_request_received]
        self._observers: List[RequestObserver] = list(observers)
        self._fallback = fallback
        self._routes: List[Route] = []

    # =========================================================================
    # ROUTE REGISTRATION
    # =========================================================================

    def add_route(
        self,
        path: str,
        handler: Handler,
        method: Optional[str] = None,
        kind: MatchKind = MatchKind.EXACT,
        name: Optional[str] = None,
    ) -> Route:
        """
        Append a route to the end of the table.

        Args:
            path: Exact path, or the prefix for ``MatchKind.PREFIX``.
            handler: Callable taking the request, returning the response.
            method: Required method, or None for any.
            kind: EXACT or PREFIX matching.
            name: Optional label.

        Returns:
            The registered Route.
        """
        if not path.startswith("/"):
            raise ValueError(f"Route path must start with '/': {path!r}")

        route = Route(
            path=path,
            handler=handler,
            method=method.upper() if method else None,
            kind=kind,
            name=name,
        )
        self._routes.append(route)
        return route

    def route(
        self,
        path: str,
        method: Optional[str] = None,
        kind: MatchKind = MatchKind.EXACT,
        name: Optional[str] = None,
    ) -> Callable[[Handler], Handler]:
        """Decorator form of add_route()."""
        def decorator(handler: Handler) -> Handler:
            self.add_route(path, handler, method, kind, name)
            return handler
        return decorator

    def get(self, path: str, name: Optional[str] = None) -> Callable[[Handler], Handler]:
        """Register an exact GET route."""
        return self.route(path, "GET", MatchKind.EXACT, name)

    def prefix(
        self,
        path: str,
        method: Optional[str] = None,
        name: Optional[str] = None,
    ) -> Callable[[Handler], Handler]:
        """Register a prefix route (any method unless ``method`` is given)."""
        return self.route(path, method, MatchKind.PREFIX, name)

    def observe(self, observer: RequestObserver) -> RequestObserver:
        """Add a request observer. Usable as a decorator."""
        self._observers.append(observer)
        return observer

    # =========================================================================
    # DISPATCH
    # =========================================================================

    def match(self, method: str, path: str) -> Optional[RouteMatch]:
        """
        Find the first route accepting ``method`` on ``path``.

        The path is used exactly as given.

        Returns:
            RouteMatch, or None when the request falls through.
        """
        for route in self._routes:
            if route.matches(method, path):
                return RouteMatch(route=route, params=route.params_for(path))
        return None

    def handle(self, request: HTTPRequest) -> HTTPResponse:
        """
        Dispatch a request to exactly one handler.

        1. Notify observers
        2. First matching route handles it (path params injected)
        3. Otherwise the fallback answers (404)
        """
        for observer in self._observers:
            observer(request)

        match = self.match(request.method, request.path)
        if match is None:
            return self._fallback(request)

        request.path_params = match.params
        return match.route.handler(request)

    # =========================================================================
    # INTROSPECTION
    # =========================================================================

    def routes(self) -> List[Route]:
        """All routes, in dispatch order."""
        return list(self._routes)

    def print_routes(self) -> None:
        """
        Print the routing table, e.g. for the startup banner.

            Registered Routes:
            ------------------------------------------------------------
              GET      /swagger/doc.json
              ANY      /swagger
              ANY      /swagger/*
              GET      /hello
            ------------------------------------------------------------
        """
        print("\nRegistered Routes:")
        print("-" * 60)
        for route in self._routes:
            method = route.method or "ANY"
            suffix = "*" if route.kind is MatchKind.PREFIX else ""
            print(f"  {method:8} {route.path}{suffix}")
        print("-" * 60)
