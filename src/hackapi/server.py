"""
=============================================================================
HTTP SERVER
=============================================================================

HTTPServer hosts a Router on a threaded HTTP/1.1 server. It owns the
plumbing; the router owns every routing decision.

=============================================================================
REQUEST FLOW
=============================================================================

    SocketServer.accept()
          │ Connection
          ▼
    ThreadPool.submit() ───── queue full ───► 503 {"error": "Server overloaded"}
          │             ───── never run ────► close (waited past timeout, or shutdown)
          ▼ worker thread, once per request on the connection
    Connection.read_request()
          │ raw bytes         ─── timeout ───► 408, close
          ▼                   ─── too big ───► 413, close
    RequestParser.parse()     ─── malformed ─► 400/505, close
          │ HTTPRequest
          ▼
    middleware chain ──► Router.handle() ──► handler
          │ HTTPResponse      ─── exception ─► 500 {"error": "Internal Server Error"}
          ▼
    Connection.send_response()
          │                   ─── failed ────► ERROR log, close, no retry
          ▼
    keep-alive? ── yes ──► read the next request
          │
          no ──► close

HEAD requests are routed like any other request; only the body is left
off the wire.

=============================================================================
"""

import logging
from typing import Callable, Optional, Tuple

from .config import ServerConfig
from .core import SocketServer, Connection, ConnectionState, ThreadPool, RequestTooLarge
from .http import (
    HTTPRequest, RequestParser, HTTPParseError,
    HTTPResponse, HTTPStatus, Router, json_error,
)
from .middleware import MiddlewarePipeline, Middleware


logger = logging.getLogger(__name__)


LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class HTTPServer:
    """
    Threaded HTTP/1.1 server around a Router.

    Usage:
        server = HTTPServer(ServerConfig(port=8000), router)
        server.use(LoggingMiddleware())
        server.run()            # blocks until SIGINT/SIGTERM or shutdown()

    ``handle()`` runs a request through the middleware and router without
    any sockets, which is what most tests use.
    """

    def __init__(self, config: Optional[ServerConfig] = None, router: Optional[Router] = None):
        self.config = config or ServerConfig()
        self.config.validate()

        self._socket_server = SocketServer(self.config)
        self._thread_pool = ThreadPool(
            min_workers=self.config.min_workers,
            max_workers=self.config.max_workers,
        )
        self._parser = RequestParser(max_request_size=self.config.max_request_size)

        self._router = router or Router()
        self._middleware = MiddlewarePipeline()
        self._handler: Optional[Callable[[HTTPRequest], HTTPResponse]] = None
        self._running = False

    # =========================================================================
    # CONFIGURATION
    # =========================================================================

    def use(self, middleware: Middleware) -> "HTTPServer":
        """Add middleware. The first added runs outermost."""
        self._middleware.add(middleware)
        self._handler = None
        return self

    @property
    def router(self) -> Router:
        return self._router

    @property
    def address(self) -> Tuple[str, int]:
        return self._socket_server.address

    def handle(self, request: HTTPRequest) -> HTTPResponse:
        """Run one request through middleware and router."""
        if self._handler is None:
            self._handler = self._middleware.wrap(self._router.handle)
        return self._handler(request)

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def run(self, host: Optional[str] = None, port: Optional[int] = None, banner: bool = True):
        """
        Serve until shutdown.

        Args:
            host: Overrides config.host.
            port: Overrides config.port.
            banner: Print the startup banner and route table.
        """
        if host:
            self.config.host = host
        if port:
            self.config.port = port

        self._setup_logging()
        self._handler = self._middleware.wrap(self._router.handle)
        self._running = True
        self._thread_pool.start()

        logger.info(f"Starting {self.config.server_name} on {self.config.host}:{self.config.port}")
        if banner:
            self._print_startup_banner()

        try:
            self._socket_server.start(self._handle_connection)
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            self._shutdown()

    def shutdown(self):
        """Stop accepting connections. run() returns once in-flight work drains."""
        self._running = False
        self._socket_server.shutdown()

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """Block until the server is accepting connections."""
        return self._socket_server.wait_until_ready(timeout)

    def _print_startup_banner(self):
        url = f"http://{self.config.host}:{self.config.port}"
        print()
        print("╔══════════════════════════════════════════════════════════════╗")
        print(f"║  {self.config.server_name:<60}║")
        print(f"║  API docs: {url + '/swagger/':<50}║")
        print(f"║  Workers:  {f'{self.config.min_workers}-{self.config.max_workers} threads':<50}║")
        print("║  Press Ctrl+C to stop                                        ║")
        print("╚══════════════════════════════════════════════════════════════╝")
        self._router.print_routes()

    def _setup_logging(self):
        level = getattr(logging, self.config.log_level.upper(), logging.INFO)
        logging.basicConfig(level=level, format=LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
        logging.getLogger("hackapi").setLevel(level)

    def _shutdown(self):
        logger.info("Shutting down server")
        self._running = False
        self._thread_pool.shutdown(wait=True, timeout=30.0)
        logger.info("Server stopped")

    # =========================================================================
    # CONNECTION HANDLING
    # =========================================================================

    def _handle_connection(self, conn: Connection):
        """Accept-loop callback: queue the connection for a worker."""
        try:
            submitted = self._thread_pool.submit(
                self._process_connection,
                args=(conn,),
                timeout=self.config.timeout,
                on_drop=conn.close,
            )
        except RuntimeError:
            submitted = False

        if not submitted:
            logger.warning(f"[{conn.id}] Thread pool full, rejecting {conn.client_ip}")
            self._send_error(conn, HTTPStatus.SERVICE_UNAVAILABLE, "Server overloaded")
            conn.close()

    def _process_connection(self, conn: Connection):
        """Serve requests on one connection until it closes."""
        with conn:
            while self._running:
                try:
                    raw_request = conn.read_request()
                except TimeoutError:
                    self._send_error(conn, HTTPStatus.REQUEST_TIMEOUT, "Request timeout")
                    break
                except RequestTooLarge as e:
                    self._send_error(conn, HTTPStatus.PAYLOAD_TOO_LARGE, str(e))
                    break

                if raw_request is None:
                    break

                try:
                    request = self._parser.parse(raw_request, conn.address)
                except HTTPParseError as e:
                    logger.debug(f"[{conn.id}] Bad request from {conn.client_ip}: {e}")
                    self._send_error(conn, e.status_code, str(e))
                    break

                conn.state = ConnectionState.PROCESSING
                response = self._respond(request, conn)
                keep_alive = request.is_keep_alive and self.config.keep_alive

                if keep_alive:
                    response.headers.setdefault("Connection", "keep-alive")
                    response.headers.setdefault("Keep-Alive", f"timeout={int(self.config.keep_alive_timeout)}")
                else:
                    response.headers["Connection"] = "close"

                data = response.to_bytes(
                    self.config.server_name,
                    include_body=request.method != "HEAD",
                )
                if not conn.send_response(data):
                    logger.error(f"Failed to write response for {request.method} {request.path}")
                    break

                if not keep_alive:
                    break
                conn.set_keep_alive()

    def _respond(self, request: HTTPRequest, conn: Connection) -> HTTPResponse:
        try:
            return self.handle(request)
        except Exception as e:
            logger.exception(f"[{conn.id}] Handler error for {request.method} {request.path}: {e}")
            return json_error(HTTPStatus.INTERNAL_SERVER_ERROR, "Internal Server Error")

    def _send_error(self, conn: Connection, status: HTTPStatus, message: str):
        response = json_error(status, message)
        response.headers["Connection"] = "close"
        conn.send_response(response.to_bytes(self.config.server_name))
