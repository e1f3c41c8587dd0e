"""
pytest configuration and fixtures.
"""

import json
import socket
import threading
from typing import Generator

import pytest

# Add src to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from hackapi import HTTPServer, ServerConfig, build_router, create_app
from hackapi.assets import AssetBundle, SpecDocument, StaticAssetTree
from hackapi.http import Router


SPEC_BYTES = json.dumps(
    {"swagger": "2.0", "info": {"title": "Test API", "version": "1.0"}, "paths": {}},
    indent=2,
).encode("utf-8")

UI_FILES = {
    "index.html": b"<!DOCTYPE html><html><body><div id=\"swagger-ui\"></div></body></html>",
    "swagger-initializer.js": b'window.ui = SwaggerUIBundle({url: "/swagger/doc.json"});',
    "index.css": b"body { margin: 0; }",
    "css/app.css": b".app { color: red; }",
    "assets/logo.png": b"\x89PNG\r\n\x1a\n",
}


@pytest.fixture
def sample_get_request() -> bytes:
    """Sample HTTP GET request."""
    return (
        b"GET /hello?name=pytest&lang=en HTTP/1.1\r\n"
        b"Host: localhost:8000\r\n"
        b"User-Agent: pytest\r\n"
        b"Accept: text/plain\r\n"
        b"Connection: keep-alive\r\n"
        b"\r\n"
    )


@pytest.fixture
def sample_post_request() -> bytes:
    """Sample HTTP POST request with a JSON body."""
    body = b'{"greeting": "hi"}'
    return (
        b"POST /hello HTTP/1.1\r\n"
        b"Host: localhost:8000\r\n"
        b"Content-Type: application/json\r\n"
        + f"Content-Length: {len(body)}\r\n".encode()
        + b"Connection: close\r\n"
        b"\r\n"
    ) + body


@pytest.fixture
def spec_bytes() -> bytes:
    return SPEC_BYTES


@pytest.fixture
def ui_tree() -> StaticAssetTree:
    return StaticAssetTree.from_mapping(UI_FILES)


@pytest.fixture
def assets(ui_tree: StaticAssetTree) -> AssetBundle:
    """In-memory spec document and UI tree."""
    return AssetBundle(spec=SpecDocument.from_bytes(SPEC_BYTES), ui=ui_tree)


@pytest.fixture
def broken_assets(ui_tree: StaticAssetTree) -> AssetBundle:
    """A bundle whose spec document failed to load."""
    return AssetBundle(
        spec=SpecDocument(source="docs/swagger.json", error="No such file or directory"),
        ui=ui_tree,
    )


@pytest.fixture
def seen_requests() -> list:
    """Collects every request a router built with the ``router`` fixture observes."""
    return []


@pytest.fixture
def router(assets: AssetBundle, seen_requests: list) -> Router:
    """The service's routing table, with a recording observer."""
    return build_router(assets, cache_max_age=600, observers=[seen_requests.append])


@pytest.fixture
def config() -> ServerConfig:
    """Default test server configuration."""
    return ServerConfig(
        host="127.0.0.1",
        port=8000,
        min_workers=2,
        max_workers=4,
        timeout=5.0,
        log_level="WARNING",
    )


@pytest.fixture
def free_port() -> int:
    """Get a free port for testing."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


class LiveServer:
    """Runs an HTTPServer in a background thread."""

    def __init__(self, server: HTTPServer, port: int):
        self.server = server
        self.port = port
        self._thread: threading.Thread = None

    def start(self):
        self._thread = threading.Thread(
            target=self.server.run,
            kwargs={"port": self.port, "banner": False},
            daemon=True,
        )
        self._thread.start()

        if not self.server.wait_until_ready(timeout=5.0):
            raise RuntimeError("Server failed to start")

    def stop(self):
        self.server.shutdown()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=5.0)


@pytest.fixture
def start_live_server(free_port: int, assets: AssetBundle) -> Generator:
    """
    Factory for the full application on a real socket.

    Keyword arguments override the test ServerConfig. Every server started
    is stopped at teardown.
    """
    started = []

    def start(**overrides) -> LiveServer:
        settings = dict(
            host="127.0.0.1",
            port=free_port,
            min_workers=2,
            max_workers=4,
            timeout=5.0,
            keep_alive_timeout=1.0,
            log_level="WARNING",
        )
        settings.update(overrides)
        live = LiveServer(create_app(ServerConfig(**settings), assets=assets), settings["port"])
        live.start()
        started.append(live)
        return live

    yield start

    for live in started:
        live.stop()


@pytest.fixture
def live_server(start_live_server) -> LiveServer:
    """The full application on a real socket."""
    return start_live_server()
