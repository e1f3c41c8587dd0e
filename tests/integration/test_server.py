"""
Integration tests against a live server on a real socket.
"""

import http.client
import json
import logging
import socket
import threading
import time

import pytest

from hackapi.http.request import HTTPRequest
from hackapi.http.response import ok


def get(port: int, method: str, path: str, headers: dict = None):
    """One request on a fresh connection. Returns (response, body)."""
    conn = http.client.HTTPConnection("127.0.0.1", port, timeout=5)
    try:
        conn.request(method, path, headers=headers or {})
        response = conn.getresponse()
        return response, response.read()
    finally:
        conn.close()


def raw_exchange(port: int, data: bytes) -> bytes:
    """Send raw bytes and read until the server closes."""
    with socket.create_connection(("127.0.0.1", port), timeout=5) as s:
        s.sendall(data)
        chunks = []
        while True:
            chunk = s.recv(4096)
            if not chunk:
                break
            chunks.append(chunk)
    return b"".join(chunks)


class TestEndpoints:
    """The four routes over HTTP."""

    def test_hello(self, live_server):
        response, body = get(live_server.port, "GET", "/hello")

        assert response.status == 200
        assert response.getheader("Content-Type") == "text/plain"
        assert body == b"Hello, World!"
        assert response.getheader("Server") == "hackapi/1.0"
        assert response.getheader("X-Request-ID")

    def test_post_hello_is_404(self, live_server):
        response, body = get(live_server.port, "POST", "/hello")

        assert response.status == 404
        assert body == b"Endpoint not found: /hello"

    def test_swagger_redirect(self, live_server):
        response, body = get(live_server.port, "GET", "/swagger")

        assert response.status == 301
        assert response.getheader("Location") == "/swagger/"

    def test_spec_document(self, live_server, spec_bytes):
        response, body = get(live_server.port, "GET", "/swagger/doc.json")

        assert response.status == 200
        assert response.getheader("Content-Type") == "application/json"
        assert body == spec_bytes
        assert json.loads(body)["swagger"] == "2.0"

    def test_ui_index(self, live_server, ui_tree):
        response, body = get(live_server.port, "GET", "/swagger/")

        assert response.status == 200
        assert response.getheader("Content-Type") == "text/html; charset=utf-8"
        assert body == ui_tree.get("index.html")

    def test_ui_asset_revalidation(self, live_server):
        first, _ = get(live_server.port, "GET", "/swagger/index.css")
        etag = first.getheader("ETag")

        second, body = get(live_server.port, "GET", "/swagger/index.css", {"If-None-Match": etag})

        assert second.status == 304
        assert body == b""

    def test_missing_asset(self, live_server):
        response, body = get(live_server.port, "GET", "/swagger/missing.js")

        assert response.status == 404
        assert body == b"File not found: missing.js"

    def test_unknown_path(self, live_server):
        response, body = get(live_server.port, "GET", "/unknown/path")

        assert response.status == 404
        assert response.getheader("Content-Type") == "text/plain; charset=utf-8"
        assert response.getheader("X-Content-Type-Options") == "nosniff"
        assert body == b"Endpoint not found: /unknown/path"


class TestProtocol:
    """Connection-level behaviour."""

    def test_head_has_no_body(self, live_server):
        response, body = get(live_server.port, "HEAD", "/swagger/index.css")

        assert response.status == 200
        assert int(response.getheader("Content-Length")) > 0
        assert body == b""

    def test_keep_alive_reuses_connection(self, live_server):
        conn = http.client.HTTPConnection("127.0.0.1", live_server.port, timeout=5)
        try:
            for _ in range(3):
                conn.request("GET", "/hello")
                response = conn.getresponse()
                assert response.read() == b"Hello, World!"
                assert response.getheader("Connection") == "keep-alive"
        finally:
            conn.close()

    def test_connection_close(self, live_server):
        data = raw_exchange(
            live_server.port,
            b"GET /hello HTTP/1.1\r\nHost: x\r\nConnection: close\r\n\r\n",
        )

        assert data.startswith(b"HTTP/1.1 200 OK\r\n")
        assert b"Connection: close\r\n" in data
        assert data.endswith(b"\r\n\r\nHello, World!")

    def test_malformed_request_is_400(self, live_server):
        data = raw_exchange(live_server.port, b"NONSENSE\r\n\r\n")

        assert data.startswith(b"HTTP/1.1 400 Bad Request\r\n")
        assert b'{"error": "Invalid request line: NONSENSE"}' in data

    def test_unsupported_version_is_505(self, live_server):
        data = raw_exchange(live_server.port, b"GET /hello HTTP/3.0\r\n\r\n")
        assert data.startswith(b"HTTP/1.1 505 ")

    def test_handler_crash_is_500(self, live_server, caplog):
        def explode(request: HTTPRequest):
            raise RuntimeError("kaboom")

        live_server.server.router.add_route("/explode", explode, method="GET")

        with caplog.at_level(logging.ERROR, logger="hackapi.server"):
            response, body = get(live_server.port, "GET", "/explode")

        assert response.status == 500
        assert json.loads(body) == {"error": "Internal Server Error"}
        assert "Handler error for GET /explode" in caplog.text

    def test_write_failure_is_logged(self, live_server, caplog, monkeypatch):
        from hackapi.core import Connection

        monkeypatch.setattr(Connection, "send_response", lambda self, data: False)

        with caplog.at_level(logging.ERROR, logger="hackapi.server"):
            with socket.create_connection(("127.0.0.1", live_server.port), timeout=5) as s:
                s.sendall(b"GET /hello HTTP/1.1\r\nHost: x\r\n\r\n")
                assert s.recv(1024) == b""

        assert "Failed to write response for GET /hello" in caplog.text


class TestRequestTargets:
    """Whatever the parser accepts reaches the router unchanged."""

    def test_unknown_method_on_swagger_redirects(self, live_server):
        data = raw_exchange(
            live_server.port,
            b"PROPFIND /swagger HTTP/1.1\r\nHost: x\r\nConnection: close\r\n\r\n",
        )

        assert data.startswith(b"HTTP/1.1 301 Moved Permanently\r\n")
        assert b"Location: /swagger/\r\n" in data

    def test_unknown_method_on_hello_is_404(self, live_server):
        data = raw_exchange(
            live_server.port,
            b"PURGE /hello HTTP/1.1\r\nHost: x\r\nConnection: close\r\n\r\n",
        )

        assert data.startswith(b"HTTP/1.1 404 Not Found\r\n")
        assert data.endswith(b"\r\n\r\nEndpoint not found: /hello")

    def test_double_slash_path_is_not_a_host(self, live_server):
        data = raw_exchange(
            live_server.port,
            b"GET //hello HTTP/1.1\r\nHost: x\r\nConnection: close\r\n\r\n",
        )

        assert data.startswith(b"HTTP/1.1 404 Not Found\r\n")
        assert data.endswith(b"\r\n\r\nEndpoint not found: //hello")

    def test_dot_dot_outside_ui_is_router_404(self, live_server):
        data = raw_exchange(
            live_server.port,
            b"GET /foo/../bar HTTP/1.1\r\nHost: x\r\nConnection: close\r\n\r\n",
        )

        assert data.startswith(b"HTTP/1.1 404 Not Found\r\n")
        assert data.endswith(b"\r\n\r\nEndpoint not found: /foo/../bar")

    def test_dot_dot_inside_ui_is_400(self, live_server):
        data = raw_exchange(
            live_server.port,
            b"GET /swagger/../doc.json HTTP/1.1\r\nHost: x\r\nConnection: close\r\n\r\n",
        )

        assert data.startswith(b"HTTP/1.1 400 Bad Request\r\n")
        assert b"Content-Type: text/plain; charset=utf-8\r\n" in data
        assert data.endswith(b"\r\n\r\nInvalid URL path")


class TestQueuedConnections:
    """Connections the pool never gets to."""

    def test_expired_connection_is_closed(self, start_live_server):
        live = start_live_server(min_workers=1, max_workers=1, timeout=0.2)
        busy = threading.Event()

        def slow(request: HTTPRequest):
            busy.set()
            time.sleep(0.6)
            return ok("done", content_type="text/plain")

        live.server.router.add_route("/slow", slow, method="GET")

        with socket.create_connection(("127.0.0.1", live.port), timeout=5) as first:
            first.sendall(b"GET /slow HTTP/1.1\r\nHost: x\r\nConnection: close\r\n\r\n")
            assert busy.wait(timeout=2.0)

            with socket.create_connection(("127.0.0.1", live.port), timeout=5) as queued:
                queued.sendall(b"GET /hello HTTP/1.1\r\nHost: x\r\n\r\n")
                # the only worker is busy past the queue timeout: EOF, no response
                assert queued.recv(1024) == b""

            assert first.recv(1024).startswith(b"HTTP/1.1 200 OK\r\n")
