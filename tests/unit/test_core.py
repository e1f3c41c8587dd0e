"""
Unit tests for the connection wrapper and thread pool.
"""

import socket
import threading
import time

import pytest

from hackapi.core import Connection, ConnectionState, RequestTooLarge, ThreadPool


@pytest.fixture
def socket_pair():
    """Connected (server side, client side) sockets."""
    server_side, client_side = socket.socketpair()
    yield server_side, client_side
    for s in (server_side, client_side):
        try:
            s.close()
        except OSError:
            pass


class TestConnection:
    """Tests for Connection."""

    def test_read_request(self, socket_pair):
        server_side, client_side = socket_pair
        conn = Connection(socket=server_side, address=("127.0.0.1", 1), timeout=2.0)

        client_side.sendall(b"GET /hello HTTP/1.1\r\nHost: x\r\n\r\n")

        assert conn.read_request() == b"GET /hello HTTP/1.1\r\nHost: x\r\n\r\n"
        assert conn.requests_handled == 1

    def test_read_request_with_body(self, socket_pair):
        server_side, client_side = socket_pair
        conn = Connection(socket=server_side, address=("127.0.0.1", 1), timeout=2.0)

        client_side.sendall(b"POST /hello HTTP/1.1\r\nContent-Length: 5\r\n\r\nhello")

        assert conn.read_request().endswith(b"\r\n\r\nhello")

    def test_pipelined_requests_are_split(self, socket_pair):
        server_side, client_side = socket_pair
        conn = Connection(socket=server_side, address=("127.0.0.1", 1), timeout=2.0)

        client_side.sendall(b"GET /a HTTP/1.1\r\n\r\nGET /b HTTP/1.1\r\n\r\n")

        assert conn.read_request() == b"GET /a HTTP/1.1\r\n\r\n"
        assert conn.read_request() == b"GET /b HTTP/1.1\r\n\r\n"

    def test_client_close_returns_none(self, socket_pair):
        server_side, client_side = socket_pair
        conn = Connection(socket=server_side, address=("127.0.0.1", 1), timeout=2.0)

        client_side.close()

        assert conn.read_request() is None

    def test_first_request_timeout(self, socket_pair):
        server_side, _ = socket_pair
        conn = Connection(socket=server_side, address=("127.0.0.1", 1), timeout=0.1)

        with pytest.raises(TimeoutError):
            conn.read_request()

    def test_keep_alive_timeout_returns_none(self, socket_pair):
        server_side, client_side = socket_pair
        conn = Connection(
            socket=server_side, address=("127.0.0.1", 1),
            timeout=2.0, keep_alive_timeout=0.1,
        )
        client_side.sendall(b"GET /a HTTP/1.1\r\n\r\n")
        conn.read_request()

        assert conn.read_request() is None

    def test_request_too_large(self, socket_pair):
        server_side, client_side = socket_pair
        conn = Connection(
            socket=server_side, address=("127.0.0.1", 1),
            timeout=2.0, buffer_size=1024, max_request_size=1024,
        )
        client_side.sendall(b"GET / HTTP/1.1\r\nX-Pad: " + b"a" * 2048)

        with pytest.raises(RequestTooLarge):
            conn.read_request()

    def test_send_response(self, socket_pair):
        server_side, client_side = socket_pair
        conn = Connection(socket=server_side, address=("127.0.0.1", 1), timeout=2.0)

        assert conn.send_response(b"HTTP/1.1 200 OK\r\n\r\n") is True
        assert client_side.recv(1024) == b"HTTP/1.1 200 OK\r\n\r\n"

    def test_send_after_close_fails(self, socket_pair):
        server_side, _ = socket_pair
        conn = Connection(socket=server_side, address=("127.0.0.1", 1), timeout=2.0)
        conn.close()

        assert conn.send_response(b"data") is False

    def test_close_is_idempotent(self, socket_pair):
        server_side, _ = socket_pair
        conn = Connection(socket=server_side, address=("127.0.0.1", 1), timeout=2.0)

        with conn:
            pass
        conn.close()

        assert conn.state == ConnectionState.CLOSED


class TestThreadPool:
    """Tests for ThreadPool."""

    def test_runs_tasks(self):
        pool = ThreadPool(min_workers=2, max_workers=4)
        pool.start()
        done = threading.Event()

        try:
            assert pool.submit(done.set) is True
            assert done.wait(timeout=2.0)
        finally:
            pool.shutdown()

    def test_submit_before_start(self):
        with pytest.raises(RuntimeError):
            ThreadPool().submit(print)

    def test_full_queue_rejects(self):
        pool = ThreadPool(min_workers=1, max_workers=1, max_queue_size=1)
        pool.start()
        release = threading.Event()
        started = threading.Event()

        def block():
            started.set()
            release.wait(timeout=5.0)

        try:
            assert pool.submit(block)
            assert started.wait(timeout=2.0)
            assert pool.submit(block)          # fills the queue
            assert pool.submit(block) is False
        finally:
            release.set()
            pool.shutdown()

    def test_failing_task_does_not_kill_worker(self):
        pool = ThreadPool(min_workers=1, max_workers=1)
        pool.start()
        done = threading.Event()

        def boom():
            raise RuntimeError("boom")

        try:
            pool.submit(boom)
            pool.submit(done.set)
            assert done.wait(timeout=2.0)
        finally:
            pool.shutdown()

    def test_invalid_bounds(self):
        with pytest.raises(ValueError):
            ThreadPool(min_workers=4, max_workers=2)

    def test_shutdown_stops_workers(self):
        pool = ThreadPool(min_workers=2, max_workers=2)
        pool.start()
        pool.shutdown()

        assert pool.stats["workers"] == 0
        with pytest.raises(RuntimeError):
            pool.submit(print)

    def test_expired_task_is_dropped(self):
        pool = ThreadPool(min_workers=1, max_workers=1)
        pool.start()
        release = threading.Event()
        started = threading.Event()
        dropped = threading.Event()
        ran = []

        def block():
            started.set()
            release.wait(timeout=5.0)

        try:
            pool.submit(block)
            assert started.wait(timeout=2.0)
            pool.submit(ran.append, args=("late",), timeout=0.05, on_drop=dropped.set)
            time.sleep(0.2)
            release.set()

            assert dropped.wait(timeout=2.0)
            assert ran == []
        finally:
            release.set()
            pool.shutdown()

    def test_on_drop_errors_are_contained(self):
        pool = ThreadPool(min_workers=1, max_workers=1)
        pool.start()
        release = threading.Event()
        started = threading.Event()
        done = threading.Event()

        def block():
            started.set()
            release.wait(timeout=5.0)

        def bad_drop():
            raise OSError("already closed")

        try:
            pool.submit(block)
            assert started.wait(timeout=2.0)
            pool.submit(print, timeout=0.01, on_drop=bad_drop)
            pool.submit(done.set)
            time.sleep(0.1)
            release.set()

            assert done.wait(timeout=2.0)
        finally:
            release.set()
            pool.shutdown()

    def test_shutdown_drops_abandoned_tasks(self):
        pool = ThreadPool(min_workers=1, max_workers=1)
        pool.start()
        release = threading.Event()
        started = threading.Event()
        dropped = threading.Event()

        def block():
            started.set()
            release.wait(timeout=5.0)

        pool.submit(block)
        assert started.wait(timeout=2.0)
        pool.submit(print, on_drop=dropped.set)

        threading.Timer(0.5, release.set).start()
        pool.shutdown(wait=True, timeout=0.1)

        assert dropped.is_set()


class TestDroppedConnections:
    """A connection whose task is dropped is closed, not leaked."""

    def test_queued_connection_gets_eof(self, socket_pair):
        server_side, client_side = socket_pair
        conn = Connection(socket=server_side, address=("127.0.0.1", 1), timeout=2.0)
        pool = ThreadPool(min_workers=1, max_workers=1)
        pool.start()
        release = threading.Event()
        started = threading.Event()

        def block():
            started.set()
            release.wait(timeout=5.0)

        try:
            pool.submit(block)
            assert started.wait(timeout=2.0)
            pool.submit(print, args=(conn,), timeout=0.05, on_drop=conn.close)
            time.sleep(0.2)
            release.set()

            client_side.settimeout(2.0)
            assert client_side.recv(1024) == b""
        finally:
            release.set()
            pool.shutdown()

        assert conn.state == ConnectionState.CLOSED
