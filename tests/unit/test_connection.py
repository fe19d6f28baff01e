"""
Unit tests for request framing on a client connection.

Each test drives a Connection over a socketpair: one end plays the client,
the other is wrapped in the Connection under test.
"""

import socket

import pytest

from minihttp.core.connection import Connection, ConnectionState


@pytest.fixture
def pair():
    server_sock, client_sock = socket.socketpair()
    yield server_sock, client_sock
    client_sock.close()
    server_sock.close()


def make_connection(server_sock: socket.socket, **options) -> Connection:
    options.setdefault("timeout", 2.0)
    return Connection(socket=server_sock, address=("127.0.0.1", 50000), **options)


class TestReadRequest:
    """Tests for Connection.read_request()."""

    def test_single_request(self, pair):
        server_sock, client_sock = pair
        conn = make_connection(server_sock)
        client_sock.sendall(b"GET / HTTP/1.1\r\n\r\n")

        assert conn.read_request() == b"GET / HTTP/1.1\r\n\r\n"
        assert conn.requests_handled == 1

    def test_small_recv_chunks(self, pair):
        """Headers split across many recv() calls are reassembled."""
        server_sock, client_sock = pair
        conn = make_connection(server_sock, buffer_size=4)
        raw = b"GET /echo/abc HTTP/1.1\r\nHost: localhost\r\n\r\n"
        client_sock.sendall(raw)

        assert conn.read_request() == raw

    def test_nothing_sent_yet(self, pair):
        """No input is not an error: the caller waits for more."""
        server_sock, _ = pair
        conn = make_connection(server_sock)

        assert conn.read_request() is None
        assert conn.eof is False
        assert conn.requests_handled == 0

    def test_headers_completed_later(self, pair):
        server_sock, client_sock = pair
        conn = make_connection(server_sock)
        client_sock.sendall(b"GET /echo/abc HTTP/1.1\r\nHo")

        assert conn.read_request() is None

        client_sock.sendall(b"st: x\r\n\r\n")

        assert conn.read_request() == b"GET /echo/abc HTTP/1.1\r\nHost: x\r\n\r\n"

    def test_body_arrives_later(self, pair):
        server_sock, client_sock = pair
        conn = make_connection(server_sock)
        client_sock.sendall(b"POST /files/a HTTP/1.1\r\nContent-Length: 5\r\n\r\nhe")

        assert conn.read_request() is None

        client_sock.sendall(b"llo")

        assert conn.read_request() == (
            b"POST /files/a HTTP/1.1\r\nContent-Length: 5\r\n\r\nhello"
        )

    def test_body_without_content_length(self, pair):
        server_sock, client_sock = pair
        conn = make_connection(server_sock)
        raw = b"POST /files/a HTTP/1.1\r\n\r\n\r\nhello"
        client_sock.sendall(raw)

        assert conn.read_request() == raw

    def test_pipelined_requests(self, pair):
        """Bytes past the first request are kept for the next read."""
        server_sock, client_sock = pair
        conn = make_connection(server_sock)
        client_sock.sendall(
            b"POST /files/a HTTP/1.1\r\nContent-Length: 2\r\n\r\nhi"
            b"GET / HTTP/1.1\r\n\r\n"
        )

        assert conn.read_request().endswith(b"\r\n\r\nhi")
        assert conn.read_request() == b"GET / HTTP/1.1\r\n\r\n"
        assert conn.requests_handled == 2

    def test_partial_request_on_close(self, pair):
        server_sock, client_sock = pair
        conn = make_connection(server_sock)
        client_sock.sendall(b"GARBAGE")
        client_sock.shutdown(socket.SHUT_WR)

        assert conn.read_request() == b"GARBAGE"

    def test_short_body_on_close(self, pair):
        server_sock, client_sock = pair
        conn = make_connection(server_sock)
        client_sock.sendall(b"POST /files/a HTTP/1.1\r\nContent-Length: 10\r\n\r\nabc")
        client_sock.shutdown(socket.SHUT_WR)

        assert conn.read_request().endswith(b"\r\n\r\nabc")

    def test_empty_close(self, pair):
        server_sock, client_sock = pair
        conn = make_connection(server_sock)
        client_sock.shutdown(socket.SHUT_WR)

        assert conn.read_request() is None
        assert conn.eof is True
        assert conn.requests_handled == 0

    def test_oversized_headers(self, pair):
        server_sock, client_sock = pair
        conn = make_connection(server_sock, max_request_size=64)
        client_sock.sendall(b"GET /" + b"a" * 100)

        with pytest.raises(ValueError):
            conn.read_request()

    def test_oversized_content_length(self, pair):
        """A declared body too large is refused before it is read."""
        server_sock, client_sock = pair
        conn = make_connection(server_sock, max_request_size=64)
        client_sock.sendall(b"POST /files/a HTTP/1.1\r\nContent-Length: 1000\r\n\r\n")

        with pytest.raises(ValueError):
            conn.read_request()

    def test_timeout_restored_after_read(self, pair):
        server_sock, client_sock = pair
        conn = make_connection(server_sock, timeout=2.0)
        client_sock.sendall(b"GET / HTTP/1.1\r\n\r\n")
        conn.read_request()
        conn.read_request()

        assert server_sock.gettimeout() == 2.0


class TestDeadline:
    """Tests for how long a waiting connection is kept."""

    def test_first_request_uses_timeout(self, pair):
        server_sock, _ = pair
        conn = make_connection(server_sock, timeout=3.0, keep_alive_timeout=1.0)

        assert conn.deadline == conn.last_activity + 3.0
        assert conn.is_idle is False

    def test_idle_keep_alive_uses_keep_alive_timeout(self, pair):
        server_sock, client_sock = pair
        conn = make_connection(server_sock, timeout=3.0, keep_alive_timeout=1.0)
        client_sock.sendall(b"GET / HTTP/1.1\r\n\r\n")
        conn.read_request()
        conn.send_response(b"HTTP/1.1 200 OK\r\n\r\n")

        assert conn.is_idle is True
        assert conn.deadline == conn.last_activity + 1.0

    def test_partial_next_request_uses_timeout(self, pair):
        server_sock, client_sock = pair
        conn = make_connection(server_sock, timeout=3.0, keep_alive_timeout=1.0)
        client_sock.sendall(b"GET / HTTP/1.1\r\n\r\nGET /ech")
        conn.read_request()     # leaves "GET /ech" buffered
        conn.read_request()

        assert conn.is_idle is False
        assert conn.deadline == conn.last_activity + 3.0

    def test_no_timeout(self, pair):
        server_sock, _ = pair
        conn = make_connection(server_sock, timeout=None)

        assert conn.deadline is None


class TestSendAndClose:
    """Tests for writing and closing."""

    def test_send_response(self, pair):
        server_sock, client_sock = pair
        conn = make_connection(server_sock)

        assert conn.send_response(b"HTTP/1.1 200 OK\r\n\r\n") is True
        assert client_sock.recv(1024) == b"HTTP/1.1 200 OK\r\n\r\n"
        assert conn.state == ConnectionState.WRITING

    def test_send_to_closed_peer(self, pair):
        server_sock, client_sock = pair
        conn = make_connection(server_sock)
        client_sock.close()

        # The first write may still be buffered; a later one fails
        results = [conn.send_response(b"x" * 65536) for _ in range(20)]

        assert results[-1] is False

    def test_close_sends_eof(self, pair):
        server_sock, client_sock = pair
        conn = make_connection(server_sock)
        client_sock.sendall(b"unread")

        conn.close()

        assert client_sock.recv(1024) == b""
        assert conn.state == ConnectionState.CLOSED

    def test_close_without_drain(self, pair):
        server_sock, client_sock = pair
        conn = make_connection(server_sock)

        conn.close(drain=False)

        assert client_sock.recv(1024) == b""
        assert conn.state == ConnectionState.CLOSED

    def test_close_twice(self, pair):
        server_sock, _ = pair
        conn = make_connection(server_sock)

        conn.close()
        conn.close()

        assert conn.state == ConnectionState.CLOSED
