"""
pytest configuration and fixtures.
"""

import socket
import threading
from typing import Callable, Generator, List
from pathlib import Path
import pytest

# Add src to path for imports
import sys
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from minihttp import HTTPServer, ServerConfig


@pytest.fixture
def sample_get_request() -> bytes:
    """Sample HTTP GET request."""
    return (
        b"GET /user-agent HTTP/1.1\r\n"
        b"Host: localhost:4221\r\n"
        b"user-agent: curl/8.4.0\r\n"
        b"Accept: */*\r\n"
        b"\r\n"
    )


@pytest.fixture
def sample_post_request() -> bytes:
    """Sample HTTP POST request with a body."""
    body = b"hello, file"
    return (
        b"POST /files/notes.txt HTTP/1.1\r\n"
        b"Host: localhost:4221\r\n"
        b"Content-Type: application/octet-stream\r\n"
        + f"Content-Length: {len(body)}\r\n".encode()
        + b"\r\n"
    ) + body


@pytest.fixture
def config(tmp_path: Path) -> ServerConfig:
    """Test server configuration on an OS-assigned port."""
    return ServerConfig(
        host="127.0.0.1",
        port=0,
        min_workers=2,
        max_workers=4,
        timeout=5.0,
        keep_alive_timeout=1.0,
        directory=str(tmp_path),
        log_level="WARNING",
    )


class LiveServer:
    """HTTPServer running in a background thread."""

    def __init__(self, server: HTTPServer):
        self.server = server
        self._thread: threading.Thread = None

    def start(self) -> "LiveServer":
        self._thread = threading.Thread(target=self.server.run, daemon=True)
        self._thread.start()

        if not self.server.wait_until_ready(5.0):
            raise RuntimeError("Server failed to start")
        return self

    def stop(self):
        self.server.shutdown()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=10.0)

    @property
    def port(self) -> int:
        return self.server.address[1]

    def connect(self) -> socket.socket:
        return socket.create_connection(("127.0.0.1", self.port), timeout=5.0)

    def exchange(self, raw: bytes) -> bytes:
        """
        Send raw bytes, half-close, and return everything the server sends
        until it closes the connection.
        """
        with self.connect() as sock:
            sock.sendall(raw)
            sock.shutdown(socket.SHUT_WR)

            chunks = []
            while True:
                chunk = sock.recv(65536)
                if not chunk:
                    break
                chunks.append(chunk)
            return b"".join(chunks)


@pytest.fixture(scope="module")
def served_dir(tmp_path_factory) -> Path:
    """Directory served under /files/ by the shared live server."""
    return tmp_path_factory.mktemp("served")


@pytest.fixture(scope="module")
def live_server(served_dir: Path) -> Generator[LiveServer, None, None]:
    """A server shared by every test in a module."""
    server = HTTPServer(ServerConfig(
        host="127.0.0.1",
        port=0,
        min_workers=2,
        max_workers=8,
        timeout=5.0,
        keep_alive_timeout=1.0,
        directory=str(served_dir),
        log_level="WARNING",
    ))

    live = LiveServer(server).start()
    yield live
    live.stop()


@pytest.fixture
def make_server(tmp_path: Path) -> Generator[Callable[..., LiveServer], None, None]:
    """Factory for one-off servers with custom settings."""
    started: List[LiveServer] = []

    def factory(router=None, **overrides) -> LiveServer:
        settings = dict(
            host="127.0.0.1",
            port=0,
            min_workers=1,
            max_workers=2,
            timeout=5.0,
            keep_alive_timeout=1.0,
            directory=str(tmp_path),
            log_level="WARNING",
        )
        settings.update(overrides)
        live = LiveServer(HTTPServer(ServerConfig(**settings), router=router)).start()
        started.append(live)
        return live

    yield factory

    for live in started:
        live.stop()
