"""
=============================================================================
CONNECTION MANAGEMENT
=============================================================================

Wraps one accepted client socket: buffered request reads, whole-response
writes, and an orderly close.

=============================================================================
FRAMING A REQUEST
=============================================================================

TCP is a byte stream. A request may arrive split over several recv() calls,
so bytes are buffered until a complete request is available. Reads never
wait: read_request() takes whatever the socket has ready and either frames
a request or reports that more input is needed.

    ┌─────────────────────────────────────────────────────────────────────┐
    │  1. Buffer every byte the socket has ready (non-blocking recv())    │
    │                                                                     │
    │  2. No "\r\n\r\n" (end of headers) yet?                             │
    │       └── peer closed: hand over what arrived (may be junk; the     │
    │           parser answers 400)                                       │
    │       └── otherwise: None, watch the socket for more input          │
    │                                                                     │
    │  3. Valid Content-Length?                                           │
    │       yes → complete once that many body bytes are buffered;        │
    │             bytes beyond them stay buffered for the next request    │
    │       no  → the request is everything buffered so far              │
    │                                                                     │
    │  4. Buffer larger than max_request_size at any point → ValueError  │
    └─────────────────────────────────────────────────────────────────────┘

Step 3 without Content-Length means a body sent without a length must
arrive together with the headers. That is what simple clients do:

    POST /files/new.txt HTTP/1.1\r\n\r\n\r\nhello     (one send)

=============================================================================
TIMEOUTS
=============================================================================

A connection waiting for input is watched by the socket server, which gives
up on it at ``deadline``:

    First request on a connection:   timeout             (default 30s)
                                     counted from the last byte received
    Later requests (keep-alive):     keep_alive_timeout  (default 5s)
                                     counted from the last response

``timeout`` also bounds how long a single sendall() may stall.

=============================================================================
CONNECTION STATE MACHINE
=============================================================================

    NEW ──────► READING ──────► PROCESSING ──────► WRITING ────────┐
     │             │                                    │           │
     │             │                                    │           ▼
     │             │                                    │      KEEP_ALIVE
     │             ▼                                    │           │
     └──────────► CLOSING ◄─────────────────────────────┴───────────┘
                    │
                    ▼
                  CLOSED

=============================================================================
"""

import socket
import time
import logging
from enum import Enum
from dataclasses import dataclass, field
from typing import Optional
import uuid

from ..http.headers import parse_headers
from ..http.request import HEADER_ENCODING, parse_content_length


logger = logging.getLogger(__name__)


HEADER_TERMINATOR = b"\r\n\r\n"


class ConnectionState(Enum):
    """Lifecycle of a client connection."""
    NEW = "new"                 # Just accepted
    READING = "reading"         # Waiting for request bytes
    PROCESSING = "processing"   # Request handed to the router
    WRITING = "writing"         # Sending the response
    KEEP_ALIVE = "keep_alive"   # Response sent, waiting for the next request
    CLOSING = "closing"
    CLOSED = "closed"


@dataclass
class Connection:
    """
    A client connection. At any moment it is owned either by the socket
    server (waiting for input) or by one worker thread (serving requests),
    never both.

    Attributes:
        socket: The accepted client socket.
        address: Client's (ip, port) tuple.
        id: Short identifier used in log lines.
        state: Current ConnectionState.
        created_at: Accept time.
        last_activity: Time of the last successful read or write.
        requests_handled: Requests read so far on this connection.
        eof: The client has finished sending.
    """

    socket: socket.socket
    address: tuple[str, int]

    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    state: ConnectionState = ConnectionState.NEW
    created_at: float = field(default_factory=time.time)
    last_activity: float = field(default_factory=time.time)
    requests_handled: int = 0
    eof: bool = False

    # Copied from ServerConfig by the server
    buffer_size: int = 8192
    timeout: Optional[float] = 30.0
    keep_alive_timeout: float = 5.0
    max_request_size: int = 10 * 1024 * 1024

    _buffer: bytes = field(default=b"", repr=False)

    def __post_init__(self):
        # Accepted sockets may inherit the listener's mode; set our own
        self.socket.settimeout(self.timeout)

    @property
    def client_ip(self) -> str:
        return self.address[0]

    @property
    def is_idle(self) -> bool:
        """Between requests on a persistent connection, nothing buffered."""
        return self.requests_handled > 0 and not self._buffer

    @property
    def deadline(self) -> Optional[float]:
        """When a connection waiting for input is given up on (None: never)."""
        if self.is_idle:
            return self.last_activity + self.keep_alive_timeout
        if self.timeout is None:
            return None
        return self.last_activity + self.timeout

    # =========================================================================
    # READING
    # =========================================================================

    def read_request(self) -> Optional[bytes]:
        """
        Take the bytes of one request, without waiting for the network.

        Returns:
            The request bytes, or None when no complete request is available
            yet. After None, ``eof`` tells whether the client is gone (close
            the connection) or may still send more (wait for input).

        Raises:
            ValueError: The request exceeds max_request_size.
            OSError: Transport failure (reset, ...).
        """
        self.state = ConnectionState.READING

        if not self.eof:
            self._fill()

        header_end = self._buffer.find(HEADER_TERMINATOR)
        if header_end < 0:
            if self.eof and self._buffer:
                # Peer finished sending; whatever arrived is the request
                return self._take(len(self._buffer))
            return None

        body_start = header_end + len(HEADER_TERMINATOR)

        content_length = self._parse_content_length(self._buffer[:header_end])
        if content_length is None:
            return self._take(len(self._buffer))

        request_size = body_start + content_length
        if request_size > self.max_request_size:
            raise ValueError(f"Request too large: {request_size} bytes")

        if len(self._buffer) >= request_size:
            return self._take(request_size)

        if self.eof:
            # Peer closed mid-body; parse what arrived
            return self._take(len(self._buffer))

        return None

    def _fill(self) -> None:
        """Buffer every byte the socket has ready."""
        self.socket.setblocking(False)
        try:
            while True:
                try:
                    chunk = self.socket.recv(self.buffer_size)
                except BlockingIOError:
                    return

                if not chunk:
                    self.eof = True
                    return

                self.last_activity = time.time()
                self._append(chunk)
        finally:
            self.socket.settimeout(self.timeout)

    def _append(self, chunk: bytes) -> None:
        self._buffer += chunk
        if len(self._buffer) > self.max_request_size:
            raise ValueError(f"Request too large: {len(self._buffer)} bytes")

    def _take(self, size: int) -> bytes:
        """Remove and return the first ``size`` buffered bytes."""
        request_data = self._buffer[:size]
        self._buffer = self._buffer[size:]
        self.requests_handled += 1
        return request_data

    def _parse_content_length(self, header_section: bytes) -> Optional[int]:
        """
        Content-Length from the raw header block, or None if absent/invalid.

        Uses the same header parser as the request parser, so both agree on
        which Content-Length (if any) is in force.
        """
        lines = header_section.decode(HEADER_ENCODING).split("\r\n")
        headers, _ = parse_headers(lines[1:])
        return parse_content_length(headers)

    # =========================================================================
    # WRITING
    # =========================================================================

    def send_response(self, data: bytes) -> bool:
        """
        Send a serialized response with sendall().

        Returns:
            True if sent, False if the client is gone.
        """
        self.state = ConnectionState.WRITING

        try:
            self.socket.sendall(data)
            self.last_activity = time.time()
            return True
        except OSError as e:
            logger.warning(f"[{self.id}] Send failed: {e}")
            return False

    # =========================================================================
    # CLOSING
    # =========================================================================

    def close(self, drain: bool = True):
        """
        Close the connection: send FIN, drain unread input, release the fd.

        Draining keeps the kernel from answering unread bytes with a RST,
        which could destroy the response before the client reads it. A
        connection that got no response skips it with ``drain=False``.
        Safe to call more than once.
        """
        if self.state == ConnectionState.CLOSED:
            return

        self.state = ConnectionState.CLOSING

        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass  # Peer already gone

        if drain and not self.eof:
            try:
                self.socket.settimeout(0.5)
                while self.socket.recv(1024):
                    pass
            except OSError:
                pass

        try:
            self.socket.close()
        except OSError:
            pass

        self.state = ConnectionState.CLOSED
        logger.debug(f"[{self.id}] Connection closed after {self.requests_handled} requests")

    def set_keep_alive(self):
        """Mark connection as waiting for its next request."""
        self.state = ConnectionState.KEEP_ALIVE
