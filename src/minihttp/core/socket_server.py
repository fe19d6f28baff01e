"""
=============================================================================
TCP SOCKET SERVER
=============================================================================

Owns the listening socket and the event loop. The loop never reads a
request and never waits on one client: it only notices which sockets have
something to say.

    ┌─────────────────────────────────────────────────────────────────────┐
    │   socket() → setsockopt() → bind() → listen()                       │
    │                                         │                           │
    │                                         ▼                           │
    │   while running:                                                    │
    │       selector.select()                                             │
    │         listening socket readable → accept(), watch the new         │
    │                                     Connection                      │
    │         watched Connection readable → stop watching it,             │
    │                                     connection_handler(conn)        │
    │                                     → HTTPServer → thread pool      │
    │       close watched Connections past their deadline                 │
    └─────────────────────────────────────────────────────────────────────┘

A worker serves every request a connection has ready, then hands it back
with watch(). Silent or idle clients therefore wait in the selector, not
in a worker thread, so they can never starve the pool.

=============================================================================
WAKEUPS
=============================================================================

Selectors are not thread-safe. watch() and shutdown() run on worker or
signal-handling threads, so they queue their work and write one byte to a
socketpair the loop is also selecting on:

    worker ── watch(conn) ──► _pending ──┐
                                         ├──► loop registers conn
    worker ── b"\\0" ──► _wake_writer ──► _wake_reader readable

=============================================================================
SOCKET OPTIONS
=============================================================================

SO_REUSEADDR   Rebind immediately after a restart instead of failing with
               "Address already in use" while old sockets sit in TIME_WAIT.

TCP_NODELAY    Disable Nagle's algorithm. Responses are written with one
               sendall() and should leave immediately.

=============================================================================
SIGNALS
=============================================================================

SIGINT (Ctrl+C) and SIGTERM (kill, docker stop) trigger shutdown().
Python only allows installing signal handlers from the main thread, so
when the server runs in a background thread (tests, embedding) signals
are left alone and shutdown() must be called directly.

=============================================================================
"""

import queue
import selectors
import socket
import signal
import logging
import threading
import time
from typing import Optional, Callable, Tuple

from ..config import ServerConfig
from .connection import Connection


logger = logging.getLogger(__name__)


# Longest the loop sleeps without a deadline or event to wake it
_POLL_INTERVAL = 1.0

# Selector keys that are not client connections
_LISTENER = "listener"
_WAKEUP = "wakeup"


class SocketServer:
    """
    Accepts TCP connections and passes each one to a callback whenever it
    has input ready.

    Usage:
        def handle_connection(conn: Connection):
            ...                       # serve what is ready, then either
            server.watch(conn)        # wait for more input, or
            conn.close()              # finish

        server = SocketServer(config)
        server.start(handle_connection)  # Blocks until shutdown()
    """

    def __init__(self, config: ServerConfig):
        """
        Args:
            config: Server configuration (host, port, backlog, timeouts).

        Sockets are not created until start().
        """
        self.config = config
        self._socket: Optional[socket.socket] = None
        self._selector: Optional[selectors.BaseSelector] = None
        self._wake_reader: Optional[socket.socket] = None
        self._wake_writer: Optional[socket.socket] = None
        self._pending: "queue.SimpleQueue[Connection]" = queue.SimpleQueue()
        self._running = False
        self._ready_event = threading.Event()
        self._original_handlers: dict = {}
        self._bound_address: Optional[Tuple[str, int]] = None

    @property
    def address(self) -> Tuple[str, int]:
        """
        The (host, port) actually bound.

        Differs from the configured address when port 0 asked the OS to
        pick a free port. Before start() this is the configured address.
        """
        if self._bound_address is not None:
            return self._bound_address
        return (self.config.host, self.config.port)

    def _create_socket(self) -> socket.socket:
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
        sock.setblocking(False)
        return sock

    def _setup_signals(self):
        """Route SIGTERM and SIGINT to shutdown(), main thread only."""
        if threading.current_thread() is not threading.main_thread():
            logger.debug("Not on main thread; signal handlers not installed")
            return

        def shutdown_handler(signum, frame):
            signal_name = signal.Signals(signum).name
            logger.info(f"Received {signal_name}, initiating shutdown...")
            self.shutdown()

        self._original_handlers[signal.SIGTERM] = signal.signal(signal.SIGTERM, shutdown_handler)
        self._original_handlers[signal.SIGINT] = signal.signal(signal.SIGINT, shutdown_handler)

    def _restore_signals(self):
        for sig, handler in self._original_handlers.items():
            signal.signal(sig, handler)
        self._original_handlers.clear()

    def start(self, connection_handler: Callable[[Connection], None]):
        """
        Bind, listen, and run the event loop until shutdown().

        Args:
            connection_handler: Called with each Connection that has input
                                ready. Must not block; the HTTP server
                                hands the connection to its thread pool.

        Raises:
            OSError: If the address cannot be bound.
        """
        self._socket = self._create_socket()

        try:
            self._socket.bind((self.config.host, self.config.port))
        except OSError as e:
            logger.error(f"Failed to bind to {self.config.host}:{self.config.port}: {e}")
            self._socket.close()
            self._socket = None
            raise

        self._socket.listen(self.config.backlog)
        self._bound_address = self._socket.getsockname()[:2]

        self._wake_reader, self._wake_writer = socket.socketpair()
        self._wake_reader.setblocking(False)
        self._wake_writer.setblocking(False)

        self._selector = selectors.DefaultSelector()
        self._selector.register(self._socket, selectors.EVENT_READ, _LISTENER)
        self._selector.register(self._wake_reader, selectors.EVENT_READ, _WAKEUP)

        self._running = True
        self._setup_signals()

        host, port = self._bound_address
        logger.info(f"Server listening on {host}:{port}")
        self._ready_event.set()

        try:
            self._event_loop(connection_handler)
        finally:
            self._cleanup()

    # =========================================================================
    # EVENT LOOP
    # =========================================================================

    def _event_loop(self, connection_handler: Callable[[Connection], None]):
        while self._running:
            events = self._selector.select(timeout=self._next_timeout())

            for key, _ in events:
                if key.data == _LISTENER:
                    self._accept_ready()
                elif key.data == _WAKEUP:
                    self._drain_wakeups()
                else:
                    conn: Connection = key.data
                    self._selector.unregister(conn.socket)
                    connection_handler(conn)

            self._register_pending()
            self._expire_watched()

    def _accept_ready(self):
        """Accept every connection waiting in the backlog."""
        while True:
            try:
                client_socket, client_address = self._socket.accept()
            except BlockingIOError:
                return
            except OSError as e:
                # ECONNABORTED, EMFILE, ...: this client is lost, keep serving
                logger.error(f"Accept error: {e}")
                return

            logger.debug(f"Accepted connection from {client_address[0]}:{client_address[1]}")

            conn = Connection(
                socket=client_socket,
                address=client_address,
                buffer_size=self.config.buffer_size,
                timeout=self.config.timeout,
                keep_alive_timeout=self.config.keep_alive_timeout,
                max_request_size=self.config.max_request_size,
            )
            self._selector.register(conn.socket, selectors.EVENT_READ, conn)

    def _drain_wakeups(self):
        try:
            while self._wake_reader.recv(4096):
                pass
        except BlockingIOError:
            pass

    def _register_pending(self):
        """Start watching connections handed back by workers."""
        while True:
            try:
                conn = self._pending.get_nowait()
            except queue.Empty:
                return
            self._selector.register(conn.socket, selectors.EVENT_READ, conn)

    def _watched(self):
        return [
            key.data for key in self._selector.get_map().values()
            if isinstance(key.data, Connection)
        ]

    def _expire_watched(self):
        """Close watched connections whose deadline has passed."""
        now = time.time()

        for conn in self._watched():
            deadline = conn.deadline
            if deadline is None or now < deadline:
                continue

            self._selector.unregister(conn.socket)
            if conn.is_idle:
                logger.debug(f"[{conn.id}] Keep-alive timeout")
            else:
                logger.info(f"[{conn.id}] Request read timeout from {conn.client_ip}")
            conn.close(drain=False)

    def _next_timeout(self) -> float:
        """Seconds until the nearest deadline, capped at the poll interval."""
        now = time.time()
        timeout = _POLL_INTERVAL

        for conn in self._watched():
            deadline = conn.deadline
            if deadline is not None:
                timeout = min(timeout, deadline - now)

        return max(timeout, 0.0)

    # =========================================================================
    # CALLED FROM OTHER THREADS
    # =========================================================================

    def watch(self, conn: Connection):
        """
        Wait for more input on a connection, then pass it to the handler
        again. Callable from any thread; the caller gives up the connection.
        """
        if not self._running:
            conn.close(drain=False)
            return

        self._pending.put(conn)
        self._wake()

        if not self._running:
            # Loop stopped between the check and the put
            self._close_pending()

    def shutdown(self):
        """
        Stop the event loop. Idempotent, callable from any thread or from
        a signal handler.
        """
        if self._running:
            logger.info("Shutting down socket server...")
        self._running = False
        self._wake()

    def _wake(self):
        writer = self._wake_writer
        if writer is None:
            return
        try:
            writer.send(b"\0")
        except OSError:
            pass  # Buffer full (a wakeup is pending) or loop already gone

    def _close_pending(self):
        """Close connections handed back after the loop stopped."""
        while True:
            try:
                self._pending.get_nowait().close(drain=False)
            except queue.Empty:
                return

    def _cleanup(self):
        self._restore_signals()

        for conn in self._watched():
            conn.close(drain=False)
        self._selector.close()
        self._selector = None

        self._close_pending()

        if self._socket:
            try:
                self._socket.close()
            except OSError:
                pass
            self._socket = None

        for sock in (self._wake_reader, self._wake_writer):
            sock.close()
        self._wake_reader = self._wake_writer = None

        self._ready_event.clear()
        logger.info("Socket server stopped")

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """Block until the socket is listening. Returns False on timeout."""
        return self._ready_event.wait(timeout)
