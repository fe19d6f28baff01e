"""
=============================================================================
HTTP SERVER
=============================================================================

Wires the pieces together:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                     │
    │   SocketServer.start()          event loop (calling thread): waits  │
    │        │                        for input on every idle connection, │
    │        │ Connection with        closes the ones past their deadline │
    │        │ input ready                                                │
    │        ▼                                                            │
    │   ThreadPool.submit()           full queue → connection closed      │
    │        │                                                            │
    │        ▼  (worker thread)                                           │
    │   ┌─────────────────────────────────────────────────────────────┐   │
    │   │  loop:                                                      │   │
    │   │    Connection.read_request()   → raw bytes, or None if no   │   │
    │   │                                  full request is ready      │   │
    │   │    RequestParser.parse()       → HTTPRequest  (or 400)      │   │
    │   │    middleware → Router.handle  → HTTPResponse (or 500)      │   │
    │   │    + "Connection: close" if the client asked for it         │   │
    │   │    Connection.send_response()                               │   │
    │   │    close requested / keep-alive off? → close                │   │
    │   │  nothing ready → SocketServer.watch(conn); worker is free   │   │
    │   └─────────────────────────────────────────────────────────────┘   │
    │                                                                     │
    └─────────────────────────────────────────────────────────────────────┘

A worker is busy only while a request is being answered. A client that
connects and stays silent, or sits idle between keep-alive requests, costs
a selector entry, not a thread.

=============================================================================
ERROR POLICY
=============================================================================

Every failure ends at the connection boundary. One client can never
disturb another or the event loop.

    Read timeout / transport error    logged, connection dropped, no reply
    Keep-alive idle timeout           connection closed
    Request too large                 400, close
    Malformed request line            400, close
    Handler raised                    logged with traceback, 500

=============================================================================
"""

import logging
from typing import Callable, Optional, Tuple

from .config import ServerConfig
from .core import SocketServer, Connection, ConnectionState, ThreadPool
from .handlers import build_router
from .http import (
    HTTPRequest, RequestParser, HTTPParseError,
    HTTPResponse, HTTPStatus, Router, internal_error,
)
from .middleware import MiddlewarePipeline, Middleware, LoggingMiddleware


logger = logging.getLogger(__name__)


class HTTPServer:
    """
    The minihttp server.

        server = HTTPServer(ServerConfig(port=4221, directory="/tmp/data"))
        server.run()        # blocks until SIGINT/SIGTERM or shutdown()

    Running in a background thread (tests, embedding):

        server = HTTPServer(ServerConfig(port=0))
        thread = threading.Thread(target=server.run, daemon=True)
        thread.start()
        server.wait_until_ready(5)
        host, port = server.address
        ...
        server.shutdown()
        thread.join()
    """

    def __init__(
        self,
        config: Optional[ServerConfig] = None,
        router: Optional[Router] = None,
    ):
        """
        Args:
            config: Server configuration. Defaults to ServerConfig().
            router: Routing table. Defaults to build_router() over
                    config.directory.

        Raises:
            ValueError: If the configuration is invalid.
        """
        self.config = config or ServerConfig()
        self.config.validate()

        self._socket_server = SocketServer(self.config)
        self._thread_pool = ThreadPool(
            min_workers=self.config.min_workers,
            max_workers=self.config.max_workers,
            queue_size=self.config.queue_size,
        )
        self._parser = RequestParser(max_request_size=self.config.max_request_size)

        self._router = router or build_router(self.config.directory)

        self._middleware = MiddlewarePipeline()
        self._middleware.add(LoggingMiddleware(log_format=self.config.log_format))

        # middleware.wrap(router.handle), built by run()
        self._handler: Optional[Callable[[HTTPRequest], HTTPResponse]] = None

        self._running = False

    # =========================================================================
    # CONFIGURATION
    # =========================================================================

    def use(self, middleware: Middleware) -> "HTTPServer":
        """Add middleware inside the access logger. Call before run()."""
        self._middleware.add(middleware)
        return self

    @property
    def router(self) -> Router:
        return self._router

    @property
    def address(self) -> Tuple[str, int]:
        """Bound (host, port); reflects the real port when port=0."""
        return self._socket_server.address

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def run(self):
        """
        Serve until shutdown() or SIGINT/SIGTERM.

        Raises:
            OSError: If the listening address cannot be bound.
        """
        self._setup_logging()

        self._handler = self._middleware.wrap(self._router.handle)
        self._running = True
        self._thread_pool.start()

        logger.info(
            f"Starting minihttp on {self.config.host}:{self.config.port} "
            f"({self.config.min_workers}-{self.config.max_workers} workers)"
        )
        self._router.log_routes()

        try:
            self._socket_server.start(self._handle_connection)
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            self._shutdown()

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """Block until the server accepts connections. False on timeout."""
        return self._socket_server.wait_until_ready(timeout)

    def shutdown(self):
        """Ask a running server to stop. Safe from any thread."""
        self._socket_server.shutdown()

    def _setup_logging(self):
        level = self.config.log_level_number

        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        logging.getLogger("minihttp").setLevel(level)

    def _shutdown(self):
        """Stop serving: in-flight connections finish, idle ones end."""
        logger.info("Shutting down server...")
        self._running = False

        stats = self._thread_pool.stats
        self._thread_pool.shutdown(wait=True, timeout=30.0)

        logger.info(
            f"Server stopped ({stats['tasks']['completed']} connections served, "
            f"{stats['tasks']['failed']} failed)"
        )

    # =========================================================================
    # CONNECTION HANDLING
    # =========================================================================

    def _handle_connection(self, conn: Connection):
        """Hand a connection with input ready to the pool (event loop thread)."""
        try:
            submitted = self._thread_pool.submit(self._process_connection, args=(conn,))
        except RuntimeError as e:
            logger.warning(f"[{conn.id}] Rejecting connection: {e}")
            submitted = False
        else:
            if not submitted:
                logger.warning(f"[{conn.id}] Thread pool full, dropping connection")

        if not submitted:
            conn.close(drain=False)

    def _process_connection(self, conn: Connection):
        """
        Serve the requests a connection has ready (worker thread), then
        either give it back to the socket server to wait for more input or
        close it. The worker never waits for the client to send.
        """
        try:
            wait_for_more = self._serve_ready_requests(conn)
        except Exception:
            conn.close()
            raise

        if wait_for_more:
            self._socket_server.watch(conn)
        else:
            conn.close()

    def _serve_ready_requests(self, conn: Connection) -> bool:
        """
        Answer every complete request buffered on the connection.

        Returns:
            True if the connection stays open waiting for input, False if
            it is finished and must be closed.
        """
        while self._running:
            try:
                raw_request = conn.read_request()
            except ValueError as e:
                logger.warning(f"[{conn.id}] {e}")
                self._send_error(conn, HTTPStatus.BAD_REQUEST)
                return False
            except OSError as e:
                logger.warning(f"[{conn.id}] Read error: {e}")
                return False

            if raw_request is None:
                return not conn.eof

            try:
                request = self._parser.parse(raw_request, conn.address)
            except HTTPParseError as e:
                logger.info(f"[{conn.id}] Bad request from {conn.client_ip}: {e}")
                self._send_error(conn, HTTPStatus(e.status_code))
                return False

            conn.state = ConnectionState.PROCESSING
            try:
                response = self._handler(request)
            except Exception as e:
                logger.exception(f"[{conn.id}] Handler error: {e}")
                response = internal_error()

            if request.wants_close:
                response.add_header("Connection", "close")

            if not conn.send_response(response.to_bytes()):
                return False

            if request.wants_close or not self.config.keep_alive:
                return False

            conn.set_keep_alive()

        return False

    def _send_error(self, conn: Connection, status: HTTPStatus):
        """
        Answer a request that never reached the router: status line only.
        """
        conn.send_response(HTTPResponse(status=status).to_bytes())


def create_app(config: Optional[ServerConfig] = None) -> HTTPServer:
    """
    Create a server with the standard routes.

        app = create_app(ServerConfig(directory="/tmp/data"))
        app.run()
    """
    return HTTPServer(config)
