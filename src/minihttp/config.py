"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

Every tunable of the server lives in one dataclass, ServerConfig.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    CONFIGURATION SOURCES                            │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                     │
    │   Priority (highest to lowest):                                     │
    │                                                                     │
    │   1. Command-line arguments                                         │
    │      └── python -m minihttp --directory /tmp/data --port 4221       │
    │                                                                     │
    │   2. Environment variables                                          │
    │      └── MINIHTTP_PORT=4221 python -m minihttp                      │
    │                                                                     │
    │   3. Default values (in this dataclass)                             │
    │                                                                     │
    └─────────────────────────────────────────────────────────────────────┘

Values are checked once, at startup, by validate(). A bad value stops the
server before it binds a socket.

=============================================================================
"""

import logging
import os
from dataclasses import dataclass
from typing import Optional


_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

_LOG_FORMATS = ("text", "json")


@dataclass
class ServerConfig:
    """
    Configuration for the HTTP server.

        ServerConfig(
            port=4221,
            directory="/tmp/data",   # served under /files/
            log_level="DEBUG",
        )

    Groups:
        NETWORK       host, port, backlog, buffer_size, timeout
        HTTP          keep_alive, keep_alive_timeout, max_request_size
        THREAD POOL   min_workers, max_workers, queue_size
        FILES         directory
        LOGGING       log_level, log_format
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: str = "0.0.0.0"
    """Address to bind. "0.0.0.0" listens on every interface."""

    port: int = 4221
    """
    Port to listen on. 0 lets the OS pick a free port; the port actually
    bound is available from HTTPServer.address once the server is ready.
    """

    backlog: int = 128
    """Pending connections the kernel queues before refusing new ones."""

    buffer_size: int = 8192
    """Bytes requested per recv() call."""

    timeout: Optional[float] = 30.0
    """
    Seconds a new connection may stay silent before it is dropped, and
    the longest a response write may stall. None waits forever.
    """

    # ─────────────────────────────────────────────────────────────────────
    # HTTP SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    keep_alive: bool = True
    """
    Serve more than one request per connection. When False every
    connection is closed after its first response.
    """

    keep_alive_timeout: float = 5.0
    """Seconds an idle persistent connection is kept open after a response."""

    max_request_size: int = 10 * 1024 * 1024  # 10 MB
    """Largest request (headers and body) accepted, in bytes."""

    # ─────────────────────────────────────────────────────────────────────
    # THREAD POOL SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    min_workers: int = 4
    """Worker threads started with the server."""

    max_workers: int = 16
    """Upper bound on worker threads, i.e. on requests answered at once."""

    queue_size: int = 100
    """
    Connections with a request ready allowed to wait for a worker. Beyond
    this they are closed immediately.
    """

    # ─────────────────────────────────────────────────────────────────────
    # FILES
    # ─────────────────────────────────────────────────────────────────────

    directory: Optional[str] = None
    """
    Directory served under /files/. None serves the current working
    directory.
    """

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    """DEBUG, INFO, WARNING, ERROR or CRITICAL."""

    log_format: str = "text"
    """Access log format: 'text' (Apache style) or 'json'."""

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """
        Create configuration from environment variables.

            MINIHTTP_HOST       Bind address         (default: 0.0.0.0)
            MINIHTTP_PORT       Port                 (default: 4221)
            MINIHTTP_WORKERS    Max worker threads   (default: 16)
            MINIHTTP_TIMEOUT    Read timeout, sec.   (default: 30)
            MINIHTTP_DIRECTORY  Served directory     (default: cwd)
            MINIHTTP_LOG_LEVEL  Logging level        (default: INFO)

        Raises:
            ValueError: If a numeric variable is not a number.
        """
        max_workers = int(os.getenv("MINIHTTP_WORKERS", "16"))

        return cls(
            host=os.getenv("MINIHTTP_HOST", "0.0.0.0"),
            port=int(os.getenv("MINIHTTP_PORT", "4221")),
            min_workers=min(cls.min_workers, max_workers),
            max_workers=max_workers,
            timeout=float(os.getenv("MINIHTTP_TIMEOUT", "30")),
            directory=os.getenv("MINIHTTP_DIRECTORY") or None,
            log_level=os.getenv("MINIHTTP_LOG_LEVEL", "INFO"),
        )

    def validate(self) -> None:
        """
        Check every value, failing fast.

        Raises:
            ValueError: Describing the first invalid setting.
        """
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if self.backlog < 1:
            raise ValueError("backlog must be >= 1")

        if self.min_workers < 1:
            raise ValueError("min_workers must be >= 1")

        if self.max_workers < self.min_workers:
            raise ValueError("max_workers must be >= min_workers")

        if self.queue_size < 1:
            raise ValueError("queue_size must be >= 1")

        if self.buffer_size < 1024:
            raise ValueError("buffer_size must be >= 1024")

        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be > 0")

        if self.keep_alive_timeout <= 0:
            raise ValueError("keep_alive_timeout must be > 0")

        if self.max_request_size < 1:
            raise ValueError("max_request_size must be >= 1")

        if self.directory and not os.path.isdir(self.directory):
            raise ValueError(f"directory does not exist: {self.directory}")

        if self.log_level.upper() not in _LOG_LEVELS:
            raise ValueError(f"Invalid log level: {self.log_level}")

        if self.log_format not in _LOG_FORMATS:
            raise ValueError(f"Invalid log format: {self.log_format}")

    @property
    def log_level_number(self) -> int:
        """log_level as a ``logging`` module constant."""
        return getattr(logging, self.log_level.upper())
