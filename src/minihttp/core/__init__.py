"""
=============================================================================
CORE SERVER COMPONENTS
=============================================================================

The networking plumbing under the HTTP layer:

    ┌─────────────────────────────────────────────────────────────────────┐
    │ SOCKET SERVER   listening socket, selector event loop, signals      │
    └─────────────────────────────────┬───────────────────────────────────┘
                                      │ Connection with input ready
                                      ▼
    ┌─────────────────────────────────────────────────────────────────────┐
    │ THREAD POOL     bounded queue + worker threads                      │
    └─────────────────────────────────┬───────────────────────────────────┘
                                      │ a worker while requests are ready
                                      ▼
    ┌─────────────────────────────────────────────────────────────────────┐
    │ CONNECTION      buffered request reads, sendall, orderly close      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .socket_server import SocketServer
from .connection import Connection, ConnectionState
from .thread_pool import ThreadPool

__all__ = [
    "SocketServer",
    "Connection",
    "ConnectionState",
    "ThreadPool",
]
