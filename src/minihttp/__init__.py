"""
=============================================================================
MINIHTTP
=============================================================================

A minimal HTTP/1.1 server written directly on top of TCP sockets. Requests
are parsed by hand, no http.server and no third-party HTTP library.

    ┌──────────────────┬──────────────────────────────────────────────────┐
    │ GET  /           │ 200 OK, no body                                  │
    │ *    /echo/<s>   │ <s> as text/plain, gzip when the client asks     │
    │ *    /user-agent │ the User-Agent header as text/plain              │
    │ GET  /files/<n>  │ contents of <n> from the served directory        │
    │ POST /files/<n>  │ request body written to <n>                      │
    └──────────────────┴──────────────────────────────────────────────────┘

=============================================================================
PACKAGE LAYOUT
=============================================================================

    minihttp/
    ├── config.py          ServerConfig
    ├── server.py          HTTPServer: accept → pool → parse → route → reply
    ├── core/              sockets, connections, thread pool
    ├── http/              parsing, headers, routing, responses, gzip
    ├── handlers/          route handlers + build_router()
    └── middleware/        pipeline + access log

=============================================================================
QUICK START
=============================================================================

    python -m minihttp --directory /tmp/data

    from minihttp import HTTPServer, ServerConfig

    server = HTTPServer(ServerConfig(port=4221, directory="/tmp/data"))
    server.run()

=============================================================================
"""

__version__ = "1.0.0"

from .server import HTTPServer, create_app
from .config import ServerConfig

__all__ = ["HTTPServer", "ServerConfig", "create_app", "__version__"]
