"""
=============================================================================
HANDLERS MODULE
=============================================================================

The route handlers served by minihttp, and the routing table that wires
them up.

=============================================================================
ROUTING TABLE
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │ Priority │ Method │ Pattern        │ Handler                        │
    ├─────────────────────────────────────────────────────────────────────┤
    │    1     │  any   │ /              │ basic.root                     │
    │    2     │  any   │ /echo/*text    │ basic.echo                     │
    │    3     │  any   │ /user-agent    │ basic.user_agent               │
    │    4     │  GET   │ /files/*name   │ FileHandler.get                │
    │    5     │  POST  │ /files/*name   │ FileHandler.post               │
    ├─────────────────────────────────────────────────────────────────────┤
    │ /files/* with any other method      → 405 Method Not Allowed        │
    │ anything else                       → 404 Not Found                 │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from typing import Optional

from ..http.router import Router
from .basic import echo, root, user_agent
from .files import FileHandler, PathTraversalError, resolve_path


def build_router(directory: Optional[str] = None) -> Router:
    """
    Build the router with every route registered in priority order.

    Args:
        directory: Directory served under /files/. None serves the current
                   working directory.
    """
    router = Router()
    files = FileHandler(directory)

    router.add_route("/", root)
    router.add_route("/echo/*text", echo)
    router.add_route("/user-agent", user_agent)
    router.add_route("/files/*name", files.get, "GET")
    router.add_route("/files/*name", files.post, "POST")

    return router


__all__ = [
    "build_router",
    "echo",
    "root",
    "user_agent",
    "FileHandler",
    "PathTraversalError",
    "resolve_path",
]
