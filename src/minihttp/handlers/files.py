"""
=============================================================================
FILE HANDLER
=============================================================================

Reads and writes files under one served directory:

    GET  /files/notes.txt   →  200 + raw bytes (application/octet-stream)
    POST /files/notes.txt   →  201, request body written to disk

=============================================================================
PATH TRAVERSAL
=============================================================================

The name after /files/ comes straight from the client, so it can try to
walk out of the served directory:

    GET /files/../../etc/passwd

Every name goes through resolve_path() before the filesystem is touched:

    ┌─────────────────────────────────────────────────────────────────────┐
    │  root_dir = /srv/data          (resolved once, at startup)          │
    │                                                                     │
    │  "notes.txt"        → /srv/data/notes.txt           allowed         │
    │  "sub/../a.txt"     → /srv/data/a.txt               allowed         │
    │  ""                 → /srv/data                     allowed (dir)   │
    │  "../secret"        → /srv/secret                   403             │
    │  "../data2/x"       → /srv/data2/x                  403             │
    │  "link-to-etc/x"    → /etc/x   (symlink followed)   403             │
    └─────────────────────────────────────────────────────────────────────┘

The containment check compares whole path components (Path.relative_to),
so a sibling directory sharing a name prefix ("/srv/data2") never passes.
Names are not URL-decoded: "%2e%2e" is an ordinary file name.

=============================================================================
"""

from pathlib import Path
from typing import Optional, Union
import logging
import os

from ..http.request import HTTPRequest
from ..http.response import (
    HTTPResponse,
    ResponseBuilder,
    created,
    forbidden,
    internal_error,
    not_found,
)
from ..http.status_codes import HTTPStatus


logger = logging.getLogger(__name__)


class PathTraversalError(Exception):
    """The requested name resolves outside the served directory."""

    def __init__(self, name: str):
        super().__init__(f"Path escapes served directory: {name!r}")
        self.name = name


def resolve_path(base: Union[str, Path], name: str) -> Path:
    """
    Resolve a client-supplied file name against the served directory.

    Args:
        base: The served directory.
        name: File name taken from the request path. Leading slashes are
              ignored.

    Returns:
        Absolute path equal to ``base`` or inside it.

    Raises:
        PathTraversalError: If the name resolves outside ``base`` or holds
                            a NUL byte.
    """
    if "\x00" in name:
        raise PathTraversalError(name)

    root_dir = Path(base).resolve()

    # resolve() follows symlinks and collapses . and .. components
    full_path = (root_dir / name.lstrip("/")).resolve()

    try:
        full_path.relative_to(root_dir)
    except ValueError:
        raise PathTraversalError(name) from None

    return full_path


class FileHandler:
    """
    GET and POST handlers for /files/*name.

    Usage:
        files = FileHandler("/srv/data")
        router.get("/files/*name")(files.get)
        router.post("/files/*name")(files.post)
    """

    def __init__(self, directory: Optional[str] = None):
        """
        Args:
            directory: Served directory. None or "" serves the current
                       working directory.
        """
        # Resolved once, so later chdir() calls cannot move the root
        self.root_dir = Path(directory or os.getcwd()).resolve()

        if not self.root_dir.is_dir():
            raise ValueError(f"Served directory does not exist: {directory}")

    def _resolve(self, request: HTTPRequest) -> Path:
        name = request.path_params.get("name", "")
        try:
            return resolve_path(self.root_dir, name)
        except PathTraversalError:
            logger.warning(
                f"Path traversal attempt from {request.client_address[0]}: {name!r}"
            )
            raise

    def get(self, request: HTTPRequest) -> HTTPResponse:
        """
        Send a file's bytes.

        Anything that prevents reading (missing file, a directory, no
        permission) is reported as 404.
        """
        try:
            path = self._resolve(request)
        except PathTraversalError:
            return forbidden()

        try:
            content = path.read_bytes()
        except OSError as e:
            logger.info(f"Cannot read {path}: {e}")
            return not_found()

        return (ResponseBuilder()
            .status(HTTPStatus.OK)
            .octet_stream(content)
            .build())

    def post(self, request: HTTPRequest) -> HTTPResponse:
        """
        Write the request body to a file, creating or truncating it.

        Parent directories are not created; writing into a missing
        directory fails with 500 like any other write error.
        """
        try:
            path = self._resolve(request)
        except PathTraversalError:
            return forbidden()

        try:
            path.write_bytes(request.body)
        except OSError as e:
            logger.error(f"Cannot write {path}: {e}")
            return internal_error()

        logger.debug(f"Wrote {len(request.body)} bytes to {path}")
        return created()
