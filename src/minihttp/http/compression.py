"""
=============================================================================
CONTENT CODEC (gzip)
=============================================================================

Content negotiation for response bodies:

    Client                                          Server
      │  GET /echo/abc HTTP/1.1                       │
      │  Accept-Encoding: deflate, gzip               │
      │ ────────────────────────────────────────────► │
      │                                               │  "gzip" in list?
      │                                               │  yes → compress
      │  HTTP/1.1 200 OK                              │
      │  Content-Type: text/plain                     │
      │  Content-Encoding: gzip                       │
      │  Content-Length: 23      ← compressed size    │
      │ ◄──────────────────────────────────────────── │

Only the exact token "gzip" enables compression. Quality values are not
interpreted, so "gzip;q=0" is simply not the token "gzip".

A failed compression is a server fault, not a client error: it surfaces as
CompressionError and the handler answers 500.

=============================================================================
"""

import gzip
import zlib

from .request import HTTPRequest


class CompressionError(Exception):
    """Raised when the gzip stream cannot be written or finalized."""


def gzip_compress(data: bytes, level: int = 6) -> bytes:
    """
    Compress a payload into a single gzip member.

    Args:
        data: Bytes to compress. May be empty.
        level: zlib compression level, 1 (fastest) to 9 (smallest).

    Returns:
        The gzip-compressed bytes.

    Raises:
        CompressionError: If the underlying stream fails.
    """
    try:
        return gzip.compress(data, compresslevel=level)
    except (OSError, ValueError, zlib.error) as e:
        raise CompressionError(f"gzip compression failed: {e}") from e


def accepts_gzip(request: HTTPRequest) -> bool:
    """True if the request's Accept-Encoding list contains the token "gzip"."""
    return "gzip" in request.accept_encodings
