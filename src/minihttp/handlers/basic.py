"""
=============================================================================
BASIC ROUTE HANDLERS
=============================================================================

    GET /                 →  HTTP/1.1 200 OK\r\n\r\n
    GET /echo/abc         →  200, text/plain, body "abc"
    GET /user-agent       →  200, text/plain, body = User-Agent header

The echo and user-agent bodies are the request bytes sent back unchanged:
the path and headers were decoded as ISO-8859-1, so encoding them the same
way restores the original bytes.

=============================================================================
"""

import logging

from ..http.compression import CompressionError, accepts_gzip, gzip_compress
from ..http.request import HEADER_ENCODING, HTTPRequest
from ..http.response import HTTPResponse, ResponseBuilder, internal_error, ok


logger = logging.getLogger(__name__)


def root(request: HTTPRequest) -> HTTPResponse:
    """Liveness check: status line and blank line, nothing else."""
    return ok()


def echo(request: HTTPRequest) -> HTTPResponse:
    """
    Echo the rest of the path after /echo/.

    When the client lists gzip in Accept-Encoding the body is compressed and
    Content-Length is the compressed size:

        Content-Type: text/plain
        Content-Encoding: gzip
        Content-Length: 23
    """
    payload = request.path_params.get("text", "").encode(HEADER_ENCODING)

    builder = ResponseBuilder().content_type("text/plain")

    if accepts_gzip(request):
        try:
            payload = gzip_compress(payload)
        except CompressionError as e:
            logger.error(f"Echo compression failed: {e}")
            return internal_error()
        builder.header("Content-Encoding", "gzip")

    return builder.body(payload).build()


def user_agent(request: HTTPRequest) -> HTTPResponse:
    """Reflect the User-Agent header; an absent header gives an empty body."""
    return (ResponseBuilder()
        .text(request.user_agent.encode(HEADER_ENCODING))
        .build())
