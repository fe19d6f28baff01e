"""
=============================================================================
HTTP PROTOCOL LAYER
=============================================================================

Turns the bytes read from a socket into an HTTPRequest, picks a handler,
and turns the handler's HTTPResponse back into bytes. Nothing here touches
a socket.

    ┌─────────────────────────────────────────────────────────────────────┐
    │ request.py      Line Parser + body extraction                       │
    │                 b"GET /echo/abc HTTP/1.1\r\n..."  →  HTTPRequest     │
    ├─────────────────────────────────────────────────────────────────────┤
    │ headers.py      Header Table Builder                                │
    │                 ["user-agent: curl"]  →  {"User-Agent": "curl"}     │
    ├─────────────────────────────────────────────────────────────────────┤
    │ router.py       Exact / wildcard-prefix routes, priority order      │
    ├─────────────────────────────────────────────────────────────────────┤
    │ compression.py  gzip Content Codec + Accept-Encoding check          │
    ├─────────────────────────────────────────────────────────────────────┤
    │ response.py     HTTPResponse, ResponseBuilder                       │
    │                 HTTPResponse  →  b"HTTP/1.1 200 OK\r\n\r\n"          │
    ├─────────────────────────────────────────────────────────────────────┤
    │ status_codes.py The seven statuses this server ever sends           │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .request import (
    HTTPRequest,
    RequestParser,
    HTTPParseError,
    MalformedRequestLine,
    parse_request,
    parse_request_line,
)
from .headers import canonical_header_key, parse_headers
from .response import (
    HTTPResponse,
    ResponseBuilder,
    ok,                  # 200 OK
    created,             # 201 Created
    bad_request,         # 400 Bad Request
    forbidden,           # 403 Forbidden
    not_found,           # 404 Not Found
    method_not_allowed,  # 405 Method Not Allowed
    internal_error,      # 500 Internal Server Error
)
from .router import Router, Route
from .status_codes import HTTPStatus
from .compression import CompressionError, accepts_gzip, gzip_compress

__all__ = [
    # Request parsing
    "HTTPRequest",
    "RequestParser",
    "HTTPParseError",
    "MalformedRequestLine",
    "parse_request",
    "parse_request_line",
    "canonical_header_key",
    "parse_headers",

    # Response building
    "HTTPResponse",
    "ResponseBuilder",
    "ok",
    "created",
    "bad_request",
    "forbidden",
    "not_found",
    "method_not_allowed",
    "internal_error",

    # Routing
    "Router",
    "Route",

    # Status codes
    "HTTPStatus",

    # Content coding
    "CompressionError",
    "accepts_gzip",
    "gzip_compress",
]
