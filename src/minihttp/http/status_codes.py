"""
=============================================================================
HTTP STATUS CODES
=============================================================================

The server speaks a deliberately small vocabulary of status lines. Every
response it writes uses one of these seven codes:

    ┌──────┬─────────────────────────┬───────────────────────────────────┐
    │ Code │ Reason phrase           │ Sent when                         │
    ├──────┼─────────────────────────┼───────────────────────────────────┤
    │ 200  │ OK                      │ /, /echo/..., /user-agent, GET    │
    │ 201  │ Created                 │ POST /files/<name> succeeded      │
    │ 400  │ Bad Request             │ request line is not 3 tokens      │
    │ 403  │ Forbidden               │ /files/ name escapes the base dir │
    │ 404  │ Not Found               │ unknown path or unreadable file   │
    │ 405  │ Method Not Allowed      │ /files/ with a method != GET/POST │
    │ 500  │ Internal Server Error   │ write or compression failure      │
    └──────┴─────────────────────────┴───────────────────────────────────┘

The status line on the wire is:

    HTTP/1.1 404 Not Found\r\n
    ──────── ─── ─────────
        │     │      │
        │     │      └── Reason phrase (from _STATUS_PHRASES)
        │     └───────── Status code (HTTPStatus value)
        └─────────────── HTTP version

=============================================================================
"""

from enum import IntEnum


class HTTPStatus(IntEnum):
    """
    HTTP status codes and reason phrases.

    IntEnum, so members compare equal to plain integers:

        >>> HTTPStatus.NOT_FOUND == 404
        True
        >>> HTTPStatus.NOT_FOUND.phrase
        'Not Found'
    """

    # 2xx SUCCESS
    OK = 200
    CREATED = 201

    # 4xx CLIENT ERRORS
    BAD_REQUEST = 400
    FORBIDDEN = 403
    NOT_FOUND = 404
    METHOD_NOT_ALLOWED = 405

    # 5xx SERVER ERRORS
    INTERNAL_SERVER_ERROR = 500

    @property
    def phrase(self) -> str:
        """Reason phrase written after the code in the status line."""
        return _STATUS_PHRASES[self]

    @property
    def is_server_error(self) -> bool:
        """Check if this is a 5xx (server error) status code."""
        return 500 <= self < 600


_STATUS_PHRASES = {
    HTTPStatus.OK: "OK",
    HTTPStatus.CREATED: "Created",
    HTTPStatus.BAD_REQUEST: "Bad Request",
    HTTPStatus.FORBIDDEN: "Forbidden",
    HTTPStatus.NOT_FOUND: "Not Found",
    HTTPStatus.METHOD_NOT_ALLOWED: "Method Not Allowed",
    HTTPStatus.INTERNAL_SERVER_ERROR: "Internal Server Error",
}
