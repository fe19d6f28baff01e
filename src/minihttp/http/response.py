"""
=============================================================================
HTTP RESPONSE BUILDING
=============================================================================

Responses are written exactly as they are built. Nothing is added behind
the handler's back: no Date, no Server, no automatic Content-Length. That
keeps the wire format predictable, e.g. the liveness route is exactly:

    HTTP/1.1 200 OK\r\n
    \r\n

A response with a body looks like:

    HTTP/1.1 200 OK\r\n                 ← status line
    Content-Type: text/plain\r\n        ← headers, in insertion order
    Content-Length: 3\r\n
    Connection: close\r\n               ← appended last, only on request
    \r\n                                ← blank line
    abc                                 ← body bytes

=============================================================================
WHY A LIST OF HEADER PAIRS?
=============================================================================

Response headers are stored as an ordered list of (name, value) tuples, not
a dict. The order handlers add them in is the order they hit the wire, and
the same name may legitimately appear twice. Lookups are rare (tests and
logging), so a linear scan is fine.

=============================================================================
"""

from dataclasses import dataclass, field
from typing import List, Optional, Tuple, Union

from .status_codes import HTTPStatus


HEADER_ENCODING = "iso-8859-1"


@dataclass
class HTTPResponse:
    """
    An HTTP response to be sent to the client.

    Use ResponseBuilder (or the helpers at the bottom of this module) to
    construct one.
    """

    status: HTTPStatus = HTTPStatus.OK
    headers: List[Tuple[str, str]] = field(default_factory=list)
    body: bytes = b""
    version: str = "HTTP/1.1"

    @property
    def status_line(self) -> str:
        """
        Format: HTTP-VERSION SP STATUS-CODE SP REASON-PHRASE
        Example: "HTTP/1.1 200 OK"
        """
        return f"{self.version} {int(self.status)} {self.status.phrase}"

    def add_header(self, name: str, value: str) -> "HTTPResponse":
        """
        Append a header after the existing ones.

        Returns self for method chaining.
        """
        self.headers.append((name, value))
        return self

    def get_header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """First value of a header (case-insensitive name match)."""
        wanted = name.lower()
        for header_name, value in self.headers:
            if header_name.lower() == wanted:
                return value
        return default

    def has_header(self, name: str) -> bool:
        return self.get_header(name) is not None

    def to_bytes(self) -> bytes:
        """
        Serialize the response for socket.sendall().

        Returns:
            Status line, headers and blank line (ISO-8859-1), then the body.
        """
        lines = [self.status_line]
        for name, value in self.headers:
            lines.append(f"{name}: {value}")

        # Trailing "" produces the blank line that ends the header block
        lines.append("")
        head = "\r\n".join(lines).encode(HEADER_ENCODING) + b"\r\n"

        return head + self.body


class ResponseBuilder:
    """
    Fluent builder for HTTP responses.

    Each method returns ``self``, so a response reads top to bottom in the
    same order it will appear on the wire:

        response = (ResponseBuilder()
            .status(HTTPStatus.OK)
            .content_type("text/plain")
            .header("Content-Encoding", "gzip")
            .body(compressed)
            .build())
    """

    def __init__(self):
        self._status = HTTPStatus.OK
        self._headers: List[Tuple[str, str]] = []
        self._body: bytes = b""

    def status(self, status: HTTPStatus) -> "ResponseBuilder":
        self._status = status
        return self

    def header(self, name: str, value: str) -> "ResponseBuilder":
        """Append one header (duplicates allowed)."""
        self._headers.append((name, value))
        return self

    def content_type(self, content_type: str) -> "ResponseBuilder":
        return self.header("Content-Type", content_type)

    def body(self, body: Union[str, bytes]) -> "ResponseBuilder":
        """
        Set the body and declare its length.

        Appends a Content-Length header computed from the final bytes, so
        call this after every header that must precede Content-Length.
        Strings are encoded as UTF-8.
        """
        if isinstance(body, str):
            body = body.encode("utf-8")
        self._body = body
        return self.header("Content-Length", str(len(body)))

    def text(self, text: Union[str, bytes]) -> "ResponseBuilder":
        """Plain text body: Content-Type text/plain, then Content-Length."""
        return self.content_type("text/plain").body(text)

    def octet_stream(self, content: bytes) -> "ResponseBuilder":
        """Binary body: Content-Type application/octet-stream, then Content-Length."""
        return self.content_type("application/octet-stream").body(content)

    def build(self) -> HTTPResponse:
        return HTTPResponse(
            status=self._status,
            headers=list(self._headers),
            body=self._body,
        )

    def to_bytes(self) -> bytes:
        """Build and serialize in one step."""
        return self.build().to_bytes()


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================
#
# Status-only responses: a status line and a blank line, nothing else.
#
#     return not_found()      →  b"HTTP/1.1 404 Not Found\r\n\r\n"
#
# =============================================================================

def ok() -> HTTPResponse:
    return HTTPResponse(status=HTTPStatus.OK)


def created() -> HTTPResponse:
    """201 Created, sent after a file upload is written."""
    return HTTPResponse(status=HTTPStatus.CREATED)


def bad_request() -> HTTPResponse:
    return HTTPResponse(status=HTTPStatus.BAD_REQUEST)


def forbidden() -> HTTPResponse:
    """403 Forbidden, sent when a file name resolves outside the served directory."""
    return HTTPResponse(status=HTTPStatus.FORBIDDEN)


def not_found() -> HTTPResponse:
    return HTTPResponse(status=HTTPStatus.NOT_FOUND)


def method_not_allowed() -> HTTPResponse:
    return HTTPResponse(status=HTTPStatus.METHOD_NOT_ALLOWED)


def internal_error() -> HTTPResponse:
    """
    500 Internal Server Error.

    Used for server-side faults only: failed writes, failed compression,
    and handler crashes. Never carries details of the failure.
    """
    return HTTPResponse(status=HTTPStatus.INTERNAL_SERVER_ERROR)
