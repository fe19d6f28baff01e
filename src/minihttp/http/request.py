"""
=============================================================================
HTTP REQUEST PARSING
=============================================================================

Converts the raw bytes read from a client socket into an HTTPRequest.
No HTTP library is involved: the bytes are split on CRLF and each piece is
handled by a small, pure function.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        Raw request bytes                            │
    │                                                                     │
    │   POST /files/notes.txt HTTP/1.1\r\n      ← request line            │
    │   Host: localhost:4221\r\n                ← header lines            │
    │   Content-Length: 5\r\n                                             │
    │   \r\n                                    ← blank line (boundary)   │
    │   hello                                   ← body                    │
    └─────────────────────────────────────────────────────────────────────┘
                 │
                 │  split on b"\r\n"
                 ▼
    ┌─────────────────────────────────────────────────────────────────────┐
    │  lines[0]   ──► parse_request_line()  ──► method, path, version     │
    │  lines[1:]  ──► parse_headers()       ──► headers, body_start       │
    │  lines[1 + body_start:] ──► CRLF join ──► body                      │
    └─────────────────────────────────────────────────────────────────────┘
                 │
                 ▼
        HTTPRequest(method="POST", path="/files/notes.txt", ...)

=============================================================================
TEXT ENCODING
=============================================================================

The request line and headers are decoded as ISO-8859-1. Every byte maps to
exactly one code point, so decoding never fails and re-encoding a value
(for /echo/ or /user-agent) gives back the exact bytes the client sent.

=============================================================================
BODY EXTRACTION
=============================================================================

The body is everything after the header/body boundary, with the body lines
re-joined by CRLF and trailing NUL bytes removed (padding from fixed-size
client buffers). Two refinements apply:

    Content-Length present:  body is cut to exactly that many bytes. Any
                             surplus belongs to the next request.
    Content-Length absent:   extra blank lines right after the boundary are
                             treated as part of the header terminator.

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from .headers import canonical_header_key, parse_headers


HEADER_ENCODING = "iso-8859-1"

CRLF = b"\r\n"


class HTTPParseError(Exception):
    """
    Raised when an HTTP request cannot be parsed.

    Carries the HTTP status code that should be returned to the client,
    so the connection loop can answer without knowing which check failed.
    """

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


class MalformedRequestLine(HTTPParseError):
    """The request line is not exactly ``METHOD SP PATH SP VERSION``."""


@dataclass(frozen=True)
class HTTPRequest:
    """
    A parsed HTTP request.

    Immutable: built once from the bytes of one request and discarded when
    the handler returns. The router hands wildcard captures to handlers
    through a copy made with dataclasses.replace(), never by mutation.

    Attributes:
        method:         Request method token, exactly as sent ("GET").
        path:           Request target, verbatim. Not URL-decoded and not
                        split at "?"; /echo/a%20b echoes "a%20b".
        version:        Protocol version string ("HTTP/1.1").
        headers:        Canonical header name → trimmed value.
        body:           Raw body bytes (may be empty).
        path_params:    Wildcard captures set by the router.
        client_address: (ip, port) of the peer, for logging.
        raw:            The unparsed request bytes.
    """

    method: str
    path: str
    version: str = "HTTP/1.1"
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    path_params: Dict[str, str] = field(default_factory=dict)
    client_address: Tuple[str, int] = ("", 0)
    raw: bytes = field(default=b"", repr=False)

    def get_header(self, name: str, default: str = "") -> str:
        """
        Get a header value (case-insensitive lookup).

        Example:
            request.get_header("user-agent")  # same as "User-Agent"
        """
        return self.headers.get(canonical_header_key(name), default)

    @property
    def user_agent(self) -> str:
        """The User-Agent header value, or "" when absent."""
        return self.headers.get("User-Agent", "")

    @property
    def accept_encodings(self) -> List[str]:
        """Tokens of the comma-separated Accept-Encoding list."""
        value = self.headers.get("Accept-Encoding", "")
        return [token.strip() for token in value.split(",") if token.strip()]

    @property
    def wants_close(self) -> bool:
        """
        True when the client asked for the connection to be closed.

        Any Connection header containing "close" counts, in any case:
        "close", "Close", "keep-alive, close".
        """
        return "close" in self.headers.get("Connection", "").lower()


def parse_request_line(line: str) -> Tuple[str, str, str]:
    """
    Split a request line into (method, path, version).

    The line is split on single spaces and must produce exactly three
    tokens. That rejects a missing path or version, an empty line, and
    doubled spaces ("GET  / HTTP/1.1" yields an empty token).

    Raises:
        MalformedRequestLine: If the line does not have three tokens.
    """
    parts = line.split(" ")
    if len(parts) != 3:
        raise MalformedRequestLine(f"Invalid request line: {line!r}")
    method, path, version = parts
    return method, path, version


class RequestParser:
    """
    Parses raw request bytes into HTTPRequest objects.

        1. Size check                      → HTTPParseError(400)
        2. Split on CRLF
        3. Request line                    → MalformedRequestLine(400)
        4. Header lines + body boundary    (never fails)
        5. Body bytes
    """

    def __init__(self, max_request_size: int = 10 * 1024 * 1024):
        """
        Args:
            max_request_size: Largest request, in bytes, that will be parsed.
        """
        self.max_request_size = max_request_size

    def parse(
        self,
        data: bytes,
        client_address: Tuple[str, int] = ("", 0),
    ) -> HTTPRequest:
        """
        Parse one request.

        Args:
            data: Raw request bytes, as returned by Connection.read_request().
            client_address: Peer (ip, port) recorded on the request.

        Returns:
            The parsed HTTPRequest.

        Raises:
            HTTPParseError: If the request is too large or its request line
                            is malformed.
        """
        if len(data) > self.max_request_size:
            raise HTTPParseError(f"Request too large: {len(data)} bytes")

        raw_lines = data.split(CRLF)

        method, path, version = parse_request_line(
            raw_lines[0].decode(HEADER_ENCODING)
        )

        # Body lines are decoded too, but parse_headers() stops at the
        # boundary and never looks at them
        header_lines = [line.decode(HEADER_ENCODING) for line in raw_lines[1:]]
        headers, body_start = parse_headers(header_lines)

        body = self._extract_body(raw_lines[1 + body_start:], headers)

        return HTTPRequest(
            method=method,
            path=path,
            version=version,
            headers=headers,
            body=body,
            client_address=client_address,
            raw=data,
        )

    def _extract_body(self, body_lines: List[bytes], headers: Dict[str, str]) -> bytes:
        body = CRLF.join(body_lines)

        content_length = parse_content_length(headers)
        if content_length is not None:
            body = body[:content_length]
        else:
            while body.startswith(CRLF):
                body = body[len(CRLF):]

        return body.rstrip(b"\x00")


def parse_content_length(headers: Dict[str, str]) -> Optional[int]:
    """Content-Length as an int, or None when absent or invalid."""
    value = headers.get("Content-Length")
    if value is None:
        return None
    try:
        length = int(value)
    except ValueError:
        return None
    return length if length >= 0 else None


def parse_request(
    data: bytes,
    client_address: Tuple[str, int] = ("", 0),
    max_size: int = 10 * 1024 * 1024,
) -> HTTPRequest:
    """
    Convenience function to parse an HTTP request in one call.

    Use RequestParser directly to parse many requests with the same limits.
    """
    return RequestParser(max_request_size=max_size).parse(data, client_address)
