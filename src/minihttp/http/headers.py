"""
=============================================================================
HEADER TABLE BUILDER
=============================================================================

Turns the raw lines that follow the request line into a header mapping and
finds where the body begins.

    lines (after the request line)          result
    ─────────────────────────────────       ──────────────────────────────
    0  "Host: localhost:4221"          ──►  {"Host": "localhost:4221",
    1  "user-agent:  curl/8.4.0 "      ──►   "User-Agent": "curl/8.4.0",
    2  "no colon here"                 ──►   (dropped)
    3  ""                              ──►   body_start = 4
    4  "hello"                              }
    ─────────────────────────────────

=============================================================================
CANONICAL HEADER KEYS
=============================================================================

Header names are case-insensitive (RFC 7230 3.2). Rather than lowercasing
every key, names are stored in the conventional MIME capitalization so the
mapping is readable in logs and lookups stay a plain dict access:

    "user-agent"       → "User-Agent"
    "ACCEPT-ENCODING"  → "Accept-Encoding"
    "x-custom-header"  → "X-Custom-Header"

The first letter and every letter that follows a hyphen is upper-cased,
all other letters are lower-cased. A name holding any byte that is not a
legal token character (a space, for example) is returned unchanged, so it
can never collide with a well-formed header.

=============================================================================
LENIENCY
=============================================================================

parse_headers() never raises. A line with no colon is skipped, just like
most production servers tolerate junk in the header block. When a name is
repeated the later value replaces the earlier one.

=============================================================================
"""

from typing import Dict, List, Tuple


# RFC 7230 tchar, minus ALPHA and DIGIT which are checked separately
_TOKEN_SYMBOLS = frozenset("!#$%&'*+-.^_`|~")

_ASCII_CASE_OFFSET = ord("a") - ord("A")


def _is_token_char(char: str) -> bool:
    return (
        "a" <= char <= "z"
        or "A" <= char <= "Z"
        or "0" <= char <= "9"
        or char in _TOKEN_SYMBOLS
    )


def canonical_header_key(name: str) -> str:
    """
    Return the canonical capitalization of a header name.

    Uses an explicit per-character table instead of str.title(), which would
    also capitalize after digits and other symbols ("x-1abc" → "X-1Abc").

    Args:
        name: Header name exactly as received (already trimmed).

    Returns:
        The canonical name, or ``name`` unchanged if it is not a valid token.
    """
    for char in name:
        if not _is_token_char(char):
            return name

    chars = []
    upper = True
    for char in name:
        if upper and "a" <= char <= "z":
            char = chr(ord(char) - _ASCII_CASE_OFFSET)
        elif not upper and "A" <= char <= "Z":
            char = chr(ord(char) + _ASCII_CASE_OFFSET)
        chars.append(char)
        upper = char == "-"
    return "".join(chars)


def parse_headers(lines: List[str]) -> Tuple[Dict[str, str], int]:
    """
    Build the header mapping from the lines after the request line.

    Args:
        lines: Raw header lines, without their CRLF terminators. Lines after
               the first blank line are body lines and are not inspected.

    Returns:
        Tuple of (headers, body_start). ``body_start`` is the index of the
        first line after the blank separator line, or ``len(lines)`` when
        there is no blank line (a request with no body).
    """
    headers: Dict[str, str] = {}

    for index, line in enumerate(lines):
        if line == "":
            return headers, index + 1

        # Split at the FIRST colon only: "Host: example.com:8080"
        name, colon, value = line.partition(":")
        if not colon:
            continue

        headers[canonical_header_key(name.strip())] = value.strip()

    return headers, len(lines)
