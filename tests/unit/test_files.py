"""
Unit tests for the path resolver and the file handler.
"""

import logging
import os
from pathlib import Path

import pytest

from minihttp.handlers.files import FileHandler, PathTraversalError, resolve_path
from minihttp.http.request import HTTPRequest
from minihttp.http.status_codes import HTTPStatus


def file_request(method: str, name: str, body: bytes = b"") -> HTTPRequest:
    """A request as the router hands it to the file handler."""
    return HTTPRequest(
        method=method,
        path=f"/files/{name}",
        body=body,
        path_params={"name": name},
        client_address=("127.0.0.1", 50000),
    )


class TestResolvePath:
    """Tests for resolve_path()."""

    def test_plain_name(self, tmp_path: Path):
        assert resolve_path(tmp_path, "a.txt") == tmp_path.resolve() / "a.txt"

    def test_nested_name(self, tmp_path: Path):
        assert resolve_path(tmp_path, "sub/a.txt") == tmp_path.resolve() / "sub" / "a.txt"

    def test_dot_segments_inside_base(self, tmp_path: Path):
        assert resolve_path(tmp_path, "sub/../a.txt") == tmp_path.resolve() / "a.txt"

    def test_base_itself_allowed(self, tmp_path: Path):
        assert resolve_path(tmp_path, "") == tmp_path.resolve()
        assert resolve_path(tmp_path, ".") == tmp_path.resolve()

    def test_leading_slash_stripped(self, tmp_path: Path):
        """An absolute-looking name stays under the base."""
        assert resolve_path(tmp_path, "/etc/passwd") == tmp_path.resolve() / "etc" / "passwd"

    def test_parent_escape_rejected(self, tmp_path: Path):
        with pytest.raises(PathTraversalError):
            resolve_path(tmp_path, "../../etc/passwd")

    def test_sibling_prefix_rejected(self, tmp_path: Path):
        """'/x/ab' shares the string prefix '/x/a' but is not inside it."""
        base = tmp_path / "a"
        base.mkdir()
        (tmp_path / "ab").mkdir()

        with pytest.raises(PathTraversalError):
            resolve_path(base, "../ab/secret.txt")

    def test_nul_rejected(self, tmp_path: Path):
        with pytest.raises(PathTraversalError):
            resolve_path(tmp_path, "a\x00.txt")

    def test_encoded_dots_are_literal(self, tmp_path: Path):
        """No URL decoding: '%2e%2e' is an ordinary name."""
        assert resolve_path(tmp_path, "%2e%2e/x") == tmp_path.resolve() / "%2e%2e" / "x"

    @pytest.mark.skipif(not hasattr(os, "symlink"), reason="symlinks unavailable")
    def test_symlink_escape_rejected(self, tmp_path: Path):
        base = tmp_path / "served"
        outside = tmp_path / "outside"
        base.mkdir()
        outside.mkdir()
        (base / "link").symlink_to(outside, target_is_directory=True)

        with pytest.raises(PathTraversalError):
            resolve_path(base, "link/secret.txt")


class TestFileHandlerGet:
    """Tests for GET /files/*name."""

    def test_existing_file(self, tmp_path: Path):
        (tmp_path / "a.bin").write_bytes(b"\x00\x01binary")

        response = FileHandler(str(tmp_path)).get(file_request("GET", "a.bin"))

        assert response.status == HTTPStatus.OK
        assert response.headers == [
            ("Content-Type", "application/octet-stream"),
            ("Content-Length", "8"),
        ]
        assert response.body == b"\x00\x01binary"

    def test_missing_file(self, tmp_path: Path):
        response = FileHandler(str(tmp_path)).get(file_request("GET", "missing.txt"))

        assert response.to_bytes() == b"HTTP/1.1 404 Not Found\r\n\r\n"

    def test_directory_is_not_found(self, tmp_path: Path):
        (tmp_path / "sub").mkdir()

        response = FileHandler(str(tmp_path)).get(file_request("GET", "sub"))

        assert response.status == HTTPStatus.NOT_FOUND

    def test_traversal_forbidden_and_logged(self, tmp_path: Path, caplog):
        handler = FileHandler(str(tmp_path))

        with caplog.at_level(logging.WARNING, logger="minihttp.handlers.files"):
            response = handler.get(file_request("GET", "../../etc/passwd"))

        assert response.to_bytes() == b"HTTP/1.1 403 Forbidden\r\n\r\n"
        assert "Path traversal attempt" in caplog.text


class TestFileHandlerPost:
    """Tests for POST /files/*name."""

    def test_creates_file(self, tmp_path: Path):
        response = FileHandler(str(tmp_path)).post(file_request("POST", "new.txt", b"hello"))

        assert response.to_bytes() == b"HTTP/1.1 201 Created\r\n\r\n"
        assert (tmp_path / "new.txt").read_bytes() == b"hello"

    def test_truncates_existing(self, tmp_path: Path):
        (tmp_path / "f.txt").write_bytes(b"a much longer old content")

        FileHandler(str(tmp_path)).post(file_request("POST", "f.txt", b"new"))

        assert (tmp_path / "f.txt").read_bytes() == b"new"

    def test_empty_body(self, tmp_path: Path):
        FileHandler(str(tmp_path)).post(file_request("POST", "empty.txt"))

        assert (tmp_path / "empty.txt").read_bytes() == b""

    def test_missing_parent_is_server_error(self, tmp_path: Path):
        response = FileHandler(str(tmp_path)).post(
            file_request("POST", "no/such/dir/x.txt", b"data")
        )

        assert response.status == HTTPStatus.INTERNAL_SERVER_ERROR

    def test_traversal_writes_nothing(self, tmp_path: Path):
        base = tmp_path / "served"
        base.mkdir()

        response = FileHandler(str(base)).post(file_request("POST", "../evil.txt", b"x"))

        assert response.status == HTTPStatus.FORBIDDEN
        assert not (tmp_path / "evil.txt").exists()


class TestFileHandlerInit:
    """Tests for FileHandler construction."""

    def test_default_is_cwd(self, tmp_path: Path, monkeypatch):
        monkeypatch.chdir(tmp_path)

        assert FileHandler().root_dir == tmp_path.resolve()
        assert FileHandler("").root_dir == tmp_path.resolve()

    def test_missing_directory(self, tmp_path: Path):
        with pytest.raises(ValueError):
            FileHandler(str(tmp_path / "nope"))
