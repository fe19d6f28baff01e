"""
Unit tests for URL router.
"""

import logging
import warnings
from pathlib import Path

from minihttp.http.router import Router, RouteType
from minihttp.http.request import HTTPRequest
from minihttp.http.response import HTTPResponse, ResponseBuilder
from minihttp.http.status_codes import HTTPStatus


def make_request(method: str, path: str) -> HTTPRequest:
    """Helper to create a request for testing."""
    return HTTPRequest(method=method, path=path)


def dummy_handler(request: HTTPRequest) -> HTTPResponse:
    """Echo the path params back so tests can inspect them."""
    return ResponseBuilder().text(repr(sorted(request.path_params.items()))).build()


class TestRouter:
    """Tests for Router class."""

    def test_add_route(self):
        """Test adding routes."""
        router = Router()
        route = router.add_route("/user-agent", dummy_handler, method="GET")

        assert router.routes() == [route]
        assert route.method == "GET"
        assert route.type == RouteType.STATIC

    def test_wildcard_route_type(self):
        route = Router().add_route("/files/*name", dummy_handler)

        assert route.type == RouteType.WILDCARD
        assert route._param_names == ["name"]

    def test_match_static_exactly(self):
        """Static routes match only the exact path."""
        router = Router()
        router.add_route("/", dummy_handler)

        assert router.match("GET", "/") is not None
        assert router.match("GET", "/x") is None
        assert router.match("GET", "") is None

    def test_static_path_is_escaped(self):
        """Regex metacharacters in patterns are literal."""
        router = Router()
        router.add_route("/user.agent", dummy_handler)

        assert router.match("GET", "/user.agent") is not None
        assert router.match("GET", "/userXagent") is None

    def test_wildcard_captures_rest(self):
        """A wildcard captures the remainder, slashes included."""
        router = Router()
        router.add_route("/files/*name", dummy_handler)

        match = router.match("GET", "/files/dir/a.txt")

        assert match.params == {"name": "dir/a.txt"}

    def test_wildcard_empty_capture(self):
        """'/echo/' matches with an empty capture; '/echo' does not match."""
        router = Router()
        router.add_route("/echo/*text", dummy_handler)

        assert router.match("GET", "/echo/").params == {"text": ""}
        assert router.match("GET", "/echo") is None

    def test_method_is_case_sensitive(self):
        """Methods are tokens compared exactly: "get" is not GET."""
        router = Router()
        router.add_route("/files/*name", dummy_handler, method="GET")

        assert router.match("get", "/files/a.txt") is None
        assert router.handle(make_request("get", "/files/a.txt")).status == HTTPStatus.METHOD_NOT_ALLOWED

    def test_first_registered_wins(self):
        router = Router()
        first = router.add_route("/echo/*text", dummy_handler)
        router.add_route("/echo/special", dummy_handler)

        assert router.match("GET", "/echo/special").route is first

    def test_match_with_method(self):
        """Test method-based routing."""
        router = Router()
        router.add_route("/files/*name", dummy_handler, method="GET")
        router.add_route("/files/*name", dummy_handler, method="POST")

        assert router.match("GET", "/files/a").route.method == "GET"
        assert router.match("POST", "/files/a").route.method == "POST"
        assert router.match("PUT", "/files/a") is None

    def test_any_method_route(self):
        router = Router()
        router.add_route("/", dummy_handler)

        assert router.match("DELETE", "/") is not None

    def test_allowed_methods(self):
        router = Router()
        router.add_route("/files/*name", dummy_handler, method="POST")
        router.add_route("/files/*name", dummy_handler, method="GET")

        assert router.get_allowed_methods("/files/a") == ["GET", "POST"]
        assert router.get_allowed_methods("/other") == []


class TestRouterHandle:
    """Tests for Router.handle dispatch."""

    def test_handler_receives_params(self):
        router = Router()
        router.add_route("/echo/*text", dummy_handler)

        response = router.handle(make_request("GET", "/echo/abc"))

        assert response.body == b"[('text', 'abc')]"

    def test_original_request_not_mutated(self):
        router = Router()
        router.add_route("/echo/*text", dummy_handler)
        request = make_request("GET", "/echo/abc")

        router.handle(request)

        assert request.path_params == {}

    def test_not_found(self):
        response = Router().handle(make_request("GET", "/nowhere"))

        assert response.status == HTTPStatus.NOT_FOUND
        assert response.headers == []

    def test_method_not_allowed(self):
        """Known path, unsupported method: bare 405, no Allow header."""
        router = Router()
        router.add_route("/files/*name", dummy_handler, method="GET")

        response = router.handle(make_request("PUT", "/files/a"))

        assert response.to_bytes() == b"HTTP/1.1 405 Method Not Allowed\r\n\r\n"


class TestDecorators:
    """Tests for decorator-style registration."""

    def test_route_decorators(self):
        router = Router()

        @router.get("/files/*name")
        def read(request):
            return dummy_handler(request)

        @router.post("/files/*name")
        def write(request):
            return dummy_handler(request)

        @router.route("/")
        def root(request):
            return dummy_handler(request)

        assert [(r.method, r.path) for r in router.routes()] == [
            ("GET", "/files/*name"),
            ("POST", "/files/*name"),
            (None, "/"),
        ]
        # Decorators return the function unchanged
        assert read(make_request("GET", "/")).status == HTTPStatus.OK

    def test_log_routes(self, caplog):
        router = Router()
        router.add_route("/echo/*text", dummy_handler)

        with caplog.at_level(logging.DEBUG, logger="minihttp.http.router"):
            router.log_routes()

        assert "/echo/*text" in caplog.text


class TestModuleSource:
    def test_compiles_without_warnings(self):
        """Regex examples in the docstrings use valid escapes."""
        from minihttp.http import router as router_module

        source = Path(router_module.__file__).read_text(encoding="utf-8")

        with warnings.catch_warnings():
            warnings.simplefilter("error")
            compile(source, router_module.__file__, "exec")
