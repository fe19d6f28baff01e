"""
=============================================================================
URL ROUTER
=============================================================================

Maps a request path to a handler function. Two kinds of route pattern:

- Static paths:   /            /user-agent        (exact match)
- Wildcard paths: /echo/*text  /files/*name       (prefix match; the rest of
                                                   the path is captured)

=============================================================================
ROUTING FLOW
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │   Incoming Request: GET /echo/abc                                   │
    │        │                                                            │
    │        ▼                                                            │
    │   Registered routes, tried IN REGISTRATION ORDER:                   │
    │     ANY  /               ^/$                                        │
    │     ANY  /echo/*text     ^/echo/(?P<text>.*)$     ← MATCH!          │
    │     ANY  /user-agent     ^/user\\-agent$                            │
    │     GET  /files/*name    ^/files/(?P<name>.*)$                      │
    │     POST /files/*name    ^/files/(?P<name>.*)$                      │
    │        │                                                            │
    │        ▼                                                            │
    │   request.path_params = {"text": "abc"}                             │
    │   echo(request)                                                     │
    └─────────────────────────────────────────────────────────────────────┘

Registration order is priority order: the first route whose pattern and
method both match wins.

    No route matches the path at all        → 404 Not Found
    Path matches, but only for other methods → 405 Method Not Allowed

Paths are matched verbatim. There is no trailing-slash normalization:
"/echo/" matches /echo/*text with text="" while "/echo" matches nothing.

=============================================================================
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Callable, Dict, List, Optional
import logging
import re

from .request import HTTPRequest
from .response import HTTPResponse, method_not_allowed, not_found


logger = logging.getLogger(__name__)


# Handler: takes a request, returns a response
Handler = Callable[[HTTPRequest], HTTPResponse]


class RouteType(Enum):
    """How a route pattern matches."""
    STATIC = "static"       # /user-agent - exact match required
    WILDCARD = "wildcard"   # /files/*name - captures everything remaining


@dataclass
class Route:
    """
    A registered route.

        Route(
            path="/files/*name",     # URL pattern
            method="GET",            # HTTP method filter (None = any)
            handler=files.get,       # Handler function
            type=RouteType.WILDCARD,
            _pattern=<compiled>,     # ^/files/(?P<name>.*)$
            _param_names=["name"],
        )
    """
    path: str
    method: Optional[str]
    handler: Handler
    type: RouteType = RouteType.STATIC

    _pattern: Optional[re.Pattern] = field(default=None, repr=False)
    _param_names: List[str] = field(default_factory=list, repr=False)


@dataclass
class RouteMatch:
    """The matched route plus its wildcard captures."""
    route: Route
    params: Dict[str, str]


class Router:
    """
    HTTP request router.

        router = Router()

        @router.route("/")
        def root(request):
            return ok()

        @router.get("/files/*name")
        def read_file(request):
            name = request.path_params["name"]
            ...
    """

    def __init__(self):
        self._routes: List[Route] = []

    # =========================================================================
    # ROUTE REGISTRATION
    # =========================================================================

    def add_route(
        self,
        path: str,
        handler: Handler,
        method: Optional[str] = None,
    ) -> Route:
        """
        Register a route after all existing ones.

        Args:
            path: URL pattern ("/user-agent" or "/files/*name").
            handler: Function that takes a request and returns a response.
            method: HTTP method ("GET", matched exactly), or None to accept
                    any method.

        Returns:
            The registered Route.
        """
        pattern, param_names = self._compile_pattern(path)

        route = Route(
            path=path,
            method=method,
            handler=handler,
            type=RouteType.WILDCARD if param_names else RouteType.STATIC,
            _pattern=pattern,
            _param_names=param_names,
        )
        self._routes.append(route)
        return route

    def _compile_pattern(self, path: str) -> tuple[re.Pattern, List[str]]:
        """
        Compile a path pattern into a regex.

            "/user-agent"   → ^/user\\-agent$
            "/files/*name"  → ^/files/(?P<name>.*)$
            "/"             → ^/$

        A "*param" segment captures the rest of the path, slashes included,
        and must be the last segment.
        """
        param_names: List[str] = []
        regex_parts = ["^"]

        segments = path.split("/")
        for segment in segments[1:]:
            regex_parts.append("/")

            if segment.startswith("*"):
                param_name = segment[1:] or "wildcard"
                param_names.append(param_name)
                regex_parts.append(f"(?P<{param_name}>.*)")
                break
            regex_parts.append(re.escape(segment))

        if len(segments) == 1:
            # Pattern without any "/" (not a path); match it literally
            regex_parts.append(re.escape(path))

        regex_parts.append("$")
        # DOTALL: a wildcard capture is verbatim, even across a stray "\n"
        return re.compile("".join(regex_parts), re.DOTALL), param_names

    # =========================================================================
    # ROUTE MATCHING
    # =========================================================================

    def match(self, method: str, path: str) -> Optional[RouteMatch]:
        """
        Find the first route matching both method and path.

        Returns:
            RouteMatch if found, None otherwise.
        """
        for route in self._routes:
            if route.method and route.method != method:
                continue

            found = route._pattern.match(path)
            if found:
                return RouteMatch(route=route, params=found.groupdict())

        return None

    def get_allowed_methods(self, path: str) -> List[str]:
        """Methods registered for any route whose pattern matches ``path``."""
        methods = set()
        for route in self._routes:
            if route._pattern.match(path) and route.method:
                methods.add(route.method)
        return sorted(methods)

    def handle(self, request: HTTPRequest) -> HTTPResponse:
        """
        Route a request to its handler.

        The handler receives a copy of the request with ``path_params``
        filled in; the original request is never modified.
        """
        match = self.match(request.method, request.path)
        if match:
            return match.route.handler(replace(request, path_params=match.params))

        if self.get_allowed_methods(request.path):
            return method_not_allowed()

        return not_found()

    # =========================================================================
    # DECORATOR-STYLE ROUTE REGISTRATION
    # =========================================================================

    def route(self, path: str, method: Optional[str] = None) -> Callable[[Handler], Handler]:
        """
        Decorator for registering routes.

        Usage:
            @router.route("/user-agent")
            def user_agent(request):
                ...
        """
        def decorator(handler: Handler) -> Handler:
            self.add_route(path, handler, method)
            return handler
        return decorator

    def get(self, path: str) -> Callable[[Handler], Handler]:
        """Register a GET route."""
        return self.route(path, "GET")

    def post(self, path: str) -> Callable[[Handler], Handler]:
        """Register a POST route."""
        return self.route(path, "POST")

    # =========================================================================
    # UTILITY METHODS
    # =========================================================================

    def routes(self) -> List[Route]:
        """All registered routes, in priority order."""
        return list(self._routes)

    def log_routes(self) -> None:
        """
        Log the routing table at DEBUG level.

        Example output:
            Route: ANY      /
            Route: ANY      /echo/*text
            Route: GET      /files/*name
        """
        for route in self._routes:
            logger.debug(f"Route: {route.method or 'ANY':8} {route.path}")
