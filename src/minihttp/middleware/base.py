"""
=============================================================================
BASE MIDDLEWARE INTERFACE
=============================================================================

Middleware wraps the router. Each one sees the request on the way in and
the response on the way out, and may answer on its own without calling the
next layer.

    ┌─────────────────────────────────────────────────────────────────────┐
    │   request ──► LoggingMiddleware ──► ... ──► Router.handle           │
    │                                                  │                  │
    │   response ◄── LoggingMiddleware ◄── ... ◄───────┘                  │
    └─────────────────────────────────────────────────────────────────────┘

Middleware only ever sees parsed requests. Requests that fail to parse are
answered by the connection loop and never enter the pipeline.

=============================================================================
"""

from abc import ABC, abstractmethod
from typing import Callable, Iterator, List
import logging

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse


logger = logging.getLogger(__name__)


# The next middleware, or the router at the end of the chain
NextHandler = Callable[[HTTPRequest], HTTPResponse]


class Middleware(ABC):
    """
    Abstract base class for middleware.

        class Timing(Middleware):
            def __call__(self, request, next):
                start = time.time()
                response = next(request)     # continue the chain
                logger.info(f"{request.path}: {time.time() - start:.3f}s")
                return response
    """

    @abstractmethod
    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        """
        Process the request.

        Args:
            request: The parsed request.
            next: The rest of the chain. Call it to continue.

        Returns:
            The response from ``next`` or a short-circuit response.
        """

    @property
    def name(self) -> str:
        return self.__class__.__name__


class MiddlewarePipeline:
    """
    Ordered middleware, composed around a final handler.

        pipeline = MiddlewarePipeline()
        pipeline.add(LoggingMiddleware())   # first added = outermost
        handler = pipeline.wrap(router.handle)
        response = handler(request)
    """

    def __init__(self):
        self._middleware: List[Middleware] = []

    def add(self, middleware: Middleware) -> "MiddlewarePipeline":
        """Append middleware (runs after, i.e. inside, those already added)."""
        self._middleware.append(middleware)
        logger.debug(f"Added middleware: {middleware.name}")
        return self

    def use(self, *middleware: Middleware) -> "MiddlewarePipeline":
        """Add several middleware at once."""
        for mw in middleware:
            self.add(mw)
        return self

    def wrap(self, handler: NextHandler) -> NextHandler:
        """
        Build the chain around ``handler``.

        Given [MW1, MW2] the result calls MW1 → MW2 → handler. Wrapping
        happens in reverse so the first-added middleware ends up outermost.
        """
        current = handler
        for middleware in reversed(self._middleware):
            current = self._create_wrapped_handler(middleware, current)
        return current

    def _create_wrapped_handler(
        self,
        middleware: Middleware,
        next_handler: NextHandler,
    ) -> NextHandler:
        def wrapped(request: HTTPRequest) -> HTTPResponse:
            return middleware(request, next_handler)
        return wrapped

    def __len__(self) -> int:
        return len(self._middleware)

    def __iter__(self) -> Iterator[Middleware]:
        return iter(self._middleware)
