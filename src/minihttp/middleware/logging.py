"""
=============================================================================
ACCESS LOG MIDDLEWARE
=============================================================================

One log line per routed request, on the "minihttp.access" logger:

    TEXT (Apache style, default):
        127.0.0.1 - - [19/Oct/2026:10:15:32 +0000] "GET /echo/abc" 200 3 0.41ms

    JSON (for log shippers):
        {"method": "GET", "path": "/echo/abc", "client_ip": "127.0.0.1",
         "user_agent": "curl/8.4.0", "status_code": 200,
         "content_length": 3, "duration_ms": 0.41, "timestamp": "..."}

The access logger can be routed on its own, e.g.:

    logging.getLogger("minihttp.access").addHandler(file_handler)

Server errors (5xx) are logged at WARNING, everything else at the
configured level. The response itself is never modified.

=============================================================================
"""

import time
import json
import logging
from dataclasses import dataclass

from .base import Middleware, NextHandler
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse


logger = logging.getLogger("minihttp.access")


@dataclass
class RequestLog:
    """One access log entry."""

    method: str
    path: str
    client_ip: str
    user_agent: str
    status_code: int
    content_length: int
    duration_ms: float
    timestamp: str

    def to_dict(self) -> dict:
        return {
            "method": self.method,
            "path": self.path,
            "client_ip": self.client_ip,
            "user_agent": self.user_agent,
            "status_code": self.status_code,
            "content_length": self.content_length,
            "duration_ms": round(self.duration_ms, 2),
            "timestamp": self.timestamp,
        }

    def to_text(self) -> str:
        return (
            f'{self.client_ip} - - [{self.timestamp}] '
            f'"{self.method} {self.path}" {self.status_code} '
            f'{self.content_length} {self.duration_ms:.2f}ms'
        )


class LoggingMiddleware(Middleware):
    """
    Access logging with request timing.

    Add it first so its timing covers every other middleware:

        pipeline.add(LoggingMiddleware(log_format="json"))
    """

    def __init__(
        self,
        log_format: str = "text",
        log_level: int = logging.INFO,
    ):
        """
        Args:
            log_format: "text" (Apache style) or "json".
            log_level: Level for non-5xx entries.
        """
        self.log_format = log_format
        self.log_level = log_level

    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        start_time = time.time()

        try:
            response = next(request)
        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            logger.error(
                f"Request failed: {request.method} {request.path} "
                f"- {type(e).__name__}: {e} ({duration_ms:.2f}ms)"
            )
            raise

        duration_ms = (time.time() - start_time) * 1000

        log_entry = RequestLog(
            method=request.method,
            path=request.path,
            client_ip=request.client_address[0],
            user_agent=request.user_agent or "-",
            status_code=int(response.status),
            content_length=len(response.body),
            duration_ms=duration_ms,
            timestamp=time.strftime("%d/%b/%Y:%H:%M:%S %z"),
        )

        level = logging.WARNING if response.status.is_server_error else self.log_level

        if self.log_format == "json":
            logger.log(level, json.dumps(log_entry.to_dict()))
        else:
            logger.log(level, log_entry.to_text())

        return response
