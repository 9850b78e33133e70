"""
Request logging middleware.

Binds a request id to the logging context for the lifetime of the request,
logs start and completion (with the acting principal, once known) and
echoes the id back in the ``X-Request-ID`` header. A well-formed inbound
``X-Request-ID`` is reused so ids can be correlated across services.

Middleware order in main.py: CORS is added first, LoggingMiddleware last,
so LoggingMiddleware runs outermost.
"""

import logging
import re
import time
import uuid
from typing import Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from core.logging_config import bind_request, clear_request_context

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
_REQUEST_ID_PATTERN = re.compile(r"^[A-Za-z0-9._-]{1,64}$")


def resolve_request_id(request: Request) -> str:
    inbound = request.headers.get(REQUEST_ID_HEADER)
    if inbound and _REQUEST_ID_PATTERN.match(inbound):
        return inbound
    return uuid.uuid4().hex[:8]


class LoggingMiddleware(BaseHTTPMiddleware):
    """
    Per-request logging.

    Completion is logged at WARNING for 4xx/5xx so authorization denials and
    conflicts stand out. Query strings are logged, headers are not.
    """

    QUIET_PATHS = frozenset({"/health", "/ready", "/docs", "/redoc", "/openapi.json"})

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = resolve_request_id(request)
        bind_request(request_id)
        path = request.url.path
        quiet = path in self.QUIET_PATHS
        started = time.perf_counter()

        if not quiet:
            logger.info(
                "Request started",
                extra={"method": request.method, "path": path, "query": str(request.query_params) or None}
            )

        try:
            response = await call_next(request)
        except Exception as e:
            logger.exception(
                "Request failed with exception",
                extra={"method": request.method, "path": path, "error": str(e)}
            )
            clear_request_context()
            raise

        if not quiet:
            logger.log(
                logging.WARNING if response.status_code >= 400 else logging.INFO,
                "Request completed",
                extra={
                    "method": request.method,
                    "path": path,
                    "status_code": response.status_code,
                    "duration_ms": round((time.perf_counter() - started) * 1000, 2),
                    "principal_id": getattr(request.state, "principal_id", None),
                }
            )

        clear_request_context()
        response.headers[REQUEST_ID_HEADER] = request_id
        return response
