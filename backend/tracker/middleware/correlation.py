# backend/tracker/middleware/correlation.py
"""
Request tracing middleware.

Each request gets a correlation id, taken from X-Correlation-ID or
X-Request-ID when the caller sends one and generated otherwise. The id is
stored in the request context (so every log line carries it) and echoed back
in the X-Correlation-ID response header.

    curl -H "X-Correlation-ID: trace-42" http://localhost:8000/dashboard
"""

import logging
import time
import uuid
from collections.abc import Awaitable, Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from tracker.utils.context import clear_correlation_id, clear_user_id, set_correlation_id

logger = logging.getLogger(__name__)

CORRELATION_ID_HEADER = "X-Correlation-ID"
REQUEST_ID_HEADER = "X-Request-ID"


def resolve_correlation_id(request: Request) -> str:
    """First non-empty tracing header, else a fresh UUID4."""
    for header in (CORRELATION_ID_HEADER, REQUEST_ID_HEADER):
        value = request.headers.get(header)
        if value:
            return value
    return str(uuid.uuid4())


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """Bind a correlation id to the request context and log request timing."""

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        correlation_id = resolve_correlation_id(request)
        set_correlation_id(correlation_id)
        started = time.perf_counter()

        try:
            response = await call_next(request)
            response.headers[CORRELATION_ID_HEADER] = correlation_id
            logger.debug(
                f"{request.method} {request.url.path} -> {response.status_code} "
                f"in {(time.perf_counter() - started) * 1000:.1f}ms"
            )
            return response
        finally:
            clear_user_id()
            clear_correlation_id()
