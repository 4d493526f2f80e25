"""Request logging middleware with correlation ID propagation.

- Reads X-Correlation-ID from the request, or generates one
- Binds it to the request's context so every pipeline log line carries it
- Echoes it on the response
- Logs request start and completion with timing

Usage:
    app.add_middleware(LoggingMiddleware)
"""

import time
from typing import Awaitable, Callable

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from esg_registry.infrastructure.observability.correlation import (
    correlation_scope,
)

CORRELATION_HEADER = "X-Correlation-ID"


class LoggingMiddleware(BaseHTTPMiddleware):
    """Binds a correlation ID per request and logs the request lifecycle."""

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        with correlation_scope(request.headers.get(CORRELATION_HEADER)) as correlation_id:
            log = structlog.get_logger().bind(
                correlation_id=correlation_id,
                method=request.method,
                path=request.url.path,
                participant_header=request.headers.get("X-Participant-Id"),
            )
            log.info("request_started")
            started = time.perf_counter()
            try:
                response = await call_next(request)
            except Exception as exc:
                log.exception(
                    "request_failed",
                    duration_ms=round((time.perf_counter() - started) * 1000, 2),
                    error_type=type(exc).__name__,
                )
                raise

            log.info(
                "request_completed",
                status_code=response.status_code,
                duration_ms=round((time.perf_counter() - started) * 1000, 2),
            )
            response.headers[CORRELATION_HEADER] = correlation_id
            return response
