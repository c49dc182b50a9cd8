"""
Custom middleware for the application.
"""

import time
import uuid
from typing import Callable

import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from filegate.core.context import clear_request_context, set_request_context
from filegate.core.metrics import (
    http_request_duration_seconds,
    http_requests_in_progress,
    http_requests_total,
)

logger = structlog.get_logger(__name__)

CORRELATION_HEADER = "X-Correlation-ID"


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """
    Propagates or generates the X-Correlation-ID header.

    Sets:
    - request.state.correlation_id
    - Context variable for structured logging
    - Response header echoing the ID
    - Request timing
    """

    async def dispatch(
        self,
        request: Request,
        call_next: Callable,
    ) -> Response:
        correlation_id = request.headers.get(CORRELATION_HEADER, "").strip()
        if not correlation_id:
            correlation_id = str(uuid.uuid4())

        request.state.correlation_id = correlation_id
        set_request_context(correlation_id=correlation_id)

        start_time = time.time()

        logger.info(
            "request_started",
            method=request.method,
            path=request.url.path,
            client_host=request.client.host if request.client else None,
        )

        try:
            response = await call_next(request)

            duration_ms = round((time.time() - start_time) * 1000, 2)

            response.headers[CORRELATION_HEADER] = correlation_id
            response.headers["X-Process-Time"] = str(duration_ms)

            logger.info(
                "request_completed",
                method=request.method,
                path=request.url.path,
                status_code=response.status_code,
                duration_ms=duration_ms,
            )

            return response

        except Exception as e:
            duration_ms = round((time.time() - start_time) * 1000, 2)

            logger.error(
                "request_failed",
                method=request.method,
                path=request.url.path,
                duration_ms=duration_ms,
                error=str(e),
                exc_info=True,
            )
            raise

        finally:
            clear_request_context()


async def track_http_metrics(request: Request, call_next: Callable):
    """
    Middleware to track HTTP metrics.

    Records:
    - Request count by route and status
    - Request duration histogram
    - Requests in progress gauge
    """
    # Route template keeps container and file names out of label cardinality
    route = request.scope.get("route")
    endpoint = getattr(route, "path", None) or request.url.path
    method = request.method

    http_requests_in_progress.labels(method=method).inc()

    start_time = time.time()

    try:
        response = await call_next(request)

        route = request.scope.get("route")
        endpoint = getattr(route, "path", None) or endpoint

        http_request_duration_seconds.labels(
            method=method,
            endpoint=endpoint,
        ).observe(time.time() - start_time)

        http_requests_total.labels(
            method=method,
            endpoint=endpoint,
            status_code=response.status_code,
        ).inc()

        return response

    finally:
        http_requests_in_progress.labels(method=method).dec()
