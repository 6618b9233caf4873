"""
Request middleware: correlation IDs, access logging, metrics and timeouts.
"""
import asyncio
import time
from typing import Callable, Dict, Any

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response, JSONResponse

from core.config import config
from core.observability import (
    get_logger,
    generate_correlation_id,
    set_correlation_id,
    get_correlation_id,
    metrics,
)

logger = get_logger(__name__)

HEALTH_PATHS = ("/api/health", "/health")

# Dashboard query parameters worth carrying into access logs
LOGGED_PARAMS = {"startDate": "start_date", "endDate": "end_date", "orderType": "order_type"}


def _request_fields(request: Request) -> Dict[str, Any]:
    fields = {"method": request.method, "path": request.url.path}
    for param, key in LOGGED_PARAMS.items():
        if param in request.query_params:
            fields[key] = request.query_params[param]
    return fields


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Tags each request with a correlation ID (client-supplied X-Request-ID
    or a fresh one), echoes it back, and logs and counts the outcome.
    Health checks are counted but not logged.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        correlation_id = request.headers.get("X-Request-ID") or generate_correlation_id()
        set_correlation_id(correlation_id)

        fields = _request_fields(request)
        endpoint = f"{request.method} {request.url.path}"
        quiet = request.url.path in HEALTH_PATHS
        started = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception as e:
            logger.exception(f"Unhandled error in {endpoint}", extra=fields)
            metrics.record_error(type(e).__name__)
            raise

        duration_ms = (time.perf_counter() - started) * 1000
        response.headers["X-Request-ID"] = correlation_id
        response.headers["X-Response-Time"] = f"{duration_ms:.2f}ms"

        metrics.record_request(endpoint)
        metrics.record_timing(endpoint, duration_ms)
        if response.status_code >= 400:
            metrics.record_error(f"HTTP_{response.status_code}")

        if not quiet:
            log = logger.info if response.status_code < 400 else logger.warning
            log(
                f"{endpoint} -> {response.status_code}",
                extra={**fields, "status_code": response.status_code, "duration_ms": round(duration_ms, 2)},
            )
        return response


class RequestTimeoutMiddleware(BaseHTTPMiddleware):
    """
    Answers 504 when a request outlives ``timeout`` seconds (default
    config.web.request_timeout). The in-flight dashboard fan-out is cancelled.
    """

    def __init__(self, app, timeout: float = None):
        super().__init__(app)
        self.timeout = timeout or config.web.request_timeout

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.url.path in HEALTH_PATHS:
            return await call_next(request)

        try:
            return await asyncio.wait_for(call_next(request), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.warning(
                f"Request exceeded {self.timeout}s",
                extra={**_request_fields(request), "timeout": self.timeout},
            )
            metrics.record_error("REQUEST_TIMEOUT")
            return JSONResponse(
                status_code=504,
                content={
                    "error": "Request Timeout",
                    "detail": f"Request exceeded {self.timeout}s timeout",
                    "path": request.url.path,
                    "correlation_id": get_correlation_id(),
                },
            )
