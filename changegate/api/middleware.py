"""Request logging middleware.

Logs one line per API call with the method, path, status, duration, client
address and a short request ID. The request ID is echoed back in the
``X-Request-ID`` header so a client report can be matched to the log.
"""

import logging
import time
import uuid
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)

# Health checks and docs are not worth a log line each
EXCLUDED_PATHS = {
    "/health",
    "/health/ready",
    "/docs",
    "/redoc",
    "/openapi.json",
    "/favicon.ico",
}


def get_client_ip(request: Request) -> str:
    """Client address, preferring proxy headers."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()

    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip

    if request.client:
        return request.client.host
    return "unknown"


def level_for(status_code: int) -> int:
    if status_code >= 500:
        return logging.ERROR
    if status_code >= 400:
        return logging.WARNING
    return logging.INFO


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Logs every API request that is not a health check or docs page."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.url.path in EXCLUDED_PATHS:
            return await call_next(request)

        request_id = request.headers.get("x-request-id") or uuid.uuid4().hex[:8]
        start_time = time.perf_counter()

        response = await call_next(request)

        duration_ms = (time.perf_counter() - start_time) * 1000
        query = f"?{request.url.query}" if request.url.query else ""
        logger.log(
            level_for(response.status_code),
            f"[{request_id}] {request.method} {request.url.path}{query} -> "
            f"{response.status_code} ({duration_ms:.1f} ms) from {get_client_ip(request)}",
        )

        response.headers["X-Request-ID"] = request_id
        return response
