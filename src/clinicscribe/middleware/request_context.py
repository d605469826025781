"""
Request ID propagation and request timing for HTTP routes.
"""

import logging
import time
import uuid

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger("clinicscribe.http")

REQUEST_ID_HEADER = "X-Request-ID"


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Bind ``request.state.request_id`` and echo it in the response headers."""

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        request.state.request_id = request_id
        response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = request_id
        return response


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log method, path, status and latency of every request."""

    slow_request_seconds = 1.0

    async def dispatch(self, request: Request, call_next):
        start_time = time.perf_counter()
        response = await call_next(request)
        elapsed = time.perf_counter() - start_time
        latency_ms = round(elapsed * 1000, 2)

        logger.info(
            f"{request.method} {request.url.path} status={response.status_code} "
            f"latency={latency_ms}ms request_id={getattr(request.state, 'request_id', 'unknown')}"
        )
        response.headers["X-Process-Time"] = str(latency_ms)
        if elapsed > self.slow_request_seconds:
            logger.warning(f"SLOW_REQUEST: {request.method} {request.url.path} latency={latency_ms}ms")
        return response
