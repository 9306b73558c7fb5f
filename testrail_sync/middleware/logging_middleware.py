"""
Request/Response Logging Middleware
Logs API calls with timing, so slow TestRail syncs show up in the logs.
"""

import time
import logging
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)

QUIET_PATHS = ("/api/health", "/docs", "/redoc", "/openapi.json")


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Logs each request with method, path, status code and duration.
    Health and documentation endpoints are not logged.
    """

    async def dispatch(self, request: Request, call_next):
        if request.url.path in QUIET_PATHS:
            return await call_next(request)

        start_time = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception as e:
            elapsed = time.perf_counter() - start_time
            logger.error(f"{request.method} {request.url.path} failed after {elapsed:.3f}s: {e}")
            raise

        elapsed = time.perf_counter() - start_time
        logger.info(
            f"{request.method} {request.url.path} [{response.status_code}] in {elapsed:.3f}s"
        )
        response.headers["X-Process-Time"] = f"{elapsed:.3f}"
        return response
