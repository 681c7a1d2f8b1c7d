# ABOUTME: Request timeout middleware bounding the total wall-clock time of one invocation
# ABOUTME: Covers all upstream retries and backoff sleeps of a synthesis request; health checks exempt

import asyncio
import logging
from typing import Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from tts_api.models.responses import ErrorResponse

logger = logging.getLogger(__name__)


class TimeoutMiddleware(BaseHTTPMiddleware):
    """
    Middleware to enforce a hard per-request timeout.
    """

    def __init__(self, app, timeout_seconds: float = 120.0):
        super().__init__(app)
        self.timeout_seconds = timeout_seconds
        self.exempt_paths = {"/healthz", "/readyz"}

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.url.path in self.exempt_paths:
            return await call_next(request)

        request_id = (
            getattr(request.state, "request_id", None)
            or request.headers.get("X-Request-ID")
            or "unknown"
        )

        try:
            return await asyncio.wait_for(call_next(request), timeout=self.timeout_seconds)
        except asyncio.TimeoutError:
            logger.warning(
                f"Request timeout after {self.timeout_seconds}s",
                extra={
                    "request_id": request_id,
                    "method": request.method,
                    "path": request.url.path,
                    "timeout_seconds": self.timeout_seconds
                }
            )

            error_response = ErrorResponse(
                code="REQUEST_TIMEOUT",
                message=f"Request timed out after {self.timeout_seconds} seconds"
            )

            return JSONResponse(
                status_code=408,
                content=error_response.to_content(),
                headers={"X-Request-ID": request_id}
            )
