# ABOUTME: Request/response logging middleware with correlation IDs
# ABOUTME: Assigns or propagates X-Request-ID and logs timing and status for every HTTP request

import logging
import time
import uuid
from typing import Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from tts_api.logging_config import request_id_context

logger = logging.getLogger("tts_api.requests")


def get_client_ip(request: Request) -> str:
    """
    Extract client IP address from request.

    Checks X-Forwarded-For and X-Real-IP before the direct peer address.
    """
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        # Take the first IP in case of multiple proxies
        return forwarded_for.split(",")[0].strip()

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip.strip()

    return request.client.host if request.client else "unknown"


def get_log_level(status_code: int) -> int:
    """Map an HTTP status code to a logging level."""
    if status_code < 400:
        return logging.INFO
    if status_code < 500:
        return logging.WARNING
    return logging.ERROR


class LoggingMiddleware(BaseHTTPMiddleware):
    """
    Middleware for request/response logging.

    Every request gets a request ID (taken from X-Request-ID or generated),
    stored on request.state, bound into the structlog context and echoed in
    the response headers.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id

        start_time = time.time()
        client_ip = get_client_ip(request)

        with request_id_context(request_id):
            logger.info(
                "Request started",
                extra={
                    "event": "request_start",
                    "request_id": request_id,
                    "method": request.method,
                    "path": request.url.path,
                    "client_ip": client_ip,
                    "user_agent": request.headers.get("User-Agent", "unknown"),
                    "content_length": request.headers.get("Content-Length"),
                }
            )

            try:
                response = await call_next(request)
            except Exception as e:
                duration_ms = (time.time() - start_time) * 1000
                logger.error(
                    "Request failed with exception",
                    extra={
                        "event": "request_error",
                        "request_id": request_id,
                        "method": request.method,
                        "path": request.url.path,
                        "duration_ms": round(duration_ms, 2),
                        "client_ip": client_ip,
                        "error": str(e),
                        "error_type": type(e).__name__,
                    }
                )
                raise

            duration_ms = (time.time() - start_time) * 1000
            logger.log(
                get_log_level(response.status_code),
                "Request completed",
                extra={
                    "event": "request_complete",
                    "request_id": request_id,
                    "method": request.method,
                    "path": request.url.path,
                    "status_code": response.status_code,
                    "duration_ms": round(duration_ms, 2),
                    "client_ip": client_ip,
                    "model_used": getattr(request.state, "model_used", None),
                }
            )

        if "X-Request-ID" not in response.headers:
            response.headers["X-Request-ID"] = request_id

        return response
