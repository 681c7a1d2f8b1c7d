# ABOUTME: Rate limiting middleware with per-IP sliding window limits
# ABOUTME: Shields the upstream quota from bursts; health and metrics endpoints are exempt

import logging
import time
from collections import deque
from typing import Callable, Deque, Dict, Optional

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from tts_api.middleware.logging import get_client_ip
from tts_api.models.responses import ErrorResponse

logger = logging.getLogger(__name__)

EXEMPT_PATHS = {"/healthz", "/readyz", "/metrics", "/metrics/health"}


class InMemoryRateLimiter:
    """
    In-memory rate limiter using a sliding window.

    State is per process; multiple replicas each enforce their own limit.
    Keys with no requests inside the window are dropped.
    """

    def __init__(self, window_seconds: int = 60):
        self.window_seconds = window_seconds
        self.requests: Dict[str, Deque[float]] = {}
        self._last_sweep = 0.0

    def _prune(self, key: str, window_start: float) -> Optional[Deque[float]]:
        request_times = self.requests.get(key)
        if request_times is None:
            return None
        while request_times and request_times[0] < window_start:
            request_times.popleft()
        if not request_times:
            del self.requests[key]
            return None
        return request_times

    def _sweep(self, now: float) -> None:
        """Drop every key whose requests have all left the window."""
        window_start = now - self.window_seconds
        for key in list(self.requests):
            self._prune(key, window_start)
        self._last_sweep = now

    def is_allowed(self, key: str, limit: int, now: Optional[float] = None) -> bool:
        """
        Record a request for ``key`` if it fits within ``limit`` per window.

        Returns:
            True if request is allowed, False if rate limited
        """
        now = time.time() if now is None else now
        if now - self._last_sweep >= self.window_seconds:
            self._sweep(now)

        request_times = self._prune(key, now - self.window_seconds)
        if request_times is None:
            request_times = self.requests[key] = deque()

        if len(request_times) < limit:
            request_times.append(now)
            return True

        return False

    def get_reset_time(self, key: str) -> Optional[float]:
        """Unix timestamp when the oldest request in the window expires."""
        request_times = self.requests.get(key)
        if not request_times:
            return None
        return request_times[0] + self.window_seconds


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Per-IP rate limiting middleware.
    """

    def __init__(self, app, requests_per_minute: int = 60):
        super().__init__(app)
        self.requests_per_minute = requests_per_minute
        self.rate_limiter = InMemoryRateLimiter(window_seconds=60)

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.url.path in EXEMPT_PATHS or request.method == "OPTIONS":
            return await call_next(request)

        client_ip = get_client_ip(request)
        request_id = getattr(request.state, "request_id", "unknown")
        rate_limit_key = f"ip:{client_ip}"

        if not self.rate_limiter.is_allowed(rate_limit_key, self.requests_per_minute):
            reset_time = self.rate_limiter.get_reset_time(rate_limit_key)
            retry_after = 60
            if reset_time:
                retry_after = max(1, int(reset_time - time.time()))

            logger.warning(
                f"Rate limit exceeded for IP {client_ip}",
                extra={
                    "request_id": request_id,
                    "client_ip": client_ip,
                    "path": request.url.path,
                    "rate_limit": self.requests_per_minute,
                }
            )

            error_response = ErrorResponse(
                code="RATE_LIMIT_EXCEEDED",
                message=f"Rate limit exceeded. Maximum {self.requests_per_minute} requests per minute.",
                details={"limit": self.requests_per_minute, "window": "60 seconds"},
                retry_after_seconds=retry_after,
            )

            return JSONResponse(
                status_code=429,
                content=error_response.to_content(),
                headers={
                    "X-Request-ID": request_id,
                    "X-RateLimit-Limit": str(self.requests_per_minute),
                    "X-RateLimit-Window": "60",
                    "Retry-After": str(retry_after),
                }
            )

        response = await call_next(request)
        response.headers["X-RateLimit-Limit"] = str(self.requests_per_minute)
        response.headers["X-RateLimit-Window"] = "60"
        return response
