# ABOUTME: Monitoring middleware for request tracking and metrics collection
# ABOUTME: Instruments every request with duration, status and error metrics
import time
import logging
from typing import Callable

from fastapi import FastAPI, Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from .metrics import PrometheusMetrics

logger = logging.getLogger(__name__)


class MonitoringMiddleware(BaseHTTPMiddleware):
    """
    Middleware for automatic request monitoring and metrics collection.
    """

    def __init__(self, app: ASGIApp):
        super().__init__(app)
        self.metrics = PrometheusMetrics()

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        # Skip metrics collection for the metrics endpoint itself
        if request.url.path == "/metrics":
            return await call_next(request)

        start_time = time.time()
        method = request.method
        path = request.url.path
        status_code = 500  # Default to error in case of exception

        try:
            response = await call_next(request)
            status_code = response.status_code
            response.headers["X-Process-Time"] = str(round(time.time() - start_time, 4))
            return response

        except Exception as e:
            logger.error(f"Request failed: {e}")
            self.metrics.record_error(type(e).__name__, f"{method} {path}")
            raise

        finally:
            duration = time.time() - start_time
            self.metrics.record_request(method, path, status_code)
            self.metrics.record_request_duration(method, path, status_code, duration)


def add_monitoring_middleware(app: FastAPI) -> None:
    """
    Add monitoring middleware to FastAPI app.
    """
    app.add_middleware(MonitoringMiddleware)
