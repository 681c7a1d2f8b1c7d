# ABOUTME: Prometheus metrics collection for the Gemini TTS gateway
# ABOUTME: Defines counters and histograms for requests, upstream attempts, fallbacks and errors
import logging
from typing import Optional, Dict, Any
from threading import Lock

from prometheus_client import (
    Counter,
    Histogram,
    REGISTRY
)

logger = logging.getLogger(__name__)


class PrometheusMetrics:
    """
    Singleton class for managing Prometheus metrics for the TTS gateway.

    Provides thread-safe access to all metrics and ensures consistent labeling
    across the application.
    """

    _instance: Optional['PrometheusMetrics'] = None
    _lock = Lock()

    def __new__(cls) -> 'PrometheusMetrics':
        """Ensure singleton pattern"""
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self):
        """Initialize Prometheus metrics"""
        # Prevent re-initialization
        if hasattr(self, '_initialized'):
            return

        try:
            # Request metrics
            self.requests_total = Counter(
                'tts_requests_total',
                'Total number of requests processed by the TTS gateway',
                ['route', 'status'],
                registry=REGISTRY
            )

            self.request_duration_seconds = Histogram(
                'tts_request_duration_seconds',
                'Request duration in seconds',
                ['route', 'status'],
                buckets=(0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 25.0, 50.0, 75.0, 100.0, float('inf')),
                registry=REGISTRY
            )

            # Upstream metrics
            self.upstream_attempts_total = Counter(
                'tts_upstream_attempts_total',
                'Upstream generateContent attempts by model and outcome',
                ['model', 'outcome'],
                registry=REGISTRY
            )

            self.model_fallbacks_total = Counter(
                'tts_model_fallbacks_total',
                'Number of times a model exhausted its retries and the next candidate was tried',
                ['from_model'],
                registry=REGISTRY
            )

            self.synthesis_total = Counter(
                'tts_synthesis_total',
                'Completed synthesis orchestrations by outcome and model used',
                ['outcome', 'model'],
                registry=REGISTRY
            )

            # Error metrics
            self.errors_total = Counter(
                'tts_errors_total',
                'Total number of errors by type',
                ['error_type', 'route'],
                registry=REGISTRY
            )

            self._initialized = True
            logger.info("Prometheus metrics initialized successfully")

        except Exception as e:
            logger.error(f"Failed to initialize Prometheus metrics: {e}")
            raise

    @classmethod
    def _reset_instance(cls):
        """Reset singleton instance for testing purposes only."""
        cls._instance = None

    def record_request(self, method: str, path: str, status_code: int) -> None:
        """Record a completed request"""
        try:
            self.requests_total.labels(route=f"{method} {path}", status=str(status_code)).inc()
        except Exception as e:
            logger.error(f"Error recording request metric: {e}")

    def record_request_duration(self, method: str, path: str, status_code: int, duration: float) -> None:
        """Record request duration manually"""
        try:
            self.request_duration_seconds.labels(
                route=f"{method} {path}",
                status=str(status_code)
            ).observe(duration)
        except Exception as e:
            logger.error(f"Error recording request duration: {e}")

    def record_upstream_attempt(self, model: str, outcome: str) -> None:
        try:
            self.upstream_attempts_total.labels(model=model, outcome=outcome).inc()
        except Exception as e:
            logger.error(f"Error recording upstream attempt: {e}")

    def record_fallback(self, from_model: str) -> None:
        try:
            self.model_fallbacks_total.labels(from_model=from_model).inc()
        except Exception as e:
            logger.error(f"Error recording model fallback: {e}")

    def record_synthesis(self, outcome: str, model: str = "none") -> None:
        try:
            self.synthesis_total.labels(outcome=outcome, model=model).inc()
        except Exception as e:
            logger.error(f"Error recording synthesis outcome: {e}")

    def record_error(self, error_type: str, route: str = "unknown") -> None:
        """Record an error occurrence"""
        try:
            self.errors_total.labels(error_type=error_type, route=route).inc()
        except Exception as e:
            logger.error(f"Error recording error metric: {e}")

    def get_metrics_summary(self) -> Dict[str, Any]:
        """Get a summary of current metric values for debugging"""
        try:
            def total(counter) -> float:
                return sum(
                    sample.value for metric in counter.collect() for sample in metric.samples
                    if sample.name.endswith('_total')
                )

            return {
                "total_requests": total(self.requests_total),
                "upstream_attempts": total(self.upstream_attempts_total),
                "model_fallbacks": total(self.model_fallbacks_total),
            }
        except Exception as e:
            logger.error(f"Error getting metrics summary: {e}")
            return {"error": str(e)}
