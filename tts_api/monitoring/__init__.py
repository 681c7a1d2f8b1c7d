# ABOUTME: Monitoring package initialization
# ABOUTME: Exports the metrics registry wrapper and the monitoring middleware hook
from .metrics import PrometheusMetrics
from .middleware import MonitoringMiddleware, add_monitoring_middleware

__all__ = ["PrometheusMetrics", "MonitoringMiddleware", "add_monitoring_middleware"]
