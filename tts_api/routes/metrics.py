# ABOUTME: Metrics endpoint for Prometheus scraping in text exposition format
# ABOUTME: Provides /metrics for scraping and /metrics/health for a quick summary
import logging
from fastapi import APIRouter, Response
from prometheus_client import REGISTRY, CONTENT_TYPE_LATEST, generate_latest

from tts_api.monitoring.metrics import PrometheusMetrics

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/metrics", response_class=Response)
async def get_metrics():
    """
    Prometheus metrics endpoint.

    Returns all registered metrics in Prometheus exposition format.
    """
    try:
        return Response(content=generate_latest(REGISTRY), media_type=CONTENT_TYPE_LATEST)
    except Exception as e:
        logger.error(f"Error generating metrics: {e}")
        return Response(
            content="# Error generating metrics\n",
            media_type=CONTENT_TYPE_LATEST,
            status_code=500
        )


@router.get("/metrics/health")
async def get_metrics_health():
    """Summary of the metrics collection system."""
    metrics = PrometheusMetrics()
    return {
        "status": "ok",
        "metrics_initialized": hasattr(metrics, '_initialized'),
        "metrics_summary": metrics.get_metrics_summary(),
    }
