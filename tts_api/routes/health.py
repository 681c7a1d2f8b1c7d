# ABOUTME: Health check API routes
# ABOUTME: Implements /healthz and /readyz endpoints for service monitoring
from fastapi import APIRouter, Depends

from tts_api.core.speech_service import SpeechService
from tts_api.dependencies import get_speech_service
from tts_api.models.responses import HealthStatus, ReadinessStatus

router = APIRouter()


@router.get("/healthz", response_model=HealthStatus)
async def health_check():
    """
    Basic health check - service is running
    """
    return HealthStatus(status="ok")


@router.get("/readyz", response_model=ReadinessStatus)
async def readiness_check(
    speech_service: SpeechService = Depends(get_speech_service)
):
    """
    Readiness check - an upstream API key is configured
    """
    ready = speech_service.ready()
    return ReadinessStatus(
        ready=ready,
        api_key_configured=ready,
        default_model=speech_service.catalog.default_model,
    )
