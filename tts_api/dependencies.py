# ABOUTME: Dependency injection functions for FastAPI
# ABOUTME: Provides the SpeechService singleton and the optional shared-secret check
import hmac
from typing import Optional

from fastapi import Header

from tts_api.config import get_settings
from tts_api.core.speech_service import SpeechService
from tts_api.models.errors import UnauthorizedError


def get_speech_service() -> SpeechService:
    """Dependency injection function for SpeechService"""
    return SpeechService.instance()


def require_shared_secret(x_tts_secret: Optional[str] = Header(None)) -> None:
    """Reject the call unless X-TTS-Secret matches TTS_SHARED_SECRET (when configured)."""
    expected = get_settings().shared_secret
    if expected is None:
        return
    if not x_tts_secret or not hmac.compare_digest(x_tts_secret.encode(), expected.encode()):
        raise UnauthorizedError("Missing or invalid shared secret")
