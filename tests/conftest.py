# ABOUTME: Pytest configuration and shared fixtures
# ABOUTME: Isolates environment-driven settings and provides a MockTransport-backed Gemini client
import asyncio
import base64
import os
from unittest.mock import patch

import httpx
import pytest

from tts_api.config import Settings
from tts_api.core.gemini_client import GeminiClient
from tts_api.core.speech_service import SpeechService

GATEWAY_ENV_VARS = [
    "GEMINI_API_KEY",
    "GEMINI_TTS_MODEL",
    "GEMINI_API_BASE_URL",
    "MAX_RETRIES_PER_MODEL",
    "UPSTREAM_TIMEOUT_SEC",
    "TIMEOUT_SEC",
    "TTS_SHARED_SECRET",
    "CORS_ALLOW_ORIGINS",
    "LOG_LEVEL",
    "LOG_JSON",
    "RATE_LIMIT_REQUESTS_PER_MINUTE",
]

PRO = "models/gemini-2.5-pro-preview-tts"
FLASH = "models/gemini-2.5-flash-preview-tts"


@pytest.fixture(autouse=True)
def clean_environment():
    """Strip gateway variables from the environment and reset singletons."""
    saved = {var: os.environ.pop(var) for var in GATEWAY_ENV_VARS if var in os.environ}
    Settings._reset_instance()
    SpeechService._reset_instance()
    yield
    Settings._reset_instance()
    SpeechService._reset_instance()
    os.environ.update(saved)


def audio_payload(pcm: bytes) -> dict:
    """A generateContent success body carrying ``pcm`` as inline audio."""
    return {
        "candidates": [
            {"content": {"parts": [{"inlineData": {
                "mimeType": "audio/L16;codec=pcm;rate=24000",
                "data": base64.b64encode(pcm).decode("ascii"),
            }}]}}
        ]
    }


def model_from_url(request: httpx.Request) -> str:
    """Extract 'models/<name>' from a generateContent URL."""
    path = request.url.path
    return "models/" + path.rsplit("/models/", 1)[1].split(":", 1)[0]


@pytest.fixture
def make_client():
    """Build a GeminiClient whose HTTP traffic goes to ``handler``.

    Every HTTP client created here is closed on teardown.
    """
    http_clients = []

    def factory(handler) -> GeminiClient:
        http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        http_clients.append(http_client)
        return GeminiClient(api_key="test-key", http_client=http_client)

    yield factory

    async def close_all():
        for http_client in http_clients:
            await http_client.aclose()

    asyncio.run(close_all())
    assert all(http_client.is_closed for http_client in http_clients)


@pytest.fixture
def api_key_env():
    with patch.dict(os.environ, {"GEMINI_API_KEY": "test-key"}):
        Settings._reset_instance()
        yield
