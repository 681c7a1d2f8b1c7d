# ABOUTME: This file implements the SpeechService that turns validated requests into WAV audio.
# ABOUTME: Resolves candidate models, runs the fallback orchestrator and wraps PCM in a WAV container.

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Optional

from tts_api.config import Settings, get_settings
from tts_api.core.candidates import ModelCatalog
from tts_api.core.gemini_client import GeminiClient
from tts_api.core.orchestrator import ModelFallbackOrchestrator
from tts_api.logging_config import get_logger
from tts_api.models.errors import ApiKeyNotConfiguredError, InvalidInputError
from tts_api.models.requests import SpeechRequest
from tts_api.monitoring.metrics import PrometheusMetrics
from tts_api.utils.audio import pcm_duration_sec, pcm_to_wav

# Gemini TTS returns 24 kHz mono signed 16-bit PCM
SAMPLE_RATE = 24000
NUM_CHANNELS = 1
BITS_PER_SAMPLE = 16

logger = get_logger(__name__)


@dataclass
class SpeechResult:
    """Result from one synthesis request."""
    wav_bytes: bytes
    model_used: str
    sample_rate: int
    duration_sec: float
    file_name: str


class SpeechService:
    """Gateway service between the HTTP routes and the Gemini TTS API.

    Use ``instance()`` in the application; construct directly to inject a
    client or orchestrator in tests.
    """

    _instance: Optional['SpeechService'] = None
    _lock = threading.Lock()

    def __init__(self,
                 settings: Optional[Settings] = None,
                 client: Optional[GeminiClient] = None,
                 orchestrator: Optional[ModelFallbackOrchestrator] = None,
                 metrics: Optional[PrometheusMetrics] = None):
        self._settings = settings or get_settings()
        self._catalog = self._settings.model_catalog

        if orchestrator is None and self._settings.gemini_api_key:
            client = client or GeminiClient(
                api_key=self._settings.gemini_api_key,
                base_url=self._settings.api_base_url,
                timeout_sec=self._settings.upstream_timeout_sec,
            )
            orchestrator = ModelFallbackOrchestrator(
                client,
                max_retries_per_model=self._settings.max_retries_per_model,
                metrics=metrics,
            )

        self._client = client
        self._orchestrator = orchestrator

    @classmethod
    def instance(cls) -> 'SpeechService':
        """Get or create the singleton SpeechService instance."""
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = cls(metrics=PrometheusMetrics())
        return cls._instance

    @classmethod
    def _reset_instance(cls):
        """Reset singleton instance for testing purposes only."""
        cls._instance = None

    @property
    def catalog(self) -> ModelCatalog:
        return self._catalog

    def ready(self) -> bool:
        """True when an upstream API key is configured."""
        return self._orchestrator is not None

    async def synthesize(self, req: SpeechRequest) -> SpeechResult:
        """Generate speech for ``req`` and return it as a WAV file.

        Raises:
            ApiKeyNotConfiguredError: If no upstream API key is configured
            InvalidInputError: If the request text is empty
            QuotaExhaustedError: If every candidate model was throttled
            UpstreamFailureError: If every candidate model failed otherwise
        """
        if not self.ready():
            raise ApiKeyNotConfiguredError("API key not configured")

        if not req.text or not req.text.strip():
            raise InvalidInputError("Valid text is required")

        generation = req.to_generation_request()
        candidates = self._catalog.candidates(req.model)
        logger.info("tts_request", candidates=list(candidates), text_chars=len(generation.text),
                    multi_speaker=generation.is_multi_speaker)

        result = await self._orchestrator.synthesize(generation, candidates)

        wav_bytes = pcm_to_wav(result.raw_audio, SAMPLE_RATE, NUM_CHANNELS, BITS_PER_SAMPLE)
        duration_sec = pcm_duration_sec(len(result.raw_audio), SAMPLE_RATE, NUM_CHANNELS, BITS_PER_SAMPLE)

        return SpeechResult(
            wav_bytes=wav_bytes,
            model_used=result.model_used,
            sample_rate=SAMPLE_RATE,
            duration_sec=round(duration_sec, 3),
            file_name=f"tts_{int(time.time() * 1000)}.wav",
        )

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
