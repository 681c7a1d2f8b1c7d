# ABOUTME: HTTP client for the Gemini generateContent TTS endpoint and request body construction
# ABOUTME: Wraps an injectable httpx.AsyncClient so tests can swap in a MockTransport

from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

import httpx


@dataclass(frozen=True)
class SamplingParameters:
    temperature: float = 0.7
    top_p: float = 0.9
    top_k: int = 40
    max_output_tokens: int = 8192


@dataclass(frozen=True)
class GenerationRequest:
    """Canonical, transport-independent TTS request.

    ``speakers`` holds ordered (speaker label, voice name) pairs; when it is
    empty the single ``voice_name`` is used.
    """
    text: str
    voice_name: str = "Kore"
    speakers: Tuple[Tuple[Optional[str], str], ...] = ()
    sampling: SamplingParameters = SamplingParameters()

    @property
    def is_multi_speaker(self) -> bool:
        return bool(self.speakers)

    @staticmethod
    def _speaker_voice_config(speaker: Optional[str], voice: str) -> Dict[str, Any]:
        config: Dict[str, Any] = {"voiceConfig": {"prebuiltVoiceConfig": {"voiceName": voice}}}
        # An unlabeled speaker is sent without the key
        if speaker is not None:
            config = {"speaker": speaker, **config}
        return config

    def speech_config(self) -> Dict[str, Any]:
        if self.is_multi_speaker:
            return {
                "multiSpeakerVoiceConfig": {
                    "speakerVoiceConfigs": [
                        self._speaker_voice_config(speaker, voice)
                        for speaker, voice in self.speakers
                    ]
                }
            }
        return {"voiceConfig": {"prebuiltVoiceConfig": {"voiceName": self.voice_name}}}

    def to_payload(self) -> Dict[str, Any]:
        """Render the JSON body expected by generateContent."""
        return {
            "contents": [{"parts": [{"text": self.text}]}],
            "generationConfig": {
                "temperature": self.sampling.temperature,
                "topP": self.sampling.top_p,
                "topK": self.sampling.top_k,
                "maxOutputTokens": self.sampling.max_output_tokens,
                "candidateCount": 1,
                "stopSequences": [],
                "responseModalities": ["AUDIO"],
                "speechConfig": self.speech_config(),
            },
        }


def extract_inline_audio(data: Any) -> Optional[str]:
    """Return candidates[0].content.parts[0].inlineData.data, or None if absent."""
    try:
        audio = data["candidates"][0]["content"]["parts"][0]["inlineData"]["data"]
    except (KeyError, IndexError, TypeError):
        return None
    return audio if isinstance(audio, str) and audio else None


class GeminiClient:
    """Issues single generateContent calls; retry policy lives in the orchestrator."""

    def __init__(self,
                 api_key: str,
                 base_url: str = "https://generativelanguage.googleapis.com/v1beta",
                 timeout_sec: float = 60.0,
                 http_client: Optional[httpx.AsyncClient] = None):
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._owns_client = http_client is None
        self._http = http_client or httpx.AsyncClient(timeout=timeout_sec)

    def endpoint(self, model: str) -> str:
        return f"{self._base_url}/{model}:generateContent"

    async def generate(self, model: str, request: GenerationRequest) -> httpx.Response:
        """POST one generation request for ``model``.

        Raises:
            httpx.HTTPError: On transport-level failures
        """
        return await self._http.post(
            self.endpoint(model),
            json=request.to_payload(),
            headers={
                "x-goog-api-key": self._api_key,
                "Content-Type": "application/json",
            },
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._http.aclose()
