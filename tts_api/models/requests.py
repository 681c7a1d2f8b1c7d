# ABOUTME: This file defines Pydantic models for API request payloads.
# ABOUTME: Missing or null options fall back to defaults; sampling parameters are clamped into range.

from typing import Annotated, Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, StringConstraints, ValidationInfo, field_validator
from pydantic.alias_generators import to_camel

from tts_api.core.gemini_client import GenerationRequest, SamplingParameters

DEFAULT_VOICE = "Kore"

Text = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]
Name = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=100)]


def _clamp(value, low, high):
    return max(low, min(high, value))


def _voice_or_default(value: Any) -> Any:
    """Blank or null voice names select the default voice."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return DEFAULT_VOICE
    return value


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SpeakerVoice(CamelModel):
    speaker: Optional[str] = None
    voice_name: Name = DEFAULT_VOICE

    @field_validator("voice_name", mode="before")
    @classmethod
    def _default_voice(cls, v: Any) -> Any:
        return _voice_or_default(v)


class SpeechRequest(CamelModel):
    text: Text
    voice_name: Name = DEFAULT_VOICE
    multi_speaker: bool = False
    speaker_configs: List[SpeakerVoice] = Field(default_factory=list)
    temperature: float = 0.7
    top_p: float = 0.9
    top_k: int = 40
    max_output_tokens: int = 8192
    model: Optional[str] = Field(None, description="Preferred model; ignored unless allowlisted")

    @field_validator("voice_name", mode="before")
    @classmethod
    def _default_voice(cls, v: Any) -> Any:
        return _voice_or_default(v)

    @field_validator("multi_speaker", mode="before")
    @classmethod
    def _null_multi_speaker(cls, v: Any) -> Any:
        return False if v is None else v

    @field_validator("speaker_configs", mode="before")
    @classmethod
    def _list_or_empty(cls, v: Any) -> Any:
        return v if isinstance(v, list) else []

    @field_validator("temperature", "top_p", "top_k", "max_output_tokens", mode="before")
    @classmethod
    def _null_sampling_default(cls, v: Any, info: ValidationInfo) -> Any:
        if v is None:
            return cls.model_fields[info.field_name].default
        return v

    @field_validator("model", mode="before")
    @classmethod
    def _string_model_only(cls, v: Any) -> Optional[str]:
        return v if isinstance(v, str) else None

    @field_validator("temperature")
    @classmethod
    def _clamp_temperature(cls, v: float) -> float:
        return _clamp(v, 0.0, 2.0)

    @field_validator("top_p")
    @classmethod
    def _clamp_top_p(cls, v: float) -> float:
        return _clamp(v, 0.0, 1.0)

    @field_validator("top_k")
    @classmethod
    def _clamp_top_k(cls, v: int) -> int:
        return _clamp(v, 1, 100)

    @field_validator("max_output_tokens")
    @classmethod
    def _clamp_max_output_tokens(cls, v: int) -> int:
        return _clamp(v, 1, 32768)

    def to_generation_request(self) -> GenerationRequest:
        """Build the canonical upstream request.

        Multi-speaker mode is only active when at least one speaker is given;
        otherwise the single voice is used.
        """
        speakers = ()
        if self.multi_speaker and self.speaker_configs:
            speakers = tuple((cfg.speaker, cfg.voice_name) for cfg in self.speaker_configs)

        return GenerationRequest(
            text=self.text,
            voice_name=self.voice_name,
            speakers=speakers,
            sampling=SamplingParameters(
                temperature=self.temperature,
                top_p=self.top_p,
                top_k=self.top_k,
                max_output_tokens=self.max_output_tokens,
            ),
        )
