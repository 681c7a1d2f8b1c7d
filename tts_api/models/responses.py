# ABOUTME: This file defines Pydantic models for API response payloads.
# ABOUTME: Field names serialize in camelCase to match the gateway's JSON contract.

from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, protected_namespaces=())


class SpeechResponse(CamelResponse):
    success: bool = True
    model_used: str
    audio_data: str
    mime_type: Literal['audio/wav'] = 'audio/wav'
    file_name: str
    sample_rate: int
    duration_sec: float
    request_id: Optional[str] = None


class ModelListResponse(CamelResponse):
    models: List[str]
    default_model: str


class HealthStatus(BaseModel):
    status: Literal['ok', 'error']


class ReadinessStatus(CamelResponse):
    ready: bool
    api_key_configured: bool
    default_model: str


class ErrorResponse(CamelResponse):
    code: str
    message: str
    details: Optional[Dict[str, Any]] = None
    retry_after_seconds: Optional[int] = None
    timestamp: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    def to_content(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)
