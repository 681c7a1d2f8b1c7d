# ABOUTME: Speech synthesis API routes
# ABOUTME: Implements POST /api/tts with content negotiation and GET /api/models
import time

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import Response

from tts_api.core.speech_service import SpeechService
from tts_api.dependencies import get_speech_service, require_shared_secret
from tts_api.models.requests import SpeechRequest
from tts_api.models.responses import ModelListResponse, SpeechResponse
from tts_api.utils.audio import wav_to_base64
from tts_api.utils.negotiation import negotiate_accept

router = APIRouter()


@router.post("/tts", response_model=None, dependencies=[Depends(require_shared_secret)])
async def synthesize_speech(
    request: Request,
    speech_request: SpeechRequest,
    speech_service: SpeechService = Depends(get_speech_service)
):
    """
    Convert text to speech through the Gemini TTS models.

    Content negotiation based on Accept header:
    - application/json: JSON with base64-encoded WAV (default)
    - audio/wav: raw WAV bytes
    """
    start_time = time.time()
    request_id = getattr(request.state, "request_id", None)

    try:
        content_type = negotiate_accept(request, ["application/json", "audio/wav"])
    except ValueError as e:
        raise HTTPException(status_code=406, detail=str(e))

    result = await speech_service.synthesize(speech_request)
    request.state.model_used = result.model_used
    generation_time = time.time() - start_time

    if content_type == "audio/wav":
        return Response(
            content=result.wav_bytes,
            media_type="audio/wav",
            headers={
                "X-Model-Used": result.model_used,
                "X-Generation-Time": str(round(generation_time, 3)),
                "Content-Disposition": f'attachment; filename="{result.file_name}"',
            }
        )

    return SpeechResponse(
        model_used=result.model_used,
        audio_data=wav_to_base64(result.wav_bytes),
        file_name=result.file_name,
        sample_rate=result.sample_rate,
        duration_sec=result.duration_sec,
        request_id=request_id,
    ).model_dump(by_alias=True, exclude_none=True)


@router.get("/models", response_model=ModelListResponse)
async def list_models(speech_service: SpeechService = Depends(get_speech_service)):
    """List the allowlisted TTS models in fallback order."""
    catalog = speech_service.catalog
    return ModelListResponse(models=list(catalog.models), default_model=catalog.default_model)
