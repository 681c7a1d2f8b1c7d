# ABOUTME: FastAPI application instance with middleware and exception handlers
# ABOUTME: Main entry point wiring CORS, monitoring, logging, rate limiting, timeouts and error mapping
from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from tts_api.config import get_settings
from tts_api.core.speech_service import SpeechService
from tts_api.logging_config import configure_logging
from tts_api.middleware import (
    EnhancedCORSMiddleware,
    LoggingMiddleware,
    RateLimitMiddleware,
    TimeoutMiddleware,
)
from tts_api.models.errors import (
    ApiKeyNotConfiguredError,
    InvalidInputError,
    QuotaExhaustedError,
    UnauthorizedError,
    UpstreamFailureError,
)
from tts_api.models.responses import ErrorResponse
from tts_api.monitoring.metrics import PrometheusMetrics
from tts_api.monitoring.middleware import add_monitoring_middleware
from tts_api.routes import health, metrics, speech

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events"""
    settings = get_settings()
    configure_logging(log_level=settings.log_level, enable_json=settings.log_json)
    logger.info("Starting Gemini TTS gateway")

    PrometheusMetrics()
    speech_service = SpeechService.instance()
    if speech_service.ready():
        logger.info(f"Speech service ready, default model {settings.default_model}")
    else:
        logger.warning("GEMINI_API_KEY not configured - synthesis requests will fail")

    yield

    logger.info("Shutting down Gemini TTS gateway")
    await speech_service.aclose()


settings = get_settings()
app = FastAPI(
    title="Gemini TTS Gateway",
    description="Text-to-speech gateway with multi-model fallback over the Gemini TTS API",
    version="1.0.0",
    lifespan=lifespan
)

# Middleware stack - add_middleware wraps, so the last added runs first.
# Order seen by a request: CORS -> Monitoring -> Logging -> Rate Limiting -> Timeout
app.add_middleware(TimeoutMiddleware, timeout_seconds=float(settings.timeout_sec))
app.add_middleware(RateLimitMiddleware, requests_per_minute=settings.rate_limit_requests_per_minute)
app.add_middleware(LoggingMiddleware)
add_monitoring_middleware(app)
app.add_middleware(EnhancedCORSMiddleware)


def _error_response(request: Request, status_code: int, error: ErrorResponse, headers=None) -> JSONResponse:
    response_headers = {"X-Request-ID": getattr(request.state, "request_id", "")}
    if headers:
        response_headers.update(headers)
    return JSONResponse(status_code=status_code, content=error.to_content(), headers=response_headers)


# Exception handlers
@app.exception_handler(InvalidInputError)
async def invalid_input_handler(request: Request, exc: InvalidInputError):
    """Handle caller input errors (400)"""
    return _error_response(request, 400, ErrorResponse(code="INVALID_INPUT", message=str(exc)))


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    """Handle malformed JSON and schema violations (400)"""
    errors = [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg", ""), "type": err.get("type", "")}
        for err in exc.errors()
    ]
    return _error_response(
        request, 400,
        ErrorResponse(code="INVALID_INPUT", message="Invalid request body", details={"errors": errors}),
    )


@app.exception_handler(UnauthorizedError)
async def unauthorized_handler(request: Request, exc: UnauthorizedError):
    """Handle shared secret mismatches (401)"""
    return _error_response(request, 401, ErrorResponse(code="UNAUTHORIZED", message=str(exc)))


@app.exception_handler(ApiKeyNotConfiguredError)
async def api_key_missing_handler(request: Request, exc: ApiKeyNotConfiguredError):
    """Handle missing upstream credentials (500)"""
    return _error_response(request, 500, ErrorResponse(code="API_KEY_NOT_CONFIGURED", message=str(exc)))


@app.exception_handler(QuotaExhaustedError)
async def quota_exhausted_handler(request: Request, exc: QuotaExhaustedError):
    """Handle quota exhaustion across every candidate model (429)"""
    headers = {}
    if exc.retry_after_seconds is not None:
        headers["Retry-After"] = str(exc.retry_after_seconds)
    return _error_response(
        request, 429,
        ErrorResponse(code="QUOTA_EXCEEDED", message=str(exc), retry_after_seconds=exc.retry_after_seconds),
        headers=headers,
    )


@app.exception_handler(UpstreamFailureError)
async def upstream_failure_handler(request: Request, exc: UpstreamFailureError):
    """Handle non-quota upstream failures (502)"""
    return _error_response(
        request, 502,
        ErrorResponse(code="TTS_FAILED", message=str(exc), details={"upstreamStatus": exc.status_code}),
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Handle general HTTP exceptions"""
    error_codes = {
        404: "NOT_FOUND",
        405: "METHOD_NOT_ALLOWED",
        406: "NOT_ACCEPTABLE",
    }
    return _error_response(
        request, exc.status_code,
        ErrorResponse(code=error_codes.get(exc.status_code, "HTTP_ERROR"), message=str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


app.include_router(speech.router, prefix="/api", tags=["speech"])
app.include_router(health.router, tags=["health"])
app.include_router(metrics.router, tags=["monitoring"])
