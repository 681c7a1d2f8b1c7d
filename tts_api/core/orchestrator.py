# ABOUTME: Multi-model fallback orchestrator for Gemini TTS generation
# ABOUTME: Retries each candidate with backoff, falls back through the allowlist, and classifies failures

from __future__ import annotations

import asyncio
import base64
import binascii
import math
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Optional, Sequence, Union

import httpx

from tts_api.core import backoff
from tts_api.core.gemini_client import GeminiClient, GenerationRequest, extract_inline_audio
from tts_api.logging_config import get_logger
from tts_api.models.errors import QuotaExhaustedError, UpstreamFailureError

logger = get_logger(__name__)

MAX_RETRIES_PER_MODEL = 2
MAX_ERROR_BODY_CHARS = 500
DEFAULT_FAILURE_STATUS = 502


class OrchestratorState(Enum):
    TRYING_MODEL = "trying_model"
    COMPUTING_BACKOFF = "computing_backoff"
    EXHAUSTED = "exhausted"


@dataclass(frozen=True)
class Success:
    raw_audio: bytes
    model: str


@dataclass(frozen=True)
class RetryableFailure:
    reason: str
    status_code: Optional[int] = None
    retry_after_seconds: Optional[float] = None
    quota: bool = False


@dataclass(frozen=True)
class TerminalFailure:
    reason: str
    status_code: int
    retry_after_seconds: Optional[int] = None

    @property
    def quota(self) -> bool:
        return self.status_code == 429


AttemptOutcome = Union[Success, RetryableFailure]


@dataclass
class SynthesisResult:
    raw_audio: bytes
    model_used: str
    attempts: int


def truncate(text: str, max_len: int = MAX_ERROR_BODY_CHARS) -> str:
    if not text:
        return ""
    return text[:max_len] + "…" if len(text) > max_len else text


@dataclass
class _Accumulator:
    """Failure bookkeeping for a single orchestration call."""
    attempts: int = 0
    last_error: Optional[str] = None
    last_status: Optional[int] = None
    saw_quota: bool = False
    min_retry_after: Optional[float] = None

    def record(self, failure: RetryableFailure) -> None:
        self.last_error = failure.reason
        if failure.status_code is not None:
            self.last_status = failure.status_code
        if failure.quota:
            self.saw_quota = True
            hint = failure.retry_after_seconds
            if hint is not None and (self.min_retry_after is None or hint < self.min_retry_after):
                self.min_retry_after = hint

    def conclude(self) -> TerminalFailure:
        if self.saw_quota:
            retry_after = None
            if self.min_retry_after is not None:
                retry_after = max(1, math.floor(self.min_retry_after))
            return TerminalFailure(
                reason="All TTS models quota-exceeded (429).",
                status_code=429,
                retry_after_seconds=retry_after,
            )
        return TerminalFailure(
            reason=self.last_error or "TTS failed for all models.",
            status_code=self.last_status or DEFAULT_FAILURE_STATUS,
        )


class ModelFallbackOrchestrator:
    """Tries candidate models strictly in order until one returns audio.

    Every attempt is sequential. The network call, sleep and delay policy are
    injected so the retry and fallback logic can be exercised without a
    network.
    """

    def __init__(self,
                 client: GeminiClient,
                 max_retries_per_model: int = MAX_RETRIES_PER_MODEL,
                 sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
                 delay_for: Callable[[int, Optional[float]], int] = backoff.delay_for,
                 metrics=None):
        self._client = client
        self._max_retries = max_retries_per_model
        self._sleep = sleep
        self._delay_for = delay_for
        self._metrics = metrics

    async def synthesize(self, request: GenerationRequest, candidates: Sequence[str]) -> SynthesisResult:
        """Run the fallback state machine over ``candidates``.

        Raises:
            QuotaExhaustedError: If any attempt was throttled and no model succeeded
            UpstreamFailureError: If every model failed for other reasons
        """
        if not candidates:
            raise ValueError("Candidate model list must not be empty")

        acc = _Accumulator()
        model_index = 0
        attempt = 0
        failure: Optional[RetryableFailure] = None
        state = OrchestratorState.TRYING_MODEL

        while True:
            if state is OrchestratorState.TRYING_MODEL:
                model = candidates[model_index]
                outcome = await self.attempt(model, request)
                acc.attempts += 1

                if isinstance(outcome, Success):
                    logger.info("tts_synthesis_succeeded", model=model, attempt=attempt,
                                total_attempts=acc.attempts, audio_bytes=len(outcome.raw_audio))
                    self._record_synthesis("success", model)
                    return SynthesisResult(outcome.raw_audio, outcome.model, acc.attempts)

                acc.record(outcome)
                failure = outcome
                logger.warning("tts_attempt_failed", model=model, attempt=attempt,
                               status_code=outcome.status_code, reason=outcome.reason,
                               retry_after_seconds=outcome.retry_after_seconds)
                state = OrchestratorState.COMPUTING_BACKOFF

            elif state is OrchestratorState.COMPUTING_BACKOFF:
                if attempt < self._max_retries:
                    delay_ms = self._delay_for(attempt, failure.retry_after_seconds)
                    logger.debug("tts_backoff", model=candidates[model_index],
                                 attempt=attempt, delay_ms=delay_ms)
                    await self._sleep(delay_ms / 1000)
                    attempt += 1
                    state = OrchestratorState.TRYING_MODEL
                elif model_index + 1 < len(candidates):
                    logger.info("tts_model_fallback", from_model=candidates[model_index],
                                to_model=candidates[model_index + 1], last_error=acc.last_error)
                    if self._metrics is not None:
                        self._metrics.record_fallback(candidates[model_index])
                    model_index += 1
                    attempt = 0
                    state = OrchestratorState.TRYING_MODEL
                else:
                    state = OrchestratorState.EXHAUSTED

            else:
                terminal = acc.conclude()
                logger.error("tts_all_models_failed", status_code=terminal.status_code,
                             reason=terminal.reason, total_attempts=acc.attempts,
                             retry_after_seconds=terminal.retry_after_seconds)
                if terminal.quota:
                    self._record_synthesis("quota_exhausted")
                    raise QuotaExhaustedError(terminal.reason, terminal.retry_after_seconds)
                self._record_synthesis("upstream_failure")
                raise UpstreamFailureError(terminal.reason, terminal.status_code)

    async def attempt(self, model: str, request: GenerationRequest) -> AttemptOutcome:
        """Issue one upstream call and classify its result."""
        outcome = await self._classify(model, request)
        if self._metrics is not None:
            if isinstance(outcome, Success):
                label = "success"
            elif outcome.quota:
                label = "quota"
            elif outcome.status_code is None:
                label = "error"
            else:
                label = f"http_{outcome.status_code}"
            self._metrics.record_upstream_attempt(model, label)
        return outcome

    async def _classify(self, model: str, request: GenerationRequest) -> AttemptOutcome:
        try:
            response = await self._client.generate(model, request)
        except httpx.HTTPError as e:
            return RetryableFailure(f"{type(e).__name__} on {model}: {e}")

        status = response.status_code
        if status == 429:
            hint = backoff.parse_retry_after(response.headers.get("retry-after"))
            return RetryableFailure(
                f"429 quota exceeded for model {model}",
                status_code=429,
                retry_after_seconds=hint,
                quota=True,
            )

        if not response.is_success:
            return RetryableFailure(
                f"Gemini API error {status} on {model}: {truncate(response.text)}",
                status_code=status,
            )

        try:
            data = response.json()
        except ValueError as e:
            return RetryableFailure(f"Invalid JSON in response from {model}: {e}")

        audio_b64 = extract_inline_audio(data)
        if not audio_b64:
            return RetryableFailure(f"No audio data in response from {model}")

        try:
            raw_audio = base64.b64decode(audio_b64, validate=True)
        except (binascii.Error, ValueError) as e:
            return RetryableFailure(f"Undecodable audio data from {model}: {e}")

        return Success(raw_audio, model)

    def _record_synthesis(self, outcome: str, model: str = "none") -> None:
        if self._metrics is not None:
            self._metrics.record_synthesis(outcome, model)
