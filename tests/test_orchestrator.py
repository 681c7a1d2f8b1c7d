# ABOUTME: Tests for the multi-model fallback orchestrator driven through httpx.MockTransport
# ABOUTME: Simulates quota errors, server errors, malformed payloads and transport failures offline
import json
from collections import Counter
from unittest.mock import AsyncMock, Mock

import httpx
import pytest

from conftest import FLASH, PRO, audio_payload, model_from_url
from tts_api.core.gemini_client import GenerationRequest, SamplingParameters
from tts_api.core.orchestrator import (
    MAX_RETRIES_PER_MODEL,
    ModelFallbackOrchestrator,
    RetryableFailure,
    Success,
    truncate,
)
from tts_api.models.errors import QuotaExhaustedError, UpstreamFailureError

PCM = b"\x00\x01" * 100


@pytest.fixture
def generation_request():
    return GenerationRequest(text="Hello there", voice_name="Puck")


@pytest.fixture
def sleep():
    return AsyncMock()


def build(make_client, handler, sleep, **kwargs):
    return ModelFallbackOrchestrator(make_client(handler), sleep=sleep, **kwargs)


class TestFallback:

    @pytest.mark.asyncio
    async def test_falls_back_to_second_model_after_quota(self, make_client, sleep, generation_request):
        calls = Counter()

        def handler(request):
            model = model_from_url(request)
            calls[model] += 1
            if model == PRO:
                return httpx.Response(429, text="quota")
            return httpx.Response(200, json=audio_payload(PCM))

        orchestrator = build(make_client, handler, sleep)
        result = await orchestrator.synthesize(generation_request, (PRO, FLASH))

        assert result.model_used == FLASH
        assert result.raw_audio == PCM
        assert calls[PRO] == MAX_RETRIES_PER_MODEL + 1
        assert calls[FLASH] == 1
        assert result.attempts == MAX_RETRIES_PER_MODEL + 2
        # Backoff only between retries of the same model, not before a fallback
        assert sleep.await_count == MAX_RETRIES_PER_MODEL

    @pytest.mark.asyncio
    async def test_first_success_short_circuits(self, make_client, sleep, generation_request):
        calls = Counter()

        def handler(request):
            calls[model_from_url(request)] += 1
            return httpx.Response(200, json=audio_payload(PCM))

        orchestrator = build(make_client, handler, sleep)
        result = await orchestrator.synthesize(generation_request, (FLASH, PRO))

        assert result.model_used == FLASH
        assert calls == Counter({FLASH: 1})
        sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_retry_same_model_after_missing_audio(self, make_client, sleep, generation_request):
        responses = iter([
            httpx.Response(200, json={"candidates": [{"content": {"parts": [{"text": "hi"}]}}]}),
            httpx.Response(200, json=audio_payload(PCM)),
        ])

        orchestrator = build(make_client, lambda request: next(responses), sleep)
        result = await orchestrator.synthesize(generation_request, (FLASH, PRO))

        assert result.model_used == FLASH
        assert result.attempts == 2
        assert sleep.await_count == 1

    @pytest.mark.asyncio
    async def test_zero_retries_means_one_call_per_model(self, make_client, sleep, generation_request):
        calls = Counter()

        def handler(request):
            calls[model_from_url(request)] += 1
            return httpx.Response(503, text="unavailable")

        orchestrator = build(make_client, handler, sleep, max_retries_per_model=0)
        with pytest.raises(UpstreamFailureError):
            await orchestrator.synthesize(generation_request, (FLASH, PRO))

        assert calls == Counter({FLASH: 1, PRO: 1})
        sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_empty_candidate_list_rejected(self, make_client, sleep, generation_request):
        orchestrator = build(make_client, lambda request: httpx.Response(200), sleep)
        with pytest.raises(ValueError):
            await orchestrator.synthesize(generation_request, ())


class TestQuotaExhaustion:

    @pytest.mark.asyncio
    async def test_all_models_throttled_with_retry_after(self, make_client, sleep, generation_request):
        def handler(request):
            return httpx.Response(429, headers={"retry-after": "2"}, text="quota")

        orchestrator = build(make_client, handler, sleep)
        with pytest.raises(QuotaExhaustedError) as exc_info:
            await orchestrator.synthesize(generation_request, (PRO, FLASH))

        assert exc_info.value.retry_after_seconds == 2
        # Server hint drives the backoff: 2 seconds per retry
        assert [call.args[0] for call in sleep.await_args_list] == [2.0] * (2 * MAX_RETRIES_PER_MODEL)

    @pytest.mark.asyncio
    async def test_minimum_hint_across_models(self, make_client, sleep, generation_request):
        def handler(request):
            delay = "7" if model_from_url(request) == PRO else "3"
            return httpx.Response(429, headers={"retry-after": delay})

        orchestrator = build(make_client, handler, sleep)
        with pytest.raises(QuotaExhaustedError) as exc_info:
            await orchestrator.synthesize(generation_request, (PRO, FLASH))

        assert exc_info.value.retry_after_seconds == 3

    @pytest.mark.asyncio
    async def test_hint_floored_to_one_second(self, make_client, sleep, generation_request):
        def handler(request):
            return httpx.Response(429, headers={"retry-after": "0.2"})

        orchestrator = build(make_client, handler, sleep)
        with pytest.raises(QuotaExhaustedError) as exc_info:
            await orchestrator.synthesize(generation_request, (FLASH,))

        assert exc_info.value.retry_after_seconds == 1

    @pytest.mark.asyncio
    async def test_any_429_reports_quota_even_without_hint(self, make_client, sleep, generation_request):
        def handler(request):
            if model_from_url(request) == PRO:
                return httpx.Response(429)
            return httpx.Response(500, text="boom")

        orchestrator = build(make_client, handler, sleep)
        with pytest.raises(QuotaExhaustedError) as exc_info:
            await orchestrator.synthesize(generation_request, (PRO, FLASH))

        assert exc_info.value.retry_after_seconds is None


class TestUpstreamFailure:

    @pytest.mark.asyncio
    async def test_all_models_return_500(self, make_client, sleep, generation_request):
        body = "x" * 1200

        def handler(request):
            return httpx.Response(500, text=body)

        orchestrator = build(make_client, handler, sleep)
        with pytest.raises(UpstreamFailureError) as exc_info:
            await orchestrator.synthesize(generation_request, (PRO, FLASH))

        error = exc_info.value
        assert error.status_code == 500
        message = str(error)
        assert message.startswith(f"Gemini API error 500 on {FLASH}: ")
        assert message.endswith("x" * 500 + "…")

    @pytest.mark.asyncio
    async def test_transport_errors_everywhere(self, make_client, sleep, generation_request):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        orchestrator = build(make_client, handler, sleep)
        with pytest.raises(UpstreamFailureError) as exc_info:
            await orchestrator.synthesize(generation_request, (PRO, FLASH))

        assert exc_info.value.status_code == 502
        assert "ConnectError" in str(exc_info.value)
        assert "connection refused" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_status_kept_from_last_http_failure(self, make_client, sleep, generation_request):
        def handler(request):
            if model_from_url(request) == PRO:
                return httpx.Response(503, text="down")
            return httpx.Response(200, json={"candidates": []})

        orchestrator = build(make_client, handler, sleep)
        with pytest.raises(UpstreamFailureError) as exc_info:
            await orchestrator.synthesize(generation_request, (PRO, FLASH))

        assert exc_info.value.status_code == 503
        assert str(exc_info.value) == f"No audio data in response from {FLASH}"


class TestAttemptClassification:

    @pytest.mark.asyncio
    async def test_success_decodes_audio(self, make_client, sleep, generation_request):
        orchestrator = build(make_client, lambda r: httpx.Response(200, json=audio_payload(PCM)), sleep)
        outcome = await orchestrator.attempt(FLASH, generation_request)
        assert outcome == Success(PCM, FLASH)

    @pytest.mark.asyncio
    async def test_invalid_json_is_retryable(self, make_client, sleep, generation_request):
        orchestrator = build(make_client, lambda r: httpx.Response(200, text="<html>"), sleep)
        outcome = await orchestrator.attempt(FLASH, generation_request)
        assert isinstance(outcome, RetryableFailure)
        assert outcome.reason.startswith("Invalid JSON")

    @pytest.mark.asyncio
    async def test_bad_base64_is_retryable(self, make_client, sleep, generation_request):
        payload = {"candidates": [{"content": {"parts": [{"inlineData": {"data": "***"}}]}}]}
        orchestrator = build(make_client, lambda r: httpx.Response(200, json=payload), sleep)
        outcome = await orchestrator.attempt(FLASH, generation_request)
        assert isinstance(outcome, RetryableFailure)
        assert outcome.reason.startswith("Undecodable audio data")

    @pytest.mark.asyncio
    async def test_quota_outcome_carries_hint(self, make_client, sleep, generation_request):
        orchestrator = build(
            make_client, lambda r: httpx.Response(429, headers={"Retry-After": "9"}), sleep
        )
        outcome = await orchestrator.attempt(PRO, generation_request)
        assert outcome == RetryableFailure(
            f"429 quota exceeded for model {PRO}", status_code=429, retry_after_seconds=9.0, quota=True
        )

    @pytest.mark.asyncio
    async def test_metrics_recorded(self, make_client, sleep, generation_request):
        metrics = Mock()

        def handler(request):
            if model_from_url(request) == PRO:
                return httpx.Response(429)
            return httpx.Response(200, json=audio_payload(PCM))

        orchestrator = build(make_client, handler, sleep, metrics=metrics, max_retries_per_model=0)
        await orchestrator.synthesize(generation_request, (PRO, FLASH))

        metrics.record_upstream_attempt.assert_any_call(PRO, "quota")
        metrics.record_upstream_attempt.assert_any_call(FLASH, "success")
        metrics.record_fallback.assert_called_once_with(PRO)
        metrics.record_synthesis.assert_called_once_with("success", FLASH)


class TestRequestShape:

    @pytest.mark.asyncio
    async def test_url_headers_and_body(self, make_client, sleep):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json=audio_payload(PCM))

        generation_request = GenerationRequest(
            text="Hi",
            speakers=(("Joe", "Kore"), ("Jane", "Puck")),
            sampling=SamplingParameters(temperature=1.0, top_p=0.5, top_k=10, max_output_tokens=100),
        )
        orchestrator = build(make_client, handler, sleep)
        await orchestrator.synthesize(generation_request, (PRO,))

        request = seen[0]
        assert str(request.url) == f"https://generativelanguage.googleapis.com/v1beta/{PRO}:generateContent"
        assert request.headers["x-goog-api-key"] == "test-key"
        body = json.loads(request.content)
        assert body["contents"] == [{"parts": [{"text": "Hi"}]}]
        config = body["generationConfig"]
        assert config["temperature"] == 1.0
        assert config["topP"] == 0.5
        assert config["topK"] == 10
        assert config["maxOutputTokens"] == 100
        assert config["candidateCount"] == 1
        assert config["stopSequences"] == []
        assert config["responseModalities"] == ["AUDIO"]
        speakers = config["speechConfig"]["multiSpeakerVoiceConfig"]["speakerVoiceConfigs"]
        assert speakers == [
            {"speaker": "Joe", "voiceConfig": {"prebuiltVoiceConfig": {"voiceName": "Kore"}}},
            {"speaker": "Jane", "voiceConfig": {"prebuiltVoiceConfig": {"voiceName": "Puck"}}},
        ]


def test_truncate():
    assert truncate("") == ""
    assert truncate("short") == "short"
    assert truncate("a" * 501) == "a" * 500 + "…"
