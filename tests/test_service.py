"""Tests for the single-step translate API and the configuration-backed service."""

import asyncio

import httpx
import pytest

from conftest import error_response, gemini_response, make_client, make_config, openai_response
from polytrans.cancellation import CancellationToken
from polytrans.exceptions import NoUsableConfigurationError, ProviderError, RequestAbortedError
from polytrans.models import AnalysisKind, TaskKind, TranslationRequest
from polytrans.providers import ProviderConfig, ProviderType
from polytrans.service import TranslationService, translate
from polytrans.utils.http_client import HTTPClient

pytestmark = pytest.mark.asyncio


class TestTranslate:
    """Single provider, no fallback."""

    async def test_translate(self):
        client, handler = make_client(lambda request: gemini_response("Hola"))

        result = await translate(
            TranslationRequest("Hello", "english", "spanish"),
            ProviderConfig(provider=ProviderType.GEMINI, api_key="g"),
            http_client=client,
        )

        assert result.translation == "Hola"
        assert result.words is None
        assert len(handler.requests) == 1

    async def test_analyze_runs_on_the_same_provider(self):
        responses = iter([
            openai_response("Hola"),
            openai_response('{"words": [{"original": "Hello", "translated": "Hola", "meaning": "greeting"}]}'),
        ])
        client, handler = make_client(lambda request: next(responses))

        result = await translate(
            TranslationRequest(
                "Hello",
                "english",
                "spanish",
                task=TaskKind.ANALYZE,
                analysis=AnalysisKind.VOCABULARY,
            ),
            ProviderConfig(provider=ProviderType.OPENAI, api_key="o"),
            http_client=client,
        )

        assert result.translation == "Hola"
        assert result.words[0].meaning == "greeting"
        assert handler.hosts == ["api.openai.com", "api.openai.com"]
        analysis_body = handler.body(1)
        assert "Translation:\nHola" in analysis_body["messages"][1]["content"]
        # Explanation language "auto" resolves to the target language
        assert "Write all explanations in Spanish" in analysis_body["messages"][0]["content"]

    async def test_blank_key(self):
        with pytest.raises(NoUsableConfigurationError):
            await translate(
                TranslationRequest("Hello", "english", "spanish"),
                ProviderConfig(provider=ProviderType.OPENAI, api_key=" "),
            )

    async def test_rate_limit_is_not_retried(self):
        client, handler = make_client(lambda request: error_response(429, "slow down"))

        with pytest.raises(ProviderError) as exc_info:
            await translate(
                TranslationRequest("Hello", "english", "spanish"),
                ProviderConfig(provider=ProviderType.GROQ, api_key="q"),
                http_client=client,
            )

        assert exc_info.value.is_congestion
        assert len(handler.requests) == 1


class TestTranslationService:
    """Configuration wiring and cancellation slots."""

    async def test_route_translate_uses_configured_plan(self):
        client, handler = make_client(
            lambda request: error_response(429) if request.url.host == "api.groq.com" else openai_response("Hola")
        )
        config = make_config(
            keys={"groq": "q", "openai": "o"},
            steps=[{"provider": "groq"}, {"provider": "openai", "model": "gpt-4o"}],
            routing_count=2,
        )
        service = TranslationService(config, http_client=client)

        outcome = await service.route_translate(TranslationRequest("Hello", "english", "spanish"))

        assert outcome.provider_used is ProviderType.OPENAI
        assert outcome.model_used == "gpt-4o"
        assert handler.hosts == ["api.groq.com", "api.openai.com"]

    async def test_custom_endpoint_reaches_primary_provider(self):
        client, handler = make_client(lambda request: openai_response("Hola"))
        config = make_config(
            keys={"openai": "o"},
            steps=[{"provider": "openai"}],
            **{"primary-provider": "openai", "custom-endpoint": "http://localhost:1234/v1/chat/completions"},
        )
        service = TranslationService(config, http_client=client)

        await service.route_translate(TranslationRequest("Hello", "english", "spanish"))

        assert str(handler.requests[0].url) == "http://localhost:1234/v1/chat/completions"

    async def test_route_analyze_explanation_language(self):
        client, handler = make_client(lambda request: gemini_response('{"nuanceExplanation": {"tone": "calm"}}'))
        config = make_config(keys={"gemini": "g"}, **{"explanation-language": "korean"})
        service = TranslationService(config, http_client=client)

        outcome = await service.route_analyze(
            "Hello",
            "Hola",
            service.languages("english", "spanish"),
            AnalysisKind.NUANCE,
        )

        assert outcome.result.nuance.tone == "calm"
        system_text = handler.body()["system_instruction"]["parts"][0]["text"]
        assert "Write all explanations in Korean" in system_text

    async def test_single_step_uses_primary_provider(self):
        client, handler = make_client(lambda request: gemini_response("Hola"))
        service = TranslationService(make_config(keys={"gemini": "g"}), http_client=client)

        result = await service.translate(TranslationRequest("Hello", "english", "spanish"))

        assert result.translation == "Hola"
        assert handler.hosts == ["generativelanguage.googleapis.com"]

    async def test_new_request_supersedes_slot(self):
        started = asyncio.Event()
        service = TranslationService(make_config(), http_client=make_client(openai_response)[0])

        async def slow(token: CancellationToken):
            started.set()
            await token.wait()
            token.raise_if_cancelled()

        async def fast(token: CancellationToken):
            return "done"

        first = asyncio.create_task(service.run_in_slot("translate", slow))
        await started.wait()
        second = await service.run_in_slot("translate", fast)

        with pytest.raises(RequestAbortedError) as exc_info:
            await first
        assert second == "done"
        assert exc_info.value.reason == "superseded by a newer request"
        assert service.slot("translate").current is None

    async def test_cancel_slot(self):
        service = TranslationService(make_config(), http_client=make_client(openai_response)[0])
        assert service.cancel_slot("missing") is False

        token = service.slot("analysis").begin()
        assert service.cancel_slot("analysis") is True
        assert token.cancelled

    async def test_aclose_cancels_slots(self):
        service = TranslationService(make_config(), http_client=make_client(openai_response)[0])
        token = service.slot("translate").begin()

        await service.aclose()

        assert token.cancelled


async def test_cancel_before_response_then_retry_on_same_slot():
    waiting = asyncio.Event()
    hang = [True]

    async def respond(request):
        if hang[0]:
            waiting.set()
            await asyncio.sleep(10)
        return gemini_response("Hola")

    http_client = HTTPClient(transport=httpx.MockTransport(respond))
    service = TranslationService(make_config(keys={"gemini": "g"}), http_client=http_client)
    request = TranslationRequest("Hello", "english", "spanish")

    first = asyncio.create_task(
        service.run_in_slot("translate", lambda token: service.route_translate(request, cancel_token=token))
    )
    await waiting.wait()
    assert service.cancel_slot("translate") is True

    with pytest.raises(RequestAbortedError):
        await first

    hang[0] = False
    outcome = await service.run_in_slot(
        "translate", lambda token: service.route_translate(request, cancel_token=token)
    )
    assert outcome.result.translation == "Hola"
    await service.aclose()
