"""Unit tests for the LLM gateway and provider variants.

These tests validate provider selection and error mapping without making
network calls, except for the live tests which are skipped without API keys.
"""

import json
import os
from types import SimpleNamespace
from unittest.mock import AsyncMock, patch

import httpx
import openai
import pytest

from explore_assistant.config import ConfigResolver
from explore_assistant.core.errors import MissingCredentialError, UpstreamServiceError
from explore_assistant.integrations.llm import (
    GeminiProvider,
    LlmGateway,
    OpenAIProvider,
    OpenRouterProvider,
    ProviderKind,
    resolve_provider_kind,
)
from explore_assistant.integrations.local import LocalSettingsStore
from explore_assistant.integrations.mock import ScriptedLlmProvider


def _completion(content):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


def _gateway(model="gemini-2.5-flash", key="k", factories=None):
    store = LocalSettingsStore()
    store.set("llm_model", model)
    if key:
        store.set(f"{resolve_provider_kind(model).value}_api_key", key)
    return LlmGateway(ConfigResolver(settings_store=store), factories)


_CLEAN_ENV = {
    "EXPLORE_ASSISTANT_LLM_MODEL": "",
    "EXPLORE_ASSISTANT_API_KEY": "",
    "GEMINI_API_KEY": "",
    "OPENAI_API_KEY": "",
    "OPENROUTER_API_KEY": "",
}


@pytest.mark.parametrize(
    "model,kind",
    [
        ("gpt-4o-mini", ProviderKind.OPENAI),
        ("o1-preview", ProviderKind.OPENAI),
        ("o3-mini", ProviderKind.OPENAI),
        ("o4-mini", ProviderKind.OPENAI),
        ("openai/gpt-4o-mini", ProviderKind.OPENROUTER),
        ("anthropic/claude-3.5-sonnet", ProviderKind.OPENROUTER),
        ("gemini-2.5-flash", ProviderKind.GEMINI),
        ("", ProviderKind.GEMINI),
    ],
)
def test_resolve_provider_kind(model, kind):
    assert resolve_provider_kind(model) == kind


class TestGateway:
    @pytest.mark.asyncio
    async def test_missing_credential(self):
        with patch.dict(os.environ, _CLEAN_ENV):
            gateway = _gateway(key=None)
            with pytest.raises(MissingCredentialError, match="API key not configured"):
                await gateway.complete("hello")

    @pytest.mark.asyncio
    async def test_resolves_provider_once(self):
        provider = ScriptedLlmProvider(default="pong")
        factory_calls = []

        def factory(config):
            factory_calls.append(config)
            return provider

        gateway = _gateway(factories={ProviderKind.GEMINI: factory})

        assert await gateway.complete("ping") == "pong"
        assert await gateway.complete("ping again") == "pong"
        assert len(factory_calls) == 1
        assert factory_calls[0].model == "gemini-2.5-flash"
        assert provider.prompts == ["ping", "ping again"]

    @pytest.mark.asyncio
    async def test_reset_re_resolves(self):
        providers = []

        def factory(config):
            providers.append(ScriptedLlmProvider(model=config.model))
            return providers[-1]

        gateway = _gateway(factories={ProviderKind.GEMINI: factory})
        first = await gateway.provider()
        await gateway.reset()
        second = await gateway.provider()

        assert first is not second
        assert len(providers) == 2

    @pytest.mark.asyncio
    async def test_upstream_errors_propagate(self):
        provider = ScriptedLlmProvider(
            default=UpstreamServiceError("quota", status=429, service="gemini")
        )
        gateway = _gateway(factories={ProviderKind.GEMINI: lambda c: provider})

        with pytest.raises(UpstreamServiceError) as exc_info:
            await gateway.complete("hello")
        assert exc_info.value.status == 429


class TestGeminiProvider:
    @pytest.mark.asyncio
    async def test_generate_content_request(self):
        seen = {}

        def handler(request):
            seen["url"] = request.url
            seen["body"] = json.loads(request.content)
            return httpx.Response(
                200,
                json={"candidates": [{"content": {"parts": [{"text": "hi there"}]}}]},
            )

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        provider = GeminiProvider("gemini-2.5-flash", "secret", http_client=client)

        assert await provider.complete("say hi") == "hi there"
        assert seen["url"].path == "/v1beta/models/gemini-2.5-flash:generateContent"
        assert seen["url"].params["key"] == "secret"
        assert seen["body"] == {"contents": [{"parts": [{"text": "say hi"}]}]}
        await client.aclose()

    @pytest.mark.asyncio
    async def test_error_status_raises_with_reason(self):
        def handler(request):
            return httpx.Response(400, json={"error": {"message": "API key not valid"}})

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        provider = GeminiProvider("gemini-2.5-flash", "bad", http_client=client)

        with pytest.raises(UpstreamServiceError) as exc_info:
            await provider.complete("hi")
        assert exc_info.value.status == 400
        assert exc_info.value.service == "gemini"
        assert exc_info.value.message == "Gemini API error: API key not valid"
        await client.aclose()

    @pytest.mark.asyncio
    async def test_empty_candidates_yield_empty_text(self):
        client = httpx.AsyncClient(
            transport=httpx.MockTransport(lambda r: httpx.Response(200, json={}))
        )
        provider = GeminiProvider("gemini-2.5-flash", "k", http_client=client)
        assert await provider.complete("hi") == ""
        await client.aclose()


class TestOpenAIProviders:
    @pytest.mark.asyncio
    @patch("openai.AsyncOpenAI")
    async def test_openai_chat_completion(self, mock_openai):
        create = AsyncMock(return_value=_completion("answer"))
        mock_openai.return_value.chat.completions.create = create

        provider = OpenAIProvider(model="gpt-4o-mini", api_key="k")

        assert await provider.complete("question") == "answer"
        assert mock_openai.call_args[1] == {"api_key": "k"}
        assert create.call_args[1] == {
            "model": "gpt-4o-mini",
            "messages": [{"role": "user", "content": "question"}],
        }

    @pytest.mark.asyncio
    @patch("openai.AsyncOpenAI")
    async def test_openai_status_error_is_mapped(self, mock_openai):
        response = httpx.Response(401, request=httpx.Request("POST", "https://api.test"))
        mock_openai.return_value.chat.completions.create = AsyncMock(
            side_effect=openai.APIStatusError("Unauthorized", response=response, body=None)
        )

        provider = OpenAIProvider(model="gpt-4o-mini", api_key="bad")

        with pytest.raises(UpstreamServiceError) as exc_info:
            await provider.complete("question")
        assert exc_info.value.status == 401
        assert exc_info.value.service == "openai"

    @patch.dict(
        os.environ,
        {
            "OPENROUTER_BASE_URL": "",
            "OPENROUTER_HTTP_REFERER": "https://example.test",
            "OPENROUTER_APP_TITLE": "explore-assistant-test",
        },
        clear=False,
    )
    @patch("openai.AsyncOpenAI")
    def test_openrouter_sets_base_url_and_headers(self, mock_openai):
        provider = OpenRouterProvider(model="openai/gpt-4o-mini", api_key="test-key")

        assert provider.model == "openai/gpt-4o-mini"
        call_kwargs = mock_openai.call_args[1]
        assert call_kwargs["api_key"] == "test-key"
        assert call_kwargs["base_url"] == "https://openrouter.ai/api/v1"
        assert call_kwargs["default_headers"] == {
            "HTTP-Referer": "https://example.test",
            "X-Title": "explore-assistant-test",
        }

    @patch("openai.AsyncOpenAI")
    def test_openrouter_explicit_params_override_env(self, mock_openai):
        OpenRouterProvider(
            model="anthropic/claude-3.5-sonnet",
            api_key="k",
            base_url="https://proxy.test/v1",
            http_referer="https://r.test",
            app_title="title",
            default_headers={"X-Extra": "1"},
        )

        call_kwargs = mock_openai.call_args[1]
        assert call_kwargs["base_url"] == "https://proxy.test/v1"
        assert call_kwargs["default_headers"] == {
            "X-Extra": "1",
            "HTTP-Referer": "https://r.test",
            "X-Title": "title",
        }


@pytest.mark.gemini
@pytest.mark.asyncio
async def test_gemini_live_completion():
    provider = GeminiProvider(
        model=os.getenv("GEMINI_MODEL", "gemini-2.5-flash"),
        api_key=os.environ["GEMINI_API_KEY"],
    )
    try:
        text = await provider.complete("Reply with the single word: ready")
    finally:
        await provider.aclose()
    assert text.strip()


@pytest.mark.openrouter
@pytest.mark.asyncio
async def test_openrouter_live_completion():
    provider = OpenRouterProvider(
        model=os.getenv("OPENROUTER_MODEL", "openai/gpt-4o-mini"),
        api_key=os.environ["OPENROUTER_API_KEY"],
    )
    try:
        text = await provider.complete("Reply with the single word: ready")
    finally:
        await provider.aclose()
    assert text.strip()
