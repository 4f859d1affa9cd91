"""
Tests for the LLM providers, the fallback factory and error translation.

Live calls only run when the matching API key is set.
"""

import asyncio
import os
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import openai
import pytest
from langchain_core.messages import AIMessage, HumanMessage, SystemMessage

from crm_engine.api.errors import (
    LLMAuthenticationError,
    LLMProviderError,
    LLMRateLimitedError,
    LLMTimeoutError,
)
from crm_engine.llm.base import LLMResponse, content_text, translate_provider_error
from crm_engine.llm.factory import LLMProviderWithFallback, build_provider
from crm_engine.llm.gemini_provider import GeminiProvider
from crm_engine.llm.openai_provider import OpenAIProvider

PROMPTS = dict(system_prompt="persona", developer_prompt="formato", task_prompt="tarea")


def _ai_message(content="Hola Juan") -> AIMessage:
    return AIMessage(
        content=content,
        usage_metadata={"input_tokens": 90, "output_tokens": 30, "total_tokens": 120},
    )


def _mock_provider(name: str, response=None, error=None) -> MagicMock:
    provider = MagicMock()
    provider.provider_name = name
    if error is not None:
        provider.complete = AsyncMock(side_effect=error)
    else:
        provider.complete = AsyncMock(
            return_value=LLMResponse(
                content=response or "Hola", model=f"{name}-model", provider=name,
                usage={"total_tokens": 50},
            )
        )
    return provider


def _factory(primary, fallback=None) -> LLMProviderWithFallback:
    llm = LLMProviderWithFallback(
        primary_provider=primary.provider_name,
        fallback_provider=fallback.provider_name if fallback else None,
    )
    llm._primary = primary
    llm._fallback = fallback
    return llm


class TestOpenAIProvider:
    """OpenAI provider message layout and parameters."""

    def test_requires_api_key(self):
        with patch("crm_engine.llm.openai_provider.settings.openai_api_key", None):
            with pytest.raises(ValueError):
                OpenAIProvider()

    @pytest.mark.asyncio
    async def test_sends_three_blocks(self):
        with patch("crm_engine.llm.openai_provider.ChatOpenAI") as chat_cls:
            chat_cls.return_value.ainvoke = AsyncMock(return_value=_ai_message())
            provider = OpenAIProvider(api_key="sk-test", model="gpt-4o-mini")

            response = await provider.complete(**PROMPTS, temperature=0.7, max_tokens=300)

        messages = chat_cls.return_value.ainvoke.await_args.args[0]
        assert [type(m) for m in messages] == [SystemMessage, HumanMessage, HumanMessage]
        assert [m.content for m in messages] == ["persona", "formato", "tarea"]
        assert chat_cls.call_args.kwargs["max_tokens"] == 300
        assert chat_cls.call_args.kwargs["temperature"] == 0.7
        assert response.content == "Hola Juan"
        assert response.provider == "openai"
        assert response.usage["total_tokens"] == 120


class TestGeminiProvider:
    """Gemini provider message layout."""

    @pytest.mark.asyncio
    async def test_merges_developer_and_task(self):
        with patch("crm_engine.llm.gemini_provider.ChatGoogleGenerativeAI") as chat_cls:
            chat_cls.return_value.ainvoke = AsyncMock(return_value=_ai_message())
            provider = GeminiProvider(api_key="test-key", model="gemini-2.5-flash")

            response = await provider.complete(**PROMPTS, max_tokens=300)

        messages = chat_cls.return_value.ainvoke.await_args.args[0]
        assert len(messages) == 2
        assert messages[1].content == "formato\n\ntarea"
        assert chat_cls.call_args.kwargs["max_output_tokens"] == 300
        assert response.provider == "gemini"


class TestFallback:
    """Automatic fallback between providers."""

    @pytest.mark.asyncio
    async def test_primary_success(self):
        primary = _mock_provider("openai")
        fallback = _mock_provider("gemini")
        llm = _factory(primary, fallback)

        response = await llm.complete(**PROMPTS, temperature=0.7, max_tokens=300)

        assert response.provider == "openai"
        fallback.complete.assert_not_awaited()
        assert llm.fallback_count == 0

    @pytest.mark.asyncio
    async def test_falls_back_on_primary_failure(self):
        primary = _mock_provider("openai", error=RuntimeError("boom"))
        fallback = _mock_provider("gemini", response="Hola desde Gemini")
        llm = _factory(primary, fallback)

        response = await llm.complete(**PROMPTS, temperature=0.7, max_tokens=300)

        assert response.content == "Hola desde Gemini"
        assert llm.fallback_count == 1

    @pytest.mark.asyncio
    async def test_both_fail_raises_typed_error(self):
        primary = _mock_provider("openai", error=RuntimeError("boom"))
        fallback = _mock_provider("gemini", error=asyncio.TimeoutError())
        llm = _factory(primary, fallback)

        with pytest.raises(LLMTimeoutError):
            await llm.complete(**PROMPTS, temperature=0.7, max_tokens=300)

    @pytest.mark.asyncio
    async def test_no_fallback_raises_primary_error(self):
        primary = _mock_provider("openai", error=RuntimeError("quota: 429 Too Many Requests"))
        llm = _factory(primary)

        with pytest.raises(LLMRateLimitedError):
            await llm.complete(**PROMPTS, temperature=0.7, max_tokens=300)

    def test_same_provider_disables_fallback(self):
        llm = LLMProviderWithFallback(primary_provider="openai", fallback_provider="openai")

        assert llm.fallback_enabled is False

    def test_unknown_provider(self):
        with pytest.raises(ValueError):
            build_provider("llama")


class TestTranslateProviderError:
    """Provider exceptions become typed generation failures."""

    REQUEST = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")

    def test_openai_timeout(self):
        error = openai.APITimeoutError(request=self.REQUEST)

        translated = translate_provider_error(error, "openai", 30)

        assert isinstance(translated, LLMTimeoutError)
        assert translated.status_code == 504

    def test_openai_authentication(self):
        response = httpx.Response(401, request=self.REQUEST)
        error = openai.AuthenticationError("Incorrect API key", response=response, body=None)

        translated = translate_provider_error(error, "openai", 30)

        assert isinstance(translated, LLMAuthenticationError)
        assert translated.retryable is False

    def test_openai_rate_limit(self):
        response = httpx.Response(429, request=self.REQUEST)
        error = openai.RateLimitError("Rate limit reached", response=response, body=None)

        assert isinstance(translate_provider_error(error, "openai", 30), LLMRateLimitedError)

    def test_message_heuristics(self):
        assert isinstance(
            translate_provider_error(Exception("Deadline exceeded"), "gemini", 30), LLMTimeoutError
        )
        assert isinstance(
            translate_provider_error(Exception("API key not valid"), "gemini", 30),
            LLMAuthenticationError,
        )
        assert isinstance(
            translate_provider_error(Exception("RESOURCE_EXHAUSTED"), "gemini", 30),
            LLMRateLimitedError,
        )

    def test_unknown_error(self):
        translated = translate_provider_error(ValueError("bad"), "gemini", 30)

        assert isinstance(translated, LLMProviderError)
        assert translated.details == {"provider": "gemini"}

    def test_generation_error_passes_through(self):
        error = LLMTimeoutError(30)

        assert translate_provider_error(error, "openai", 30) is error


class TestContentText:
    def test_parts_are_joined(self):
        assert content_text([{"type": "text", "text": "Hola "}, "Juan"]) == "Hola Juan"

    def test_none(self):
        assert content_text(None) == ""


class TestLiveProviders:
    """Real API calls."""

    @pytest.mark.skipif(not os.getenv("OPENAI_API_KEY"), reason="OPENAI_API_KEY not set")
    @pytest.mark.asyncio
    async def test_openai_provider_real_call(self):
        provider = OpenAIProvider()

        response = await provider.complete(
            system_prompt="You are a helpful assistant.",
            developer_prompt="Answer briefly.",
            task_prompt="Reply with exactly: 'OpenAI is working'",
            max_tokens=50,
        )

        assert response.provider == "openai"
        assert response.content
        assert response.usage["total_tokens"] > 0

    @pytest.mark.skipif(not os.getenv("GEMINI_API_KEY"), reason="GEMINI_API_KEY not set")
    @pytest.mark.asyncio
    async def test_gemini_provider_real_call(self):
        provider = GeminiProvider()

        response = await provider.complete(
            system_prompt="You are a helpful assistant.",
            developer_prompt="Answer briefly.",
            task_prompt="Reply with exactly: 'Gemini is working'",
            max_tokens=50,
        )

        assert response.provider == "gemini"
        assert response.content
