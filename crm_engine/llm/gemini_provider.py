"""Gemini LLM provider using LangChain."""

import logging
from typing import Any, Dict

from langchain_core.messages import HumanMessage, SystemMessage
from langchain_google_genai import ChatGoogleGenerativeAI

from crm_engine.config.settings import settings

from .base import BaseLLMProvider, LLMResponse, content_text, usage_from_metadata

logger = logging.getLogger(__name__)


class GeminiProvider(BaseLLMProvider):
    """Gemini LLM provider using LangChain."""

    def __init__(
        self,
        api_key: str = None,
        model: str = None,
        timeout_seconds: int = None,
        max_retries: int = None,
    ):
        self.api_key = api_key or settings.gemini_api_key
        self._model = model or settings.gemini_model
        self._timeout = timeout_seconds if timeout_seconds is not None else settings.llm_timeout_seconds
        self._max_retries = max_retries if max_retries is not None else settings.llm_max_retries

        if not self.api_key:
            raise ValueError("GEMINI_API_KEY not provided (set via environment or .env file)")

        logger.info(f"Initialized Gemini provider with model: {self._model}")

    @property
    def provider_name(self) -> str:
        return "gemini"

    @property
    def model_name(self) -> str:
        return self._model

    async def complete(
        self,
        system_prompt: str,
        developer_prompt: str,
        task_prompt: str,
        temperature: float = 0.7,
        max_tokens: int = 300,
    ) -> LLMResponse:
        """
        Generate completion using Gemini via LangChain.

        Gemini expects alternating turns, so the developer and task blocks
        are sent as a single user message.
        """
        messages = [
            SystemMessage(content=system_prompt),
            HumanMessage(content=f"{developer_prompt}\n\n{task_prompt}"),
        ]

        # Create client for this specific request
        client = ChatGoogleGenerativeAI(
            model=self._model,
            google_api_key=self.api_key,
            temperature=temperature,
            max_output_tokens=max_tokens,
            timeout=self._timeout,
            max_retries=self._max_retries,
        )

        logger.debug(
            "Calling Gemini: model=%s, max_tokens=%s, temperature=%s",
            self._model,
            max_tokens,
            temperature,
        )

        try:
            response = await client.ainvoke(messages)
        except Exception as e:
            logger.error(f"Gemini provider error: {e}")
            raise

        usage = usage_from_metadata(getattr(response, "usage_metadata", None))
        logger.debug(f"Gemini response: tokens={usage['total_tokens']}")

        return LLMResponse(
            content=content_text(response.content),
            model=self._model,
            provider="gemini",
            usage=usage,
            raw_response={"response_metadata": response.response_metadata}
            if hasattr(response, "response_metadata")
            else None,
        )

    async def health_check(self) -> Dict[str, Any]:
        """Check Gemini service health."""
        try:
            response = await self.complete(
                system_prompt="You are a test assistant.",
                developer_prompt="Answer with a single word.",
                task_prompt="Reply with 'OK'",
                max_tokens=10,
            )
            return {
                "status": "healthy",
                "provider": "gemini",
                "model": self._model,
                "test_response": response.content[:20],
            }
        except Exception as e:
            logger.error(f"Gemini health check failed: {e}")
            return {
                "status": "unhealthy",
                "provider": "gemini",
                "model": self._model,
                "error": str(e),
            }
