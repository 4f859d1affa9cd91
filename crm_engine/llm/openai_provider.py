"""OpenAI LLM provider using LangChain."""

import logging
from typing import Any, Dict

from langchain_core.messages import HumanMessage, SystemMessage
from langchain_openai import ChatOpenAI

from crm_engine.config.settings import settings

from .base import BaseLLMProvider, LLMResponse, content_text, usage_from_metadata

logger = logging.getLogger(__name__)


class OpenAIProvider(BaseLLMProvider):
    """OpenAI LLM provider using LangChain."""

    def __init__(
        self,
        api_key: str = None,
        model: str = None,
        timeout_seconds: int = None,
        max_retries: int = None,
    ):
        self.api_key = api_key or settings.openai_api_key
        self._model = model or settings.openai_model
        self._timeout = timeout_seconds if timeout_seconds is not None else settings.llm_timeout_seconds
        self._max_retries = max_retries if max_retries is not None else settings.llm_max_retries

        if not self.api_key:
            raise ValueError("OPENAI_API_KEY not provided (set via environment or .env file)")

        logger.info(f"Initialized OpenAI provider with model: {self._model}")

    @property
    def provider_name(self) -> str:
        return "openai"

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
        Generate completion using OpenAI via LangChain.

        The developer block travels as its own user turn, ahead of the task.
        """
        messages = [
            SystemMessage(content=system_prompt),
            HumanMessage(content=developer_prompt),
            HumanMessage(content=task_prompt),
        ]

        # Create client for this specific request
        client = ChatOpenAI(
            model=self._model,
            api_key=self.api_key,
            temperature=temperature,
            max_tokens=max_tokens,
            timeout=self._timeout,
            max_retries=self._max_retries,
        )

        logger.debug(
            "Calling OpenAI: model=%s, max_tokens=%s, temperature=%s",
            self._model,
            max_tokens,
            temperature,
        )

        try:
            response = await client.ainvoke(messages)
        except Exception as e:
            logger.error(f"OpenAI provider error: {e}")
            raise

        usage = usage_from_metadata(getattr(response, "usage_metadata", None))
        logger.debug(f"OpenAI response: tokens={usage['total_tokens']}")

        return LLMResponse(
            content=content_text(response.content),
            model=self._model,
            provider="openai",
            usage=usage,
            raw_response={"response_metadata": response.response_metadata}
            if hasattr(response, "response_metadata")
            else None,
        )

    async def health_check(self) -> Dict[str, Any]:
        """Check OpenAI service health."""
        try:
            response = await self.complete(
                system_prompt="You are a test assistant.",
                developer_prompt="Answer with a single word.",
                task_prompt="Reply with 'OK'",
                max_tokens=10,
            )
            return {
                "status": "healthy",
                "provider": "openai",
                "model": self._model,
                "test_response": response.content[:20],
            }
        except Exception as e:
            logger.error(f"OpenAI health check failed: {e}")
            return {
                "status": "unhealthy",
                "provider": "openai",
                "model": self._model,
                "error": str(e),
            }
