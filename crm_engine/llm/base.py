"""Base LLM provider abstraction."""

import asyncio
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import openai
from pydantic import BaseModel

from crm_engine.api.errors import (
    GenerationError,
    LLMAuthenticationError,
    LLMProviderError,
    LLMRateLimitedError,
    LLMTimeoutError,
)


class LLMResponse(BaseModel):
    """Standardized LLM response across all providers."""

    content: str
    model: str
    provider: str  # "openai", "gemini"
    usage: Dict[str, int]  # prompt_tokens, completion_tokens, total_tokens
    raw_response: Optional[Dict[str, Any]] = None


class BaseLLMProvider(ABC):
    """Abstract base class for all LLM providers."""

    @abstractmethod
    async def complete(
        self,
        system_prompt: str,
        developer_prompt: str,
        task_prompt: str,
        temperature: float = 0.7,
        max_tokens: int = 300,
    ) -> LLMResponse:
        """
        Generate a plain-text completion.

        Args:
            system_prompt: Persona and business rules
            developer_prompt: Formatting and behavior rules
            task_prompt: Data for this specific request
            temperature: Sampling temperature (0-1)
            max_tokens: Maximum tokens in response
        """
        pass

    @abstractmethod
    async def health_check(self) -> Dict[str, Any]:
        """Check provider availability and return model info."""
        pass

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return provider name (openai, gemini, etc.)."""
        pass

    @property
    @abstractmethod
    def model_name(self) -> str:
        """Return current model name."""
        pass


def content_text(content: Any) -> str:
    """Flatten a LangChain message content (str or list of parts) to stripped text."""
    if content is None:
        return ""
    if isinstance(content, str):
        return content.strip()
    parts = []
    for part in content:
        if isinstance(part, str):
            parts.append(part)
        elif isinstance(part, dict) and part.get("type") == "text":
            parts.append(part.get("text", ""))
    return "".join(parts).strip()


def usage_from_metadata(usage_metadata: Optional[Dict[str, Any]]) -> Dict[str, int]:
    usage_metadata = usage_metadata or {}
    return {
        "prompt_tokens": usage_metadata.get("input_tokens", 0),
        "completion_tokens": usage_metadata.get("output_tokens", 0),
        "total_tokens": usage_metadata.get("total_tokens", 0),
    }


def translate_provider_error(
    error: Exception, provider: Optional[str], timeout_seconds: int
) -> GenerationError:
    """
    Map an SDK exception to a typed generation failure.

    Providers wrap errors differently through LangChain, so the message text
    is inspected when the exception type is not recognized.
    """
    if isinstance(error, GenerationError):
        return error

    if isinstance(error, openai.APITimeoutError):
        return LLMTimeoutError(timeout_seconds)
    if isinstance(error, openai.AuthenticationError):
        return LLMAuthenticationError(provider)
    if isinstance(error, openai.RateLimitError):
        return LLMRateLimitedError(provider or "openai")
    if isinstance(error, openai.APIConnectionError):
        return LLMProviderError(f"Connection to {provider} failed", provider)

    if isinstance(error, (asyncio.TimeoutError, TimeoutError)):
        return LLMTimeoutError(timeout_seconds)

    message = str(error).lower()
    if "timeout" in message or "timed out" in message or "deadline" in message:
        return LLMTimeoutError(timeout_seconds)
    if "api key" in message or "authentication" in message or "unauthenticated" in message:
        return LLMAuthenticationError(provider)
    if "rate limit" in message or "resource_exhausted" in message or "429" in message:
        return LLMRateLimitedError(provider or "unknown")

    return LLMProviderError(f"Error generating follow-up message: {error}", provider)
