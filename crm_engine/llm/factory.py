"""LLM Provider factory with automatic fallback."""

import logging
from typing import Optional

from crm_engine.config.settings import settings

from .base import BaseLLMProvider, LLMResponse, translate_provider_error
from .gemini_provider import GeminiProvider
from .openai_provider import OpenAIProvider

logger = logging.getLogger(__name__)

PROVIDERS = {
    "openai": OpenAIProvider,
    "gemini": GeminiProvider,
}


def build_provider(name: str) -> BaseLLMProvider:
    try:
        provider_cls = PROVIDERS[name]
    except KeyError:
        raise ValueError(f"Unknown LLM provider: {name}")
    return provider_cls()


class LLMProviderWithFallback:
    """
    LLM Provider with automatic fallback.

    Primary: settings.llm_provider (OpenAI by default)
    Fallback: settings.llm_fallback_provider, disabled when its API key is missing

    Whatever fails is raised as a typed GenerationError.
    """

    def __init__(self, primary_provider: str = None, fallback_provider: Optional[str] = "default"):
        self.primary_provider_name = primary_provider or settings.llm_provider
        self.fallback_provider_name = (
            settings.llm_fallback_provider if fallback_provider == "default" else fallback_provider
        )
        if self.fallback_provider_name == self.primary_provider_name:
            self.fallback_provider_name = None

        # Lazy initialization - providers created on first use
        self._primary = None
        self._fallback = None
        self.fallback_count = 0

        logger.info(
            "LLM factory created with primary=%s, fallback=%s",
            self.primary_provider_name,
            self.fallback_provider_name,
        )

    @property
    def primary(self) -> BaseLLMProvider:
        """Lazy-initialize primary provider."""
        if self._primary is None:
            self._primary = build_provider(self.primary_provider_name)
        return self._primary

    @property
    def fallback(self) -> Optional[BaseLLMProvider]:
        """Lazy-initialize fallback provider."""
        if self._fallback is None and self.fallback_provider_name:
            try:
                self._fallback = build_provider(self.fallback_provider_name)
            except ValueError as e:
                # API key not configured - disable fallback gracefully
                logger.warning("Fallback provider unavailable: %s", e)
                self.fallback_provider_name = None
                return None
        return self._fallback

    @property
    def fallback_enabled(self) -> bool:
        return self.fallback_provider_name is not None

    async def complete(
        self,
        system_prompt: str,
        developer_prompt: str,
        task_prompt: str,
        temperature: float,
        max_tokens: int,
    ) -> LLMResponse:
        """
        Generate completion with automatic fallback.

        Tries primary provider first, falls back to secondary on failure.
        """
        kwargs = dict(
            system_prompt=system_prompt,
            developer_prompt=developer_prompt,
            task_prompt=task_prompt,
            temperature=temperature,
            max_tokens=max_tokens,
        )
        try:
            response = await self.primary.complete(**kwargs)
            logger.info(
                "LLM request succeeded: provider=%s, model=%s, tokens=%s",
                response.provider,
                response.model,
                response.usage["total_tokens"],
            )
            return response
        except Exception as e:
            logger.error("Primary provider (%s) failed: %s", self.primary_provider_name, e)
            primary_error = e

        fallback = self.fallback if self.fallback_enabled else None
        if fallback is None:
            logger.error("No fallback provider configured, raising error")
            raise translate_provider_error(
                primary_error, self.primary_provider_name, settings.llm_timeout_seconds
            ) from primary_error

        logger.warning("Falling back to %s", fallback.provider_name)
        self.fallback_count += 1

        try:
            response = await fallback.complete(**kwargs)
        except Exception as fallback_error:
            logger.error("Fallback provider also failed: %s", fallback_error)
            raise translate_provider_error(
                fallback_error, fallback.provider_name, settings.llm_timeout_seconds
            ) from fallback_error

        logger.info(
            "Fallback succeeded: provider=%s, model=%s, tokens=%s",
            response.provider,
            response.model,
            response.usage["total_tokens"],
        )
        return response

    async def health_check(self) -> dict:
        """Check health of both providers."""
        try:
            primary_health = await self.primary.health_check()
        except ValueError as e:
            primary_health = {"status": "unconfigured", "error": str(e)}

        fallback = self.fallback if self.fallback_enabled else None
        fallback_health = await fallback.health_check() if fallback else {"status": "disabled"}

        return {
            "primary": primary_health,
            "fallback": fallback_health,
            "fallback_count": self.fallback_count,
        }

    @property
    def provider_name(self) -> str:
        return self.primary_provider_name

    @property
    def model_name(self) -> str:
        if self.primary_provider_name == "gemini":
            return settings.gemini_model
        return settings.openai_model


# Singleton instance
llm_client = LLMProviderWithFallback()
