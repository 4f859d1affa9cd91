"""
Assistant configuration lifecycle.

The configuration is a single stored row. Reading it when missing creates the
default; updates are partial; generation falls back to a fixed persona when
the stored configuration cannot be loaded.
"""

import logging

from pydantic import ValidationError as PydanticValidationError

from crm_engine.api.errors import ValidationError
from crm_engine.storage.base import ClientStore, StorageError, StorageErrorKind
from crm_engine.storage.records import (
    AssistantConfig,
    AssistantConfigUpdate,
    default_assistant_config,
)

logger = logging.getLogger(__name__)

# Used for generation when the stored configuration cannot be read
FALLBACK_ASSISTANT_CONFIG = default_assistant_config()


def apply_update(config: AssistantConfig, update: AssistantConfigUpdate) -> AssistantConfig:
    """Return a copy of `config` with every non-None field of `update` applied."""
    changes = update.model_dump(exclude_none=True)
    if "models" in changes and update.brands is None:
        # New catalog without explicit brand order: keep known order, append new brands
        brands = [b for b in config.brands if b in update.models]
        brands += [b for b in update.models if b not in brands]
        changes["brands"] = brands
    elif "brands" in changes and update.models is None:
        # Models of removed brands are dropped with them
        changes["models"] = {b: config.models[b] for b in update.brands if b in config.models}

    merged = config.model_dump()
    merged.update(changes)
    try:
        return AssistantConfig.model_validate(merged)
    except PydanticValidationError as e:
        raise ValidationError(
            "Invalid assistant configuration",
            details={"validation_errors": e.errors(include_url=False, include_context=False)},
        )


class AssistantConfigService:
    """Load, create-by-default and partially update the assistant configuration."""

    def __init__(self, store: ClientStore):
        self.store = store

    async def get_config(self) -> AssistantConfig:
        config = await self.store.get_assistant_config()
        if config is not None:
            return config

        logger.info("No assistant configuration found, creating default")
        try:
            return await self.store.save_assistant_config(default_assistant_config())
        except StorageError as e:
            if e.kind != StorageErrorKind.CONFLICT:
                raise
            # Another request created it first
            config = await self.store.get_assistant_config()
            if config is None:
                raise
            return config

    async def update_config(self, update: AssistantConfigUpdate) -> AssistantConfig:
        current = await self.store.get_assistant_config()
        if current is None:
            current = default_assistant_config()

        updated = apply_update(current, update)
        saved = await self.store.save_assistant_config(updated)
        logger.info(
            f"Assistant configuration updated: fields={sorted(update.model_dump(exclude_none=True))}"
        )
        return saved

    async def load_for_generation(self) -> AssistantConfig:
        """Current configuration, or the fixed fallback persona if it cannot be loaded."""
        try:
            return await self.get_config()
        except (StorageError, PydanticValidationError) as e:
            # Stored row unreadable or database down
            logger.warning(f"Assistant configuration unavailable, using fallback persona: {e}")
            return FALLBACK_ASSISTANT_CONFIG.model_copy(deep=True)
