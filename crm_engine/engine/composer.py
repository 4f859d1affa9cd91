"""
Follow-up message composer.

Builds the persona, formatting and task blocks for a client, asks the LLM for
a message and appends the result to the client's history as an agent message.
Nothing is written unless the LLM returned text; the message is persisted
before it is returned to the caller.
"""

import logging
from datetime import datetime, timezone
from typing import Callable, List, Optional, Sequence

from pydantic import BaseModel

from crm_engine.api.errors import (
    ClientNotFoundError,
    EmptyGenerationError,
    PersistenceError,
)
from crm_engine.config.settings import settings
from crm_engine.llm.base import translate_provider_error
from crm_engine.llm.factory import llm_client
from crm_engine.storage.base import ClientStore, StorageError, StorageErrorKind
from crm_engine.storage.records import (
    AssistantConfig,
    ConversationTurn,
    MessageRecord,
    MessageRole,
)

from .assistant_config import AssistantConfigService
from .prompt_builder import build_prompt_blocks

logger = logging.getLogger(__name__)


class FollowUpResult(BaseModel):
    """A generated follow-up message that has been saved to the client's history."""

    text: str
    message: MessageRecord
    tokens_used: int = 0
    provider: Optional[str] = None
    model: Optional[str] = None


def chronological(history: Sequence[ConversationTurn]) -> List[ConversationTurn]:
    return sorted(history, key=lambda turn: turn.sent_at)


class FollowUpComposer:
    """Generates and stores follow-up messages."""

    def __init__(
        self,
        store: ClientStore,
        llm=None,
        max_tokens: int = None,
        temperature: float = None,
        clock: Callable[[], datetime] = None,
    ):
        self.store = store
        self.llm = llm or llm_client
        self.max_tokens = max_tokens if max_tokens is not None else settings.generation_max_tokens
        self.temperature = (
            temperature if temperature is not None else settings.generation_temperature
        )
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    async def generate(
        self,
        client_id: int,
        client_name: str,
        national_id: str,
        has_debts: bool,
        config: AssistantConfig,
        hint: Optional[str] = None,
        history: Optional[Sequence[ConversationTurn]] = None,
    ) -> FollowUpResult:
        """
        Generate a follow-up message for one client and append it to its history.

        Args:
            client_id: Client that receives the message
            client_name: Name used for the greeting
            national_id: Client RUT
            has_debts: True if the client has any registered debt; disables financing
            config: Assistant configuration (or the fallback persona)
            hint: Optional free-text hint, e.g. models the client asked about
            history: Previous messages in any order; sent to the LLM oldest first

        Raises:
            GenerationError: The LLM failed or returned no text. Nothing was saved.
            PersistenceError: The message was generated but could not be saved.
            ClientNotFoundError: The client disappeared before the message was saved.
        """
        turns = chronological(history or [])
        blocks = build_prompt_blocks(
            config,
            client_name=client_name,
            national_id=national_id,
            has_debts=has_debts,
            hint=hint,
            history=turns,
        )
        logger.debug(
            f"Prompt built for client {client_id}: has_debts={has_debts}, "
            f"history={len(turns)} messages, tone={config.tone.value}"
        )

        try:
            response = await self.llm.complete(
                system_prompt=blocks.system,
                developer_prompt=blocks.developer,
                task_prompt=blocks.task,
                temperature=self.temperature,
                max_tokens=self.max_tokens,
            )
        except Exception as e:
            error = translate_provider_error(
                e, getattr(self.llm, "provider_name", None), settings.llm_timeout_seconds
            )
            logger.error(f"Follow-up generation failed for client {client_id}: {error.message}")
            if error is e:
                raise
            raise error from e

        text = (response.content or "").strip()
        if not text:
            logger.error(f"LLM returned an empty follow-up for client {client_id}")
            raise EmptyGenerationError(response.provider)

        # Never stamp the new message before the latest one already stored
        sent_at = self._clock()
        if turns and turns[-1].sent_at > sent_at:
            sent_at = turns[-1].sent_at

        try:
            message = await self.store.append_message(client_id, text, MessageRole.AGENT, sent_at)
        except StorageError as e:
            if e.kind == StorageErrorKind.NOT_FOUND:
                raise ClientNotFoundError(client_id) from e
            logger.error(f"Generated follow-up for client {client_id} could not be saved: {e}")
            raise PersistenceError(client_id, reason=e.kind.value) from e

        tokens_used = response.usage.get("total_tokens", 0)
        logger.info(
            f"Generated follow-up for client {client_id}: has_debts={has_debts}, "
            f"words={len(text.split())}, provider={response.provider}, tokens={tokens_used}"
        )

        return FollowUpResult(
            text=text,
            message=message,
            tokens_used=tokens_used,
            provider=response.provider,
            model=response.model,
        )

    async def generate_for_client(
        self,
        client_id: int,
        config_service: AssistantConfigService,
        hint: Optional[str] = None,
    ) -> FollowUpResult:
        """Load the client's profile, debts and history from storage and generate."""
        client = await self.store.get_client(client_id)
        if client is None:
            raise ClientNotFoundError(client_id)

        config = await config_service.load_for_generation()
        history = [
            ConversationTurn(text=m.text, role=m.role, sent_at=m.sent_at) for m in client.messages
        ]

        return await self.generate(
            client_id=client.id,
            client_name=client.name,
            national_id=client.national_id,
            has_debts=client.has_debts,
            config=config,
            hint=hint,
            history=history,
        )
