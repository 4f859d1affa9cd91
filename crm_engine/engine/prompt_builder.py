"""
Prompt construction for follow-up messages.

Pure functions: no storage, no LLM. The financing rule is stated in both the
persona block and the formatting block so the model sees it twice.
"""

from datetime import datetime
from typing import Dict, List, Optional, Sequence

from pydantic import BaseModel

from crm_engine.prompts.follow_up import (
    EMOJI_ALLOWED,
    EMOJI_FORBIDDEN,
    FINANCING_INSTRUCTION_WITH_DEBTS,
    FINANCING_INSTRUCTION_WITHOUT_DEBTS,
    FINANCING_RULE_WITH_DEBTS,
    FINANCING_RULE_WITHOUT_DEBTS,
    FIRST_CONTACT_SECTION,
    FOLLOW_UP_DEVELOPER,
    FOLLOW_UP_SYSTEM,
    FOLLOW_UP_TASK,
    HISTORY_SECTION,
    LANGUAGE_NAMES,
    NO_HINT,
    TONE_STYLES,
)
from crm_engine.storage.records import AssistantConfig, ConversationTurn, MessageRole

ROLE_LABELS = {
    MessageRole.CLIENT: "Client",
    MessageRole.AGENT: "Agent",
}


class PromptBlocks(BaseModel):
    """The three instruction blocks sent to the LLM."""

    system: str
    developer: str
    task: str


def format_catalog(catalog: Dict[str, List[str]]) -> str:
    """Toyota (Corolla, RAV4), Suzuki (Swift), ..."""
    entries = []
    for brand, models in catalog.items():
        entries.append(f"{brand} ({', '.join(models)})" if models else brand)
    return ", ".join(entries)


def format_date(value: datetime, language: str) -> str:
    if language == "en":
        return f"{value.month}/{value.day}/{value.year}"
    return value.strftime("%d-%m-%Y")


def format_conversation_history(history: Sequence[ConversationTurn], language: str = "es") -> str:
    """
    Render a transcript, one line per message, in the order given.

    [19-10-2026] Client: Hola, me interesa el Corolla
    [20-10-2026] Agent: Hola Juan, ...
    """
    lines = []
    for turn in history:
        label = ROLE_LABELS[MessageRole(turn.role)]
        lines.append(f"[{format_date(turn.sent_at, language)}] {label}: {turn.text}")
    return "\n".join(lines)


def financing_rule(has_debts: bool) -> str:
    return FINANCING_RULE_WITH_DEBTS if has_debts else FINANCING_RULE_WITHOUT_DEBTS


def financing_instruction(has_debts: bool) -> str:
    return FINANCING_INSTRUCTION_WITH_DEBTS if has_debts else FINANCING_INSTRUCTION_WITHOUT_DEBTS


def build_persona_block(config: AssistantConfig, has_debts: bool) -> str:
    additional = config.additional_instructions.strip() if config.additional_instructions else ""
    return FOLLOW_UP_SYSTEM.format(
        assistant_name=config.name,
        tone_style=TONE_STYLES[config.tone.value],
        catalog=format_catalog(config.catalog()),
        branches=", ".join(config.branches),
        financing_rule=financing_rule(has_debts),
        language_name=LANGUAGE_NAMES[config.language.value],
        min_words=config.message_length.min,
        max_words=config.message_length.max,
        signature=config.signature,
        emoji_policy=EMOJI_ALLOWED if config.use_emojis else EMOJI_FORBIDDEN,
        additional_instructions=f"\n\nAdditional instructions:\n{additional}" if additional else "",
    )


def build_formatting_block(config: AssistantConfig, has_debts: bool) -> str:
    return FOLLOW_UP_DEVELOPER.format(
        tone_style=TONE_STYLES[config.tone.value],
        min_words=config.message_length.min,
        max_words=config.message_length.max,
        language_name=LANGUAGE_NAMES[config.language.value],
        signature=config.signature,
        financing_instruction=financing_instruction(has_debts),
    )


def build_task_block(
    config: AssistantConfig,
    client_name: str,
    national_id: str,
    has_debts: bool,
    hint: Optional[str] = None,
    history: Optional[Sequence[ConversationTurn]] = None,
) -> str:
    language = config.language.value
    if history:
        history_section = HISTORY_SECTION.format(
            transcript=format_conversation_history(history, language)
        )
    else:
        history_section = FIRST_CONTACT_SECTION

    return FOLLOW_UP_TASK.format(
        client_name=client_name,
        national_id=national_id,
        has_debts=str(has_debts).lower(),
        hint=hint.strip() if hint and hint.strip() else NO_HINT,
        history_section=history_section,
        language_name=LANGUAGE_NAMES[language],
        min_words=config.message_length.min,
        max_words=config.message_length.max,
    )


def build_prompt_blocks(
    config: AssistantConfig,
    client_name: str,
    national_id: str,
    has_debts: bool,
    hint: Optional[str] = None,
    history: Optional[Sequence[ConversationTurn]] = None,
) -> PromptBlocks:
    """History must already be chronological (oldest first)."""
    return PromptBlocks(
        system=build_persona_block(config, has_debts),
        developer=build_formatting_block(config, has_debts),
        task=build_task_block(config, client_name, national_id, has_debts, hint, history),
    )
