"""
Request models for the Automotora CRM Engine API.

Security:
- All string fields have max_length constraints to prevent memory exhaustion
- Free text that reaches the LLM prompt (hint, additional_instructions) has
  prompt injection detection
"""

from datetime import date, datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

from crm_engine.storage.records import (
    AssistantConfigUpdate,
    AssistantLanguage,
    AssistantTone,
    MessageLength,
    MessageRole,
    NewClient,
    NewDebt,
    NewMessage,
)

MAX_MESSAGE_LENGTH = 2000
MAX_CLIENT_NAME_LENGTH = 100
MAX_INSTITUTION_NAME_LENGTH = 100
MAX_DEBT_AMOUNT = 999_999_999  # ~1B CLP

# Dangerous patterns that indicate potential prompt injection
PROMPT_INJECTION_PATTERNS = [
    "ignore previous",
    "ignore above",
    "disregard",
    "system prompt",
    "forget your instructions",
    "new instructions",
    "you are now",
    "pretend to be",
    "ignora las instrucciones",
    "olvida tus instrucciones",
]


def reject_prompt_injection(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    lowered = value.lower()
    for pattern in PROMPT_INJECTION_PATTERNS:
        if pattern in lowered:
            raise ValueError("Invalid instructions: contains potentially unsafe pattern")
    return value


class CreateMessageRequest(BaseModel):
    """Message appended to a client's history."""

    text: str = Field(..., min_length=1, max_length=MAX_MESSAGE_LENGTH)
    role: MessageRole
    # Optional so imported conversations keep their original timestamps
    sent_at: Optional[datetime] = None

    @field_validator("text")
    @classmethod
    def strip_text(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Message text is required")
        return v

    def to_new_message(self) -> NewMessage:
        return NewMessage(text=self.text, role=self.role, sent_at=self.sent_at)


class CreateDebtRequest(BaseModel):
    institution: str = Field(..., min_length=1, max_length=MAX_INSTITUTION_NAME_LENGTH)
    amount: int = Field(..., gt=0, le=MAX_DEBT_AMOUNT)
    due_date: date


class CreateClientRequest(BaseModel):
    """New client with optional initial messages and debts."""

    name: str = Field(..., min_length=1, max_length=MAX_CLIENT_NAME_LENGTH)
    national_id: str = Field(..., min_length=1, max_length=20, description="Chilean RUT")
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=30)
    messages: List[CreateMessageRequest] = []
    debts: List[CreateDebtRequest] = []

    @field_validator("email", "phone", mode="before")
    @classmethod
    def empty_string_to_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("name", "national_id")
    @classmethod
    def strip_required(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Field is required")
        return v

    def to_new_client(self) -> NewClient:
        return NewClient(
            name=self.name,
            national_id=self.national_id,
            email=str(self.email) if self.email else None,
            phone=self.phone,
            messages=[m.to_new_message() for m in self.messages],
            debts=[
                NewDebt(institution=d.institution, amount=d.amount, due_date=d.due_date)
                for d in self.debts
            ],
        )


class GenerateMessageRequest(BaseModel):
    """Optional input for follow-up generation."""

    # SECURITY: Limited length with prompt injection detection
    hint: Optional[str] = Field(
        default=None,
        max_length=500,
        description="Free-text hint, e.g. models the client asked about",
    )

    @field_validator("hint")
    @classmethod
    def sanitize_hint(cls, v: Optional[str]) -> Optional[str]:
        return reject_prompt_injection(v)


class UpdateAssistantConfigRequest(BaseModel):
    """Partial update: omitted fields keep their current value."""

    name: Optional[str] = Field(None, min_length=1, max_length=50)
    tone: Optional[AssistantTone] = None
    language: Optional[AssistantLanguage] = None
    brands: Optional[List[str]] = None
    models: Optional[Dict[str, List[str]]] = None
    branches: Optional[List[str]] = None
    message_length: Optional[MessageLength] = None
    signature: Optional[str] = Field(None, min_length=1, max_length=100)
    use_emojis: Optional[bool] = None
    additional_instructions: Optional[str] = Field(None, max_length=1000)

    @field_validator("brands", "branches")
    @classmethod
    def non_empty_entries(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        if v is None:
            return v
        cleaned = [item.strip() for item in v]
        if any(not item for item in cleaned):
            raise ValueError("Entries must not be empty")
        return cleaned

    @field_validator("message_length")
    @classmethod
    def words_within_bounds(cls, v: Optional[MessageLength]) -> Optional[MessageLength]:
        if v is not None and v.max > 500:
            raise ValueError("message_length.max cannot exceed 500 words")
        return v

    @field_validator("additional_instructions")
    @classmethod
    def sanitize_additional_instructions(cls, v: Optional[str]) -> Optional[str]:
        return reject_prompt_injection(v)

    def to_update(self) -> AssistantConfigUpdate:
        return AssistantConfigUpdate(**self.model_dump(exclude_unset=True, exclude_none=True))
