"""Domain records exchanged between the storage layer and the engine."""

from datetime import date, datetime
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class MessageRole(str, Enum):
    """Who wrote a message."""

    CLIENT = "client"
    AGENT = "agent"


class MessageRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    text: str
    role: MessageRole
    sent_at: datetime
    client_id: int


class DebtRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    institution: str
    amount: int
    due_date: date
    client_id: int


class BasicClient(BaseModel):
    """Public client fields returned by list endpoints."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    national_id: str


class ClientActivity(BasicClient):
    """A client and the timestamp of its latest message (None if it never wrote)."""

    last_message_at: Optional[datetime] = None


class ClientRecord(BasicClient):
    """Client with its full message history (newest first) and debts (by due date)."""

    email: Optional[str] = None
    phone: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    messages: List[MessageRecord] = []
    debts: List[DebtRecord] = []

    @property
    def has_debts(self) -> bool:
        # Any registered debt counts, overdue or not
        return len(self.debts) > 0


class NewMessage(BaseModel):
    text: str
    role: MessageRole
    sent_at: Optional[datetime] = None  # defaults to now


class NewDebt(BaseModel):
    institution: str
    amount: int
    due_date: date


class NewClient(BaseModel):
    name: str
    national_id: str
    email: Optional[str] = None
    phone: Optional[str] = None
    messages: List[NewMessage] = []
    debts: List[NewDebt] = []


class ConversationTurn(BaseModel):
    """One entry of the conversation history handed to the prompt composer."""

    text: str
    role: MessageRole
    sent_at: datetime


# =============================================================================
# ASSISTANT CONFIGURATION
# =============================================================================


class AssistantTone(str, Enum):
    PROFESSIONAL = "professional"
    WARM = "warm"
    FORMAL = "formal"
    FRIENDLY = "friendly"


class AssistantLanguage(str, Enum):
    SPANISH = "es"
    ENGLISH = "en"


class MessageLength(BaseModel):
    """Target word count range for generated messages."""

    min: int = Field(..., gt=0)
    max: int = Field(..., gt=0)

    @model_validator(mode="after")
    def check_range(self) -> "MessageLength":
        if self.min > self.max:
            raise ValueError("message_length.min must not exceed message_length.max")
        return self


class AssistantConfig(BaseModel):
    """Persona and business rules of the dealership's sales assistant."""

    id: Optional[int] = None
    name: str
    tone: AssistantTone
    language: AssistantLanguage
    brands: List[str]
    models: Dict[str, List[str]]
    branches: List[str]
    message_length: MessageLength
    signature: str
    use_emojis: bool
    additional_instructions: str = ""
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def catalog(self) -> Dict[str, List[str]]:
        """Brand -> models for the listed brands, in brand order."""
        return {brand: list(self.models.get(brand, [])) for brand in self.brands}


class AssistantConfigUpdate(BaseModel):
    """Partial update: None means keep the current value."""

    name: Optional[str] = None
    tone: Optional[AssistantTone] = None
    language: Optional[AssistantLanguage] = None
    brands: Optional[List[str]] = None
    models: Optional[Dict[str, List[str]]] = None
    branches: Optional[List[str]] = None
    message_length: Optional[MessageLength] = None
    signature: Optional[str] = None
    use_emojis: Optional[bool] = None
    additional_instructions: Optional[str] = None


def default_assistant_config() -> AssistantConfig:
    """Configuration created the first time the assistant config is read."""
    return AssistantConfig(
        name="Carla",
        tone=AssistantTone.PROFESSIONAL,
        language=AssistantLanguage.SPANISH,
        brands=["Toyota", "Hyundai", "Chevrolet", "Suzuki", "Mazda"],
        models={
            "Toyota": ["Corolla", "RAV4"],
            "Hyundai": ["Tucson", "Elantra"],
            "Chevrolet": ["Tracker", "Onix"],
            "Suzuki": ["Swift"],
            "Mazda": ["CX-5"],
        },
        branches=["Providencia", "Maipú", "La Florida"],
        message_length=MessageLength(min=120, max=180),
        signature="Carla — Automotora",
        use_emojis=True,
        additional_instructions="",
    )
