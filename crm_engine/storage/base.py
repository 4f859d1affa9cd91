"""Storage abstraction used by the follow-up engine."""

from abc import ABC, abstractmethod
from datetime import datetime
from enum import Enum
from typing import List, Optional

from .records import (
    AssistantConfig,
    BasicClient,
    ClientActivity,
    ClientRecord,
    DebtRecord,
    MessageRecord,
    MessageRole,
    NewClient,
)


class StorageErrorKind(str, Enum):
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    UNAVAILABLE = "unavailable"


class StorageError(Exception):
    """Storage failure tagged with its kind, independent of the database driver."""

    def __init__(self, kind: StorageErrorKind, message: str, resource: Optional[str] = None):
        self.kind = kind
        self.message = message
        self.resource = resource
        super().__init__(message)

    @classmethod
    def not_found(cls, resource: str, identifier) -> "StorageError":
        return cls(StorageErrorKind.NOT_FOUND, f"{resource} {identifier} not found", resource)


class ClientStore(ABC):
    """Abstract base class for client/message/debt/config persistence."""

    @abstractmethod
    async def list_clients(self) -> List[BasicClient]:
        """All clients (basic fields), sorted by name."""
        pass

    @abstractmethod
    async def list_client_activity(self) -> List[ClientActivity]:
        """Every client with the timestamp of its most recent message."""
        pass

    @abstractmethod
    async def get_client(self, client_id: int) -> Optional[ClientRecord]:
        """Client with messages (newest first) and debts (by due date), or None."""
        pass

    @abstractmethod
    async def client_exists(self, client_id: int) -> bool:
        pass

    @abstractmethod
    async def create_client(self, data: NewClient) -> ClientRecord:
        """Create a client with its initial messages and debts atomically."""
        pass

    @abstractmethod
    async def get_client_messages(self, client_id: int) -> List[MessageRecord]:
        """Messages of a client, newest first. Raises NOT_FOUND for unknown clients."""
        pass

    @abstractmethod
    async def get_client_debts(self, client_id: int) -> List[DebtRecord]:
        pass

    @abstractmethod
    async def get_client_debt_count(self, client_id: int) -> int:
        pass

    @abstractmethod
    async def append_message(
        self, client_id: int, text: str, role: MessageRole, sent_at: datetime
    ) -> MessageRecord:
        """Append a message. Raises NOT_FOUND for unknown clients."""
        pass

    @abstractmethod
    async def get_assistant_config(self) -> Optional[AssistantConfig]:
        """The stored configuration, or None when it was never created."""
        pass

    @abstractmethod
    async def save_assistant_config(self, config: AssistantConfig) -> AssistantConfig:
        """Insert or overwrite the single configuration row."""
        pass

    @abstractmethod
    async def count_clients(self) -> int:
        pass

    @abstractmethod
    async def count_clients_with_debts(self) -> int:
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        pass
