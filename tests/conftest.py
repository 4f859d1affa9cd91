"""Shared test fixtures for Automotora CRM Engine tests."""
from datetime import date, datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from crm_engine.config.settings import settings
from crm_engine.llm.base import LLMResponse
from crm_engine.storage.database import create_engine, create_session_factory, init_db
from crm_engine.storage.records import (
    AssistantConfig,
    MessageRole,
    NewClient,
    NewDebt,
    NewMessage,
    default_assistant_config,
)
from crm_engine.storage.sqlalchemy_store import SQLAlchemyClientStore

IN_MEMORY_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

# Fixed "now" so follow-up thresholds are deterministic
NOW = datetime(2026, 3, 20, 12, 0, 0, tzinfo=timezone.utc)


def _make_llm_response(content: str, tokens: int = 120, provider: str = "test") -> LLMResponse:
    """Helper to create mock LLMResponse objects."""
    return LLMResponse(
        content=content,
        model="test-model",
        provider=provider,
        usage={"prompt_tokens": tokens - 20, "completion_tokens": 20, "total_tokens": tokens},
    )


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def sample_config() -> AssistantConfig:
    """The documented default assistant configuration."""
    return default_assistant_config()


@pytest.fixture
def juan_perez() -> NewClient:
    """Stale client with debts."""
    return NewClient(
        name="Juan Pérez",
        national_id="12345678-9",
        email="juan.perez@email.com",
        messages=[
            NewMessage(
                text="Hola, me interesa el Toyota Corolla",
                role=MessageRole.CLIENT,
                sent_at=NOW - timedelta(days=10),
            ),
        ],
        debts=[
            NewDebt(institution="Banco Estado", amount=1500000, due_date=date(2024, 2, 15)),
            NewDebt(institution="Caja Los Andes", amount=800000, due_date=date(2024, 3, 10)),
        ],
    )


@pytest.fixture
def maria_gonzalez() -> NewClient:
    """Recently active client without debts."""
    return NewClient(
        name="María González",
        national_id="98765432-1",
        messages=[
            NewMessage(
                text="¿El Tucson viene en blanco?",
                role=MessageRole.CLIENT,
                sent_at=NOW - timedelta(days=2),
            ),
        ],
    )


@pytest.fixture
def andrea_silva() -> NewClient:
    """Never contacted, no debts."""
    return NewClient(name="Andrea Silva", national_id="11111111-1")


@pytest.fixture
async def store():
    """SQLAlchemy store over a fresh in-memory SQLite database."""
    engine = create_engine(IN_MEMORY_DATABASE_URL)
    await init_db(engine)
    yield SQLAlchemyClientStore(create_session_factory(engine))
    await engine.dispose()


@pytest.fixture
def mock_llm():
    """LLM collaborator returning a fixed message."""
    llm = MagicMock()
    llm.provider_name = "test"
    llm.complete = AsyncMock(
        return_value=_make_llm_response("Hola Juan, te escribe Carla. Carla — Automotora")
    )
    return llm


@pytest.fixture
def client():
    """Test client with the application lifespan running on an in-memory database."""
    from crm_engine.main import app

    with patch.object(settings, "database_url", IN_MEMORY_DATABASE_URL):
        with TestClient(app) as test_client:
            yield test_client
