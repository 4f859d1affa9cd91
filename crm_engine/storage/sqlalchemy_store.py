"""SQLAlchemy implementation of the ClientStore."""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncIterator, List, Optional

from sqlalchemy import func, select, text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import selectinload

from .base import ClientStore, StorageError, StorageErrorKind
from .orm import (
    ASSISTANT_CONFIG_ROW_ID,
    AssistantConfigRow,
    ClientRow,
    DebtRow,
    MessageRow,
)
from .records import (
    AssistantConfig,
    BasicClient,
    ClientActivity,
    ClientRecord,
    DebtRecord,
    MessageLength,
    MessageRecord,
    MessageRole,
    NewClient,
)

logger = logging.getLogger(__name__)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """
    Normalize a datetime to aware UTC.

    SQLite hands back naive datetimes; everything is written in UTC so a
    naive value read back is UTC wall time.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _message_record(row: MessageRow) -> MessageRecord:
    return MessageRecord(
        id=row.id,
        text=row.text,
        role=MessageRole(row.role),
        sent_at=as_utc(row.sent_at),
        client_id=row.client_id,
    )


def _client_record(row: ClientRow) -> ClientRecord:
    return ClientRecord(
        id=row.id,
        name=row.name,
        national_id=row.national_id,
        email=row.email,
        phone=row.phone,
        created_at=as_utc(row.created_at),
        updated_at=as_utc(row.updated_at),
        messages=[_message_record(m) for m in row.messages],
        debts=[DebtRecord.model_validate(d) for d in row.debts],
    )


def _config_record(row: AssistantConfigRow) -> AssistantConfig:
    return AssistantConfig(
        id=row.id,
        name=row.name,
        tone=row.tone,
        language=row.language,
        brands=list(row.brands or []),
        models={brand: list(models) for brand, models in (row.models or {}).items()},
        branches=list(row.branches or []),
        message_length=MessageLength(min=row.message_length_min, max=row.message_length_max),
        signature=row.signature,
        use_emojis=row.use_emojis,
        additional_instructions=row.additional_instructions or "",
        created_at=as_utc(row.created_at),
        updated_at=as_utc(row.updated_at),
    )


class SQLAlchemyClientStore(ClientStore):
    """ClientStore backed by an async SQLAlchemy session factory."""

    def __init__(self, session_factory: async_sessionmaker):
        self._session_factory = session_factory

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[AsyncSession]:
        """Open a transactional session and translate driver errors into StorageError."""
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    yield session
        except IntegrityError as e:
            logger.warning(f"Integrity violation: {e.orig}")
            raise StorageError(StorageErrorKind.CONFLICT, "Record conflicts with existing data") from e
        except SQLAlchemyError as e:
            logger.error(f"Database error: {e}")
            raise StorageError(StorageErrorKind.UNAVAILABLE, "Database unavailable") from e

    async def _require_client(self, session: AsyncSession, client_id: int) -> None:
        if await session.get(ClientRow, client_id) is None:
            raise StorageError.not_found("client", client_id)

    async def list_clients(self) -> List[BasicClient]:
        async with self._session() as session:
            result = await session.execute(
                select(ClientRow.id, ClientRow.name, ClientRow.national_id).order_by(
                    ClientRow.name, ClientRow.id
                )
            )
            return [
                BasicClient(id=row.id, name=row.name, national_id=row.national_id)
                for row in result
            ]

    async def list_client_activity(self) -> List[ClientActivity]:
        last_message_at = func.max(MessageRow.sent_at).label("last_message_at")
        stmt = (
            select(ClientRow.id, ClientRow.name, ClientRow.national_id, last_message_at)
            .outerjoin(MessageRow, MessageRow.client_id == ClientRow.id)
            .group_by(ClientRow.id, ClientRow.name, ClientRow.national_id)
        )
        async with self._session() as session:
            result = await session.execute(stmt)
            return [
                ClientActivity(
                    id=row.id,
                    name=row.name,
                    national_id=row.national_id,
                    last_message_at=as_utc(row.last_message_at),
                )
                for row in result
            ]

    async def get_client(self, client_id: int) -> Optional[ClientRecord]:
        async with self._session() as session:
            return await self._load_client(session, client_id)

    async def _load_client(self, session: AsyncSession, client_id: int) -> Optional[ClientRecord]:
        result = await session.execute(
            select(ClientRow)
            .where(ClientRow.id == client_id)
            .options(selectinload(ClientRow.messages), selectinload(ClientRow.debts))
            .execution_options(populate_existing=True)
        )
        row = result.scalar_one_or_none()
        return _client_record(row) if row else None

    async def client_exists(self, client_id: int) -> bool:
        async with self._session() as session:
            count = await session.scalar(
                select(func.count()).select_from(ClientRow).where(ClientRow.id == client_id)
            )
            return count > 0

    async def create_client(self, data: NewClient) -> ClientRecord:
        now = datetime.now(timezone.utc)
        async with self._session() as session:
            client = ClientRow(
                name=data.name,
                national_id=data.national_id,
                email=data.email or None,
                phone=data.phone or None,
                messages=[
                    MessageRow(
                        text=m.text,
                        role=m.role.value,
                        sent_at=as_utc(m.sent_at) if m.sent_at else now,
                    )
                    for m in data.messages
                ],
                debts=[
                    DebtRow(institution=d.institution, amount=d.amount, due_date=d.due_date)
                    for d in data.debts
                ],
            )
            session.add(client)
            await session.flush()
            created = await self._load_client(session, client.id)

        logger.info(
            f"Created client {created.id} with {len(created.messages)} messages "
            f"and {len(created.debts)} debts"
        )
        return created

    async def get_client_messages(self, client_id: int) -> List[MessageRecord]:
        async with self._session() as session:
            await self._require_client(session, client_id)
            result = await session.scalars(
                select(MessageRow)
                .where(MessageRow.client_id == client_id)
                .order_by(MessageRow.sent_at.desc(), MessageRow.id.desc())
            )
            return [_message_record(row) for row in result]

    async def get_client_debts(self, client_id: int) -> List[DebtRecord]:
        async with self._session() as session:
            await self._require_client(session, client_id)
            result = await session.scalars(
                select(DebtRow)
                .where(DebtRow.client_id == client_id)
                .order_by(DebtRow.due_date, DebtRow.id)
            )
            return [DebtRecord.model_validate(row) for row in result]

    async def get_client_debt_count(self, client_id: int) -> int:
        async with self._session() as session:
            await self._require_client(session, client_id)
            return await session.scalar(
                select(func.count()).select_from(DebtRow).where(DebtRow.client_id == client_id)
            )

    async def append_message(
        self, client_id: int, text: str, role: MessageRole, sent_at: datetime
    ) -> MessageRecord:
        async with self._session() as session:
            await self._require_client(session, client_id)
            row = MessageRow(
                client_id=client_id,
                text=text,
                role=MessageRole(role).value,
                sent_at=as_utc(sent_at),
            )
            session.add(row)
            await session.flush()
            return _message_record(row)

    async def get_assistant_config(self) -> Optional[AssistantConfig]:
        async with self._session() as session:
            row = await session.get(AssistantConfigRow, ASSISTANT_CONFIG_ROW_ID)
            return _config_record(row) if row else None

    async def save_assistant_config(self, config: AssistantConfig) -> AssistantConfig:
        async with self._session() as session:
            row = await session.get(AssistantConfigRow, ASSISTANT_CONFIG_ROW_ID)
            if row is None:
                row = AssistantConfigRow(id=ASSISTANT_CONFIG_ROW_ID)
                session.add(row)

            row.name = config.name
            row.tone = config.tone.value
            row.language = config.language.value
            row.brands = list(config.brands)
            row.models = {brand: list(models) for brand, models in config.models.items()}
            row.branches = list(config.branches)
            row.message_length_min = config.message_length.min
            row.message_length_max = config.message_length.max
            row.signature = config.signature
            row.use_emojis = config.use_emojis
            row.additional_instructions = config.additional_instructions or ""
            await session.flush()
            await session.refresh(row)
            return _config_record(row)

    async def count_clients(self) -> int:
        async with self._session() as session:
            return await session.scalar(select(func.count()).select_from(ClientRow))

    async def count_clients_with_debts(self) -> int:
        async with self._session() as session:
            return await session.scalar(select(func.count(func.distinct(DebtRow.client_id))))

    async def health_check(self) -> bool:
        try:
            async with self._session() as session:
                await session.execute(text("SELECT 1"))
            return True
        except StorageError as e:
            logger.error(f"Database health check failed: {e}")
            return False
