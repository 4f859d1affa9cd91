"""
Demo data for local development.

Usage:
    python -m crm_engine.storage.seed
"""

import asyncio
import logging
from datetime import date, datetime, timedelta, timezone
from typing import List, Optional

from crm_engine.config.settings import settings

from .base import ClientStore
from .database import create_engine, create_session_factory, init_db
from .records import ClientRecord, MessageRole, NewClient, NewDebt, NewMessage
from .sqlalchemy_store import SQLAlchemyClientStore

logger = logging.getLogger(__name__)


def demo_clients(now: datetime) -> List[NewClient]:
    """Three clients covering the follow-up cases: stale with debts, active, never contacted."""
    return [
        NewClient(
            name="Juan Pérez",
            national_id="12345678-9",
            email="juan.perez@email.com",
            phone="+56912345678",
            messages=[
                NewMessage(
                    text="Hola, me interesa el Toyota Corolla. ¿Podrían enviarme información?",
                    role=MessageRole.CLIENT,
                    sent_at=now - timedelta(days=10),
                ),
                NewMessage(
                    text="Hola Juan, gracias por tu interés. Te envío información del Corolla por email.",
                    role=MessageRole.AGENT,
                    sent_at=now - timedelta(days=8),
                ),
            ],
            debts=[
                NewDebt(institution="Banco Estado", amount=1500000, due_date=date(2024, 2, 15)),
                NewDebt(institution="Caja Los Andes", amount=800000, due_date=date(2024, 3, 10)),
            ],
        ),
        NewClient(
            name="Pedro Soto",
            national_id="87654321-0",
            email="pedro.soto@email.com",
            phone="+56987654321",
            messages=[
                NewMessage(
                    text="¿Tienen el Hyundai Tucson en color blanco disponible?",
                    role=MessageRole.CLIENT,
                    sent_at=now - timedelta(days=2),
                ),
                NewMessage(
                    text="Sí Pedro, tenemos el Tucson en blanco disponible. ¿Te gustaría agendar una visita?",
                    role=MessageRole.AGENT,
                    sent_at=now - timedelta(days=1),
                ),
            ],
        ),
        NewClient(
            name="Ana Díaz",
            national_id="11223344-5",
            email="ana.diaz@email.com",
            phone="+56911223344",
        ),
    ]


async def seed_demo_data(store: ClientStore, now: Optional[datetime] = None) -> List[ClientRecord]:
    """Insert the demo clients unless the database already has clients."""
    if await store.count_clients() > 0:
        logger.info("Database already has clients, skipping seed")
        return []

    now = now or datetime.now(timezone.utc)
    created = [await store.create_client(client) for client in demo_clients(now)]
    for client in created:
        logger.info(
            f"Seeded {client.name} (id={client.id}): "
            f"{len(client.messages)} messages, {len(client.debts)} debts"
        )
    return created


async def _main() -> None:
    engine = create_engine()
    try:
        await init_db(engine)
        await seed_demo_data(SQLAlchemyClientStore(create_session_factory(engine)))
    finally:
        await engine.dispose()


if __name__ == "__main__":
    logging.basicConfig(
        level=getattr(logging, settings.log_level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    asyncio.run(_main())
