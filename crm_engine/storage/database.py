"""Async engine/session setup and schema creation."""

import logging

from sqlalchemy import event
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from crm_engine.config.settings import settings

from .orm import Base

logger = logging.getLogger(__name__)


def create_engine(database_url: str = None, echo: bool = None) -> AsyncEngine:
    """
    Create the async engine.

    In-memory SQLite shares one connection across sessions (StaticPool),
    otherwise every session would see an empty database.
    """
    url = database_url or settings.database_url
    kwargs = {"echo": settings.database_echo if echo is None else echo}
    if url.startswith("sqlite") and ":memory:" in url:
        kwargs["poolclass"] = StaticPool
        kwargs["connect_args"] = {"check_same_thread": False}

    engine = create_async_engine(url, **kwargs)

    if url.startswith("sqlite"):
        # SQLite ignores ON DELETE CASCADE unless foreign keys are enabled per connection
        @event.listens_for(engine.sync_engine, "connect")
        def _enable_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return engine


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(engine, expire_on_commit=False)


async def init_db(engine: AsyncEngine) -> None:
    """Create tables, retrying while the database is still coming up."""

    @retry(
        stop=stop_after_attempt(max(settings.db_connect_retries, 1)),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        retry=retry_if_exception_type(OperationalError),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
    async def _create_all():
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    await _create_all()
    logger.info("Database schema ready")
