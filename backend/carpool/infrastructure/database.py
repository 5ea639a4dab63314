"""Database connection and session management."""

import logging
from typing import AsyncIterator

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from carpool.config import get_settings

logger = logging.getLogger(__name__)

engine: AsyncEngine | None = None
async_session_factory: async_sessionmaker[AsyncSession] | None = None


class Base(DeclarativeBase):
    pass


def create_session_factory(database_url: str, echo: bool = False):
    """Build an engine and session factory for ``database_url``."""
    connect_args = {}
    if database_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False

    db_engine = create_async_engine(
        database_url,
        echo=echo,
        connect_args=connect_args,
    )
    factory = async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
    return db_engine, factory


async def create_tables(db_engine: AsyncEngine) -> None:
    # Register the carpool tables on Base.metadata before create_all.
    import carpool.models.database.carpool  # noqa: F401

    async with db_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def init_db():
    global engine, async_session_factory
    settings = get_settings()

    engine, async_session_factory = create_session_factory(
        settings.database_url,
        echo=settings.debug,
    )
    await create_tables(engine)
    logger.info("Database initialized: %s", engine.url.render_as_string(hide_password=True))


async def close_db():
    global engine
    if engine:
        await engine.dispose()
        engine = None


async def get_db() -> AsyncIterator[AsyncSession]:
    if async_session_factory is None:
        raise RuntimeError("Database not initialized")
    async with async_session_factory() as session:
        yield session
