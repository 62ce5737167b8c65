"""Async engine and session factory for the record store."""

import logging
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.orm import declarative_base

from app.core.config import Settings, get_settings

logger = logging.getLogger(__name__)

Base = declarative_base()


def database_url(settings: Settings) -> str:
    return f"sqlite+aiosqlite:///{settings.db_path}"


def create_session_maker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory shared by every SqlRecordStore on `engine`."""
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


settings = get_settings()

engine = create_async_engine(database_url(settings), echo=settings.debug)
async_session_maker = create_session_maker(engine)


async def init_db(target: AsyncEngine | None = None) -> None:
    """
    Create every table registered on Base.

    Models register themselves when `app.models` is imported, which the record
    store does, so callers only need the store on their import path.
    """
    target = target or engine
    async with target.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info(f"Database ready: {', '.join(sorted(Base.metadata.tables))}")
