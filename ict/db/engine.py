"""Async SQLAlchemy engine and session factory construction."""

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from ict.core.settings import DatabaseSettings
from ict.db.base import BaseEntity


def create_engine(db: DatabaseSettings) -> AsyncEngine:
    """Create the async engine; pooling options only apply to server databases."""
    url = db.async_url
    if url.startswith("sqlite"):
        return create_async_engine(url)
    return create_async_engine(
        url,
        pool_size=db.pool_size,
        max_overflow=db.max_overflow,
        pool_pre_ping=True,
    )


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


async def create_schema(engine: AsyncEngine) -> None:
    """Create missing ledger tables."""
    async with engine.begin() as conn:
        await conn.run_sync(BaseEntity.metadata.create_all)
