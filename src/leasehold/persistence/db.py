"""Async database engine and session factory.

Provides async connectivity for the SQL lease store using the SQLAlchemy 2.0
asyncio extension (asyncpg for PostgreSQL, aiosqlite for SQLite).
"""

from __future__ import annotations

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from leasehold.config import Settings, settings


def build_engine(database_url: str, config: Settings | None = None) -> AsyncEngine:
    """Create an engine, applying pool settings where the dialect has a pool."""
    config = config or settings
    if database_url.startswith("sqlite"):
        return create_async_engine(database_url)
    return create_async_engine(
        database_url,
        pool_size=config.db_pool_size,
        max_overflow=config.db_max_overflow,
        pool_timeout=config.db_pool_timeout,
        pool_recycle=config.db_pool_recycle,
        pool_pre_ping=True,  # Verify connection health
    )


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory used by SqlLeaseStore."""
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def init_db(engine: AsyncEngine) -> None:
    """Create the lease table if it does not exist.

    For production, manage the schema with your migration tool instead.
    """
    from leasehold.persistence.tables import Base

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
