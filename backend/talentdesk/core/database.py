"""Async database engine and session management.

One engine per process, created at import from settings. Request handlers
get a session through the get_db dependency; scripts and background jobs
use open_session(), which has the same commit/rollback behaviour.
"""

from collections.abc import AsyncGenerator, AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from talentdesk.core.config import settings

engine = create_async_engine(
    settings.database_url,
    echo=settings.environment == "development",
    pool_pre_ping=True,
)

async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


@asynccontextmanager
async def open_session() -> AsyncIterator[AsyncSession]:
    """Open a session that commits on success and rolls back on error."""
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Dependency that provides a database session."""
    async with open_session() as session:
        yield session


async def dispose_engine() -> None:
    """Close pooled connections (application shutdown)."""
    await engine.dispose()
