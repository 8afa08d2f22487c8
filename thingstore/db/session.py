from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from .config import Settings, get_settings


# PUBLIC_INTERFACE
def create_engine(settings: Optional[Settings] = None) -> AsyncEngine:
    """
    Build an AsyncEngine for the configured PostgreSQL database.

    A server-side statement_timeout is applied to every connection when
    STATEMENT_TIMEOUT_MS is set.
    """
    settings = settings or get_settings()
    connect_args = {}
    if settings.STATEMENT_TIMEOUT_MS:
        connect_args["server_settings"] = {
            "statement_timeout": str(settings.STATEMENT_TIMEOUT_MS)
        }
    return create_async_engine(
        settings.async_database_url,
        echo=settings.SQL_ECHO,
        pool_size=settings.POOL_SIZE,
        pool_pre_ping=True,
        connect_args=connect_args,
    )


# PUBLIC_INTERFACE
def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Return a session factory bound to the given engine."""
    return async_sessionmaker(
        bind=engine, expire_on_commit=False, autoflush=False
    )


# PUBLIC_INTERFACE
@asynccontextmanager
async def session_scope(
    factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """
    Yield a session and always close it afterwards.

    Usage:
        async with session_scope(factory) as session:
            things = ThingRepository(session)
            ...
    """
    async with factory() as session:
        yield session
