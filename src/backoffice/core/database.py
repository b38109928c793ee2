"""
Database Configuration

Async SQLAlchemy engine and session management.

The engine is created once by ``init_db()`` during application startup and
disposed by ``close_db()`` at shutdown. Request handlers receive a session
through the ``get_db`` dependency; services and repositories take the session
as an explicit argument and never reach for a global handle.
"""

from collections.abc import AsyncIterator

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from backoffice.core.config import settings


class Base(DeclarativeBase):
    """Declarative base for all ORM models."""


engine: AsyncEngine | None = None
async_session_maker: async_sessionmaker[AsyncSession] | None = None


def build_engine(database_url: str | None = None) -> AsyncEngine:
    """
    Create an async engine for the given URL (defaults to settings).

    pool_pre_ping avoids handing out connections the server already closed.
    """
    return create_async_engine(
        database_url or settings.database_url,
        echo=settings.database_echo,
        pool_pre_ping=True,
    )


def build_session_maker(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind=bind, class_=AsyncSession, expire_on_commit=False)


async def init_db(database_url: str | None = None) -> AsyncEngine:
    """
    Initialize the database engine and session factory.

    Call this on application startup. Runs a trivial query so a bad
    DATABASE_URL fails fast.
    """
    global engine, async_session_maker

    engine = build_engine(database_url)
    async_session_maker = build_session_maker(engine)

    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))

    return engine


async def close_db() -> None:
    """Dispose of the engine and its connection pool."""
    global engine, async_session_maker

    if engine is not None:
        await engine.dispose()
    engine = None
    async_session_maker = None


async def get_db() -> AsyncIterator[AsyncSession]:
    """
    FastAPI dependency yielding one session per request.

    Any exception raised while the session is in use rolls back the
    open transaction before the session is closed.
    """
    if async_session_maker is None:
        raise RuntimeError("Database is not initialized. Call init_db() first.")

    async with async_session_maker() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
