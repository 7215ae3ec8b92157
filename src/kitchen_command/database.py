"""Engine and session plumbing for the record store database."""
from __future__ import annotations

from collections.abc import AsyncIterator

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from .config import Settings, get_settings


class Base(DeclarativeBase):
    """Declarative base shared by the product and sale tables."""


def create_engine(settings: Settings | None = None) -> AsyncEngine:
    settings = settings or get_settings()
    return create_async_engine(settings.database_url, echo=settings.echo_sql)


def create_session_factory(db_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    # Rows are read back after commit when building responses.
    return async_sessionmaker(bind=db_engine, expire_on_commit=False)


engine = create_engine()
SessionFactory = create_session_factory(engine)


async def get_session() -> AsyncIterator[AsyncSession]:
    """FastAPI dependency yielding one session per request."""

    async with SessionFactory() as session:
        yield session


__all__ = [
    "Base",
    "SessionFactory",
    "create_engine",
    "create_session_factory",
    "engine",
    "get_session",
]
