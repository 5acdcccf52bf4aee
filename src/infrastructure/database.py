"""
Async SQLAlchemy engine and session factory.

Uses ``aiosqlite`` for local runs and ``asyncpg`` when pointed at
PostgreSQL.  Pool sizing only applies to server databases.
"""

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from src.config import settings


class Base(DeclarativeBase):
    """Shared declarative base for all ORM models."""


def build_engine(url: str) -> AsyncEngine:
    if url.startswith("sqlite"):
        return create_async_engine(url, echo=False)
    return create_async_engine(url, echo=False, pool_size=10, max_overflow=5)


def build_session_factory(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind, class_=AsyncSession, expire_on_commit=False)


engine = build_engine(settings.database_url)
async_session_factory = build_session_factory(engine)


async def init_models(bind: AsyncEngine = engine) -> None:
    """Create missing tables (local databases; production uses migrations)."""
    from . import models  # noqa: F401  (registers tables on Base.metadata)

    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
