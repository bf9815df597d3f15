"""
database.py — async engine, session factory and the per-request session dependency.

PostgreSQL (asyncpg) in deployment, SQLite (aiosqlite) for local runs and tests.
"""
from collections.abc import AsyncGenerator
from typing import Any

from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from finance_tracker.config import settings


class Base(DeclarativeBase):
    pass


def _engine_options(url: str) -> dict[str, Any]:
    if url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}
    return {"pool_size": 5, "max_overflow": 10, "pool_pre_ping": True}


async_engine = create_async_engine(
    settings.database_url,
    echo=settings.debug,
    **_engine_options(settings.database_url),
)

AsyncSessionLocal = async_sessionmaker(
    bind=async_engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """One session per request: commit when the route returns, roll back if it raises."""
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
