"""
Async SQLAlchemy engine, session factory and FastAPI session dependency.

PostgreSQL (asyncpg) in deployments; SQLite (aiosqlite) works for local runs
and tests. Order state changes rely on conditional UPDATEs reporting an
accurate row count, which both drivers provide.
"""
import re
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from storefront.core.config import settings
from storefront.core.logging import get_logger

logger = get_logger(__name__)

_ASYNC_DRIVER_PREFIXES = {
    "postgres://": "postgresql+asyncpg://",
    "postgresql://": "postgresql+asyncpg://",
    "sqlite://": "sqlite+aiosqlite://",
}


class Base(DeclarativeBase):
    """SQLAlchemy declarative base for all models."""
    pass


def normalize_database_url(url: str) -> str:
    """Point bare driver URLs at their async drivers."""
    for prefix, replacement in _ASYNC_DRIVER_PREFIXES.items():
        if url.startswith(prefix):
            return replacement + url[len(prefix):]
    return url


def redact_database_url(url: str) -> str:
    return re.sub(r":([^:@/]+)@", ":***@", url)


def create_engine(database_url: str | None = None) -> AsyncEngine:
    """Create the async engine; pool sizing applies to server databases only."""
    database_url = normalize_database_url(database_url or settings.database_url)
    logger.info("Configuring database engine", url=redact_database_url(database_url))

    engine_kwargs: dict[str, Any] = {"echo": settings.database_echo}
    if not database_url.startswith("sqlite"):
        engine_kwargs.update(
            pool_size=settings.database_pool_size,
            max_overflow=settings.database_max_overflow,
            pool_pre_ping=True,
        )

    return create_async_engine(database_url, **engine_kwargs)


engine = create_engine()
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Request-scoped session. Commits when the handler returns, rolls back
    when it raises.
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


@asynccontextmanager
async def get_db_context() -> AsyncGenerator[AsyncSession, None]:
    """Same transaction handling as get_db_session, for workers and scripts."""
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def init_db() -> None:
    """
    Create any missing tables.

    Deployed schemas are managed by Alembic; this only covers fresh
    development databases.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database initialized")


async def close_db() -> None:
    await engine.dispose()
    logger.info("Database connections closed")
