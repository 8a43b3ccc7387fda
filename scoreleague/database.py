"""Async engine and sessions for the league database (SQLite or PostgreSQL)."""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy.exc import InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel

from scoreleague.config import get_settings

# Register table metadata before create_all
from scoreleague import models  # noqa: F401

logger = logging.getLogger(__name__)

settings = get_settings()

# Sync URL prefix -> async driver prefix
_ASYNC_DRIVERS = (
    ("sqlite://", "sqlite+aiosqlite://"),
    ("postgres://", "postgresql+asyncpg://"),
    ("postgresql://", "postgresql+asyncpg://"),
)


def get_database_url(url: str) -> str:
    """Rewrite a plain SQLite/PostgreSQL URL to use its async driver."""
    for prefix, async_prefix in _ASYNC_DRIVERS:
        if url.startswith(prefix):
            return async_prefix + url[len(prefix):]
    return url


def _engine_kwargs(url: str) -> dict:
    if url.startswith("sqlite"):
        # One shared connection so in-process jobs see the same SQLite file state
        return {"connect_args": {"check_same_thread": False}, "poolclass": StaticPool}
    return {"pool_pre_ping": True, "pool_size": 5, "max_overflow": 10, "pool_recycle": 300}


DATABASE_URL = get_database_url(settings.DATABASE_URL)

async_engine = create_async_engine(DATABASE_URL, echo=False, **_engine_kwargs(DATABASE_URL))

AsyncSessionLocal = sessionmaker(
    bind=async_engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency: one session per request."""
    async with AsyncSessionLocal() as session:
        yield session


async def init_db() -> None:
    async with async_engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    logger.info("[DB] Tables ready")


async def close_db() -> None:
    await async_engine.dispose()
    logger.info("[DB] Connections closed")


@asynccontextmanager
async def get_session_with_retry(max_retries: int = 3, retry_delay: float = 1.0):
    """
    Session for scheduler jobs and queued handlers.

    Retries with exponential backoff while the first connection cannot be
    opened (stale pool after a database restart). Errors raised once the
    session is handed out propagate unchanged.
    """
    delay = retry_delay
    for attempt in range(1, max_retries + 1):
        session = AsyncSessionLocal()
        try:
            await session.connection()
            break
        except (InterfaceError, OperationalError) as e:
            await session.close()
            if attempt == max_retries:
                raise
            logger.warning(
                f"[DB] Connection failed (attempt {attempt}/{max_retries}): {e}. Retrying in {delay}s"
            )
            await asyncio.sleep(delay)
            delay *= 2

    try:
        yield session
    finally:
        await session.close()
