"""
Async SQLAlchemy engine and session factory for the credential store.
"""

from __future__ import annotations

import asyncio
import logging

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from config.settings import Settings
from database.models import Base

logger = logging.getLogger(__name__)


def build_engine(settings: Settings) -> AsyncEngine:
    """
    Create the pooled engine. No connection is opened until first use.

    ``pool_pre_ping`` makes the pool replace connections dropped by the
    server, so reconnection needs no code of our own.
    """
    return create_async_engine(
        settings.database_url,
        echo=False,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_timeout=settings.store_timeout_seconds,
        pool_recycle=3600,
        pool_pre_ping=True,
    )


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


async def ping(engine: AsyncEngine) -> None:
    """Round-trip a trivial query; raises on any connectivity problem."""
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))


async def init_models(
    engine: AsyncEngine,
    retries: int = 3,
    delay_seconds: float = 5.0,
) -> bool:
    """
    Create missing tables, retrying with linear backoff.

    Returns True once the schema is in place, False if every attempt
    failed. The service keeps running either way; store calls report
    ``StoreUnavailable`` until the database is reachable.
    """
    for attempt in range(retries + 1):
        try:
            async with engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
            logger.info("Connected to database; schema ready")
            return True
        except Exception as exc:
            logger.error("Database connection attempt %d failed: %s", attempt + 1, exc)
            if attempt == retries:
                break
            wait = (attempt + 1) * delay_seconds
            logger.info("Retrying database connection in %.0f seconds…", wait)
            await asyncio.sleep(wait)

    logger.warning(
        "Max database connection attempts reached; running without a database",
    )
    return False
