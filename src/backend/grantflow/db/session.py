"""
Async engine and session handling.

One engine per process, created lazily from settings. The gateway opens
a fresh session per call through ``session_scope``.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from grantflow.core.config import Settings, get_settings
from grantflow.core.logging import get_logger

logger = get_logger(__name__)

_engine: AsyncEngine | None = None


def _engine_options(settings: Settings) -> dict[str, Any]:
    if settings.database_url.startswith("sqlite"):
        # SQLite pools take no sizing arguments
        return {}
    return {
        "pool_size": settings.database_pool_size,
        "max_overflow": settings.database_max_overflow,
        "pool_timeout": settings.database_pool_timeout,
        "pool_pre_ping": True,
        "pool_recycle": 300,
        "connect_args": {"server_settings": {"application_name": settings.app_name}},
    }


def get_engine() -> AsyncEngine:
    """Return the process-wide engine, creating it on first use."""
    global _engine

    if _engine is None:
        settings = get_settings()
        _engine = create_async_engine(
            settings.database_url,
            echo=settings.database_echo,
            **_engine_options(settings),
        )
        logger.info("Database engine created", pool_size=settings.database_pool_size)

    return _engine


def get_session_factory(engine: AsyncEngine | None = None) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine or get_engine(),
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@asynccontextmanager
async def session_scope(
    factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """
    One unit of work: commit when the block exits cleanly, otherwise
    roll back and re-raise.

    Example:
        async with session_scope(factory) as db:
            db.add(opportunity)
    """
    async with factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def close_db() -> None:
    """Dispose of the engine and its pooled connections."""
    global _engine

    if _engine is not None:
        await _engine.dispose()
        _engine = None
        logger.info("Database engine closed")
