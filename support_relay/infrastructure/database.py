"""Database connection and session management (infrastructure layer)."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import NullPool

from support_relay.config import get_settings

logger = logging.getLogger("db")


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


# Engine will be created on startup
_engine: AsyncEngine | None = None
_async_session_factory: async_sessionmaker[AsyncSession] | None = None


def get_engine() -> AsyncEngine:
    """Get the SQLAlchemy async engine."""
    global _engine
    if _engine is None:
        settings = get_settings()
        engine_kwargs = {
            "echo": False,
            "pool_pre_ping": True,
        }
        if settings.database_disable_pooling:
            engine_kwargs["poolclass"] = NullPool
        else:
            engine_kwargs.update({"pool_size": 5, "max_overflow": 10})
        _engine = create_async_engine(
            settings.database_url,
            **engine_kwargs,
        )
        logger.info(
            "Database engine created",
            extra={
                "service": "db",
                "metadata": {"database": settings._redact_url(settings.database_url)},
            },
        )
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Get the async session factory."""
    global _async_session_factory
    if _async_session_factory is None:
        _async_session_factory = async_sessionmaker(
            bind=get_engine(),
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
    return _async_session_factory


@asynccontextmanager
async def get_session_context() -> AsyncGenerator[AsyncSession, None]:
    """Context manager for getting database sessions.

    Usage:
        async with get_session_context() as session:
            ...
    """

    factory = get_session_factory()
    async with factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def check_db() -> None:
    """Run a trivial query; raises if the database is unreachable."""
    async with get_session_context() as session:
        await session.execute(text("SELECT 1"))


async def init_db() -> None:
    """Initialize database connection (call on startup)."""
    settings = get_settings()
    engine = get_engine()
    try:
        async with engine.begin() as conn:
            if settings.database_auto_create:
                # Import models so their tables are registered on Base.metadata
                import support_relay.models  # noqa: F401

                await conn.run_sync(Base.metadata.create_all)
            else:
                await conn.run_sync(lambda _: None)
    except Exception as exc:  # noqa: BLE001
        logger.error(
            "Database connection failed during init",
            extra={"service": "db", "error": str(exc)},
        )
        return
    logger.info("Database connection verified", extra={"service": "db"})


async def close_db() -> None:
    """Close database connection (call on shutdown)."""
    global _engine, _async_session_factory
    if _engine is not None:
        await _engine.dispose()
        _engine = None
        _async_session_factory = None
    logger.info("Database connections closed", extra={"service": "db"})


__all__ = [
    "Base",
    "get_engine",
    "get_session_factory",
    "get_session_context",
    "check_db",
    "init_db",
    "close_db",
]
