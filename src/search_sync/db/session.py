"""
Database Session Management

Builds the async SQLAlchemy engine and session factory for the system of
record. Nothing is created at import time: the application factory (or a
script) creates the engine at startup and disposes it at shutdown.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from sqlalchemy.ext.asyncio import (
    create_async_engine,
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
)

from ..config import Settings


def create_engine_from_settings(cfg: Optional[Settings] = None, **kwargs) -> AsyncEngine:
    """Create the async engine for ``cfg.database_url``."""
    if cfg is None:
        from ..config import settings as cfg

    return create_async_engine(
        cfg.database_url,
        echo=False,  # Set True for SQL debugging
        pool_pre_ping=True,
        **kwargs,
    )


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@asynccontextmanager
async def session_scope(
    factory: async_sessionmaker[AsyncSession],
) -> AsyncIterator[AsyncSession]:
    """
    Transactional scope: commit on success, roll back and re-raise on error.

    Usage:
        async with session_scope(factory) as session:
            ...
    """
    async with factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
