"""
Database Configuration for Tonr

Async SQLAlchemy engine and session management.
Repositories open one short-lived session per operation through
``storage_session`` so every write commits on its own.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from app.config.settings import settings
from app.infrastructure.exceptions import ConfigurationError, StorageUnavailableError


logger = logging.getLogger(__name__)


class DatabaseManager:
    """
    Owns the async engine and session factory.

    One instance per process (see ``get_db_manager``), created lazily so
    importing the app never opens a connection.
    """

    def __init__(self):
        self._engine: Optional[AsyncEngine] = None
        self._session_factory: Optional[async_sessionmaker[AsyncSession]] = None

    @property
    def engine(self) -> AsyncEngine:
        """Get or create async engine with connection pooling."""
        if self._engine is None:
            self._initialize_engine()
        return self._engine

    @property
    def session_factory(self) -> async_sessionmaker[AsyncSession]:
        """Get or create session factory."""
        if self._session_factory is None:
            self._initialize_engine()
        return self._session_factory

    def _initialize_engine(self) -> None:
        """Initialize async engine with pooling configuration."""
        self._engine = create_async_engine(
            get_database_url(),
            echo=settings.database_echo,
            pool_size=settings.database_pool_size,
            max_overflow=settings.database_max_overflow,
            pool_timeout=settings.database_pool_timeout,
            pool_pre_ping=True,  # Verify connections before use
        )

        self._session_factory = async_sessionmaker(
            bind=self._engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )

    async def close(self) -> None:
        """Close engine and dispose of connection pool."""
        if self._engine:
            await self._engine.dispose()
            self._engine = None
            self._session_factory = None


def get_database_url() -> str:
    """
    Get the asyncpg connection URL from DATABASE_URL.

    Plain ``postgres://`` and ``postgresql://`` URLs are rewritten to use
    the asyncpg driver.
    """
    database_url = settings.database_url
    if not database_url:
        raise ConfigurationError(
            "DATABASE_URL is required for persistence",
            missing_keys=["DATABASE_URL"],
        )

    if database_url.startswith("postgresql://"):
        database_url = database_url.replace("postgresql://", "postgresql+asyncpg://", 1)
    elif database_url.startswith("postgres://"):
        database_url = database_url.replace("postgres://", "postgresql+asyncpg://", 1)
    return database_url


# Global instance (lazy initialization)
_db_manager: Optional[DatabaseManager] = None


def get_db_manager() -> DatabaseManager:
    """Get or create the database manager instance."""
    global _db_manager
    if _db_manager is None:
        _db_manager = DatabaseManager()
    return _db_manager


@asynccontextmanager
async def get_session_context() -> AsyncGenerator[AsyncSession, None]:
    """
    Context manager for database sessions outside FastAPI requests.

    Usage:
        async with get_session_context() as session:
            result = await session.execute(query)
    """
    db = get_db_manager()
    async with db.session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


@asynccontextmanager
async def storage_session(operation: str, table: str) -> AsyncGenerator[AsyncSession, None]:
    """
    Session for one repository operation.

    Driver and SQLAlchemy failures surface as StorageUnavailableError;
    any other exception passes through unchanged.
    """
    try:
        async with get_session_context() as session:
            yield session
    except (SQLAlchemyError, OSError) as e:
        logger.error(f"Storage failure during {operation} on {table}: {e}")
        raise StorageUnavailableError(
            f"Storage unavailable during {operation}",
            operation=operation,
            table=table,
            original_error=e,
        ) from e


async def init_db() -> None:
    """Initialize database connection pool (called on app startup)."""
    db = get_db_manager()
    # Verify connection works
    async with db.session_factory() as session:
        await session.execute(text("SELECT 1"))


async def close_db() -> None:
    """Close database connection pool (called on app shutdown)."""
    db = get_db_manager()
    await db.close()
