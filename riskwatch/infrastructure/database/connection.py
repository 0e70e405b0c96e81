# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Database connection management using SQLAlchemy async.

This module provides async connections to the learning platform
database that holds enrollments, activity, deadlines, progress records
and notifications.

Uses SQLAlchemy 2.0 async API with the asyncpg driver in production.
Any async SQLAlchemy URL works (tests use aiosqlite).

Example:
    from riskwatch.infrastructure.database.connection import (
        init_database,
        get_database_manager,
    )

    # Initialize at application startup
    await init_database(settings)

    # Use in request handlers
    async with get_database_manager().get_session() as session:
        result = await session.execute(select(Course))
        courses = result.scalars().all()
"""

import logging
import threading
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, AsyncIterator, Optional

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

if TYPE_CHECKING:
    from riskwatch.core.config.settings import Settings

logger = logging.getLogger(__name__)

# Module-level state for the application's database manager
_db_manager: Optional["DatabaseManager"] = None


class DatabaseError(Exception):
    """Base exception for database operations.

    Attributes:
        message: Human-readable error description.
        original_error: The underlying SQLAlchemy or database error.
    """

    def __init__(self, message: str, original_error: Optional[Exception] = None) -> None:
        """Initialize the database error.

        Args:
            message: Human-readable error description.
            original_error: The underlying exception that caused this error.
        """
        super().__init__(message)
        self.message = message
        self.original_error = original_error

    def __str__(self) -> str:
        """Return string representation of the error."""
        if self.original_error:
            return f"{self.message}: {self.original_error}"
        return self.message


class DatabaseManager:
    """Lazily created async engine and sessionmaker for one database.

    The engine is created on first use so a manager can be built before
    an event loop exists (for example in a Dramatiq worker thread).

    Example:
        manager = DatabaseManager("postgresql+asyncpg://...")

        async with manager.get_session() as session:
            await session.execute(...)
    """

    def __init__(
        self,
        url: str,
        pool_size: int = 10,
        max_overflow: int = 20,
        echo: bool = False,
    ) -> None:
        """Initialize the database manager.

        Args:
            url: Async SQLAlchemy database URL.
            pool_size: Connection pool size.
            max_overflow: Maximum overflow connections.
            echo: Log emitted SQL.
        """
        self._url = url
        self._pool_size = pool_size
        self._max_overflow = max_overflow
        self._echo = echo
        self._engine: AsyncEngine | None = None
        self._sessionmaker: async_sessionmaker[AsyncSession] | None = None

    @classmethod
    def from_settings(cls, settings: "Settings") -> "DatabaseManager":
        """Build a manager from application settings."""
        return cls(
            settings.database.url,
            pool_size=settings.database.pool_size,
            max_overflow=settings.database.max_overflow,
            echo=settings.debug and settings.log_level == "DEBUG",
        )

    @property
    def engine(self) -> AsyncEngine:
        """Get or create the async engine."""
        if self._engine is None:
            kwargs: dict = {"echo": self._echo}
            if not self._url.startswith("sqlite"):
                kwargs.update(
                    pool_size=self._pool_size,
                    max_overflow=self._max_overflow,
                    pool_pre_ping=True,
                    pool_recycle=1800,
                )
            self._engine = create_async_engine(self._url, **kwargs)
        return self._engine

    @property
    def sessionmaker(self) -> async_sessionmaker[AsyncSession]:
        """Get or create the sessionmaker."""
        if self._sessionmaker is None:
            self._sessionmaker = async_sessionmaker(
                bind=self.engine,
                class_=AsyncSession,
                expire_on_commit=False,
                autoflush=False,
            )
        return self._sessionmaker

    @asynccontextmanager
    async def get_session(self) -> AsyncIterator[AsyncSession]:
        """Get an async session.

        Everything done inside the block is one transaction: it is
        committed on success and rolled back on exception.

        Yields:
            AsyncSession for database operations.

        Raises:
            SQLAlchemyError: If a database operation fails.

        Example:
            async with manager.get_session() as session:
                result = await session.execute(select(User))
                users = result.scalars().all()
        """
        async with self.sessionmaker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def check_connection(self) -> bool:
        """Check if the database is reachable.

        Returns:
            True if a trivial query succeeds, False otherwise.
        """
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError as e:
            logger.warning("Database connection check failed: %s", str(e))
            return False

    def reset(self) -> None:
        """Forget the cached engine without disposing it.

        Used when the event loop the engine was bound to has been closed.
        """
        self._engine = None
        self._sessionmaker = None

    async def close(self) -> None:
        """Dispose the engine and its connection pool."""
        if self._engine is not None:
            await self._engine.dispose()
        self.reset()


async def init_database(settings: "Settings") -> DatabaseManager:
    """Initialize the application's database manager.

    This should be called once at application startup.

    Args:
        settings: Application settings containing database configuration.

    Returns:
        The initialized DatabaseManager.

    Raises:
        DatabaseError: If engine creation fails.
    """
    global _db_manager

    try:
        manager = DatabaseManager.from_settings(settings)
        engine = manager.engine
    except SQLAlchemyError as e:
        raise DatabaseError("Failed to initialize database connection", e) from e

    logger.info(
        "Database engine created for %s",
        engine.url.render_as_string(hide_password=True),
    )
    _db_manager = manager
    return manager


async def close_database() -> None:
    """Close the application's database connection pool.

    This should be called at application shutdown.
    """
    global _db_manager

    if _db_manager is not None:
        await _db_manager.close()
        _db_manager = None


def get_database_manager() -> DatabaseManager:
    """Get the application's database manager.

    Returns:
        The DatabaseManager created by init_database().

    Raises:
        DatabaseError: If the database has not been initialized.
    """
    if _db_manager is None:
        raise DatabaseError("Database not initialized. Call init_database() first.")
    return _db_manager


# =============================================================================
# Thread-local manager for Dramatiq workers
# =============================================================================

_thread_local_manager = threading.local()


def get_worker_db_manager() -> DatabaseManager:
    """Get a DatabaseManager for the current worker thread.

    Async engines are bound to the event loop they were created in and
    every worker thread runs its own loop (see tasks/base.py), so each
    thread gets its own manager.

    Returns:
        Thread-local DatabaseManager instance.

    Example:
        @dramatiq.actor
        def my_task(course_id: str):
            db_manager = get_worker_db_manager()
            async with db_manager.get_session() as session:
                pass
    """
    manager = getattr(_thread_local_manager, "db_manager", None)

    if manager is None:
        from riskwatch.core.config import get_settings

        manager = DatabaseManager.from_settings(get_settings())
        _thread_local_manager.db_manager = manager

    return manager


def _clear_thread_db_connections() -> None:
    """Clear database connections for the current thread.

    Called by run_async() when a new event loop is created for a thread.
    Safe to call even if no manager exists for the thread.
    """
    manager = getattr(_thread_local_manager, "db_manager", None)
    if manager is not None:
        manager.reset()
