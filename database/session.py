"""
Database session management for the catalog service.

Provides async database session handling with connection pooling,
health checks, and proper error handling.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from loguru import logger
from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from .models import Base


class DatabaseManager:
    """Manages database connections and sessions."""

    def __init__(self, database_url: str, echo: bool = False):
        """
        Initialize database manager.

        Args:
            database_url: Async SQLAlchemy connection URL
            echo: Whether to echo SQL statements (for debugging)
        """
        self.database_url = database_url
        self.echo = echo
        self._engine = None
        self._session_factory = None
        self._initialized = False

    @property
    def dialect_name(self) -> str:
        """Name of the connected SQL dialect (``postgresql``, ``sqlite``)."""
        if not self._initialized:
            raise RuntimeError("Database manager not initialized")
        return self._engine.dialect.name

    async def initialize(self) -> None:
        """Initialize database engine and session factory."""
        if self._initialized:
            return

        logger.info("Initializing database connection")

        engine_options = {"echo": self.echo, "pool_pre_ping": True}
        if not self.database_url.startswith("sqlite"):
            engine_options.update(
                pool_size=10,
                max_overflow=20,
                pool_recycle=3600,  # Recycle connections after 1 hour
            )

        self._engine = create_async_engine(self.database_url, **engine_options)

        self._session_factory = async_sessionmaker(
            bind=self._engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

        self._initialized = True
        logger.info("Database connection initialized successfully")

    async def create_tables(self) -> None:
        """Create all database tables."""
        if not self._initialized:
            await self.initialize()

        logger.info("Creating database tables")
        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables created successfully")

    async def drop_tables(self) -> None:
        """Drop all database tables (for testing/development)."""
        if not self._initialized:
            await self.initialize()

        logger.warning("Dropping all database tables")
        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
        logger.info("Database tables dropped")

    @asynccontextmanager
    async def get_session(self) -> AsyncGenerator[AsyncSession, None]:
        """
        Get an async database session.

        The session commits when the block exits cleanly and rolls back
        otherwise.

        Yields:
            AsyncSession: Database session with automatic cleanup
        """
        if not self._initialized:
            await self.initialize()

        async with self._session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def health_check(self) -> bool:
        """
        Perform database health check.

        Returns:
            True if database is healthy, False otherwise
        """
        try:
            async with self.get_session() as session:
                result = await session.execute(text("SELECT 1"))
                result.scalar()
                return True

        except Exception as e:
            logger.error("Database health check failed", error=str(e))
            return False

    async def close(self) -> None:
        """Close database connections."""
        if self._engine:
            await self._engine.dispose()
            self._initialized = False
            logger.info("Database connections closed")


async def init_database(
    database_url: str, create_tables: bool = True, echo: bool = False
) -> DatabaseManager:
    """
    Initialize a database manager and optionally create tables.

    Args:
        database_url: Async SQLAlchemy connection URL
        create_tables: Whether to create tables
        echo: Echo SQL statements

    Returns:
        The initialized DatabaseManager
    """
    db_manager = DatabaseManager(database_url, echo)
    await db_manager.initialize()

    if create_tables:
        await db_manager.create_tables()

    return db_manager
