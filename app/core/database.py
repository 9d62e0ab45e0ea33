"""
Database session management with async SQLAlchemy 2.0.

Provides:
- Async engine (asyncpg in deployment, aiosqlite for local runs)
- Session factory with proper lifecycle
- Dependency injection for route handlers
"""

import logging
from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import NullPool

from app.config import settings

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Base class for all database models."""
    pass


class DatabaseManager:
    """
    Manages database engine and session lifecycle.

    One engine per application; background jobs borrow the same
    session factory through `session_factory`.
    """

    def __init__(self) -> None:
        self._engine: AsyncEngine | None = None
        self._session_factory: async_sessionmaker[AsyncSession] | None = None

    def init(self, database_url: str | None = None) -> None:
        """
        Initialize database engine and session factory.

        Called during application startup (lifespan event).
        """
        url = database_url or settings.database_url
        logger.info("Initializing database connection...")

        engine_kwargs: dict = {"echo": settings.db_echo and settings.is_development}
        if url.startswith("sqlite"):
            engine_kwargs["poolclass"] = NullPool
        elif settings.is_development:
            engine_kwargs["poolclass"] = NullPool
            engine_kwargs["pool_pre_ping"] = True
        else:
            engine_kwargs.update(
                pool_size=settings.db_pool_size,
                max_overflow=settings.db_max_overflow,
                pool_pre_ping=True,
            )

        self._engine = create_async_engine(url, **engine_kwargs)
        self._session_factory = async_sessionmaker(
            bind=self._engine,
            class_=AsyncSession,
            expire_on_commit=False,  # Objects stay usable after commit
            autoflush=False,
        )

        logger.info("Database connection initialized successfully")

    async def create_tables(self) -> None:
        """Create missing tables (local sqlite runs have no migrations)."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def close(self) -> None:
        """
        Close database connections.

        Called during application shutdown (lifespan event).
        """
        if self._engine:
            logger.info("Closing database connections...")
            await self._engine.dispose()
            logger.info("Database connections closed")

    @property
    def engine(self) -> AsyncEngine:
        """Get the database engine."""
        if not self._engine:
            raise RuntimeError("Database not initialized. Call init() first.")
        return self._engine

    @property
    def session_factory(self) -> async_sessionmaker[AsyncSession]:
        """Session factory for work outside a request (audit writes)."""
        if not self._session_factory:
            raise RuntimeError("Database not initialized. Call init() first.")
        return self._session_factory

    async def get_session(self) -> AsyncGenerator[AsyncSession, None]:
        """
        Yield a session that commits on success and rolls back on error.

        Services commit their own units of work; the final commit here
        flushes anything a read-only handler left pending.
        """
        async with self.session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise


# Global instance
db_manager = DatabaseManager()


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency for database sessions.

    Usage:
        @router.get("/users")
        async def list_users(db: AsyncSession = Depends(get_db)):
            ...
    """
    async for session in db_manager.get_session():
        yield session
