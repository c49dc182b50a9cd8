"""
Async SQLAlchemy engine and sessions for the registry and activity tables.

The API initialises the engine in its lifespan hook; each Celery task run
initialises and disposes its own, because a worker's event loop does not
outlive the task.
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, AsyncIterator

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from filegate.config import settings

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Declarative base for the table-store models."""
    pass


def engine_options(database_url: str) -> dict[str, Any]:
    """Pool options for the given backend (SQLite gets none)."""
    options: dict[str, Any] = {"echo": settings.db_echo and settings.is_development}
    if make_url(database_url).get_backend_name() == "sqlite":
        return options

    options.update(
        pool_pre_ping=True,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
    )
    return options


class DatabaseManager:
    """Owns the engine and session factory for one process."""

    def __init__(self) -> None:
        self._engine: AsyncEngine | None = None
        self._session_factory: async_sessionmaker[AsyncSession] | None = None

    def init(self, database_url: str | None = None) -> None:
        url = database_url or settings.database_url
        self._engine = create_async_engine(url, **engine_options(url))
        self._session_factory = async_sessionmaker(
            bind=self._engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
        logger.info(f"Database engine ready ({make_url(url).get_backend_name()})")

    async def close(self) -> None:
        if self._engine is None:
            return
        await self._engine.dispose()
        self._engine = None
        self._session_factory = None
        logger.info("Database engine disposed")

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            raise RuntimeError("Database not initialized. Call init() first.")
        return self._engine

    async def create_all(self) -> None:
        """Create the registry and activity tables if missing."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    @asynccontextmanager
    async def session_scope(self) -> AsyncIterator[AsyncSession]:
        """
        Session for one unit of work.

        The table store commits its own writes; anything still pending when
        an exception escapes is rolled back.
        """
        if self._session_factory is None:
            raise RuntimeError("Database not initialized. Call init() first.")

        async with self._session_factory() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise


# Global instance
db_manager = DatabaseManager()


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency for database sessions.

    Usage:
        @router.get("/admin/third-parties")
        async def list_third_parties(db: Annotated[AsyncSession, Depends(get_db)]):
            ...
    """
    async with db_manager.session_scope() as session:
        yield session
