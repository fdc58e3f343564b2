"""
Database Connection Module

Handles the PostgreSQL connection using the SQLAlchemy async engine.
The platform tables live in a dedicated schema (menuca_v3 by default); the
connection search_path points at it so models stay schema-agnostic.
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
from sqlalchemy.orm import DeclarativeBase

from menuca.core.config import get_settings

logger = logging.getLogger(__name__)


# Base class for all our models
class Base(DeclarativeBase):
    pass


class DatabaseSessionManager:
    """Owns the engine and hands out sessions that roll back on error."""

    def __init__(self, database_url: str, schema: Optional[str] = None, echo: bool = False):
        engine_kwargs = {"echo": echo, "pool_pre_ping": True}

        if database_url.startswith("postgresql"):
            engine_kwargs.update(pool_size=5, max_overflow=10, pool_recycle=3600)
            if schema:
                engine_kwargs["connect_args"] = {
                    "options": f"-c search_path={schema},public"
                }

        self.engine: AsyncEngine = create_async_engine(database_url, **engine_kwargs)
        self._session_factory = async_sessionmaker(
            bind=self.engine,
            class_=AsyncSession,
            expire_on_commit=False,  # Objects remain accessible after commit
        )

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        session = self._session_factory()
        try:
            yield session
        except SQLAlchemyError as e:
            await session.rollback()
            logger.error(f"Database error, session rolled back: {e}")
            raise
        finally:
            await session.close()

    async def create_all(self) -> None:
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def health_check(self) -> bool:
        """Check database connectivity (used by the readiness route)."""
        try:
            async with self.session() as db:
                await db.execute(text("SELECT 1"))
            return True
        except Exception as e:
            logger.error(f"Database health check failed: {e}")
            return False

    async def close(self) -> None:
        await self.engine.dispose()


# Initialized on startup
db_manager: Optional[DatabaseSessionManager] = None


async def init_db(create_tables: bool = False) -> DatabaseSessionManager:
    """
    Create the session manager from settings.

    Tables are owned by the hosted database; create_tables is only used
    for local development against an empty database.
    """
    global db_manager
    settings = get_settings()

    db_manager = DatabaseSessionManager(
        settings.database_url,
        schema=settings.database_schema,
        echo=settings.database_echo,
    )

    if create_tables:
        await db_manager.create_all()
        logger.info("Database tables created")

    return db_manager


async def close_db() -> None:
    global db_manager
    if db_manager is not None:
        await db_manager.close()
        db_manager = None


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency injection for FastAPI routes.
    Yields a database session and ensures cleanup.
    """
    if db_manager is None:
        raise RuntimeError("Database not initialized")
    async with db_manager.session() as session:
        yield session
