"""
Database connection and session management.

Owns the async SQLAlchemy engine every repository shares. The hosted store
is PostgreSQL reached through asyncpg; tables are created on first use.
"""

import logging
from typing import Any, AsyncGenerator, Dict, Optional
from contextlib import asynccontextmanager

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    create_async_engine,
    AsyncSession,
    async_sessionmaker,
    AsyncEngine,
)
from sqlalchemy.pool import NullPool, AsyncAdaptedQueuePool

from config import settings
from .models import Base
from .exceptions import DatabaseConnectionError

logger = logging.getLogger(__name__)


def normalize_database_url(database_url: str) -> str:
    """Point postgres:// and postgresql:// URLs at the asyncpg driver."""
    for prefix in ("postgres://", "postgresql://"):
        if database_url.startswith(prefix):
            return "postgresql+asyncpg://" + database_url[len(prefix):]
    return database_url


def engine_options() -> Dict[str, Any]:
    """Pool settings for the engine; tests get a NullPool."""
    if settings.environment == "test":
        return {"poolclass": NullPool}
    return {
        "poolclass": AsyncAdaptedQueuePool,
        "pool_size": settings.db_pool_size,
        "max_overflow": settings.db_max_overflow,
        "pool_timeout": settings.db_pool_timeout,
        "pool_recycle": settings.db_pool_recycle,
        "pool_pre_ping": True,
    }


class Database:
    """Engine and session factory for the hosted store."""

    def __init__(self):
        self.engine: Optional[AsyncEngine] = None
        self.session_factory: Optional[async_sessionmaker[AsyncSession]] = None
        self._initialized = False

    async def initialize(self) -> bool:
        """Create the engine and the tables. Returns False when unavailable."""
        if self._initialized:
            return True

        if not settings.database_url:
            logger.warning("DATABASE_URL not configured")
            return False

        options = engine_options()
        try:
            self.engine = create_async_engine(
                normalize_database_url(settings.database_url),
                echo=settings.database_echo,
                connect_args={"server_settings": {"application_name": "creatorflow-sync"}},
                **options
            )
            self.session_factory = async_sessionmaker(
                bind=self.engine,
                class_=AsyncSession,
                expire_on_commit=False,
                autoflush=False,
            )

            async with self.engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)

        except Exception as e:
            logger.error(f"Database initialization failed: {e}")
            return False

        self._initialized = True
        logger.info(f"Database initialized ({options['poolclass'].__name__})")
        return True

    async def close(self):
        if self.engine:
            await self.engine.dispose()
            self._initialized = False
            logger.info("Database connection closed")

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """A session that commits on success and rolls back on error."""
        if not self._initialized:
            await self.initialize()

        if not self.session_factory:
            raise DatabaseConnectionError("Database not initialized")

        async with self.session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception as e:
                await session.rollback()
                logger.error(f"Database session error: {e}")
                raise

    async def health_check(self) -> Dict[str, Any]:
        """Run a trivial query and report whether the store answered."""
        try:
            async with self.session() as session:
                await session.execute(text("SELECT 1"))
        except Exception as e:
            return {"status": "unhealthy", "error": str(e)}

        return {"status": "healthy", "initialized": self._initialized}


_database: Optional[Database] = None


def get_database() -> Database:
    """Get the database singleton."""
    global _database
    if _database is None:
        _database = Database()
    return _database


async def init_database() -> bool:
    return await get_database().initialize()


async def close_database():
    global _database
    if _database:
        await _database.close()
        _database = None
