import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker

from handyai.core.config import Settings

logger = logging.getLogger("handyai.db")


class Database:
    """
    Owns the async engine and the session factory.

    Constructed once at application startup and stored on ``app.state.database``;
    ``dispose()`` must be called on shutdown to release pooled connections.
    """

    def __init__(self, url: str, **engine_kwargs: Any):
        self.engine: AsyncEngine = create_async_engine(url, **engine_kwargs)
        self.session_factory = sessionmaker(
            self.engine, class_=AsyncSession, expire_on_commit=False
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "Database":
        # - pool_pre_ping: verify connections are alive before use
        # - pool_recycle: recycle connections after 1 hour to avoid DB-side timeouts
        return cls(
            settings.DATABASE_URL,
            echo=settings.SQLALCHEMY_ECHO,
            pool_size=settings.DB_POOL_SIZE,
            max_overflow=settings.DB_MAX_OVERFLOW,
            pool_pre_ping=True,
            pool_recycle=3600,
            pool_timeout=30,
        )

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        async with self.session_factory() as session:
            yield session

    async def check_connection(self) -> bool:
        """
        Verify database connectivity. Used by health checks.
        Returns True if connection is successful, False otherwise.
        """
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            return True
        except Exception as e:
            logger.warning(f"Database health check failed: {e}")
            return False

    async def dispose(self) -> None:
        logger.info("Closing database connections...")
        await self.engine.dispose()
        logger.info("Database connections closed")
