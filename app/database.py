"""
Database Connection Module
Handles the async SQLAlchemy engine and per-request sessions.

The engine is created by the application lifespan and stored on
``app.state.db``; routes receive a session through ``get_db``.
"""

import logging
from typing import AsyncIterator

from fastapi import Request
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import StaticPool

logger = logging.getLogger(__name__)


# Base class for all our models
class Base(DeclarativeBase):
    pass


class Database:
    """
    Owns the async engine and session factory for the process lifetime.

    SQLite URLs (used by the test suite) share a single in-memory
    connection; any other backend gets a regular connection pool.
    """

    def __init__(self, url: str, echo: bool = False):
        if url.startswith("sqlite"):
            self.engine = create_async_engine(
                url,
                echo=echo,
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
            )
        else:
            self.engine = create_async_engine(
                url,
                echo=echo,
                pool_size=5,  # Connection pool size
                max_overflow=10  # Extra connections when pool is full
            )

        # Objects remain accessible after commit
        self.session_maker = async_sessionmaker(
            bind=self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    async def create_all(self) -> None:
        """
        Create all tables in database.
        Called once at application startup.
        """
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables created successfully")

    async def dispose(self) -> None:
        await self.engine.dispose()


async def get_db(request: Request) -> AsyncIterator[AsyncSession]:
    """
    Dependency injection for FastAPI routes.
    Yields a database session and ensures cleanup.
    """
    database: Database = request.app.state.db
    async with database.session_maker() as session:
        try:
            yield session
        finally:
            await session.close()
