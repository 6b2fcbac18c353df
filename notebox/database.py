"""
Notebox Backend — Database Engine & Session Management
========================================================

What:  Async SQLAlchemy engine, session factory, declarative base and the
       per-request session dependency.
How:   `Database` owns one engine (connection pool) and one session factory.
       It is constructed once by `create_app()` and stored on `app.state`;
       `get_db_session` hands each request its own `AsyncSession` that commits
       on success and rolls back on any error.

Connection Pooling:
    pool_size / max_overflow come from settings (Postgres only; SQLite file
    databases used in tests get SQLAlchemy's default pool).
    pool_pre_ping validates connections before use.
    pool_recycle=3600 recycles connections hourly.
"""

import logging
from typing import Any, AsyncGenerator, Dict

from fastapi import Request
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from notebox.config import Settings

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Base class for all ORM models; its metadata is what Alembic tracks."""
    pass


class Database:
    """
    Holds the process-wide engine and session factory.

    The engine is safe for concurrent use by every request; sessions are not
    and are therefore created per request.
    """

    def __init__(self, settings: Settings):
        engine_kwargs: Dict[str, Any] = {
            "pool_pre_ping": settings.db_pool_pre_ping,
            "echo": settings.log_level == "DEBUG",
        }
        if not settings.database_url.startswith("sqlite"):
            engine_kwargs.update(
                pool_size=settings.db_pool_size,
                max_overflow=settings.db_max_overflow,
                pool_recycle=3600,
            )

        self.engine: AsyncEngine = create_async_engine(settings.database_url, **engine_kwargs)

        # expire_on_commit=False: ORM objects stay readable after commit
        self.session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    async def create_all(self) -> None:
        """Creates every table known to `Base.metadata` (tests and local dev only)."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def dispose(self) -> None:
        """Closes all pooled connections (application shutdown)."""
        await self.engine.dispose()
        logger.info("Database engine disposed")


async def get_db_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides a database session per request.

    How it works:
        1. Opens a session from the app's session factory
        2. Yields it to the route handler
        3. On success: commits the transaction
        4. On error: rolls back and re-raises for the exception handlers
        5. Always: closes the session (returns the connection to the pool)
    """
    database: Database = request.app.state.database
    async with database.session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()
