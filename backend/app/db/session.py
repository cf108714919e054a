"""
Database session configuration.

This module builds the SQLAlchemy async engine and session factory. Both are
owned by the application context and created during startup; request
handlers obtain sessions through the `get_db` dependency.
"""

from fastapi import Request
from sqlalchemy.ext.asyncio import create_async_engine, AsyncEngine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import declarative_base

from backend.app.core.config import Settings

# Create declarative base for models
Base = declarative_base()


def create_engine(settings: Settings) -> AsyncEngine:
    """Create the async engine for the configured database."""
    options = {"echo": settings.db_echo, "future": True}
    # SQLite (tests, local runs) does not accept queue pool sizing
    if not settings.database_url.startswith("sqlite"):
        options["pool_size"] = settings.db_pool_size
        options["max_overflow"] = settings.db_max_overflow
    return create_async_engine(settings.database_url, **options)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    """Create the async session factory bound to `engine`."""
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )


async def get_db(request: Request):
    """
    FastAPI dependency for database sessions.

    Yields an async database session from the application context and
    ensures it's properly closed.
    """
    session_factory = request.app.state.context.session_factory
    async with session_factory() as session:
        try:
            yield session
        finally:
            await session.close()
