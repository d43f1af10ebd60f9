"""Database configuration and session management.

Provides async SQLAlchemy engine and session factory.
"""

from typing import Any

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from shopcatalog.infrastructure.config import settings

# Base class for models
Base = declarative_base()


def _enable_sqlite_foreign_keys(dbapi_connection: Any, connection_record: Any) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def build_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    """Create an async engine for the given URL.

    SQLite connections get foreign key enforcement switched on.

    Args:
        database_url: SQLAlchemy async database URL.
        echo: Whether to log SQL statements.

    Returns:
        Configured AsyncEngine.
    """
    if database_url.startswith("sqlite"):
        engine = create_async_engine(database_url, echo=echo)
        event.listen(engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
        return engine
    return create_async_engine(database_url, echo=echo, pool_pre_ping=True)


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


# Create async engine
engine = build_engine(settings.database_url, echo=settings.debug)

# Session factory
async_session_factory = build_session_factory(engine)


async def create_tables(target: AsyncEngine | None = None) -> None:
    """Create database tables if they don't exist."""
    # Register the catalog tables on Base.metadata
    import shopcatalog.catalog.models  # noqa: F401

    async with (target or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
