"""
Database connection management.

Provides the async SQLAlchemy engine, session factory and schema creation.

Dependencies: sqlalchemy, docingest.configs
System role: Database connection lifecycle management
"""

from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine, async_sessionmaker

from docingest.boundary.db.base import Base
from docingest.configs import get_settings
from docingest.configs.database import DatabaseSettings


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def get_async_engine(url: str | None = None, db_config: DatabaseSettings | None = None) -> AsyncEngine:
    """
    Create async SQLAlchemy engine.

    PostgreSQL URLs get a sized connection pool with pre-ping; SQLite URLs
    get foreign key enforcement so chunk rows cascade with their document.

    Args:
        url: Explicit SQLAlchemy async URL (defaults to db_config's URL)
        db_config: Pool and echo settings (process settings if None)

    Returns:
        AsyncEngine: Configured async SQLAlchemy engine

    Raises:
        ArgumentError: If database URL is invalid or engine creation fails
    """
    db_config = db_config or get_settings().database
    url = url or db_config.async_database_url

    if url.startswith("sqlite"):
        engine = create_async_engine(url, echo=db_config.echo_sql)
        event.listen(engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
        return engine

    return create_async_engine(
        url,
        echo=db_config.echo_sql,
        pool_size=db_config.pool_size,
        max_overflow=db_config.max_overflow,
        pool_timeout=db_config.pool_timeout,
        pool_pre_ping=True,
    )


def get_async_session_factory(engine: AsyncEngine | None = None) -> async_sessionmaker[AsyncSession]:
    """
    Create async session factory for database operations.

    Sessions use autoflush=False and expire_on_commit=False so ORM objects
    stay readable after the short transactions used by the tracker and store.

    Args:
        engine: Engine to bind (defaults to a new configured engine)

    Returns:
        async_sessionmaker: Async session factory

    Usage:
        SessionFactory = get_async_session_factory()
        async with SessionFactory() as session:
            session.add(obj)
            await session.commit()
    """
    return async_sessionmaker(
        bind=engine or get_async_engine(),
        autoflush=False,
        expire_on_commit=False,
    )


async def create_tables(engine: AsyncEngine) -> None:
    """
    Create all registered tables if they do not exist.

    On PostgreSQL the pgvector extension is enabled first.

    Args:
        engine: Async engine to run DDL against
    """
    # Register models on Base.metadata
    from docingest.boundary.db import models  # noqa: F401

    async with engine.begin() as conn:
        if conn.dialect.name == "postgresql":
            await conn.execute(text("CREATE EXTENSION IF NOT EXISTS vector"))
        await conn.run_sync(Base.metadata.create_all)
