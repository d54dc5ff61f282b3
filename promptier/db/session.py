"""Database session management for async SQLite.

Engines are owned by the component that creates them (the SQL handle record
store), so several stores with different URLs can coexist in one process.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlmodel import SQLModel

logger = logging.getLogger(__name__)


def create_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    """Create an async database engine.

    Args:
        database_url: Async SQLAlchemy URL, e.g. ``sqlite+aiosqlite:///./promptier.db``.
        echo: Log every SQL statement.

    Returns:
        The async SQLAlchemy engine.
    """
    try:
        logger.info(f"Creating async database engine: {database_url}")

        engine = create_async_engine(
            database_url,
            echo=echo,
            future=True,
            pool_pre_ping=True,
        )

        logger.info("Database engine created successfully")
        return engine

    except Exception as e:
        logger.error(f"Failed to create database engine: {e}", exc_info=True)
        raise


def create_session_maker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create an async session maker bound to ``engine``."""
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@asynccontextmanager
async def session_scope(
    session_maker: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """Provide a transactional session that commits on success.

    Yields:
        An async database session.

    Example:
        ```python
        async with session_scope(session_maker) as session:
            session.add(record)
        ```
    """
    async with session_maker() as session:
        try:
            yield session
            await session.commit()
        except SQLAlchemyError as e:
            logger.error(f"Database error: {e}", exc_info=True)
            await session.rollback()
            raise
        except Exception as e:
            logger.error(f"Unexpected error in session: {e}", exc_info=True)
            await session.rollback()
            raise


async def create_all_tables(engine: AsyncEngine) -> None:
    """Create all database tables.

    Args:
        engine: Engine to create the tables on.
    """
    try:
        # Import models to ensure they're registered with SQLModel metadata
        from promptier.db import models  # noqa: F401

        logger.info("Creating database tables...")

        async with engine.begin() as conn:
            await conn.run_sync(SQLModel.metadata.create_all)

        logger.info("Database tables created successfully")

    except Exception as e:
        logger.error(f"Failed to create database tables: {e}", exc_info=True)
        raise


async def drop_all_tables(engine: AsyncEngine) -> None:
    """Drop all database tables.

    WARNING: This will delete all data. Use with caution,
    typically only in test environments.
    """
    try:
        logger.warning("Dropping all database tables...")

        async with engine.begin() as conn:
            await conn.run_sync(SQLModel.metadata.drop_all)

        logger.warning("All database tables dropped")

    except Exception as e:
        logger.error(f"Failed to drop database tables: {e}", exc_info=True)
        raise


async def close_engine(engine: AsyncEngine) -> None:
    """Dispose of the engine and all its connections."""
    try:
        logger.info("Closing database engine...")
        await engine.dispose()
        logger.info("Database engine closed")

    except Exception as e:
        logger.error(f"Error closing database engine: {e}", exc_info=True)
        raise
