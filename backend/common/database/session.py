"""
Common database session management with async support and connection pooling.

This module provides database connection and session management for both
synchronous and asynchronous operations against the service's PostgreSQL
database.

Key Features:
    - Connection pooling with configurable pool sizes
    - Pre-ping connection validation and hourly recycling
    - Support for both sync (pg8000) and async (asyncpg) operations
    - Engine caching to avoid duplicate connection pools
    - Context managers that commit on success and roll back on error

Usage:
    ```python
    # Async context manager (request handlers, background tasks)
    from common.database import get_async_db_session

    async with get_async_db_session("report-delivery-service") as session:
        result = await session.execute(select(ScheduledReports))
        jobs = result.scalars().all()

    # Sync context manager (scripts)
    from common.database import get_db_session

    with get_db_session("report-delivery-service") as session:
        session.execute(text("SELECT 1"))
    ```

Environment Variables:
    - POSTGRES_USER, POSTGRES_PASSWORD, POSTGRES_HOST, POSTGRES_PORT
    - POSTGRES_DB: Database name (default: "report_delivery")
    - DATABASE_POOL_SIZE, DATABASE_MAX_OVERFLOW, DATABASE_POOL_TIMEOUT,
      DATABASE_POOL_RECYCLE, DATABASE_ECHO
"""

from __future__ import annotations

from contextlib import asynccontextmanager, contextmanager
from functools import lru_cache
import os
from typing import Any

from dotenv import load_dotenv
from loguru import logger
from sqlalchemy import create_engine
from sqlalchemy.engine import URL, Engine
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import QueuePool

load_dotenv()

DEFAULT_DATABASE_NAME = "report_delivery"


def get_database_name() -> str:
    """Database name configured through POSTGRES_DB."""
    return os.getenv("POSTGRES_DB", DEFAULT_DATABASE_NAME)


def create_sqlalchemy_url(database_name: str | None = None, async_driver: bool = False) -> URL:
    """
    Create SQLAlchemy database URL from environment variables.

    Args:
        database_name: Name of the database to connect to. Defaults to
            POSTGRES_DB.
        async_driver: If True, uses 'postgresql+asyncpg'; otherwise
            'postgresql+pg8000' (synchronous).

    Returns:
        SQLAlchemy URL object built from the POSTGRES_* environment variables.
    """
    driver = "postgresql+asyncpg" if async_driver else "postgresql+pg8000"

    return URL.create(
        drivername=driver,
        username=os.getenv("POSTGRES_USER"),
        password=os.getenv("POSTGRES_PASSWORD"),
        host=os.getenv("POSTGRES_HOST", "localhost"),
        port=int(os.getenv("POSTGRES_PORT", "5432")),
        database=database_name or get_database_name(),
    )


@lru_cache(maxsize=10)
def get_engine(service_name: str | None = None) -> Engine:
    """
    Get cached sync database engine with connection pooling.

    Args:
        service_name: Name of the service (for logging).

    Returns:
        SQLAlchemy Engine instance.
    """
    url = create_sqlalchemy_url()

    pool_size = int(os.getenv("DATABASE_POOL_SIZE", 10))
    max_overflow = int(os.getenv("DATABASE_MAX_OVERFLOW", 5))

    engine = create_engine(
        url,
        poolclass=QueuePool,
        pool_size=pool_size,
        max_overflow=max_overflow,
        pool_timeout=int(os.getenv("DATABASE_POOL_TIMEOUT", 30)),
        pool_recycle=int(os.getenv("DATABASE_POOL_RECYCLE", 3600)),
        pool_pre_ping=True,
        echo=os.getenv("DATABASE_ECHO", "false").lower() == "true",
    )

    logger.info(
        f"Created database engine for {service_name or 'default'} with pool_size={pool_size}, max_overflow={max_overflow}"
    )
    return engine


@lru_cache(maxsize=10)
def get_async_engine(service_name: str | None = None) -> AsyncEngine:
    """
    Get cached async database engine with connection pooling.

    Args:
        service_name: Name of the service (for logging and the PostgreSQL
            application_name).

    Returns:
        SQLAlchemy AsyncEngine instance.
    """
    url = create_sqlalchemy_url(async_driver=True)

    pool_size = int(os.getenv("DATABASE_POOL_SIZE", 10))
    max_overflow = int(os.getenv("DATABASE_MAX_OVERFLOW", 5))

    async_engine = create_async_engine(
        url,
        pool_size=pool_size,
        max_overflow=max_overflow,
        pool_timeout=int(os.getenv("DATABASE_POOL_TIMEOUT", 30)),
        pool_recycle=int(os.getenv("DATABASE_POOL_RECYCLE", 3600)),
        pool_pre_ping=True,
        echo=os.getenv("DATABASE_ECHO", "false").lower() == "true",
        connect_args={
            "server_settings": {
                "application_name": f"async-{service_name or 'report-delivery-service'}",
                "jit": "off",
            }
        },
    )

    logger.info(
        f"Created async database engine for {service_name or 'default'} with pool_size={pool_size}, max_overflow={max_overflow}"
    )
    return async_engine


@lru_cache(maxsize=10)
def get_session_maker(service_name: str | None = None) -> sessionmaker:
    """Get cached session maker for sync operations."""
    return sessionmaker(
        bind=get_engine(service_name),
        autoflush=False,
        autocommit=False,
        expire_on_commit=False,
    )


@lru_cache(maxsize=10)
def get_async_session_maker(service_name: str | None = None) -> async_sessionmaker:
    """Get cached async session maker for async operations."""
    return async_sessionmaker(
        bind=get_async_engine(service_name),
        class_=AsyncSession,
        autoflush=False,
        expire_on_commit=False,
    )


@contextmanager
def get_db_session(service_name: str | None = None) -> Any:
    """
    Context manager for synchronous database sessions.

    Commits on successful exit, rolls back and re-raises on exceptions, and
    always closes the session.
    """
    session = get_session_maker(service_name)()
    try:
        yield session
        session.commit()
    except Exception as e:
        session.rollback()
        logger.error(f"Database session error: {e}")
        raise
    finally:
        session.close()


@asynccontextmanager
async def get_async_db_session(service_name: str | None = None) -> Any:
    """
    Async context manager for asynchronous database sessions.

    Commits on successful exit, rolls back and re-raises on exceptions, and
    always closes the session. All database operations must be awaited.

    Example:
        ```python
        async with get_async_db_session("report-delivery-service") as session:
            session.add(ReportExecutions(...))
        ```
    """
    session = get_async_session_maker(service_name)()
    try:
        yield session
        await session.commit()
    except Exception as e:
        await session.rollback()
        logger.error(f"Async database session error: {e}")
        raise
    finally:
        await session.close()
