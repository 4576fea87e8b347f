"""
Common database utilities and session management.

This module provides the database layer shared by backend services: the
declarative base for ORM models and pooled sync/async session management
for the service's PostgreSQL database.

Main Components:
    - Base: SQLAlchemy declarative base class for all ORM models
    - session: Database connection and session management

Usage:
    ```python
    from common.database import get_async_db_session

    async with get_async_db_session("report-delivery-service") as session:
        result = await session.execute(select(ScheduledReports))
    ```
"""

from .base import Base
from .session import (
    create_sqlalchemy_url,
    get_async_db_session,
    get_async_engine,
    get_async_session_maker,
    get_database_name,
    get_db_session,
    get_engine,
    get_session_maker,
)

__all__ = [
    "Base",
    "create_sqlalchemy_url",
    "get_async_db_session",
    "get_async_engine",
    "get_async_session_maker",
    "get_database_name",
    "get_db_session",
    "get_engine",
    "get_session_maker",
]
