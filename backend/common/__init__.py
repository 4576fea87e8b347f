"""
Common utilities and shared code for the report delivery backend.

This package provides the ambient stack shared by backend services:

Modules:
    - config: Centralized configuration management with environment-based settings
    - database: Declarative base and SQLAlchemy session management
    - exceptions: Standardized error handling and API error responses
    - fastapi: FastAPI application factory with common middleware and configuration
    - logging: Centralized logging configuration using loguru
    - models: Shared SQLAlchemy ORM models for scheduled reports and slide content
    - scheduler_client: Client for the Cronicle scheduler service

Usage:
    Import specific modules as needed:

    ```python
    from common.config import get_settings
    from common.database import get_async_db_session
    from common.logging import setup_logging
    from common.exceptions import create_api_error
    ```
"""

__version__ = "0.1.0"
