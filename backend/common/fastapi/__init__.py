"""
FastAPI helpers shared by backend services.

Main Components:
    - create_fastapi_app: application factory with logging, CORS, timing
      middleware, health reporting for background workers and a global
      exception handler

Usage:
    ```python
    from common.fastapi import create_fastapi_app

    app = create_fastapi_app(
        service_name="report-delivery-service",
        description="Scheduled report delivery API",
        api_router=api_router,
    )
    ```
"""

from .app_factory import create_fastapi_app

__all__ = ["create_fastapi_app"]
