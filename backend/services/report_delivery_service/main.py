"""
Report Delivery Service - FastAPI Application Entry Point

Serves the scheduled report API: creating and editing report delivery jobs,
sending them now, the scheduler trigger callback, previews, execution
history, the cron builder and content refresh.

Background tasks:
    The stalled execution monitor is started and stopped with the app
    lifespan. It fails jobs left in the executing state longer than
    STALLED_EXECUTION_TIMEOUT_MINUTES.

Example:
    To run the service locally:
        ```bash
        uv run uvicorn services.report_delivery_service.main:app --port 8004 --reload
        ```

    To access API documentation:
        - Swagger UI: http://localhost:8004/docs
        - ReDoc: http://localhost:8004/redoc

See Also:
    - services.report_delivery_service.api.v1.api: API router configuration
    - common.fastapi.create_fastapi_app: FastAPI app factory
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from common.fastapi import create_fastapi_app
from services.report_delivery_service.api.dependencies import (
    get_service_settings,
    get_warehouse_client,
)
from services.report_delivery_service.api.v1.api import api_router
from services.report_delivery_service.database.dependencies import get_jobs_repository
from services.report_delivery_service.services.execution_monitor import ExecutionMonitor


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    settings = get_service_settings()
    monitor = ExecutionMonitor(
        get_jobs_repository(),
        interval_seconds=settings.EXECUTION_MONITOR_INTERVAL_SECONDS,
        stalled_timeout_minutes=settings.STALLED_EXECUTION_TIMEOUT_MINUTES,
    )
    await monitor.start()
    app.state.background_tasks["execution_monitor"] = monitor
    try:
        yield
    finally:
        await monitor.stop()
        warehouse = get_warehouse_client()
        if warehouse is not None:
            warehouse.close()


app = create_fastapi_app(
    service_name="report-delivery-service",
    description="Scheduled report and template delivery service",
    api_router=api_router,
    root_path="/reports",  # Nginx serves this at /reports/
    lifespan=lifespan,
)
