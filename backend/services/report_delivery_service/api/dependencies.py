"""
Shared API Dependencies for Report Delivery Service

FastAPI dependency functions shared across endpoints: service settings,
the optional Authorization header forwarded to the scheduler, and the
cached service graph (warehouse client, refresh engine, resolvers,
renderer, mail transport, executor and job service).

Every provider is cached, so the whole graph is built once per process.
Tests replace get_job_service through app.dependency_overrides.

Example:
    ```python
    @router.post("/scheduled-reports/{job_id}/execute")
    async def execute(job_id: str, service: JobService = Depends(get_job_service)):
        return await service.execute_now(job_id)
    ```
"""

from functools import lru_cache

from fastapi import Header

from common.config import get_settings
from common.config.settings import ReportDeliveryServiceSettings
from services.report_delivery_service.clients.warehouse_client import WarehouseClient
from services.report_delivery_service.database.dependencies import (
    get_content_repository,
    get_jobs_repository,
)
from services.report_delivery_service.services.content_resolver import ContentResolver
from services.report_delivery_service.services.email_service import EmailService
from services.report_delivery_service.services.job_executor import JobExecutor
from services.report_delivery_service.services.job_service import JobService
from services.report_delivery_service.services.query_refresh_service import QueryRefreshService
from services.report_delivery_service.services.template_service import TemplateService
from services.report_delivery_service.services.variable_resolver import VariableResolver


@lru_cache(maxsize=1)
def get_service_settings() -> ReportDeliveryServiceSettings:
    """Settings of the report delivery service, loaded once."""
    return get_settings("report-delivery-service")


def get_authorization(
    authorization: str | None = Header(default=None, alias="Authorization"),
) -> str | None:
    """
    Optional Authorization header.

    Only used to register recurring jobs with the external scheduler; the
    header is forwarded as-is and never validated here.
    """
    if authorization is None or not authorization.strip():
        return None
    return authorization.strip()


@lru_cache(maxsize=1)
def get_warehouse_client() -> WarehouseClient | None:
    """Warehouse client, or None when WAREHOUSE_URL is not configured."""
    settings = get_service_settings()
    if not settings.WAREHOUSE_URL:
        return None
    return WarehouseClient(settings.WAREHOUSE_URL, max_workers=settings.WAREHOUSE_MAX_WORKERS)


@lru_cache(maxsize=1)
def get_content_resolver() -> ContentResolver:
    return ContentResolver(get_content_repository(), QueryRefreshService(get_warehouse_client()))


@lru_cache(maxsize=1)
def get_job_executor() -> JobExecutor:
    settings = get_service_settings()
    return JobExecutor(
        jobs_repository=get_jobs_repository(),
        content_resolver=get_content_resolver(),
        variable_resolver=VariableResolver(get_warehouse_client(), settings.DASHBOARD_URL),
        template_service=TemplateService(settings.DEFAULT_EMAIL_TEMPLATE),
        email_service=EmailService(settings),
    )


@lru_cache(maxsize=1)
def get_job_service() -> JobService:
    """Cached singleton JobService wired with the process-wide collaborators."""
    return JobService(get_jobs_repository(), get_content_resolver(), get_job_executor())
