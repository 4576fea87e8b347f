"""
Database Dependency Injection for Report Delivery Service

Provides cached repository instances for FastAPI endpoints and the
background execution monitor. Repositories are stateless and open a session
per call, so one instance is shared across all requests.

Example:
    ```python
    @router.get("/scheduled-reports")
    async def list_reports(repo: JobsRepository = Depends(get_jobs_repository)):
        return await repo.list_jobs()
    ```
"""

from functools import lru_cache

from services.report_delivery_service.database.content_repository import ContentRepository
from services.report_delivery_service.database.jobs_repository import JobsRepository


@lru_cache(maxsize=1)
def get_jobs_repository() -> JobsRepository:
    """Cached singleton JobsRepository."""
    return JobsRepository()


@lru_cache(maxsize=1)
def get_content_repository() -> ContentRepository:
    """Cached singleton ContentRepository."""
    return ContentRepository()
