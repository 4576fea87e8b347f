"""Database Access Layer for Report Delivery Service.

This package provides repositories over the scheduled report, execution log
and slide content tables, plus FastAPI dependency providers.
"""

from .content_repository import ContentRepository
from .jobs_repository import JobsRepository

__all__ = ["ContentRepository", "JobsRepository"]
