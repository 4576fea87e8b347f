"""
Request and response models for report delivery service API endpoints.
"""

from .schedules import CronBuildRequest, CronBuildResponse
from .scheduled_reports import (
    JobListResponse,
    JobResponse,
    PreviewRequest,
    PreviewResponse,
    ToggleRequest,
)

__all__ = [
    "CronBuildRequest",
    "CronBuildResponse",
    "JobListResponse",
    "JobResponse",
    "PreviewRequest",
    "PreviewResponse",
    "ToggleRequest",
]
