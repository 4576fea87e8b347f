"""
Scheduled Report Request and Response Models.

Pydantic models for the scheduled report endpoints. Job configuration
bodies reuse the domain models (JobCreate, JobUpdate) directly; the models
here wrap responses with the non-fatal warnings computed for a saved job
and carry the small request bodies of the action endpoints.
"""

from typing import Any

from pydantic import BaseModel, Field

from services.report_delivery_service.models.jobs import ScheduledReportJob


class JobResponse(BaseModel):
    """A saved job plus configuration warnings (e.g. overlapping recipients)."""

    job: ScheduledReportJob
    warnings: list[str] = Field(default_factory=list)
    scheduler_registered: bool = False


class JobListResponse(BaseModel):
    jobs: list[ScheduledReportJob]
    total: int
    limit: int
    offset: int


class ToggleRequest(BaseModel):
    is_active: bool


class PreviewRequest(BaseModel):
    """Variable values that replace computed ones for this preview only."""

    overrides: dict[str, Any] = Field(default_factory=dict)


class PreviewResponse(BaseModel):
    subject: str
    html: str
    variables: dict[str, str]
