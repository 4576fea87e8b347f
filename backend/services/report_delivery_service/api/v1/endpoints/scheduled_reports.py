"""
Scheduled report API endpoints.

CRUD, execution, preview and history of scheduled report jobs. Domain
errors map to HTTP as follows:

    JobValidationError      422
    JobNotFoundError        404
    ContentNotFoundError    404
    InvalidTransitionError  409
    anything else           500 (logged with traceback)
"""

from fastapi import APIRouter, Depends, HTTPException, Query
from loguru import logger

from common.config.settings import ReportDeliveryServiceSettings
from common.exceptions import (
    HTTP_404_NOT_FOUND,
    HTTP_409_CONFLICT,
    create_api_error,
    handle_database_error,
    handle_validation_error,
)
from services.report_delivery_service.api.dependencies import (
    get_authorization,
    get_job_service,
    get_service_settings,
)
from services.report_delivery_service.api.v1.models import (
    JobListResponse,
    JobResponse,
    PreviewRequest,
    PreviewResponse,
    ToggleRequest,
)
from services.report_delivery_service.errors import (
    ContentNotFoundError,
    InvalidTransitionError,
    JobNotFoundError,
    JobValidationError,
)
from services.report_delivery_service.models.jobs import (
    ExecutionOutcome,
    ExecutionRecord,
    JobCreate,
    JobState,
    JobUpdate,
    ScheduledReportJob,
)
from services.report_delivery_service.services.job_service import JobService
from services.report_delivery_service.services.trigger_registration import register_job_trigger

router = APIRouter()


def _domain_error(operation: str, error: Exception) -> HTTPException:
    if isinstance(error, JobValidationError):
        return handle_validation_error(operation, error)
    if isinstance(error, (JobNotFoundError, ContentNotFoundError)):
        return create_api_error(operation, HTTP_404_NOT_FOUND, error, str(error))
    if isinstance(error, InvalidTransitionError):
        return create_api_error(operation, HTTP_409_CONFLICT, error, str(error))
    return handle_database_error(operation, error)


async def _job_response(
    service: JobService,
    job: ScheduledReportJob,
    authorization: str | None,
    settings: ReportDeliveryServiceSettings,
) -> JobResponse:
    registered = await register_job_trigger(job, authorization, settings)
    return JobResponse(job=job, warnings=service.validation_warnings(job), scheduler_registered=registered)


@router.get("", response_model=JobListResponse)
async def list_scheduled_reports(
    limit: int = Query(default=50, ge=1, le=1000),
    offset: int = Query(default=0, ge=0),
    is_active: bool | None = Query(default=None),
    state: JobState | None = Query(default=None),
    service: JobService = Depends(get_job_service),
):
    """List scheduled reports, newest first."""
    try:
        jobs = await service.list_jobs(limit=limit, offset=offset, is_active=is_active, state=state)
        return JobListResponse(jobs=jobs, total=len(jobs), limit=limit, offset=offset)
    except HTTPException:
        raise
    except Exception as e:
        raise _domain_error("listing scheduled reports", e)


@router.post("", response_model=JobResponse, status_code=201)
async def create_scheduled_report(
    request: JobCreate,
    service: JobService = Depends(get_job_service),
    authorization: str | None = Depends(get_authorization),
    settings: ReportDeliveryServiceSettings = Depends(get_service_settings),
):
    """
    Create a scheduled report.

    Recurring jobs are registered with the external scheduler when the
    request carries an Authorization header.
    """
    try:
        job = await service.create_job(request)
        return await _job_response(service, job, authorization, settings)
    except HTTPException:
        raise
    except Exception as e:
        raise _domain_error("creating scheduled report", e)


@router.get("/{job_id}", response_model=JobResponse)
async def get_scheduled_report(job_id: str, service: JobService = Depends(get_job_service)):
    try:
        job = await service.get_job(job_id)
        return JobResponse(job=job, warnings=service.validation_warnings(job))
    except HTTPException:
        raise
    except Exception as e:
        raise _domain_error("fetching scheduled report", e)


@router.patch("/{job_id}", response_model=JobResponse)
async def update_scheduled_report(
    job_id: str,
    request: JobUpdate,
    service: JobService = Depends(get_job_service),
    authorization: str | None = Depends(get_authorization),
    settings: ReportDeliveryServiceSettings = Depends(get_service_settings),
):
    """Apply a partial update. Schedule or activation changes recompute the next run."""
    try:
        job = await service.update_job(job_id, request)
        return await _job_response(service, job, authorization, settings)
    except HTTPException:
        raise
    except Exception as e:
        raise _domain_error("updating scheduled report", e)


@router.post("/{job_id}/execute", response_model=ExecutionOutcome)
async def execute_scheduled_report(job_id: str, service: JobService = Depends(get_job_service)):
    """
    Send a report now.

    Returns the execution outcome. A failed send is reported in the outcome
    (status "failure"), not as an HTTP error. One-time jobs that already ran
    and jobs that are currently executing are rejected with 409.
    """
    try:
        outcome = await service.execute_now(job_id)
        logger.info(f"Manual execution of {job_id} finished with {outcome.status.value}")
        return outcome
    except HTTPException:
        raise
    except Exception as e:
        raise _domain_error("executing scheduled report", e)


@router.post("/{job_id}/trigger", response_model=ExecutionOutcome)
async def trigger_scheduled_report(job_id: str, service: JobService = Depends(get_job_service)):
    """Callback invoked by the external scheduler on every cron tick."""
    try:
        return await service.trigger(job_id)
    except HTTPException:
        raise
    except Exception as e:
        raise _domain_error("triggering scheduled report", e)


@router.post("/{job_id}/toggle", response_model=JobResponse)
async def toggle_scheduled_report(
    job_id: str,
    request: ToggleRequest,
    service: JobService = Depends(get_job_service),
    authorization: str | None = Depends(get_authorization),
    settings: ReportDeliveryServiceSettings = Depends(get_service_settings),
):
    """Pause or resume a scheduled report."""
    try:
        job = await service.toggle_active(job_id, request.is_active)
        return await _job_response(service, job, authorization, settings)
    except HTTPException:
        raise
    except Exception as e:
        raise _domain_error("toggling scheduled report", e)


@router.post("/{job_id}/duplicate", response_model=JobResponse, status_code=201)
async def duplicate_scheduled_report(job_id: str, service: JobService = Depends(get_job_service)):
    """Copy a scheduled report. The copy starts inactive with zeroed counters."""
    try:
        job = await service.duplicate_job(job_id)
        return JobResponse(job=job, warnings=service.validation_warnings(job))
    except HTTPException:
        raise
    except Exception as e:
        raise _domain_error("duplicating scheduled report", e)


@router.post("/{job_id}/preview", response_model=PreviewResponse)
async def preview_scheduled_report(
    job_id: str,
    request: PreviewRequest | None = None,
    service: JobService = Depends(get_job_service),
):
    """Render a report without sending it or changing any stored state."""
    try:
        overrides = request.overrides if request else {}
        email, variables = await service.preview_variables(job_id, overrides)
        return PreviewResponse(subject=email.subject, html=email.html, variables=variables)
    except HTTPException:
        raise
    except Exception as e:
        raise _domain_error("previewing scheduled report", e)


@router.get("/{job_id}/executions", response_model=list[ExecutionRecord])
async def list_report_executions(
    job_id: str,
    limit: int = Query(default=50, ge=1, le=1000),
    service: JobService = Depends(get_job_service),
):
    """Execution history of a scheduled report, newest first."""
    try:
        return await service.list_executions(job_id, limit=limit)
    except HTTPException:
        raise
    except Exception as e:
        raise _domain_error("fetching report executions", e)
