"""
Jobs Repository for Report Delivery Service

This module provides database operations for scheduled report jobs and
their execution log. ORM rows (common.models.ScheduledReports and
ReportExecutions) are converted to and from the service's pydantic domain
models so that callers never handle ORM objects.

Jobs are never hard-deleted: deactivation is expressed through is_active
and the job state.

Example:
    ```python
    repo = JobsRepository()
    job = await repo.get_job("8c4a...")
    job.is_active = False
    await repo.save_job(job)
    ```

See Also:
    - services.report_delivery_service.database.base: Shared constants
    - common.database.get_async_db_session: Database session management
"""

from datetime import datetime
import uuid

from loguru import logger
from sqlalchemy import select

from common.database import get_async_db_session
from common.models import ReportExecutions, ScheduledReports
from services.report_delivery_service.errors import JobNotFoundError
from services.report_delivery_service.models.jobs import (
    ExecutionRecord,
    JobState,
    ScheduledReportJob,
)

from .base import SERVICE_NAME


def _is_uuid(value: str) -> bool:
    try:
        uuid.UUID(str(value))
    except ValueError:
        return False
    return True


def _row_to_job(row: ScheduledReports) -> ScheduledReportJob:
    return ScheduledReportJob.model_validate(
        {
            "id": str(row.id),
            "name": row.name,
            "description": row.description or "",
            "content": {
                "kind": row.content_kind,
                "presentation_id": row.presentation_id,
                "template_id": row.template_id,
            },
            "schedule": {
                "kind": row.schedule_kind,
                "cron_expression": row.cron_expression,
                "timezone": row.timezone,
            },
            "recipients": row.recipients,
            "email_template": row.email_template,
            "custom_variables": row.custom_variables or [],
            "is_active": row.is_active,
            "state": row.state,
            "stats": {
                "execution_count": row.execution_count or 0,
                "success_count": row.success_count or 0,
                "error_count": row.error_count or 0,
                "last_executed": row.last_executed,
                "next_execution": row.next_execution,
                "last_error": row.last_error,
                "last_generated_presentation_id": row.last_generated_presentation_id,
            },
            "executing_since": row.executing_since,
            "created_by": row.created_by,
            "created_at": row.created_at,
            "updated_at": row.updated_at,
        }
    )


def _apply_job(row: ScheduledReports, job: ScheduledReportJob) -> None:
    row.name = job.name
    row.description = job.description
    row.content_kind = job.content.kind.value
    row.presentation_id = job.content.presentation_id
    row.template_id = job.content.template_id
    row.schedule_kind = job.schedule.kind.value
    row.cron_expression = job.schedule.cron_expression
    row.timezone = job.schedule.timezone
    row.recipients = job.recipients.model_dump(mode="json")
    row.email_template = job.email_template.model_dump(mode="json")
    row.custom_variables = [v.model_dump(mode="json") for v in job.custom_variables]
    row.is_active = job.is_active
    row.state = job.state.value
    row.execution_count = job.stats.execution_count
    row.success_count = job.stats.success_count
    row.error_count = job.stats.error_count
    row.last_executed = job.stats.last_executed
    row.next_execution = job.stats.next_execution
    row.last_error = job.stats.last_error
    row.executing_since = job.executing_since
    row.last_generated_presentation_id = job.stats.last_generated_presentation_id
    row.created_by = job.created_by


def _row_to_execution(row: ReportExecutions) -> ExecutionRecord:
    return ExecutionRecord(
        id=str(row.id),
        job_id=str(row.report_id),
        trigger=row.trigger,
        status=row.status,
        started_at=row.started_at,
        completed_at=row.completed_at,
        error_message=row.error_message,
        message_id=row.message_id,
        recipient_count=row.recipient_count or 0,
        presentation_id=row.presentation_id,
    )


class JobsRepository:
    """
    Repository for scheduled report jobs and execution records.

    Each method opens its own session, so one instance can be shared across
    concurrent requests and background tasks. Job records are written
    last-writer-wins; a single writer per job is assumed.
    """

    async def create_job(self, job: ScheduledReportJob) -> ScheduledReportJob:
        async with get_async_db_session(SERVICE_NAME) as session:
            row = ScheduledReports(id=job.id)
            _apply_job(row, job)
            session.add(row)
            await session.flush()
            await session.refresh(row)
            logger.info(f"Created scheduled report {job.id} ({job.name})")
            return _row_to_job(row)

    async def get_job(self, job_id: str) -> ScheduledReportJob | None:
        if not _is_uuid(job_id):
            return None
        async with get_async_db_session(SERVICE_NAME) as session:
            row = await session.get(ScheduledReports, job_id)
            return _row_to_job(row) if row else None

    async def save_job(self, job: ScheduledReportJob) -> ScheduledReportJob:
        """
        Persist the full state of an existing job.

        Raises:
            JobNotFoundError: If no row exists for job.id.
        """
        async with get_async_db_session(SERVICE_NAME) as session:
            row = await session.get(ScheduledReports, job.id) if _is_uuid(job.id) else None
            if row is None:
                msg = f"Scheduled report {job.id} not found"
                raise JobNotFoundError(msg)
            _apply_job(row, job)
            await session.flush()
            await session.refresh(row)
            return _row_to_job(row)

    async def list_jobs(
        self,
        limit: int = 50,
        offset: int = 0,
        is_active: bool | None = None,
        state: JobState | None = None,
    ) -> list[ScheduledReportJob]:
        async with get_async_db_session(SERVICE_NAME) as session:
            stmt = select(ScheduledReports).order_by(ScheduledReports.created_at.desc())
            if is_active is not None:
                stmt = stmt.where(ScheduledReports.is_active == is_active)
            if state is not None:
                stmt = stmt.where(ScheduledReports.state == state.value)
            result = await session.execute(stmt.limit(limit).offset(offset))
            return [_row_to_job(row) for row in result.scalars().all()]

    async def list_stalled_jobs(self, started_before: datetime) -> list[ScheduledReportJob]:
        """Jobs still executing that started before the given instant."""
        async with get_async_db_session(SERVICE_NAME) as session:
            result = await session.execute(
                select(ScheduledReports).where(
                    ScheduledReports.state == JobState.EXECUTING.value,
                    ScheduledReports.executing_since < started_before,
                )
            )
            return [_row_to_job(row) for row in result.scalars().all()]

    async def add_execution(self, record: ExecutionRecord) -> None:
        async with get_async_db_session(SERVICE_NAME) as session:
            session.add(
                ReportExecutions(
                    id=record.id,
                    report_id=record.job_id,
                    trigger=record.trigger.value,
                    status=record.status.value,
                    started_at=record.started_at,
                    completed_at=record.completed_at,
                    error_message=record.error_message,
                    message_id=record.message_id,
                    recipient_count=record.recipient_count,
                    presentation_id=record.presentation_id,
                )
            )

    async def list_executions(self, job_id: str, limit: int = 50) -> list[ExecutionRecord]:
        if not _is_uuid(job_id):
            return []
        async with get_async_db_session(SERVICE_NAME) as session:
            result = await session.execute(
                select(ReportExecutions)
                .where(ReportExecutions.report_id == job_id)
                .order_by(ReportExecutions.started_at.desc())
                .limit(limit)
            )
            return [_row_to_execution(row) for row in result.scalars().all()]

