"""
Job service: the operations exposed for scheduled report jobs.

Coordinates validation, the execution tracker, the executor and the
repositories. Validation happens before anything is executed or persisted,
so an invalid request never touches a job's counters.
"""

from datetime import datetime, timezone
from typing import Any
import uuid

from loguru import logger
from pydantic import ValidationError

from services.report_delivery_service.database.jobs_repository import JobsRepository
from services.report_delivery_service.errors import JobNotFoundError, JobValidationError
from services.report_delivery_service.models.content import RefreshReport
from services.report_delivery_service.models.jobs import (
    SYSTEM_VARIABLE_NAMES,
    ContentKind,
    ExecutionOutcome,
    ExecutionRecord,
    ExecutionTrigger,
    JobCreate,
    JobState,
    JobUpdate,
    RenderedEmail,
    ScheduledReportJob,
)
from services.report_delivery_service.services import execution_tracker
from services.report_delivery_service.services.content_resolver import ContentResolver
from services.report_delivery_service.services.job_executor import JobExecutor
from services.report_delivery_service.services.variable_resolver import (
    find_double_brace_placeholders,
    find_placeholders,
)


def _validation_message(error: ValidationError) -> str:
    parts = []
    for detail in error.errors():
        location = ".".join(str(part) for part in detail.get("loc", ()))
        parts.append(f"{location}: {detail.get('msg')}" if location else detail.get("msg", ""))
    return "; ".join(parts)


class JobService:
    """Create, edit, execute and inspect scheduled report jobs."""

    def __init__(
        self,
        jobs_repository: JobsRepository,
        content_resolver: ContentResolver,
        executor: JobExecutor,
    ):
        self.jobs_repository = jobs_repository
        self.content_resolver = content_resolver
        self.executor = executor

    async def get_job(self, job_id: str) -> ScheduledReportJob:
        """
        Raises:
            JobNotFoundError: No job with job_id.
        """
        job = await self.jobs_repository.get_job(job_id)
        if job is None:
            msg = f"Scheduled report {job_id} not found"
            raise JobNotFoundError(msg)
        return job

    async def list_jobs(
        self,
        limit: int = 50,
        offset: int = 0,
        is_active: bool | None = None,
        state: JobState | None = None,
    ) -> list[ScheduledReportJob]:
        return await self.jobs_repository.list_jobs(
            limit=limit, offset=offset, is_active=is_active, state=state
        )

    async def list_executions(self, job_id: str, limit: int = 50) -> list[ExecutionRecord]:
        await self.get_job(job_id)
        return await self.jobs_repository.list_executions(job_id, limit=limit)

    async def create_job(self, config: JobCreate | dict[str, Any]) -> ScheduledReportJob:
        """
        Validate config and store a new job in its initial state.

        One-time jobs start as draft; recurring jobs start scheduled (with
        next_execution computed) when active, paused otherwise.

        Raises:
            JobValidationError: The configuration violates a job invariant.
        """
        try:
            create = config if isinstance(config, JobCreate) else JobCreate.model_validate(config)
            job = ScheduledReportJob(id=str(uuid.uuid4()), **create.model_dump())
        except ValidationError as e:
            raise JobValidationError(_validation_message(e)) from e

        job = execution_tracker.initial_state(job, datetime.now(timezone.utc))
        created = await self.jobs_repository.create_job(job)
        logger.info(
            f"Scheduled report {created.id} created as {created.state.value} "
            f"({created.content.kind.value} {created.content.content_id})"
        )
        return created

    async def update_job(self, job_id: str, changes: JobUpdate | dict[str, Any]) -> ScheduledReportJob:
        """
        Apply a partial configuration change.

        Changes to schedule or activation recompute state and next_execution.

        Raises:
            JobNotFoundError: No job with job_id.
            JobValidationError: The merged configuration is invalid.
        """
        job = await self.get_job(job_id)
        try:
            update = changes if isinstance(changes, JobUpdate) else JobUpdate.model_validate(changes)
            merged = job.model_dump()
            merged.update(update.model_dump(exclude_unset=True))
            updated = ScheduledReportJob.model_validate(merged)
        except ValidationError as e:
            raise JobValidationError(_validation_message(e)) from e

        updated = execution_tracker.reconcile(updated, datetime.now(timezone.utc))
        return await self.jobs_repository.save_job(updated)

    async def execute_now(self, job_id: str) -> ExecutionOutcome:
        """
        Send a job immediately.

        Raises:
            JobNotFoundError: No job with job_id.
            InvalidTransitionError: The job is executing, or is a one-time
                job that was already sent or failed.
        """
        job = await self.get_job(job_id)
        return await self.executor.execute(job, ExecutionTrigger.MANUAL)

    async def trigger(self, job_id: str) -> ExecutionOutcome:
        """
        Scheduler tick for a recurring job.

        Raises:
            JobNotFoundError: No job with job_id.
            InvalidTransitionError: The job is one-time, inactive or already
                executing.
        """
        job = await self.get_job(job_id)
        return await self.executor.execute(job, ExecutionTrigger.SCHEDULE)

    async def toggle_active(self, job_id: str, is_active: bool) -> ScheduledReportJob:
        """Pause or resume a recurring job; for one-time jobs only the flag changes."""
        job = await self.get_job(job_id)
        now = datetime.now(timezone.utc)
        if not job.is_recurring:
            updated = job.model_copy(update={"is_active": is_active})
        elif is_active:
            updated = execution_tracker.resume(job, now)
        else:
            updated = execution_tracker.pause(job)
        logger.info(f"Scheduled report {job_id} {'activated' if is_active else 'deactivated'}")
        return await self.jobs_repository.save_job(updated)

    async def duplicate_job(self, job_id: str) -> ScheduledReportJob:
        job = await self.get_job(job_id)
        copy = execution_tracker.duplicate(job, str(uuid.uuid4()), datetime.now(timezone.utc))
        created = await self.jobs_repository.create_job(copy)
        logger.info(f"Scheduled report {job_id} duplicated as {created.id}")
        return created

    async def preview_variables(
        self,
        job_id: str,
        overrides: dict[str, Any] | None = None,
    ) -> tuple[RenderedEmail, dict[str, str]]:
        """
        Render a job without sending or persisting anything.

        Template content is refreshed in memory only; counters, state and
        the stored template are left untouched.

        Returns:
            The rendered email and the variables used to render it.
        """
        job = await self.get_job(job_id)
        content = await self.content_resolver.resolve(job, archive=False)
        return await self.executor.render(job, content, overrides)

    async def refresh_content(self, kind: ContentKind | str, content_id: str) -> RefreshReport:
        """Refresh and save the data elements of a presentation or template."""
        if ContentKind(kind) == ContentKind.REPORT:
            return await self.content_resolver.refresh_presentation(content_id)
        return await self.content_resolver.refresh_template(content_id)

    def validation_warnings(self, job: ScheduledReportJob) -> list[str]:
        """Non-fatal configuration issues to show next to a saved job."""
        warnings = [
            f"{address} appears in more than one recipient list"
            for address in job.recipients.overlapping_addresses()
        ]
        known = set(SYSTEM_VARIABLE_NAMES)
        known.update(job.email_template.template_variables)
        known.update(variable.name for variable in job.custom_variables)
        text = "\n".join([job.email_template.subject, job.email_template.custom_content or ""])
        for name in find_placeholders(text):
            if name not in known:
                warnings.append(f"Placeholder {{{name}}} has no matching variable")
        for name in find_double_brace_placeholders(text):
            warnings.append(f"Placeholder {{{{{name}}}}} uses double braces; write {{{name}}}")

        template_service = self.executor.template_service
        template_id = job.email_template.template_id
        if template_id not in template_service.available_templates():
            warnings.append(
                f"Email template '{template_id}' not found; "
                f"'{template_service.default_template}' will be used"
            )
        return warnings
