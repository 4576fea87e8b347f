"""
Job executor: runs one execution of a scheduled report job end to end.

    begin -> persist executing -> resolve content (refresh and archive templates)
          -> build variables -> render subject and body -> send
          -> re-read job -> complete -> persist job + append execution record

If the stored job is no longer in the execution this run began, typically
because the stalled-execution monitor already failed it, the late outcome
is logged and dropped so the settled state is not overwritten.

Refresh failures and failing Query variables are absorbed before render and
only degrade the email. Missing content, transport failures and unexpected
errors fail the run; the failure is recorded on the job and in the
execution log, and returned in the outcome rather than raised.
"""

from datetime import datetime, timezone
from typing import Any
import uuid

from loguru import logger

from services.report_delivery_service.database.jobs_repository import JobsRepository
from services.report_delivery_service.errors import ContentNotFoundError, TransportError
from services.report_delivery_service.models.content import ResolvedContent
from services.report_delivery_service.models.jobs import (
    ExecutionOutcome,
    ExecutionRecord,
    ExecutionStatus,
    ExecutionTrigger,
    JobState,
    RenderedEmail,
    ScheduledReportJob,
)
from services.report_delivery_service.services import execution_tracker
from services.report_delivery_service.services.content_resolver import ContentResolver
from services.report_delivery_service.services.email_service import EmailService
from services.report_delivery_service.services.template_service import TemplateService
from services.report_delivery_service.services.variable_resolver import VariableResolver


class JobExecutor:
    """Executes scheduled report jobs and records their outcome."""

    def __init__(
        self,
        jobs_repository: JobsRepository,
        content_resolver: ContentResolver,
        variable_resolver: VariableResolver,
        template_service: TemplateService,
        email_service: EmailService,
    ):
        self.jobs_repository = jobs_repository
        self.content_resolver = content_resolver
        self.variable_resolver = variable_resolver
        self.template_service = template_service
        self.email_service = email_service

    async def render(
        self,
        job: ScheduledReportJob,
        content: ResolvedContent,
        overrides: dict[str, Any] | None = None,
        now: datetime | None = None,
    ) -> tuple[RenderedEmail, dict[str, str]]:
        """Render subject and HTML body of job for already resolved content."""
        variables = await self.variable_resolver.build_variables(job, content, overrides, now)
        subject = self.variable_resolver.render_subject(job, variables)
        html = self.template_service.render_email(
            job.email_template.template_id,
            variables,
            custom_content=self.variable_resolver.render_custom_content(job, variables),
            slides=content.slides,
        )
        return RenderedEmail(subject=subject, html=html), variables

    async def execute(
        self,
        job: ScheduledReportJob,
        trigger: ExecutionTrigger,
        now: datetime | None = None,
    ) -> ExecutionOutcome:
        """
        Execute job once.

        Args:
            job: Job to execute, as currently stored.
            trigger: Manual send or scheduler tick.
            now: Trigger time; defaults to the current UTC time.

        Returns:
            ExecutionOutcome: Final status and state of the run.

        Raises:
            InvalidTransitionError: The job may not execute from its current
                state. Nothing is persisted in that case.
        """
        started_at = now or datetime.now(timezone.utc)
        running = execution_tracker.begin(job, trigger, started_at)
        running = await self.jobs_repository.save_job(running)
        logger.info(f"Executing scheduled report {job.id} ({job.name}) via {trigger.value}")

        message_id = None
        error = None
        refresh = None
        presentation_id = None
        try:
            content = await self.content_resolver.resolve(running)
            presentation_id = content.snapshot_id
            if content.refresh is not None:
                refresh = content.refresh.model_dump()
                if content.refresh.has_failures:
                    logger.warning(
                        f"Report {job.id} sent with stale data for elements "
                        f"{', '.join(content.refresh.failed_element_ids)}"
                    )
            email, _ = await self.render(running, content, now=started_at)
            message_id = await self.email_service.send(
                to=list(running.recipients.to),
                cc=list(running.recipients.cc),
                bcc=list(running.recipients.bcc),
                subject=email.subject,
                html=email.html,
            )
        except (ContentNotFoundError, TransportError) as e:
            error = str(e)
            logger.error(f"Scheduled report {job.id} failed: {error}")
        except Exception as e:
            error = f"Unexpected error: {e}"
            logger.exception(f"Unexpected error executing scheduled report {job.id}")

        status = ExecutionStatus.SUCCESS if error is None else ExecutionStatus.FAILURE
        completed_at = datetime.now(timezone.utc)

        # Complete from the stored job so changes made while sending survive.
        current = await self.jobs_repository.get_job(job.id)
        if (
            current is None
            or current.state != JobState.EXECUTING
            or current.executing_since != running.executing_since
        ):
            logger.warning(
                f"Scheduled report {job.id} finished ({status.value}) after its execution "
                f"was already settled; outcome not recorded"
            )
            return ExecutionOutcome(
                job_id=job.id,
                status=status,
                state=current.state if current else running.state,
                message_id=message_id,
                error=error,
                refresh=refresh,
                presentation_id=presentation_id,
            )

        if error is None:
            finished = execution_tracker.complete_success(current, completed_at)
        else:
            finished = execution_tracker.complete_failure(current, completed_at, error)
        if presentation_id:
            finished.stats.last_generated_presentation_id = presentation_id
        finished = await self.jobs_repository.save_job(finished)

        record = ExecutionRecord(
            id=str(uuid.uuid4()),
            job_id=job.id,
            trigger=trigger,
            status=status,
            started_at=started_at,
            completed_at=completed_at,
            error_message=error,
            message_id=message_id,
            recipient_count=running.recipients.count,
            presentation_id=presentation_id,
        )
        await self.jobs_repository.add_execution(record)

        return ExecutionOutcome(
            job_id=job.id,
            execution_id=record.id,
            status=status,
            state=finished.state,
            message_id=message_id,
            error=error,
            refresh=refresh,
            presentation_id=presentation_id,
        )
