"""
Execution tracker: the lifecycle state machine of a scheduled report job.

    one_time:   draft -> executing -> sent | failed      (terminal)
    recurring:  scheduled | paused -> executing -> scheduled (active)
                                                 -> paused    (inactive)
                scheduled <-> paused                          (toggle)

Every function is pure: it takes a job and returns an updated copy. The
caller persists the result. Counters change only when an execution
completes, so a rejected transition never touches them.
"""

from datetime import datetime, timedelta

from services.report_delivery_service.errors import InvalidTransitionError
from services.report_delivery_service.models.jobs import (
    ExecutionStats,
    ExecutionTrigger,
    JobState,
    ScheduledReportJob,
)
from services.report_delivery_service.utils import next_run_time

TERMINAL_STATES = frozenset({JobState.SENT, JobState.FAILED})
STALLED_ERROR = "Execution stalled: no completion recorded within {minutes} minutes"


def _next_execution(job: ScheduledReportJob, now: datetime) -> datetime:
    return next_run_time(job.schedule.cron_expression, job.schedule.timezone, after=now)


def _settled(job: ScheduledReportJob, now: datetime) -> ScheduledReportJob:
    """Place a non-executing job in the resting state its configuration implies."""
    if not job.is_recurring:
        job.stats.next_execution = None
        if job.state not in TERMINAL_STATES:
            job.state = JobState.DRAFT
        return job
    if job.is_active:
        job.state = JobState.SCHEDULED
        job.stats.next_execution = _next_execution(job, now)
    else:
        job.state = JobState.PAUSED
        job.stats.next_execution = None
    return job


def initial_state(job: ScheduledReportJob, now: datetime) -> ScheduledReportJob:
    """State of a freshly created (or duplicated) job."""
    updated = job.model_copy(deep=True)
    updated.state = JobState.DRAFT
    updated.executing_since = None
    return _settled(updated, now)


def reconcile(job: ScheduledReportJob, now: datetime) -> ScheduledReportJob:
    """
    Recompute state and next_execution after a configuration change.

    Terminal one-time jobs stay terminal. A job that is executing is left
    alone; its completion settles it.
    """
    updated = job.model_copy(deep=True)
    if updated.state == JobState.EXECUTING:
        return updated
    if updated.is_recurring and updated.state in TERMINAL_STATES:
        updated.state = JobState.DRAFT
    return _settled(updated, now)


def begin(job: ScheduledReportJob, trigger: ExecutionTrigger, now: datetime) -> ScheduledReportJob:
    """
    Move job to executing.

    Raises:
        InvalidTransitionError: The job is already executing, is a one-time
            job that already ran, or is a scheduler trigger for a job that
            is one-time or inactive.
    """
    if job.state == JobState.EXECUTING:
        msg = f"Job {job.id} is already executing"
        raise InvalidTransitionError(msg)
    if not job.is_recurring and job.state in TERMINAL_STATES:
        msg = f"One-time job {job.id} has already been executed ({job.state.value})"
        raise InvalidTransitionError(msg)
    if trigger == ExecutionTrigger.SCHEDULE:
        if not job.is_recurring:
            msg = f"Job {job.id} is one-time and cannot be triggered by the scheduler"
            raise InvalidTransitionError(msg)
        if not job.is_active:
            msg = f"Job {job.id} is inactive"
            raise InvalidTransitionError(msg)

    updated = job.model_copy(deep=True)
    updated.state = JobState.EXECUTING
    updated.executing_since = now
    return updated


def _complete(job: ScheduledReportJob, now: datetime, error: str | None) -> ScheduledReportJob:
    if job.state != JobState.EXECUTING:
        msg = f"Job {job.id} is not executing"
        raise InvalidTransitionError(msg)

    updated = job.model_copy(deep=True)
    stats = updated.stats
    stats.execution_count += 1
    if error is None:
        stats.success_count += 1
    else:
        stats.error_count += 1
    stats.last_error = error
    stats.last_executed = updated.executing_since or now
    updated.executing_since = None

    if not updated.is_recurring:
        updated.state = JobState.SENT if error is None else JobState.FAILED
        stats.next_execution = None
        return updated
    return _settled(updated, now)


def complete_success(job: ScheduledReportJob, now: datetime) -> ScheduledReportJob:
    """Record a successful send and settle the job."""
    return _complete(job, now, None)


def complete_failure(job: ScheduledReportJob, now: datetime, error: str) -> ScheduledReportJob:
    """Record a failed execution and settle the job."""
    return _complete(job, now, error or "Unknown error")


def pause(job: ScheduledReportJob) -> ScheduledReportJob:
    """
    Deactivate a recurring job. Idempotent.

    Cron expression, timezone and counters are kept so resume restores the
    same schedule.
    """
    if not job.is_recurring:
        msg = f"Job {job.id} is one-time and cannot be paused"
        raise InvalidTransitionError(msg)
    updated = job.model_copy(deep=True)
    updated.is_active = False
    if updated.state != JobState.EXECUTING:
        updated.state = JobState.PAUSED
        updated.stats.next_execution = None
    return updated


def resume(job: ScheduledReportJob, now: datetime) -> ScheduledReportJob:
    """Reactivate a recurring job and recompute its next execution. Idempotent."""
    if not job.is_recurring:
        msg = f"Job {job.id} is one-time and cannot be resumed"
        raise InvalidTransitionError(msg)
    updated = job.model_copy(deep=True)
    updated.is_active = True
    if updated.state != JobState.EXECUTING:
        updated.state = JobState.SCHEDULED
        updated.stats.next_execution = _next_execution(updated, now)
    return updated


def is_stalled(job: ScheduledReportJob, now: datetime, timeout: timedelta) -> bool:
    return (
        job.state == JobState.EXECUTING
        and job.executing_since is not None
        and now - job.executing_since > timeout
    )


def fail_stalled(job: ScheduledReportJob, now: datetime, timeout: timedelta) -> ScheduledReportJob:
    """Fail an execution that has been running longer than timeout."""
    if not is_stalled(job, now, timeout):
        msg = f"Job {job.id} is not a stalled execution"
        raise InvalidTransitionError(msg)
    minutes = int(timeout.total_seconds() // 60)
    return complete_failure(job, now, STALLED_ERROR.format(minutes=minutes))


def duplicate(job: ScheduledReportJob, new_id: str, now: datetime) -> ScheduledReportJob:
    """Copy of job's configuration with zeroed stats, inactive and unsent."""
    copy = ScheduledReportJob(
        id=new_id,
        **job.model_copy(deep=True).config(),
        created_by=job.created_by,
    )
    copy.is_active = False
    copy.stats = ExecutionStats()
    return initial_state(copy, now)
