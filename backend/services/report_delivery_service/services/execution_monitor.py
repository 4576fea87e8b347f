"""
Stalled execution monitor.

Runs as an asyncio background task inside the FastAPI process. Executions
have no cancellation, so a hung warehouse or mail server leaves a job in
the executing state. The monitor periodically fails jobs that have been
executing longer than a timeout, which frees them for the next manual send
or scheduler tick.

Usage:
    ```python
    monitor = ExecutionMonitor(jobs_repository, interval_seconds=300, stalled_timeout_minutes=30)

    # Start monitoring (typically in FastAPI lifespan)
    await monitor.start()

    # Stop monitoring (on shutdown)
    await monitor.stop()
    ```
"""

import asyncio
from datetime import datetime, timedelta, timezone
import uuid

from loguru import logger

from services.report_delivery_service.database.jobs_repository import JobsRepository
from services.report_delivery_service.models.jobs import (
    ExecutionRecord,
    ExecutionStatus,
    ExecutionTrigger,
    ScheduledReportJob,
)
from services.report_delivery_service.services import execution_tracker


class ExecutionMonitor:
    """Background task that fails stalled executions."""

    def __init__(
        self,
        jobs_repository: JobsRepository,
        interval_seconds: int = 300,
        stalled_timeout_minutes: int = 30,
        startup_delay_seconds: float = 30,
    ):
        self.jobs_repository = jobs_repository
        self.interval_seconds = interval_seconds
        self.stalled_timeout_minutes = stalled_timeout_minutes
        self.startup_delay_seconds = startup_delay_seconds
        self._running = False
        self._task: asyncio.Task[None] | None = None

    @property
    def timeout(self) -> timedelta:
        return timedelta(minutes=self.stalled_timeout_minutes)

    @property
    def is_running(self) -> bool:
        return self._running and self._task is not None and not self._task.done()

    async def start(self) -> None:
        """Start the background monitoring task."""
        if self._running:
            logger.warning("Execution monitor is already running")
            return

        self._running = True
        self._task = asyncio.create_task(self._run_loop())
        logger.info(
            f"Execution monitor started (interval={self.interval_seconds}s, "
            f"stalled_timeout={self.stalled_timeout_minutes}min)"
        )

    async def stop(self) -> None:
        """Stop the background monitoring task."""
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("Execution monitor stopped")

    async def _run_loop(self) -> None:
        await asyncio.sleep(self.startup_delay_seconds)

        while self._running:
            try:
                await self.check_stalled_executions()
            except Exception as e:
                logger.error(f"Execution monitor error: {e}")

            await asyncio.sleep(self.interval_seconds)

    async def check_stalled_executions(self, now: datetime | None = None) -> int:
        """
        Fail every job executing for longer than the timeout.

        Returns:
            int: Number of jobs marked failed.
        """
        now = now or datetime.now(timezone.utc)
        stalled = await self.jobs_repository.list_stalled_jobs(now - self.timeout)

        failed = 0
        for job in stalled:
            if not execution_tracker.is_stalled(job, now, self.timeout):
                continue
            try:
                await self._fail(job, now)
                failed += 1
            except Exception as e:
                logger.warning(f"Could not fail stalled scheduled report {job.id}: {e}")

        if failed:
            logger.info(f"Execution monitor: marked {failed} stalled executions as failed")
        else:
            logger.debug("Execution monitor: no stalled executions found")
        return failed

    async def _fail(self, job: ScheduledReportJob, now: datetime) -> None:
        started_at = job.executing_since
        finished = execution_tracker.fail_stalled(job, now, self.timeout)
        await self.jobs_repository.save_job(finished)
        trigger = ExecutionTrigger.SCHEDULE if job.is_recurring and job.is_active else ExecutionTrigger.MANUAL
        await self.jobs_repository.add_execution(
            ExecutionRecord(
                id=str(uuid.uuid4()),
                job_id=job.id,
                trigger=trigger,
                status=ExecutionStatus.FAILURE,
                started_at=started_at,
                completed_at=now,
                error_message=finished.stats.last_error,
                recipient_count=job.recipients.count,
            )
        )
        logger.warning(f"Scheduled report {job.id} stalled since {started_at}, marked failed")
