"""
Tests for the execution state machine.
"""

from datetime import datetime, timedelta, timezone

import pytest

from services.report_delivery_service.errors import InvalidTransitionError
from services.report_delivery_service.models.jobs import ExecutionTrigger, JobState
from services.report_delivery_service.services import execution_tracker

NOW = datetime(2024, 3, 4, 8, 0, tzinfo=timezone.utc)  # Monday
WEEKLY = {"kind": "recurring", "cron_expression": "0 9 * * 1", "timezone": "UTC"}


class TestInitialState:
    def test_one_time_is_draft(self, make_job):
        job = execution_tracker.initial_state(make_job(), NOW)

        assert job.state == JobState.DRAFT
        assert job.stats.next_execution is None

    def test_active_recurring_is_scheduled(self, make_job):
        job = execution_tracker.initial_state(make_job(schedule=WEEKLY), NOW)

        assert job.state == JobState.SCHEDULED
        assert job.stats.next_execution == datetime(2024, 3, 4, 9, 0, tzinfo=timezone.utc)

    def test_inactive_recurring_is_paused(self, make_job):
        job = execution_tracker.initial_state(make_job(schedule=WEEKLY, is_active=False), NOW)

        assert job.state == JobState.PAUSED
        assert job.stats.next_execution is None

    def test_next_execution_honours_timezone(self, make_job):
        schedule = {**WEEKLY, "timezone": "America/New_York"}

        job = execution_tracker.initial_state(make_job(schedule=schedule), NOW)

        # 09:00 EST is 14:00 UTC
        assert job.stats.next_execution == datetime(2024, 3, 4, 14, 0, tzinfo=timezone.utc)


class TestBeginAndComplete:
    def test_success_updates_counters(self, make_job):
        job = execution_tracker.initial_state(make_job(), NOW)

        running = execution_tracker.begin(job, ExecutionTrigger.MANUAL, NOW)
        done = execution_tracker.complete_success(running, NOW + timedelta(seconds=5))

        assert running.state == JobState.EXECUTING
        assert running.executing_since == NOW
        assert done.state == JobState.SENT
        assert done.stats.execution_count == 1
        assert done.stats.success_count == 1
        assert done.stats.error_count == 0
        assert done.stats.last_executed == NOW
        assert done.executing_since is None

    def test_failure_updates_counters(self, make_job):
        job = execution_tracker.initial_state(make_job(), NOW)

        running = execution_tracker.begin(job, ExecutionTrigger.MANUAL, NOW)
        done = execution_tracker.complete_failure(running, NOW, "smtp down")

        assert done.state == JobState.FAILED
        assert done.stats.execution_count == 1
        assert done.stats.error_count == 1
        assert done.stats.last_error == "smtp down"

    def test_success_clears_last_error(self, make_job):
        job = execution_tracker.initial_state(make_job(schedule=WEEKLY), NOW)
        failed = execution_tracker.complete_failure(
            execution_tracker.begin(job, ExecutionTrigger.SCHEDULE, NOW), NOW, "boom"
        )

        ok = execution_tracker.complete_success(
            execution_tracker.begin(failed, ExecutionTrigger.SCHEDULE, NOW), NOW
        )

        assert ok.stats.last_error is None
        assert ok.stats.execution_count == 2
        assert ok.state == JobState.SCHEDULED

    @pytest.mark.parametrize("terminal", [JobState.SENT, JobState.FAILED])
    def test_terminal_one_time_job_cannot_run_again(self, make_job, terminal):
        job = make_job(state=terminal)

        with pytest.raises(InvalidTransitionError):
            execution_tracker.begin(job, ExecutionTrigger.MANUAL, NOW)

    def test_executing_job_cannot_start_again(self, make_job):
        running = execution_tracker.begin(make_job(), ExecutionTrigger.MANUAL, NOW)

        with pytest.raises(InvalidTransitionError):
            execution_tracker.begin(running, ExecutionTrigger.MANUAL, NOW)

    def test_scheduler_trigger_rejected_for_one_time(self, make_job):
        with pytest.raises(InvalidTransitionError):
            execution_tracker.begin(make_job(), ExecutionTrigger.SCHEDULE, NOW)

    def test_scheduler_trigger_rejected_for_inactive(self, make_job):
        job = execution_tracker.initial_state(make_job(schedule=WEEKLY, is_active=False), NOW)

        with pytest.raises(InvalidTransitionError):
            execution_tracker.begin(job, ExecutionTrigger.SCHEDULE, NOW)

    def test_complete_requires_executing(self, make_job):
        with pytest.raises(InvalidTransitionError):
            execution_tracker.complete_success(make_job(), NOW)

    def test_begin_does_not_mutate_input(self, make_job):
        job = make_job()

        execution_tracker.begin(job, ExecutionTrigger.MANUAL, NOW)

        assert job.state == JobState.DRAFT
        assert job.executing_since is None


class TestPauseResume:
    def test_pause_keeps_schedule_and_counters(self, make_job):
        job = execution_tracker.initial_state(
            make_job(schedule={**WEEKLY, "timezone": "Europe/Berlin"}), NOW
        )
        job.stats.execution_count = 7

        paused = execution_tracker.pause(job)

        assert paused.state == JobState.PAUSED
        assert paused.is_active is False
        assert paused.stats.next_execution is None
        assert paused.schedule == job.schedule
        assert paused.stats.execution_count == 7

    def test_resume_recomputes_next_execution(self, make_job):
        paused = execution_tracker.pause(execution_tracker.initial_state(make_job(schedule=WEEKLY), NOW))

        resumed = execution_tracker.resume(paused, NOW + timedelta(days=1))

        assert resumed.state == JobState.SCHEDULED
        assert resumed.stats.next_execution == datetime(2024, 3, 11, 9, 0, tzinfo=timezone.utc)

    def test_pause_one_time_rejected(self, make_job):
        with pytest.raises(InvalidTransitionError):
            execution_tracker.pause(make_job())

    def test_pause_while_executing_settles_on_completion(self, make_job):
        job = execution_tracker.initial_state(make_job(schedule=WEEKLY), NOW)
        running = execution_tracker.begin(job, ExecutionTrigger.SCHEDULE, NOW)

        paused = execution_tracker.pause(running)
        done = execution_tracker.complete_success(paused, NOW)

        assert paused.state == JobState.EXECUTING
        assert done.state == JobState.PAUSED


class TestStalled:
    def test_fail_stalled_execution(self, make_job):
        running = execution_tracker.begin(make_job(), ExecutionTrigger.MANUAL, NOW)
        later = NOW + timedelta(minutes=45)

        failed = execution_tracker.fail_stalled(running, later, timedelta(minutes=30))

        assert failed.state == JobState.FAILED
        assert "stalled" in failed.stats.last_error
        assert failed.stats.error_count == 1

    def test_recent_execution_is_not_stalled(self, make_job):
        running = execution_tracker.begin(make_job(), ExecutionTrigger.MANUAL, NOW)

        assert not execution_tracker.is_stalled(running, NOW + timedelta(minutes=5), timedelta(minutes=30))
        with pytest.raises(InvalidTransitionError):
            execution_tracker.fail_stalled(running, NOW + timedelta(minutes=5), timedelta(minutes=30))


class TestDuplicate:
    def test_duplicate_resets_state(self, make_job):
        job = make_job(
            schedule=WEEKLY,
            state=JobState.SCHEDULED,
            stats={"execution_count": 3, "success_count": 3, "last_error": "old"},
            custom_variables=[{"name": "region", "value": "EU"}],
        )

        copy = execution_tracker.duplicate(job, "job-2", NOW)

        assert copy.id == "job-2"
        assert copy.config() == {**job.config(), "is_active": False}
        assert copy.is_active is False
        assert copy.state == JobState.PAUSED
        assert copy.stats.execution_count == 0
        assert copy.stats.last_error is None
        assert copy.custom_variables == job.custom_variables
        assert copy.content == job.content
