"""
Control models for scheduled report delivery.

This module contains ORM models for report delivery jobs and their
execution history.

Models:
    ScheduledReports: A report delivery job: content binding, schedule,
        recipients, email template, custom variables, state and counters.
    ReportExecutions: Append-only log with one row per execution attempt.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import TIMESTAMP, Boolean, ForeignKey, Integer, String, Text, text
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from common.database import Base


class ScheduledReports(Base):
    """
    Model representing a scheduled report delivery job.

    Nested configuration (recipients, email template binding, custom
    variables) is stored as JSONB and validated by the service's pydantic
    models on the way in and out.

    Attributes:
        id (str): Job identifier (UUID). Primary key.
        name (str): Display name, exposed to templates as {report_name}.
        content_kind (str): "report" or "template".
        presentation_id (str | None): Bound presentation for "report" jobs.
        template_id (str | None): Bound report template for "template" jobs.
        schedule_kind (str): "one_time" or "recurring".
        cron_expression (str | None): 5-field cron; None for one-time jobs.
        timezone (str): IANA timezone the cron expression is evaluated in.
        recipients (dict): {"to": [...], "cc": [...], "bcc": [...]}.
        email_template (dict): {"template_id", "subject", "custom_content",
            "template_variables"}.
        custom_variables (list): [{"name", "kind", "value", "description"}].
        is_active (bool): Whether the scheduler may trigger the job.
        state (str): draft, scheduled, paused, executing, sent or failed.
        execution_count / success_count / error_count (int): Counters.
        last_executed (datetime | None): Trigger time of the latest run.
        next_execution (datetime | None): Next scheduled run (UTC).
        last_error (str | None): Error message of the latest failed run.
        executing_since (datetime | None): Start of the in-flight run, used
            to detect stalled executions.
        last_generated_presentation_id (str | None): Snapshot presentation
            produced by the latest template send.

    Table:
        scheduled_reports
    """

    __tablename__ = "scheduled_reports"

    id: Mapped[str] = mapped_column(
        UUID(as_uuid=False), primary_key=True, server_default=text("gen_random_uuid()")
    )
    name: Mapped[str] = mapped_column(String(255))
    description: Mapped[str] = mapped_column(Text, default="")
    content_kind: Mapped[str] = mapped_column(String(20))
    presentation_id: Mapped[str | None] = mapped_column(String(64))
    template_id: Mapped[str | None] = mapped_column(String(64))
    schedule_kind: Mapped[str] = mapped_column(String(20))
    cron_expression: Mapped[str | None] = mapped_column(String(100))
    timezone: Mapped[str] = mapped_column(String(64), default="UTC")
    recipients: Mapped[dict] = mapped_column(JSONB)
    email_template: Mapped[dict] = mapped_column(JSONB)
    custom_variables: Mapped[list] = mapped_column(JSONB, default=list)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    state: Mapped[str] = mapped_column(String(20), index=True)
    execution_count: Mapped[int] = mapped_column(Integer, default=0)
    success_count: Mapped[int] = mapped_column(Integer, default=0)
    error_count: Mapped[int] = mapped_column(Integer, default=0)
    last_executed: Mapped[datetime | None] = mapped_column(TIMESTAMP(timezone=True))
    next_execution: Mapped[datetime | None] = mapped_column(TIMESTAMP(timezone=True))
    last_error: Mapped[str | None] = mapped_column(Text)
    executing_since: Mapped[datetime | None] = mapped_column(TIMESTAMP(timezone=True))
    last_generated_presentation_id: Mapped[str | None] = mapped_column(String(64))
    created_by: Mapped[str | None] = mapped_column(String(255))


class ReportExecutions(Base):
    """
    Model representing a single execution attempt of a scheduled report.

    Attributes:
        id (str): Execution identifier (UUID). Primary key.
        report_id (str): Owning scheduled report.
        trigger (str): "manual" or "schedule".
        status (str): "success" or "failure".
        started_at / completed_at (datetime): Run window.
        error_message (str | None): Failure reason.
        message_id (str | None): Transport message id on success.
        recipient_count (int): Addresses across to, cc and bcc.
        presentation_id (str | None): Snapshot presentation generated for
            a template send.

    Table:
        report_executions
    """

    __tablename__ = "report_executions"

    id: Mapped[str] = mapped_column(
        UUID(as_uuid=False), primary_key=True, server_default=text("gen_random_uuid()")
    )
    report_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False), ForeignKey("scheduled_reports.id"), index=True
    )
    trigger: Mapped[str] = mapped_column(String(20))
    status: Mapped[str] = mapped_column(String(20))
    started_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True))
    completed_at: Mapped[datetime | None] = mapped_column(TIMESTAMP(timezone=True))
    error_message: Mapped[str | None] = mapped_column(Text)
    message_id: Mapped[str | None] = mapped_column(String(255))
    recipient_count: Mapped[int] = mapped_column(Integer, default=0)
    presentation_id: Mapped[str | None] = mapped_column(String(64))
