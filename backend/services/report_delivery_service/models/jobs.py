"""
Scheduled report job model.

A ScheduledReportJob binds content (a fixed report or a template) to a
schedule, a set of recipients, an email template and author-defined
variables, and carries the job's lifecycle state and execution counters.

Invariants enforced at construction time:
    - content.kind == "report"   <=> presentation_id set, template_id empty
    - content.kind == "template" <=> template_id set, presentation_id empty
    - schedule.cron_expression is None <=> schedule.kind == "one_time"
    - recipients.to is non-empty; every address is a valid email
    - email_template.subject and the job name are non-blank
    - custom variable names are unique identifiers that do not shadow a
      system variable

Violations raise pydantic.ValidationError; the job service converts those
to JobValidationError.
"""

from datetime import datetime
from enum import Enum
import re
from typing import Any

from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator

from services.report_delivery_service.utils import validate_cron, validate_timezone

VARIABLE_NAME_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

SYSTEM_VARIABLE_NAMES = frozenset(
    {
        "report_name",
        "report_title",
        "report_period",
        "recipient_name",
        "current_date",
        "current_time",
        "generation_date",
        "generation_time",
        "dashboard_url",
        "next_execution",
        "execution_count",
        "recipient_count",
        "date",
        "time",
        "datetime",
        "week_start",
        "week_end",
        "month_start",
        "month_end",
        "email_content",
        "report_content",
        "metric_1_value",
        "metric_1_label",
        "metric_2_value",
        "metric_2_label",
        "metric_3_value",
        "metric_3_label",
    }
)


class ContentKind(str, Enum):
    REPORT = "report"
    TEMPLATE = "template"


class ScheduleKind(str, Enum):
    ONE_TIME = "one_time"
    RECURRING = "recurring"


class JobState(str, Enum):
    DRAFT = "draft"
    SCHEDULED = "scheduled"
    PAUSED = "paused"
    EXECUTING = "executing"
    SENT = "sent"
    FAILED = "failed"


class VariableKind(str, Enum):
    STATIC = "static"
    QUERY = "query"
    TIMESTAMP = "timestamp"
    FORMULA = "formula"


class ExecutionTrigger(str, Enum):
    MANUAL = "manual"
    SCHEDULE = "schedule"


class ExecutionStatus(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"


class ContentBinding(BaseModel):
    """What a job sends: a fixed report presentation or a refreshed template."""

    kind: ContentKind
    presentation_id: str | None = None
    template_id: str | None = None

    @model_validator(mode="after")
    def check_exactly_one_reference(self) -> "ContentBinding":
        if self.kind == ContentKind.REPORT:
            if not self.presentation_id or self.template_id:
                msg = "report content requires presentation_id and no template_id"
                raise ValueError(msg)
        elif not self.template_id or self.presentation_id:
            msg = "template content requires template_id and no presentation_id"
            raise ValueError(msg)
        return self

    @property
    def content_id(self) -> str:
        return self.presentation_id if self.kind == ContentKind.REPORT else self.template_id

    @classmethod
    def report(cls, presentation_id: str) -> "ContentBinding":
        return cls(kind=ContentKind.REPORT, presentation_id=presentation_id)

    @classmethod
    def template(cls, template_id: str) -> "ContentBinding":
        return cls(kind=ContentKind.TEMPLATE, template_id=template_id)


class Schedule(BaseModel):
    """When a job runs: once on demand, or on a cron expression in a timezone."""

    kind: ScheduleKind = ScheduleKind.ONE_TIME
    cron_expression: str | None = None
    timezone: str = "UTC"

    @field_validator("timezone")
    @classmethod
    def check_timezone(cls, v: str) -> str:
        if not validate_timezone(v):
            msg = f"unknown timezone: {v}"
            raise ValueError(msg)
        return v

    @model_validator(mode="after")
    def check_cron_matches_kind(self) -> "Schedule":
        if self.kind == ScheduleKind.ONE_TIME:
            if self.cron_expression is not None:
                msg = "one_time schedules must not carry a cron_expression"
                raise ValueError(msg)
        else:
            if not self.cron_expression:
                msg = "recurring schedules require a cron_expression"
                raise ValueError(msg)
            if not validate_cron(self.cron_expression):
                msg = f"invalid cron expression: {self.cron_expression}"
                raise ValueError(msg)
        return self

    @property
    def is_recurring(self) -> bool:
        return self.kind == ScheduleKind.RECURRING


class Recipients(BaseModel):
    """
    Addressees of a job.

    Lists are not de-duplicated against each other: an address may appear
    in more than one role. overlapping_addresses() reports such addresses
    so the API can surface a warning.
    """

    to: list[EmailStr] = Field(min_length=1)
    cc: list[EmailStr] = Field(default_factory=list)
    bcc: list[EmailStr] = Field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.to) + len(self.cc) + len(self.bcc)

    def overlapping_addresses(self) -> list[str]:
        seen: dict[str, int] = {}
        for address_list in (self.to, self.cc, self.bcc):
            for address in {a.lower() for a in address_list}:
                seen[address] = seen.get(address, 0) + 1
        return sorted(address for address, roles in seen.items() if roles > 1)


class EmailTemplateBinding(BaseModel):
    """Email skeleton, subject line and body overrides of a job."""

    template_id: str = "professional"
    subject: str
    custom_content: str | None = None
    template_variables: dict[str, str] = Field(default_factory=dict)

    @field_validator("subject")
    @classmethod
    def check_subject(cls, v: str) -> str:
        if not v.strip():
            msg = "subject must not be blank"
            raise ValueError(msg)
        return v


class CustomVariable(BaseModel):
    """
    Author-defined variable substituted into subject and body text.

    value is interpreted by kind: a literal (static), SQL text (query),
    a format string (timestamp) or text containing other placeholders
    (formula).
    """

    name: str
    kind: VariableKind = VariableKind.STATIC
    value: str = ""
    description: str = ""

    @field_validator("name")
    @classmethod
    def check_name(cls, v: str) -> str:
        if not VARIABLE_NAME_PATTERN.match(v):
            msg = f"variable name must be an identifier: {v!r}"
            raise ValueError(msg)
        if v in SYSTEM_VARIABLE_NAMES:
            msg = f"variable name {v!r} is reserved for a system variable"
            raise ValueError(msg)
        return v


class ExecutionStats(BaseModel):
    execution_count: int = 0
    success_count: int = 0
    error_count: int = 0
    last_executed: datetime | None = None
    next_execution: datetime | None = None
    last_error: str | None = None
    last_generated_presentation_id: str | None = None


class JobConfig(BaseModel):
    """Authored configuration shared by job creation and stored jobs."""

    name: str
    description: str = ""
    content: ContentBinding
    schedule: Schedule = Field(default_factory=Schedule)
    recipients: Recipients
    email_template: EmailTemplateBinding
    custom_variables: list[CustomVariable] = Field(default_factory=list)
    is_active: bool = True

    @field_validator("name")
    @classmethod
    def check_name(cls, v: str) -> str:
        if not v.strip():
            msg = "name must not be blank"
            raise ValueError(msg)
        return v

    @field_validator("custom_variables")
    @classmethod
    def check_unique_variables(cls, v: list[CustomVariable]) -> list[CustomVariable]:
        names = [variable.name for variable in v]
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            msg = f"duplicate custom variable names: {', '.join(duplicates)}"
            raise ValueError(msg)
        return v


class JobCreate(JobConfig):
    created_by: str | None = None


class JobUpdate(BaseModel):
    """Partial configuration; only fields that are set are applied."""

    name: str | None = None
    description: str | None = None
    content: ContentBinding | None = None
    schedule: Schedule | None = None
    recipients: Recipients | None = None
    email_template: EmailTemplateBinding | None = None
    custom_variables: list[CustomVariable] | None = None
    is_active: bool | None = None


CONFIG_FIELDS = tuple(JobConfig.model_fields)


class ScheduledReportJob(JobConfig):
    id: str
    state: JobState = JobState.DRAFT
    stats: ExecutionStats = Field(default_factory=ExecutionStats)
    executing_since: datetime | None = None
    created_by: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def is_recurring(self) -> bool:
        return self.schedule.is_recurring

    def config(self) -> dict[str, Any]:
        """Authored configuration as a plain dict."""
        return self.model_dump(include=set(CONFIG_FIELDS))


class ExecutionRecord(BaseModel):
    """One execution attempt, appended to the job's execution log."""

    id: str
    job_id: str
    trigger: ExecutionTrigger
    status: ExecutionStatus
    started_at: datetime
    completed_at: datetime | None = None
    error_message: str | None = None
    message_id: str | None = None
    recipient_count: int = 0
    presentation_id: str | None = None


class ExecutionOutcome(BaseModel):
    """Result of executing a job once."""

    job_id: str
    execution_id: str | None = None
    status: ExecutionStatus
    state: JobState
    message_id: str | None = None
    error: str | None = None
    refresh: dict[str, Any] | None = None
    presentation_id: str | None = None


class RenderedEmail(BaseModel):
    subject: str
    html: str
