"""
Domain models for the report delivery service.

- content: presentations, templates, slides and data-bound elements
- jobs: scheduled report jobs, their configuration parts, execution records
"""

from .content import (
    DataSource,
    Element,
    ImageElement,
    MetricElement,
    Presentation,
    QueryElement,
    RefreshReport,
    ReportTemplate,
    ResolvedContent,
    Slide,
    TextElement,
)
from .jobs import (
    SYSTEM_VARIABLE_NAMES,
    ContentBinding,
    ContentKind,
    CustomVariable,
    EmailTemplateBinding,
    ExecutionOutcome,
    ExecutionRecord,
    ExecutionStats,
    ExecutionStatus,
    ExecutionTrigger,
    JobCreate,
    JobState,
    JobUpdate,
    Recipients,
    RenderedEmail,
    Schedule,
    ScheduledReportJob,
    ScheduleKind,
    VariableKind,
)

__all__ = [
    "SYSTEM_VARIABLE_NAMES",
    "ContentBinding",
    "ContentKind",
    "CustomVariable",
    "DataSource",
    "Element",
    "EmailTemplateBinding",
    "ExecutionOutcome",
    "ExecutionRecord",
    "ExecutionStats",
    "ExecutionStatus",
    "ExecutionTrigger",
    "ImageElement",
    "JobCreate",
    "JobState",
    "JobUpdate",
    "MetricElement",
    "Presentation",
    "QueryElement",
    "Recipients",
    "RefreshReport",
    "RenderedEmail",
    "ReportTemplate",
    "ResolvedContent",
    "Schedule",
    "ScheduleKind",
    "ScheduledReportJob",
    "Slide",
    "TextElement",
    "VariableKind",
]
