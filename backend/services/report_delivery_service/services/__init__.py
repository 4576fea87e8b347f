"""
Business Logic Services for Report Delivery Service.

Core services of the delivery engine: query refresh, content resolution,
template variable resolution, email rendering and SMTP delivery, the
execution state machine, the executor, the job service facade and the
stalled execution monitor.
"""

from . import execution_tracker
from .content_resolver import ContentResolver
from .email_service import EmailService
from .execution_monitor import ExecutionMonitor
from .job_executor import JobExecutor
from .job_service import JobService
from .query_refresh_service import QueryRefreshService
from .template_service import TemplateService
from .variable_resolver import VariableResolver

__all__ = [
    "ContentResolver",
    "EmailService",
    "ExecutionMonitor",
    "JobExecutor",
    "JobService",
    "QueryRefreshService",
    "TemplateService",
    "VariableResolver",
    "execution_tracker",
]
