"""
Template variable resolution for report emails.

Subject lines, custom body content and email skeletons share one
placeholder convention: {name}, where name is an identifier. Substitution
is a flat, single-pass replace:

    - unknown placeholders stay visible as {name} so authors can spot
      missing bindings in previews
    - substituted values are never re-scanned, so a value containing
      "{other}" is emitted literally

Variables are assembled per render, later sources overriding earlier ones:

    1. system variables (report_name, current_date, dashboard_url, ...)
    2. the email template binding's template_variables
    3. the job's custom variables, in declared order
    4. caller overrides (previews)

Custom variable kinds:

    static     the value verbatim
    timestamp  the value as a date format ("%Y-%m-%d" or "YYYY-MM-DD"
               tokens) rendered against the current time in the job's
               timezone; blank renders ISO 8601
    query      the value executed as a read query; the first column of the
               first row, or "" when there are no rows or the query fails
    formula    the value with already-resolved variables substituted in;
               no arithmetic is evaluated
"""

from datetime import datetime, timedelta, timezone
import re
from typing import Any
from zoneinfo import ZoneInfo

from loguru import logger

from services.report_delivery_service.clients.warehouse_client import WarehouseClient
from services.report_delivery_service.errors import WarehouseError
from services.report_delivery_service.models.content import ResolvedContent
from services.report_delivery_service.models.jobs import (
    CustomVariable,
    ScheduledReportJob,
    VariableKind,
)
from services.report_delivery_service.utils import describe_cron

PLACEHOLDER_PATTERN = re.compile(r"\{([A-Za-z_][A-Za-z0-9_]*)\}")
DOUBLE_BRACE_PATTERN = re.compile(r"\{\{\s*([A-Za-z_][A-Za-z0-9_]*)\s*\}\}")

_DATE_TOKENS = re.compile(r"YYYY|YY|MMMM|MMM|MM|DD|HH|hh|mm|ss|A")
_TOKEN_RUN = re.compile(r"(?:YYYY|YY|MMMM|MMM|MM|DD|HH|hh|mm|ss|A)+")
_LETTER_RUN = re.compile(r"[A-Za-z]+")
_DATE_TOKEN_FORMATS = {
    "YYYY": "%Y",
    "YY": "%y",
    "MMMM": "%B",
    "MMM": "%b",
    "MM": "%m",
    "DD": "%d",
    "HH": "%H",
    "hh": "%I",
    "mm": "%M",
    "ss": "%S",
    "A": "%p",
}

METRIC_SLOTS = 3


def substitute(text: str | None, variables: dict[str, Any]) -> str:
    """
    Replace {name} placeholders with values from variables.

    Example:
        ```python
        substitute("Hi {name}", {"name": "Ada"})  # "Hi Ada"
        substitute("Hi {name}", {})               # "Hi {name}"
        ```
    """
    if not text:
        return ""

    def _replace(match: re.Match) -> str:
        name = match.group(1)
        if name not in variables:
            return match.group(0)
        value = variables[name]
        return "" if value is None else str(value)

    return PLACEHOLDER_PATTERN.sub(_replace, text)


def find_placeholders(text: str | None) -> list[str]:
    """Placeholder names in text, in order of first appearance."""
    seen: dict[str, None] = {}
    for match in PLACEHOLDER_PATTERN.finditer(text or ""):
        seen.setdefault(match.group(1))
    return list(seen)


def find_double_brace_placeholders(text: str | None) -> list[str]:
    """
    Names written as {{name}} in text, in order of first appearance.

    Substitution only replaces the inner {name}, so {{name}} renders with a
    stray pair of braces around the value.
    """
    seen: dict[str, None] = {}
    for match in DOUBLE_BRACE_PATTERN.finditer(text or ""):
        seen.setdefault(match.group(1))
    return list(seen)


def format_timestamp(moment: datetime, fmt: str) -> str:
    """
    Render moment with a strftime format or YYYY/MM/DD/HH/mm/ss tokens.

    Tokens are only recognised in letter runs made up entirely of tokens,
    so "Summary as of YYYY-MM-DD" keeps its words and "YYYYMMDD" still
    expands.
    """
    if not fmt or not fmt.strip():
        return moment.isoformat(timespec="seconds")
    if "%" in fmt:
        return moment.strftime(fmt)

    def _expand(run: re.Match) -> str:
        word = run.group(0)
        if not _TOKEN_RUN.fullmatch(word):
            return word
        return _DATE_TOKENS.sub(lambda m: moment.strftime(_DATE_TOKEN_FORMATS[m.group(0)]), word)

    return _LETTER_RUN.sub(_expand, fmt)


class VariableResolver:
    """Builds the variable set for a job render and substitutes text."""

    def __init__(self, warehouse: WarehouseClient | None, dashboard_url: str = ""):
        self.warehouse = warehouse
        self.dashboard_url = dashboard_url

    def system_variables(
        self,
        job: ScheduledReportJob,
        content: ResolvedContent | None = None,
        now: datetime | None = None,
    ) -> dict[str, str]:
        """System variables computed fresh for one render of job."""
        zone = ZoneInfo(job.schedule.timezone)
        local_now = (now or datetime.now(timezone.utc)).astimezone(zone)
        today = local_now.date()
        week_start = today - timedelta(days=today.weekday())
        month_start = today.replace(day=1)
        next_month = (month_start + timedelta(days=32)).replace(day=1)

        next_execution = job.stats.next_execution
        if next_execution is not None:
            next_text = next_execution.astimezone(zone).strftime("%Y-%m-%d %H:%M %Z")
        else:
            next_text = "Not scheduled"

        variables = {
            "report_name": job.name,
            "report_title": content.title if content else job.name,
            "report_period": (
                describe_cron(job.schedule.cron_expression)
                if job.schedule.cron_expression
                else "One-time report"
            ),
            "current_date": local_now.strftime("%Y-%m-%d"),
            "current_time": local_now.strftime("%H:%M"),
            "generation_date": local_now.strftime("%B %d, %Y"),
            "generation_time": local_now.strftime("%I:%M %p"),
            "date": local_now.strftime("%Y-%m-%d"),
            "time": local_now.strftime("%H:%M"),
            "datetime": local_now.strftime("%Y-%m-%d %H:%M"),
            "week_start": week_start.isoformat(),
            "week_end": (week_start + timedelta(days=6)).isoformat(),
            "month_start": month_start.isoformat(),
            "month_end": (next_month - timedelta(days=1)).isoformat(),
            "recipient_name": "Team",
            "dashboard_url": self.dashboard_url,
            "next_execution": next_text,
            "execution_count": str(job.stats.execution_count),
            "recipient_count": str(job.recipients.count),
        }

        metrics = content.metric_elements if content else []
        for slot in range(1, METRIC_SLOTS + 1):
            metric = metrics[slot - 1] if len(metrics) >= slot else None
            variables[f"metric_{slot}_value"] = metric.display_value() if metric else ""
            variables[f"metric_{slot}_label"] = metric.content.label if metric else ""
        return variables

    async def resolve_custom_variable(
        self,
        variable: CustomVariable,
        resolved: dict[str, str],
        local_now: datetime,
    ) -> str:
        if variable.kind == VariableKind.STATIC:
            return variable.value
        if variable.kind == VariableKind.TIMESTAMP:
            return format_timestamp(local_now, variable.value)
        if variable.kind == VariableKind.FORMULA:
            return substitute(variable.value, resolved)
        return await self._resolve_query(variable)

    async def _resolve_query(self, variable: CustomVariable) -> str:
        if self.warehouse is None:
            logger.warning(f"Query variable {variable.name} skipped: no warehouse configured")
            return ""
        try:
            result = await self.warehouse.execute(variable.value)
        except WarehouseError as e:
            logger.warning(f"Query variable {variable.name} failed, resolving to empty: {e}")
            return ""
        value = result.first_scalar()
        return "" if value is None else str(value)

    async def build_variables(
        self,
        job: ScheduledReportJob,
        content: ResolvedContent | None = None,
        overrides: dict[str, Any] | None = None,
        now: datetime | None = None,
    ) -> dict[str, str]:
        """
        Assemble the full variable set for one render of job.

        Custom variables named in overrides are not evaluated, so a preview
        can stub out a slow or broken query.
        """
        overrides = {name: "" if v is None else str(v) for name, v in (overrides or {}).items()}
        moment = now or datetime.now(timezone.utc)
        local_now = moment.astimezone(ZoneInfo(job.schedule.timezone))

        variables = self.system_variables(job, content, moment)
        variables.update(job.email_template.template_variables)

        for variable in job.custom_variables:
            if variable.name in overrides:
                variables[variable.name] = overrides[variable.name]
                continue
            variables[variable.name] = await self.resolve_custom_variable(
                variable, variables, local_now
            )

        variables.update(overrides)
        return variables

    def render_subject(self, job: ScheduledReportJob, variables: dict[str, str]) -> str:
        return substitute(job.email_template.subject, variables)

    def render_custom_content(self, job: ScheduledReportJob, variables: dict[str, str]) -> str | None:
        if not job.email_template.custom_content:
            return None
        return substitute(job.email_template.custom_content, variables)
