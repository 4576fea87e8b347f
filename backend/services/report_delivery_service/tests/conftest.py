"""
Pytest configuration and fixtures for report delivery service tests.
"""

import os

# Set test environment variables before importing modules
os.environ.setdefault("POSTGRES_HOST", "localhost")
os.environ.setdefault("POSTGRES_PORT", "5432")
os.environ.setdefault("POSTGRES_USER", "postgres")
os.environ.setdefault("POSTGRES_PASSWORD", "postgres")
os.environ.setdefault("POSTGRES_DB", "report_delivery_test")
os.environ.setdefault("SCHEDULER_API_URL", "http://localhost:8080")

from datetime import datetime, timezone
from typing import Any
from unittest.mock import AsyncMock

import pytest

from services.report_delivery_service.clients.warehouse_client import QueryResult
from services.report_delivery_service.errors import JobNotFoundError, WarehouseError
from services.report_delivery_service.models.content import Presentation, ReportTemplate, Slide
from services.report_delivery_service.models.jobs import (
    ExecutionRecord,
    JobState,
    ScheduledReportJob,
)
from services.report_delivery_service.services.content_resolver import ContentResolver
from services.report_delivery_service.services.job_executor import JobExecutor
from services.report_delivery_service.services.job_service import JobService
from services.report_delivery_service.services.query_refresh_service import QueryRefreshService
from services.report_delivery_service.services.template_service import TemplateService
from services.report_delivery_service.services.variable_resolver import VariableResolver

class InMemoryJobsRepository:
    """JobsRepository backed by dicts. Stores deep copies like a real store."""

    def __init__(self):
        self.jobs: dict[str, ScheduledReportJob] = {}
        self.executions: list[ExecutionRecord] = []
        self.saves: list[ScheduledReportJob] = []

    async def create_job(self, job: ScheduledReportJob) -> ScheduledReportJob:
        stored = job.model_copy(deep=True)
        stored.created_at = stored.updated_at = datetime.now(timezone.utc)
        self.jobs[job.id] = stored
        return stored.model_copy(deep=True)

    async def get_job(self, job_id: str) -> ScheduledReportJob | None:
        job = self.jobs.get(job_id)
        return job.model_copy(deep=True) if job else None

    async def save_job(self, job: ScheduledReportJob) -> ScheduledReportJob:
        if job.id not in self.jobs:
            raise JobNotFoundError(f"Scheduled report {job.id} not found")
        stored = job.model_copy(deep=True)
        self.jobs[job.id] = stored
        self.saves.append(stored.model_copy(deep=True))
        return stored.model_copy(deep=True)

    async def list_jobs(self, limit=50, offset=0, is_active=None, state=None):
        jobs = list(self.jobs.values())
        if is_active is not None:
            jobs = [job for job in jobs if job.is_active == is_active]
        if state is not None:
            jobs = [job for job in jobs if job.state == state]
        return [job.model_copy(deep=True) for job in jobs[offset : offset + limit]]

    async def list_stalled_jobs(self, started_before: datetime):
        return [
            job.model_copy(deep=True)
            for job in self.jobs.values()
            if job.state == JobState.EXECUTING
            and job.executing_since is not None
            and job.executing_since < started_before
        ]

    async def add_execution(self, record: ExecutionRecord) -> None:
        self.executions.append(record)

    async def list_executions(self, job_id: str, limit: int = 50):
        records = [record for record in self.executions if record.job_id == job_id]
        return sorted(records, key=lambda r: r.started_at, reverse=True)[:limit]


class InMemoryContentRepository:
    """ContentRepository backed by dicts."""

    def __init__(self):
        self.presentations: dict[str, Presentation] = {}
        self.templates: dict[str, ReportTemplate] = {}
        self.slides: dict[str, Slide] = {}
        self.saved: list[list[str]] = []

    def add_presentation(self, presentation: Presentation, slides: list[Slide]) -> None:
        self.presentations[presentation.id] = presentation
        for slide in slides:
            self.slides[slide.id] = slide

    def add_template(self, template: ReportTemplate, slides: list[Slide]) -> None:
        self.templates[template.id] = template
        for slide in slides:
            self.slides[slide.id] = slide

    async def get_presentation(self, presentation_id: str):
        return self.presentations.get(presentation_id)

    async def create_presentation(self, presentation: Presentation, slides: list[Slide]) -> None:
        self.add_presentation(presentation.model_copy(deep=True), [s.model_copy(deep=True) for s in slides])

    async def get_template(self, template_id: str):
        return self.templates.get(template_id)

    async def get_slides(self, slide_ids: list[str]) -> list[Slide]:
        return [self.slides[s].model_copy(deep=True) for s in slide_ids if s in self.slides]

    async def save_slides(self, slides: list[Slide]) -> None:
        self.saved.append([slide.id for slide in slides])
        for slide in slides:
            self.slides[slide.id] = slide.model_copy(deep=True)


class FakeWarehouse:
    """Warehouse returning canned results per query; unknown queries fail."""

    def __init__(self, results: dict[str, QueryResult] | None = None):
        self.results = results or {}
        self.queries: list[str] = []

    async def execute(self, query: str) -> QueryResult:
        self.queries.append(query)
        if query not in self.results:
            raise WarehouseError(f"relation does not exist: {query}")
        return self.results[query]


def scalar_result(column: str, value: Any) -> QueryResult:
    return QueryResult(columns=[{"name": column, "type": "int"}], rows=[[value]])


@pytest.fixture
def jobs_repository() -> InMemoryJobsRepository:
    return InMemoryJobsRepository()


@pytest.fixture
def content_repository() -> InMemoryContentRepository:
    repo = InMemoryContentRepository()
    repo.add_presentation(
        Presentation(id="pres-1", title="Weekly Sales", slide_ids=["slide-a"]),
        [
            Slide.model_validate(
                {
                    "id": "slide-a",
                    "title": "Overview",
                    "elements": [
                        {"id": "t1", "type": "text", "content": {"text": "Sales are up"}},
                        {
                            "id": "m0",
                            "type": "metric",
                            "content": {"label": "Revenue", "value": 1200, "format": "currency"},
                        },
                    ],
                }
            )
        ],
    )
    repo.add_template(
        ReportTemplate(id="tmpl-1", name="Signup Digest", slide_ids=["slide-b"]),
        [
            Slide.model_validate(
                {
                    "id": "slide-b",
                    "title": "Signups",
                    "elements": [
                        {
                            "id": "m1",
                            "type": "metric",
                            "data_source": {"query": "SELECT count(*) AS count FROM signups"},
                            "content": {"label": "New signups"},
                        },
                    ],
                }
            )
        ],
    )
    return repo


@pytest.fixture
def make_warehouse():
    """Build a FakeWarehouse from {query: (column, value) | QueryResult}."""

    def _make(scalars: dict[str, Any] | None = None) -> FakeWarehouse:
        results = {
            query: pair if isinstance(pair, QueryResult) else scalar_result(*pair)
            for query, pair in (scalars or {}).items()
        }
        return FakeWarehouse(results)

    return _make


@pytest.fixture
def warehouse() -> FakeWarehouse:
    return FakeWarehouse({"SELECT count(*) AS count FROM signups": scalar_result("count", 42)})


@pytest.fixture
def email_service() -> AsyncMock:
    mock = AsyncMock()
    mock.send.return_value = "<msg-1@example.com>"
    return mock


@pytest.fixture
def job_service(jobs_repository, content_repository, warehouse, email_service) -> JobService:
    resolver = ContentResolver(content_repository, QueryRefreshService(warehouse))
    executor = JobExecutor(
        jobs_repository=jobs_repository,
        content_resolver=resolver,
        variable_resolver=VariableResolver(warehouse, dashboard_url="https://dash.example.com"),
        template_service=TemplateService(),
        email_service=email_service,
    )
    return JobService(jobs_repository, resolver, executor)


@pytest.fixture
def report_job_config() -> dict[str, Any]:
    """One-time job bound to a fixed report."""
    return {
        "name": "Weekly sales",
        "content": {"kind": "report", "presentation_id": "pres-1"},
        "recipients": {"to": ["a@example.com"]},
        "email_template": {"template_id": "professional", "subject": "Sales for {current_date}"},
    }


@pytest.fixture
def template_job_config() -> dict[str, Any]:
    """Recurring job bound to a template, Mondays at 09:00 UTC."""
    return {
        "name": "Signup digest",
        "content": {"kind": "template", "template_id": "tmpl-1"},
        "schedule": {"kind": "recurring", "cron_expression": "0 9 * * 1", "timezone": "UTC"},
        "recipients": {"to": ["team@example.com"], "cc": ["lead@example.com"]},
        "email_template": {
            "template_id": "dashboard",
            "subject": "Signups: {metric_1_value}",
            "custom_content": "Hello {recipient_name},\nthis week: {metric_1_value} signups.",
        },
    }


@pytest.fixture
def make_job():
    """Build a ScheduledReportJob directly, bypassing the service."""

    def _make(**overrides: Any) -> ScheduledReportJob:
        data: dict[str, Any] = {
            "id": "job-1",
            "name": "Weekly sales",
            "content": {"kind": "report", "presentation_id": "pres-1"},
            "recipients": {"to": ["a@example.com"]},
            "email_template": {"subject": "Report"},
        }
        data.update(overrides)
        return ScheduledReportJob.model_validate(data)

    return _make
