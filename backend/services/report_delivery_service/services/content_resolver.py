"""
Content resolution for scheduled report jobs.

Decides where the slides of an execution come from:

    - report:   the bound presentation and its slides, exactly as authored.
                No refresh is performed.
    - template: the bound template's slides, refreshed through the query
                refresh engine before they are returned. A template is
                never rendered with stale data for a send.

The template itself is left untouched by a send. The refreshed slides are
archived as a new "scheduled" presentation that records the template and
job it came from. Previews resolve without archiving.
"""

import uuid

from loguru import logger

from services.report_delivery_service.database.content_repository import ContentRepository
from services.report_delivery_service.errors import ContentNotFoundError
from services.report_delivery_service.models.content import (
    Presentation,
    RefreshReport,
    ReportTemplate,
    ResolvedContent,
    Slide,
)
from services.report_delivery_service.models.jobs import ContentKind, ScheduledReportJob
from services.report_delivery_service.services.query_refresh_service import (
    QueryRefreshService,
)


class ContentResolver:
    """Loads, and for templates refreshes, the slides bound to a job."""

    def __init__(self, content_repository: ContentRepository, refresh_service: QueryRefreshService):
        self.content_repository = content_repository
        self.refresh_service = refresh_service

    async def resolve(self, job: ScheduledReportJob, archive: bool = True) -> ResolvedContent:
        """
        Resolve the renderable content of a job.

        Args:
            job: Job whose content binding is resolved.
            archive: Store refreshed template slides as a snapshot
                presentation. Previews pass False so they leave no trace in
                the store.

        Raises:
            ContentNotFoundError: If the bound presentation or template no
                longer exists.
        """
        binding = job.content
        if binding.kind == ContentKind.REPORT:
            presentation = await self.content_repository.get_presentation(binding.presentation_id)
            if presentation is None:
                msg = f"Presentation {binding.presentation_id} not found"
                raise ContentNotFoundError(msg)
            slides = await self.content_repository.get_slides(presentation.slide_ids)
            logger.debug(f"Resolved report {presentation.id} with {len(slides)} slides")
            return ResolvedContent(
                kind="report",
                content_id=presentation.id,
                title=presentation.title,
                slides=slides,
            )

        template = await self.content_repository.get_template(binding.template_id)
        if template is None:
            msg = f"Template {binding.template_id} not found"
            raise ContentNotFoundError(msg)
        slides = await self.content_repository.get_slides(template.slide_ids)
        report = await self.refresh_service.refresh_slides(slides)
        snapshot_id = None
        if archive:
            snapshot_id = await self._archive(template, job, slides)
        logger.debug(
            f"Resolved template {template.id} with {len(slides)} slides, "
            f"{report.refreshed_count} elements refreshed"
        )
        return ResolvedContent(
            kind="template",
            content_id=template.id,
            title=template.name,
            slides=slides,
            refresh=report,
            snapshot_id=snapshot_id,
        )

    async def _archive(self, template: ReportTemplate, job: ScheduledReportJob, slides: list[Slide]) -> str:
        copies = [slide.model_copy(deep=True, update={"id": str(uuid.uuid4())}) for slide in slides]
        snapshot = Presentation(
            id=str(uuid.uuid4()),
            title=f"{template.name} - {job.name}",
            description=template.description,
            slide_ids=[slide.id for slide in copies],
            instance_type="scheduled",
            template_id=template.id,
            scheduled_report_id=job.id,
        )
        await self.content_repository.create_presentation(snapshot, copies)
        logger.info(f"Archived template {template.id} send for job {job.id} as presentation {snapshot.id}")
        return snapshot.id

    async def refresh_presentation(self, presentation_id: str) -> RefreshReport:
        """User-invoked refresh of a stored presentation's data elements."""
        presentation = await self.content_repository.get_presentation(presentation_id)
        if presentation is None:
            msg = f"Presentation {presentation_id} not found"
            raise ContentNotFoundError(msg)
        return await self._refresh_and_save(presentation.slide_ids)

    async def refresh_template(self, template_id: str) -> RefreshReport:
        """User-invoked refresh of a stored template's data elements."""
        template = await self.content_repository.get_template(template_id)
        if template is None:
            msg = f"Template {template_id} not found"
            raise ContentNotFoundError(msg)
        return await self._refresh_and_save(template.slide_ids)

    async def _refresh_and_save(self, slide_ids: list[str]) -> RefreshReport:
        slides = await self.content_repository.get_slides(slide_ids)
        report = await self.refresh_service.refresh_slides(slides)
        if report.refreshed_count:
            await self.content_repository.save_slides(slides)
        return report
