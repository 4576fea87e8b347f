"""
Content Repository for Report Delivery Service

Loads presentations, report templates and their slides, persists slides
after a refresh has written new query results into their elements, and
stores the snapshot presentations generated by template sends.

Example:
    ```python
    repo = ContentRepository()
    template = await repo.get_template("weekly-kpis")
    slides = await repo.get_slides(template.slide_ids)
    ```
"""

from loguru import logger
from sqlalchemy import select

from common.database import get_async_db_session
from common.models import Presentations, ReportTemplates, Slides
from services.report_delivery_service.models.content import (
    Presentation,
    ReportTemplate,
    Slide,
)

from .base import SERVICE_NAME


def _slide_row(slide: Slide) -> Slides:
    return Slides(
        id=slide.id,
        title=slide.title,
        elements=[element.model_dump(mode="json") for element in slide.elements],
        background_color=slide.background_color,
        background_image=slide.background_image,
    )


class ContentRepository:
    """Repository for presentation, template and slide records."""

    async def get_presentation(self, presentation_id: str) -> Presentation | None:
        async with get_async_db_session(SERVICE_NAME) as session:
            row = await session.get(Presentations, presentation_id)
            if row is None:
                return None
            return Presentation(
                id=row.id,
                title=row.title,
                description=row.description or "",
                slide_ids=list(row.slide_ids or []),
                instance_type=row.instance_type or "authored",
                template_id=row.template_id,
                scheduled_report_id=row.scheduled_report_id,
            )

    async def create_presentation(self, presentation: Presentation, slides: list[Slide]) -> None:
        """
        Insert a presentation together with its slides in one transaction.

        The slides must be new records; their ids are expected to match
        presentation.slide_ids.
        """
        async with get_async_db_session(SERVICE_NAME) as session:
            session.add_all([_slide_row(slide) for slide in slides])
            session.add(
                Presentations(
                    id=presentation.id,
                    title=presentation.title,
                    description=presentation.description,
                    slide_ids=list(presentation.slide_ids),
                    instance_type=presentation.instance_type,
                    template_id=presentation.template_id,
                    scheduled_report_id=presentation.scheduled_report_id,
                )
            )
        logger.debug(f"Stored presentation {presentation.id} with {len(slides)} slides")

    async def get_template(self, template_id: str) -> ReportTemplate | None:
        async with get_async_db_session(SERVICE_NAME) as session:
            row = await session.get(ReportTemplates, template_id)
            if row is None:
                return None
            return ReportTemplate(
                id=row.id,
                name=row.name,
                description=row.description or "",
                slide_ids=list(row.slide_ids or []),
            )

    async def get_slides(self, slide_ids: list[str]) -> list[Slide]:
        """
        Load slides in the order given by slide_ids.

        Ids that no longer resolve are skipped with a warning.
        """
        if not slide_ids:
            return []

        async with get_async_db_session(SERVICE_NAME) as session:
            result = await session.execute(select(Slides).where(Slides.id.in_(slide_ids)))
            rows = {row.id: row for row in result.scalars().all()}

        slides = []
        for slide_id in slide_ids:
            row = rows.get(slide_id)
            if row is None:
                logger.warning(f"Slide {slide_id} referenced but not found, skipping")
                continue
            slides.append(
                Slide.model_validate(
                    {
                        "id": row.id,
                        "title": row.title or "",
                        "elements": row.elements or [],
                        "background_color": row.background_color or "#ffffff",
                        "background_image": row.background_image,
                    }
                )
            )
        return slides

    async def save_slides(self, slides: list[Slide]) -> None:
        """Write the element payloads of the given slides back to the store."""
        if not slides:
            return

        async with get_async_db_session(SERVICE_NAME) as session:
            for slide in slides:
                row = await session.get(Slides, slide.id)
                if row is None:
                    logger.warning(f"Slide {slide.id} disappeared before it could be saved")
                    continue
                row.elements = [element.model_dump(mode="json") for element in slide.elements]
        logger.debug(f"Saved {len(slides)} refreshed slides")
