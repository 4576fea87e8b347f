"""
Content models for presentations, report templates and slides.

A presentation (fixed report) and a report template both reference an
ordered list of slide ids. Slides hold their elements as a JSONB array;
refreshed query results are written back into that array.

Models:
    Presentations: Fixed reports, rendered exactly as authored.
    ReportTemplates: Reusable reports whose data elements are refreshed
        before every send.
    Slides: Ordered element lists with background settings.
"""

from __future__ import annotations

from sqlalchemy import String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from common.database import Base


class Presentations(Base):
    """
    Model representing a fixed report presentation.

    Attributes:
        id (str): Presentation identifier. Primary key.
        title (str): Presentation title.
        description (str): Free-form description.
        slide_ids (list[str]): Ordered slide references.
        instance_type (str): "authored", or "scheduled" for a snapshot
            generated by a template send.
        template_id (str | None): Source template of a scheduled snapshot.
        scheduled_report_id (str | None): Job that generated the snapshot.

    Table:
        presentations
    """

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    title: Mapped[str] = mapped_column(String(255))
    description: Mapped[str] = mapped_column(Text, default="")
    slide_ids: Mapped[list] = mapped_column(JSONB, default=list)
    instance_type: Mapped[str] = mapped_column(String(20), default="authored")
    template_id: Mapped[str | None] = mapped_column(String(64), index=True)
    scheduled_report_id: Mapped[str | None] = mapped_column(String(64), index=True)


class ReportTemplates(Base):
    """
    Model representing a reusable report template.

    Attributes:
        id (str): Template identifier. Primary key.
        name (str): Template name.
        description (str): Free-form description.
        slide_ids (list[str]): Ordered slide references.

    Table:
        report_templates
    """

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(255))
    description: Mapped[str] = mapped_column(Text, default="")
    slide_ids: Mapped[list] = mapped_column(JSONB, default=list)


class Slides(Base):
    """
    Model representing a slide.

    Attributes:
        id (str): Slide identifier. Primary key.
        title (str): Slide title.
        elements (list[dict]): Ordered element documents. Each element has
            "id", "type" ("text", "image", "metric" or "query"), "position",
            "style" and type-specific "content", "data_source" and "data".
        background_color (str): CSS color.
        background_image (str | None): Image URL.

    Table:
        slides
    """

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    title: Mapped[str] = mapped_column(String(255), default="")
    elements: Mapped[list] = mapped_column(JSONB, default=list)
    background_color: Mapped[str] = mapped_column(String(32), default="#ffffff")
    background_image: Mapped[str | None] = mapped_column(Text)
