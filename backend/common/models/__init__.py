"""
Common ORM models for backend services.

Models are organized into two categories:

1. Control Models: report delivery jobs and their execution log
   - ScheduledReports
   - ReportExecutions

2. Content Models: the slide content rendered into report emails
   - Presentations
   - ReportTemplates
   - Slides

All models inherit from common.database.Base, which provides created_at and
updated_at timestamps and automatic table naming.

Usage:
    ```python
    from common.models import ScheduledReports

    result = await session.execute(
        select(ScheduledReports).where(ScheduledReports.state == "executing")
    )
    ```
"""

from .content import Presentations, ReportTemplates, Slides
from .control import ReportExecutions, ScheduledReports

__all__ = [
    "Presentations",
    "ReportExecutions",
    "ReportTemplates",
    "ScheduledReports",
    "Slides",
]
