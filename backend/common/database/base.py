"""
Base declarative class for all ORM models.

Every ORM model inherits created_at/updated_at audit columns and a table
name derived from its class name, unless the model sets __tablename__
explicitly.

Usage:
    ```python
    from common.database import Base
    from sqlalchemy.orm import Mapped, mapped_column
    from sqlalchemy import String

    class Slides(Base):
        id: Mapped[str] = mapped_column(String(64), primary_key=True)
        title: Mapped[str] = mapped_column(String(255))
    ```

Note:
    - Timestamps use PostgreSQL TIMESTAMP WITH TIME ZONE
    - updated_at is refreshed on every ORM update
"""

from __future__ import annotations

from datetime import datetime
import re

from sqlalchemy import TIMESTAMP, func, text
from sqlalchemy.orm import DeclarativeBase, Mapped, declared_attr, mapped_column

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


class Base(DeclarativeBase):
    """
    Base declarative class for all SQLAlchemy ORM models.

    Attributes:
        created_at (Mapped[datetime]): Set by the database server using NOW().
        updated_at (Mapped[datetime]): Set by the database server using NOW()
            and refreshed by SQLAlchemy whenever the row is updated.

    Table Naming:
        ReportExecutions -> "report_executions", Slides -> "slides".
    """

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=text("NOW()")
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=text("NOW()"), onupdate=func.now()
    )

    @declared_attr.directive
    def __tablename__(cls) -> str:  # type: ignore[override]
        """Generate a snake_case table name from the class name."""
        return _CAMEL_BOUNDARY.sub("_", cls.__name__).lower()
