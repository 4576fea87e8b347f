"""
Cron Builder Models.

Request and response of the helper endpoint that turns a frequency picker
(daily, weekly, monthly, quarterly) into a cron expression.
"""

from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from services.report_delivery_service.utils import FREQUENCIES


class CronBuildRequest(BaseModel):
    frequency: str
    time: str = Field(default="09:00", description="Time of day as HH:MM")
    day: str | None = Field(
        default=None,
        description="Weekday name for weekly, day of month (1-31 or 'last') for monthly",
    )
    timezone: str = "UTC"

    @field_validator("frequency")
    @classmethod
    def check_frequency(cls, v: str) -> str:
        value = v.strip().lower()
        if value not in FREQUENCIES:
            raise ValueError(f"frequency must be one of: {', '.join(FREQUENCIES)}")
        return value


class CronBuildResponse(BaseModel):
    cron_expression: str
    description: str
    timezone: str
    next_execution: datetime
