"""
Schedule helper endpoints.

Turns the frequency picker of the report form into a cron expression with
a human-readable description and the next run in the chosen timezone.
"""

from datetime import datetime, timezone

from fastapi import APIRouter, HTTPException

from common.exceptions import handle_database_error, handle_validation_error
from services.report_delivery_service.api.v1.models import CronBuildRequest, CronBuildResponse
from services.report_delivery_service.utils import (
    build_cron_expression,
    describe_cron,
    next_run_time,
    validate_timezone,
)

router = APIRouter()


@router.post("/cron", response_model=CronBuildResponse)
async def build_cron(request: CronBuildRequest):
    """
    Build a cron expression.

    Example:
        POST /api/v1/schedules/cron
        Body:
            {"frequency": "weekly", "time": "09:00", "day": "monday"}

        Response:
            {
                "cron_expression": "0 9 * * 1",
                "description": "Weekly on Monday at 9:00 AM",
                "timezone": "UTC",
                "next_execution": "..."
            }
    """
    try:
        if not validate_timezone(request.timezone):
            raise ValueError(f"unknown timezone: {request.timezone}")
        expression = build_cron_expression(request.frequency, request.time, request.day)
        return CronBuildResponse(
            cron_expression=expression,
            description=describe_cron(expression),
            timezone=request.timezone,
            next_execution=next_run_time(expression, request.timezone, datetime.now(timezone.utc)),
        )
    except HTTPException:
        raise
    except ValueError as e:
        raise handle_validation_error("building cron expression", e)
    except Exception as e:
        raise handle_database_error("building cron expression", e)
