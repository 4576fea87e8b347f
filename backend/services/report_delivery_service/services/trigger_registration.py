"""
Registration of recurring report jobs with the external scheduler.

Each recurring job maps to one scheduler event named "report_<job id>" that
POSTs to the job's trigger endpoint on its cron expression. The event is
active exactly when the job is active. Registration is best effort: a
scheduler outage is logged and never fails the API call that saved the job.
"""

import asyncio

from loguru import logger
import requests

from common.config.settings import ReportDeliveryServiceSettings
from common.scheduler_client import create_scheduler_client
from services.report_delivery_service.models.jobs import ScheduledReportJob

APP_NAME = "report_delivery"


def event_name(job_id: str) -> str:
    return f"report_{job_id}"


def trigger_url(settings: ReportDeliveryServiceSettings, job_id: str) -> str:
    base = settings.REPORT_DELIVERY_SERVICE_URL.rstrip("/")
    return f"{base}{settings.API_V1_STR}/scheduled-reports/{job_id}/trigger"


def _register(job: ScheduledReportJob, auth_token: str, settings: ReportDeliveryServiceSettings) -> str:
    scheduler = create_scheduler_client(settings.SCHEDULER_API_URL)
    operation, _ = scheduler.upsert_schedule(
        auth_token=auth_token,
        job_name=event_name(job.id),
        app_name=APP_NAME,
        url=trigger_url(settings, job.id),
        method="POST",
        cron_exp=job.schedule.cron_expression,
        status="active" if job.is_active else "inactive",
        headers={"Content-Type": "application/json"},
    )
    return operation


async def register_job_trigger(
    job: ScheduledReportJob,
    authorization: str | None,
    settings: ReportDeliveryServiceSettings,
) -> bool:
    """
    Upsert the scheduler event of a recurring job.

    Args:
        job: Job as saved.
        authorization: Raw Authorization header of the request, if any.
        settings: Service settings carrying the scheduler and callback URLs.

    Returns:
        bool: True when the scheduler accepted the event.
    """
    if not job.is_recurring or not authorization:
        return False

    auth_token = authorization.removeprefix("Bearer ").strip()
    try:
        operation = await asyncio.to_thread(_register, job, auth_token, settings)
    except (requests.exceptions.RequestException, ValueError) as e:
        logger.warning(f"Could not register scheduler event for report {job.id}: {e}")
        return False

    logger.info(f"Scheduler event {event_name(job.id)} {operation}")
    return True
