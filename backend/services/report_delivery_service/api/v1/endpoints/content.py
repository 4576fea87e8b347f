"""
Content refresh endpoints.

User-invoked refresh of the data-bound elements of a stored presentation
or template. Uses the same refresh engine that runs before every template
send; failing elements keep their previous data and are listed in the
response.
"""

from fastapi import APIRouter, Depends, HTTPException

from common.exceptions import HTTP_404_NOT_FOUND, create_api_error, handle_database_error
from services.report_delivery_service.api.dependencies import get_job_service
from services.report_delivery_service.errors import ContentNotFoundError
from services.report_delivery_service.models.content import RefreshReport
from services.report_delivery_service.models.jobs import ContentKind
from services.report_delivery_service.services.job_service import JobService

router = APIRouter()


async def _refresh(service: JobService, kind: ContentKind, content_id: str) -> RefreshReport:
    operation = f"refreshing {kind.value} {content_id}"
    try:
        return await service.refresh_content(kind, content_id)
    except HTTPException:
        raise
    except ContentNotFoundError as e:
        raise create_api_error(operation, HTTP_404_NOT_FOUND, e, str(e))
    except Exception as e:
        raise handle_database_error(operation, e)


@router.post("/presentations/{presentation_id}/refresh", response_model=RefreshReport)
async def refresh_presentation(presentation_id: str, service: JobService = Depends(get_job_service)):
    return await _refresh(service, ContentKind.REPORT, presentation_id)


@router.post("/templates/{template_id}/refresh", response_model=RefreshReport)
async def refresh_template(template_id: str, service: JobService = Depends(get_job_service)):
    return await _refresh(service, ContentKind.TEMPLATE, template_id)
