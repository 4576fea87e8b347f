from fastapi import APIRouter

from services.report_delivery_service.api.v1.endpoints import content, scheduled_reports, schedules

api_router = APIRouter()

# Include all endpoint routers
api_router.include_router(scheduled_reports.router, prefix="/scheduled-reports", tags=["Scheduled Reports"])
api_router.include_router(schedules.router, prefix="/schedules", tags=["Schedules"])
api_router.include_router(content.router, tags=["Content"])
