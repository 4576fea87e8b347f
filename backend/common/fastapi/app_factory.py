"""
FastAPI application factory shared by backend services.

create_fastapi_app wires logging, CORS, request timing, the /health and /
endpoints and a last-resort exception handler, so a service module only
has to provide its router and, optionally, a lifespan for background work.

Background workers started by the lifespan can publish themselves on
app.state.background_tasks ({name: worker}); /health then reports whether
each worker is running and degrades to "degraded" when one has stopped.

Usage:
    ```python
    from common.fastapi import create_fastapi_app

    app = create_fastapi_app(
        service_name="report-delivery-service",
        description="Scheduled report delivery API",
        api_router=api_router,
        lifespan=lifespan,
    )
    ```
"""

from collections.abc import Callable
from datetime import datetime, timezone
import time
from typing import Any

from fastapi import APIRouter, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from loguru import logger

from common.config import BaseServiceSettings, get_settings
from common.logging import setup_logging

DEV_ORIGINS = [
    "http://localhost:3000",
    "http://localhost:5173",
    "http://127.0.0.1:3000",
    "http://127.0.0.1:5173",
]
QUIET_PATHS = frozenset({"/health"})


def _allowed_origins(settings: BaseServiceSettings) -> list[str]:
    if settings.CORS_ORIGINS:
        return list(settings.CORS_ORIGINS)
    if settings.ENVIRONMENT == "DEV":
        return DEV_ORIGINS
    return []


def _background_status(app: FastAPI) -> dict[str, bool]:
    workers = getattr(app.state, "background_tasks", {}) or {}
    return {name: bool(getattr(worker, "is_running", False)) for name, worker in workers.items()}


def create_fastapi_app(
    service_name: str,
    description: str,
    api_router: APIRouter | None = None,
    root_path: str = "",
    lifespan: Callable[[FastAPI], Any] | None = None,
) -> FastAPI:
    """
    Create a FastAPI application with the shared middleware and endpoints.

    Args:
        service_name: Name of the service (e.g. "report-delivery-service").
            Selects the settings class and names the log files.
        description: Description shown in the OpenAPI docs.
        api_router: Router mounted under settings.API_V1_STR.
        root_path: Path prefix of the reverse proxy. Ignored in DEV, where
            the service is reached directly.
        lifespan: Async context manager factory run around the app, used to
            start and stop background workers.

    Returns:
        The configured FastAPI application.
    """
    setup_logging(service_name)
    settings = get_settings(service_name)

    app = FastAPI(
        title=settings.SERVICE_NAME,
        version=settings.SERVICE_VERSION,
        description=description,
        openapi_url="/openapi.json",
        docs_url="/docs",
        redoc_url="/redoc",
        root_path=root_path if settings.ENVIRONMENT != "DEV" else "",
        lifespan=lifespan,
    )
    app.state.background_tasks = {}

    origins = _allowed_origins(settings)
    if origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )
    else:
        logger.warning("CORS_ORIGINS is empty, cross-origin requests will be rejected")

    @app.middleware("http")
    async def add_process_time_header(
        request: Request, call_next: Callable[[Request], Any]
    ) -> Response:
        started = time.perf_counter()
        response = await call_next(request)
        elapsed = time.perf_counter() - started
        response.headers["X-Process-Time"] = f"{elapsed:.4f}"
        if request.url.path not in QUIET_PATHS:
            logger.info(
                f"{request.method} {request.url.path} - {response.status_code} - {elapsed:.3f}s"
            )
        return response

    if api_router:
        app.include_router(api_router, prefix=settings.API_V1_STR)

    @app.get("/health")
    async def health_check() -> dict[str, Any]:
        """Service health, including the state of background workers."""
        workers = _background_status(app)
        return {
            "service": settings.SERVICE_NAME,
            "version": settings.SERVICE_VERSION,
            "status": "healthy" if all(workers.values()) else "degraded",
            "background_tasks": workers,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    @app.get("/")
    async def root() -> dict[str, Any]:
        return {
            "service": settings.SERVICE_NAME,
            "version": settings.SERVICE_VERSION,
            "docs": "/docs",
            "health": "/health",
        }

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.opt(exception=exc).error(
            f"Unhandled exception in {request.method} {request.url.path}: {exc}"
        )
        return JSONResponse(
            status_code=500,
            content={"detail": "An error occurred while processing your request. Please try again later."},
        )

    return app
