from __future__ import annotations

import logging

from fastapi import FastAPI

from interview_pipeline.api.router import api_router
from interview_pipeline.core.config import settings
from interview_pipeline.core.errors import PipelineError, pipeline_error_handler
from interview_pipeline.jobs.scheduler import start_scheduler
from interview_pipeline.middleware.logging import RequestLoggingMiddleware
from interview_pipeline.middleware.request_context import RequestContextMiddleware

logging.basicConfig(level=getattr(logging, settings.log_level.upper(), logging.INFO))
logging.getLogger("apscheduler").setLevel(logging.WARNING)
logging.getLogger("apscheduler.scheduler").setLevel(logging.WARNING)
logger = logging.getLogger("ipl")


def create_app() -> FastAPI:
    app = FastAPI(
        title=settings.app_name,
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )

    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestContextMiddleware)
    app.add_exception_handler(PipelineError, pipeline_error_handler)

    @app.get("/health")
    async def health_check():
        return {"status": "ok", "environment": settings.environment}

    app.include_router(api_router)

    @app.on_event("startup")
    async def _startup_jobs() -> None:
        if settings.enable_jobs:
            app.state.scheduler = start_scheduler()
            logger.info("jobs_started")

    @app.on_event("shutdown")
    async def _shutdown_jobs() -> None:
        scheduler = getattr(app.state, "scheduler", None)
        if scheduler:
            scheduler.shutdown()

    return app


app = create_app()
