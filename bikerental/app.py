"""
FastAPI application entry point for the bike rental backend.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from bikerental.config import get_settings
from bikerental.routes import router
from bikerental.workflows import WorkflowError

logger = logging.getLogger(__name__)


class HealthzAccessFilter(logging.Filter):
    """Drop uvicorn access-log lines for health probes."""

    def filter(self, record: logging.LogRecord) -> bool:
        return "/healthz" not in record.getMessage()


def configure_logging() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logging.getLogger("uvicorn.access").addFilter(HealthzAccessFilter())


async def workflow_error_handler(request: Request, exc: WorkflowError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.detail)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


def create_app() -> FastAPI:
    configure_logging()
    settings = get_settings()
    app = FastAPI(title="Bike Rental Backend", version="0.1.0")
    app.add_exception_handler(WorkflowError, workflow_error_handler)

    @app.get("/healthz")
    def healthz():
        return {"ok": True}

    app.include_router(router, prefix=settings.api_prefix)
    return app


app = create_app()
