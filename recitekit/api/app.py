"""FastAPI application factory."""

from __future__ import annotations

from fastapi import FastAPI

from .. import __version__
from ..metrics import instrument_app, router as metrics_router
from ..schemas import HealthResponse
from ..settings import get_settings
from .routers import session as session_router


def create_app() -> FastAPI:
    settings = get_settings()
    app = FastAPI(title=settings.app_name, version=__version__)
    instrument_app(app)
    app.include_router(session_router.router)
    app.include_router(metrics_router)

    @app.get("/healthz", response_model=HealthResponse)
    async def healthz() -> HealthResponse:
        return HealthResponse(ok=True, version=__version__)

    return app
