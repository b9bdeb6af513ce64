"""Prometheus metrics helpers."""

from __future__ import annotations

import time
from typing import Callable

from fastapi import APIRouter, Response
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    Counter,
    Histogram,
    Summary,
    generate_latest,
)

REQUEST_COUNTER = Counter(
    "recitekit_api_requests_total",
    "Total API requests",
    labelnames=("path", "method", "status"),
)

REQUEST_LATENCY = Histogram(
    "recitekit_api_request_latency_seconds",
    "API request latency",
    labelnames=("path", "method"),
)

ASSET_SYNC_COUNTER = Counter(
    "asset_sync_total",
    "Completed or aborted model asset syncs",
    labelnames=("status",),
)

ASSET_SYNC_DURATION = Summary(
    "asset_sync_seconds",
    "Time spent mirroring a model repository",
)

ASSET_FILES_DOWNLOADED = Counter(
    "asset_files_downloaded_total",
    "Files written to the local model mirror",
)

ENGINE_INVOCATIONS = Counter(
    "engine_invocations_total",
    "Transcription engine invocations by the live scheduler",
    labelnames=("status",),
)

ENGINE_LATENCY = Histogram(
    "engine_invocation_seconds",
    "Wall time of one transcription pass over the session buffer",
)

router = APIRouter()


@router.get("/metrics")
async def metrics_endpoint() -> Response:
    data = generate_latest()
    return Response(content=data, media_type=CONTENT_TYPE_LATEST)


def instrument_app(app):
    @app.middleware("http")
    async def prometheus_middleware(request, call_next: Callable):  # type: ignore
        start = time.perf_counter()
        response = await call_next(request)
        duration = time.perf_counter() - start
        route = request.scope.get("route")
        path = getattr(route, "path", request.url.path)
        method = request.method
        REQUEST_COUNTER.labels(path=path, method=method, status=response.status_code).inc()
        REQUEST_LATENCY.labels(path=path, method=method).observe(duration)
        return response

    return app
