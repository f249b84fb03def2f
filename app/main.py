from __future__ import annotations
import logging
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, Awaitable, Callable, Optional

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse

from app.api import ApiError, router
from app.schemas import ErrorResponse
from datastore.waste_store import WasteDataStore, build_default_store
from logging_config import configure_logging
from services.charts import ChartService, build_default_service
from services.ingest import WasteStreamImporter
from services.monitoring import ErrorMonitor, PerformanceMonitor
from settings import get_settings

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    logger.info("Waste metrics service starting")
    try:
        yield
    finally:
        app.state.error_monitor.clear()
        app.state.performance_monitor.clear()
        logger.info("Waste metrics service stopped")


async def api_error_handler(_request: Request, exc: ApiError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(error=exc.message).model_dump(),
    )


def create_app(
    store: Optional[WasteDataStore] = None,
    chart_service: Optional[ChartService] = None,
    error_monitor: Optional[ErrorMonitor] = None,
    performance_monitor: Optional[PerformanceMonitor] = None,
) -> FastAPI:
    configure_logging()
    settings = get_settings()
    if chart_service is None:
        chart_service = build_default_service(store or build_default_store())

    app = FastAPI(
        title="Waste Intelligence Metrics",
        description="Waste generation, recovery and compliance metrics served as chart payloads.",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.chart_service = chart_service
    app.state.importer = WasteStreamImporter(chart_service.store)
    app.state.error_monitor = error_monitor or ErrorMonitor(max_queue_size=settings.error_queue_size)
    app.state.performance_monitor = performance_monitor or PerformanceMonitor()

    @app.middleware("http")
    async def record_timing(
        request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        start_time = time.perf_counter()
        response = await call_next(request)
        # Route template, so path parameters share one entry.
        route_path = getattr(request.scope.get("route"), "path", None)
        if route_path and route_path.startswith("/api/"):
            duration_ms = (time.perf_counter() - start_time) * 1000
            app.state.performance_monitor.record(f"api_{route_path}", duration_ms)
            logger.debug(
                "Handled request",
                extra={
                    "route": route_path,
                    "status_code": response.status_code,
                    "duration_ms": round(duration_ms, 2),
                },
            )
        return response

    app.add_exception_handler(ApiError, api_error_handler)
    app.include_router(router)
    return app

app = create_app()
