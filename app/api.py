"""HTTP route definitions for the service."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator

from fastapi import APIRouter, Depends, File, Request, UploadFile, status

from app.schemas import (
    CompanyWasteMetricsResponse,
    CountChartResponse,
    CsvImportResponse,
    DashboardKpiResponse,
    ErrorResponse,
    HazardousBreakdownResponse,
    MonitoringResponse,
    RecoveryDistributionResponse,
    RecoveryTrendsResponse,
    WasteTrendsResponse,
)
from services.charts import ChartService
from services.errors import DataStoreError, NoDataError
from services.ingest import WasteStreamImporter
from services.monitoring import ErrorMonitor, PerformanceMonitor

logger = logging.getLogger(__name__)

router = APIRouter()

_ERROR_RESPONSES = {
    status.HTTP_404_NOT_FOUND: {"model": ErrorResponse},
    status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": ErrorResponse},
}


class ApiError(Exception):
    """Rendered as ``{"success": false, "error": message}`` by the app."""

    def __init__(self, status_code: int, message: str) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.message = message


def get_chart_service(request: Request) -> ChartService:
    return request.app.state.chart_service


def get_importer(request: Request) -> WasteStreamImporter:
    return request.app.state.importer


def get_error_monitor(request: Request) -> ErrorMonitor:
    return request.app.state.error_monitor


def get_performance_monitor(request: Request) -> PerformanceMonitor:
    return request.app.state.performance_monitor


@contextmanager
def handle_chart_errors(route: str, description: str, monitor: ErrorMonitor) -> Iterator[None]:
    """Translate service failures into the uniform error envelope."""
    try:
        yield
    except NoDataError as exc:
        raise ApiError(status.HTTP_404_NOT_FOUND, str(exc)) from exc
    except DataStoreError as exc:
        logger.error("Data store query failed: %s", exc, extra={"route": route})
        monitor.capture(exc, route=route)
        raise ApiError(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            f"Failed to fetch {description} from database",
        ) from exc
    except Exception as exc:
        logger.exception("Unexpected error while building chart", extra={"route": route})
        monitor.capture(exc, route=route)
        raise ApiError(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            f"Failed to calculate {description}",
        ) from exc


@router.get(
    "/api/charts/waste-recovery-distribution",
    response_model=RecoveryDistributionResponse,
    responses=_ERROR_RESPONSES,
    summary="Histogram of company recovery rates for their latest period.",
)
def waste_recovery_distribution(
    service: ChartService = Depends(get_chart_service),
    monitor: ErrorMonitor = Depends(get_error_monitor),
) -> RecoveryDistributionResponse:
    with handle_chart_errors("waste-recovery-distribution", "waste recovery distribution", monitor):
        distribution = service.recovery_distribution()
    return RecoveryDistributionResponse(data=distribution)


@router.get(
    "/api/charts/waste-recovery-trends",
    response_model=RecoveryTrendsResponse,
    responses=_ERROR_RESPONSES,
    summary="Recovery, recycling and disposal rates per reporting period.",
)
def waste_recovery_trends(
    service: ChartService = Depends(get_chart_service),
    monitor: ErrorMonitor = Depends(get_error_monitor),
) -> RecoveryTrendsResponse:
    with handle_chart_errors("waste-recovery-trends", "waste recovery trends", monitor):
        return service.recovery_trends()


@router.get(
    "/api/charts/waste-trends",
    response_model=WasteTrendsResponse,
    responses=_ERROR_RESPONSES,
    summary="Yearly generated and recovered totals.",
)
def waste_trends(
    service: ChartService = Depends(get_chart_service),
    monitor: ErrorMonitor = Depends(get_error_monitor),
) -> WasteTrendsResponse:
    with handle_chart_errors("waste-trends", "waste trends", monitor):
        return WasteTrendsResponse(data=service.waste_trends())


@router.get(
    "/api/charts/hazardous-breakdown",
    response_model=HazardousBreakdownResponse,
    responses=_ERROR_RESPONSES,
    summary="Share of hazardous and non-hazardous waste generated.",
)
def hazardous_breakdown(
    service: ChartService = Depends(get_chart_service),
    monitor: ErrorMonitor = Depends(get_error_monitor),
) -> HazardousBreakdownResponse:
    with handle_chart_errors("hazardous-breakdown", "hazardous breakdown", monitor):
        return HazardousBreakdownResponse(data=service.hazardous_breakdown())


@router.get(
    "/api/charts/sector-performance",
    response_model=CountChartResponse,
    responses=_ERROR_RESPONSES,
    summary="Number of companies per sector.",
)
def sector_performance(
    service: ChartService = Depends(get_chart_service),
    monitor: ErrorMonitor = Depends(get_error_monitor),
) -> CountChartResponse:
    with handle_chart_errors("sector-performance", "sector data", monitor):
        return CountChartResponse(data=service.sector_performance())


@router.get(
    "/api/charts/country-coverage",
    response_model=CountChartResponse,
    responses=_ERROR_RESPONSES,
    summary="Number of companies per country.",
)
def country_coverage(
    service: ChartService = Depends(get_chart_service),
    monitor: ErrorMonitor = Depends(get_error_monitor),
) -> CountChartResponse:
    with handle_chart_errors("country-coverage", "country data", monitor):
        return CountChartResponse(data=service.country_coverage())


@router.get(
    "/api/dashboard/kpi",
    response_model=DashboardKpiResponse,
    responses=_ERROR_RESPONSES,
    summary="Headline dashboard indicators.",
)
def dashboard_kpi(
    service: ChartService = Depends(get_chart_service),
    monitor: ErrorMonitor = Depends(get_error_monitor),
) -> DashboardKpiResponse:
    with handle_chart_errors("dashboard-kpi", "KPI data", monitor):
        return DashboardKpiResponse(data=service.dashboard_kpi())


@router.get(
    "/api/companies/{company_id}/waste-metrics",
    response_model=CompanyWasteMetricsResponse,
    responses=_ERROR_RESPONSES,
    summary="Per-period waste totals and rates for one company.",
)
def company_waste_metrics(
    company_id: str,
    service: ChartService = Depends(get_chart_service),
    monitor: ErrorMonitor = Depends(get_error_monitor),
) -> CompanyWasteMetricsResponse:
    with handle_chart_errors("company-waste-metrics", "company waste metrics", monitor):
        return CompanyWasteMetricsResponse(data=service.company_waste_metrics(company_id))


@router.post(
    "/api/upload/csv",
    response_model=CsvImportResponse,
    responses={status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse}, **_ERROR_RESPONSES},
    summary="Import waste-stream rows from a CSV file.",
)
def upload_csv(
    file: UploadFile = File(..., description="CSV file of waste-stream records."),
    importer: WasteStreamImporter = Depends(get_importer),
    monitor: ErrorMonitor = Depends(get_error_monitor),
) -> CsvImportResponse:
    contents = file.file.read()
    if isinstance(contents, str):
        contents = contents.encode("utf-8")
    try:
        result = importer.import_csv(contents, file.filename or "upload.csv")
    except ValueError as exc:
        raise ApiError(status.HTTP_400_BAD_REQUEST, str(exc)) from exc
    except DataStoreError as exc:
        logger.error("Could not store uploaded rows: %s", exc, extra={"source_file": file.filename})
        monitor.capture(exc, route="upload-csv")
        raise ApiError(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to store uploaded rows") from exc
    except Exception as exc:
        logger.exception("Unexpected error while importing CSV", extra={"source_file": file.filename})
        monitor.capture(exc, route="upload-csv")
        raise ApiError(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to process uploaded file") from exc
    finally:
        file.file.close()
    return CsvImportResponse(data=result)


@router.get(
    "/api/monitoring",
    response_model=MonitoringResponse,
    summary="Captured errors and request timings.",
)
def monitoring(
    errors: ErrorMonitor = Depends(get_error_monitor),
    performance: PerformanceMonitor = Depends(get_performance_monitor),
) -> MonitoringResponse:
    return MonitoringResponse(data={"errors": errors.stats(), "performance": performance.stats()})


@router.get(
    "/health",
    summary="Health check endpoint.",
    status_code=status.HTTP_200_OK,
)
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@router.get(
    "/",
    summary="Root endpoint mirrors health information.",
    status_code=status.HTTP_200_OK,
)
async def root() -> dict[str, str]:
    return {"status": "ok", "detail": "See /health for service status."}
