"""Pydantic schemas for the HTTP API layer."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base for payloads whose JSON keys are camelCase."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class DataQuality(str, Enum):
    """Coverage grade of a reporting period."""

    high = "High"
    medium = "Medium"
    low = "Low"


class ErrorResponse(BaseModel):
    """Uniform failure envelope."""

    success: bool = False
    error: str


class PeriodTrendPoint(CamelModel):
    """Totals and rates for one reporting period."""

    period: int
    month: str
    total_generated: int = Field(..., ge=0)
    total_recovered: int = Field(..., ge=0)
    total_disposed: int = Field(..., ge=0)
    total_recycled: int = Field(..., ge=0)
    hazardous_waste: int = Field(..., ge=0)
    non_hazardous_waste: int = Field(..., ge=0)
    companies_reporting: int = Field(..., ge=0)
    recovery_rate: float = Field(..., ge=0)
    recycling_rate: float = Field(..., ge=0)
    disposal_rate: float = Field(..., ge=0)
    top_sector: str = "N/A"
    top_sector_rate: float = 0.0
    data_quality: DataQuality
    unclassified_records: int = Field(default=0, ge=0)


class TrendSummary(CamelModel):
    total_periods: int = Field(..., ge=0)
    avg_recovery_rate: float
    trend_direction: float
    latest_period: Optional[int] = None
    latest_recovery_rate: float = 0.0
    data_source: str


class RecoveryTrendsResponse(BaseModel):
    success: bool = True
    data: List[PeriodTrendPoint] = Field(default_factory=list)
    summary: TrendSummary


class BinMember(BaseModel):
    name: str
    sector: str
    country: str
    recovery_rate: float
    waste_generated: float


class HistogramBinPayload(BaseModel):
    """One histogram band; the out-of-range bucket has no bounds."""

    range: str
    min: Optional[float] = None
    max: Optional[float] = None
    count: int = Field(..., ge=0)
    percentage: float = Field(..., ge=0)
    companies: List[BinMember] = Field(default_factory=list)


class RecoveryStatistics(BaseModel):
    total_companies: int = Field(..., ge=0)
    average_recovery_rate: float = 0.0
    median_recovery_rate: float = 0.0
    min_recovery_rate: float = 0.0
    max_recovery_rate: float = 0.0
    standard_deviation: float = 0.0


class CompanySnapshot(BaseModel):
    company_id: str
    company_name: str
    sector: str
    country: str
    recovery_rate: float
    total_waste_generated: float
    total_waste_recovered: float
    reporting_period: Optional[int] = None


class SectorStat(BaseModel):
    sector: str
    company_count: int = Field(..., ge=0)
    average_recovery_rate: float
    companies: List[CompanySnapshot] = Field(default_factory=list)


class RecoveryDistribution(CamelModel):
    chart_data: List[HistogramBinPayload] = Field(default_factory=list)
    statistics: RecoveryStatistics
    sector_breakdown: List[SectorStat] = Field(default_factory=list)
    raw_data: List[CompanySnapshot] = Field(default_factory=list)
    out_of_range: HistogramBinPayload


class RecoveryDistributionResponse(BaseModel):
    success: bool = True
    data: RecoveryDistribution


class YearlyWasteTotals(CamelModel):
    year: int
    total_generated: int = Field(..., ge=0)
    total_recovered: int = Field(..., ge=0)
    recovery_rate: float = Field(..., ge=0)


class WasteTrendsResponse(BaseModel):
    success: bool = True
    data: List[YearlyWasteTotals] = Field(default_factory=list)


class HazardSlice(BaseModel):
    name: str
    value: int = Field(..., ge=0)
    percentage: float = Field(..., ge=0)


class HazardousBreakdownResponse(BaseModel):
    success: bool = True
    data: List[HazardSlice] = Field(default_factory=list)


class ChartDataset(CamelModel):
    label: str
    data: List[int] = Field(default_factory=list)


class CountChart(BaseModel):
    labels: List[str] = Field(default_factory=list)
    datasets: List[ChartDataset] = Field(default_factory=list)


class CountChartResponse(BaseModel):
    success: bool = True
    data: CountChart


class DashboardKpi(CamelModel):
    total_companies: int = Field(..., ge=0)
    countries_covered: int = Field(..., ge=0)
    last_updated: datetime
    total_waste_generated: int = Field(..., ge=0)
    hazardous_percentage: float = Field(..., ge=0)
    data_coverage_percentage: float = Field(..., ge=0)
    top_performing_sector: Optional[str] = None
    top_sector_recovery_rate: float = 0.0
    companies_with_recent_data: int = Field(..., ge=0)


class DashboardKpiResponse(BaseModel):
    success: bool = True
    data: DashboardKpi


class CompanyWasteMetrics(CamelModel):
    company_id: str
    company_name: str
    sector: str
    country: str
    periods: List[PeriodTrendPoint] = Field(default_factory=list)


class CompanyWasteMetricsResponse(BaseModel):
    success: bool = True
    data: CompanyWasteMetrics


class RowError(BaseModel):
    """Details about a CSV row that failed validation or parsing."""

    row_number: int = Field(..., ge=1)
    reason: str


class CsvImportResult(BaseModel):
    filename: str
    accepted: int = Field(..., ge=0)
    errors: List[RowError] = Field(default_factory=list)
    flagged: List[RowError] = Field(default_factory=list)


class CsvImportResponse(BaseModel):
    success: bool = True
    data: CsvImportResult


class MonitoringResponse(BaseModel):
    success: bool = True
    data: Dict[str, Any]
