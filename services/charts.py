"""Chart payload construction on top of the aggregation pipeline."""

from __future__ import annotations

import logging
from collections import Counter
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

from app.schemas import (
    BinMember,
    ChartDataset,
    CompanySnapshot,
    CompanyWasteMetrics,
    CountChart,
    DashboardKpi,
    DataQuality,
    HazardSlice,
    HistogramBinPayload,
    PeriodTrendPoint,
    RecoveryDistribution,
    RecoveryStatistics,
    RecoveryTrendsResponse,
    SectorStat,
    TrendSummary,
    YearlyWasteTotals,
)
from datastore.waste_store import WasteDataStore, build_default_store
from models.records import (
    Company,
    CompanyMetricRecord,
    CompanyMetricSnapshot,
    WasteStreamRecord,
    quantity,
)
from services.aggregator import PeriodAggregate, PeriodAggregator
from services.classification import (
    HAZARDOUS_GENERATED_LABEL,
    NON_HAZARDOUS_GENERATED_LABEL,
    TOTAL_GENERATED_LABEL,
    TOTAL_RECOVERED_LABEL,
    metric_label,
)
from services.errors import NoDataError
from services.histogram import HistogramBin, HistogramBinner
from services.rates import compute_rates, percentage, round_half_away
from services.statistics import summarize
from settings import get_settings

logger = logging.getLogger(__name__)

UNKNOWN_COMPANY = "Unknown Company"
UNKNOWN_SECTOR = "Unknown Sector"
UNKNOWN_COUNTRY = "Unknown Country"
OUT_OF_RANGE_LABEL = "out-of-range"


def _tonnes(value: float) -> int:
    return int(round_half_away(value, 0))


def _data_quality(companies_reporting: int) -> DataQuality:
    if companies_reporting > 10:
        return DataQuality.high
    if companies_reporting > 5:
        return DataQuality.medium
    return DataQuality.low


def trend_point(aggregate: PeriodAggregate) -> PeriodTrendPoint:
    """Project a period aggregate and its rates into a chart point."""
    rates = compute_rates(aggregate)

    top_sector = "N/A"
    top_sector_rate = 0.0
    for sector, data in aggregate.sector_breakdown.items():
        if data.generated <= 0:
            continue
        sector_rate = percentage(data.recovered, data.generated)
        if sector_rate > top_sector_rate:
            top_sector, top_sector_rate = sector, sector_rate

    return PeriodTrendPoint(
        period=aggregate.period,
        month=str(aggregate.period),
        total_generated=_tonnes(aggregate.total_generated),
        total_recovered=_tonnes(aggregate.total_recovered),
        total_disposed=_tonnes(aggregate.total_disposed),
        total_recycled=_tonnes(aggregate.total_recycled),
        hazardous_waste=_tonnes(aggregate.hazardous_waste),
        non_hazardous_waste=_tonnes(aggregate.non_hazardous_waste),
        companies_reporting=len(aggregate.companies_reporting),
        recovery_rate=rates.recovery_rate,
        recycling_rate=rates.recycling_rate,
        disposal_rate=rates.disposal_rate,
        top_sector=top_sector,
        top_sector_rate=top_sector_rate,
        data_quality=_data_quality(len(aggregate.companies_reporting)),
        unclassified_records=aggregate.unclassified_records,
    )


def summarize_trend(points: Sequence[PeriodTrendPoint], data_source: str) -> TrendSummary:
    if not points:
        return TrendSummary(
            total_periods=0,
            avg_recovery_rate=0.0,
            trend_direction=0.0,
            data_source=data_source,
        )
    latest = points[-1]
    average = sum(point.recovery_rate for point in points) / len(points)
    direction = latest.recovery_rate - points[-2].recovery_rate if len(points) >= 2 else 0.0
    return TrendSummary(
        total_periods=len(points),
        avg_recovery_rate=round_half_away(average),
        trend_direction=round_half_away(direction),
        latest_period=latest.period,
        latest_recovery_rate=latest.recovery_rate,
        data_source=data_source,
    )


def _bin_payload(bin_: HistogramBin, total: int) -> HistogramBinPayload:
    return HistogramBinPayload(
        range=bin_.label,
        min=bin_.lower,
        max=bin_.upper,
        count=bin_.count,
        percentage=percentage(bin_.count, total),
        companies=[_bin_member(member) for member in bin_.members],
    )


def _bin_member(snapshot: CompanyMetricSnapshot) -> BinMember:
    return BinMember(
        name=snapshot.company_name,
        sector=snapshot.sector,
        country=snapshot.country,
        recovery_rate=snapshot.recovery_rate,
        waste_generated=snapshot.total_waste_generated,
    )


def _snapshot_payload(snapshot: CompanyMetricSnapshot) -> CompanySnapshot:
    return CompanySnapshot(
        company_id=snapshot.company_id,
        company_name=snapshot.company_name,
        sector=snapshot.sector,
        country=snapshot.country,
        recovery_rate=snapshot.recovery_rate,
        total_waste_generated=snapshot.total_waste_generated,
        total_waste_recovered=snapshot.total_waste_recovered,
        reporting_period=snapshot.reporting_period,
    )


def _count_chart(values: Iterable[Optional[str]]) -> CountChart:
    counts = Counter(value for value in values if value)
    ranked = counts.most_common()
    return CountChart(
        labels=[label for label, _ in ranked],
        datasets=[ChartDataset(label="Number of Companies", data=[count for _, count in ranked])],
    )


class ChartService:
    """Fetches rows from the store and shapes them into chart payloads."""

    def __init__(
        self,
        store: WasteDataStore,
        aggregator: Optional[PeriodAggregator] = None,
        binner: Optional[HistogramBinner] = None,
        trends_min_period: int = 2020,
        recent_period: int = 2022,
    ) -> None:
        self.store = store
        self.aggregator = aggregator or PeriodAggregator()
        self.binner = binner or HistogramBinner()
        self.trends_min_period = trends_min_period
        self.recent_period = recent_period

    def recovery_trends(self) -> RecoveryTrendsResponse:
        records = self.store.fetch_waste_streams(min_period=self.trends_min_period)
        if not records:
            raise NoDataError("No waste stream data found")
        metrics = self.store.fetch_company_metrics(min_period=self.trends_min_period)

        periods = self.aggregator.aggregate(records, self._sector_lookup())
        self.aggregator.merge_company_metrics(periods, metrics)

        points = [
            trend_point(aggregate)
            for _, aggregate in sorted(periods.items())
            if aggregate.total_generated > 0
        ]
        data_source = "Waste Streams + Company Metrics" if metrics else "Waste Streams"
        logger.info(
            "Computed recovery trends",
            extra={"route": "waste-recovery-trends", "record_count": len(records)},
        )
        return RecoveryTrendsResponse(data=points, summary=summarize_trend(points, data_source))

    def recovery_distribution(self) -> RecoveryDistribution:
        metrics = self.store.fetch_company_metrics()
        if metrics:
            latest = self._latest_from_metrics(metrics)
        else:
            latest = self._latest_from_streams(self.store.fetch_waste_streams())
        if not latest:
            raise NoDataError("No company metrics data found")

        directory = {company.id: company for company in self.store.fetch_companies(latest)}
        snapshots = [
            self._with_company_details(snapshot, directory.get(company_id))
            for company_id, snapshot in latest.items()
        ]
        return self.build_distribution(snapshots)

    def build_distribution(self, snapshots: Sequence[CompanyMetricSnapshot]) -> RecoveryDistribution:
        """Histogram, statistics and sector breakdown for company snapshots."""
        total = len(snapshots)
        histogram = self.binner.bin(snapshots)
        stats = summarize(snapshot.recovery_rate for snapshot in snapshots)

        by_sector: Dict[str, List[CompanyMetricSnapshot]] = {}
        for snapshot in snapshots:
            by_sector.setdefault(snapshot.sector or UNKNOWN_SECTOR, []).append(snapshot)
        sector_breakdown = [
            SectorStat(
                sector=sector,
                company_count=len(members),
                average_recovery_rate=round_half_away(
                    sum(member.recovery_rate for member in members) / len(members)
                ),
                companies=[_snapshot_payload(member) for member in members],
            )
            for sector, members in by_sector.items()
        ]
        sector_breakdown.sort(key=lambda stat: stat.average_recovery_rate, reverse=True)

        return RecoveryDistribution(
            chart_data=[_bin_payload(bin_, total) for bin_ in histogram.bins],
            statistics=RecoveryStatistics(
                total_companies=stats.total,
                average_recovery_rate=round_half_away(stats.mean),
                median_recovery_rate=stats.median,
                min_recovery_rate=stats.minimum,
                max_recovery_rate=stats.maximum,
                standard_deviation=round_half_away(stats.standard_deviation),
            ),
            sector_breakdown=sector_breakdown,
            raw_data=[_snapshot_payload(snapshot) for snapshot in snapshots],
            out_of_range=HistogramBinPayload(
                range=OUT_OF_RANGE_LABEL,
                count=len(histogram.out_of_range),
                percentage=percentage(len(histogram.out_of_range), total),
                companies=[_bin_member(member) for member in histogram.out_of_range],
            ),
        )

    def waste_trends(self) -> List[YearlyWasteTotals]:
        records = self.store.fetch_waste_streams(min_period=self.trends_min_period)
        if not records:
            raise NoDataError("No waste stream data found")

        years: Dict[int, List[float]] = {}
        for record in records:
            label = metric_label(record.metric)
            value = quantity(record.value)
            totals = years.setdefault(record.reporting_period or 0, [0.0, 0.0, 0])
            if label == TOTAL_GENERATED_LABEL and value > 0:
                totals[0] += value
                totals[2] += 1
            elif label == TOTAL_RECOVERED_LABEL:
                totals[1] += value

        return [
            YearlyWasteTotals(
                year=year,
                total_generated=_tonnes(generated),
                total_recovered=_tonnes(recovered),
                recovery_rate=percentage(recovered, generated),
            )
            for year, (generated, recovered, reports) in sorted(years.items())
            if reports > 0
        ]

    def hazardous_breakdown(self) -> List[HazardSlice]:
        records = self.store.fetch_waste_streams(min_period=self.recent_period)
        if not records:
            raise NoDataError("No waste stream data found")

        hazardous = 0.0
        non_hazardous = 0.0
        for record in records:
            label = metric_label(record.metric)
            if label == HAZARDOUS_GENERATED_LABEL:
                hazardous += quantity(record.value)
            elif label == NON_HAZARDOUS_GENERATED_LABEL:
                non_hazardous += quantity(record.value)

        total = hazardous + non_hazardous
        if total <= 0:
            return []
        slices = [
            HazardSlice(
                name="Non-Hazardous",
                value=_tonnes(non_hazardous),
                percentage=percentage(non_hazardous, total),
            ),
            HazardSlice(
                name="Hazardous",
                value=_tonnes(hazardous),
                percentage=percentage(hazardous, total),
            ),
        ]
        return [item for item in slices if item.value > 0]

    def sector_performance(self) -> CountChart:
        return _count_chart(company.sector for company in self._require_companies())

    def country_coverage(self) -> CountChart:
        return _count_chart(company.country for company in self._require_companies())

    def dashboard_kpi(self, now: Optional[datetime] = None) -> DashboardKpi:
        companies = self.store.fetch_companies()
        records = self.store.fetch_waste_streams()
        if not companies and not records:
            raise NoDataError("No company or waste data found")

        recent = [record for record in records if (record.reporting_period or 0) >= self.recent_period]
        reporting_ids = {record.company_id for record in recent}
        known_ids = {company.id for company in companies}

        generated = 0.0
        hazardous = 0.0
        non_hazardous = 0.0
        per_company: Dict[str, List[float]] = {}
        for record in recent:
            label = metric_label(record.metric)
            value = quantity(record.value)
            company_totals = per_company.setdefault(record.company_id, [0.0, 0.0])
            if label == TOTAL_GENERATED_LABEL:
                generated += value
                company_totals[0] += value
            elif label == TOTAL_RECOVERED_LABEL:
                company_totals[1] += value
            elif label == HAZARDOUS_GENERATED_LABEL:
                hazardous += value
            elif label == NON_HAZARDOUS_GENERATED_LABEL:
                non_hazardous += value

        sector_totals: Dict[str, List[float]] = {}
        for company in companies:
            totals = per_company.get(company.id)
            if not company.sector or totals is None or totals[0] <= 0:
                continue
            sector = sector_totals.setdefault(company.sector, [0.0, 0.0])
            sector[0] += totals[0]
            sector[1] += totals[1]

        top_sector: Optional[str] = None
        top_rate = 0.0
        for sector_name, (sector_generated, sector_recovered) in sector_totals.items():
            rate = percentage(sector_recovered, sector_generated)
            if rate > top_rate:
                top_sector, top_rate = sector_name, rate

        return DashboardKpi(
            total_companies=len(companies),
            countries_covered=len({company.country for company in companies if company.country}),
            last_updated=now or datetime.now(timezone.utc),
            total_waste_generated=_tonnes(generated),
            hazardous_percentage=percentage(hazardous, hazardous + non_hazardous),
            data_coverage_percentage=percentage(len(reporting_ids & known_ids), len(companies)),
            top_performing_sector=top_sector,
            top_sector_recovery_rate=top_rate,
            companies_with_recent_data=len(reporting_ids),
        )

    def company_waste_metrics(self, company_id: str) -> CompanyWasteMetrics:
        company = self.store.get_company(company_id)
        records = self.store.fetch_waste_streams(company_id=company_id)
        if company is None and not records:
            raise NoDataError(f"Company {company_id!r} not found")

        sector = company.sector if company and company.sector else UNKNOWN_SECTOR
        periods = self.aggregator.aggregate(records, {company_id: sector})
        metrics = [metric for metric in self.store.fetch_company_metrics() if metric.company_id == company_id]
        self.aggregator.merge_company_metrics(periods, metrics)

        return CompanyWasteMetrics(
            company_id=company_id,
            company_name=company.name if company else UNKNOWN_COMPANY,
            sector=sector,
            country=company.country if company and company.country else UNKNOWN_COUNTRY,
            periods=[trend_point(aggregate) for _, aggregate in sorted(periods.items())],
        )

    def _require_companies(self) -> List[Company]:
        companies = self.store.fetch_companies()
        if not companies:
            raise NoDataError("No company data found")
        return companies

    def _sector_lookup(self) -> Mapping[str, str]:
        return {company.id: company.sector for company in self.store.fetch_companies() if company.sector}

    def _latest_from_metrics(
        self, metrics: Iterable[CompanyMetricRecord]
    ) -> Dict[str, CompanyMetricSnapshot]:
        latest: Dict[str, CompanyMetricRecord] = {}
        for metric in metrics:
            if not metric.company_id or metric.reporting_period is None:
                continue
            has_volume = quantity(metric.total_waste_generated) > 0 or quantity(metric.total_waste_recovered) > 0
            if not has_volume and metric.recovery_rate is None:
                continue
            current = latest.get(metric.company_id)
            if current is None or metric.reporting_period > (current.reporting_period or 0):
                latest[metric.company_id] = metric

        snapshots: Dict[str, CompanyMetricSnapshot] = {}
        for company_id, metric in latest.items():
            generated = quantity(metric.total_waste_generated)
            recovered = quantity(metric.total_waste_recovered)
            if metric.recovery_rate is not None:
                rate = round_half_away(metric.recovery_rate)
            else:
                rate = percentage(recovered, generated)
            snapshots[company_id] = CompanyMetricSnapshot(
                company_id=company_id,
                recovery_rate=rate,
                total_waste_generated=generated,
                total_waste_recovered=recovered,
                reporting_period=metric.reporting_period,
            )
        return snapshots

    def _latest_from_streams(
        self, records: Iterable[WasteStreamRecord]
    ) -> Dict[str, CompanyMetricSnapshot]:
        snapshots: Dict[str, CompanyMetricSnapshot] = {}
        for company_id, periods in self.aggregator.aggregate_by_company(records).items():
            for _, aggregate in sorted(periods.items(), reverse=True):
                if aggregate.total_generated <= 0 and aggregate.total_recovered <= 0:
                    continue
                snapshots[company_id] = CompanyMetricSnapshot(
                    company_id=company_id,
                    recovery_rate=compute_rates(aggregate).recovery_rate,
                    total_waste_generated=aggregate.total_generated,
                    total_waste_recovered=aggregate.total_recovered,
                    reporting_period=aggregate.period,
                )
                break
        return snapshots

    @staticmethod
    def _with_company_details(
        snapshot: CompanyMetricSnapshot, company: Optional[Company]
    ) -> CompanyMetricSnapshot:
        if company is not None:
            snapshot.company_name = company.name or UNKNOWN_COMPANY
            snapshot.sector = company.sector or UNKNOWN_SECTOR
            snapshot.country = company.country or UNKNOWN_COUNTRY
        return snapshot


def build_default_service(store: Optional[WasteDataStore] = None) -> ChartService:
    """Factory that wires the chart service from environment settings."""
    settings = get_settings()
    return ChartService(
        store=store or build_default_store(),
        trends_min_period=settings.trends_min_period,
        recent_period=settings.recent_period,
    )
