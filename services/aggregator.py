"""Aggregation of waste-stream records into per-period totals."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, Mapping, Optional, Set

from models.records import CompanyMetricRecord, WasteStreamRecord, quantity
from services.classification import (
    HazardClass,
    WasteFlow,
    classify_flow,
    classify_hazard,
    is_recycling,
)

logger = logging.getLogger(__name__)

UNKNOWN_SECTOR = "Unknown"


@dataclass
class SectorAggregate:
    generated: float = 0.0
    recovered: float = 0.0
    disposed: float = 0.0
    company_ids: Set[str] = field(default_factory=set)


@dataclass
class PeriodAggregate:
    """Running totals for one reporting period within a single request."""

    period: int
    total_generated: float = 0.0
    total_recovered: float = 0.0
    total_disposed: float = 0.0
    total_recycled: float = 0.0
    hazardous_waste: float = 0.0
    non_hazardous_waste: float = 0.0
    unclassified_records: int = 0
    companies_reporting: Set[str] = field(default_factory=set)
    sector_breakdown: Dict[str, SectorAggregate] = field(default_factory=dict)

    def add(self, record: WasteStreamRecord, sector: str) -> None:
        value = quantity(record.value)
        self.companies_reporting.add(record.company_id)

        sector_data = self.sector_breakdown.get(sector)
        if sector_data is None:
            sector_data = SectorAggregate()
            self.sector_breakdown[sector] = sector_data
        sector_data.company_ids.add(record.company_id)

        flow = classify_flow(record.metric, record.treatment_method)
        if flow is WasteFlow.generated:
            self.total_generated += value
            sector_data.generated += value
        elif flow is WasteFlow.recovered:
            self.total_recovered += value
            sector_data.recovered += value
            if is_recycling(record.treatment_method):
                self.total_recycled += value
        elif flow is WasteFlow.disposed:
            self.total_disposed += value
            sector_data.disposed += value
        else:
            self.unclassified_records += 1
            logger.debug(
                "Record matched no waste flow",
                extra={"company_id": record.company_id, "period": self.period, "reason": record.metric},
            )

        hazard = classify_hazard(record.hazardousness, record.metric)
        if hazard is HazardClass.hazardous:
            self.hazardous_waste += value
        elif hazard is HazardClass.non_hazardous:
            self.non_hazardous_waste += value

    def adopt_larger(
        self,
        generated: float = 0.0,
        recovered: float = 0.0,
        disposed: float = 0.0,
    ) -> None:
        """Raise totals to those of a more complete source, never lowering them."""
        self.total_generated = max(self.total_generated, generated)
        self.total_recovered = max(self.total_recovered, recovered)
        self.total_disposed = max(self.total_disposed, disposed)


class PeriodAggregator:
    """Pure aggregation component that can be unit tested in isolation."""

    def aggregate(
        self,
        records: Iterable[WasteStreamRecord],
        sectors: Optional[Mapping[str, str]] = None,
    ) -> Dict[int, PeriodAggregate]:
        sectors = sectors or {}
        periods: Dict[int, PeriodAggregate] = {}

        for record in records:
            period = record.reporting_period
            if period is None:
                continue
            aggregate = periods.get(period)
            if aggregate is None:
                aggregate = PeriodAggregate(period=period)
                periods[period] = aggregate
            sector = sectors.get(record.company_id) or UNKNOWN_SECTOR
            aggregate.add(record, sector)

        return periods

    def aggregate_by_company(
        self, records: Iterable[WasteStreamRecord]
    ) -> Dict[str, Dict[int, PeriodAggregate]]:
        grouped: Dict[str, list[WasteStreamRecord]] = {}
        for record in records:
            if not record.company_id:
                continue
            grouped.setdefault(record.company_id, []).append(record)
        return {company_id: self.aggregate(items) for company_id, items in grouped.items()}

    def merge_company_metrics(
        self,
        periods: Dict[int, PeriodAggregate],
        metrics: Iterable[CompanyMetricRecord],
    ) -> Dict[int, PeriodAggregate]:
        """Fill gaps from pre-aggregated company totals without shrinking any period.

        Each secondary row is compared against the period totals on its own;
        rows are not summed. Periods that have no raw records are left out.
        """
        for metric in metrics:
            period = metric.reporting_period
            aggregate = periods.get(period) if period is not None else None
            if aggregate is None:
                continue
            aggregate.adopt_larger(
                quantity(metric.total_waste_generated),
                quantity(metric.total_waste_recovered),
                quantity(metric.total_waste_disposed),
            )
        return periods
