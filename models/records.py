"""Domain records shared across the data store and aggregation services."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Mapping, Optional


def parse_period(raw: Any) -> Optional[int]:
    """Return a reporting year from an int or numeric string, else ``None``."""
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return raw
    if isinstance(raw, float):
        return int(raw) if math.isfinite(raw) and raw.is_integer() else None
    candidate = str(raw).strip()
    if not candidate:
        return None
    try:
        return int(candidate)
    except ValueError:
        try:
            parsed = float(candidate)
        except ValueError:
            return None
        return int(parsed) if math.isfinite(parsed) and parsed.is_integer() else None


def parse_optional_float(raw: Any) -> Optional[float]:
    """Parse a numeric field, returning ``None`` for blanks and garbage."""
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, (int, float)):
        value = float(raw)
    else:
        candidate = str(raw).strip().replace(",", "")
        if not candidate:
            return None
        try:
            value = float(candidate)
        except ValueError:
            return None
    return value if math.isfinite(value) else None


def quantity(raw: Optional[float]) -> float:
    """Coerce an optional tonnage into a non-negative float."""
    if raw is None or not math.isfinite(raw) or raw < 0:
        return 0.0
    return float(raw)


def _optional_str(raw: Any) -> Optional[str]:
    if raw is None:
        return None
    candidate = str(raw).strip()
    return candidate or None


@dataclass(slots=True)
class WasteStreamRecord:
    """One waste observation taken from a disclosure document."""

    company_id: str
    reporting_period: Optional[int]
    metric: Optional[str] = None
    value: Optional[float] = None
    treatment_method: Optional[str] = None
    hazardousness: Optional[str] = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "WasteStreamRecord":
        return cls(
            company_id=str(row.get("company_id") or ""),
            reporting_period=parse_period(row.get("reporting_period")),
            metric=_optional_str(row.get("metric")),
            value=parse_optional_float(row.get("value")),
            treatment_method=_optional_str(row.get("treatment_method")),
            hazardousness=_optional_str(row.get("hazardousness")),
        )

    def to_row(self) -> dict[str, Any]:
        return {
            "company_id": self.company_id,
            "reporting_period": self.reporting_period,
            "metric": self.metric,
            "value": self.value,
            "treatment_method": self.treatment_method,
            "hazardousness": self.hazardousness,
        }


@dataclass(slots=True)
class CompanyMetricRecord:
    """Pre-aggregated per-company totals for a reporting period."""

    company_id: str
    reporting_period: Optional[int]
    total_waste_generated: Optional[float] = None
    total_waste_recovered: Optional[float] = None
    total_waste_disposed: Optional[float] = None
    recovery_rate: Optional[float] = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "CompanyMetricRecord":
        return cls(
            company_id=str(row.get("company_id") or ""),
            reporting_period=parse_period(row.get("reporting_period")),
            total_waste_generated=parse_optional_float(row.get("total_waste_generated")),
            total_waste_recovered=parse_optional_float(row.get("total_waste_recovered")),
            total_waste_disposed=parse_optional_float(row.get("total_waste_disposed")),
            recovery_rate=parse_optional_float(row.get("recovery_rate")),
        )

    def to_row(self) -> dict[str, Any]:
        return {
            "company_id": self.company_id,
            "reporting_period": self.reporting_period,
            "total_waste_generated": self.total_waste_generated,
            "total_waste_recovered": self.total_waste_recovered,
            "total_waste_disposed": self.total_waste_disposed,
            "recovery_rate": self.recovery_rate,
        }


@dataclass(slots=True)
class Company:
    """Directory entry describing a reporting company."""

    id: str
    name: str
    sector: Optional[str] = None
    country: Optional[str] = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Company":
        company_id = str(row.get("id") or "")
        name = _optional_str(row.get("name")) or _optional_str(row.get("company_name"))
        return cls(
            id=company_id,
            name=name or "Unknown Company",
            sector=_optional_str(row.get("sector")),
            country=_optional_str(row.get("country")),
        )

    def to_row(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "sector": self.sector,
            "country": self.country,
        }


@dataclass(slots=True)
class CompanyMetricSnapshot:
    """A company's recovery rate for its latest reporting period."""

    company_id: str
    recovery_rate: float
    company_name: str = "Unknown Company"
    sector: str = "Unknown Sector"
    country: str = "Unknown Country"
    total_waste_generated: float = 0.0
    total_waste_recovered: float = 0.0
    reporting_period: Optional[int] = None
