"""Percentage rates derived from period totals."""

from __future__ import annotations

import math
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from services.aggregator import PeriodAggregate


@dataclass(frozen=True)
class PeriodRates:
    recovery_rate: float
    recycling_rate: float
    disposal_rate: float


def round_half_away(value: float, places: int = 2) -> float:
    """Round like a person would: 0.125 -> 0.13, -0.125 -> -0.13."""
    if not math.isfinite(value):
        return 0.0
    exponent = Decimal(1).scaleb(-places)
    # ROUND_HALF_UP in ``decimal`` rounds away from zero.
    return float(Decimal(repr(value)).quantize(exponent, rounding=ROUND_HALF_UP))


def percentage(part: float, whole: float) -> float:
    if whole <= 0 or not math.isfinite(whole) or not math.isfinite(part) or part <= 0:
        return 0.0
    return round_half_away(part / whole * 100)


def compute_rates(aggregate: PeriodAggregate) -> PeriodRates:
    generated = aggregate.total_generated
    return PeriodRates(
        recovery_rate=percentage(aggregate.total_recovered, generated),
        recycling_rate=percentage(aggregate.total_recycled, generated),
        disposal_rate=percentage(aggregate.total_disposed, generated),
    )
