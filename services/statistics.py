"""Descriptive statistics over a numeric distribution."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable


@dataclass(frozen=True)
class StatisticsSummary:
    total: int = 0
    mean: float = 0.0
    median: float = 0.0
    minimum: float = 0.0
    maximum: float = 0.0
    standard_deviation: float = 0.0


def summarize(values: Iterable[float]) -> StatisticsSummary:
    """Summarize ``values``; an empty input yields an all-zero summary.

    The median is the upper-middle element for even-length input
    (index ``n // 2`` of the sorted values), not the mean of the two middles.
    The standard deviation is the population one.
    """
    ordered = sorted(value for value in values if math.isfinite(value))
    count = len(ordered)
    if count == 0:
        return StatisticsSummary()

    mean = math.fsum(ordered) / count
    variance = math.fsum((value - mean) ** 2 for value in ordered) / count
    return StatisticsSummary(
        total=count,
        mean=mean,
        median=ordered[count // 2],
        minimum=ordered[0],
        maximum=ordered[-1],
        standard_deviation=math.sqrt(variance),
    )
