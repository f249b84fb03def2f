"""Fixed-band histogram of company recovery rates."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Iterable, List, Sequence, Tuple

from models.records import CompanyMetricSnapshot

logger = logging.getLogger(__name__)

BinSpec = Tuple[str, float, float]

RECOVERY_RATE_BINS: Tuple[BinSpec, ...] = (
    ("0-20%", 0.0, 20.0),
    ("20-40%", 20.0, 40.0),
    ("40-60%", 40.0, 60.0),
    ("60-80%", 60.0, 80.0),
    ("80-100%", 80.0, 100.0),
)


@dataclass
class HistogramBin:
    """A ``[lower, upper)`` band; ``closed`` bins also include ``upper``."""

    label: str
    lower: float
    upper: float
    closed: bool = False
    count: int = 0
    members: List[CompanyMetricSnapshot] = field(default_factory=list)

    def contains(self, value: float) -> bool:
        if self.closed:
            return self.lower <= value <= self.upper
        return self.lower <= value < self.upper

    def add(self, snapshot: CompanyMetricSnapshot) -> None:
        self.count += 1
        self.members.append(snapshot)


@dataclass
class HistogramResult:
    bins: List[HistogramBin]
    out_of_range: List[CompanyMetricSnapshot] = field(default_factory=list)

    @property
    def total(self) -> int:
        return sum(bin_.count for bin_ in self.bins) + len(self.out_of_range)


class HistogramBinner:
    """Assigns snapshots to the first band containing their recovery rate."""

    def __init__(self, bins: Sequence[BinSpec] = RECOVERY_RATE_BINS) -> None:
        if not bins:
            raise ValueError("At least one histogram bin is required.")
        ordered = sorted(bins, key=lambda spec: spec[1])
        for (_, _, upper), (label, lower, _) in zip(ordered, ordered[1:]):
            if lower < upper:
                raise ValueError(f"Histogram bin {label!r} overlaps its predecessor.")
        self._specs: Tuple[BinSpec, ...] = tuple(ordered)

    def bin(self, snapshots: Iterable[CompanyMetricSnapshot]) -> HistogramResult:
        last = len(self._specs) - 1
        result = HistogramResult(
            bins=[
                HistogramBin(label=label, lower=lower, upper=upper, closed=index == last)
                for index, (label, lower, upper) in enumerate(self._specs)
            ]
        )

        for snapshot in snapshots:
            rate = snapshot.recovery_rate
            target = None
            if math.isfinite(rate):
                target = next((bin_ for bin_ in result.bins if bin_.contains(rate)), None)
            if target is None:
                logger.warning(
                    "Recovery rate outside histogram range",
                    extra={"company_id": snapshot.company_id, "reason": f"recovery_rate={rate}"},
                )
                result.out_of_range.append(snapshot)
                continue
            target.add(snapshot)

        return result
