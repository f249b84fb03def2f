from __future__ import annotations

import logging

import pytest

from models.records import CompanyMetricSnapshot
from services.histogram import RECOVERY_RATE_BINS, HistogramBinner


def _snapshot(company_id: str, rate: float) -> CompanyMetricSnapshot:
    return CompanyMetricSnapshot(company_id=company_id, recovery_rate=rate)


def _counts(binner: HistogramBinner, rates: list[float]) -> dict[str, int]:
    result = binner.bin(_snapshot(f"c{index}", rate) for index, rate in enumerate(rates))
    return {bin_.label: bin_.count for bin_ in result.bins}


def test_empty_input_returns_all_zero_bins() -> None:
    result = HistogramBinner().bin([])

    assert [bin_.label for bin_ in result.bins] == [label for label, _, _ in RECOVERY_RATE_BINS]
    assert all(bin_.count == 0 and bin_.members == [] for bin_ in result.bins)
    assert result.out_of_range == []
    assert result.total == 0


def test_low_and_high_rates_land_in_outer_bins() -> None:
    counts = _counts(HistogramBinner(), [10, 90])

    assert counts == {"0-20%": 1, "20-40%": 0, "40-60%": 0, "60-80%": 0, "80-100%": 1}


def test_boundaries_belong_to_the_bin_they_open() -> None:
    counts = _counts(HistogramBinner(), [0, 20, 40, 60, 80])

    assert list(counts.values()) == [1, 1, 1, 1, 1]


def test_top_bin_is_closed_at_one_hundred() -> None:
    counts = _counts(HistogramBinner(), [100, 99.99])

    assert counts["80-100%"] == 2


@pytest.mark.parametrize("rate", [0, 0.01, 19.99, 20, 33.3, 59.999, 79.5, 80, 100])
def test_every_rate_in_range_lands_in_exactly_one_bin(rate: float) -> None:
    result = HistogramBinner().bin([_snapshot("only", rate)])

    assert sum(bin_.count for bin_ in result.bins) == 1
    assert result.out_of_range == []


def test_out_of_range_rates_are_kept_and_logged(caplog) -> None:
    snapshots = [
        _snapshot("ok", 50),
        _snapshot("over", 120),
        _snapshot("under", -3),
        _snapshot("nan", float("nan")),
    ]

    with caplog.at_level(logging.WARNING):
        result = HistogramBinner().bin(snapshots)

    assert [snapshot.company_id for snapshot in result.out_of_range] == ["over", "under", "nan"]
    assert result.total == len(snapshots)
    records = [record for record in caplog.records if record.name == "services.histogram"]
    assert {getattr(record, "company_id", None) for record in records} == {"over", "under", "nan"}


def test_members_are_recorded_per_bin() -> None:
    result = HistogramBinner().bin([_snapshot("a", 45), _snapshot("b", 55)])

    middle = result.bins[2]
    assert middle.label == "40-60%"
    assert [member.company_id for member in middle.members] == ["a", "b"]


def test_custom_bins_are_sorted_and_validated() -> None:
    binner = HistogramBinner([("high", 50, 100), ("low", 0, 50)])

    counts = _counts(binner, [10, 50, 100])

    assert counts == {"low": 1, "high": 2}

    with pytest.raises(ValueError):
        HistogramBinner([("a", 0, 60), ("b", 50, 100)])
    with pytest.raises(ValueError):
        HistogramBinner([])
