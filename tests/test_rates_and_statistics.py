from __future__ import annotations

import math

import pytest

from services.aggregator import PeriodAggregate
from services.rates import compute_rates, percentage, round_half_away
from services.statistics import StatisticsSummary, summarize


def test_rates_for_typical_period() -> None:
    aggregate = PeriodAggregate(
        period=2023,
        total_generated=1000,
        total_recovered=300,
        total_recycled=120,
        total_disposed=650,
    )

    rates = compute_rates(aggregate)

    assert rates.recovery_rate == 30.0
    assert rates.recycling_rate == 12.0
    assert rates.disposal_rate == 65.0


@pytest.mark.parametrize("recovered", [0.0, 10.0, 1e9])
def test_zero_generated_yields_zero_rates(recovered: float) -> None:
    aggregate = PeriodAggregate(period=2023, total_recovered=recovered, total_disposed=recovered)

    rates = compute_rates(aggregate)

    assert rates.recovery_rate == 0
    assert rates.recycling_rate == 0
    assert rates.disposal_rate == 0
    assert not math.isnan(rates.recovery_rate)


def test_rates_may_exceed_one_hundred_when_recovered_outweighs_generated() -> None:
    rates = compute_rates(PeriodAggregate(period=2023, total_generated=50, total_recovered=75))

    assert rates.recovery_rate == 150.0


def test_round_half_away_from_zero() -> None:
    assert round_half_away(0.125) == 0.13
    assert round_half_away(2.675) == 2.68
    assert round_half_away(-0.125) == -0.13
    assert round_half_away(12.5, 0) == 13.0
    assert round_half_away(float("nan")) == 0.0


def test_percentage_guards_degenerate_inputs() -> None:
    assert percentage(1, 3) == 33.33
    assert percentage(2, 3) == 66.67
    assert percentage(5, 0) == 0.0
    assert percentage(-5, 10) == 0.0
    assert percentage(5, float("inf")) == 0.0


def test_summarize_empty_input_returns_zero_summary() -> None:
    summary = summarize([])

    assert summary == StatisticsSummary()
    assert summary.total == 0
    assert summary.mean == 0.0
    assert summary.standard_deviation == 0.0


def test_summarize_two_values() -> None:
    summary = summarize([90, 10])

    assert summary.total == 2
    assert summary.mean == 50
    assert summary.minimum == 10
    assert summary.maximum == 90
    assert summary.median == 90
    assert summary.standard_deviation == 40


def test_median_takes_upper_middle_for_even_length() -> None:
    assert summarize([40, 10, 30, 20]).median == 30


def test_median_of_odd_length_is_middle_element() -> None:
    assert summarize([5, 1, 3]).median == 3


def test_standard_deviation_is_population() -> None:
    summary = summarize([2, 4, 4, 4, 5, 5, 7, 9])

    assert summary.mean == 5
    assert summary.standard_deviation == pytest.approx(2.0)
