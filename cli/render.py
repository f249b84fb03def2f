from __future__ import annotations

from typing import Any, Dict, Iterable

import typer


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def render_trends(payload: Dict[str, Any]) -> None:
    echo_heading("Recovery Trends")
    points = payload.get("data") or []
    if points:
        for point in points:
            typer.echo(
                f"  - {point.get('period')}: recovery {point.get('recoveryRate')}% "
                f"recycling {point.get('recyclingRate')}% disposal {point.get('disposalRate')}% "
                f"({point.get('companiesReporting')} companies, {point.get('dataQuality')})"
            )
    else:
        typer.echo("No data available.")

    summary = payload.get("summary") or {}
    typer.echo()
    echo_heading("Summary")
    echo_key_values(
        [
            ("total_periods", summary.get("totalPeriods")),
            ("avg_recovery_rate", summary.get("avgRecoveryRate")),
            ("trend_direction", summary.get("trendDirection")),
            ("latest_period", summary.get("latestPeriod")),
            ("latest_recovery_rate", summary.get("latestRecoveryRate")),
            ("data_source", summary.get("dataSource")),
        ]
    )


def render_distribution(payload: Dict[str, Any]) -> None:
    data = payload.get("data") or {}
    echo_heading("Recovery Rate Distribution")
    for bin_ in data.get("chartData") or []:
        typer.echo(f"  - {bin_.get('range')}: {bin_.get('count')} ({bin_.get('percentage')}%)")
    out_of_range = data.get("outOfRange") or {}
    if out_of_range.get("count"):
        typer.secho(
            f"  - out of range: {out_of_range.get('count')}",
            fg=typer.colors.YELLOW,
        )

    statistics = data.get("statistics") or {}
    typer.echo()
    echo_heading("Statistics")
    echo_key_values(
        [
            ("total_companies", statistics.get("total_companies")),
            ("average_recovery_rate", statistics.get("average_recovery_rate")),
            ("median_recovery_rate", statistics.get("median_recovery_rate")),
            ("min_recovery_rate", statistics.get("min_recovery_rate")),
            ("max_recovery_rate", statistics.get("max_recovery_rate")),
            ("standard_deviation", statistics.get("standard_deviation")),
        ]
    )

    sectors = data.get("sectorBreakdown") or []
    if sectors:
        typer.echo()
        echo_heading("Sectors")
        for sector in sectors:
            typer.echo(
                f"  - {sector.get('sector')}: {sector.get('average_recovery_rate')}% "
                f"across {sector.get('company_count')} companies"
            )


def render_kpi(payload: Dict[str, Any]) -> None:
    data = payload.get("data") or {}
    echo_heading("Dashboard KPIs")
    echo_key_values(
        [
            ("total_companies", data.get("totalCompanies")),
            ("countries_covered", data.get("countriesCovered")),
            ("total_waste_generated", data.get("totalWasteGenerated")),
            ("hazardous_percentage", data.get("hazardousPercentage")),
            ("data_coverage_percentage", data.get("dataCoveragePercentage")),
            ("top_performing_sector", data.get("topPerformingSector")),
            ("top_sector_recovery_rate", data.get("topSectorRecoveryRate")),
            ("companies_with_recent_data", data.get("companiesWithRecentData")),
            ("last_updated", data.get("lastUpdated")),
        ]
    )


def render_import(payload: Dict[str, Any]) -> None:
    data = payload.get("data") or {}
    echo_heading("CSV Import")
    echo_key_values([("filename", data.get("filename")), ("accepted", data.get("accepted"))])

    for title, key in (("Errors", "errors"), ("Flagged", "flagged")):
        entries = data.get(key) or []
        typer.echo()
        echo_heading(title)
        if entries:
            for entry in entries:
                typer.echo(f"  - row {entry.get('row_number')}: {entry.get('reason')}")
        else:
            typer.echo(f"No {key} recorded.")
