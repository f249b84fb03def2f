from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import typer

from cli.client import ApiClient
from cli.config import CLIConfig, load_config
from cli.render import render_distribution, render_import, render_kpi, render_trends


@dataclass
class CLIState:
    config: CLIConfig
    client: ApiClient


app = typer.Typer(
    help="Utilities for querying the waste metrics service.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        raise typer.Exit(code=1)
    return state


@app.callback()
def main(
    ctx: typer.Context,
    base_url: Optional[str] = typer.Option(
        None,
        "--base-url",
        "-b",
        help="Service base URL (defaults to API_BASE_URL env or http://localhost:8000).",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="Request timeout in seconds.",
    ),
) -> None:
    """Entry point for the CLI."""
    config = load_config(base_url=base_url, timeout=timeout)
    client = ApiClient(config)
    ctx.obj = CLIState(config=config, client=client)
    ctx.call_on_close(client.close)


@app.command("trends")
def trends_command(ctx: typer.Context) -> None:
    """Show recovery, recycling and disposal rates per reporting period."""
    state = _get_state(ctx)
    render_trends(state.client.get_recovery_trends())


@app.command("distribution")
def distribution_command(ctx: typer.Context) -> None:
    """Show the recovery-rate histogram and summary statistics."""
    state = _get_state(ctx)
    render_distribution(state.client.get_recovery_distribution())


@app.command("kpi")
def kpi_command(ctx: typer.Context) -> None:
    """Show headline dashboard indicators."""
    state = _get_state(ctx)
    render_kpi(state.client.get_kpi())


@app.command("upload")
def upload_command(
    ctx: typer.Context,
    file: Path = typer.Argument(..., exists=True, dir_okay=False, readable=True, help="Path to CSV file."),
) -> None:
    """Import waste-stream rows from a CSV file."""
    state = _get_state(ctx)
    typer.echo(f"Uploading {file} to {state.config.base_url} ...")
    payload = state.client.upload_csv(file)
    accepted = (payload.get("data") or {}).get("accepted")
    typer.secho(f"Upload accepted. rows={accepted}", fg=typer.colors.GREEN)
    typer.echo()
    render_import(payload)
