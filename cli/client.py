from __future__ import annotations

from pathlib import Path
from typing import Any, Dict

import httpx
import typer

from cli.config import CLIConfig


class ApiClient:
    """Minimal HTTP client for the waste metrics service."""

    def __init__(self, config: CLIConfig) -> None:
        self._config = config
        self._client = httpx.Client(base_url=config.base_url, timeout=config.timeout)

    def close(self) -> None:
        self._client.close()

    def get_recovery_trends(self) -> Dict[str, Any]:
        return self._get("/api/charts/waste-recovery-trends")

    def get_recovery_distribution(self) -> Dict[str, Any]:
        return self._get("/api/charts/waste-recovery-distribution")

    def get_kpi(self) -> Dict[str, Any]:
        return self._get("/api/dashboard/kpi")

    def upload_csv(self, path: Path) -> Dict[str, Any]:
        if not path.exists():
            raise typer.BadParameter(f"File {path} does not exist.")
        if not path.is_file():
            raise typer.BadParameter(f"Path {path} is not a file.")

        try:
            with path.open("rb") as handle:
                response = self._client.post(
                    "/api/upload/csv",
                    files={"file": (path.name, handle, "text/csv")},
                )
        except httpx.HTTPError as exc:
            self._handle_transport_error(exc)
        return self._unwrap(response)

    def _get(self, url: str) -> Dict[str, Any]:
        try:
            response = self._client.get(url)
        except httpx.HTTPError as exc:
            self._handle_transport_error(exc)
        return self._unwrap(response)

    @staticmethod
    def _unwrap(response: httpx.Response) -> Dict[str, Any]:
        try:
            payload = response.json()
        except ValueError:
            payload = None
        if not isinstance(payload, dict):
            message = response.text.strip() or "no detail provided."
            typer.secho(
                f"Request failed with status {response.status_code}: {message}",
                fg=typer.colors.RED,
                err=True,
            )
            raise typer.Exit(code=1)
        if response.is_error or payload.get("success") is False:
            detail = payload.get("error") or payload.get("detail") or "no detail provided."
            typer.secho(
                f"Request failed with status {response.status_code}: {detail}",
                fg=typer.colors.RED,
                err=True,
            )
            raise typer.Exit(code=1)
        return payload

    def _handle_transport_error(self, exc: httpx.HTTPError) -> None:
        typer.secho(
            f"Could not reach {self._config.base_url}: {exc}",
            fg=typer.colors.RED,
            err=True,
        )
        raise typer.Exit(code=1)
