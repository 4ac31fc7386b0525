from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Optional

import httpx
import typer

from cli.config import CLIConfig


class ApiClient:
    """Minimal HTTP client for the readings API."""

    def __init__(self, config: CLIConfig) -> None:
        self._config = config
        self._client = httpx.Client(base_url=config.base_url, timeout=config.timeout)

    def close(self) -> None:
        self._client.close()

    def get_sensors(self) -> Dict[str, str]:
        try:
            response = self._client.get("/api/sensors")
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        return response.json()

    def get_readings(
        self,
        start: int,
        end: int,
        sensors: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> Dict[str, List[Dict[str, Any]]]:
        params: Dict[str, Any] = {}
        if sensors:
            params["sensors"] = sensors
        if limit is not None:
            params["limit"] = limit
        try:
            response = self._client.get(f"/api/readings/{start}/{end}", params=params)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        return response.json()

    def push_readings(self, path: Path) -> int:
        if not path.is_file():
            raise typer.BadParameter(f"Path {path} is not a file.")
        try:
            batch = json.loads(path.read_text())
        except json.JSONDecodeError as exc:
            raise typer.BadParameter(f"File {path} is not valid JSON: {exc}") from exc
        if not isinstance(batch, list):
            raise typer.BadParameter(f"File {path} must contain a JSON array of readings.")

        try:
            response = self._client.post("/api/new", json=batch)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        return len(batch)

    @staticmethod
    def _handle_http_error(exc: httpx.HTTPStatusError) -> None:
        detail: str | None = None
        try:
            data = exc.response.json()
            if "errors" in data:
                detail = "; ".join(data["errors"])
            else:
                detail = data.get("error")
        except Exception:  # noqa: BLE001 - best effort parsing
            detail = exc.response.text.strip()
        message = (
            f"Request failed with status {exc.response.status_code}: {detail or 'no detail provided.'}"
        )
        typer.secho(message, fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
