from __future__ import annotations

from typing import Any, Dict, Iterable, List

import typer


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def render_sensors(payload: Dict[str, str]) -> None:
    echo_heading("Sensors")
    if not payload:
        typer.echo("No sensors recorded.")
        return
    echo_key_values(sorted(payload.items()))


def _describe(reading: Dict[str, Any]) -> str:
    parts = [f"{reading.get('Serial')} [{reading.get('Type')}]"]
    parts.append(f"temperature={reading.get('Temperature')}")
    if reading.get("humidity") is not None:
        parts.append(f"humidity={reading['humidity']}")
    if reading.get("count") is not None:
        parts.append(f"count={reading['count']}")
    return " ".join(parts)


def render_readings(payload: Dict[str, List[Dict[str, Any]]]) -> None:
    echo_heading("Readings")
    if not payload:
        typer.echo("No readings in range.")
        return
    for timestamp in sorted(payload):
        typer.echo(timestamp)
        for reading in payload[timestamp]:
            typer.echo(f"  - {_describe(reading)}")
