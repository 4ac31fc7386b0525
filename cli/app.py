from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import typer
import uvicorn

from app.main import create_app
from cli.client import ApiClient
from cli.config import CLIConfig, load_config
from cli.render import render_readings, render_sensors
from datastore.bucket_store import StoreError
from datastore.schema import open_readings_store
from logging_config import configure_logging
from settings import get_settings


@dataclass
class CLIState:
    config: CLIConfig
    client: ApiClient


app = typer.Typer(
    help="Run the sensor readings API server or query a running one.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        raise typer.Exit(code=1, message="CLI state is uninitialized.")
    return state


@app.callback()
def main(
    ctx: typer.Context,
    base_url: Optional[str] = typer.Option(
        None,
        "--base-url",
        "-b",
        help="API base URL (defaults to WORT_API_URL env or http://localhost:3834).",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="Seconds to wait for each API request.",
    ),
) -> None:
    """Entry point for the CLI."""
    config = load_config(base_url=base_url, timeout=timeout)
    client = ApiClient(config)
    ctx.obj = CLIState(config=config, client=client)
    ctx.call_on_close(client.close)


@app.command("serve")
def serve_command(
    db: Optional[Path] = typer.Option(
        None, "--db", help="Path and filename of the readings database (temperatures.db)."
    ),
    ip: Optional[str] = typer.Option(None, "--ip", help="IP address to listen on (0.0.0.0)."),
    port: Optional[int] = typer.Option(None, "--port", min=1, max=65535, help="Port to listen on (3834)."),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Logging level (INFO)."),
) -> None:
    """Open the readings database and serve the HTTP API."""
    overrides = {
        "database_file": str(db) if db is not None else None,
        "listen_ip": ip,
        "listen_port": port,
        "log_level": log_level.upper() if log_level else None,
    }
    settings = dataclasses.replace(
        get_settings(),
        **{name: value for name, value in overrides.items() if value is not None},
    )

    configure_logging(settings.log_level)
    try:
        store = open_readings_store(settings.database_file)
    except StoreError as exc:
        typer.secho(f"Cannot open database {settings.database_file}: {exc}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1) from exc

    typer.echo(f"Serving {settings.database_file} on {settings.listen_ip}:{settings.listen_port}")
    uvicorn.run(
        create_app(settings, store=store),
        host=settings.listen_ip,
        port=settings.listen_port,
        log_config=None,
    )


@app.command("sensors")
def sensors_command(ctx: typer.Context) -> None:
    """List every known sensor serial number and its name."""
    state = _get_state(ctx)
    render_sensors(state.client.get_sensors())


@app.command("readings")
def readings_command(
    ctx: typer.Context,
    start: int = typer.Argument(..., help="Start of the range as a Unix timestamp."),
    end: int = typer.Argument(..., help="End of the range (inclusive) as a Unix timestamp."),
    sensors: Optional[str] = typer.Option(
        None, "--sensors", help="Comma separated serial numbers that must be known to the server."
    ),
    limit: Optional[int] = typer.Option(None, "--limit", help="Passed through to the server."),
) -> None:
    """Show the reading batches stored between START and END."""
    state = _get_state(ctx)
    render_readings(state.client.get_readings(start, end, sensors=sensors, limit=limit))


@app.command("push")
def push_command(
    ctx: typer.Context,
    file: Path = typer.Argument(
        ..., exists=True, dir_okay=False, readable=True, help="JSON file holding an array of readings."
    ),
) -> None:
    """Submit a batch of readings from a JSON file."""
    state = _get_state(ctx)
    count = state.client.push_readings(file)
    typer.secho(f"Stored {count} reading(s).", fg=typer.colors.GREEN)
