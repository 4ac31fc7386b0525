from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List

import pytest
from typer.testing import CliRunner

from cli.app import app
from settings import get_settings


class StubClient:
    def __init__(self, config) -> None:
        self.config = config
        self.pushed_path: Path | None = None
        self.readings_calls: List[tuple[int, int, str | None, int | None]] = []
        self.readings_payload: Dict[str, Any] = {
            "2024-01-01T00:00:00Z": [
                {"Serial": "28-0001", "Type": "T", "Temperature": 21.5},
                {"Serial": "hum-1", "Type": "H", "Temperature": 19.0, "humidity": 40},
            ]
        }
        self.closed = False

    def get_sensors(self) -> Dict[str, str]:
        return {"28-0001": "Unknown", "hum-1": "Unknown"}

    def get_readings(self, start: int, end: int, sensors=None, limit=None) -> Dict[str, Any]:
        self.readings_calls.append((start, end, sensors, limit))
        return self.readings_payload

    def push_readings(self, path: Path) -> int:
        self.pushed_path = path
        return len(json.loads(path.read_text()))

    def close(self) -> None:
        self.closed = True


@pytest.fixture()
def runner() -> CliRunner:
    return CliRunner()


def _install_stub(monkeypatch) -> StubClient:
    stub = StubClient(config=None)

    def factory(config):
        stub.config = config
        return stub

    monkeypatch.setattr("cli.app.ApiClient", factory)
    return stub


def test_sensors_command(monkeypatch, runner: CliRunner) -> None:
    stub = _install_stub(monkeypatch)

    result = runner.invoke(app, ["--base-url", "http://sensors.local:3834/", "sensors"])

    assert result.exit_code == 0
    assert "28-0001: Unknown" in result.stdout
    assert "hum-1: Unknown" in result.stdout
    assert stub.config.base_url == "http://sensors.local:3834"
    assert stub.closed is True


def test_readings_command(monkeypatch, runner: CliRunner) -> None:
    stub = _install_stub(monkeypatch)

    result = runner.invoke(app, ["readings", "1704067000", "1704068000", "--sensors", "28-0001", "--limit", "5"])

    assert result.exit_code == 0
    assert stub.readings_calls == [(1704067000, 1704068000, "28-0001", 5)]
    assert "2024-01-01T00:00:00Z" in result.stdout
    assert "hum-1 [H] temperature=19.0 humidity=40" in result.stdout


def test_push_command(monkeypatch, runner: CliRunner, tmp_path: Path) -> None:
    stub = _install_stub(monkeypatch)
    batch_path = tmp_path / "batch.json"
    batch_path.write_text(json.dumps([{"Serial": "28-0001", "Type": "T", "Temperature": 20.0}]))

    result = runner.invoke(app, ["push", str(batch_path)])

    assert result.exit_code == 0
    assert "Stored 1 reading(s)." in result.stdout
    assert stub.pushed_path == batch_path


def test_serve_opens_store_and_runs_uvicorn(monkeypatch, runner: CliRunner, tmp_path: Path) -> None:
    _install_stub(monkeypatch)
    calls: List[Dict[str, Any]] = []

    def fake_run(asgi_app, **kwargs) -> None:
        calls.append({"app": asgi_app, **kwargs})

    monkeypatch.setattr("cli.app.uvicorn.run", fake_run)
    get_settings.cache_clear()
    db_path = tmp_path / "readings.db"

    try:
        result = runner.invoke(app, ["serve", "--db", str(db_path), "--ip", "127.0.0.1", "--port", "9000"])
    finally:
        get_settings.cache_clear()

    assert result.exit_code == 0, result.output
    assert db_path.exists()
    assert len(calls) == 1
    assert calls[0]["host"] == "127.0.0.1"
    assert calls[0]["port"] == 9000
    settings = calls[0]["app"].state.settings
    assert settings.database_file == str(db_path)
    assert settings.listen_port == 9000


def test_serve_exits_when_store_cannot_be_opened(monkeypatch, runner: CliRunner, tmp_path: Path) -> None:
    _install_stub(monkeypatch)
    monkeypatch.setattr("cli.app.uvicorn.run", lambda *args, **kwargs: pytest.fail("server started"))

    result = runner.invoke(app, ["serve", "--db", str(tmp_path / "missing" / "readings.db")])

    assert result.exit_code == 1
    assert "Cannot open database" in result.output
