from __future__ import annotations

from settings import DEFAULT_DATABASE_FILE, DEFAULT_LISTEN_IP, DEFAULT_LISTEN_PORT, get_settings


def test_defaults_without_environment(monkeypatch) -> None:
    for name in ("WORT_DATABASE_FILE", "WORT_LISTEN_IP", "WORT_LISTEN_PORT", "LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()

    try:
        settings = get_settings()
        assert settings.database_file == DEFAULT_DATABASE_FILE == "temperatures.db"
        assert settings.listen_ip == DEFAULT_LISTEN_IP == "0.0.0.0"
        assert settings.listen_port == DEFAULT_LISTEN_PORT == 3834
        assert settings.log_level == "INFO"
    finally:
        get_settings.cache_clear()


def test_environment_overrides_apply(monkeypatch, tmp_path) -> None:
    db_path = tmp_path / "custom.db"
    monkeypatch.setenv("WORT_DATABASE_FILE", str(db_path))
    monkeypatch.setenv("WORT_LISTEN_IP", "127.0.0.1")
    monkeypatch.setenv("WORT_LISTEN_PORT", "8080")
    monkeypatch.setenv("LOG_LEVEL", "debug")
    get_settings.cache_clear()

    try:
        settings = get_settings()
        assert settings.database_file == str(db_path)
        assert settings.listen_ip == "127.0.0.1"
        assert settings.listen_port == 8080
        assert settings.log_level == "DEBUG"
    finally:
        get_settings.cache_clear()


def test_invalid_port_falls_back_to_default(monkeypatch) -> None:
    get_settings.cache_clear()
    try:
        for raw in ("not-a-port", "0", "70000", "  "):
            monkeypatch.setenv("WORT_LISTEN_PORT", raw)
            get_settings.cache_clear()
            assert get_settings().listen_port == DEFAULT_LISTEN_PORT
    finally:
        get_settings.cache_clear()
