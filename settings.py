from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache


_DATABASE_FILE_ENV = "WORT_DATABASE_FILE"
_LISTEN_IP_ENV = "WORT_LISTEN_IP"
_LISTEN_PORT_ENV = "WORT_LISTEN_PORT"
_LOG_LEVEL_ENV = "LOG_LEVEL"

DEFAULT_DATABASE_FILE = "temperatures.db"
DEFAULT_LISTEN_IP = "0.0.0.0"
DEFAULT_LISTEN_PORT = 3834


@dataclass(frozen=True)
class Settings:
    database_file: str = DEFAULT_DATABASE_FILE
    listen_ip: str = DEFAULT_LISTEN_IP
    listen_port: int = DEFAULT_LISTEN_PORT
    log_level: str = "INFO"


def _read_str_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or default


def _read_port(default: int) -> int:
    value = os.getenv(_LISTEN_PORT_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = int(candidate)
    except ValueError:
        return default
    return parsed if 0 < parsed < 65536 else default


def _read_log_level(default: str) -> str:
    value = os.getenv(_LOG_LEVEL_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    return candidate.upper()


@lru_cache
def get_settings() -> Settings:
    return Settings(
        database_file=_read_str_env(_DATABASE_FILE_ENV, DEFAULT_DATABASE_FILE),
        listen_ip=_read_str_env(_LISTEN_IP_ENV, DEFAULT_LISTEN_IP),
        listen_port=_read_port(DEFAULT_LISTEN_PORT),
        log_level=_read_log_level("INFO"),
    )
