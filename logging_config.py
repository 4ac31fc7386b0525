"""Process-wide logging for the wort service and CLI."""

from __future__ import annotations

import logging
from logging.config import dictConfig
from typing import Any, Dict, Iterable

from settings import get_settings

# Attributes passed through ``extra=`` by the readings service.
READING_CONTEXT = (
    "serial",
    "temperature",
    "bucket",
    "timestamp_key",
    "start_key",
    "end_key",
    "reading_count",
    "reason",
)

HANDLER_NAME = "wort"


class ContextualFormatter(logging.Formatter):
    """Formatter that suffixes each line with the record's reading context."""

    def __init__(
        self,
        fmt: str | None = None,
        datefmt: str | None = None,
        context: Iterable[str] = READING_CONTEXT,
    ) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt)
        self.context = tuple(context)

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        pairs = [
            f"{name}={_render(value)}"
            for name in self.context
            if (value := getattr(record, name, None)) is not None
        ]
        return f"{line} | {' '.join(pairs)}" if pairs else line


def _render(value: Any) -> str:
    # Decode failure reasons are prose; quote them so the pairs stay splittable.
    text = str(value)
    return repr(text) if " " in text else text


def build_logging_config(level: str | int) -> Dict[str, Any]:
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "wort": {
                "()": ContextualFormatter,
                "fmt": "%(asctime)s %(levelname)-7s %(name)s: %(message)s",
                "datefmt": "%Y-%m-%dT%H:%M:%S",
            }
        },
        "handlers": {
            HANDLER_NAME: {"class": "logging.StreamHandler", "formatter": "wort"},
        },
        "root": {"handlers": [HANDLER_NAME], "level": level},
    }


def configure_logging(level: str | int | None = None) -> None:
    """Install the wort handler once; later calls only adjust the root level."""
    root = logging.getLogger()
    if any(handler.get_name() == HANDLER_NAME for handler in root.handlers):
        if level is not None:
            root.setLevel(level)
        return
    dictConfig(build_logging_config(level if level is not None else get_settings().log_level))
