import logging
from typing import Iterator

import pytest

from logging_config import HANDLER_NAME, ContextualFormatter, build_logging_config, configure_logging


def _record(**extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="services.readings",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg="Storing reading",
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


@pytest.fixture
def bare_root() -> Iterator[logging.Logger]:
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    root.handlers = []
    yield root
    root.handlers = saved_handlers
    root.setLevel(saved_level)


def test_formatter_appends_reading_context() -> None:
    formatter = ContextualFormatter(fmt="%(levelname)s %(message)s")

    line = formatter.format(_record(serial="28-0001", timestamp_key="2024-01-01T00:00:00Z", other="x"))

    assert line == "INFO Storing reading | serial=28-0001 timestamp_key=2024-01-01T00:00:00Z"


def test_formatter_quotes_prose_reasons() -> None:
    formatter = ContextualFormatter(fmt="%(message)s", context=["timestamp_key", "reason"])

    line = formatter.format(_record(timestamp_key="2024-01-01T00:00:00Z", reason="Input should be a valid list"))

    assert line == "Storing reading | timestamp_key=2024-01-01T00:00:00Z reason='Input should be a valid list'"


def test_formatter_leaves_plain_messages_alone() -> None:
    formatter = ContextualFormatter(fmt="%(message)s", context=["bucket"])

    assert formatter.format(_record(serial="ignored")) == "Storing reading"


def test_logging_config_routes_root_through_one_handler() -> None:
    config = build_logging_config("DEBUG")

    assert config["root"] == {"handlers": [HANDLER_NAME], "level": "DEBUG"}
    assert config["formatters"]["wort"]["()"] is ContextualFormatter


def test_configure_logging_installs_once_then_only_sets_level(bare_root: logging.Logger) -> None:
    configure_logging("DEBUG")
    configure_logging("WARNING")

    assert [handler.get_name() for handler in bare_root.handlers] == [HANDLER_NAME]
    assert isinstance(bare_root.handlers[0].formatter, ContextualFormatter)
    assert bare_root.level == logging.WARNING
