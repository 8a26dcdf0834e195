"""
Unit tests for structured logging setup.
"""

from __future__ import annotations

import io
import json
import logging

import pytest
import structlog

from cogcore.config import LoggingConfig
from cogcore.telemetry import setup_logging


@pytest.fixture
def restore_logging():
    yield
    structlog.reset_defaults()
    structlog.contextvars.clear_contextvars()
    logging.getLogger().handlers.clear()
    logging.getLogger("noisy.lib").setLevel(logging.NOTSET)


def last_entry(stream: io.StringIO) -> dict:
    return json.loads(stream.getvalue().strip().splitlines()[-1])


def test_json_output_carries_instance_id(restore_logging, capsys) -> None:
    setup_logging(LoggingConfig(level="INFO", format="json"), instance_id="lab-1")

    structlog.get_logger("cogcore.test").info("goal_activated", goal_id=3)

    line = capsys.readouterr().out.strip().splitlines()[-1]
    entry = json.loads(line)
    assert entry["event"] == "goal_activated"
    assert entry["goal_id"] == 3
    assert entry["instance_id"] == "lab-1"
    assert entry["level"] == "info"


def test_level_filters_lower_levels(restore_logging, capsys) -> None:
    setup_logging(LoggingConfig(level="WARNING", format="json"))

    structlog.get_logger("cogcore.test").info("quiet")

    assert capsys.readouterr().out == ""
    assert logging.getLogger().level == logging.WARNING


def test_entries_written_to_given_stream(restore_logging) -> None:
    stream = io.StringIO()
    setup_logging(LoggingConfig(level="INFO", format="json"), stream=stream)

    structlog.get_logger("cogcore.test").info("task_completed", task_id=7)

    entry = last_entry(stream)
    assert entry["event"] == "task_completed"
    assert entry["task_id"] == 7
    assert entry["logger"] == "cogcore.test"
    assert "timestamp" in entry


def test_exceptions_rendered_as_structured_traceback(restore_logging) -> None:
    stream = io.StringIO()
    setup_logging(LoggingConfig(level="INFO", format="json"), stream=stream)

    try:
        raise RuntimeError("reasoner crashed")
    except RuntimeError:
        structlog.get_logger("cogcore.test").exception("task_failed", task_id=3)

    entry = last_entry(stream)
    assert entry["event"] == "task_failed"
    assert entry["exception"][0]["exc_type"] == "RuntimeError"
    assert "exc_info" not in entry


def test_stdlib_records_share_the_handler(restore_logging) -> None:
    stream = io.StringIO()
    setup_logging(LoggingConfig(level="INFO", format="json"), instance_id="lab-2", stream=stream)

    logging.getLogger("cogcore.plain").warning("bank %s", "overdrawn")

    entry = last_entry(stream)
    assert entry["event"] == "bank overdrawn"
    assert entry["level"] == "warning"
    assert entry["logger"] == "cogcore.plain"
    assert entry["instance_id"] == "lab-2"


def test_quiet_loggers_capped_at_warning(restore_logging) -> None:
    config = LoggingConfig(level="DEBUG", format="console", quiet_loggers=["noisy.lib"])
    handler = setup_logging(config, stream=io.StringIO())

    assert logging.getLogger("noisy.lib").level == logging.WARNING
    assert logging.getLogger().handlers == [handler]
