"""Unit tests for logging configuration."""

from __future__ import annotations

import json
import logging
import logging.handlers
from io import StringIO
from pathlib import Path
from typing import Any

import pytest
import structlog

from collybrix.config import LoggingConfig
from collybrix.logging import (
    add_correlation_id,
    bind_user_context,
    clear_request_context,
    get_correlation_id,
    get_logger,
    set_correlation_id,
    setup_logging,
)


@pytest.fixture(autouse=True)
def reset_logging() -> None:
    logging.getLogger().handlers.clear()
    structlog.reset_defaults()
    structlog.contextvars.clear_contextvars()
    set_correlation_id(None)


@pytest.fixture
def stream() -> StringIO:
    return StringIO()


def _capture(config: LoggingConfig, stream: StringIO) -> None:
    setup_logging(config)
    logging.getLogger().handlers[0].stream = stream


def _last_entry(stream: StringIO) -> dict[str, Any]:
    return json.loads(stream.getvalue().strip().splitlines()[-1])


def test_json_output_format(stream: StringIO) -> None:
    _capture(LoggingConfig(level="INFO", format="json"), stream)

    get_logger("collybrix.test").info("task_created", task_id="t-1", story_points=5)

    entry = _last_entry(stream)
    assert entry["event"] == "task_created"
    assert entry["task_id"] == "t-1"
    assert entry["story_points"] == 5
    assert entry["level"] == "info"
    assert entry["logger"] == "collybrix.test"
    assert "timestamp" in entry


def test_console_output_is_not_json(stream: StringIO) -> None:
    _capture(LoggingConfig(level="DEBUG", format="console"), stream)

    get_logger("collybrix.test").debug("sprint_started", status="active")

    output = stream.getvalue()
    assert "sprint_started" in output
    assert "active" in output
    with pytest.raises(json.JSONDecodeError):
        json.loads(output.strip())


def test_level_filtering(stream: StringIO) -> None:
    _capture(LoggingConfig(level="WARNING", format="json"), stream)
    logger = get_logger("collybrix.test")

    logger.info("hidden")
    assert stream.getvalue() == ""

    logger.warning("shown")
    assert _last_entry(stream)["event"] == "shown"


def test_correlation_id_added_and_cleared(stream: StringIO) -> None:
    _capture(LoggingConfig(level="INFO", format="json"), stream)
    logger = get_logger("collybrix.test")

    set_correlation_id("corr-123")
    assert get_correlation_id() == "corr-123"
    logger.info("with_correlation")
    assert _last_entry(stream)["correlation_id"] == "corr-123"

    set_correlation_id(None)
    logger.info("without_correlation")
    assert "correlation_id" not in _last_entry(stream)


def test_correlation_id_processor() -> None:
    assert "correlation_id" not in add_correlation_id(None, "", {"event": "x"})

    set_correlation_id("abc")
    assert add_correlation_id(None, "", {"event": "x"})["correlation_id"] == "abc"


def test_user_context_binding(stream: StringIO) -> None:
    _capture(LoggingConfig(level="INFO", format="json"), stream)

    bind_user_context("user_2abc")
    get_logger("collybrix.a").info("first")
    assert _last_entry(stream)["user_id"] == "user_2abc"

    clear_request_context()
    get_logger("collybrix.b").info("second")
    assert "user_id" not in _last_entry(stream)


def test_file_rotation_handler(tmp_path: Path) -> None:
    log_file = tmp_path / "logs" / "collybrix.log"
    setup_logging(
        LoggingConfig(
            level="INFO",
            format="json",
            file=log_file,
            rotation_size_mb=10,
            retention_count=3,
        )
    )

    handler = logging.getLogger().handlers[0]
    assert isinstance(handler, logging.handlers.RotatingFileHandler)
    assert handler.maxBytes == 10 * 1024 * 1024
    assert handler.backupCount == 3

    get_logger("collybrix.test").info("file_write", data="x")
    handler.flush()

    entry = json.loads(log_file.read_text().strip())
    assert entry["event"] == "file_write"


def test_exception_formatting(stream: StringIO) -> None:
    _capture(LoggingConfig(level="INFO", format="json"), stream)

    try:
        raise ValueError("boom")
    except ValueError:
        get_logger("collybrix.test").exception("request_failed")

    entry = _last_entry(stream)
    assert entry["level"] == "error"
    assert "ValueError: boom" in entry["exception"]


def test_exception_stays_on_one_json_line(stream: StringIO) -> None:
    _capture(LoggingConfig(level="INFO", format="json"), stream)

    try:
        raise ValueError("boom")
    except ValueError:
        get_logger("collybrix.test").error("task_sync_failed", exc_info=True)

    lines = stream.getvalue().strip().splitlines()
    assert len(lines) == 1
    entry = json.loads(lines[0])
    assert entry["event"] == "task_sync_failed"
    assert "Traceback" in entry["exception"]


def test_stdlib_records_rendered_as_json(stream: StringIO) -> None:
    _capture(LoggingConfig(level="INFO", format="json"), stream)

    set_correlation_id("corr-9")
    logging.getLogger("uvicorn.error").warning("worker %s stopped", 3)

    entry = _last_entry(stream)
    assert entry["event"] == "worker 3 stopped"
    assert entry["level"] == "warning"
    assert entry["logger"] == "uvicorn.error"
    assert entry["correlation_id"] == "corr-9"
