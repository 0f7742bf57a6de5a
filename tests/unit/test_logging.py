"""Unit tests for the structured logging configuration.

Both logging styles used in the codebase must end up as JSON lines on the
root handler: stdlib ``"acquisition: ..."`` messages and structlog events.
"""

from __future__ import annotations

import json
import logging
from io import StringIO
from typing import Callable

import structlog

from fastpitch_events.core.logging_config import (
    MAX_VALUE_LENGTH,
    configure_logging,
    request_id_var,
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _capture(log_level: str, emit: Callable[[], None], *, process: str = "api") -> list[dict]:
    """Run ``emit`` with the root handler writing into a buffer; return parsed records."""
    configure_logging(log_level, process=process)

    buffer = StringIO()
    swapped = []
    for handler in logging.getLogger().handlers:
        if hasattr(handler, "stream"):
            swapped.append((handler, handler.stream))
            handler.stream = buffer

    try:
        emit()
    finally:
        for handler, stream in swapped:
            handler.flush()
            handler.stream = stream

    return [json.loads(line) for line in buffer.getvalue().splitlines() if line.strip()]


def _find(records: list[dict], event: str) -> dict:
    matching = [r for r in records if r.get("event") == event]
    assert matching, f"no record with event={event!r} in {records!r}"
    return matching[0]


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------


class TestJsonOutput:
    def test_stdlib_records_render_as_json(self) -> None:
        records = _capture(
            "INFO",
            lambda: logging.getLogger("fastpitch_events.acquisition.acquirer").info(
                "acquisition: attempt %d (%s) -> %s", 2, "render_and_read", "blocked"
            ),
        )

        record = _find(records, "acquisition: attempt 2 (render_and_read) -> blocked")
        assert record["level"] == "info"
        assert record["logger"] == "fastpitch_events.acquisition.acquirer"
        assert "timestamp" in record

    def test_structlog_events_keep_their_fields(self) -> None:
        records = _capture(
            "INFO",
            lambda: structlog.get_logger("fastpitch_events.storage.snapshots").info(
                "snapshot.written", slug="pgf-tournaments", bytes=512
            ),
        )

        record = _find(records, "snapshot.written")
        assert record["slug"] == "pgf-tournaments"
        assert record["bytes"] == 512

    def test_level_threshold_is_applied(self) -> None:
        records = _capture(
            "WARNING",
            lambda: logging.getLogger("test.threshold").info("below_threshold"),
        )

        assert not [r for r in records if r.get("event") == "below_threshold"]


class TestRedaction:
    def test_secret_bearing_keys_are_redacted(self) -> None:
        records = _capture(
            "INFO",
            lambda: structlog.get_logger("test.redaction").info(
                "worker.configured",
                celery_broker_url="redis://:hunter2@cache:6379/1",
                headers={"Cookie": "session=abc", "Accept": "text/html"},
            ),
        )

        record = _find(records, "worker.configured")
        assert record["celery_broker_url"] == "[REDACTED]"
        assert record["headers"] == {"Cookie": "[REDACTED]", "Accept": "text/html"}

    def test_long_values_are_truncated(self) -> None:
        markup = "<html>" + "x" * (MAX_VALUE_LENGTH * 2)
        records = _capture(
            "INFO",
            lambda: structlog.get_logger("test.truncation").warning("adapter.parse_failed", body=markup),
        )

        body = _find(records, "adapter.parse_failed")["body"]
        assert body.startswith("<html>")
        assert body.endswith(f"...[+{len(markup) - MAX_VALUE_LENGTH} chars]")


class TestProcessTag:
    def test_defaults_to_api(self) -> None:
        records = _capture("INFO", lambda: logging.getLogger("test.process").info("api_record"))
        assert _find(records, "api_record")["process"] == "api"

    def test_worker_records_are_tagged(self) -> None:
        records = _capture(
            "INFO",
            lambda: structlog.get_logger("test.process").info("snapshot.run_started"),
            process="worker",
        )
        assert _find(records, "snapshot.run_started")["process"] == "worker"


class TestRequestIdContextVar:
    def test_request_id_appears_in_output(self) -> None:
        token = request_id_var.set("req-1234")
        try:
            records = _capture(
                "INFO", lambda: logging.getLogger("test.request_id").info("inside_request")
            )
        finally:
            request_id_var.reset(token)

        assert _find(records, "inside_request")["request_id"] == "req-1234"

    def test_no_request_id_outside_requests(self) -> None:
        token = request_id_var.set(None)
        try:
            records = _capture(
                "INFO", lambda: logging.getLogger("test.request_id").info("outside_request")
            )
        finally:
            request_id_var.reset(token)

        assert _find(records, "outside_request").get("request_id") is None


class TestConfigureLogging:
    def test_calling_twice_keeps_one_root_handler(self) -> None:
        configure_logging("INFO")
        configure_logging("INFO")
        assert len(logging.getLogger().handlers) == 1

    def test_chatty_libraries_are_quieted(self) -> None:
        configure_logging("INFO")
        assert logging.getLogger("httpx").level == logging.WARNING
        assert logging.getLogger("httpcore").level == logging.WARNING
