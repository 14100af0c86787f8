"""Unit tests for collector error categorization and structured events."""

from __future__ import annotations

import datetime as dt

import httpx
import msgspec
import pytest

from cfaudit.audit import (
    AuditAPIError,
    AuditResponseShapeError,
    CollectorEventLogger,
    CycleSummary,
    ErrorCategory,
    EventSerializationError,
    categorize_error,
)
from cfaudit.uaa import AuthError
from tests.helpers.femtologging_capture import capture_femto_logs


@pytest.mark.parametrize(
    ("error", "expected"),
    [
        (AuditAPIError.http_error(503, "/v3/audit_events"), ErrorCategory.TRANSIENT),
        (AuditAPIError.http_error(429, "/v3/audit_events"), ErrorCategory.TRANSIENT),
        (AuditAPIError.http_error(403, "/v3/audit_events"), ErrorCategory.CLIENT_ERROR),
        (
            AuditAPIError.request_failed("/v3/audit_events", "reset"),
            ErrorCategory.TRANSIENT,
        ),
        (AuditResponseShapeError.undecodable("/x", "bad"), ErrorCategory.SCHEMA_DRIFT),
        (msgspec.ValidationError("bad"), ErrorCategory.SCHEMA_DRIFT),
        (EventSerializationError.for_event("g1", "bad"), ErrorCategory.DATA_SHAPE),
        (AuthError.http_error(401), ErrorCategory.CONFIGURATION),
        (httpx.ConnectTimeout("slow"), ErrorCategory.TRANSIENT),
        (KeyError("guid"), ErrorCategory.UNKNOWN),
    ],
    ids=[
        "server-error",
        "rate-limited",
        "forbidden",
        "transport",
        "shape",
        "decode",
        "serialization",
        "auth",
        "httpx-timeout",
        "unknown",
    ],
)
def test_categorize_error(error: BaseException, expected: ErrorCategory) -> None:
    """Errors map onto alert categories."""
    assert categorize_error(error) is expected


def test_cycle_completed_event_reports_counts() -> None:
    """Completed cycles log their counts and checkpoint."""
    event_logger = CollectorEventLogger()
    summary = CycleSummary(
        events_collected=4, pages_fetched=2, checkpoint="g9", attempts=1
    )

    with capture_femto_logs("cfaudit.audit.observability") as capture:
        event_logger.log_cycle_completed(summary, dt.timedelta(seconds=1.5))
        capture.wait_for_count(1)

    message = capture.records[0].message
    assert message.startswith("[collector.cycle.completed]")
    assert "events_collected=4" in message
    assert "checkpoint=g9" in message
    assert "duration_seconds=1.500" in message


def test_tick_event_marks_empty_checkpoint() -> None:
    """An empty checkpoint is rendered explicitly."""
    with capture_femto_logs("cfaudit.audit.observability") as capture:
        CollectorEventLogger().log_tick(checkpoint="")
        capture.wait_for_count(1)

    assert capture.records[0].message == "[collector.tick] checkpoint=<empty>"


def test_exhausted_event_is_logged_at_error_with_exception() -> None:
    """The fatal event carries the last error."""
    error = AuditAPIError.http_error(500, "/v3/audit_events")

    with capture_femto_logs("cfaudit.audit.observability") as capture:
        CollectorEventLogger().log_cycle_exhausted(attempts=10, error=error)
        capture.wait_for_count(1)

    record = capture.records[0]
    assert record.level == "ERROR"
    assert "attempts=10" in record.message
    assert "error_category=transient" in record.message
