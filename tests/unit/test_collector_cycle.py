"""Unit tests for bounded-retry collection cycles."""

from __future__ import annotations

import datetime as dt

import msgspec
import pytest

from cfaudit.audit import (
    AuditAPIError,
    AuditEvent,
    AuditResponseShapeError,
    CollectionExhaustedError,
    CollectorConfig,
    CollectorState,
    EventSerializationError,
)
from tests.helpers.audit_events import (
    NOW,
    FakeAuditAPI,
    RecordingBackoff,
    event_json,
    events_minutes_ago,
    make_collector,
    page_json,
)
from tests.helpers.femtologging_capture import capture_femto_logs

_HTTP_SERVICE_UNAVAILABLE = 503


def _guids(payloads: list[bytes]) -> list[str]:
    return [msgspec.json.decode(p, type=AuditEvent).guid for p in payloads]


@pytest.mark.asyncio
async def test_cycle_retries_until_an_attempt_succeeds() -> None:
    """Failed attempts are retried with delays from the backoff policy."""
    api = FakeAuditAPI(
        pages={1: page_json(events_minutes_ago(["a", "b"]))}, failures={1, 2}
    )
    backoff = RecordingBackoff()
    harness = make_collector(api, backoff=backoff)

    with capture_femto_logs("cfaudit.audit.observability") as capture:
        summary = await harness.collector.run_cycle()
        capture.wait_for_count(3)

    assert summary.attempts == 3
    assert summary.events_collected == 2
    assert backoff.attempts == [1, 2]
    assert _guids(harness.drain()) == ["a", "b"]
    assert harness.collector.state is CollectorState.IDLE
    failures = capture.messages_containing("collector.attempt.failed")
    assert len(failures) == 2
    assert "error_category=transient" in failures[0].message
    assert capture.messages_containing("collector.cycle.completed")


@pytest.mark.asyncio
async def test_failed_attempt_restarts_scan_without_duplicating_output() -> None:
    """A mid-scan failure restarts from page one and emits events once."""
    api = FakeAuditAPI(
        pages={
            1: page_json(events_minutes_ago(["n1", "n2"]), next_page=2),
            2: page_json([event_json("n3", NOW - dt.timedelta(minutes=3))]),
        },
        failures={2},
    )
    harness = make_collector(api, checkpoint="")

    summary = await harness.collector.run_cycle()

    assert api.requested_pages == [1, 2, 1, 2]
    assert _guids(harness.drain()) == ["n1", "n2", "n3"]
    assert harness.checkpoints.load() == "n1"
    assert summary.attempts == 2
    assert summary.pages_fetched == 2


@pytest.mark.asyncio
async def test_exhausted_retries_terminate_the_collector() -> None:
    """After ten failures the cycle raises and the collector stops."""
    api = FakeAuditAPI(pages={}, always_fail=True)
    backoff = RecordingBackoff()
    harness = make_collector(api, checkpoint="keep", backoff=backoff)

    with capture_femto_logs("cfaudit.audit.observability") as capture:
        with pytest.raises(CollectionExhaustedError) as excinfo:
            await harness.collector.run_cycle()
        capture.wait_for_count(10)

    assert excinfo.value.attempts == 10
    assert isinstance(excinfo.value.__cause__, AuditAPIError)
    assert excinfo.value.__cause__.status_code == _HTTP_SERVICE_UNAVAILABLE
    assert len(api.requests) == 10
    assert backoff.attempts == list(range(1, 10))
    assert harness.collector.state is CollectorState.TERMINATED
    assert harness.checkpoints.load() == "keep"
    assert harness.drain() == []
    assert capture.messages_containing("collector.cycle.exhausted")


@pytest.mark.asyncio
async def test_max_attempts_is_configurable() -> None:
    """The attempt bound follows the collector configuration."""
    api = FakeAuditAPI(pages={}, always_fail=True)
    harness = make_collector(api, config=CollectorConfig(max_attempts=2))

    with pytest.raises(CollectionExhaustedError):
        await harness.collector.run_cycle()

    assert len(api.requests) == 2


@pytest.mark.asyncio
async def test_serialization_failure_leaves_checkpoint_untouched(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    """Encoding errors abort the attempt before the checkpoint moves."""
    api = FakeAuditAPI(pages={1: page_json(events_minutes_ago(["s1"]))})
    harness = make_collector(api, checkpoint="before")

    def _fail(event: AuditEvent) -> bytes:
        raise EventSerializationError.for_event(event.guid, "boom")

    monkeypatch.setattr(harness.collector, "_serialize", _fail)

    with pytest.raises(EventSerializationError, match="s1"):
        await harness.collector.collect_once()

    assert harness.checkpoints.load() == "before"
    assert harness.drain() == []


@pytest.mark.asyncio
async def test_timestamps_without_offset_are_retried_as_malformed_pages() -> None:
    """Naive timestamps fail decoding and exhaust the retry budget."""
    naive = event_json("tz-less", NOW)
    naive["created_at"] = "2024-07-01T11:59:00"
    api = FakeAuditAPI(pages={1: page_json([naive])})
    harness = make_collector(api, checkpoint="keep")

    with pytest.raises(CollectionExhaustedError) as excinfo:
        await harness.collector.run_cycle()

    assert isinstance(excinfo.value.__cause__, AuditResponseShapeError)
    assert len(api.requests) == 10
    assert harness.checkpoints.load() == "keep"
    assert harness.collector.state is CollectorState.TERMINATED


@pytest.mark.asyncio
async def test_unexpected_errors_terminate_the_collector(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    """Errors outside the retry policy propagate and end the collector."""
    harness = make_collector(FakeAuditAPI(pages={}))

    async def _broken() -> None:
        msg = "guid"
        raise KeyError(msg)

    monkeypatch.setattr(harness.collector, "collect_once", _broken)

    with pytest.raises(KeyError):
        await harness.collector.run_cycle()

    assert harness.collector.state is CollectorState.TERMINATED
