"""Incremental audit event collector.

On every tick the collector pages through ``/v3/audit_events`` newest first
and stops at the first event that is either the checkpoint recorded by the
previous cycle or older than the lookback window. The lookback bound keeps
the scan finite when the checkpoint has rotated out of the upstream stream.
Collected events are anonymized, serialized and pushed one by one onto the
outbound queue in newest-first order.

A failed attempt restarts the whole scan from the first page with the same
checkpoint; after ``max_attempts`` failures the cycle raises
:class:`CollectionExhaustedError`, which is fatal for the process.
"""

from __future__ import annotations

import asyncio
import dataclasses
import datetime as dt
import enum
import typing as typ

import httpx
import msgspec

from cfaudit.common.time import utcnow

from .checkpoint import InMemoryCheckpointStore
from .errors import (
    AuditAPIError,
    AuditResponseShapeError,
    CollectionExhaustedError,
    EventSerializationError,
)
from .models import anonymize
from .observability import CollectorEventLogger, CycleSummary
from .retry import DEFAULT_MAX_ATTEMPTS, ExponentialBackoff

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from .checkpoint import CheckpointStore
    from .client import AuditEventsClient
    from .models import AuditEvent
    from .retry import BackoffPolicy

_RETRYABLE_ERRORS: tuple[type[BaseException], ...] = (
    AuditAPIError,
    AuditResponseShapeError,
    EventSerializationError,
    httpx.HTTPError,
)


class Authenticator(typ.Protocol):
    """Source of the bearer token used for audit API requests."""

    @property
    def access_token(self) -> str:
        """Return the current bearer token."""
        ...

    async def authenticate(self) -> None:
        """Obtain a bearer token, raising on failure."""
        ...


class CollectorState(enum.StrEnum):
    """Lifecycle states of the collector."""

    IDLE = "idle"
    COLLECTING = "collecting"
    TERMINATED = "terminated"


@dataclasses.dataclass(frozen=True, slots=True)
class CollectorConfig:
    """Runtime knobs for incremental collection."""

    cadence: dt.timedelta = dt.timedelta(minutes=15)
    lookback: dt.timedelta = dt.timedelta(hours=6)
    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    max_pages: int = 1000


@dataclasses.dataclass(frozen=True, slots=True)
class ScanResult:
    """Events gathered by one paginated scan, newest first."""

    events: tuple[AuditEvent, ...]
    pages_fetched: int
    truncated: bool = False


def find_boundary(
    events: cabc.Sequence[AuditEvent], *, checkpoint: str, cutoff: dt.datetime
) -> int | None:
    """Return the index of the first already-delivered or too-old event."""
    for index, event in enumerate(events):
        if checkpoint and event.guid == checkpoint:
            return index
        if event.created_at < cutoff:
            return index
    return None


class EventCollector:
    """Poll the audit events API and queue new events for deduplication."""

    def __init__(  # noqa: PLR0913
        self,
        authenticator: Authenticator,
        client: AuditEventsClient,
        destination: asyncio.Queue[bytes],
        *,
        config: CollectorConfig | None = None,
        backoff: BackoffPolicy | None = None,
        checkpoints: CheckpointStore | None = None,
        clock: cabc.Callable[[], dt.datetime] = utcnow,
        event_logger: CollectorEventLogger | None = None,
    ) -> None:
        """Create a collector bound to an authenticator and API client."""
        self._authenticator = authenticator
        self._client = client
        self._destination = destination
        self._config = config or CollectorConfig()
        self._backoff = backoff or ExponentialBackoff()
        self._checkpoints = checkpoints or InMemoryCheckpointStore()
        self._clock = clock
        self._event_logger = event_logger or CollectorEventLogger()
        self._encoder = msgspec.json.Encoder()
        self._state = CollectorState.IDLE

    @property
    def state(self) -> CollectorState:
        """Return the current lifecycle state."""
        return self._state

    @property
    def checkpoint(self) -> str:
        """Return the GUID of the newest event delivered so far."""
        return self._checkpoints.load()

    async def run(self) -> None:
        """Authenticate once, then collect on every tick until failure.

        Raises
        ------
        AuthError
            If the initial authentication fails.
        CollectionExhaustedError
            If a cycle fails ``max_attempts`` times.

        """
        await self._authenticator.authenticate()
        self._event_logger.log_started(
            api_url=self._client.first_page_href, cadence=self._config.cadence
        )

        loop = asyncio.get_running_loop()
        interval = self._config.cadence.total_seconds()
        next_tick = loop.time() + interval
        while True:
            await asyncio.sleep(max(next_tick - loop.time(), 0.0))
            self._event_logger.log_tick(checkpoint=self.checkpoint)
            await self.run_cycle()
            # Ticks that elapsed during a slow cycle are dropped, not queued.
            now = loop.time()
            next_tick += interval
            while next_tick <= now:
                next_tick += interval

    async def run_cycle(self) -> CycleSummary:
        """Run one collection cycle with bounded retries."""
        started_at = utcnow()
        self._state = CollectorState.COLLECTING
        attempt = 0
        while True:
            attempt += 1
            try:
                summary = await self.collect_once()
            except _RETRYABLE_ERRORS as exc:
                if attempt >= self._config.max_attempts:
                    self._state = CollectorState.TERMINATED
                    self._event_logger.log_cycle_exhausted(attempts=attempt, error=exc)
                    raise CollectionExhaustedError(attempt) from exc
                delay = self._backoff.next_delay(attempt)
                self._event_logger.log_attempt_failed(
                    attempt=attempt, error=exc, retry_in=delay
                )
                await asyncio.sleep(delay)
            except BaseException:
                self._state = CollectorState.TERMINATED
                raise
            else:
                break

        self._state = CollectorState.IDLE
        summary = dataclasses.replace(summary, attempts=attempt)
        self._event_logger.log_cycle_completed(summary, utcnow() - started_at)
        return summary

    async def collect_once(self) -> CycleSummary:
        """Run a single attempt: scan, advance the checkpoint, queue events."""
        checkpoint = self._checkpoints.load()
        scan = await self.gather(checkpoint=checkpoint, now=self._clock())

        # Encode everything before touching state so a failure leaves the
        # checkpoint where the retry expects it.
        payloads = [self._serialize(event) for event in scan.events]
        if scan.events:
            self._checkpoints.store(scan.events[0].guid)

        for payload in payloads:
            await self._destination.put(payload)

        return CycleSummary(
            events_collected=len(payloads),
            pages_fetched=scan.pages_fetched,
            checkpoint=self._checkpoints.load(),
            attempts=1,
        )

    async def gather(self, *, checkpoint: str, now: dt.datetime) -> ScanResult:
        """Page through events newest first until a boundary is reached."""
        cutoff = now - self._config.lookback
        token = self._authenticator.access_token
        accumulated: list[AuditEvent] = []
        pages_fetched = 0
        href: str | None = self._client.first_page_href

        while href is not None:
            if pages_fetched >= self._config.max_pages:
                self._event_logger.log_truncated(
                    pages_fetched=pages_fetched, events_collected=len(accumulated)
                )
                return ScanResult(tuple(accumulated), pages_fetched, truncated=True)

            page = await self._client.fetch_page(href, token=token)
            pages_fetched += 1
            boundary = find_boundary(
                page.resources, checkpoint=checkpoint, cutoff=cutoff
            )
            if boundary is not None:
                accumulated.extend(page.resources[:boundary])
                stop_event = page.resources[boundary]
                self._event_logger.log_boundary(
                    guid=stop_event.guid, created_at=stop_event.created_at
                )
                return ScanResult(tuple(accumulated), pages_fetched)

            accumulated.extend(page.resources)
            href = page.next_href

        return ScanResult(tuple(accumulated), pages_fetched)

    def _serialize(self, event: AuditEvent) -> bytes:
        try:
            return self._encoder.encode(anonymize(event))
        except (msgspec.EncodeError, TypeError, OverflowError) as exc:
            raise EventSerializationError.for_event(event.guid, str(exc)) from exc
