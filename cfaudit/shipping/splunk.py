"""Batching shipper for the Splunk HTTP Event Collector.

Each payload is embedded verbatim as the ``event`` of a HEC envelope and a
batch is sent as concatenated JSON objects in one request. Delivery is
best effort: a batch that still fails after ``max_attempts`` is logged and
dropped, and nothing is reported back upstream.
"""

from __future__ import annotations

import asyncio
import dataclasses
import datetime as dt
import enum
import typing as typ

import httpx
import msgspec

from cfaudit.audit.retry import ExponentialBackoff
from cfaudit.logging import get_logger, log_error, log_info, log_warning

from .errors import SplunkDeliveryError

if typ.TYPE_CHECKING:
    from cfaudit.audit.retry import BackoffPolicy

logger = get_logger(__name__)

HEC_EVENT_PATH = "/services/collector/event"
_HTTP_ERROR_STATUS_THRESHOLD = 400


class ShipperEventType(enum.StrEnum):
    """Structured log event types for shipping."""

    BATCH_SENT = "shipper.batch.sent"
    BATCH_RETRY = "shipper.batch.retry"
    BATCH_DROPPED = "shipper.batch.dropped"


class HECEnvelope(msgspec.Struct, frozen=True):
    """HEC event envelope wrapping a pre-serialized payload."""

    event: msgspec.Raw
    sourcetype: str


@dataclasses.dataclass(frozen=True, slots=True)
class SplunkConfig:
    """Connection and batching settings for the HEC endpoint."""

    url: str
    token: str = dataclasses.field(repr=False)
    sourcetype: str = "cf:audit"
    batch_size: int = 100
    flush_interval: dt.timedelta = dt.timedelta(seconds=5)
    max_attempts: int = 3

    @property
    def endpoint(self) -> str:
        """Return the absolute event collector URL."""
        return f"{self.url.rstrip('/')}{HEC_EVENT_PATH}"


class SplunkShipper:
    """Drain serialized events from ``source`` into Splunk."""

    def __init__(
        self,
        source: asyncio.Queue[bytes],
        config: SplunkConfig,
        *,
        backoff: BackoffPolicy | None = None,
        http_client: httpx.AsyncClient,
    ) -> None:
        """Create a shipper bound to a queue and HEC configuration."""
        self._source = source
        self._config = config
        self._backoff = backoff or ExponentialBackoff()
        self._client = http_client
        self._encoder = msgspec.json.Encoder()
        self._shipped = 0
        self._dropped = 0

    @property
    def shipped(self) -> int:
        """Return the number of events acknowledged by Splunk."""
        return self._shipped

    @property
    def dropped(self) -> int:
        """Return the number of events abandoned after failed delivery."""
        return self._dropped

    async def run(self) -> None:
        """Ship batches until cancelled."""
        while True:
            batch = await self.next_batch()
            await self.ship(batch)

    async def next_batch(self) -> list[bytes]:
        """Wait for one payload, then gather more until full or timed out."""
        batch = [await self._source.get()]
        self._source.task_done()
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self._config.flush_interval.total_seconds()
        while len(batch) < self._config.batch_size:
            remaining = deadline - loop.time()
            if remaining <= 0:
                break
            try:
                payload = await asyncio.wait_for(self._source.get(), remaining)
            except TimeoutError:
                break
            self._source.task_done()
            batch.append(payload)
        return batch

    def encode_batch(self, batch: list[bytes]) -> bytes:
        """Render ``batch`` as concatenated HEC envelopes."""
        return b"".join(
            self._encoder.encode(
                HECEnvelope(
                    event=msgspec.Raw(payload), sourcetype=self._config.sourcetype
                )
            )
            for payload in batch
        )

    async def ship(self, batch: list[bytes]) -> bool:
        """Deliver ``batch`` with bounded retries; return whether it landed."""
        body = self.encode_batch(batch)
        attempt = 0
        while True:
            attempt += 1
            try:
                await self._post(body)
            except SplunkDeliveryError as exc:
                if attempt >= self._config.max_attempts:
                    self._dropped += len(batch)
                    log_error(
                        logger,
                        "[%s] batch_size=%d attempts=%d error_message=%s",
                        ShipperEventType.BATCH_DROPPED,
                        len(batch),
                        attempt,
                        str(exc),
                        exc_info=exc,
                    )
                    return False
                delay = self._backoff.next_delay(attempt)
                log_warning(
                    logger,
                    "[%s] batch_size=%d attempt=%d retry_in_seconds=%.3f "
                    "error_message=%s",
                    ShipperEventType.BATCH_RETRY,
                    len(batch),
                    attempt,
                    delay,
                    str(exc),
                )
                await asyncio.sleep(delay)
            else:
                break

        self._shipped += len(batch)
        log_info(
            logger,
            "[%s] batch_size=%d attempts=%d shipped_total=%d",
            ShipperEventType.BATCH_SENT,
            len(batch),
            attempt,
            self._shipped,
        )
        return True

    async def _post(self, body: bytes) -> None:
        try:
            response = await self._client.post(
                self._config.endpoint,
                content=body,
                headers={
                    "Authorization": f"Splunk {self._config.token}",
                    "Content-Type": "application/json",
                },
            )
        except httpx.HTTPError as exc:
            raise SplunkDeliveryError.request_failed(str(exc)) from exc
        if response.status_code >= _HTTP_ERROR_STATUS_THRESHOLD:
            raise SplunkDeliveryError.http_error(response.status_code)
