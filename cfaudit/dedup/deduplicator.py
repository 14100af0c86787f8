"""Suppress re-delivered audit events before shipping.

Payloads are compared by their exact serialized bytes. A false positive
from the Bloom filter silently drops a genuinely new event; that is the
accepted cost of constant memory.
"""

from __future__ import annotations

import typing as typ

from .bloom import BloomFilter
from .observability import DedupEventLogger

if typ.TYPE_CHECKING:
    import asyncio

    from .bloom import MembershipFilter

DEFAULT_FILTER_BITS = 1024 * 42
DEFAULT_FILTER_HASHES = 9


def default_filter() -> BloomFilter:
    """Return a filter sized like the reference deployment."""
    return BloomFilter(DEFAULT_FILTER_BITS, DEFAULT_FILTER_HASHES)


class Deduplicator:
    """Forward first-seen payloads from ``source`` to ``destination``."""

    def __init__(
        self,
        source: asyncio.Queue[bytes],
        destination: asyncio.Queue[bytes],
        *,
        membership: MembershipFilter | None = None,
        event_logger: DedupEventLogger | None = None,
    ) -> None:
        """Create a stage reading ``source`` and writing ``destination``."""
        self._source = source
        self._destination = destination
        self._membership = membership if membership is not None else default_filter()
        self._event_logger = event_logger or DedupEventLogger()
        self._forwarded = 0
        self._dropped = 0

    @property
    def forwarded(self) -> int:
        """Return the number of payloads passed downstream."""
        return self._forwarded

    @property
    def dropped(self) -> int:
        """Return the number of payloads suppressed as duplicates."""
        return self._dropped

    async def run(self) -> None:
        """Process payloads until cancelled."""
        self._event_logger.log_started(filter_name=type(self._membership).__name__)
        while True:
            payload = await self._source.get()
            try:
                await self.process(payload)
            finally:
                self._source.task_done()

    async def process(self, payload: bytes) -> bool:
        """Forward ``payload`` unless it was seen before; return whether sent."""
        if self._membership.test(payload):
            self._dropped += 1
            self._event_logger.log_dropped(
                payload_bytes=len(payload), dropped_total=self._dropped
            )
            return False

        await self._destination.put(payload)
        self._membership.add(payload)
        self._forwarded += 1
        return True
