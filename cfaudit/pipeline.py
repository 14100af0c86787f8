"""Wiring of the collector, deduplicator and shipper stages.

Stages share nothing but the two bounded queues between them. A full queue
suspends the producing stage, so scrape speed follows shipping speed.
"""

from __future__ import annotations

import asyncio
import dataclasses
import typing as typ

from cfaudit.config import DEFAULT_CHANNEL_CAPACITY


class Stage(typ.Protocol):
    """A long-running pipeline stage."""

    async def run(self) -> None:
        """Run until cancelled or failed."""
        ...


@dataclasses.dataclass(frozen=True, slots=True)
class PipelineQueues:
    """Queues connecting collector to deduplicator and deduplicator to shipper."""

    collected: asyncio.Queue[bytes]
    unique: asyncio.Queue[bytes]


def create_queues(capacity: int = DEFAULT_CHANNEL_CAPACITY) -> PipelineQueues:
    """Create the two bounded inter-stage queues."""
    return PipelineQueues(
        collected=asyncio.Queue(maxsize=capacity),
        unique=asyncio.Queue(maxsize=capacity),
    )


async def run_pipeline(collector: Stage, deduplicator: Stage, shipper: Stage) -> None:
    """Run all stages concurrently until one of them fails.

    A failing stage cancels its siblings; the failure surfaces as an
    :class:`ExceptionGroup`.
    """
    async with asyncio.TaskGroup() as group:
        group.create_task(deduplicator.run(), name="deduplicator")
        group.create_task(shipper.run(), name="shipper")
        group.create_task(collector.run(), name="collector")
