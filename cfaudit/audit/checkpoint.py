"""Checkpoint storage for the collector's high-water mark.

The checkpoint is the GUID of the newest event delivered by the previous
successful cycle. Only the collector reads and writes it.
"""

from __future__ import annotations

import typing as typ


@typ.runtime_checkable
class CheckpointStore(typ.Protocol):
    """Load and store the last-seen event GUID."""

    def load(self) -> str:
        """Return the stored GUID, or an empty string when none is known."""
        ...

    def store(self, guid: str) -> None:
        """Replace the stored GUID."""
        ...


class InMemoryCheckpointStore:
    """Process-local checkpoint; reset to empty on restart."""

    def __init__(self, initial: str = "") -> None:
        self._guid = initial

    def load(self) -> str:
        """Return the current GUID."""
        return self._guid

    def store(self, guid: str) -> None:
        """Replace the current GUID."""
        self._guid = guid
