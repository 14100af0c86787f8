"""Structured log events for the deduplication stage."""

from __future__ import annotations

import enum

from cfaudit.logging import get_logger, log_info

logger = get_logger(__name__)


class DedupEventType(enum.StrEnum):
    """Structured log event types for deduplication."""

    STARTED = "dedup.started"
    EVENT_DROPPED = "dedup.event.dropped"


class DedupEventLogger:
    """Emit deduplication events via femtologging."""

    def log_started(self, *, filter_name: str) -> None:
        """Log stage start with the membership filter in use."""
        log_info(logger, "[%s] filter=%s", DedupEventType.STARTED, filter_name)

    def log_dropped(self, *, payload_bytes: int, dropped_total: int) -> None:
        """Log a payload suppressed as already forwarded."""
        log_info(
            logger,
            "[%s] payload_bytes=%d dropped_total=%d",
            DedupEventType.EVENT_DROPPED,
            payload_bytes,
            dropped_total,
        )
