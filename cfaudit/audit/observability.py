"""Observability primitives for audit event collection.

Provides structured logging and error categorization for collection cycles.
All events are emitted as ``[event.type] key=value`` log lines suitable for
parsing by log aggregators.
"""

from __future__ import annotations

import dataclasses
import enum
import typing as typ

import httpx
import msgspec

from cfaudit.logging import get_logger, log_error, log_info, log_warning
from cfaudit.uaa.errors import AuthError

from .errors import AuditAPIError, AuditResponseShapeError, EventSerializationError

if typ.TYPE_CHECKING:
    import datetime as dt

logger = get_logger(__name__)

# HTTP status code threshold for server errors (5xx)
_HTTP_SERVER_ERROR_THRESHOLD = 500
_HTTP_TOO_MANY_REQUESTS = 429


class CollectorEventType(enum.StrEnum):
    """Structured log event types for collection observability."""

    STARTED = "collector.started"
    TICK = "collector.tick"
    CYCLE_COMPLETED = "collector.cycle.completed"
    ATTEMPT_FAILED = "collector.attempt.failed"
    CYCLE_EXHAUSTED = "collector.cycle.exhausted"
    SCAN_BOUNDARY = "collector.scan.boundary"
    SCAN_TRUNCATED = "collector.scan.truncated"


class ErrorCategory(enum.StrEnum):
    """Categories for error classification in alerts."""

    TRANSIENT = "transient"
    CLIENT_ERROR = "client_error"
    SCHEMA_DRIFT = "schema_drift"
    DATA_SHAPE = "data_shape"
    CONFIGURATION = "configuration"
    UNKNOWN = "unknown"


@dataclasses.dataclass(frozen=True, slots=True)
class CycleSummary:
    """Outcome of one successful collection cycle."""

    events_collected: int
    pages_fetched: int
    checkpoint: str
    attempts: int


_EXCEPTION_CATEGORY_MAP: tuple[tuple[type[BaseException], ErrorCategory], ...] = (
    (AuditResponseShapeError, ErrorCategory.SCHEMA_DRIFT),
    (msgspec.DecodeError, ErrorCategory.SCHEMA_DRIFT),
    (EventSerializationError, ErrorCategory.DATA_SHAPE),
    (AuthError, ErrorCategory.CONFIGURATION),
    (httpx.TransportError, ErrorCategory.TRANSIENT),
)


def categorize_error(exc: BaseException) -> ErrorCategory:
    """Categorize an exception for alerting purposes.

    Returns:
        ErrorCategory indicating the type of failure for alert routing.

    """
    if isinstance(exc, AuditAPIError):
        status = exc.status_code
        if status is None or status >= _HTTP_SERVER_ERROR_THRESHOLD:
            return ErrorCategory.TRANSIENT
        if status == _HTTP_TOO_MANY_REQUESTS:
            return ErrorCategory.TRANSIENT
        return ErrorCategory.CLIENT_ERROR

    for exc_type, category in _EXCEPTION_CATEGORY_MAP:
        if isinstance(exc, exc_type):
            return category

    return ErrorCategory.UNKNOWN


class CollectorEventLogger:
    """Emit structured collector events via femtologging.

    Events are emitted at INFO level for progress, WARNING for retried
    attempts and truncated scans, and ERROR when retries are exhausted.
    """

    def log_started(self, *, api_url: str, cadence: dt.timedelta) -> None:
        """Log collector start after successful authentication."""
        log_info(
            logger,
            "[%s] api_url=%s cadence_seconds=%.0f",
            CollectorEventType.STARTED,
            api_url,
            cadence.total_seconds(),
        )

    def log_tick(self, *, checkpoint: str) -> None:
        """Log a timer fire."""
        log_info(
            logger,
            "[%s] checkpoint=%s",
            CollectorEventType.TICK,
            checkpoint or "<empty>",
        )

    def log_boundary(self, *, guid: str, created_at: dt.datetime) -> None:
        """Log the event at which a scan stopped."""
        log_info(
            logger,
            "[%s] boundary_guid=%s shipped_until=%s",
            CollectorEventType.SCAN_BOUNDARY,
            guid,
            created_at.isoformat(),
        )

    def log_truncated(self, *, pages_fetched: int, events_collected: int) -> None:
        """Log a scan that hit the page cap before finding a boundary."""
        log_warning(
            logger,
            "[%s] pages_fetched=%d events_collected=%d",
            CollectorEventType.SCAN_TRUNCATED,
            pages_fetched,
            events_collected,
        )

    def log_cycle_completed(
        self, summary: CycleSummary, duration: dt.timedelta
    ) -> None:
        """Log a successful cycle with its counts."""
        log_info(
            logger,
            "[%s] events_collected=%d pages_fetched=%d attempts=%d "
            "checkpoint=%s duration_seconds=%.3f",
            CollectorEventType.CYCLE_COMPLETED,
            summary.events_collected,
            summary.pages_fetched,
            summary.attempts,
            summary.checkpoint or "<empty>",
            duration.total_seconds(),
        )

    def log_attempt_failed(
        self, *, attempt: int, error: BaseException, retry_in: float
    ) -> None:
        """Log a failed attempt that will be retried."""
        log_warning(
            logger,
            "[%s] attempt=%d retry_in_seconds=%.3f error_type=%s "
            "error_category=%s error_message=%s",
            CollectorEventType.ATTEMPT_FAILED,
            attempt,
            retry_in,
            type(error).__name__,
            categorize_error(error),
            str(error),
        )

    def log_cycle_exhausted(self, *, attempts: int, error: BaseException) -> None:
        """Log the final failure of a cycle."""
        log_error(
            logger,
            "[%s] attempts=%d error_type=%s error_category=%s error_message=%s",
            CollectorEventType.CYCLE_EXHAUSTED,
            attempts,
            type(error).__name__,
            categorize_error(error),
            str(error),
            exc_info=error,
        )
