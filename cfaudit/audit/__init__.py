"""Incremental Cloud Foundry audit event collection."""

from __future__ import annotations

from .checkpoint import CheckpointStore, InMemoryCheckpointStore
from .client import AuditAPIConfig, AuditEventsClient
from .collector import (
    CollectorConfig,
    CollectorState,
    EventCollector,
    ScanResult,
    find_boundary,
)
from .errors import (
    AuditAPIError,
    AuditResponseShapeError,
    CollectionExhaustedError,
    EventSerializationError,
)
from .models import ANONYMIZED_ACTOR_NAME, AuditEvent, AuditEventPage, anonymize
from .observability import (
    CollectorEventLogger,
    CollectorEventType,
    CycleSummary,
    ErrorCategory,
    categorize_error,
)
from .retry import BackoffPolicy, ExponentialBackoff, ZeroBackoff

__all__ = [
    "ANONYMIZED_ACTOR_NAME",
    "AuditAPIConfig",
    "AuditAPIError",
    "AuditEvent",
    "AuditEventPage",
    "AuditEventsClient",
    "AuditResponseShapeError",
    "BackoffPolicy",
    "CheckpointStore",
    "CollectionExhaustedError",
    "CollectorConfig",
    "CollectorEventLogger",
    "CollectorEventType",
    "CollectorState",
    "CycleSummary",
    "ErrorCategory",
    "EventCollector",
    "EventSerializationError",
    "ExponentialBackoff",
    "InMemoryCheckpointStore",
    "ScanResult",
    "ZeroBackoff",
    "anonymize",
    "categorize_error",
    "find_boundary",
]
