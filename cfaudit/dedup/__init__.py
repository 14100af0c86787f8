"""Probabilistic deduplication of serialized audit events."""

from __future__ import annotations

from .bloom import BloomFilter, ExactMembershipSet, MembershipFilter
from .deduplicator import (
    DEFAULT_FILTER_BITS,
    DEFAULT_FILTER_HASHES,
    Deduplicator,
    default_filter,
)
from .observability import DedupEventLogger, DedupEventType

__all__ = [
    "DEFAULT_FILTER_BITS",
    "DEFAULT_FILTER_HASHES",
    "BloomFilter",
    "DedupEventLogger",
    "DedupEventType",
    "Deduplicator",
    "ExactMembershipSet",
    "MembershipFilter",
    "default_filter",
]
