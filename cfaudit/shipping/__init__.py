"""Delivery of deduplicated audit events to a log sink."""

from __future__ import annotations

from .errors import SplunkDeliveryError
from .splunk import HEC_EVENT_PATH, SplunkConfig, SplunkShipper

__all__ = ["HEC_EVENT_PATH", "SplunkConfig", "SplunkDeliveryError", "SplunkShipper"]
