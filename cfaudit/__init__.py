"""Harvest Cloud Foundry audit events, drop duplicates and ship them to Splunk."""

from __future__ import annotations

__version__ = "0.1.0"
