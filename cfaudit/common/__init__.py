"""Shared helpers used across cfaudit packages."""
