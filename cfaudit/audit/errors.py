"""Audit event collection errors."""

from __future__ import annotations


class AuditAPIError(RuntimeError):
    """Raised when the audit events API cannot be reached or rejects a request."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        """Initialise with a message and optional HTTP status code."""
        self.status_code = status_code
        super().__init__(message)

    @classmethod
    def http_error(cls, status_code: int, href: str) -> AuditAPIError:
        """Return an error for non-2xx HTTP responses."""
        return cls(
            f"unable to scrape the audit events: HTTP {status_code} for {href}",
            status_code=status_code,
        )

    @classmethod
    def request_failed(cls, href: str, reason: str) -> AuditAPIError:
        """Return an error for transport failures."""
        return cls(f"unable to scrape the audit events from {href}: {reason}")


class AuditResponseShapeError(RuntimeError):
    """Raised when an audit events page cannot be decoded."""

    @classmethod
    def undecodable(cls, href: str, reason: str) -> AuditResponseShapeError:
        """Return an error for page bodies that do not match the schema."""
        return cls(f"unable to decode audit events page {href}: {reason}")


class EventSerializationError(RuntimeError):
    """Raised when a sanitized event cannot be encoded for the pipeline."""

    @classmethod
    def for_event(cls, guid: str, reason: str) -> EventSerializationError:
        """Return an error naming the event that failed to encode."""
        return cls(f"unable to marshal event {guid} into json: {reason}")


class CollectionExhaustedError(RuntimeError):
    """Raised when every attempt of a collection cycle has failed."""

    def __init__(self, attempts: int) -> None:
        """Record how many attempts were made."""
        self.attempts = attempts
        super().__init__(f"collection cycle failed after {attempts} attempts")
