"""Log sink delivery errors."""

from __future__ import annotations


class SplunkDeliveryError(RuntimeError):
    """Raised when a batch cannot be delivered to the HTTP Event Collector."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        """Initialise with a message and optional HTTP status code."""
        self.status_code = status_code
        super().__init__(message)

    @classmethod
    def http_error(cls, status_code: int) -> SplunkDeliveryError:
        """Return an error for non-2xx collector responses."""
        return cls(f"Splunk HEC HTTP {status_code}", status_code=status_code)

    @classmethod
    def request_failed(cls, reason: str) -> SplunkDeliveryError:
        """Return an error for transport failures."""
        return cls(f"unable to reach Splunk HEC: {reason}")
