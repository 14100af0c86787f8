"""UAA authentication errors."""

from __future__ import annotations


class AuthError(RuntimeError):
    """Raised when the client-credentials exchange with UAA fails."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        """Initialise with a message and optional HTTP status code."""
        self.status_code = status_code
        super().__init__(message)

    @classmethod
    def request_failed(cls, reason: str) -> AuthError:
        """Return an error for transport failures."""
        return cls(f"unable to perform authentication request: {reason}")

    @classmethod
    def http_error(cls, status_code: int) -> AuthError:
        """Return an error for non-2xx token responses."""
        return cls(
            f"authentication request rejected with HTTP {status_code}",
            status_code=status_code,
        )

    @classmethod
    def invalid_body(cls) -> AuthError:
        """Return an error for token responses that are not a JSON object."""
        return cls("unable to unmarshal authentication response")

    @classmethod
    def missing_token(cls) -> AuthError:
        """Return an error when the response carries no access token."""
        return cls("authentication response missing access_token")
