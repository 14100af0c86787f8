"""Client-credentials authentication against a UAA authorization server."""

from __future__ import annotations

import dataclasses

import httpx

from .errors import AuthError

ADMIN_READ_ONLY_SCOPE = "cloud_controller.admin_read_only"
_HTTP_ERROR_STATUS_THRESHOLD = 400


@dataclasses.dataclass(frozen=True, slots=True)
class UAAConfig:
    """Connection details for the UAA token endpoint."""

    api_url: str
    client_id: str
    client_secret: str = dataclasses.field(repr=False)
    scope: str = ADMIN_READ_ONLY_SCOPE

    @property
    def token_url(self) -> str:
        """Return the absolute URL of the OAuth token endpoint."""
        return f"{self.api_url.rstrip('/')}/oauth/token"


class UAAAuthenticator:
    """Obtain a bearer token through the OAuth client-credentials grant.

    The token is fetched once by :meth:`authenticate` and never refreshed;
    retrying is left to the caller because a rejected credential does not
    heal by asking again.
    """

    def __init__(
        self,
        config: UAAConfig,
        *,
        http_client: httpx.AsyncClient,
    ) -> None:
        """Initialise the authenticator with UAA connection details."""
        self._config = config
        self._client = http_client
        self._access_token = ""

    @property
    def access_token(self) -> str:
        """Return the bearer token, or an empty string before authentication."""
        return self._access_token

    async def authenticate(self) -> None:
        """Exchange the client credentials for an access token.

        Raises
        ------
        AuthError
            If the request fails, is rejected, or the response does not carry
            an ``access_token``.

        """
        try:
            response = await self._client.post(
                self._config.token_url,
                data={
                    "grant_type": "client_credentials",
                    "scopes": self._config.scope,
                },
                auth=httpx.BasicAuth(
                    self._config.client_id, self._config.client_secret
                ),
                headers={
                    "Content-Type": "application/x-www-form-urlencoded",
                    "Accept": "application/json",
                },
            )
        except httpx.HTTPError as exc:
            raise AuthError.request_failed(str(exc)) from exc

        if response.status_code >= _HTTP_ERROR_STATUS_THRESHOLD:
            raise AuthError.http_error(response.status_code)

        try:
            payload = response.json()
        except ValueError as exc:
            raise AuthError.invalid_body() from exc
        if not isinstance(payload, dict):
            raise AuthError.invalid_body()

        token = payload.get("access_token")
        if not isinstance(token, str) or not token:
            raise AuthError.missing_token()
        self._access_token = token
