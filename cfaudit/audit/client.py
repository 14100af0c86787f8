"""Cloud Foundry v3 audit events API client."""

from __future__ import annotations

import dataclasses

import httpx
import msgspec

from .errors import AuditAPIError, AuditResponseShapeError
from .models import AuditEventPage

FIRST_PAGE_PATH = "/v3/audit_events?order_by=-created_at&per_page=500"
_HTTP_ERROR_STATUS_THRESHOLD = 400


@dataclasses.dataclass(frozen=True, slots=True)
class AuditAPIConfig:
    """Configuration for the audit events API client."""

    api_url: str
    first_page_path: str = FIRST_PAGE_PATH


class AuditEventsClient:
    """Fetch pages of audit events with a bearer token.

    Page links returned by the API are absolute URLs; they are requested as
    given. Relative links are resolved against ``api_url``.
    """

    def __init__(
        self,
        config: AuditAPIConfig,
        *,
        http_client: httpx.AsyncClient,
    ) -> None:
        """Initialise the client with the provided API configuration."""
        self._config = config
        self._client = http_client
        self._decoder = msgspec.json.Decoder(AuditEventPage)

    @property
    def first_page_href(self) -> str:
        """Return the URL of the newest-first listing."""
        return f"{self._config.api_url.rstrip('/')}{self._config.first_page_path}"

    async def fetch_page(self, href: str, *, token: str) -> AuditEventPage:
        """Fetch and decode a single page of audit events.

        Raises
        ------
        AuditAPIError
            If the request fails or returns a non-2xx status.
        AuditResponseShapeError
            If the body does not decode as an audit events page.

        """
        url = self._resolve(href)
        try:
            response = await self._client.get(
                url,
                headers={
                    "Authorization": f"bearer {token}",
                    "Accept": "application/json",
                },
            )
        except httpx.HTTPError as exc:
            raise AuditAPIError.request_failed(url, str(exc)) from exc

        if response.status_code >= _HTTP_ERROR_STATUS_THRESHOLD:
            raise AuditAPIError.http_error(response.status_code, url)

        try:
            return self._decoder.decode(response.content)
        except msgspec.DecodeError as exc:
            raise AuditResponseShapeError.undecodable(url, str(exc)) from exc

    def _resolve(self, href: str) -> str:
        if href.startswith(("http://", "https://")):
            return href
        return f"{self._config.api_url.rstrip('/')}/{href.lstrip('/')}"
