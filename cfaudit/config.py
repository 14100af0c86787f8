"""Process configuration for the audit harvester.

Values arrive from command-line flags or their environment variables (see
:mod:`cfaudit.runtime`) and are validated here into immutable settings.
"""

from __future__ import annotations

import dataclasses as dc
import datetime as dt

from cfaudit.common.time import parse_duration
from cfaudit.shipping.splunk import SplunkConfig
from cfaudit.uaa.client import UAAConfig

DEFAULT_SCRAPE_CADENCE = "15m"
DEFAULT_CHANNEL_CAPACITY = 1024


class ConfigError(ValueError):
    """Raised when required configuration is missing or malformed."""

    @classmethod
    def missing(cls, name: str) -> ConfigError:
        """Return an error for a required value that is empty."""
        return cls(f"{name} is required")

    @classmethod
    def invalid_cadence(cls, raw: str, reason: str) -> ConfigError:
        """Return an error for an unusable scrape cadence."""
        return cls(f"SCRAPE_CADENCE {raw!r} is invalid: {reason}")


@dc.dataclass(frozen=True, slots=True)
class HarvesterSettings:
    """Validated configuration for one harvester process.

    Attributes
    ----------
    uaa
        Token endpoint and client credentials.
    cf_api_url
        Base URL of the Cloud Foundry API serving ``/v3/audit_events``.
    scrape_cadence
        Interval between collection cycles.
    splunk
        HTTP Event Collector endpoint and token.
    channel_capacity
        Capacity of each queue between pipeline stages.

    """

    uaa: UAAConfig
    cf_api_url: str
    scrape_cadence: dt.timedelta
    splunk: SplunkConfig
    channel_capacity: int = DEFAULT_CHANNEL_CAPACITY

    @classmethod
    def from_values(  # noqa: PLR0913
        cls,
        *,
        uaa_api_url: str,
        uaa_client_id: str,
        uaa_client_secret: str,
        cf_api_url: str,
        splunk_url: str,
        splunk_key: str,
        scrape_cadence: str = DEFAULT_SCRAPE_CADENCE,
    ) -> HarvesterSettings:
        """Validate raw flag values and build settings.

        Raises
        ------
        ConfigError
            If a required value is blank or the cadence is not a positive
            duration.

        """
        required = {
            "UAA_API_URL": uaa_api_url,
            "UAA_CLIENT_ID": uaa_client_id,
            "UAA_CLIENT_SECRET": uaa_client_secret,
            "CLOUDFOUNDRY_API_URL": cf_api_url,
            "SPLUNK_URL": splunk_url,
            "SPLUNK_KEY": splunk_key,
        }
        for name, value in required.items():
            if not value.strip():
                raise ConfigError.missing(name)

        try:
            cadence = parse_duration(scrape_cadence)
        except ValueError as exc:
            raise ConfigError.invalid_cadence(scrape_cadence, str(exc)) from exc
        if cadence <= dt.timedelta(0):
            raise ConfigError.invalid_cadence(scrape_cadence, "must be positive")

        return cls(
            uaa=UAAConfig(
                api_url=uaa_api_url.strip(),
                client_id=uaa_client_id.strip(),
                client_secret=uaa_client_secret,
            ),
            cf_api_url=cf_api_url.strip(),
            scrape_cadence=cadence,
            splunk=SplunkConfig(url=splunk_url.strip(), token=splunk_key),
        )
