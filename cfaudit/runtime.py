"""cfaudit process entrypoint.

Starts the three pipeline stages: the audit event collector, the
deduplicator and the Splunk shipper. Every option can be passed as a flag or
through its environment variable:

- ``UAA_API_URL``, ``UAA_CLIENT_ID``, ``UAA_CLIENT_SECRET``: client
  credentials for the UAA token endpoint
- ``CLOUDFOUNDRY_API_URL``: Cloud Foundry API serving audit events
- ``SCRAPE_CADENCE``: interval between collection cycles (default ``15m``)
- ``SPLUNK_URL``, ``SPLUNK_KEY``: HTTP Event Collector endpoint and token
- ``CFAUDIT_LOG_LEVEL``: log level (default ``INFO``)

Run the service with ``python -m cfaudit.runtime`` or the ``cfaudit``
console script. Authentication failures and exhausted collection retries end
the process with exit code 1.
"""

from __future__ import annotations

import asyncio
import typing as typ

import httpx
from cyclopts import App, Parameter

from cfaudit.audit import (
    AuditAPIConfig,
    AuditEventsClient,
    CollectionExhaustedError,
    CollectorConfig,
    EventCollector,
)
from cfaudit.config import ConfigError, HarvesterSettings
from cfaudit.dedup import Deduplicator
from cfaudit.logging import (
    configure_logging,
    get_logger,
    log_error,
    log_exception,
    log_info,
    log_warning,
)
from cfaudit.pipeline import create_queues, run_pipeline
from cfaudit.shipping import SplunkShipper
from cfaudit.uaa import AuthError, UAAAuthenticator

__all__ = ["app", "build_pipeline", "main", "serve"]

logger = get_logger(__name__)

app = App(
    name="cfaudit",
    help="Harvest Cloud Foundry audit events into Splunk",
    version="0.1.0",
)


def build_pipeline(
    settings: HarvesterSettings, http_client: httpx.AsyncClient
) -> tuple[EventCollector, Deduplicator, SplunkShipper]:
    """Construct the pipeline stages sharing one HTTP connection pool."""
    queues = create_queues(settings.channel_capacity)
    authenticator = UAAAuthenticator(settings.uaa, http_client=http_client)
    collector = EventCollector(
        authenticator,
        AuditEventsClient(
            AuditAPIConfig(api_url=settings.cf_api_url), http_client=http_client
        ),
        queues.collected,
        config=CollectorConfig(cadence=settings.scrape_cadence),
    )
    deduplicator = Deduplicator(queues.collected, queues.unique)
    shipper = SplunkShipper(queues.unique, settings.splunk, http_client=http_client)
    return collector, deduplicator, shipper


async def serve(
    settings: HarvesterSettings,
    *,
    http_client: httpx.AsyncClient | None = None,
) -> int:
    """Run the pipeline until a fatal error and return the exit code.

    Every stage shares ``http_client``; when none is given, one is opened for
    the lifetime of the pipeline and closed on exit.
    """
    if http_client is None:
        async with httpx.AsyncClient() as client:
            return await serve(settings, http_client=client)

    exit_code = 0
    try:
        collector, deduplicator, shipper = build_pipeline(settings, http_client)
        await run_pipeline(collector, deduplicator, shipper)
    except* AuthError as group:
        for exc in group.exceptions:
            log_exception(logger, f"unable to authenticate: {exc}", exc)
        exit_code = 1
    except* CollectionExhaustedError as group:
        for exc in group.exceptions:
            log_exception(logger, f"collector terminated: {exc}", exc)
        exit_code = 1
    return exit_code


@app.default
def harvest(  # noqa: PLR0913
    *,
    uaa_api_url: typ.Annotated[str, Parameter(env_var="UAA_API_URL")],
    uaa_client_id: typ.Annotated[str, Parameter(env_var="UAA_CLIENT_ID")],
    uaa_client_secret: typ.Annotated[str, Parameter(env_var="UAA_CLIENT_SECRET")],
    cf_api_url: typ.Annotated[str, Parameter(env_var="CLOUDFOUNDRY_API_URL")],
    splunk_url: typ.Annotated[str, Parameter(env_var="SPLUNK_URL")],
    splunk_key: typ.Annotated[str, Parameter(env_var="SPLUNK_KEY")],
    scrape_cadence: typ.Annotated[str, Parameter(env_var="SCRAPE_CADENCE")] = "15m",
    log_level: typ.Annotated[str, Parameter(env_var="CFAUDIT_LOG_LEVEL")] = "INFO",
) -> int:
    """Collect audit events, drop duplicates and ship them to Splunk.

    Args:
        uaa_api_url: UAA API URL to be used for authentication.
        uaa_client_id: UAA client ID for client-credentials authentication.
        uaa_client_secret: UAA client secret for client-credentials
            authentication.
        cf_api_url: Cloud Foundry API URL to scrape audit events from.
        splunk_url: Splunk HTTP Event Collector base URL.
        splunk_key: Splunk HTTP Event Collector token.
        scrape_cadence: Interval between collections, e.g. ``15m`` or ``1h``.
        log_level: Log level name.

    Returns:
        Exit code (1 on configuration, authentication or collection failure).

    """
    normalized_level, invalid_level = configure_logging(log_level)
    if invalid_level:
        log_warning(
            logger,
            "Invalid CFAUDIT_LOG_LEVEL %r, falling back to %s",
            log_level,
            normalized_level,
        )

    try:
        settings = HarvesterSettings.from_values(
            uaa_api_url=uaa_api_url,
            uaa_client_id=uaa_client_id,
            uaa_client_secret=uaa_client_secret,
            cf_api_url=cf_api_url,
            splunk_url=splunk_url,
            splunk_key=splunk_key,
            scrape_cadence=scrape_cadence,
        )
    except ConfigError as exc:
        # Validation failures need no traceback
        log_error(logger, "Invalid configuration: %s", exc)
        return 1

    log_info(
        logger,
        "Starting cfaudit against %s (cadence=%s, log_level=%s)",
        settings.cf_api_url,
        settings.scrape_cadence,
        normalized_level,
    )
    return asyncio.run(serve(settings))


def main() -> int:
    """Entry point for the ``cfaudit`` console script."""
    return app()


if __name__ == "__main__":
    raise SystemExit(main())
