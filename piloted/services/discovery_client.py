"""HTTP client wrapper for the Consul catalog API.

Fetches the instances registered for a service name and normalizes the
payload to BackendEntry objects. Includes basic Prometheus metrics for
request counts and latency.
"""

from __future__ import annotations

import logging
from typing import List, Optional
from urllib.parse import quote

import httpx
from prometheus_client import Counter, Histogram
from pydantic import ValidationError

from piloted.core.config import Settings, settings as default_settings
from piloted.core.errors import FetchError
from piloted.models.schemas import BackendEntry, ServiceRecord

log = logging.getLogger("piloted.discovery")

CATALOG_REQUESTS = Counter("piloted_catalog_requests_total", "Catalog requests", ["status"])
CATALOG_LATENCY = Histogram("piloted_catalog_latency_seconds", "Catalog request latency seconds")


def _normalize_records(payload: object, service_name: str) -> list[BackendEntry]:
    """
    Normalize a catalog payload to BackendEntry objects in array order.

    Expects a JSON array of ``{"Service": {"Address": ..., "Port": ...}}``.
    Records missing either field are skipped.
    """
    if not isinstance(payload, list):
        raise ValueError(f"expected a JSON array, got {type(payload).__name__}")

    entries: list[BackendEntry] = []
    for i, item in enumerate(payload):
        try:
            entries.append(BackendEntry.from_record(ServiceRecord.model_validate(item)))
        except ValidationError:
            log.warning("Skipping malformed catalog record %d for %s", i, service_name)
    return entries


class DiscoveryClient:
    """
    Tiny HTTP client wrapper for the catalog API.

    Holds an optional shared httpx.AsyncClient for connection pooling. Without
    one, each call opens a short-lived client.
    """

    def __init__(self, client: Optional[httpx.AsyncClient] = None, settings: Optional[Settings] = None):
        self._client = client
        self._settings = settings or default_settings

    def catalog_url(self, endpoint: str, service_name: str) -> str:
        """Build the catalog URL for ``service_name`` on the discovery ``endpoint``."""
        # endpoint is usually "host:port"; a full base URL is accepted as well
        base = endpoint if "://" in endpoint else f"{self._settings.scheme}://{endpoint}"
        path = self._settings.catalog_path.strip("/")
        return f"{base.rstrip('/')}/{path}/{quote(service_name, safe='')}"

    async def fetch(self, endpoint: str, service_name: str) -> List[BackendEntry]:
        """
        Fetch the instances of ``service_name`` from the catalog at ``endpoint``.

        Issues exactly one request. Non-200 responses, transport failures and
        unparseable bodies raise FetchError.
        """
        if self._client is not None:
            return await self._fetch(self._client, endpoint, service_name)
        async with httpx.AsyncClient(timeout=self._settings.request_timeout_s) as client:
            return await self._fetch(client, endpoint, service_name)

    async def _fetch(self, client: httpx.AsyncClient, endpoint: str, service_name: str) -> List[BackendEntry]:
        url = self.catalog_url(endpoint, service_name)
        try:
            with CATALOG_LATENCY.time():
                resp = await client.get(url)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            # InvalidURL covers endpoints httpx cannot parse, e.g. an unresolved port placeholder
            CATALOG_REQUESTS.labels(status="error").inc()
            log.warning("Catalog error on %s: %s", url, e)
            raise FetchError(f"Failed to fetch {service_name} from {url}: {e}", backend=service_name, url=url) from e

        CATALOG_REQUESTS.labels(status=str(resp.status_code)).inc()
        if resp.status_code != 200:
            log.warning("Catalog non-200 (%s) on %s", resp.status_code, url)
            raise FetchError(
                f"Catalog returned {resp.status_code} for {service_name}",
                backend=service_name,
                url=url,
                status_code=resp.status_code,
            )

        try:
            entries = _normalize_records(resp.json(), service_name)
        except ValueError as e:
            log.warning("Catalog returned an unusable body on %s: %s", url, e)
            raise FetchError(
                f"Invalid catalog response for {service_name}: {e}",
                backend=service_name,
                url=url,
                status_code=resp.status_code,
            ) from e

        log.debug("Fetched %d instance(s) of %s", len(entries), service_name)
        return entries
