"""Adzuna provider adapter: wires URL builder, parser and an HTTP client."""

import logging

import httpx

from jobcache.core.config import ProviderConfig
from jobcache.core.errors import ProviderError
from jobcache.platforms.adzuna.parser import parse_search_payload
from jobcache.platforms.adzuna.searcher import build_search_url, detect_region, redact_url
from jobcache.platforms.base import ListingProvider, ProviderPage, ProviderQuery

logger = logging.getLogger(__name__)


class AdzunaAdapter(ListingProvider):
    """Adzuna search adapter.

    An ``httpx.AsyncClient`` may be injected (tests pass one backed by
    ``httpx.MockTransport``); otherwise a client is opened per call.
    """

    def __init__(self, config: ProviderConfig, client: httpx.AsyncClient | None = None) -> None:
        self._config = config
        self._client = client

    @property
    def provider_id(self) -> str:
        return "adzuna"

    def ensure_configured(self) -> None:
        self._config.credentials()

    def resolve_region(self, location: str) -> str:
        return detect_region(location, default=self._config.default_region)

    async def search(self, query: ProviderQuery, timeout: float | None = None) -> ProviderPage:
        """Search Adzuna for one page of listings."""
        credentials = self._config.credentials()
        url = build_search_url(credentials, query)
        deadline = timeout if timeout is not None else self._config.timeout_seconds
        logger.info("Requesting from Adzuna: %s", redact_url(url, credentials))

        try:
            response = await self._get(url, deadline)
        except httpx.HTTPError as e:
            msg = f"Adzuna request failed: {e}"
            raise ProviderError(msg) from e

        if not response.is_success:
            logger.error(
                "Adzuna API error %d: %s", response.status_code, response.text[:500],
            )
            msg = f"Adzuna returned HTTP {response.status_code}"
            raise ProviderError(msg, status_code=response.status_code)

        try:
            payload = response.json()
        except ValueError as e:
            msg = "Adzuna returned a non-JSON body"
            raise ProviderError(msg, status_code=response.status_code) from e

        page = parse_search_payload(payload if isinstance(payload, dict) else {})
        logger.info(
            "Adzuna page %d: %d listings of %d total",
            query.page, len(page.listings), page.total_count,
        )
        return page

    async def _get(self, url: str, timeout: float) -> httpx.Response:
        if self._client is not None:
            return await self._client.get(url, timeout=timeout)
        async with httpx.AsyncClient() as client:
            return await client.get(url, timeout=timeout)
