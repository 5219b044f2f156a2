"""Orchestrator: wires cache store, query optimizer, request budget and provider.

Data flow per search:
  1. Fingerprint the normalized params
  2. Cache lookup (store failures count as a miss)
  3. Credentials check, then daily budget gate
  4. Region + optimized keyword -> provider call
  5. Atomic cache write, then a background expiry sweep
"""

import json
import logging

from jobcache.core.cache_store import CacheStore
from jobcache.core.errors import QuotaExceededError, StoreError
from jobcache.core.schemas import SearchEnvelope, SearchParams
from jobcache.pipeline.budget import RequestBudget
from jobcache.pipeline.optimizer import optimize
from jobcache.pipeline.sweeper import ExpirySweeper
from jobcache.platforms.base import ListingProvider, ProviderQuery, total_pages

logger = logging.getLogger(__name__)


class SearchOrchestrator:
    """Entry point for user searches.

    Usage::

        orchestrator = SearchOrchestrator(store, provider, budget, sweeper)
        envelope = await orchestrator.search(SearchParams(title="frontend dev"))
    """

    def __init__(
        self,
        store: CacheStore,
        provider: ListingProvider,
        budget: RequestBudget,
        sweeper: ExpirySweeper | None = None,
    ) -> None:
        self._store = store
        self._provider = provider
        self._budget = budget
        self._sweeper = sweeper

    async def search(
        self,
        params: SearchParams,
        *,
        skip_cache: bool = False,
        timeout: float | None = None,
    ) -> SearchEnvelope:
        """Return one page of listings, from cache when possible.

        Raises:
            ConfigurationError: Provider credentials are missing.
            QuotaExceededError: The daily provider budget is used up.
            ProviderError: The provider call failed.
        """
        if not skip_cache:
            cached = self._from_cache(params)
            if cached is not None:
                return cached

        self._provider.ensure_configured()

        if not self._budget.can_request():
            msg = "Provider request budget reached for today"
            raise QuotaExceededError(msg)

        query = self._build_query(params)
        logger.info(
            "Live search '%s' -> '%s' in region %s (page %d)",
            params.title, query.keyword, query.region, params.page,
        )
        self._budget.record_request()
        page = await self._provider.search(query, timeout=timeout)
        pages = total_pages(page.total_count, params.results_per_page)

        try:
            self._store.put_search_results(params, page.listings, page.total_count, pages)
        except StoreError:
            logger.error("Error caching search results", exc_info=True)

        if self._sweeper is not None:
            self._sweeper.spawn()

        return SearchEnvelope(
            listings=page.listings,
            total_count=page.total_count,
            total_pages=pages,
            current_page=params.page,
            from_cache=False,
        )

    def _from_cache(self, params: SearchParams) -> SearchEnvelope | None:
        fingerprint = params.fingerprint()
        try:
            cached = self._store.get_search(fingerprint)
            if cached is None:
                return None
            listings = self._store.get_listings(cached.listing_ids)
        except StoreError:
            logger.warning("Cache error, fetching fresh data", exc_info=True)
            return None

        logger.info("Cache hit for search %s (%d listings)", fingerprint[:12], len(listings))
        return SearchEnvelope(
            listings=listings,
            total_count=cached.total_count,
            total_pages=cached.total_pages,
            current_page=params.page,
            from_cache=True,
        )

    def _build_query(self, params: SearchParams) -> ProviderQuery:
        return ProviderQuery(
            keyword=optimize(params.title) if params.title else "",
            location=params.location,
            job_type=params.job_type,
            page=params.page,
            results_per_page=params.results_per_page,
            region=self._provider.resolve_region(params.location),
        )


def export_envelope_json(envelope: SearchEnvelope) -> str:
    """Export a search envelope as a JSON string."""
    data = {
        "total_count": envelope.total_count,
        "total_pages": envelope.total_pages,
        "current_page": envelope.current_page,
        "from_cache": envelope.from_cache,
        "listings": [
            {
                "id": listing.id,
                "title": listing.title,
                "company": listing.company,
                "location": listing.location,
                "salary_min": listing.salary_min,
                "salary_max": listing.salary_max,
                "contract_type": listing.contract_type,
                "contract_time": listing.contract_time,
                "category": listing.category,
                "redirect_url": listing.redirect_url,
                "created": listing.created,
                "validity": listing.validity.value,
            }
            for listing in envelope.listings
        ],
    }
    return json.dumps(data, indent=2)
