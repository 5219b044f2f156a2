"""Verification engine: tiered re-checks of whether a cached listing is still live.

Tiers, by age since the listing was cached:
  - under 10 days  -> skipped, no network call, no state change
  - 10 days or more -> basic HEAD probe against the redirect URL (5s)
  - 15 days or more -> if the basic probe passed, the page body is fetched
                       and scanned for closed / open phrases (10s)

Network failures are inconclusive: nothing is written and the last known
validity stands. Errors never propagate to the caller.
"""

import asyncio
import logging
from collections.abc import Callable
from datetime import datetime, timedelta
from typing import NamedTuple

import httpx

from jobcache.core.cache_store import CacheStore
from jobcache.core.config import VerificationConfig
from jobcache.core.errors import StoreError
from jobcache.core.schemas import Listing, VerificationEnvelope

logger = logging.getLogger(__name__)

CLOSED_PHRASES = (
    "position has been filled",
    "no longer accepting applications",
    "application period closed",
    "this job is no longer available",
    "position is filled",
    "job has been closed",
    "vacancy is now closed",
)

OPEN_INDICATORS = (
    "application form",
    "apply now",
    "submit your",
    "upload your",
    "resume",
    "cv",
    "cover letter",
)

BASIC_METHOD = "basic"
ADVANCED_METHOD = "advanced"


class CheckOutcome(NamedTuple):
    """A definite probe result."""

    is_valid: bool
    detail: str


class VerificationEngine:
    """Re-verifies cached listings against their original URL.

    An ``httpx.AsyncClient`` may be injected; otherwise a client is opened
    per probe.
    """

    def __init__(
        self,
        store: CacheStore,
        config: VerificationConfig | None = None,
        client: httpx.AsyncClient | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._store = store
        self._config = config or VerificationConfig()
        self._client = client
        self._clock = clock or store.now
        self._basic_after = timedelta(days=self._config.basic_after_days)
        self._advanced_after = timedelta(days=self._config.advanced_after_days)

    async def verify(
        self,
        listing_id: str,
        *,
        on_demand: bool = False,
    ) -> VerificationEnvelope | None:
        """Verify one listing and return its freshness badge data.

        Args:
            listing_id: Cached listing id.
            on_demand: Set when a user explicitly asked for a re-check. Skips
                the basic-check age gate; the advanced gate still applies.

        Returns:
            The (possibly updated) verification envelope, or None if the
            listing is not cached or has expired.
        """
        try:
            listing = self._store.get_listing(listing_id)
        except StoreError:
            logger.warning("Could not load listing %s for verification", listing_id, exc_info=True)
            return None
        if listing is None:
            logger.info("Listing %s not found in cache", listing_id)
            return None

        if not listing.redirect_url:
            logger.debug("Listing %s has no redirect URL, assuming valid", listing_id)
            return VerificationEnvelope.from_listing(listing).model_copy(update={"is_valid": True})

        age = self._age(listing)
        if not on_demand and age is not None and age < self._basic_after:
            logger.debug("Listing %s is younger than %s, skipping verification", listing_id, age)
            return VerificationEnvelope.from_listing(listing)

        basic = await self.basic_check(listing)
        if basic is None:
            return VerificationEnvelope.from_listing(listing)
        self._record(listing, basic, BASIC_METHOD)

        if basic.is_valid and age is not None and age >= self._advanced_after:
            advanced = await self.advanced_check(listing)
            if advanced is not None:
                self._record(listing, advanced, ADVANCED_METHOD)

        return self._envelope(listing)

    async def verify_many(
        self,
        listing_ids: list[str],
        *,
        on_demand: bool = False,
    ) -> dict[str, VerificationEnvelope]:
        """Verify independent listings concurrently. Missing listings are omitted."""
        results = await asyncio.gather(
            *(self.verify(listing_id, on_demand=on_demand) for listing_id in listing_ids),
        )
        return {
            listing_id: envelope
            for listing_id, envelope in zip(listing_ids, results)
            if envelope is not None
        }

    async def basic_check(self, listing: Listing) -> CheckOutcome | None:
        """HEAD the redirect URL. Any non-success status means the listing is gone.

        Returns None when the probe itself failed (timeout, DNS, connection).
        """
        try:
            response = await self._request(
                "HEAD", listing.redirect_url, self._config.basic_timeout_seconds,
            )
        except (httpx.HTTPError, httpx.InvalidURL):
            logger.warning("Basic verification failed for %s", listing.id, exc_info=True)
            return None

        is_valid = response.is_success
        logger.info(
            "Listing %s basic check: %s (status: %d)",
            listing.id, "valid" if is_valid else "invalid", response.status_code,
        )
        return CheckOutcome(is_valid, f"HTTP {response.status_code}")

    async def advanced_check(self, listing: Listing) -> CheckOutcome | None:
        """Fetch the page body and look for closed / still-open wording.

        Returns None when the fetch itself failed.
        """
        try:
            response = await self._request(
                "GET", listing.redirect_url, self._config.advanced_timeout_seconds,
            )
        except (httpx.HTTPError, httpx.InvalidURL):
            logger.warning("Advanced verification failed for %s", listing.id, exc_info=True)
            return None

        if not response.is_success:
            logger.info("Listing %s returned non-OK status: %d", listing.id, response.status_code)
            return CheckOutcome(False, f"HTTP {response.status_code}")

        text = response.text.lower()
        for phrase in CLOSED_PHRASES:
            if phrase in text:
                logger.info("Listing %s contains closed phrase: '%s'", listing.id, phrase)
                return CheckOutcome(False, f"closed phrase: {phrase}")

        for indicator in OPEN_INDICATORS:
            if indicator in text:
                logger.info("Listing %s still accepting applications ('%s')", listing.id, indicator)
                return CheckOutcome(True, f"open indicator: {indicator}")

        is_valid = self._config.content_default_valid
        logger.info(
            "Listing %s has no closed or open wording, marking %s",
            listing.id, "valid" if is_valid else "invalid",
        )
        return CheckOutcome(is_valid, "no application wording found")

    def _age(self, listing: Listing) -> timedelta | None:
        if listing.cached_at is None:
            return None
        return self._clock() - listing.cached_at

    def _record(self, listing: Listing, outcome: CheckOutcome, method: str) -> None:
        self._store.set_listing_validity(
            listing.id, outcome.is_valid, method=method, detail=outcome.detail,
        )

    def _envelope(self, listing: Listing) -> VerificationEnvelope:
        try:
            current = self._store.get_listing(listing.id)
        except StoreError:
            logger.warning("Could not reload listing %s", listing.id, exc_info=True)
            current = None
        return VerificationEnvelope.from_listing(current or listing)

    async def _request(self, method: str, url: str, timeout: float) -> httpx.Response:
        headers = {"User-Agent": self._config.user_agent}
        if self._client is not None:
            return await self._client.request(
                method, url, headers=headers, timeout=timeout, follow_redirects=True,
            )
        async with httpx.AsyncClient(follow_redirects=True) as client:
            return await client.request(method, url, headers=headers, timeout=timeout)
