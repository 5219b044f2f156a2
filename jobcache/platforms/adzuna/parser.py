"""Adzuna payload parser: converts search response JSON into Listing objects.

Design rules:
  - Nested provider objects (company, location, category) are flattened.
  - Missing or null optional fields become "" or None (never crash).
  - Results without an id are skipped.
  - Provider fields with no dedicated slot are kept in ``attributes``;
    the cache store strips reserved ``__dunder__`` keys before writing.
"""

import logging
from typing import Any

from jobcache.core.schemas import Listing
from jobcache.platforms.base import ProviderPage

logger = logging.getLogger(__name__)

_MAPPED_FIELDS = frozenset({
    "id",
    "title",
    "description",
    "company",
    "location",
    "salary_min",
    "salary_max",
    "contract_type",
    "contract_time",
    "category",
    "redirect_url",
    "created",
})


def parse_search_payload(payload: dict[str, Any]) -> ProviderPage:
    """Parse a full search response body into a ProviderPage."""
    raw_results = payload.get("results") or []
    listings: list[Listing] = []
    for raw in raw_results:
        listing = parse_listing(raw)
        if listing is not None:
            listings.append(listing)

    skipped = len(raw_results) - len(listings)
    if skipped:
        logger.debug("Skipped %d unparseable results", skipped)

    total_count = _int(payload.get("count"))
    return ProviderPage(listings=listings, total_count=total_count)


def parse_listing(raw: Any) -> Listing | None:
    """Parse one result object, or return None if it has no usable id."""
    if not isinstance(raw, dict):
        return None
    listing_id = raw.get("id")
    if listing_id is None or not str(listing_id).strip():
        return None

    location = raw.get("location") or {}
    try:
        return Listing(
            id=str(listing_id),
            title=_text(raw.get("title")),
            description=_text(raw.get("description")),
            company=_display_name(raw.get("company")),
            location=_display_name(location),
            area=[str(a) for a in location.get("area") or []] if isinstance(location, dict) else [],
            salary_min=_number(raw.get("salary_min")),
            salary_max=_number(raw.get("salary_max")),
            contract_type=_text(raw.get("contract_type")),
            contract_time=_text(raw.get("contract_time")),
            category=_label(raw.get("category")),
            redirect_url=_text(raw.get("redirect_url")),
            created=_text(raw.get("created")),
            attributes={k: v for k, v in raw.items() if k not in _MAPPED_FIELDS},
        )
    except ValueError:
        logger.debug("Failed to parse result %s, skipping", listing_id, exc_info=True)
        return None


def _display_name(value: Any) -> str:
    if isinstance(value, dict):
        return _text(value.get("display_name"))
    return _text(value)


def _label(value: Any) -> str:
    if isinstance(value, dict):
        return _text(value.get("label"))
    return _text(value)


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _number(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _int(value: Any) -> int:
    try:
        return max(0, int(value))
    except (TypeError, ValueError):
        return 0
