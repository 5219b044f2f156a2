"""Adzuna URL builder, region detection and logging helpers.

Pure functions with no network dependency.
"""

import logging
from urllib.parse import quote, quote_plus, urlencode

from jobcache.core.config import ProviderCredentials
from jobcache.platforms.base import ProviderQuery

logger = logging.getLogger(__name__)

DEFAULT_REGION = "us"

# --- Mapping dicts (URL concern) ---

# Checked in order; the first region with a keyword found in the location wins.
REGION_KEYWORDS: dict[str, tuple[str, ...]] = {
    "ca": ("toronto", "canada", "ontario"),
    "gb": ("london", "uk", "england"),
}

JOB_TYPE_PARAM_MAP: dict[str, str] = {
    "full_time": "full_time",
    "part_time": "part_time",
    "contract": "contract",
    "permanent": "permanent",
}


def detect_region(location: str, default: str = DEFAULT_REGION) -> str:
    """Pick a region code from coarse keyword matching on the location text."""
    location_lower = location.lower()
    for region, keywords in REGION_KEYWORDS.items():
        if any(kw in location_lower for kw in keywords):
            return region
    return default


def build_search_url(credentials: ProviderCredentials, query: ProviderQuery) -> str:
    """Build an Adzuna search URL for one results page.

    Args:
        credentials: Resolved app id, app key and base URL.
        query: Keyword (already optimized), location, job type, paging and region.

    Returns:
        Fully qualified search URL including credentials.
    """
    base = f"{credentials.base_url}/jobs/{quote(query.region)}/search/{query.page}"
    params: dict[str, str] = {
        "app_id": credentials.app_id,
        "app_key": credentials.app_key,
        "results_per_page": str(query.results_per_page),
    }

    if query.keyword:
        params["what"] = query.keyword

    if query.location:
        params["where"] = query.location

    job_type_param = _job_type_param(query.job_type)
    if job_type_param:
        params[job_type_param] = "1"

    return f"{base}?{urlencode(params, quote_via=quote_plus)}"


def redact_url(url: str, credentials: ProviderCredentials) -> str:
    """Strip the app key from a URL before it is logged."""
    return url.replace(quote_plus(credentials.app_key), "***")


def _job_type_param(job_type: str) -> str | None:
    """Map a job type to its Adzuna flag. Unknown values are logged and skipped."""
    key = job_type.lower().strip()
    if not key:
        return None
    param = JOB_TYPE_PARAM_MAP.get(key)
    if param is None:
        logger.warning("Unknown job_type value '%s', skipping", job_type)
    return param
