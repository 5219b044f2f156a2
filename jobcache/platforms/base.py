"""Abstract base class and request/response models for listing providers."""

import math
from abc import ABC, abstractmethod

from pydantic import BaseModel, Field

from jobcache.core.schemas import Listing


class ProviderQuery(BaseModel):
    """One outbound provider search, already optimized and region-resolved."""

    keyword: str = ""
    location: str = ""
    job_type: str = ""
    page: int = Field(default=1, ge=1)
    results_per_page: int = Field(default=10, ge=1)
    region: str


class ProviderPage(BaseModel):
    """A single page of provider results."""

    listings: list[Listing] = Field(default_factory=list)
    total_count: int = Field(default=0, ge=0)


def total_pages(total_count: int, results_per_page: int) -> int:
    """Number of result pages for a total listing count."""
    if total_count <= 0:
        return 0
    return math.ceil(total_count / results_per_page)


class ListingProvider(ABC):
    """Base class that every job-search provider adapter must implement."""

    @property
    @abstractmethod
    def provider_id(self) -> str:
        """Unique identifier for this provider (e.g. 'adzuna')."""

    @abstractmethod
    def ensure_configured(self) -> None:
        """Raise ConfigurationError if credentials or endpoint are missing."""

    @abstractmethod
    def resolve_region(self, location: str) -> str:
        """Map a free-text location to the provider's region code."""

    @abstractmethod
    async def search(self, query: ProviderQuery, timeout: float | None = None) -> ProviderPage:
        """Run one search call and return the normalized page.

        Raises:
            ProviderError: On a non-success response or transport failure.
        """
