"""Error taxonomy for the search and cache layers."""

GENERIC_SEARCH_MESSAGE = "Job search is temporarily unavailable. Please try again later."


class JobCacheError(Exception):
    """Base class for errors surfaced to callers of the engine."""

    user_message = GENERIC_SEARCH_MESSAGE


class ConfigurationError(JobCacheError):
    """Provider credentials or endpoint are missing. Not retried."""


class QuotaExceededError(JobCacheError):
    """The daily provider request budget is exhausted. Retry tomorrow."""

    user_message = "Daily search limit reached. Please try again later."


class ProviderError(JobCacheError):
    """The job-search provider answered with a non-success status."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class StoreError(JobCacheError):
    """A read or write against the document store failed."""
