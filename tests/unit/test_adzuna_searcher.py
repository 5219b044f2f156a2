"""Tests for the Adzuna URL builder and region detection."""

from urllib.parse import parse_qs, urlparse

import pytest

from jobcache.core.config import ProviderCredentials
from jobcache.platforms.adzuna.searcher import (
    build_search_url,
    detect_region,
    redact_url,
)
from jobcache.platforms.base import ProviderQuery, total_pages

CREDS = ProviderCredentials(
    app_id="my-id",
    app_key="s3cret/key",
    base_url="https://api.adzuna.com/v1/api",
)


def _parse(url: str) -> dict[str, list[str]]:
    """Parse URL and return query params as dict."""
    return parse_qs(urlparse(url).query)


def _query(**kw: object) -> ProviderQuery:
    defaults: dict[str, object] = {"keyword": "software engineer", "region": "us"}
    defaults.update(kw)
    return ProviderQuery(**defaults)  # type: ignore[arg-type]


# ---------------------------------------------------------------------------
# detect_region
# ---------------------------------------------------------------------------


class TestDetectRegion:
    @pytest.mark.parametrize("location", ["Toronto, ON", "Ontario", "somewhere in CANADA"])
    def test_canada(self, location: str) -> None:
        assert detect_region(location) == "ca"

    @pytest.mark.parametrize("location", ["London", "Manchester, UK", "England"])
    def test_britain(self, location: str) -> None:
        assert detect_region(location) == "gb"

    def test_default(self) -> None:
        assert detect_region("Austin, TX") == "us"
        assert detect_region("") == "us"

    def test_custom_default(self) -> None:
        assert detect_region("Berlin", default="de") == "de"


# ---------------------------------------------------------------------------
# build_search_url
# ---------------------------------------------------------------------------


class TestBuildSearchUrl:
    def test_path(self) -> None:
        url = build_search_url(CREDS, _query(region="ca", page=3))
        assert urlparse(url).path == "/v1/api/jobs/ca/search/3"

    def test_credentials_and_paging(self) -> None:
        params = _parse(build_search_url(CREDS, _query(results_per_page=25)))
        assert params["app_id"] == ["my-id"]
        assert params["app_key"] == ["s3cret/key"]
        assert params["results_per_page"] == ["25"]

    def test_keyword_encoded(self) -> None:
        url = build_search_url(CREDS, _query(keyword="c++ developer"))
        assert "what=c%2B%2B+developer" in url
        assert _parse(url)["what"] == ["c++ developer"]

    def test_location(self) -> None:
        params = _parse(build_search_url(CREDS, _query(location="Toronto, ON")))
        assert params["where"] == ["Toronto, ON"]

    def test_empty_keyword_and_location_omitted(self) -> None:
        params = _parse(build_search_url(CREDS, _query(keyword="", location="")))
        assert "what" not in params
        assert "where" not in params

    @pytest.mark.parametrize("job_type", ["full_time", "part_time", "contract", "permanent"])
    def test_job_type_flag(self, job_type: str) -> None:
        params = _parse(build_search_url(CREDS, _query(job_type=job_type)))
        assert params[job_type] == ["1"]

    def test_unknown_job_type_skipped(self) -> None:
        params = _parse(build_search_url(CREDS, _query(job_type="gig")))
        assert "gig" not in params


class TestRedactUrl:
    def test_key_removed(self) -> None:
        url = build_search_url(CREDS, _query())
        redacted = redact_url(url, CREDS)
        assert "s3cret" not in redacted
        assert "app_key=***" in redacted


class TestTotalPages:
    @pytest.mark.parametrize(("count", "per_page", "expected"), [
        (0, 10, 0),
        (1, 10, 1),
        (10, 10, 1),
        (11, 10, 2),
        (95, 20, 5),
    ])
    def test_ceil(self, count: int, per_page: int, expected: int) -> None:
        assert total_pages(count, per_page) == expected
