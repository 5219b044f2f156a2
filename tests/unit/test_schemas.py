"""Tests for data models: params normalization, fingerprints, listings."""

from datetime import datetime

import pytest
from pydantic import ValidationError

from jobcache.core.schemas import (
    ApplicationStatus,
    AppliedJob,
    Listing,
    SearchParams,
    Validity,
    VerificationEnvelope,
)


class TestSearchParams:
    def test_defaults(self) -> None:
        p = SearchParams()
        assert p.title == ""
        assert p.page == 1
        assert p.results_per_page == 10

    def test_none_becomes_empty(self) -> None:
        p = SearchParams(title=None, location=None, job_type=None)
        assert (p.title, p.location, p.job_type) == ("", "", "")

    def test_strings_stripped(self) -> None:
        assert SearchParams(title="  python dev ").title == "python dev"

    def test_page_min(self) -> None:
        with pytest.raises(ValidationError):
            SearchParams(page=0)

    def test_frozen(self) -> None:
        p = SearchParams(title="x")
        with pytest.raises(ValidationError):
            p.title = "y"  # type: ignore[misc]


class TestFingerprint:
    def test_deterministic(self) -> None:
        a = SearchParams(title="swe", location="Toronto", page=2)
        b = SearchParams(title="swe", location="Toronto", page=2)
        assert a.fingerprint() == b.fingerprint()

    def test_hex_sha256(self) -> None:
        fp = SearchParams(title="swe").fingerprint()
        assert len(fp) == 64
        int(fp, 16)

    def test_none_and_empty_equivalent(self) -> None:
        assert SearchParams(location=None).fingerprint() == SearchParams(location="").fingerprint()

    def test_whitespace_equivalent(self) -> None:
        assert SearchParams(title=" swe ").fingerprint() == SearchParams(title="swe").fingerprint()

    @pytest.mark.parametrize("change", [
        {"title": "qa"},
        {"location": "London"},
        {"job_type": "contract"},
        {"page": 2},
    ])
    def test_each_key_field_matters(self, change: dict[str, object]) -> None:
        base = {"title": "swe", "location": "", "job_type": "", "page": 1}
        assert SearchParams(**base).fingerprint() != SearchParams(**{**base, **change}).fingerprint()

    def test_results_per_page_not_part_of_key(self) -> None:
        a = SearchParams(title="swe", results_per_page=10)
        b = SearchParams(title="swe", results_per_page=25)
        assert a.fingerprint() == b.fingerprint()

    def test_fields_do_not_bleed(self) -> None:
        """Shifting text between fields must not collide."""
        a = SearchParams(title="a b", location="c")
        b = SearchParams(title="a", location="b c")
        assert a.fingerprint() != b.fingerprint()


class TestListing:
    def test_int_id_coerced(self) -> None:
        assert Listing(id=4242).id == "4242"  # type: ignore[arg-type]

    def test_empty_id_rejected(self) -> None:
        with pytest.raises(ValidationError):
            Listing(id="  ")

    def test_new_listing_unverified(self) -> None:
        listing = Listing(id="1")
        assert listing.validity is Validity.UNVERIFIED
        assert listing.verification_attempts == 0
        assert listing.is_displayable is True

    def test_invalid_not_displayable(self) -> None:
        assert Listing(id="1", validity="invalid").is_displayable is False

    def test_unknown_fields_ignored(self) -> None:
        listing = Listing.model_validate({"id": "1", "adref": "abc"})
        assert not hasattr(listing, "adref")


class TestVerificationEnvelope:
    def test_from_listing(self) -> None:
        now = datetime(2026, 1, 1, 12, 0)
        listing = Listing(
            id="1", validity=Validity.VALID, verified_at=now, verification_attempts=3,
        )
        env = VerificationEnvelope.from_listing(listing)
        assert env.listing_id == "1"
        assert env.is_valid is True
        assert env.validity is Validity.VALID
        assert env.verified_at == now
        assert env.attempts == 3

    def test_unverified_counts_as_valid(self) -> None:
        env = VerificationEnvelope.from_listing(Listing(id="1"))
        assert env.is_valid is True
        assert env.validity is Validity.UNVERIFIED

    def test_invalid(self) -> None:
        env = VerificationEnvelope.from_listing(Listing(id="1", validity=Validity.INVALID))
        assert env.is_valid is False


class TestAppliedJob:
    def test_defaults(self) -> None:
        job = AppliedJob(user_id="u", listing_id="1", applied_at=datetime(2026, 1, 1))
        assert job.title == "Unknown Position"
        assert job.status is ApplicationStatus.APPLIED

    def test_status_from_string(self) -> None:
        job = AppliedJob(
            user_id="u", listing_id="1", applied_at=datetime(2026, 1, 1), status="no-response",
        )
        assert job.status is ApplicationStatus.NO_RESPONSE
