"""Core data models for the listing cache engine."""

import hashlib
import json
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Validity(str, Enum):
    """Verification state of a cached listing.

    ``UNVERIFIED`` means no probe has produced a definite answer yet. Such
    listings are displayed (assumed live) but never reported as confirmed.
    """

    VALID = "valid"
    INVALID = "invalid"
    UNVERIFIED = "unverified"


class ApplicationStatus(str, Enum):
    APPLIED = "applied"
    INTERVIEW = "interview"
    OFFER = "offer"
    REJECTED = "rejected"
    NO_RESPONSE = "no-response"


class SearchParams(BaseModel):
    """User search parameters, normalized before fingerprinting.

    Frozen so a params object can be reused as a cache key source.
    """

    model_config = ConfigDict(frozen=True)

    title: str = ""
    location: str = ""
    job_type: str = ""
    page: int = Field(default=1, ge=1)
    results_per_page: int = Field(default=10, ge=1, le=50)

    @field_validator("title", "location", "job_type", mode="before")
    @classmethod
    def blank_if_none(cls, v: Any) -> Any:
        if v is None:
            return ""
        if isinstance(v, str):
            return v.strip()
        return v

    def fingerprint(self) -> str:
        """Deterministic cache key over (title, location, job_type, page)."""
        key = json.dumps([self.title, self.location, self.job_type, self.page])
        return hashlib.sha256(key.encode("utf-8")).hexdigest()


class Listing(BaseModel):
    """A job listing as cached by the engine.

    Declared fields are the persistence allow-list. Provider fields with no
    dedicated slot end up in ``attributes``.
    """

    model_config = ConfigDict(extra="ignore")

    id: str
    title: str = ""
    description: str = ""
    company: str = ""
    location: str = ""
    area: list[str] = Field(default_factory=list)
    salary_min: float | None = None
    salary_max: float | None = None
    contract_type: str = ""
    contract_time: str = ""
    category: str = ""
    redirect_url: str = ""
    created: str = ""
    attributes: dict[str, Any] = Field(default_factory=dict)

    cached_at: datetime | None = None
    validity: Validity = Validity.UNVERIFIED
    verified_at: datetime | None = None
    verification_attempts: int = Field(default=0, ge=0)

    @field_validator("id", mode="before")
    @classmethod
    def id_as_string(cls, v: Any) -> Any:
        if isinstance(v, int):
            return str(v)
        return v

    @field_validator("id")
    @classmethod
    def id_not_empty(cls, v: str) -> str:
        if not v.strip():
            msg = "listing id must not be empty"
            raise ValueError(msg)
        return v.strip()

    @property
    def is_displayable(self) -> bool:
        return self.validity is not Validity.INVALID


class CachedSearchResult(BaseModel):
    """One memoized provider search page."""

    model_config = ConfigDict(frozen=True)

    fingerprint: str
    params: SearchParams
    listing_ids: list[str] = Field(default_factory=list)
    total_count: int = Field(default=0, ge=0)
    total_pages: int = Field(default=0, ge=0)
    created_at: datetime


class SearchEnvelope(BaseModel):
    """What a search hands to the presentation layer."""

    listings: list[Listing] = Field(default_factory=list)
    total_count: int = 0
    total_pages: int = 0
    current_page: int = 1
    from_cache: bool = False


class VerificationEnvelope(BaseModel):
    """Freshness badge data for a single listing."""

    listing_id: str
    is_valid: bool
    validity: Validity
    verified_at: datetime | None = None
    attempts: int = 0

    @classmethod
    def from_listing(cls, listing: Listing) -> "VerificationEnvelope":
        return cls(
            listing_id=listing.id,
            is_valid=listing.is_displayable,
            validity=listing.validity,
            verified_at=listing.verified_at,
            attempts=listing.verification_attempts,
        )


class AppliedJob(BaseModel):
    """A listing a user has applied to, with a snapshot of the listing."""

    user_id: str
    listing_id: str
    title: str = "Unknown Position"
    company: str = "Unknown Company"
    location: str = "Unknown Location"
    redirect_url: str = ""
    created: str = ""
    applied_at: datetime
    notes: str | None = None
    status: ApplicationStatus = ApplicationStatus.APPLIED
