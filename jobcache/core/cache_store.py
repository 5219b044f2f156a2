"""Cache store adapter: the single writer of cached searches and listings.

Retention is evaluated lazily on read. A search result or listing older than
the retention window is reported as absent even while its row still exists;
the expiry sweeper removes the rows later.
"""

import json
import logging
import sqlite3
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from datetime import datetime, timedelta
from typing import Any

from jobcache.core import db
from jobcache.core.errors import StoreError
from jobcache.core.schemas import (
    CachedSearchResult,
    Listing,
    SearchParams,
    Validity,
)

logger = logging.getLogger(__name__)

DEFAULT_RETENTION_DAYS = 20

# Stored in dedicated columns, not in the document body.
_STATE_FIELDS = {"cached_at", "validity", "verified_at", "verification_attempts"}

Clock = Callable[[], datetime]


def _is_reserved_key(key: Any) -> bool:
    return isinstance(key, str) and key.startswith("__") and key.endswith("__")


def sanitize_document(value: Any) -> Any:
    """Return a copy of ``value`` with every ``__dunder__`` key removed, at any depth."""
    if isinstance(value, dict):
        return {
            k: sanitize_document(v)
            for k, v in value.items()
            if not _is_reserved_key(k)
        }
    if isinstance(value, list):
        return [sanitize_document(v) for v in value]
    return value


@contextmanager
def _store_errors(action: str) -> Iterator[None]:
    try:
        yield
    except sqlite3.Error as e:
        msg = f"Store {action} failed: {e}"
        raise StoreError(msg) from e


class CacheStore:
    """Reads and writes the ``search_results`` and ``listings`` collections.

    Usage::

        store = CacheStore(conn)
        store.put_search_results(params, listings, total_count=120, total_pages=12)
        cached = store.get_search(params.fingerprint())
        live = store.get_listings(cached.listing_ids)
    """

    def __init__(
        self,
        conn: sqlite3.Connection,
        retention_days: int = DEFAULT_RETENTION_DAYS,
        clock: Clock = datetime.now,
    ) -> None:
        self._conn = conn
        self._retention = timedelta(days=retention_days)
        self._clock = clock

    @property
    def retention(self) -> timedelta:
        return self._retention

    def now(self) -> datetime:
        return self._clock()

    def _is_expired(self, created_at: datetime) -> bool:
        return self._clock() > created_at + self._retention

    # ------------------------------------------------------------------
    # Search results
    # ------------------------------------------------------------------

    def get_search(self, fingerprint: str) -> CachedSearchResult | None:
        """Return the cached search for a fingerprint, or None if missing or expired."""
        with _store_errors("search read"):
            row = db.get_search_row(self._conn, fingerprint)
        if row is None:
            return None

        result = CachedSearchResult(
            fingerprint=row["fingerprint"],
            params=SearchParams.model_validate_json(row["params"]),
            listing_ids=json.loads(row["listing_ids"]),
            total_count=row["total_count"],
            total_pages=row["total_pages"],
            created_at=db.from_timestamp(row["created_at"]),
        )
        if self._is_expired(result.created_at):
            logger.info("Search cache expired: %s", fingerprint)
            return None
        return result

    def put_search(
        self,
        params: SearchParams,
        listing_ids: list[str],
        total_count: int,
        total_pages: int,
    ) -> CachedSearchResult:
        """Write a search result, overwriting any entry with the same fingerprint."""
        with _store_errors("search write"), self._conn:
            return self._write_search(params, listing_ids, total_count, total_pages)

    def put_search_results(
        self,
        params: SearchParams,
        listings: list[Listing],
        total_count: int,
        total_pages: int,
    ) -> CachedSearchResult:
        """Write a search result and all of its listings as one transaction.

        Readers never see the search entry without its listings.
        """
        with _store_errors("search batch write"), self._conn:
            for listing in listings:
                self._write_listing(listing)
            result = self._write_search(
                params, [listing.id for listing in listings], total_count, total_pages,
            )
        logger.info(
            "Cached %d listings for search %s", len(listings), result.fingerprint[:12],
        )
        return result

    def _write_search(
        self,
        params: SearchParams,
        listing_ids: list[str],
        total_count: int,
        total_pages: int,
    ) -> CachedSearchResult:
        result = CachedSearchResult(
            fingerprint=params.fingerprint(),
            params=params,
            listing_ids=list(listing_ids),
            total_count=total_count,
            total_pages=total_pages,
            created_at=self._clock(),
        )
        db.upsert_search_row(
            self._conn,
            result.fingerprint,
            params.model_dump(mode="json"),
            result.listing_ids,
            total_count,
            total_pages,
            result.created_at,
        )
        return result

    # ------------------------------------------------------------------
    # Listings
    # ------------------------------------------------------------------

    def get_listing(self, listing_id: str) -> Listing | None:
        """Return a listing, or None if missing or past retention."""
        with _store_errors("listing read"):
            row = db.get_listing_row(self._conn, listing_id)
        if row is None:
            return None
        listing = _listing_from_row(row)
        if listing.cached_at is not None and self._is_expired(listing.cached_at):
            return None
        return listing

    def get_listings(self, listing_ids: list[str]) -> list[Listing]:
        """Return listings in the given order, skipping missing and invalid ones."""
        with _store_errors("listing batch read"):
            rows = db.get_listing_rows(self._conn, list(listing_ids))
        listings: list[Listing] = []
        for listing_id in listing_ids:
            row = rows.get(listing_id)
            if row is None:
                continue
            listing = _listing_from_row(row)
            if listing.is_displayable:
                listings.append(listing)
        return listings

    def put_listing(self, listing: Listing | dict[str, Any]) -> Listing:
        """Sanitize and write one listing, preserving stored verification state."""
        with _store_errors("listing write"), self._conn:
            return self._write_listing(listing)

    def _write_listing(self, listing: Listing | dict[str, Any]) -> Listing:
        if isinstance(listing, dict):
            listing = Listing.model_validate(sanitize_document(listing))
        body = sanitize_document(
            listing.model_dump(mode="json", exclude=_STATE_FIELDS),
        )
        cached_at = self._clock()
        db.upsert_listing_row(
            self._conn,
            listing.id,
            body,
            cached_at,
            validity=listing.validity.value,
            verified_at=listing.verified_at,
            verification_attempts=listing.verification_attempts,
        )
        return listing.model_copy(update={"cached_at": cached_at})

    def set_listing_validity(
        self,
        listing_id: str,
        is_valid: bool,
        *,
        method: str = "manual",
        detail: str = "",
    ) -> bool:
        """Record a verification outcome.

        Returns False instead of raising when the listing is gone, since a
        verification can race with the expiry sweeper.
        """
        validity = Validity.VALID if is_valid else Validity.INVALID
        now = self._clock()
        try:
            with self._conn:
                updated = db.update_listing_validity(
                    self._conn, listing_id, validity.value, now,
                )
                if updated:
                    db.insert_verification_event(
                        self._conn, listing_id, method, is_valid, detail, now,
                    )
        except sqlite3.Error:
            logger.error("Failed to update validity for %s", listing_id, exc_info=True)
            return False
        if not updated:
            logger.info("Listing %s no longer cached, validity not recorded", listing_id)
        return updated

    def get_verification_history(self, listing_id: str) -> list[dict[str, Any]]:
        with _store_errors("history read"):
            rows = db.get_verification_events(self._conn, listing_id)
        return [
            {
                "method": row["method"],
                "is_valid": bool(row["is_valid"]),
                "detail": row["detail"],
                "checked_at": db.from_timestamp(row["checked_at"]),
            }
            for row in rows
        ]

    def delete_expired_listings(self, batch_size: int = 100) -> int:
        """Delete up to ``batch_size`` listings past retention as one batch.

        Call repeatedly until it returns 0.
        """
        cutoff = self._clock() - self._retention
        with _store_errors("expiry sweep"), self._conn:
            expired = db.select_expired_listing_ids(self._conn, cutoff, batch_size)
            if not expired:
                return 0
            deleted = db.delete_listing_rows(self._conn, expired)
        logger.debug("Deleted %d expired listings", deleted)
        return deleted


def _listing_from_row(row: sqlite3.Row) -> Listing:
    data: dict[str, Any] = json.loads(row["data"])
    data.update(
        cached_at=db.from_timestamp(row["cached_at"]),
        validity=row["validity"],
        verified_at=db.from_timestamp(row["verified_at"]),
        verification_attempts=row["verification_attempts"],
    )
    return Listing.model_validate(data)
