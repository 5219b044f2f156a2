"""Application tracker: the listings a user has applied to and their status."""

import json
import logging
import sqlite3
from collections.abc import Callable
from datetime import datetime

from jobcache.core import db
from jobcache.core.cache_store import sanitize_document
from jobcache.core.schemas import ApplicationStatus, AppliedJob, Listing

logger = logging.getLogger(__name__)


class ApplicationTracker:
    """Per-user list of applied jobs, keyed by (user_id, listing_id).

    Only a small snapshot of the listing is kept, so an application outlives
    the cached listing it came from.
    """

    def __init__(
        self,
        conn: sqlite3.Connection,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._conn = conn
        self._clock = clock

    def is_applied(self, user_id: str, listing_id: str) -> bool:
        return db.get_applied_job_row(self._conn, user_id, listing_id) is not None

    def add(self, user_id: str, listing: Listing, notes: str | None = None) -> AppliedJob | None:
        """Track an application. Returns None if the listing is already tracked."""
        snapshot = sanitize_document({
            "title": listing.title or "Unknown Position",
            "company": listing.company or "Unknown Company",
            "location": listing.location or "Unknown Location",
            "redirect_url": listing.redirect_url,
            "created": listing.created or self._clock().isoformat(),
        })
        notes = notes.strip() if notes and notes.strip() else None
        applied_at = self._clock()

        with self._conn:
            inserted = db.insert_applied_job(
                self._conn,
                user_id,
                listing.id,
                snapshot,
                applied_at,
                notes,
                ApplicationStatus.APPLIED.value,
            )
        if not inserted:
            logger.info("Listing %s already in applied list for %s", listing.id, user_id)
            return None

        return AppliedJob(
            user_id=user_id,
            listing_id=listing.id,
            applied_at=applied_at,
            notes=notes,
            **snapshot,
        )

    def list_for_user(self, user_id: str) -> list[AppliedJob]:
        """Return a user's applications, newest first."""
        return [_applied_from_row(row) for row in db.list_applied_job_rows(self._conn, user_id)]

    def remove(self, user_id: str, listing_id: str) -> bool:
        with self._conn:
            return db.delete_applied_job_row(self._conn, user_id, listing_id)

    def update_status(
        self,
        user_id: str,
        listing_id: str,
        status: ApplicationStatus | str,
        notes: str | None = None,
    ) -> bool:
        """Change an application's status. Returns False if it is not tracked."""
        status = ApplicationStatus(status)
        with self._conn:
            updated = db.update_applied_job_row(
                self._conn, user_id, listing_id, status.value, notes,
            )
        if updated:
            logger.debug("Application %s for %s -> %s", listing_id, user_id, status.value)
        return updated


def _applied_from_row(row: sqlite3.Row) -> AppliedJob:
    snapshot = json.loads(row["snapshot"])
    return AppliedJob(
        user_id=row["user_id"],
        listing_id=row["listing_id"],
        applied_at=db.from_timestamp(row["applied_at"]),
        notes=row["notes"],
        status=row["status"],
        **snapshot,
    )
