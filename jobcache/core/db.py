"""SQLite document layer for cached searches, listings, verification and applications.

Each logical collection is one table keyed by document id. Document bodies are
stored as JSON; the columns used for filtering (timestamps, validity) are kept
as plain columns so range queries stay indexable.

Functions here never commit. Callers group statements with ``with conn:`` so
multi-document writes land as one transaction.
"""

import json
import sqlite3
from collections.abc import Iterable
from datetime import datetime
from pathlib import Path
from typing import Any

_SEARCH_RESULTS_TABLE = """
CREATE TABLE IF NOT EXISTS search_results (
    fingerprint   TEXT PRIMARY KEY,
    params        TEXT    NOT NULL,
    listing_ids   TEXT    NOT NULL,
    total_count   INTEGER NOT NULL DEFAULT 0,
    total_pages   INTEGER NOT NULL DEFAULT 0,
    created_at    TEXT    NOT NULL
);
"""

_LISTINGS_TABLE = """
CREATE TABLE IF NOT EXISTS listings (
    id                    TEXT PRIMARY KEY,
    data                  TEXT    NOT NULL,
    cached_at             TEXT    NOT NULL,
    validity              TEXT    NOT NULL DEFAULT 'unverified',
    verified_at           TEXT,
    verification_attempts INTEGER NOT NULL DEFAULT 0
);
"""

_LISTINGS_CACHED_AT_INDEX = """
CREATE INDEX IF NOT EXISTS idx_listings_cached_at ON listings (cached_at);
"""

_VERIFICATION_HISTORY_TABLE = """
CREATE TABLE IF NOT EXISTS verification_history (
    id          INTEGER PRIMARY KEY AUTOINCREMENT,
    listing_id  TEXT    NOT NULL,
    method      TEXT    NOT NULL,
    is_valid    INTEGER NOT NULL,
    detail      TEXT    NOT NULL DEFAULT '',
    checked_at  TEXT    NOT NULL
);
"""

_APPLIED_JOBS_TABLE = """
CREATE TABLE IF NOT EXISTS applied_jobs (
    user_id     TEXT NOT NULL,
    listing_id  TEXT NOT NULL,
    snapshot    TEXT NOT NULL,
    applied_at  TEXT NOT NULL,
    notes       TEXT,
    status      TEXT NOT NULL DEFAULT 'applied',
    PRIMARY KEY (user_id, listing_id)
);
"""

REQUIRED_TABLES = ("search_results", "listings", "verification_history", "applied_jobs")


def init_db(path: str | Path) -> sqlite3.Connection:
    """Create the database and tables, returning a connection."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(path))
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute(_SEARCH_RESULTS_TABLE)
    conn.execute(_LISTINGS_TABLE)
    conn.execute(_LISTINGS_CACHED_AT_INDEX)
    conn.execute(_VERIFICATION_HISTORY_TABLE)
    conn.execute(_APPLIED_JOBS_TABLE)
    conn.commit()
    return conn


def check_setup(conn: sqlite3.Connection) -> list[str]:
    """Return the names of required tables that do not exist."""
    existing = {
        row[0]
        for row in conn.execute("SELECT name FROM sqlite_master WHERE type='table'")
    }
    return [name for name in REQUIRED_TABLES if name not in existing]


def to_timestamp(value: datetime) -> str:
    return value.isoformat(timespec="microseconds")


def from_timestamp(value: str | None) -> datetime | None:
    if value is None:
        return None
    return datetime.fromisoformat(value)


# ---------------------------------------------------------------------------
# search_results
# ---------------------------------------------------------------------------


def get_search_row(conn: sqlite3.Connection, fingerprint: str) -> sqlite3.Row | None:
    return conn.execute(  # type: ignore[no-any-return]
        "SELECT * FROM search_results WHERE fingerprint = ?",
        (fingerprint,),
    ).fetchone()


def upsert_search_row(
    conn: sqlite3.Connection,
    fingerprint: str,
    params: dict[str, Any],
    listing_ids: list[str],
    total_count: int,
    total_pages: int,
    created_at: datetime,
) -> None:
    """Write a search result, replacing any previous row for the fingerprint."""
    conn.execute(
        """
        INSERT INTO search_results
            (fingerprint, params, listing_ids, total_count, total_pages, created_at)
        VALUES (?, ?, ?, ?, ?, ?)
        ON CONFLICT(fingerprint) DO UPDATE SET
            params = excluded.params,
            listing_ids = excluded.listing_ids,
            total_count = excluded.total_count,
            total_pages = excluded.total_pages,
            created_at = excluded.created_at
        """,
        (
            fingerprint,
            json.dumps(params),
            json.dumps(listing_ids),
            total_count,
            total_pages,
            to_timestamp(created_at),
        ),
    )


# ---------------------------------------------------------------------------
# listings
# ---------------------------------------------------------------------------


def get_listing_row(conn: sqlite3.Connection, listing_id: str) -> sqlite3.Row | None:
    return conn.execute(  # type: ignore[no-any-return]
        "SELECT * FROM listings WHERE id = ?",
        (listing_id,),
    ).fetchone()


def get_listing_rows(
    conn: sqlite3.Connection,
    listing_ids: list[str],
    chunk_size: int = 100,
) -> dict[str, sqlite3.Row]:
    """Fetch listings by id in chunks, keyed by id. Missing ids are skipped."""
    rows: dict[str, sqlite3.Row] = {}
    for i in range(0, len(listing_ids), chunk_size):
        chunk = listing_ids[i:i + chunk_size]
        placeholders = ", ".join("?" for _ in chunk)
        for row in conn.execute(
            f"SELECT * FROM listings WHERE id IN ({placeholders})",  # noqa: S608
            chunk,
        ):
            rows[row["id"]] = row
    return rows


def upsert_listing_row(
    conn: sqlite3.Connection,
    listing_id: str,
    data: dict[str, Any],
    cached_at: datetime,
    validity: str = "unverified",
    verified_at: datetime | None = None,
    verification_attempts: int = 0,
) -> None:
    """Insert a listing or refresh its body.

    Verification columns are only written on insert. An existing row keeps
    its validity, verified_at and attempt count.
    """
    conn.execute(
        """
        INSERT INTO listings
            (id, data, cached_at, validity, verified_at, verification_attempts)
        VALUES (?, ?, ?, ?, ?, ?)
        ON CONFLICT(id) DO UPDATE SET
            data = excluded.data,
            cached_at = excluded.cached_at
        """,
        (
            listing_id,
            json.dumps(data),
            to_timestamp(cached_at),
            validity,
            to_timestamp(verified_at) if verified_at else None,
            verification_attempts,
        ),
    )


def update_listing_validity(
    conn: sqlite3.Connection,
    listing_id: str,
    validity: str,
    verified_at: datetime,
) -> bool:
    """Set validity, stamp verified_at and bump the attempt counter.

    Returns False if no listing with that id exists.
    """
    cursor = conn.execute(
        """
        UPDATE listings
        SET validity = ?,
            verified_at = ?,
            verification_attempts = verification_attempts + 1
        WHERE id = ?
        """,
        (validity, to_timestamp(verified_at), listing_id),
    )
    return cursor.rowcount > 0


def select_expired_listing_ids(
    conn: sqlite3.Connection,
    cutoff: datetime,
    limit: int,
) -> list[str]:
    """Return up to ``limit`` listing ids cached strictly before ``cutoff``, oldest first."""
    rows = conn.execute(
        "SELECT id FROM listings WHERE cached_at < ? ORDER BY cached_at LIMIT ?",
        (to_timestamp(cutoff), limit),
    ).fetchall()
    return [row["id"] for row in rows]


def delete_listing_rows(conn: sqlite3.Connection, listing_ids: Iterable[str]) -> int:
    cursor = conn.executemany(
        "DELETE FROM listings WHERE id = ?",
        [(listing_id,) for listing_id in listing_ids],
    )
    return cursor.rowcount


# ---------------------------------------------------------------------------
# verification_history
# ---------------------------------------------------------------------------


def insert_verification_event(
    conn: sqlite3.Connection,
    listing_id: str,
    method: str,
    is_valid: bool,
    detail: str,
    checked_at: datetime,
) -> int:
    """Record one definite verification outcome. Returns the row ID."""
    cursor = conn.execute(
        """
        INSERT INTO verification_history (listing_id, method, is_valid, detail, checked_at)
        VALUES (?, ?, ?, ?, ?)
        """,
        (listing_id, method, int(is_valid), detail, to_timestamp(checked_at)),
    )
    return cursor.lastrowid or 0


def get_verification_events(conn: sqlite3.Connection, listing_id: str) -> list[sqlite3.Row]:
    return conn.execute(
        "SELECT * FROM verification_history WHERE listing_id = ? ORDER BY id",
        (listing_id,),
    ).fetchall()


# ---------------------------------------------------------------------------
# applied_jobs
# ---------------------------------------------------------------------------


def insert_applied_job(
    conn: sqlite3.Connection,
    user_id: str,
    listing_id: str,
    snapshot: dict[str, Any],
    applied_at: datetime,
    notes: str | None,
    status: str,
) -> bool:
    """Insert an application, ignoring if (user_id, listing_id) already exists.

    Returns True if a new row was inserted, False if it was a duplicate.
    """
    try:
        conn.execute(
            """
            INSERT INTO applied_jobs (user_id, listing_id, snapshot, applied_at, notes, status)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (user_id, listing_id, json.dumps(snapshot), to_timestamp(applied_at), notes, status),
        )
    except sqlite3.IntegrityError:
        return False
    return True


def get_applied_job_row(
    conn: sqlite3.Connection,
    user_id: str,
    listing_id: str,
) -> sqlite3.Row | None:
    return conn.execute(  # type: ignore[no-any-return]
        "SELECT * FROM applied_jobs WHERE user_id = ? AND listing_id = ?",
        (user_id, listing_id),
    ).fetchone()


def list_applied_job_rows(conn: sqlite3.Connection, user_id: str) -> list[sqlite3.Row]:
    return conn.execute(
        "SELECT * FROM applied_jobs WHERE user_id = ? ORDER BY applied_at DESC",
        (user_id,),
    ).fetchall()


def delete_applied_job_row(conn: sqlite3.Connection, user_id: str, listing_id: str) -> bool:
    cursor = conn.execute(
        "DELETE FROM applied_jobs WHERE user_id = ? AND listing_id = ?",
        (user_id, listing_id),
    )
    return cursor.rowcount > 0


def update_applied_job_row(
    conn: sqlite3.Connection,
    user_id: str,
    listing_id: str,
    status: str,
    notes: str | None = None,
) -> bool:
    """Update status, and notes when given. Returns False if the row is missing."""
    if notes is None:
        cursor = conn.execute(
            "UPDATE applied_jobs SET status = ? WHERE user_id = ? AND listing_id = ?",
            (status, user_id, listing_id),
        )
    else:
        cursor = conn.execute(
            "UPDATE applied_jobs SET status = ?, notes = ? WHERE user_id = ? AND listing_id = ?",
            (status, notes, user_id, listing_id),
        )
    return cursor.rowcount > 0
