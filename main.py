"""CLI entry point for the job listing cache."""

import argparse
import asyncio
import logging
import sqlite3
import sys
from pathlib import Path

from jobcache.core.cache_store import CacheStore
from jobcache.core.config import Settings
from jobcache.core.db import REQUIRED_TABLES, check_setup, init_db
from jobcache.core.errors import JobCacheError
from jobcache.core.schemas import ApplicationStatus, SearchParams
from jobcache.pipeline.applications import ApplicationTracker
from jobcache.pipeline.budget import RequestBudget
from jobcache.pipeline.optimizer import optimize, suggest
from jobcache.pipeline.orchestrator import SearchOrchestrator, export_envelope_json
from jobcache.pipeline.sweeper import ExpirySweeper
from jobcache.pipeline.verifier import VerificationEngine
from jobcache.platforms.adzuna.adapter import AdzunaAdapter

logger = logging.getLogger(__name__)


def _add_common(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--config",
        default="config/settings.yaml",
        help="Path to settings YAML file (default: config/settings.yaml)",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose (DEBUG) logging",
    )


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Job listing cache - cached provider search and listing verification",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    # --- search ---
    search_parser = subparsers.add_parser("search", help="Search job listings")
    search_parser.add_argument("--title", default="", help="Job title keywords")
    search_parser.add_argument("--location", default="", help="Location text")
    search_parser.add_argument(
        "--job-type",
        default="",
        choices=["", "full_time", "part_time", "contract", "permanent"],
        help="Job type filter",
    )
    search_parser.add_argument("--page", type=int, default=1, help="Results page (default: 1)")
    search_parser.add_argument(
        "--results-per-page",
        type=int,
        default=None,
        help="Results per page (default: provider.results_per_page)",
    )
    search_parser.add_argument(
        "--skip-cache",
        action="store_true",
        help="Ignore cached results and query the provider",
    )
    search_parser.add_argument(
        "--export",
        choices=["json"],
        help="Export results to format (json)",
    )
    _add_common(search_parser)

    # --- suggest ---
    suggest_parser = subparsers.add_parser(
        "suggest",
        help="Show the optimized query and related titles",
    )
    suggest_parser.add_argument("query", help="Free-text job title")
    _add_common(suggest_parser)

    # --- verify ---
    verify_parser = subparsers.add_parser("verify", help="Re-verify cached listings")
    verify_parser.add_argument("listing_ids", nargs="+", help="Cached listing id(s)")
    verify_parser.add_argument(
        "--respect-age",
        action="store_true",
        help="Skip listings younger than the verification threshold",
    )
    _add_common(verify_parser)

    # --- sweep ---
    sweep_parser = subparsers.add_parser("sweep", help="Delete expired listings")
    sweep_parser.add_argument(
        "--batch-size",
        type=int,
        default=None,
        help="Listings per delete batch (default: cache.sweep_batch_size)",
    )
    _add_common(sweep_parser)

    # --- applied ---
    applied_parser = subparsers.add_parser("applied", help="Track job applications")
    applied_parser.add_argument(
        "action",
        choices=["add", "list", "status", "remove"],
        help="What to do",
    )
    applied_parser.add_argument("listing_id", nargs="?", help="Cached listing id")
    applied_parser.add_argument("--user", default="local", help="User id (default: local)")
    applied_parser.add_argument("--notes", default=None, help="Notes for add/status")
    applied_parser.add_argument(
        "--status",
        choices=[s.value for s in ApplicationStatus],
        help="New status (for the status action)",
    )
    _add_common(applied_parser)

    # --- check-setup ---
    setup_parser = subparsers.add_parser(
        "check-setup",
        help="Check database tables and provider credentials",
    )
    setup_parser.add_argument(
        "--init",
        action="store_true",
        help="Create any missing tables",
    )
    _add_common(setup_parser)

    return parser.parse_args(argv)


def setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def build_store(settings: Settings, conn: sqlite3.Connection) -> CacheStore:
    return CacheStore(conn, retention_days=settings.cache.retention_days)


async def cmd_search(args: argparse.Namespace, settings: Settings, conn: sqlite3.Connection) -> int:
    """Handle the search subcommand."""
    store = build_store(settings, conn)
    sweeper = ExpirySweeper(store, batch_size=settings.cache.sweep_batch_size)
    orchestrator = SearchOrchestrator(
        store,
        AdzunaAdapter(settings.provider),
        RequestBudget(settings.budget),
        sweeper,
    )
    params = SearchParams(
        title=args.title,
        location=args.location,
        job_type=args.job_type,
        page=args.page,
        results_per_page=args.results_per_page or settings.provider.results_per_page,
    )

    try:
        envelope = await orchestrator.search(params, skip_cache=args.skip_cache)
    except JobCacheError as e:
        logger.error("Search failed: %s", e)
        print(f"Error: {e.user_message}", file=sys.stderr)
        return 1
    finally:
        await sweeper.drain()

    source = "cache" if envelope.from_cache else "provider"
    print(
        f"Page {envelope.current_page}/{envelope.total_pages}: "
        f"{len(envelope.listings)} of {envelope.total_count} listings (from {source})",
    )
    for listing in envelope.listings:
        print(f"  [{listing.id}] {listing.title} - {listing.company} ({listing.location})")

    if args.export == "json":
        print(f"\n{export_envelope_json(envelope)}")
    return 0


def cmd_suggest(args: argparse.Namespace) -> int:
    print(f"Optimized: {optimize(args.query)}")
    suggestions = suggest(args.query)
    if suggestions:
        print("Related titles:")
        for s in suggestions:
            print(f"  {s}")
    return 0


async def cmd_verify(args: argparse.Namespace, settings: Settings, conn: sqlite3.Connection) -> int:
    """Handle the verify subcommand."""
    engine = VerificationEngine(build_store(settings, conn), settings.verification)
    results = await engine.verify_many(args.listing_ids, on_demand=not args.respect_age)

    status = 0
    for listing_id in args.listing_ids:
        envelope = results.get(listing_id)
        if envelope is None:
            print(f"  [{listing_id}] not found in cache")
            status = 1
            continue
        verified = envelope.verified_at.isoformat(timespec="seconds") if envelope.verified_at else "never"
        print(
            f"  [{listing_id}] {envelope.validity.value} "
            f"(verified: {verified}, attempts: {envelope.attempts})",
        )
    return status


def cmd_sweep(args: argparse.Namespace, settings: Settings, conn: sqlite3.Connection) -> int:
    sweeper = ExpirySweeper(build_store(settings, conn), batch_size=settings.cache.sweep_batch_size)
    deleted = sweeper.sweep_all(args.batch_size)
    print(f"Deleted {deleted} expired listings.")
    return 0


def cmd_applied(args: argparse.Namespace, settings: Settings, conn: sqlite3.Connection) -> int:
    """Handle the applied subcommand."""
    tracker = ApplicationTracker(conn)

    if args.action == "list":
        jobs = tracker.list_for_user(args.user)
        print(f"{len(jobs)} applications for '{args.user}'")
        for job in jobs:
            print(
                f"  [{job.listing_id}] {job.title} - {job.company} "
                f"({job.status.value}, applied {job.applied_at:%Y-%m-%d})",
            )
        return 0

    if not args.listing_id:
        print("Error: listing_id is required", file=sys.stderr)
        return 1

    if args.action == "add":
        listing = build_store(settings, conn).get_listing(args.listing_id)
        if listing is None:
            print(f"Error: listing {args.listing_id} not found in cache", file=sys.stderr)
            return 1
        applied = tracker.add(args.user, listing, args.notes)
        print("Added to applied jobs." if applied else "Already in applied jobs.")
        return 0

    if args.action == "status":
        if args.status is None:
            print("Error: --status is required", file=sys.stderr)
            return 1
        ok = tracker.update_status(args.user, args.listing_id, args.status, args.notes)
    else:
        ok = tracker.remove(args.user, args.listing_id)

    if not ok:
        print(f"Error: listing {args.listing_id} is not in applied jobs", file=sys.stderr)
        return 1
    print("Done.")
    return 0


def cmd_check_setup(args: argparse.Namespace, settings: Settings) -> int:
    """Handle the check-setup subcommand without creating anything unless --init."""
    path = Path(settings.database.path)
    if args.init:
        init_db(path).close()

    if path.exists():
        conn = sqlite3.connect(str(path))
        try:
            missing = check_setup(conn)
        finally:
            conn.close()
    else:
        missing = list(REQUIRED_TABLES)

    if missing:
        print(f"Missing tables in {path}: {', '.join(missing)}")
        print("Run: python main.py check-setup --init")
    else:
        print(f"All required tables exist in {path}.")

    if settings.provider.is_configured:
        print(f"Provider '{settings.provider.name}': credentials configured.")
    else:
        print(
            f"Provider '{settings.provider.name}': credentials missing. Set ADZUNA_APP_ID, "
            "ADZUNA_API_KEY and ADZUNA_BASE_URL or add them to the provider section.",
        )
    return 1 if missing else 0


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    setup_logging(args.verbose)

    if args.command == "suggest":
        sys.exit(cmd_suggest(args))

    try:
        settings = Settings.from_yaml(args.config)
    except (FileNotFoundError, ValueError) as e:
        print(f"Error loading config: {e}", file=sys.stderr)
        sys.exit(1)

    if args.command == "check-setup":
        sys.exit(cmd_check_setup(args, settings))

    conn = init_db(settings.database.path)
    try:
        if args.command == "search":
            status = asyncio.run(cmd_search(args, settings, conn))
        elif args.command == "verify":
            status = asyncio.run(cmd_verify(args, settings, conn))
        elif args.command == "sweep":
            status = cmd_sweep(args, settings, conn)
        else:
            status = cmd_applied(args, settings, conn)
    finally:
        conn.close()
    sys.exit(status)


if __name__ == "__main__":
    main()
