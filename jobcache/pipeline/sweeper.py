"""Expiry sweeper: bounded deletion of listings past the retention window."""

import asyncio
import logging

from jobcache.core.cache_store import CacheStore

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 100


class ExpirySweeper:
    """Deletes expired listings in bounded batches.

    ``spawn()`` schedules one batch as a background task after a search.
    Failures in that task are logged and never reach the caller.
    """

    def __init__(self, store: CacheStore, batch_size: int = DEFAULT_BATCH_SIZE) -> None:
        self._store = store
        self._batch_size = batch_size
        self._tasks: set[asyncio.Task[int]] = set()

    def sweep_once(self, batch_size: int | None = None) -> int:
        """Delete one batch. Returns the number of listings deleted (0 when done)."""
        return self._store.delete_expired_listings(batch_size or self._batch_size)

    def sweep_all(self, batch_size: int | None = None) -> int:
        """Delete batches until nothing expired is left. Returns the total deleted."""
        total = 0
        while True:
            deleted = self.sweep_once(batch_size)
            if deleted == 0:
                break
            total += deleted
        if total:
            logger.info("Expiry sweep removed %d listings", total)
        return total

    async def run(self) -> int:
        """Run one batch, logging instead of raising on failure."""
        try:
            deleted = self.sweep_once()
        except Exception:
            logger.exception("Error cleaning up expired listings")
            return 0
        if deleted:
            logger.info("Background sweep removed %d expired listings", deleted)
        return deleted

    def spawn(self) -> asyncio.Task[int]:
        """Schedule ``run()`` without waiting for it. Needs a running event loop."""
        task = asyncio.create_task(self.run())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def drain(self) -> None:
        """Wait for every spawned sweep to finish (used at shutdown and in tests)."""
        if self._tasks:
            await asyncio.gather(*self._tasks)
