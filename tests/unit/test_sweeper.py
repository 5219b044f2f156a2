"""Tests for ExpirySweeper: bounded batches and background failure handling."""

import sqlite3
from datetime import datetime, timedelta

import pytest

from jobcache.core.cache_store import CacheStore
from jobcache.core.db import init_db
from jobcache.core.errors import StoreError
from jobcache.core.schemas import Listing
from jobcache.pipeline.sweeper import ExpirySweeper

T0 = datetime(2026, 3, 1, 9, 0, 0)


class FakeClock:
    def __init__(self, now: datetime = T0) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def db(tmp_path: pytest.TempPathFactory) -> sqlite3.Connection:  # type: ignore[type-arg]
    return init_db(tmp_path / "test.db")


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(db: sqlite3.Connection, clock: FakeClock) -> CacheStore:
    return CacheStore(db, clock=clock)


def _fill(store: CacheStore, count: int) -> None:
    for i in range(count):
        store.put_listing(Listing(id=f"old-{i}"))


def _count(db: sqlite3.Connection) -> int:
    return db.execute("SELECT COUNT(*) FROM listings").fetchone()[0]  # type: ignore[no-any-return]


class TestSweepOnce:
    def test_bounded_batches(
        self, store: CacheStore, clock: FakeClock, db: sqlite3.Connection,
    ) -> None:
        _fill(store, 150)
        clock.now += timedelta(days=21)
        sweeper = ExpirySweeper(store, batch_size=100)

        assert sweeper.sweep_once() == 100
        assert _count(db) == 50
        assert sweeper.sweep_once() == 50
        assert sweeper.sweep_once() == 0

    def test_nothing_expired(self, store: CacheStore, db: sqlite3.Connection) -> None:
        _fill(store, 3)
        assert ExpirySweeper(store).sweep_once() == 0
        assert _count(db) == 3

    def test_batch_size_override(self, store: CacheStore, clock: FakeClock) -> None:
        _fill(store, 5)
        clock.now += timedelta(days=21)
        assert ExpirySweeper(store, batch_size=100).sweep_once(2) == 2


class TestSweepAll:
    def test_drains_everything(
        self, store: CacheStore, clock: FakeClock, db: sqlite3.Connection,
    ) -> None:
        _fill(store, 7)
        clock.now += timedelta(days=21)
        store.put_listing(Listing(id="fresh"))

        assert ExpirySweeper(store, batch_size=3).sweep_all() == 7
        assert _count(db) == 1


class TestBackground:
    async def test_run_deletes_one_batch(self, store: CacheStore, clock: FakeClock) -> None:
        _fill(store, 5)
        clock.now += timedelta(days=21)
        assert await ExpirySweeper(store, batch_size=2).run() == 2

    async def test_run_swallows_errors(
        self, store: CacheStore, monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        def broken(batch_size: int = 100) -> int:
            msg = "Store expiry sweep failed"
            raise StoreError(msg)

        monkeypatch.setattr(store, "delete_expired_listings", broken)
        assert await ExpirySweeper(store).run() == 0

    async def test_spawn_and_drain(self, store: CacheStore, clock: FakeClock) -> None:
        _fill(store, 3)
        clock.now += timedelta(days=21)
        sweeper = ExpirySweeper(store)

        task = sweeper.spawn()
        assert sweeper.pending == 1
        await sweeper.drain()

        assert task.result() == 3
        assert sweeper.pending == 0

    async def test_drain_with_nothing_pending(self, store: CacheStore) -> None:
        await ExpirySweeper(store).drain()
