"""Tests for the sync cycle scheduler."""

import asyncio

import pytest

from pyghsync.models import PassResult
from pyghsync.sync.ledger import ChangeLedger
from pyghsync.sync.reconciler import RemoteReconciler
from pyghsync.sync.scheduler import SyncScheduler
from pyghsync.utils import LOG_FILE_NAME


class BlockingReconciler:
    """Reconciler whose passes wait until released."""

    def __init__(self) -> None:
        self.release = asyncio.Event()
        self.snapshots: list[dict] = []

    async def run_pass(self, snapshot):
        self.snapshots.append(dict(snapshot))
        await self.release.wait()
        return PassResult(written=len(snapshot))


class ExplodingReconciler:
    async def run_pass(self, snapshot):
        raise RuntimeError("boom")


class TestTick:
    """Tests for SyncScheduler.tick."""

    @pytest.mark.asyncio
    async def test_empty_ledger_is_noop(self):
        reconciler = BlockingReconciler()
        scheduler = SyncScheduler(ChangeLedger(), reconciler)

        assert await scheduler.tick() is None
        assert reconciler.snapshots == []
        assert scheduler.passes_run == 0

    @pytest.mark.asyncio
    async def test_tick_drains_ledger_into_pass(self):
        ledger = ChangeLedger()
        ledger.record("a.txt", "a")
        reconciler = BlockingReconciler()
        reconciler.release.set()
        scheduler = SyncScheduler(ledger, reconciler)

        result = await scheduler.tick()

        assert result.written == 1
        assert reconciler.snapshots == [{"a.txt": "a"}]
        assert len(ledger) == 0

    @pytest.mark.asyncio
    async def test_overlapping_tick_is_skipped(self):
        """A tick during an in-flight pass does nothing; changes wait."""
        ledger = ChangeLedger()
        ledger.record("a.txt", "a")
        reconciler = BlockingReconciler()
        scheduler = SyncScheduler(ledger, reconciler)

        first = asyncio.ensure_future(scheduler.tick())
        await asyncio.sleep(0)
        assert scheduler.in_flight

        ledger.record("b.txt", "b")
        assert await scheduler.tick() is None
        assert scheduler.ticks_skipped == 1
        assert "b.txt" in ledger

        reconciler.release.set()
        await first

        await scheduler.tick()
        assert reconciler.snapshots == [{"a.txt": "a"}, {"b.txt": "b"}]

    @pytest.mark.asyncio
    async def test_events_during_pass_go_to_next_pass(self):
        ledger = ChangeLedger()
        ledger.record("a.txt", "v1")
        reconciler = BlockingReconciler()
        scheduler = SyncScheduler(ledger, reconciler)

        first = asyncio.ensure_future(scheduler.tick())
        await asyncio.sleep(0)
        ledger.record("a.txt", "v2")
        reconciler.release.set()
        await first

        assert reconciler.snapshots == [{"a.txt": "v1"}]
        assert ledger.get("a.txt").content == "v2"

    @pytest.mark.asyncio
    async def test_failing_pass_does_not_raise(self):
        ledger = ChangeLedger()
        ledger.record("a.txt", "a")
        scheduler = SyncScheduler(ledger, ExplodingReconciler())

        assert await scheduler.tick() is None
        assert not scheduler.in_flight


class TestFlushAndRun:
    """Tests for flush and the interval loop."""

    @pytest.mark.asyncio
    async def test_flush_waits_for_in_flight_pass(self):
        ledger = ChangeLedger()
        ledger.record("a.txt", "a")
        reconciler = BlockingReconciler()
        scheduler = SyncScheduler(ledger, reconciler)

        first = asyncio.ensure_future(scheduler.tick())
        await asyncio.sleep(0)
        ledger.record("b.txt", "b")
        flushing = asyncio.ensure_future(scheduler.flush())
        await asyncio.sleep(0)
        reconciler.release.set()
        await first
        await flushing

        assert reconciler.snapshots == [{"a.txt": "a"}, {"b.txt": "b"}]
        assert len(ledger) == 0

    @pytest.mark.asyncio
    async def test_run_ticks_on_interval_until_stopped(self):
        ledger = ChangeLedger()
        reconciler = BlockingReconciler()
        reconciler.release.set()
        scheduler = SyncScheduler(ledger, reconciler, interval=0.01)

        runner = asyncio.ensure_future(scheduler.run())
        ledger.record("a.txt", "a")
        for _ in range(200):
            if reconciler.snapshots:
                break
            await asyncio.sleep(0.01)
        scheduler.stop()
        await asyncio.wait_for(runner, timeout=5)

        assert reconciler.snapshots == [{"a.txt": "a"}]


class TestDebounce:
    """Editing a path many times in one interval yields one write."""

    @pytest.mark.asyncio
    async def test_many_edits_one_write(self, store, summarizer, temp_dir):
        ledger = ChangeLedger()
        for i in range(10):
            ledger.record("a.txt", f"edit {i}")
        reconciler = RemoteReconciler(store, summarizer, "repo", temp_dir)
        scheduler = SyncScheduler(ledger, reconciler)

        await scheduler.tick()

        assert store.writes_for("a.txt") == ["edit 9"]
        assert store.content(LOG_FILE_NAME).count("File: a.txt") == 1
