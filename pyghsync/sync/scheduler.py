"""Fixed-interval scheduler driving sync cycle passes."""

import asyncio
import logging
from typing import Optional

from ..models import PassResult
from .ledger import ChangeLedger
from .reconciler import RemoteReconciler

logger = logging.getLogger(__name__)


class SyncScheduler:
    """Drains the ledger every ``interval`` seconds and runs a pass.

    Passes never overlap. A tick that fires while a pass is still in
    flight is skipped; its changes stay in the ledger and are picked up by
    the next tick.
    """

    def __init__(
        self,
        ledger: ChangeLedger,
        reconciler: RemoteReconciler,
        interval: float = 10.0,
    ):
        """Initialize the scheduler.

        Args:
            ledger: Ledger of pending changes
            reconciler: Reconciler running each pass
            interval: Seconds between ticks
        """
        self.ledger = ledger
        self.reconciler = reconciler
        self.interval = interval
        self._lock = asyncio.Lock()
        self._stop_event = asyncio.Event()
        self._tasks: set[asyncio.Task] = set()
        self.passes_run = 0
        self.ticks_skipped = 0

    @property
    def in_flight(self) -> bool:
        return self._lock.locked()

    async def tick(self) -> Optional[PassResult]:
        """Run one pass if there are pending changes and no pass is running.

        Returns:
            The pass result, or None if the tick was a no-op or skipped
        """
        if self._lock.locked():
            self.ticks_skipped += 1
            logger.debug("Previous sync pass still running, skipping tick")
            return None
        if not self.ledger:
            return None
        return await self._run_pass()

    async def _run_pass(self) -> Optional[PassResult]:
        async with self._lock:
            # No await between the check and the swap: the drain is atomic
            if not self.ledger:
                return None
            snapshot = self.ledger.drain()
            logger.info(f"Syncing {len(snapshot)} changed path(s)")
            try:
                result = await self.reconciler.run_pass(snapshot)
            except Exception:
                logger.exception("Sync pass failed")
                return None
            self.passes_run += 1
            return result

    async def flush(self) -> Optional[PassResult]:
        """Wait for any in-flight pass, then sync whatever is still pending."""
        return await self._run_pass()

    async def run(self) -> None:
        """Tick every ``interval`` seconds until ``stop()`` is called."""
        logger.debug(f"Scheduler started (interval {self.interval}s)")
        while not self._stop_event.is_set():
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self.interval)
            except asyncio.TimeoutError:
                pass
            else:
                break
            # Ticks keep firing while a pass runs; tick() skips them.
            task = asyncio.ensure_future(self.tick())
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)
        logger.debug("Scheduler stopped")

    def stop(self) -> None:
        self._stop_event.set()
