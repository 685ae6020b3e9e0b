"""Periodic refresh with exponential backoff on failure."""

from __future__ import annotations

import asyncio
import logging
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Awaitable, Callable

from helm_monitor.core.refresh import RefreshCycle
from helm_monitor.core.snapshot_store import SnapshotStore
from helm_monitor.errors import CycleFailure, ReadinessTimeout
from helm_monitor.models import SchedulerState

logger = logging.getLogger(__name__)

SleepFn = Callable[[float], Awaitable[None]]


class Backoff:
    """Doubling retry delay, capped, reset by a success."""

    def __init__(self, base: float, cap: float):
        if base <= 0 or cap < base:
            raise ValueError(f"invalid backoff base={base} cap={cap}")
        self.base = base
        self.cap = cap
        self.failures = 0

    @property
    def delay(self) -> float:
        if self.failures == 0:
            return self.base
        return min(self.cap, self.base * 2 ** (self.failures - 1))

    def failure(self) -> float:
        """Record a failure and return how long to wait before retrying."""
        self.failures += 1
        return self.delay

    def reset(self) -> None:
        self.failures = 0


class RefreshScheduler:
    """Owns the refresh loop.

    Cycles never overlap: the loop runs one cycle, then sleeps until the next
    tick (ticks missed while a cycle overran are dropped) or, after a failure,
    for the backoff delay.
    """

    def __init__(
        self,
        cycle: RefreshCycle,
        store: SnapshotStore,
        interval: float,
        backoff: Backoff,
        metrics=None,
        sleep: SleepFn | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.cycle = cycle
        self.store = store
        self.interval = interval
        self.backoff = backoff
        self.metrics = metrics
        self.state = SchedulerState.IDLE
        self.last_error: str | None = None
        self._sleep = sleep
        self._clock = clock
        self._stop = asyncio.Event()
        self._task: asyncio.Task | None = None
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="refresh")

    def start(self) -> asyncio.Task:
        if self._task is None:
            self._task = asyncio.create_task(self.run(), name="refresh-scheduler")
        return self._task

    def request_stop(self) -> None:
        """Ask the loop to exit after the current cycle or sleep."""
        self._stop.set()

    async def stop(self, grace: float) -> None:
        """Signal the loop to stop; abandon an in-flight cycle after ``grace`` seconds."""
        self.request_stop()
        task = self._task
        if task is not None and not task.done():
            try:
                await asyncio.wait_for(asyncio.shield(task), timeout=grace)
            except asyncio.TimeoutError:
                logger.warning("Refresh cycle still running after %gs, abandoning it", grace)
                task.cancel()
                await asyncio.gather(task, return_exceptions=True)
        self._executor.shutdown(wait=False, cancel_futures=True)
        self.state = SchedulerState.STOPPED

    async def run(self) -> None:
        logger.info("Starting refresh loop (interval %gs)", self.interval)
        while not self._stop.is_set():
            started = self._clock()
            if await self.run_once():
                delay = self._until_next_tick(started)
            else:
                delay = self.backoff.failure()
                self.state = SchedulerState.BACKOFF
                logger.error(
                    "Refresh cycle failed (%d consecutive), retrying in %gs: %s",
                    self.backoff.failures, delay, self.last_error,
                )
            if await self._wait(delay):
                break
        self.state = SchedulerState.STOPPED
        logger.info("Stopped refresh loop")

    async def run_once(self) -> bool:
        """Run a single cycle and publish its snapshot. Returns True on success."""
        self.state = SchedulerState.RUNNING
        generation = self.store.generation + 1
        start = time.monotonic()
        loop = asyncio.get_running_loop()
        try:
            snapshot = await loop.run_in_executor(self._executor, self.cycle.run, generation)
        except CycleFailure as e:
            self._failed(str(e), start)
            return False
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.exception("Unexpected error in refresh cycle")
            self._failed(f"unexpected error: {e}", start)
            return False

        self.store.publish(snapshot)
        self.backoff.reset()
        self.last_error = None
        self.state = SchedulerState.PUBLISHED
        if self.metrics is not None:
            self.metrics.observe_cycle(snapshot, time.monotonic() - start)
        return True

    def _failed(self, reason: str, start: float) -> None:
        self.last_error = reason
        self.state = SchedulerState.FAILED
        if self.metrics is not None:
            self.metrics.observe_failure(time.monotonic() - start)

    def _until_next_tick(self, started: float) -> float:
        elapsed = self._clock() - started
        if elapsed < self.interval:
            return self.interval - elapsed
        dropped = int(elapsed // self.interval)
        logger.warning("Refresh cycle took %.1fs, dropping %d tick(s)", elapsed, dropped)
        return self.interval - (elapsed % self.interval)

    async def _wait(self, delay: float) -> bool:
        """Sleep for ``delay`` seconds; return True if asked to stop meanwhile."""
        if self.state is SchedulerState.PUBLISHED:
            self.state = SchedulerState.IDLE
        if self._sleep is not None:
            await self._sleep(delay)
            return self._stop.is_set()
        try:
            await asyncio.wait_for(self._stop.wait(), timeout=delay)
        except asyncio.TimeoutError:
            return False
        return True


async def wait_until_ready(
    store: SnapshotStore,
    timeout: float,
    poll: float = 2.0,
    sleep: SleepFn = asyncio.sleep,
) -> None:
    """Block until the first snapshot is published.

    Raises ReadinessTimeout once ``timeout`` seconds have passed without one.
    """
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not store.ready:
        remaining = deadline - loop.time()
        if remaining <= 0:
            raise ReadinessTimeout(timeout)
        logger.info("Waiting for initial metrics...")
        await sleep(min(poll, remaining))
