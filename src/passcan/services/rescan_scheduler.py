"""
Incremental re-scan scheduler for watch mode.

Consumes change events from a bounded channel, debounces bursts, and
applies one atomic report update per affected path.
"""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from concurrent.futures import Executor
from enum import Enum
from pathlib import Path
from typing import Optional, Union

from passcan.core.debouncer import Debouncer
from passcan.core.file_events import ChangeEvent, PendingAction, PendingChanges
from passcan.core.report import Report, ReportDelta
from passcan.core.watch_config import WatchConfig
from passcan.services.scan_coordinator import ScanCoordinator
from passcan.services.scan_models import FlushResult

logger = logging.getLogger(__name__)

FlushCallback = Callable[[FlushResult], Union[None, Awaitable[None]]]


class SchedulerState(Enum):
    """Lifecycle of the scheduler's run loop."""

    IDLE = "idle"
    DEBOUNCING = "debouncing"
    FLUSHING = "flushing"
    STOPPED = "stopped"


class RescanScheduler:
    """
    Debounced incremental re-scanner.

    Idle waits for the first event. Debouncing collects events until the
    window closes. Flushing applies the window's snapshot path by path:
    removals first, then re-scans, each as its own report update stamped
    with the event's timestamp. Events arriving during a flush stay queued
    and open the next window.

    stop() is honoured between flush steps: the path being processed is
    finished, the rest of the snapshot is dropped.
    """

    def __init__(
        self,
        coordinator: ScanCoordinator,
        report: Report,
        config: WatchConfig,
        on_flush: Optional[FlushCallback] = None,
        executor: Optional[Executor] = None,
    ):
        """
        Initialize the scheduler.

        Args:
            coordinator: Performs the single-file scans
            report: Live report updated in place
            config: Debounce timings and channel size
            on_flush: Called with the result of every flush (sync or async)
            executor: Executor for blocking file scans (loop default if None)
        """
        self._coordinator = coordinator
        self._report = report
        self._config = config
        self._on_flush = on_flush
        self._executor = executor
        self._queue: Optional[asyncio.Queue[ChangeEvent]] = None
        self._debouncer: Optional[Debouncer] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._task: Optional[asyncio.Task] = None
        self._state = SchedulerState.STOPPED
        self._stop_requested = False
        self._overflowed = False
        self.events_received = 0
        self.events_dropped = 0
        self.flushes = 0

    @property
    def state(self) -> SchedulerState:
        return self._state

    @property
    def report(self) -> Report:
        return self._report

    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def get_pending_count(self) -> int:
        """Get the number of events waiting in the channel."""
        return self._debouncer.get_pending_count() if self._debouncer else 0

    async def start(self) -> None:
        """Start the run loop on the current event loop."""
        if self.is_running():
            raise RuntimeError("Re-scan scheduler is already running")

        self._loop = asyncio.get_running_loop()
        self._queue = asyncio.Queue(maxsize=self._config.queue_size)
        self._debouncer = Debouncer(
            self._queue,
            delay_ms=self._config.debounce_ms,
            max_wait_ms=self._config.max_wait_ms,
            on_window_open=self._on_window_open,
        )
        self._stop_requested = False
        self._state = SchedulerState.IDLE
        self._task = asyncio.create_task(self._run(), name="passcan-rescan")

        logger.debug(
            "Re-scan scheduler started",
            extra={"config": self._config.to_dict()},
        )

    def submit(self, event: ChangeEvent) -> None:
        """
        Hand an event to the scheduler from any thread.

        Safe to call from the watcher's thread; the event is queued on the
        scheduler's loop.
        """
        if self._loop is None or self._stop_requested:
            return
        try:
            self._loop.call_soon_threadsafe(self._enqueue, event)
        except RuntimeError:
            # Loop already closed
            logger.debug(f"Dropping event after loop shutdown: {event.path}")

    def _enqueue(self, event: ChangeEvent) -> None:
        if self._queue is None or self._stop_requested:
            return
        self.events_received += 1
        logger.debug(
            "File change detected: %s - %s",
            event.kind.value,
            event.path,
            extra={
                "kind": event.kind.value,
                "file_path": str(event.path),
                "timestamp": event.timestamp,
            },
        )
        try:
            self._queue.put_nowait(event)
        except asyncio.QueueFull:
            self.events_dropped += 1
            if not self._overflowed:
                logger.warning(
                    "Change event channel is full; the next flush re-scans the whole tree",
                    extra={"queue_size": self._config.queue_size},
                )
            self._overflowed = True

    def _on_window_open(self) -> None:
        self._state = SchedulerState.DEBOUNCING

    async def stop(self) -> None:
        """
        Stop the scheduler.

        An in-progress flush finishes the path it is on; queued and
        unflushed events are dropped.
        """
        if self._task is None:
            self._state = SchedulerState.STOPPED
            return

        self._stop_requested = True
        if self._state is not SchedulerState.FLUSHING:
            self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None

        if self._debouncer is not None:
            leftover = self._debouncer.drain_nowait()
            if not leftover.is_empty():
                logger.info(
                    f"Dropping {leftover.total_count()} unflushed changes on stop",
                    extra={"dropped": leftover.total_count()},
                )
        self._state = SchedulerState.STOPPED
        logger.debug("Re-scan scheduler stopped")

    async def _run(self) -> None:
        assert self._debouncer is not None
        while not self._stop_requested:
            self._state = SchedulerState.IDLE
            batch = await self._debouncer.next_batch()
            if self._stop_requested:
                break
            self._state = SchedulerState.FLUSHING
            result = await self.flush(batch)
            await self._notify(result)

    async def flush(self, batch: PendingChanges) -> FlushResult:
        """
        Apply a snapshot of pending changes to the report.

        Each path is one atomic report update. Errors on one path are
        logged and do not stop the flush.

        Args:
            batch: Snapshot taken when the debounce window closed

        Returns:
            FlushResult with the per-path deltas
        """
        start_time = time.time()
        result = FlushResult()
        events = batch.ordered()

        logger.info(
            "Starting incremental re-scan with %d pending changes",
            len(events),
            extra={
                "removals": len(batch.removals),
                "rescans": len(batch.rescans),
                "watch_path": str(self._config.watch_path),
            },
        )

        if self._overflowed:
            self._overflowed = False
            await self._resync(result)

        for index, event in enumerate(events):
            if self._stop_requested:
                result.dropped = len(events) - index
                logger.info(
                    f"Stop requested, dropping {result.dropped} unprocessed changes",
                    extra={"dropped": result.dropped},
                )
                break
            try:
                if event.action is PendingAction.REMOVE:
                    self._apply_removal(event, result)
                else:
                    await self._apply_rescan(event, result)
            except Exception as e:
                logger.error(
                    "Error re-scanning %s: %s",
                    event.path,
                    str(e),
                    extra={
                        "file_path": str(event.path),
                        "error_type": type(e).__name__,
                    },
                    exc_info=True,
                )

        self.flushes += 1
        result.duration_ms = (time.time() - start_time) * 1000
        logger.info(
            "Incremental re-scan completed in %.2fms",
            result.duration_ms,
            extra={
                "duration_ms": result.duration_ms,
                "rescanned": result.rescanned,
                "removed": result.removed,
                "findings_added": result.findings_added,
                "findings_removed": result.findings_removed,
            },
        )
        return result

    def _apply_removal(self, event: ChangeEvent, result: FlushResult) -> None:
        """Remove a path, and everything under it if it was a directory."""
        path_str = str(event.path)
        prefix = path_str.rstrip("/\\") + "/"
        targets = [path_str] + [
            p for p in self._tracked_paths() if p.startswith(prefix)
        ]
        for target in targets:
            delta = self._report.remove_file(target, as_of=event.timestamp)
            self._record(delta, result)
            result.removed += 1

    async def _apply_rescan(self, event: ChangeEvent, result: FlushResult) -> None:
        path = Path(event.path)
        if path.is_dir():
            for entry in list(self._coordinator.enumerate_under(path)):
                await self._rescan_path(entry.path, event.timestamp, result)
            return
        if self._coordinator.is_excluded(path):
            logger.debug(f"Ignoring excluded path: {path}")
            return
        await self._rescan_path(path, event.timestamp, result)

    async def _rescan_path(self, path: Path, as_of: float, result: FlushResult) -> None:
        loop = asyncio.get_running_loop()
        single = await loop.run_in_executor(self._executor, self._coordinator.run_single, path)
        delta = self._coordinator.apply_result(self._report, single, as_of=as_of)
        self._record(delta, result)
        result.rescanned += 1

    async def _resync(self, result: FlushResult) -> None:
        """Re-scan the whole tree after events were lost to a full channel."""
        request = self._coordinator.request
        if request is None:
            return
        as_of = time.time()
        for path_str in self._tracked_paths():
            if not Path(path_str).exists():
                self._record(self._report.remove_file(path_str, as_of=as_of), result)
                result.removed += 1
        for entry in list(self._coordinator.enumerate_under(request.root.resolve())):
            await self._rescan_path(entry.path, as_of, result)

    def _tracked_paths(self) -> list[str]:
        return self._report.paths() + [s.path for s in self._report.skipped]

    @staticmethod
    def _record(delta: Optional[ReportDelta], result: FlushResult) -> None:
        if delta is not None:
            result.deltas.append(delta)

    async def _notify(self, result: FlushResult) -> None:
        if self._on_flush is None:
            return
        try:
            outcome = self._on_flush(result)
            if asyncio.iscoroutine(outcome):
                await outcome
        except Exception as e:
            logger.error(f"Error in flush callback: {e}", exc_info=True)
