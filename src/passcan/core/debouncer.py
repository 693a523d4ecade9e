"""
Debouncer component for batching change events.

Reads change events from a bounded asyncio queue and collapses bursts into
a single PendingChanges snapshot per debounce window.
"""

import asyncio
import logging
from collections.abc import Callable

from passcan.core.file_events import ChangeEvent, PendingChanges

logger = logging.getLogger(__name__)


class Debouncer:
    """
    Async debouncer over a change-event channel.

    A window opens with the first event. It closes once no event has
    arrived for ``delay_ms`` or once it has been open for ``max_wait_ms``,
    whichever comes first. Events that arrive after a window closed stay in
    the channel and open the next window.

    Attributes:
        delay_ms: Quiet period that closes a window
        max_wait_ms: Upper bound on the window length
    """

    def __init__(
        self,
        queue: "asyncio.Queue[ChangeEvent]",
        delay_ms: int = 300,
        max_wait_ms: int | None = None,
        on_window_open: Callable[[], None] | None = None,
    ):
        """
        Initialize the debouncer.

        Args:
            queue: Channel the watcher pushes events into
            delay_ms: Debounce delay in milliseconds (default: 300)
            max_wait_ms: Window length cap (default: 5x delay_ms)
            on_window_open: Called when the first event of a window arrives
        """
        self._queue = queue
        self._delay_ms = delay_ms
        self._max_wait_ms = max_wait_ms if max_wait_ms is not None else delay_ms * 5
        self._on_window_open = on_window_open

    @property
    def delay_ms(self) -> int:
        """Get the debounce delay in milliseconds."""
        return self._delay_ms

    @property
    def max_wait_ms(self) -> int:
        return self._max_wait_ms

    async def next_batch(self) -> PendingChanges:
        """
        Wait for the next window to open and close, and return its snapshot.

        Blocks while the channel is empty. Cancellation while waiting is
        safe: no event is consumed without being merged.

        Returns:
            Non-empty PendingChanges for the window
        """
        loop = asyncio.get_running_loop()
        pending = PendingChanges()

        first = await self._queue.get()
        pending.merge(first)
        if self._on_window_open is not None:
            self._on_window_open()

        opened_at = loop.time()
        last_event_at = opened_at
        delay = self._delay_ms / 1000.0
        max_wait = self._max_wait_ms / 1000.0

        while True:
            close_at = min(last_event_at + delay, opened_at + max_wait)
            timeout = close_at - loop.time()
            if timeout <= 0:
                break
            try:
                event = await asyncio.wait_for(self._queue.get(), timeout)
            except asyncio.TimeoutError:
                break
            pending.merge(event)
            last_event_at = loop.time()

        logger.debug(
            "Debounce window closed with %d pending changes",
            pending.total_count(),
            extra={"pending": pending.total_count()},
        )
        return pending

    def drain_nowait(self) -> PendingChanges:
        """Collect whatever is queued right now without waiting."""
        pending = PendingChanges()
        while True:
            try:
                pending.merge(self._queue.get_nowait())
            except asyncio.QueueEmpty:
                return pending

    def get_pending_count(self) -> int:
        """Number of events waiting in the channel."""
        return self._queue.qsize()

    def has_pending(self) -> bool:
        return not self._queue.empty()
