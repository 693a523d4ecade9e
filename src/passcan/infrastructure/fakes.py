"""
Fake implementations for testing.

Provides an in-memory file watcher that lets tests inject change events
without touching the file system.
"""

from collections.abc import Callable
from pathlib import Path

from passcan.core.errors import WatchError
from passcan.core.file_events import ChangeEvent


class FakeFileWatcher:
    """
    Fake file watcher for testing.

    Allows manual triggering of change events without actual file system
    monitoring. Implements the same interface as FileWatcher.
    """

    def __init__(self, fail_on_start: bool = False):
        """
        Initialize the fake file watcher.

        Args:
            fail_on_start: Make start() raise WatchError
        """
        self._fail_on_start = fail_on_start
        self._callback: Callable[[ChangeEvent], None] | None = None
        self._watch_path: Path | None = None
        self._running = False
        self._events: list[ChangeEvent] = []

    @property
    def watch_path(self) -> Path | None:
        return self._watch_path

    def start(self, path: Path, callback: Callable[[ChangeEvent], None]) -> None:
        """
        Start the fake watcher.

        Args:
            path: Directory path to watch
            callback: Function to call when events are triggered
        """
        if self._fail_on_start:
            raise WatchError(f"Failed to start watching {path}")
        if self._running:
            raise WatchError("File watcher is already running")

        self._watch_path = Path(path).resolve()
        self._callback = callback
        self._running = True

    def stop(self) -> None:
        """Stop the fake watcher."""
        self._running = False
        self._callback = None
        self._watch_path = None

    def is_running(self) -> bool:
        """Check if the fake watcher is running."""
        return self._running

    def trigger_event(self, event: ChangeEvent) -> None:
        """
        Manually trigger a change event.

        This is the main testing interface - allows tests to simulate
        file system events without actual file operations.

        Args:
            event: The ChangeEvent to trigger
        """
        if not self._running:
            raise RuntimeError("File watcher is not running")

        self._events.append(event)
        if self._callback is not None:
            self._callback(event)

    def simulate_failure(self) -> None:
        """Make the watcher die as if the OS backend had failed."""
        self._running = False
        self._callback = None

    def get_triggered_events(self) -> list[ChangeEvent]:
        """Get all events that have been triggered."""
        return list(self._events)

    def clear_events(self) -> None:
        """Clear the list of triggered events."""
        self._events.clear()
