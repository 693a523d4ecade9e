"""
File watcher infrastructure component.

Provides file system monitoring using the watchdog library with support for:
- File creation, modification, deletion, and move events
- Moves delivered as a RENAMED_FROM/RENAMED_TO pair
- The same ignore policy as the full-scan walker (gitignore-style)
"""

import logging
import threading
from collections.abc import Callable, Iterable
from pathlib import Path
from typing import Protocol

from watchdog.events import (
    DirModifiedEvent,
    FileSystemEvent,
    FileSystemEventHandler,
)
from watchdog.observers import Observer

from passcan.core.errors import WatchError
from passcan.core.file_events import ChangeEvent, ChangeKind
from passcan.core.ignore import IgnoreSpec

logger = logging.getLogger(__name__)


class FileWatcherInterface(Protocol):
    """Protocol for file watcher implementations."""

    def start(self, path: Path, callback: Callable[[ChangeEvent], None]) -> None:
        """
        Start watching the specified directory.

        Args:
            path: Directory path to watch
            callback: Function to call when change events occur
        """
        ...

    def stop(self) -> None:
        """Stop watching and release resources."""
        ...

    def is_running(self) -> bool:
        """Check if the watcher is currently running."""
        ...


class FileWatcher(FileWatcherInterface):
    """
    File system watcher implementation using watchdog.

    Monitors a directory tree and emits ChangeEvent objects through a
    callback. Directory deletes and moves are forwarded too, so the
    scheduler can drop or re-scan everything under them.
    """

    def __init__(
        self,
        exclude_patterns: Iterable[str] | None = None,
        respect_gitignore: bool = True,
    ):
        """
        Initialize the file watcher.

        Args:
            exclude_patterns: Gitignore-style patterns to ignore
            respect_gitignore: Honour the root .gitignore file
        """
        self._exclude_patterns = list(exclude_patterns or [])
        self._respect_gitignore = respect_gitignore
        self._observer: Observer | None = None
        self._callback: Callable[[ChangeEvent], None] | None = None
        self._watch_path: Path | None = None
        self._lock = threading.Lock()

    def start(self, path: Path, callback: Callable[[ChangeEvent], None]) -> None:
        """
        Start watching the specified directory.

        Args:
            path: Directory path to watch (must exist and be a directory)
            callback: Function to call when change events occur

        Raises:
            WatchError: If the path is invalid, the watcher is already
                running, or the OS refuses the watch
        """
        with self._lock:
            if self._observer is not None and self._observer.is_alive():
                raise WatchError("File watcher is already running")

            path = Path(path).resolve()
            if not path.exists():
                raise WatchError(f"Path does not exist: {path}")
            if not path.is_dir():
                raise WatchError(f"Path is not a directory: {path}")

            self._watch_path = path
            self._callback = callback

            handler = _WatchdogEventHandler(
                callback=self._handle_event,
                ignore_spec=IgnoreSpec.for_root(
                    path,
                    exclude_patterns=self._exclude_patterns,
                    respect_gitignore=self._respect_gitignore,
                ),
            )

            observer = Observer()
            try:
                observer.schedule(handler, str(path), recursive=True)
                observer.start()
            except OSError as e:
                raise WatchError(f"Failed to start watching {path}: {e}") from e
            self._observer = observer

            logger.info(f"Started watching: {path}")

    def stop(self) -> None:
        """Stop watching and release resources."""
        with self._lock:
            if self._observer is not None:
                self._observer.stop()
                self._observer.join(timeout=5.0)
                self._observer = None
                logger.info(f"Stopped watching: {self._watch_path}")
            self._callback = None
            self._watch_path = None

    def is_running(self) -> bool:
        """Check if the watcher is currently running."""
        with self._lock:
            return self._observer is not None and self._observer.is_alive()

    def _handle_event(self, event: ChangeEvent) -> None:
        """Internal handler that forwards events to the callback."""
        if self._callback is not None:
            try:
                self._callback(event)
            except Exception as e:
                logger.error(f"Error in file event callback: {e}")


class _WatchdogEventHandler(FileSystemEventHandler):
    """
    Internal watchdog event handler.

    Converts watchdog events to ChangeEvent objects and applies filtering.
    """

    def __init__(self, callback: Callable[[ChangeEvent], None], ignore_spec: IgnoreSpec):
        """
        Initialize the event handler.

        Args:
            callback: Function to call with ChangeEvent objects
            ignore_spec: Ignore policy of the watched root
        """
        super().__init__()
        self._callback = callback
        self._ignore_spec = ignore_spec

    def _should_ignore(self, path: Path, is_directory: bool) -> bool:
        if self._ignore_spec.relative(path) is None:
            return True
        if self._ignore_spec.matches(path, is_dir=is_directory):
            logger.debug(f"Ignoring event for: {path}")
            return True
        return False

    def _emit_event(self, kind: ChangeKind, path: Path) -> None:
        event = ChangeEvent(path=path, kind=kind)
        logger.debug(f"Emitting event: {kind.value} - {path}")
        self._callback(event)

    def on_created(self, event: FileSystemEvent) -> None:
        """Handle file/directory creation events."""
        path = Path(event.src_path)
        if not self._should_ignore(path, event.is_directory):
            self._emit_event(ChangeKind.CREATED, path)

    def on_modified(self, event: FileSystemEvent) -> None:
        """Handle file modification events."""
        if isinstance(event, DirModifiedEvent):
            return  # Directory mtime changes carry no content

        path = Path(event.src_path)
        if not self._should_ignore(path, is_directory=False):
            self._emit_event(ChangeKind.MODIFIED, path)

    def on_deleted(self, event: FileSystemEvent) -> None:
        """Handle file/directory deletion events."""
        path = Path(event.src_path)
        if not self._should_ignore(path, event.is_directory):
            self._emit_event(ChangeKind.DELETED, path)

    def on_moved(self, event: FileSystemEvent) -> None:
        """Handle file/directory move events."""
        src_path = Path(event.src_path)
        dest_path = Path(event.dest_path)

        src_valid = not self._should_ignore(src_path, event.is_directory)
        dest_valid = not self._should_ignore(dest_path, event.is_directory)

        if src_valid and dest_valid:
            old, new = ChangeEvent.rename(src_path, dest_path)
            logger.debug(f"Emitting rename: {src_path} -> {dest_path}")
            self._callback(old)
            self._callback(new)
        elif src_valid:
            # Moved into an ignored location or out of the tree
            self._emit_event(ChangeKind.RENAMED_FROM, src_path)
        elif dest_valid:
            self._emit_event(ChangeKind.RENAMED_TO, dest_path)
