"""
Change event models for watch mode.

Provides the event record produced by the filesystem watcher and the
pending change set that collapses a burst of events into one action per path.
"""

import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path


class ChangeKind(Enum):
    """Types of file system changes."""

    CREATED = "created"
    MODIFIED = "modified"
    DELETED = "deleted"
    RENAMED_FROM = "renamed_from"
    RENAMED_TO = "renamed_to"

    @property
    def is_removal(self) -> bool:
        """True if the path no longer exists after this change."""
        return self in (ChangeKind.DELETED, ChangeKind.RENAMED_FROM)


class PendingAction(Enum):
    """What a flush does for a path."""

    RESCAN = "rescan"
    REMOVE = "remove"


@dataclass
class ChangeEvent:
    """
    Represents a single file system change.

    A rename is delivered as two events: RENAMED_FROM for the old path and
    RENAMED_TO for the new one.

    Attributes:
        path: Absolute path of the affected file
        kind: Type of change
        timestamp: Unix timestamp when the change was observed
    """

    path: Path
    kind: ChangeKind
    timestamp: float = field(default_factory=time.time)

    def __post_init__(self) -> None:
        """Ensure path is a Path object."""
        if isinstance(self.path, str):
            self.path = Path(self.path)

    @property
    def action(self) -> PendingAction:
        return PendingAction.REMOVE if self.kind.is_removal else PendingAction.RESCAN

    @classmethod
    def rename(
        cls, old_path: Path | str, new_path: Path | str, timestamp: float | None = None
    ) -> tuple["ChangeEvent", "ChangeEvent"]:
        """Build the RENAMED_FROM/RENAMED_TO pair for a move."""
        ts = timestamp if timestamp is not None else time.time()
        return (
            cls(path=Path(old_path), kind=ChangeKind.RENAMED_FROM, timestamp=ts),
            cls(path=Path(new_path), kind=ChangeKind.RENAMED_TO, timestamp=ts),
        )


@dataclass
class PendingChanges:
    """
    Change set accumulated during one debounce window, keyed by path.

    Later events for a path replace earlier ones, so the latest kind wins:
    a modify followed by a delete collapses to a delete, a delete followed
    by a create collapses to a create.
    """

    events: dict[Path, ChangeEvent] = field(default_factory=dict)

    def merge(self, event: ChangeEvent) -> None:
        """Merge one event; it supersedes any earlier event for its path."""
        self.events.pop(event.path, None)
        self.events[event.path] = event

    def is_empty(self) -> bool:
        return not self.events

    def total_count(self) -> int:
        return len(self.events)

    def clear(self) -> None:
        self.events.clear()

    def action_for(self, path: Path) -> PendingAction | None:
        event = self.events.get(Path(path))
        return event.action if event is not None else None

    def ordered(self) -> list[ChangeEvent]:
        """
        Events in flush order: removals first, then rescans, each by path.

        Removing before rescanning means a rename's old path is gone from the
        report before its new path is added.
        """
        return sorted(
            self.events.values(),
            key=lambda e: (e.action is not PendingAction.REMOVE, str(e.path)),
        )

    @property
    def removals(self) -> list[Path]:
        return sorted(p for p, e in self.events.items() if e.action is PendingAction.REMOVE)

    @property
    def rescans(self) -> list[Path]:
        return sorted(p for p, e in self.events.items() if e.action is PendingAction.RESCAN)
