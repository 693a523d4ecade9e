"""
Abstract interfaces for file walking operations.
"""

from abc import ABC, abstractmethod
from collections.abc import Iterable, Iterator
from pathlib import Path

from .models import WalkEntry


class FileWalkerInterface(ABC):
    """
    Abstract interface for enumerating candidate files under a root.

    Implementations must be finite and restartable: calling enumerate twice
    with the same arguments yields the same entries in the same order when
    the tree has not changed.
    """

    @abstractmethod
    def enumerate(
        self,
        root_path: Path,
        exclude_globs: Iterable[str] = (),
        max_size: int | None = None,
    ) -> Iterator[WalkEntry]:
        """
        Lazily enumerate candidate files.

        Args:
            root_path: Root directory to walk
            exclude_globs: Gitignore-style patterns excluded in addition to defaults
            max_size: Files larger than this many bytes are yielded with
                skip_reason TOO_LARGE instead of being dropped

        Yields:
            WalkEntry objects for each candidate file
        """
        pass

    @abstractmethod
    def is_excluded(self, root_path: Path, path: Path, exclude_globs: Iterable[str] = ()) -> bool:
        """
        Check whether a single path falls under the exclusion policy.

        Args:
            root_path: Root directory the policy is anchored at
            path: Path to check
            exclude_globs: Additional exclusion patterns
        """
        pass
