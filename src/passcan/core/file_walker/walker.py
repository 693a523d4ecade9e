"""
FileWalker implementation for recursive directory enumeration.
"""

import logging
from collections.abc import Iterable, Iterator
from pathlib import Path

from passcan.core.ignore import IgnoreSpec
from passcan.core.report import SkipReason

from .interfaces import FileWalkerInterface
from .models import WalkEntry

logger = logging.getLogger(__name__)


class FileWalker(FileWalkerInterface):
    """
    Concrete implementation of FileWalkerInterface.

    Provides depth-first enumeration with:
    - Built-in ignore list (VCS, dependency and build directories, lockfiles)
    - Gitignore-style user exclusions via IgnoreSpec
    - Oversized files reported as skipped rather than dropped
    - Symlink loop protection via a set of visited real directory paths
    - Stable ordering (entries sorted by name within each directory)
    """

    def __init__(self, follow_symlinks: bool = False, respect_gitignore: bool = True):
        """
        Initialize the FileWalker.

        Args:
            follow_symlinks: Whether to follow symlinks (default: False).
                When True, links must resolve inside the root and directory
                cycles are cut.
            respect_gitignore: Honour the root .gitignore file
        """
        self._follow_symlinks = follow_symlinks
        self._respect_gitignore = respect_gitignore
        self._spec_cache: dict[tuple[Path, tuple[str, ...]], IgnoreSpec] = {}

    def ignore_spec(self, root_path: Path, exclude_globs: Iterable[str] = ()) -> IgnoreSpec:
        """Build the ignore policy for a root."""
        return IgnoreSpec.for_root(
            root_path,
            exclude_patterns=exclude_globs,
            respect_gitignore=self._respect_gitignore,
        )

    def is_excluded(self, root_path: Path, path: Path, exclude_globs: Iterable[str] = ()) -> bool:
        key = (Path(root_path).resolve(), tuple(exclude_globs))
        spec = self._spec_cache.get(key)
        if spec is None:
            spec = self.ignore_spec(key[0], key[1])
            self._spec_cache[key] = spec
        return spec.matches(Path(path), is_dir=False)

    def enumerate(
        self,
        root_path: Path,
        exclude_globs: Iterable[str] = (),
        max_size: int | None = None,
    ) -> Iterator[WalkEntry]:
        root_path = Path(root_path).resolve()

        if not root_path.exists():
            logger.error(f"Root path does not exist: {root_path}")
            return

        if not root_path.is_dir():
            logger.error(f"Root path is not a directory: {root_path}")
            return

        spec = self.ignore_spec(root_path, exclude_globs)
        logger.debug(f"Walking {root_path} with {len(spec.patterns)} ignore patterns")

        # Track visited real paths to prevent cycles
        visited: set[Path] = set()
        yield from self._walk_directory(root_path, root_path, spec, max_size, visited)

    def _walk_directory(
        self,
        root_path: Path,
        current_path: Path,
        spec: IgnoreSpec,
        max_size: int | None,
        visited: set[Path],
    ) -> Iterator[WalkEntry]:
        """
        Recursively walk a directory.

        Args:
            root_path: Resolved scan root
            current_path: Current directory being walked
            spec: Ignore policy
            max_size: Size limit in bytes
            visited: Set of resolved directories on the current path
        """
        try:
            real_path = current_path.resolve()
            if real_path in visited:
                logger.debug(f"Skipping recursive cycle: {current_path} -> {real_path}")
                return
            visited.add(real_path)

            entries = sorted(current_path.iterdir(), key=lambda p: p.name)
        except PermissionError as e:
            logger.warning(f"Permission denied accessing directory: {current_path} - {e}")
            return
        except OSError as e:
            logger.warning(f"Error accessing directory: {current_path} - {e}")
            return

        for entry in entries:
            if entry.is_symlink():
                if not self._follow_symlinks:
                    logger.debug(f"Skipping symlink (follow_symlinks=False): {entry}")
                    continue
                if not self._symlink_inside_root(entry, root_path):
                    logger.warning(f"Skipping symlink pointing outside root: {entry}")
                    continue

            try:
                is_dir = entry.is_dir()
            except OSError as e:
                logger.warning(f"Error inspecting {entry} - {e}")
                continue

            if spec.matches(entry, is_dir=is_dir):
                logger.debug(f"Ignoring: {entry}")
                continue

            if is_dir:
                yield from self._walk_directory(root_path, entry, spec, max_size, visited)
            elif entry.is_file():
                yield self._make_entry(entry, max_size)

        # Remove from visited when backtracking so sibling links may visit it
        visited.discard(real_path)

    def _make_entry(self, file_path: Path, max_size: int | None) -> WalkEntry:
        try:
            size_bytes = file_path.stat().st_size
        except FileNotFoundError as e:
            return WalkEntry(path=file_path, skip_reason=SkipReason.VANISHED, detail=str(e))
        except OSError as e:
            return WalkEntry(path=file_path, skip_reason=SkipReason.UNREADABLE, detail=str(e))

        if max_size is not None and size_bytes > max_size:
            logger.info(f"Skipping large file ({size_bytes} bytes): {file_path}")
            return WalkEntry(
                path=file_path,
                size_bytes=size_bytes,
                skip_reason=SkipReason.TOO_LARGE,
                detail=f"{size_bytes} bytes exceeds limit of {max_size} bytes",
            )
        return WalkEntry(path=file_path, size_bytes=size_bytes)

    @staticmethod
    def _symlink_inside_root(link: Path, root_path: Path) -> bool:
        try:
            target = link.resolve(strict=True)
        except (OSError, RuntimeError):
            # Dangling link or a resolution loop
            return False
        return target == root_path or root_path in target.parents
