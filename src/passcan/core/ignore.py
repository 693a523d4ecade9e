"""
Ignore policy shared by the file walker and the file watcher.

Patterns use gitignore syntax and are matched relative to the scan root.
"""

import logging
from collections.abc import Iterable
from pathlib import Path

import pathspec

logger = logging.getLogger(__name__)

# Always applied before user exclusions
DEFAULT_IGNORE_PATTERNS: list[str] = [
    # Version control
    ".git/",
    ".hg/",
    ".svn/",
    ".bzr/",
    # Editors
    ".vscode/",
    ".idea/",
    # Python
    "__pycache__/",
    "*.pyc",
    "*.egg-info/",
    ".venv/",
    "venv/",
    ".tox/",
    ".pytest_cache/",
    ".mypy_cache/",
    ".ruff_cache/",
    ".hypothesis/",
    # Dependencies
    "node_modules/",
    "bower_components/",
    "vendor/",
    # Build outputs
    "target/",
    "build/",
    "dist/",
    # Generated files
    "package-lock.json",
    "yarn.lock",
    "pnpm-lock.yaml",
    "Cargo.lock",
    "poetry.lock",
    "*.lock",
    "*.min.js",
    "*.map",
    "*.log",
]


class IgnoreSpec:
    """
    Compiled ignore patterns bound to a root directory.

    Paths outside the root are never ignored by pattern.
    """

    def __init__(self, root_path: Path, patterns: Iterable[str]):
        self._root_path = Path(root_path).resolve()
        self._patterns = [p.strip() for p in patterns if p.strip() and not p.strip().startswith("#")]
        self._pathspec = pathspec.PathSpec.from_lines(
            pathspec.patterns.GitWildMatchPattern, self._patterns
        )

    @classmethod
    def for_root(
        cls,
        root_path: Path,
        exclude_patterns: Iterable[str] = (),
        respect_gitignore: bool = False,
        include_defaults: bool = True,
    ) -> "IgnoreSpec":
        """
        Build the ignore policy for a scan root.

        Order: built-in defaults, then the root .gitignore (if requested),
        then user exclusions. Later patterns win, so a user '!pattern' can
        re-include something a default excludes.
        """
        root_path = Path(root_path).resolve()
        patterns: list[str] = list(DEFAULT_IGNORE_PATTERNS) if include_defaults else []

        if respect_gitignore:
            patterns.extend(_read_gitignore(root_path / ".gitignore"))

        patterns.extend(exclude_patterns)
        return cls(root_path, patterns)

    @property
    def root_path(self) -> Path:
        return self._root_path

    @property
    def patterns(self) -> list[str]:
        return list(self._patterns)

    def relative(self, path: Path) -> str | None:
        """Root-relative POSIX path, or None if outside the root."""
        try:
            rel_path = Path(path).relative_to(self._root_path)
        except ValueError:
            try:
                rel_path = Path(path).resolve().relative_to(self._root_path)
            except (ValueError, OSError):
                return None
        return rel_path.as_posix()

    def matches(self, path: Path, is_dir: bool = False) -> bool:
        """
        Check if a path is excluded.

        Args:
            path: Absolute path, or path relative to the root
            is_dir: Whether the path is a directory
        """
        path = Path(path)
        rel_path_str = self.relative(path) if path.is_absolute() else path.as_posix()
        if not rel_path_str or rel_path_str == ".":
            return False

        if is_dir:
            return self._pathspec.match_file(rel_path_str) or self._pathspec.match_file(
                rel_path_str + "/"
            )
        return self._pathspec.match_file(rel_path_str)


def _read_gitignore(gitignore_path: Path) -> list[str]:
    """Read patterns from a .gitignore file; unreadable files yield none."""
    if not gitignore_path.is_file():
        return []
    try:
        content = gitignore_path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        logger.warning(f"Error reading {gitignore_path}: {e}")
        return []
    return [line.strip() for line in content.splitlines() if line.strip() and not line.startswith("#")]
