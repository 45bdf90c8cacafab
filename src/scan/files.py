"""File discovery for archguard scans."""

from __future__ import annotations

import os
from pathlib import Path
from typing import TYPE_CHECKING, cast

from gitignore_parser import parse_gitignore  # type: ignore[import-untyped]

from utils import match_any

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

DEFAULT_EXCLUDE_DIRS = frozenset(
    {
        ".git",
        ".hg",
        ".svn",
        ".venv",
        "node_modules",
        "__pycache__",
        "dist",
        "build",
    }
)


def _should_include_file(
    path: Path,
    directory: Path,
    resolved_root: Path,
    gitignore_matches: Callable[[str], bool] | None,
    exclude_patterns: list[str] | None,
) -> bool:
    """Check if a file should be included based on all filtering rules."""
    if not path.is_file() or path.is_symlink():
        return False

    if not _is_within_root(path, resolved_root):
        return False

    try:
        rel_path = path.relative_to(directory)
    except ValueError:
        return False

    if gitignore_matches is not None and gitignore_matches(str(path)):
        return False

    has_excluded_match = exclude_patterns and match_any(
        rel_path.as_posix(), exclude_patterns
    )
    return not has_excluded_match


def _is_within_root(path: Path, resolved_root: Path) -> bool:
    """Return True when the resolved path stays within the already resolved root."""
    try:
        path_resolved = path.resolve()
    except OSError:
        return False

    try:
        path_resolved.relative_to(resolved_root)
    except ValueError:
        return False

    return True


def _iter_gitignore_files(
    root: Path, skip_dirs: frozenset[str] = DEFAULT_EXCLUDE_DIRS
) -> list[Path]:
    """Return sorted list of .gitignore files under root (including root)."""
    gitignore_paths = [root / ".gitignore"]
    gitignore_paths.extend(
        path for path in _walk(root, skip_dirs) if path.name == ".gitignore"
    )
    unique_paths = {
        path for path in gitignore_paths if path.is_file() and not path.is_symlink()
    }
    return sorted(unique_paths, key=lambda p: p.relative_to(root).as_posix())


def _build_gitignore_matcher(
    root: Path,
    *,
    nested_gitignore: bool,
    skip_dirs: frozenset[str] = DEFAULT_EXCLUDE_DIRS,
) -> Callable[[str], bool] | None:
    if not nested_gitignore:
        gitignore_path = root / ".gitignore"
        if gitignore_path.is_file():
            return cast("Callable[[str], bool]", parse_gitignore(gitignore_path))
        return None

    gitignore_paths = _iter_gitignore_files(root, skip_dirs)
    if not gitignore_paths:
        return None

    matchers = [parse_gitignore(path) for path in gitignore_paths]

    def matches(path_str: str) -> bool:
        for matcher in matchers:
            try:
                if matcher(path_str):
                    return True
            except ValueError:
                continue
        return False

    return matches


def _walk(root: Path, skip_dirs: frozenset[str]) -> Iterator[Path]:
    for dirpath, dirnames, filenames in os.walk(root, followlinks=False):
        dirnames[:] = [name for name in dirnames if name not in skip_dirs]
        base = Path(dirpath)
        for filename in filenames:
            yield base / filename


def iter_files(
    directory: Path,
    *,
    exclude_patterns: list[str] | None = None,
    nested_gitignore: bool = False,
    skip_dirs: frozenset[str] = DEFAULT_EXCLUDE_DIRS,
) -> Iterator[Path]:
    """Find all regular files in a directory, respecting .gitignore.

    Args:
        directory: Directory to search
        exclude_patterns: Optional list of glob patterns; files matching
            any pattern are excluded
        nested_gitignore: Compose every .gitignore under the tree instead of
            only the root one
        skip_dirs: Directory names never descended into

    Yields:
        Path objects for each file found, sorted lexicographically by
        relative path for deterministic ordering.
    """
    gitignore_matches = _build_gitignore_matcher(
        directory,
        nested_gitignore=nested_gitignore,
        skip_dirs=skip_dirs,
    )
    resolved_root = directory.resolve()

    matched_files = [
        path
        for path in _walk(directory, skip_dirs)
        if _should_include_file(
            path,
            directory,
            resolved_root,
            gitignore_matches,
            exclude_patterns,
        )
    ]

    matched_files.sort(key=lambda p: p.relative_to(directory).as_posix())

    yield from matched_files


__all__ = ["DEFAULT_EXCLUDE_DIRS", "iter_files"]
