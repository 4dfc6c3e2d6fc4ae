"""Filesystem entry enumeration."""

import os
import threading
from collections.abc import Callable, Iterable, Iterator
from datetime import datetime
from pathlib import Path

from ..common.pydantic import Entry, EntryKind, SearchOptions, SearchQuery

ErrorHandler = Callable[[Path, OSError], None]


def _raise(path: Path, exc: OSError) -> None:
    raise exc


class VisitedDirectories:
    """Canonical directory paths seen during one traversal."""

    def __init__(self) -> None:
        """Initialize an empty visited set."""
        self._seen: set[str] = set()
        self._lock = threading.Lock()

    def claim(self, path: Path) -> bool:
        """Mark a directory as visited. Return False if it was already visited."""
        key = os.path.normcase(os.path.realpath(path))
        with self._lock:
            if key in self._seen:
                return False
            self._seen.add(key)
            return True

    def __len__(self) -> int:
        """Number of visited directories."""
        with self._lock:
            return len(self._seen)


def within_depth(depth: int, max_depth: int | None) -> bool:
    """Whether an entry at this depth should be produced."""
    return max_depth is None or depth <= max_depth


def _modified_time(timestamp: float) -> datetime | None:
    try:
        return datetime.fromtimestamp(timestamp)
    except (ValueError, OverflowError, OSError):
        return None


def _to_entry(dir_entry: os.DirEntry, follow_symlinks: bool) -> Entry | None:
    """Convert a scandir entry, returning None for node types that are not searched."""
    path = Path(dir_entry.path)
    if dir_entry.is_dir(follow_symlinks=follow_symlinks):
        return Entry(path=path, kind=EntryKind.DIRECTORY)
    if not dir_entry.is_file():
        return None
    stat = dir_entry.stat()
    return Entry(
        path=path,
        kind=EntryKind.FILE,
        size=stat.st_size,
        modified=_modified_time(stat.st_mtime),
    )


def list_directory(
    directory: Path,
    follow_symlinks: bool = True,
    on_error: ErrorHandler | None = None,
) -> Iterator[Entry]:
    """Lazily yield the immediate children of a directory.

    Directories that cannot be listed and children that cannot be stat'ed are
    passed to ``on_error`` and skipped. Without a handler the error is raised.
    """
    on_error = on_error or _raise
    try:
        scanner = os.scandir(directory)
    except OSError as exc:
        on_error(directory, exc)
        return

    with scanner:
        while True:
            try:
                dir_entry = next(scanner)
            except StopIteration:
                break
            except OSError as exc:
                on_error(directory, exc)
                break
            try:
                entry = _to_entry(dir_entry, follow_symlinks)
            except OSError as exc:
                on_error(Path(dir_entry.path), exc)
                continue
            if entry is not None:
                yield entry


def walk_entries(
    query: SearchQuery,
    options: SearchOptions,
    on_error: ErrorHandler | None = None,
) -> Iterable[Entry]:
    """Lazily yield every file and directory below the option roots, depth first."""
    visited = VisitedDirectories()
    stack: list[tuple[Path, int]] = [(root, 0) for root in reversed(options.roots) if visited.claim(root)]

    while stack:
        directory, depth = stack.pop()
        if not within_depth(depth + 1, query.max_depth):
            continue
        subdirectories: list[tuple[Path, int]] = []
        for entry in list_directory(directory, options.follow_symlinks, on_error):
            if entry.kind == EntryKind.DIRECTORY and not visited.claim(entry.path):
                continue
            yield entry
            if entry.kind == EntryKind.DIRECTORY:
                subdirectories.append((entry.path, depth + 1))
        stack.extend(reversed(subdirectories))
