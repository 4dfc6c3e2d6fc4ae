"""Parallel traversal scheduler."""

import logging
import threading
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Any

from ..common.errors import SoftEntryError
from ..common.pydantic import Entry, EntryKind, MatchResult, SearchOptions, SearchQuery
from .aggregator import ResultAggregator
from .archive import inspect_archive, is_archive
from .entry_source import VisitedDirectories, list_directory, within_depth
from .matcher import QueryMatcher

logger = logging.getLogger(__name__)


class TraversalScheduler:
    """Fork-join traversal over a shared thread pool.

    Every directory listing and every archive is a work unit. Units are
    submitted to one ``ThreadPoolExecutor`` whose queue is shared, so any idle
    worker picks up any pending subtree. ``run`` returns once the number of
    pending units drops to zero.
    """

    def __init__(
        self,
        query: SearchQuery,
        options: SearchOptions,
        aggregator: ResultAggregator,
        matcher: QueryMatcher | None = None,
    ):
        """Initialize the scheduler for a single search."""
        self.query = query
        self.options = options
        self.aggregator = aggregator
        self.matcher = matcher or QueryMatcher(query)
        self._visited = VisitedDirectories()
        self._pending = 0
        self._idle = threading.Condition()
        self._failure: Exception | None = None
        self._executor: ThreadPoolExecutor | None = None

    def run(self) -> None:
        """Traverse all roots and block until every work unit has finished."""
        with ThreadPoolExecutor(
            max_workers=self.options.worker_count, thread_name_prefix="filesearcher"
        ) as executor:
            self._executor = executor
            self.aggregator.start()
            for root in self.options.roots:
                if self._visited.claim(root):
                    self._submit(self._walk_directory, root, 0)
            with self._idle:
                self._idle.wait_for(lambda: self._pending == 0)
        self._executor = None

        if self._failure is not None:
            raise self._failure

    def _submit(self, fn: Callable[..., None], *args: Any) -> None:
        if self._executor is None:
            raise RuntimeError("Work units can only be submitted while the scheduler is running.")
        with self._idle:
            self._pending += 1
        self._executor.submit(self._run_unit, fn, *args)

    def _run_unit(self, fn: Callable[..., None], *args: Any) -> None:
        try:
            if not self.aggregator.cancelled:
                fn(*args)
        except Exception as exc:
            logger.exception("Work unit %s%r failed", fn.__name__, args)
            with self._idle:
                if self._failure is None:
                    self._failure = exc
            self.aggregator.cancel()
        finally:
            with self._idle:
                self._pending -= 1
                if self._pending == 0:
                    self._idle.notify_all()

    def _on_error(self, path: Path, exc: OSError) -> None:
        logger.debug("Skipping %s: %s", path, exc)
        self.aggregator.record_skip(path, exc.strerror or str(exc))

    def _walk_directory(self, directory: Path, depth: int) -> None:
        """List one directory, matching files and forking subdirectories and archives."""
        child_depth = depth + 1
        if not within_depth(child_depth, self.query.max_depth):
            return

        for entry in list_directory(directory, self.options.follow_symlinks, self._on_error):
            if self.aggregator.cancelled:
                return
            match entry.kind:
                case EntryKind.DIRECTORY:
                    if not self._visited.claim(entry.path):
                        continue
                    self.aggregator.record_entry(entry)
                    self._submit(self._walk_directory, entry.path, child_depth)
                case EntryKind.FILE:
                    self._handle_file(entry)

    def _handle_file(self, entry: Entry) -> None:
        self.aggregator.record_entry(entry)
        if self.matcher.matches(entry.name):
            self.aggregator.add_match(MatchResult(entry=entry, mode=self.matcher.mode, pattern=self.query.pattern))
        if self.options.include_archives and is_archive(entry.path):
            self._submit(self._inspect_archive, entry.path)

    def _inspect_archive(self, archive_path: Path) -> None:
        """Inspect one archive to completion, cancellation is honored afterwards."""
        try:
            report = inspect_archive(archive_path, self.matcher)
        except SoftEntryError as exc:
            logger.warning("Skipping archive %s: %s", archive_path, exc.reason)
            self.aggregator.record_skip(archive_path, exc.reason)
            return
        self.aggregator.record_archive(report)
