"""Results and statistics aggregator."""

import logging
import threading
import time
from collections.abc import Callable
from pathlib import Path

from ..common.pydantic import Entry, EntryKind, MatchResult, SearchResult, SearchStats, SkippedEntry
from .archive import ArchiveReport

MAX_RECORDED_SKIPS = 1000

logger = logging.getLogger(__name__)


class ResultAggregator:
    """Collects matches and counters from all workers of one search.

    Every update goes through a single lock, so final counts are exact
    regardless of how many workers contribute. Callbacks run on the calling
    worker thread, outside the lock.
    """

    def __init__(
        self,
        max_results: int = 0,
        on_match: Callable[[MatchResult], None] | None = None,
        on_progress: Callable[[SearchStats], None] | None = None,
        progress_interval: int = 1000,
        cancel_event: threading.Event | None = None,
    ):
        """Initialize the aggregator."""
        self._max_results = max_results
        self._on_match = on_match
        self._on_progress = on_progress
        self._progress_interval = progress_interval
        self._external_cancel = cancel_event or threading.Event()
        self._cancel = threading.Event()
        self._lock = threading.Lock()

        self._matches: list[MatchResult] = []
        self._skipped: list[SkippedEntry] = []
        self._entries_scanned = 0
        self._files_scanned = 0
        self._directories_scanned = 0
        self._archives_opened = 0
        self._bytes_scanned = 0
        self._entries_skipped = 0
        self._archive_members_skipped = 0
        self._truncated = False
        self._started: float | None = None
        self._elapsed: float | None = None
        self._next_progress = progress_interval

    @property
    def cancelled(self) -> bool:
        """Whether workers should stop."""
        return self._cancel.is_set() or self._external_cancel.is_set()

    def cancel(self) -> None:
        """Signal cancellation to all workers. Safe to call repeatedly."""
        self._cancel.set()

    def start(self) -> None:
        """Start the wall clock."""
        with self._lock:
            if self._started is None:
                self._started = time.perf_counter()

    def _elapsed_locked(self) -> float:
        if self._elapsed is not None:
            return self._elapsed
        if self._started is None:
            return 0.0
        return time.perf_counter() - self._started

    def _snapshot_locked(self) -> SearchStats:
        return SearchStats(
            entries_scanned=self._entries_scanned,
            files_scanned=self._files_scanned,
            directories_scanned=self._directories_scanned,
            archives_opened=self._archives_opened,
            matches=len(self._matches),
            bytes_scanned=self._bytes_scanned,
            entries_skipped=self._entries_skipped,
            archive_members_skipped=self._archive_members_skipped,
            elapsed_s=self._elapsed_locked(),
        )

    def snapshot(self) -> SearchStats:
        """Current statistics."""
        with self._lock:
            return self._snapshot_locked()

    def _progress_due_locked(self) -> SearchStats | None:
        if self._on_progress is None or self._entries_scanned < self._next_progress:
            return None
        while self._next_progress <= self._entries_scanned:
            self._next_progress += self._progress_interval
        return self._snapshot_locked()

    def _notify_progress(self, stats: SearchStats | None) -> None:
        if stats is not None and self._on_progress is not None:
            self._on_progress(stats)

    def record_entry(self, entry: Entry) -> None:
        """Count a scanned entry."""
        with self._lock:
            if entry.kind == EntryKind.DIRECTORY:
                self._directories_scanned += 1
            else:
                self._entries_scanned += 1
                self._files_scanned += 1
                self._bytes_scanned += entry.size
            stats = self._progress_due_locked()
        self._notify_progress(stats)

    def record_archive(self, report: ArchiveReport) -> None:
        """Merge the counters and matches of one inspected archive."""
        with self._lock:
            self._archives_opened += 1
            self._entries_scanned += report.members_scanned
            self._directories_scanned += report.directories_scanned
            self._archive_members_skipped += report.members_skipped
            self._bytes_scanned += report.bytes_scanned
            stats = self._progress_due_locked()
        for match in report.matches:
            self.add_match(match)
        self._notify_progress(stats)

    def record_skip(self, path: Path, reason: str) -> None:
        """Count an entry that could not be read."""
        with self._lock:
            self._entries_skipped += 1
            if len(self._skipped) < MAX_RECORDED_SKIPS:
                self._skipped.append(SkippedEntry(path=path, reason=reason))

    def add_match(self, match: MatchResult) -> bool:
        """Record a match. Return False once the result limit has been reached."""
        with self._lock:
            if self._max_results and len(self._matches) >= self._max_results:
                return False
            self._matches.append(match)
            limit_reached = bool(self._max_results) and len(self._matches) >= self._max_results
            if limit_reached:
                self._truncated = True
        if limit_reached:
            logger.debug("Result limit of %d reached, cancelling search", self._max_results)
            self.cancel()
        if self._on_match is not None:
            self._on_match(match)
        return True

    def finish(self) -> SearchResult:
        """Stop the clock and build the final result."""
        with self._lock:
            if self._elapsed is None:
                self._elapsed = self._elapsed_locked()
            stats = self._snapshot_locked()
            result = SearchResult(
                matches=tuple(self._matches),
                stats=stats,
                truncated=self._truncated,
                cancelled=self._external_cancel.is_set(),
                skipped=tuple(self._skipped),
            )
        if self._on_progress is not None:
            self._on_progress(stats)
        return result
