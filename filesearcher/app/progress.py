"""Progress tracker."""

import threading

from ..common.pydantic import SearchStats


class ProgressTracker:
    """Progress tracker fed from search progress callbacks.

    The optional total comes from a counting pass, which sees filesystem files
    only, so the fraction compares it with ``files_scanned`` rather than with
    ``entries_scanned``.
    """

    def __init__(self, total: int | None = None):
        """Initialize the progress tracker."""
        self._total = total
        self._stats = SearchStats()
        self._finished = False
        self._lock = threading.Lock()

    def on_progress(self, stats: SearchStats) -> None:
        """Handle a progress snapshot."""
        with self._lock:
            if stats.entries_scanned >= self._stats.entries_scanned:
                self._stats = stats

    def finish(self, stats: SearchStats) -> None:
        """Record the final statistics."""
        with self._lock:
            self._stats = stats
            self._finished = True

    @property
    def stats(self) -> SearchStats:
        """Latest statistics."""
        with self._lock:
            return self._stats

    @property
    def fraction(self) -> float | None:
        """Fraction of counted files processed, if a total is known."""
        with self._lock:
            if self._finished:
                return 1.0
            if not self._total:
                return None
            return min(self._stats.files_scanned / self._total, 1.0)

    @property
    def status_text(self) -> str:
        """Status text."""
        stats = self.stats
        if self._finished:
            return f"Done: {stats.matches} matches in {stats.entries_scanned} items"
        fraction = self.fraction
        if fraction is not None:
            return (
                f"Processing files: {stats.files_scanned}/{self._total} ({fraction:.0%}), "
                f"{stats.entries_scanned} items, {stats.matches} matches"
            )
        return f"Processing items: {stats.entries_scanned} processed, {stats.matches} matches"
