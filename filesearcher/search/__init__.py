"""Filename search over directory trees and ZIP archives."""

import logging
import threading
from collections.abc import Callable, Iterable
from pathlib import Path
from typing import Any

from more_itertools import ilen
from pydantic import ValidationError

from ..common.errors import FatalConfigError
from ..common.pydantic import EntryKind, MatchResult, SearchOptions, SearchQuery, SearchResult, SearchStats
from .aggregator import ResultAggregator
from .entry_source import walk_entries
from .scheduler import TraversalScheduler

logger = logging.getLogger(__name__)


def build_query(pattern: str, **kwargs: Any) -> SearchQuery:
    """Build a query, raising FatalConfigError on invalid input."""
    try:
        return SearchQuery(pattern=pattern, **kwargs)
    except ValidationError as exc:
        raise FatalConfigError.from_validation_error(exc) from exc


def build_options(roots: Iterable[Path] | Path | None = None, **kwargs: Any) -> SearchOptions:
    """Build search options, raising FatalConfigError on invalid input."""
    if roots is not None:
        kwargs["roots"] = roots
    try:
        return SearchOptions(**kwargs)
    except ValidationError as exc:
        raise FatalConfigError.from_validation_error(exc) from exc


def _check_roots(options: SearchOptions) -> None:
    """Roots are validated at construction but may have vanished since."""
    for root in options.roots:
        if not root.is_dir():
            raise FatalConfigError(f"Path {root} is not a directory.")


def _run(query: SearchQuery, options: SearchOptions, aggregator: ResultAggregator) -> SearchResult:
    _check_roots(options)
    logger.info(
        "Searching %s for %r (%s) with %d workers",
        ", ".join(str(r) for r in options.roots),
        query.pattern,
        query.mode,
        options.worker_count,
    )
    TraversalScheduler(query, options, aggregator).run()
    result = aggregator.finish()
    logger.info(
        "Search completed with %d results found in %.2fs (%d scanned, %d skipped)",
        result.stats.matches,
        result.stats.elapsed_s,
        result.stats.entries_scanned,
        result.stats.entries_skipped,
    )
    return result


def search(
    query: SearchQuery,
    options: SearchOptions | None = None,
    cancel_event: threading.Event | None = None,
) -> SearchResult:
    """Search for files matching a query and block until the search is complete.

    Args:
        query: What to match.
        options: Where and how to search. Defaults to the current directory.
        cancel_event: Set it from another thread to stop the search early.

    Returns:
        All matches and the final statistics. The result is truncated, not an
        error, when ``options.max_results`` is reached.

    Raises:
        FatalConfigError: A root directory does not exist.
    """
    options = options or SearchOptions()
    aggregator = ResultAggregator(
        max_results=options.max_results,
        progress_interval=options.progress_interval,
        cancel_event=cancel_event,
    )
    return _run(query, options, aggregator)


def search_streaming(
    query: SearchQuery,
    options: SearchOptions | None,
    on_match: Callable[[MatchResult], None],
    on_progress: Callable[[SearchStats], None] | None = None,
    cancel_event: threading.Event | None = None,
) -> SearchStats:
    """Search and report matches and progress as they are found.

    Callbacks run on worker threads and must not block.
    """
    options = options or SearchOptions()
    aggregator = ResultAggregator(
        max_results=options.max_results,
        on_match=on_match,
        on_progress=on_progress,
        progress_interval=options.progress_interval,
        cancel_event=cancel_event,
    )
    return _run(query, options, aggregator).stats


def count_entries(query: SearchQuery, options: SearchOptions | None = None) -> int:
    """Count the files a search would visit, without opening archives."""
    options = options or SearchOptions()
    _check_roots(options)
    return ilen(e for e in walk_entries(query, options, on_error=lambda path, exc: None) if e.kind == EntryKind.FILE)


__all__ = [
    "build_options",
    "build_query",
    "count_entries",
    "search",
    "search_streaming",
]
