"""Filename match predicate."""

import fnmatch
import logging
import re
from pathlib import PurePosixPath

from ..common.pydantic import MatchMode, SearchQuery, normalize_extension

logger = logging.getLogger(__name__)


def is_valid_glob(pattern: str) -> bool:
    """Check that every bracket expression in a glob pattern is terminated."""
    i, n = 0, len(pattern)
    while i < n:
        c = pattern[i]
        i += 1
        if c != "[":
            continue
        j = i
        if j < n and pattern[j] == "!":
            j += 1
        if j < n and pattern[j] == "]":
            j += 1
        j = pattern.find("]", j)
        if j == -1:
            return False
        i = j + 1
    return True


def compile_glob(pattern: str) -> re.Pattern[str] | None:
    """Compile a glob pattern, returning None if it is malformed."""
    if not is_valid_glob(pattern):
        return None
    try:
        return re.compile(fnmatch.translate(pattern))
    except re.error:
        return None


class QueryMatcher:
    """Compiled form of a query, safe to share between threads."""

    def __init__(self, query: SearchQuery):
        """Compile the query."""
        self.query = query
        self._pattern = query.pattern if query.case_sensitive else query.pattern.casefold()
        self._glob: re.Pattern[str] | None = None
        self.mode = query.mode

        if query.mode == MatchMode.GLOB:
            self._glob = compile_glob(self._pattern)
            if self._glob is None:
                logger.warning("Malformed glob pattern %r, falling back to substring matching", query.pattern)
                self.mode = MatchMode.SUBSTRING

    @property
    def fell_back(self) -> bool:
        """Whether a malformed glob degraded to substring matching."""
        return self.mode != self.query.mode

    def _extension_ok(self, name: str) -> bool:
        if self.query.extensions is None:
            return True
        return normalize_extension(PurePosixPath(name).suffix) in self.query.extensions

    def matches(self, name: str) -> bool:
        """Check a filename (final path component) against the query."""
        if not self._extension_ok(name):
            return False
        candidate = name if self.query.case_sensitive else name.casefold()
        match self.mode:
            case MatchMode.EXACT:
                return candidate == self._pattern
            case MatchMode.GLOB:
                return self._glob is not None and self._glob.match(candidate) is not None
            case _:
                return self._pattern in candidate


def matches(name: str, query: SearchQuery) -> bool:
    """Check a filename against a query."""
    return QueryMatcher(query).matches(name)
