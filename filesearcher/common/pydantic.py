"""Pydantic base model and search value types."""

import os
from collections.abc import Iterable
from datetime import datetime
from enum import StrEnum
from pathlib import Path, PurePosixPath
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class FrozenBaseModel(BaseModel):
    """Pydantic frozen base model."""

    model_config = ConfigDict(frozen=True, strict=True)


class MatchMode(StrEnum):
    """How a query pattern is compared against a name."""

    EXACT = "exact"
    SUBSTRING = "substring"
    GLOB = "glob"


class EntryKind(StrEnum):
    """Kind of a discovered entry."""

    FILE = "file"
    DIRECTORY = "directory"
    ARCHIVE_MEMBER = "archive_member"


def normalize_extension(extension: str) -> str:
    """Normalize an extension to lower case without the leading dot."""
    return extension.strip().lstrip(".").lower()


def remove_nested_roots(roots: Iterable[Path]) -> tuple[Path, ...]:
    """Remove duplicate roots and roots that live inside another root."""
    resolved = list(dict.fromkeys(Path(os.path.realpath(p)) for p in roots))
    return tuple(p for p in resolved if not any(p != other and p.is_relative_to(other) for other in resolved))


class SearchQuery(FrozenBaseModel):
    """Search query."""

    pattern: str
    mode: MatchMode = MatchMode.SUBSTRING
    case_sensitive: bool = False
    extensions: frozenset[str] | None = Field(default=None, description="Allowed extensions, without the dot.")
    max_depth: int | None = Field(default=None, ge=0, description="Maximum depth below each root.")

    @field_validator("pattern")
    @classmethod
    def validate_pattern(cls, pattern: str) -> str:
        """Strip the pattern and reject empty ones."""
        pattern = pattern.strip()
        if not pattern:
            raise ValueError("Search pattern must not be empty.")
        return pattern

    @field_validator("mode", mode="before")
    @classmethod
    def coerce_mode(cls, mode: Any) -> Any:
        """Accept plain strings for the mode."""
        if isinstance(mode, str) and not isinstance(mode, MatchMode):
            return MatchMode(mode.lower())
        return mode

    @field_validator("extensions", mode="before")
    @classmethod
    def coerce_extensions(cls, extensions: Any) -> frozenset[str] | None:
        """Normalize the extension filter, an empty filter means no filter."""
        if extensions is None:
            return None
        if isinstance(extensions, str):
            extensions = [extensions]
        normalized = frozenset(normalize_extension(ext) for ext in extensions if normalize_extension(ext))
        return normalized or None


class SearchOptions(FrozenBaseModel):
    """Search configuration."""

    roots: tuple[Path, ...] = Field(default_factory=lambda: (Path.cwd(),), description="Directories to search.")
    include_archives: bool = Field(default=True, description="Descend into ZIP archives.")
    workers: int | None = Field(default=None, ge=1, description="Worker threads, defaults to the CPU count.")
    max_results: int = Field(default=0, ge=0, description="Stop after this many matches, 0 is unbounded.")
    follow_symlinks: bool = Field(default=True, description="Descend into symlinked directories.")
    progress_interval: int = Field(default=1000, ge=1, description="Entries between progress callbacks.")

    @field_validator("roots", mode="before")
    @classmethod
    def coerce_roots(cls, roots: Any) -> Any:
        """Accept a single path or any iterable of paths."""
        if isinstance(roots, str | Path):
            roots = [roots]
        return tuple(Path(p) for p in roots)

    @field_validator("roots")
    @classmethod
    def validate_roots(cls, roots: tuple[Path, ...]) -> tuple[Path, ...]:
        """Validate the root directories."""
        if not roots:
            raise ValueError("At least one root directory is required.")
        for p in roots:
            if not p.is_dir():
                raise ValueError(f"Path {p} is not a directory.")
        return remove_nested_roots(roots)

    @property
    def worker_count(self) -> int:
        """Effective number of worker threads."""
        return self.workers or os.cpu_count() or 1


class Entry(FrozenBaseModel):
    """A discovered filesystem or archive item."""

    path: Path
    kind: EntryKind
    size: int = 0
    archive: Path | None = None
    member: str | None = None
    modified: datetime | None = None

    @property
    def name(self) -> str:
        """Final name component."""
        if self.member is not None:
            return PurePosixPath(self.member).name
        return self.path.name

    @property
    def location(self) -> Path:
        """Path a front-end should reveal for this entry."""
        return self.archive if self.archive is not None else self.path


class MatchResult(FrozenBaseModel):
    """A matched entry and the rule that matched it."""

    entry: Entry
    mode: MatchMode
    pattern: str


class SkippedEntry(FrozenBaseModel):
    """An entry that could not be read."""

    path: Path
    reason: str


class SearchStats(FrozenBaseModel):
    """Search statistics snapshot."""

    entries_scanned: int = 0
    files_scanned: int = 0
    directories_scanned: int = 0
    archives_opened: int = 0
    matches: int = 0
    bytes_scanned: int = 0
    entries_skipped: int = 0
    archive_members_skipped: int = 0
    elapsed_s: float = 0.0

    @property
    def entries_per_second(self) -> float:
        """Scanned entries per second."""
        if self.elapsed_s <= 0:
            return 0.0
        return self.entries_scanned / self.elapsed_s


class SearchResult(FrozenBaseModel):
    """Search result."""

    matches: tuple[MatchResult, ...] = ()
    stats: SearchStats = Field(default_factory=SearchStats)
    truncated: bool = False
    cancelled: bool = False
    skipped: tuple[SkippedEntry, ...] = ()
