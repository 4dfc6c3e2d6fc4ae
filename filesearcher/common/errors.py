"""Search errors."""

from pathlib import Path

from pydantic import ValidationError


class SearchError(Exception):
    """Base class for search errors."""


class FatalConfigError(SearchError):
    """Invalid query or options, raised before any traversal starts."""

    @classmethod
    def from_validation_error(cls, exc: ValidationError) -> "FatalConfigError":
        """Build a config error from a pydantic validation error."""
        messages = [f"{'.'.join(str(p) for p in err['loc']) or 'value'}: {err['msg']}" for err in exc.errors()]
        return cls("; ".join(messages))


class SoftEntryError(SearchError):
    """A single entry could not be read. Counted, never fatal."""

    def __init__(self, path: Path, reason: str) -> None:
        """Store the failing path and reason."""
        super().__init__(f"{path}: {reason}")
        self.path = path
        self.reason = reason


class CorruptArchiveError(SoftEntryError):
    """Archive is corrupt or cannot be opened."""
