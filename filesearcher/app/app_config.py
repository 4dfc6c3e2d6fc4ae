"""App configuration."""

from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator

from ..common.pydantic import MatchMode, SearchOptions, SearchQuery
from ..search import build_options, build_query

LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}

QUERY_FIELDS = {"mode", "case_sensitive", "extensions", "max_depth"}
OPTION_FIELDS = {"include_archives", "workers", "max_results", "follow_symlinks", "progress_interval"}


class AppConfig(BaseModel):
    """Defaults used when a flag is not given on the command line."""

    selected_directories: list[Path] = Field(default_factory=list)
    mode: MatchMode = MatchMode.SUBSTRING
    case_sensitive: bool = False
    include_archives: bool = True
    follow_symlinks: bool = True
    workers: int | None = Field(default=None, ge=1)
    max_results: int = Field(default=0, ge=0)
    log_level: str = "WARNING"
    log_to_file: bool = False

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, log_level: str) -> str:
        """Validate the log level name."""
        log_level = log_level.upper()
        if log_level not in LOG_LEVELS:
            raise ValueError(f"Unknown log level {log_level}.")
        return log_level


def build_request(config: AppConfig, pattern: str, **overrides: Any) -> tuple[SearchQuery, SearchOptions]:
    """Build a query and options from the config, with non-None overrides taking precedence."""
    settings = config.model_dump(include=QUERY_FIELDS | OPTION_FIELDS)
    settings.update({k: v for k, v in overrides.items() if v is not None and k != "roots"})

    roots = overrides.get("roots") or config.selected_directories or None
    query = build_query(pattern, **{k: v for k, v in settings.items() if k in QUERY_FIELDS})
    options = build_options(roots, **{k: v for k, v in settings.items() if k in OPTION_FIELDS})
    return query, options
