"""Application entry point."""

import argparse
import logging
import shutil
import sys
from pathlib import Path

from .app.app_config import LOG_LEVELS, AppConfig, build_request
from .app.progress import ProgressTracker
from .common.app import app_dirs
from .common.errors import FatalConfigError, SoftEntryError
from .common.log import setup_logging
from .common.pydantic import EntryKind, MatchMode, MatchResult, SearchResult, SearchStats
from .search import count_entries, search_streaming
from .search.archive import extract_member

logger = logging.getLogger(__name__)


def reset_all() -> None:
    """Delete the app data directory."""
    if app_dirs.app_data_dir.exists():
        shutil.rmtree(app_dirs.app_data_dir)
        print(f"App data directory deleted: {app_dirs.app_data_dir}")
    else:
        print(f"App data directory does not exist: {app_dirs.app_data_dir}")


def load_config() -> AppConfig:
    """Load the saved config, or defaults if there is none."""
    if not app_dirs.app_config_path.exists():
        return AppConfig()
    return AppConfig.model_validate_json(app_dirs.app_config_path.read_text())


def save_config(config: AppConfig) -> None:
    """Save the config."""
    app_dirs.app_config_path.parent.mkdir(parents=True, exist_ok=True)
    app_dirs.app_config_path.write_text(config.model_dump_json(indent=2))


def format_match(match: MatchResult) -> str:
    """Format a match for display."""
    entry = match.entry
    if entry.kind == EntryKind.ARCHIVE_MEMBER:
        return f"{entry.archive} :: {entry.member}"
    return str(entry.path)


def format_stats(stats: SearchStats) -> str:
    """Format search statistics."""
    return "\n".join(
        [
            f"Total files scanned: {stats.entries_scanned}",
            f"Directories scanned: {stats.directories_scanned}",
            f"Archives opened: {stats.archives_opened}",
            f"Files matching the query: {stats.matches}",
            f"Entries skipped: {stats.entries_skipped + stats.archive_members_skipped}",
            f"Total time taken: {stats.elapsed_s:.2f}s",
            f"Files processed per second: {stats.entries_per_second:.2f}",
        ]
    )


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(description="FileSearcher - find files by name, including inside ZIP archives")
    parser.add_argument("pattern", nargs="?", help="Name pattern to search for")
    parser.add_argument("roots", nargs="*", type=Path, help="Directories to search (default: saved or current)")
    parser.add_argument("--mode", choices=[m.value for m in MatchMode], help="Match mode")
    parser.add_argument("--case-sensitive", action="store_true", default=None, help="Match case")
    parser.add_argument("--ext", action="append", dest="extensions", help="Only match this extension (repeatable)")
    parser.add_argument("--max-depth", type=int, help="Maximum directory depth below each root")
    parser.add_argument("--no-archives", action="store_false", dest="include_archives", default=None)
    parser.add_argument("--no-follow-symlinks", action="store_false", dest="follow_symlinks", default=None)
    parser.add_argument("--workers", type=int, help="Worker threads (default: CPU count)")
    parser.add_argument("--max-results", type=int, help="Stop after this many matches")
    parser.add_argument("--progress", action="store_true", help="Show progress on stderr")
    parser.add_argument("--count-first", action="store_true", help="Count files first to show a progress fraction")
    parser.add_argument("--stats", action="store_true", help="Print search statistics")
    parser.add_argument("--extract-to", type=Path, help="Extract matched archive members into this directory")
    parser.add_argument("--log-level", type=str.upper, choices=sorted(LOG_LEVELS), help="Logging level")
    parser.add_argument("--save-config", action="store_true", help="Save the given settings as defaults")
    parser.add_argument("--temp", action="store_true", help="Run in temporary mode")
    parser.add_argument("--reset", action="store_true", help="Delete all app data")
    return parser


def extract_matches(result: SearchResult, destination: Path) -> None:
    """Extract every matched archive member."""
    for match in result.matches:
        if match.entry.kind != EntryKind.ARCHIVE_MEMBER:
            continue
        try:
            target = extract_member(match.entry, destination)
        except (SoftEntryError, ValueError) as exc:
            print(f"Could not extract {format_match(match)}: {exc}", file=sys.stderr)
            continue
        print(f"Extracted {format_match(match)} -> {target}")


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.reset:
        reset_all()
        return 0

    if args.temp:
        app_dirs.use_temp_app_data_dir()

    config = load_config()
    if args.log_level:
        config.log_level = args.log_level
    setup_logging(config.log_level, app_dirs.app_log_path if config.log_to_file else None)

    if args.pattern is None:
        parser.error("a search pattern is required")

    overrides = {
        "roots": args.roots,
        "mode": args.mode,
        "case_sensitive": args.case_sensitive,
        "extensions": args.extensions,
        "max_depth": args.max_depth,
        "include_archives": args.include_archives,
        "follow_symlinks": args.follow_symlinks,
        "workers": args.workers,
        "max_results": args.max_results,
    }
    try:
        query, options = build_request(config, args.pattern, **overrides)
        total = count_entries(query, options) if args.count_first else None
    except FatalConfigError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2

    tracker = ProgressTracker(total)
    matches: list[MatchResult] = []

    def on_match(match: MatchResult) -> None:
        matches.append(match)
        print(format_match(match), flush=True)

    def on_progress(stats: SearchStats) -> None:
        tracker.on_progress(stats)
        if args.progress:
            print(f"\r{tracker.status_text}", end="", file=sys.stderr, flush=True)

    try:
        stats = search_streaming(query, options, on_match=on_match, on_progress=on_progress)
    except FatalConfigError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2
    tracker.finish(stats)
    if args.progress:
        print(f"\r{tracker.status_text}", file=sys.stderr)

    if args.stats:
        print()
        print(format_stats(stats))

    if args.extract_to is not None:
        extract_matches(SearchResult(matches=tuple(matches), stats=stats), args.extract_to)

    if args.save_config:
        config.selected_directories = list(options.roots)
        config.mode = query.mode
        config.case_sensitive = query.case_sensitive
        config.include_archives = options.include_archives
        config.follow_symlinks = options.follow_symlinks
        config.workers = options.workers
        config.max_results = options.max_results
        save_config(config)
        logger.info("Saved config to %s", app_dirs.app_config_path)

    return 0


if __name__ == "__main__":
    sys.exit(main())
