"""ZIP archive inspection."""

import logging
import shutil
import zipfile
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path, PurePosixPath

from ..common.errors import CorruptArchiveError, SoftEntryError
from ..common.pydantic import Entry, EntryKind, MatchResult
from .matcher import QueryMatcher

ARCHIVE_SUFFIXES = {".zip"}

SUPPORTED_COMPRESSION = {zipfile.ZIP_STORED, zipfile.ZIP_DEFLATED, zipfile.ZIP_BZIP2, zipfile.ZIP_LZMA}

logger = logging.getLogger(__name__)


def is_archive(path: Path) -> bool:
    """Whether a file should be inspected as a ZIP archive."""
    return path.suffix.lower() in ARCHIVE_SUFFIXES


@dataclass(slots=True)
class ArchiveReport:
    """Outcome of listing one archive."""

    archive: Path
    matches: list[MatchResult] = field(default_factory=list)
    members_scanned: int = 0
    directories_scanned: int = 0
    members_skipped: int = 0
    bytes_scanned: int = 0


def _member_datetime(info: zipfile.ZipInfo) -> datetime | None:
    try:
        return datetime(*info.date_time)
    except ValueError:
        return None


def _is_readable(info: zipfile.ZipInfo) -> bool:
    """Encrypted members and unknown compression methods are skipped."""
    return not info.flag_bits & 0x1 and info.compress_type in SUPPORTED_COMPRESSION


def member_entry(archive_path: Path, info: zipfile.ZipInfo) -> Entry:
    """Build the entry for an archive member."""
    name = info.filename.replace("\\", "/")
    return Entry(
        path=archive_path / PurePosixPath(name.lstrip("/")),
        kind=EntryKind.ARCHIVE_MEMBER,
        size=info.file_size,
        archive=archive_path,
        member=name,
        modified=_member_datetime(info),
    )


def inspect_archive(archive_path: Path, matcher: QueryMatcher) -> ArchiveReport:
    """List an archive's central directory and match member names.

    Member bodies are never read. Nested archives are matched by name only.
    """
    report = ArchiveReport(archive=archive_path)
    try:
        with zipfile.ZipFile(archive_path) as zf:
            infos = zf.infolist()
    except (zipfile.BadZipFile, zipfile.LargeZipFile, OSError, EOFError, ValueError) as exc:
        raise CorruptArchiveError(archive_path, f"cannot read archive: {exc}") from exc

    for info in infos:
        if info.is_dir():
            report.directories_scanned += 1
            continue
        if not _is_readable(info):
            logger.debug("Skipping unreadable member %s in %s", info.filename, archive_path)
            report.members_skipped += 1
            continue
        entry = member_entry(archive_path, info)
        report.members_scanned += 1
        report.bytes_scanned += entry.size
        if matcher.matches(entry.name):
            report.matches.append(MatchResult(entry=entry, mode=matcher.mode, pattern=matcher.query.pattern))

    return report


def extract_member(entry: Entry, destination: Path) -> Path:
    """Extract one archive member into a directory and return the written path."""
    if entry.kind != EntryKind.ARCHIVE_MEMBER or entry.archive is None or entry.member is None:
        raise ValueError(f"{entry.path} is not an archive member.")

    destination = destination.resolve()
    target = (destination / PurePosixPath(entry.member)).resolve()
    if not target.is_relative_to(destination):
        raise ValueError(f"Refusing to extract {entry.member} outside {destination}.")

    try:
        with zipfile.ZipFile(entry.archive) as zf:
            info = zf.getinfo(entry.member)
            if not _is_readable(info):
                raise SoftEntryError(entry.path, "member is encrypted or uses unsupported compression")
            target.parent.mkdir(parents=True, exist_ok=True)
            with zf.open(info) as src, target.open("wb") as dst:
                shutil.copyfileobj(src, dst)
    except KeyError as exc:
        raise SoftEntryError(entry.path, "member not found in archive") from exc
    except (zipfile.BadZipFile, OSError) as exc:
        raise CorruptArchiveError(entry.archive, f"cannot extract member: {exc}") from exc

    logger.info("Extracted %s to %s", entry.member, target)
    return target
