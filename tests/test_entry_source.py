"""Test suite for filesystem entry enumeration."""

import os
from pathlib import Path

import pytest

from filesearcher.common.pydantic import EntryKind, SearchOptions, SearchQuery
from filesearcher.search import entry_source, search
from filesearcher.search.entry_source import VisitedDirectories, list_directory, walk_entries, within_depth
from tests.test_utils import make_tree


class _UnrepresentableTime:
    @staticmethod
    def fromtimestamp(timestamp: float):
        raise ValueError("year 10000 is out of range")


def _supports_symlinks(tmp: Path) -> bool:
    try:
        os.symlink(tmp, tmp / "probe")
    except (OSError, NotImplementedError):
        return False
    (tmp / "probe").unlink()
    return True


class TestListDirectory:
    """Test single directory listing."""

    def test_lists_files_and_directories(self, sample_tree: Path):
        """Test children are converted to entries with metadata."""
        entries = {e.name: e for e in list_directory(sample_tree)}

        assert set(entries) == {"a.txt", "b.log", "docs", "src", "archive.zip"}
        assert entries["docs"].kind == EntryKind.DIRECTORY
        assert entries["a.txt"].kind == EntryKind.FILE
        assert entries["a.txt"].size == len("alpha")
        assert entries["a.txt"].modified is not None
        assert entries["a.txt"].archive is None
        assert entries["a.txt"].location == entries["a.txt"].path

    def test_missing_directory_goes_to_error_handler(self, temp_workspace: Path):
        """Test listing failures are reported instead of raised."""
        errors: list[Path] = []
        missing = temp_workspace / "missing"

        entries = list(list_directory(missing, on_error=lambda path, exc: errors.append(path)))

        assert entries == []
        assert errors == [missing]

    def test_missing_directory_raises_without_handler(self, temp_workspace: Path):
        """Test the default handler raises."""
        with pytest.raises(FileNotFoundError):
            list(list_directory(temp_workspace / "missing"))

    def test_is_lazy(self, sample_tree: Path):
        """Test nothing is read until the generator is advanced."""
        entries = list_directory(sample_tree)
        assert next(entries) is not None

    def test_unrepresentable_mtime(self, sample_tree: Path, monkeypatch: pytest.MonkeyPatch):
        """Test a modification time datetime cannot hold leaves the entry without one."""
        monkeypatch.setattr(entry_source, "datetime", _UnrepresentableTime)

        entries = {e.name: e for e in list_directory(sample_tree)}

        assert entries["a.txt"].kind == EntryKind.FILE
        assert entries["a.txt"].modified is None

    def test_unrepresentable_mtime_does_not_abort_search(self, temp_workspace: Path, monkeypatch: pytest.MonkeyPatch):
        """Test the parallel search still finds every match."""
        root = make_tree(temp_workspace / "root", {"a/match.txt": "x", "b/other.txt": "y"})
        monkeypatch.setattr(entry_source, "datetime", _UnrepresentableTime)

        result = search(SearchQuery(pattern="match"), SearchOptions(roots=[root], workers=2))

        assert [m.entry.name for m in result.matches] == ["match.txt"]
        assert result.matches[0].entry.modified is None
        assert result.stats.entries_scanned == 2
        assert not result.cancelled


class TestVisitedDirectories:
    """Test the visited set."""

    def test_claim_once(self, temp_workspace: Path):
        """Test a directory can only be claimed once."""
        visited = VisitedDirectories()
        assert visited.claim(temp_workspace)
        assert not visited.claim(temp_workspace)
        assert not visited.claim(temp_workspace / ".")
        assert len(visited) == 1

    def test_claim_resolves_symlinks(self, temp_workspace: Path):
        """Test symlinked directories share the canonical path."""
        if not _supports_symlinks(temp_workspace):
            pytest.skip("symlinks not supported")
        target = temp_workspace / "target"
        target.mkdir()
        os.symlink(target, temp_workspace / "link")

        visited = VisitedDirectories()
        assert visited.claim(target)
        assert not visited.claim(temp_workspace / "link")


class TestWalkEntries:
    """Test sequential traversal."""

    def test_walks_whole_tree(self, sample_tree: Path):
        """Test every file and directory is produced once."""
        entries = list(walk_entries(SearchQuery(pattern="x"), SearchOptions(roots=[sample_tree])))
        files = sorted(e.path.relative_to(sample_tree).as_posix() for e in entries if e.kind == EntryKind.FILE)
        dirs = sorted(e.path.relative_to(sample_tree).as_posix() for e in entries if e.kind == EntryKind.DIRECTORY)

        assert files == [
            "a.txt",
            "archive.zip",
            "b.log",
            "docs/deep/a.txt",
            "docs/notes.md",
            "docs/report.txt",
            "src/main.py",
        ]
        assert dirs == ["docs", "docs/deep", "src"]

    @pytest.mark.parametrize(("max_depth", "expected"), [(0, 0), (1, 5), (2, 9), (None, 10)])
    def test_max_depth(self, sample_tree: Path, max_depth: int | None, expected: int):
        """Test the depth limit counts children of the root as depth one."""
        query = SearchQuery(pattern="x", max_depth=max_depth)
        entries = list(walk_entries(query, SearchOptions(roots=[sample_tree])))
        assert len(entries) == expected

    def test_symlink_loop_terminates(self, temp_workspace: Path):
        """Test a link back to the root is not followed twice."""
        if not _supports_symlinks(temp_workspace):
            pytest.skip("symlinks not supported")
        root = make_tree(temp_workspace / "root", {"sub/file.txt": "x"})
        os.symlink(root, root / "sub" / "loop")

        entries = list(walk_entries(SearchQuery(pattern="x"), SearchOptions(roots=[root])))

        assert [e.name for e in entries if e.kind == EntryKind.FILE] == ["file.txt"]

    def test_symlinks_not_followed_when_disabled(self, temp_workspace: Path):
        """Test symlinked directories are ignored without follow_symlinks."""
        if not _supports_symlinks(temp_workspace):
            pytest.skip("symlinks not supported")
        outside = make_tree(temp_workspace / "outside", {"secret.txt": "x"})
        root = make_tree(temp_workspace / "root", {"plain.txt": "x"})
        os.symlink(outside, root / "link")

        options = SearchOptions(roots=[root], follow_symlinks=False)
        names = {e.name for e in walk_entries(SearchQuery(pattern="x"), options)}

        assert names == {"plain.txt"}


def test_within_depth():
    """Test the depth predicate."""
    assert within_depth(5, None)
    assert within_depth(1, 1)
    assert not within_depth(2, 1)
