"""Pytest configuration and fixtures for the test suite."""

import tempfile
from collections.abc import Generator
from pathlib import Path

import pytest

from tests.test_utils import make_tree, make_zip


@pytest.fixture
def temp_workspace() -> Generator[Path, None, None]:
    """Create a temporary workspace for file operations."""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield Path(temp_dir).resolve()


@pytest.fixture
def sample_tree(temp_workspace: Path) -> Path:
    """A small tree with nested directories and one archive."""
    root = temp_workspace / "tree"
    make_tree(
        root,
        {
            "a.txt": "alpha",
            "b.log": "bravo",
            "docs/report.txt": "quarterly",
            "docs/notes.md": "notes",
            "docs/deep/a.txt": "nested alpha",
            "src/main.py": "print('hi')",
        },
    )
    make_zip(root / "archive.zip", {"a.txt": b"zipped alpha", "inner/report.zip": b"not opened"})
    return root
