"""Test configuration and fixtures for tree-tools."""

import pytest

from tree_tools.core.exceptions import ListError


@pytest.fixture
def temp_dir(tmp_path):
    """Create a temporary directory for testing."""
    return tmp_path


@pytest.fixture
def sample_tree(temp_dir):
    """Three top-level files and three directories holding one file each."""
    for i in range(3):
        (temp_dir / f"file{i}").write_text("")
    for i in range(3):
        subdir = temp_dir / f"dir{i}"
        subdir.mkdir()
        (subdir / f"file{i}").write_text("")
    return temp_dir


@pytest.fixture
def named_tree(temp_dir):
    """Files and directories named for match/ignore tests.

    hoge0-2 and fuga0-2 at the top, foo0-2/hoge{i} and bar0-2/fuga{i} below.
    """
    for i in range(3):
        (temp_dir / f"hoge{i}").write_text("")
        (temp_dir / f"fuga{i}").write_text("")
    for i in range(3):
        foo = temp_dir / f"foo{i}"
        foo.mkdir()
        (foo / f"hoge{i}").write_text("")
        bar = temp_dir / f"bar{i}"
        bar.mkdir()
        (bar / f"fuga{i}").write_text("")
    return temp_dir


@pytest.fixture
def sized_tree(temp_dir):
    """A tree with known file sizes: 100 bytes in 4 files and 2 directories."""
    (temp_dir / "a.txt").write_bytes(b"x" * 10)
    (temp_dir / "b.txt").write_bytes(b"x" * 20)
    sub = temp_dir / "sub"
    sub.mkdir()
    (sub / "c.txt").write_bytes(b"x" * 30)
    deeper = sub / "deeper"
    deeper.mkdir()
    (deeper / "d.txt").write_bytes(b"x" * 40)
    return temp_dir


@pytest.fixture
def deep_tree(temp_dir):
    """A single chain a/b/c/file.txt."""
    chain = temp_dir / "a" / "b" / "c"
    chain.mkdir(parents=True)
    (chain / "file.txt").write_text("deep")
    return temp_dir


@pytest.fixture
def failing_lister():
    """Factory wrapping a directory lister so listing given paths fails."""
    return _failing_lister


def _failing_lister(lister, *bad_paths):
    bad = {str(path) for path in bad_paths}

    def list_or_fail(path):
        if path in bad:
            raise ListError(path, PermissionError(13, "Permission denied"))
        return lister(path)

    return list_or_fail
