"""Tests for the concurrent directory walker."""

import os
import threading
from datetime import datetime, timedelta, timezone

import pytest

from tree_tools.core.exceptions import (
    InvalidPatternError,
    ListError,
    NotFoundError,
    StatError,
    UnsupportedTimeOperatorError,
)
from tree_tools.filesystem.operations import list_directory, stat_path
from tree_tools.schemas import TimeFilter, TraversalOptions
from tree_tools.traversal.concurrency import PermitPool
from tree_tools.traversal.walker import (
    EntryKind,
    WalkEngine,
    get_dir,
    get_entry,
    get_file,
    list_all,
    list_dirs,
    list_files,
    relative_key,
)


def _names(root, entries):
    return sorted(relative_key(str(root), entry.path) for entry in entries)


class TestListDefaults:
    """Test listing with default options (direct children only)."""

    def test_list_files(self, sample_tree):
        entries = list_files(str(sample_tree)).to_list()
        assert _names(sample_tree, entries) == ["file0", "file1", "file2"]

    def test_list_dirs(self, sample_tree):
        entries = list_dirs(str(sample_tree)).to_list()
        assert _names(sample_tree, entries) == ["dir0", "dir1", "dir2"]
        assert all(entry.is_dir for entry in entries)

    def test_list_all(self, sample_tree):
        assert len(list_all(str(sample_tree)).to_list()) == 6

    def test_depth_of_direct_children(self, sample_tree):
        assert {entry.depth for entry in list_all(str(sample_tree))} == {1}

    def test_entries_carry_metadata(self, sized_tree):
        entries = {
            relative_key(str(sized_tree), entry.path): entry
            for entry in list_files(str(sized_tree))
        }
        assert entries["a.txt"].metadata.size == 10
        assert entries["b.txt"].metadata.name == "b.txt"
        assert entries["a.txt"].error is None


class TestListRecurse:
    """Test recursive listing."""

    def test_list_files_recurse(self, sample_tree):
        options = TraversalOptions(recurse=True)
        entries = list_files(str(sample_tree), options).to_list()
        assert len(entries) == 6
        assert "dir1/file1" in _names(sample_tree, entries)

    def test_list_all_recurse_excludes_root(self, sample_tree):
        options = TraversalOptions(recurse=True)
        entries = list_all(str(sample_tree), options).to_list()
        assert len(entries) == 9
        assert str(sample_tree) not in {entry.path for entry in entries}

    def test_include_root(self, sample_tree):
        options = TraversalOptions(recurse=True, include_root=True)
        entries = list_dirs(str(sample_tree), options).to_list()
        assert len(entries) == 4
        root_entries = [e for e in entries if e.path == str(sample_tree)]
        assert len(root_entries) == 1
        assert root_entries[0].depth == 0

    def test_depth_follows_nesting(self, deep_tree):
        options = TraversalOptions(recurse=True)
        for entry in list_all(str(deep_tree), options):
            key = relative_key(str(deep_tree), entry.path)
            assert entry.depth == key.count("/") + 1

    def test_same_result_with_single_permit(self, named_tree):
        options = TraversalOptions(recurse=True)
        concurrent = list_all(str(named_tree), options).to_list()
        serial = WalkEngine(options, pool=PermitPool(size=1)).walk(str(named_tree))
        assert _names(named_tree, serial) == _names(named_tree, concurrent)

    def test_small_buffer_applies_backpressure(self, named_tree, monkeypatch):
        from tree_tools.core import settings

        monkeypatch.setattr(settings, "stream_buffer_size", 1)
        options = TraversalOptions(recurse=True)
        assert len(list_all(str(named_tree), options).to_list()) == 18


class TestMaxDepth:
    """Test the interaction of max_depth and recurse."""

    def test_max_depth_one_lists_direct_children(self, deep_tree):
        options = TraversalOptions(max_depth=1)
        assert _names(deep_tree, list_all(str(deep_tree), options)) == ["a"]

    def test_max_depth_caps_recursive_walk(self, deep_tree):
        options = TraversalOptions(recurse=True, max_depth=2)
        assert _names(deep_tree, list_all(str(deep_tree), options)) == ["a", "a/b"]

    def test_max_depth_descends_without_recurse(self, deep_tree):
        options = TraversalOptions(recurse=False, max_depth=3)
        assert _names(deep_tree, list_all(str(deep_tree), options)) == [
            "a",
            "a/b",
            "a/b/c",
        ]

    def test_unbounded_recurse(self, deep_tree):
        options = TraversalOptions(recurse=True)
        assert _names(deep_tree, list_files(str(deep_tree), options)) == [
            "a/b/c/file.txt"
        ]


class TestPatternFilters:
    """Test match and ignore patterns."""

    def test_match(self, named_tree):
        options = TraversalOptions(match_patterns=["hoge"])
        entries = list_files(str(named_tree), options).to_list()
        assert _names(named_tree, entries) == ["hoge0", "hoge1", "hoge2"]

    def test_ignore(self, named_tree):
        options = TraversalOptions(ignore_patterns=["hoge"])
        entries = list_files(str(named_tree), options).to_list()
        assert _names(named_tree, entries) == ["fuga0", "fuga1", "fuga2"]

    def test_match_and_ignore(self, named_tree):
        options = TraversalOptions(
            match_patterns=["fuga"], ignore_patterns=["hoge", "fuga0$"]
        )
        entries = list_files(str(named_tree), options).to_list()
        assert _names(named_tree, entries) == ["fuga1", "fuga2"]

    def test_match_and_ignore_recurse(self, named_tree):
        options = TraversalOptions(
            match_patterns=["fuga"], ignore_patterns=["hoge", "fuga0$"], recurse=True
        )
        entries = list_files(str(named_tree), options).to_list()
        assert _names(named_tree, entries) == [
            "bar1/fuga1",
            "bar2/fuga2",
            "fuga1",
            "fuga2",
        ]

    def test_ignore_wins_over_match(self, sample_tree):
        options = TraversalOptions(match_patterns=["file"], ignore_patterns=["file"])
        assert list_files(str(sample_tree), options).to_list() == []

    def test_ignored_directory_is_still_visited(self, temp_dir):
        skip = temp_dir / "skip"
        skip.mkdir()
        (skip / "inner.txt").write_text("inner")
        (temp_dir / "keep.txt").write_text("keep")

        options = TraversalOptions(ignore_patterns=["^skip$"], recurse=True)
        entries = list_all(str(temp_dir), options).to_list()

        assert _names(temp_dir, entries) == ["keep.txt", "skip/inner.txt"]

    def test_ignore_prefix_also_covers_children(self, temp_dir):
        skip = temp_dir / "skip"
        skip.mkdir()
        (skip / "inner.txt").write_text("inner")

        options = TraversalOptions(ignore_patterns=["^skip"], recurse=True)
        assert list_all(str(temp_dir), options).to_list() == []

    def test_invalid_pattern_fails_before_walking(self, sample_tree):
        options = TraversalOptions(match_patterns=["("])
        with pytest.raises(InvalidPatternError) as exc_info:
            list_files(str(sample_tree), options)

        assert exc_info.value.pattern == "("


class TestTimeFilters:
    """Test modification time filters."""

    @pytest.fixture
    def timed_tree(self, temp_dir):
        old = datetime(2020, 1, 1, tzinfo=timezone.utc)
        new = datetime(2024, 1, 1, tzinfo=timezone.utc)
        for name, stamp in (("old.txt", old), ("new.txt", new)):
            path = temp_dir / name
            path.write_text(name)
            os.utime(path, (stamp.timestamp(), stamp.timestamp()))
        return temp_dir

    def test_before(self, timed_tree):
        base = datetime(2022, 1, 1, tzinfo=timezone.utc)
        options = TraversalOptions(time_filters=[TimeFilter(base=base, operator="before")])
        assert _names(timed_tree, list_files(str(timed_tree), options)) == ["new.txt"]

    def test_after(self, timed_tree):
        base = datetime(2022, 1, 1, tzinfo=timezone.utc)
        options = TraversalOptions(time_filters=[TimeFilter(base=base, operator="after")])
        assert _names(timed_tree, list_files(str(timed_tree), options)) == ["old.txt"]

    def test_equal(self, timed_tree):
        base = datetime(2020, 1, 1, tzinfo=timezone.utc)
        options = TraversalOptions(time_filters=[TimeFilter(base=base, operator="equal")])
        assert _names(timed_tree, list_files(str(timed_tree), options)) == ["old.txt"]

    def test_filters_are_anded(self, timed_tree):
        base = datetime(2022, 1, 1, tzinfo=timezone.utc)
        options = TraversalOptions(
            time_filters=[
                TimeFilter(base=base, operator="before"),
                TimeFilter(base=base + timedelta(days=365 * 10), operator="after"),
            ]
        )
        assert _names(timed_tree, list_files(str(timed_tree), options)) == ["new.txt"]

    def test_unsupported_operator(self, timed_tree):
        base = datetime(2022, 1, 1, tzinfo=timezone.utc)
        options = TraversalOptions(
            time_filters=[TimeFilter(base=base, operator="around")]
        )
        with pytest.raises(UnsupportedTimeOperatorError):
            list_files(str(timed_tree), options)


class TestWalkErrors:
    """Test error reporting during a walk."""

    def test_missing_root(self, temp_dir):
        with pytest.raises(NotFoundError):
            list_all(str(temp_dir / "missing"))

    def test_list_error_is_emitted(self, sample_tree, failing_lister):
        bad = sample_tree / "dir1"
        engine = WalkEngine(
            TraversalOptions(recurse=True),
            kind=EntryKind.files,
            lister=failing_lister(list_directory, bad),
        )
        entries = engine.walk(str(sample_tree)).to_list()

        errors = [entry for entry in entries if entry.error is not None]
        assert len(errors) == 1
        assert errors[0].path == str(bad)
        assert isinstance(errors[0].error, ListError)
        # The other subtrees are unaffected
        assert len(entries) - len(errors) == 5

    def test_error_entry_bypasses_filters(self, sample_tree, failing_lister):
        bad = sample_tree / "dir1"
        engine = WalkEngine(
            TraversalOptions(recurse=True, match_patterns=["^nothing$"]),
            lister=failing_lister(list_directory, bad),
        )
        entries = engine.walk(str(sample_tree)).to_list()
        assert [entry.path for entry in entries] == [str(bad)]

    def test_stat_error_is_emitted(self, sample_tree):
        bad = str(sample_tree / "dir2")

        def stat_or_fail(path):
            if path == bad:
                raise StatError(path, FileNotFoundError(2, "No such file or directory"))
            return stat_path(path)

        engine = WalkEngine(TraversalOptions(recurse=True), stat=stat_or_fail)
        entries = engine.walk(str(sample_tree)).to_list()

        failed = [entry for entry in entries if entry.error is not None]
        assert [entry.path for entry in failed] == [bad]
        assert isinstance(failed[0].error, StatError)
        assert bad + os.sep + "file2" not in {entry.path for entry in entries}

    def test_unexpected_failure_reaches_consumer(self, sample_tree):
        def broken_lister(path):
            raise RuntimeError("lister bug")

        stream = WalkEngine(lister=broken_lister).walk(str(sample_tree))
        with pytest.raises(RuntimeError, match="lister bug"):
            stream.to_list()


class TestWalkCancellation:
    """Test cancelling a running walk."""

    def test_cancelled_walk_closes_stream(self, named_tree):
        cancel = threading.Event()
        cancel.set()
        entries = list_all(
            str(named_tree), TraversalOptions(recurse=True), cancel=cancel
        ).to_list()
        assert entries == []

    def test_cancel_while_consuming(self, named_tree, monkeypatch):
        from tree_tools.core import settings

        monkeypatch.setattr(settings, "stream_buffer_size", 1)
        cancel = threading.Event()
        stream = list_all(str(named_tree), TraversalOptions(recurse=True), cancel=cancel)

        seen = 0
        for _ in stream:
            seen += 1
            cancel.set()

        assert 1 <= seen < 18


class TestSingleEntryLookup:
    """Test get_file, get_dir and get_entry."""

    def test_get_file(self, sample_tree):
        path = str(sample_tree / "file1")
        entry = get_file(path)
        assert entry.path == path
        assert entry.depth == 0
        assert not entry.is_dir

    def test_get_dir(self, sample_tree):
        entry = get_dir(str(sample_tree))
        assert entry.path == str(sample_tree)
        assert entry.is_dir

    def test_get_entry(self, sample_tree):
        assert get_entry(str(sample_tree / "dir0")).is_dir
        assert not get_entry(str(sample_tree / "file0")).is_dir

    def test_get_ignores_filters_for_root(self, sample_tree):
        path = str(sample_tree / "file1")
        options = TraversalOptions(
            match_patterns=["^nothing$"],
            ignore_patterns=[".*"],
            time_filters=[
                TimeFilter(
                    base=datetime(2100, 1, 1, tzinfo=timezone.utc), operator="before"
                )
            ],
        )

        assert get_file(path, options).path == path
        assert get_dir(str(sample_tree), options).path == str(sample_tree)

    def test_get_file_on_directory(self, sample_tree):
        with pytest.raises(NotFoundError):
            get_file(str(sample_tree))

    def test_get_dir_on_file(self, sample_tree):
        with pytest.raises(NotFoundError):
            get_dir(str(sample_tree / "file0"))

    def test_get_entry_missing(self, temp_dir):
        with pytest.raises(NotFoundError):
            get_entry(str(temp_dir / "missing"))

    def test_root_file_is_listed(self, sample_tree):
        path = str(sample_tree / "file0")
        assert [entry.path for entry in list_files(path)] == [path]
        assert list_dirs(path).to_list() == []
