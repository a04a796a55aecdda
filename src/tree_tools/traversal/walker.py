"""Concurrent, filtered directory walking.

The walk runs on background threads and hands its entries to the caller
through a ResultStream. Directory descents fan out onto their own threads
while permits are free and run inline otherwise. Per-path I/O failures do
not stop the walk: they are reported as entries carrying an error.
"""

import os
import threading
from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional

from tree_tools.core import get_logger, get_tracer
from tree_tools.core.exceptions import NotFoundError, TraversalIOError, TreeToolsError
from tree_tools.filesystem.operations import (
    EntryMetadata,
    ListFunc,
    StatFunc,
    list_directory,
    require_existing,
    stat_path,
)
from tree_tools.schemas import TraversalOptions
from tree_tools.traversal.concurrency import BranchGroup, PermitPool
from tree_tools.traversal.filters import CompiledFilter, compile_filter
from tree_tools.traversal.stream import ResultStream

logger = get_logger(__name__)
tracer = get_tracer(__name__)


class EntryKind(str, Enum):
    """Which kinds of entries a walk emits."""

    files = "files"
    dirs = "dirs"
    all = "all"

    def wants(self, is_dir: bool) -> bool:
        if self is EntryKind.all:
            return True
        return is_dir == (self is EntryKind.dirs)


@dataclass(frozen=True)
class Entry:
    """One visited path.

    Attributes:
        path: Path of the entry, joined onto the walk root
        metadata: Stat result, None if the path could not be stat'ed
        depth: Distance from the walk root (the root is 0)
        error: Failure reading this path, if any
    """

    path: str
    metadata: Optional[EntryMetadata]
    depth: int
    error: Optional[TreeToolsError] = None

    @property
    def is_dir(self) -> bool:
        return self.metadata is not None and self.metadata.is_dir


@dataclass(frozen=True)
class _WalkContext:
    root: str
    filter: CompiledFilter
    stream: ResultStream[Entry]
    cancel: Optional[threading.Event]

    @property
    def cancelled(self) -> bool:
        return self.cancel is not None and self.cancel.is_set()


def relative_key(root: str, path: str) -> str:
    """Path of ``path`` relative to ``root`` with ``/`` separators.

    This is the string match and ignore patterns are searched in.
    """
    return os.path.relpath(path, root).replace(os.sep, "/")


class WalkEngine:
    """Walks a directory tree and streams the entries that pass the filters."""

    def __init__(
        self,
        options: Optional[TraversalOptions] = None,
        kind: EntryKind = EntryKind.all,
        stat: StatFunc = stat_path,
        lister: ListFunc = list_directory,
        pool: Optional[PermitPool] = None,
        cancel: Optional[threading.Event] = None,
    ):
        self.options = options or TraversalOptions()
        self.kind = kind
        self._stat = stat
        self._lister = lister
        self._pool = pool or PermitPool()
        self._cancel = cancel

    def walk(self, root: str) -> ResultStream[Entry]:
        """Start walking ``root`` and return the stream of entries.

        Patterns are compiled and the root is checked before any thread is
        started, so configuration errors are raised here.

        Args:
            root: File or directory to walk

        Returns:
            ResultStream that yields entries until the walk is finished

        Raises:
            NotFoundError: If root does not exist
            InvalidPatternError: If a match or ignore pattern is invalid
            UnsupportedTimeOperatorError: If a time filter is invalid
        """
        compiled = compile_filter(self.options)
        metadata = require_existing(root, self._stat)

        logger.info(
            "Starting walk",
            root=root,
            kind=self.kind.value,
            recurse=self.options.recurse,
            max_depth=self.options.max_depth,
        )

        stream: ResultStream[Entry] = ResultStream(cancel=self._cancel)
        ctx = _WalkContext(root, compiled, stream, self._cancel)
        producer = threading.Thread(
            target=self._produce, args=(Entry(root, metadata, 0), ctx), daemon=True
        )
        producer.start()
        return stream

    def _produce(self, root_entry: Entry, ctx: _WalkContext) -> None:
        with tracer.start_as_current_span("tree_tools.walk") as span:
            span.set_attribute("tree_tools.root", ctx.root)
            try:
                self._visit_root(root_entry, ctx)
            except BaseException as e:
                logger.error("Walk aborted", root=ctx.root, error=str(e))
                ctx.stream.close(error=e)
                return
            logger.info("Walk finished", root=ctx.root, cancelled=ctx.cancelled)
            ctx.stream.close()

    def _visit_root(self, root_entry: Entry, ctx: _WalkContext) -> None:
        if not root_entry.is_dir:
            self._emit(root_entry, ctx, is_root=True)
            return
        if self.options.include_root:
            self._emit(root_entry, ctx, is_root=True)
        self._descend(root_entry, ctx)

    def _visit_dir(self, entry: Entry, ctx: _WalkContext) -> None:
        if ctx.cancelled:
            return
        try:
            metadata = self._stat(entry.path)
        except TraversalIOError as e:
            self._emit(replace(entry, error=e), ctx)
            return

        entry = replace(entry, metadata=metadata)
        self._emit(entry, ctx)
        if metadata.is_dir:
            self._descend(entry, ctx)

    def _descend(self, entry: Entry, ctx: _WalkContext) -> None:
        if ctx.cancelled:
            return
        try:
            children = self._lister(entry.path)
        except TraversalIOError as e:
            self._emit(replace(entry, error=e), ctx)
            return

        group: BranchGroup[None] = BranchGroup(self._pool)
        child_depth = entry.depth + 1
        for child in children:
            if ctx.cancelled:
                break
            child_entry = Entry(os.path.join(entry.path, child.name), child, child_depth)
            if child.is_dir and self.options.should_descend(child_depth):
                group.run(self._visit_dir, child_entry, ctx)
            else:
                self._emit(child_entry, ctx)
        group.join()

    def _emit(self, entry: Entry, ctx: _WalkContext, is_root: bool = False) -> None:
        if entry.error is not None:
            logger.warning(
                "Path could not be read", path=entry.path, error=str(entry.error)
            )
            ctx.stream.push(entry)
            return

        if not self.kind.wants(entry.is_dir):
            return
        # The root was asked for by name; only the kind applies to it
        if not is_root:
            assert entry.metadata is not None
            key = relative_key(ctx.root, entry.path)
            if not ctx.filter.accepts(key, entry.metadata.mtime):
                return
        ctx.stream.push(entry)


def _walk(
    root: str,
    options: Optional[TraversalOptions],
    kind: EntryKind,
    cancel: Optional[threading.Event],
) -> ResultStream[Entry]:
    return WalkEngine(options, kind=kind, cancel=cancel).walk(root)


def list_files(
    root: str,
    options: Optional[TraversalOptions] = None,
    cancel: Optional[threading.Event] = None,
) -> ResultStream[Entry]:
    """Stream the files under ``root``."""
    return _walk(root, options, EntryKind.files, cancel)


def list_dirs(
    root: str,
    options: Optional[TraversalOptions] = None,
    cancel: Optional[threading.Event] = None,
) -> ResultStream[Entry]:
    """Stream the directories under ``root``."""
    return _walk(root, options, EntryKind.dirs, cancel)


def list_all(
    root: str,
    options: Optional[TraversalOptions] = None,
    cancel: Optional[threading.Event] = None,
) -> ResultStream[Entry]:
    """Stream files and directories under ``root``."""
    return _walk(root, options, EntryKind.all, cancel)


def _find_root_entry(
    root: str, options: Optional[TraversalOptions], kind: EntryKind
) -> Entry:
    options = (options or TraversalOptions()).model_copy(update={"include_root": True})
    cancel = threading.Event()
    found: Optional[Entry] = None

    for entry in _walk(root, options, kind, cancel):
        if found is None and entry.path == root:
            found = entry
            # Nothing else is needed; stop the walk and let the stream close
            cancel.set()

    if found is None:
        raise NotFoundError(f"Path '{root}' is not found")
    return found


def get_file(root: str, options: Optional[TraversalOptions] = None) -> Entry:
    """Return the entry for the file at ``root``.

    Match, ignore and time filters in ``options`` never apply to the root,
    so they have no effect on this lookup.

    Raises:
        NotFoundError: If root does not exist or is not a file
    """
    return _find_root_entry(root, options, EntryKind.files)


def get_dir(root: str, options: Optional[TraversalOptions] = None) -> Entry:
    """Return the entry for the directory at ``root``.

    As with get_file, filters in ``options`` do not apply to the root.

    Raises:
        NotFoundError: If root does not exist or is not a directory
    """
    return _find_root_entry(root, options, EntryKind.dirs)


def get_entry(root: str, options: Optional[TraversalOptions] = None) -> Entry:
    """Return the entry for ``root``, file or directory.

    As with get_file, filters in ``options`` do not apply to the root.

    Raises:
        NotFoundError: If root does not exist
    """
    return _find_root_entry(root, options, EntryKind.all)
