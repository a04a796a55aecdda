"""Recursive size and count aggregation over a directory tree.

Aggregation uses the same bounded fan-out as the walker, but instead of
streaming every entry it folds each subdirectory's totals into its parent.
A parent is finalized only after all of its children have reported.
"""

import os
import threading
from dataclasses import dataclass, field, replace
from typing import Iterable, Optional

from tree_tools.core import get_logger, get_tracer
from tree_tools.core.exceptions import (
    NotADirectoryError,
    TraversalCancelledError,
    TraversalIOError,
    TreeToolsError,
)
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
from tree_tools.traversal.walker import Entry, list_all, relative_key

logger = get_logger(__name__)
tracer = get_tracer(__name__)


@dataclass(frozen=True)
class DirectoryAggregate:
    """Cumulative statistics for a directory subtree.

    Attributes:
        path: Directory path
        metadata: Stat result for the directory, None if it failed
        depth: Distance from the aggregation root (the root is 0)
        size: Total bytes of all counted files
        file_count: Number of counted files
        dir_count: Number of counted subdirectories, excluding itself
        error: First failure observed in this subtree, if any
        children: Child aggregates, only kept for hierarchical requests
    """

    path: str
    metadata: Optional[EntryMetadata]
    depth: int = 0
    size: int = 0
    file_count: int = 0
    dir_count: int = 0
    error: Optional[TreeToolsError] = None
    children: tuple["DirectoryAggregate", ...] = field(default=(), repr=False)


@dataclass
class _Totals:
    size: int = 0
    file_count: int = 0
    dir_count: int = 0
    error: Optional[TreeToolsError] = None

    def add_file(self, size: int) -> None:
        self.file_count += 1
        self.size += size

    def merge(self, child: DirectoryAggregate) -> None:
        self.size += child.size
        self.file_count += child.file_count
        self.dir_count += child.dir_count


@dataclass(frozen=True)
class _AggregateContext:
    root: str
    filter: CompiledFilter
    stream: Optional[ResultStream[DirectoryAggregate]]
    cancel: Optional[threading.Event]

    @property
    def cancelled(self) -> bool:
        return self.cancel is not None and self.cancel.is_set()


class AggregateEngine:
    """Computes size, file count and directory count for a directory tree."""

    def __init__(
        self,
        options: Optional[TraversalOptions] = None,
        stat: StatFunc = stat_path,
        lister: ListFunc = list_directory,
        pool: Optional[PermitPool] = None,
        cancel: Optional[threading.Event] = None,
    ):
        self.options = options or TraversalOptions()
        self._stat = stat
        self._lister = lister
        self._pool = pool or PermitPool()
        self._cancel = cancel

    def _prepare(self, root: str) -> tuple[CompiledFilter, EntryMetadata]:
        compiled = compile_filter(self.options)
        metadata = require_existing(root, self._stat)
        if not metadata.is_dir:
            logger.error("Aggregation root is not a directory", path=root)
            raise NotADirectoryError(f"[{root}] is not a directory")
        return compiled, metadata

    def aggregate(self, root: str) -> DirectoryAggregate:
        """Aggregate the tree under ``root``.

        Returns:
            DirectoryAggregate for root

        Raises:
            NotFoundError: If root does not exist
            NotADirectoryError: If root is not a directory
            InvalidPatternError: If a match or ignore pattern is invalid
            UnsupportedTimeOperatorError: If a time filter is invalid
            TraversalCancelledError: If the cancel token was set
        """
        compiled, metadata = self._prepare(root)
        logger.info(
            "Starting aggregation",
            root=root,
            recurse=self.options.recurse,
            err_skip=self.options.err_skip,
        )

        ctx = _AggregateContext(root, compiled, None, self._cancel)
        with tracer.start_as_current_span("tree_tools.aggregate") as span:
            span.set_attribute("tree_tools.root", root)
            result = self._aggregate_dir(root, metadata, 0, ctx)

        if ctx.cancelled:
            raise TraversalCancelledError(f"Aggregation of '{root}' was cancelled")

        logger.info(
            "Aggregation finished",
            root=root,
            size=result.size,
            file_count=result.file_count,
            dir_count=result.dir_count,
            error=str(result.error) if result.error else None,
        )
        return result

    def iter_aggregates(self, root: str) -> ResultStream[DirectoryAggregate]:
        """Stream one aggregate per directory as each one is finalized.

        Filters decide which aggregates are reported, never what is counted.
        Aggregates carrying an error are always reported.
        """
        compiled, metadata = self._prepare(root)
        stream: ResultStream[DirectoryAggregate] = ResultStream(cancel=self._cancel)
        ctx = _AggregateContext(root, compiled, stream, self._cancel)

        def produce() -> None:
            with tracer.start_as_current_span("tree_tools.iter_aggregates"):
                try:
                    self._aggregate_dir(root, metadata, 0, ctx)
                except BaseException as e:
                    logger.error("Aggregation aborted", root=root, error=str(e))
                    stream.close(error=e)
                    return
            stream.close()

        threading.Thread(target=produce, daemon=True).start()
        return stream

    def _visit_child(
        self, path: str, depth: int, ctx: _AggregateContext
    ) -> DirectoryAggregate:
        if ctx.cancelled:
            return DirectoryAggregate(path, None, depth)
        try:
            metadata = self._stat(path)
        except TraversalIOError as e:
            logger.warning("Directory could not be stat'ed", path=path, error=str(e))
            return self._report(DirectoryAggregate(path, None, depth, error=e), ctx)
        return self._aggregate_dir(path, metadata, depth, ctx)

    def _aggregate_dir(
        self,
        path: str,
        metadata: EntryMetadata,
        depth: int,
        ctx: _AggregateContext,
    ) -> DirectoryAggregate:
        result = DirectoryAggregate(path, metadata, depth)
        if ctx.cancelled:
            return result
        try:
            children = self._lister(path)
        except TraversalIOError as e:
            logger.warning("Directory could not be listed", path=path, error=str(e))
            return self._report(replace(result, error=e), ctx)

        totals = _Totals()
        group: BranchGroup[DirectoryAggregate] = BranchGroup(self._pool)
        child_depth = depth + 1
        for child in children:
            if ctx.cancelled:
                break
            if not child.is_dir:
                totals.add_file(child.size)
                continue
            totals.dir_count += 1
            if self.options.should_descend(child_depth):
                group.run(
                    self._visit_child, os.path.join(path, child.name), child_depth, ctx
                )

        kept = []
        for child_result in group.join():
            if child_result.error is not None:
                if self.options.err_skip:
                    logger.warning(
                        "Skipping subtree after error",
                        path=child_result.path,
                        error=str(child_result.error),
                    )
                    continue
                if totals.error is None:
                    totals.error = child_result.error
            totals.merge(child_result)
            kept.append(child_result)

        result = replace(
            result,
            size=totals.size,
            file_count=totals.file_count,
            dir_count=totals.dir_count,
            error=totals.error,
            children=tuple(kept) if self.options.hierarchical else (),
        )
        return self._report(result, ctx)

    def _report(
        self, result: DirectoryAggregate, ctx: _AggregateContext
    ) -> DirectoryAggregate:
        if ctx.stream is None:
            return result
        if result.error is not None:
            ctx.stream.push(result)
        elif result.path == ctx.root or result.metadata is None:
            ctx.stream.push(result)
        else:
            key = relative_key(ctx.root, result.path)
            if ctx.filter.accepts(key, result.metadata.mtime):
                ctx.stream.push(result)
        return result


def aggregate(
    root: str,
    options: Optional[TraversalOptions] = None,
    cancel: Optional[threading.Event] = None,
) -> DirectoryAggregate:
    """Aggregate size, file count and directory count under ``root``."""
    return AggregateEngine(options, cancel=cancel).aggregate(root)


def iter_aggregates(
    root: str,
    options: Optional[TraversalOptions] = None,
    cancel: Optional[threading.Event] = None,
) -> ResultStream[DirectoryAggregate]:
    """Stream the aggregate of every directory under ``root``."""
    return AggregateEngine(options, cancel=cancel).iter_aggregates(root)


def summarize_entries(path: str, entries: Iterable[Entry]) -> DirectoryAggregate:
    """Fold a stream of entries into a single aggregate for ``path``.

    Every directory entry other than ``path`` itself counts towards
    ``dir_count``. The last error seen is kept on the result.
    """
    totals = _Totals()
    metadata = None
    for entry in entries:
        if entry.error is not None:
            totals.error = entry.error
            continue
        if entry.path == path:
            metadata = entry.metadata
            continue
        if entry.is_dir:
            totals.dir_count += 1
        else:
            assert entry.metadata is not None
            totals.add_file(entry.metadata.size)

    return DirectoryAggregate(
        path,
        metadata,
        size=totals.size,
        file_count=totals.file_count,
        dir_count=totals.dir_count,
        error=totals.error,
    )


def summarize_tree(root: str) -> DirectoryAggregate:
    """Aggregate ``root`` by walking every entry under it."""
    options = TraversalOptions(recurse=True, include_root=True)
    return summarize_entries(root, list_all(root, options))
