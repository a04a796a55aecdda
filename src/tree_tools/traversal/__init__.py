"""Concurrent traversal and aggregation engines."""

from .aggregator import (
    AggregateEngine,
    DirectoryAggregate,
    aggregate,
    iter_aggregates,
    summarize_entries,
    summarize_tree,
)
from .concurrency import BranchGroup, PermitPool
from .filters import CompiledFilter, compile_filter, compile_patterns
from .stream import ResultStream
from .walker import (
    Entry,
    EntryKind,
    WalkEngine,
    get_dir,
    get_entry,
    get_file,
    list_all,
    list_dirs,
    list_files,
)

__all__ = [
    "AggregateEngine",
    "DirectoryAggregate",
    "aggregate",
    "iter_aggregates",
    "summarize_entries",
    "summarize_tree",
    "BranchGroup",
    "PermitPool",
    "CompiledFilter",
    "compile_filter",
    "compile_patterns",
    "ResultStream",
    "Entry",
    "EntryKind",
    "WalkEngine",
    "get_dir",
    "get_entry",
    "get_file",
    "list_all",
    "list_dirs",
    "list_files",
]
