"""Concurrent directory tree traversal and aggregation.

This package walks large, possibly deep directory trees on a bounded number
of threads and either streams the entries it finds or folds them into
per-directory totals (byte size, file count, subdirectory count).

Key Features:
    - Streaming walks with backpressure
    - Match/ignore regular expressions and modification time filters
    - Recursive size and count aggregation with error isolation
    - Cancellation of running traversals
    - CLI interface

Recommended Usage:
    >>> from tree_tools import TraversalOptions, aggregate, list_files
    >>> for entry in list_files("/data", TraversalOptions(recurse=True)):
    ...     print(entry.path, entry.metadata.size)
    >>> totals = aggregate("/data", TraversalOptions(recurse=True))

Advanced Usage:
    Build the engines directly to plug in other stat/list collaborators:

    >>> from tree_tools.traversal import AggregateEngine, WalkEngine
"""

__version__ = "0.1.0"

from .core.exceptions import (
    InvalidPatternError,
    ListError,
    NotADirectoryError,
    NotFoundError,
    StatError,
    TraversalCancelledError,
    TreeToolsError,
    UnsupportedTimeOperatorError,
    ValidationError,
)
from .filesystem import EntryMetadata, copy_file, os_copy
from .schemas import TimeFilter, TimeOperator, TraversalOptions
from .traversal import (
    DirectoryAggregate,
    Entry,
    EntryKind,
    ResultStream,
    aggregate,
    get_dir,
    get_entry,
    get_file,
    iter_aggregates,
    list_all,
    list_dirs,
    list_files,
    summarize_tree,
)

__all__ = [
    # Options
    "TimeFilter",
    "TimeOperator",
    "TraversalOptions",
    # Results
    "DirectoryAggregate",
    "Entry",
    "EntryKind",
    "EntryMetadata",
    "ResultStream",
    # Walking
    "list_all",
    "list_dirs",
    "list_files",
    "get_dir",
    "get_entry",
    "get_file",
    # Aggregation
    "aggregate",
    "iter_aggregates",
    "summarize_tree",
    # File helpers
    "copy_file",
    "os_copy",
    # Errors
    "InvalidPatternError",
    "ListError",
    "NotADirectoryError",
    "NotFoundError",
    "StatError",
    "TraversalCancelledError",
    "TreeToolsError",
    "UnsupportedTimeOperatorError",
    "ValidationError",
]
