"""Filesystem collaborators used by the traversal engines.

This module provides the two blocking I/O calls a traversal makes: a stat
of a single path and a listing of a directory's immediate children. Both
report failures as ``StatError``/``ListError`` carrying the offending path,
so the engines can attach them to the corresponding result.
"""

import os
import stat as stat_mode
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable

from tree_tools.core import get_logger
from tree_tools.core.exceptions import ListError, NotFoundError, StatError

logger = get_logger(__name__)


@dataclass(frozen=True)
class EntryMetadata:
    """Metadata about a single filesystem entry.

    Attributes:
        name: Final path component
        is_dir: Whether the entry is a directory
        size: Size in bytes as reported by stat
        mtime: Modification time (timezone-aware, UTC)
    """

    name: str
    is_dir: bool
    size: int
    mtime: datetime


StatFunc = Callable[[str], EntryMetadata]
ListFunc = Callable[[str], list[EntryMetadata]]


def _from_stat(name: str, st: os.stat_result, is_dir: bool) -> EntryMetadata:
    return EntryMetadata(
        name=name,
        is_dir=is_dir,
        size=st.st_size,
        mtime=datetime.fromtimestamp(st.st_mtime, tz=timezone.utc),
    )


def stat_path(path: str) -> EntryMetadata:
    """Stat a single path.

    Args:
        path: Path to stat

    Returns:
        EntryMetadata for the path

    Raises:
        StatError: If the path cannot be stat'ed
    """
    try:
        st = os.stat(path)
    except OSError as e:
        raise StatError(path, e) from e

    name = os.path.basename(os.path.normpath(path))
    return _from_stat(name, st, stat_mode.S_ISDIR(st.st_mode))


def list_directory(path: str) -> list[EntryMetadata]:
    """List the immediate children of a directory, sorted by name.

    Symbolic links are reported by their own metadata and never followed.
    Children removed between the scan and their stat are left out.

    Args:
        path: Directory to list

    Returns:
        List of EntryMetadata, one per child

    Raises:
        ListError: If the directory or one of its children cannot be read
    """
    children = []
    try:
        with os.scandir(path) as it:
            for dir_entry in it:
                try:
                    is_dir = dir_entry.is_dir(follow_symlinks=False)
                    st = dir_entry.stat(follow_symlinks=False)
                except FileNotFoundError:
                    logger.debug("Child vanished during listing", path=dir_entry.path)
                    continue
                children.append(_from_stat(dir_entry.name, st, is_dir))
    except OSError as e:
        raise ListError(path, e) from e

    children.sort(key=lambda child: child.name)
    return children


def require_existing(path: str, stat: StatFunc = stat_path) -> EntryMetadata:
    """Stat the root of a traversal, turning a missing path into NotFoundError.

    Raises:
        NotFoundError: If the path does not exist
        StatError: If the path exists but cannot be stat'ed
    """
    try:
        return stat(path)
    except StatError as e:
        if isinstance(e.cause, FileNotFoundError):
            logger.error("Traversal root not found", path=path)
            raise NotFoundError(f"Path '{path}' is not found") from e
        raise
