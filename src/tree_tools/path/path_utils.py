"""Path string helpers and existence checks."""

import os
import re
import shutil
from dataclasses import dataclass
from typing import Optional

from tree_tools.core.exceptions import NotFoundError
from tree_tools.filesystem.operations import EntryMetadata, stat_path

WIN_SEPARATOR = "\\"
NIX_SEPARATOR = "/"

_SHARE_WITH_PATH = re.compile(r"\\\\([^\\]+)\\(.)\$\\(.*)")
_SHARE_ROOT = re.compile(r"\\\\([^\\]+)\\(.)\$")


@dataclass(frozen=True)
class PathInfo:
    """Components of a path together with its metadata.

    Attributes:
        file: The path as given
        dir: Parent directory
        name: Final component without extension
        file_name: Final component
        metadata: Stat result for the path
    """

    file: str
    dir: str
    name: str
    file_name: str
    metadata: EntryMetadata


def _last_component(path: str) -> str:
    return re.split(r"[\\/]", path.rstrip("\\/"))[-1]


def base_name(path: str) -> str:
    """Return the final path component without its extension."""
    return os.path.splitext(_last_component(path))[0]


def is_share(path: str) -> bool:
    """Whether the path is a network share (starts with a doubled separator)."""
    if len(path) < 2:
        return False
    return path[:2] in (WIN_SEPARATOR * 2, NIX_SEPARATOR * 2)


def share_to_abs(path: str) -> str:
    """Convert an administrative share path to a drive letter path.

    ``\\\\host\\c$\\dir`` becomes ``c:\\dir``; other paths are returned unchanged.
    """
    if not is_share(path):
        return path
    if _SHARE_WITH_PATH.match(path):
        return _SHARE_WITH_PATH.sub(r"\2:\\\3", path)
    if _SHARE_ROOT.match(path):
        return _SHARE_ROOT.sub(r"\2:\\", path)
    return path


def get_depth(path: str, sep: Optional[str] = None) -> int:
    """Count the separators in a path.

    A share path loses one level for its leading double separator.
    """
    sep = sep or os.sep
    cleaned = os.path.normpath(path) if sep == os.sep else path
    while sep * 2 in cleaned:
        cleaned = cleaned.replace(sep * 2, sep)
    count = cleaned.count(sep)
    if is_share(path):
        return count - 1
    return count


def exists(path: str) -> bool:
    return os.path.exists(path)


def is_file(path: str) -> bool:
    return os.path.isfile(path)


def is_dir(path: str) -> bool:
    return os.path.isdir(path)


def get_path_info(path: str) -> PathInfo:
    """Split a path into its components and stat it.

    Raises:
        StatError: If the path cannot be stat'ed
    """
    return PathInfo(
        file=path,
        dir=os.path.dirname(path),
        name=base_name(path),
        file_name=_last_component(path),
        metadata=stat_path(path),
    )


def get_cmd_path(cmd: str) -> str:
    """Resolve a command name to the absolute path of its executable.

    Raises:
        NotFoundError: If the command is not on PATH
    """
    resolved = shutil.which(cmd)
    if resolved is None:
        raise NotFoundError(f"Command '{cmd}' is not found")
    return os.path.abspath(resolved)
