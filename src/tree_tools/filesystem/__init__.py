"""Filesystem collaborators and file helpers."""

from .copy import copy_file, os_copy
from .operations import (
    EntryMetadata,
    list_directory,
    require_existing,
    stat_path,
)

__all__ = [
    "EntryMetadata",
    "list_directory",
    "require_existing",
    "stat_path",
    "copy_file",
    "os_copy",
]
