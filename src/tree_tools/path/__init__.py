from .path_utils import (
    PathInfo,
    base_name,
    exists,
    get_cmd_path,
    get_depth,
    get_path_info,
    is_dir,
    is_file,
    is_share,
    share_to_abs,
)

__all__ = [
    "PathInfo",
    "base_name",
    "exists",
    "get_cmd_path",
    "get_depth",
    "get_path_info",
    "is_dir",
    "is_file",
    "is_share",
    "share_to_abs",
]
