"""Single-file copy helpers."""

import os
import shutil
import subprocess
import sys
from typing import Optional

from tree_tools.command_executor import CommandExecutor, LocalCommandExecutor
from tree_tools.core import get_logger
from tree_tools.core.exceptions import CommandExecutionError

logger = get_logger(__name__)


def copy_file(src: str, dst: str, overwrite: bool = False) -> int:
    """Copy a file, preserving its modification time.

    When ``overwrite`` is false and ``dst`` already has the same size and
    modification time as ``src``, nothing is copied.

    Args:
        src: Source file path
        dst: Destination file path
        overwrite: Copy even if the destination looks identical

    Returns:
        Number of bytes copied (0 if the copy was skipped)

    Raises:
        OSError: If the source cannot be read or the destination written
    """
    src = os.path.normpath(src)
    dst = os.path.normpath(dst)
    src_stat = os.stat(src)

    if not overwrite and os.path.exists(dst):
        dst_stat = os.stat(dst)
        if (
            src_stat.st_size == dst_stat.st_size
            and src_stat.st_mtime_ns == dst_stat.st_mtime_ns
        ):
            logger.debug("Destination up to date, skipping copy", src=src, dst=dst)
            return 0

    with open(src, "rb") as fsrc, open(dst, "wb") as fdst:
        shutil.copyfileobj(fsrc, fdst)
    os.utime(dst, ns=(src_stat.st_atime_ns, src_stat.st_mtime_ns))

    logger.info("File copied", src=src, dst=dst, bytes=src_stat.st_size)
    return src_stat.st_size


def _copy_command(src: str, dst: str) -> list[str]:
    if sys.platform == "win32":
        return ["cmd", "/c", "copy", src, dst]
    return ["cp", "-pv", src, dst]


def os_copy(
    src: str,
    dst: str,
    executor: Optional[CommandExecutor] = None,
    timeout: int = 300,
) -> subprocess.CompletedProcess[str]:
    """Copy a file with the platform's copy command.

    Args:
        src: Source file path
        dst: Destination file path
        executor: Command executor (defaults to running locally)
        timeout: Command timeout in seconds

    Returns:
        CompletedProcess of the copy command

    Raises:
        CommandExecutionError: If the command fails or times out
    """
    executor = executor or LocalCommandExecutor()
    args = _copy_command(os.path.normpath(src), os.path.normpath(dst))

    try:
        result = executor.execute_command(args, timeout)
    except subprocess.TimeoutExpired:
        error_msg = f"Copy command timed out after {timeout} seconds"
        logger.error(error_msg, timeout=timeout)
        raise CommandExecutionError(error_msg)
    except OSError as e:
        error_msg = f"Failed to run copy command: {e}"
        logger.error(error_msg, error=str(e))
        raise CommandExecutionError(error_msg)

    if result.returncode != 0:
        error_msg = f"Copy command exit code: [{result.returncode}]"
        logger.error(error_msg, stderr=result.stderr.strip())
        raise CommandExecutionError(error_msg)

    return result
