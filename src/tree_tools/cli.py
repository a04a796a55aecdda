"""Command-line interface for tree-tools.

Commands:
    - list: Stream the files and/or directories under a path
    - aggregate: Calculate total size, file count and directory count
"""

from datetime import datetime
from typing import Annotated, Optional

import typer

from . import __version__
from .schemas import TimeFilter, TimeOperator, TraversalOptions
from .traversal import (
    EntryKind,
    aggregate,
    iter_aggregates,
    list_all,
    list_dirs,
    list_files,
)

app = typer.Typer(
    name="tree-tools",
    help="Concurrent directory tree listing and size aggregation.",
    no_args_is_help=True,
)

_LISTERS = {
    EntryKind.files: list_files,
    EntryKind.dirs: list_dirs,
    EntryKind.all: list_all,
}


def version_callback(value: bool) -> None:
    """Display version information."""
    if value:
        typer.echo(f"tree-tools {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        Optional[bool],
        typer.Option("--version", callback=version_callback, help="Show version."),
    ] = None,
) -> None:
    """
    Tree-Tools: list and summarize large directory trees.
    """
    pass


def _format_size(total_bytes: int) -> str:
    """Human-readable size."""
    if total_bytes >= 1024**3:
        return f"{total_bytes / (1024**3):.2f} GB"
    elif total_bytes >= 1024**2:
        return f"{total_bytes / (1024**2):.2f} MB"
    elif total_bytes >= 1024:
        return f"{total_bytes / 1024:.2f} KB"
    return f"{total_bytes} bytes"


def _time_filters(
    newer_than: Optional[datetime], older_than: Optional[datetime]
) -> list[TimeFilter]:
    filters = []
    if newer_than is not None:
        filters.append(TimeFilter(base=newer_than, operator=TimeOperator.before.value))
    if older_than is not None:
        filters.append(TimeFilter(base=older_than, operator=TimeOperator.after.value))
    return filters


MatchOption = Annotated[
    Optional[list[str]],
    typer.Option("--match", "-m", help="Keep paths matching this regex (repeatable)"),
]
IgnoreOption = Annotated[
    Optional[list[str]],
    typer.Option("--ignore", "-i", help="Drop paths matching this regex (repeatable)"),
]
MaxDepthOption = Annotated[
    int, typer.Option("--max-depth", help="Deepest level to descend to (0 = no limit)")
]


@app.command("list")
def list_cmd(
    path: Annotated[str, typer.Argument(help="File or directory to list")],
    kind: Annotated[
        EntryKind,
        typer.Option("--type", "-t", help="Entries to list: files, dirs or all"),
    ] = EntryKind.all,
    match: MatchOption = None,
    ignore: IgnoreOption = None,
    recurse: Annotated[
        bool, typer.Option("--recurse", "-r", help="Descend into subdirectories")
    ] = False,
    max_depth: MaxDepthOption = 0,
    newer_than: Annotated[
        Optional[datetime],
        typer.Option("--newer-than", help="Only entries modified after this time"),
    ] = None,
    older_than: Annotated[
        Optional[datetime],
        typer.Option("--older-than", help="Only entries modified before this time"),
    ] = None,
    include_root: Annotated[
        bool, typer.Option("--include-root", help="Also list the root directory")
    ] = False,
) -> None:
    """
    List the entries under a path.

    Examples:
        tree-tools list /data --type files --recurse --match '\\.csv$'
        tree-tools list /data --type dirs --max-depth 2 --ignore '^tmp'
    """
    try:
        options = TraversalOptions(
            match_patterns=match or [],
            ignore_patterns=ignore or [],
            recurse=recurse,
            max_depth=max_depth,
            time_filters=_time_filters(newer_than, older_than),
            include_root=include_root,
        )

        count = 0
        failed = 0
        for entry in _LISTERS[kind](path, options):
            if entry.error is not None:
                failed += 1
                typer.echo(f"Error: {entry.error}", err=True)
                continue
            count += 1
            suffix = "/" if entry.is_dir else ""
            typer.echo(f"{entry.path}{suffix}")

        typer.echo(f"Found {count:,} entries", err=True)
        if failed:
            raise typer.Exit(1)

    except typer.Exit:
        raise
    except Exception as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)


@app.command("aggregate")
def aggregate_cmd(
    path: Annotated[str, typer.Argument(help="Directory to aggregate")],
    recurse: Annotated[
        bool,
        typer.Option("--recurse/--no-recurse", help="Descend into subdirectories"),
    ] = True,
    max_depth: MaxDepthOption = 0,
    err_skip: Annotated[
        bool,
        typer.Option("--err-skip", help="Leave unreadable subtrees out of the totals"),
    ] = False,
    per_directory: Annotated[
        bool,
        typer.Option("--per-directory", help="Print totals for every directory"),
    ] = False,
    match: MatchOption = None,
    ignore: IgnoreOption = None,
) -> None:
    """
    Calculate total size, file count and directory count.

    Match and ignore patterns only choose which directories are printed
    with --per-directory; every directory is counted.

    Examples:
        tree-tools aggregate /data
        tree-tools aggregate /data --err-skip --per-directory --max-depth 3
    """
    try:
        options = TraversalOptions(
            match_patterns=match or [],
            ignore_patterns=ignore or [],
            recurse=recurse,
            max_depth=max_depth,
            err_skip=err_skip,
        )

        if per_directory:
            for result in iter_aggregates(path, options):
                line = (
                    f"{result.path}\t{result.size:,}\t{result.file_count:,}\t"
                    f"{result.dir_count:,}"
                )
                if result.error is not None:
                    line += f"\tError: {result.error}"
                typer.echo(line)
            return

        result = aggregate(path, options)

        typer.echo(f"Directory: {result.path}")
        typer.echo(f"Files: {result.file_count:,}")
        typer.echo(f"Directories: {result.dir_count:,}")
        typer.echo(f"Total size: {result.size:,} bytes")
        typer.echo(f"Human readable: {_format_size(result.size)}")

        if result.error is not None:
            typer.echo(f"Error: {result.error}", err=True)
            raise typer.Exit(1)

    except typer.Exit:
        raise
    except Exception as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
