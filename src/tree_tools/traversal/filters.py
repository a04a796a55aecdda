"""Compilation of match/ignore patterns and time filters into one predicate."""

import re
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from tree_tools.core import get_logger
from tree_tools.core.exceptions import (
    InvalidPatternError,
    UnsupportedTimeOperatorError,
)
from tree_tools.schemas import TimeOperator, TraversalOptions

logger = get_logger(__name__)


@dataclass(frozen=True)
class CompiledTimeFilter:
    """A time filter whose operator has been validated.

    The operator describes ``base`` relative to the entry: ``before`` passes
    entries modified after ``base``.
    """

    base: datetime
    operator: TimeOperator

    def passes(self, mtime: datetime) -> bool:
        if self.operator is TimeOperator.before:
            return self.base < mtime
        if self.operator is TimeOperator.after:
            return self.base > mtime
        return self.base == mtime


@dataclass(frozen=True)
class CompiledFilter:
    """Immutable inclusion predicate shared by every traversal task.

    Attributes:
        match: Alternation of the match patterns, None to match everything
        ignore: Alternation of the ignore patterns, None to ignore nothing
        time_filters: Time filters that must all pass
    """

    match: Optional[re.Pattern[str]] = None
    ignore: Optional[re.Pattern[str]] = None
    time_filters: tuple[CompiledTimeFilter, ...] = ()

    def is_ignored(self, path: str) -> bool:
        return self.ignore is not None and self.ignore.search(path) is not None

    def is_matched(self, path: str) -> bool:
        return self.match is None or self.match.search(path) is not None

    def include(self, path: str) -> bool:
        """Ignore wins over match; an empty match list matches everything."""
        if self.is_ignored(path):
            return False
        return self.is_matched(path)

    def passes_time(self, mtime: datetime) -> bool:
        return all(time_filter.passes(mtime) for time_filter in self.time_filters)

    def accepts(self, path: str, mtime: datetime) -> bool:
        """Apply time filters, then the ignore check, then the match check."""
        return self.passes_time(mtime) and self.include(path)


def compile_patterns(patterns: list[str]) -> Optional[re.Pattern[str]]:
    """Compile a list of patterns into a single alternation.

    Each pattern is validated on its own first so the error names the
    offending pattern.

    Args:
        patterns: Regular expressions

    Returns:
        Compiled alternation, or None when the list is empty

    Raises:
        InvalidPatternError: If any pattern does not compile
    """
    if not patterns:
        return None

    for pattern in patterns:
        try:
            re.compile(pattern)
        except re.error as e:
            logger.error("Pattern compilation failed", pattern=pattern, error=str(e))
            raise InvalidPatternError(pattern, str(e)) from e

    return re.compile("|".join(f"(?:{pattern})" for pattern in patterns))


def _as_aware(value: datetime) -> datetime:
    # Naive timestamps are taken as local time
    if value.tzinfo is None:
        return value.astimezone()
    return value


def compile_time_filters(options: TraversalOptions) -> tuple[CompiledTimeFilter, ...]:
    """Validate time filter operators.

    Raises:
        UnsupportedTimeOperatorError: If an operator is unknown
    """
    compiled = []
    for time_filter in options.time_filters:
        try:
            operator = TimeOperator(time_filter.operator)
        except ValueError:
            logger.error("Unsupported time operator", operator=time_filter.operator)
            raise UnsupportedTimeOperatorError(time_filter.operator)
        compiled.append(CompiledTimeFilter(_as_aware(time_filter.base), operator))
    return tuple(compiled)


def compile_filter(options: TraversalOptions) -> CompiledFilter:
    """Derive the shared CompiledFilter for a traversal.

    Raises:
        InvalidPatternError: If a match or ignore pattern is invalid
        UnsupportedTimeOperatorError: If a time filter operator is unknown
    """
    return CompiledFilter(
        match=compile_patterns(options.match_patterns),
        ignore=compile_patterns(options.ignore_patterns),
        time_filters=compile_time_filters(options),
    )
