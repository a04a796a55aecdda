"""Traversal option schemas for tree-tools."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class TimeOperator(str, Enum):
    """Comparison applied between an entry's modification time and a base time."""

    before = "before"
    after = "after"
    equal = "equal"


class TimeFilter(BaseModel):
    """Keep only entries whose modification time compares to ``base``.

    The operator places ``base`` relative to the entry: ``before`` keeps
    entries modified strictly later than ``base`` and ``after`` keeps those
    modified strictly earlier. It is kept as a plain string here and checked
    when the options are compiled, so that an unknown operator surfaces as
    ``UnsupportedTimeOperatorError``.
    """

    model_config = ConfigDict(frozen=True)

    base: datetime = Field(..., description="Reference timestamp")
    operator: str = Field(
        default=TimeOperator.after.value,
        description="Comparison operator: 'before', 'after' or 'equal'",
    )


class TraversalOptions(BaseModel):
    """Options shared by the walk and aggregate engines."""

    model_config = ConfigDict(frozen=True)

    match_patterns: list[str] = Field(
        default_factory=list,
        description="Regular expressions; an entry is kept if any matches",
    )
    ignore_patterns: list[str] = Field(
        default_factory=list,
        description="Regular expressions; an entry is dropped if any matches",
    )
    recurse: bool = Field(default=False, description="Descend into subdirectories")
    max_depth: int = Field(
        default=0,
        ge=0,
        description="Deepest level to descend to (0 means no limit when recursing)",
    )
    time_filters: list[TimeFilter] = Field(
        default_factory=list, description="Modification time filters, ANDed"
    )
    err_skip: bool = Field(
        default=False,
        description="Aggregation only: leave failing subtrees out instead of "
        "flagging the parent",
    )
    include_root: bool = Field(
        default=False, description="Emit the root directory's own entry"
    )
    hierarchical: bool = Field(
        default=False,
        description="Aggregation only: keep child aggregates on each result",
    )

    def should_descend(self, child_depth: int) -> bool:
        """Whether a directory found at ``child_depth`` is descended into.

        A positive ``max_depth`` always caps the walk; otherwise ``recurse``
        decides between an unbounded walk and direct children only.
        """
        if self.max_depth > 0:
            return child_depth < self.max_depth
        return self.recurse
