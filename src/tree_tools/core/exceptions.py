"""Exception hierarchy for tree-tools."""

import builtins


class TreeToolsError(Exception):
    """Base exception for all tree-tools errors."""

    pass


class ValidationError(TreeToolsError):
    """Raised when validation of traversal options fails."""

    pass


class InvalidPatternError(ValidationError):
    """Raised when a match or ignore pattern is not a valid regular expression."""

    def __init__(self, pattern: str, reason: str):
        self.pattern = pattern
        super().__init__(f"Invalid pattern {pattern!r}: {reason}")


class UnsupportedTimeOperatorError(ValidationError):
    """Raised when a time filter uses an unknown comparison operator."""

    def __init__(self, operator: str):
        self.operator = operator
        super().__init__(
            f"Time filter operator {operator!r} is not supported "
            "(expected 'before', 'after' or 'equal')"
        )


class NotFoundError(TreeToolsError):
    """Raised when a path is not found."""

    pass


class NotADirectoryError(TreeToolsError, builtins.NotADirectoryError):
    """Raised when a directory was required but the path is something else."""

    pass


class TraversalIOError(TreeToolsError):
    """An OS-level failure reading one path during a traversal."""

    action = "Reading"

    def __init__(self, path: str, cause: OSError):
        self.path = path
        self.cause = cause
        reason = cause.strerror or str(cause)
        super().__init__(f"{self.action} '{path}' failed: {reason}")


class StatError(TraversalIOError):
    """Raised when a path cannot be stat'ed."""

    action = "Stat of"


class ListError(TraversalIOError):
    """Raised when a directory cannot be listed."""

    action = "Listing of"


class CommandExecutionError(TreeToolsError):
    """Raised when command execution fails."""

    pass


class TraversalCancelledError(TreeToolsError):
    """Raised when a traversal was cancelled before it completed."""

    pass
