"""Core utilities and shared components for tree-tools."""

from .config import settings
from .exceptions import TreeToolsError, ValidationError
from .observability import get_logger, get_tracer

__all__ = ["settings", "TreeToolsError", "ValidationError", "get_logger", "get_tracer"]
