"""rotalog: leveled file logging with size-based rotation and retention.

Expose the logger, its rotation policy, the category registry and the error
types used across the package.
"""

from .errors import (
    ConfigurationError,
    DuplicateCategoryError,
    LoggerClosedError,
    LogIOError,
    ReopenError,
    RotalogError,
    RotationError,
    UnknownCategoryError,
    UnknownLevelError,
)
from .logger import Logger, WriteResult, format_line
from .registry import Category, CategoryRegistry
from .rotator import Rotator
from .severity import Severity, parse_level

__all__ = [
    "Category",
    "CategoryRegistry",
    "ConfigurationError",
    "DuplicateCategoryError",
    "LogIOError",
    "Logger",
    "LoggerClosedError",
    "ReopenError",
    "RotalogError",
    "RotationError",
    "Rotator",
    "Severity",
    "UnknownCategoryError",
    "UnknownLevelError",
    "WriteResult",
    "format_line",
    "parse_level",
]
