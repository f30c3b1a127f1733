"""Exception taxonomy for rotalog.

Setup problems (bad level tokens, duplicate or unknown categories) raise a
`ConfigurationError`. Filesystem problems met while writing or rotating are
wrapped in a `LogIOError` subclass and returned to the caller of the write
that triggered them.
"""

from __future__ import annotations

from pathlib import Path


class RotalogError(Exception):
    """Base class for every error raised or returned by rotalog."""


class ConfigurationError(RotalogError, ValueError):
    """Invalid setup parameters, detected before any file is touched."""


class UnknownLevelError(ConfigurationError):
    pass


class DuplicateCategoryError(ConfigurationError):
    pass


class UnknownCategoryError(ConfigurationError, LookupError):
    pass


class LoggerClosedError(RotalogError):
    """A write was attempted after `Logger.close()`."""


class LogIOError(RotalogError):
    """A filesystem operation on a log file failed.

    The originating `OSError` is kept as ``__cause__`` and on `os_error`.
    """

    def __init__(self, message: str, path: Path | str | None = None, os_error: OSError | None = None):
        super().__init__(message)
        self.path = Path(path) if path is not None else None
        self.os_error = os_error
        if os_error is not None:
            self.__cause__ = os_error


class RotationError(LogIOError):
    """Stat, rename or listing failed while checking or performing a rotation."""


class ReopenError(LogIOError):
    """The active file could not be reopened; the logger has no writable handle."""
