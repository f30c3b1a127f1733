"""Leveled, file-backed logger with size-based rotation.

A `Logger` owns one append handle to ``<directory>/<filename>`` and one lock.
Every write formats a line, appends it, flushes, and then asks its `Rotator`
whether the file has reached the size limit. When it has, the handle is
closed, the file is renamed to a timestamped generation, old generations are
pruned, and a fresh handle is opened at the original path, all while the
lock is held so no other writer sees a half-rotated file.

Rotation problems never undo a line that was already appended. They are
reported through the `WriteResult` returned by the call that triggered them.
"""

from __future__ import annotations

import dataclasses
import threading
from datetime import datetime
from pathlib import Path
from typing import TextIO

from loguru import logger

from rotalog.config import settings
from rotalog.errors import (
    ConfigurationError,
    LoggerClosedError,
    LogIOError,
    ReopenError,
    RotalogError,
    RotationError,
)
from rotalog.rotator import Rotator
from rotalog.severity import Severity, parse_level

LINE_TIME_FORMAT = "%Y/%m/%d %H:%M:%S.%f"


def format_line(message: str, severity: Severity | None = None, when: datetime | None = None) -> str:
    """Render one log record as a newline-terminated line.

    Leveled records look like ``2024/01/23 01:23:23.123123 [INFO] message``;
    unleveled records omit the bracketed label.
    """
    stamp = (when or datetime.now()).strftime(LINE_TIME_FORMAT)
    if severity is None:
        return f"{stamp} {message}\n"
    return f"{stamp} [{severity.label}] {message}\n"


@dataclasses.dataclass(frozen=True)
class WriteResult:
    """Outcome of a write or an explicit rotation check."""

    written: bool
    rotated_to: Path | None = None
    pruned: tuple[Path, ...] = ()
    error: RotalogError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def rotated(self) -> bool:
        return self.rotated_to is not None


class Logger:
    """A writable, rotatable log stream.

    Writes from any number of threads are serialized by a per-instance lock.
    Two loggers pointed at different files never contend; two loggers pointed
    at the same file must not both exist, which `CategoryRegistry` guarantees
    for category-based loggers.
    """

    def __init__(
        self,
        directory: Path | str,
        filename: str,
        level: str | Severity | None = None,
        max_bytes: int | None = None,
        max_generations: int | None = None,
        *,
        encoding: str = "utf-8",
        rotator: Rotator | None = None,
    ):
        """Open ``<directory>/<filename>`` for appending.

        Args:
            directory (Path | str): Existing directory holding the log file.
            filename (str): Base file name; stable across rotations.
            level (str | Severity | None): Minimum severity to emit; defaults to
                `settings.default_level`.
            max_bytes (int | None): Size at which the file is rotated.
            max_generations (int | None): Rotated files to keep.
            encoding (str): Text encoding of the log file.
            rotator (Rotator | None): Optional prebuilt rotator (tests inject
                one with a fixed clock). It must watch the same file with the
                same limits.

        Raises:
            UnknownLevelError: When `level` is not a known severity token.
            ConfigurationError: When the size or retention limits are invalid,
                or `rotator` does not match them.
            LogIOError: When the file cannot be opened.

        """
        self.directory = Path(directory).absolute()
        self.filename = filename
        self._level = parse_level(level if level is not None else settings.default_level)
        max_bytes = settings.default_max_bytes if max_bytes is None else max_bytes
        max_generations = (
            settings.default_max_generations if max_generations is None else max_generations
        )
        if not filename or "/" in filename:
            raise ConfigurationError(f"Invalid log file name: {filename!r}")
        if max_bytes <= 0:
            raise ConfigurationError(f"max_bytes must be positive, got {max_bytes}")
        if max_generations < 0:
            raise ConfigurationError(f"max_generations must not be negative, got {max_generations}")

        self.encoding = encoding
        if rotator is None:
            rotator = Rotator(self.directory, filename, max_bytes, max_generations)
        elif (rotator.active_path, rotator.max_bytes, rotator.max_generations) != (
            self.path,
            max_bytes,
            max_generations,
        ):
            raise ConfigurationError(
                f"Rotator for {rotator.active_path} does not match logger {self.path} "
                f"(max_bytes={max_bytes}, max_generations={max_generations})"
            )
        self.rotator = rotator
        self.logger = logger.bind(component=self.__class__.__name__, file=filename)
        self._lock = threading.Lock()
        self._closed = False
        self._handle: TextIO | None = self._open_handle(LogIOError)

    @classmethod
    def open(
        cls,
        directory: Path | str,
        filename: str,
        level: str | Severity | None = None,
        max_bytes: int | None = None,
        max_generations: int | None = None,
    ) -> Logger:
        return cls(directory, filename, level, max_bytes, max_generations)

    def __enter__(self) -> Logger:
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def __repr__(self) -> str:
        return f"Logger(path={str(self.path)!r}, level={self._level.label})"

    @property
    def path(self) -> Path:
        return self.directory / self.filename

    @property
    def level(self) -> Severity:
        return self._level

    @level.setter
    def level(self, value: str | Severity) -> None:
        # The handle is untouched; only the filter changes.
        self._level = parse_level(value)

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def degraded(self) -> bool:
        """True when a reopen failed and the logger currently has no handle."""
        return not self._closed and self._handle is None

    def _open_handle(self, error_cls: type[LogIOError] = ReopenError) -> TextIO:
        try:
            return self.path.open(
                "a", buffering=1, encoding=self.encoding, errors="backslashreplace", newline=""
            )
        except OSError as e:
            raise error_cls(f"Cannot open log file {self.path}: {e}", self.path, e) from e

    def _close_handle(self) -> LogIOError | None:
        handle, self._handle = self._handle, None
        if handle is None:
            return None
        try:
            handle.close()
        except OSError as e:
            return LogIOError(f"Error closing log file {self.path}: {e}", self.path, e)
        return None

    def write(self, message: str, severity: str | Severity | None = None) -> WriteResult:
        """Append `message` at `severity` and rotate the file when it is full.

        A `severity` less urgent than the configured level is a no-op. With no
        severity the line is written unconditionally and without a label.

        Returns:
            WriteResult: Whether the line was written, the rotation performed
                (if any) and the first error met while rotating or reopening.

        Raises:
            LoggerClosedError: When called after `close()`.

        """
        if severity is not None:
            severity = parse_level(severity)
            if not self._level.allows(severity):
                return WriteResult(written=False)

        with self._lock:
            if self._closed:
                raise LoggerClosedError(f"Write to closed logger {self.path}")
            if self._handle is None:
                try:
                    self._handle = self._open_handle()
                except ReopenError as e:
                    self.logger.error("Log file {} is still unavailable: {}", self.path, e)
                    return WriteResult(written=False, error=e)
                self.logger.info("Recovered handle for {}", self.path)

            line = format_line(message, severity)
            try:
                self._handle.write(line)
                self._handle.flush()
            except (OSError, UnicodeError) as e:
                return WriteResult(
                    written=False,
                    error=LogIOError(f"Cannot write to {self.path}: {e}", self.path, e),
                )
            return self._rotate_locked(written=True)

    def rotate_if_needed(self) -> WriteResult:
        """Run the rotation check without writing anything."""
        with self._lock:
            if self._closed:
                raise LoggerClosedError(f"Rotate on closed logger {self.path}")
            return self._rotate_locked(written=False)

    def _rotate_locked(self, *, written: bool) -> WriteResult:
        try:
            due = self.rotator.is_rotatable()
        except RotationError as e:
            self.logger.warning("Skipping rotation check: {}", e)
            return WriteResult(written=written, error=e)
        if not due:
            return WriteResult(written=written)

        error: RotalogError | None = self._close_handle()
        rotated_to: Path | None = None
        pruned: tuple[Path, ...] = ()
        try:
            rotated_to = self.rotator.rotate()
        except RotationError as e:
            self.logger.warning("Rotation failed, continuing with {}: {}", self.path, e)
            error = e
        else:
            try:
                pruned = tuple(self.rotator.remove_old_generations())
            except RotationError as e:
                self.logger.warning("Pruning failed: {}", e)
                error = error or e

        # Reopen at the original path whether or not the rename went through.
        try:
            self._handle = self._open_handle()
        except ReopenError as e:
            self.logger.error("Logger for {} has no writable handle: {}", self.path, e)
            error = e
        return WriteResult(written=written, rotated_to=rotated_to, pruned=pruned, error=error)

    def log(self, message: str) -> WriteResult:
        return self.write(message)

    def fatal(self, message: str) -> WriteResult:
        return self.write(message, Severity.FATAL)

    def error(self, message: str) -> WriteResult:
        return self.write(message, Severity.ERROR)

    def warn(self, message: str) -> WriteResult:
        return self.write(message, Severity.WARN)

    def notice(self, message: str) -> WriteResult:
        return self.write(message, Severity.NOTICE)

    def info(self, message: str) -> WriteResult:
        return self.write(message, Severity.INFO)

    def debug(self, message: str) -> WriteResult:
        return self.write(message, Severity.DEBUG)

    def close(self) -> None:
        """Close the active handle. Further writes raise `LoggerClosedError`.

        Raises:
            LogIOError: When closing the handle fails.

        """
        with self._lock:
            if self._closed:
                return
            self._closed = True
            error = self._close_handle()
        if error is not None:
            raise error
