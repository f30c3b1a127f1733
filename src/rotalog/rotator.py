"""Size-based rotation policy and retention pruning for one log file.

The `Rotator` never holds a file handle. It looks at the filesystem to
decide whether the active file is due for rotation, renames it to a
timestamped generation, and deletes the oldest generations beyond the
configured retention count. Callers own the handle and must close it before
calling `Rotator.rotate`.
"""

from __future__ import annotations

import os
import re
import time
from collections.abc import Callable
from pathlib import Path

from loguru import logger

from rotalog.errors import RotationError

# Unix seconds stay at ten digits until the year 2286.
TIMESTAMP_WIDTH = 10


def generation_pattern(base_name: str) -> re.Pattern[str]:
    return re.compile(rf"^{re.escape(base_name)}-(\d+)(?:\.(\d+))?$")


class Rotator:
    """Rotation and retention policy for ``<directory>/<base_name>``.

    Rotated generations are named ``<base_name>-<unix seconds>`` with the
    seconds zero-padded to a fixed width. A second rotation within the same
    second gets a ``.<n>`` suffix instead of overwriting the earlier file.

    Any file in the directory named like a generation of this base name is
    subject to pruning, so another live log file must not be named
    ``<base_name>-<digits>`` next to it (`CategoryRegistry` rejects that).
    The directory is made absolute on construction so a later ``chdir``
    does not move the file being watched.
    """

    def __init__(
        self,
        directory: Path | str,
        base_name: str,
        max_bytes: int,
        max_generations: int,
        *,
        clock: Callable[[], float] = time.time,
    ):
        self.directory = Path(directory).absolute()
        self.base_name = base_name
        self.max_bytes = max_bytes
        self.max_generations = max_generations
        self._clock = clock
        self._generation_re = generation_pattern(base_name)
        self.logger = logger.bind(component=self.__class__.__name__)

    @property
    def active_path(self) -> Path:
        return self.directory / self.base_name

    def is_rotatable(self) -> bool:
        """Return True when the active file has reached `max_bytes`.

        Raises:
            RotationError: When the active file cannot be stat'ed (for example
                because it was removed from under the logger).

        """
        try:
            size = self.active_path.stat().st_size
        except OSError as e:
            raise RotationError(
                f"Cannot stat active log file {self.active_path}: {e}", self.active_path, e
            ) from e
        return size >= self.max_bytes

    def next_generation_path(self) -> Path:
        """Return the first unused generation path for the current time."""
        stamp = f"{int(self._clock()):0{TIMESTAMP_WIDTH}d}"
        candidate = self.directory / f"{self.base_name}-{stamp}"
        seq = 0
        while candidate.exists():
            seq += 1
            candidate = self.directory / f"{self.base_name}-{stamp}.{seq}"
        return candidate

    def rotate(self) -> Path:
        """Rename the active file to a new generation and return its path.

        Raises:
            RotationError: When the rename fails. The active file is left
                where it was.

        """
        target = self.next_generation_path()
        try:
            os.rename(self.active_path, target)
        except OSError as e:
            raise RotationError(
                f"Cannot rotate {self.active_path} to {target.name}: {e}", self.active_path, e
            ) from e
        self.logger.debug("Rotated {} to {}", self.active_path, target.name)
        return target

    def _generation_key(self, name: str) -> tuple[int, int] | None:
        match = self._generation_re.match(name)
        if match is None:
            return None
        return int(match.group(1)), int(match.group(2) or 0)

    def list_generations(self) -> list[Path]:
        """Return rotated generations of this file, oldest first.

        Only names of the form ``<base_name>-<digits>[.<digits>]`` count; the
        active file and unrelated files sharing the prefix are ignored.
        Ordering is numeric on the embedded timestamp and sequence.
        """
        try:
            entries = list(os.scandir(self.directory))
        except OSError as e:
            raise RotationError(
                f"Cannot list log directory {self.directory}: {e}", self.directory, e
            ) from e

        keyed: list[tuple[tuple[int, int], Path]] = []
        for entry in entries:
            if entry.is_dir():
                continue
            key = self._generation_key(entry.name)
            if key is not None:
                keyed.append((key, Path(entry.path)))
        keyed.sort(key=lambda item: item[0])
        return [path for _, path in keyed]

    def remove_old_generations(self) -> list[Path]:
        """Delete the oldest generations until at most `max_generations` remain.

        Deletion is best-effort: a file that cannot be removed is logged and
        skipped, and pruning carries on with the rest.

        Returns:
            list[Path]: The generations actually deleted.

        Raises:
            RotationError: When the directory cannot be listed.

        """
        generations = self.list_generations()
        excess = len(generations) - self.max_generations
        removed: list[Path] = []
        for path in generations[: max(excess, 0)]:
            try:
                path.unlink()
            except FileNotFoundError:
                continue
            except OSError as e:
                self.logger.warning("Could not remove old log generation {}: {}", path, e)
                continue
            removed.append(path)
        if removed:
            self.logger.debug("Pruned {} old generation(s) of {}", len(removed), self.base_name)
        return removed
