"""Named log categories resolved to shared `Logger` instances.

A `CategoryRegistry` maps category names to their file path, level and
rotation policy, and lazily opens one `Logger` per file the first time a
category is resolved. Every later lookup of the same category, and of any
other category bound to the same file, returns that same instance so a file
only ever has one handle and one lock within the process.
"""

from __future__ import annotations

import dataclasses
import json
import threading
from pathlib import Path

from dacite import Config, DaciteError, from_dict
from loguru import logger

from rotalog.config import Settings, settings
from rotalog.errors import (
    ConfigurationError,
    DuplicateCategoryError,
    LogIOError,
    UnknownCategoryError,
)
from rotalog.logger import Logger
from rotalog.rotator import generation_pattern
from rotalog.severity import Severity, parse_level

category_config = Config(
    strict=True,
    check_types=True,
    cast=[Path],
)


@dataclasses.dataclass(frozen=True)
class Category:
    """A named binding of a log file to its level and rotation policy.

    Unset `level`, `max_bytes` and `max_generations` are filled from
    `settings` when the category is created. A relative `path` is made
    absolute against the working directory at that moment.
    """

    name: str
    path: Path
    level: str | None = None
    max_bytes: int | None = None
    max_generations: int | None = None

    def __post_init__(self) -> None:
        if not self.name:
            raise ConfigurationError("Category name must not be empty")
        path = Path(self.path).absolute()
        if not path.name:
            raise ConfigurationError(f"Category {self.name!r} has no file name in {self.path!r}")
        level = parse_level(self.level if self.level is not None else settings.default_level)
        max_bytes = settings.default_max_bytes if self.max_bytes is None else self.max_bytes
        max_generations = (
            settings.default_max_generations if self.max_generations is None else self.max_generations
        )
        if max_bytes <= 0:
            raise ConfigurationError(f"Category {self.name!r}: max_bytes must be positive")
        if max_generations < 0:
            raise ConfigurationError(f"Category {self.name!r}: max_generations must not be negative")
        object.__setattr__(self, "path", path)
        object.__setattr__(self, "level", level.label.lower())
        object.__setattr__(self, "max_bytes", max_bytes)
        object.__setattr__(self, "max_generations", max_generations)

    @property
    def severity(self) -> Severity:
        return parse_level(self.level)

    @property
    def identity(self) -> Path:
        """Absolute path of the active file; categories sharing it share a Logger."""
        return self.path.resolve()

    @property
    def policy(self) -> tuple[str, int, int]:
        return self.level, self.max_bytes, self.max_generations

    @classmethod
    def from_dict(cls, data: dict) -> Category:
        return from_dict(data_class=cls, data=data, config=category_config)


def _is_generation_of(path: Path, active: Path) -> bool:
    return path.parent == active.parent and generation_pattern(active.name).match(path.name) is not None


class CategoryRegistry:
    """Registry of categories and the loggers materialized for them.

    Create one per process (or per test) and pass it to the code that needs
    category lookup.
    """

    def __init__(self) -> None:
        self._categories: dict[str, Category] = {}
        self._loggers: dict[Path, Logger] = {}
        self._lock = threading.Lock()
        self.logger = logger.bind(component=self.__class__.__name__)

    def __contains__(self, name: object) -> bool:
        return name in self._categories

    def __len__(self) -> int:
        return len(self._categories)

    def names(self) -> list[str]:
        return list(self._categories)

    def get(self, name: str) -> Category:
        try:
            return self._categories[name]
        except KeyError:
            raise UnknownCategoryError(f"Unknown log category: {name!r}") from None

    def register(
        self,
        name: str,
        path: Path | str,
        level: str | Severity | None = None,
        max_bytes: int | None = None,
        max_generations: int | None = None,
    ) -> Category:
        """Register a category under `name`.

        Raises:
            DuplicateCategoryError: When `name` is already registered.
            UnknownLevelError: When `level` is not a known severity token.
            ConfigurationError: When another category already uses the same
                file with a different level or rotation policy, or when one
                file is named like a rotated generation of the other.

        """
        if isinstance(level, Severity):
            level = level.label
        category = Category(
            name=name,
            path=Path(path),
            level=level,
            max_bytes=max_bytes,
            max_generations=max_generations,
        )
        return self.add(category)

    def add(self, category: Category) -> Category:
        with self._lock:
            if category.name in self._categories:
                raise DuplicateCategoryError(f"Log category already registered: {category.name!r}")
            for other in self._categories.values():
                if other.identity == category.identity and other.policy != category.policy:
                    raise ConfigurationError(
                        f"Category {category.name!r} uses {category.path} like {other.name!r} "
                        "but with a different level or rotation policy"
                    )
                if _is_generation_of(category.identity, other.identity) or _is_generation_of(
                    other.identity, category.identity
                ):
                    raise ConfigurationError(
                        f"Category {category.name!r} file {category.path.name} would be pruned "
                        f"as a rotated generation of {other.name!r}, or the reverse"
                    )
            self._categories[category.name] = category
        return category

    def resolve(self, name: str) -> Logger:
        """Return the shared Logger for `name`, opening it on first use.

        Raises:
            UnknownCategoryError: When `name` was never registered.
            LogIOError: When the log file cannot be opened.

        """
        with self._lock:
            category = self.get(name)
            existing = self._loggers.get(category.identity)
            if existing is not None and not existing.closed:
                return existing
            opened = Logger(
                category.path.parent,
                category.path.name,
                category.level,
                category.max_bytes,
                category.max_generations,
            )
            self._loggers[category.identity] = opened
            self.logger.debug("Opened logger for category {} at {}", name, category.path)
            return opened

    def close_all(self) -> None:
        """Close every materialized Logger; the first close failure is re-raised."""
        with self._lock:
            loggers = list(self._loggers.values())
            self._loggers.clear()
        errors: list[LogIOError] = []
        for opened in loggers:
            try:
                opened.close()
            except LogIOError as e:
                self.logger.warning("Error closing {}: {}", opened.path, e)
                errors.append(e)
        if errors:
            raise errors[0]

    @classmethod
    def from_file(cls, path: Path | str) -> CategoryRegistry:
        """Build a registry from a JSON file of category definitions.

        The document looks like ``{"categories": [{"name": ..., "path": ...,
        "level": ..., "max_bytes": ..., "max_generations": ...}]}``; all but
        `name` and `path` are optional.
        """
        path = Path(path)
        try:
            with path.open(encoding="utf8") as fh:
                data = json.load(fh)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigurationError(f"Cannot read categories file {path}: {e}") from e

        if not isinstance(data, dict) or not isinstance(data.get("categories", []), list):
            raise ConfigurationError(f"{path}: expected an object with a 'categories' list")

        registry = cls()
        for raw in data.get("categories", []):
            if not isinstance(raw, dict):
                raise ConfigurationError(f"{path}: category entries must be objects, got {raw!r}")
            try:
                category = Category.from_dict(raw)
            except DaciteError as e:
                raise ConfigurationError(f"{path}: invalid category {raw!r}: {e}") from e
            registry.add(category)
        return registry

    @classmethod
    def from_settings(cls, config: Settings | None = None) -> CategoryRegistry:
        config = config or settings
        if config.categories_file is None:
            return cls()
        return cls.from_file(config.categories_file)
