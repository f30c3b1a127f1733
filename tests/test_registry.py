import json
import pathlib
import threading

import pytest

from rotalog.config import settings
from rotalog.errors import (
    ConfigurationError,
    DuplicateCategoryError,
    LogIOError,
    UnknownCategoryError,
    UnknownLevelError,
)
from rotalog.registry import Category, CategoryRegistry
from rotalog.severity import Severity


def test_resolve_returns_shared_logger(tmp_path: pathlib.Path):
    registry = CategoryRegistry()
    registry.register("access", tmp_path / "access.log", "info", 1024, 5)

    first = registry.resolve("access")
    second = registry.resolve("access")
    first.info("one")
    second.info("two")
    registry.close_all()

    assert first is second
    assert first._lock is second._lock
    assert len((tmp_path / "access.log").read_text(encoding="utf-8").splitlines()) == 2


def test_register_rejects_duplicates_and_bad_levels(tmp_path: pathlib.Path):
    registry = CategoryRegistry()
    registry.register("access", tmp_path / "access.log", "info", 1024, 5)

    with pytest.raises(DuplicateCategoryError):
        registry.register("access", tmp_path / "other.log", "info", 1024, 5)
    with pytest.raises(UnknownLevelError):
        registry.register("diag", tmp_path / "diag.log", "chatty", 1024, 5)
    with pytest.raises(ConfigurationError):
        registry.register("tiny", tmp_path / "tiny.log", "info", 0, 5)

    assert registry.names() == ["access"]
    assert "diag" not in registry
    # registering never touches the filesystem
    assert list(tmp_path.iterdir()) == []


def test_resolve_unknown_category(tmp_path: pathlib.Path):
    registry = CategoryRegistry()
    with pytest.raises(UnknownCategoryError):
        registry.resolve("nope")


def test_resolve_missing_directory(tmp_path: pathlib.Path):
    registry = CategoryRegistry()
    registry.register("access", tmp_path / "missing" / "access.log", "info", 1024, 5)
    with pytest.raises(LogIOError):
        registry.resolve("access")


def test_categories_on_same_file_share_one_logger(tmp_path: pathlib.Path):
    registry = CategoryRegistry()
    registry.register("access", tmp_path / "shared.log", "info", 1024, 5)
    registry.register("audit", tmp_path / "sub" / ".." / "shared.log", Severity.INFO, 1024, 5)

    assert registry.resolve("access") is registry.resolve("audit")
    registry.close_all()


def test_conflicting_policy_on_same_file_is_rejected(tmp_path: pathlib.Path):
    registry = CategoryRegistry()
    registry.register("access", tmp_path / "shared.log", "info", 1024, 5)
    with pytest.raises(ConfigurationError):
        registry.register("audit", tmp_path / "shared.log", "debug", 1024, 5)
    assert "audit" not in registry


def test_distinct_categories_get_distinct_loggers(tmp_path: pathlib.Path):
    registry = CategoryRegistry()
    registry.register("access", tmp_path / "access.log", "info", 1024, 5)
    registry.register("diagnostic", tmp_path / "diag.log", "debug", 1024, 5)

    access = registry.resolve("access")
    diag = registry.resolve("diagnostic")
    try:
        assert access is not diag
        assert access._lock is not diag._lock
        assert diag.level is Severity.DEBUG
    finally:
        registry.close_all()


def test_close_all_then_resolve_reopens(tmp_path: pathlib.Path):
    registry = CategoryRegistry()
    registry.register("access", tmp_path / "access.log", "info", 1024, 5)
    first = registry.resolve("access")
    registry.close_all()

    assert first.closed
    second = registry.resolve("access")
    assert second is not first
    assert second.info("again").written
    registry.close_all()


def test_concurrent_resolve_materializes_once(tmp_path: pathlib.Path):
    registry = CategoryRegistry()
    registry.register("access", tmp_path / "access.log", "info", 1024, 5)
    found = []
    barrier = threading.Barrier(8)

    def lookup() -> None:
        barrier.wait()
        found.append(registry.resolve("access"))

    threads = [threading.Thread(target=lookup) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    registry.close_all()

    assert len(found) == 8
    assert len({id(f) for f in found}) == 1


def test_category_defaults_come_from_settings(tmp_path: pathlib.Path, monkeypatch):
    monkeypatch.setattr(settings, "default_level", "warn")
    monkeypatch.setattr(settings, "default_max_bytes", 2048)
    monkeypatch.setattr(settings, "default_max_generations", 2)

    category = Category(name="access", path=tmp_path / "access.log")

    assert category.level == "warn"
    assert category.severity is Severity.WARN
    assert category.max_bytes == 2048
    assert category.max_generations == 2


def test_from_file_loads_categories(tmp_path: pathlib.Path):
    config = tmp_path / "categories.json"
    config.write_text(
        json.dumps(
            {
                "categories": [
                    {"name": "access", "path": str(tmp_path / "access.log"), "level": "INFO"},
                    {
                        "name": "diagnostic",
                        "path": str(tmp_path / "diag.log"),
                        "level": "debug",
                        "max_bytes": 4096,
                        "max_generations": 3,
                    },
                ]
            }
        ),
        encoding="utf8",
    )

    registry = CategoryRegistry.from_file(config)

    assert registry.names() == ["access", "diagnostic"]
    diag = registry.get("diagnostic")
    assert diag.path == tmp_path / "diag.log"
    assert diag.level == "debug"
    assert diag.max_bytes == 4096
    assert registry.get("access").level == "info"
    logger = registry.resolve("diagnostic")
    assert logger.rotator.max_generations == 3
    registry.close_all()


@pytest.mark.parametrize(
    "payload",
    [
        "not json",
        json.dumps({"categories": {"name": "x"}}),
        json.dumps({"categories": ["access"]}),
        json.dumps({"categories": [{"name": "x", "path": "x.log", "colour": "red"}]}),
        json.dumps({"categories": [{"name": "x"}]}),
        json.dumps({"categories": [{"name": "x", "path": "x.log", "level": "loud"}]}),
    ],
)
def test_from_file_rejects_bad_documents(tmp_path: pathlib.Path, payload):
    config = tmp_path / "categories.json"
    config.write_text(payload, encoding="utf8")
    with pytest.raises(ConfigurationError):
        CategoryRegistry.from_file(config)


def test_from_settings(tmp_path: pathlib.Path, monkeypatch):
    assert len(CategoryRegistry.from_settings(settings.model_copy(update={"categories_file": None}))) == 0

    config = tmp_path / "categories.json"
    config.write_text(
        json.dumps({"categories": [{"name": "access", "path": str(tmp_path / "access.log")}]}),
        encoding="utf8",
    )
    monkeypatch.setattr(settings, "categories_file", config)
    registry = CategoryRegistry.from_settings()
    assert "access" in registry


def test_relative_path_survives_chdir(tmp_path: pathlib.Path, monkeypatch):
    (tmp_path / "logs").mkdir()
    (tmp_path / "elsewhere").mkdir()
    monkeypatch.chdir(tmp_path)
    registry = CategoryRegistry()
    registry.register("access", "logs/access.log", "info", 1024, 5)

    first = registry.resolve("access")
    monkeypatch.chdir(tmp_path / "elsewhere")
    second = registry.resolve("access")
    second.info("after chdir")
    registry.close_all()

    assert first is second
    assert registry.get("access").path.resolve() == (tmp_path / "logs" / "access.log").resolve()
    assert len((tmp_path / "logs" / "access.log").read_text(encoding="utf-8").splitlines()) == 1
    assert list((tmp_path / "elsewhere").iterdir()) == []


@pytest.mark.parametrize("other_name", ["app.log-2", "app.log-1700000000.1"])
def test_file_named_like_a_generation_is_rejected(tmp_path: pathlib.Path, other_name):
    registry = CategoryRegistry()
    registry.register("app", tmp_path / "app.log", "info", 1024, 5)
    with pytest.raises(ConfigurationError):
        registry.register("sibling", tmp_path / other_name, "info", 1024, 5)
    assert "sibling" not in registry

    # same check the other way round
    reverse = CategoryRegistry()
    reverse.register("sibling", tmp_path / other_name, "info", 1024, 5)
    with pytest.raises(ConfigurationError):
        reverse.register("app", tmp_path / "app.log", "info", 1024, 5)


def test_generation_like_name_in_other_directory_is_allowed(tmp_path: pathlib.Path):
    registry = CategoryRegistry()
    registry.register("app", tmp_path / "app.log", "info", 1024, 5)
    registry.register("sibling", tmp_path / "other" / "app.log-2", "info", 1024, 5)
    assert registry.names() == ["app", "sibling"]
