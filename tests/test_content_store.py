from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any, Dict

import pytest

from tabquips.adapters.json_catalog import JsonCatalogSource, bundled_catalog_path
from tabquips.core.content_store import ContentStore, validate_catalog
from tabquips.core.errors import CatalogLoadError, ContentStoreNotReadyError
from tabquips.core.models import HumorLevel, TriggerType


class FakeCatalogSource:
    def __init__(self, document: Any) -> None:
        self.document = document
        self.loads = 0

    async def load(self) -> Dict[str, Any]:
        self.loads += 1
        return self.document


def _catalog() -> Dict[str, Any]:
    return {
        "quips": [
            {"id": "PA-001", "text": "Grouping tabs already? Bold move.", "trigger_types": ["TabGroupCreated"], "level": "default"},
            {"id": "PA-002", "text": "Another tab, another plan.", "trigger_types": ["TabOpened", "TooManyTabs"], "level": "default"},
            {"id": "PA-003", "text": "A gentle note about your tabs.", "trigger_types": ["TabOpened"], "level": "mild"},
        ],
        "easter_eggs": [
            {"id": "EE-001", "type": "42-tabs", "texts": ["Don't Panic."], "level": "default"},
            {"id": "EE-070", "type": "stackoverflow-copy", "texts": ["Marked as duplicate.", "Closed as off-topic."], "level": "default"},
        ],
        "rules": [
            {"id": "EE-001", "type": "42-tabs", "conditions": {"tab_count": 42}, "metadata": {"difficulty": "legendary"}},
        ],
    }


def _store(document: Any) -> ContentStore:
    store = ContentStore(FakeCatalogSource(document))
    asyncio.run(store.initialize())
    return store


def test_queries_before_initialize_raise() -> None:
    store = ContentStore(FakeCatalogSource(_catalog()))
    assert not store.is_ready()
    with pytest.raises(ContentStoreNotReadyError):
        store.query_by_trigger(HumorLevel.DEFAULT, TriggerType.TAB_OPENED)
    with pytest.raises(ContentStoreNotReadyError):
        store.query_by_rule_type("42-tabs", HumorLevel.DEFAULT)
    with pytest.raises(ContentStoreNotReadyError):
        store.available_trigger_types()


def test_query_by_trigger_and_level() -> None:
    store = _store(_catalog())
    opened = store.query_by_trigger(HumorLevel.DEFAULT, TriggerType.TAB_OPENED)
    assert [entry.id for entry in opened] == ["PA-002"]
    assert [entry.id for entry in store.query_by_trigger("mild", "TabOpened")] == ["PA-003"]
    assert len(store.query_by_trigger(HumorLevel.DEFAULT)) == 2
    assert store.query_by_trigger(HumorLevel.INTENSE, TriggerType.TAB_OPENED) == []


def test_query_by_rule_type_and_easter_eggs() -> None:
    store = _store(_catalog())
    (egg,) = store.query_by_rule_type("42-tabs", HumorLevel.DEFAULT)
    assert egg.text == "Don't Panic."
    assert egg.is_easter_egg
    assert store.query_by_rule_type("42-tabs", HumorLevel.MILD) == []
    assert len(store.all_easter_eggs()) == 2
    assert store.all_easter_eggs(HumorLevel.INTENSE) == []
    assert [rule["id"] for rule in store.rule_definitions()] == ["EE-001"]


def test_available_trigger_types_are_sorted() -> None:
    store = _store(_catalog())
    assert store.available_trigger_types() == ["TabGroupCreated", "TabOpened", "TooManyTabs"]


def test_initialize_is_idempotent() -> None:
    source = FakeCatalogSource(_catalog())
    store = ContentStore(source)

    async def _run() -> None:
        await store.initialize()
        await store.initialize()

    asyncio.run(_run())
    assert source.loads == 1


def test_invalid_entries_are_dropped_and_all_reported() -> None:
    document = _catalog()
    document["quips"].append({"id": "PA-009", "text": "short", "trigger_types": ["TabOpened"], "level": "loud"})
    document["quips"].append({"id": "PA-001", "text": "Duplicate id on purpose here.", "trigger_types": ["TabOpened"], "level": "default"})
    document["rules"].append({"id": "EE-999", "type": "broken", "conditions": {"domain_regex": "(bad"}})

    store = _store(document)

    assert len(store.query_by_trigger(HumorLevel.DEFAULT)) == 2
    assert [rule["id"] for rule in store.rule_definitions()] == ["EE-001"]
    joined = "\n".join(store.violations)
    assert "quips[3] (PA-009): level must be one of" in joined
    assert "quips[3] (PA-009): text must be 10-200 characters" in joined
    assert "quips[4] (PA-001): duplicate content id" in joined
    assert "rules[1] (EE-999): domain_regex is not a valid pattern" in joined


def test_catalog_with_nothing_usable_fails() -> None:
    store = ContentStore(FakeCatalogSource({"quips": [{"id": "x"}]}))
    with pytest.raises(CatalogLoadError) as excinfo:
        asyncio.run(store.initialize())
    assert excinfo.value.violations
    assert not store.is_ready()


def test_non_object_root_fails() -> None:
    store = ContentStore(FakeCatalogSource(["not", "an", "object"]))
    with pytest.raises(CatalogLoadError):
        asyncio.run(store.initialize())


def test_validate_catalog_reports_bad_rule_fields() -> None:
    report = validate_catalog(
        {
            "rules": [
                {"id": "r1", "type": "t", "priority": "high", "conditions": {"tab_count": 1}},
                {"id": "r2", "type": "t", "conditions": {}, "metadata": {"difficulty": "mythic"}},
            ],
            "easter_eggs": "not a list",
        }
    )
    assert not report.ok
    assert report.rules == []
    assert "easter_eggs: section must be a list" in report.violations
    assert "rules[0] (r1): priority must be an integer" in report.violations
    assert any(item.startswith("rules[1] (r2): metadata.difficulty") for item in report.violations)
    assert "rules[1] (r2): at least one condition is required" in report.violations


def test_bundled_catalog_is_valid_and_covers_every_trigger() -> None:
    store = ContentStore(JsonCatalogSource(bundled_catalog_path()))
    asyncio.run(store.initialize())

    assert store.violations == []
    for level in HumorLevel:
        for trigger in TriggerType:
            assert store.query_by_trigger(level, trigger), (level, trigger)
    rule_types = {rule["type"] for rule in store.rule_definitions()}
    egg_types = {egg.rule_type for egg in store.all_easter_eggs()}
    assert rule_types <= egg_types


def test_missing_catalog_file_raises(tmp_path: Path) -> None:
    source = JsonCatalogSource(tmp_path / "absent.json")
    with pytest.raises(CatalogLoadError):
        asyncio.run(source.load())


def test_malformed_catalog_json_raises(tmp_path: Path) -> None:
    path = tmp_path / "catalog.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(CatalogLoadError) as excinfo:
        asyncio.run(JsonCatalogSource(path).load())
    assert excinfo.value.violations


def test_json_catalog_loads_document(tmp_path: Path) -> None:
    path = tmp_path / "catalog.json"
    path.write_text(json.dumps(_catalog()), encoding="utf-8")
    store = ContentStore(JsonCatalogSource(path))
    asyncio.run(store.initialize())
    assert store.is_ready()


def test_schema_version_is_checked() -> None:
    assert validate_catalog({"schema_version": "1.2.0", **_catalog()}).schema_version == "1.2.0"

    report = validate_catalog({"schema_version": "one", **_catalog()})
    assert "schema_version must be a MAJOR.MINOR.PATCH string, got 'one'" in report.violations


def test_unsupported_schema_major_fails_to_load() -> None:
    store = ContentStore(FakeCatalogSource({"schema_version": "2.0.0", **_catalog()}))
    with pytest.raises(CatalogLoadError) as excinfo:
        asyncio.run(store.initialize())
    assert "not supported" in excinfo.value.violations[0]
    assert not store.is_ready()
