"""In-memory content catalog (core domain).

The catalog is loaded and validated once through a ``CatalogSource``;
afterwards every query is served from map-keyed indexes in memory.
Invalid entries are dropped and reported, valid ones keep being served.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from enum import Enum
import logging
from typing import Any, DefaultDict, Dict, List, Mapping, Optional, Tuple, Union

from tabquips.core.conditions import validate_conditions
from tabquips.core.errors import CatalogLoadError, ContentStoreNotReadyError
from tabquips.core.models import ContentEntry, HumorLevel
from tabquips.core.ports import CatalogSource
from tabquips.core.rules_engine import DIFFICULTY_PRIORITY

LOGGER = logging.getLogger(__name__)

MIN_TEXT_CHARS = 10
MAX_TEXT_CHARS = 200
SCHEMA_MAJOR = 1

_LEVELS = {level.value for level in HumorLevel}


@dataclass
class CatalogReport:
    """Result of validating a raw catalog document."""

    quips: List[ContentEntry] = field(default_factory=list)
    easter_eggs: List[ContentEntry] = field(default_factory=list)
    rules: List[Dict[str, Any]] = field(default_factory=list)
    violations: List[str] = field(default_factory=list)
    schema_version: Optional[str] = None

    @property
    def ok(self) -> bool:
        return not self.violations

    @property
    def entry_count(self) -> int:
        return len(self.quips) + len(self.easter_eggs) + len(self.rules)


def _plain(value: Union[str, Enum]) -> str:
    # str-mixin enums hash by member name, so index keys must be the raw value.
    return value.value if isinstance(value, Enum) else value


def _check_text(text: Any, label: str) -> Optional[str]:
    if not isinstance(text, str) or not text.strip():
        return f"{label} must be a non-empty string"
    if not MIN_TEXT_CHARS <= len(text) <= MAX_TEXT_CHARS:
        return f"{label} must be {MIN_TEXT_CHARS}-{MAX_TEXT_CHARS} characters (got {len(text)})"
    return None


def _check_common(raw: Any, where: str, required: Tuple[str, ...]) -> List[str]:
    if not isinstance(raw, Mapping):
        return [f"{where}: entry must be an object"]
    problems = [f"{where}: missing required field '{name}'" for name in required if name not in raw]
    entry_id = raw.get("id")
    if "id" in raw and (not isinstance(entry_id, str) or not entry_id):
        problems.append(f"{where}: id must be a non-empty string")
    if "level" in raw and raw.get("level") not in _LEVELS:
        problems.append(f"{where}: level must be one of {', '.join(sorted(_LEVELS))}")
    metadata = raw.get("metadata")
    if metadata is not None and not isinstance(metadata, Mapping):
        problems.append(f"{where}: metadata must be an object")
    return problems


def _label(section: str, index: int, raw: Any) -> str:
    entry_id = raw.get("id") if isinstance(raw, Mapping) else None
    return f"{section}[{index}] ({entry_id})" if entry_id else f"{section}[{index}]"


def _check_schema_version(version: Any) -> Optional[str]:
    parts = version.split(".") if isinstance(version, str) else []
    if len(parts) != 3 or not all(part.isdigit() for part in parts):
        return f"schema_version must be a MAJOR.MINOR.PATCH string, got {version!r}"
    if int(parts[0]) != SCHEMA_MAJOR:
        return f"schema_version {version} is not supported (expected {SCHEMA_MAJOR}.x.x)"
    return None


def _section(raw: Mapping[str, Any], name: str, violations: List[str]) -> List[Any]:
    value = raw.get(name, [])
    if value is None:
        return []
    if not isinstance(value, list):
        violations.append(f"{name}: section must be a list")
        return []
    return value


def validate_catalog(raw: Mapping[str, Any]) -> CatalogReport:
    """Validate every section and collect all violations.

    Entries with at least one violation are left out of the report; the rest
    are converted to ``ContentEntry`` objects (quips, easter eggs) or kept as
    plain dicts (rules).
    """

    report = CatalogReport()
    if raw.get("schema_version") is not None:
        version_problem = _check_schema_version(raw["schema_version"])
        if version_problem:
            report.violations.append(version_problem)
        else:
            report.schema_version = raw["schema_version"]
    content_ids: set[str] = set()

    for index, item in enumerate(_section(raw, "quips", report.violations)):
        where = _label("quips", index, item)
        problems = _check_common(item, where, ("id", "text", "trigger_types", "level"))
        if isinstance(item, Mapping):
            text_problem = _check_text(item.get("text"), f"{where}: text") if "text" in item else None
            if text_problem:
                problems.append(text_problem)
            triggers = item.get("trigger_types")
            if "trigger_types" in item and (
                not isinstance(triggers, list)
                or not triggers
                or not all(isinstance(name, str) and name for name in triggers)
            ):
                problems.append(f"{where}: trigger_types must be a non-empty list of strings")
            if not problems and item["id"] in content_ids:
                problems.append(f"{where}: duplicate content id")
        if problems:
            report.violations.extend(problems)
            continue
        content_ids.add(item["id"])
        report.quips.append(
            ContentEntry(
                id=item["id"],
                texts=(item["text"],),
                level=HumorLevel(item["level"]),
                trigger_types=tuple(item["trigger_types"]),
                metadata=dict(item.get("metadata") or {}),
            )
        )

    for index, item in enumerate(_section(raw, "easter_eggs", report.violations)):
        where = _label("easter_eggs", index, item)
        problems = _check_common(item, where, ("id", "type", "texts", "level"))
        if isinstance(item, Mapping):
            if "type" in item and (not isinstance(item.get("type"), str) or not item.get("type")):
                problems.append(f"{where}: type must be a non-empty string")
            texts = item.get("texts")
            if "texts" in item:
                if not isinstance(texts, list) or not texts:
                    problems.append(f"{where}: texts must be a non-empty list")
                else:
                    for text_index, text in enumerate(texts):
                        text_problem = _check_text(text, f"{where}: texts[{text_index}]")
                        if text_problem:
                            problems.append(text_problem)
            if not problems and item["id"] in content_ids:
                problems.append(f"{where}: duplicate content id")
        if problems:
            report.violations.extend(problems)
            continue
        content_ids.add(item["id"])
        report.easter_eggs.append(
            ContentEntry(
                id=item["id"],
                texts=tuple(item["texts"]),
                level=HumorLevel(item["level"]),
                rule_type=item["type"],
                metadata=dict(item.get("metadata") or {}),
            )
        )

    rule_ids: set[str] = set()
    for index, item in enumerate(_section(raw, "rules", report.violations)):
        where = _label("rules", index, item)
        problems = _check_common(item, where, ("id", "type", "conditions"))
        if isinstance(item, Mapping):
            if "type" in item and (not isinstance(item.get("type"), str) or not item.get("type")):
                problems.append(f"{where}: type must be a non-empty string")
            priority = item.get("priority")
            if priority is not None and (not isinstance(priority, int) or isinstance(priority, bool)):
                problems.append(f"{where}: priority must be an integer")
            enabled = item.get("enabled")
            if enabled is not None and not isinstance(enabled, bool):
                problems.append(f"{where}: enabled must be a boolean")
            metadata = item.get("metadata")
            if isinstance(metadata, Mapping):
                difficulty = metadata.get("difficulty")
                if difficulty is not None and difficulty not in DIFFICULTY_PRIORITY:
                    problems.append(
                        f"{where}: metadata.difficulty must be one of {', '.join(DIFFICULTY_PRIORITY)}"
                    )
            if "conditions" in item:
                problems.extend(f"{where}: {problem}" for problem in validate_conditions(item["conditions"]))
            if not problems and item["id"] in rule_ids:
                problems.append(f"{where}: duplicate rule id")
        if problems:
            report.violations.extend(problems)
            continue
        rule_ids.add(item["id"])
        report.rules.append(dict(item))

    return report


class ContentStore:
    """Cached, validated catalog of quips and easter-egg content."""

    def __init__(self, source: CatalogSource) -> None:
        self._source = source
        self._ready = False
        self._quips: List[ContentEntry] = []
        self._easter_eggs: List[ContentEntry] = []
        self._rules: List[Dict[str, Any]] = []
        self._by_level: DefaultDict[HumorLevel, List[ContentEntry]] = defaultdict(list)
        self._by_trigger: DefaultDict[Tuple[HumorLevel, str], List[ContentEntry]] = defaultdict(list)
        self._by_rule_type: DefaultDict[Tuple[str, HumorLevel], List[ContentEntry]] = defaultdict(list)
        self._trigger_types: List[str] = []
        self.violations: List[str] = []

    async def initialize(self) -> None:
        """Load, validate, and index the catalog.

        Raises ``CatalogLoadError`` when the source cannot be read, declares an
        unsupported ``schema_version``, or nothing in it is usable. Partially valid catalogs load with the bad entries
        dropped; the dropped entries are listed in ``violations``.
        """

        if self._ready:
            return

        raw = await self._source.load()
        if not isinstance(raw, Mapping):
            raise CatalogLoadError("Catalog root must be an object")
        if raw.get("schema_version") is not None:
            version_problem = _check_schema_version(raw["schema_version"])
            if version_problem:
                raise CatalogLoadError("Catalog schema is not supported", [version_problem])

        report = validate_catalog(raw)
        for violation in report.violations:
            LOGGER.warning("Dropped catalog entry: %s", violation)
        if report.violations and report.entry_count == 0:
            raise CatalogLoadError("Catalog has no valid entries", report.violations)

        self._index(report)
        self.violations = list(report.violations)
        self._ready = True
        LOGGER.info(
            "Catalog loaded: quips=%s easter_eggs=%s rules=%s dropped=%s",
            len(self._quips),
            len(self._easter_eggs),
            len(self._rules),
            len(report.violations),
        )

    def _index(self, report: CatalogReport) -> None:
        self._quips = list(report.quips)
        self._easter_eggs = list(report.easter_eggs)
        self._rules = list(report.rules)
        trigger_types: set[str] = set()
        for quip in self._quips:
            self._by_level[quip.level].append(quip)
            for trigger_type in quip.trigger_types:
                self._by_trigger[(quip.level, trigger_type)].append(quip)
                trigger_types.add(trigger_type)
        for egg in self._easter_eggs:
            self._by_rule_type[(egg.rule_type, egg.level)].append(egg)
        self._trigger_types = sorted(trigger_types)

    def _require_ready(self) -> None:
        if not self._ready:
            raise ContentStoreNotReadyError()

    def is_ready(self) -> bool:
        return self._ready

    def query_by_trigger(
        self,
        level: Union[HumorLevel, str],
        trigger_type: Optional[Union[str, Enum]] = None,
    ) -> List[ContentEntry]:
        """Regular quips for a level, optionally narrowed to one trigger type."""

        self._require_ready()
        level = HumorLevel(level)
        if trigger_type is None:
            return list(self._by_level.get(level, []))
        return list(self._by_trigger.get((level, _plain(trigger_type)), []))

    def query_by_rule_type(self, rule_type: str, level: Union[HumorLevel, str]) -> List[ContentEntry]:
        self._require_ready()
        return list(self._by_rule_type.get((rule_type, HumorLevel(level)), []))

    def all_easter_eggs(self, level: Optional[Union[HumorLevel, str]] = None) -> List[ContentEntry]:
        self._require_ready()
        if level is None:
            return list(self._easter_eggs)
        level = HumorLevel(level)
        return [egg for egg in self._easter_eggs if egg.level is level]

    def rule_definitions(self) -> List[Dict[str, Any]]:
        self._require_ready()
        return [dict(rule) for rule in self._rules]

    def available_trigger_types(self) -> List[str]:
        self._require_ready()
        return list(self._trigger_types)
