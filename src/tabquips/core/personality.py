"""Pluggable humor personalities.

A personality decides which catalog content a delivery draws from and how the
notification is titled. The orchestrator only knows the ``Personality``
protocol, so personalities can be swapped through configuration.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, FrozenSet, List, Protocol

from tabquips.core.content_store import ContentStore
from tabquips.core.models import ContentEntry, HumorLevel, Match, Trigger


@dataclass(frozen=True)
class PersonalityMetadata:
    name: str
    description: str
    level: HumorLevel
    version: str


class Personality(Protocol):
    metadata: PersonalityMetadata

    def supports_level(self, level: HumorLevel) -> bool:
        ...

    def regular_candidates(self, trigger: Trigger, level: HumorLevel) -> List[ContentEntry]:
        ...

    def rule_candidates(self, match: Match, level: HumorLevel) -> List[ContentEntry]:
        ...

    def notification_title(self, is_rule_match: bool) -> str:
        ...


class PassiveAggressivePersonality:
    """Supportive skepticism at every intensity level."""

    metadata = PersonalityMetadata(
        name="Passive-Aggressive",
        description="Sounds helpful, quietly doubts every tab decision",
        level=HumorLevel.DEFAULT,
        version="1.0.0",
    )

    def __init__(self, store: ContentStore) -> None:
        self._store = store

    def supports_level(self, level: HumorLevel) -> bool:
        return level in HumorLevel

    def regular_candidates(self, trigger: Trigger, level: HumorLevel) -> List[ContentEntry]:
        return self._store.query_by_trigger(level, trigger.type)

    def rule_candidates(self, match: Match, level: HumorLevel) -> List[ContentEntry]:
        return self._store.query_by_rule_type(match.rule_type, level)

    def notification_title(self, is_rule_match: bool) -> str:
        return "Easter Egg!" if is_rule_match else "Tabby"


class GentlePersonality:
    """Only ever speaks at the mild level, whatever the configured level."""

    metadata = PersonalityMetadata(
        name="Gentle",
        description="Mild remarks only",
        level=HumorLevel.MILD,
        version="1.0.0",
    )
    levels: FrozenSet[HumorLevel] = frozenset({HumorLevel.MILD})

    def __init__(self, store: ContentStore) -> None:
        self._store = store

    def supports_level(self, level: HumorLevel) -> bool:
        return level in self.levels

    def regular_candidates(self, trigger: Trigger, level: HumorLevel) -> List[ContentEntry]:
        return self._store.query_by_trigger(HumorLevel.MILD, trigger.type)

    def rule_candidates(self, match: Match, level: HumorLevel) -> List[ContentEntry]:
        return self._store.query_by_rule_type(match.rule_type, HumorLevel.MILD)

    def notification_title(self, is_rule_match: bool) -> str:
        return "A small discovery" if is_rule_match else "Tabby"


PERSONALITIES: Dict[str, Callable[[ContentStore], Personality]] = {
    "passive_aggressive": PassiveAggressivePersonality,
    "gentle": GentlePersonality,
}


def build_personality(name: str, store: ContentStore) -> Personality:
    try:
        factory = PERSONALITIES[name]
    except KeyError:
        raise ValueError(
            f"Unknown personality {name!r}; expected one of {', '.join(sorted(PERSONALITIES))}"
        ) from None
    return factory(store)
