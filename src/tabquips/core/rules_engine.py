"""Rule registration and matching logic (core domain)."""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import Any, Iterable, List, Mapping, Optional

from tabquips.core.conditions import ConditionSet, evaluate_all
from tabquips.core.errors import (
    ConditionEvaluationError,
    DuplicateRuleError,
    InvalidConditionsError,
    NoRulesRegisteredError,
)
from tabquips.core.models import BrowserContext, Match

LOGGER = logging.getLogger(__name__)

# Catalog rules without an explicit priority inherit one from their difficulty.
DIFFICULTY_PRIORITY = {
    "legendary": 100,
    "rare": 75,
    "uncommon": 50,
    "common": 25,
}
DEFAULT_PRIORITY = DIFFICULTY_PRIORITY["common"]


@dataclass(frozen=True)
class Rule:
    """Easter-egg definition used by the registry."""

    id: str
    type: str
    priority: int
    conditions: ConditionSet
    metadata: Mapping[str, Any] = field(default_factory=dict)


def priority_for_difficulty(difficulty: Optional[str]) -> int:
    return DIFFICULTY_PRIORITY.get(difficulty or "", DEFAULT_PRIORITY)


def build_rules(rules_config: Iterable[Mapping[str, Any]]) -> List[Rule]:
    """Normalize rule configs into ``Rule`` objects.

    Disabled rules are skipped. A missing priority is derived from
    ``metadata.difficulty`` so catalogs can stay terse.
    """

    compiled: List[Rule] = []
    for rule in rules_config:
        if not rule.get("enabled", True):
            continue
        metadata = dict(rule.get("metadata") or {})
        priority = rule.get("priority")
        if priority is None:
            priority = priority_for_difficulty(metadata.get("difficulty"))
        compiled.append(
            Rule(
                id=rule["id"],
                type=rule["type"],
                priority=int(priority),
                conditions=ConditionSet.from_dict(rule.get("conditions") or {}),
                metadata=metadata,
            )
        )
    return compiled


class RuleRegistry:
    """Priority-ordered rule set with first-match-wins semantics.

    Rules are kept sorted by priority descending; ties keep insertion order
    because ``list.sort`` is stable and runs on every registration.
    """

    def __init__(self) -> None:
        self._rules: List[Rule] = []
        self._ids: set[str] = set()
        self.last_evaluation_errors: List[ConditionEvaluationError] = []

    def __len__(self) -> int:
        return len(self._rules)

    def register(self, rule: Rule) -> None:
        if rule.id in self._ids:
            raise DuplicateRuleError(rule.id)
        if rule.conditions.is_empty():
            raise InvalidConditionsError(
                f"Rule {rule.id} must have at least one condition",
                ["No conditions defined"],
            )
        self._ids.add(rule.id)
        self._rules.append(rule)
        self._rules.sort(key=lambda item: item.priority, reverse=True)

    def register_all(self, rules: Iterable[Rule]) -> int:
        count = 0
        for rule in rules:
            self.register(rule)
            count += 1
        return count

    def all(self) -> List[Rule]:
        return list(self._rules)

    def clear(self) -> None:
        self._rules.clear()
        self._ids.clear()
        self.last_evaluation_errors = []

    def match(self, context: BrowserContext) -> Optional[Match]:
        """Return the first satisfied rule in priority order, or ``None``.

        An empty registry is a configuration problem and raises
        ``NoRulesRegisteredError`` instead of looking like "no match".
        A rule whose predicates cannot be evaluated is logged and skipped.
        """

        if not self._rules:
            raise NoRulesRegisteredError()

        errors: List[ConditionEvaluationError] = []
        try:
            for rule in self._rules:
                try:
                    outcome = evaluate_all(context, rule.conditions)
                except ConditionEvaluationError as exc:
                    exc.rule_id = rule.id
                    errors.append(exc)
                    LOGGER.warning("Skipping rule %s: %s", rule.id, exc)
                    continue
                if outcome.matched:
                    return Match(
                        rule_id=rule.id,
                        rule_type=rule.type,
                        matched_conditions=outcome.matched_conditions,
                        priority=rule.priority,
                        metadata=rule.metadata,
                    )
            return None
        finally:
            self.last_evaluation_errors = errors
