from __future__ import annotations

import pytest

from tabquips.core.conditions import ConditionSet, Conditions, NumericRange
from tabquips.core.errors import (
    DuplicateRuleError,
    InvalidConditionsError,
    NoRulesRegisteredError,
)
from tabquips.core.models import ActiveTab, BrowserContext
from tabquips.core.rules_engine import Rule, RuleRegistry, build_rules


def _context(tab_count: int = 42, hour: int = 12) -> BrowserContext:
    return BrowserContext(
        tab_count=tab_count,
        active_tab=ActiveTab.from_url("https://stackoverflow.com/questions/1", "How to exit vim"),
        current_hour=hour,
    )


def _rule(rule_id: str, priority: int, conditions: ConditionSet) -> Rule:
    return Rule(id=rule_id, type=f"{rule_id}-type", priority=priority, conditions=conditions)


def test_highest_priority_wins_regardless_of_registration_order() -> None:
    for order in ((0, 1), (1, 0)):
        rules = [
            _rule("low", 25, Conditions.tab_count_range(1)),
            _rule("high", 100, Conditions.tab_count(42)),
        ]
        registry = RuleRegistry()
        for index in order:
            registry.register(rules[index])
        match = registry.match(_context())
        assert match is not None
        assert match.rule_id == "high"
        assert match.matched_conditions == ("tab_count",)


def test_equal_priority_keeps_registration_order() -> None:
    registry = RuleRegistry()
    registry.register(_rule("first", 50, Conditions.tab_count_range(1)))
    registry.register(_rule("second", 50, Conditions.tab_count_range(1)))
    assert [rule.id for rule in registry.all()] == ["first", "second"]
    assert registry.match(_context()).rule_id == "first"


def test_no_match_is_none_but_empty_registry_raises() -> None:
    registry = RuleRegistry()
    with pytest.raises(NoRulesRegisteredError):
        registry.match(_context())

    registry.register(_rule("never", 50, Conditions.tab_count(1000)))
    assert registry.match(_context()) is None


def test_duplicate_id_leaves_registry_unchanged() -> None:
    registry = RuleRegistry()
    registry.register(_rule("EE-001", 100, Conditions.tab_count(42)))
    with pytest.raises(DuplicateRuleError):
        registry.register(_rule("EE-001", 10, Conditions.tab_count(1)))
    assert len(registry) == 1
    assert registry.all()[0].priority == 100


def test_rule_without_conditions_is_rejected() -> None:
    registry = RuleRegistry()
    with pytest.raises(InvalidConditionsError):
        registry.register(_rule("empty", 50, ConditionSet()))
    assert len(registry) == 0


def test_bad_pattern_rule_is_skipped_and_others_still_match() -> None:
    registry = RuleRegistry()
    registry.register(_rule("broken", 100, ConditionSet(domain_regex="[oops")))
    registry.register(_rule("fine", 50, Conditions.domain("stackoverflow.com")))

    match = registry.match(_context())
    assert match is not None
    assert match.rule_id == "fine"
    assert [error.rule_id for error in registry.last_evaluation_errors] == ["broken"]


def test_rule_with_reserved_custom_check_still_matches() -> None:
    registry = RuleRegistry()
    registry.register(_rule("EE-001", 10, ConditionSet(tab_count=42, custom_check="future_hook")))

    match = registry.match(_context(tab_count=42))

    assert match is not None
    assert match.rule_id == "EE-001"
    assert registry.last_evaluation_errors == []


def test_rule_with_only_custom_check_is_rejected() -> None:
    registry = RuleRegistry()
    with pytest.raises(InvalidConditionsError):
        registry.register(_rule("hook-only", 50, Conditions.custom("future_hook")))
    with pytest.raises(InvalidConditionsError):
        build_rules([{"id": "hook-only", "type": "t", "conditions": {"custom_check": "future_hook"}}])


def test_build_rules_derives_priority_and_skips_disabled() -> None:
    rules = build_rules(
        [
            {"id": "a", "type": "t", "conditions": {"tab_count": 1}, "metadata": {"difficulty": "legendary"}},
            {"id": "b", "type": "t", "conditions": {"tab_count": 2}, "metadata": {"difficulty": "rare"}},
            {"id": "c", "type": "t", "conditions": {"tab_count": 3}},
            {"id": "d", "type": "t", "priority": 60, "conditions": {"tab_count": 4}},
            {"id": "e", "type": "t", "enabled": False, "conditions": {"tab_count": 5}},
        ]
    )
    assert [(rule.id, rule.priority) for rule in rules] == [("a", 100), ("b", 75), ("c", 25), ("d", 60)]


def test_build_rules_parses_ranges() -> None:
    (rule,) = build_rules([{"id": "hoard", "type": "t", "conditions": {"tab_count": {"min": 100}}}])
    assert rule.conditions.tab_count == NumericRange(min=100)


def test_clear_empties_registry() -> None:
    registry = RuleRegistry()
    assert registry.register_all(build_rules([{"id": "a", "type": "t", "conditions": {"tab_count": 1}}])) == 1
    registry.clear()
    assert len(registry) == 0
    registry.register(_rule("a", 10, Conditions.tab_count(1)))
