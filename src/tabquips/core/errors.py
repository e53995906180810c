"""Error taxonomy for the humor core.

Components raise these; the delivery orchestrator converts them into
``DeliveryResult`` statuses so nothing escapes into tab-management code.
"""

from __future__ import annotations

from typing import Iterable, List, Optional


class QuipEngineError(Exception):
    """Base class for every error raised by the core."""


class ContentStoreNotReadyError(QuipEngineError):
    def __init__(self, details: str = "Content store not initialized. Call initialize() first.") -> None:
        super().__init__(details)


class CatalogLoadError(QuipEngineError):
    """The catalog could not be read, parsed, or is structurally unusable."""

    def __init__(self, details: str, violations: Optional[Iterable[str]] = None) -> None:
        self.violations: List[str] = list(violations or [])
        message = details
        if self.violations:
            message = f"{details}: " + "; ".join(self.violations)
        super().__init__(message)


class DuplicateRuleError(QuipEngineError):
    def __init__(self, rule_id: str) -> None:
        self.rule_id = rule_id
        super().__init__(f"Rule with id {rule_id} already registered")


class InvalidConditionsError(QuipEngineError):
    def __init__(self, details: str, violations: Optional[Iterable[str]] = None) -> None:
        self.violations: List[str] = list(violations or [])
        super().__init__(details)


class NoRulesRegisteredError(QuipEngineError):
    def __init__(self) -> None:
        super().__init__("No rules registered; matching requires at least one rule")


class ConditionEvaluationError(QuipEngineError):
    """A single predicate could not be evaluated (bad pattern, unknown hook)."""

    def __init__(self, condition_name: str, details: str, rule_id: Optional[str] = None) -> None:
        self.condition_name = condition_name
        self.rule_id = rule_id
        super().__init__(f"{condition_name}: {details}")


class UnsupportedLevelError(QuipEngineError):
    def __init__(self, level: str, personality: str) -> None:
        self.level = level
        super().__init__(f"Personality {personality} does not support level {level}")
