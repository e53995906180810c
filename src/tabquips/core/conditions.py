"""Condition evaluation for easter-egg rules (core domain).

Every function here is pure: no I/O and no state beyond a compiled-pattern
cache. A condition set is AND-combined; a predicate that is absent does not
participate in the decision.
"""

from __future__ import annotations

from dataclasses import dataclass, fields, replace
from functools import lru_cache
import re
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple, Union

from tabquips.core.errors import ConditionEvaluationError, InvalidConditionsError
from tabquips.core.models import ActiveTab, BrowserContext


@dataclass(frozen=True)
class NumericRange:
    """Inclusive range; either bound may be omitted."""

    min: Optional[int] = None
    max: Optional[int] = None


NumericSpec = Union[int, NumericRange]


@dataclass(frozen=True)
class HourRange:
    start: int
    end: int


@dataclass(frozen=True)
class ConditionSet:
    """Optional predicates, all of which must hold for a rule to match."""

    tab_count: Optional[NumericSpec] = None
    domain_regex: Optional[str] = None
    hour_range: Optional[HourRange] = None
    title_contains: Optional[str] = None
    url_contains: Optional[str] = None
    group_count: Optional[NumericSpec] = None
    custom_check: Optional[str] = None

    def present(self) -> List[str]:
        """Names of predicates that are set, in evaluation order."""

        return [item.name for item in fields(self) if getattr(self, item.name) is not None]

    def is_empty(self) -> bool:
        """True when nothing would take part in matching; custom_check alone counts as empty."""

        return not [name for name in self.present() if name in EVALUATED_KEYS]

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "ConditionSet":
        violations = validate_conditions(raw)
        if violations:
            raise InvalidConditionsError("Invalid rule conditions", violations)
        hour_range = raw.get("hour_range")
        return cls(
            tab_count=_numeric_from_raw(raw.get("tab_count")),
            domain_regex=raw.get("domain_regex"),
            hour_range=HourRange(hour_range["start"], hour_range["end"]) if hour_range else None,
            title_contains=raw.get("title_contains"),
            url_contains=raw.get("url_contains"),
            group_count=_numeric_from_raw(raw.get("group_count")),
            custom_check=raw.get("custom_check"),
        )

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {}
        for name in self.present():
            value = getattr(self, name)
            if isinstance(value, NumericRange):
                result[name] = {key: bound for key, bound in (("min", value.min), ("max", value.max)) if bound is not None}
            elif isinstance(value, HourRange):
                result[name] = {"start": value.start, "end": value.end}
            else:
                result[name] = value
        return result


@dataclass(frozen=True)
class EvaluationOutcome:
    matched: bool
    matched_conditions: Tuple[str, ...]


CONDITION_KEYS = tuple(item.name for item in fields(ConditionSet))
# Predicates that take part in matching; a rule needs at least one of them.
EVALUATED_KEYS = tuple(key for key in CONDITION_KEYS if key != "custom_check")
_NUMERIC_KEYS = ("tab_count", "group_count")
_TEXT_KEYS = ("domain_regex", "title_contains", "url_contains", "custom_check")


def _numeric_from_raw(raw: Any) -> Optional[NumericSpec]:
    if raw is None:
        return None
    if isinstance(raw, int):
        return raw
    return NumericRange(min=raw.get("min"), max=raw.get("max"))


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def validate_conditions(raw: Any) -> List[str]:
    """Return every schema violation in a raw condition mapping."""

    if not isinstance(raw, Mapping):
        return ["conditions must be an object"]

    violations: List[str] = []
    unknown = sorted(set(raw) - set(CONDITION_KEYS))
    for key in unknown:
        violations.append(f"unknown condition '{key}'")
    if not any(raw.get(key) is not None for key in EVALUATED_KEYS):
        violations.append("at least one condition is required")

    for key in _NUMERIC_KEYS:
        value = raw.get(key)
        if value is None:
            continue
        if _is_int(value):
            if value < 0:
                violations.append(f"{key} must be >= 0")
            continue
        if not isinstance(value, Mapping):
            violations.append(f"{key} must be an integer or a {{min, max}} object")
            continue
        extra = sorted(set(value) - {"min", "max"})
        if extra:
            violations.append(f"{key} has unknown bound(s): {', '.join(extra)}")
        low, high = value.get("min"), value.get("max")
        if low is None and high is None:
            violations.append(f"{key} range needs min or max")
        for bound_name, bound in (("min", low), ("max", high)):
            if bound is not None and not _is_int(bound):
                violations.append(f"{key}.{bound_name} must be an integer")
        if _is_int(low) and _is_int(high) and low > high:
            violations.append(f"{key}.min must not exceed {key}.max")

    hour_range = raw.get("hour_range")
    if hour_range is not None:
        if not isinstance(hour_range, Mapping) or "start" not in hour_range or "end" not in hour_range:
            violations.append("hour_range must be a {start, end} object")
        else:
            for bound_name in ("start", "end"):
                bound = hour_range[bound_name]
                if not _is_int(bound) or not 0 <= bound <= 23:
                    violations.append(f"hour_range.{bound_name} must be an hour between 0 and 23")

    for key in _TEXT_KEYS:
        value = raw.get(key)
        if value is not None and (not isinstance(value, str) or not value):
            violations.append(f"{key} must be a non-empty string")

    pattern = raw.get("domain_regex")
    if isinstance(pattern, str) and pattern:
        try:
            re.compile(pattern)
        except re.error as exc:
            violations.append(f"domain_regex is not a valid pattern: {exc}")

    return violations


def evaluate_numeric(actual: int, expected: NumericSpec) -> bool:
    """Exact equality for an int, inclusive bounds for a range."""

    if isinstance(expected, NumericRange):
        if expected.min is not None and actual < expected.min:
            return False
        if expected.max is not None and actual > expected.max:
            return False
        return True
    return actual == expected


def evaluate_hour_range(hour: int, hour_range: HourRange) -> bool:
    """Inclusive hour check; ``start > end`` spans midnight."""

    start, end = hour_range.start, hour_range.end
    if start <= end:
        return start <= hour <= end
    return hour >= start or hour <= end


@lru_cache(maxsize=256)
def _compile_domain_pattern(pattern: str) -> re.Pattern:
    return re.compile(pattern, re.IGNORECASE)


def evaluate_domain(active_tab: Optional[ActiveTab], pattern: str) -> bool:
    if active_tab is None:
        return False
    try:
        compiled = _compile_domain_pattern(pattern)
    except re.error as exc:
        raise ConditionEvaluationError("domain_regex", f"invalid pattern {pattern!r}: {exc}") from exc
    return compiled.search(active_tab.domain) is not None


def evaluate_title_contains(active_tab: Optional[ActiveTab], substring: str) -> bool:
    if active_tab is None:
        return False
    return substring.lower() in active_tab.title.lower()


def evaluate_url_contains(active_tab: Optional[ActiveTab], substring: str) -> bool:
    if active_tab is None:
        return False
    return substring.lower() in active_tab.url.lower()


_Evaluator = Callable[[BrowserContext, Any], bool]

# Evaluation order; the first failing predicate short-circuits the rest.
# custom_check is a reserved hook: it is validated and stored, never evaluated.
_EVALUATORS: Tuple[Tuple[str, _Evaluator], ...] = (
    ("tab_count", lambda ctx, expected: evaluate_numeric(ctx.tab_count, expected)),
    ("domain_regex", lambda ctx, pattern: evaluate_domain(ctx.active_tab, pattern)),
    ("hour_range", lambda ctx, hours: evaluate_hour_range(ctx.current_hour, hours)),
    ("title_contains", lambda ctx, text: evaluate_title_contains(ctx.active_tab, text)),
    ("url_contains", lambda ctx, text: evaluate_url_contains(ctx.active_tab, text)),
    ("group_count", lambda ctx, expected: evaluate_numeric(ctx.group_count, expected)),
)


def evaluate_all(context: BrowserContext, conditions: ConditionSet) -> EvaluationOutcome:
    """AND-combine every present predicate.

    Returns the names of predicates that were present and passed. Raises
    ``ConditionEvaluationError`` when a predicate cannot be evaluated.
    """

    matched: List[str] = []
    for name, evaluator in _EVALUATORS:
        value = getattr(conditions, name)
        if value is None:
            continue
        if not evaluator(context, value):
            return EvaluationOutcome(matched=False, matched_conditions=tuple(matched))
        matched.append(name)
    return EvaluationOutcome(matched=True, matched_conditions=tuple(matched))


class Conditions:
    """Factories for building condition sets in code.

    ``Conditions.combine(Conditions.domain("reddit.com"), Conditions.tab_count_range(10))``
    matches reddit with at least ten tabs open.
    """

    @staticmethod
    def tab_count(count: int) -> ConditionSet:
        return ConditionSet(tab_count=count)

    @staticmethod
    def tab_count_range(minimum: int, maximum: Optional[int] = None) -> ConditionSet:
        return ConditionSet(tab_count=NumericRange(min=minimum, max=maximum))

    @staticmethod
    def domain(domain: str) -> ConditionSet:
        return ConditionSet(domain_regex=_escape_domain(domain))

    @staticmethod
    def domains(*domains: str) -> ConditionSet:
        """Match any of the given domains."""

        return ConditionSet(domain_regex="|".join(_escape_domain(item) for item in domains))

    @staticmethod
    def time_range(start: int, end: int) -> ConditionSet:
        if not (0 <= start <= 23 and 0 <= end <= 23):
            raise ValueError("Hour must be between 0 and 23")
        return ConditionSet(hour_range=HourRange(start, end))

    @staticmethod
    def title_contains(text: str) -> ConditionSet:
        return ConditionSet(title_contains=text)

    @staticmethod
    def url_contains(text: str) -> ConditionSet:
        return ConditionSet(url_contains=text)

    @staticmethod
    def group_count(count: int) -> ConditionSet:
        return ConditionSet(group_count=count)

    @staticmethod
    def group_count_range(minimum: int, maximum: Optional[int] = None) -> ConditionSet:
        return ConditionSet(group_count=NumericRange(min=minimum, max=maximum))

    @staticmethod
    def custom(check_name: str) -> ConditionSet:
        return ConditionSet(custom_check=check_name)

    @staticmethod
    def combine(*condition_sets: ConditionSet) -> ConditionSet:
        """Merge several sets into one (AND); later sets win on overlap."""

        combined = ConditionSet()
        for item in condition_sets:
            overrides = {name: getattr(item, name) for name in item.present()}
            combined = replace(combined, **overrides)
        return combined


def _escape_domain(domain: str) -> str:
    return domain.replace(".", "\\.")
