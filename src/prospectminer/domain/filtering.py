"""Rule-driven exclusion of leads.

``evaluate`` is a pure function: first match wins, in this order

1. an exclusion reason already on the lead (absorbing),
2. a source tag matching an excluded category,
3. an excluded keyword inside the business name,
4. the first custom rule whose predicate matches.

``decide`` adds the cooldown hold on top, which keeps "rejected" apart from
"not yet eligible".
"""

from __future__ import annotations

import operator
import re
from dataclasses import dataclass
from enum import StrEnum
from logging import getLogger
from typing import TYPE_CHECKING

from prospectminer.domain.fields import field_value
from prospectminer.domain.model import ExclusionReason, FilterOperator

if TYPE_CHECKING:
    from collections.abc import Callable
    from datetime import datetime

    from prospectminer.domain.fields import FieldValue
    from prospectminer.domain.model import Lead
    from prospectminer.domain.settings import FilterRule, FilterSettings

log = getLogger(__name__)


class FilterOutcome(StrEnum):
    PASS = "pass"
    EXCLUDE = "exclude"
    HOLD = "hold"


@dataclass(frozen=True, slots=True)
class FilterVerdict:
    outcome: FilterOutcome
    reason: ExclusionReason | None = None


def _is_number(value: object) -> bool:
    return isinstance(value, int | float) and not isinstance(value, bool)


def _compare_numbers(
    value: FieldValue, expected: object, compare: Callable[[float, float], bool]
) -> bool:
    if _is_number(value) and _is_number(expected):
        return compare(value, expected)  # type: ignore[arg-type]
    return False


def _compare_equal(value: FieldValue, expected: object) -> bool:
    # collections never compare equal to a scalar rule value
    if isinstance(value, list | dict):
        return False
    return value == expected


def _regex_matches(value: FieldValue, pattern: object) -> bool:
    if not isinstance(value, str):
        return False
    try:
        compiled = re.compile(str(pattern))
    except re.error:
        log.warning("Invalid regex in filter rule: %s", pattern)
        return False
    return compiled.search(value) is not None


def matches_rule(lead: Lead, rule: FilterRule) -> bool:
    """Return whether ``rule`` fires for ``lead``."""

    value = field_value(lead, rule.field)
    expected = rule.value

    match rule.operator:
        case FilterOperator.EQUALS:
            return _compare_equal(value, expected)
        case FilterOperator.NOT_EQUALS:
            return not _compare_equal(value, expected)
        case FilterOperator.CONTAINS:
            return isinstance(value, str) and str(expected).lower() in value.lower()
        case FilterOperator.NOT_CONTAINS:
            return isinstance(value, str) and str(expected).lower() not in value.lower()
        case FilterOperator.GREATER_THAN:
            return _compare_numbers(value, expected, operator.gt)
        case FilterOperator.LESS_THAN:
            return _compare_numbers(value, expected, operator.lt)
        case FilterOperator.IS_NULL:
            return value is None
        case FilterOperator.NOT_NULL:
            return value is not None
        case FilterOperator.REGEX:
            return _regex_matches(value, expected)


def evaluate(lead: Lead, settings: FilterSettings) -> ExclusionReason | None:
    """Return the exclusion reason for ``lead`` or ``None`` if it passes."""

    if lead.excluded_reason is not None:
        return lead.excluded_reason

    excluded_categories = {category.lower() for category in settings.exclude_categories}
    if any(tag.lower() in excluded_categories for tag in lead.source_metadata.tags):
        return ExclusionReason.BAD_FIT

    name = lead.business_name.lower()
    if any(keyword.lower() in name for keyword in settings.exclude_keywords):
        return ExclusionReason.BAD_FIT

    for rule in settings.rules:
        if matches_rule(lead, rule):
            return rule.reason

    return None


def decide(lead: Lead, settings: FilterSettings, *, now: datetime) -> FilterVerdict:
    reason = evaluate(lead, settings)
    if reason is not None:
        return FilterVerdict(outcome=FilterOutcome.EXCLUDE, reason=reason)
    if lead.cooldown_active(now):
        return FilterVerdict(outcome=FilterOutcome.HOLD)
    return FilterVerdict(outcome=FilterOutcome.PASS)
