"""Evaluate metadata and filename rules against a single file."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timezone
from functools import lru_cache
from typing import Callable, List, Optional

from tidyname.errors import ConditionError
from tidyname.files.fields import get_field_value, field_value_to_string
from tidyname.files.models import FileDescriptor, UnifiedMetadata

from .glob import compile_glob
from .models import (
    FilenamePatternRule,
    MatchMode,
    MetadataPatternRule,
    RuleCondition,
    RuleOperator,
)


@dataclass(frozen=True)
class ConditionOutcome:
    """Result of evaluating one condition, kept for diagnostics."""

    field: str
    operator: str
    matched: bool
    actual_value: Optional[str]
    expected_value: Optional[str]
    error: Optional[str] = None


@lru_cache(maxsize=1000)
def _compile_regex(pattern: str, case_sensitive: bool) -> Optional[re.Pattern[str]]:
    try:
        return re.compile(pattern, 0 if case_sensitive else re.IGNORECASE)
    except re.error:
        return None


def _parse_number(value: str) -> Optional[float]:
    try:
        return float(value)
    except ValueError:
        return None


def _parse_date(value: str) -> Optional[datetime]:
    candidate = value.strip()
    if candidate.endswith("Z"):
        candidate = candidate[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(candidate)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _compare(actual: str, expected: str, check: Callable[[int], bool]) -> bool:
    """Order ``actual`` against ``expected`` numerically, then as ISO dates."""
    left_number, right_number = _parse_number(actual), _parse_number(expected)
    if left_number is not None and right_number is not None:
        return check((left_number > right_number) - (left_number < right_number))

    left_date, right_date = _parse_date(actual), _parse_date(expected)
    if left_date is not None and right_date is not None:
        return check((left_date > right_date) - (left_date < right_date))

    return False


def evaluate_condition(condition: RuleCondition, metadata: UnifiedMetadata) -> ConditionOutcome:
    """Evaluate ``condition`` against ``metadata``.

    A missing field (wrong metadata block or null value) never raises; it
    simply does not match, except for ``notExists``.

    Args:
        condition: Condition to evaluate.
        metadata: Metadata of the file under evaluation.

    Returns:
        ConditionOutcome: Whether the condition matched and the value observed.

    Raises:
        ConditionError: If a ``regex`` condition carries an invalid expression.
    """

    field = condition.field.value
    operator = condition.operator
    actual = field_value_to_string(get_field_value(metadata, condition.field))

    def outcome(matched: bool) -> ConditionOutcome:
        return ConditionOutcome(
            field=field,
            operator=operator.value,
            matched=matched,
            actual_value=actual,
            expected_value=condition.value,
        )

    if operator is RuleOperator.EXISTS:
        return outcome(actual is not None)
    if operator is RuleOperator.NOT_EXISTS:
        return outcome(actual is None)
    if actual is None:
        return outcome(False)

    expected = condition.value or ""
    if operator is RuleOperator.REGEX:
        regex = _compile_regex(expected, condition.case_sensitive)
        if regex is None:
            raise ConditionError(
                f"Invalid regex pattern: {expected}", field=field, kind="invalid_regex"
            )
        return outcome(regex.search(actual) is not None)

    if operator in (RuleOperator.GT, RuleOperator.GTE, RuleOperator.LT, RuleOperator.LTE):
        checks: dict[RuleOperator, Callable[[int], bool]] = {
            RuleOperator.GT: lambda order: order > 0,
            RuleOperator.GTE: lambda order: order >= 0,
            RuleOperator.LT: lambda order: order < 0,
            RuleOperator.LTE: lambda order: order <= 0,
        }
        return outcome(_compare(actual, expected, checks[operator]))

    left, right = actual, expected
    if not condition.case_sensitive:
        left, right = left.lower(), right.lower()
    if operator is RuleOperator.EQUALS:
        return outcome(left == right)
    if operator is RuleOperator.CONTAINS:
        return outcome(right in left)
    if operator is RuleOperator.STARTS_WITH:
        return outcome(left.startswith(right))
    if operator is RuleOperator.ENDS_WITH:
        return outcome(left.endswith(right))

    raise ConditionError(
        f"Unknown operator: {operator.value}", field=field, kind="invalid_operator"
    )


def evaluate_metadata_rule(rule: MetadataPatternRule, metadata: UnifiedMetadata) -> bool:
    """Return True when ``rule`` matches ``metadata``.

    ``all`` stops at the first failing condition and ``any`` at the first
    passing one. Condition errors are only raised when no short-circuit
    decided the result first. The ``enabled`` flag is not consulted here.

    Raises:
        ConditionError: If an unevaluable condition affects the outcome.
    """

    errors: List[ConditionError] = []
    stop_on = rule.match_mode is MatchMode.ANY

    for condition in rule.conditions:
        try:
            matched = evaluate_condition(condition, metadata).matched
        except ConditionError as exc:
            errors.append(exc)
            continue
        if matched is stop_on:
            return stop_on

    if errors:
        raise errors[0]
    return not stop_on


def explain_rule(rule: MetadataPatternRule, metadata: UnifiedMetadata) -> List[ConditionOutcome]:
    """Evaluate every condition of ``rule`` without short-circuiting."""
    outcomes: List[ConditionOutcome] = []
    for condition in rule.conditions:
        try:
            outcomes.append(evaluate_condition(condition, metadata))
        except ConditionError as exc:
            outcomes.append(
                ConditionOutcome(
                    field=condition.field.value,
                    operator=condition.operator.value,
                    matched=False,
                    actual_value=None,
                    expected_value=condition.value,
                    error=str(exc),
                )
            )
    return outcomes


def evaluate_filename_rule(rule: FilenamePatternRule, file: FileDescriptor) -> bool:
    """Return True when the file's full name matches the rule's glob pattern."""
    return compile_glob(rule.pattern, rule.case_sensitive).test(file.full_name)


def evaluate_rule(
    rule: MetadataPatternRule | FilenamePatternRule,
    file: FileDescriptor,
    metadata: UnifiedMetadata,
) -> bool:
    """Dispatch to the evaluator matching the rule variant."""
    if isinstance(rule, MetadataPatternRule):
        return evaluate_metadata_rule(rule, metadata)
    return evaluate_filename_rule(rule, file)


__all__ = [
    "ConditionOutcome",
    "evaluate_condition",
    "evaluate_metadata_rule",
    "evaluate_filename_rule",
    "evaluate_rule",
    "explain_rule",
]
