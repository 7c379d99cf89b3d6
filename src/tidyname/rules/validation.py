"""Pattern checks shared by the rule manager and the configuration loader."""

from __future__ import annotations

import re
from typing import List, Union

from .glob import validate_glob_pattern
from .models import FilenamePatternRule, MetadataPatternRule, RuleOperator


def rule_pattern_problems(rule: Union[MetadataPatternRule, FilenamePatternRule]) -> List[str]:
    """Return problems with the regexes or glob pattern of ``rule``.

    Each entry is prefixed with the offending field, e.g.
    ``conditions[1].value: invalid regex (...)`` or ``pattern: ...``.
    """

    if isinstance(rule, FilenamePatternRule):
        return [f"pattern: {problem}" for problem in validate_glob_pattern(rule.pattern)]

    problems: List[str] = []
    for index, condition in enumerate(rule.conditions):
        if condition.operator is not RuleOperator.REGEX or condition.value is None:
            continue
        try:
            re.compile(condition.value)
        except re.error as exc:
            problems.append(f"conditions[{index}].value: invalid regex ({exc})")
    return problems


__all__ = ["rule_pattern_problems"]
