"""Rule models, glob matching, evaluation and priority resolution.

``RuleManager`` lives in ``tidyname.rules.manager`` because it depends on the
configuration models, which themselves import the rule models.
"""

from .evaluator import evaluate_rule, explain_rule
from .glob import compile_glob, filter_by_glob, match_glob, validate_glob_pattern
from .models import (
    FilenamePatternRule,
    MatchMode,
    MetadataPatternRule,
    RuleCondition,
    RuleOperator,
    RuleRef,
)
from .priority import PriorityMode, detect_priority_ties, order_rules, resolve_priority

__all__ = [
    "FilenamePatternRule",
    "MatchMode",
    "MetadataPatternRule",
    "PriorityMode",
    "RuleCondition",
    "RuleOperator",
    "RuleRef",
    "compile_glob",
    "detect_priority_ties",
    "evaluate_rule",
    "explain_rule",
    "filter_by_glob",
    "match_glob",
    "order_rules",
    "resolve_priority",
    "validate_glob_pattern",
]
