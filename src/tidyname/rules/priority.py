"""Order competing rules, pick a winner, and surface priority ties."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Union

from pydantic import BaseModel, Field

from tidyname.errors import ConditionError, RuleNotFoundError, RuleValidationError
from tidyname.files.models import FileDescriptor, UnifiedMetadata

from .evaluator import evaluate_rule
from .models import FilenamePatternRule, MetadataPatternRule, RuleRef

LOGGER = logging.getLogger(__name__)

AnyRule = Union[MetadataPatternRule, FilenamePatternRule]


class PriorityMode(str, Enum):
    """Policy for ordering metadata rules against filename rules."""

    COMBINED = "combined"
    METADATA_FIRST = "metadata-first"
    FILENAME_FIRST = "filename-first"


class CandidateStatus(str, Enum):
    """Outcome recorded for each rule walked during resolution."""

    WINNER = "winner"
    MATCHED_BUT_LOST = "matched_but_lost"
    NO_MATCH = "no_match"
    SKIPPED = "skipped"
    ERROR = "error"


class RuleCandidate(BaseModel):
    """A rule in evaluation order together with its outcome."""

    rule: RuleRef
    status: CandidateStatus
    reason: Optional[str] = None


class PriorityResolution(BaseModel):
    """Result of walking the ordered rule list for one file.

    Attributes:
        mode: Priority mode used to order the candidates.
        winner: First enabled rule that matched, if any.
        candidates: Every rule in evaluation order with its outcome.
    """

    mode: PriorityMode
    winner: Optional[Union[MetadataPatternRule, FilenamePatternRule]] = None
    candidates: List[RuleCandidate] = Field(default_factory=list)

    @property
    def matched_but_lost(self) -> List[RuleRef]:
        """Return rules that matched after the winner was chosen."""
        return [
            candidate.rule
            for candidate in self.candidates
            if candidate.status is CandidateStatus.MATCHED_BUT_LOST
        ]


class PriorityTie(BaseModel):
    """Two or more rules sharing the same numeric priority."""

    priority: int
    rules: List[RuleRef]


def _by_priority(rules: Iterable[AnyRule]) -> List[AnyRule]:
    return sorted(rules, key=lambda rule: -rule.priority)


def order_rules(
    metadata_rules: Sequence[MetadataPatternRule],
    filename_rules: Sequence[FilenamePatternRule],
    mode: PriorityMode = PriorityMode.COMBINED,
) -> List[AnyRule]:
    """Return the candidate list in evaluation order, highest priority first.

    Sorting is stable: in ``combined`` mode equal priorities keep metadata
    rules ahead of filename rules, each in configuration order.

    Args:
        metadata_rules: Configured metadata rules.
        filename_rules: Configured filename rules.
        mode: Priority mode to apply.

    Returns:
        List[AnyRule]: Rules of both kinds in evaluation order.
    """

    mode = PriorityMode(mode)
    if mode is PriorityMode.METADATA_FIRST:
        return _by_priority(metadata_rules) + _by_priority(filename_rules)
    if mode is PriorityMode.FILENAME_FIRST:
        return _by_priority(filename_rules) + _by_priority(metadata_rules)
    return _by_priority([*metadata_rules, *filename_rules])


def resolve_priority(
    file: FileDescriptor,
    metadata: UnifiedMetadata,
    metadata_rules: Sequence[MetadataPatternRule],
    filename_rules: Sequence[FilenamePatternRule],
    mode: PriorityMode = PriorityMode.COMBINED,
) -> PriorityResolution:
    """Select the winning rule for ``file``.

    Every rule is walked so later matches are reported as
    ``matched_but_lost``. A rule whose conditions cannot be evaluated is
    recorded with status ``error`` and never wins.

    Args:
        file: Descriptor of the file under evaluation.
        metadata: Metadata of the file.
        metadata_rules: Configured metadata rules.
        filename_rules: Configured filename rules.
        mode: Priority mode to apply.

    Returns:
        PriorityResolution: Winner (if any) and per-rule outcomes.
    """

    mode = PriorityMode(mode)
    winner: Optional[AnyRule] = None
    candidates: List[RuleCandidate] = []

    for rule in order_rules(metadata_rules, filename_rules, mode):
        ref = RuleRef.of(rule)
        if not rule.enabled:
            candidates.append(
                RuleCandidate(rule=ref, status=CandidateStatus.SKIPPED, reason="disabled")
            )
            continue

        try:
            matched = evaluate_rule(rule, file, metadata)
        except ConditionError as exc:
            LOGGER.warning("Rule %r could not be evaluated for %s: %s", rule.name, file.path, exc)
            candidates.append(
                RuleCandidate(rule=ref, status=CandidateStatus.ERROR, reason=str(exc))
            )
            continue

        if not matched:
            status = CandidateStatus.NO_MATCH
        elif winner is None:
            winner = rule
            status = CandidateStatus.WINNER
        else:
            status = CandidateStatus.MATCHED_BUT_LOST
        candidates.append(RuleCandidate(rule=ref, status=status))

    if winner is not None:
        LOGGER.debug("Rule %r selected for %s", winner.name, file.path)
    return PriorityResolution(mode=mode, winner=winner, candidates=candidates)


def detect_priority_ties(
    metadata_rules: Sequence[MetadataPatternRule],
    filename_rules: Sequence[FilenamePatternRule],
) -> List[PriorityTie]:
    """Group rules of both kinds by priority and report groups of two or more.

    Disabled rules are included. Ties are sorted by priority descending.
    """

    groups: Dict[int, List[RuleRef]] = {}
    for rule in order_rules(metadata_rules, filename_rules, PriorityMode.COMBINED):
        groups.setdefault(rule.priority, []).append(RuleRef.of(rule))

    ties = [
        PriorityTie(priority=priority, rules=rules)
        for priority, rules in groups.items()
        if len(rules) > 1
    ]
    return sorted(ties, key=lambda tie: -tie.priority)


# ---------------------------------------------------------------------- #
# Priority editing                                                       #
# ---------------------------------------------------------------------- #


def _with_priority(rule: AnyRule, priority: int, stamp: datetime) -> AnyRule:
    if rule.priority == priority:
        return rule
    return rule.model_copy(update={"priority": priority, "updated_at": stamp})


def set_rule_priority(
    metadata_rules: Sequence[MetadataPatternRule],
    filename_rules: Sequence[FilenamePatternRule],
    rule_id: str,
    priority: int,
) -> Tuple[List[MetadataPatternRule], List[FilenamePatternRule]]:
    """Return new rule lists with ``rule_id`` assigned ``priority``.

    Raises:
        RuleNotFoundError: If no rule of either kind has ``rule_id``.
    """

    stamp = datetime.now(timezone.utc)
    found = False
    updated_metadata: List[MetadataPatternRule] = []
    updated_filename: List[FilenamePatternRule] = []

    for rule in metadata_rules:
        if rule.id == rule_id:
            found = True
            rule = _with_priority(rule, priority, stamp)  # type: ignore[assignment]
        updated_metadata.append(rule)
    for rule in filename_rules:
        if rule.id == rule_id:
            found = True
            rule = _with_priority(rule, priority, stamp)  # type: ignore[assignment]
        updated_filename.append(rule)

    if not found:
        raise RuleNotFoundError(rule_id)
    return updated_metadata, updated_filename


def reorder_rules(
    metadata_rules: Sequence[MetadataPatternRule],
    filename_rules: Sequence[FilenamePatternRule],
    ordered_ids: Sequence[str],
) -> Tuple[List[MetadataPatternRule], List[FilenamePatternRule]]:
    """Assign priorities from an explicit ordering of rule ids.

    The first id receives ``len(ordered_ids) - 1`` and the last ``0``. Rules
    missing from ``ordered_ids`` are demoted to ``-1``.

    Raises:
        RuleValidationError: If ``ordered_ids`` contains duplicates.
        RuleNotFoundError: If an id does not match any rule.
    """

    if len(set(ordered_ids)) != len(ordered_ids):
        raise RuleValidationError(
            "Duplicate ids in rule order.", errors=[f"ordered_ids={list(ordered_ids)}"]
        )

    known = {rule.id for rule in metadata_rules} | {rule.id for rule in filename_rules}
    for rule_id in ordered_ids:
        if rule_id not in known:
            raise RuleNotFoundError(rule_id)

    total = len(ordered_ids)
    priorities = {rule_id: total - 1 - index for index, rule_id in enumerate(ordered_ids)}
    stamp = datetime.now(timezone.utc)

    updated_metadata = [
        _with_priority(rule, priorities.get(rule.id, -1), stamp) for rule in metadata_rules
    ]
    updated_filename = [
        _with_priority(rule, priorities.get(rule.id, -1), stamp) for rule in filename_rules
    ]
    return updated_metadata, updated_filename  # type: ignore[return-value]


__all__ = [
    "AnyRule",
    "PriorityMode",
    "CandidateStatus",
    "RuleCandidate",
    "PriorityResolution",
    "PriorityTie",
    "order_rules",
    "resolve_priority",
    "detect_priority_ties",
    "set_rule_priority",
    "reorder_rules",
]
