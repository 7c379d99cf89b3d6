"""Rule definitions that select a template for matching files."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

from tidyname.files.fields import MetadataField


def _new_id() -> str:
    return str(uuid.uuid4())


def _now() -> datetime:
    return datetime.now(timezone.utc)


class RuleModel(BaseModel):
    """Shared configuration for rule models."""

    model_config = ConfigDict(extra="forbid")


class RuleOperator(str, Enum):
    """Comparison applied by a metadata condition."""

    EQUALS = "equals"
    CONTAINS = "contains"
    STARTS_WITH = "startsWith"
    ENDS_WITH = "endsWith"
    REGEX = "regex"
    EXISTS = "exists"
    NOT_EXISTS = "notExists"
    GT = "gt"
    GTE = "gte"
    LT = "lt"
    LTE = "lte"

    @property
    def requires_value(self) -> bool:
        """Return True when the operator compares against a value."""
        return self not in (RuleOperator.EXISTS, RuleOperator.NOT_EXISTS)


class MatchMode(str, Enum):
    """How the conditions of a metadata rule combine."""

    ALL = "all"
    ANY = "any"


class RuleKind(str, Enum):
    """Discriminator for the two rule variants."""

    METADATA = "metadata"
    FILENAME = "filename"


class RuleCondition(RuleModel):
    """A single field comparison.

    Attributes:
        field: Dotted metadata field path.
        operator: Comparison to apply.
        value: Value to compare against; omitted for existence checks.
        case_sensitive: Whether string comparisons respect case.
    """

    model_config = ConfigDict(extra="forbid", coerce_numbers_to_str=True)

    field: MetadataField
    operator: RuleOperator
    value: Optional[str] = None
    case_sensitive: bool = False

    @model_validator(mode="after")
    def _value_for_operator(self) -> "RuleCondition":
        if self.operator.requires_value and self.value is None:
            raise ValueError(f"Operator '{self.operator.value}' requires a value.")
        return self


class BaseRule(RuleModel):
    """Fields shared by metadata and filename rules.

    Attributes:
        id: Unique identifier.
        name: Display name, unique across rules (case-insensitive).
        description: Optional free-form description.
        template_id: Template applied when the rule wins.
        folder_structure_id: Folder structure used in organize mode.
        priority: Higher values are evaluated first.
        enabled: Disabled rules are skipped during evaluation.
        created_at: Creation timestamp.
        updated_at: Last update timestamp.
    """

    id: str = Field(default_factory=_new_id)
    name: str = Field(min_length=1, max_length=100)
    description: Optional[str] = None
    template_id: str
    folder_structure_id: Optional[str] = None
    priority: int = 0
    enabled: bool = True
    created_at: datetime = Field(default_factory=_now)
    updated_at: datetime = Field(default_factory=_now)


class MetadataPatternRule(BaseRule):
    """Rule matching files through metadata conditions."""

    kind: Literal["metadata"] = "metadata"
    conditions: List[RuleCondition] = Field(min_length=1)
    match_mode: MatchMode = MatchMode.ALL


class FilenamePatternRule(BaseRule):
    """Rule matching files whose full name matches a glob pattern."""

    kind: Literal["filename"] = "filename"
    pattern: str = Field(min_length=1)
    case_sensitive: bool = False


Rule = Annotated[Union[MetadataPatternRule, FilenamePatternRule], Field(discriminator="kind")]


class RuleRef(RuleModel):
    """Lightweight reference to a rule used in diagnostics and proposals."""

    id: str
    name: str
    kind: RuleKind
    priority: int = 0

    @classmethod
    def of(cls, rule: MetadataPatternRule | FilenamePatternRule) -> "RuleRef":
        return cls(id=rule.id, name=rule.name, kind=RuleKind(rule.kind), priority=rule.priority)


__all__ = [
    "RuleOperator",
    "MatchMode",
    "RuleKind",
    "RuleCondition",
    "BaseRule",
    "MetadataPatternRule",
    "FilenamePatternRule",
    "Rule",
    "RuleRef",
]
