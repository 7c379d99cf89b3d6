"""Folder structure and rename preview data models."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from tidyname.rules.models import RuleRef
from tidyname.templates.models import ResolvedPlaceholder


class FolderStructure(BaseModel):
    """A named folder pattern used in organize mode.

    Attributes:
        id: Unique identifier referenced by rules.
        name: Display name.
        pattern: Folder pattern such as ``{year}/{month}``.
        description: Optional description.
        enabled: Disabled structures are ignored by the planner.
        priority: Ordering hint for display.
    """

    model_config = ConfigDict(extra="forbid")

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    name: str = Field(min_length=1)
    pattern: str
    description: Optional[str] = None
    enabled: bool = True
    priority: int = 0
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class FolderPatternValidation(BaseModel):
    """Outcome of validating a folder pattern."""

    valid: bool
    errors: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    placeholders: List[str] = Field(default_factory=list)
    normalized_pattern: str = ""


class FolderResolution(BaseModel):
    """Relative folder path resolved for one file.

    Attributes:
        resolved_path: Normalized relative path, without leading or trailing slash.
        resolved_placeholders: Value chosen for each placeholder.
        missing_placeholders: Placeholders that resolved to nothing.
        used_fallbacks: Whether any caller-supplied fallback was used.
    """

    resolved_path: str
    resolved_placeholders: Dict[str, ResolvedPlaceholder] = Field(default_factory=dict)
    missing_placeholders: List[str] = Field(default_factory=list)
    used_fallbacks: bool = False


class RenameStatus(str, Enum):
    """Classification of a rename proposal."""

    READY = "ready"
    CONFLICT = "conflict"
    MISSING_DATA = "missing-data"
    NO_CHANGE = "no-change"
    INVALID_NAME = "invalid-name"


class TemplateSource(str, Enum):
    """Where the template behind a proposal came from."""

    RULE = "rule"
    DEFAULT = "default"
    FALLBACK = "fallback"
    LLM = "llm"


class IssueSeverity(str, Enum):
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


class RenameIssue(BaseModel):
    """Diagnostic attached to a proposal."""

    code: str
    message: str
    severity: IssueSeverity = IssueSeverity.WARNING
    field: Optional[str] = None


class RenameProposal(BaseModel):
    """Computed rename or move for one file.

    Attributes:
        id: Unique identifier within the preview.
        original_path: Current path of the file.
        original_name: Current full name of the file.
        proposed_name: Proposed full name.
        proposed_path: Proposed full path.
        status: Classification of the proposal.
        issues: Diagnostics gathered while resolving.
        template_source: Where the template came from.
        template_id: Template used, when any.
        applied_rule: Winning rule; present exactly when the source is ``rule``.
        is_move_operation: Whether the proposal changes the directory.
        folder_structure_id: Folder structure applied in organize mode.
        placeholders: Placeholder values and their sources.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    original_path: Path
    original_name: str
    proposed_name: str
    proposed_path: Path
    status: RenameStatus
    issues: List[RenameIssue] = Field(default_factory=list)
    template_source: TemplateSource
    template_id: Optional[str] = None
    applied_rule: Optional[RuleRef] = None
    is_move_operation: bool = False
    folder_structure_id: Optional[str] = None
    placeholders: List[ResolvedPlaceholder] = Field(default_factory=list)

    @model_validator(mode="after")
    def _rule_source_consistency(self) -> "RenameProposal":
        if (self.template_source is TemplateSource.RULE) != (self.applied_rule is not None):
            raise ValueError("applied_rule must be set exactly when template_source is 'rule'.")
        return self


class PreviewSummary(BaseModel):
    """Aggregate counts over a preview batch."""

    total: int = 0
    ready: int = 0
    conflicts: int = 0
    missing_data: int = 0
    no_change: int = 0
    invalid_name: int = 0
    move_operations: int = 0
    rename_only: int = 0
    llm_suggested: int = 0

    @classmethod
    def from_proposals(cls, proposals: List[RenameProposal]) -> "PreviewSummary":
        counts = {status: 0 for status in RenameStatus}
        for proposal in proposals:
            counts[proposal.status] += 1
        moves = sum(1 for proposal in proposals if proposal.is_move_operation)
        return cls(
            total=len(proposals),
            ready=counts[RenameStatus.READY],
            conflicts=counts[RenameStatus.CONFLICT],
            missing_data=counts[RenameStatus.MISSING_DATA],
            no_change=counts[RenameStatus.NO_CHANGE],
            invalid_name=counts[RenameStatus.INVALID_NAME],
            move_operations=moves,
            rename_only=len(proposals) - moves,
            llm_suggested=sum(
                1 for proposal in proposals if proposal.template_source is TemplateSource.LLM
            ),
        )


class RenamePreview(BaseModel):
    """Proposals for a batch plus their summary."""

    proposals: List[RenameProposal] = Field(default_factory=list)
    summary: PreviewSummary = Field(default_factory=PreviewSummary)
    generated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class LLMSuggestion(BaseModel):
    """Precomputed name suggestion for a file."""

    suggested_name: str = Field(min_length=1)
    confidence: float = Field(ge=0.0, le=1.0)
    reasoning: Optional[str] = None


__all__ = [
    "FolderStructure",
    "FolderPatternValidation",
    "FolderResolution",
    "RenameStatus",
    "TemplateSource",
    "IssueSeverity",
    "RenameIssue",
    "RenameProposal",
    "PreviewSummary",
    "RenamePreview",
    "LLMSuggestion",
]
