"""Configuration models describing tidyname settings."""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from tidyname.organization.models import FolderStructure
from tidyname.rules.models import FilenamePatternRule, MetadataPatternRule
from tidyname.rules.priority import PriorityMode
from tidyname.templates.casing import CaseStyle
from tidyname.templates.models import Template


class TidynameBaseModel(BaseModel):
    """Shared configuration for tidyname settings models."""

    model_config = ConfigDict(extra="forbid")


def default_templates() -> List[Template]:
    """Return the templates shipped with a fresh configuration."""
    return [
        Template(
            id="date-original",
            name="Date + original name",
            pattern="{year}-{month}-{day}_{original}",
            description="Prefix the original name with the best known date.",
            is_default=True,
        ),
        Template(
            id="document",
            name="Document title",
            pattern="{title}_{author}",
            description="Title and author from PDF or Office properties.",
            file_types=["pdf", "doc", "docx", "odt", "xlsx", "pptx"],
        ),
        Template(
            id="photo",
            name="Photo with camera",
            pattern="{date}_{camera}_{name}",
            description="Capture date and camera model from EXIF.",
            file_types=["jpg", "jpeg", "png", "heic", "heif", "tiff", "webp"],
        ),
    ]


class Preferences(TidynameBaseModel):
    """Naming and rule-evaluation preferences.

    Attributes:
        rule_priority_mode: How metadata and filename rules are interleaved.
        case_normalization: Case style applied to every proposed stem.
        conflict_case_sensitive: Whether destinations differing only in case
            are treated as distinct during conflict detection.
        default_template_id: Template used when no rule matches; when unset
            the first template flagged ``is_default`` is used.
        include_extension: Whether the original extension is appended.
        sanitize_filenames: Whether resolved names are sanitized.
        llm_confidence_threshold: Minimum confidence for an AI name suggestion.
    """

    rule_priority_mode: PriorityMode = PriorityMode.COMBINED
    case_normalization: CaseStyle = CaseStyle.NONE
    conflict_case_sensitive: bool = False
    default_template_id: Optional[str] = None
    include_extension: bool = True
    sanitize_filenames: bool = True
    llm_confidence_threshold: float = Field(default=0.7, ge=0.0, le=1.0)


class LoggingSettings(TidynameBaseModel):
    """Runtime logging configuration.

    Attributes:
        level: Logging verbosity level.
        file: Optional log file; rotated when set.
        max_size_mb: Maximum log size before rotation.
        backup_count: Number of historical log files to retain.
    """

    level: str = "WARNING"
    file: Optional[str] = None
    max_size_mb: int = Field(default=10, ge=1)
    backup_count: int = Field(default=5, ge=0)


class CLIOptions(TidynameBaseModel):
    """CLI behavior defaults.

    Attributes:
        quiet_default: Whether commands suppress non-error output by default.
        summary_default: Whether commands only print summary lines by default.
    """

    quiet_default: bool = False
    summary_default: bool = False


class AppConfig(TidynameBaseModel):
    """Top-level configuration for tidyname.

    Attributes:
        templates: Named filename templates.
        metadata_rules: Rules matching on extracted metadata.
        filename_rules: Rules matching file names with globs.
        folder_structures: Folder patterns used in organize mode.
        preferences: Naming preferences.
        logging: Logging configuration.
        cli: CLI presentation defaults.
    """

    templates: List[Template] = Field(default_factory=default_templates)
    metadata_rules: List[MetadataPatternRule] = Field(default_factory=list)
    filename_rules: List[FilenamePatternRule] = Field(default_factory=list)
    folder_structures: List[FolderStructure] = Field(default_factory=list)
    preferences: Preferences = Field(default_factory=Preferences)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    cli: CLIOptions = Field(default_factory=CLIOptions)

    @model_validator(mode="after")
    def _unique_template_ids(self) -> "AppConfig":
        seen: set[str] = set()
        for template in self.templates:
            if template.id in seen:
                raise ValueError(f"Duplicate template id: {template.id}")
            seen.add(template.id)
        return self

    def find_template(self, template_id: Optional[str]) -> Optional[Template]:
        """Return the template with ``template_id``, if any."""
        if template_id is None:
            return None
        return next((t for t in self.templates if t.id == template_id), None)

    def default_template(self) -> Optional[Template]:
        """Return the configured default template, if one exists."""
        if self.preferences.default_template_id is not None:
            return self.find_template(self.preferences.default_template_id)
        return next((t for t in self.templates if t.is_default), None)

    def find_folder_structure(self, structure_id: Optional[str]) -> Optional[FolderStructure]:
        """Return the folder structure with ``structure_id``, if any."""
        if structure_id is None:
            return None
        return next((s for s in self.folder_structures if s.id == structure_id), None)


__all__ = [
    "TidynameBaseModel",
    "default_templates",
    "Preferences",
    "LoggingSettings",
    "CLIOptions",
    "AppConfig",
]
