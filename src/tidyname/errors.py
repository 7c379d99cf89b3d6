"""Exceptions raised by the rename preview engine."""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, Optional


class RenameError(Exception):
    """Base exception for rename resolution failures.

    Attributes:
        kind: Machine-readable identifier for the failure category.
    """

    kind = "rename_error"


class TemplateParseError(RenameError):
    """Raised when a template or folder pattern is syntactically malformed."""

    kind = "parse_error"

    def __init__(self, message: str, *, position: Optional[int] = None) -> None:
        super().__init__(message)
        self.position = position


class InvalidPatternError(RenameError):
    """Raised when a folder or glob pattern is empty or fails validation."""

    kind = "invalid_pattern"

    def __init__(self, message: str, *, errors: Iterable[str] = ()) -> None:
        super().__init__(message)
        self.errors = list(errors)


class InvalidFilenameError(RenameError):
    """Raised when a resolved name cannot be used as a filename."""

    kind = "invalid_filename"

    def __init__(self, message: str, *, name: str = "") -> None:
        super().__init__(message)
        self.name = name


class MissingMetadataError(RenameError):
    """Raised when required placeholders have neither a value nor a fallback."""

    kind = "missing_metadata"

    def __init__(self, missing_fields: Iterable[str]) -> None:
        self.missing_fields = list(dict.fromkeys(missing_fields))
        joined = ", ".join(self.missing_fields)
        super().__init__(f"Missing metadata for: {joined}")


class TemplateNotFoundError(RenameError):
    """Raised when a rule references a template id that does not exist."""

    kind = "template_not_found"

    def __init__(self, template_id: str) -> None:
        super().__init__(f"Template '{template_id}' does not exist.")
        self.template_id = template_id


class NoDefaultTemplateError(RenameError):
    """Raised when a preview is requested without a usable default template."""

    kind = "no_default_template"

    def __init__(self, message: str = "No default template is configured.") -> None:
        super().__init__(message)


class InvalidBaseDirectoryError(RenameError):
    """Raised when the organize base directory is empty or relative."""

    kind = "invalid_base_directory"

    def __init__(self, base_directory: str | Path) -> None:
        super().__init__(f"Base directory must be an absolute path, got {str(base_directory)!r}.")
        self.base_directory = str(base_directory)


class PreviewCancelledError(RenameError):
    """Raised when the caller aborts a preview between phases."""

    kind = "cancelled"

    def __init__(self, phase: str) -> None:
        super().__init__(f"Preview cancelled during {phase}.")
        self.phase = phase


class RuleError(RenameError):
    """Base exception for rule management and evaluation."""


class ConditionError(RuleError):
    """Raised when a rule condition cannot be evaluated."""

    def __init__(self, message: str, *, field: str, kind: str = "invalid_regex") -> None:
        super().__init__(message)
        self.field = field
        self.kind = kind


class RuleValidationError(RuleError):
    """Raised when a rule definition fails validation."""

    kind = "validation_failed"

    def __init__(self, message: str, *, errors: Iterable[str] = ()) -> None:
        super().__init__(message)
        self.errors = list(errors)


class DuplicateRuleNameError(RuleError):
    """Raised when a rule name is already taken (case-insensitive)."""

    kind = "duplicate_rule_name"

    def __init__(self, name: str) -> None:
        super().__init__(f"A rule named '{name}' already exists.")
        self.name = name


class RuleNotFoundError(RuleError):
    """Raised when a rule id cannot be located."""

    kind = "rule_not_found"

    def __init__(self, rule_id: str) -> None:
        super().__init__(f"Rule '{rule_id}' does not exist.")
        self.rule_id = rule_id


__all__ = [
    "RenameError",
    "TemplateParseError",
    "InvalidPatternError",
    "InvalidFilenameError",
    "MissingMetadataError",
    "TemplateNotFoundError",
    "NoDefaultTemplateError",
    "InvalidBaseDirectoryError",
    "PreviewCancelledError",
    "RuleError",
    "ConditionError",
    "RuleValidationError",
    "DuplicateRuleNameError",
    "RuleNotFoundError",
]
