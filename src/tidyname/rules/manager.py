"""Create, update and remove rules stored in the application config."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, List, Optional, Sequence

from pydantic import ValidationError

from tidyname.config.models import AppConfig
from tidyname.errors import (
    DuplicateRuleNameError,
    RuleNotFoundError,
    RuleValidationError,
    TemplateNotFoundError,
)

from .models import FilenamePatternRule, MetadataPatternRule
from .priority import AnyRule, reorder_rules, set_rule_priority
from .validation import rule_pattern_problems

LOGGER = logging.getLogger(__name__)


def validate_rule(rule: AnyRule, config: AppConfig) -> List[str]:
    """Return validation problems for ``rule`` that the model cannot catch itself.

    Template existence is not reported here; see ``RuleManager``.
    """

    problems = rule_pattern_problems(rule)
    if (
        rule.folder_structure_id is not None
        and config.find_folder_structure(rule.folder_structure_id) is None
    ):
        problems.append(f"folder_structure_id: unknown folder structure {rule.folder_structure_id}")
    return problems


class RuleManager:
    """Apply rule edits to an ``AppConfig`` and return the updated config.

    The manager never mutates the config it was given.
    """

    def __init__(self, config: AppConfig) -> None:
        self.config = config

    @property
    def rules(self) -> List[AnyRule]:
        return [*self.config.metadata_rules, *self.config.filename_rules]

    def get(self, rule_id: str) -> AnyRule:
        """Return the rule with ``rule_id``.

        Raises:
            RuleNotFoundError: If no rule has ``rule_id``.
        """

        for rule in self.rules:
            if rule.id == rule_id:
                return rule
        raise RuleNotFoundError(rule_id)

    def add(self, rule: AnyRule) -> AppConfig:
        """Return a config with ``rule`` appended to its kind's list.

        Raises:
            DuplicateRuleNameError: If another rule already uses the name.
            TemplateNotFoundError: If the referenced template does not exist.
            RuleValidationError: If a regex, glob or folder reference is invalid.
        """

        self._check(rule)
        if isinstance(rule, MetadataPatternRule):
            update: dict[str, Any] = {"metadata_rules": [*self.config.metadata_rules, rule]}
        else:
            update = {"filename_rules": [*self.config.filename_rules, rule]}
        LOGGER.debug("Adding %s rule %r", rule.kind, rule.name)
        return self.config.model_copy(update=update)

    def update(self, rule_id: str, **changes: Any) -> AppConfig:
        """Return a config where ``rule_id`` has ``changes`` applied.

        Raises:
            RuleNotFoundError: If no rule has ``rule_id``.
            RuleValidationError: If the updated rule is invalid.
        """

        current = self.get(rule_id)
        changes.pop("id", None)
        changes.pop("kind", None)
        data = {**current.model_dump(), **changes, "updated_at": datetime.now(timezone.utc)}
        try:
            updated: AnyRule = type(current).model_validate(data)
        except ValidationError as exc:
            raise RuleValidationError(
                f"Invalid update for rule '{current.name}'.",
                errors=[f"{'.'.join(map(str, err['loc']))}: {err['msg']}" for err in exc.errors()],
            ) from exc
        self._check(updated, ignore_id=rule_id)
        return self._replace(updated)

    def remove(self, rule_id: str) -> AppConfig:
        """Return a config without ``rule_id``.

        Raises:
            RuleNotFoundError: If no rule has ``rule_id``.
        """

        self.get(rule_id)
        return self.config.model_copy(
            update={
                "metadata_rules": [r for r in self.config.metadata_rules if r.id != rule_id],
                "filename_rules": [r for r in self.config.filename_rules if r.id != rule_id],
            }
        )

    def toggle(self, rule_id: str, enabled: Optional[bool] = None) -> AppConfig:
        """Flip (or set) the enabled flag of ``rule_id``."""
        current = self.get(rule_id)
        target = not current.enabled if enabled is None else enabled
        return self._replace(
            current.model_copy(update={"enabled": target, "updated_at": datetime.now(timezone.utc)})
        )

    def set_priority(self, rule_id: str, priority: int) -> AppConfig:
        metadata_rules, filename_rules = set_rule_priority(
            self.config.metadata_rules, self.config.filename_rules, rule_id, priority
        )
        return self.config.model_copy(
            update={"metadata_rules": metadata_rules, "filename_rules": filename_rules}
        )

    def reorder(self, ordered_ids: Sequence[str]) -> AppConfig:
        metadata_rules, filename_rules = reorder_rules(
            self.config.metadata_rules, self.config.filename_rules, ordered_ids
        )
        return self.config.model_copy(
            update={"metadata_rules": metadata_rules, "filename_rules": filename_rules}
        )

    # Helpers ----------------------------------------------------------

    def _check(self, rule: AnyRule, *, ignore_id: Optional[str] = None) -> None:
        lowered = rule.name.strip().lower()
        for existing in self.rules:
            if existing.id == ignore_id:
                continue
            if existing.id == rule.id:
                raise RuleValidationError(f"A rule with id '{rule.id}' already exists.")
            if existing.name.strip().lower() == lowered:
                raise DuplicateRuleNameError(rule.name)

        if self.config.find_template(rule.template_id) is None:
            raise TemplateNotFoundError(rule.template_id)

        problems = validate_rule(rule, self.config)
        if problems:
            raise RuleValidationError(f"Rule '{rule.name}' is invalid.", errors=problems)

    def _replace(self, rule: AnyRule) -> AppConfig:
        if isinstance(rule, MetadataPatternRule):
            metadata_rules: List[MetadataPatternRule] = [
                rule if existing.id == rule.id else existing
                for existing in self.config.metadata_rules
            ]
            return self.config.model_copy(update={"metadata_rules": metadata_rules})
        filename_rules: List[FilenamePatternRule] = [
            rule if existing.id == rule.id else existing for existing in self.config.filename_rules
        ]
        return self.config.model_copy(update={"filename_rules": filename_rules})


__all__ = ["RuleManager", "validate_rule"]
