"""Tests for rule CRUD against the application config."""

import pytest

from tidyname.config.models import AppConfig
from tidyname.errors import (
    DuplicateRuleNameError,
    RuleNotFoundError,
    RuleValidationError,
    TemplateNotFoundError,
)
from tidyname.organization.models import FolderStructure
from tidyname.rules.manager import RuleManager, validate_rule
from tidyname.rules.models import FilenamePatternRule, MetadataPatternRule, RuleCondition


def _metadata_rule(**overrides: object) -> MetadataPatternRule:
    data: dict[str, object] = {
        "id": "canon",
        "name": "Canon photos",
        "template_id": "photo",
        "conditions": [RuleCondition(field="image.cameraMake", operator="equals", value="Canon")],
    }
    data.update(overrides)
    return MetadataPatternRule.model_validate(data)


def _filename_rule(**overrides: object) -> FilenamePatternRule:
    data: dict[str, object] = {
        "id": "scans",
        "name": "Scans",
        "template_id": "document",
        "pattern": "scan_*.pdf",
    }
    data.update(overrides)
    return FilenamePatternRule.model_validate(data)


def test_add_appends_to_matching_list_without_mutating() -> None:
    config = AppConfig()

    updated = RuleManager(config).add(_metadata_rule())
    updated = RuleManager(updated).add(_filename_rule())

    assert [rule.id for rule in updated.metadata_rules] == ["canon"]
    assert [rule.id for rule in updated.filename_rules] == ["scans"]
    assert config.metadata_rules == []


def test_add_rejects_duplicate_names_case_insensitively() -> None:
    config = RuleManager(AppConfig()).add(_metadata_rule())

    with pytest.raises(DuplicateRuleNameError):
        RuleManager(config).add(_filename_rule(name="  CANON photos "))


def test_add_rejects_unknown_template() -> None:
    with pytest.raises(TemplateNotFoundError) as excinfo:
        RuleManager(AppConfig()).add(_filename_rule(template_id="nope"))

    assert excinfo.value.kind == "template_not_found"


def test_add_rejects_invalid_glob_and_regex() -> None:
    with pytest.raises(RuleValidationError) as excinfo:
        RuleManager(AppConfig()).add(_filename_rule(pattern="*.{jpg"))
    assert excinfo.value.errors[0].startswith("pattern:")

    broken = _metadata_rule(
        conditions=[RuleCondition(field="file.name", operator="regex", value="(")]
    )
    with pytest.raises(RuleValidationError):
        RuleManager(AppConfig()).add(broken)


def test_validate_rule_checks_folder_structure_reference() -> None:
    config = AppConfig(
        folder_structures=[FolderStructure(id="by-year", name="Y", pattern="{year}")]
    )

    assert validate_rule(_filename_rule(folder_structure_id="by-year"), config) == []
    problems = validate_rule(_filename_rule(folder_structure_id="missing"), config)
    assert problems == ["folder_structure_id: unknown folder structure missing"]


def test_update_revalidates_the_rule() -> None:
    config = RuleManager(AppConfig()).add(_filename_rule())
    manager = RuleManager(config)

    updated = manager.update("scans", pattern="*.pdf", priority=7)
    rule = RuleManager(updated).get("scans")
    assert rule.priority == 7
    assert isinstance(rule, FilenamePatternRule) and rule.pattern == "*.pdf"

    with pytest.raises(RuleValidationError):
        manager.update("scans", name="")


def test_toggle_and_remove() -> None:
    config = RuleManager(AppConfig()).add(_filename_rule())

    toggled = RuleManager(config).toggle("scans")
    assert RuleManager(toggled).get("scans").enabled is False
    assert RuleManager(toggled).toggle("scans", enabled=False).filename_rules[0].enabled is False

    removed = RuleManager(config).remove("scans")
    assert removed.filename_rules == []
    with pytest.raises(RuleNotFoundError):
        RuleManager(removed).remove("scans")


def test_reorder_through_manager() -> None:
    config = RuleManager(AppConfig()).add(_metadata_rule())
    config = RuleManager(config).add(_filename_rule())

    reordered = RuleManager(config).reorder(["scans", "canon"])

    assert reordered.filename_rules[0].priority == 1
    assert reordered.metadata_rules[0].priority == 0
    assert RuleManager(reordered).set_priority("canon", 9).metadata_rules[0].priority == 9
