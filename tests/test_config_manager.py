"""Unit tests for configuration management."""

from pathlib import Path

import pytest

from tidyname.config import (
    AppConfig,
    ConfigError,
    ConfigManager,
    check_config,
    flatten_for_env,
    read_env_overrides,
    resolve_with_precedence,
    set_dotted,
)
from tidyname.rules.priority import PriorityMode
from tidyname.templates.casing import CaseStyle
from tidyname.templates.models import Template


def _fresh_manager(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> ConfigManager:
    monkeypatch.setenv("HOME", str(tmp_path))
    return ConfigManager()


def test_ensure_exists_creates_default_file(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    manager = _fresh_manager(tmp_path, monkeypatch)

    path = manager.ensure_exists()

    assert path == tmp_path / ".tidyname" / "config.yaml"
    text = path.read_text(encoding="utf-8")
    assert "tidyname configuration file" in text
    assert "Last updated:" in text

    config = manager.load(include_env=False)
    assert isinstance(config, AppConfig)
    assert [template.id for template in config.templates] == ["date-original", "document", "photo"]


def test_resolve_with_precedence_respects_order(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    manager = _fresh_manager(tmp_path, monkeypatch)
    manager.ensure_exists()

    manager.save(
        {
            "preferences": {"case_normalization": "lowercase", "llm_confidence_threshold": 0.5},
            "logging": {"level": "INFO"},
        }
    )

    env = {
        "TIDYNAME__PREFERENCES__RULE_PRIORITY_MODE": "metadata-first",
        "TIDYNAME__PREFERENCES__LLM_CONFIDENCE_THRESHOLD": "0.8",
    }
    cli = {"preferences.llm_confidence_threshold": 0.9}

    config = manager.load(cli_overrides=cli, env_overrides=env)

    assert config.preferences.case_normalization is CaseStyle.LOWERCASE
    assert config.logging.level == "INFO"
    assert config.preferences.rule_priority_mode is PriorityMode.METADATA_FIRST
    # CLI overrides take precedence over environment
    assert config.preferences.llm_confidence_threshold == pytest.approx(0.9)


def test_environment_values_are_parsed_as_yaml(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    manager = _fresh_manager(tmp_path, monkeypatch)

    config = manager.load(env_overrides={"TIDYNAME__CLI__QUIET_DEFAULT": "true"})

    assert config.cli.quiet_default is True


def test_invalid_yaml_raises_config_error(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    manager = _fresh_manager(tmp_path, monkeypatch)
    manager.ensure_exists()

    manager.config_path.write_text("- not-a-mapping", encoding="utf-8")

    with pytest.raises(ConfigError):
        manager.load()


def test_flatten_for_env_round_trips_defaults() -> None:
    flat = flatten_for_env(AppConfig())

    assert flat["TIDYNAME__PREFERENCES__RULE_PRIORITY_MODE"] == "combined"
    assert flat["TIDYNAME__PREFERENCES__INCLUDE_EXTENSION"] == "true"
    assert flat["TIDYNAME__LOGGING__LEVEL"] == "WARNING"
    assert flat["TIDYNAME__METADATA_RULES"] == "[]"


def test_resolve_with_precedence_invalid_value_raises() -> None:
    with pytest.raises(ConfigError):
        resolve_with_precedence(
            defaults=AppConfig(),
            file_overrides={"preferences": {"rule_priority_mode": "newest-first"}},
        )


def test_unknown_keys_are_rejected() -> None:
    with pytest.raises(ConfigError):
        resolve_with_precedence(defaults=AppConfig(), file_overrides={"llm": {"model": "x"}})


def test_default_template_prefers_explicit_id() -> None:
    config = AppConfig()
    assert config.default_template() is not None
    assert config.default_template().id == "date-original"

    preferences = config.preferences.model_copy(update={"default_template_id": "photo"})
    explicit = config.model_copy(update={"preferences": preferences})
    assert explicit.default_template().id == "photo"


def test_default_template_missing_when_none_flagged() -> None:
    config = AppConfig(templates=[Template(id="plain", name="Plain", pattern="{original}")])

    assert config.default_template() is None


def test_duplicate_template_ids_are_rejected() -> None:
    with pytest.raises(ConfigError):
        resolve_with_precedence(
            defaults=AppConfig(),
            file_overrides={
                "templates": [
                    {"id": "a", "name": "A", "pattern": "{original}"},
                    {"id": "a", "name": "B", "pattern": "{date}"},
                ]
            },
        )


def _filename_rule(name: str, **extra: object) -> dict[str, object]:
    return {"name": name, "template_id": "date-original", "pattern": "*.jpg", **extra}


def test_save_rejects_broken_rules_and_keeps_file(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    manager = _fresh_manager(tmp_path, monkeypatch)
    manager.ensure_exists()
    before = manager.read_text()

    with pytest.raises(ConfigError) as excinfo:
        manager.save({"filename_rules": [_filename_rule("Broken", pattern="*.{jpg")]})

    assert "Unclosed brace" in str(excinfo.value)
    assert manager.read_text() == before


def test_duplicate_rule_names_are_rejected_case_insensitively() -> None:
    with pytest.raises(ConfigError) as excinfo:
        resolve_with_precedence(
            defaults=AppConfig(),
            file_overrides={"filename_rules": [_filename_rule("Photos"), _filename_rule("photos")]},
        )

    assert "name already used by 'Photos'" in str(excinfo.value)


def test_folder_structures_with_relative_segments_are_rejected() -> None:
    with pytest.raises(ConfigError):
        resolve_with_precedence(
            defaults=AppConfig(),
            file_overrides={
                "folder_structures": [{"id": "up", "name": "Up", "pattern": "../{year}"}]
            },
        )


def test_dangling_references_load_as_notes() -> None:
    config = resolve_with_precedence(
        defaults=AppConfig(),
        file_overrides={
            "filename_rules": [
                _filename_rule("Orphan", template_id="gone", folder_structure_id="nowhere")
            ],
            "preferences": {"default_template_id": "missing"},
        },
    )

    notes = check_config(config)

    assert notes == [
        "filename rule 'Orphan' uses unknown template 'gone'.",
        "filename rule 'Orphan' uses unknown folder structure 'nowhere'.",
        "Default template 'missing' does not exist.",
    ]


def test_read_env_overrides_nests_sections_and_parses_lists() -> None:
    overrides = read_env_overrides(
        {
            "TIDYNAME__LOGGING__LEVEL": "DEBUG",
            "TIDYNAME__TEMPLATES": "[{id: t, name: T, pattern: '{original}'}]",
            "OTHER": "ignored",
        }
    )

    assert overrides == {
        "logging": {"level": "DEBUG"},
        "templates": [{"id": "t", "name": "T", "pattern": "{original}"}],
    }


def test_set_dotted_creates_and_guards_mappings() -> None:
    data: dict[str, object] = {"logging": "loud"}

    set_dotted(data, "preferences.case_normalization", "kebab-case")
    assert data["preferences"] == {"case_normalization": "kebab-case"}

    with pytest.raises(ConfigError):
        set_dotted(data, "logging.level", "INFO")
