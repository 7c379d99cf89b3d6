"""Layered resolution and consistency checks for tidyname configuration."""

from __future__ import annotations

import logging
from collections.abc import Mapping as MappingABC
from copy import deepcopy
from typing import Any, Dict, List, Mapping, Sequence

import yaml
from pydantic import ValidationError

from tidyname.errors import TemplateParseError
from tidyname.organization.folders import validate_folder_pattern
from tidyname.rules.validation import rule_pattern_problems
from tidyname.templates.parser import validate_template

from .exceptions import ConfigError
from .models import AppConfig

LOGGER = logging.getLogger(__name__)

ENV_PREFIX = "TIDYNAME__"


def set_dotted(target: Dict[str, Any], key: str | Sequence[str], value: Any) -> None:
    """Store ``value`` in ``target`` under a dotted key such as ``logging.level``.

    Raises:
        ConfigError: If a parent segment already holds a non-mapping value.
    """

    segments = key.split(".") if isinstance(key, str) else list(key)
    node = target
    for depth, segment in enumerate(segments[:-1]):
        child = node.get(segment)
        if child is None:
            child = node[segment] = {}
        elif not isinstance(child, dict):
            parent = ".".join(segments[: depth + 1])
            raise ConfigError(f"Cannot set {'.'.join(segments)}: {parent} is not a mapping.")
        node = child
    node[segments[-1]] = value


def read_env_overrides(env: Mapping[str, str]) -> Dict[str, Any]:
    """Collect ``TIDYNAME__SECTION__KEY`` variables into a nested mapping.

    Values are read as YAML so booleans, numbers and flow-style lists keep
    their types. A value YAML cannot parse is used verbatim.
    """

    overrides: Dict[str, Any] = {}
    for name in sorted(env):
        if not name.startswith(ENV_PREFIX):
            continue
        segments = [part.lower() for part in name[len(ENV_PREFIX) :].split("__") if part]
        if not segments:
            continue
        raw = env[name]
        try:
            value: Any = yaml.safe_load(raw)
        except yaml.YAMLError:
            value = raw
        set_dotted(overrides, segments, value)
    return overrides


def check_config(config: AppConfig) -> List[str]:
    """Check what the models cannot see on their own.

    Duplicate rule ids or names, broken rule patterns, duplicate folder
    structure ids and malformed folder patterns make the configuration
    unusable. References to missing templates or folder structures are only
    reported: the planner falls back to the default template and ignores the
    folder structure, so they come back as notes.

    Returns:
        List[str]: Notes about dangling references and template problems.

    Raises:
        ConfigError: If the configuration cannot be used.
    """

    errors: List[str] = []
    notes: List[str] = []

    seen_ids: set[str] = set()
    seen_names: Dict[str, str] = {}
    for rule in [*config.metadata_rules, *config.filename_rules]:
        label = f"{rule.kind} rule {rule.name!r}"
        if rule.id in seen_ids:
            errors.append(f"{label}: duplicate rule id {rule.id}")
        seen_ids.add(rule.id)
        lowered = rule.name.strip().lower()
        if lowered in seen_names:
            errors.append(f"{label}: name already used by {seen_names[lowered]!r}")
        seen_names.setdefault(lowered, rule.name)
        errors.extend(f"{label}: {problem}" for problem in rule_pattern_problems(rule))

        if config.find_template(rule.template_id) is None:
            notes.append(f"{label} uses unknown template {rule.template_id!r}.")
        if (
            rule.folder_structure_id is not None
            and config.find_folder_structure(rule.folder_structure_id) is None
        ):
            notes.append(
                f"{label} uses unknown folder structure {rule.folder_structure_id!r}."
            )

    structure_ids: set[str] = set()
    for structure in config.folder_structures:
        if structure.id in structure_ids:
            errors.append(f"folder structure {structure.name!r}: duplicate id {structure.id}")
        structure_ids.add(structure.id)
        validation = validate_folder_pattern(structure.pattern)
        errors.extend(
            f"folder structure {structure.name!r}: {error}" for error in validation.errors
        )

    for template in config.templates:
        try:
            validate_template(template.pattern)
        except TemplateParseError as exc:
            notes.append(f"template {template.id!r}: {exc}")

    if config.default_template() is None:
        wanted = config.preferences.default_template_id
        notes.append(
            f"Default template {wanted!r} does not exist."
            if wanted is not None
            else "No template is flagged as the default."
        )

    if errors:
        raise ConfigError("Inconsistent configuration: " + "; ".join(errors))
    return notes


def resolve_with_precedence(
    *,
    defaults: AppConfig,
    file_overrides: Mapping[str, Any] | None = None,
    env_overrides: Mapping[str, Any] | None = None,
    cli_overrides: Mapping[str, Any] | None = None,
) -> AppConfig:
    """Layer the sources over ``defaults``: cli > environment > file.

    Keys may be dotted (``preferences.case_normalization``). Mapping sections
    merge key by key; list sections such as ``templates`` or
    ``filename_rules`` replace the lower layer whole.

    Raises:
        ConfigError: If a layer is malformed, a value is invalid, or the
            merged configuration fails ``check_config``.
    """

    merged = defaults.model_dump(mode="json")
    layers = (("file", file_overrides), ("environment", env_overrides), ("cli", cli_overrides))
    for source, layer in layers:
        if layer:
            _overlay(merged, _nest(layer, source))

    try:
        config = AppConfig.model_validate(merged)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration values: {exc}") from exc

    for note in check_config(config):
        LOGGER.info("Configuration note: %s", note)
    return config


def flatten_for_env(config: AppConfig) -> Dict[str, str]:
    """Render ``config`` as ``TIDYNAME__SECTION__KEY`` environment pairs.

    Lists are rendered as flow-style YAML under their top-level key, which
    ``read_env_overrides`` reads back.
    """

    flat: Dict[str, str] = {}
    pending: List[tuple[List[str], Any]] = [
        ([key], value) for key, value in config.model_dump(mode="json").items()
    ]
    while pending:
        path, value = pending.pop(0)
        if isinstance(value, dict):
            pending.extend((path + [key], child) for key, child in value.items())
            continue
        if isinstance(value, list):
            rendered = yaml.safe_dump(value, default_flow_style=True, width=10_000).strip()
        elif isinstance(value, bool):
            rendered = str(value).lower()
        else:
            rendered = "null" if value is None else str(value)
        flat[ENV_PREFIX + "__".join(part.upper() for part in path)] = rendered
    return flat


def _nest(layer: Mapping[str, Any], source: str) -> Dict[str, Any]:
    if not isinstance(layer, MappingABC):
        raise ConfigError(f"{source.capitalize()} overrides must be a mapping.")
    nested: Dict[str, Any] = {}
    for key, value in layer.items():
        if not isinstance(key, str):
            raise ConfigError(f"{source.capitalize()} override keys must be strings, not {key!r}.")
        fragment: Any = _nest(value, source) if isinstance(value, MappingABC) else value
        for segment in reversed(key.split(".")):
            fragment = {segment: fragment}
        _overlay(nested, fragment)
    return nested


def _overlay(base: Dict[str, Any], layer: Mapping[str, Any]) -> None:
    for key, value in layer.items():
        current = base.get(key)
        if isinstance(value, MappingABC) and isinstance(current, dict):
            _overlay(current, value)
        else:
            base[key] = deepcopy(value)


__all__ = [
    "ENV_PREFIX",
    "set_dotted",
    "read_env_overrides",
    "check_config",
    "resolve_with_precedence",
    "flatten_for_env",
]
