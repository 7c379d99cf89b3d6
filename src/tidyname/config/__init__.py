"""Configuration management for tidyname."""

from __future__ import annotations

import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Mapping

import yaml

from .exceptions import ConfigError
from .models import AppConfig
from .resolver import (
    check_config,
    flatten_for_env,
    read_env_overrides,
    resolve_with_precedence,
    set_dotted,
)

DEFAULT_CONFIG_PATH = Path("~/.tidyname/config.yaml")
_CONFIG_HEADER = (
    "# tidyname configuration file\n"
    "# Rules, templates and folder structures are checked before every save.\n"
    "# Manage it with `tidyname config edit` or `tidyname config set`.\n"
    "# Last updated: {stamp}\n"
)


class ConfigManager:
    """Read, layer and persist the tidyname configuration file.

    Writes go through the same checks as loads, so a file written by the
    manager always loads again.

    Attributes:
        config_path: Location of the YAML file.
        env: Environment consulted for ``TIDYNAME__`` overrides.
    """

    def __init__(
        self,
        config_path: Path | None = None,
        *,
        env: Mapping[str, str] | None = None,
    ) -> None:
        self.config_path = (config_path or DEFAULT_CONFIG_PATH).expanduser()
        self.env: Mapping[str, str] = os.environ if env is None else env

    def load(
        self,
        *,
        cli_overrides: Mapping[str, Any] | None = None,
        include_env: bool = True,
        ensure_file: bool = True,
        env_overrides: Mapping[str, str] | None = None,
    ) -> AppConfig:
        """Resolve the configuration from defaults, file, environment and CLI.

        Args:
            cli_overrides: Dotted-key overrides with the highest precedence.
            include_env: Whether ``TIDYNAME__`` variables apply.
            ensure_file: Whether to write a default file when none exists.
            env_overrides: Variables used instead of ``env``.

        Returns:
            AppConfig: Validated and checked configuration.

        Raises:
            ConfigError: If any layer is invalid or the result is inconsistent.
        """

        if ensure_file:
            self.ensure_exists()
        variables: Mapping[str, str] = {}
        if include_env:
            variables = self.env if env_overrides is None else env_overrides
        return resolve_with_precedence(
            defaults=AppConfig(),
            file_overrides=self.load_file_overrides(),
            env_overrides=read_env_overrides(variables),
            cli_overrides=cli_overrides,
        )

    def load_file_overrides(self) -> dict[str, Any]:
        """Return the mapping stored in the file, or ``{}`` when there is none.

        Raises:
            ConfigError: If the file is not YAML or not a mapping.
        """

        text = self.read_text()
        try:
            data = yaml.safe_load(text) if text.strip() else None
        except yaml.YAMLError as exc:
            raise ConfigError(f"{self.config_path} is not valid YAML: {exc}") from exc
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigError(f"{self.config_path} must contain a mapping at the top level.")
        return data

    def save(self, config: AppConfig | Mapping[str, Any]) -> AppConfig:
        """Check ``config`` and write it to the file.

        Returns:
            AppConfig: The configuration the written file resolves to.

        Raises:
            ConfigError: If ``config`` would not load; the file is left untouched.
        """

        data = config.model_dump(mode="json") if isinstance(config, AppConfig) else dict(config)
        resolved = resolve_with_precedence(defaults=AppConfig(), file_overrides=data)
        self._write(data)
        return resolved

    def ensure_exists(self) -> Path:
        """Write the default configuration unless a file is already present."""
        if not self.config_path.exists():
            self._write(AppConfig().model_dump(mode="json"))
        return self.config_path

    def read_text(self) -> str:
        """Return the raw file contents, or an empty string when it is missing."""
        if not self.config_path.is_file():
            return ""
        return self.config_path.read_text(encoding="utf-8")

    def _write(self, data: Mapping[str, Any]) -> None:
        stamp = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
        body = yaml.safe_dump(dict(data), sort_keys=False, allow_unicode=True)
        self.config_path.parent.mkdir(parents=True, exist_ok=True)
        self.config_path.write_text(_CONFIG_HEADER.format(stamp=stamp) + body, encoding="utf-8")


__all__ = [
    "ConfigManager",
    "DEFAULT_CONFIG_PATH",
    "AppConfig",
    "ConfigError",
    "check_config",
    "flatten_for_env",
    "read_env_overrides",
    "resolve_with_precedence",
    "set_dotted",
]
