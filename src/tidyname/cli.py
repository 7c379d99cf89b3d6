"""Command line interface for tidyname."""

from __future__ import annotations

import difflib
from pathlib import Path
from typing import Any

import click
import yaml
from click.core import ParameterSource
from rich.console import Console
from rich.syntax import Syntax
from rich.table import Table

from tidyname.cli_support import ManifestError, load_manifest, parse_fallbacks, preview_to_payload
from tidyname.config import AppConfig, ConfigError, ConfigManager, check_config, set_dotted
from tidyname.errors import RenameError
from tidyname.files.models import UnifiedMetadata
from tidyname.log import configure_logging
from tidyname.organization.models import RenamePreview, RenameStatus
from tidyname.organization.planner import PreviewPlanner
from tidyname.rules.evaluator import explain_rule
from tidyname.rules.models import MatchMode, MetadataPatternRule
from tidyname.rules.priority import detect_priority_ties, order_rules, resolve_priority
from tidyname.templates.parser import validate_template
from tidyname.templates.sources import KNOWN_PLACEHOLDERS

console = Console()

_STATUS_STYLES = {
    RenameStatus.READY: "green",
    RenameStatus.CONFLICT: "red",
    RenameStatus.MISSING_DATA: "yellow",
    RenameStatus.NO_CHANGE: "dim",
    RenameStatus.INVALID_NAME: "red",
}


def _handle_cli_error(
    message: str,
    *,
    code: str,
    json_output: bool,
    details: Any | None = None,
    original: Exception | None = None,
) -> None:
    """Emit a standardized error and terminate the command appropriately.

    Args:
        message: Human-readable error message.
        code: Machine-readable error identifier.
        json_output: Indicates whether JSON mode is active.
        details: Optional structured details to include in the payload.
        original: Original exception for chaining when not using JSON.

    Raises:
        SystemExit: When emitting JSON output to terminate the command.
        click.ClickException: For non-JSON flows to surface the error.
    """

    if json_output:
        payload: dict[str, Any] = {"error": {"code": code, "message": message}}
        if details is not None:
            payload["error"]["details"] = details
        console.print_json(data=payload)
        raise SystemExit(1)

    if isinstance(original, click.ClickException):
        raise original

    raise click.ClickException(message) from original


def _emit_message(message: Any, *, mode: str, quiet: bool, summary_only: bool) -> None:
    """Conditionally print CLI output according to quiet/summary settings.

    Args:
        message: Renderable or string to emit.
        mode: Output mode identifier (`detail`, `summary`, `warning`, or `error`).
        quiet: Whether quiet mode is active.
        summary_only: Whether only summary lines should be emitted.
    """

    if quiet and mode != "error":
        return
    if summary_only and mode not in {"summary", "warning", "error"}:
        return
    console.print(message)


def _format_summary_line(command: str, root: Path | str, metrics: dict[str, Any]) -> str:
    """Return a consistent summary line for CLI commands."""
    parts = ", ".join(f"{key}={value}" for key, value in metrics.items())
    return f"[green]{command} summary for {root}: {parts}.[/green]"


def _output_modes(
    ctx: click.Context,
    config: AppConfig,
    *,
    json_output: bool,
    quiet: bool,
    summary_mode: bool,
) -> tuple[bool, bool]:
    """Combine explicit flags with CLI defaults into (quiet, summary_only).

    Raises:
        click.ClickException: If the combination of modes is contradictory.
    """

    explicit_quiet = ctx.get_parameter_source("quiet") == ParameterSource.COMMANDLINE
    explicit_summary = ctx.get_parameter_source("summary_mode") == ParameterSource.COMMANDLINE

    quiet_enabled = quiet if explicit_quiet else config.cli.quiet_default
    summary_only = summary_mode if explicit_summary else config.cli.summary_default

    if json_output:
        if explicit_quiet and quiet_enabled:
            raise click.ClickException("--json cannot be combined with --quiet.")
        if explicit_summary and summary_only:
            raise click.ClickException("--json cannot be combined with --summary.")
        return False, False

    if quiet_enabled and summary_only:
        raise click.ClickException(
            "Quiet and summary modes cannot both be enabled. Adjust CLI defaults or flags."
        )
    return quiet_enabled, summary_only


def _load_config(*, verbose: bool = False) -> AppConfig:
    manager = ConfigManager()
    manager.ensure_exists()
    config = manager.load()
    configure_logging(config.logging, verbose=verbose)
    return config


def _without_stamp(lines: list[str]) -> list[str]:
    return [line for line in lines if not line.startswith("# Last updated:")]


def _preview_table(preview: RenamePreview) -> Table:
    table = Table(title="Rename preview", show_lines=False)
    table.add_column("Original", overflow="fold")
    table.add_column("Proposed", overflow="fold")
    table.add_column("Status")
    table.add_column("Source")
    table.add_column("Issues", overflow="fold")
    for proposal in preview.proposals:
        style = _STATUS_STYLES[proposal.status]
        proposed = proposal.proposed_name
        if proposal.is_move_operation:
            proposed = str(proposal.proposed_path)
        source = proposal.template_source.value
        if proposal.applied_rule is not None:
            source = f"rule: {proposal.applied_rule.name}"
        table.add_row(
            proposal.original_name,
            proposed,
            f"[{style}]{proposal.status.value}[/{style}]",
            source,
            "\n".join(f"{issue.code}: {issue.message}" for issue in proposal.issues),
        )
    return table


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(package_name="tidyname")
def cli() -> None:
    """tidyname proposes consistent file names from metadata, rules and templates."""


@cli.command()
@click.argument("manifest", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--base-dir",
    type=click.Path(file_okay=False, path_type=Path),
    help="Base directory for organize-mode destinations.",
)
@click.option(
    "--fallback",
    "fallbacks",
    multiple=True,
    metavar="KEY=VALUE",
    help="Value used when a placeholder cannot be resolved. Repeatable.",
)
@click.option("--json", "json_output", is_flag=True, help="Emit JSON describing proposals.")
@click.option("--summary", "summary_mode", is_flag=True, help="Only emit summary lines.")
@click.option("--quiet", is_flag=True, help="Suppress non-error output.")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
@click.pass_context
def preview(
    ctx: click.Context,
    manifest: Path,
    base_dir: Path | None,
    fallbacks: tuple[str, ...],
    json_output: bool,
    summary_mode: bool,
    quiet: bool,
    verbose: bool,
) -> None:
    """Preview proposed names for the files listed in MANIFEST.

    Args:
        ctx: Click context used for parameter source inspection.
        manifest: YAML or JSON manifest listing files and their metadata.
        base_dir: Optional base directory for folder structures.
        fallbacks: Repeated ``key=value`` placeholder fallbacks.
        json_output: If True, emit JSON instead of a table.
        summary_mode: When True, limit output to summary lines and warnings.
        quiet: When True, suppress non-error CLI output entirely.
        verbose: When True, log at DEBUG level.
    """

    try:
        config = _load_config(verbose=verbose)
        quiet_enabled, summary_only = _output_modes(
            ctx, config, json_output=json_output, quiet=quiet, summary_mode=summary_mode
        )
        loaded = load_manifest(manifest)
        base = base_dir.expanduser().resolve() if base_dir else loaded.base_directory

        result = PreviewPlanner(config).build_preview(
            loaded.files,
            loaded.metadata,
            base_directory=base,
            fallbacks=parse_fallbacks(fallbacks),
            llm_suggestions=loaded.suggestions or None,
        )

        if json_output:
            console.print_json(data=preview_to_payload(result, manifest=manifest))
            return

        if result.proposals:
            _emit_message(
                _preview_table(result),
                mode="detail",
                quiet=quiet_enabled,
                summary_only=summary_only,
            )
        summary = result.summary
        if summary.conflicts or summary.invalid_name:
            _emit_message(
                f"[yellow]{summary.conflicts} conflict(s) and {summary.invalid_name} invalid "
                "name(s) need attention before applying.[/yellow]",
                mode="warning",
                quiet=quiet_enabled,
                summary_only=summary_only,
            )
        _emit_message(
            _format_summary_line("Preview", manifest, summary.model_dump()),
            mode="summary",
            quiet=quiet_enabled,
            summary_only=summary_only,
        )
    except ConfigError as exc:
        _handle_cli_error(str(exc), code="config_error", json_output=json_output, original=exc)
    except ManifestError as exc:
        _handle_cli_error(str(exc), code="manifest_error", json_output=json_output, original=exc)
    except RenameError as exc:
        _handle_cli_error(str(exc), code=exc.kind, json_output=json_output, original=exc)
    except click.ClickException as exc:
        _handle_cli_error(str(exc), code="cli_error", json_output=json_output, original=exc)
    except Exception as exc:
        _handle_cli_error(
            f"Unexpected error while building the preview: {exc}",
            code="internal_error",
            json_output=json_output,
            details={"exception": type(exc).__name__},
            original=exc,
        )


@cli.group()
def rules() -> None:
    """Inspect configured rules."""


@rules.command("list")
@click.option("--json", "json_output", is_flag=True, help="Emit rules as JSON.")
def rules_list(json_output: bool) -> None:
    """List rules in evaluation order for the configured priority mode."""
    try:
        config = _load_config()
    except ConfigError as exc:
        _handle_cli_error(str(exc), code="config_error", json_output=json_output, original=exc)
        return

    mode = config.preferences.rule_priority_mode
    ordered = order_rules(config.metadata_rules, config.filename_rules, mode)
    if json_output:
        console.print_json(
            data={"mode": mode.value, "rules": [rule.model_dump(mode="json") for rule in ordered]}
        )
        return

    if not ordered:
        console.print("[yellow]No rules configured.[/yellow]")
        return

    table = Table(title=f"Rules ({mode.value})")
    table.add_column("Priority", justify="right")
    table.add_column("Name")
    table.add_column("Kind")
    table.add_column("Match")
    table.add_column("Template")
    table.add_column("Enabled")
    for rule in ordered:
        if isinstance(rule, MetadataPatternRule):
            joiner = " and " if rule.match_mode is MatchMode.ALL else " or "
            match = joiner.join(
                f"{c.field.value} {c.operator.value} {c.value or ''}".strip()
                for c in rule.conditions
            )
        else:
            match = rule.pattern
        table.add_row(
            str(rule.priority),
            rule.name,
            rule.kind,
            match,
            rule.template_id,
            "yes" if rule.enabled else "[dim]no[/dim]",
        )
    console.print(table)


@rules.command("ties")
def rules_ties() -> None:
    """Report rules that share a numeric priority."""
    try:
        config = _load_config()
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    ties = detect_priority_ties(config.metadata_rules, config.filename_rules)
    if not ties:
        console.print("[green]No priority ties detected.[/green]")
        return
    for tie in ties:
        names = ", ".join(f"{ref.name} ({ref.kind.value})" for ref in tie.rules)
        console.print(f"[yellow]Priority {tie.priority}:[/yellow] {names}")


@rules.command("explain")
@click.argument("manifest", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("file")
def rules_explain(manifest: Path, file: str) -> None:
    """Show how every rule evaluates against FILE from MANIFEST."""
    try:
        config = _load_config()
        loaded = load_manifest(manifest)
        descriptor = loaded.find(file)
    except (ConfigError, ManifestError) as exc:
        raise click.ClickException(str(exc)) from exc

    metadata = loaded.metadata.get(descriptor.path) or UnifiedMetadata.empty(descriptor)
    resolution = resolve_priority(
        descriptor,
        metadata,
        config.metadata_rules,
        config.filename_rules,
        config.preferences.rule_priority_mode,
    )
    by_id = {rule.id: rule for rule in config.metadata_rules}

    table = Table(title=f"Rule evaluation for {descriptor.full_name} ({resolution.mode.value})")
    table.add_column("Rule")
    table.add_column("Priority", justify="right")
    table.add_column("Outcome")
    table.add_column("Details", overflow="fold")
    for candidate in resolution.candidates:
        details = candidate.reason or ""
        rule = by_id.get(candidate.rule.id)
        if rule is not None:
            details = "\n".join(
                f"{o.field} {o.operator} {o.expected_value or ''} -> "
                f"{'match' if o.matched else 'no match'} (actual: {o.actual_value})"
                for o in explain_rule(rule, metadata)
            )
        table.add_row(
            candidate.rule.name,
            str(candidate.rule.priority),
            candidate.status.value,
            details,
        )
    console.print(table)
    if resolution.winner is None:
        console.print("[yellow]No rule matched; the default template applies.[/yellow]")
    else:
        console.print(f"[green]Winner: {resolution.winner.name}[/green]")


@cli.group()
def templates() -> None:
    """Inspect and validate templates."""


@templates.command("list")
def templates_list() -> None:
    """List configured templates."""
    try:
        config = _load_config()
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    default = config.default_template()
    table = Table(title="Templates")
    table.add_column("Id")
    table.add_column("Name")
    table.add_column("Pattern")
    table.add_column("File types")
    table.add_column("Default")
    for template in config.templates:
        is_default = default is not None and template.id == default.id
        table.add_row(
            template.id,
            template.name,
            template.pattern,
            ", ".join(template.file_types) or "any",
            "yes" if is_default else "",
        )
    console.print(table)


@templates.command("check")
@click.argument("pattern")
def templates_check(pattern: str) -> None:
    """Validate a template PATTERN and report warnings."""
    try:
        warnings = validate_template(pattern)
    except RenameError as exc:
        raise click.ClickException(f"Invalid template: {exc}") from exc

    for warning in warnings:
        console.print(f"[yellow]{warning}[/yellow]")
    console.print(f"[green]Template {pattern!r} is valid.[/green]")
    if warnings:
        console.print(f"Known placeholders: {', '.join(KNOWN_PLACEHOLDERS)}")


@cli.group()
def config() -> None:
    """Manage tidyname configuration files and overrides."""


@config.command("view")
@click.option("--no-env", is_flag=True, help="Ignore environment overrides when displaying output.")
def config_view(no_env: bool) -> None:
    """Display the effective configuration after applying precedence rules."""
    manager = ConfigManager()
    try:
        manager.ensure_exists()
        loaded = manager.load(include_env=not no_env)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    yaml_text = yaml.safe_dump(loaded.model_dump(mode="json"), sort_keys=False)
    console.print(Syntax(yaml_text, "yaml", word_wrap=True))
    for note in check_config(loaded):
        console.print(f"Note: {note}", style="yellow", markup=False)


@config.command("set")
@click.argument("key")
@click.option("--value", required=True, help="Value to assign to KEY.")
def config_set(key: str, value: str) -> None:
    """Persist a configuration value expressed as a dotted KEY.

    Args:
        key: Dotted path describing the configuration field to update.
        value: YAML-literal value to write into the configuration file.

    Raises:
        click.ClickException: If parsing, assignment, or validation fails.
    """

    manager = ConfigManager()
    manager.ensure_exists()

    before = manager.read_text().splitlines()
    segments = [segment.strip() for segment in key.split(".") if segment.strip()]
    if not segments:
        raise click.ClickException(
            "KEY must specify a dotted path such as 'preferences.case_normalization'."
        )

    try:
        parsed_value = yaml.safe_load(value)
    except yaml.YAMLError as exc:
        raise click.ClickException(f"Unable to parse value: {exc}") from exc

    try:
        file_data = manager.load_file_overrides()
        set_dotted(file_data, segments, parsed_value)
        manager.save(file_data)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    after = manager.read_text().splitlines()

    diff = list(
        difflib.unified_diff(
            before,
            after,
            fromfile="config.yaml (before)",
            tofile="config.yaml (after)",
            lineterm="",
        )
    )
    if _without_stamp(before) == _without_stamp(after):
        console.print("[yellow]No changes applied; value already up to date.[/yellow]")
        return

    console.print(Syntax("\n".join(diff), "diff", word_wrap=False))
    console.print(f"[green]Updated {'.'.join(segments)}.[/green]")


@config.command("edit")
def config_edit() -> None:
    """Open the configuration file in an interactive editor session.

    Raises:
        click.ClickException: If edited content is invalid or cannot be saved.
    """

    manager = ConfigManager()
    manager.ensure_exists()

    original = manager.read_text()
    edited = click.edit(original, extension=".yaml")

    if edited is None:
        console.print("[yellow]Edit cancelled; no changes applied.[/yellow]")
        return

    if edited == original:
        console.print("[yellow]No changes detected.[/yellow]")
        return

    try:
        parsed = yaml.safe_load(edited) or {}
    except yaml.YAMLError as exc:
        raise click.ClickException(f"Invalid YAML: {exc}") from exc

    if not isinstance(parsed, dict):
        raise click.ClickException("Configuration file must contain a top-level mapping.")

    try:
        manager.save(parsed)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc
    console.print("[green]Configuration updated successfully.[/green]")


def main() -> None:
    """Invoke the Click CLI as the console script entry point."""
    cli()


if __name__ == "__main__":
    main()
