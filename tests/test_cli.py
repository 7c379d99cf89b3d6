"""Smoke tests for the CLI entrypoint."""

from click.testing import CliRunner

from tidyname.cli import cli


def test_cli_help_displays_commands() -> None:
    runner = CliRunner()
    result = runner.invoke(cli, ["--help"])

    assert result.exit_code == 0
    assert "tidyname proposes consistent file names" in result.output
    for command in ("preview", "rules", "templates", "config"):
        assert command in result.output
