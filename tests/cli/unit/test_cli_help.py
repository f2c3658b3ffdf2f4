"""CLI smoke tests."""

from click.testing import CliRunner
from eventing_test_prep.cli import cli


def test_cli_displays_help() -> None:
    runner = CliRunner()
    result = runner.invoke(cli, ["--help"])

    assert result.exit_code == 0
    assert "generate-config" in result.output
    assert "plan" in result.output
    assert "prepare" in result.output


def test_prepare_help_lists_options() -> None:
    runner = CliRunner()
    result = runner.invoke(cli, ["prepare", "-h"])

    assert result.exit_code == 0
    assert "--config" in result.output
    assert "--report" in result.output
    assert "--verbose" in result.output
