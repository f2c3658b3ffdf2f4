"""Command line interface entry point."""

from __future__ import annotations

import dataclasses
import logging
import os
import sys

import click

from eventing_test_prep.configuration import (
    DEFAULT_CONFIG_FILENAME,
    ConfigurationError,
    RunConfiguration,
    load_configuration,
    write_placeholder_configuration,
)
from eventing_test_prep.preparation import (
    STEP_NAMES,
    PreparationOutcome,
    StepStatus,
    build_collaborators,
    execute_preparation_run,
    resolve_skip_reasons,
)
from eventing_test_prep.results_writing import default_report_path, write_preparation_report

_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class CliError(Exception):
    """Custom CLI error."""


class PreparationFailed(CliError):
    """Raised when at least one preparation step failed."""


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(package_name="eventing-test-prep")
def cli() -> None:
    """Eventing end-to-end test preparation utility."""


@cli.command(name="generate-config")
@click.option(
    "--output",
    "output_path",
    required=False,
    default=DEFAULT_CONFIG_FILENAME,
    show_default=True,
    type=click.Path(path_type=str),
    help="Path to the YAML run configuration template to write",
)
def generate_config(output_path: str) -> None:
    """Generate a placeholder YAML run configuration with guidance comments."""
    try:
        resolved_output = write_placeholder_configuration(output_path)
    except (FileExistsError, OSError) as exc:
        raise CliError(str(exc)) from exc
    click.echo(str(resolved_output))


@cli.command(name="plan")
@click.option(
    "--config",
    "config_path",
    required=True,
    type=click.Path(path_type=str),
    help="Path to the YAML run configuration file",
)
def plan(config_path: str) -> None:
    """Print which preparation steps would run or be skipped, without touching the cluster."""
    configuration = _load(config_path)
    skip_reasons = resolve_skip_reasons(configuration)
    for index, name in enumerate(STEP_NAMES, start=1):
        reason = skip_reasons[name]
        status = "run" if reason is None else f"skip ({reason})"
        click.echo(f"{index:>2}. {name}: {status}")


@cli.command(name="prepare")
@click.option(
    "--config",
    "config_path",
    required=True,
    type=click.Path(path_type=str),
    help="Path to the YAML run configuration file",
)
@click.option(
    "--report",
    "report_dir",
    required=False,
    type=click.Path(path_type=str),
    help="Optional directory for storing the preparation report workbook",
)
@click.option(
    "--verbose",
    is_flag=True,
    default=False,
    help="Log debug details of every step.",
)
def prepare(config_path: str, report_dir: str | None, verbose: bool) -> None:
    """Run the eventing test preparation steps against the configured cluster."""
    logging.basicConfig(level=logging.DEBUG if verbose else logging.INFO, format=_LOG_FORMAT)
    configuration = _load(config_path)
    outcome = execute_preparation_run(configuration, build_collaborators(configuration))
    if report_dir is not None:
        outcome = _write_report(outcome, configuration, report_dir)

    _echo_outcome(outcome)
    if outcome.failed:
        raise PreparationFailed(
            f"{outcome.count(StepStatus.FAILED)} preparation step(s) failed."
        )


def _load(config_path: str) -> RunConfiguration:
    try:
        return load_configuration(config_path, dict(os.environ))
    except ConfigurationError as exc:
        raise CliError(str(exc)) from exc


def _write_report(
    outcome: PreparationOutcome, configuration: RunConfiguration, report_dir: str
) -> PreparationOutcome:
    try:
        report_path = write_preparation_report(
            outcome, configuration, default_report_path(report_dir)
        )
    except OSError as exc:
        raise CliError(f"Writing preparation report failed: {exc}") from exc
    return dataclasses.replace(outcome, report_path=report_path)


def _echo_outcome(outcome: PreparationOutcome) -> None:
    for result in outcome.step_results:
        line = f"[{result.status.value.upper()}] {result.name}"
        if result.message:
            line += f": {result.message}"
        click.echo(line)
    click.echo(
        f"passed={outcome.count(StepStatus.PASSED)} "
        f"failed={outcome.count(StepStatus.FAILED)} "
        f"skipped={outcome.count(StepStatus.SKIPPED)}"
    )
    if outcome.report_path is not None:
        click.echo(str(outcome.report_path))


def main(argv: list[str] | None = None) -> int:
    """CLI entry point for console_scripts wiring."""
    argv = argv if argv is not None else sys.argv[1:]
    try:
        cli.main(args=list(argv), standalone_mode=False)
    except CliError as exc:
        click.echo(str(exc), err=True)
        return 1
    except click.ClickException as exc:
        exc.show()
        return exc.exit_code
    except click.Abort:
        click.echo("Aborted.", err=True)
        return 1
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
