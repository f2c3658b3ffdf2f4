"""Preparation report workbook writer service."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import UTC, datetime
from pathlib import Path

from openpyxl import Workbook
from openpyxl.utils import get_column_letter

from eventing_test_prep.configuration.runtime_settings import RunConfiguration
from eventing_test_prep.preparation.run_contracts import (
    PreparationOutcome,
    StepResult,
    StepStatus,
)

from .report_models import ReportMetadata

STEPS_SHEET_NAME = "Steps"
RUN_INFO_SHEET_NAME = "RunInfo"
STEP_COLUMNS = ("Step", "Status", "Duration (s)", "Message")


def default_report_path(output_dir: Path | str | None = None) -> Path:
    destination = Path(output_dir) if output_dir else Path.cwd()
    timestamp = datetime.now(UTC).strftime("%Y%m%d-%H%M%S")
    return destination / f"eventing-test-prep-{timestamp}.xlsx"


def write_preparation_report(
    outcome: PreparationOutcome,
    configuration: RunConfiguration,
    output_path: Path | str,
) -> Path:
    """Write one row per step plus a RunInfo sheet and return the resolved path."""
    output = Path(output_path)
    metadata = ReportMetadata(
        run_start=outcome.run_start,
        config_path=configuration.path,
        output_path=output.resolve(),
        kyma_version=configuration.cluster.kyma_version,
        is_managed=configuration.cluster.is_managed,
        compass_flow=configuration.compass.enabled,
        timeout_seconds=configuration.run.timeout_seconds,
    )

    workbook = Workbook()
    steps_sheet = workbook.active
    steps_sheet.title = STEPS_SHEET_NAME
    _write_step_rows(steps_sheet, outcome.step_results)
    _write_run_info_sheet(workbook, metadata, outcome)

    output.parent.mkdir(parents=True, exist_ok=True)
    workbook.save(output)
    return metadata.output_path


def _write_step_rows(sheet, step_results: Sequence[StepResult]) -> None:
    for column_index, header in enumerate(STEP_COLUMNS, start=1):
        sheet.cell(row=1, column=column_index, value=header)
    for row, result in enumerate(step_results, start=2):
        sheet.cell(row=row, column=1, value=result.name)
        sheet.cell(row=row, column=2, value=result.status.value.upper())
        sheet.cell(row=row, column=3, value=round(result.duration_seconds, 3))
        sheet.cell(row=row, column=4, value=result.message or None)
    for column_index, header in enumerate(STEP_COLUMNS, start=1):
        longest = max(
            [len(header)]
            + [
                len(str(sheet.cell(row=row, column=column_index).value or ""))
                for row in range(2, len(step_results) + 2)
            ]
        )
        sheet.column_dimensions[get_column_letter(column_index)].width = min(longest + 2, 80)


def _write_run_info_sheet(workbook, metadata: ReportMetadata, outcome: PreparationOutcome) -> None:
    sheet = workbook.create_sheet(RUN_INFO_SHEET_NAME)
    entries = (
        ("run_start", metadata.run_start.isoformat()),
        ("config_path", str(metadata.config_path) if metadata.config_path else ""),
        ("output_path", str(metadata.output_path)),
        ("kyma_version", metadata.kyma_version),
        ("managed_cluster", metadata.is_managed),
        ("compass_flow", metadata.compass_flow),
        ("timeout_seconds", metadata.timeout_seconds),
        ("total", len(outcome.step_results)),
        ("passed", outcome.count(StepStatus.PASSED)),
        ("failed", outcome.count(StepStatus.FAILED)),
        ("skipped", outcome.count(StepStatus.SKIPPED)),
    )
    for row, (key, value) in enumerate(entries, start=1):
        sheet.cell(row=row, column=1, value=key)
        sheet.cell(row=row, column=2, value=value)
