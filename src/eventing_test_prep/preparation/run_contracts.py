"""Preparation run entities."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path


class StepStatus(str, Enum):
    """Reported outcome of one preparation step."""

    PASSED = "passed"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class StepResult:
    """Outcome of running or skipping one named step."""

    name: str
    status: StepStatus
    message: str = ""
    duration_seconds: float = 0.0


@dataclass(frozen=True)
class PreparationOutcome:
    """Output contract for one completed preparation run."""

    run_start: datetime
    step_results: tuple[StepResult, ...]
    report_path: Path | None = None

    @property
    def failed(self) -> bool:
        return any(result.status is StepStatus.FAILED for result in self.step_results)

    def count(self, status: StepStatus) -> int:
        return sum(1 for result in self.step_results if result.status is status)
