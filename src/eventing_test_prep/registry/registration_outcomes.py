"""Scenario registration outcome entities."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class SubStepStatus(str, Enum):
    """What happened to one create-if-absent sub-step."""

    PERFORMED = "performed"
    SKIPPED = "skipped"
    CONFLICT = "conflict"
    FAILED = "failed"
    NOT_REACHED = "not_reached"


@dataclass(frozen=True)
class RegistrationResult:
    """Trace of one scenario registration attempt."""

    scenario_name: str
    runtime_id: str
    scenario_status: SubStepStatus
    association_status: SubStepStatus
    failed_step: str | None = None
    error_message: str | None = None

    @property
    def success(self) -> bool:
        return self.failed_step is None

    @property
    def scenario_preexisting(self) -> bool:
        return self.scenario_status is not SubStepStatus.PERFORMED

    @property
    def performed_steps(self) -> tuple[str, ...]:
        performed = []
        if self.scenario_status is SubStepStatus.PERFORMED:
            performed.append("add_scenario")
        if self.association_status is SubStepStatus.PERFORMED:
            performed.append("assign_runtime")
        return tuple(performed)

    def describe_failure(self) -> str:
        if self.success:
            return ""
        return f"{self.failed_step} failed: {self.error_message}"
