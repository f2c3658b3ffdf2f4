"""Ordered execution of independently reported preparation steps."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from .run_contracts import StepResult, StepStatus

_LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class PreparationStep:
    """A named step with a skip reason computed before the run starts."""

    name: str
    action: Callable[[], None]
    skip_reason: str | None = None


def run_steps(
    steps: Sequence[PreparationStep],
    *,
    cleanup: Callable[[], object],
    deadline: float | None = None,
    slow_step_seconds: float | None = None,
    clock: Callable[[], float] = time.monotonic,
) -> list[StepResult]:
    """Run steps in order; a failing step triggers cleanup and the next step still runs.

    Once the deadline passes, every remaining step is reported failed without
    being started.
    """
    results: list[StepResult] = []
    for step in steps:
        if deadline is not None and clock() >= deadline:
            _LOGGER.error("run timeout exceeded before step: %s", step.name)
            results.append(
                StepResult(step.name, StepStatus.FAILED, "Run timeout exceeded before step start.")
            )
            continue
        if step.skip_reason is not None:
            _LOGGER.info("skipped: %s (%s)", step.name, step.skip_reason)
            results.append(StepResult(step.name, StepStatus.SKIPPED, step.skip_reason))
            continue
        results.append(_run_single(step, cleanup, slow_step_seconds, clock))
    return results


def _run_single(
    step: PreparationStep,
    cleanup: Callable[[], object],
    slow_step_seconds: float | None,
    clock: Callable[[], float],
) -> StepResult:
    _LOGGER.info("running: %s", step.name)
    started = clock()
    try:
        step.action()
    except Exception as exc:  # pylint: disable=broad-exception-caught
        duration = clock() - started
        _LOGGER.error("failed: %s: %s", step.name, exc)
        _run_cleanup(cleanup)
        return StepResult(step.name, StepStatus.FAILED, str(exc) or type(exc).__name__, duration)
    duration = clock() - started
    if slow_step_seconds is not None and duration > slow_step_seconds:
        _LOGGER.warning("slow: %s took %.1fs", step.name, duration)
    _LOGGER.info("passed: %s", step.name)
    return StepResult(step.name, StepStatus.PASSED, "", duration)


def _run_cleanup(cleanup: Callable[[], object]) -> None:
    try:
        cleanup()
    except Exception as exc:  # pylint: disable=broad-exception-caught
        _LOGGER.error("cleanup after failed step did not complete: %s", exc)
