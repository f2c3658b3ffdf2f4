"""Idempotent scenario registration for a runtime."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any, TypeVar

from eventing_test_prep.errors import ConflictError, TransientNetworkError

from .registration_outcomes import RegistrationResult, SubStepStatus
from .scenario_operations import (
    RegistryClient,
    add_scenario,
    assign_runtime,
    is_runtime_assigned,
    scenario_exists,
)

_LOGGER = logging.getLogger(__name__)

_T = TypeVar("_T")


class _SubStepFailure(Exception):
    """Carries the name of the registry call that failed."""

    def __init__(self, sub_step: str, cause: TransientNetworkError) -> None:
        super().__init__(f"{sub_step} failed: {cause}")
        self.sub_step = sub_step
        self.cause = cause


def ensure_scenario_registered(
    client: RegistryClient, scenario_name: str, runtime_id: str
) -> RegistrationResult:
    """Make sure the scenario exists and the runtime is associated with it.

    Each create call is preceded by an existence check, so repeated calls never
    create duplicates. A conflict reported by a create call means a concurrent
    actor won the race and counts as success. Transport failures end the
    attempt with a result naming the failed sub-step.
    """
    scenario_status = SubStepStatus.NOT_REACHED
    association_status = SubStepStatus.NOT_REACHED
    try:
        scenario_status = _ensure_scenario(client, scenario_name)
        association_status = _ensure_association(client, runtime_id, scenario_name)
    except _SubStepFailure as failure:
        if scenario_status is SubStepStatus.NOT_REACHED:
            scenario_status = SubStepStatus.FAILED
        else:
            association_status = SubStepStatus.FAILED
        return RegistrationResult(
            scenario_name=scenario_name,
            runtime_id=runtime_id,
            scenario_status=scenario_status,
            association_status=association_status,
            failed_step=failure.sub_step,
            error_message=str(failure.cause),
        )

    return RegistrationResult(
        scenario_name=scenario_name,
        runtime_id=runtime_id,
        scenario_status=scenario_status,
        association_status=association_status,
    )


def _ensure_scenario(client: RegistryClient, scenario_name: str) -> SubStepStatus:
    if _call("scenario_exists", scenario_exists, client, scenario_name):
        _LOGGER.debug(
            "Compass scenario with the name %s already exists, do not register it again",
            scenario_name,
        )
        return SubStepStatus.SKIPPED
    _LOGGER.debug("creating Compass scenario %s", scenario_name)
    try:
        _call("add_scenario", add_scenario, client, scenario_name)
    except ConflictError:
        _LOGGER.debug("scenario %s was created concurrently", scenario_name)
        return SubStepStatus.CONFLICT
    return SubStepStatus.PERFORMED


def _ensure_association(
    client: RegistryClient, runtime_id: str, scenario_name: str
) -> SubStepStatus:
    if _call("is_runtime_assigned", is_runtime_assigned, client, runtime_id, scenario_name):
        _LOGGER.debug("runtime %s already assigned to scenario %s", runtime_id, scenario_name)
        return SubStepStatus.SKIPPED
    _LOGGER.debug("assigning runtime %s to Compass scenario %s", runtime_id, scenario_name)
    try:
        _call("assign_runtime", assign_runtime, client, runtime_id, scenario_name)
    except ConflictError:
        _LOGGER.debug("runtime %s was assigned concurrently", runtime_id)
        return SubStepStatus.CONFLICT
    return SubStepStatus.PERFORMED


def _call(sub_step: str, operation: Callable[..., _T], *args: Any) -> _T:
    try:
        return operation(*args)
    except TransientNetworkError as exc:
        raise _SubStepFailure(sub_step, exc) from exc
