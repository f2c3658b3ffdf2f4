"""Compass registry exports."""

from .director_client import DirectorClient, RegistryRequestError
from .registration_outcomes import RegistrationResult, SubStepStatus
from .runtime_identity import RuntimeIdentityError, resolve_runtime_identity
from .scenario_operations import (
    RegistryClient,
    add_scenario,
    assign_runtime,
    is_runtime_assigned,
    scenario_exists,
)
from .scenario_registrar import ensure_scenario_registered

__all__ = [
    "DirectorClient",
    "RegistryClient",
    "RegistryRequestError",
    "RegistrationResult",
    "SubStepStatus",
    "RuntimeIdentityError",
    "resolve_runtime_identity",
    "scenario_exists",
    "add_scenario",
    "is_runtime_assigned",
    "assign_runtime",
    "ensure_scenario_registered",
]
