"""Preparation run exports."""

from .asset_preparation import AssetPreparationContext, PreparationError, prepare_assets
from .preparation_run import build_collaborators, execute_preparation_run
from .preparation_steps import (
    STEP_NAMES,
    PreparationCollaborators,
    build_preparation_steps,
    resolve_skip_reasons,
)
from .resource_cleanup import TestingResourceCleaner
from .run_contracts import PreparationOutcome, StepResult, StepStatus
from .step_sequencer import PreparationStep, run_steps

__all__ = [
    "AssetPreparationContext",
    "PreparationError",
    "prepare_assets",
    "PreparationCollaborators",
    "STEP_NAMES",
    "build_preparation_steps",
    "resolve_skip_reasons",
    "build_collaborators",
    "execute_preparation_run",
    "TestingResourceCleaner",
    "PreparationOutcome",
    "StepResult",
    "StepStatus",
    "PreparationStep",
    "run_steps",
]
