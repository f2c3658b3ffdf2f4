"""Mock fixture preparation with or without the Compass registry flow."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from eventing_test_prep.configuration.runtime_settings import NamespaceSettings
from eventing_test_prep.errors import TransientNetworkError
from eventing_test_prep.fixture_deployment import (
    FixtureContext,
    FixtureDeploymentError,
    MockFixtureDeployer,
)
from eventing_test_prep.registry import (
    RegistryClient,
    RuntimeIdentityError,
    ensure_scenario_registered,
)

_LOGGER = logging.getLogger(__name__)


class PreparationError(Exception):
    """Raised when asset preparation fails; the message names the failing sub-step."""

    def __init__(self, sub_step: str, detail: str) -> None:
        super().__init__(f"{sub_step}: {detail}")
        self.sub_step = sub_step


@dataclass
class AssetPreparationContext:  # pylint: disable=too-many-instance-attributes
    """Collaborators and values shared by both asset preparation paths.

    ``event_mesh_namespace`` is filled in by the backend secret step when it runs.
    """

    fixture_deployer: MockFixtureDeployer
    namespaces: NamespaceSettings
    app_name: str
    scenario_name: str
    test_subscription_v1alpha2: bool
    local_manifests_dir: Path | None = None
    compass_manifests_dir: Path | None = None
    registry_client: RegistryClient | None = None
    resolve_runtime_id: Callable[[], str] | None = None
    event_mesh_namespace: str | None = None


def prepare_assets(test_compass_flow: bool, context: AssetPreparationContext) -> None:
    """Deploy the mock fixture through exactly one of the two preparation paths."""
    if test_compass_flow:
        _prepare_with_compass_flow(context)
    else:
        _prepare_without_compass_flow(context)


def _prepare_without_compass_flow(context: AssetPreparationContext) -> None:
    _LOGGER.debug("Preparing CommerceMock/In-cluster test fixtures on Kyma")
    manifests_dir = _require_dir(context.local_manifests_dir, "local fixture deployment")
    fixture_context = _fixture_context(context)
    try:
        context.fixture_deployer.deploy(manifests_dir, fixture_context)
    except (TransientNetworkError, FixtureDeploymentError) as first_error:
        _LOGGER.error("local fixture deployment failed, retrying once: %s", first_error)
        try:
            context.fixture_deployer.deploy(manifests_dir, fixture_context)
        except (TransientNetworkError, FixtureDeploymentError) as exc:
            raise PreparationError("local fixture deployment", str(exc)) from exc


def _prepare_with_compass_flow(context: AssetPreparationContext) -> None:
    _LOGGER.debug("Preparing CommerceMock/In-cluster test fixtures with compass flow on SKR")
    manifests_dir = _require_dir(context.compass_manifests_dir, "compass fixture deployment")
    if context.registry_client is None or context.resolve_runtime_id is None:
        raise PreparationError("registry setup", "Compass flow requires a registry client.")

    try:
        runtime_id = context.resolve_runtime_id()
    except (TransientNetworkError, RuntimeIdentityError) as exc:
        raise PreparationError("resolve runtime identity", str(exc)) from exc

    _LOGGER.debug(
        "appName: %s, scenarioName: %s, testNamespace: %s, compassID: %s",
        context.app_name,
        context.scenario_name,
        context.namespaces.test,
        runtime_id,
    )
    registration = ensure_scenario_registered(
        context.registry_client, context.scenario_name, runtime_id
    )
    if not registration.success:
        raise PreparationError("register scenario", registration.describe_failure())

    fixture_context = _fixture_context(
        context,
        scenario_name=context.scenario_name,
        runtime_id=runtime_id,
        scenario_preexisting=registration.scenario_preexisting,
    )
    try:
        context.fixture_deployer.deploy(manifests_dir, fixture_context)
    except (TransientNetworkError, FixtureDeploymentError) as exc:
        raise PreparationError("compass fixture deployment", str(exc)) from exc


def _fixture_context(
    context: AssetPreparationContext,
    *,
    scenario_name: str | None = None,
    runtime_id: str | None = None,
    scenario_preexisting: bool = False,
) -> FixtureContext:
    return FixtureContext(
        mock_namespace=context.namespaces.mock,
        test_namespace=context.namespaces.test,
        app_name=context.app_name,
        test_subscription_v1alpha2=context.test_subscription_v1alpha2,
        event_mesh_namespace=context.event_mesh_namespace,
        scenario_name=scenario_name,
        runtime_id=runtime_id,
        scenario_preexisting=scenario_preexisting,
    )


def _require_dir(manifests_dir: Path | None, sub_step: str) -> Path:
    if manifests_dir is None:
        raise PreparationError(sub_step, "no fixture manifests directory configured.")
    return manifests_dir
