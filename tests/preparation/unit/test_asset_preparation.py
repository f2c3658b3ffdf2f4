"""Asset preparation branch selection tests."""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import Any

import pytest
from eventing_test_prep.cluster_resources import ClusterCommandError
from eventing_test_prep.configuration import NamespaceSettings
from eventing_test_prep.fixture_deployment import FixtureContext, FixtureDeploymentError
from eventing_test_prep.preparation import (
    AssetPreparationContext,
    PreparationError,
    prepare_assets,
)
from eventing_test_prep.registry import RegistryRequestError, RuntimeIdentityError

LOCAL_DIR = Path("/fixtures/local")
COMPASS_DIR = Path("/fixtures/compass")


class _FakeFixtureDeployer:
    def __init__(self, *failures: Exception) -> None:
        self._failures = list(failures)
        self.deployments: list[tuple[Path, FixtureContext]] = []

    def deploy(self, manifests_dir: Path, context: FixtureContext) -> None:
        self.deployments.append((manifests_dir, context))
        if self._failures:
            raise self._failures.pop(0)


class _FakeRegistry:
    def __init__(self, *, scenarios: tuple[str, ...] = (), fail_with: Exception | None = None):
        self._scenarios = list(scenarios)
        self._fail_with = fail_with
        self.queries: list[str] = []

    def execute(self, query: str, variables: Mapping[str, Any] | None = None) -> dict[str, Any]:
        self.queries.append(query)
        if self._fail_with is not None:
            raise self._fail_with
        if "formations(" in query:
            return {
                "formations": {
                    "data": [{"name": name} for name in self._scenarios],
                    "pageInfo": {"hasNextPage": False},
                }
            }
        if "runtime(" in query:
            return {"runtime": {"id": "rt-42", "labels": {"scenarios": self._scenarios}}}
        return {}


def _context(
    deployer: _FakeFixtureDeployer,
    *,
    registry: _FakeRegistry | None = None,
    runtime_id: str | Exception = "rt-42",
) -> AssetPreparationContext:
    def _resolve_runtime_id() -> str:
        if isinstance(runtime_id, Exception):
            raise runtime_id
        return runtime_id

    return AssetPreparationContext(
        fixture_deployer=deployer,  # type: ignore[arg-type]
        namespaces=NamespaceSettings(test="test", mock="mocks"),
        app_name="eventing-test-app",
        scenario_name="skr-scenario-1",
        test_subscription_v1alpha2=True,
        local_manifests_dir=LOCAL_DIR,
        compass_manifests_dir=COMPASS_DIR,
        registry_client=registry,
        resolve_runtime_id=_resolve_runtime_id,
        event_mesh_namespace="default/sap.kyma/tunas",
    )


def test_local_path_deploys_once_without_registry() -> None:
    deployer = _FakeFixtureDeployer()
    registry = _FakeRegistry()

    prepare_assets(False, _context(deployer, registry=registry))

    assert [manifests_dir for manifests_dir, _ in deployer.deployments] == [LOCAL_DIR]
    context = deployer.deployments[0][1]
    assert context.scenario_name is None
    assert context.runtime_id is None
    assert context.event_mesh_namespace == "default/sap.kyma/tunas"
    assert registry.queries == []


def test_local_path_retries_exactly_once_and_succeeds() -> None:
    deployer = _FakeFixtureDeployer(ClusterCommandError("apply failed"))

    prepare_assets(False, _context(deployer))

    assert len(deployer.deployments) == 2


def test_local_path_surfaces_cause_when_retry_fails() -> None:
    deployer = _FakeFixtureDeployer(
        ClusterCommandError("first failure"), FixtureDeploymentError("second failure")
    )

    with pytest.raises(PreparationError, match="local fixture deployment: second failure") as err:
        prepare_assets(False, _context(deployer))

    assert err.value.sub_step == "local fixture deployment"
    assert len(deployer.deployments) == 2


def test_local_path_does_not_retry_programming_errors() -> None:
    deployer = _FakeFixtureDeployer(KeyError("kind"))

    with pytest.raises(KeyError):
        prepare_assets(False, _context(deployer))
    assert len(deployer.deployments) == 1


def test_compass_path_registers_scenario_before_deploying() -> None:
    deployer = _FakeFixtureDeployer()
    registry = _FakeRegistry()

    prepare_assets(True, _context(deployer, registry=registry))

    assert any("createFormation" in query for query in registry.queries)
    assert any("assignFormation" in query for query in registry.queries)
    manifests_dir, context = deployer.deployments[0]
    assert manifests_dir == COMPASS_DIR
    assert context.scenario_name == "skr-scenario-1"
    assert context.runtime_id == "rt-42"
    assert context.scenario_preexisting is False


def test_compass_path_reports_preexisting_scenario() -> None:
    deployer = _FakeFixtureDeployer()

    prepare_assets(True, _context(deployer, registry=_FakeRegistry(scenarios=("skr-scenario-1",))))

    assert deployer.deployments[0][1].scenario_preexisting is True


def test_compass_path_does_not_retry_fixture_deployment() -> None:
    deployer = _FakeFixtureDeployer(ClusterCommandError("apply failed"))

    with pytest.raises(PreparationError, match="compass fixture deployment"):
        prepare_assets(True, _context(deployer, registry=_FakeRegistry()))
    assert len(deployer.deployments) == 1


def test_compass_path_registration_failure_names_sub_step() -> None:
    deployer = _FakeFixtureDeployer()
    registry = _FakeRegistry(fail_with=RegistryRequestError("director down"))

    with pytest.raises(PreparationError, match="register scenario: scenario_exists failed"):
        prepare_assets(True, _context(deployer, registry=registry))
    assert deployer.deployments == []


def test_compass_path_runtime_identity_failure_names_sub_step() -> None:
    deployer = _FakeFixtureDeployer()
    context = _context(
        deployer, registry=_FakeRegistry(), runtime_id=RuntimeIdentityError("no annotation")
    )

    with pytest.raises(PreparationError, match="resolve runtime identity: no annotation"):
        prepare_assets(True, context)


def test_compass_path_without_registry_client_fails() -> None:
    deployer = _FakeFixtureDeployer()

    with pytest.raises(PreparationError, match="registry setup"):
        prepare_assets(True, _context(deployer, registry=None))


@pytest.mark.parametrize("compass_flow", [True, False])
def test_exactly_one_branch_runs(compass_flow: bool) -> None:
    deployer = _FakeFixtureDeployer()
    registry = _FakeRegistry()

    prepare_assets(compass_flow, _context(deployer, registry=registry))

    used_dirs = [manifests_dir for manifests_dir, _ in deployer.deployments]
    assert used_dirs == ([COMPASS_DIR] if compass_flow else [LOCAL_DIR])
    assert bool(registry.queries) is compass_flow
