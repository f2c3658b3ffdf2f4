"""Preparation run use-case service."""

from __future__ import annotations

import logging
import shutil
import time
from collections.abc import Callable
from datetime import UTC, datetime
from pathlib import Path

from eventing_test_prep.cluster_resources import (
    KubectlClient,
    create_ingress_rule,
    delete_ingress_rule,
)
from eventing_test_prep.cluster_resources.kubectl_client import CommandRunner
from eventing_test_prep.configuration.runtime_settings import RunConfiguration
from eventing_test_prep.errors import TransientNetworkError
from eventing_test_prep.fixture_deployment import MockFixtureDeployer
from eventing_test_prep.function_deployment import SinkFunctionDeployer, SubscriptionDeployer
from eventing_test_prep.http_transport import HttpSession, build_http_session
from eventing_test_prep.registry import DirectorClient, resolve_runtime_identity

from .asset_preparation import AssetPreparationContext
from .preparation_steps import STEP_NAMES, PreparationCollaborators, build_preparation_steps
from .resource_cleanup import TestingResourceCleaner
from .run_contracts import PreparationOutcome, StepResult, StepStatus
from .step_sequencer import run_steps

_LOGGER = logging.getLogger(__name__)


def build_collaborators(
    configuration: RunConfiguration,
    *,
    run_command: CommandRunner | None = None,
    session: HttpSession | None = None,
    kubeconfig_dir: Path | None = None,
) -> PreparationCollaborators:
    """Wire the cluster, HTTP and registry adapters for one run."""
    resolved_session = session if session is not None else build_http_session()
    cluster = configuration.cluster
    kubectl = KubectlClient(
        kubectl_binary=cluster.kubectl_binary,
        kubeconfig=cluster.kubeconfig,
        timeout_seconds=cluster.command_timeout_seconds,
        run_command=run_command,
    )
    fixture_deployer = MockFixtureDeployer(kubectl)
    sink_deployer = SinkFunctionDeployer(
        kubectl,
        resolved_session,
        function_name=configuration.eventing.sink_function_name,
        namespace=configuration.namespaces.test,
    )
    subscription_deployer = SubscriptionDeployer(
        kubectl,
        namespace=configuration.namespaces.test,
        sink_name=configuration.eventing.sink_function_name,
        app_name=configuration.eventing.app_name,
        event_types=configuration.eventing.event_types,
        include_v1alpha2=configuration.eventing.test_subscription_v1alpha2,
    )
    asset_context = AssetPreparationContext(
        fixture_deployer=fixture_deployer,
        namespaces=configuration.namespaces,
        app_name=configuration.eventing.app_name,
        scenario_name=configuration.compass.scenario_name,
        test_subscription_v1alpha2=configuration.eventing.test_subscription_v1alpha2,
        local_manifests_dir=configuration.fixtures.local_manifests_dir,
        compass_manifests_dir=configuration.fixtures.compass_manifests_dir,
    )
    if configuration.compass.enabled:
        _attach_registry(configuration, asset_context, resolved_session, run_command)

    cleaner = TestingResourceCleaner(
        [
            ("subscriptions", subscription_deployer.remove),
            ("eventing-sink function", sink_deployer.remove),
            ("mock fixture", fixture_deployer.remove),
        ]
    )
    return PreparationCollaborators(
        kubectl=kubectl,
        session=resolved_session,
        sink_deployer=sink_deployer,
        subscription_deployer=subscription_deployer,
        asset_context=asset_context,
        cleaner=cleaner,
        kubeconfig_dir=kubeconfig_dir,
    )


def execute_preparation_run(
    configuration: RunConfiguration,
    collaborators: PreparationCollaborators,
    *,
    clock: Callable[[], float] = time.monotonic,
) -> PreparationOutcome:
    """Expose the broker, run every preparation step, then remove the exposure again."""
    run_start = datetime.now(UTC)
    deadline = clock() + configuration.run.timeout_seconds
    eventing = configuration.eventing
    # Pinned before any step can switch the main client to the managed cluster.
    ingress_kubectl = collaborators.kubectl.clone()

    _LOGGER.debug("expose the %s service with an apirule", eventing.nats_service_name)
    try:
        ingress_rule = create_ingress_rule(
            ingress_kubectl,
            eventing.nats_api_rule_name,
            eventing.system_namespace,
            eventing.nats_service_name,
            eventing.nats_monitoring_port,
        )
    except TransientNetworkError as exc:
        _LOGGER.error("exposing the broker monitoring service failed: %s", exc)
        collaborators.cleaner.cleanup_all()
        _delete_ingress(ingress_kubectl, configuration)
        message = f"Exposing broker monitoring service failed: {exc}"
        return PreparationOutcome(
            run_start=run_start,
            step_results=tuple(
                StepResult(name, StepStatus.FAILED, message) for name in STEP_NAMES
            ),
        )

    try:
        results = run_steps(
            build_preparation_steps(configuration, collaborators, ingress_rule.host),
            cleanup=collaborators.cleaner.cleanup_all,
            deadline=deadline,
            slow_step_seconds=configuration.run.slow_step_seconds,
            clock=clock,
        )
    finally:
        _delete_ingress(ingress_kubectl, configuration)
        _remove_owned_kubeconfig_dir(collaborators)
    return PreparationOutcome(run_start=run_start, step_results=tuple(results))


def _attach_registry(
    configuration: RunConfiguration,
    asset_context: AssetPreparationContext,
    session: HttpSession,
    run_command: CommandRunner | None,
) -> None:
    compass = configuration.compass
    if not compass.director_url or not compass.token:
        return
    asset_context.registry_client = DirectorClient(
        session,
        compass.director_url,
        compass.token,
        timeout_seconds=configuration.reachability.http_timeout_seconds,
    )
    gardener_kubectl = KubectlClient(
        kubectl_binary=configuration.cluster.kubectl_binary,
        kubeconfig=compass.gardener_kubeconfig,
        timeout_seconds=configuration.cluster.command_timeout_seconds,
        run_command=run_command,
    )
    shoot_name = configuration.cluster.shoot_name or ""
    gardener_namespace = compass.gardener_namespace or ""
    asset_context.resolve_runtime_id = lambda: resolve_runtime_identity(
        gardener_kubectl, shoot_name, gardener_namespace
    )


def _delete_ingress(kubectl: KubectlClient, configuration: RunConfiguration) -> None:
    eventing = configuration.eventing
    try:
        delete_ingress_rule(kubectl, eventing.nats_api_rule_name, eventing.system_namespace)
    except TransientNetworkError as exc:
        _LOGGER.warning(
            "deleting apirule %s/%s failed: %s",
            eventing.system_namespace,
            eventing.nats_api_rule_name,
            exc,
        )


def _remove_owned_kubeconfig_dir(collaborators: PreparationCollaborators) -> None:
    kubeconfig_dir = collaborators.kubeconfig_dir
    if not collaborators.owns_kubeconfig_dir or kubeconfig_dir is None:
        return
    _LOGGER.debug("removing managed cluster kubeconfig directory %s", kubeconfig_dir)
    shutil.rmtree(kubeconfig_dir, ignore_errors=True)
    collaborators.kubeconfig_dir = None
    collaborators.owns_kubeconfig_dir = False
