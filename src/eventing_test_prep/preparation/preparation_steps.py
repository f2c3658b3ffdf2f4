"""The fixed, ordered list of eventing test preparation steps."""

from __future__ import annotations

import logging
import tempfile
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from eventing_test_prep.broker_introspection import get_stream_snapshot
from eventing_test_prep.cluster_resources import (
    KubectlClient,
    create_backend_secret,
    create_config_map,
    prepare_managed_kubeconfig,
)
from eventing_test_prep.configuration.runtime_settings import RunConfiguration
from eventing_test_prep.function_deployment import (
    SinkFunctionDeployer,
    SubscriptionDeployer,
    wait_until_reachable,
)
from eventing_test_prep.http_transport import HttpSession

from .asset_preparation import AssetPreparationContext, prepare_assets
from .resource_cleanup import TestingResourceCleaner
from .step_sequencer import PreparationStep

_LOGGER = logging.getLogger(__name__)

PRINT_CONFIGS = "Print test initial configs"
PREPARE_SKR_KUBECONFIG = "Prepare SKR Kubeconfig if needed"
PREPARE_EVENTMESH_SECRET = "Prepare EventMesh secret"
PREPARE_JETSTREAM_CONFIGMAP = "Prepare JetStream data configmap"
PREPARE_ASSETS_WITHOUT_COMPASS = "Prepare assets without Compass flow"
PREPARE_ASSETS_WITH_COMPASS = "Prepare assets with Compass flow"
PREPARE_SINK_FUNCTION = "Prepare eventing-sink function"
SINK_FUNCTION_REACHABLE = "Eventing-sink function should be reachable through API Rule"
PREPARE_V1ALPHA1_SUBSCRIPTIONS = "Prepare v1alpha1 subscriptions"
PREPARE_V1ALPHA2_SUBSCRIPTIONS = "Prepare v1alpha2 subscriptions"

STEP_NAMES = (
    PRINT_CONFIGS,
    PREPARE_SKR_KUBECONFIG,
    PREPARE_EVENTMESH_SECRET,
    PREPARE_JETSTREAM_CONFIGMAP,
    PREPARE_ASSETS_WITHOUT_COMPASS,
    PREPARE_ASSETS_WITH_COMPASS,
    PREPARE_SINK_FUNCTION,
    SINK_FUNCTION_REACHABLE,
    PREPARE_V1ALPHA1_SUBSCRIPTIONS,
    PREPARE_V1ALPHA2_SUBSCRIPTIONS,
)


@dataclass
class PreparationCollaborators:  # pylint: disable=too-many-instance-attributes
    """Clients and deployers shared by the steps of one run."""

    kubectl: KubectlClient
    session: HttpSession
    sink_deployer: SinkFunctionDeployer
    subscription_deployer: SubscriptionDeployer
    asset_context: AssetPreparationContext
    cleaner: TestingResourceCleaner
    kubeconfig_dir: Path | None = None
    owns_kubeconfig_dir: bool = False


def resolve_skip_reasons(configuration: RunConfiguration) -> dict[str, str | None]:
    """Map every step name to its skip reason, or None when the step will run."""
    return {
        PRINT_CONFIGS: None,
        PREPARE_SKR_KUBECONFIG: _skr_kubeconfig_skip_reason(configuration),
        PREPARE_EVENTMESH_SECRET: (
            None
            if configuration.eventing.event_mesh_secret_file is not None
            else "No EventMesh secret file configured."
        ),
        PREPARE_JETSTREAM_CONFIGMAP: None,
        PREPARE_ASSETS_WITHOUT_COMPASS: (
            "Compass flow is enabled." if configuration.compass.enabled else None
        ),
        PREPARE_ASSETS_WITH_COMPASS: (
            None if configuration.compass.enabled else "Compass flow is disabled."
        ),
        PREPARE_SINK_FUNCTION: None,
        SINK_FUNCTION_REACHABLE: None,
        PREPARE_V1ALPHA1_SUBSCRIPTIONS: None,
        PREPARE_V1ALPHA2_SUBSCRIPTIONS: (
            None
            if configuration.eventing.test_subscription_v1alpha2
            else "Subscription v1alpha2 testing is disabled."
        ),
    }


def build_preparation_steps(
    configuration: RunConfiguration,
    collaborators: PreparationCollaborators,
    broker_host: str,
) -> list[PreparationStep]:
    """Bind each step name to its action and precomputed skip reason."""
    actions: dict[str, Callable[[], None]] = {
        PRINT_CONFIGS: lambda: _print_configs(configuration),
        PREPARE_SKR_KUBECONFIG: lambda: _prepare_skr_kubeconfig(configuration, collaborators),
        PREPARE_EVENTMESH_SECRET: lambda: _prepare_event_mesh_secret(
            configuration, collaborators
        ),
        PREPARE_JETSTREAM_CONFIGMAP: lambda: _prepare_jetstream_configmap(
            configuration, collaborators, broker_host
        ),
        PREPARE_ASSETS_WITHOUT_COMPASS: lambda: prepare_assets(
            False, collaborators.asset_context
        ),
        PREPARE_ASSETS_WITH_COMPASS: lambda: prepare_assets(True, collaborators.asset_context),
        PREPARE_SINK_FUNCTION: lambda: _prepare_sink_function(collaborators.sink_deployer),
        SINK_FUNCTION_REACHABLE: lambda: _check_sink_reachable(configuration, collaborators),
        PREPARE_V1ALPHA1_SUBSCRIPTIONS: lambda: _deploy_subscriptions(
            collaborators.subscription_deployer.deploy_subscriptions_v1
        ),
        PREPARE_V1ALPHA2_SUBSCRIPTIONS: lambda: _deploy_subscriptions(
            collaborators.subscription_deployer.deploy_subscriptions_v2
        ),
    }
    skip_reasons = resolve_skip_reasons(configuration)
    return [
        PreparationStep(name=name, action=actions[name], skip_reason=skip_reasons[name])
        for name in STEP_NAMES
    ]


def _skr_kubeconfig_skip_reason(configuration: RunConfiguration) -> str | None:
    if not configuration.cluster.is_managed:
        return "Not a managed (SKR) cluster."
    if not configuration.cluster.managed_instance_id:
        return "Managed instance id is not set."
    return None


def _print_configs(configuration: RunConfiguration) -> None:
    _LOGGER.debug("Mock namespace: %s", configuration.namespaces.mock)
    _LOGGER.debug("Test namespace: %s", configuration.namespaces.test)
    _LOGGER.debug("Kyma version: %s", configuration.cluster.kyma_version)
    _LOGGER.debug("Is SKR cluster: %s", configuration.cluster.is_managed)
    _LOGGER.debug("SKR instance Id: %s", configuration.cluster.managed_instance_id)
    _LOGGER.debug("SKR shoot name: %s", configuration.cluster.shoot_name)
    _LOGGER.debug("Test Compass flow enabled: %s", configuration.compass.enabled)
    _LOGGER.debug(
        "Test Subscription v1alpha2 CRD enabled: %s",
        configuration.eventing.test_subscription_v1alpha2,
    )
    _LOGGER.debug(
        "Test Subscription CRD version: %s", configuration.eventing.subscription_crd_version
    )


def _prepare_skr_kubeconfig(
    configuration: RunConfiguration, collaborators: PreparationCollaborators
) -> None:
    broker_url = configuration.environment_broker.url
    instance_id = configuration.cluster.managed_instance_id
    if not broker_url or not instance_id:
        raise ValueError("Managed cluster kubeconfig requires environment_broker.url.")
    if collaborators.kubeconfig_dir is None:
        collaborators.kubeconfig_dir = Path(tempfile.mkdtemp(prefix="eventing-test-prep-"))
        collaborators.owns_kubeconfig_dir = True
    kubeconfig_path = prepare_managed_kubeconfig(
        collaborators.kubectl,
        collaborators.session,
        broker_url,
        instance_id,
        collaborators.kubeconfig_dir,
        token=configuration.environment_broker.token,
        timeout_seconds=configuration.reachability.http_timeout_seconds,
    )
    _LOGGER.info("using managed cluster kubeconfig %s", kubeconfig_path)


def _prepare_event_mesh_secret(
    configuration: RunConfiguration, collaborators: PreparationCollaborators
) -> None:
    eventing = configuration.eventing
    if eventing.event_mesh_secret_file is None:
        raise ValueError("No EventMesh secret file configured.")
    _LOGGER.debug("Creating Event Mesh secret")
    secret = create_backend_secret(
        collaborators.kubectl,
        eventing.event_mesh_secret_file,
        eventing.backend_secret_name,
        eventing.backend_secret_namespace,
    )
    collaborators.asset_context.event_mesh_namespace = secret.event_mesh_namespace


def _prepare_jetstream_configmap(
    configuration: RunConfiguration,
    collaborators: PreparationCollaborators,
    broker_host: str,
) -> None:
    eventing = configuration.eventing
    _LOGGER.debug("Creating eventing test data configmap with JetStream stream info")
    stream_info = get_stream_snapshot(
        collaborators.session,
        broker_host,
        eventing.stream_name,
        timeout_seconds=configuration.reachability.http_timeout_seconds,
    )
    if stream_info is None:
        _LOGGER.debug("Skipping creating eventing test data configmap due to missing stream")
        return
    create_config_map(
        collaborators.kubectl,
        stream_info.as_config_map_data(),
        eventing.test_data_configmap_name,
        eventing.test_data_configmap_namespace,
    )


def _prepare_sink_function(sink_deployer: SinkFunctionDeployer) -> None:
    _LOGGER.debug("Preparing EventingSinkFunction")
    sink_deployer.deploy_function()
    sink_deployer.wait_for_function_ready()


def _check_sink_reachable(
    configuration: RunConfiguration, collaborators: PreparationCollaborators
) -> None:
    sink_deployer = collaborators.sink_deployer
    host = sink_deployer.get_service_host()
    _LOGGER.debug("host fetched, now checking if eventing-sink function is reachable...")
    wait_until_reachable(
        collaborators.session,
        sink_deployer.function_name,
        sink_deployer.namespace,
        host,
        attempts=configuration.reachability.attempts,
        wait_seconds=configuration.reachability.wait_seconds,
        timeout_seconds=configuration.reachability.http_timeout_seconds,
    )


def _deploy_subscriptions(deploy: Callable[[], list[str]]) -> None:
    names = deploy()
    _LOGGER.debug("subscriptions ready: %s", ", ".join(names))
