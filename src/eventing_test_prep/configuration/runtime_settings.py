"""Configuration domain entities."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class NamespaceSettings:
    """Namespaces used by the mock fixture and the test resources."""

    test: str
    mock: str


@dataclass(frozen=True)
class ClusterSettings:
    """Target cluster access configuration."""

    kubeconfig: Path | None
    kubectl_binary: str
    kyma_version: str
    is_managed: bool
    managed_instance_id: str | None
    shoot_name: str | None
    command_timeout_seconds: int


@dataclass(frozen=True)
class EventingSettings:  # pylint: disable=too-many-instance-attributes
    """Eventing backend, broker and sink configuration."""

    system_namespace: str
    nats_service_name: str
    nats_monitoring_port: int
    nats_api_rule_name: str
    stream_name: str
    test_data_configmap_name: str
    test_data_configmap_namespace: str
    backend_secret_name: str
    backend_secret_namespace: str
    event_mesh_secret_file: Path | None
    sink_function_name: str
    app_name: str
    test_subscription_v1alpha2: bool
    subscription_crd_version: str
    event_types: tuple[str, ...]


@dataclass(frozen=True)
class CompassSettings:
    """Compass registry flow configuration."""

    enabled: bool
    director_url: str | None
    token: str | None
    scenario_name: str
    gardener_kubeconfig: Path | None
    gardener_namespace: str | None


@dataclass(frozen=True)
class EnvironmentBrokerSettings:
    """Environment broker endpoint used to fetch managed cluster kubeconfigs."""

    url: str | None
    token: str | None


@dataclass(frozen=True)
class FixtureSettings:
    """Mock application manifest locations."""

    local_manifests_dir: Path | None
    compass_manifests_dir: Path | None


@dataclass(frozen=True)
class ReachabilitySettings:
    """Bounded retry budget for the sink reachability check."""

    attempts: int
    wait_seconds: float
    http_timeout_seconds: int


@dataclass(frozen=True)
class RunSettings:
    """Whole-run timing configuration."""

    timeout_seconds: int
    slow_step_seconds: int


@dataclass(frozen=True)
class RunConfiguration:  # pylint: disable=too-many-instance-attributes
    """Top-level configuration aggregate resolved once per run."""

    path: Path | None
    namespaces: NamespaceSettings
    cluster: ClusterSettings
    eventing: EventingSettings
    compass: CompassSettings
    environment_broker: EnvironmentBrokerSettings
    fixtures: FixtureSettings
    reachability: ReachabilitySettings
    run: RunSettings
